"""Logging setup for the cardscan command line."""

from __future__ import annotations

import logging
import os
import sys
from typing import Iterable

LOG_LEVEL_ENV = "CARDSCAN_LOG_LEVEL"

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

LOG_LEVEL_CHOICES: Iterable[str] = tuple(LOG_LEVELS.keys())

_OFFSET_LEVELS = (logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG)

# Noisy third-party loggers kept at WARNING unless debugging
QUIET_LOGGERS = ("PIL", "ultralytics", "easyocr")


def add_logging_args(parser) -> None:
    """Add --log-level, -v and -q to an argparse parser."""
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVEL_CHOICES,
        help=f"Set log verbosity (overrides ${LOG_LEVEL_ENV} and -v/-q)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="count",
        default=0,
        help="Reduce log verbosity (use -qq for errors only)",
    )


def resolve_log_level(
    log_level: str | None = None,
    verbose: int = 0,
    quiet: int = 0,
    environ: dict | None = None,
) -> int:
    """Resolve a numeric log level.

    Precedence: explicit ``log_level``, then the environment variable, then
    the -v/-q offset from INFO.
    """
    if log_level:
        return LOG_LEVELS[log_level.lower()]

    env_level = (environ if environ is not None else os.environ).get(LOG_LEVEL_ENV, "")
    if env_level.lower() in LOG_LEVELS:
        return LOG_LEVELS[env_level.lower()]

    offset = verbose - quiet
    # -qq and beyond -> ERROR, -v and beyond -> DEBUG
    index = max(-2, min(1, offset)) + 2
    return _OFFSET_LEVELS[index]


def configure_logging(
    log_level: str | None = None,
    verbose: int = 0,
    quiet: int = 0,
) -> int:
    """Configure root logging on stderr and return the active level.

    Stdout is left for command output (e.g. ``--json``).
    """
    level = resolve_log_level(log_level=log_level, verbose=verbose, quiet=quiet)
    root_logger = logging.getLogger()

    if root_logger.handlers:
        root_logger.setLevel(level)
        for handler in root_logger.handlers:
            handler.setLevel(level)
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
            stream=sys.stderr,
        )

    if level > logging.DEBUG:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    return level
