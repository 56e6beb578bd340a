#!/usr/bin/env python3
"""
Command line for the Card Scanner.

Usage:
    cardscan scan <path>                 # Scan an image or directory for cards
    cardscan scan <image> --json         # Print regions and card info as JSON
    cardscan scan <image> --scan-frame 40,200,295,400 --viewport 375,812
    cardscan cards list                  # List recorded cards
    cardscan cards list --team lakers    # Filter by player, year or team
    cardscan cards delete <id>           # Delete a recorded card
"""

import argparse
import logging
import sys
from pathlib import Path

import config
from logging_utils import configure_logging, add_logging_args
from cli.scan import add_scan_subparser
from cli.cards import add_cards_subparser

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cardscan",
        description="Card Scanner - detect sports cards in photos and read player, year and team",
    )
    add_logging_args(parser)
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help=f"Card database path (default: {config.DB_PATH.name})",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    add_scan_subparser(subparsers)
    add_cards_subparser(subparsers)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.verbose, args.quiet)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "cards" and args.cards_command is None:
        args._cards_parser.print_help()
        return 1

    cmd = getattr(args, "_cmd", None)
    if cmd is None:
        parser.print_help()
        return 1
    return cmd(args)


if __name__ == "__main__":
    sys.exit(main())
