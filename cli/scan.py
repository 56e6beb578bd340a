"""Scan command CLI parsing and control flow."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

import config
from cards import CardStore, record_card
from detection import DetectionOutcome
from geometry import Rect, Size
from images import load_image
from scan import DetectorStrategy, ScannerConfig, build_pipeline, scan_library
from scan.service import compute_file_identifier
from sources import find_library_images

logger = logging.getLogger(__name__)


def _parse_floats(value: str, count: int) -> list[float]:
    parts = [part.strip() for part in value.split(",")]
    if len(parts) != count:
        raise argparse.ArgumentTypeError(f"expected {count} comma-separated numbers, got {value!r}")
    try:
        return [float(part) for part in parts]
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number list: {value!r}") from None


def parse_rect(value: str) -> Rect:
    """Parse ``x,y,w,h`` into a Rect."""
    x, y, width, height = _parse_floats(value, 4)
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError(f"scan frame must have a positive size: {value!r}")
    return Rect(x, y, width, height)


def parse_size(value: str) -> Size:
    """Parse ``w,h`` into a Size."""
    width, height = _parse_floats(value, 2)
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError(f"viewport must have a positive size: {value!r}")
    return Size(width, height)


def parse_limit(value: str) -> int:
    """Parse a positive image count."""
    try:
        limit = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from None
    if limit < 1:
        raise argparse.ArgumentTypeError(f"limit must be at least 1, got {limit}")
    return limit


def add_scan_subparser(
subparsers: argparse._SubParsersAction) -> None:
    scan_parser = subparsers.add_parser(
        "scan",
        help="Scan a local image or directory for cards",
    )
    scan_parser.add_argument(
        "source",
        help="Local directory or image file path",
    )
    scan_parser.add_argument(
        "--strategy",
        choices=[s.value for s in DetectorStrategy],
        default=None,
        help=f"Region detector (default: {config.DETECTOR_STRATEGY})",
    )
    scan_parser.add_argument(
        "--model-dir",
        type=Path,
        default=None,
        help="Directory holding the learned detector model",
    )
    scan_parser.add_argument(
        "--scan-frame",
        type=parse_rect,
        metavar="X,Y,W,H",
        help="Only keep regions near this frame (viewport coordinates, single image only)",
    )
    scan_parser.add_argument(
        "--viewport",
        type=parse_size,
        metavar="W,H",
        help="Viewport size for --scan-frame (default: %gx%g)" % config.DEFAULT_VIEWPORT_SIZE,
    )
    scan_parser.add_argument(
        "--limit", "-n",
        type=parse_limit,
        default=None,
        help="Maximum number of images to process (default: all)",
    )
    scan_parser.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Include images in subdirectories",
    )
    scan_parser.add_argument(
        "--no-faces",
        action="store_true",
        help="Skip face detection",
    )
    scan_parser.add_argument(
        "--no-record",
        action="store_true",
        help="Do not store found cards (single image only)",
    )
    scan_parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON on stdout",
    )
    scan_parser.set_defaults(_cmd=cmd_scan)


def build_scanner_config(args: argparse.Namespace) -> ScannerConfig:
    overrides = {}
    if args.strategy:
        overrides["strategy"] = args.strategy
    if args.model_dir:
        overrides["model_dir"] = args.model_dir
    if args.no_faces:
        overrides["face_backend"] = None
    return ScannerConfig().with_overrides(**overrides)


def scan_single_image(
    path: Path,
    pipeline,
    store: CardStore | None,
    scan_frame: Rect | None = None,
    viewport_size: Size | None = None,
) -> DetectionOutcome | None:
    """Detect a card in one image and record it in ``store`` if given."""
    image = load_image(path)
    if image is None:
        return None

    if scan_frame is not None and viewport_size is None:
        viewport_size = Size.from_tuple(config.DEFAULT_VIEWPORT_SIZE)

    outcome = pipeline.detect(image, scan_frame=scan_frame, viewport_size=viewport_size)
    if outcome.card_info is not None and store is not None:
        record_card(store, compute_file_identifier(path), outcome.card_info)
    return outcome


def _log_outcome(path: Path, outcome: DetectionOutcome) -> None:
    logger.info("%s: %d regions (%s detector)", path.name, len(outcome.regions), outcome.strategy)
    info = outcome.card_info
    if info is None:
        logger.info("No card found.")
        return
    logger.info("Player: %s", info.player_name or "(unknown)")
    logger.info("Year:   %s", info.year or "(unknown)")
    logger.info("Team:   %s", info.team or "(unknown)")
    logger.info("Face:   %s", "yes" if info.has_face else "no")


def _log_stats(stats: dict) -> None:
    logger.info("%s", "=" * 50)
    logger.info("Scan Complete!" if not stats["cancelled"] else "Scan Cancelled")
    logger.info("%s", "=" * 50)
    logger.info("Images found:   %s", stats["images_found"])
    logger.info("Images scanned: %s", stats["images_scanned"])
    logger.info("Images skipped: %s", stats["images_skipped"])
    logger.info("Images failed:  %s", stats["images_failed"])
    logger.info("Cards found:    %s", stats["cards_found"])
    logger.info("Cards recorded: %s", stats["cards_recorded"])


def cmd_scan(args: argparse.Namespace) -> int:
    try:
        scanner_config = build_scanner_config(args)
        paths = find_library_images(args.source, recursive=args.recursive)
    except ValueError as exc:
        logger.error("%s", exc)
        return 1

    single = len(paths) == 1 and Path(args.source).is_file()
    if not single and args.scan_frame is not None:
        logger.error("--scan-frame applies to a single image only")
        return 1

    pipeline = build_pipeline(scanner_config)
    if scanner_config.strategy is DetectorStrategy.LEARNED and pipeline.learned_detector is not None:
        pipeline.learned_detector.wait_until_loaded(scanner_config.scan_timeout)

    store = CardStore.open(args.db)
    try:
        with pipeline:
            if single:
                outcome = scan_single_image(
                    paths[0],
                    pipeline,
                    None if args.no_record else store,
                    scan_frame=args.scan_frame,
                    viewport_size=args.viewport,
                )
                if outcome is None:
                    logger.error("Could not decode %s", paths[0])
                    return 1
                if args.json:
                    print(json.dumps(outcome.to_dict(), indent=2))
                else:
                    _log_outcome(paths[0], outcome)
                return 0

            stats = scan_library(
                paths,
                pipeline,
                store,
                limit=args.limit,
                progress=not args.json,
            )
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130
    finally:
        store.close()

    if args.json:
        print(json.dumps(stats, indent=2))
    else:
        _log_stats(stats)
    return 0
