"""Scan service entrypoints for the CLI: library batches and camera frames."""

from __future__ import annotations

import hashlib
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

from tqdm import tqdm

import config
from cards import Card, CardStore, record_card
from detection import DetectionOutcome, ExtractedCardInfo
from geometry import Rect, Size
from images import CardImage, load_image

from .config import DetectorStrategy
from .pipeline import CardScanPipeline

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancel/pause signal polled between images."""

    def __init__(self) -> None:
        self._cancelled = threading.Event()
        self._running = threading.Event()
        self._running.set()

    def cancel(self) -> None:
        self._cancelled.set()
        # Wake a paused scan so it can observe the cancel
        self._running.set()

    def pause(self) -> None:
        self._running.clear()

    def resume(self) -> None:
        self._running.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def paused(self) -> bool:
        return not self._running.is_set()

    def checkpoint(self, timeout: float | None = None) -> bool:
        """Block while paused. Returns False if the scan should stop."""
        if not self._running.wait(timeout):
            return False
        return not self._cancelled.is_set()


class ProcessedIdentifiers:
    """Set of image identifiers already turned into cards."""

    def __init__(self, identifiers: Iterable[str] = ()) -> None:
        self._identifiers = set(identifiers)
        self._lock = threading.Lock()

    @classmethod
    def from_store(cls, store: CardStore) -> ProcessedIdentifiers:
        return cls(store.identifiers())

    def __contains__(self, identifier: str) -> bool:
        with self._lock:
            return identifier in self._identifiers

    def __len__(self) -> int:
        with self._lock:
            return len(self._identifiers)

    def add(self, identifier: str) -> None:
        with self._lock:
            self._identifiers.add(identifier)


def compute_file_identifier(path: Path) -> str:
    """SHA-256 of the file content, so renamed copies are not rescanned."""
    hasher = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def camera_identifier(timestamp: float | None = None) -> str:
    """Unique identifier for a camera capture."""
    ts = time.time() if timestamp is None else timestamp
    return f"camera_{uuid.uuid4()}_{ts}"


def _empty_stats(found: int = 0) -> dict:
    return {
        "images_found": found,
        "images_scanned": 0,
        "images_skipped": 0,
        "images_failed": 0,
        "cards_found": 0,
        "cards_recorded": 0,
        "cancelled": False,
    }


def find_card_info(
    pipeline: CardScanPipeline,
    image: CardImage,
    strategy: DetectorStrategy | str | None = None,
) -> ExtractedCardInfo | None:
    """Detect a card in a library photo.

    Photos that contain no detectable card region but look like a card as a
    whole (a close-up of a single card) are read in full.
    """
    outcome = pipeline.detect(image, strategy=strategy)
    if outcome.card_info is not None:
        return outcome.card_info
    if pipeline.classifier.is_card_like(image.pixels):
        logger.debug("No card region found, reading whole image")
        return pipeline.extract_info(image)
    return None


def scan_library(
    paths: list[Path],
    pipeline: CardScanPipeline,
    store: CardStore,
    token: CancellationToken | None = None,
    limit: int | None = None,
    strategy: DetectorStrategy | str | None = None,
    progress: bool = True,
) -> dict:
    """Scan library images and record one card per image.

    Images whose content identifier is already in the store are skipped.
    The token is checked before every image; a cancelled scan returns the
    stats gathered so far with ``cancelled`` set.
    """
    if limit is not None:
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        paths = paths[:limit]
        logger.info("Processing limited to %s images", limit)

    stats = _empty_stats(len(paths))
    if not paths:
        logger.info("No images to process.")
        return stats

    token = token or CancellationToken()
    processed = ProcessedIdentifiers.from_store(store)

    for index, path in enumerate(tqdm(paths, desc="Scanning", disable=not progress), start=1):
        if not token.checkpoint():
            logger.info("Scan cancelled after %d images", index - 1)
            stats["cancelled"] = True
            break

        try:
            identifier = compute_file_identifier(path)
        except OSError as exc:
            logger.warning("Skipping unreadable file %s: %s", path, exc)
            stats["images_failed"] += 1
            continue

        if identifier in processed:
            stats["images_skipped"] += 1
            continue

        image = load_image(path)
        if image is None:
            stats["images_failed"] += 1
            continue

        try:
            info = find_card_info(pipeline, image, strategy)
        except Exception as exc:
            logger.exception("Error processing image %s: %s", path, exc)
            stats["images_failed"] += 1
            continue

        stats["images_scanned"] += 1
        if info is not None:
            stats["cards_found"] += 1
            if record_card(store, identifier, info) is not None:
                stats["cards_recorded"] += 1
            processed.add(identifier)

        if index % config.LIBRARY_BATCH_SIZE == 0:
            logger.info("Scanned %d/%d images, %d cards", index, len(paths), stats["cards_found"])

    return stats


class FrameThrottle:
    """Lets at most one camera frame through per interval."""

    def __init__(
        self,
        interval: float = config.CAMERA_SCAN_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval < 0:
            raise ValueError(f"interval must be non-negative, got {interval}")
        self.interval = interval
        self._clock = clock
        self._last: Optional[float] = None
        self._lock = threading.Lock()

    def ready(self) -> bool:
        """Return True and start a new interval if the last one elapsed."""
        with self._lock:
            now = self._clock()
            if self._last is not None and now - self._last < self.interval:
                return False
            self._last = now
            return True

    def reset(self) -> None:
        with self._lock:
            self._last = None


@dataclass
class CameraScanResult:
    """Outcome of one camera frame and the card recorded from it, if any."""

    outcome: DetectionOutcome
    card: Card | None = None
    identifier: str | None = None


def scan_camera_frame(
    image: CardImage,
    pipeline: CardScanPipeline,
    store: CardStore | None = None,
    throttle: FrameThrottle | None = None,
    scan_frame: Rect | None = None,
    viewport_size: Size | None = None,
    strategy: DetectorStrategy | str | None = None,
) -> CameraScanResult | None:
    """Scan one camera frame; returns None when the throttle drops it.

    With a store, a found card is recorded under a fresh camera identifier.
    """
    if throttle is not None and not throttle.ready():
        return None

    outcome = pipeline.detect(
        image,
        scan_frame=scan_frame,
        viewport_size=viewport_size,
        strategy=strategy,
    )
    result = CameraScanResult(outcome=outcome)
    if outcome.card_info is None or store is None:
        return result

    result.identifier = camera_identifier()
    result.card = record_card(store, result.identifier, outcome.card_info)
    return result
