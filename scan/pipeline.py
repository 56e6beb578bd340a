"""
Detection-and-extraction pipeline.

One ``detect`` call runs the selected region detector on an image, filters
the regions, then processes every surviving region concurrently:

    crop -> classify -> (OCR -> parse) || face detection -> merge

The first region (in detector order) that yields card info wins. Regions
that fail classification, crop outside the image, or produce neither text
nor a face contribute nothing.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Sequence

import numpy as np

from detection import (
    CardClassifier,
    DetectedRegion,
    DetectionOutcome,
    ExtractedCardInfo,
    LearnedDetector,
    RectangleDetector,
    RegionDetector,
    crop_region,
    filter_by_scan_frame,
    get_oracle_by_name,
    scan_frame_pixel_rect,
)
from extraction import TEAM_NAMES, TextRecognizer, parse_card_text
from faces import FaceBackend, detect_face, get_face_backend_by_name
from geometry import Rect, Size
from images import CardImage

from .config import DetectorStrategy, ScannerConfig

logger = logging.getLogger(__name__)


def _as_card_image(image: CardImage | np.ndarray | None) -> CardImage | None:
    if image is None:
        return None
    if isinstance(image, CardImage):
        return None if image.is_empty else image
    if not isinstance(image, np.ndarray) or image.size == 0:
        return None
    try:
        return CardImage.from_array(image)
    except ValueError as exc:
        logger.warning("Rejected input image: %s", exc)
        return None


class CardScanPipeline:
    """Card detection and extraction with injectable collaborators.

    The pipeline owns two thread pools: one fans out per-region tasks, the
    other runs face detection beside OCR inside a task. Face tasks never
    wait on other work, so the pools cannot starve each other.
    """

    def __init__(
        self,
        config: ScannerConfig | None = None,
        rectangle_detector: RegionDetector | None = None,
        learned_detector: RegionDetector | None = None,
        classifier: CardClassifier | None = None,
        recognizer: TextRecognizer | None = None,
        face_backend: FaceBackend | None = None,
        executor: ThreadPoolExecutor | None = None,
        team_names: Sequence[str] = TEAM_NAMES,
    ) -> None:
        self.config = config or ScannerConfig()
        self.config.validate()
        self.rectangle_detector = rectangle_detector or RectangleDetector()
        self.learned_detector = learned_detector
        self.classifier = classifier or CardClassifier(
            oracle=get_oracle_by_name(self.config.classifier_oracle)
        )
        self.recognizer = recognizer or TextRecognizer(languages=self.config.ocr_languages)
        self.face_backend = face_backend
        self.team_names = tuple(team_names)

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="card-region",
        )
        self._face_executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="card-face",
        )
        self._dispatch_executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="card-scan",
        )

    def __enter__(self) -> CardScanPipeline:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Shut down the worker pools."""
        self._dispatch_executor.shutdown(wait=True)
        if self._owns_executor:
            self._executor.shutdown(wait=True)
        self._face_executor.shutdown(wait=True)

    def select_detector(
        self, strategy: DetectorStrategy | str | None = None
    ) -> tuple[RegionDetector, DetectorStrategy]:
        """Return the detector to run and the strategy it implements.

        A learned strategy whose detector is missing or not loaded yet falls
        back to the geometric detector.
        """
        requested = DetectorStrategy.parse(strategy) if strategy is not None else self.config.strategy
        if requested is DetectorStrategy.LEARNED:
            if self.learned_detector is not None and self.learned_detector.is_ready():
                return self.learned_detector, DetectorStrategy.LEARNED
            logger.info("Learned detector not ready, using geometric detection")
        return self.rectangle_detector, DetectorStrategy.GEOMETRIC

    def detect(
        self,
        image: CardImage | np.ndarray | None,
        image_size: Size | None = None,
        scan_frame: Rect | None = None,
        viewport_size: Size | None = None,
        strategy: DetectorStrategy | str | None = None,
    ) -> DetectionOutcome:
        """Detect card regions and extract info from the first valid one.

        Args:
            image: Decoded RGB image (CardImage or H×W×3 array).
            image_size: Size used for coordinate conversion; defaults to the
                image's own pixel size.
            scan_frame: Optional scan frame in viewport coordinates.
            viewport_size: Viewport size the scan frame refers to.
            strategy: Overrides the configured detector strategy.

        Returns:
            DetectionOutcome with the filtered regions and card info, if any.
        """
        card_image = _as_card_image(image)
        if card_image is None:
            logger.warning("No usable image for detection")
            return DetectionOutcome()

        size = image_size or card_image.pixel_size
        if scan_frame is not None and viewport_size is not None:
            if scan_frame_pixel_rect(scan_frame, size, viewport_size) is None:
                logger.warning("Scan frame %s lies outside the image", scan_frame)

        detector, used = self.select_detector(strategy)
        try:
            regions = detector.detect(card_image)
        except Exception as exc:
            logger.warning("%s detector failed: %s", used.value, exc)
            regions = []

        regions = [region.with_sizes(size, viewport_size) for region in regions]
        regions = filter_by_scan_frame(regions, scan_frame, viewport_size)
        logger.debug("%s detector kept %d regions", used.value, len(regions))

        outcome = DetectionOutcome(regions=regions, strategy=used.value)
        if not regions:
            return outcome

        outcome.card_info = self._first_card_info(card_image, regions)
        if outcome.card_info is not None:
            logger.info(
                "Card found: player=%s year=%s team=%s face=%s",
                outcome.card_info.player_name,
                outcome.card_info.year,
                outcome.card_info.team,
                outcome.card_info.has_face,
            )
        return outcome

    def detect_async(
        self,
        image: CardImage | np.ndarray | None,
        image_size: Size | None = None,
        scan_frame: Rect | None = None,
        viewport_size: Size | None = None,
        strategy: DetectorStrategy | str | None = None,
    ) -> Future:
        """Run ``detect`` in the background; the Future resolves to a DetectionOutcome."""
        return self._dispatch_executor.submit(
            self.detect, image, image_size, scan_frame, viewport_size, strategy
        )

    def extract_info(self, image: CardImage | np.ndarray | None) -> ExtractedCardInfo | None:
        """Run OCR and face detection on a whole image, without detection."""
        card_image = _as_card_image(image)
        if card_image is None:
            return None
        return self._extract(card_image.pixels)

    def _first_card_info(
        self, image: CardImage, regions: list[DetectedRegion]
    ) -> ExtractedCardInfo | None:
        futures = [
            self._executor.submit(self._process_region, image, region)
            for region in regions
        ]
        _done, not_done = wait(futures, timeout=self.config.scan_timeout)
        if not_done:
            logger.warning(
                "%d of %d region tasks missed the %.1fs deadline",
                len(not_done),
                len(futures),
                self.config.scan_timeout,
            )
            for future in not_done:
                future.cancel()

        for region, future in zip(regions, futures):
            if future in not_done or future.cancelled():
                continue
            exc = future.exception()
            if exc is not None:
                logger.warning("Region %s failed: %s", region.id, exc)
                continue
            info = future.result()
            if info is not None:
                return info
        return None

    def _process_region(
        self, image: CardImage, region: DetectedRegion
    ) -> ExtractedCardInfo | None:
        crop = crop_region(image, region)
        if crop is None:
            logger.debug("Region %s crops outside the image", region.id)
            return None
        if not self.classifier.is_card_like(crop):
            logger.debug("Region %s rejected by classifier", region.id)
            return None
        return self._extract(crop)

    def _extract(self, crop: np.ndarray) -> ExtractedCardInfo | None:
        face_future = self._face_executor.submit(detect_face, crop, self.face_backend)

        lines = self.recognizer.recognize_text(crop)
        parsed = parse_card_text(lines, self.team_names)
        face = face_future.result()

        info = ExtractedCardInfo.merge(parsed, face)
        return None if info.is_empty else info


def build_pipeline(config: ScannerConfig | None = None, load_model: bool = True) -> CardScanPipeline:
    """Wire a pipeline with the default collaborators for ``config``.

    The learned detector starts loading in the background; detection falls
    back to geometric until it is ready.
    """
    config = config or ScannerConfig()
    config.validate()

    learned = LearnedDetector(model_name=config.model_name, model_dir=config.model_dir)
    if load_model and config.strategy is DetectorStrategy.LEARNED:
        learned.load_async()

    face_backend = None
    if config.face_backend:
        try:
            face_backend = get_face_backend_by_name(config.face_backend)
        except (RuntimeError, ValueError) as exc:
            logger.warning("Face detection disabled: %s", exc)

    return CardScanPipeline(
        config=config,
        learned_detector=learned,
        face_backend=face_backend,
    )
