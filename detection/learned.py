"""
Learned card detection with a YOLO model.

The model is looked up on the filesystem (``<model_dir>/<model_name>`` with
one of the configured extensions) and loaded on a background thread. Until the
load succeeds the detector reports itself as not ready and callers fall back
to the geometric detector; a missing or broken model never blocks scanning.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Sequence

import numpy as np

import config
from geometry import NormalizedBox, Rect
from images import CardImage

from .types import DetectedRegion, DetectionSource

logger = logging.getLogger(__name__)


def find_model_file(
    model_dir: str | Path,
    model_name: str,
    extensions: Sequence[str] | None = None,
) -> Path | None:
    """Return the first existing model file, trying extensions in order."""
    if extensions is None:
        extensions = config.MODEL_EXTENSIONS
    base = Path(model_dir)
    for ext in extensions:
        candidate = base / f"{model_name}{ext}"
        if candidate.exists():
            return candidate
    return None


def _to_numpy(values: Any) -> np.ndarray:
    if hasattr(values, "cpu"):
        values = values.cpu()
    if hasattr(values, "numpy"):
        return values.numpy()
    return np.asarray(values)


class LearnedDetector:
    """Region detector backed by an Ultralytics YOLO model."""

    source: DetectionSource = "learned"

    def __init__(
        self,
        model_name: str | None = None,
        model_dir: str | Path | None = None,
        confidence_threshold: float | None = None,
        model_loader=None,
    ) -> None:
        self.model_name = model_name or config.MODEL_NAME
        self.model_dir = Path(model_dir) if model_dir is not None else config.MODEL_DIR
        self.confidence_threshold = (
            confidence_threshold
            if confidence_threshold is not None
            else config.LEARNED_CONFIDENCE_THRESHOLD
        )
        self._model_loader = model_loader or _load_yolo
        self._model = None
        self._model_path: Path | None = None
        self._lock = threading.Lock()
        self._loaded = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def model_path(self) -> Path | None:
        return self._model_path

    def is_ready(self) -> bool:
        return self._model is not None

    def load(self) -> bool:
        """Load the model synchronously. Returns True on success."""
        try:
            model_path = find_model_file(self.model_dir, self.model_name)
            if model_path is None:
                logger.warning(
                    "Card detection model %r not found in %s (tried %s)",
                    self.model_name,
                    self.model_dir,
                    ", ".join(config.MODEL_EXTENSIONS),
                )
                return False
            try:
                model = self._model_loader(model_path)
            except Exception as exc:
                logger.warning("Failed to load card detection model %s: %s", model_path, exc)
                return False

            with self._lock:
                self._model = model
                self._model_path = model_path
            logger.info("Card detection model loaded: %s", model_path.name)
            return True
        finally:
            self._loaded.set()

    def load_async(self) -> threading.Thread:
        """Start loading the model on a daemon thread (once)."""
        with self._lock:
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self.load,
                    name="card-model-loader",
                    daemon=True,
                )
                self._thread.start()
            return self._thread

    def wait_until_loaded(self, timeout: float | None = None) -> bool:
        """Block until a load attempt finished; returns readiness."""
        self._loaded.wait(timeout)
        return self.is_ready()

    def parse_results(self, results: Any, image: CardImage) -> list[DetectedRegion]:
        """Convert Ultralytics results into regions sorted by confidence."""
        if not results:
            return []

        r0 = results[0]
        names = getattr(r0, "names", None) or {}
        boxes = getattr(r0, "boxes", None)
        if boxes is None:
            return []

        xyxy = _to_numpy(boxes.xyxy)
        conf = _to_numpy(boxes.conf)
        cls = _to_numpy(boxes.cls) if getattr(boxes, "cls", None) is not None else [None] * len(conf)

        image_size = image.pixel_size
        regions: list[DetectedRegion] = []
        for (x1, y1, x2, y2), c, k in zip(xyxy, conf, cls):
            confidence = float(c)
            if confidence <= self.confidence_threshold:
                continue
            x1 = float(np.clip(x1, 0, image_size.width))
            x2 = float(np.clip(x2, 0, image_size.width))
            y1 = float(np.clip(y1, 0, image_size.height))
            y2 = float(np.clip(y2, 0, image_size.height))
            if x2 <= x1 or y2 <= y1:
                continue

            label = None
            if k is not None:
                class_id = int(k)
                label = names.get(class_id) or f"card_{class_id}"

            box = NormalizedBox.from_pixel_rect(Rect(x1, y1, x2 - x1, y2 - y1), image_size)
            regions.append(DetectedRegion.from_box(
                box,
                confidence=confidence,
                image_size=image_size,
                label=label,
                source=self.source,
            ))

        regions.sort(key=lambda r: r.confidence, reverse=True)
        return regions

    def detect(self, image: CardImage) -> list[DetectedRegion]:
        """Run inference; index 0 of the result is the best guess."""
        model = self._model
        if model is None:
            return []
        try:
            results = model.predict(
                source=np.ascontiguousarray(image.pixels[:, :, ::-1]),
                conf=self.confidence_threshold,
                verbose=False,
            )
        except Exception as exc:
            logger.warning("Card model inference failed: %s", exc)
            return []
        return self.parse_results(results, image)


def _load_yolo(model_path: Path):
    from ultralytics import YOLO

    return YOLO(str(model_path))
