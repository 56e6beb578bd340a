"""
Face backends for card crops.

A card usually carries one portrait. The scanner only needs to know whether
a face is there and where the most prominent one sits, so backends return
plain pixel rectangles, largest first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import cv2
import numpy as np

import config
from detection.types import FacePresence
from geometry import NormalizedBox, Rect, Size

logger = logging.getLogger(__name__)

PACKAGE_ROOT = Path(__file__).resolve().parent.parent


class FaceBackend(Protocol):
    def detect_faces(self, image: np.ndarray) -> list[Rect]:
        """Return face rectangles (pixels, top-left origin) in an RGB image."""


def _largest_first(rects: list[Rect]) -> list[Rect]:
    return sorted(rects, key=lambda rect: rect.area, reverse=True)


def _resolve(path: str) -> Path:
    candidate = Path(path)
    return candidate if candidate.is_absolute() else PACKAGE_ROOT / candidate


@dataclass
class OpenCVHaarFaceBackend:
    """Frontal face Haar cascade bundled with OpenCV."""

    cascade_path: str = f"{cv2.data.haarcascades}haarcascade_frontalface_default.xml"
    min_neighbors: int | None = None
    scale_factor: float | None = None
    min_size: tuple[int, int] | None = None

    def __post_init__(self) -> None:
        self.min_neighbors = self.min_neighbors or config.FACE_DETECTION_MIN_NEIGHBORS
        self.scale_factor = self.scale_factor or config.FACE_DETECTION_SCALE_FACTOR
        self.min_size = self.min_size or config.FACE_DETECTION_MIN_SIZE
        self._cascade = cv2.CascadeClassifier(self.cascade_path)
        if self._cascade.empty():
            raise RuntimeError(f"Failed to load Haar cascade: {self.cascade_path}")

    def detect_faces(self, image: np.ndarray) -> list[Rect]:
        if image.ndim != 3:
            raise ValueError("Expected RGB image for face detection")
        gray = cv2.equalizeHist(cv2.cvtColor(image, cv2.COLOR_RGB2GRAY))
        found = self._cascade.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=self.min_size,
        )
        return _largest_first([Rect(float(x), float(y), float(w), float(h)) for (x, y, w, h) in found])


@dataclass
class OpenCVDnnSsdFaceBackend:
    """ResNet SSD face detector run through cv2.dnn.

    Model files are not shipped; relative paths resolve against the project
    root.
    """

    proto_path: str = config.FACE_DNN_PROTO_PATH
    model_path: str = config.FACE_DNN_MODEL_PATH
    confidence_min: float | None = None

    def __post_init__(self) -> None:
        self.confidence_min = self.confidence_min or config.FACE_DNN_CONFIDENCE_MIN
        proto = _resolve(self.proto_path)
        model = _resolve(self.model_path)
        if not proto.exists():
            raise RuntimeError(f"Missing DNN prototxt file: {proto}")
        if not model.exists():
            raise RuntimeError(f"Missing DNN model file: {model}")
        self._net = cv2.dnn.readNetFromCaffe(str(proto), str(model))

    def detect_faces(self, image: np.ndarray) -> list[Rect]:
        if image.ndim != 3:
            raise ValueError("Expected RGB image for face detection")
        height, width = image.shape[:2]
        blob = cv2.dnn.blobFromImage(
            image,
            scalefactor=config.FACE_DNN_SCALE,
            size=config.FACE_DNN_INPUT_SIZE,
            mean=config.FACE_DNN_MEAN,
            swapRB=config.FACE_DNN_SWAP_RB,
            crop=False,
        )
        self._net.setInput(blob)
        detections = self._net.forward()

        rects = []
        for idx in range(detections.shape[2]):
            if float(detections[0, 0, idx, 2]) < self.confidence_min:
                continue
            x1, y1, x2, y2 = (detections[0, 0, idx, 3:7] * [width, height, width, height]).astype(int)
            x1, y1 = max(0, x1), max(0, y1)
            x2, y2 = min(width, x2), min(height, y2)
            if x2 > x1 and y2 > y1:
                rects.append(Rect(float(x1), float(y1), float(x2 - x1), float(y2 - y1)))
        return _largest_first(rects)


_BACKENDS: dict[str, type] = {
    "opencv_haar": OpenCVHaarFaceBackend,
    "opencv_dnn_ssd": OpenCVDnnSsdFaceBackend,
}


def get_face_backend_by_name(backend_name: str) -> FaceBackend:
    """Instantiate a face backend by name.

    Raises:
        ValueError: unknown name.
        RuntimeError: the backend's model could not be loaded.
    """
    backend_cls = _BACKENDS.get(backend_name)
    if backend_cls is None:
        raise ValueError(f"Unknown face backend: {backend_name}")
    return backend_cls()


def detect_face(image: np.ndarray, backend: FaceBackend | None) -> FacePresence:
    """Report whether a face appears in the image and where the first one is.

    The bounds are normalized to the image with a bottom-left origin, like
    detector boxes. Backend failures are reported as "no face".
    """
    if backend is None or image is None or image.size == 0:
        return FacePresence.absent()

    try:
        faces = backend.detect_faces(image)
    except Exception as exc:
        logger.warning("Face detection failed: %s", exc)
        return FacePresence.absent()

    if not faces:
        return FacePresence.absent()

    height, width = image.shape[:2]
    bounds = NormalizedBox.from_pixel_rect(faces[0], Size(float(width), float(height)))
    return FacePresence(present=True, bounds=bounds)
