"""Face presence detection for card crops."""

from .backend import (
    FaceBackend,
    OpenCVDnnSsdFaceBackend,
    OpenCVHaarFaceBackend,
    detect_face,
    get_face_backend_by_name,
)

__all__ = [
    "FaceBackend",
    "OpenCVDnnSsdFaceBackend",
    "OpenCVHaarFaceBackend",
    "detect_face",
    "get_face_backend_by_name",
]
