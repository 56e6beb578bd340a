"""Tests for face presence detection."""

from unittest.mock import patch

import cv2
import numpy as np
import pytest

from faces import OpenCVHaarFaceBackend, detect_face, get_face_backend_by_name
from geometry import Rect


class StubBackend:
    def __init__(self, faces=None, error=None):
        self.faces = faces or []
        self.error = error

    def detect_faces(self, image):
        if self.error is not None:
            raise self.error
        return self.faces


requires_haar = pytest.mark.skipif(
    not hasattr(cv2, "CascadeClassifier"), reason="OpenCV build without Haar cascades"
)


@pytest.fixture
def crop():
    # 100 wide, 200 tall
    return np.zeros((200, 100, 3), dtype=np.uint8)


def test_first_face_normalized_bottom_left(crop):
    backend = StubBackend(faces=[Rect(10, 20, 30, 40), Rect(50, 50, 10, 10)])
    presence = detect_face(crop, backend)
    assert presence.present
    assert presence.bounds.x == pytest.approx(0.1)
    assert presence.bounds.width == pytest.approx(0.3)
    assert presence.bounds.height == pytest.approx(0.2)
    assert presence.bounds.y == pytest.approx(0.7)


def test_no_face(crop):
    presence = detect_face(crop, StubBackend())
    assert not presence.present
    assert presence.bounds is None


def test_backend_error_means_no_face(crop):
    presence = detect_face(crop, StubBackend(error=RuntimeError("boom")))
    assert not presence.present


def test_missing_backend_or_image(crop):
    assert not detect_face(crop, None).present
    assert not detect_face(np.zeros((0, 0, 3), dtype=np.uint8), StubBackend(faces=[Rect(0, 0, 1, 1)])).present


@requires_haar
def test_haar_backend_on_blank_crop(crop):
    backend = OpenCVHaarFaceBackend()
    assert backend.detect_faces(crop) == []
    assert not detect_face(crop, backend).present


@requires_haar
def test_haar_backend_rejects_grayscale():
    backend = OpenCVHaarFaceBackend()
    with pytest.raises(ValueError):
        backend.detect_faces(np.zeros((50, 50), dtype=np.uint8))


def test_unknown_backend_name():
    with pytest.raises(ValueError, match="Unknown face backend"):
        get_face_backend_by_name("retina")


def test_dnn_backend_requires_model_files():
    with patch("pathlib.Path.exists", return_value=False):
        with pytest.raises(RuntimeError, match="prototxt"):
            get_face_backend_by_name("opencv_dnn_ssd")
