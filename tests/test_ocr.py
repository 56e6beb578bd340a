"""Tests for the text recognizer with an injected reader."""

import numpy as np
import pytest

from extraction.ocr import TextRecognizer

BOX = [[0, 0], [10, 0], [10, 10], [0, 10]]


class FakeReader:
    def __init__(self, results=None, error=None):
        self.results = results or []
        self.error = error
        self.calls = []

    def readtext(self, image, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.results


@pytest.fixture
def crop():
    return np.full((100, 70, 3), 255, dtype=np.uint8)


def test_lines_trimmed_and_blank_lines_dropped(crop):
    reader = FakeReader([
        (BOX, "  Stephen Curry ", 0.91),
        (BOX, "   ", 0.30),
        (BOX, "2021", 0.88),
    ])
    lines = TextRecognizer(reader=reader).recognize_text(crop)
    assert [line.text for line in lines] == ["Stephen Curry", "2021"]
    assert lines[0].confidence == pytest.approx(0.91)


def test_reader_options(crop):
    reader = FakeReader()
    TextRecognizer(reader=reader).recognize_text(crop)
    assert reader.calls == [{"detail": 1, "paragraph": False, "decoder": "beamsearch"}]


def test_engine_error_gives_no_lines(crop):
    recognizer = TextRecognizer(reader=FakeReader(error=RuntimeError("engine crashed")))
    assert recognizer.recognize_text(crop) == []


def test_empty_crop_skips_engine():
    reader = FakeReader([(BOX, "text", 0.9)])
    recognizer = TextRecognizer(reader=reader)
    assert recognizer.recognize_text(np.zeros((0, 0, 3), dtype=np.uint8)) == []
    assert reader.calls == []


@pytest.mark.slow
def test_easyocr_reads_rendered_text():
    import cv2

    image = np.full((120, 520, 3), 255, dtype=np.uint8)
    cv2.putText(image, "STEPHEN CURRY", (10, 80), cv2.FONT_HERSHEY_SIMPLEX, 1.6, (0, 0, 0), 3)
    lines = TextRecognizer().recognize_text(image)
    assert any("CURRY" in line.text.upper() for line in lines)
