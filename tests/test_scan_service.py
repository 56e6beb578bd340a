"""Tests for library scanning, cancellation and camera frame throttling."""

from __future__ import annotations

import hashlib
import threading
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from cards import CardStore
from detection import DetectionOutcome, ExtractedCardInfo
from scan.service import (
    CancellationToken,
    FrameThrottle,
    ProcessedIdentifiers,
    camera_identifier,
    compute_file_identifier,
    scan_camera_frame,
    scan_library,
)

CURRY = ExtractedCardInfo(player_name="Stephen Curry", year=2021, team="Golden State Warriors", all_text="...")
BIRD = ExtractedCardInfo(player_name="Larry Bird", year=1986, team=None, all_text="...")


class FakeClassifier:
    def __init__(self, card_like=False):
        self.card_like = card_like

    def is_card_like(self, crop):
        return self.card_like


class FakePipeline:
    """Maps an image's gray value to card info."""

    def __init__(self, info_by_value, whole_image_info=None, card_like=False, on_detect=None):
        self.info_by_value = info_by_value
        self.whole_image_info = whole_image_info or {}
        self.classifier = FakeClassifier(card_like)
        self.on_detect = on_detect
        self.detected = []

    def detect(self, image, image_size=None, scan_frame=None, viewport_size=None, strategy=None):
        value = int(image.pixels[0, 0, 0])
        self.detected.append(value)
        if self.on_detect is not None:
            self.on_detect(value)
        return DetectionOutcome(regions=[], card_info=self.info_by_value.get(value))

    def extract_info(self, image):
        return self.whole_image_info.get(int(image.pixels[0, 0, 0]))


def write_photo(path: Path, value: int) -> Path:
    Image.fromarray(np.full((60, 40, 3), value, dtype=np.uint8)).save(path)
    return path


@pytest.fixture
def store(tmp_path):
    with CardStore.open(tmp_path / "cards.db") as card_store:
        yield card_store


@pytest.fixture
def library(tmp_path):
    folder = tmp_path / "library"
    folder.mkdir()
    return [
        write_photo(folder / "a.png", 10),
        write_photo(folder / "b.png", 20),
        write_photo(folder / "c.png", 30),
    ]


class TestCancellationToken:
    def test_initial_state(self):
        token = CancellationToken()
        assert not token.cancelled
        assert not token.paused
        assert token.checkpoint()

    def test_cancel(self):
        token = CancellationToken()
        token.cancel()
        assert token.cancelled
        assert not token.checkpoint()

    def test_pause_blocks_until_resume(self):
        token = CancellationToken()
        token.pause()
        assert token.paused
        assert not token.checkpoint(timeout=0.05)
        token.resume()
        assert token.checkpoint(timeout=0.05)

    def test_cancel_wakes_paused_scan(self):
        token = CancellationToken()
        token.pause()
        results = []
        waiter = threading.Thread(target=lambda: results.append(token.checkpoint(timeout=5)))
        waiter.start()
        token.cancel()
        waiter.join(5)
        assert results == [False]


class TestIdentifiers:
    def test_content_identifier(self, tmp_path):
        path = tmp_path / "card.bin"
        path.write_bytes(b"card bytes")
        assert compute_file_identifier(path) == hashlib.sha256(b"card bytes").hexdigest()

    def test_camera_identifier(self):
        first = camera_identifier(1700000000.5)
        second = camera_identifier(1700000000.5)
        assert first.startswith("camera_")
        assert first.endswith("_1700000000.5")
        assert first != second

    def test_processed_identifiers(self):
        processed = ProcessedIdentifiers(["a"])
        assert "a" in processed
        assert "b" not in processed
        processed.add("b")
        assert "b" in processed
        assert len(processed) == 2


class TestScanLibrary:
    def test_records_cards(self, library, store):
        pipeline = FakePipeline({10: CURRY, 30: BIRD})
        stats = scan_library(library, pipeline, store, progress=False)

        assert stats["images_found"] == 3
        assert stats["images_scanned"] == 3
        assert stats["cards_found"] == 2
        assert stats["cards_recorded"] == 2
        assert not stats["cancelled"]
        names = sorted(card.player_name for card in store.list_cards())
        assert names == ["Larry Bird", "Stephen Curry"]
        bird = next(card for card in store.list_cards() if card.player_name == "Larry Bird")
        assert bird.team == "Unknown Team"

    def test_second_scan_skips_recorded_images(self, library, store):
        pipeline = FakePipeline({10: CURRY, 30: BIRD})
        scan_library(library, pipeline, store, progress=False)

        pipeline.detected.clear()
        stats = scan_library(library, pipeline, store, progress=False)
        assert stats["images_skipped"] == 2
        assert stats["images_scanned"] == 1
        assert pipeline.detected == [20]
        assert len(store.list_cards()) == 2

    def test_duplicate_content_scanned_once(self, library, store, tmp_path):
        copy = tmp_path / "library" / "a_copy.png"
        copy.write_bytes(library[0].read_bytes())
        pipeline = FakePipeline({10: CURRY})
        stats = scan_library([library[0], copy], pipeline, store, progress=False)
        assert stats["images_skipped"] == 1
        assert stats["cards_recorded"] == 1

    def test_limit(self, library, store):
        pipeline = FakePipeline({})
        stats = scan_library(library, pipeline, store, limit=2, progress=False)
        assert stats["images_found"] == 2
        assert pipeline.detected == [10, 20]

    @pytest.mark.parametrize("limit", [0, -1])
    def test_limit_must_be_positive(self, library, store, limit):
        pipeline = FakePipeline({})
        with pytest.raises(ValueError, match="at least 1"):
            scan_library(library, pipeline, store, limit=limit, progress=False)
        assert pipeline.detected == []

    def test_cancelled_before_start(self, library, store):
        token = CancellationToken()
        token.cancel()
        pipeline = FakePipeline({10: CURRY})
        stats = scan_library(library, pipeline, store, token=token, progress=False)
        assert stats["cancelled"]
        assert stats["images_scanned"] == 0
        assert pipeline.detected == []

    def test_cancel_mid_scan(self, library, store):
        token = CancellationToken()
        pipeline = FakePipeline({10: CURRY}, on_detect=lambda value: token.cancel())
        stats = scan_library(library, pipeline, store, token=token, progress=False)
        assert stats["cancelled"]
        assert stats["images_scanned"] == 1
        assert stats["cards_recorded"] == 1

    def test_undecodable_file_counted_as_failed(self, library, store, tmp_path):
        broken = tmp_path / "library" / "broken.jpg"
        broken.write_bytes(b"not an image")
        stats = scan_library([broken, library[0]], FakePipeline({}), store, progress=False)
        assert stats["images_failed"] == 1
        assert stats["images_scanned"] == 1

    def test_whole_image_fallback(self, library, store):
        pipeline = FakePipeline({}, whole_image_info={20: CURRY}, card_like=True)
        stats = scan_library(library, pipeline, store, progress=False)
        assert stats["cards_recorded"] == 1
        assert store.list_cards()[0].player_name == "Stephen Curry"

    def test_empty_library(self, store):
        stats = scan_library([], FakePipeline({}), store, progress=False)
        assert stats["images_found"] == 0
        assert stats["images_scanned"] == 0


class FakeClock:
    def __init__(self, *times):
        self.times = list(times)

    def __call__(self):
        return self.times.pop(0)


class TestFrameThrottle:
    def test_one_frame_per_interval(self):
        throttle = FrameThrottle(interval=1.0, clock=FakeClock(0.0, 0.5, 1.0, 1.2, 2.1))
        assert [throttle.ready() for _ in range(5)] == [True, False, True, False, True]

    def test_reset(self):
        throttle = FrameThrottle(interval=1.0, clock=FakeClock(0.0, 0.1))
        assert throttle.ready()
        throttle.reset()
        assert throttle.ready()

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            FrameThrottle(interval=-1)


class TestCameraFrame:
    def _frame(self, value):
        from images import CardImage

        return CardImage.from_array(np.full((80, 60, 3), value, dtype=np.uint8))

    def test_records_card_with_camera_identifier(self, store):
        result = scan_camera_frame(self._frame(10), FakePipeline({10: CURRY}), store=store)
        assert result.card is not None
        assert result.identifier.startswith("camera_")
        assert store.contains(result.identifier)

    def test_throttled_frame_dropped(self, store):
        throttle = FrameThrottle(interval=1.0, clock=FakeClock(0.0, 0.2))
        pipeline = FakePipeline({10: CURRY})
        assert scan_camera_frame(self._frame(10), pipeline, store=store, throttle=throttle) is not None
        assert scan_camera_frame(self._frame(10), pipeline, store=store, throttle=throttle) is None
        assert pipeline.detected == [10]

    def test_without_store_nothing_recorded(self):
        result = scan_camera_frame(self._frame(10), FakePipeline({10: CURRY}))
        assert result.outcome.card_info == CURRY
        assert result.card is None
        assert result.identifier is None

    def test_no_card(self, store):
        result = scan_camera_frame(self._frame(20), FakePipeline({10: CURRY}), store=store)
        assert result.card is None
        assert store.list_cards() == []
