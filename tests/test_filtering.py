"""Tests for candidate filtering (shape policy, scan frame, deduplication)."""

import pytest

from detection import DetectedRegion
from detection.filtering import (
    deduplicate_regions,
    filter_by_aspect_ratio,
    filter_by_confidence,
    filter_by_scan_frame,
    region_in_scan_frame,
    scan_frame_pixel_rect,
)
from geometry import NormalizedBox, Rect, Size

# Image and viewport of the same size map 1:1, so pixel rects are viewport rects
VIEWPORT = Size(375, 812)


def make_region(pixel_rect: Rect, confidence: float = 0.9, image_size: Size = VIEWPORT) -> DetectedRegion:
    box = NormalizedBox.from_pixel_rect(pixel_rect, image_size)
    return DetectedRegion.from_box(box, confidence=confidence, image_size=image_size, source="geometric")


def make_box_region(width: float, height: float, confidence: float = 0.9) -> DetectedRegion:
    return DetectedRegion.from_box(
        NormalizedBox(0.0, 0.0, width, height),
        confidence=confidence,
        image_size=Size(1000, 1000),
        source="geometric",
    )


class TestShapePolicy:
    def test_aspect_ratio_bounds_are_inclusive(self):
        regions = [
            make_box_region(0.44, 1.0),
            make_box_region(0.45, 1.0),
            make_box_region(0.85, 1.0),
            make_box_region(0.86, 1.0),
        ]
        kept = filter_by_aspect_ratio(regions, 0.45, 0.85)
        assert [r.box.width for r in kept] == [0.45, 0.85]

    def test_aspect_ratio_uses_image_pixels(self):
        """A normalized square on a portrait image is a portrait rectangle in pixels."""
        region = DetectedRegion.from_box(
            NormalizedBox(0, 0, 0.5, 0.5), confidence=0.9, image_size=Size(600, 1000)
        )
        assert region.aspect_ratio == pytest.approx(0.6)
        assert filter_by_aspect_ratio([region]) == [region]

    def test_confidence_threshold_is_inclusive(self):
        regions = [make_box_region(0.6, 1.0, c) for c in (0.49, 0.5, 0.95)]
        kept = filter_by_confidence(regions, 0.5)
        assert [r.confidence for r in kept] == [0.5, 0.95]


class TestScanFrame:
    def test_center_inside_frame_accepted(self):
        region = make_region(Rect(100, 300, 100, 200))
        assert region_in_scan_frame(region, Rect(100, 250, 175, 300), VIEWPORT)

    def test_center_within_margin_accepted(self):
        frame = Rect(0, 0, 100, 100)
        near = make_region(Rect(100, 100, 30, 30))  # center (115, 115), touches only
        far = make_region(Rect(130, 130, 30, 30))
        assert region_in_scan_frame(near, frame, VIEWPORT)
        assert not region_in_scan_frame(far, frame, VIEWPORT)

    def test_region_overlap_accepted(self):
        """15% of the region overlaps the frame; center is outside the margin."""
        region = make_region(Rect(110, 0, 100, 100))
        assert region_in_scan_frame(region, Rect(0, 0, 125, 812), VIEWPORT)

    def test_frame_overlap_accepted(self):
        """A large region covering a small frame is kept."""
        region = make_region(Rect(0, 0, 375, 812))
        assert region_in_scan_frame(region, Rect(10, 10, 50, 50), VIEWPORT)

    def test_passthrough_without_frame_or_viewport(self):
        regions = [make_region(Rect(300, 700, 50, 80))]
        frame = Rect(0, 0, 10, 10)
        assert filter_by_scan_frame(regions) == regions
        assert filter_by_scan_frame(regions, scan_frame=frame) == regions
        assert filter_by_scan_frame(regions, viewport_size=VIEWPORT) == regions

    def test_filter_is_idempotent_and_keeps_order(self):
        frame = Rect(50, 200, 275, 400)
        regions = [
            make_region(Rect(60, 220, 120, 200)),
            make_region(Rect(0, 0, 40, 60)),
            make_region(Rect(200, 300, 100, 150)),
            make_region(Rect(330, 760, 40, 50)),
        ]
        once = filter_by_scan_frame(regions, frame, VIEWPORT)
        twice = filter_by_scan_frame(once, frame, VIEWPORT)
        assert once == [regions[0], regions[2]]
        assert twice == once

    def test_default_viewport(self):
        region = make_region(Rect(0, 0, 10, 10))
        assert region.display_viewport_size == Size(375, 812)
        custom = region.with_sizes(viewport_size=Size(390, 844))
        assert custom.display_viewport_size == Size(390, 844)


class TestDeduplication:
    def test_keeps_most_confident_of_overlapping(self):
        low = make_region(Rect(100, 100, 100, 150), confidence=0.6)
        high = make_region(Rect(102, 101, 100, 150), confidence=0.9)
        other = make_region(Rect(250, 500, 80, 120), confidence=0.7)
        kept = deduplicate_regions([low, other, high], iou_threshold=0.7)
        assert kept == [other, high]

    def test_single_region_unchanged(self):
        region = make_region(Rect(0, 0, 50, 80))
        assert deduplicate_regions([region]) == [region]


class TestRegionViewport:
    """Display conversion uses the 375x812 viewport when none was attached."""

    def full_image_region(self) -> DetectedRegion:
        return DetectedRegion.from_box(
            NormalizedBox(0.0, 0.0, 1.0, 1.0),
            confidence=0.9,
            image_size=Size(1000, 1000),
            source="geometric",
        )

    def test_viewport_rect_falls_back_to_default(self):
        rect = self.full_image_region().viewport_rect()
        assert rect.x == pytest.approx(-218.5)
        assert rect.y == pytest.approx(0.0)
        assert rect.width == pytest.approx(812.0)
        assert rect.height == pytest.approx(812.0)

    def test_viewport_rect_uses_attached_viewport(self):
        region = self.full_image_region().with_sizes(viewport_size=Size(1000, 1000))
        assert region.viewport_rect() == Rect(0.0, 0.0, 1000.0, 1000.0)

    def test_to_dict_reports_viewport_rect_only_when_known(self):
        region = self.full_image_region()
        assert "viewport_rect" not in region.to_dict()

        data = region.with_sizes(viewport_size=VIEWPORT).to_dict()
        assert data["viewport_size"] == [375, 812]
        assert data["viewport_rect"] == pytest.approx([-218.5, 0.0, 812.0, 812.0])


class TestScanFramePixelRect:
    def test_frame_inside_viewport(self):
        rect = scan_frame_pixel_rect(Rect(0, 0, 375, 812), Size(1000, 1000), VIEWPORT)
        assert rect.x == pytest.approx(218.5 / 0.812)
        assert rect.width == pytest.approx(375 / 0.812)
        assert rect.y == pytest.approx(0.0)
        assert rect.height == pytest.approx(1000.0)

    def test_frame_outside_viewport(self):
        assert scan_frame_pixel_rect(Rect(-300, 0, 50, 50), Size(1000, 1000), VIEWPORT) is None
