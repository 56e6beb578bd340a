"""
Candidate filtering functions.

Filters that narrow detector output down to plausible cards: the card shape
policy applied after every detector, and the optional scan-frame restriction
coming from the preview UI.
"""

from __future__ import annotations

import logging

from config import (
    CARD_MIN_ASPECT_RATIO,
    CARD_MAX_ASPECT_RATIO,
    CARD_MIN_CONFIDENCE,
    SCAN_FRAME_MARGIN,
    SCAN_FRAME_CANDIDATE_OVERLAP,
    SCAN_FRAME_OVERLAP,
    REGION_DEDUP_IOU,
)
from geometry import Rect, Size, normalized_to_pixel_rect, rect_iou, viewport_to_pixel_rect

from .types import DetectedRegion

logger = logging.getLogger(__name__)


def filter_by_aspect_ratio(
    regions: list[DetectedRegion],
    min_ratio: float | None = None,
    max_ratio: float | None = None,
) -> list[DetectedRegion]:
    """Keep regions whose width / height (in image pixels) is within bounds.

    Bounds are inclusive.
    """
    if min_ratio is None:
        min_ratio = CARD_MIN_ASPECT_RATIO
    if max_ratio is None:
        max_ratio = CARD_MAX_ASPECT_RATIO
    return [r for r in regions if min_ratio <= r.aspect_ratio <= max_ratio]


def filter_by_confidence(
    regions: list[DetectedRegion],
    min_confidence: float | None = None,
) -> list[DetectedRegion]:
    """Keep regions with confidence at or above ``min_confidence``."""
    if min_confidence is None:
        min_confidence = CARD_MIN_CONFIDENCE
    return [r for r in regions if r.confidence >= min_confidence]


def region_in_scan_frame(
    region: DetectedRegion,
    scan_frame: Rect,
    viewport_size: Size,
    margin: float | None = None,
    candidate_overlap: float | None = None,
    frame_overlap: float | None = None,
) -> bool:
    """Check whether a region should be considered inside the scan frame.

    A region is accepted when any of these holds:
    1. its center lies inside the scan frame grown by ``margin``
    2. the overlap covers more than ``candidate_overlap`` of the region
    3. the overlap covers more than ``frame_overlap`` of the scan frame

    The thresholds are deliberately loose: a moving camera rarely centers
    the card exactly.
    """
    if margin is None:
        margin = SCAN_FRAME_MARGIN
    if candidate_overlap is None:
        candidate_overlap = SCAN_FRAME_CANDIDATE_OVERLAP
    if frame_overlap is None:
        frame_overlap = SCAN_FRAME_OVERLAP

    rect = region.viewport_rect(viewport_size)

    center_x, center_y = rect.center
    if scan_frame.expanded(margin).contains_point(center_x, center_y):
        return True

    overlap_area = rect.intersection_area(scan_frame)
    rect_ratio = overlap_area / rect.area if rect.area > 0 else 0.0
    frame_ratio = overlap_area / scan_frame.area if scan_frame.area > 0 else 0.0
    return rect_ratio > candidate_overlap or frame_ratio > frame_overlap


def filter_by_scan_frame(
    regions: list[DetectedRegion],
    scan_frame: Rect | None = None,
    viewport_size: Size | None = None,
) -> list[DetectedRegion]:
    """Restrict regions to those overlapping the UI scan frame.

    Without both a scan frame and a viewport size the regions pass through
    unchanged. Order is preserved and the filter is idempotent.
    """
    if scan_frame is None or viewport_size is None:
        return list(regions)

    kept = [r for r in regions if region_in_scan_frame(r, scan_frame, viewport_size)]
    if len(kept) != len(regions):
        logger.debug("Scan frame kept %d of %d regions", len(kept), len(regions))
    return kept


def scan_frame_pixel_rect(scan_frame: Rect, image_size: Size, viewport_size: Size) -> Rect | None:
    """Part of the image under the scan frame, in image pixels.

    Returns None when the frame misses the image entirely, which happens
    only for frames placed outside the viewport.
    """
    rect = viewport_to_pixel_rect(scan_frame, image_size, viewport_size)
    return rect.intersection(Rect(0.0, 0.0, image_size.width, image_size.height))


def deduplicate_regions(
    regions: list[DetectedRegion],
    iou_threshold: float | None = None,
) -> list[DetectedRegion]:
    """Drop regions that overlap an earlier, more confident region.

    Regions are visited in descending confidence; a region is dropped when
    its pixel-space IoU with an already kept region reaches ``iou_threshold``.
    The surviving regions keep their original relative order.
    """
    if iou_threshold is None:
        iou_threshold = REGION_DEDUP_IOU
    if len(regions) <= 1:
        return list(regions)

    kept_ids: set[str] = set()
    kept_rects: list[Rect] = []
    for region in sorted(regions, key=lambda r: r.confidence, reverse=True):
        rect = normalized_to_pixel_rect(region.box, region.image_size)
        if any(rect_iou(rect, other) >= iou_threshold for other in kept_rects):
            continue
        kept_ids.add(region.id)
        kept_rects.append(rect)
    return [r for r in regions if r.id in kept_ids]
