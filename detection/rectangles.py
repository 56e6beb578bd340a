"""
Geometric card detection.

Cards are flat rectangles with a distinct border. This module finds
quadrilateral outlines in the image with OpenCV (edges, contours, polygon
approximation) and turns the card-shaped ones into ``DetectedRegion`` objects.

Filtering happens in two stages. The engine-level bounds below are loose and
orientation-agnostic (short side / long side) so that skewed or rotated cards
still come through. The strict card shape policy from ``filtering`` is then
applied to the normalized boxes, independent of how they were found.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import cv2
import numpy as np

import config
from geometry import NormalizedBox, Rect, Size
from images import CardImage, resize_longest_side, to_grayscale

from .filtering import deduplicate_regions, filter_by_aspect_ratio, filter_by_confidence
from .types import DetectedRegion, DetectionSource

logger = logging.getLogger(__name__)

# Largest contours examined per image
_MAX_CONTOURS = 20


@dataclass(frozen=True)
class QuadCandidate:
    """A quadrilateral found in the working image, before conversion.

    Attributes:
        corners: 4x2 float array ordered top-left, top-right, bottom-right,
            bottom-left (pixel coordinates of the original image)
        confidence: Rectangularity score between 0 and 1
        aspect_ratio: Short side / long side of the minimum-area rectangle
        relative_size: Short side relative to the shorter image side
        max_angle_deviation: Largest deviation of a corner angle from 90°
    """

    corners: np.ndarray
    confidence: float
    aspect_ratio: float
    relative_size: float
    max_angle_deviation: float


def order_corners(pts: np.ndarray) -> np.ndarray:
    """Order 4 corners as: top-left, top-right, bottom-right, bottom-left."""
    rect = np.zeros((4, 2), dtype=np.float32)

    # Sum of coordinates: smallest = top-left, largest = bottom-right
    s = pts.sum(axis=1)
    rect[0] = pts[np.argmin(s)]
    rect[2] = pts[np.argmax(s)]

    # Difference (y - x): smallest = top-right, largest = bottom-left
    d = np.diff(pts, axis=1).flatten()
    rect[1] = pts[np.argmin(d)]
    rect[3] = pts[np.argmax(d)]

    return rect


def corner_angle_deviation(corners: np.ndarray) -> float:
    """Largest deviation (degrees) of any interior corner angle from 90°."""
    worst = 0.0
    for i in range(4):
        prev_pt = corners[i - 1]
        pt = corners[i]
        next_pt = corners[(i + 1) % 4]
        v1 = prev_pt - pt
        v2 = next_pt - pt
        norm = float(np.linalg.norm(v1) * np.linalg.norm(v2))
        if norm == 0:
            return 90.0
        cos_angle = float(np.clip(np.dot(v1, v2) / norm, -1.0, 1.0))
        angle = math.degrees(math.acos(cos_angle))
        worst = max(worst, abs(angle - 90.0))
    return worst


def _approximate_quad(contour: np.ndarray, epsilon: float) -> np.ndarray | None:
    """Approximate a contour with 4 convex corners, retrying on its convex hull."""
    for shape in (contour, cv2.convexHull(contour)):
        peri = cv2.arcLength(shape, True)
        approx = cv2.approxPolyDP(shape, epsilon * peri, True)
        if len(approx) == 4 and cv2.isContourConvex(approx):
            return approx.reshape(4, 2).astype(np.float32)
    return None


@dataclass
class RectangleDetector:
    """Region detector finding card-shaped quadrilaterals with OpenCV."""

    min_aspect_ratio: float | None = None
    max_aspect_ratio: float | None = None
    min_size: float | None = None
    min_confidence: float | None = None
    max_observations: int | None = None
    quadrature_tolerance: float | None = None
    working_size: int | None = None

    source: DetectionSource = "geometric"

    def __post_init__(self) -> None:
        if self.min_aspect_ratio is None:
            self.min_aspect_ratio = config.RECT_MIN_ASPECT_RATIO
        if self.max_aspect_ratio is None:
            self.max_aspect_ratio = config.RECT_MAX_ASPECT_RATIO
        if self.min_size is None:
            self.min_size = config.RECT_MIN_SIZE
        if self.min_confidence is None:
            self.min_confidence = config.RECT_MIN_CONFIDENCE
        if self.max_observations is None:
            self.max_observations = config.RECT_MAX_OBSERVATIONS
        if self.quadrature_tolerance is None:
            self.quadrature_tolerance = config.RECT_QUADRATURE_TOLERANCE
        if self.working_size is None:
            self.working_size = config.RECT_WORKING_SIZE

    def is_ready(self) -> bool:
        return True

    def find_quads(self, image: np.ndarray) -> list[QuadCandidate]:
        """Find quadrilaterals passing the engine-level bounds.

        Args:
            image: RGB or grayscale array.

        Returns:
            Up to ``max_observations`` candidates, largest contours first,
            with corners in original image pixel coordinates.
        """
        gray = to_grayscale(image)
        working, factor = resize_longest_side(gray, self.working_size)
        work_h, work_w = working.shape[:2]
        short_image_side = min(work_w, work_h)

        blurred = cv2.GaussianBlur(working, config.RECT_BLUR_KERNEL, 0)
        edges = cv2.Canny(blurred, config.RECT_CANNY_LOW, config.RECT_CANNY_HIGH)
        kernel = np.ones((3, 3), np.uint8)
        edges = cv2.dilate(edges, kernel, iterations=config.RECT_DILATE_ITERATIONS)

        contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        contours = sorted(contours, key=cv2.contourArea, reverse=True)[:_MAX_CONTOURS]

        quads: list[QuadCandidate] = []
        for contour in contours:
            if len(quads) >= self.max_observations:
                break

            corners = _approximate_quad(contour, config.RECT_APPROX_EPSILON)
            if corners is None:
                continue

            (_, _), (rect_w, rect_h), _ = cv2.minAreaRect(corners)
            short_side, long_side = sorted((rect_w, rect_h))
            if long_side <= 0:
                continue

            aspect_ratio = short_side / long_side
            relative_size = short_side / short_image_side
            if not (self.min_aspect_ratio <= aspect_ratio <= self.max_aspect_ratio):
                continue
            if relative_size < self.min_size:
                continue

            ordered = order_corners(corners)
            deviation = corner_angle_deviation(ordered)
            if deviation > self.quadrature_tolerance:
                continue

            rectangularity = cv2.contourArea(ordered) / (rect_w * rect_h)
            confidence = float(np.clip(rectangularity * (1.0 - deviation / 90.0), 0.0, 1.0))
            if confidence < self.min_confidence:
                continue

            quads.append(QuadCandidate(
                corners=ordered / factor,
                confidence=confidence,
                aspect_ratio=aspect_ratio,
                relative_size=relative_size,
                max_angle_deviation=deviation,
            ))

        return quads

    def quad_to_region(self, quad: QuadCandidate, image_size: Size) -> DetectedRegion:
        """Convert a pixel-space quadrilateral into a normalized region."""
        xs = quad.corners[:, 0]
        ys = quad.corners[:, 1]
        x_min = float(np.clip(xs.min(), 0, image_size.width))
        x_max = float(np.clip(xs.max(), 0, image_size.width))
        y_min = float(np.clip(ys.min(), 0, image_size.height))
        y_max = float(np.clip(ys.max(), 0, image_size.height))
        box = NormalizedBox.from_pixel_rect(
            Rect(x_min, y_min, x_max - x_min, y_max - y_min),
            image_size,
        )

        def normalize(point: np.ndarray) -> tuple[float, float]:
            return (
                float(point[0]) / image_size.width,
                1.0 - float(point[1]) / image_size.height,
            )

        top_left, top_right, bottom_right, bottom_left = quad.corners
        return DetectedRegion(
            box=box,
            confidence=quad.confidence,
            top_left=normalize(top_left),
            top_right=normalize(top_right),
            bottom_left=normalize(bottom_left),
            bottom_right=normalize(bottom_right),
            image_size=image_size,
            source=self.source,
        )

    def detect(self, image: CardImage) -> list[DetectedRegion]:
        """Detect card-shaped regions in an image.

        Returns an empty list on any OpenCV failure.
        """
        try:
            quads = self.find_quads(image.pixels)
        except cv2.error as exc:
            logger.warning("Rectangle detection failed: %s", exc)
            return []

        image_size = image.pixel_size
        regions = [self.quad_to_region(quad, image_size) for quad in quads]
        regions = deduplicate_regions(regions)
        regions = filter_by_aspect_ratio(regions)
        regions = filter_by_confidence(regions)

        logger.debug(
            "Rectangle detector: %d quads, %d card-shaped regions",
            len(quads), len(regions),
        )
        return regions
