"""Coordinate systems and conversions shared by detectors, filters and cropping.

Three coordinate spaces are involved:

- normalized image space: fractions of the image, origin bottom-left
  (what detectors emit),
- image pixel space: pixels, origin top-left,
- viewport space: points of the preview surface, origin top-left. The preview
  renders the image aspect-fill (scaled to cover, excess cropped on one axis).
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Size:
    """A width/height pair in pixels or viewport points."""

    width: float
    height: float

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height > 0 else 0.0

    @property
    def is_positive(self) -> bool:
        return self.width > 0 and self.height > 0

    @classmethod
    def from_tuple(cls, value: tuple[float, float]) -> Size:
        return cls(float(value[0]), float(value[1]))


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle (x, y, width, height) with a top-left origin."""

    x: float
    y: float
    width: float
    height: float

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def min_y(self) -> float:
        return self.y

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def expanded(self, margin: float) -> Rect:
        """Grow the rectangle by ``margin`` on every side."""
        return Rect(
            self.x - margin,
            self.y - margin,
            self.width + 2 * margin,
            self.height + 2 * margin,
        )

    def contains_point(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def intersection(self, other: Rect) -> Rect | None:
        """Return the overlapping rectangle, or None when they do not overlap."""
        x1 = max(self.min_x, other.min_x)
        y1 = max(self.min_y, other.min_y)
        x2 = min(self.max_x, other.max_x)
        y2 = min(self.max_y, other.max_y)
        if x2 <= x1 or y2 <= y1:
            return None
        return Rect(x1, y1, x2 - x1, y2 - y1)

    def intersection_area(self, other: Rect) -> float:
        overlap = self.intersection(other)
        return overlap.area if overlap is not None else 0.0

    def integral(self) -> tuple[int, int, int, int]:
        """Smallest integer rectangle containing this one, as (x, y, w, h)."""
        # Rounding first keeps float noise from adding a pixel
        x1 = int(math.floor(round(self.min_x, 6)))
        y1 = int(math.floor(round(self.min_y, 6)))
        x2 = int(math.ceil(round(self.max_x, 6)))
        y2 = int(math.ceil(round(self.max_y, 6)))
        return x1, y1, x2 - x1, y2 - y1

    @classmethod
    def from_tuple(cls, value: tuple[float, float, float, float]) -> Rect:
        return cls(*(float(v) for v in value))


@dataclass(frozen=True)
class NormalizedBox:
    """Box in normalized image coordinates (0..1), origin at the bottom-left."""

    x: float
    y: float
    width: float
    height: float

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def min_y(self) -> float:
        return self.y

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def aspect_ratio(self) -> float:
        """Width / height in normalized units."""
        return self.width / self.height if self.height > 0 else 0.0

    def pixel_aspect_ratio(self, image_size: Size) -> float:
        """Width / height measured in image pixels."""
        pixel_h = self.height * image_size.height
        if pixel_h <= 0:
            return 0.0
        return (self.width * image_size.width) / pixel_h

    @classmethod
    def from_pixel_rect(cls, rect: Rect, image_size: Size) -> NormalizedBox:
        """Build a normalized box from a top-left origin pixel rectangle."""
        _require_positive(image_size, "image_size")
        width = rect.width / image_size.width
        height = rect.height / image_size.height
        x = rect.x / image_size.width
        y = 1.0 - rect.y / image_size.height - height
        return cls(x, y, width, height)


def _require_positive(size: Size, name: str) -> None:
    if not size.is_positive:
        raise ValueError(f"{name} must be positive, got {size.width}x{size.height}")


def normalized_to_pixel_rect(box: NormalizedBox, image_size: Size) -> Rect:
    """Convert a bottom-left normalized box to a top-left pixel rectangle."""
    _require_positive(image_size, "image_size")
    pixel_x = box.x * image_size.width
    pixel_w = box.width * image_size.width
    pixel_h = box.height * image_size.height
    pixel_y = image_size.height - (box.y * image_size.height) - pixel_h
    return Rect(pixel_x, pixel_y, pixel_w, pixel_h)


def aspect_fill_transform(image_size: Size, viewport_size: Size) -> tuple[float, float, float]:
    """Return (scale, offset_x, offset_y) of an aspect-fill render.

    A relatively wider image is scaled to the viewport height and centered
    horizontally; otherwise it is scaled to the viewport width and centered
    vertically. The scale is uniform on both axes.
    """
    _require_positive(image_size, "image_size")
    _require_positive(viewport_size, "viewport_size")

    offset_x = 0.0
    offset_y = 0.0
    if image_size.aspect_ratio > viewport_size.aspect_ratio:
        scale = viewport_size.height / image_size.height
        offset_x = (viewport_size.width - image_size.width * scale) / 2
    else:
        scale = viewport_size.width / image_size.width
        offset_y = (viewport_size.height - image_size.height * scale) / 2
    return scale, offset_x, offset_y


def to_viewport_rect(box: NormalizedBox, image_size: Size, viewport_size: Size) -> Rect:
    """Map a normalized detector box onto the aspect-fill preview."""
    pixel = normalized_to_pixel_rect(box, image_size)
    scale, offset_x, offset_y = aspect_fill_transform(image_size, viewport_size)
    return Rect(
        pixel.x * scale + offset_x,
        pixel.y * scale + offset_y,
        pixel.width * scale,
        pixel.height * scale,
    )


def viewport_to_pixel_rect(rect: Rect, image_size: Size, viewport_size: Size) -> Rect:
    """Inverse of the aspect-fill mapping: viewport rectangle to image pixels."""
    scale, offset_x, offset_y = aspect_fill_transform(image_size, viewport_size)
    return Rect(
        (rect.x - offset_x) / scale,
        (rect.y - offset_y) / scale,
        rect.width / scale,
        rect.height / scale,
    )


def rect_iou(rect_a: Rect, rect_b: Rect) -> float:
    """Compute intersection-over-union between two rectangles."""
    inter_area = rect_a.intersection_area(rect_b)
    denom = rect_a.area + rect_b.area - inter_area
    if denom <= 0:
        return 0.0
    return inter_area / denom
