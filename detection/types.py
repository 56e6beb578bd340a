"""
Type definitions for the detection module.

This module defines the core data structures used throughout the card
detection pipeline.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Literal

import config
from geometry import NormalizedBox, Rect, Size, to_viewport_rect

# Normalized point (x, y), origin at the bottom-left
Point = tuple[float, float]

# Which region detector produced a region
DetectionSource = Literal["geometric", "learned"]


def _new_region_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class DetectedRegion:
    """A card candidate emitted by a region detector.

    Box and corners are normalized to the image that produced them, never to
    a viewport; use ``viewport_rect`` to convert for display.

    Attributes:
        box: Bounding box in normalized coordinates (origin bottom-left)
        confidence: Detector confidence between 0 and 1
        top_left, top_right, bottom_left, bottom_right: Corner points,
            normalized, origin bottom-left
        image_size: Pixel size of the source image
        viewport_size: Preview size, needed only for display conversion
        label: Class label from the learned detector (None for geometric)
        source: Detector that produced the region
        id: Generated identifier for list diffing; not part of equality
    """

    box: NormalizedBox
    confidence: float
    top_left: Point
    top_right: Point
    bottom_left: Point
    bottom_right: Point
    image_size: Size
    viewport_size: Size | None = None
    label: str | None = None
    source: DetectionSource = "geometric"
    id: str = field(default_factory=_new_region_id, compare=False)

    @property
    def corners(self) -> tuple[Point, Point, Point, Point]:
        """Corners in clockwise order starting top-left."""
        return (self.top_left, self.top_right, self.bottom_right, self.bottom_left)

    @property
    def aspect_ratio(self) -> float:
        """Width / height of the box in image pixels."""
        return self.box.pixel_aspect_ratio(self.image_size)

    @property
    def display_viewport_size(self) -> Size:
        """Viewport used for display conversion, 375x812 points when unknown."""
        if self.viewport_size is not None:
            return self.viewport_size
        return Size.from_tuple(config.DEFAULT_VIEWPORT_SIZE)

    def viewport_rect(self, viewport_size: Size | None = None) -> Rect:
        """Region in viewport coordinates (top-left origin) for overlays."""
        return to_viewport_rect(self.box, self.image_size, viewport_size or self.display_viewport_size)

    def with_sizes(self, image_size: Size | None = None, viewport_size: Size | None = None) -> DetectedRegion:
        """Return a copy carrying the given image/viewport sizes (same id)."""
        return DetectedRegion(
            box=self.box,
            confidence=self.confidence,
            top_left=self.top_left,
            top_right=self.top_right,
            bottom_left=self.bottom_left,
            bottom_right=self.bottom_right,
            image_size=image_size or self.image_size,
            viewport_size=viewport_size if viewport_size is not None else self.viewport_size,
            label=self.label,
            source=self.source,
            id=self.id,
        )

    @classmethod
    def from_box(
        cls,
        box: NormalizedBox,
        confidence: float,
        image_size: Size,
        viewport_size: Size | None = None,
        label: str | None = None,
        source: DetectionSource = "learned",
    ) -> DetectedRegion:
        """Create a region whose corners are the corners of ``box``."""
        return cls(
            box=box,
            confidence=confidence,
            top_left=(box.min_x, box.max_y),
            top_right=(box.max_x, box.max_y),
            bottom_left=(box.min_x, box.min_y),
            bottom_right=(box.max_x, box.min_y),
            image_size=image_size,
            viewport_size=viewport_size,
            label=label,
            source=source,
        )

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "box": {
                "x": self.box.x,
                "y": self.box.y,
                "width": self.box.width,
                "height": self.box.height,
            },
            "confidence": self.confidence,
            "corners": [list(p) for p in self.corners],
            "image_size": [self.image_size.width, self.image_size.height],
            "label": self.label,
            "source": self.source,
        }
        if self.viewport_size is not None:
            rect = self.viewport_rect()
            data["viewport_size"] = [self.viewport_size.width, self.viewport_size.height]
            data["viewport_rect"] = [rect.x, rect.y, rect.width, rect.height]
        return data


@dataclass(frozen=True)
class RecognizedTextLine:
    """One line of recognized text with the engine's confidence."""

    text: str
    confidence: float = 1.0


@dataclass(frozen=True)
class ParsedCardText:
    """Structured fields parsed from recognized text lines."""

    player_name: str | None
    year: int | None
    team: str | None
    all_text: str

    @property
    def is_empty(self) -> bool:
        return not self.all_text


@dataclass(frozen=True)
class FacePresence:
    """Whether a face was found and where (normalized, origin bottom-left)."""

    present: bool
    bounds: NormalizedBox | None = None

    @classmethod
    def absent(cls) -> FacePresence:
        return cls(present=False, bounds=None)


@dataclass(frozen=True)
class ExtractedCardInfo:
    """Card information extracted from OCR and face detection."""

    player_name: str | None
    year: int | None
    team: str | None
    all_text: str
    has_face: bool = False
    face_bounds: NormalizedBox | None = None

    @classmethod
    def merge(cls, parsed: ParsedCardText, face: FacePresence) -> ExtractedCardInfo:
        return cls(
            player_name=parsed.player_name,
            year=parsed.year,
            team=parsed.team,
            all_text=parsed.all_text,
            has_face=face.present,
            face_bounds=face.bounds,
        )

    @property
    def is_empty(self) -> bool:
        """True when neither text nor a face was found."""
        return not self.all_text and not self.has_face

    def to_dict(self) -> dict:
        face_bounds = None
        if self.face_bounds is not None:
            face_bounds = {
                "x": self.face_bounds.x,
                "y": self.face_bounds.y,
                "width": self.face_bounds.width,
                "height": self.face_bounds.height,
            }
        return {
            "player_name": self.player_name,
            "year": self.year,
            "team": self.team,
            "all_text": self.all_text,
            "has_face": self.has_face,
            "face_bounds": face_bounds,
        }


@dataclass
class DetectionOutcome:
    """Result of one pipeline invocation on a single image.

    Attributes:
        regions: All regions that survived filtering (for overlay rendering)
        card_info: The first valid card info in region order, if any
        strategy: Detector strategy that actually ran (after fallback)
    """

    regions: list[DetectedRegion] = field(default_factory=list)
    card_info: ExtractedCardInfo | None = None
    strategy: DetectionSource = "geometric"

    @property
    def found_card(self) -> bool:
        return self.card_info is not None

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy,
            "regions": [region.to_dict() for region in self.regions],
            "card_info": self.card_info.to_dict() if self.card_info else None,
        }
