"""Region detector interface shared by the geometric and learned strategies."""

from __future__ import annotations

from typing import Protocol

from images import CardImage

from .types import DetectedRegion, DetectionSource


class RegionDetector(Protocol):
    """Interface for card region detectors."""

    source: DetectionSource

    def is_ready(self) -> bool:
        """Whether the detector can run (models loaded, engines available)."""

    def detect(self, image: CardImage) -> list[DetectedRegion]:
        """Detect card candidates; never raises, returns [] on failure."""
