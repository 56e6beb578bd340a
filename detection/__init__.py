"""
Card region detection module.

This module locates card candidates in an image and decides which of them
look like cards. It follows a simple design philosophy: small pure functions
for geometry and filtering, detectors behind a common interface, and no
exception escaping a detector.

Key components:
- types: Core data structures (DetectedRegion, ExtractedCardInfo, DetectionOutcome)
- base: RegionDetector interface
- rectangles: Geometric quadrilateral detector (OpenCV)
- learned: YOLO model detector with asynchronous loading
- filtering: Card shape policy, deduplication and scan-frame filtering
- classifier: Heuristic card classifier with an injectable oracle
- cropping: Region cropping
"""

from .types import (
    DetectedRegion,
    DetectionOutcome,
    DetectionSource,
    ExtractedCardInfo,
    FacePresence,
    ParsedCardText,
    RecognizedTextLine,
)
from .base import RegionDetector
from .rectangles import RectangleDetector
from .learned import LearnedDetector, find_model_file
from .filtering import (
    deduplicate_regions,
    filter_by_aspect_ratio,
    filter_by_confidence,
    filter_by_scan_frame,
    region_in_scan_frame,
    scan_frame_pixel_rect,
)
from .classifier import AcceptAllOracle, CardClassifier, CardOracle, RejectAllOracle, get_oracle_by_name
from .cropping import crop_region

__all__ = [
    "DetectedRegion",
    "DetectionOutcome",
    "DetectionSource",
    "ExtractedCardInfo",
    "FacePresence",
    "ParsedCardText",
    "RecognizedTextLine",
    "RegionDetector",
    "RectangleDetector",
    "LearnedDetector",
    "find_model_file",
    "deduplicate_regions",
    "filter_by_aspect_ratio",
    "filter_by_confidence",
    "filter_by_scan_frame",
    "region_in_scan_frame",
    "scan_frame_pixel_rect",
    "AcceptAllOracle",
    "CardClassifier",
    "CardOracle",
    "RejectAllOracle",
    "get_oracle_by_name",
    "crop_region",
]
