"""Card scanning: pipeline, configuration and scan services."""

from .config import DetectorStrategy, ScannerConfig
from .pipeline import CardScanPipeline, build_pipeline
from .service import (
    CameraScanResult,
    CancellationToken,
    FrameThrottle,
    ProcessedIdentifiers,
    scan_camera_frame,
    scan_library,
)

__all__ = [
    "DetectorStrategy",
    "ScannerConfig",
    "CardScanPipeline",
    "build_pipeline",
    "CameraScanResult",
    "CancellationToken",
    "FrameThrottle",
    "ProcessedIdentifiers",
    "scan_camera_frame",
    "scan_library",
]
