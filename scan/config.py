"""
Configuration for the card scan pipeline.

All pipeline behaviour is parameterized through ScannerConfig so a scan can
be reproduced with the same settings. Defaults come from the central
``config`` module.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import config


class DetectorStrategy(str, Enum):
    """Region detector selection."""

    GEOMETRIC = "geometric"
    LEARNED = "learned"

    @classmethod
    def parse(cls, value: str | DetectorStrategy) -> DetectorStrategy:
        if isinstance(value, DetectorStrategy):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown detector strategy {value!r} (choose from {choices})") from None


@dataclass(frozen=True)
class ScannerConfig:
    """Configuration for one scanner instance.

    Attributes:
        strategy: Region detector to use; "learned" falls back to
                  "geometric" while the model is not loaded.
        model_dir: Directory searched for the learned detector model.
        model_name: Model file name without extension.
        classifier_oracle: Fallback oracle name for the card classifier.
        face_backend: Face backend name, or None to skip face detection.
        max_workers: Worker threads for per-candidate fan-out.
        scan_timeout: Deadline in seconds for one detect() call
                      (None waits indefinitely).
        ocr_languages: Languages passed to the OCR engine.
    """

    strategy: DetectorStrategy = DetectorStrategy(config.DETECTOR_STRATEGY)
    model_dir: Path = config.MODEL_DIR
    model_name: str = config.MODEL_NAME
    classifier_oracle: str = config.CLASSIFIER_ORACLE
    face_backend: Optional[str] = config.FACE_BACKEND
    max_workers: int = config.MAX_WORKERS
    scan_timeout: Optional[float] = config.SCAN_TIMEOUT_SECONDS
    ocr_languages: tuple[str, ...] = tuple(config.OCR_LANGUAGES)

    def validate(self) -> None:
        """Validate configuration parameters.

        Raises:
            ValueError: If any parameter is invalid.
        """
        if not isinstance(self.strategy, DetectorStrategy):
            raise ValueError(f"strategy must be a DetectorStrategy, got {self.strategy!r}")

        if self.max_workers <= 0:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")

        if self.scan_timeout is not None and self.scan_timeout <= 0:
            raise ValueError(f"scan_timeout must be positive or None, got {self.scan_timeout}")

        if not self.model_name:
            raise ValueError("model_name must not be empty")

        if not self.ocr_languages:
            raise ValueError("ocr_languages must contain at least one language")

    def with_overrides(self, **kwargs) -> ScannerConfig:
        """Return a validated copy with some fields replaced.

        Raises:
            ValueError: If a key is not a ScannerConfig field or the result
                is invalid.
        """
        valid_fields = {f.name for f in dataclasses.fields(self)}
        unknown = set(kwargs) - valid_fields
        if unknown:
            raise ValueError(f"Unknown ScannerConfig fields: {sorted(unknown)}")
        if "strategy" in kwargs:
            kwargs["strategy"] = DetectorStrategy.parse(kwargs["strategy"])
        if "model_dir" in kwargs:
            kwargs["model_dir"] = Path(kwargs["model_dir"])
        updated = dataclasses.replace(self, **kwargs)
        updated.validate()
        return updated
