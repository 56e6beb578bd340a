"""
Text recognition on card crops.

Wraps an EasyOCR reader. The reader is created lazily on first use (model
download and load are slow) and shared afterwards; it is only read from, so
concurrent calls from the pipeline's worker threads are fine.
"""

from __future__ import annotations

import logging
import threading
import warnings
from typing import Any, Protocol, Sequence

import numpy as np

import config
from detection.types import RecognizedTextLine

logger = logging.getLogger(__name__)


class TextReader(Protocol):
    """Anything with EasyOCR's ``readtext`` signature."""

    def readtext(self, image: np.ndarray, **kwargs: Any) -> list:
        """Return a list of (bbox, text, confidence) tuples."""


def _suppress_torch_warnings() -> None:
    """Suppress noisy pin_memory warnings on MPS-backed systems."""
    warnings.filterwarnings(
        "ignore",
        message=r".*pin_memory.*MPS.*",
        category=UserWarning,
        module=r"torch\.utils\.data\.dataloader",
    )


def create_reader(languages: Sequence[str] | None = None, gpu: bool | None = None) -> TextReader:
    """Create an EasyOCR reader for the configured languages."""
    import easyocr

    _suppress_torch_warnings()
    langs = list(languages or config.OCR_LANGUAGES)
    use_gpu = config.OCR_GPU if gpu is None else gpu
    logger.info("Initializing EasyOCR (languages=%s, gpu=%s)...", ",".join(langs), use_gpu)
    return easyocr.Reader(langs, gpu=use_gpu)


class TextRecognizer:
    """Recognize text lines in card crops."""

    def __init__(
        self,
        reader: TextReader | None = None,
        languages: Sequence[str] | None = None,
        decoder: str | None = None,
    ) -> None:
        self._reader = reader
        self.languages = tuple(languages or config.OCR_LANGUAGES)
        self.decoder = decoder or config.OCR_DECODER
        self._lock = threading.Lock()

    @property
    def reader(self) -> TextReader:
        if self._reader is None:
            with self._lock:
                if self._reader is None:
                    self._reader = create_reader(self.languages)
        return self._reader

    def recognize_text(self, image: np.ndarray) -> list[RecognizedTextLine]:
        """Recognize text lines in an RGB crop.

        Lines keep the engine's emission order, which is not guaranteed to be
        top-to-bottom. Returns an empty list when recognition fails.
        """
        if image is None or image.size == 0:
            return []

        try:
            results = self.reader.readtext(
                image,
                detail=1,
                paragraph=False,
                decoder=self.decoder,
            )
        except Exception as exc:
            logger.warning("Text recognition failed: %s", exc)
            return []

        lines: list[RecognizedTextLine] = []
        for _bbox, text, confidence in results:
            cleaned = str(text).strip()
            if not cleaned:
                continue
            lines.append(RecognizedTextLine(text=cleaned, confidence=float(confidence)))

        logger.debug("Recognized %d text lines", len(lines))
        return lines
