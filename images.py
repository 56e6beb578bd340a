"""
Core image type for the card scanner.

Images enter the system as raw bytes (camera frames, library files) and are
decoded once into an immutable RGB array. Every pipeline stage works on a
``CardImage`` or on plain numpy crops taken from it.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path

import cv2
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from geometry import Size

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CardImage:
    """A decoded RGB image.

    Attributes:
        pixels: RGB array of shape (height, width, 3), dtype uint8. The array
            is marked read-only on construction.
        scale: Display scale factor of the source (points to pixels).
    """

    pixels: np.ndarray
    scale: float = 1.0

    def __post_init__(self) -> None:
        if not isinstance(self.pixels, np.ndarray):
            raise TypeError(f"Expected numpy.ndarray, got {type(self.pixels).__name__}")
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 3:
            raise ValueError(f"Expected RGB array (H, W, 3), got shape {self.pixels.shape}")
        self.pixels.flags.writeable = False

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def pixel_size(self) -> Size:
        return Size(float(self.width), float(self.height))

    @property
    def is_empty(self) -> bool:
        return self.pixels.size == 0

    @classmethod
    def from_array(cls, array: np.ndarray, scale: float = 1.0) -> CardImage:
        """Wrap an RGB, RGBA or grayscale array, copying it."""
        return cls(pixels=to_rgb(array), scale=scale)


def to_rgb(array: np.ndarray) -> np.ndarray:
    """Return an RGB uint8 copy of a grayscale, RGB or RGBA array."""
    if not isinstance(array, np.ndarray):
        raise TypeError(f"Expected numpy.ndarray, got {type(array).__name__}")
    if array.size == 0:
        raise ValueError("Image array is empty")
    if array.dtype != np.uint8:
        array = np.clip(array, 0, 255).astype(np.uint8)

    if array.ndim == 2:
        return cv2.cvtColor(array, cv2.COLOR_GRAY2RGB)
    if array.ndim == 3:
        channels = array.shape[2]
        if channels == 1:
            return cv2.cvtColor(array[:, :, 0], cv2.COLOR_GRAY2RGB)
        if channels == 3:
            return array.copy()
        if channels == 4:
            return cv2.cvtColor(array, cv2.COLOR_RGBA2RGB)
        raise ValueError(f"Unsupported number of channels: {channels}")
    raise ValueError(f"Image must be 2D or 3D array, got {array.ndim}D array")


def to_grayscale(array: np.ndarray) -> np.ndarray:
    """Convert an RGB array to grayscale (2D arrays are copied as-is)."""
    if array.ndim == 2:
        return array.copy()
    return cv2.cvtColor(array, cv2.COLOR_RGB2GRAY)


def resize_longest_side(array: np.ndarray, max_side: int) -> tuple[np.ndarray, float]:
    """Downscale so the longest side is at most ``max_side``.

    Returns:
        Tuple of (resized array, scale factor applied). Images already within
        the limit are returned unchanged with a factor of 1.0.
    """
    if max_side <= 0:
        raise ValueError(f"max_side must be positive, got {max_side}")
    height, width = array.shape[:2]
    longest = max(height, width)
    if longest <= max_side:
        return array, 1.0
    factor = max_side / longest
    new_size = (max(1, int(round(width * factor))), max(1, int(round(height * factor))))
    return cv2.resize(array, new_size, interpolation=cv2.INTER_AREA), factor


def load_image(source: bytes | str | Path, scale: float = 1.0) -> CardImage | None:
    """Decode an image from raw bytes or a file path.

    Returns None when the data cannot be decoded; the scanner treats that as
    an invalid input rather than an error.
    """
    try:
        data = Path(source).read_bytes() if isinstance(source, (str, Path)) else source
    except OSError as exc:
        logger.warning("Could not read image %s: %s", source, exc)
        return None

    try:
        with Image.open(io.BytesIO(data)) as image:
            # Phone photos store pixels unrotated with an EXIF Orientation tag
            image = ImageOps.exif_transpose(image)
            if image.mode != "RGB":
                image = image.convert("RGB")
            array = np.array(image)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        logger.warning("Could not decode image data: %s", exc)
        return None

    if array.size == 0:
        return None
    return CardImage(pixels=array, scale=scale)
