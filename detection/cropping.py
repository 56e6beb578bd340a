"""Cropping detected regions out of the source image."""

from __future__ import annotations

import logging

import numpy as np

from geometry import normalized_to_pixel_rect
from images import CardImage

from .types import DetectedRegion

logger = logging.getLogger(__name__)


def crop_region(image: CardImage, region: DetectedRegion) -> np.ndarray | None:
    """Crop a region's bounding box from the image.

    The box is converted with the image's own pixel size, rounded outward to
    whole pixels. Returns None when the crop is empty or leaves the image
    bounds; the candidate is skipped in that case.
    """
    image_size = image.pixel_size
    x, y, w, h = normalized_to_pixel_rect(region.box, image_size).integral()

    if w <= 0 or h <= 0:
        return None
    if x < 0 or y < 0 or x + w > image.width or y + h > image.height:
        logger.debug("Crop (%d, %d, %d, %d) outside %dx%d image", x, y, w, h, image.width, image.height)
        return None

    return image.pixels[y:y + h, x:x + w].copy()
