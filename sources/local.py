"""
Local image library.

Finds card photos in a directory or accepts a single image file.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".bmp", ".tiff", ".tif"}


def find_library_images(path: str | Path, recursive: bool = False) -> list[Path]:
    """Find image files under ``path``, newest first.

    Args:
        path: Directory or single image file.
        recursive: Descend into subdirectories.

    Returns:
        Image paths ordered by modification time (newest first), then name.

    Raises:
        ValueError: If path doesn't exist or isn't a supported image/directory.
    """
    root = Path(path).resolve()

    if root.is_file():
        if root.suffix.lower() in IMAGE_EXTENSIONS:
            return [root]
        raise ValueError(f"{path} is not a supported image file")

    if not root.is_dir():
        raise ValueError(f"{path} is not a valid file or directory")

    pattern = "**/*" if recursive else "*"
    images = [
        candidate
        for candidate in root.glob(pattern)
        if candidate.is_file() and candidate.suffix.lower() in IMAGE_EXTENSIONS
    ]
    images.sort(key=lambda p: p.name)
    images.sort(key=lambda p: p.stat().st_mtime, reverse=True)
    logger.debug("Found %d images in %s", len(images), root)
    return images
