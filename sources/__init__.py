"""
Image source adapters.

Sources yield card photos for batch scanning. Only local directories are
supported.
"""

from .local import IMAGE_EXTENSIONS, find_library_images

__all__ = [
    "IMAGE_EXTENSIONS",
    "find_library_images",
]
