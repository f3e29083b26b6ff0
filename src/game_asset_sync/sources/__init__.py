"""Local asset sources for the sync pipeline."""

from .base import LocalAsset, Source
from .filesystem import IMAGE_EXTENSIONS, FilesystemSource, validate_path_safety

__all__ = [
    "LocalAsset",
    "Source",
    "FilesystemSource",
    "IMAGE_EXTENSIONS",
    "validate_path_safety",
]
