"""Filesystem source adapter.

This module provides a Source implementation that walks a local directory
and yields every image file below it.
"""

import logging
import os
from pathlib import Path

from ..core.asset_name import AssetName
from .base import LocalAsset, Source, ensure_unique_names

_logger = logging.getLogger(__name__)

# Raster formats the host accepts as decals
IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "bmp", "tga"})


def validate_path_safety(path: Path, base_dir: Path) -> None:
    """Validate that a path stays within the base directory.

    This prevents path traversal attacks.

    Args:
        path: Path to validate
        base_dir: Base directory that path must be within

    Raises:
        ValueError: If path escapes the base directory
    """
    resolved_path = path.resolve()
    resolved_base = base_dir.resolve()

    if not resolved_path.is_relative_to(resolved_base):
        raise ValueError(f"Path {path} escapes base directory {base_dir}")


class FilesystemSource(Source):
    """Source adapter for an asset directory.

    Example:
        >>> source = FilesystemSource(Path('/path/to/project/assets'))
        >>> for asset in source.list_assets():
        ...     print(asset.name)
    """

    def __init__(self, root: Path, extensions: frozenset[str] = IMAGE_EXTENSIONS):
        """Initialize filesystem source.

        Args:
            root: Directory to scan; asset names are relative to it
            extensions: Lowercase file extensions to include

        Raises:
            ValueError: If root doesn't exist or isn't a directory
        """
        self.root = root.resolve()
        self.extensions = extensions

        if not self.root.exists():
            raise ValueError(f"Path does not exist: {self.root}")

        if not self.root.is_dir():
            raise ValueError(f"Path is not a directory: {self.root}")

    def list_assets(self) -> list[LocalAsset]:
        """List image files below the root.

        Raises:
            ValueError: If two files differ only in case or separators
        """
        assets: list[LocalAsset] = []

        for dirpath, dirnames, filenames in os.walk(self.root):
            # Skip hidden directories
            dirnames[:] = [d for d in dirnames if not d.startswith(".")]

            for filename in filenames:
                # Skip hidden files and system files
                if filename.startswith("."):
                    continue

                file_path = Path(dirpath) / filename
                file_type = file_path.suffix.lstrip(".").lower()
                if file_type not in self.extensions:
                    continue

                try:
                    validate_path_safety(file_path, self.root)
                    name = AssetName.from_path(file_path, self.root)
                except ValueError as e:
                    _logger.warning("Skipping %s: %s", file_path, e)
                    continue

                assets.append(LocalAsset(name=name, path=file_path))

        assets.sort(key=lambda asset: asset.name.casefold())
        ensure_unique_names(assets)
        return assets
