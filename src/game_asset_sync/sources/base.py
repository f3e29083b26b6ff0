"""Base abstractions for local asset sources.

A source enumerates the local images that take part in a sync and reads
their raw bytes. Project discovery and glob matching live outside the core;
sources are the seam where they plug in.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from ..core.asset_name import AssetName


@dataclass(frozen=True)
class LocalAsset:
    """A local input image.

    Attributes:
        name: Normalized identity, the manifest key
        path: Location of the file on disk
    """

    name: AssetName
    path: Path


def ensure_unique_names(assets: list[LocalAsset]) -> None:
    """Reject assets whose names collide after normalization.

    Raises:
        ValueError: If two assets map to the same name, naming both paths
    """
    seen: dict[AssetName, Path] = {}
    for asset in assets:
        if asset.name in seen:
            raise ValueError(
                f"Assets {seen[asset.name]} and {asset.path} both map to asset name {str(asset.name)!r}"
            )
        seen[asset.name] = asset.path


class Source(ABC):
    """Abstract base class for local asset sources.

    Implementations provide the logic for finding assets, while the
    orchestrator only relies on this interface.
    """

    @abstractmethod
    def list_assets(self) -> list[LocalAsset]:
        """List all assets provided by this source.

        Returns:
            Assets sorted by name
        """
        pass

    def get_asset(self, name: str) -> LocalAsset:
        """Retrieve a specific asset by name.

        Raises:
            KeyError: If asset not found
        """
        wanted = AssetName.normalize(name)
        for asset in self.list_assets():
            if asset.name == wanted:
                return asset
        raise KeyError(f"Asset {name} not found")

    def read_asset(self, asset: LocalAsset) -> bytes:
        """Read the raw bytes of an asset.

        Raises:
            OSError: If the file can't be read
        """
        return asset.path.read_bytes()
