"""Game Asset Sync.

This package keeps a directory of game image assets in sync with a remote
content host. Images are normalized (resized, alpha-bled, re-encoded as PNG),
uploaded through one of two interchangeable backends, and recorded in a
manifest so unchanged assets are never uploaded twice. A cache map resolves
shared (packed) remote ids to local files for downstream tooling.
"""

# Core library interface
from .pipeline import RetryPolicy, SyncPipeline, SyncReport, find_stale_assets
from .registry import ClientRegistry, get_preferred_client
from .clients.base import ApiClient
from .sources.base import LocalAsset, Source
from .sources.filesystem import FilesystemSource

# Core utilities
from .core import AssetName, Credentials, ImageUploadData, Manifest, UploadResult
from .core import compute_content_hash, validate_cache_index, validate_manifest
from .core import ApiClientError, GameAssetSyncError, SyncAbortedError
from .imaging import alpha_bleed, normalize

# Artifacts
from .cache_map import build_cache_map, create_cache_map, write_asset_list, write_cache_index

# CLI
from .cli import main

__version__ = "0.1.0"

# Auto-discover and register all platforms
ClientRegistry.discover_platforms()

__all__ = [
    # Primary library interface
    "SyncPipeline",
    "SyncReport",
    "RetryPolicy",
    "find_stale_assets",
    "ClientRegistry",
    "get_preferred_client",
    "ApiClient",
    "Source",
    "LocalAsset",
    "FilesystemSource",
    # Core utilities
    "AssetName",
    "Credentials",
    "ImageUploadData",
    "UploadResult",
    "Manifest",
    "compute_content_hash",
    "validate_manifest",
    "validate_cache_index",
    "GameAssetSyncError",
    "ApiClientError",
    "SyncAbortedError",
    "alpha_bleed",
    "normalize",
    # Artifacts
    "build_cache_map",
    "create_cache_map",
    "write_cache_index",
    "write_asset_list",
    # CLI
    "main",
]
