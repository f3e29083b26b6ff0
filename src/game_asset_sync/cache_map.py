"""Cache map and asset list artifacts.

After a sync, several local assets may resolve to one remote id (packed
spritesheets). The cache map tells downstream tooling where the content of
each remote id can be found locally: the original asset when only one asset
contributes, or a file downloaded once into the cache directory when several
do. The index is rebuilt from the manifest on every run.
"""

import logging
from collections import defaultdict
from pathlib import Path

from .clients.base import ApiClient
from .core.asset_name import AssetName
from .core.manifest import Manifest, write_json_atomic
from .core.tasks import JobFailed, run_all_or_cancel
from .core.types import CacheIndex, CacheIndexDict
from .core.validator import validate_cache_index

_logger = logging.getLogger(__name__)


def group_by_remote_id(manifest: Manifest) -> dict[int, list[AssetName]]:
    """Invert the manifest: remote id -> contributing asset names.

    Entries without a remote id are ignored. Ids come out in ascending order.
    """
    groups: dict[int, list[AssetName]] = defaultdict(list)
    for name, entry in manifest.items():
        if entry.remote_id is not None:
            groups[entry.remote_id].append(name)
    return {remote_id: sorted(groups[remote_id]) for remote_id in sorted(groups)}


async def _download_to_cache(client: ApiClient, remote_id: int, cache_dir: Path) -> str:
    contents = await client.download_image(remote_id)
    path = cache_dir / str(remote_id)
    path.write_bytes(contents)
    _logger.debug("Cached asset %d (%d bytes) at %s", remote_id, len(contents), path)
    return str(path)


async def build_cache_map(manifest: Manifest, client: ApiClient, cache_dir: Path) -> CacheIndex:
    """Build the remote id -> location index.

    Shared ids are downloaded exactly once each, concurrently.

    Args:
        manifest: Manifest whose entries carry remote ids
        client: Backend used to download shared content
        cache_dir: Directory receiving downloaded files, created if missing

    Returns:
        Index ordered by remote id

    Raises:
        ApiClientError: If any download fails; nothing is returned then
    """
    groups = group_by_remote_id(manifest)

    index: CacheIndex = {}
    downloads = {}
    for remote_id, contributors in groups.items():
        if len(contributors) == 1:
            index[remote_id] = str(contributors[0])
        else:
            downloads[remote_id] = contributors

    if downloads:
        cache_dir.mkdir(parents=True, exist_ok=True)
        _logger.info("Downloading %d shared assets into %s", len(downloads), cache_dir)

    try:
        cached = await run_all_or_cancel(
            {remote_id: _download_to_cache(client, remote_id, cache_dir) for remote_id in downloads}
        )
    except JobFailed as e:
        _logger.error("Failed to download shared asset %s", e.key)
        raise e.error from None

    index.update(cached)
    return dict(sorted(index.items()))


def cache_index_to_dict(index: CacheIndex) -> CacheIndexDict:
    """Stringify ids for JSON, keeping numeric order."""
    return {str(remote_id): location for remote_id, location in sorted(index.items())}


def write_cache_index(index: CacheIndex, path: Path) -> None:
    """Publish the index as pretty JSON.

    The file is replaced atomically, so a failed run never leaves a partial
    index behind.
    """
    document = cache_index_to_dict(index)
    validate_cache_index(document)
    write_json_atomic(path, document)


async def create_cache_map(
    manifest: Manifest,
    client: ApiClient,
    cache_dir: Path,
    index_file: Path,
) -> CacheIndex:
    """Build the cache map and publish it to index_file."""
    index = await build_cache_map(manifest, client, cache_dir)
    write_cache_index(index, index_file)
    _logger.info("Wrote cache index with %d entries to %s", len(index), index_file)
    return index


def collect_asset_ids(manifest: Manifest) -> list[int]:
    """Sorted unique remote ids referenced by the manifest."""
    return manifest.remote_ids()


def write_asset_list(manifest: Manifest, path: Path) -> list[int]:
    """Write every remote id of the manifest, one per line, ascending."""
    asset_ids = collect_asset_ids(manifest)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        for asset_id in asset_ids:
            f.write(f"{asset_id}\n")
    return asset_ids
