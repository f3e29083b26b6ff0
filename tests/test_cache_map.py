"""Tests for the cache map and asset list artifacts."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from jsonschema import ValidationError

from game_asset_sync.cache_map import (
    build_cache_map,
    collect_asset_ids,
    create_cache_map,
    group_by_remote_id,
    write_asset_list,
    write_cache_index,
)
from game_asset_sync.clients.base import ApiClient
from game_asset_sync.core.errors import ResponseError
from game_asset_sync.core.manifest import Manifest


def make_client(**kwargs) -> Mock:
    client = Mock(spec=ApiClient)
    client.download_image = AsyncMock(**kwargs)
    return client


@pytest.fixture
def packed_manifest() -> Manifest:
    """Two assets packed into one remote image, one standalone."""
    return Manifest.from_dict({
        "sword.png": {"remoteId": 42},
        "shield.png": {"remoteId": 42},
        "helmet.png": {"remoteId": 7},
    })


class TestGroupByRemoteId:
    def test_groups_and_orders(self, packed_manifest: Manifest) -> None:
        groups = group_by_remote_id(packed_manifest)

        assert list(groups) == [7, 42]
        assert groups[42] == ["shield.png", "sword.png"]

    def test_ignores_entries_without_remote_id(self) -> None:
        manifest = Manifest.from_dict({"pending.png": {}})
        assert group_by_remote_id(manifest) == {}


class TestBuildCacheMap:
    """Test deduplication of shared remote ids."""

    @pytest.mark.asyncio
    async def test_shared_ids_downloaded_once(
        self, packed_manifest: Manifest, tmp_path: Path
    ) -> None:
        cache_dir = tmp_path / "c"
        client = make_client(return_value=b"packed image")

        index = await build_cache_map(packed_manifest, client, cache_dir)

        assert index == {42: str(cache_dir / "42"), 7: "helmet.png"}
        assert list(index) == [7, 42]
        client.download_image.assert_awaited_once_with(42)
        assert (cache_dir / "42").read_bytes() == b"packed image"

    @pytest.mark.asyncio
    async def test_single_contributor_not_downloaded(self, tmp_path: Path) -> None:
        manifest = Manifest.from_dict({"ui/Gem.png": {"remoteId": 3}})
        client = make_client()

        index = await build_cache_map(manifest, client, tmp_path / "c")

        assert index == {3: "ui/Gem.png"}
        client.download_image.assert_not_awaited()
        assert not (tmp_path / "c").exists()

    @pytest.mark.asyncio
    async def test_failed_download_publishes_nothing(
        self, packed_manifest: Manifest, tmp_path: Path
    ) -> None:
        index_file = tmp_path / "index.json"
        index_file.write_text('{"1": "previous.png"}\n', encoding="utf-8")
        client = make_client(side_effect=ResponseError(500, "server error"))

        with pytest.raises(ResponseError):
            await create_cache_map(packed_manifest, client, tmp_path / "c", index_file)

        assert index_file.read_text(encoding="utf-8") == '{"1": "previous.png"}\n'


class TestWriteCacheIndex:
    @pytest.mark.asyncio
    async def test_end_to_end(self, packed_manifest: Manifest, tmp_path: Path) -> None:
        cache_dir = tmp_path / "c"
        index_file = tmp_path / "out" / "index.json"
        client = make_client(return_value=b"packed image")

        await create_cache_map(packed_manifest, client, cache_dir, index_file)

        text = index_file.read_text(encoding="utf-8")
        assert json.loads(text) == {"7": "helmet.png", "42": str(cache_dir / "42")}
        assert text.index('"7"') < text.index('"42"')

    def test_rejects_empty_location(self, tmp_path: Path) -> None:
        with pytest.raises(ValidationError):
            write_cache_index({1: ""}, tmp_path / "index.json")

        assert not (tmp_path / "index.json").exists()


class TestAssetList:
    def test_collects_unique_sorted_ids(self, packed_manifest: Manifest) -> None:
        assert collect_asset_ids(packed_manifest) == [7, 42]

    def test_writes_one_id_per_line(self, packed_manifest: Manifest, tmp_path: Path) -> None:
        path = tmp_path / "asset-list.txt"

        write_asset_list(packed_manifest, path)

        assert path.read_text(encoding="utf-8") == "7\n42\n"
