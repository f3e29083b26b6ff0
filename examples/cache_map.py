"""Cache map example.

This example demonstrates how to:
- Load an existing manifest
- Download each packed spritesheet once through the legacy backend
- Write the remote id -> local file index used by game tooling
"""

import asyncio
import os
import sys
from pathlib import Path

from pydantic import SecretStr

from game_asset_sync import Credentials, Manifest, create_cache_map, get_preferred_client


async def main():
    manifest_file = Path("asset-manifest.json")
    cache_dir = Path(".asset-cache")
    index_file = cache_dir / "index.json"

    cookie = os.environ.get("GAME_ASSET_SYNC_AUTH")
    if not cookie:
        print("Set GAME_ASSET_SYNC_AUTH to run this example", file=sys.stderr)
        return

    manifest = Manifest.read(manifest_file)
    print(f"Loaded {len(manifest)} manifest entries", file=sys.stderr)

    async with get_preferred_client(Credentials(cookie_token=SecretStr(cookie))) as client:
        index = await create_cache_map(manifest, client, cache_dir, index_file)

    downloaded = sum(1 for location in index.values() if location.startswith(str(cache_dir)))
    print(f"\n✓ Wrote {len(index)} entries to {index_file}", file=sys.stderr)
    print(f"  Downloaded: {downloaded}", file=sys.stderr)


if __name__ == '__main__':
    asyncio.run(main())
