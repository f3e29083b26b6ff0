"""Basic directory sync example.

This example demonstrates how to:
- Scan a local asset directory
- Upload new or changed images with an API key
- Save the updated manifest
- Write the cache map for packed assets
"""

import asyncio
import os
import sys
from pathlib import Path

from pydantic import SecretStr

from game_asset_sync import (
    Credentials,
    FilesystemSource,
    Manifest,
    RetryPolicy,
    SyncPipeline,
    get_preferred_client,
)


async def main():
    # Sync a directory (change this to your asset directory)
    asset_dir = Path.home() / "Documents" / "GameAssets"
    manifest_file = asset_dir / "asset-manifest.json"

    if not asset_dir.exists():
        print(f"Directory not found: {asset_dir}", file=sys.stderr)
        print("Please update the asset_dir variable in this script", file=sys.stderr)
        return

    api_key = os.environ.get("GAME_ASSET_SYNC_API_KEY")
    user_id = os.environ.get("USER_ID")
    if not api_key or not user_id:
        print("Set GAME_ASSET_SYNC_API_KEY and USER_ID to run this example", file=sys.stderr)
        return

    credentials = Credentials(api_key=SecretStr(api_key), user_id=int(user_id))
    manifest = Manifest.read(manifest_file)

    print(f"Syncing directory: {asset_dir}", file=sys.stderr)

    async with get_preferred_client(credentials) as client:
        pipeline = SyncPipeline(
            client,
            manifest,
            FilesystemSource(asset_dir),
            retry_policy=RetryPolicy(max_retries=3, delay=30),
        )
        try:
            report = await pipeline.run()
        finally:
            manifest.write(manifest_file)

    # Display summary
    print("\n✓ Sync finished", file=sys.stderr)
    print(f"  Uploaded: {len(report.uploaded)}", file=sys.stderr)
    print(f"  Up to date: {len(report.skipped)}", file=sys.stderr)

    for name in report.uploaded:
        entry = manifest.get(name)
        print(f"  {name} -> rbxassetid://{entry.remote_id}", file=sys.stderr)

    print(f"\nManifest saved to {manifest_file}", file=sys.stderr)


if __name__ == '__main__':
    asyncio.run(main())
