"""Command-line interface for the asset sync tool.

This module provides the CLI entry point. Argument parsing, credential
resolution and output live here; all real work is delegated to the library.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from jsonschema import ValidationError
from pydantic import SecretStr

from .cache_map import create_cache_map, write_asset_list
from .config import SyncSettings, get_settings
from .core.errors import GameAssetSyncError, SyncAbortedError
from .core.manifest import Manifest
from .core.types import Credentials, ImageUploadData
from .imaging import normalize
from .pipeline import RetryPolicy, SyncPipeline, find_stale_assets
from .registry import get_preferred_client
from .sources.filesystem import FilesystemSource

DEFAULT_MANIFEST = "asset-manifest.json"


def parse_resize(value: str) -> tuple[int, int]:
    """Parse WxH dimensions, e.g. "100x100"."""
    width, sep, height = value.partition("x")
    try:
        if not sep:
            raise ValueError(value)
        dimensions = (int(width), int(height))
    except ValueError:
        raise argparse.ArgumentTypeError(
            "invalid dimensions passed - please pass your dimensions in the WxH format "
            "(e.g. 100x100, 200x200, etc)"
        ) from None

    if dimensions[0] <= 0 or dimensions[1] <= 0:
        raise argparse.ArgumentTypeError(f"dimensions must be positive: {value}")
    return dimensions


def configure_logging(verbosity: int) -> None:
    """Set up stderr logging: -v for package debug output, -vv for everything."""
    logging.basicConfig(
        format="[%(levelname)s] %(message)s",
        stream=sys.stderr,
        level=logging.DEBUG if verbosity >= 2 else logging.WARNING,
    )
    logging.getLogger("game_asset_sync").setLevel(
        logging.DEBUG if verbosity >= 1 else logging.INFO
    )


def build_credentials(
    args: argparse.Namespace,
    settings: SyncSettings,
    allow_api_key: bool = True,
) -> Credentials:
    """Resolve credentials from flags, falling back to settings."""
    cookie = args.auth if args.auth is not None else settings.auth
    api_key = args.api_key if args.api_key is not None else settings.api_key

    return Credentials(
        cookie_token=cookie,
        api_key=api_key if allow_api_key else None,
        user_id=getattr(args, "user_id", None),
        group_id=getattr(args, "group_id", None),
    )


def _client_options(args: argparse.Namespace, credentials: Credentials) -> dict[str, Any]:
    if credentials.api_key is None:
        return {"moderation_retry": getattr(args, "moderation_retry", False)}
    return {}


# ============================================================================
# Commands
# ============================================================================

async def upload_image(args: argparse.Namespace, settings: SyncSettings) -> int:
    raw = args.path.read_bytes()
    image_data = normalize(raw, args.resize)

    credentials = build_credentials(args, settings)
    data = ImageUploadData(
        image_data=image_data,
        name=args.name,
        description=args.description or settings.description,
    )

    async with get_preferred_client(credentials, **_client_options(args, credentials)) as client:
        result = await client.upload_image(data)

    print("Image uploaded successfully!", file=sys.stderr)
    print(f"rbxassetid://{result.backing_asset_id}")
    return 0


async def download_image(args: argparse.Namespace, settings: SyncSettings) -> int:
    # Downloads only exist on the legacy backend
    credentials = build_credentials(args, settings, allow_api_key=False)

    async with get_preferred_client(credentials) as client:
        contents = await client.download_image(args.asset_id)

    args.output.write_bytes(contents)
    print(f"Wrote {len(contents)} bytes to {args.output}", file=sys.stderr)
    return 0


async def sync(args: argparse.Namespace, settings: SyncSettings) -> int:
    source = FilesystemSource(args.root)
    manifest = Manifest.read(args.manifest)

    if args.target == "none":
        stale = find_stale_assets(manifest, source)
        for asset in stale:
            print(f"Out of date: {asset.name}", file=sys.stderr)
        if stale:
            print(f"Error: {len(stale)} assets need to be uploaded", file=sys.stderr)
            return 1
        print("All assets are up to date", file=sys.stderr)
        return 0

    credentials = build_credentials(args, settings)
    retry_policy = RetryPolicy(
        max_retries=args.retry if args.retry is not None else settings.retry,
        delay=args.retry_delay if args.retry_delay is not None else settings.retry_delay,
    )

    try:
        async with get_preferred_client(credentials, **_client_options(args, credentials)) as client:
            pipeline = SyncPipeline(
                client,
                manifest,
                source,
                retry_policy=retry_policy,
                concurrency=args.concurrency or settings.concurrency,
                resize=args.resize,
                description=settings.description,
                prune_missing=args.prune,
            )
            report = await pipeline.run()
    except SyncAbortedError as e:
        if e.report.uploaded:
            print(
                f"Uploaded before failure: {', '.join(sorted(e.report.uploaded))}",
                file=sys.stderr,
            )
        raise
    finally:
        # Only committed entries exist in the manifest, so partial progress is safe to keep
        manifest.write(args.manifest)

    print(
        f"Uploaded {len(report.uploaded)} assets, {len(report.skipped)} already up to date",
        file=sys.stderr,
    )
    return 0


async def cache_map(args: argparse.Namespace, settings: SyncSettings) -> int:
    manifest = Manifest.read(args.manifest)
    credentials = build_credentials(args, settings, allow_api_key=False)

    async with get_preferred_client(credentials) as client:
        index = await create_cache_map(manifest, client, args.cache_dir, args.index_file)

    print(f"Wrote {len(index)} entries to {args.index_file}", file=sys.stderr)
    return 0


async def asset_list(args: argparse.Namespace, settings: SyncSettings) -> int:
    manifest = Manifest.read(args.manifest)
    asset_ids = write_asset_list(manifest, args.output)
    print(f"Wrote {len(asset_ids)} asset ids to {args.output}", file=sys.stderr)
    return 0


# ============================================================================
# Argument parsing
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="game-asset-sync",
        description="Upload, deduplicate and cache game image assets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Upload a single image with an API key
  game-asset-sync --api-key KEY upload-image sword.png --name Sword --user-id 1234

  # Upload everything that changed under assets/
  game-asset-sync --auth COOKIE sync assets/ --manifest asset-manifest.json --retry 3

  # Download packed spritesheets and write the cache index
  game-asset-sync --auth COOKIE create-cache-map --cache-dir .cache --index-file index.json
        """,
    )

    auth = parser.add_mutually_exclusive_group()
    auth.add_argument("--auth", type=SecretStr, help="Session cookie for the legacy API")
    auth.add_argument(
        "--api-key",
        type=SecretStr,
        help="Open Cloud API key (default: $GAME_ASSET_SYNC_API_KEY)",
    )
    parser.add_argument(
        "-v", "--verbose", dest="verbosity", action="count", default=0,
        help="Increase verbosity (repeatable)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # upload-image
    upload = subparsers.add_parser("upload-image", help="Upload a single image")
    upload.add_argument("path", type=Path, help="Path to the image to upload")
    upload.add_argument("--name", required=True, help="Name of the resulting asset")
    upload.add_argument("--description", help="Description of the resulting asset")
    _add_creator_arguments(upload)
    upload.add_argument("--resize", type=parse_resize, help="Resize to WxH before uploading")
    upload.add_argument(
        "--moderation-retry", action="store_true",
        help="Retry once with a generic name if the name is moderated (legacy API)",
    )
    upload.set_defaults(handler=upload_image)

    # download-image
    download = subparsers.add_parser("download-image", help="Download a single image")
    download.add_argument("asset_id", type=int, help="Id of the asset to download")
    download.add_argument("--output", "-o", type=Path, required=True, help="Output file")
    download.set_defaults(handler=download_image)

    # sync
    sync_parser = subparsers.add_parser("sync", help="Upload new or changed assets")
    sync_parser.add_argument("root", type=Path, help="Directory containing the assets")
    sync_parser.add_argument(
        "--manifest", type=Path, default=Path(DEFAULT_MANIFEST), help="Manifest file"
    )
    sync_parser.add_argument(
        "--target", choices=["remote", "none"], default="remote",
        help="'none' uploads nothing and fails if any asset is out of date",
    )
    sync_parser.add_argument(
        "--retry", type=int, help="Max re-uploads on rate limiting (default: unlimited)"
    )
    sync_parser.add_argument(
        "--retry-delay", type=float, help="Seconds between re-upload attempts (default: 60)"
    )
    sync_parser.add_argument("--concurrency", type=int, help="Parallel uploads")
    sync_parser.add_argument("--resize", type=parse_resize, help="Resize to WxH before uploading")
    sync_parser.add_argument(
        "--prune", action="store_true", help="Remove manifest entries for deleted assets"
    )
    _add_creator_arguments(sync_parser)
    sync_parser.add_argument("--moderation-retry", action="store_true", help=argparse.SUPPRESS)
    sync_parser.set_defaults(handler=sync)

    # create-cache-map
    cache = subparsers.add_parser(
        "create-cache-map",
        help="Download packed spritesheets and write an id -> path index",
    )
    cache.add_argument(
        "--manifest", type=Path, default=Path(DEFAULT_MANIFEST), help="Manifest file"
    )
    cache.add_argument("--cache-dir", type=Path, required=True, help="Directory for downloads")
    cache.add_argument("--index-file", type=Path, required=True, help="Index file to write")
    cache.set_defaults(handler=cache_map)

    # asset-list
    listing = subparsers.add_parser("asset-list", help="List all asset ids in the manifest")
    listing.add_argument(
        "--manifest", type=Path, default=Path(DEFAULT_MANIFEST), help="Manifest file"
    )
    listing.add_argument("--output", type=Path, required=True, help="File to write")
    listing.set_defaults(handler=asset_list)

    return parser


def _add_creator_arguments(parser: argparse.ArgumentParser) -> None:
    creator = parser.add_mutually_exclusive_group()
    creator.add_argument(
        "--user-id", type=int, help="User to upload to (only with an API key)"
    )
    creator.add_argument(
        "--group-id", type=int, help="Group to upload to"
    )


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbosity)

    try:
        exit_code = asyncio.run(args.handler(args, get_settings()))
    except KeyboardInterrupt:
        print("Interrupted, exiting now", file=sys.stderr)
        sys.exit(130)
    except (GameAssetSyncError, ValidationError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
