"""Type definitions for the sync engine.

TypedDicts mirror the JSON schemas in schemas/ (the on-disk documents);
dataclasses are the in-memory values passed between components.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict

from pydantic import BaseModel, SecretStr


class ManifestEntryDict(TypedDict, total=False):
    """On-disk form of a single manifest entry."""

    remoteId: int  # Last uploaded asset id
    contentHash: str  # sha256 hex of the raw local file


# AssetName (as plain string) -> entry
ManifestDict = dict[str, ManifestEntryDict]

# Stringified remote id -> location string
CacheIndexDict = dict[str, str]

# remote id -> original asset path or cache file path
CacheIndex = dict[int, str]


@dataclass(frozen=True)
class InputManifestEntry:
    """Last known uploaded identity and content fingerprint of an asset.

    Attributes:
        remote_id: Asset id assigned by the host, None if never uploaded
        content_hash: Fingerprint of the content that produced remote_id
    """

    remote_id: int | None = None
    content_hash: str | None = None


@dataclass(frozen=True)
class ImageUploadData:
    """A single upload request, built per call and discarded afterwards."""

    image_data: bytes
    name: str
    description: str


@dataclass(frozen=True)
class UploadResult:
    """Identifiers assigned by the host.

    The legacy backend distinguishes the visible asset from its backing
    content; the Open Cloud backend reports the same id twice.
    """

    asset_id: int
    backing_asset_id: int


class Credentials(BaseModel):
    """Authentication material handed to the client factory.

    The caller decides where these come from (flags, environment, a local
    session); the core never reads them itself.
    """

    cookie_token: SecretStr | None = None
    api_key: SecretStr | None = None
    user_id: int | None = None
    group_id: int | None = None
