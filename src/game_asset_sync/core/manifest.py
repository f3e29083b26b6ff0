"""Manifest store: the authoritative asset name -> uploaded identity mapping.

The manifest records, for every local asset, the remote id it was last
uploaded as and the fingerprint of the content that upload came from. An
entry with a remote id stays valid until the local content hash changes.

Updates happen per entry. Each asset name has its own lock, so concurrent
upload pipelines for unrelated assets never wait on each other, and an entry
is replaced in a single assignment so readers see either the old or the new
value, never a mix.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import os
import tempfile
from collections.abc import Iterable, Iterator
from pathlib import Path

from .asset_name import AssetName
from .types import InputManifestEntry, ManifestDict, ManifestEntryDict
from .validator import validate_manifest


def compute_content_hash(data: bytes) -> str:
    """Fingerprint raw asset content (lowercase sha256 hex)."""
    return hashlib.sha256(data).hexdigest()


def _as_name(name: str) -> AssetName:
    return name if isinstance(name, AssetName) else AssetName.normalize(name)


def write_json_atomic(path: Path, document: object) -> None:
    """Write a pretty-printed JSON document, replacing path atomically.

    The document is written to a temporary file in the same directory and
    renamed over the target, so readers never observe a half-written file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2)
            f.write("\n")
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


class Manifest:
    """In-memory manifest with per-entry concurrent-safe updates.

    Example:
        >>> manifest = Manifest.read(Path("asset-manifest.json"))
        >>> if manifest.needs_upload(name, content_hash):
        ...     await manifest.update_entry(name, 1234, content_hash)
        >>> manifest.write(Path("asset-manifest.json"))
    """

    def __init__(self, entries: dict[AssetName, InputManifestEntry] | None = None):
        self._entries: dict[AssetName, InputManifestEntry] = dict(entries or {})
        self._locks: dict[AssetName, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, document: ManifestDict) -> "Manifest":
        """Build a manifest from its on-disk document form.

        Raises:
            ValidationError: If the document doesn't conform to the schema
            ValueError: If two keys normalize to the same asset name
        """
        validate_manifest(document)

        entries: dict[AssetName, InputManifestEntry] = {}
        for raw_name, raw_entry in document.items():
            name = AssetName.normalize(raw_name)
            if name in entries:
                raise ValueError(f"Duplicate manifest entry for asset {raw_name!r}")
            entries[name] = InputManifestEntry(
                remote_id=raw_entry.get("remoteId"),
                content_hash=raw_entry.get("contentHash"),
            )
        return cls(entries)

    def to_dict(self) -> ManifestDict:
        """Convert to the on-disk document form, keys sorted for stable diffs."""
        document: ManifestDict = {}
        for name in sorted(self._entries, key=lambda n: n.casefold()):
            entry = self._entries[name]
            raw: ManifestEntryDict = {}
            if entry.remote_id is not None:
                raw["remoteId"] = entry.remote_id
            if entry.content_hash is not None:
                raw["contentHash"] = entry.content_hash
            document[str(name)] = raw
        return document

    @classmethod
    def read(cls, path: Path) -> "Manifest":
        """Load a manifest file. A missing file is an empty manifest."""
        if not path.exists():
            return cls()

        with path.open("r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def write(self, path: Path) -> None:
        """Persist the manifest as pretty JSON (atomic replace)."""
        document = self.to_dict()
        validate_manifest(document)
        write_json_atomic(path, document)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return _as_name(name) in self._entries

    def __iter__(self) -> Iterator[AssetName]:
        return iter(self._entries)

    def items(self) -> list[tuple[AssetName, InputManifestEntry]]:
        """Snapshot of (name, entry) pairs."""
        return list(self._entries.items())

    def get(self, name: str) -> InputManifestEntry | None:
        return self._entries.get(_as_name(name))

    def needs_upload(self, name: str, content_hash: str) -> bool:
        """Whether an asset has never been uploaded or its content changed."""
        entry = self._entries.get(_as_name(name))
        if entry is None or entry.remote_id is None:
            return True
        return entry.content_hash != content_hash

    def remote_ids(self) -> list[int]:
        """Sorted unique remote ids present in the manifest."""
        return sorted({e.remote_id for e in self._entries.values() if e.remote_id is not None})

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _lock_for(self, name: AssetName) -> asyncio.Lock:
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks.setdefault(name, asyncio.Lock())
        return lock

    async def update_entry(self, name: str, remote_id: int, content_hash: str) -> None:
        """Record a successful upload for one asset.

        This is the only path that changes an asset's remote identity.
        """
        name = _as_name(name)
        async with self._lock_for(name):
            self._entries[name] = InputManifestEntry(
                remote_id=remote_id,
                content_hash=content_hash,
            )

    def merge(self, other: "Manifest") -> None:
        """Overlay entries from another manifest.

        Entries present in other replace same-named entries here; all other
        entries are kept untouched.
        """
        for name, entry in other.items():
            self._entries[name] = entry

    def remove_missing(self, names: Iterable[AssetName]) -> list[AssetName]:
        """Drop entries whose asset no longer exists locally.

        Args:
            names: Asset names that currently exist

        Returns:
            The names that were removed
        """
        keep = {_as_name(name) for name in names}
        removed = [name for name in self._entries if name not in keep]
        for name in removed:
            del self._entries[name]
            self._locks.pop(name, None)
        return removed
