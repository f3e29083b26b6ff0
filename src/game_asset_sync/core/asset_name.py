"""Normalized identities for local input images.

An AssetName is the key of a manifest entry. It is derived from the asset's
path relative to the project root, with separators normalized to "/".
Comparison is case-insensitive so the same file referenced with a different
spelling on a case-insensitive filesystem maps to the same entry.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath


class AssetName(str):
    """Normalized, case-insensitive asset identity.

    The original spelling is preserved (it is also the location string used
    in the cache index), while hashing and equality use the casefolded form.

    Example:
        >>> AssetName.normalize("Sprites\\\\Sword.png") == "sprites/sword.png"
        True
    """

    def __new__(cls, value: str) -> "AssetName":
        instance = super().__new__(cls, value)
        instance._key = value.casefold()
        return instance

    @classmethod
    def normalize(cls, raw: str) -> "AssetName":
        """Build an AssetName from a raw, possibly Windows-style, relative path.

        Args:
            raw: Relative path string

        Returns:
            Normalized AssetName

        Raises:
            ValueError: If the path is empty, absolute or climbs out of the root
        """
        text = raw.replace("\\", "/").strip()
        if text.startswith("/"):
            raise ValueError(f"Asset name must be relative: {raw!r}")

        parts = []
        for part in text.split("/"):
            if part in ("", "."):
                continue
            if part == "..":
                raise ValueError(f"Asset name escapes the project root: {raw!r}")
            parts.append(part)

        if not parts:
            raise ValueError(f"Asset name is empty: {raw!r}")

        return cls(str(PurePosixPath(*parts)))

    @classmethod
    def from_path(cls, path: Path, root: Path) -> "AssetName":
        """Derive an AssetName from a file path under a project root.

        Raises:
            ValueError: If path is not inside root
        """
        # Symlinks keep the name they are found under
        relative = path.absolute().relative_to(root.absolute())
        return cls.normalize(relative.as_posix())

    @property
    def stem(self) -> str:
        """File name without directories or extension, used as display name."""
        return PurePosixPath(self).stem

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AssetName):
            return self._key == other._key
        if isinstance(other, str):
            return self._key == other.casefold()
        return NotImplemented

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self) -> int:
        return hash(self._key)

    def __repr__(self) -> str:
        return f"AssetName({str.__repr__(self)})"
