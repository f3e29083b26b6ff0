"""Shared fixtures for the test suite."""

from collections.abc import Callable
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from game_asset_sync.config import get_settings


def _make_png(
    size: tuple[int, int] = (4, 4),
    color: tuple[int, ...] = (255, 0, 0, 255),
    mode: str = "RGBA",
) -> bytes:
    image = Image.new(mode, size, color)
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_png() -> Callable[..., bytes]:
    """Factory for solid-color PNG bytes."""
    return _make_png


@pytest.fixture
def asset_dir(tmp_path: Path) -> Path:
    """Directory with two small images in a nested layout."""
    root = tmp_path / "assets"
    (root / "ui").mkdir(parents=True)
    (root / "sword.png").write_bytes(_make_png(color=(255, 0, 0, 255)))
    (root / "ui" / "Shield.png").write_bytes(_make_png(color=(0, 0, 255, 255)))
    return root


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Keep the developer's environment and .env out of the tests."""
    for name in ("AUTH", "API_KEY", "RETRY", "RETRY_DELAY", "CONCURRENCY", "DESCRIPTION"):
        monkeypatch.delenv(f"GAME_ASSET_SYNC_{name}", raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
