"""Environment-backed settings for the command-line front end.

Only the CLI reads these; library code receives explicit values.
"""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .pipeline import DEFAULT_CONCURRENCY, DEFAULT_DESCRIPTION


class SyncSettings(BaseSettings):
    """Defaults for CLI options, overridable with GAME_ASSET_SYNC_* variables.

    Example:
        GAME_ASSET_SYNC_API_KEY=... GAME_ASSET_SYNC_RETRY=3 game-asset-sync sync assets/
    """

    model_config = SettingsConfigDict(
        env_prefix="GAME_ASSET_SYNC_",
        env_file=".env",
        extra="ignore",
    )

    # Session cookie for the legacy backend
    auth: SecretStr | None = None
    # Open Cloud API key
    api_key: SecretStr | None = None

    retry: int | None = None
    retry_delay: float = 60.0
    concurrency: int = DEFAULT_CONCURRENCY
    description: str = DEFAULT_DESCRIPTION


@lru_cache
def get_settings() -> SyncSettings:
    return SyncSettings()
