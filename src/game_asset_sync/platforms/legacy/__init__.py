"""Legacy cookie + CSRF backend.

Usage:
    >>> from game_asset_sync import ClientRegistry, Credentials
    >>> client = ClientRegistry.create_client(
    ...     'legacy', Credentials(cookie_token=SecretStr(cookie))
    ... )
"""

from typing import Any

from ...core.types import Credentials
from ...registry import ClientRegistry
from .client import LegacyClient, RawUploadResponse, parse_asset_redirect
from .csrf import CsrfTokenCache


def _create_legacy_client(credentials: Credentials, **kwargs: Any) -> LegacyClient:
    """Factory function for creating LegacyClient instances."""
    return LegacyClient(credentials, **kwargs)


# Auto-register at module import
ClientRegistry.register_factory('legacy', _create_legacy_client)

__all__ = [
    "LegacyClient",
    "CsrfTokenCache",
    "RawUploadResponse",
    "parse_asset_redirect",
]
