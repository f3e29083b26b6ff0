"""Open Cloud API-key backend.

Usage:
    >>> from game_asset_sync import ClientRegistry, Credentials
    >>> client = ClientRegistry.create_client(
    ...     'open_cloud', Credentials(api_key=SecretStr(key), group_id=42)
    ... )
"""

from typing import Any

from ...core.types import Credentials
from ...registry import ClientRegistry
from .client import OpenCloudClient, build_creator, parse_operation_id


def _create_open_cloud_client(credentials: Credentials, **kwargs: Any) -> OpenCloudClient:
    """Factory function for creating OpenCloudClient instances."""
    return OpenCloudClient(credentials, **kwargs)


# Auto-register at module import
ClientRegistry.register_factory('open_cloud', _create_open_cloud_client)

__all__ = [
    "OpenCloudClient",
    "build_creator",
    "parse_operation_id",
]
