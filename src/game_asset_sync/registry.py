"""Client registry for factory-based backend selection.

This module provides a central registry for API client factories, enabling
backend-agnostic orchestration and automatic platform discovery.
"""

import importlib
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from .core.errors import AmbiguousCreatorTypeError, MissingAuthError
from .core.types import Credentials

if TYPE_CHECKING:
    from .clients.base import ApiClient

_logger = logging.getLogger(__name__)

USER_ID_WITHOUT_API_KEY_WARNING = """A user ID was specified, but no API key was specified.

The upload will go to the user associated with the session cookie.

If you mean to use the Open Cloud API, make sure to provide an API key!"""


class ClientRegistry:
    """Central registry for API client factories.

    Platforms register themselves when imported, and the registry can
    automatically discover all available platforms. The backend is chosen
    once, from the shape of the credentials, and never switched mid-session.
    """

    _factories: dict[str, Callable[..., "ApiClient"]] = {}

    @classmethod
    def register_factory(cls, name: str, factory: Callable[..., "ApiClient"]) -> None:
        """Register a factory function for creating clients.

        Args:
            name: Name of the backend (e.g., 'legacy', 'open_cloud')
            factory: Callable taking (credentials, **kwargs) and returning a client
        """
        cls._factories[name] = factory

    @classmethod
    def create_client(cls, name: str, credentials: Credentials, **kwargs: Any) -> "ApiClient":
        """Create a client for a registered backend.

        Raises:
            ValueError: If name is not registered
        """
        if name not in cls._factories:
            available = ', '.join(cls._factories.keys()) or 'none'
            raise ValueError(
                f"Unknown backend: '{name}'. Available backends: {available}"
            )

        return cls._factories[name](credentials, **kwargs)

    @classmethod
    def list_clients(cls) -> list[str]:
        """List all registered backend names.

        Example:
            >>> ClientRegistry.list_clients()
            ['legacy', 'open_cloud']
        """
        return list(cls._factories.keys())

    @classmethod
    def discover_platforms(cls) -> None:
        """Auto-discover and import all platforms.

        Platforms register themselves via their __init__.py files. A platform
        that fails to import is skipped with a warning.
        """
        platforms_dir = Path(__file__).parent / 'platforms'

        if not platforms_dir.exists():
            return

        for platform_path in sorted(platforms_dir.iterdir()):
            if not platform_path.is_dir():
                continue

            if not (platform_path / '__init__.py').exists():
                continue

            try:
                importlib.import_module(
                    f'.platforms.{platform_path.name}',
                    package='game_asset_sync'
                )
            except ImportError as e:
                _logger.warning("Skipping platform %s: %s", platform_path.name, e)


def get_preferred_client(credentials: Credentials, **kwargs: Any) -> "ApiClient":
    """Pick the backend that matches the credentials and build its client.

    An API key selects Open Cloud; otherwise a cookie selects the legacy
    backend.

    Args:
        credentials: Authentication material
        **kwargs: Passed to the backend constructor (transport, timeouts, ...)

    Raises:
        MissingAuthError: If neither a cookie nor an API key is present
        AmbiguousCreatorTypeError: If both a user and a group id are given
        ApiKeyNeedsCreatorIdError: If an API key is given without a creator id
    """
    if credentials.cookie_token is None and credentials.api_key is None:
        raise MissingAuthError()

    if credentials.group_id is not None and credentials.user_id is not None:
        raise AmbiguousCreatorTypeError()

    if credentials.api_key is not None:
        return ClientRegistry.create_client('open_cloud', credentials, **kwargs)

    if credentials.user_id is not None:
        _logger.warning(USER_ID_WITHOUT_API_KEY_WARNING)

    return ClientRegistry.create_client('legacy', credentials, **kwargs)
