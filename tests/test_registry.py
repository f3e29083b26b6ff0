"""Tests for backend registration and selection."""

import logging
from unittest.mock import Mock

import pytest
from pydantic import SecretStr

import game_asset_sync  # noqa: F401  (registers the platforms)
from game_asset_sync.core.errors import AmbiguousCreatorTypeError, MissingAuthError
from game_asset_sync.core.types import Credentials
from game_asset_sync.platforms.legacy import LegacyClient
from game_asset_sync.platforms.open_cloud import OpenCloudClient
from game_asset_sync.registry import ClientRegistry, get_preferred_client


class TestClientRegistry:
    """Test the factory registry."""

    def test_platforms_discovered(self) -> None:
        assert {"legacy", "open_cloud"} <= set(ClientRegistry.list_clients())

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError, match="Unknown backend"):
            ClientRegistry.create_client("ftp", Credentials())

    def test_custom_factory(self, monkeypatch: pytest.MonkeyPatch) -> None:
        client = Mock()
        factory = Mock(return_value=client)
        monkeypatch.setitem(ClientRegistry._factories, "fake", factory)

        credentials = Credentials(cookie_token=SecretStr("cookie"))
        assert ClientRegistry.create_client("fake", credentials, timeout=5) is client
        factory.assert_called_once_with(credentials, timeout=5)


class TestGetPreferredClient:
    """Test backend selection from the shape of the credentials."""

    def test_no_credentials(self) -> None:
        with pytest.raises(MissingAuthError):
            get_preferred_client(Credentials(user_id=1))

    def test_user_and_group(self) -> None:
        credentials = Credentials(api_key=SecretStr("key"), user_id=1, group_id=2)
        with pytest.raises(AmbiguousCreatorTypeError):
            get_preferred_client(credentials)

    @pytest.mark.asyncio
    async def test_api_key_selects_open_cloud(self) -> None:
        credentials = Credentials(
            cookie_token=SecretStr("cookie"), api_key=SecretStr("key"), group_id=2
        )
        client = get_preferred_client(credentials)
        await client.aclose()

        assert isinstance(client, OpenCloudClient)

    @pytest.mark.asyncio
    async def test_cookie_selects_legacy(self) -> None:
        client = get_preferred_client(Credentials(cookie_token=SecretStr("cookie")))
        await client.aclose()

        assert isinstance(client, LegacyClient)

    @pytest.mark.asyncio
    async def test_user_id_without_api_key_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        credentials = Credentials(cookie_token=SecretStr("cookie"), user_id=1)

        with caplog.at_level(logging.WARNING):
            client = get_preferred_client(credentials)
        await client.aclose()

        assert isinstance(client, LegacyClient)
        assert "no API key was specified" in caplog.text

    @pytest.mark.asyncio
    async def test_passes_options_to_backend(self) -> None:
        client = get_preferred_client(
            Credentials(cookie_token=SecretStr("cookie")), moderation_retry=True
        )
        await client.aclose()

        assert isinstance(client, LegacyClient)
        assert client.moderation_retry
