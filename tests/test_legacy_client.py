"""Tests for the legacy cookie + CSRF client.

Requests are served by httpx.MockTransport handlers, so the tests exercise
the real request building and response handling without network access.
"""

import logging
from collections.abc import Callable

import httpx
import pytest
from pydantic import SecretStr

from game_asset_sync.core.errors import (
    ApiError,
    BadResponseJsonError,
    HttpTransportError,
    MissingAuthError,
    ResponseError,
)
from game_asset_sync.core.types import Credentials, ImageUploadData, UploadResult
from game_asset_sync.platforms.legacy import CsrfTokenCache, LegacyClient, parse_asset_redirect

Handler = Callable[[httpx.Request], httpx.Response]

UPLOAD = ImageUploadData(image_data=b"\x89PNG fake", name="Sword", description="A sword")

REDIRECT_XML = b"""<roblox xmlns:xmime="http://www.w3.org/2005/05/xmlmime" version="4">
  <Item class="Decal">
    <Properties>
      <Content name="Texture"><url>http://www.roblox.com/asset/?id=999</url></Content>
    </Properties>
  </Item>
</roblox>"""


def make_client(handler: Handler, **kwargs) -> LegacyClient:
    credentials = kwargs.pop("credentials", Credentials(cookie_token=SecretStr("cookie")))
    return LegacyClient(credentials, transport=httpx.MockTransport(handler), **kwargs)


def upload_ok(asset_id: int = 5, backing_asset_id: int = 5) -> httpx.Response:
    return httpx.Response(
        200,
        json={"success": True, "assetId": asset_id, "backingAssetId": backing_asset_id},
    )


def csrf_rejection(token: str) -> httpx.Response:
    return httpx.Response(403, headers={"X-CSRF-Token": token}, text="Token Validation Failed")


# ============================================================================
# Construction and CSRF priming
# ============================================================================

class TestConstruction:
    """Test client setup and the initial CSRF token fetch."""

    def test_requires_cookie(self) -> None:
        with pytest.raises(MissingAuthError):
            LegacyClient(Credentials(api_key=SecretStr("key")))

    @pytest.mark.asyncio
    async def test_primes_csrf_token_on_enter(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.host == "auth.roblox.com":
                return httpx.Response(403, headers={"X-CSRF-Token": "T0"})
            return upload_ok()

        async with make_client(handler) as client:
            assert client.csrf_token == "T0"
            await client.upload_image(UPLOAD)

        assert requests[0].method == "POST"
        assert requests[0].headers["Cookie"] == ".ROBLOSECURITY=cookie"
        assert requests[1].headers["X-CSRF-Token"] == "T0"

    @pytest.mark.asyncio
    async def test_missing_token_only_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that a failed token fetch is logged and the client continues."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200)

        with caplog.at_level(logging.WARNING):
            async with make_client(handler) as client:
                assert client.csrf_token is None

        assert "unable to fetch CSRF token" in caplog.text


# ============================================================================
# Upload
# ============================================================================

class TestUpload:
    """Test image upload and its failure modes."""

    @pytest.mark.asyncio
    async def test_request_shape(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return upload_ok(10, 11)

        credentials = Credentials(cookie_token=SecretStr("cookie"), group_id=77)
        client = make_client(handler, credentials=credentials)
        result = await client.upload_image(UPLOAD)
        await client.aclose()

        assert result == UploadResult(asset_id=10, backing_asset_id=11)
        request = requests[0]
        assert request.method == "POST"
        assert request.url.host == "data.roblox.com"
        assert request.url.params["assetTypeId"] == "13"
        assert request.url.params["name"] == "Sword"
        assert request.url.params["description"] == "A sword"
        assert request.url.params["groupId"] == "77"
        assert request.content == UPLOAD.image_data

    @pytest.mark.asyncio
    async def test_accepts_pascal_case_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"Success": True, "AssetId": 3, "BackingAssetId": 4}
            )

        client = make_client(handler)
        assert await client.upload_image(UPLOAD) == UploadResult(asset_id=3, backing_asset_id=4)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_retries_once_with_refreshed_token(self) -> None:
        """Test that a 403 carrying a new token is retried with that token."""
        requests: list[httpx.Request] = []
        responses = [csrf_rejection("T1"), upload_ok()]

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return responses.pop(0)

        client = make_client(handler)
        result = await client.upload_image(UPLOAD)
        await client.aclose()

        assert result == UploadResult(asset_id=5, backing_asset_id=5)
        assert len(requests) == 2
        assert "X-CSRF-Token" not in requests[0].headers
        assert requests[1].headers["X-CSRF-Token"] == "T1"
        assert requests[1].content == requests[0].content
        assert client.csrf_token == "T1"

    @pytest.mark.asyncio
    async def test_second_rejection_is_not_retried(self) -> None:
        """Test that a 403 on the retry is surfaced instead of looping."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return csrf_rejection(f"T{len(requests)}")

        client = make_client(handler)
        with pytest.raises(ResponseError) as exc_info:
            await client.upload_image(UPLOAD)
        await client.aclose()

        assert exc_info.value.status == 403
        assert exc_info.value.body == "Token Validation Failed"
        assert len(requests) == 2

    @pytest.mark.asyncio
    async def test_forbidden_without_token(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(403, text="Forbidden")

        client = make_client(handler)
        with pytest.raises(ResponseError) as exc_info:
            await client.upload_image(UPLOAD)
        await client.aclose()

        assert exc_info.value.status == 403
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_rate_limited_status_is_kept(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, text="Too many requests")

        client = make_client(handler)
        with pytest.raises(ResponseError) as exc_info:
            await client.upload_image(UPLOAD)
        await client.aclose()

        assert exc_info.value.status == 429
        assert exc_info.value.body == "Too many requests"

    @pytest.mark.asyncio
    async def test_failure_reported_in_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"Success": False, "Message": "Not enough funds"})

        client = make_client(handler)
        with pytest.raises(ApiError) as exc_info:
            await client.upload_image(UPLOAD)
        await client.aclose()

        assert exc_info.value.message == "Not enough funds"

    @pytest.mark.asyncio
    async def test_malformed_body_keeps_raw_text(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>oops</html>")

        client = make_client(handler)
        with pytest.raises(BadResponseJsonError) as exc_info:
            await client.upload_image(UPLOAD)
        await client.aclose()

        assert exc_info.value.body == "<html>oops</html>"

    @pytest.mark.asyncio
    async def test_success_without_ids(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text='{"success": true}')

        client = make_client(handler)
        with pytest.raises(BadResponseJsonError, match="missing asset ids") as exc_info:
            await client.upload_image(UPLOAD)
        await client.aclose()

        assert exc_info.value.body == '{"success": true}'

    @pytest.mark.asyncio
    async def test_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)
        with pytest.raises(HttpTransportError) as exc_info:
            await client.upload_image(UPLOAD)
        await client.aclose()

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


class TestModerationRetry:
    """Test the optional re-upload under a generic name."""

    @staticmethod
    def moderated_then_ok(requests: list[httpx.Request]) -> Handler:
        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if len(requests) == 1:
                return httpx.Response(
                    200,
                    json={"success": False, "message": "Asset name is inappropriate for Roblox"},
                )
            return upload_ok(8, 9)

        return handler

    @pytest.mark.asyncio
    async def test_retries_with_generic_name(self) -> None:
        requests: list[httpx.Request] = []
        client = make_client(self.moderated_then_ok(requests), moderation_retry=True)

        result = await client.upload_image(UPLOAD)
        await client.aclose()

        assert result == UploadResult(asset_id=8, backing_asset_id=9)
        assert [r.url.params["name"] for r in requests] == ["Sword", "image"]

    @pytest.mark.asyncio
    async def test_disabled_by_default(self) -> None:
        requests: list[httpx.Request] = []
        client = make_client(self.moderated_then_ok(requests))

        with pytest.raises(ApiError, match="inappropriate"):
            await client.upload_image(UPLOAD)
        await client.aclose()

        assert len(requests) == 1


# ============================================================================
# Download
# ============================================================================

class TestDownload:
    """Test asset download and the XML indirection."""

    @pytest.mark.asyncio
    async def test_follows_xml_indirection(self) -> None:
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            asset_id = request.url.params["id"]
            requested.append(asset_id)
            if asset_id == "1":
                return httpx.Response(200, content=REDIRECT_XML)
            return httpx.Response(200, content=b"\x89PNG real image")

        client = make_client(handler)
        content = await client.download_image(1)
        await client.aclose()

        assert content == b"\x89PNG real image"
        assert requested == ["1", "999"]

    @pytest.mark.asyncio
    async def test_returns_non_xml_content_unchanged(self) -> None:
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(request.url.params["id"])
            return httpx.Response(200, content=b"\x89PNG\r\n\x1a\nbinary")

        client = make_client(handler)
        content = await client.download_image(42)
        await client.aclose()

        assert content == b"\x89PNG\r\n\x1a\nbinary"
        assert requested == ["42"]

    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, text="Asset not found")

        client = make_client(handler)
        with pytest.raises(ResponseError) as exc_info:
            await client.download_image(42)
        await client.aclose()

        assert exc_info.value.status == 404


class TestParseAssetRedirect:
    """Test parsing of the indirection document."""

    def test_extracts_id(self) -> None:
        assert parse_asset_redirect(REDIRECT_XML) == 999

    def test_non_xml(self) -> None:
        assert parse_asset_redirect(b"\x89PNG") is None

    def test_unknown_root(self) -> None:
        with pytest.raises(ApiError, match="Unknown XML"):
            parse_asset_redirect(b"<html><url>x</url></html>")

    def test_missing_url(self) -> None:
        with pytest.raises(ApiError, match="Missing url"):
            parse_asset_redirect(b"<roblox></roblox>")

    def test_url_without_id(self) -> None:
        with pytest.raises(ApiError, match="Missing asset id"):
            parse_asset_redirect(b"<roblox><url>http://www.roblox.com/</url></roblox>")


class TestCsrfTokenCache:
    """Test the token cell shared by a client's requests."""

    def test_starts_with_initial_token(self) -> None:
        assert CsrfTokenCache().get() is None
        assert CsrfTokenCache("T0").get() == "T0"

    def test_set_takes_effect_immediately(self) -> None:
        """Test that a refresh is visible without awaiting anything."""
        cache = CsrfTokenCache("T0")

        assert cache.set("T1") is None
        assert cache.get() == "T1"

    def test_last_writer_wins(self) -> None:
        cache = CsrfTokenCache()
        cache.set("T1")
        cache.set("T2")

        assert cache.get() == "T2"
