"""Legacy web API client (session cookie + CSRF token).

Uploads go to the classic decal upload endpoint and downloads to the asset
delivery endpoint. Every state-changing request must carry an X-CSRF-Token;
the server rejects a stale token with 403 and hands out a fresh one in the
response headers, which is cached and used for exactly one retry.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import replace
from xml.etree import ElementTree

import httpx
from pydantic import AliasChoices, BaseModel, Field, ValidationError

from ...clients.base import DEFAULT_TIMEOUT, ApiClient
from ...core.errors import (
    ApiError,
    BadResponseJsonError,
    HttpTransportError,
    MissingAuthError,
    MissingCsrfTokenError,
    ResponseError,
)
from ...core.types import Credentials, ImageUploadData, UploadResult
from .csrf import CsrfTokenCache

_logger = logging.getLogger(__name__)

UPLOAD_URL = "https://data.roblox.com/data/upload/json"
DOWNLOAD_URL = "https://assetdelivery.roblox.com/v1/asset/"
AUTH_URL = "https://auth.roblox.com/"

CSRF_HEADER = "X-CSRF-Token"
SESSION_COOKIE = ".ROBLOSECURITY"

# Asset type id of a Decal on the legacy upload endpoint
DECAL_ASSET_TYPE_ID = 13

# Name used when retrying an upload whose name was moderated
MODERATED_FALLBACK_NAME = "image"

# <url>http://www.roblox.com/asset/?id=999</url>
ASSET_URL_ID_PATTERN = re.compile(r"asset/?\?id=(\d+)")

RequestFactory = Callable[[dict[str, str]], httpx.Request]


class RawUploadResponse(BaseModel):
    """What the upload endpoint returns, before failures are handled."""

    success: bool = Field(validation_alias=AliasChoices("Success", "success"))
    message: str | None = Field(default=None, validation_alias=AliasChoices("Message", "message"))
    asset_id: int | None = Field(default=None, validation_alias=AliasChoices("AssetId", "assetId"))
    backing_asset_id: int | None = Field(
        default=None, validation_alias=AliasChoices("BackingAssetId", "backingAssetId")
    )


def parse_asset_redirect(content: bytes) -> int | None:
    """Extract the canonical asset id from an asset delivery XML document.

    Args:
        content: Body returned by the download endpoint

    Returns:
        The id to download instead, or None if content isn't XML (it is
        then the asset itself)

    Raises:
        ApiError: If the XML is not the expected indirection document
    """
    try:
        root = ElementTree.fromstring(content)
    except ElementTree.ParseError:
        return None

    if root.tag != "roblox":
        raise ApiError(f"Unknown XML from asset delivery API (root element <{root.tag}>)")

    url = root.find(".//url")
    if url is None or not url.text:
        raise ApiError("Missing url element in asset delivery XML response")

    match = ASSET_URL_ID_PATTERN.search(url.text)
    if match is None:
        raise ApiError(f"Missing asset id in asset delivery url: {url.text.strip()!r}")

    return int(match.group(1))


class LegacyClient(ApiClient):
    """Client for the cookie-authenticated legacy endpoints.

    Example:
        >>> credentials = Credentials(cookie_token=SecretStr("..."))
        >>> async with LegacyClient(credentials) as client:
        ...     result = await client.upload_image(data)
    """

    name = "legacy"

    def __init__(
        self,
        credentials: Credentials,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        moderation_retry: bool = False,
        upload_url: str = UPLOAD_URL,
        download_url: str = DOWNLOAD_URL,
        auth_url: str = AUTH_URL,
    ):
        """Initialize the client. No network traffic happens here.

        Args:
            credentials: Must carry a cookie token
            transport: Optional httpx transport (tests use MockTransport)
            timeout: Per-request timeout in seconds
            moderation_retry: Re-upload once under a generic name when the
                             host rejects the asset name as inappropriate
            upload_url: Upload endpoint
            download_url: Asset delivery endpoint
            auth_url: Endpoint used to obtain an initial CSRF token

        Raises:
            MissingAuthError: If credentials carry no cookie token
        """
        if credentials.cookie_token is None:
            raise MissingAuthError()

        super().__init__(transport=transport, timeout=timeout)
        self.credentials = credentials
        self.moderation_retry = moderation_retry
        self.upload_url = upload_url
        self.download_url = download_url
        self.auth_url = auth_url
        self._csrf = CsrfTokenCache()

    async def __aenter__(self) -> "LegacyClient":
        await self.prime_csrf_token()
        return self

    @property
    def csrf_token(self) -> str | None:
        return self._csrf.get()

    # ------------------------------------------------------------------
    # CSRF handling
    # ------------------------------------------------------------------

    async def fetch_csrf_token(self) -> str:
        """Ask the auth endpoint for a CSRF token.

        Raises:
            MissingCsrfTokenError: If the response has no X-CSRF-Token header
            HttpTransportError: On network failure
        """
        request = self._http.build_request(
            "POST",
            self.auth_url,
            headers={"Cookie": self._session_cookie(), "Content-Length": "0"},
        )
        response = await self._send(request)

        token = response.headers.get(CSRF_HEADER)
        if not token:
            raise MissingCsrfTokenError()
        return token

    async def prime_csrf_token(self) -> None:
        """Fetch an initial token; failure only logs a warning.

        The first real request discovers the actual authorization state.
        """
        try:
            token = await self.fetch_csrf_token()
        except (MissingCsrfTokenError, HttpTransportError) as e:
            _logger.warning("Was unable to fetch CSRF token, continuing without one: %s", e)
            return

        self._csrf.set(token)

    def _session_cookie(self) -> str:
        assert self.credentials.cookie_token is not None
        return f"{SESSION_COOKIE}={self.credentials.cookie_token.get_secret_value()}"

    def _auth_headers(self, csrf_token: str | None = None) -> dict[str, str]:
        headers = {"Cookie": self._session_cookie()}
        token = csrf_token if csrf_token is not None else self._csrf.get()
        if token:
            headers[CSRF_HEADER] = token
        return headers

    async def execute_with_csrf_retry(self, make_request: RequestFactory) -> httpx.Response:
        """Send a request, retrying once if the server hands out a new CSRF token.

        Args:
            make_request: Builds the request from the auth headers to attach.
                         Called again to rebuild the identical request for
                         the retry.

        Returns:
            The first response, or the response of the single retry. A second
            403 is returned as-is.
        """
        response = await self._send(make_request(self._auth_headers()))

        if response.status_code != httpx.codes.FORBIDDEN:
            return response

        token = response.headers.get(CSRF_HEADER)
        if not token:
            # Forbidden for some other reason than a stale token
            return response

        _logger.debug("Retrying request with refreshed X-CSRF-Token...")
        self._csrf.set(token)

        return await self._send(make_request(self._auth_headers(csrf_token=token)))

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    async def upload_image(self, data: ImageUploadData) -> UploadResult:
        """Upload an image, raising if anything goes wrong.

        Raises:
            ApiError: If the host reports failure in the response body
            BadResponseJsonError: If a 2xx body can't be understood
            ResponseError: On non-success HTTP status
            HttpTransportError: On network failure
        """
        body, response = await self._upload_image_raw(data)

        if (
            not response.success
            and self.moderation_retry
            and "inappropriate" in (response.message or "").lower()
        ):
            _logger.warning(
                "Image name '%s' was moderated, retrying with different name...", data.name
            )
            body, response = await self._upload_image_raw(
                replace(data, name=MODERATED_FALLBACK_NAME)
            )

        return self._to_result(body, response)

    def _to_result(self, body: str, response: RawUploadResponse) -> UploadResult:
        # Some errors are reported inside a successful HTTP response
        if not response.success:
            raise ApiError(response.message or "upload was not successful")

        if response.asset_id is None or response.backing_asset_id is None:
            raise BadResponseJsonError(body, "success response is missing asset ids")

        return UploadResult(
            asset_id=response.asset_id,
            backing_asset_id=response.backing_asset_id,
        )

    async def _upload_image_raw(self, data: ImageUploadData) -> tuple[str, RawUploadResponse]:
        params = {
            "assetTypeId": str(DECAL_ASSET_TYPE_ID),
            "name": data.name,
            "description": data.description,
        }
        if self.credentials.group_id is not None:
            params["groupId"] = str(self.credentials.group_id)

        def make_request(headers: dict[str, str]) -> httpx.Request:
            return self._http.build_request(
                "POST",
                self.upload_url,
                params=params,
                content=data.image_data,
                headers=headers,
            )

        response = await self.execute_with_csrf_retry(make_request)
        body = response.text

        if not response.is_success:
            raise ResponseError(response.status_code, body)

        try:
            return body, RawUploadResponse.model_validate_json(body)
        except ValidationError as e:
            raise BadResponseJsonError(body, str(e)) from e

    # ------------------------------------------------------------------
    # Download
    # ------------------------------------------------------------------

    async def download_image(self, asset_id: int) -> bytes:
        """Download an asset, following the XML indirection if present.

        Raises:
            ResponseError: On non-success HTTP status
            ApiError: If the indirection document is malformed
            HttpTransportError: On network failure
        """
        content = await self._download_raw(asset_id)

        redirect_id = parse_asset_redirect(content)
        if redirect_id is None:
            return content

        _logger.info("Got actual asset id %d, downloading that instead...", redirect_id)
        return await self._download_raw(redirect_id)

    async def _download_raw(self, asset_id: int) -> bytes:
        def make_request(headers: dict[str, str]) -> httpx.Request:
            return self._http.build_request(
                "GET",
                self.download_url,
                params={"id": str(asset_id)},
                headers=headers,
            )

        response = await self.execute_with_csrf_retry(make_request)
        if not response.is_success:
            raise ResponseError(response.status_code, response.text)

        return response.content
