"""Open Cloud assets API client (API key).

Uploading is two-phase: a create request returns an operation reference
("operations/<id>"), which is then polled until it resolves to an asset id.
Between polls the client waits base_delay * attempt**2 without blocking the
event loop, so sibling uploads keep running.
"""

import asyncio
import json
import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError
from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt

from ...clients.base import DEFAULT_TIMEOUT, ApiClient
from ...core.errors import (
    ApiKeyNeedsCreatorIdError,
    AssetGetFailedError,
    BadResponseJsonError,
    MalformedAssetIdError,
    MalformedOperationPathError,
    MissingAuthError,
    MissingOperationPathError,
    ResponseError,
    UnsupportedOperationError,
)
from ...core.types import Credentials, ImageUploadData, UploadResult

_logger = logging.getLogger(__name__)

ASSETS_URL = "https://apis.roblox.com/assets/v1/assets"
OPERATIONS_URL = "https://apis.roblox.com/assets/v1/operations"

API_KEY_HEADER = "x-api-key"
OPERATION_PREFIX = "operations/"
ASSET_TYPE = "Decal"

MAX_POLL_ATTEMPTS = 5
POLL_BASE_DELAY = 0.05  # seconds


class CreateAssetResponse(BaseModel):
    path: str | None = None


class OperationResult(BaseModel):
    asset_id: str | int | None = Field(default=None, alias="assetId")


class OperationResponse(BaseModel):
    done: bool = False
    response: OperationResult | None = None


def build_creator(credentials: Credentials) -> dict[str, str]:
    """Structured creator reference for the creation context.

    Raises:
        ApiKeyNeedsCreatorIdError: If neither a user nor a group id is given
    """
    if credentials.group_id is not None:
        return {"groupId": str(credentials.group_id)}
    if credentials.user_id is not None:
        return {"userId": str(credentials.user_id)}
    raise ApiKeyNeedsCreatorIdError()


def parse_operation_id(path: str | None) -> str:
    """Extract the operation id from an "operations/<id>" reference.

    Raises:
        MissingOperationPathError: If the reference is absent
        MalformedOperationPathError: If it doesn't have the expected form
    """
    if not path:
        raise MissingOperationPathError()

    if not path.startswith(OPERATION_PREFIX):
        raise MalformedOperationPathError(path)

    operation_id = path[len(OPERATION_PREFIX):]
    if not operation_id or "/" in operation_id:
        raise MalformedOperationPathError(path)

    return operation_id


class OpenCloudClient(ApiClient):
    """Client for the API-key authenticated Open Cloud assets API.

    Example:
        >>> credentials = Credentials(api_key=SecretStr("..."), user_id=1234)
        >>> async with OpenCloudClient(credentials) as client:
        ...     result = await client.upload_image(data)
    """

    name = "open_cloud"

    def __init__(
        self,
        credentials: Credentials,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        poll_base_delay: float = POLL_BASE_DELAY,
        max_poll_attempts: int = MAX_POLL_ATTEMPTS,
        assets_url: str = ASSETS_URL,
        operations_url: str = OPERATIONS_URL,
    ):
        """Initialize the client.

        Raises:
            MissingAuthError: If credentials carry no API key
            ApiKeyNeedsCreatorIdError: If no user or group id is given
        """
        if credentials.api_key is None:
            raise MissingAuthError()

        self.creator = build_creator(credentials)

        super().__init__(transport=transport, timeout=timeout)
        self.credentials = credentials
        self.poll_base_delay = poll_base_delay
        self.max_poll_attempts = max_poll_attempts
        self.assets_url = assets_url
        self.operations_url = operations_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        assert self.credentials.api_key is not None
        return {API_KEY_HEADER: self.credentials.api_key.get_secret_value()}

    async def _request_json(self, request: httpx.Request) -> Any:
        response = await self._send(request)
        body = response.text

        if not response.is_success:
            raise ResponseError(response.status_code, body)

        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise BadResponseJsonError(body, str(e)) from e

    async def create_asset(self, data: ImageUploadData) -> str:
        """Submit the create-asset request.

        Returns:
            The operation id to poll

        Raises:
            MissingOperationPathError: If the response has no operation path
            MalformedOperationPathError: If the path isn't "operations/<id>"
        """
        request_body = {
            "assetType": ASSET_TYPE,
            "displayName": data.name,
            "description": data.description,
            "creationContext": {"creator": self.creator},
        }
        files = {
            "request": (None, json.dumps(request_body), "application/json"),
            "fileContent": (f"{data.name}.png", data.image_data, "image/png"),
        }

        request = self._http.build_request(
            "POST", self.assets_url, files=files, headers=self._headers()
        )
        payload = await self._request_json(request)

        try:
            created = CreateAssetResponse.model_validate(payload)
        except ValidationError as e:
            raise BadResponseJsonError(json.dumps(payload), str(e)) from e

        return parse_operation_id(created.path)

    async def get_operation(self, operation_id: str) -> int | None:
        """Poll an operation once.

        Returns:
            The resolved asset id, or None while the operation is in progress

        Raises:
            MalformedAssetIdError: If the asset id isn't a non-negative decimal integer
        """
        request = self._http.build_request(
            "GET", f"{self.operations_url}/{operation_id}", headers=self._headers()
        )
        payload = await self._request_json(request)

        try:
            operation = OperationResponse.model_validate(payload)
        except ValidationError as e:
            raise BadResponseJsonError(json.dumps(payload), str(e)) from e

        if operation.response is None or operation.response.asset_id is None:
            return None

        asset_id = str(operation.response.asset_id)
        if not (asset_id.isascii() and asset_id.isdigit()):
            raise MalformedAssetIdError(asset_id)
        return int(asset_id)

    def _poll_delay(self, retry_state: RetryCallState) -> float:
        return self.poll_base_delay * retry_state.attempt_number**2

    async def wait_for_asset(self, operation_id: str) -> int:
        """Poll until the operation resolves.

        Raises:
            AssetGetFailedError: If still in progress after max_poll_attempts polls
        """

        def log_pending(retry_state: RetryCallState) -> None:
            _logger.debug(
                "Operation %s still in progress, polling again in %.2fs",
                operation_id,
                retry_state.next_action.sleep,
            )

        def give_up(retry_state: RetryCallState) -> int:
            raise AssetGetFailedError(
                f"Operation {operation_id} did not resolve after {self.max_poll_attempts} polls"
            )

        retrying = AsyncRetrying(
            retry=retry_if_result(lambda asset_id: asset_id is None),
            stop=stop_after_attempt(self.max_poll_attempts),
            wait=self._poll_delay,
            before_sleep=log_pending,
            sleep=asyncio.sleep,
            retry_error_callback=give_up,
        )
        return await retrying(self.get_operation, operation_id)

    async def upload_image(self, data: ImageUploadData) -> UploadResult:
        operation_id = await self.create_asset(data)
        asset_id = await self.wait_for_asset(operation_id)

        # No separate backing asset on this backend
        return UploadResult(asset_id=asset_id, backing_asset_id=asset_id)

    async def download_image(self, asset_id: int) -> bytes:
        raise UnsupportedOperationError("download_image", self.name)
