"""Base abstraction for remote content host clients.

Every backend (legacy cookie/CSRF, Open Cloud API key) implements this
interface so the orchestrator and the cache-map builder can work with either
without knowing which one was selected.
"""

from abc import ABC, abstractmethod
from types import TracebackType

import httpx

from ..core.errors import HttpTransportError
from ..core.types import ImageUploadData, UploadResult

DEFAULT_TIMEOUT = 60.0


class ApiClient(ABC):
    """Abstract base class for remote API clients.

    Clients own an httpx.AsyncClient and are async context managers; use them
    with ``async with`` so connections are released.
    """

    #: Registry name of the backend
    name: str = "base"

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._http = httpx.AsyncClient(transport=transport, timeout=timeout)

    @abstractmethod
    async def upload_image(self, data: ImageUploadData) -> UploadResult:
        """Upload an encoded image.

        Args:
            data: Image bytes plus display name and description

        Returns:
            UploadResult with the ids assigned by the host

        Raises:
            ApiClientError: If the upload fails
        """

    @abstractmethod
    async def download_image(self, asset_id: int) -> bytes:
        """Download the content of an uploaded asset.

        Raises:
            ApiClientError: If the download fails or is unsupported
        """

    async def _send(self, request: httpx.Request) -> httpx.Response:
        """Send a request, mapping network failures to HttpTransportError."""
        try:
            return await self._http.send(request)
        except httpx.HTTPError as e:
            raise HttpTransportError(f"{request.method} {request.url} failed: {e}") from e

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
