"""Exception hierarchy for asset synchronization.

Every failure the core can report derives from GameAssetSyncError so callers
(the CLI, or any other front end) can translate them into exit codes with a
single except clause. Remote failures derive from ApiClientError, image
failures from ImageProcessingError.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..pipeline import SyncReport
    from .asset_name import AssetName


class GameAssetSyncError(Exception):
    """Base class for all errors raised by game_asset_sync."""


# ============================================================================
# Remote API errors
# ============================================================================

class ApiClientError(GameAssetSyncError):
    """Base class for errors raised by a remote API client."""


class MissingAuthError(ApiClientError):
    def __init__(self) -> None:
        super().__init__("Unable to locate an authentication method (cookie or API key)")


class AmbiguousCreatorTypeError(ApiClientError):
    def __init__(self) -> None:
        super().__init__("Group ID and user ID cannot both be specified")


class ApiKeyNeedsCreatorIdError(ApiClientError):
    def __init__(self) -> None:
        super().__init__(
            "Either a group or a user ID must be specified when using an API key"
        )


class MissingCsrfTokenError(ApiClientError):
    def __init__(self) -> None:
        super().__init__("Request for CSRF token did not return an X-CSRF-Token header")


class HttpTransportError(ApiClientError):
    """Network-level failure (connection refused, timeout, TLS, ...)."""


class ApiError(ApiClientError):
    """The remote host reported a business failure inside a successful response."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Remote API error: {message}")
        self.message = message


class BadResponseJsonError(ApiClientError):
    """A success response whose body could not be understood.

    The raw body is kept so the failure can be diagnosed without re-running.
    """

    def __init__(self, body: str, reason: str | None = None) -> None:
        detail = f" ({reason})" if reason else ""
        super().__init__(
            f"Remote API returned success, but had malformed JSON response{detail}: {body}"
        )
        self.body = body
        self.reason = reason


class ResponseError(ApiClientError):
    """Non-success HTTP status."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"Remote API returned HTTP {status} with body: {body}")
        self.status = status
        self.body = body


class MissingOperationPathError(ApiClientError):
    def __init__(self) -> None:
        super().__init__("Operation path is missing")


class MalformedOperationPathError(ApiClientError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Operation path is malformed: {path!r}")
        self.path = path


class AssetGetFailedError(ApiClientError):
    def __init__(self, message: str = "Failed to retrieve asset ID from the asset operation") -> None:
        super().__init__(message)


class MalformedAssetIdError(AssetGetFailedError):
    def __init__(self, value: str) -> None:
        super().__init__(f"Failed to parse asset ID from asset get response: {value!r}")
        self.value = value


class UnsupportedOperationError(ApiClientError):
    def __init__(self, operation: str, backend: str) -> None:
        super().__init__(f"{operation} is not supported by the {backend} backend")
        self.operation = operation
        self.backend = backend


# ============================================================================
# Image processing errors
# ============================================================================

class ImageProcessingError(GameAssetSyncError):
    """Base class for image normalization failures."""


class DecodeError(ImageProcessingError):
    pass


class EncodeError(ImageProcessingError):
    pass


# ============================================================================
# Orchestration errors
# ============================================================================

class SyncAbortedError(GameAssetSyncError):
    """A fatal per-asset failure stopped the sync run.

    Attributes:
        asset_name: The asset whose pipeline failed
        cause: The underlying error
        report: Progress committed before the failure
    """

    def __init__(
        self,
        asset_name: "AssetName",
        cause: BaseException,
        report: "SyncReport",
    ) -> None:
        super().__init__(f"Sync aborted while processing {asset_name}: {cause}")
        self.asset_name = asset_name
        self.cause = cause
        self.report = report
