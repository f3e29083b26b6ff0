"""Core identity model, manifest store and shared types.

This package contains schema validation, type definitions and the error
hierarchy used across all components.
"""

from .asset_name import AssetName
from .errors import (
    AmbiguousCreatorTypeError,
    ApiClientError,
    ApiError,
    ApiKeyNeedsCreatorIdError,
    AssetGetFailedError,
    BadResponseJsonError,
    DecodeError,
    EncodeError,
    GameAssetSyncError,
    HttpTransportError,
    ImageProcessingError,
    MalformedAssetIdError,
    MalformedOperationPathError,
    MissingAuthError,
    MissingCsrfTokenError,
    MissingOperationPathError,
    ResponseError,
    SyncAbortedError,
    UnsupportedOperationError,
)
from .manifest import Manifest, compute_content_hash, write_json_atomic
from .types import (
    CacheIndex,
    Credentials,
    ImageUploadData,
    InputManifestEntry,
    UploadResult,
)
from .validator import (
    validate_cache_index,
    validate_cache_index_with_error_details,
    validate_manifest,
    validate_manifest_with_error_details,
)

__all__ = [
    "AssetName",
    "Manifest",
    "InputManifestEntry",
    "Credentials",
    "ImageUploadData",
    "UploadResult",
    "CacheIndex",
    "compute_content_hash",
    "write_json_atomic",
    "validate_manifest",
    "validate_manifest_with_error_details",
    "validate_cache_index",
    "validate_cache_index_with_error_details",
    "GameAssetSyncError",
    "ApiClientError",
    "MissingAuthError",
    "AmbiguousCreatorTypeError",
    "ApiKeyNeedsCreatorIdError",
    "MissingCsrfTokenError",
    "HttpTransportError",
    "ApiError",
    "BadResponseJsonError",
    "ResponseError",
    "MissingOperationPathError",
    "MalformedOperationPathError",
    "AssetGetFailedError",
    "MalformedAssetIdError",
    "UnsupportedOperationError",
    "ImageProcessingError",
    "DecodeError",
    "EncodeError",
    "SyncAbortedError",
]
