"""JSON Schema validation for the manifest and cache index documents.

This module loads the formal JSON Schemas shipped with the package and
validates documents before they are consumed or published.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema import ValidationError

from .types import CacheIndexDict, ManifestDict

# game_asset_sync/core/validator.py -> game_asset_sync/schemas/
SCHEMA_DIR = Path(__file__).parent.parent / "schemas"

MANIFEST_SCHEMA = "manifest.schema.json"
CACHE_INDEX_SCHEMA = "cache_index.schema.json"


@lru_cache(maxsize=None)
def load_schema(name: str) -> dict[str, Any]:
    """Load a JSON schema from the package.

    Args:
        name: File name of the schema inside schemas/

    Returns:
        Dictionary containing the JSON Schema.

    Raises:
        FileNotFoundError: If schema file doesn't exist
        json.JSONDecodeError: If schema is invalid JSON
    """
    schema_path = SCHEMA_DIR / name
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema file not found: {schema_path}")

    with schema_path.open("r", encoding="utf-8") as f:
        return json.load(f)  # type: ignore[no-any-return]


def validate_manifest(document: ManifestDict) -> None:
    """Validate a manifest document against its JSON Schema.

    Raises:
        ValidationError: If the document doesn't conform to the schema
    """
    jsonschema.validate(instance=document, schema=load_schema(MANIFEST_SCHEMA))


def validate_cache_index(document: CacheIndexDict) -> None:
    """Validate a cache index document against its JSON Schema.

    Raises:
        ValidationError: If the document doesn't conform to the schema
    """
    jsonschema.validate(instance=document, schema=load_schema(CACHE_INDEX_SCHEMA))


def _describe(error: ValidationError) -> str:
    error_path = " -> ".join(str(p) for p in error.path) if error.path else "root"
    message = f"Validation error at {error_path}: {error.message}"
    if error.instance:
        message += f"\nInvalid value: {error.instance}"
    return message


def validate_manifest_with_error_details(document: ManifestDict) -> tuple[bool, str | None]:
    """Validate a manifest and return detailed error information.

    Returns:
        Tuple of (is_valid, error_message). error_message is None if valid.
    """
    try:
        validate_manifest(document)
        return True, None
    except ValidationError as e:
        return False, _describe(e)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        return False, f"Schema error: {e}"


def validate_cache_index_with_error_details(document: CacheIndexDict) -> tuple[bool, str | None]:
    """Validate a cache index and return detailed error information."""
    try:
        validate_cache_index(document)
        return True, None
    except ValidationError as e:
        return False, _describe(e)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        return False, f"Schema error: {e}"
