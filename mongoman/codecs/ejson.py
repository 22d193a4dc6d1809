"""
Type-preserving document codec built on MongoDB Extended JSON.

Documents read from the driver carry BSON types (ObjectId, datetime, Int64,
Binary, Decimal128, ...) that plain JSON cannot represent. Serialising a
document wraps each of them in a tagged object such as ``{"$oid": ...}`` or
``{"$date": ...}``; deserialising turns the tags back into native values.

Two modes are supported:

- ``relaxed`` keeps ordinary numbers as JSON numbers and renders dates as
  ISO-8601 strings. This is what the console exports by default.
- ``canonical`` tags every number with its BSON width, so an int64 that
  happens to be small still comes back as an int64.
"""

import json
from typing import Any

from bson import json_util
from bson.binary import UuidRepresentation
from bson.json_util import JSONMode, JSONOptions

from ..constants import DEFAULT_EJSON_MODE

_JSON_OPTIONS: dict[str, JSONOptions] = {
    "relaxed": JSONOptions(
        json_mode=JSONMode.RELAXED,
        uuid_representation=UuidRepresentation.STANDARD,
        tz_aware=True,
    ),
    "canonical": JSONOptions(
        json_mode=JSONMode.CANONICAL,
        uuid_representation=UuidRepresentation.STANDARD,
        tz_aware=True,
    ),
}


def get_json_options(mode: str = DEFAULT_EJSON_MODE) -> JSONOptions:
    """
    Get the Extended JSON options for a mode.

    Raises:
        ValueError: If the mode is unknown
    """
    try:
        return _JSON_OPTIONS[mode]
    except KeyError:
        raise ValueError(
            f"Unknown extended JSON mode {mode!r}; expected one of {sorted(_JSON_OPTIONS)}"
        ) from None


def dumps(obj: Any, mode: str = DEFAULT_EJSON_MODE, indent: int | None = None) -> str:
    """Serialise any value containing BSON types to Extended JSON text."""
    return json_util.dumps(obj, json_options=get_json_options(mode), indent=indent)


def loads(text: str | bytes, mode: str = DEFAULT_EJSON_MODE) -> Any:
    """Parse Extended JSON text, turning tagged wrappers back into BSON types."""
    return json_util.loads(text, json_options=get_json_options(mode))


def serialize_document(doc: dict[str, Any], mode: str = DEFAULT_EJSON_MODE) -> dict[str, Any]:
    """
    Convert a driver document into a plain JSON-compatible dict.

    Example:
        serialize_document({"_id": ObjectId("507f1f77bcf86cd799439011")})
        # {"_id": {"$oid": "507f1f77bcf86cd799439011"}}
    """
    return json.loads(dumps(doc, mode))


def deserialize_document(doc: dict[str, Any], mode: str = DEFAULT_EJSON_MODE) -> dict[str, Any]:
    """
    Convert a JSON-compatible dict with Extended JSON tags into a driver document.

    Values that are already native BSON types pass through unchanged.
    """
    return loads(dumps(doc, mode), mode)


def serialize_documents(
    docs: list[dict[str, Any]], mode: str = DEFAULT_EJSON_MODE
) -> list[dict[str, Any]]:
    """Serialise a list of driver documents. See serialize_document."""
    return [serialize_document(doc, mode) for doc in docs]


def deserialize_documents(
    docs: list[dict[str, Any]], mode: str = DEFAULT_EJSON_MODE
) -> list[dict[str, Any]]:
    """Deserialise a list of Extended JSON documents. See deserialize_document."""
    return [deserialize_document(doc, mode) for doc in docs]
