"""
Helpers for index descriptors.

The driver reports index keys as ordered SON and index sizes separately in
``collStats``. These helpers fold both into one plain descriptor per index.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

VALID_DIRECTIONS = (1, -1, "text", "hashed", "2d", "2dsphere")


def normalize_keys(
    keys: dict[str, Any] | list[tuple[str, Any]],
) -> list[tuple[str, Any]]:
    """
    Normalize index keys to a list of (field_name, direction) tuples.

    Raises:
        ValueError: If there are no keys or a direction is not supported
    """
    pairs = [(k, v) for k, v in keys.items()] if isinstance(keys, dict) else list(keys)
    if not pairs:
        raise ValueError("Index must have at least one key")
    for field_name, direction in pairs:
        if direction not in VALID_DIRECTIONS:
            raise ValueError(f"Unsupported index direction {direction!r} for field '{field_name}'")
    return pairs


def keys_to_dict(keys: dict[str, Any] | list[tuple[str, Any]]) -> dict[str, Any]:
    if isinstance(keys, dict):
        return dict(keys)
    return {k: v for k, v in keys}


def describe_index(index: dict[str, Any], index_sizes: dict[str, int]) -> dict[str, Any]:
    """
    Build a descriptor for one index.

    Args:
        index: Index document as returned by ``list_indexes``
        index_sizes: ``indexSizes`` from ``collStats``

    Returns:
        ``{"name", "key", "size", "unique"}``; size is 0 when unknown
    """
    name = index["name"]
    return {
        "name": name,
        "key": keys_to_dict(index.get("key", {})),
        "size": int(index_sizes.get(name, 0)),
        "unique": bool(index.get("unique", False)),
    }


def describe_indexes(
    indexes: list[dict[str, Any]], index_sizes: dict[str, int] | None = None
) -> list[dict[str, Any]]:
    index_sizes = index_sizes or {}
    return [describe_index(index, index_sizes) for index in indexes]
