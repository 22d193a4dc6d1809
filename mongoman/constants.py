"""
Constants for MONGOMAN.

This module contains all shared constants used across the codebase to avoid
magic numbers and improve maintainability.
"""

from typing import Final

# ============================================================================
# QUERY BUILDER CONSTANTS
# ============================================================================

OPERATOR_LABELS: Final[dict[str, str]] = {
    "$eq": "equals",
    "$ne": "not equals",
    "$gt": "greater than",
    "$gte": "greater or equal",
    "$lt": "less than",
    "$lte": "less or equal",
    "$in": "in array",
    "$nin": "not in array",
    "$regex": "matches regex",
    "$exists": "exists",
}
"""Human-readable label for every operator offered by the visual builder."""

LOGIC_AND: Final[str] = "$and"
LOGIC_OR: Final[str] = "$or"

# ============================================================================
# AGGREGATION PIPELINE CONSTANTS
# ============================================================================

STAGE_TYPES: Final[tuple[str, ...]] = (
    "$match",
    "$group",
    "$project",
    "$sort",
    "$limit",
    "$skip",
    "$unwind",
    "$lookup",
    "$addFields",
    "$count",
    "$out",
)
"""Stage verbs offered by the visual pipeline editor."""

STAGE_DESCRIPTIONS: Final[dict[str, str]] = {
    "$match": "Filter documents",
    "$group": "Group by field",
    "$project": "Select fields",
    "$sort": "Sort documents",
    "$limit": "Limit results",
    "$skip": "Skip documents",
    "$unwind": "Deconstruct array",
    "$lookup": "Join collections",
    "$addFields": "Add new fields",
    "$count": "Count documents",
    "$out": "Write to collection",
}

STAGE_TEMPLATES: Final[dict[str, str]] = {
    "$match": '{\n  "field": "value"\n}',
    "$group": '{\n  "_id": "$field",\n  "count": { "$sum": 1 }\n}',
    "$project": '{\n  "field1": 1,\n  "field2": 1,\n  "_id": 0\n}',
    "$sort": '{\n  "field": 1\n}',
    "$limit": "10",
    "$skip": "0",
    "$unwind": '"$arrayField"',
    "$lookup": (
        '{\n  "from": "otherCollection",\n  "localField": "field",\n'
        '  "foreignField": "field",\n  "as": "joined"\n}'
    ),
    "$addFields": '{\n  "newField": { "$concat": ["$field1", " ", "$field2"] }\n}',
    "$count": '"totalCount"',
    "$out": '"outputCollection"',
}
"""Starter body for a newly added stage, keyed by verb."""

DEFAULT_STAGE_BODY: Final[str] = "{}"

EMPTY_RAW_PIPELINE: Final[str] = "[\n  \n]"

# ============================================================================
# DATABASE CONSTANTS
# ============================================================================

# Connection pool defaults
DEFAULT_MAX_POOL_SIZE: Final[int] = 50
"""Default maximum MongoDB connection pool size."""

DEFAULT_MIN_POOL_SIZE: Final[int] = 10
"""Default minimum MongoDB connection pool size."""

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Default server selection timeout in milliseconds."""

DEFAULT_MAX_IDLE_TIME_MS: Final[int] = 45000
"""Default maximum idle time before closing connections (milliseconds)."""

DEFAULT_PAGE_SIZE: Final[int] = 20
"""Default number of documents per page when browsing a collection."""

INIT_COLLECTION_NAME: Final[str] = "_init"
"""Placeholder collection created so that a new database becomes visible."""

APP_NAME: Final[str] = "MONGOMAN"

# ============================================================================
# TRANSPORT CONSTANTS
# ============================================================================

EJSON_MODES: Final[tuple[str, ...]] = ("relaxed", "canonical")
DEFAULT_EJSON_MODE: Final[str] = "relaxed"

BACKUP_FILENAME_TEMPLATE: Final[str] = "{db_name}-backup-{timestamp}.json"
EXPORT_FORMATS: Final[tuple[str, ...]] = ("json", "csv")

ID_FIELD: Final[str] = "_id"
