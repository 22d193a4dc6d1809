"""
Whole-database backup and restore, single-collection export and import.
"""

from .engine import (
    BUNDLE_SCHEMA,
    backup_database,
    backup_filename,
    export_collection,
    export_filename,
    import_documents,
    load_bundle,
    parse_import_file,
    restore_database,
    serialize_bundle,
    validate_bundle,
)

__all__ = [
    "BUNDLE_SCHEMA",
    "backup_database",
    "restore_database",
    "export_collection",
    "import_documents",
    "parse_import_file",
    "validate_bundle",
    "load_bundle",
    "serialize_bundle",
    "backup_filename",
    "export_filename",
]
