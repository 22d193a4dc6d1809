"""
Backup, restore, export and import.

A backup bundle is a JSON object mapping each collection name of a database
to the array of its documents, every document serialised as Extended JSON so
that dates, ObjectIds, int64s and binaries survive a plain-text transport.

Restore writes a bundle back collection by collection. Original ``_id``s are
dropped so the bundle can be loaded into a database that already holds the
same documents. There is no cross-collection transaction: a failure stops the
loop and the collections already written stay written.
"""

import json
import logging
import time
from datetime import datetime
from typing import Any

from bson.errors import BSONError
from jsonschema import ValidationError, validate
from pymongo.errors import BulkWriteError, CollectionInvalid, PyMongoError

from ..codecs.ejson import deserialize_documents, serialize_documents
from ..codecs.tabular import from_csv
from ..constants import (
    BACKUP_FILENAME_TEMPLATE,
    DEFAULT_EJSON_MODE,
    EXPORT_FORMATS,
    ID_FIELD,
)
from ..core.connection import ConnectionManager
from ..exceptions import BackupError, BundleValidationError, QueryBuildError, RestoreError
from ..observability import clear_operation_context, get_logger, log_operation
from ..observability import set_operation_context, timed_operation

logger = logging.getLogger(__name__)
contextual_logger = get_logger(__name__)

BUNDLE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": {
        "type": "array",
        "items": {"type": "object"},
    },
}


# ============================================================================
# BUNDLE SHAPE
# ============================================================================


def validate_bundle(bundle: Any) -> dict[str, list[dict[str, Any]]]:
    """
    Check that a bundle maps collection names to arrays of documents.

    Raises:
        BundleValidationError: With the JSON path(s) of the offending values
    """
    try:
        validate(instance=bundle, schema=BUNDLE_SCHEMA)
    except ValidationError as e:
        path_parts = list(e.absolute_path)
        error_path = ".".join(str(p) for p in path_parts) if path_parts else "root"
        raise BundleValidationError(
            f"Invalid backup bundle: {e.message}", error_paths=[error_path]
        ) from e
    return bundle


def load_bundle(text: str | bytes) -> dict[str, list[dict[str, Any]]]:
    """
    Parse and validate backup bundle text.

    Raises:
        BundleValidationError: If the text is not JSON or not a bundle
    """
    try:
        bundle = json.loads(text)
    except ValueError as e:
        raise BundleValidationError(f"Invalid JSON in backup file: {e}") from e
    return validate_bundle(bundle)


def serialize_bundle(bundle: dict[str, list[dict[str, Any]]], indent: int | None = 2) -> str:
    """Render a serialised bundle as JSON text."""
    return json.dumps(bundle, indent=indent)


def backup_filename(db_name: str, now: datetime | None = None) -> str:
    """
    File name for a database backup download: ``<db>-backup-<epoch-millis>.json``.
    """
    now = now or datetime.now()
    return BACKUP_FILENAME_TEMPLATE.format(
        db_name=db_name, timestamp=int(now.timestamp() * 1000)
    )


def export_filename(collection_name: str, fmt: str = "json") -> str:
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unknown export format {fmt!r}; expected one of {list(EXPORT_FORMATS)}")
    return f"{collection_name}.{fmt}"


def _deserialize_bundle(
    bundle: dict[str, list[dict[str, Any]]], mode: str
) -> dict[str, list[dict[str, Any]]]:
    native: dict[str, list[dict[str, Any]]] = {}
    for collection_name, documents in bundle.items():
        try:
            native[collection_name] = deserialize_documents(documents, mode)
        except (BSONError, ValueError, TypeError) as e:
            raise BundleValidationError(
                f"Invalid extended JSON in collection '{collection_name}': {e}",
                error_paths=[collection_name],
            ) from e
    return native


def _strip_ids(documents: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [{k: v for k, v in doc.items() if k != ID_FIELD} for doc in documents]


async def _ensure_collection(db, collection_name: str) -> None:
    try:
        await db.create_collection(collection_name)
    except CollectionInvalid:
        logger.debug(f"Collection '{collection_name}' already exists")


# ============================================================================
# BACKUP / EXPORT
# ============================================================================


@timed_operation("backup.database")
async def backup_database(
    connection: ConnectionManager, db_name: str, mode: str = DEFAULT_EJSON_MODE
) -> dict[str, list[dict[str, Any]]]:
    """
    Read every collection of a database into a serialised bundle.

    Collections appear in the order the server lists them. Each collection is
    read in full with no filter and no paging.

    Args:
        connection: Initialised connection handle
        db_name: Database to back up
        mode: Extended JSON mode for the serialised documents

    Returns:
        Bundle of collection name -> Extended JSON documents

    Raises:
        BackupError: If the driver fails while listing or reading
    """
    start_time = time.time()
    set_operation_context(db_name=db_name)
    try:
        db = connection.get_database(db_name)
        bundle: dict[str, list[dict[str, Any]]] = {}
        for collection_name in await db.list_collection_names():
            documents = await db[collection_name].find({}).to_list(length=None)
            bundle[collection_name] = serialize_documents(documents, mode)
            logger.debug(f"Backed up {len(documents)} document(s) from '{collection_name}'")

        log_operation(
            contextual_logger,
            "backup.database",
            duration_ms=(time.time() - start_time) * 1000,
            collections=len(bundle),
            documents=sum(len(docs) for docs in bundle.values()),
        )
        return bundle
    except PyMongoError as e:
        log_operation(
            contextual_logger,
            "backup.database",
            level=logging.ERROR,
            success=False,
            duration_ms=(time.time() - start_time) * 1000,
            error=str(e),
        )
        raise BackupError(
            "Failed to backup database",
            context={"db_name": db_name, "error_type": type(e).__name__},
        ) from e
    finally:
        clear_operation_context()


@timed_operation("export.collection")
async def export_collection(
    connection: ConnectionManager,
    db_name: str,
    collection_name: str,
    mode: str = DEFAULT_EJSON_MODE,
) -> list[dict[str, Any]]:
    """
    Read all documents of one collection as Extended JSON documents.

    Raises:
        BackupError: If the driver fails
    """
    start_time = time.time()
    set_operation_context(db_name=db_name, collection_name=collection_name)
    try:
        collection = connection.get_database(db_name)[collection_name]
        documents = await collection.find({}).to_list(length=None)
        log_operation(
            contextual_logger,
            "export.collection",
            duration_ms=(time.time() - start_time) * 1000,
            documents=len(documents),
        )
        return serialize_documents(documents, mode)
    except PyMongoError as e:
        contextual_logger.error(f"Failed to export collection: {e}", exc_info=True)
        raise BackupError(
            "Failed to export collection",
            context={"db_name": db_name, "collection_name": collection_name},
        ) from e
    finally:
        clear_operation_context()


# ============================================================================
# RESTORE / IMPORT
# ============================================================================


@timed_operation("restore.database")
async def restore_database(
    connection: ConnectionManager,
    db_name: str,
    bundle: dict[str, list[dict[str, Any]]],
    mode: str = DEFAULT_EJSON_MODE,
) -> dict[str, int]:
    """
    Write a backup bundle into a database.

    Every collection in the bundle is created if missing, including empty
    ones. Documents are inserted with fresh ``_id``s in one bulk insert per
    collection.

    Args:
        connection: Initialised connection handle
        db_name: Target database
        bundle: Collection name -> Extended JSON documents
        mode: Extended JSON mode the bundle was written in

    Returns:
        Collection name -> number of documents inserted

    Raises:
        BundleValidationError: If the bundle is malformed; nothing is written
        RestoreError: If a write fails. ``results`` holds the counts for the
            collections handled so far, including a partial count for the
            failing collection when the driver reports one.
    """
    start_time = time.time()
    native = _deserialize_bundle(validate_bundle(bundle), mode)

    set_operation_context(db_name=db_name)
    db = connection.get_database(db_name)
    results: dict[str, int] = {}
    collection_name = None
    try:
        for collection_name, documents in native.items():
            await _ensure_collection(db, collection_name)
            if not documents:
                results[collection_name] = 0
                continue

            result = await db[collection_name].insert_many(_strip_ids(documents))
            results[collection_name] = len(result.inserted_ids)
            logger.info(
                f"Restored {results[collection_name]} document(s) into '{collection_name}'"
            )
    except BulkWriteError as e:
        results[collection_name] = e.details.get("nInserted", 0)
        _log_restore_failure(start_time, collection_name, e)
        raise RestoreError(
            "Failed to restore database",
            results=results,
            context={"db_name": db_name, "collection_name": collection_name},
        ) from e
    except PyMongoError as e:
        _log_restore_failure(start_time, collection_name, e)
        raise RestoreError(
            "Failed to restore database",
            results=results,
            context={"db_name": db_name, "collection_name": collection_name},
        ) from e
    else:
        log_operation(
            contextual_logger,
            "restore.database",
            duration_ms=(time.time() - start_time) * 1000,
            collections=len(results),
            documents=sum(results.values()),
        )
        return results
    finally:
        clear_operation_context()


def _log_restore_failure(start_time: float, collection_name: str | None, error: Exception) -> None:
    log_operation(
        contextual_logger,
        "restore.database",
        level=logging.ERROR,
        success=False,
        duration_ms=(time.time() - start_time) * 1000,
        collection_name=collection_name,
        error=str(error),
    )


@timed_operation("import.documents")
async def import_documents(
    connection: ConnectionManager,
    db_name: str,
    collection_name: str,
    documents: list[dict[str, Any]],
    mode: str = DEFAULT_EJSON_MODE,
) -> dict[str, int]:
    """
    Insert Extended JSON documents into one collection, keeping their ``_id``s.

    Returns:
        ``{"insertedCount": n}``

    Raises:
        BundleValidationError: If a document carries malformed Extended JSON
        RestoreError: If the insert fails
    """
    if not documents:
        return {"insertedCount": 0}

    native = _deserialize_bundle({collection_name: documents}, mode)[collection_name]

    start_time = time.time()
    set_operation_context(db_name=db_name, collection_name=collection_name)
    try:
        result = await connection.get_database(db_name)[collection_name].insert_many(native)
        inserted = len(result.inserted_ids)
        log_operation(
            contextual_logger,
            "import.documents",
            duration_ms=(time.time() - start_time) * 1000,
            documents=inserted,
        )
        return {"insertedCount": inserted}
    except BulkWriteError as e:
        contextual_logger.error(f"Import partially failed: {e}", exc_info=True)
        raise RestoreError(
            "Failed to import file",
            results={collection_name: e.details.get("nInserted", 0)},
            context={"db_name": db_name, "collection_name": collection_name},
        ) from e
    except PyMongoError as e:
        contextual_logger.error(f"Import failed: {e}", exc_info=True)
        raise RestoreError(
            "Failed to import file",
            context={"db_name": db_name, "collection_name": collection_name},
        ) from e
    finally:
        clear_operation_context()


def parse_import_file(filename: str, text: str) -> list[dict[str, Any]]:
    """
    Read documents from an uploaded file.

    ``.csv`` files are decoded as CSV; anything else must be JSON, either an
    array of objects or a single object.

    Raises:
        QueryBuildError: If the file cannot be decoded or holds no documents
    """
    if filename.lower().endswith(".csv"):
        documents = from_csv(text)
    else:
        try:
            parsed = json.loads(text)
        except ValueError as e:
            raise QueryBuildError(
                f"Invalid JSON in import file: {e}",
                query_type="import",
                context={"filename": filename},
            ) from e
        documents = parsed if isinstance(parsed, list) else [parsed]
        if not all(isinstance(doc, dict) for doc in documents):
            raise QueryBuildError(
                "Import file must contain a JSON object or an array of objects",
                query_type="import",
                context={"filename": filename},
            )

    if not documents:
        raise QueryBuildError(
            "No documents found in file", query_type="import", context={"filename": filename}
        )
    return documents
