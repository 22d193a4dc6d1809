"""
Database browsing and management.

DatabaseBrowser is the console's window onto a deployment: it lists
databases and collections, pages through documents, runs aggregations and
performs the single-call management operations (create/drop/rename, index
maintenance, document edits). Each method is one driver call; nothing is
orchestrated across calls.
"""

import logging
import platform
import time
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any

import pymongo
from bson import ObjectId
from pymongo.errors import PyMongoError

from ..codecs.ejson import serialize_documents
from ..constants import DEFAULT_EJSON_MODE, ID_FIELD, INIT_COLLECTION_NAME
from ..core.connection import ConnectionManager
from ..exceptions import DatabaseOperationError
from ..observability import get_logger, log_operation, timed_operation
from .indexes import describe_indexes, normalize_keys

logger = logging.getLogger(__name__)
contextual_logger = get_logger(__name__)


@dataclass
class DocumentPage:
    """One page of a filtered collection scan."""

    documents: list[dict[str, Any]] = field(default_factory=list)
    total_count: int = 0
    skip: int = 0
    limit: int = 0

    @property
    def has_more(self) -> bool:
        return self.skip + len(self.documents) < self.total_count

    def to_dict(self, mode: str = DEFAULT_EJSON_MODE) -> dict[str, Any]:
        return {
            "documents": serialize_documents(self.documents, mode),
            "totalCount": self.total_count,
            "skip": self.skip,
            "limit": self.limit,
        }


def parse_document_id(document_id: Any) -> Any:
    """Interpret an id string as an ObjectId when it is one, else use it as is."""
    if isinstance(document_id, str) and ObjectId.is_valid(document_id):
        return ObjectId(document_id)
    return document_id


class DatabaseBrowser:
    """
    Listing, querying and management operations over one connection.

    Example:
        browser = DatabaseBrowser(connection, page_size=20)
        page = await browser.find_documents("shop", "orders", {"status": "open"})
    """

    def __init__(self, connection: ConnectionManager, page_size: int | None = None) -> None:
        self.connection = connection
        self.page_size = page_size or connection.config.page_size

    async def _run(self, operation: str, awaitable: Awaitable[Any], **context: Any) -> Any:
        try:
            return await awaitable
        except PyMongoError as e:
            contextual_logger.error(
                f"Failed to {operation}: {e}",
                extra={"error_type": type(e).__name__, **context},
                exc_info=True,
            )
            raise DatabaseOperationError(
                f"Failed to {operation}", operation=operation, context=context
            ) from e

    def _collection(self, db_name: str, collection_name: str):
        return self.connection.get_database(db_name)[collection_name]

    # ------------------------------------------------------------------
    # Server and databases
    # ------------------------------------------------------------------

    async def server_status(self) -> dict[str, Any]:
        """Summarise serverStatus and buildInfo of the connected deployment."""
        admin = self.connection.client.admin
        status = await self._run("get server status", admin.command("serverStatus"))
        build_info = await self._run("get build info", admin.command("buildInfo"))

        connections = status.get("connections", {})
        global_lock = status.get("globalLock", {})
        active = global_lock.get("activeClients", {})
        queue = global_lock.get("currentQueue", {})
        opcounters = status.get("opcounters", {})
        return {
            "hostname": status.get("host"),
            "mongoVersion": build_info.get("version"),
            "uptime": int(status.get("uptime", 0)),
            "pythonVersion": platform.python_version(),
            "driverVersion": pymongo.version,
            "connections": {
                "current": connections.get("current", 0),
                "available": connections.get("available", 0),
                "activeClients": active.get("total", 0),
                "queuedOperations": queue.get("total", 0),
                "clientsReading": active.get("readers", 0),
                "clientsWriting": active.get("writers", 0),
                "readLockQueue": queue.get("readers", 0),
                "writeLockQueue": queue.get("writers", 0),
            },
            "operations": {
                "insertCount": opcounters.get("insert", 0),
                "queryCount": opcounters.get("query", 0),
                "updateCount": opcounters.get("update", 0),
                "deleteCount": opcounters.get("delete", 0),
            },
        }

    async def list_databases(self) -> dict[str, Any]:
        result = await self._run(
            "list databases", self.connection.client.admin.command("listDatabases")
        )
        return {
            "databases": [
                {
                    "name": db["name"],
                    "sizeOnDisk": db.get("sizeOnDisk", 0),
                    "empty": db.get("empty", False),
                }
                for db in result.get("databases", [])
            ],
            "totalSize": result.get("totalSize", 0),
        }

    async def database_stats(self, db_name: str) -> dict[str, Any]:
        db = self.connection.get_database(db_name)
        stats = await self._run("get database stats", db.command("dbStats"), db_name=db_name)
        return {
            key: stats.get(key, 0)
            for key in (
                "collections",
                "dataSize",
                "storageSize",
                "avgObjSize",
                "indexes",
                "indexSize",
            )
        }

    async def create_database(self, db_name: str) -> None:
        """
        Create a database. MongoDB creates databases lazily, so a placeholder
        collection is created in it.
        """
        db = self.connection.get_database(db_name)
        await self._run(
            "create database", db.create_collection(INIT_COLLECTION_NAME), db_name=db_name
        )
        logger.info(f"Created database '{db_name}'")

    async def drop_database(self, db_name: str) -> None:
        await self._run(
            "drop database", self.connection.client.drop_database(db_name), db_name=db_name
        )
        logger.info(f"Dropped database '{db_name}'")

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def list_collections(self, db_name: str) -> list[str]:
        db = self.connection.get_database(db_name)
        return await self._run("list collections", db.list_collection_names(), db_name=db_name)

    async def collection_stats(self, db_name: str, collection_name: str) -> dict[str, Any]:
        db = self.connection.get_database(db_name)
        stats = await self._run(
            "get collection stats",
            db.command("collStats", collection_name),
            db_name=db_name,
            collection_name=collection_name,
        )
        return {
            "count": stats.get("count", 0),
            "size": stats.get("size", 0),
            "avgObjSize": stats.get("avgObjSize", 0),
            "storageSize": stats.get("storageSize", 0),
            "nindexes": stats.get("nindexes", 0),
            "totalIndexSize": stats.get("totalIndexSize", 0),
            "indexSizes": dict(stats.get("indexSizes", {})),
        }

    async def create_collection(self, db_name: str, collection_name: str) -> None:
        db = self.connection.get_database(db_name)
        await self._run(
            "create collection",
            db.create_collection(collection_name),
            db_name=db_name,
            collection_name=collection_name,
        )

    async def drop_collection(self, db_name: str, collection_name: str) -> None:
        db = self.connection.get_database(db_name)
        await self._run(
            "drop collection",
            db.drop_collection(collection_name),
            db_name=db_name,
            collection_name=collection_name,
        )

    async def rename_collection(self, db_name: str, old_name: str, new_name: str) -> None:
        await self._run(
            "rename collection",
            self._collection(db_name, old_name).rename(new_name),
            db_name=db_name,
            collection_name=old_name,
        )
        logger.info(f"Renamed collection '{db_name}.{old_name}' to '{new_name}'")

    async def clear_collection(self, db_name: str, collection_name: str) -> int:
        """Delete every document in a collection; returns the number deleted."""
        result = await self._run(
            "clear collection",
            self._collection(db_name, collection_name).delete_many({}),
            db_name=db_name,
            collection_name=collection_name,
        )
        return result.deleted_count

    async def compact_collection(self, db_name: str, collection_name: str) -> dict[str, Any]:
        db = self.connection.get_database(db_name)
        return await self._run(
            "compact collection",
            db.command("compact", collection_name),
            db_name=db_name,
            collection_name=collection_name,
        )

    async def reindex_collection(self, db_name: str, collection_name: str) -> dict[str, Any]:
        db = self.connection.get_database(db_name)
        return await self._run(
            "reindex collection",
            db.command("reIndex", collection_name),
            db_name=db_name,
            collection_name=collection_name,
        )

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    async def list_indexes(self, db_name: str, collection_name: str) -> list[dict[str, Any]]:
        """List index descriptors (name, key, size, unique) of a collection."""
        collection = self._collection(db_name, collection_name)
        indexes = await self._run(
            "list indexes",
            collection.list_indexes().to_list(length=None),
            db_name=db_name,
            collection_name=collection_name,
        )
        stats = await self.collection_stats(db_name, collection_name)
        return describe_indexes(indexes, stats["indexSizes"])

    async def create_index(
        self,
        db_name: str,
        collection_name: str,
        keys: dict[str, Any] | list[tuple[str, Any]],
        name: str | None = None,
    ) -> str:
        """
        Create an index and return its name.

        Raises:
            ValueError: If the keys are empty or use an unsupported direction
        """
        key_list = normalize_keys(keys)
        kwargs = {"name": name} if name else {}
        return await self._run(
            "create index",
            self._collection(db_name, collection_name).create_index(key_list, **kwargs),
            db_name=db_name,
            collection_name=collection_name,
        )

    async def drop_index(self, db_name: str, collection_name: str, index_name: str) -> None:
        if index_name == "_id_":
            raise ValueError("The _id index cannot be dropped")
        await self._run(
            "drop index",
            self._collection(db_name, collection_name).drop_index(index_name),
            db_name=db_name,
            collection_name=collection_name,
        )

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def find_documents(
        self,
        db_name: str,
        collection_name: str,
        query: dict[str, Any] | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> DocumentPage:
        """
        Fetch one page of documents matching a compiled filter.

        Args:
            query: Filter from build_query or parse_filter_text; None matches all
            skip: Number of matching documents to skip
            limit: Page size (defaults to the configured page size)

        Returns:
            DocumentPage with the page and the total number of matches
        """
        query = query or {}
        limit = limit or self.page_size
        skip = max(skip, 0)
        collection = self._collection(db_name, collection_name)

        total_count = await self._run(
            "count documents",
            collection.count_documents(query),
            db_name=db_name,
            collection_name=collection_name,
        )
        documents = await self._run(
            "find documents",
            collection.find(query).skip(skip).limit(limit).to_list(length=limit),
            db_name=db_name,
            collection_name=collection_name,
        )
        return DocumentPage(
            documents=documents, total_count=total_count, skip=skip, limit=limit
        )

    async def insert_document(
        self, db_name: str, collection_name: str, document: dict[str, Any]
    ) -> Any:
        result = await self._run(
            "insert document",
            self._collection(db_name, collection_name).insert_one(document),
            db_name=db_name,
            collection_name=collection_name,
        )
        return result.inserted_id

    async def update_document(
        self, db_name: str, collection_name: str, document_id: Any, document: dict[str, Any]
    ) -> int:
        """Overwrite the given fields of one document (``_id`` is never changed)."""
        update = {k: v for k, v in document.items() if k != ID_FIELD}
        result = await self._run(
            "update document",
            self._collection(db_name, collection_name).update_one(
                {ID_FIELD: parse_document_id(document_id)}, {"$set": update}
            ),
            db_name=db_name,
            collection_name=collection_name,
        )
        return result.modified_count

    async def delete_document(self, db_name: str, collection_name: str, document_id: Any) -> int:
        result = await self._run(
            "delete document",
            self._collection(db_name, collection_name).delete_one(
                {ID_FIELD: parse_document_id(document_id)}
            ),
            db_name=db_name,
            collection_name=collection_name,
        )
        return result.deleted_count

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    @timed_operation("aggregate.run")
    async def run_aggregation(
        self, db_name: str, collection_name: str, pipeline: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """
        Execute a compiled pipeline as given and return all result documents.
        """
        start_time = time.time()
        collection = self._collection(db_name, collection_name)
        results = await self._run(
            "run aggregation",
            collection.aggregate(pipeline).to_list(length=None),
            db_name=db_name,
            collection_name=collection_name,
        )
        log_operation(
            contextual_logger,
            "aggregate.run",
            duration_ms=(time.time() - start_time) * 1000,
            db_name=db_name,
            collection_name=collection_name,
            stages=len(pipeline),
            documents=len(results),
        )
        return results

