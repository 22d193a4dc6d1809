"""
Pytest configuration and shared fixtures for MONGOMAN tests.

This module provides:
- Mock motor collections, databases and a mock ConnectionManager
- Test data factories
- Metrics reset between tests
"""

from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import CollectionInvalid

from mongoman.config import ConsoleConfig
from mongoman.observability import get_metrics_collector

TEST_MONGO_URI = "mongodb://localhost:27017"


# ============================================================================
# MOCK MONGODB FIXTURES
# ============================================================================


def make_cursor(documents: List[Dict[str, Any]]) -> MagicMock:
    """Create a mock cursor supporting skip/limit chaining and to_list."""
    cursor = MagicMock()
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=list(documents))
    return cursor


def make_collection(name: str, documents: Optional[List[Dict[str, Any]]] = None) -> MagicMock:
    """
    Create a mock motor collection.

    ``collection.documents`` holds the stored documents; insert_many appends
    to ``collection.inserted`` and returns fresh ObjectIds.
    """
    collection = MagicMock()
    collection.name = name
    collection.documents = list(documents or [])
    collection.inserted = []

    async def insert_many(docs, **kwargs):
        docs = list(docs)
        collection.inserted.extend(docs)
        return MagicMock(inserted_ids=[ObjectId() for _ in docs])

    collection.find = MagicMock(side_effect=lambda *a, **kw: make_cursor(collection.documents))
    collection.aggregate = MagicMock(side_effect=lambda *a, **kw: make_cursor(collection.documents))
    collection.list_indexes = MagicMock(return_value=make_cursor([]))
    collection.count_documents = AsyncMock(side_effect=lambda *a, **kw: len(collection.documents))
    collection.insert_many = AsyncMock(side_effect=insert_many)
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id=ObjectId()))
    collection.update_one = AsyncMock(return_value=MagicMock(modified_count=1))
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    collection.delete_many = AsyncMock(return_value=MagicMock(deleted_count=2))
    collection.create_index = AsyncMock(return_value="test_index")
    collection.drop_index = AsyncMock()
    collection.rename = AsyncMock()
    return collection


class MockDatabase:
    """
    Mock motor database.

    Only collections created through ``create_collection`` or given at
    construction are listed; ``db[name]`` hands out a handle either way.
    """

    def __init__(self, name: str, collections: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.name = name
        self.handles: Dict[str, MagicMock] = {}
        self.existing: List[str] = []
        for collection_name, documents in (collections or {}).items():
            self.handles[collection_name] = make_collection(collection_name, documents)
            self.existing.append(collection_name)

        self.list_collection_names = AsyncMock(side_effect=lambda *a, **kw: list(self.existing))
        self.create_collection = AsyncMock(side_effect=self._create_collection)
        self.drop_collection = AsyncMock()
        self.command = AsyncMock(return_value={"ok": 1})

    async def _create_collection(self, name: str, **kwargs):
        if name in self.existing:
            raise CollectionInvalid(f"collection {name} already exists")
        self.existing.append(name)
        return self[name]

    def __getitem__(self, name: str) -> MagicMock:
        if name not in self.handles:
            self.handles[name] = make_collection(name)
        return self.handles[name]


class MockConnection:
    """Stand-in for an initialised ConnectionManager."""

    def __init__(self, config: ConsoleConfig):
        self.config = config
        self.initialized = True
        self.databases: Dict[str, MockDatabase] = {}
        self.client = MagicMock()
        self.client.admin.command = AsyncMock(return_value={"ok": 1})
        self.client.drop_database = AsyncMock()

    def add_database(
        self, name: str, collections: Optional[Dict[str, List[Dict[str, Any]]]] = None
    ) -> MockDatabase:
        self.databases[name] = MockDatabase(name, collections)
        return self.databases[name]

    def get_database(self, name: str) -> MockDatabase:
        if name not in self.databases:
            self.add_database(name)
        return self.databases[name]


@pytest.fixture
def console_config() -> ConsoleConfig:
    """Create a valid console configuration."""
    return ConsoleConfig(mongo_uri=TEST_MONGO_URI)


@pytest.fixture
def mock_connection(console_config: ConsoleConfig) -> MockConnection:
    """Create a mock connection handle."""
    return MockConnection(console_config)


@pytest.fixture
def mock_mongo_client() -> MagicMock:
    """Create a mock motor client whose ping succeeds."""
    client = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1})
    client.close = MagicMock()
    return client


# ============================================================================
# TEST DATA FACTORIES
# ============================================================================


@pytest.fixture
def sample_documents() -> List[Dict[str, Any]]:
    return [
        {"_id": ObjectId("507f1f77bcf86cd799439011"), "name": "Ada", "age": 36},
        {"_id": ObjectId("507f1f77bcf86cd799439012"), "name": "Grace", "age": 45},
        {"_id": ObjectId("507f1f77bcf86cd799439013"), "name": "Linus", "age": 28},
    ]


@pytest.fixture
def sample_bundle() -> Dict[str, List[Dict[str, Any]]]:
    """A serialised backup bundle with one populated and one empty collection."""
    return {
        "users": [
            {"_id": {"$oid": "507f1f77bcf86cd799439011"}, "name": "Ada"},
            {"_id": {"$oid": "507f1f77bcf86cd799439012"}, "name": "Grace"},
        ],
        "audit": [],
    }


# ============================================================================
# METRICS
# ============================================================================


@pytest.fixture(autouse=True)
def reset_metrics():
    """Start every test with an empty metrics collector."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()


# ============================================================================
# INTEGRATION FIXTURES (real MongoDB via testcontainers)
# ============================================================================


@pytest.fixture(scope="session")
def mongodb_container():
    """
    Start a MongoDB container for integration tests.

    Session-scoped: the container starts once and is reused for all
    integration tests.
    """
    try:
        from testcontainers.mongodb import MongoDbContainer
    except ImportError:
        pytest.skip("testcontainers not installed. Install with: pip install -e '.[test]'")

    with MongoDbContainer(image="mongo:7.0") as container:
        yield container


@pytest.fixture
def mongodb_connection_string(mongodb_container) -> str:
    return mongodb_container.get_connection_url()


@pytest.fixture
async def real_connection(mongodb_connection_string):
    """An initialised ConnectionManager against the test container."""
    from mongoman.core.connection import ConnectionManager

    config = ConsoleConfig(
        mongo_uri=mongodb_connection_string, max_pool_size=5, min_pool_size=1
    )
    async with ConnectionManager(config) as connection:
        yield connection
