"""
Connection management for MONGOMAN.

The console talks to a single MongoDB deployment through one long-lived
client. ConnectionManager owns that client: it is created once at process
start, handed to every operation that needs the database, and closed at
shutdown.
"""

import logging
import time

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from ..config import ConsoleConfig
from ..constants import APP_NAME, DEFAULT_MAX_IDLE_TIME_MS
from ..exceptions import InitializationError
from ..observability import get_logger as get_contextual_logger
from ..observability import record_operation

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)


class ConnectionManager:
    """
    Owns the motor client of one console process.

    Example:
        async with ConnectionManager(ConsoleConfig()) as connection:
            db = connection.get_database("shop")
    """

    def __init__(self, config: ConsoleConfig) -> None:
        self.config = config
        self._mongo_client: AsyncIOMotorClient | None = None
        self._initialized: bool = False

    def _client_options(self) -> dict:
        return {
            "serverSelectionTimeoutMS": self.config.server_selection_timeout_ms,
            "appname": APP_NAME,
            "maxPoolSize": self.config.max_pool_size,
            "minPoolSize": self.config.min_pool_size,
            "maxIdleTimeMS": DEFAULT_MAX_IDLE_TIME_MS,
        }

    async def initialize(self) -> None:
        """
        Validate the config, open the client and ping the server.

        Calling it again on an initialised manager does nothing.

        Raises:
            ConfigurationError: If the configuration is invalid
            InitializationError: If the client cannot be built or the server
                does not answer the ping
        """
        if self._initialized:
            logger.warning("ConnectionManager already initialized, ignoring initialize()")
            return

        self.config.validate()
        started = time.time()
        contextual_logger.info(
            "Connecting to MongoDB",
            extra={
                "max_pool_size": self.config.max_pool_size,
                "min_pool_size": self.config.min_pool_size,
                "server_selection_timeout_ms": self.config.server_selection_timeout_ms,
            },
        )

        try:
            self._mongo_client = AsyncIOMotorClient(self.config.mongo_uri, **self._client_options())
            await self._mongo_client.admin.command("ping")
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            raise self._initialization_failed(e, started, "Failed to connect to MongoDB") from e
        except (TypeError, ValueError) as e:
            # The driver rejects malformed URIs and options with these.
            raise self._initialization_failed(
                e, started, "Invalid MongoDB client options"
            ) from e

        self._initialized = True
        duration_ms = (time.time() - started) * 1000
        record_operation("connection.initialize", duration_ms, success=True)
        contextual_logger.info(
            "Connected to MongoDB",
            extra={
                "pool_size": f"{self.config.min_pool_size}-{self.config.max_pool_size}",
                "duration_ms": round(duration_ms, 2),
            },
        )

    def _initialization_failed(
        self, error: Exception, started: float, message: str
    ) -> InitializationError:
        record_operation(
            "connection.initialize", (time.time() - started) * 1000, success=False
        )
        contextual_logger.critical(
            message,
            extra={"error_type": type(error).__name__, "error": str(error)},
            exc_info=True,
        )
        self._close_client()
        return InitializationError(
            f"{message}: {error}",
            mongo_uri=self.config.mongo_uri,
            context={"error_type": type(error).__name__},
        )

    def _close_client(self) -> None:
        if self._mongo_client is not None:
            self._mongo_client.close()
        self._mongo_client = None

    async def shutdown(self) -> None:
        """Close the client. A no-op when the manager is not initialised."""
        if not self._initialized:
            return

        started = time.time()
        self._close_client()
        self._initialized = False
        duration_ms = (time.time() - started) * 1000
        record_operation("connection.shutdown", duration_ms, success=True)
        contextual_logger.info(
            "MongoDB connection closed", extra={"duration_ms": round(duration_ms, 2)}
        )

    async def __aenter__(self) -> "ConnectionManager":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def client(self) -> AsyncIOMotorClient:
        """
        The shared motor client.

        Raises:
            RuntimeError: If the manager is not initialised
        """
        if not self._initialized or self._mongo_client is None:
            raise RuntimeError("ConnectionManager not initialized. Call initialize() first.")
        return self._mongo_client

    def get_database(self, db_name: str) -> AsyncIOMotorDatabase:
        return self.client[db_name]
