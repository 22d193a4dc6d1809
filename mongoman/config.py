"""
Configuration management for MONGOMAN.

Values are taken from keyword arguments first and fall back to environment
variables, so the same object serves the HTTP app, the CLI and tests.
"""

import os

from .constants import (
    DEFAULT_EJSON_MODE,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
    DEFAULT_PAGE_SIZE,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
    EJSON_MODES,
)
from .exceptions import ConfigurationError


class ConsoleConfig:
    """
    Console configuration.

    Example:
        # Using environment variables
        config = ConsoleConfig()
        config.validate()

        # Or using direct parameters
        config = ConsoleConfig(mongo_uri="mongodb://localhost:27017", page_size=50)
    """

    def __init__(
        self,
        mongo_uri: str | None = None,
        max_pool_size: int | None = None,
        min_pool_size: int | None = None,
        server_selection_timeout_ms: int | None = None,
        page_size: int | None = None,
        ejson_mode: str | None = None,
    ):
        """
        Initialize configuration.

        Args:
            mongo_uri: MongoDB connection URI (defaults to MONGODB_URI env var)
            max_pool_size: Maximum connection pool size (defaults to 50 or
                MONGOMAN_MAX_POOL_SIZE)
            min_pool_size: Minimum connection pool size (defaults to 10 or
                MONGOMAN_MIN_POOL_SIZE)
            server_selection_timeout_ms: Server selection timeout in ms (defaults to 5000)
            page_size: Documents per page when browsing (defaults to 20)
            ejson_mode: "relaxed" or "canonical" extended JSON for transport
        """
        self.mongo_uri = mongo_uri or os.getenv("MONGODB_URI", "")
        self.max_pool_size = max_pool_size or int(
            os.getenv("MONGOMAN_MAX_POOL_SIZE", str(DEFAULT_MAX_POOL_SIZE))
        )
        self.min_pool_size = min_pool_size or int(
            os.getenv("MONGOMAN_MIN_POOL_SIZE", str(DEFAULT_MIN_POOL_SIZE))
        )
        self.server_selection_timeout_ms = server_selection_timeout_ms or int(
            os.getenv(
                "MONGOMAN_SERVER_SELECTION_TIMEOUT_MS",
                str(DEFAULT_SERVER_SELECTION_TIMEOUT_MS),
            )
        )
        self.page_size = page_size or int(os.getenv("MONGOMAN_PAGE_SIZE", str(DEFAULT_PAGE_SIZE)))
        self.ejson_mode = (
            ejson_mode or os.getenv("MONGOMAN_EJSON_MODE", DEFAULT_EJSON_MODE)
        ).lower()

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If required configuration is missing or invalid
        """
        if not self.mongo_uri:
            raise ConfigurationError(
                "mongo_uri is required (set MONGODB_URI environment variable or pass directly)",
                config_key="mongo_uri",
            )

        if self.max_pool_size < 1:
            raise ConfigurationError(
                f"max_pool_size must be >= 1, got {self.max_pool_size}",
                config_key="max_pool_size",
                config_value=self.max_pool_size,
            )

        if self.min_pool_size < 1:
            raise ConfigurationError(
                f"min_pool_size must be >= 1, got {self.min_pool_size}",
                config_key="min_pool_size",
                config_value=self.min_pool_size,
            )

        if self.min_pool_size > self.max_pool_size:
            raise ConfigurationError(
                f"min_pool_size ({self.min_pool_size}) cannot be greater than "
                f"max_pool_size ({self.max_pool_size})",
                config_key="min_pool_size",
                config_value=self.min_pool_size,
            )

        if self.server_selection_timeout_ms < 1000:
            raise ConfigurationError(
                f"server_selection_timeout_ms must be >= 1000, got "
                f"{self.server_selection_timeout_ms}",
                config_key="server_selection_timeout_ms",
                config_value=self.server_selection_timeout_ms,
            )

        if self.page_size < 1:
            raise ConfigurationError(
                f"page_size must be >= 1, got {self.page_size}",
                config_key="page_size",
                config_value=self.page_size,
            )

        if self.ejson_mode not in EJSON_MODES:
            raise ConfigurationError(
                f"ejson_mode must be one of {', '.join(EJSON_MODES)}, got {self.ejson_mode!r}",
                config_key="ejson_mode",
                config_value=self.ejson_mode,
            )
