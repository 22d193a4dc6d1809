"""
Unit tests for ConnectionManager.

Tests the connection lifecycle:
- Initialization with ping
- Failure handling and cleanup
- Idempotent shutdown
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from mongoman.config import ConsoleConfig
from mongoman.core.connection import ConnectionManager
from mongoman.exceptions import ConfigurationError, InitializationError
from mongoman.observability import get_metrics_collector


@pytest.mark.unit
class TestConnectionManager:
    """Test ConnectionManager lifecycle."""

    @pytest.mark.asyncio
    async def test_initialize_success(self, console_config, mock_mongo_client):
        with patch(
            "mongoman.core.connection.AsyncIOMotorClient", return_value=mock_mongo_client
        ) as client_cls:
            connection = ConnectionManager(console_config)
            await connection.initialize()

            assert connection.initialized is True
            assert connection.client is mock_mongo_client
            mock_mongo_client.admin.command.assert_awaited_once_with("ping")
            kwargs = client_cls.call_args.kwargs
            assert kwargs["maxPoolSize"] == 50
            assert kwargs["minPoolSize"] == 10
            assert kwargs["appname"] == "MONGOMAN"

            await connection.shutdown()

    @pytest.mark.asyncio
    async def test_initialize_failure(self, console_config):
        mock_client = MagicMock()
        mock_client.admin.command = AsyncMock(
            side_effect=ServerSelectionTimeoutError("no servers")
        )

        with patch("mongoman.core.connection.AsyncIOMotorClient", return_value=mock_client):
            connection = ConnectionManager(console_config)

            with pytest.raises(InitializationError) as exc_info:
                await connection.initialize()

        assert "Failed to connect to MongoDB" in str(exc_info.value)
        assert connection.initialized is False
        mock_client.close.assert_called_once()
        summary = get_metrics_collector().get_summary()["summary"]
        assert summary["connection.initialize"]["error_count"] == 1

    @pytest.mark.asyncio
    async def test_invalid_config_is_rejected_before_connecting(self):
        with patch("mongoman.core.connection.AsyncIOMotorClient") as client_cls:
            connection = ConnectionManager(ConsoleConfig())
            connection.config.mongo_uri = ""
            with pytest.raises(ConfigurationError):
                await connection.initialize()
        client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_double_initialization_is_noop(self, console_config, mock_mongo_client):
        with patch(
            "mongoman.core.connection.AsyncIOMotorClient", return_value=mock_mongo_client
        ) as client_cls:
            connection = ConnectionManager(console_config)
            await connection.initialize()
            await connection.initialize()
            assert client_cls.call_count == 1
            await connection.shutdown()

    @pytest.mark.asyncio
    async def test_shutdown_is_idempotent(self, console_config, mock_mongo_client):
        with patch(
            "mongoman.core.connection.AsyncIOMotorClient", return_value=mock_mongo_client
        ):
            connection = ConnectionManager(console_config)
            await connection.initialize()
            await connection.shutdown()
            await connection.shutdown()

        mock_mongo_client.close.assert_called_once()
        assert connection.initialized is False

    @pytest.mark.asyncio
    async def test_async_context_manager(self, console_config, mock_mongo_client):
        with patch(
            "mongoman.core.connection.AsyncIOMotorClient", return_value=mock_mongo_client
        ):
            async with ConnectionManager(console_config) as connection:
                assert connection.initialized is True
                connection.get_database("shop")

        mock_mongo_client.__getitem__.assert_called_once_with("shop")
        assert connection.initialized is False

    def test_client_before_initialize(self, console_config):
        with pytest.raises(RuntimeError, match="not initialized"):
            ConnectionManager(console_config).client
