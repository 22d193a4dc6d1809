"""
FastAPI dependencies for MONGOMAN.

The connection handle lives on ``app.state`` for the lifetime of the app;
these dependencies hand it (or a browser over it) to each request.

Usage:
    from fastapi import Depends
    from mongoman.dependencies import get_browser

    @router.get("/collections/{db_name}")
    async def collections(db_name: str, browser=Depends(get_browser)):
        return await browser.list_collections(db_name)
"""

import logging

from fastapi import Depends, HTTPException, Request

from .config import ConsoleConfig
from .core.connection import ConnectionManager
from .database.browser import DatabaseBrowser

logger = logging.getLogger(__name__)


async def get_connection(request: Request) -> ConnectionManager:
    """Get the ConnectionManager from app state."""
    connection = getattr(request.app.state, "connection", None)
    if not connection:
        raise HTTPException(503, "Database connection not configured")
    if not connection.initialized:
        raise HTTPException(503, "Database connection not initialized")
    return connection


async def get_config(connection: ConnectionManager = Depends(get_connection)) -> ConsoleConfig:
    return connection.config


async def get_browser(
    connection: ConnectionManager = Depends(get_connection),
) -> DatabaseBrowser:
    """Get a DatabaseBrowser over the shared connection."""
    return DatabaseBrowser(connection)


__all__ = ["get_connection", "get_config", "get_browser"]
