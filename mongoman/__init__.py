"""
MONGOMAN - MongoDB management console

Visual query and aggregation builders, whole-database backup and restore,
and JSON/CSV import and export over a single managed MongoDB connection.
"""

# Backup and restore
from .backup import (backup_database, export_collection, import_documents,
                     restore_database)
# Configuration
from .config import ConsoleConfig
# Core
from .core import ConnectionManager
# Database layer
from .database import DatabaseBrowser, DocumentPage
# Query builders
from .query import (ConditionGroup, QueryBuilderState, StageList,
                    build_pipeline, build_query, parse_value)

__version__ = "0.1.0"

__all__ = [
    # Core
    "ConnectionManager",
    "ConsoleConfig",
    # Database
    "DatabaseBrowser",
    "DocumentPage",
    # Query builders
    "ConditionGroup",
    "QueryBuilderState",
    "StageList",
    "build_query",
    "build_pipeline",
    "parse_value",
    # Backup
    "backup_database",
    "restore_database",
    "export_collection",
    "import_documents",
]
