"""
Database connection module.

Provides connect/disconnect lifecycle and get_database() accessor for the
process-wide SQLiteStore used by the HTTP application.

Typical usage:
    from journey_notes.database import get_database
    store = get_database()
    folders = await store.get_all("folders")
"""

import logging
from pathlib import Path
from typing import Optional, Union

from journey_notes.config import get_settings
from journey_notes.sqlite_db import SQLiteStore

logger = logging.getLogger(__name__)

# ============================================================
# Global database instance
# ============================================================
_database: Optional[SQLiteStore] = None


async def connect_db(db_path: Optional[Union[str, Path]] = None) -> SQLiteStore:
    """Open the SQLite store and run its upgrade routine.

    Called once during application startup (main.py lifespan).
    Creates the database file if it doesn't exist.

    Args:
        db_path: Override for the configured database path.

    Raises:
        StoreConnectionError: if the database cannot be opened.
    """
    global _database

    settings = get_settings()
    path = db_path if db_path is not None else settings.db_path
    logger.info(f"Connecting to SQLite database: {path}")

    store = SQLiteStore(path, schema_version=settings.db_version)
    await store.connect()
    _database = store

    logger.info("SQLite database connected successfully")
    return store


async def close_db() -> None:
    """Close the database connection gracefully.

    Called during application shutdown.
    """
    global _database
    if _database:
        await _database.close()
        _database = None
        logger.info("Database connection closed")


def get_database() -> SQLiteStore:
    """Get the database instance.

    Raises:
        RuntimeError: If connect_db() hasn't been called yet.
    """
    if _database is None:
        raise RuntimeError("Database not initialized. Call connect_db() first.")
    return _database
