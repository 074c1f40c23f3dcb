"""
SQLite-backed durable store for the notes collections.

Provides the small key-value/object-store API the notes core consumes:
add, put, get, get_all, get_all_by_index, delete and delete_by_index over
named collections, each keyed by a primary identifier and optionally
indexed on secondary fields.

Architecture:
  - Each collection is a SQLite table with:
    - id TEXT PRIMARY KEY (the record's key field)
    - data TEXT (the full record as JSON, camelCase keys)
  - Secondary indexes are expression indexes over json_extract(data, ...)
  - Every write runs in its own transaction; failures roll back and
    surface as TransactionError
  - The schema version lives in PRAGMA user_version and is brought up to
    date by the upgrade routine in connect()

Usage:
    store = SQLiteStore("data/journey_notes.db")
    await store.connect()
    await store.add("folders", {"id": "f1", "name": "Work", "parentId": None})
    children = await store.get_all_by_index("folders", "parentIdIndex", "f1")
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import aiosqlite

logger = logging.getLogger(__name__)

# ============================================================
# Collection schema
# ============================================================

FOLDER_STORE = "folders"
NOTE_STORE = "notes"


@dataclass(frozen=True)
class CollectionSchema:
    """Key field and secondary indexes (index name -> record field)."""
    key_path: str
    indexes: Dict[str, str] = field(default_factory=dict)


COLLECTIONS: Dict[str, CollectionSchema] = {
    FOLDER_STORE: CollectionSchema(
        key_path="id",
        indexes={"parentIdIndex": "parentId"},
    ),
    NOTE_STORE: CollectionSchema(
        key_path="id",
        indexes={
            "folderIdIndex": "folderId",
            "updatedAtIndex": "updatedAt",
        },
    ),
}


# ============================================================
# Errors
# ============================================================

class StoreError(Exception):
    """Base class for durable store failures."""


class StoreConnectionError(StoreError):
    """The database could not be opened or upgraded. Fatal for the app."""


class TransactionError(StoreError):
    """A single operation failed. The caller may retry."""


class DuplicateKeyError(TransactionError):
    """add() was called with a key that already exists."""

    def __init__(self, collection: str, key: str):
        super().__init__(f"Record {key!r} already exists in {collection}")
        self.collection = collection
        self.key = key


@dataclass
class DeleteByIndexResult:
    """Aggregate outcome of delete_by_index."""
    deleted_count: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


# ============================================================
# Store
# ============================================================

def _json_path(field_name: str) -> str:
    return f"json_extract(data, '$.{field_name}')"


class SQLiteStore:
    """Async durable store with one table per collection.

    All operations are serialized through a single asyncio lock so that
    interleaved coroutines never share a transaction on the one
    connection.
    """

    def __init__(self, db_path: Union[str, Path], schema_version: int = 2,
                 collections: Optional[Dict[str, CollectionSchema]] = None):
        self._db_path = str(db_path)
        self._schema_version = schema_version
        self._collections = collections or COLLECTIONS
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock: Optional[asyncio.Lock] = None

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    async def connect(self) -> None:
        """Open the connection and run the upgrade routine.

        Raises:
            StoreConnectionError: if the file cannot be opened, was written
                by a newer schema version, or the upgrade fails.
        """
        logger.info(f"Opening database {self._db_path} version {self._schema_version}")
        try:
            if self._db_path != ":memory:":
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = await aiosqlite.connect(self._db_path, timeout=30.0)
            await self._conn.execute("PRAGMA journal_mode=WAL")
            await self._conn.execute("PRAGMA busy_timeout=5000")
        except (aiosqlite.Error, OSError) as e:
            await self._discard_conn()
            raise StoreConnectionError(f"Database error: {e}") from e

        self._lock = asyncio.Lock()
        try:
            await self._upgrade()
        except StoreConnectionError:
            await self._discard_conn()
            raise
        except aiosqlite.Error as e:
            await self._discard_conn()
            raise StoreConnectionError(f"Upgrade failed: {e}") from e
        logger.info("Database opened successfully.")

    async def close(self) -> None:
        """Close the SQLite connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None
            logger.info("Database closed")

    async def _discard_conn(self) -> None:
        if self._conn is not None:
            try:
                await self._conn.close()
            finally:
                self._conn = None

    async def _upgrade(self) -> None:
        """Create missing collections and indexes, then stamp the version."""
        async with self._conn.execute("PRAGMA user_version") as cursor:
            row = await cursor.fetchone()
        current = row[0] if row else 0

        if current > self._schema_version:
            raise StoreConnectionError(
                f"Database version {current} is newer than supported "
                f"version {self._schema_version}"
            )
        if current < self._schema_version:
            logger.info(f"Database upgrade needed ({current} -> {self._schema_version}).")

        for name, schema in self._collections.items():
            await self._conn.execute(f"""
                CREATE TABLE IF NOT EXISTS [{name}] (
                    id TEXT PRIMARY KEY,
                    data TEXT NOT NULL
                )
            """)
            for index_name, field_name in schema.indexes.items():
                await self._conn.execute(
                    f"CREATE INDEX IF NOT EXISTS [{name}_{index_name}] "
                    f"ON [{name}] ({_json_path(field_name)})"
                )
        # PRAGMA does not accept bound parameters
        await self._conn.execute(f"PRAGMA user_version = {int(self._schema_version)}")
        await self._conn.commit()

    async def ping(self) -> bool:
        """Verify the connection is alive."""
        conn = self._require_conn()
        async with self._lock:
            await conn.execute("SELECT 1")
        return True

    # ------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StoreError("Database not initialized. Call connect() first.")
        return self._conn

    def _schema(self, collection: str) -> CollectionSchema:
        try:
            return self._collections[collection]
        except KeyError:
            raise StoreError(f"Unknown collection: {collection}") from None

    def _index_field(self, collection: str, index_name: str) -> str:
        schema = self._schema(collection)
        try:
            return schema.indexes[index_name]
        except KeyError:
            raise StoreError(f"Unknown index {index_name!r} on {collection}") from None

    def _key_of(self, collection: str, record: Dict[str, Any]) -> str:
        key_path = self._schema(collection).key_path
        key = record.get(key_path)
        if not isinstance(key, str) or not key:
            raise StoreError(f"Record for {collection} is missing its {key_path!r} key")
        return key

    async def _write(self, action: str, collection: str, sql: str,
                     params: tuple) -> int:
        """Run a single write in its own transaction, returning rowcount."""
        conn = self._require_conn()
        async with self._lock:
            try:
                cursor = await conn.execute(sql, params)
                await conn.commit()
                return cursor.rowcount
            except aiosqlite.Error as e:
                await conn.rollback()
                logger.error(f"DB Transaction Error ({action} on {collection}): {e}")
                raise TransactionError(
                    f"Transaction error during {action} on {collection}: {e}"
                ) from e

    async def _read(self, action: str, collection: str, sql: str,
                    params: tuple = ()) -> List[Dict[str, Any]]:
        conn = self._require_conn()
        async with self._lock:
            try:
                async with conn.execute(sql, params) as cursor:
                    rows = await cursor.fetchall()
            except aiosqlite.Error as e:
                logger.error(f"DB Request Error ({action} on {collection}): {e}")
                raise TransactionError(
                    f"Error performing {action} on {collection}: {e}"
                ) from e
        return [json.loads(row[0]) for row in rows]

    # ------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------

    async def add(self, collection: str, record: Dict[str, Any]) -> str:
        """Insert a new record. Fails with DuplicateKeyError if the key exists."""
        key = self._key_of(collection, record)
        conn = self._require_conn()
        async with self._lock:
            try:
                await conn.execute(
                    f"INSERT INTO [{collection}] (id, data) VALUES (?, ?)",
                    (key, json.dumps(record)),
                )
                await conn.commit()
            except aiosqlite.IntegrityError as e:
                await conn.rollback()
                raise DuplicateKeyError(collection, key) from e
            except aiosqlite.Error as e:
                await conn.rollback()
                logger.error(f"DB Transaction Error (add on {collection}): {e}")
                raise TransactionError(
                    f"Transaction error during add on {collection}: {e}"
                ) from e
        return key

    async def put(self, collection: str, record: Dict[str, Any]) -> str:
        """Insert or replace a record by key."""
        key = self._key_of(collection, record)
        await self._write(
            "put", collection,
            f"INSERT INTO [{collection}] (id, data) VALUES (?, ?) "
            f"ON CONFLICT(id) DO UPDATE SET data = excluded.data",
            (key, json.dumps(record)),
        )
        return key

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        """Return the record stored under key, or None if absent."""
        self._schema(collection)
        rows = await self._read(
            "get", collection,
            f"SELECT data FROM [{collection}] WHERE id = ?", (key,),
        )
        return rows[0] if rows else None

    async def get_all(self, collection: str) -> List[Dict[str, Any]]:
        """Return every record in the collection."""
        self._schema(collection)
        return await self._read(
            "getAll", collection,
            f"SELECT data FROM [{collection}] ORDER BY rowid",
        )

    async def count(self, collection: str) -> int:
        """Number of records in the collection."""
        self._schema(collection)
        conn = self._require_conn()
        async with self._lock:
            try:
                async with conn.execute(f"SELECT COUNT(*) FROM [{collection}]") as cursor:
                    row = await cursor.fetchone()
            except aiosqlite.Error as e:
                raise TransactionError(f"Error performing count on {collection}: {e}") from e
        return row[0] if row else 0

    async def get_all_by_index(self, collection: str, index_name: str,
                               query: Any) -> List[Dict[str, Any]]:
        """Return records whose indexed field equals query.

        A query of None matches records where the field is null or absent;
        it never means "everything" (use get_all for that).
        """
        field_name = self._index_field(collection, index_name)
        path = _json_path(field_name)
        if query is None:
            sql = f"SELECT data FROM [{collection}] WHERE {path} IS NULL ORDER BY rowid"
            params: tuple = ()
        else:
            sql = f"SELECT data FROM [{collection}] WHERE {path} = ? ORDER BY rowid"
            params = (query,)
        return await self._read("getAllByIndex", collection, sql, params)

    async def delete(self, collection: str, key: str) -> None:
        """Delete by key. Deleting a missing key is not an error."""
        self._schema(collection)
        await self._write(
            "delete", collection,
            f"DELETE FROM [{collection}] WHERE id = ?", (key,),
        )

    async def delete_by_index(self, collection: str, index_name: str,
                              query: Any) -> DeleteByIndexResult:
        """Delete every record matching the index query.

        Individual record failures are collected and do not stop the
        remaining deletes; the aggregate is returned.
        """
        field_name = self._index_field(collection, index_name)
        path = _json_path(field_name)
        if query is None:
            where, params = f"{path} IS NULL", ()
        else:
            where, params = f"{path} = ?", (query,)

        conn = self._require_conn()
        result = DeleteByIndexResult()
        async with self._lock:
            try:
                async with conn.execute(
                    f"SELECT id FROM [{collection}] WHERE {where}", params
                ) as cursor:
                    keys = [row[0] for row in await cursor.fetchall()]
            except aiosqlite.Error as e:
                raise TransactionError(
                    f"Error opening cursor for deletion on {collection}: {e}"
                ) from e

            for key in keys:
                try:
                    await conn.execute(f"DELETE FROM [{collection}] WHERE id = ?", (key,))
                    result.deleted_count += 1
                except aiosqlite.Error as e:
                    message = f"Error deleting item with key {key}: {e}"
                    logger.error(message)
                    result.errors.append(message)

            try:
                await conn.commit()
            except aiosqlite.Error as e:
                await conn.rollback()
                raise TransactionError(
                    f"Transaction error during deleteByIndex on {collection}: {e}"
                ) from e

        logger.info(
            f"Finished 'deleteByIndex' on {collection}. "
            f"Deleted: {result.deleted_count}. Errors: {len(result.errors)}"
        )
        return result
