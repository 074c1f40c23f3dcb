"""Tests for the SQLite durable store, against a real database file."""

import pytest

from journey_notes.sqlite_db import (
    FOLDER_STORE,
    NOTE_STORE,
    DuplicateKeyError,
    SQLiteStore,
    StoreConnectionError,
    StoreError,
)
from tests.fakes import folder_record, note_record


class TestRecordOperations:
    """add / put / get / get_all / delete."""

    @pytest.mark.anyio
    async def test_add_then_get_returns_record(self, sqlite_store):
        record = folder_record("f1", "Work")
        await sqlite_store.add(FOLDER_STORE, record)
        assert await sqlite_store.get(FOLDER_STORE, "f1") == record

    @pytest.mark.anyio
    async def test_add_existing_key_raises_duplicate(self, sqlite_store):
        await sqlite_store.add(FOLDER_STORE, folder_record("f1", "Work"))
        with pytest.raises(DuplicateKeyError):
            await sqlite_store.add(FOLDER_STORE, folder_record("f1", "Other"))
        # First record untouched
        assert (await sqlite_store.get(FOLDER_STORE, "f1"))["name"] == "Work"

    @pytest.mark.anyio
    async def test_put_upserts(self, sqlite_store):
        await sqlite_store.put(NOTE_STORE, note_record("n1", "f1", title="A"))
        await sqlite_store.put(NOTE_STORE, note_record("n1", "f1", title="B"))
        assert (await sqlite_store.get(NOTE_STORE, "n1"))["title"] == "B"
        assert await sqlite_store.count(NOTE_STORE) == 1

    @pytest.mark.anyio
    async def test_get_missing_returns_none(self, sqlite_store):
        assert await sqlite_store.get(NOTE_STORE, "nope") is None

    @pytest.mark.anyio
    async def test_get_all_returns_everything(self, sqlite_store):
        await sqlite_store.add(FOLDER_STORE, folder_record("f1", "A"))
        await sqlite_store.add(FOLDER_STORE, folder_record("f2", "B", parent_id="f1"))
        ids = {r["id"] for r in await sqlite_store.get_all(FOLDER_STORE)}
        assert ids == {"f1", "f2"}

    @pytest.mark.anyio
    async def test_delete_is_idempotent(self, sqlite_store):
        await sqlite_store.add(NOTE_STORE, note_record("n1", "f1"))
        await sqlite_store.delete(NOTE_STORE, "n1")
        await sqlite_store.delete(NOTE_STORE, "n1")
        assert await sqlite_store.get(NOTE_STORE, "n1") is None

    @pytest.mark.anyio
    async def test_record_without_key_rejected(self, sqlite_store):
        with pytest.raises(StoreError):
            await sqlite_store.add(FOLDER_STORE, {"name": "No id"})


class TestIndexQueries:
    """get_all_by_index / delete_by_index."""

    @pytest.mark.anyio
    async def test_index_query_matches_value(self, sqlite_store):
        await sqlite_store.add(NOTE_STORE, note_record("n1", "f1"))
        await sqlite_store.add(NOTE_STORE, note_record("n2", "f2"))
        found = await sqlite_store.get_all_by_index(NOTE_STORE, "folderIdIndex", "f1")
        assert [r["id"] for r in found] == ["n1"]

    @pytest.mark.anyio
    async def test_null_query_is_not_match_all(self, sqlite_store):
        await sqlite_store.add(FOLDER_STORE, folder_record("root", "Root"))
        await sqlite_store.add(FOLDER_STORE, folder_record("child", "Child", parent_id="root"))
        roots = await sqlite_store.get_all_by_index(FOLDER_STORE, "parentIdIndex", None)
        assert [r["id"] for r in roots] == ["root"]

    @pytest.mark.anyio
    async def test_null_query_matches_absent_field(self, sqlite_store):
        await sqlite_store.add(FOLDER_STORE, {"id": "legacy", "name": "Legacy"})
        roots = await sqlite_store.get_all_by_index(FOLDER_STORE, "parentIdIndex", None)
        assert [r["id"] for r in roots] == ["legacy"]

    @pytest.mark.anyio
    async def test_delete_by_index_reports_count(self, sqlite_store):
        for i in range(3):
            await sqlite_store.add(NOTE_STORE, note_record(f"n{i}", "f1"))
        await sqlite_store.add(NOTE_STORE, note_record("keep", "f2"))

        result = await sqlite_store.delete_by_index(NOTE_STORE, "folderIdIndex", "f1")

        assert result.deleted_count == 3
        assert result.ok
        assert [r["id"] for r in await sqlite_store.get_all(NOTE_STORE)] == ["keep"]

    @pytest.mark.anyio
    async def test_unknown_index_raises(self, sqlite_store):
        with pytest.raises(StoreError):
            await sqlite_store.get_all_by_index(NOTE_STORE, "titleIndex", "x")

    @pytest.mark.anyio
    async def test_unknown_collection_raises(self, sqlite_store):
        with pytest.raises(StoreError):
            await sqlite_store.get_all("tasks")


class TestLifecycle:
    """connect / upgrade / close."""

    @pytest.mark.anyio
    async def test_data_survives_reopen(self, tmp_path):
        path = tmp_path / "notes.db"
        first = SQLiteStore(path)
        await first.connect()
        await first.add(FOLDER_STORE, folder_record("f1", "Work"))
        await first.close()

        second = SQLiteStore(path)
        await second.connect()
        try:
            assert (await second.get(FOLDER_STORE, "f1"))["name"] == "Work"
        finally:
            await second.close()

    @pytest.mark.anyio
    async def test_newer_on_disk_version_refuses_to_open(self, tmp_path):
        path = tmp_path / "notes.db"
        newer = SQLiteStore(path, schema_version=5)
        await newer.connect()
        await newer.close()

        older = SQLiteStore(path, schema_version=2)
        with pytest.raises(StoreConnectionError):
            await older.connect()
        assert not older.is_connected

    @pytest.mark.anyio
    async def test_operations_before_connect_raise(self, tmp_path):
        store = SQLiteStore(tmp_path / "notes.db")
        with pytest.raises(StoreError):
            await store.get_all(FOLDER_STORE)

    @pytest.mark.anyio
    async def test_ping(self, sqlite_store):
        assert await sqlite_store.ping() is True


class TestDatabaseModule:
    """connect_db / get_database / close_db."""

    @pytest.mark.anyio
    async def test_lifecycle(self, tmp_path):
        from journey_notes import database

        with pytest.raises(RuntimeError):
            database.get_database()

        store = await database.connect_db(tmp_path / "app.db")
        try:
            assert database.get_database() is store
            assert store.is_connected
        finally:
            await database.close_db()

        with pytest.raises(RuntimeError):
            database.get_database()
