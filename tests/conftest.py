"""Common test fixtures for the notes core."""

import pytest

from journey_notes.config import Settings
from journey_notes.notes import EventBus, NoteCollectionManager, FolderTreeManager, NotesApp
from journey_notes.sqlite_db import SQLiteStore
from tests.fakes import FakeStore, RecordingNotifier


@pytest.fixture(params=["asyncio"])
def anyio_backend(request):
    """Restrict anyio tests to asyncio only (trio is not installed)."""
    return request.param


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway database file."""
    return Settings(db_path=tmp_path / "notes.db")


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
async def sqlite_store(tmp_path, anyio_backend):
    """A real SQLiteStore on a temporary file, closed after the test."""
    db = SQLiteStore(tmp_path / "notes.db")
    await db.connect()
    yield db
    await db.close()


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def note_collection(store, events):
    return NoteCollectionManager(store, events)


@pytest.fixture
def folder_tree(store, note_collection, events):
    return FolderTreeManager(store, note_collection, events)


@pytest.fixture
def notes_app(store, notifier, events, settings):
    return NotesApp(store, notifier=notifier, events=events, settings=settings)

