"""Tests for EditorSession dirty tracking and status messages."""

import pytest

from journey_notes.models.note import Note
from journey_notes.notes import EditorSession, EditorState, NotesValidationError
from journey_notes.notes.editor import (
    STATUS_NO_CHANGES,
    STATUS_SAVE_FAILED,
    STATUS_SAVED,
    STATUS_UNSAVED,
)


class FakeClock:
    def __init__(self, now: int = 0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def editor(clock):
    return EditorSession(status_ttl_ms=1500, clock=clock)


@pytest.fixture
def note():
    return Note(id="n1", folder_id="f1", title="T", content="body", created_at=1, updated_at=1)


class TestDirtyTracking:
    """State is derived by comparing the buffer with the snapshot."""

    def test_starts_empty(self, editor):
        assert editor.state is EditorState.EMPTY
        assert editor.note_id is None

    def test_open_is_clean(self, editor, note):
        editor.open(note)
        assert editor.state is EditorState.CLEAN
        assert editor.title == "T"

    def test_reverting_edit_is_clean(self, editor, note):
        editor.open(note)
        assert editor.update(title="X") is EditorState.DIRTY
        assert editor.update(title="T") is EditorState.CLEAN

    def test_content_change_is_dirty(self, editor, note):
        editor.open(note)
        assert editor.update(content="body!") is EditorState.DIRTY

    def test_title_compared_trimmed(self, editor, note):
        editor.open(note)
        assert editor.update(title="  T ") is EditorState.CLEAN

    def test_snapshot_independent_of_caller_copy(self, editor, note):
        editor.open(note)
        note.title = "mutated elsewhere"
        assert editor.state is EditorState.CLEAN

    def test_update_without_note_rejected(self, editor):
        with pytest.raises(NotesValidationError):
            editor.update(title="x")

    def test_clear_returns_to_empty(self, editor, note):
        editor.open(note)
        editor.update(title="X")
        editor.clear()
        assert editor.state is EditorState.EMPTY
        assert editor.title == ""


class TestSaveLifecycle:
    """Status line across save attempts."""

    def test_unsaved_status_while_dirty(self, editor, note):
        editor.open(note)
        editor.update(title="X")
        assert editor.status == STATUS_UNSAVED
        editor.update(title="T")
        assert editor.status == ""

    def test_saved_replaces_snapshot(self, editor, note):
        editor.open(note)
        editor.update(title="X")
        editor.mark_saved(note.model_copy(update={"title": "X", "updated_at": 2}))
        assert editor.state is EditorState.CLEAN
        assert editor.status == STATUS_SAVED

    def test_edits_after_submit_survive_saved(self, editor, note):
        editor.open(note)
        editor.update(content="submitted")
        editor.mark_saving()
        editor.update(content="typed later")

        editor.mark_saved(note.model_copy(update={"content": "submitted", "updated_at": 2}),
                          title="T", content="submitted")

        assert editor.content == "typed later"
        assert editor.state is EditorState.DIRTY
        assert editor.status == STATUS_UNSAVED

    def test_saved_adopts_normalized_title(self, editor, note):
        editor.open(note)
        editor.update(title="   ")
        editor.mark_saved(note.model_copy(update={"title": "Untitled Note", "updated_at": 2}),
                          title="   ", content="body")
        assert editor.title == "Untitled Note"
        assert editor.state is EditorState.CLEAN

    def test_failed_save_stays_dirty(self, editor, note):
        editor.open(note)
        editor.update(content="new")
        editor.mark_saving()
        editor.mark_save_failed()
        assert editor.state is EditorState.DIRTY
        assert editor.content == "new"
        assert editor.status == STATUS_SAVE_FAILED

    def test_transient_status_expires(self, editor, note, clock):
        editor.open(note)
        editor.mark_no_changes()
        clock.now = 1499
        assert editor.status == STATUS_NO_CHANGES
        clock.now = 1500
        assert editor.status == ""

    def test_failure_status_does_not_expire(self, editor, note, clock):
        editor.open(note)
        editor.mark_save_failed()
        clock.now = 10_000
        assert editor.status == STATUS_SAVE_FAILED

    def test_snapshot_dict(self, editor, note):
        editor.open(note)
        assert editor.snapshot() == {
            "state": "clean",
            "note_id": "n1",
            "folder_id": "f1",
            "title": "T",
            "content": "body",
            "status": "",
        }
