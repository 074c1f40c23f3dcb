"""Tests for the NotesApp command facade: scenarios across managers and editor."""

import asyncio

import pytest

from journey_notes.notes import (
    EditorState,
    MalformedNoteError,
    NoteNotFoundError,
    NotesEvent,
    NotesValidationError,
    UnsavedChangesError,
)
from journey_notes.sqlite_db import FOLDER_STORE, NOTE_STORE, TransactionError
from tests.fakes import folder_record, note_record


async def folder_with_open_note(app):
    folder = (await app.create_folder("Work")).value
    app.select_folder(folder.id)
    note = (await app.create_note()).value
    return folder, note


class TestInitialize:
    """Startup loading."""

    @pytest.mark.anyio
    async def test_loads_folders_then_notes(self, store, notes_app):
        store.seed(FOLDER_STORE, folder_record("f1", "Work"))
        store.seed(NOTE_STORE, note_record("n1", "f1"), note_record("orphan", "gone"))

        await notes_app.initialize()
        await notes_app.wait_for_cleanup()

        assert notes_app.is_initialized
        assert [f.id for f in notes_app.list_folders()] == ["f1"]
        assert [n.id for n in notes_app.list_notes("f1")] == ["n1"]
        assert store.ids(NOTE_STORE) == {"n1"}

    @pytest.mark.anyio
    async def test_failure_resets_and_reraises(self, store, notes_app, notifier):
        store.seed(FOLDER_STORE, folder_record("f1", "Work"))
        store.fail("get_all", NOTE_STORE)

        with pytest.raises(TransactionError):
            await notes_app.initialize()

        assert not notes_app.is_initialized
        assert notes_app.list_folders() == []
        assert notifier.alerts and notifier.alerts[0].startswith("Error loading notes data")


class TestNoteScenarios:
    """End-to-end flows through the facade."""

    @pytest.mark.anyio
    async def test_create_note_in_empty_folder(self, notes_app):
        folder = (await notes_app.create_folder("Empty")).value
        assert notes_app.select_folder(folder.id).ok
        assert notes_app.list_notes(folder.id) == []

        result = await notes_app.create_note()

        assert result.ok
        notes = notes_app.list_notes(folder.id)
        assert len(notes) == 1
        assert notes_app.selected_note_id == notes[0].id
        state = notes_app.editor_state()
        assert state["state"] == EditorState.CLEAN.value
        assert state["title"] == "Untitled Note"
        assert state["content"] == ""

    @pytest.mark.anyio
    async def test_notes_listed_newest_first(self, store, notes_app):
        store.seed(FOLDER_STORE, folder_record("f1", "Work"))
        store.seed(NOTE_STORE,
                   note_record("t1", "f1", updated_at=1),
                   note_record("t2", "f1", updated_at=2))
        await notes_app.initialize()
        assert [n.id for n in notes_app.list_notes("f1")] == ["t2", "t1"]

    @pytest.mark.anyio
    async def test_create_note_without_folder(self, store, notes_app, notifier):
        result = await notes_app.create_note()
        assert not result.ok
        assert isinstance(result.error, NotesValidationError)
        assert store.writes() == []
        assert notifier.alerts == ["Error creating new note: Please select a folder before adding a note."]

    @pytest.mark.anyio
    async def test_create_folder_empty_name_alerts(self, notes_app, notifier):
        result = await notes_app.create_folder("  ")
        assert not result.ok
        assert notifier.alerts[0].startswith("Error saving folder")

    @pytest.mark.anyio
    async def test_create_folder_store_failure(self, store, notes_app, notifier):
        store.fail("add", FOLDER_STORE)
        result = await notes_app.create_folder("Work")
        assert not result.ok
        assert isinstance(result.error, TransactionError)
        assert notes_app.list_folders() == []
        assert len(notifier.alerts) == 1


class TestUnsavedChanges:
    """Navigation is gated while the editor is dirty."""

    @pytest.mark.anyio
    async def test_declined_folder_switch_changes_nothing(self, notes_app):
        folder, note = await folder_with_open_note(notes_app)
        other = (await notes_app.create_folder("Other")).value
        notes_app.update_editor(title="Edited")

        result = notes_app.select_folder(other.id, discard=False)

        assert isinstance(result.error, UnsavedChangesError)
        assert notes_app.selected_folder_id == folder.id
        assert notes_app.selected_note_id == note.id
        assert notes_app.editor.state is EditorState.DIRTY
        assert notes_app.editor.title == "Edited"

    @pytest.mark.anyio
    async def test_confirmed_discard_switches_and_clears_editor(self, notes_app, notifier):
        folder, note = await folder_with_open_note(notes_app)
        other = (await notes_app.create_folder("Other")).value
        notes_app.update_editor(content="draft")

        result = notes_app.select_folder(other.id)

        assert result.ok
        assert len(notifier.confirms) == 1
        assert notes_app.selected_folder_id == other.id
        assert notes_app.editor.state is EditorState.EMPTY

    @pytest.mark.anyio
    async def test_clean_editor_is_not_prompted(self, notes_app, notifier):
        await folder_with_open_note(notes_app)
        other = (await notes_app.create_folder("Other")).value
        assert notes_app.select_folder(other.id).ok
        assert notifier.confirms == []

    @pytest.mark.anyio
    async def test_declined_new_note(self, store, notes_app, notifier):
        folder, note = await folder_with_open_note(notes_app)
        notes_app.update_editor(title="Edited")
        notifier.answers = [False]
        writes = len(store.writes())

        result = await notes_app.create_note()

        assert isinstance(result.error, UnsavedChangesError)
        assert len(store.writes()) == writes
        assert notes_app.selected_note_id == note.id

    @pytest.mark.anyio
    async def test_declined_note_switch(self, notes_app):
        folder, first = await folder_with_open_note(notes_app)
        second = (await notes_app.create_note()).value
        notes_app.update_editor(title="Edited")

        result = await notes_app.select_note(first.id, discard=False)

        assert not result.ok
        assert notes_app.selected_note_id == second.id

    @pytest.mark.anyio
    async def test_revert_edit_needs_no_prompt(self, notes_app, notifier):
        folder, note = await folder_with_open_note(notes_app)
        notes_app.update_editor(title="X")
        notes_app.update_editor(title="Untitled Note")
        other = (await notes_app.create_folder("Other")).value
        assert notes_app.select_folder(other.id).ok
        assert notifier.confirms == []


class TestSelectNote:
    """Opening notes in the editor."""

    @pytest.mark.anyio
    async def test_requires_selected_folder(self, notes_app):
        result = await notes_app.select_note("n1")
        assert isinstance(result.error, NotesValidationError)

    @pytest.mark.anyio
    async def test_missing_note_deselects(self, notes_app, notifier):
        folder, note = await folder_with_open_note(notes_app)
        result = await notes_app.select_note("missing")
        assert isinstance(result.error, NoteNotFoundError)
        assert notes_app.selected_note_id is None
        assert notes_app.editor.state is EditorState.EMPTY
        assert notifier.alerts[-1].startswith("Error loading note")

    @pytest.mark.anyio
    async def test_malformed_stored_note_deselects(self, store, notes_app, notifier):
        folder, note = await folder_with_open_note(notes_app)
        store.seed(NOTE_STORE, {**note_record("bad", folder.id), "content": 5})

        result = await notes_app.select_note("bad")

        assert not result.ok
        assert isinstance(result.error, MalformedNoteError)
        assert notes_app.selected_note_id is None
        assert notes_app.editor.state is EditorState.EMPTY
        assert notifier.alerts[-1].startswith("Error loading note")

    @pytest.mark.anyio
    async def test_reselect_is_noop_unless_forced(self, store, notes_app):
        folder, note = await folder_with_open_note(notes_app)
        notes_app.update_editor(title="Edited")

        assert (await notes_app.select_note(note.id)).ok
        assert notes_app.editor.title == "Edited"

        assert (await notes_app.select_note(note.id, force=True)).ok
        assert notes_app.editor.title == "Untitled Note"


class TestSaveNote:
    """Saving from the editor buffer."""

    @pytest.mark.anyio
    async def test_save_buffer(self, store, notes_app):
        folder, note = await folder_with_open_note(notes_app)
        notes_app.update_editor(title="Plan", content="Steps")

        result = await notes_app.save_note()

        assert result.ok and result.value.changed
        assert store.data[NOTE_STORE][note.id]["title"] == "Plan"
        assert notes_app.editor.state is EditorState.CLEAN
        assert notes_app.editor_state()["status"] == "Saved!"

    @pytest.mark.anyio
    async def test_no_changes(self, store, notes_app):
        folder, note = await folder_with_open_note(notes_app)
        writes = len(store.writes())

        result = await notes_app.save_note()

        assert result.ok and not result.value.changed
        assert len(store.writes()) == writes
        assert notes_app.editor_state()["status"] == "No changes detected"

    @pytest.mark.anyio
    async def test_failure_keeps_edits_for_retry(self, store, notes_app, notifier):
        folder, note = await folder_with_open_note(notes_app)
        notes_app.update_editor(content="precious")
        store.fail("put", NOTE_STORE)

        result = await notes_app.save_note()

        assert not result.ok
        assert notes_app.editor.state is EditorState.DIRTY
        assert notes_app.editor.content == "precious"
        assert notes_app.editor_state()["status"] == "Save failed!"
        assert notifier.alerts[-1].startswith("Error saving note")

        store.clear_failures()
        assert (await notes_app.save_note()).ok
        assert store.data[NOTE_STORE][note.id]["content"] == "precious"

    @pytest.mark.anyio
    async def test_edits_during_save_are_kept(self, store, notes_app):
        folder, note = await folder_with_open_note(notes_app)
        notes_app.update_editor(content="first draft")
        store.hold_puts()

        saving = asyncio.create_task(notes_app.save_note())
        while store.waiting_puts == 0:
            await asyncio.sleep(0)
        notes_app.update_editor(content="typed while saving")
        store.release_puts()
        result = await saving

        assert result.ok
        assert store.data[NOTE_STORE][note.id]["content"] == "first draft"
        assert notes_app.editor.content == "typed while saving"
        assert notes_app.editor.state is EditorState.DIRTY
        assert notes_app.editor_state()["status"] == "Unsaved changes"

        assert (await notes_app.save_note()).value.changed
        assert store.data[NOTE_STORE][note.id]["content"] == "typed while saving"
        assert notes_app.editor.state is EditorState.CLEAN

    @pytest.mark.anyio
    async def test_save_with_explicit_values(self, store, notes_app):
        folder, note = await folder_with_open_note(notes_app)
        result = await notes_app.save_note(note.id, title="", content="text")
        assert result.value.note.title == "Untitled Note"
        assert notes_app.editor.content == "text"


class TestDeletes:
    """Deleting notes and folders through the facade."""

    @pytest.mark.anyio
    async def test_delete_open_note_empties_editor(self, store, notes_app):
        folder, note = await folder_with_open_note(notes_app)
        result = await notes_app.delete_note(note.id, confirmed=True)
        assert result.ok and result.value is True
        assert notes_app.selected_note_id is None
        assert notes_app.editor.state is EditorState.EMPTY
        assert store.ids(NOTE_STORE) == set()

    @pytest.mark.anyio
    async def test_delete_note_failure_alerts(self, store, notes_app, notifier):
        folder, note = await folder_with_open_note(notes_app)
        store.fail("delete", NOTE_STORE)
        result = await notes_app.delete_note(note.id, confirmed=True)
        assert not result.ok
        assert notes_app.selected_note_id == note.id
        assert notifier.alerts[-1].startswith("Error deleting note")

    @pytest.mark.anyio
    async def test_delete_folder_with_open_note(self, store, notes_app):
        folder, note = await folder_with_open_note(notes_app)
        sub = (await notes_app.create_folder("Sub", folder.id)).value

        result = await notes_app.delete_folder(folder.id, confirmed=True)

        assert result.ok
        assert result.value.folder_ids == {folder.id, sub.id}
        assert notes_app.selected_folder_id is None
        assert notes_app.editor.state is EditorState.EMPTY
        assert store.ids(FOLDER_STORE) == set()
        assert store.ids(NOTE_STORE) == set()

    @pytest.mark.anyio
    async def test_delete_folder_cancelled(self, store, notes_app, notifier):
        folder = (await notes_app.create_folder("Keep")).value
        notifier.answers = [False]
        result = await notes_app.delete_folder(folder.id)
        assert result.ok and result.value is None
        assert store.ids(FOLDER_STORE) == {folder.id}
        assert notifier.confirms[0].startswith('DELETE FOLDER "Keep"?')

    @pytest.mark.anyio
    async def test_partial_folder_delete_alerts(self, store, notes_app, notifier):
        folder, note = await folder_with_open_note(notes_app)
        store.fail("delete", NOTE_STORE, key=note.id)
        result = await notes_app.delete_folder(folder.id, confirmed=True)
        assert result.ok
        assert len(result.value.failures) == 1
        assert notifier.alerts[-1].startswith('Error deleting folder "Work"')


class TestEventsAndContext:
    """Outward notifications and the read-only export."""

    @pytest.mark.anyio
    async def test_editor_events(self, notes_app, events):
        seen = []
        events.subscribe(NotesEvent.EDITOR_STATE_CHANGED, seen.append)
        await folder_with_open_note(notes_app)
        notes_app.update_editor(title="X")
        assert seen[-1]["state"] == "dirty"
        assert seen[-1]["title"] == "X"

    @pytest.mark.anyio
    async def test_snapshot_returns_copies(self, notes_app):
        folder, note = await folder_with_open_note(notes_app)
        folders, notes = notes_app.snapshot()
        notes[0].title = "changed"
        assert notes_app.notes.find(note.id).title == "Untitled Note"
        assert [f.id for f in folders] == [folder.id]

    @pytest.mark.anyio
    async def test_notes_context(self, notes_app):
        await folder_with_open_note(notes_app)
        text = notes_app.notes_context()
        assert text.startswith("NOTES:\n  Work:\n")
        assert '"Untitled Note":' in text
