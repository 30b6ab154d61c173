"""End-to-end tests through the NotesApp container."""
from unittest.mock import patch

import pytest

from eminent_notes.app import SAMPLE_FOLDER_NAME, NotesApp
from eminent_notes.exceptions import ErrorCode, StorageError
from eminent_notes.services.editing_session import SessionStatus
from tests.fakes import StateRecorder


class TestOpen:
    def test_open_loads_initial_state(self, test_config):
        with NotesApp.open(test_config) as first:
            first.folders.create_folder("Work")
            first.notes.create_note()

        with NotesApp.open(test_config) as reopened:
            assert [f.name for f in reopened.folders.root_folders] == ["Work"]
            assert len(reopened.notes.notes) == 1

    def test_open_failure(self, test_config):
        with patch("eminent_notes.app.init_db", side_effect=OSError("disk full")):
            with pytest.raises(StorageError) as exc_info:
                NotesApp.open(test_config)
        assert exc_info.value.code == ErrorCode.STORAGE_CONNECTION_FAILED

    def test_in_memory(self, test_config, monkeypatch):
        monkeypatch.setattr(test_config, "in_memory_db", True)
        with NotesApp.open(test_config) as app:
            app.folders.create_folder("Scratch")
            assert [f.name for f in app.folders.root_folders] == ["Scratch"]


class TestFolderWorkflow:
    """Navigation and folder deletion keep the note list in step."""

    def test_delete_folder_keeps_notes(self, app):
        work = app.folders.create_folder("Work")
        projects = app.folders.create_folder("Projects", work)
        app.navigate_to(projects)
        note = app.notes.create_note(projects)
        assert [n.id for n in app.notes.notes] == [note.id]

        assert app.delete_folder(projects) is True

        assert app.folders.current_folder == work
        assert [f.name for f in app.folders.path()] == ["Work"]
        assert app.notes.note_filter.folder_id == work.id
        assert [n.id for n in app.notes.notes] == [note.id]
        assert app.notes.get(note.id).folder_id == work.id

    def test_navigation_rescopes_notes(self, app):
        work = app.folders.create_folder("Work")
        home = app.folders.create_folder("Home")
        app.notes.create_note(work)
        at_home = app.notes.create_note(home)

        assert [n.id for n in app.navigate_to(home)] == [at_home.id]
        assert len(app.navigate_to(None)) == 2

    def test_navigate_up_rescopes_notes(self, app):
        work = app.folders.create_folder("Work")
        projects = app.folders.create_folder("Projects", work)
        in_work = app.notes.create_note(work)
        app.navigate_to(projects)
        assert app.notes.notes == []

        app.navigate_up()

        assert [n.id for n in app.notes.notes] == [in_work.id]

    def test_search_spans_folders_while_navigated(self, app):
        work = app.folders.create_folder("Work")
        app.notes.save(None, "Buy milk", "", False, folder=work)
        app.notes.save(None, "Milk prices", "", False)
        app.navigate_to(work)

        app.notes.set_search_text("MILK")

        assert len(app.notes.notes) == 2


class TestTagWorkflow:
    def test_delete_tag_refreshes_notes(self, app):
        note = app.notes.save(None, "Tagged", "", False, tags=["urgent"])
        urgent = app.tags.find_by_name("urgent")
        recorder = StateRecorder()
        app.notes.subscribe(recorder)

        assert app.delete_tag(urgent) is True

        assert recorder.last.notes[0].id == note.id
        assert recorder.last.notes[0].tags == []


class TestEditorWorkflow:
    def test_new_note_goes_into_current_folder(self, app):
        work = app.folders.create_folder("Work")
        app.navigate_to(work)
        saved = []

        session = app.open_editor(on_save=saved.append)
        session.title = "Meeting notes"
        session.content = "Agenda"
        assert session.commit() is True

        assert saved[0].folder_id == work.id
        assert [n.title for n in app.notes.notes] == ["Meeting notes"]

    def test_edit_then_discard(self, app):
        note = app.notes.save(None, "Original", "body", False)
        session = app.open_editor(note)
        session.title = "Changed"
        assert session.status is SessionStatus.DIRTY

        session.discard()

        assert session.title == "Original"
        assert session.is_dirty is False
        assert app.notes.get(note.id).title == "Original"


class TestSeed:
    def test_seed_sample_data(self, app):
        notes = app.seed_sample_data()

        assert len(notes) == 5
        folder = app.folders.root_folders[0]
        assert folder.name == SAMPLE_FOLDER_NAME
        assert all(n.folder_id == folder.id for n in notes)
        assert all(n.tag_names == ["Important"] for n in notes)
        assert app.tags.find_by_name("Important").color == "#FF0000"
        assert {n.title for n in notes} == {f"Sample Note {i}" for i in range(5)}
