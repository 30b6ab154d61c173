"""Tests for TagManager."""
from unittest.mock import patch

import pytest

from eminent_notes.exceptions import ErrorCode, ValidationError
from eminent_notes.services.tag_manager import TagManager, TagState
from eminent_notes.storage import EntityKind
from tests.fakes import StateRecorder, storage_failure


class TestCreateTag:
    """Tests for TagManager.create()."""

    def test_default_color(self, tag_manager):
        tag = tag_manager.create("work")
        assert tag.name == "work"
        assert tag.color == "#808080"

    def test_custom_color_normalized(self, tag_manager):
        assert tag_manager.create("Important", "#ff0000").color == "#FF0000"

    def test_default_color_from_config(self, store, test_config, monkeypatch):
        monkeypatch.setattr(test_config, "default_tag_color", "#00ff00")
        assert TagManager(store).create("green").color == "#00FF00"

    @pytest.mark.parametrize("name", ["", "  ", None])
    def test_blank_name(self, tag_manager, store, name):
        with pytest.raises(ValidationError) as exc_info:
            tag_manager.create(name)
        assert exc_info.value.code == ErrorCode.TAG_INVALID
        assert store.count(EntityKind.TAG) == 0

    def test_malformed_color(self, tag_manager, store):
        with pytest.raises(ValidationError) as exc_info:
            tag_manager.create("bad", "red")
        assert exc_info.value.code == ErrorCode.TAG_INVALID
        assert exc_info.value.field == "color"
        assert store.count(EntityKind.TAG) == 0

    def test_duplicate_name(self, tag_manager):
        tag_manager.create("work")
        with pytest.raises(ValidationError) as exc_info:
            tag_manager.create(" work ")
        assert exc_info.value.code == ErrorCode.TAG_ALREADY_EXISTS

    def test_storage_failure(self, tag_manager, store):
        with patch.object(store, "create", side_effect=storage_failure("create")):
            assert tag_manager.create("work") is None
        assert tag_manager.list_all() == []

    def test_publishes_sorted_list(self, tag_manager):
        recorder = StateRecorder()
        tag_manager.subscribe(recorder)
        tag_manager.create("zeta")
        tag_manager.create("alpha")
        assert isinstance(recorder.last, TagState)
        assert [t.name for t in recorder.last.tags] == ["alpha", "zeta"]


class TestLookup:
    """Tests for get, find_by_name and get_or_create."""

    def test_find_by_name(self, tag_manager):
        tag = tag_manager.create("work")
        assert tag_manager.find_by_name("work") == tag
        assert tag_manager.find_by_name("  work ") == tag
        assert tag_manager.find_by_name("Work") is None
        assert tag_manager.find_by_name("") is None

    def test_get(self, tag_manager):
        tag = tag_manager.create("work")
        assert tag_manager.get(tag.id) == tag
        assert tag_manager.get("missing") is None

    def test_get_or_create(self, tag_manager, store):
        first = tag_manager.get_or_create("work", "#123456")
        second = tag_manager.get_or_create("work", "#654321")
        assert first == second
        assert second.color == "#123456"
        assert store.count(EntityKind.TAG) == 1


class TestDeleteTag:
    """Deleting a tag removes it from every note."""

    def test_delete_detaches_from_notes(self, tag_manager, note_manager):
        urgent = tag_manager.create("urgent")
        keep = tag_manager.create("keep")
        notes = [
            note_manager.save(None, f"Note {i}", "", False, tags=[urgent, keep])
            for i in range(3)
        ]

        assert tag_manager.delete(urgent) is True

        for note in notes:
            assert note_manager.get(note.id).tag_names == ["keep"]
        assert [t.name for t in tag_manager.list_all()] == ["keep"]

    def test_delete_missing(self, tag_manager):
        tag = tag_manager.create("urgent")
        tag_manager.delete(tag)
        assert tag_manager.delete(tag) is False

    def test_notes_for(self, tag_manager, note_manager):
        urgent = tag_manager.create("urgent")
        tagged = note_manager.save(None, "Tagged", "", False, tags=[urgent])
        note_manager.save(None, "Plain", "", False)
        archived = note_manager.archive(
            note_manager.save(None, "Old", "", False, tags=[urgent])
        )

        notes = tag_manager.notes_for(urgent)

        assert {n.id for n in notes} == {tagged.id, archived.id}


class TestResolve:
    """Tests for turning tag names into stored tags."""

    def test_resolve_mixed(self, tag_manager, store):
        work = tag_manager.create("work")
        resolved = tag_manager.resolve([work, "home", " work ", "home"])
        assert sorted(t.name for t in resolved) == ["home", "work"]
        assert store.count(EntityKind.TAG) == 2

    def test_resolve_blank_name(self, tag_manager):
        with pytest.raises(ValidationError):
            tag_manager.resolve(["  "])

    def test_resolve_drops_deleted_tag(self, tag_manager, caplog):
        work = tag_manager.create("work")
        home = tag_manager.create("home")
        tag_manager.delete(work)

        with caplog.at_level("WARNING", logger="eminent_notes.services.tag_manager"):
            resolved = tag_manager.resolve([work, home])

        assert [t.id for t in resolved] == [home.id]
        assert "Skipping deleted tag 'work'" in caplog.text
