"""Tests for NotesConfig."""
from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from eminent_notes.config import NotesConfig


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    """Keep EMINENT_NOTES_* variables from the environment out of these tests."""
    for name in (
        "EMINENT_NOTES_BASE_DIR",
        "EMINENT_NOTES_DATABASE_PATH",
        "EMINENT_NOTES_IN_MEMORY_DB",
        "EMINENT_NOTES_LOG_DIR",
        "EMINENT_NOTES_SEARCH_DEBOUNCE_MS",
        "EMINENT_NOTES_MAX_FOLDER_DEPTH",
        "EMINENT_NOTES_CHILD_FOLDER_POLICY",
        "EMINENT_NOTES_RECENT_LIMIT",
        "EMINENT_NOTES_DEFAULT_TAG_COLOR",
    ):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_defaults(self):
        cfg = NotesConfig()
        assert cfg.search_debounce_ms == 300
        assert cfg.search_debounce_seconds == 0.3
        assert cfg.max_folder_depth == 10
        assert cfg.child_folder_policy == "reparent"
        assert cfg.default_note_title == "New Note"
        assert cfg.untitled_title == "Untitled"
        assert cfg.recent_notes_limit == 10
        assert cfg.default_tag_color == "#808080"
        assert cfg.in_memory_db is False


class TestEnvironment:
    def test_values_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("EMINENT_NOTES_MAX_FOLDER_DEPTH", "5")
        monkeypatch.setenv("EMINENT_NOTES_SEARCH_DEBOUNCE_MS", "150")
        monkeypatch.setenv("EMINENT_NOTES_CHILD_FOLDER_POLICY", "CASCADE")
        monkeypatch.setenv("EMINENT_NOTES_IN_MEMORY_DB", "yes")

        cfg = NotesConfig()

        assert cfg.max_folder_depth == 5
        assert cfg.search_debounce_ms == 150
        assert cfg.child_folder_policy == "cascade"
        assert cfg.in_memory_db is True


class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"search_debounce_ms": -1},
            {"max_folder_depth": 0},
            {"recent_notes_limit": 0},
            {"child_folder_policy": "orphan"},
        ],
    )
    def test_rejected(self, overrides):
        with pytest.raises(PydanticValidationError):
            NotesConfig(**overrides)


class TestPaths:
    def test_in_memory_url(self):
        assert NotesConfig(in_memory_db=True).get_db_url() == "sqlite:///:memory:"

    def test_db_url_creates_parent(self, tmp_path):
        cfg = NotesConfig(base_dir=tmp_path, database_path=Path("nested/dir/notes.db"))
        url = cfg.get_db_url()
        assert url == f"sqlite:///{tmp_path / 'nested' / 'dir' / 'notes.db'}"
        assert (tmp_path / "nested" / "dir").is_dir()

    def test_absolute_path_unchanged(self, tmp_path):
        cfg = NotesConfig(base_dir=Path("/elsewhere"))
        assert cfg.get_absolute_path(tmp_path) == tmp_path

    def test_log_dir(self, tmp_path):
        assert NotesConfig(base_dir=tmp_path, log_dir=Path("logs")).get_log_dir() == tmp_path / "logs"
        assert NotesConfig().get_log_dir() == Path.home() / ".eminent_notes" / "logs"
