"""Common test fixtures for Eminent Notes."""

import logging
import tempfile
from pathlib import Path

import pytest

from eminent_notes.app import NotesApp
from eminent_notes.config import config
from eminent_notes.models.db_models import init_db
from eminent_notes.observability import ROOT_LOGGER_NAME
from eminent_notes.services.folder_manager import FolderManager
from eminent_notes.services.note_manager import NoteManager
from eminent_notes.services.tag_manager import TagManager
from eminent_notes.storage import Store


@pytest.fixture
def temp_dirs():
    """Create temporary directories for the database and logs."""
    with tempfile.TemporaryDirectory() as db_dir:
        with tempfile.TemporaryDirectory() as log_dir:
            yield Path(db_dir), Path(log_dir)


@pytest.fixture
def test_config(temp_dirs, monkeypatch):
    """Configure with test paths (auto-restored even on crash)."""
    db_dir, log_dir = temp_dirs
    monkeypatch.setattr(config, "database_path", db_dir / "test_notes.db")
    monkeypatch.setattr(config, "log_dir", log_dir)
    monkeypatch.setattr(config, "log_level", config.log_level)
    monkeypatch.setattr(config, "in_memory_db", False)
    monkeypatch.setattr(config, "search_debounce_ms", 0)
    monkeypatch.setattr(config, "max_folder_depth", 10)
    monkeypatch.setattr(config, "child_folder_policy", "reparent")
    yield config


@pytest.fixture
def store(test_config):
    """Create a store over a fresh SQLite file."""
    engine = init_db(test_config.get_db_url())
    yield Store(engine)
    engine.dispose()


@pytest.fixture
def tag_manager(store):
    return TagManager(store)


@pytest.fixture
def note_manager(store, tag_manager):
    """Note manager whose searches run immediately (no debounce window)."""
    manager = NoteManager(store, tag_manager=tag_manager, debounce_seconds=0)
    yield manager
    manager.close()


@pytest.fixture
def folder_manager(store):
    return FolderManager(store, max_depth=10, child_policy="reparent")


@pytest.fixture
def app(test_config):
    """Open a full application against the test database."""
    notes_app = NotesApp.open(test_config)
    yield notes_app
    notes_app.close()


@pytest.fixture
def clean_logger():
    """Remove handlers installed by configure_logging after the test."""
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    original_level = root_logger.level
    original_handlers = list(root_logger.handlers)
    yield root_logger
    for handler in list(root_logger.handlers):
        if handler not in original_handlers:
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(original_level)
