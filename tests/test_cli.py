"""Tests for the command-line entry point."""
from unittest.mock import patch

import pytest

from eminent_notes.exceptions import ErrorCode, StorageError
from eminent_notes.main import main


@pytest.fixture
def cli(test_config, clean_logger, capsys):
    """Run the CLI against the test database and return its stdout."""
    db_path = str(test_config.database_path)
    log_dir = str(test_config.log_dir)

    def run(*args):
        main(["--database-path", db_path, "--log-dir", log_dir, *args])
        return capsys.readouterr().out

    return run


class TestFolders:
    def test_mkdir_and_list(self, cli):
        work_id = cli("mkdir", "Work").strip()
        cli("mkdir", "Projects", "--parent", work_id)

        out = cli("folders")

        assert f"Work  ({work_id})" in out
        assert "  Projects  (" in out

    def test_rename_folder(self, cli):
        work_id = cli("mkdir", "Wrok").strip()
        cli("rename-folder", work_id, "Work")
        assert "Work" in cli("folders")

    def test_rmdir_keeps_notes(self, cli):
        work_id = cli("mkdir", "Work").strip()
        projects_id = cli("mkdir", "Projects", "--parent", work_id).strip()
        cli("new", "--folder", projects_id, "--title", "Plan")

        cli("rmdir", projects_id)

        assert "Plan" in cli("notes", "--folder", work_id)

    def test_unknown_folder(self, cli, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli("rmdir", "missing")
        assert exc_info.value.code == 1
        assert "No folder with ID missing" in capsys.readouterr().err

    def test_blank_folder_name(self, cli, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli("mkdir", "  ")
        assert exc_info.value.code == 1
        assert "FOLDER_NAME_REQUIRED" in capsys.readouterr().err


class TestNotes:
    def test_new_and_search(self, cli):
        cli("new", "--title", "Groceries", "--content", "buy milk", "--tag", "home")
        cli("new", "--title", "Taxes")

        out = cli("notes", "--search", "MILK")

        assert "Groceries" in out
        assert "[home]" in out
        assert "Taxes" not in out

    def test_new_uses_default_title(self, cli):
        cli("new")
        assert "New Note" in cli("notes")

    def test_pin_archive_and_remove(self, cli):
        note_id = cli("new", "--title", "Draft").strip()

        assert cli("pin", note_id).startswith("*")
        cli("archive", note_id)
        assert "Draft" not in cli("notes")
        assert "Draft" in cli("notes", "--archived")
        cli("unarchive", note_id)
        assert "Draft" in cli("notes")
        cli("rm", note_id)
        assert cli("notes") == ""

    def test_unknown_note(self, cli):
        with pytest.raises(SystemExit) as exc_info:
            cli("pin", "missing")
        assert exc_info.value.code == 1


class TestTags:
    def test_create_and_list(self, cli):
        cli("tag", "Important", "--color", "#ff0000")
        assert "Important  #FF0000" in cli("tags")

    def test_duplicate_tag(self, cli, capsys):
        cli("tag", "Important")
        with pytest.raises(SystemExit):
            cli("tag", "Important")
        assert "TAG_ALREADY_EXISTS" in capsys.readouterr().err


class TestSeed:
    def test_seed(self, cli):
        assert "Created 5 sample notes" in cli("seed")
        assert "Quick Notes" in cli("folders")
        assert cli("notes").count("Sample Note") == 5


class TestStartup:
    def test_storage_failure_exits(self, cli, capsys):
        failure = StorageError(
            "Failed to open the notes database",
            code=ErrorCode.STORAGE_CONNECTION_FAILED,
        )
        with patch("eminent_notes.main.NotesApp.open", side_effect=failure):
            with pytest.raises(SystemExit) as exc_info:
                cli("folders")
        assert exc_info.value.code == 1
        assert "failed to open the notes database" in capsys.readouterr().err

    def test_requires_command(self, cli):
        with pytest.raises(SystemExit) as exc_info:
            cli()
        assert exc_info.value.code == 2
