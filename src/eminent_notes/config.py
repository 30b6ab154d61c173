"""Configuration module for Eminent Notes."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config lives alongside the default database
_USER_ENV = Path.home() / ".eminent_notes" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

CHILD_FOLDER_POLICIES = ("reparent", "cascade")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class NotesConfig(BaseModel):
    """Configuration for the notes application."""

    # Base directory for relative paths
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("EMINENT_NOTES_BASE_DIR", "."))
    )
    # Database configuration
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("EMINENT_NOTES_DATABASE_PATH", "data/db/notes.db")
        )
    )
    # When True, uses an in-memory SQLite database (nothing survives the process)
    in_memory_db: bool = Field(
        default_factory=lambda: _env_flag("EMINENT_NOTES_IN_MEMORY_DB", "false")
    )
    # Logging configuration
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("EMINENT_NOTES_LOG_DIR"))
            if os.getenv("EMINENT_NOTES_LOG_DIR")
            else None
        )
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("EMINENT_NOTES_LOG_LEVEL", "INFO")
    )
    # Quiet window applied to search text updates before a fetch runs
    search_debounce_ms: int = Field(
        default_factory=lambda: int(os.getenv("EMINENT_NOTES_SEARCH_DEBOUNCE_MS", "300"))
    )
    # Folder tree configuration (root folders have depth 0)
    max_folder_depth: int = Field(
        default_factory=lambda: int(os.getenv("EMINENT_NOTES_MAX_FOLDER_DEPTH", "10"))
    )
    # What happens to child folders when their parent is deleted
    child_folder_policy: str = Field(
        default_factory=lambda: os.getenv(
            "EMINENT_NOTES_CHILD_FOLDER_POLICY", "reparent"
        ).lower()
    )
    # Note defaults
    default_note_title: str = Field(default="New Note")
    untitled_title: str = Field(default="Untitled")
    recent_notes_limit: int = Field(
        default_factory=lambda: int(os.getenv("EMINENT_NOTES_RECENT_LIMIT", "10"))
    )
    # Tag defaults
    default_tag_color: str = Field(
        default_factory=lambda: os.getenv("EMINENT_NOTES_DEFAULT_TAG_COLOR", "#808080")
    )

    @model_validator(mode="after")
    def _validate_limits(self) -> "NotesConfig":
        """Validate numeric limits and the child folder policy."""
        if self.search_debounce_ms < 0:
            raise ValueError("search_debounce_ms must be >= 0")
        if self.max_folder_depth < 1:
            raise ValueError("max_folder_depth must be >= 1")
        if self.recent_notes_limit < 1:
            raise ValueError("recent_notes_limit must be >= 1")
        if self.child_folder_policy not in CHILD_FOLDER_POLICIES:
            raise ValueError(
                f"child_folder_policy must be one of {CHILD_FOLDER_POLICIES}, "
                f"got '{self.child_folder_policy}'"
            )
        if self.search_debounce_ms > 5000:
            logger.warning(
                "Search debounce of %dms will make search feel unresponsive",
                self.search_debounce_ms,
            )
        return self

    @property
    def search_debounce_seconds(self) -> float:
        return self.search_debounce_ms / 1000.0

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_db_url(self) -> str:
        """Get the database URL for SQLite."""
        if self.in_memory_db:
            return "sqlite:///:memory:"
        db_path = self.get_absolute_path(self.database_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_path}"

    def get_log_dir(self) -> Path:
        """Get the log directory, defaulting to ~/.eminent_notes/logs."""
        if self.log_dir is None:
            return Path.home() / ".eminent_notes" / "logs"
        return self.get_absolute_path(self.log_dir)


# Create a global config instance
config = NotesConfig()
