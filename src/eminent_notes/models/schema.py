"""Data models for Eminent Notes."""

import datetime
import os
import re
import threading
from datetime import timezone
from typing import FrozenSet, List, Optional

from pydantic import BaseModel, Field, field_validator

# Hex color in #RGB, #RRGGBB or #RRGGBBAA form
HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current time with UTC timezone info attached.
    """
    return datetime.datetime.now(timezone.utc)


def ensure_timezone_aware(dt_value: Optional[datetime.datetime]) -> datetime.datetime:
    """Ensure a datetime is timezone-aware, treating naive datetimes as UTC.

    SQLite drops timezone information, so every datetime read back from the
    database is naive and is assumed to be UTC.

    Args:
        dt_value: A datetime that may or may not have timezone info.

    Returns:
        The same datetime with UTC timezone if it was naive, otherwise unchanged.
    """
    if dt_value is None:
        return utc_now()
    if dt_value.tzinfo is None:
        return dt_value.replace(tzinfo=timezone.utc)
    return dt_value


def validate_hex_color(value: str) -> str:
    """Validate a hex color string such as '#FF0000'.

    Raises:
        ValueError: If the value is not a hex color.
    """
    if not HEX_COLOR_PATTERN.match(value or ""):
        raise ValueError(
            f"Invalid color '{value}': expected #RGB, #RRGGBB or #RRGGBBAA"
        )
    return value.upper()


# Thread-safe counter for uniqueness (seeded from PID for cross-process safety)
_id_lock = threading.Lock()
_last_timestamp = 0
_counter = (os.getpid() * 7) % 1_000_000


def generate_id() -> str:
    """Generate an ISO 8601 timestamp-based ID with guaranteed uniqueness.

    Returns:
        A string in format "YYYYMMDDTHHMMSSsssssscccccc" where:
        - YYYYMMDD is the date
        - T is the ISO 8601 date/time separator
        - HHMMSS is the time (hours, minutes, seconds)
        - ssssss is the 6-digit microsecond component
        - cccccc is a 6-digit counter for same-microsecond uniqueness

    The counter is seeded from the process ID so that separate processes
    sharing one database file produce different IDs.
    """
    global _last_timestamp, _counter

    with _id_lock:
        now = utc_now()
        current_timestamp = int(now.timestamp() * 1_000_000)

        if current_timestamp == _last_timestamp:
            _counter += 1
        else:
            _last_timestamp = current_timestamp
            _counter = (os.getpid() * 7) % 1_000_000

        _counter %= 1_000_000

        date_time = now.strftime("%Y%m%dT%H%M%S")
        return f"{date_time}{now.microsecond:06d}{_counter:06d}"


def _require_text(value: str, label: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{label} cannot be empty")
    return value


class Tag(BaseModel):
    """A named, colored label that can be attached to any number of notes."""

    id: str = Field(default_factory=generate_id, description="Unique ID of the tag")
    name: str = Field(..., description="Tag name")
    color: str = Field(default="#808080", description="Hex color, e.g. '#FF0000'")

    model_config = {"validate_assignment": True, "frozen": True}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _require_text(v, "Tag name")

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        return validate_hex_color(v)

    def __str__(self) -> str:
        """Return string representation of tag."""
        return self.name


class Folder(BaseModel):
    """A folder in the note hierarchy.

    Root folders have no parent. Children and contained notes are not stored
    on the model; they are queried through the folder manager.
    """

    id: str = Field(default_factory=generate_id, description="Unique ID of the folder")
    name: str = Field(..., description="Display name of the folder")
    parent_id: Optional[str] = Field(
        default=None, description="ID of the parent folder, None for root folders"
    )
    created_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the folder was created (UTC)"
    )

    model_config = {"validate_assignment": True, "extra": "forbid", "frozen": True}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate that the name is not empty."""
        return _require_text(v, "Folder name")

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


class Note(BaseModel):
    """A note snapshot as stored in the database."""

    id: str = Field(default_factory=generate_id, description="Unique ID of the note")
    title: str = Field(default="New Note", description="Title of the note")
    content: str = Field(default="", description="Plain text content of the note")
    created_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was created (UTC)"
    )
    modified_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was last saved (UTC)"
    )
    is_archived: bool = Field(default=False, description="Hidden from default listings")
    is_pinned: bool = Field(default=False, description="Shown in the pinned section")
    folder_id: Optional[str] = Field(
        default=None, description="Owning folder, None for root-level notes"
    )
    tags: List[Tag] = Field(default_factory=list, description="Tags, sorted by name")

    model_config = {"validate_assignment": True, "extra": "forbid", "frozen": True}

    @field_validator("tags")
    @classmethod
    def sort_tags(cls, v: List[Tag]) -> List[Tag]:
        """Keep tags unique by ID and ordered by name."""
        unique = {tag.id: tag for tag in v}
        return sorted(unique.values(), key=lambda t: (t.name, t.id))

    @property
    def tag_ids(self) -> FrozenSet[str]:
        return frozenset(tag.id for tag in self.tags)

    @property
    def tag_names(self) -> List[str]:
        return [tag.name for tag in self.tags]


class NoteFilter(BaseModel):
    """Criteria for listing notes.

    A non-empty ``search`` takes precedence over ``folder_id``: searching
    always spans every folder. With neither set, all non-archived notes are
    listed.
    """

    search: str = Field(default="", description="Substring matched against title or content")
    folder_id: Optional[str] = Field(default=None, description="Restrict to one folder")

    model_config = {"frozen": True}

    @classmethod
    def for_folder(cls, folder: Optional[Folder]) -> "NoteFilter":
        return cls(folder_id=folder.id if folder else None)

    @classmethod
    def for_search(cls, text: str) -> "NoteFilter":
        return cls(search=text)

    @property
    def is_search(self) -> bool:
        return bool(self.search)

    def with_search(self, text: str) -> "NoteFilter":
        return self.model_copy(update={"search": text})

    def with_folder(self, folder: Optional[Folder]) -> "NoteFilter":
        return self.model_copy(update={"folder_id": folder.id if folder else None})
