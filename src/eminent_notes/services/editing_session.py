"""Buffered editing of a single note with dirty tracking."""

import logging
from enum import Enum
from typing import Callable, FrozenSet, Iterable, Optional, Tuple

from pydantic import BaseModel

from eminent_notes.exceptions import ErrorCode, ValidationError
from eminent_notes.models.schema import Folder, Note, Tag
from eminent_notes.observable import Observable
from eminent_notes.services.note_manager import NoteManager

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    UNCONFIGURED = "unconfigured"
    CLEAN = "clean"
    DIRTY = "dirty"


class SessionState(BaseModel):
    """Snapshot of an editing session."""

    status: SessionStatus = SessionStatus.UNCONFIGURED
    title: str = ""
    content: str = ""
    is_pinned: bool = False
    tags: Tuple[Tag, ...] = ()
    is_dirty: bool = False
    note_id: Optional[str] = None

    model_config = {"frozen": True}


class _Fields(BaseModel):
    """Editable note fields; also used as the immutable baseline."""

    title: str = ""
    content: str = ""
    is_pinned: bool = False
    tags: Tuple[Tag, ...] = ()

    model_config = {"frozen": True}

    @classmethod
    def from_note(cls, note: Optional[Note]) -> "_Fields":
        if note is None:
            return cls()
        return cls(
            title=note.title,
            content=note.content,
            is_pinned=note.is_pinned,
            tags=tuple(note.tags),
        )

    @property
    def tag_ids(self) -> FrozenSet[str]:
        return frozenset(t.id for t in self.tags)

    def same_as(self, other: "_Fields") -> bool:
        return (
            self.title == other.title
            and self.content == other.content
            and self.is_pinned == other.is_pinned
            and self.tag_ids == other.tag_ids
        )


def _sorted_tags(tags: Iterable[Tag]) -> Tuple[Tag, ...]:
    unique = {t.id: t for t in tags}
    return tuple(sorted(unique.values(), key=lambda t: (t.name, t.id)))


class EditingSession(Observable[SessionState]):
    """Working copy of one note's title, content, pin flag and tags.

    Edits stay in the session until ``commit()`` saves them through the
    note manager; ``discard()`` reverts to the values the session was
    configured with (or last committed). Tags count toward dirtiness.

    Lifecycle: UNCONFIGURED until ``configure()``, then CLEAN or DIRTY.
    """

    def __init__(self, note_manager: NoteManager):
        super().__init__()
        self.note_manager = note_manager
        self._configured = False
        self._note: Optional[Note] = None
        self._folder: Optional[Folder] = None
        self._on_save: Optional[Callable[[Note], None]] = None
        self._baseline = _Fields()
        self._fields = _Fields()

    def configure(
        self,
        note: Optional[Note] = None,
        on_save: Optional[Callable[[Note], None]] = None,
        folder: Optional[Folder] = None,
    ) -> None:
        """Start editing ``note``, or a new note in ``folder`` when None."""
        self._note = note
        self._folder = folder
        self._on_save = on_save
        self._baseline = _Fields.from_note(note)
        self._fields = self._baseline
        self._configured = True
        self._publish()

    def snapshot(self) -> SessionState:
        return SessionState(
            status=self.status,
            title=self._fields.title,
            content=self._fields.content,
            is_pinned=self._fields.is_pinned,
            tags=self._fields.tags,
            is_dirty=self.is_dirty,
            note_id=self._note.id if self._note else None,
        )

    @property
    def note(self) -> Optional[Note]:
        return self._note

    @property
    def is_configured(self) -> bool:
        return self._configured

    @property
    def is_dirty(self) -> bool:
        return self._configured and not self._fields.same_as(self._baseline)

    @property
    def status(self) -> SessionStatus:
        if not self._configured:
            return SessionStatus.UNCONFIGURED
        return SessionStatus.DIRTY if self.is_dirty else SessionStatus.CLEAN

    def _require_configured(self, action: str) -> None:
        if not self._configured:
            raise ValidationError(
                f"Cannot {action}: editing session is not configured",
                code=ErrorCode.SESSION_NOT_CONFIGURED,
            )

    def _edit(self, **changes) -> None:
        self._require_configured("edit")
        self._fields = self._fields.model_copy(update=changes)
        self._publish()

    # Field access

    @property
    def title(self) -> str:
        return self._fields.title

    @title.setter
    def title(self, value: str) -> None:
        self._edit(title=value or "")

    @property
    def content(self) -> str:
        return self._fields.content

    @content.setter
    def content(self, value: str) -> None:
        self._edit(content=value or "")

    @property
    def is_pinned(self) -> bool:
        return self._fields.is_pinned

    def toggle_pin(self) -> None:
        self._edit(is_pinned=not self._fields.is_pinned)

    @property
    def tags(self) -> Tuple[Tag, ...]:
        return self._fields.tags

    def set_tags(self, tags: Iterable[Tag]) -> None:
        self._edit(tags=_sorted_tags(tags))

    def add_tag(self, tag: Tag) -> None:
        self.set_tags(self._fields.tags + (tag,))

    def remove_tag(self, tag: Tag) -> None:
        self.set_tags(t for t in self._fields.tags if t.id != tag.id)

    # Commit / discard

    def commit(self) -> bool:
        """Save the working copy through the note manager.

        Creates the note when the session was configured without one.

        Raises:
            ValidationError: If the session is not configured.

        Returns:
            True if saved; False if the store failed (the session stays dirty).
        """
        self._require_configured("commit")
        saved = self.note_manager.save(
            self._note,
            title=self._fields.title,
            content=self._fields.content,
            is_pinned=self._fields.is_pinned,
            tags=list(self._fields.tags),
            folder=self._folder,
        )
        if saved is None:
            logger.warning("Commit failed; keeping unsaved changes")
            self._publish()
            return False

        self._note = saved
        self._baseline = _Fields.from_note(saved)
        self._fields = self._baseline
        self._publish()
        if self._on_save is not None:
            self._on_save(saved)
        return True

    def discard(self) -> None:
        """Revert every field to the baseline. Never touches the store."""
        if not self._configured:
            return
        self._fields = self._baseline
        self._publish()
