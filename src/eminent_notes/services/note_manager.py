"""Note management: listing, search, creation, saving and note flags."""

import logging
import threading
from typing import Any, Callable, Iterable, List, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy import func, or_

from eminent_notes.config import config
from eminent_notes.exceptions import StorageError
from eminent_notes.models.db_models import DBNote
from eminent_notes.models.schema import Folder, Note, NoteFilter, utc_now
from eminent_notes.observability import timed_operation, traced
from eminent_notes.observable import Observable
from eminent_notes.services.debounce import Debouncer
from eminent_notes.services.tag_manager import TagManager, TagRef
from eminent_notes.storage import NOTE_ORDER, EntityKind, Store
from eminent_notes.utils import contains_pattern

logger = logging.getLogger(__name__)


class NoteListState(BaseModel):
    """Snapshot of the note list shown to the user."""

    notes: Tuple[Note, ...] = ()
    selected_note: Optional[Note] = None
    note_filter: NoteFilter = NoteFilter()
    search_text: str = ""
    is_loading: bool = False
    is_saving: bool = False

    model_config = {"frozen": True}

    @property
    def pinned(self) -> List[Note]:
        return [n for n in self.notes if n.is_pinned]

    @property
    def unpinned(self) -> List[Note]:
        return [n for n in self.notes if not n.is_pinned]


def filter_criteria(note_filter: NoteFilter) -> List[Any]:
    """Build the WHERE criteria for a note filter.

    Searching matches title or content case- and diacritic-insensitively
    and spans every folder. Archived notes are never listed.
    """
    criteria: List[Any] = [DBNote.is_archived.is_(False)]
    if note_filter.is_search:
        pattern = contains_pattern(note_filter.search)
        criteria.append(
            or_(
                func.fold(DBNote.title).like(pattern, escape="\\"),
                func.fold(DBNote.content).like(pattern, escape="\\"),
            )
        )
    elif note_filter.folder_id is not None:
        criteria.append(DBNote.folder_id == note_filter.folder_id)
    return criteria


class NoteManager(Observable[NoteListState]):
    """Owns the note list, the selected note and all note writes.

    Search text updates are debounced: a burst of updates within the quiet
    window produces one fetch using the latest text. That fetch runs on the
    debounce timer thread and publishes once it completes.
    """

    def __init__(
        self,
        store: Store,
        tag_manager: Optional[TagManager] = None,
        debounce_seconds: Optional[float] = None,
        recent_limit: Optional[int] = None,
    ):
        super().__init__()
        self.store = store
        self.tags = tag_manager or TagManager(store)
        self.recent_limit = recent_limit or config.recent_notes_limit
        self.default_title = config.default_note_title
        self.untitled_title = config.untitled_title
        if debounce_seconds is None:
            debounce_seconds = config.search_debounce_seconds
        self._debouncer: Debouncer[str] = Debouncer(
            debounce_seconds, self._run_search, name="note-search"
        )
        self._state_lock = threading.RLock()
        self._notes: Tuple[Note, ...] = ()
        self._selected: Optional[Note] = None
        self._filter = NoteFilter()
        self._search_text = ""
        self._is_loading = False
        self._is_saving = False

    def snapshot(self) -> NoteListState:
        with self._state_lock:
            return NoteListState(
                notes=self._notes,
                selected_note=self._selected,
                note_filter=self._filter,
                search_text=self._search_text,
                is_loading=self._is_loading,
                is_saving=self._is_saving,
            )

    @property
    def notes(self) -> List[Note]:
        return list(self._notes)

    @property
    def selected_note(self) -> Optional[Note]:
        return self._selected

    @property
    def note_filter(self) -> NoteFilter:
        return self._filter

    # =========================================================================
    # Listing and search
    # =========================================================================

    def fetch_notes(self, note_filter: Optional[NoteFilter] = None) -> List[Note]:
        """Query notes for ``note_filter`` (default: the current filter).

        The result becomes the published list and the filter becomes the
        current one. On storage failure the previous list is kept and
        returned.
        """
        note_filter = note_filter or self._filter
        with timed_operation(
            "fetch_notes", search=note_filter.search, folder_id=note_filter.folder_id
        ) as op:
            try:
                notes = self.store.fetch(
                    EntityKind.NOTE, *filter_criteria(note_filter), order_by=NOTE_ORDER
                )
            except StorageError as e:
                logger.error(f"Failed to fetch notes: {e}")
                with self._state_lock:
                    self._is_loading = False
                    notes = list(self._notes)
                self._publish()
                return notes
            op["result_count"] = len(notes)

        with self._state_lock:
            self._notes = tuple(notes)
            self._filter = note_filter
            self._is_loading = False
            if self._selected is not None:
                fresh = next((n for n in notes if n.id == self._selected.id), None)
                if fresh is not None:
                    self._selected = fresh
        self._publish()
        return notes

    def refresh(self) -> List[Note]:
        return self.fetch_notes(self._filter)

    def set_search_text(self, text: str) -> None:
        """Update the search text; the fetch runs after the quiet window."""
        with self._state_lock:
            self._search_text = text or ""
        self._debouncer.call(self._search_text)

    def flush_search(self) -> bool:
        """Run a pending debounced search now. Returns True if one ran."""
        return self._debouncer.flush()

    def cancel_search(self) -> bool:
        return self._debouncer.cancel()

    def _run_search(self, text: str) -> None:
        with self._state_lock:
            self._is_loading = True
            next_filter = self._filter.with_search(text)
        self._publish()
        self.fetch_notes(next_filter)

    def set_folder_scope(self, folder: Optional[Folder]) -> List[Note]:
        return self.fetch_notes(self._filter.with_folder(folder))

    def fetch_archived(self) -> List[Note]:
        try:
            return self.store.fetch(
                EntityKind.NOTE, DBNote.is_archived.is_(True), order_by=NOTE_ORDER
            )
        except StorageError as e:
            logger.error(f"Failed to fetch archived notes: {e}")
            return []

    def fetch_recent(self, limit: Optional[int] = None) -> List[Note]:
        """Most recently modified non-archived notes."""
        try:
            return self.store.fetch(
                EntityKind.NOTE,
                DBNote.is_archived.is_(False),
                order_by=NOTE_ORDER,
                limit=limit or self.recent_limit,
            )
        except StorageError as e:
            logger.error(f"Failed to fetch recent notes: {e}")
            return []

    def get(self, note_id: str) -> Optional[Note]:
        return self.store.get(EntityKind.NOTE, note_id)

    # =========================================================================
    # Selection and creation
    # =========================================================================

    def select(self, note: Optional[Note]) -> None:
        with self._state_lock:
            self._selected = note
        self._publish()

    @traced("create_note")
    def create_note(self, folder: Optional[Folder] = None) -> Optional[Note]:
        """Create and persist an empty note in ``folder`` (or at root level)."""
        now = utc_now()
        try:
            with self.store.transact():
                note_id = self.store.create(
                    EntityKind.NOTE,
                    title=self.default_title,
                    content="",
                    created_at=now,
                    modified_at=now,
                    is_archived=False,
                    is_pinned=False,
                    folder_id=folder.id if folder else None,
                )
                note = self.store.get(EntityKind.NOTE, note_id)
        except StorageError as e:
            logger.error(f"Failed to create note: {e}")
            return None
        self.refresh()
        return note

    def create_and_select(self, folder: Optional[Folder] = None) -> Optional[Note]:
        note = self.create_note(folder)
        if note is not None:
            self.select(note)
        return note

    # =========================================================================
    # Mutations
    # =========================================================================

    @traced("delete_note")
    def delete_note(self, note: Note) -> bool:
        """Delete a note and clear the selection if it pointed at it."""
        try:
            self.store.delete(EntityKind.NOTE, note.id)
        except StorageError as e:
            logger.error(f"Failed to delete note {note.id}: {e}")
            return False
        with self._state_lock:
            if self._selected is not None and self._selected.id == note.id:
                self._selected = None
        self.refresh()
        return True

    def _update_flags(self, note: Note, operation: str, **fields: Any) -> Optional[Note]:
        try:
            with self.store.transact():
                self.store.update(EntityKind.NOTE, note.id, **fields)
                updated = self.store.get(EntityKind.NOTE, note.id)
        except StorageError as e:
            logger.error(f"Failed to {operation} note {note.id}: {e}")
            return None
        with self._state_lock:
            if self._selected is not None and self._selected.id == updated.id:
                self._selected = updated
        self.refresh()
        return updated

    @traced("toggle_pin")
    def toggle_pin(self, note: Note) -> Optional[Note]:
        """Flip the pinned flag of the stored note and persist it."""
        try:
            current = self.get(note.id) or note
        except StorageError as e:
            logger.error(f"Failed to read note {note.id} before pinning: {e}")
            return None
        return self._update_flags(note, "pin", is_pinned=not current.is_pinned)

    def set_archived(self, note: Note, archived: bool) -> Optional[Note]:
        return self._update_flags(
            note, "archive" if archived else "unarchive", is_archived=archived
        )

    def archive(self, note: Note) -> Optional[Note]:
        return self.set_archived(note, True)

    def unarchive(self, note: Note) -> Optional[Note]:
        return self.set_archived(note, False)

    def move_to_folder(self, note: Note, folder: Optional[Folder]) -> Optional[Note]:
        return self._update_flags(note, "move", folder_id=folder.id if folder else None)

    @traced("save_note")
    def save(
        self,
        note: Optional[Note],
        title: str,
        content: str,
        is_pinned: bool,
        tags: Optional[Iterable[TagRef]] = None,
        folder: Optional[Folder] = None,
        on_complete: Optional[Callable[[Note], None]] = None,
    ) -> Optional[Note]:
        """Persist editor fields onto ``note``, or onto a new note if None.

        A blank title is stored as "Untitled". When ``tags`` is given (tags
        or tag names), the note ends up with exactly that tag set: tags no
        longer wanted are removed, new ones added, the rest left alone. All
        writes happen in one transaction. ``folder`` only applies to new
        notes.

        Returns:
            The saved note, or None if the store failed (``on_complete`` is
            then not called).
        """
        final_title = title if title and title.strip() else self.untitled_title
        fields = {
            "title": final_title,
            "content": content or "",
            "is_pinned": bool(is_pinned),
            "modified_at": utc_now(),
        }
        wanted_tags = list(tags) if tags is not None else None

        with self._state_lock:
            self._is_saving = True
        self._publish()

        saved: Optional[Note] = None
        try:
            with self.store.transact():
                if note is None:
                    note_id = self.store.create(
                        EntityKind.NOTE,
                        created_at=fields["modified_at"],
                        is_archived=False,
                        folder_id=folder.id if folder else None,
                        **fields,
                    )
                else:
                    note_id = note.id
                    self.store.update(EntityKind.NOTE, note_id, **fields)

                if wanted_tags is not None:
                    wanted_ids = {t.id for t in self.tags.resolve(wanted_tags)}
                    current_ids = self.store.get(EntityKind.NOTE, note_id).tag_ids
                    for tag_id in current_ids - wanted_ids:
                        self.store.remove_tag(note_id, tag_id)
                    for tag_id in wanted_ids - current_ids:
                        self.store.add_tag(note_id, tag_id)

                saved = self.store.get(EntityKind.NOTE, note_id)
        except StorageError as e:
            logger.error(f"Failed to save note {note.id if note else '(new)'}: {e}")
        finally:
            with self._state_lock:
                self._is_saving = False
            if saved is None:
                self._publish()

        if saved is None:
            return None

        with self._state_lock:
            if self._selected is not None and self._selected.id == saved.id:
                self._selected = saved
        if wanted_tags is not None:
            self.tags.list_all()
        self.refresh()
        if on_complete is not None:
            on_complete(saved)
        return saved

    def close(self) -> None:
        self._debouncer.shutdown()
