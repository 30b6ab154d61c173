"""Application container wiring the store and managers together."""

import logging
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from eminent_notes.config import NotesConfig, config
from eminent_notes.exceptions import ErrorCode, StorageError
from eminent_notes.models.db_models import init_db
from eminent_notes.models.schema import Folder, Note, Tag
from eminent_notes.services.editing_session import EditingSession
from eminent_notes.services.folder_manager import FolderManager
from eminent_notes.services.note_manager import NoteManager
from eminent_notes.services.tag_manager import TagManager
from eminent_notes.storage import Store

logger = logging.getLogger(__name__)

SAMPLE_FOLDER_NAME = "Quick Notes"
SAMPLE_TAG_NAME = "Important"
SAMPLE_TAG_COLOR = "#FF0000"
SAMPLE_NOTE_COUNT = 5


class NotesApp:
    """One store plus the folder, note and tag managers that share it.

    Commands that touch more than one manager live here: navigating into
    a folder rescopes the note list, and deleting a folder or tag refreshes
    it.
    """

    def __init__(
        self,
        store: Store,
        folders: FolderManager,
        tags: TagManager,
        notes: NoteManager,
    ):
        self.store = store
        self.folders = folders
        self.tags = tags
        self.notes = notes

    @classmethod
    def open(cls, settings: Optional[NotesConfig] = None) -> "NotesApp":
        """Open the database described by ``settings`` and build the managers.

        Raises:
            StorageError: If the database cannot be opened
                (STORAGE_CONNECTION_FAILED).
        """
        settings = settings or config
        try:
            engine = init_db(settings.get_db_url())
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(
                "Failed to open the notes database",
                operation="open",
                code=ErrorCode.STORAGE_CONNECTION_FAILED,
                original_error=e,
            ) from e

        store = Store(engine)
        tags = TagManager(store, default_color=settings.default_tag_color)
        app = cls(
            store=store,
            folders=FolderManager(
                store,
                max_depth=settings.max_folder_depth,
                child_policy=settings.child_folder_policy,
            ),
            tags=tags,
            notes=NoteManager(
                store,
                tag_manager=tags,
                debounce_seconds=settings.search_debounce_seconds,
                recent_limit=settings.recent_notes_limit,
            ),
        )
        app.load()
        return app

    def load(self) -> None:
        """Fetch the initial folder, tag and note lists."""
        self.folders.list_roots()
        self.tags.list_all()
        self.notes.refresh()

    def navigate_to(self, folder: Optional[Folder]) -> List[Note]:
        self.folders.navigate_to(folder)
        return self.notes.set_folder_scope(folder)

    def navigate_up(self) -> List[Note]:
        parent = self.folders.navigate_up()
        return self.notes.set_folder_scope(parent)

    def delete_folder(self, folder: Folder) -> bool:
        """Delete a folder and rescope the note list to the current folder."""
        if not self.folders.delete_folder(folder):
            return False
        self.notes.set_folder_scope(self.folders.current_folder)
        return True

    def delete_tag(self, tag: Tag) -> bool:
        if not self.tags.delete(tag):
            return False
        self.notes.refresh()
        return True

    def open_editor(
        self,
        note: Optional[Note] = None,
        on_save: Optional[Callable[[Note], None]] = None,
    ) -> EditingSession:
        """Start an editing session; new notes go into the current folder."""
        session = EditingSession(self.notes)
        session.configure(note, on_save=on_save, folder=self.folders.current_folder)
        return session

    def seed_sample_data(self) -> List[Note]:
        """Create a sample folder, tag and notes for a fresh database."""
        folder = self.folders.create_folder(SAMPLE_FOLDER_NAME)
        tag = self.tags.get_or_create(SAMPLE_TAG_NAME, SAMPLE_TAG_COLOR)
        if folder is None or tag is None:
            raise StorageError("Failed to create sample folder or tag", operation="seed")

        created = []
        for i in range(SAMPLE_NOTE_COUNT):
            note = self.notes.save(
                None,
                title=f"Sample Note {i}",
                content=f"This is sample content for note {i}",
                is_pinned=False,
                tags=[tag],
                folder=folder,
            )
            if note is None:
                raise StorageError(f"Failed to create sample note {i}", operation="seed")
            created.append(note)
        logger.info(f"Seeded {len(created)} sample notes into '{folder.name}'")
        return created

    def close(self) -> None:
        """Cancel pending searches and release database connections."""
        self.notes.close()
        self.store.dispose()

    def __enter__(self) -> "NotesApp":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
