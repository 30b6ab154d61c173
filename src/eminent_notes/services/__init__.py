"""Services (folder, note and tag managers, editing sessions) for Eminent Notes."""

from eminent_notes.services.debounce import Debouncer
from eminent_notes.services.editing_session import EditingSession, SessionState, SessionStatus
from eminent_notes.services.folder_manager import ChildFolderPolicy, FolderManager, FolderState
from eminent_notes.services.note_manager import NoteListState, NoteManager
from eminent_notes.services.tag_manager import TagManager, TagState

__all__ = [
    "ChildFolderPolicy",
    "Debouncer",
    "EditingSession",
    "FolderManager",
    "FolderState",
    "NoteListState",
    "NoteManager",
    "SessionState",
    "SessionStatus",
    "TagManager",
    "TagState",
]
