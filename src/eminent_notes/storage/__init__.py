"""Storage layer for Eminent Notes."""

from eminent_notes.storage.store import (
    FOLDER_ORDER,
    NOTE_ORDER,
    TAG_ORDER,
    EntityKind,
    Store,
)

__all__ = [
    "EntityKind",
    "FOLDER_ORDER",
    "NOTE_ORDER",
    "TAG_ORDER",
    "Store",
]
