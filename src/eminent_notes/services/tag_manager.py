"""Tag management."""

import logging
from typing import Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel

from eminent_notes.config import config
from eminent_notes.exceptions import ErrorCode, StorageError, ValidationError
from eminent_notes.models.db_models import DBNote, DBTag
from eminent_notes.models.schema import Note, Tag, validate_hex_color
from eminent_notes.observability import traced
from eminent_notes.observable import Observable
from eminent_notes.storage import NOTE_ORDER, TAG_ORDER, EntityKind, Store

logger = logging.getLogger(__name__)

TagRef = Union[Tag, str]


class TagState(BaseModel):
    tags: Tuple[Tag, ...] = ()

    model_config = {"frozen": True}


def _clean_tag_name(name: Optional[str]) -> str:
    if not name or not name.strip():
        raise ValidationError(
            "Tag name cannot be empty", field="name", value=name, code=ErrorCode.TAG_INVALID
        )
    return name.strip()


def _clean_color(color: str) -> str:
    try:
        return validate_hex_color(color)
    except ValueError as e:
        raise ValidationError(
            str(e), field="color", value=color, code=ErrorCode.TAG_INVALID
        ) from e


class TagManager(Observable[TagState]):
    """Tag CRUD and lookup by name.

    Tag names are unique and compared exactly after trimming whitespace.
    Associating tags with notes is done by ``NoteManager.save``.
    """

    def __init__(self, store: Store, default_color: Optional[str] = None):
        super().__init__()
        self.store = store
        self.default_color = _clean_color(default_color or config.default_tag_color)
        self._tags: Tuple[Tag, ...] = ()

    def snapshot(self) -> TagState:
        return TagState(tags=self._tags)

    def list_all(self) -> List[Tag]:
        """Fetch every tag sorted by name and publish the list."""
        try:
            tags = self.store.fetch(EntityKind.TAG, order_by=TAG_ORDER)
        except StorageError as e:
            logger.error(f"Failed to fetch tags: {e}")
            return list(self._tags)
        self._tags = tuple(tags)
        self._publish()
        return tags

    def get(self, tag_id: str) -> Optional[Tag]:
        return self.store.get(EntityKind.TAG, tag_id)

    def find_by_name(self, name: str) -> Optional[Tag]:
        if not name or not name.strip():
            return None
        found = self.store.fetch(EntityKind.TAG, DBTag.name == name.strip(), limit=1)
        return found[0] if found else None

    @traced("create_tag")
    def create(self, name: str, color: Optional[str] = None) -> Optional[Tag]:
        """Create a tag.

        Raises:
            ValidationError: If the name is blank, the color malformed, or a
                tag with this name already exists (TAG_ALREADY_EXISTS).

        Returns:
            The new tag, or None if the store failed.
        """
        clean = _clean_tag_name(name)
        clean_color = _clean_color(color) if color else self.default_color
        try:
            with self.store.transact():
                if self.find_by_name(clean) is not None:
                    raise ValidationError(
                        f"Tag '{clean}' already exists",
                        field="name",
                        value=clean,
                        code=ErrorCode.TAG_ALREADY_EXISTS,
                    )
                tag_id = self.store.create(EntityKind.TAG, name=clean, color=clean_color)
                tag = self.store.get(EntityKind.TAG, tag_id)
        except StorageError as e:
            logger.error(f"Failed to create tag '{clean}': {e}")
            return None
        self.list_all()
        return tag

    def get_or_create(self, name: str, color: Optional[str] = None) -> Optional[Tag]:
        existing = self.find_by_name(_clean_tag_name(name))
        if existing is not None:
            return existing
        return self.create(name, color)

    @traced("delete_tag")
    def delete(self, tag: Tag) -> bool:
        """Delete a tag, removing it from every note that carries it."""
        try:
            self.store.delete(EntityKind.TAG, tag.id)
        except StorageError as e:
            logger.error(f"Failed to delete tag {tag.id}: {e}")
            return False
        logger.info(f"Deleted tag '{tag.name}' ({tag.id})")
        self.list_all()
        return True

    def notes_for(self, tag: Tag) -> List[Note]:
        """Notes carrying ``tag``, archived ones included, newest first."""
        try:
            return self.store.fetch(
                EntityKind.NOTE, DBNote.tags.any(DBTag.id == tag.id), order_by=NOTE_ORDER
            )
        except StorageError as e:
            logger.error(f"Failed to fetch notes for tag {tag.id}: {e}")
            return []

    def resolve(self, refs: Iterable[TagRef]) -> List[Tag]:
        """Turn tags and tag names into stored tags.

        Unknown names are created with the default color. Tags that have
        been deleted since the caller read them are dropped. Meant to run
        inside the caller's transaction, so storage errors propagate.

        Raises:
            ValidationError: If a name is blank.
            StorageError: If a lookup or insert fails.
        """
        resolved = {}
        for ref in refs:
            if isinstance(ref, Tag):
                stored = self.store.get(EntityKind.TAG, ref.id)
                if stored is None:
                    logger.warning(f"Skipping deleted tag '{ref.name}' ({ref.id})")
                else:
                    resolved[stored.id] = stored
                continue
            clean = _clean_tag_name(ref)
            tag = self.find_by_name(clean)
            if tag is None:
                tag_id = self.store.create(
                    EntityKind.TAG, name=clean, color=self.default_color
                )
                tag = self.store.get(EntityKind.TAG, tag_id)
                logger.debug(f"Created tag '{clean}' while resolving names")
            resolved[tag.id] = tag
        return list(resolved.values())
