"""Transactional object store for folders, notes and tags."""

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Type

from sqlalchemy import func, inspect, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from eminent_notes.exceptions import (
    ErrorCode,
    RecordNotFoundError,
    StorageError,
    ValidationError,
)
from eminent_notes.models.db_models import DBFolder, DBNote, DBTag, get_session_factory
from eminent_notes.models.schema import (
    Folder,
    Note,
    Tag,
    ensure_timezone_aware,
    generate_id,
)

logger = logging.getLogger(__name__)


class EntityKind(str, Enum):
    """The three record kinds held by the store."""

    FOLDER = "folder"
    NOTE = "note"
    TAG = "tag"


def _folder_to_model(db_folder: DBFolder) -> Folder:
    return Folder(
        id=db_folder.id,
        name=db_folder.name,
        parent_id=db_folder.parent_id,
        created_at=ensure_timezone_aware(db_folder.created_at),
    )


def _tag_to_model(db_tag: DBTag) -> Tag:
    return Tag(id=db_tag.id, name=db_tag.name, color=db_tag.color)


def _note_to_model(db_note: DBNote) -> Note:
    return Note(
        id=db_note.id,
        title=db_note.title,
        content=db_note.content or "",
        created_at=ensure_timezone_aware(db_note.created_at),
        modified_at=ensure_timezone_aware(db_note.modified_at),
        is_archived=bool(db_note.is_archived),
        is_pinned=bool(db_note.is_pinned),
        folder_id=db_note.folder_id,
        tags=[_tag_to_model(t) for t in (db_note.tags or [])],
    )


_DB_CLASSES: Dict[EntityKind, Type[Any]] = {
    EntityKind.FOLDER: DBFolder,
    EntityKind.NOTE: DBNote,
    EntityKind.TAG: DBTag,
}

_CONVERTERS: Dict[EntityKind, Callable[[Any], Any]] = {
    EntityKind.FOLDER: _folder_to_model,
    EntityKind.NOTE: _note_to_model,
    EntityKind.TAG: _tag_to_model,
}


class Store:
    """Persistent object repository over a SQLAlchemy engine.

    Provides create/fetch/update/delete over folders, notes and tags, plus
    predicate and sort query execution. Criteria and sort clauses are plain
    SQLAlchemy expressions on the ``DBFolder``/``DBNote``/``DBTag`` columns.

    All access is serialized through one re-entrant lock, so the store is
    the single writer for its database. ``transact()`` scopes a write
    transaction; store calls made inside it join that transaction, which
    makes multi-step manager operations atomic.
    """

    def __init__(self, engine: Engine):
        """Initialize the store.

        Args:
            engine: Engine returned by ``init_db()`` (schema already created).
        """
        self.engine = engine
        self.session_factory = get_session_factory(engine)
        self._lock = threading.RLock()
        self._session: Optional[Session] = None

    @staticmethod
    def model_class(kind: EntityKind) -> Type[Any]:
        """Return the ORM class backing an entity kind."""
        return _DB_CLASSES[EntityKind(kind)]

    @contextmanager
    def transact(self) -> Iterator[Session]:
        """Acquire the write transaction.

        Commits when the block exits normally and rolls back on any
        exception. SQLAlchemy failures surface as ``StorageError``; other
        exceptions propagate unchanged after the rollback.

        Yields:
            The active session.
        """
        with self._lock:
            if self._session is not None:
                # Nested: join the outer transaction
                yield self._session
                return

            session = self.session_factory()
            self._session = session
            try:
                yield session
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Transaction rolled back: {e}")
                raise StorageError(
                    "Storage transaction failed",
                    operation="transact",
                    original_error=e,
                ) from e
            except BaseException:
                session.rollback()
                raise
            finally:
                self._session = None
                session.close()

    def _check_fields(self, kind: EntityKind, fields: Dict[str, Any]) -> None:
        columns = set(inspect(self.model_class(kind)).columns.keys())
        unknown = sorted(set(fields) - columns)
        if unknown:
            raise ValidationError(
                f"Unknown {kind.value} field(s): {', '.join(unknown)}",
                field=unknown[0],
                code=ErrorCode.UNKNOWN_FIELD,
            )

    def _load(self, session: Session, kind: EntityKind, record_id: str, operation: str):
        db_obj = session.get(self.model_class(kind), record_id)
        if db_obj is None:
            raise RecordNotFoundError(kind.value, record_id, operation=operation)
        return db_obj

    def create(self, kind: EntityKind, **fields: Any) -> str:
        """Insert a record and return its ID.

        An ``id`` may be supplied; otherwise one is generated.
        """
        kind = EntityKind(kind)
        self._check_fields(kind, fields)
        record_id = fields.pop("id", None) or generate_id()
        with self.transact() as session:
            session.add(self.model_class(kind)(id=record_id, **fields))
            session.flush()
        logger.debug(f"Created {kind.value} {record_id}")
        return record_id

    def get(self, kind: EntityKind, record_id: str) -> Optional[Any]:
        """Fetch one record by ID, or None when it does not exist."""
        kind = EntityKind(kind)
        with self.transact() as session:
            db_obj = session.get(self.model_class(kind), record_id)
            if db_obj is None:
                return None
            return _CONVERTERS[kind](db_obj)

    def fetch(
        self,
        kind: EntityKind,
        *criteria: Any,
        order_by: Sequence[Any] = (),
        limit: Optional[int] = None,
    ) -> List[Any]:
        """Run a predicate query.

        Args:
            kind: Entity kind to query.
            *criteria: SQLAlchemy WHERE expressions, combined with AND.
            order_by: Sort clauses applied in order.
            limit: Maximum number of records, None for all.

        Returns:
            Domain models (Folder, Note or Tag) in query order.
        """
        kind = EntityKind(kind)
        db_class = self.model_class(kind)
        query = select(db_class)
        if kind is EntityKind.NOTE:
            query = query.options(selectinload(DBNote.tags))
        if criteria:
            query = query.where(*criteria)
        if order_by:
            query = query.order_by(*order_by)
        if limit is not None:
            query = query.limit(limit)

        with self.transact() as session:
            rows = session.execute(query).scalars().all()
            return [_CONVERTERS[kind](row) for row in rows]

    def count(self, kind: EntityKind, *criteria: Any) -> int:
        """Count records matching the criteria."""
        db_class = self.model_class(kind)
        query = select(func.count()).select_from(db_class)
        if criteria:
            query = query.where(*criteria)
        with self.transact() as session:
            return session.execute(query).scalar() or 0

    def update(self, kind: EntityKind, record_id: str, **fields: Any) -> None:
        """Assign fields on one record.

        Raises:
            RecordNotFoundError: If the record does not exist.
        """
        kind = EntityKind(kind)
        self._check_fields(kind, fields)
        with self.transact() as session:
            db_obj = self._load(session, kind, record_id, "update")
            for name, value in fields.items():
                setattr(db_obj, name, value)
            session.flush()

    def update_where(self, kind: EntityKind, *criteria: Any, **fields: Any) -> int:
        """Assign fields on every record matching the criteria.

        Returns:
            Number of records updated.
        """
        kind = EntityKind(kind)
        self._check_fields(kind, fields)
        if not fields:
            return 0
        statement = (
            update(self.model_class(kind))
            .where(*criteria)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        with self.transact() as session:
            result = session.execute(statement)
            # Later reads in this transaction must see the new values
            session.expire_all()
            return result.rowcount or 0

    def delete(self, kind: EntityKind, record_id: str) -> None:
        """Delete one record.

        Tag associations of deleted notes and tags are removed with them.

        Raises:
            RecordNotFoundError: If the record does not exist.
        """
        kind = EntityKind(kind)
        with self.transact() as session:
            db_obj = self._load(session, kind, record_id, "delete")
            session.delete(db_obj)
            session.flush()
        logger.debug(f"Deleted {kind.value} {record_id}")

    def add_tag(self, note_id: str, tag_id: str) -> bool:
        """Associate a tag with a note.

        Returns:
            True if the association was added, False if it already existed.
        """
        with self.transact() as session:
            db_note = self._load(session, EntityKind.NOTE, note_id, "add_tag")
            db_tag = self._load(session, EntityKind.TAG, tag_id, "add_tag")
            if db_tag in db_note.tags:
                return False
            db_note.tags.append(db_tag)
            session.flush()
            return True

    def remove_tag(self, note_id: str, tag_id: str) -> bool:
        """Remove a tag from a note.

        Returns:
            True if the tag was removed, False if it wasn't present.
        """
        with self.transact() as session:
            db_note = self._load(session, EntityKind.NOTE, note_id, "remove_tag")
            db_tag = session.get(DBTag, tag_id)
            if db_tag is None or db_tag not in db_note.tags:
                return False
            db_note.tags.remove(db_tag)
            session.flush()
            return True

    def dispose(self) -> None:
        """Release all pooled connections."""
        with self._lock:
            self.engine.dispose()


# Newest first; ties broken by creation time, then ID
NOTE_ORDER = (DBNote.modified_at.desc(), DBNote.created_at.desc(), DBNote.id)
FOLDER_ORDER = (DBFolder.name, DBFolder.id)
TAG_ORDER = (DBTag.name, DBTag.id)
