"""SQLAlchemy database models for Eminent Notes."""
import logging
from typing import Optional

from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, String, Table,
                        Text, create_engine, event)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from eminent_notes.config import config
from eminent_notes.models.schema import utc_now
from eminent_notes.utils import fold_text

logger = logging.getLogger(__name__)

# Create base class for SQLAlchemy models
Base = declarative_base()

# Association table for tags and notes
note_tags = Table(
    "note_tags",
    Base.metadata,
    Column(
        "note_id", String(64), ForeignKey("notes.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id", String(64), ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True, index=True,
    ),
)


class DBFolder(Base):
    """Database model for a folder."""
    __tablename__ = "folders"
    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    parent_id = Column(String(64), ForeignKey("folders.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    # Relationships
    parent = relationship("DBFolder", remote_side=[id], back_populates="children")
    children = relationship("DBFolder", back_populates="parent")
    notes = relationship("DBNote", back_populates="folder")

    def __repr__(self) -> str:
        """Return string representation of folder."""
        return f"<Folder(id='{self.id}', name='{self.name}', parent='{self.parent_id}')>"


class DBNote(Base):
    """Database model for a note."""
    __tablename__ = "notes"
    id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=utc_now, nullable=False)
    modified_at = Column(
        DateTime, default=utc_now, nullable=False, index=True
    )
    is_archived = Column(Boolean, default=False, nullable=False, index=True)
    is_pinned = Column(Boolean, default=False, nullable=False)
    folder_id = Column(
        String(64), ForeignKey("folders.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )

    # Relationships
    folder = relationship("DBFolder", back_populates="notes")
    tags = relationship("DBTag", secondary=note_tags, back_populates="notes")

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(id='{self.id}', title='{self.title}')>"


class DBTag(Base):
    """Database model for a tag."""
    __tablename__ = "tags"
    id = Column(String(64), primary_key=True)
    name = Column(String(255), unique=True, nullable=False)
    color = Column(String(16), nullable=False, default="#808080")

    # Relationships
    notes = relationship("DBNote", secondary=note_tags, back_populates="tags")

    def __repr__(self) -> str:
        """Return string representation of tag."""
        return f"<Tag(id='{self.id}', name='{self.name}', color='{self.color}')>"


def _register_connection_hooks(engine: Engine, in_memory: bool) -> None:
    """Apply PRAGMA settings and SQL functions on every new connection."""

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        # Folded matching for case- and diacritic-insensitive search
        dbapi_connection.create_function("fold", 1, fold_text, deterministic=True)
        cursor = dbapi_connection.cursor()
        # Enforce folder/note/tag references (SQLite leaves them off by default)
        cursor.execute("PRAGMA foreign_keys=ON")
        if not in_memory:
            # WAL mode: writes go to separate journal, preventing corruption on crash
            cursor.execute("PRAGMA journal_mode=WAL")
            # NORMAL sync: flush WAL to disk at critical moments (good balance)
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()


def init_db(db_url: Optional[str] = None) -> Engine:
    """Initialize the database and return a configured engine.

    File databases use WAL journaling and a small connection pool. In-memory
    databases use a single shared connection so that every session (and the
    debounced search thread) sees the same data.

    Args:
        db_url: SQLAlchemy URL. Defaults to ``config.get_db_url()``.

    Returns:
        The engine, with all tables created.
    """
    db_url = db_url or config.get_db_url()
    in_memory = db_url in ("sqlite://", "sqlite:///:memory:")

    if in_memory:
        engine = create_engine(
            "sqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        # SQLite is single-writer, so a small pool is ideal
        engine = create_engine(
            db_url,
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=5,
            pool_timeout=30,
            pool_pre_ping=True,
            connect_args={"check_same_thread": False},
        )

    _register_connection_hooks(engine, in_memory)
    Base.metadata.create_all(engine)
    logger.debug(f"Database initialized at {db_url}")
    return engine


def get_session_factory(engine: Engine):
    """Get a session factory for the database.

    Objects stay readable after commit so records can be converted to
    domain models once the transaction has finished.
    """
    return sessionmaker(bind=engine, expire_on_commit=False)
