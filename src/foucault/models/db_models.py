"""SQLAlchemy database models for Foucault notebooks."""
from sqlalchemy import (Column, DateTime, ForeignKey, Integer, String, Text,
                        UniqueConstraint, create_engine, event)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from foucault.models.schema import utc_now

# Create base class for SQLAlchemy models
Base = declarative_base()


class DBNote(Base):
    """Database model for a note."""
    __tablename__ = "notes"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    body = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    # Relationships (deletes are cascaded by the database)
    tag_links = relationship(
        "DBTagJoin", back_populates="note", passive_deletes=True
    )
    outgoing_links = relationship(
        "DBLink", back_populates="source", passive_deletes=True
    )
    # Read-only shortcut through the join table, for listings
    tags = relationship(
        "DBTag", secondary="tags_join_table", viewonly=True, order_by="DBTag.name"
    )

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(id={self.id}, name='{self.name}')>"


class DBTag(Base):
    """Database model for a tag."""
    __tablename__ = "tags"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    color = Column(Integer, nullable=False, default=0)

    note_links = relationship(
        "DBTagJoin", back_populates="tag", passive_deletes=True
    )

    def __repr__(self) -> str:
        """Return string representation of tag."""
        return f"<Tag(id={self.id}, name='{self.name}')>"


class DBTagJoin(Base):
    """Database model for a note/tag association."""
    __tablename__ = "tags_join_table"
    id = Column(Integer, primary_key=True, autoincrement=True)
    note_id = Column(
        Integer, ForeignKey("notes.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False, index=True,
    )
    tag_id = Column(
        Integer, ForeignKey("tags.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False, index=True,
    )

    note = relationship("DBNote", back_populates="tag_links")
    tag = relationship("DBTag", back_populates="note_links")

    __table_args__ = (
        UniqueConstraint("note_id", "tag_id", name="unique_note_tag"),
    )


class DBLink(Base):
    """Database model for a cross-reference.

    The target is a note *name*, not a foreign key: forward references to
    notes that do not exist yet are valid rows.
    """
    __tablename__ = "links_table"
    id = Column(Integer, primary_key=True, autoincrement=True)
    from_id = Column(
        Integer, ForeignKey("notes.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False, index=True,
    )
    to_name = Column(Text, nullable=False, index=True)

    source = relationship("DBNote", back_populates="outgoing_links")

    __table_args__ = (
        UniqueConstraint("from_id", "to_name", name="unique_link_target"),
    )

    def __repr__(self) -> str:
        """Return string representation of link."""
        return f"<Link(from={self.from_id}, to='{self.to_name}')>"


def init_db(db_url: str) -> Engine:
    """Create an engine for a notebook database and ensure the schema exists.

    Every connection gets:
    - foreign_keys=ON so that ON DELETE CASCADE is enforced
    - WAL (Write-Ahead Logging) mode for atomic writes
    - NORMAL synchronous mode (good balance of safety vs speed)
    """
    engine = create_engine(
        db_url,
        pool_pre_ping=True,    # Validate connections before use
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Engine):
    """Get a session factory for the database."""
    return sessionmaker(bind=engine, expire_on_commit=False)
