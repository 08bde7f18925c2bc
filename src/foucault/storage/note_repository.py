"""Repository for note storage and retrieval."""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from foucault.exceptions import DuplicateNameError, NotFoundError
from foucault.models.db_models import DBNote
from foucault.models.schema import (Note, NoteSummary, Tag,
                                    ensure_timezone_aware, normalize_name,
                                    utc_now)
from foucault.storage.base import Repository
from foucault.utils import escape_like_pattern

logger = logging.getLogger(__name__)


def to_summary(db_note: DBNote) -> NoteSummary:
    """Convert a DBNote (with its tags loaded) to a listing row."""
    return NoteSummary(
        id=db_note.id,
        name=db_note.name,
        tags=[Tag(id=t.id, name=t.name, color=t.color) for t in db_note.tags],
    )


class NoteRepository(Repository):
    """Repository for managing notes.

    Notes are identified by integer IDs and carry a unique, case-sensitive
    name. Deleting a note cascades to its tag associations and its
    outgoing link rows through the database foreign keys.
    """

    @staticmethod
    def _db_note_to_model(db_note: DBNote) -> Note:
        """Convert a SQLAlchemy DBNote to a domain Note."""
        return Note(
            id=db_note.id,
            name=db_note.name,
            body=db_note.body or "",
            created_at=ensure_timezone_aware(db_note.created_at),
            updated_at=ensure_timezone_aware(db_note.updated_at),
        )

    def _summary_query(self):
        return select(DBNote).options(selectinload(DBNote.tags)).order_by(DBNote.name)

    def require(self, session: Session, note_id: int) -> DBNote:
        """Load a note row inside ``session``.

        Raises:
            NotFoundError: If no note has this ID.
        """
        db_note = session.get(DBNote, note_id)
        if db_note is None:
            raise NotFoundError.note(note_id)
        return db_note

    def _ensure_name_free(self, session: Session, name: str, note_id: Optional[int] = None) -> None:
        existing = session.scalar(select(DBNote.id).where(DBNote.name == name))
        if existing is not None and existing != note_id:
            raise DuplicateNameError.note(name)

    def create(self, name: str, body: str = "", session: Optional[Session] = None) -> int:
        """Create a new note.

        Args:
            name: Unique name of the note.
            body: Markdown body.
            session: Optional session whose transaction to join.

        Returns:
            The ID of the new note.

        Raises:
            MalformedError: If the name is empty.
            DuplicateNameError: If another note already has this name.
        """
        name = normalize_name(name, "note")
        with self.session_scope(session) as session:
            self._ensure_name_free(session, name)
            now = utc_now()
            db_note = DBNote(name=name, body=body or "", created_at=now, updated_at=now)
            session.add(db_note)
            session.flush()
            logger.debug(f"Created note {db_note.id} '{name}'")
            return db_note.id

    def get(self, note_id: int, session: Optional[Session] = None) -> Optional[Note]:
        """Get a note by ID, or None if it does not exist."""
        with self.session_scope(session) as session:
            db_note = session.get(DBNote, note_id)
            return self._db_note_to_model(db_note) if db_note else None

    def get_by_name(self, name: str, session: Optional[Session] = None) -> Optional[Note]:
        """Get a note by its exact name, or None if it does not exist."""
        with self.session_scope(session) as session:
            db_note = session.scalar(select(DBNote).where(DBNote.name == name.strip()))
            return self._db_note_to_model(db_note) if db_note else None

    def exists(self, note_id: int, session: Optional[Session] = None) -> bool:
        with self.session_scope(session) as session:
            return session.get(DBNote, note_id) is not None

    def update_body(self, note_id: int, body: str, session: Optional[Session] = None) -> None:
        """Replace a note's body.

        Raises:
            NotFoundError: If the note does not exist.
        """
        with self.session_scope(session) as session:
            db_note = self.require(session, note_id)
            db_note.body = body or ""
            db_note.updated_at = utc_now()
            session.flush()

    def rename(self, note_id: int, name: str, session: Optional[Session] = None) -> str:
        """Give a note a new name.

        Returns:
            The previous name.

        Raises:
            MalformedError: If the new name is empty.
            NotFoundError: If the note does not exist.
            DuplicateNameError: If another note already has the new name.
        """
        name = normalize_name(name, "note")
        with self.session_scope(session) as session:
            db_note = self.require(session, note_id)
            old_name = db_note.name
            if old_name == name:
                return old_name
            self._ensure_name_free(session, name, note_id)
            db_note.name = name
            db_note.updated_at = utc_now()
            session.flush()
            return old_name

    def delete(self, note_id: int, session: Optional[Session] = None) -> bool:
        """Delete a note and, by cascade, its tag associations and links.

        Returns:
            True if a note was deleted, False if it did not exist.
        """
        with self.session_scope(session) as session:
            db_note = session.get(DBNote, note_id)
            if db_note is None:
                return False
            session.delete(db_note)
            session.flush()
            return True

    def list_summaries(self, session: Optional[Session] = None) -> List[NoteSummary]:
        """List every note with its tags, sorted by name."""
        with self.session_scope(session) as session:
            db_notes = session.scalars(self._summary_query()).all()
            return [to_summary(n) for n in db_notes]

    def search_by_name(self, prefix: str, session: Optional[Session] = None) -> List[NoteSummary]:
        """List notes whose name starts with ``prefix`` (ASCII case-insensitive)."""
        pattern = escape_like_pattern(prefix or "") + "%"
        with self.session_scope(session) as session:
            db_notes = session.scalars(
                self._summary_query().where(DBNote.name.like(pattern, escape="\\"))
            ).all()
            return [to_summary(n) for n in db_notes]
