"""Repository for tag storage and retrieval."""
import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from foucault.exceptions import (AlreadyAttachedError, DuplicateNameError,
                                 NotFoundError)
from foucault.models.db_models import DBNote, DBTag, DBTagJoin
from foucault.models.schema import (NoteSummary, Tag, normalize_name,
                                    random_tag_color)
from foucault.storage.base import Repository
from foucault.storage.note_repository import to_summary
from foucault.utils import escape_like_pattern

logger = logging.getLogger(__name__)


class TagRepository(Repository):
    """Repository for managing tags and their association with notes.

    Tags have their own lifecycle: a tag attached to no note persists
    until it is deleted explicitly.
    """

    @staticmethod
    def _to_model(db_tag: DBTag) -> Tag:
        return Tag(id=db_tag.id, name=db_tag.name, color=db_tag.color)

    def require(self, session: Session, tag_id: int) -> DBTag:
        """Load a tag row inside ``session``.

        Raises:
            NotFoundError: If no tag has this ID.
        """
        db_tag = session.get(DBTag, tag_id)
        if db_tag is None:
            raise NotFoundError.tag(tag_id)
        return db_tag

    def _ensure_name_free(self, session: Session, name: str, tag_id: Optional[int] = None) -> None:
        existing = session.scalar(select(DBTag.id).where(DBTag.name == name))
        if existing is not None and existing != tag_id:
            raise DuplicateNameError.tag(name)

    def create(self, name: str, color: Optional[int] = None, session: Optional[Session] = None) -> Tag:
        """Create a new tag.

        Args:
            name: Unique tag name.
            color: 24-bit RGB color; picked at random when omitted.
            session: Optional session whose transaction to join.

        Raises:
            MalformedError: If the name is empty.
            DuplicateNameError: If the name is already taken.
        """
        name = normalize_name(name, "tag")
        with self.session_scope(session) as session:
            self._ensure_name_free(session, name)
            db_tag = DBTag(name=name, color=random_tag_color() if color is None else color)
            session.add(db_tag)
            session.flush()
            logger.debug(f"Created tag {db_tag.id} '{name}'")
            return self._to_model(db_tag)

    def get(self, tag_id: int, session: Optional[Session] = None) -> Optional[Tag]:
        """Get a tag by ID, or None if it does not exist."""
        with self.session_scope(session) as session:
            db_tag = session.get(DBTag, tag_id)
            return self._to_model(db_tag) if db_tag else None

    def get_by_name(self, name: str, session: Optional[Session] = None) -> Optional[Tag]:
        """Get a tag by its exact name, or None if it does not exist."""
        with self.session_scope(session) as session:
            db_tag = session.scalar(select(DBTag).where(DBTag.name == name.strip()))
            return self._to_model(db_tag) if db_tag else None

    def rename(self, tag_id: int, name: str, session: Optional[Session] = None) -> None:
        """Rename a tag.

        Raises:
            MalformedError: If the new name is empty.
            NotFoundError: If the tag does not exist.
            DuplicateNameError: If another tag already has the new name.
        """
        name = normalize_name(name, "tag")
        with self.session_scope(session) as session:
            db_tag = self.require(session, tag_id)
            self._ensure_name_free(session, name, tag_id)
            db_tag.name = name
            session.flush()

    def delete(self, tag_id: int, session: Optional[Session] = None) -> bool:
        """Delete a tag and, by cascade, all its note associations.

        Returns:
            True if a tag was deleted, False if it did not exist.
        """
        with self.session_scope(session) as session:
            db_tag = session.get(DBTag, tag_id)
            if db_tag is None:
                return False
            session.delete(db_tag)
            session.flush()
            return True

    def get_all(self, session: Optional[Session] = None) -> List[Tag]:
        """Get all tags, sorted by name."""
        with self.session_scope(session) as session:
            db_tags = session.scalars(select(DBTag).order_by(DBTag.name)).all()
            return [self._to_model(t) for t in db_tags]

    def search(self, pattern: str, session: Optional[Session] = None) -> List[Tag]:
        """Get tags whose name contains ``pattern`` (ASCII case-insensitive)."""
        like = f"%{escape_like_pattern(pattern or '')}%"
        with self.session_scope(session) as session:
            db_tags = session.scalars(
                select(DBTag).where(DBTag.name.like(like, escape="\\")).order_by(DBTag.name)
            ).all()
            return [self._to_model(t) for t in db_tags]

    def is_attached(self, note_id: int, tag_id: int, session: Optional[Session] = None) -> bool:
        with self.session_scope(session) as session:
            return session.scalar(
                select(DBTagJoin.id).where(
                    (DBTagJoin.note_id == note_id) & (DBTagJoin.tag_id == tag_id)
                )
            ) is not None

    def attach(self, note_id: int, tag_id: int, session: Optional[Session] = None) -> None:
        """Attach a tag to a note.

        Raises:
            NotFoundError: If the note or the tag does not exist.
            AlreadyAttachedError: If the note already carries the tag.
        """
        with self.session_scope(session) as session:
            if session.get(DBNote, note_id) is None:
                raise NotFoundError.note(note_id)
            self.require(session, tag_id)
            if self.is_attached(note_id, tag_id, session=session):
                raise AlreadyAttachedError.pair(note_id, tag_id)
            session.add(DBTagJoin(note_id=note_id, tag_id=tag_id))
            session.flush()

    def detach(self, note_id: int, tag_id: int, session: Optional[Session] = None) -> bool:
        """Detach a tag from a note.

        Returns:
            True if an association was removed, False if there was none.
        """
        with self.session_scope(session) as session:
            result = session.execute(
                delete(DBTagJoin).where(
                    (DBTagJoin.note_id == note_id) & (DBTagJoin.tag_id == tag_id)
                )
            )
            return result.rowcount > 0

    def get_tags_for_note(self, note_id: int, session: Optional[Session] = None) -> List[Tag]:
        """Get all tags attached to a note, sorted by name."""
        with self.session_scope(session) as session:
            db_tags = session.scalars(
                select(DBTag)
                .join(DBTagJoin, DBTag.id == DBTagJoin.tag_id)
                .where(DBTagJoin.note_id == note_id)
                .order_by(DBTag.name)
            ).all()
            return [self._to_model(t) for t in db_tags]

    def get_notes_for_tag(self, tag_id: int, session: Optional[Session] = None) -> List[NoteSummary]:
        """Get every note carrying a tag, sorted by name."""
        with self.session_scope(session) as session:
            db_notes = session.scalars(
                select(DBNote)
                .options(selectinload(DBNote.tags))
                .join(DBTagJoin, DBNote.id == DBTagJoin.note_id)
                .where(DBTagJoin.tag_id == tag_id)
                .order_by(DBNote.name)
            ).all()
            return [to_summary(n) for n in db_notes]
