"""Repository for cross-reference links between notes.

Link rows are keyed by the *name* of the target note, so a reference to a
note that does not exist yet is a perfectly valid row. Targets are
resolved at query time by joining against the current note names.
"""
import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, aliased, selectinload

from foucault.models.db_models import DBLink, DBNote
from foucault.models.schema import NoteSummary, utc_now
from foucault.storage.base import Repository
from foucault.storage.markdown_parser import MarkdownParser
from foucault.storage.note_repository import to_summary

logger = logging.getLogger(__name__)


class LinkRepository(Repository):
    """Keeps each note's link rows equal to the markers in its body."""

    def __init__(self, session_factory, parser: Optional[MarkdownParser] = None):
        super().__init__(session_factory)
        self.parser = parser or MarkdownParser()

    def resolve_references(self, note_id: int, body: str, session: Optional[Session] = None) -> List[str]:
        """Synchronize a note's link rows with the markers found in ``body``.

        Only stale rows are removed and only missing rows inserted, so
        calling this twice with the same body is a no-op.

        Returns:
            The referenced note names in order of appearance.
        """
        targets = self.parser.extract_references(body)
        with self.session_scope(session) as session:
            current = set(session.scalars(
                select(DBLink.to_name).where(DBLink.from_id == note_id)
            ).all())
            wanted = set(targets)

            stale = current - wanted
            if stale:
                session.execute(
                    delete(DBLink).where(
                        (DBLink.from_id == note_id) & (DBLink.to_name.in_(sorted(stale)))
                    )
                )
            for name in targets:
                if name not in current:
                    session.add(DBLink(from_id=note_id, to_name=name))
            session.flush()

            if stale or wanted - current:
                logger.debug(
                    f"Note {note_id} links: -{len(stale)} +{len(wanted - current)}"
                )
        return targets

    def get_outgoing(self, note_id: int, session: Optional[Session] = None) -> List[str]:
        """Get the raw target names of a note's links, sorted."""
        with self.session_scope(session) as session:
            return list(session.scalars(
                select(DBLink.to_name)
                .where(DBLink.from_id == note_id)
                .order_by(DBLink.to_name)
            ).all())

    def get_backlinks(self, note_name: str, session: Optional[Session] = None) -> List[NoteSummary]:
        """Get the notes referencing ``note_name``, sorted by name.

        Empty when no note currently bears that name, even if link rows
        still target it.
        """
        with self.session_scope(session) as session:
            target = aliased(DBNote)
            target_exists = select(target.id).where(target.name == note_name).exists()
            db_notes = session.scalars(
                select(DBNote)
                .options(selectinload(DBNote.tags))
                .join(DBLink, DBLink.from_id == DBNote.id)
                .where((DBLink.to_name == note_name) & target_exists)
                .order_by(DBNote.name)
            ).all()
            return [to_summary(n) for n in db_notes]

    def retarget(self, old_name: str, new_name: str, session: Optional[Session] = None) -> List[int]:
        """Point every reference to ``old_name`` at ``new_name``.

        Rewrites the markers in each referrer's body and re-resolves its
        links, so link rows keep matching the bodies.

        Returns:
            IDs of the notes whose bodies were rewritten.
        """
        with self.session_scope(session) as session:
            referrers = session.scalars(
                select(DBNote)
                .join(DBLink, DBLink.from_id == DBNote.id)
                .where(DBLink.to_name == old_name)
                .order_by(DBNote.id)
            ).all()
            now = utc_now()
            for db_note in referrers:
                db_note.body = self.parser.rewrite_references(db_note.body, old_name, new_name)
                db_note.updated_at = now
                self.resolve_references(db_note.id, db_note.body, session=session)
            if referrers:
                logger.info(
                    f"Retargeted {len(referrers)} note(s) from '{old_name}' to '{new_name}'"
                )
            return [n.id for n in referrers]
