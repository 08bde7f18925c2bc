"""Local notebook engine backed by a SQLite notebook file."""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from foucault.exceptions import (DuplicateNameError, ErrorCode,
                                 NotAttachedError, NotFoundError,
                                 ReadOnlyError, StorageFailureError)
from foucault.models.schema import (Note, NotebookInfo, NoteSummary,
                                    Permissions, Tag, check_id,
                                    normalize_name)
from foucault.notebook import Notebook
from foucault.observability import traced
from foucault.services.base import NotebookApi
from foucault.storage import LinkRepository, NoteRepository, TagRepository

logger = logging.getLogger(__name__)


class NotebookService(NotebookApi):
    """Notebook engine working directly on a notebook database.

    Each operation runs in a single transaction: it either fully applies
    or leaves the notebook untouched. All calls on one instance are
    serialized by a re-entrant lock, so the HTTP server can share one
    service across its worker threads.
    """

    def __init__(
        self,
        notebook: Notebook,
        permissions: Union[Permissions, str] = Permissions.READ_WRITE,
    ):
        """Initialize the service.

        Args:
            notebook: The open notebook to operate on. The service owns it
                and closes it in ``close()``.
            permissions: ``read_only`` rejects every mutation.
        """
        self.notebook = notebook
        self.permissions = Permissions(permissions)
        self._lock = threading.RLock()
        self.note_repository = NoteRepository(notebook.session_factory)
        self.tag_repository = TagRepository(notebook.session_factory)
        self.link_repository = LinkRepository(notebook.session_factory)

    @contextmanager
    def _transaction(
        self, operation: str, write: bool = False, **ids: int
    ) -> Iterator[Session]:
        """Run one engine operation in one transaction under the lock.

        IDs passed as keywords are range-checked first, so an ID no row can
        have is Malformed rather than an overflow inside the driver.
        SQLAlchemy errors surface as StorageFailureError; domain errors
        propagate unchanged. Either way nothing is committed.
        """
        for field_name, value in ids.items():
            check_id(value, field_name)
        if write and not self.permissions.writable:
            raise ReadOnlyError.operation(operation)
        with self._lock:
            if self.notebook.closed:
                raise StorageFailureError(
                    f"Notebook '{self.notebook.name}' is closed",
                    code=ErrorCode.NOTEBOOK_CLOSED,
                    details={"operation": operation},
                )
            with self.notebook.session_factory() as session:
                try:
                    yield session
                    if write:
                        session.commit()
                except SQLAlchemyError as e:
                    session.rollback()
                    logger.error(f"Storage failure during {operation}: {e}")
                    code = ErrorCode.STORAGE_WRITE_FAILED if write else ErrorCode.STORAGE_READ_FAILED
                    raise StorageFailureError.wrap(operation, e, code=code) from e
                except Exception:
                    session.rollback()
                    raise

    @traced()
    def info(self) -> NotebookInfo:
        return NotebookInfo(name=self.notebook.name, permissions=self.permissions)

    # Notes

    @traced()
    def create_note(self, name: str, body: str = "") -> int:
        with self._transaction("create_note", write=True) as session:
            note_id = self.note_repository.create(name, body, session=session)
            self.link_repository.resolve_references(note_id, body, session=session)
        logger.info(f"Created note {note_id}")
        return note_id

    @traced()
    def read_note(self, note_id: int) -> Note:
        with self._transaction("read_note", note_id=note_id) as session:
            note = self.note_repository.get(note_id, session=session)
        if note is None:
            raise NotFoundError.note(note_id)
        return note

    @traced()
    def read_note_by_name(self, name: str) -> Note:
        with self._transaction("read_note_by_name") as session:
            note = self.note_repository.get_by_name(name, session=session)
        if note is None:
            raise NotFoundError.note_name(name)
        return note

    @traced()
    def update_note(self, note_id: int, body: str) -> None:
        """Replace the body and re-resolve the note's references atomically."""
        with self._transaction("update_note", write=True, note_id=note_id) as session:
            self.note_repository.update_body(note_id, body, session=session)
            self.link_repository.resolve_references(note_id, body, session=session)

    @traced()
    def rename_note(self, note_id: int, name: str) -> None:
        """Rename a note.

        Incoming references follow the note: link rows are retargeted and
        the ``[[old]]`` markers in referring bodies become ``[[new]]``, in
        the same transaction as the rename.
        """
        with self._transaction("rename_note", write=True, note_id=note_id) as session:
            old_name = self.note_repository.rename(note_id, name, session=session)
            new_name = self.note_repository.require(session, note_id).name
            if old_name != new_name:
                self.link_repository.retarget(old_name, new_name, session=session)
        if old_name != new_name:
            logger.info(f"Renamed note {note_id} from '{old_name}' to '{new_name}'")

    @traced()
    def delete_note(self, note_id: int) -> None:
        with self._transaction("delete_note", write=True, note_id=note_id) as session:
            deleted = self.note_repository.delete(note_id, session=session)
        if deleted:
            logger.info(f"Deleted note {note_id}")

    @traced()
    def list_notes(self) -> List[NoteSummary]:
        with self._transaction("list_notes") as session:
            return self.note_repository.list_summaries(session=session)

    @traced()
    def search_notes_by_name(self, prefix: str) -> List[NoteSummary]:
        with self._transaction("search_notes_by_name") as session:
            return self.note_repository.search_by_name(prefix, session=session)

    @traced()
    def outgoing_links(self, note_id: int) -> List[str]:
        with self._transaction("outgoing_links", note_id=note_id) as session:
            self.note_repository.require(session, note_id)
            return self.link_repository.get_outgoing(note_id, session=session)

    @traced()
    def backlinks_of(self, note_name: str) -> List[NoteSummary]:
        with self._transaction("backlinks_of") as session:
            return self.link_repository.get_backlinks(note_name, session=session)

    @traced()
    def validate_note_name(self, name: str) -> str:
        name = normalize_name(name, "note")
        with self._transaction("validate_note_name") as session:
            if self.note_repository.get_by_name(name, session=session) is not None:
                raise DuplicateNameError.note(name)
        return name

    # Tags

    @traced()
    def create_tag(self, name: str) -> Tag:
        with self._transaction("create_tag", write=True) as session:
            tag = self.tag_repository.create(name, session=session)
        logger.info(f"Created tag {tag.id} '{tag.name}'")
        return tag

    @traced()
    def read_tag(self, tag_id: int) -> Tag:
        with self._transaction("read_tag", tag_id=tag_id) as session:
            tag = self.tag_repository.get(tag_id, session=session)
        if tag is None:
            raise NotFoundError.tag(tag_id)
        return tag

    @traced()
    def read_tag_by_name(self, name: str) -> Tag:
        with self._transaction("read_tag_by_name") as session:
            tag = self.tag_repository.get_by_name(name, session=session)
        if tag is None:
            raise NotFoundError.tag_name(name)
        return tag

    @traced()
    def rename_tag(self, tag_id: int, name: str) -> None:
        with self._transaction("rename_tag", write=True, tag_id=tag_id) as session:
            self.tag_repository.rename(tag_id, name, session=session)

    @traced()
    def delete_tag(self, tag_id: int) -> None:
        with self._transaction("delete_tag", write=True, tag_id=tag_id) as session:
            deleted = self.tag_repository.delete(tag_id, session=session)
        if deleted:
            logger.info(f"Deleted tag {tag_id}")

    @traced()
    def list_tags(self) -> List[Tag]:
        with self._transaction("list_tags") as session:
            return self.tag_repository.get_all(session=session)

    @traced()
    def search_tags(self, pattern: str) -> List[Tag]:
        with self._transaction("search_tags") as session:
            return self.tag_repository.search(pattern, session=session)

    @traced()
    def validate_tag_name(self, name: str) -> str:
        name = normalize_name(name, "tag")
        with self._transaction("validate_tag_name") as session:
            if self.tag_repository.get_by_name(name, session=session) is not None:
                raise DuplicateNameError.tag(name)
        return name

    @traced()
    def tag(self, note_id: int, tag_id: int) -> None:
        with self._transaction("tag", write=True, note_id=note_id, tag_id=tag_id) as session:
            self.tag_repository.attach(note_id, tag_id, session=session)

    @traced()
    def untag(self, note_id: int, tag_id: int) -> None:
        with self._transaction("untag", write=True, note_id=note_id, tag_id=tag_id) as session:
            self.note_repository.require(session, note_id)
            self.tag_repository.require(session, tag_id)
            if not self.tag_repository.detach(note_id, tag_id, session=session):
                raise NotAttachedError.pair(note_id, tag_id)

    @traced()
    def list_tags_for_note(self, note_id: int) -> List[Tag]:
        with self._transaction("list_tags_for_note", note_id=note_id) as session:
            self.note_repository.require(session, note_id)
            return self.tag_repository.get_tags_for_note(note_id, session=session)

    @traced()
    def notes_with_tag(self, tag_id: int) -> List[NoteSummary]:
        with self._transaction("notes_with_tag", tag_id=tag_id) as session:
            self.tag_repository.require(session, tag_id)
            return self.tag_repository.get_notes_for_tag(tag_id, session=session)

    def close(self) -> None:
        with self._lock:
            self.notebook.close()
