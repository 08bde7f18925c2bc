"""Shared plumbing for the notebook repositories."""
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.orm import Session


class Repository:
    """Base class for repositories backed by a SQLAlchemy session factory.

    Every repository method accepts an optional ``session``. When given, the
    method joins that session's transaction and leaves committing to the
    caller; otherwise it runs in a transaction of its own.
    """

    def __init__(self, session_factory):
        """Initialize the repository.

        Args:
            session_factory: SQLAlchemy session factory for database operations.
        """
        self.session_factory = session_factory

    @contextmanager
    def session_scope(self, session: Optional[Session] = None) -> Iterator[Session]:
        """Yield ``session`` as is, or a fresh one committed on success."""
        if session is not None:
            yield session
            return
        with self.session_factory() as own_session:
            try:
                yield own_session
                own_session.commit()
            except Exception:
                own_session.rollback()
                raise
