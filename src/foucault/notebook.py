"""Notebook lifecycle: one named SQLite file per notebook.

A notebook called ``name`` lives in ``<notebooks_dir>/<name>.book``. It
is opened (creating the schema when needed), used, then closed, after
which its engine and session factory must not be used again.
"""
import logging
from pathlib import Path
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from foucault.config import NOTEBOOK_SUFFIX, config
from foucault.exceptions import (DuplicateNameError, ErrorCode,
                                 MalformedError, NotFoundError,
                                 StorageFailureError)
from foucault.models.db_models import get_session_factory, init_db
from foucault.models.schema import normalize_name

logger = logging.getLogger(__name__)

# SQLite companions left behind in WAL mode
_SIDECAR_SUFFIXES = ("-wal", "-shm", "-journal")


def _notebook_name(name: str) -> str:
    name = normalize_name(name, "notebook")
    if "/" in name or "\\" in name or name in (".", ".."):
        raise MalformedError(
            "A notebook name cannot contain path separators",
            details={"notebook": name},
        )
    return name


class Notebook:
    """An open notebook database."""

    def __init__(self, name: str, path: Path):
        self.name = name
        self.path = Path(path)
        self.closed = False
        try:
            self.engine = init_db(config.get_db_url(self.path))
        except SQLAlchemyError as e:
            raise StorageFailureError.wrap(
                "open notebook", e, code=ErrorCode.STORAGE_CONNECTION_FAILED
            ) from e
        self.session_factory = get_session_factory(self.engine)
        logger.info(f"Opened notebook '{self.name}' at {self.path}")

    @staticmethod
    def path_for(name: str, notebooks_dir: Optional[Path] = None) -> Path:
        """Get the file backing the notebook called ``name``."""
        name = _notebook_name(name)
        if notebooks_dir is None:
            return config.get_notebook_path(name)
        return Path(notebooks_dir) / f"{name}{NOTEBOOK_SUFFIX}"

    @classmethod
    def create(cls, name: str, notebooks_dir: Optional[Path] = None) -> "Notebook":
        """Create and open a new, empty notebook.

        Raises:
            DuplicateNameError: If a notebook with this name already exists.
        """
        path = cls.path_for(name, notebooks_dir)
        if path.exists():
            raise DuplicateNameError.notebook(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        return cls(path.stem, path)

    @classmethod
    def open(cls, name: str, notebooks_dir: Optional[Path] = None) -> "Notebook":
        """Open an existing notebook.

        Raises:
            NotFoundError: If no notebook with this name exists.
        """
        path = cls.path_for(name, notebooks_dir)
        if not path.is_file():
            raise NotFoundError.notebook(name)
        return cls(path.stem, path)

    @classmethod
    def delete(cls, name: str, notebooks_dir: Optional[Path] = None) -> None:
        """Remove a notebook's file from disk.

        Raises:
            NotFoundError: If no notebook with this name exists.
        """
        path = cls.path_for(name, notebooks_dir)
        if not path.is_file():
            raise NotFoundError.notebook(name)
        path.unlink()
        for suffix in _SIDECAR_SUFFIXES:
            sidecar = path.with_name(path.name + suffix)
            if sidecar.exists():
                sidecar.unlink()
        logger.info(f"Deleted notebook '{name}'")

    @staticmethod
    def list_notebooks(notebooks_dir: Optional[Path] = None) -> List[str]:
        """Names of every notebook in the directory, sorted."""
        directory = Path(notebooks_dir) if notebooks_dir else config.get_notebooks_dir()
        if not directory.is_dir():
            return []
        return sorted(p.stem for p in directory.glob(f"*{NOTEBOOK_SUFFIX}") if p.is_file())

    def close(self) -> None:
        """Release the database connections. Safe to call more than once."""
        if self.closed:
            return
        self.engine.dispose()
        self.closed = True
        logger.info(f"Closed notebook '{self.name}'")

    def __enter__(self) -> "Notebook":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<Notebook(name='{self.name}', path='{self.path}')>"
