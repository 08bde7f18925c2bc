"""The notebook engine interface.

Implemented locally by ``NotebookService`` and over HTTP by
``RemoteNotebook``; callers such as the session controller depend only
on this interface and behave the same with either.
"""
from abc import ABC, abstractmethod
from typing import List

from foucault.models.schema import Note, NotebookInfo, NoteSummary, Tag


class NotebookApi(ABC):
    """Operations on one open notebook."""

    @abstractmethod
    def info(self) -> NotebookInfo:
        """Name and permissions of the notebook."""

    # Notes

    @abstractmethod
    def create_note(self, name: str, body: str = "") -> int:
        """Create a note and return its ID."""

    @abstractmethod
    def read_note(self, note_id: int) -> Note:
        """Load a note by ID."""

    @abstractmethod
    def read_note_by_name(self, name: str) -> Note:
        """Load a note by exact name."""

    @abstractmethod
    def update_note(self, note_id: int, body: str) -> None:
        """Replace a note's body and re-resolve its references."""

    @abstractmethod
    def rename_note(self, note_id: int, name: str) -> None:
        """Rename a note, retargeting references to it."""

    @abstractmethod
    def delete_note(self, note_id: int) -> None:
        """Delete a note; nothing happens if it is already gone."""

    @abstractmethod
    def list_notes(self) -> List[NoteSummary]:
        """Every note, sorted by name."""

    @abstractmethod
    def search_notes_by_name(self, prefix: str) -> List[NoteSummary]:
        """Notes whose name starts with ``prefix``."""

    @abstractmethod
    def outgoing_links(self, note_id: int) -> List[str]:
        """Names referenced by a note, sorted."""

    @abstractmethod
    def backlinks_of(self, note_name: str) -> List[NoteSummary]:
        """Notes referencing the note currently named ``note_name``."""

    @abstractmethod
    def validate_note_name(self, name: str) -> str:
        """Return the canonical form of a name a new note could take.

        Raises MalformedError or DuplicateNameError otherwise.
        """

    # Tags

    @abstractmethod
    def create_tag(self, name: str) -> Tag:
        """Create a tag with a random color."""

    @abstractmethod
    def read_tag(self, tag_id: int) -> Tag:
        """Load a tag by ID."""

    @abstractmethod
    def read_tag_by_name(self, name: str) -> Tag:
        """Load a tag by exact name."""

    @abstractmethod
    def rename_tag(self, tag_id: int, name: str) -> None:
        """Rename a tag."""

    @abstractmethod
    def delete_tag(self, tag_id: int) -> None:
        """Delete a tag; nothing happens if it is already gone."""

    @abstractmethod
    def list_tags(self) -> List[Tag]:
        """Every tag, sorted by name."""

    @abstractmethod
    def search_tags(self, pattern: str) -> List[Tag]:
        """Tags whose name contains ``pattern``."""

    @abstractmethod
    def validate_tag_name(self, name: str) -> str:
        """Return the canonical form of a name a new tag could take."""

    @abstractmethod
    def tag(self, note_id: int, tag_id: int) -> None:
        """Attach a tag to a note."""

    @abstractmethod
    def untag(self, note_id: int, tag_id: int) -> None:
        """Detach a tag from a note."""

    @abstractmethod
    def list_tags_for_note(self, note_id: int) -> List[Tag]:
        """Tags attached to a note, sorted by name."""

    @abstractmethod
    def notes_with_tag(self, tag_id: int) -> List[NoteSummary]:
        """Notes carrying a tag, sorted by name."""

    @abstractmethod
    def close(self) -> None:
        """Release the notebook."""

    @property
    def writable(self) -> bool:
        return self.info().permissions.writable

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
