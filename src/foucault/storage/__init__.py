"""Storage layer for Foucault notebooks."""

from foucault.storage.base import Repository
from foucault.storage.link_repository import LinkRepository
from foucault.storage.note_repository import NoteRepository
from foucault.storage.tag_repository import TagRepository

__all__ = [
    "Repository",
    "NoteRepository",
    "LinkRepository",
    "TagRepository",
]
