"""Notebook engine implementations."""

from foucault.services.base import NotebookApi
from foucault.services.notebook_service import NotebookService

__all__ = ["NotebookApi", "NotebookService"]
