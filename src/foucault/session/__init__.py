"""Interactive session: state machine, external editor and console."""

from foucault.session.controller import NoteView, SessionController
from foucault.session.editor import EditorError, ExternalEditor, TerminalControl

__all__ = [
    "NoteView",
    "SessionController",
    "EditorError",
    "ExternalEditor",
    "TerminalControl",
]
