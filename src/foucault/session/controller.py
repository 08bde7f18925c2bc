"""Interactive session over one notebook engine.

The controller is the state machine behind the user interface: it moves
between listing, viewing and editing notes and keeps the data the
presentation layer renders (``entries``, ``view``, ``message``). It
only talks to the ``NotebookApi`` interface, so a local notebook and a
remote one behave the same.

Engine errors never end a session: the failing action leaves the state
untouched and its error is shown in ``message`` until dismissed.
"""
import functools
import logging
import subprocess
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from foucault.exceptions import FoucaultError, NotFoundError
from foucault.models.schema import Note, NoteSummary, Tag
from foucault.services.base import NotebookApi
from foucault.session.editor import EditorError, ExternalEditor, TerminalControl
from foucault.session.states import (LISTING_STATES, Closed, EditingExternal,
                                     Filtering, Listing, ListingState,
                                     Searching, SessionState, Viewing)

logger = logging.getLogger(__name__)


@dataclass
class NoteView:
    """Everything shown while viewing a note."""

    note: Note
    outgoing: List[str] = field(default_factory=list)
    backlinks: List[NoteSummary] = field(default_factory=list)
    tags: List[Tag] = field(default_factory=list)


def action(method):
    """Run a user action, turning engine errors into the session message.

    The wrapped method returns True when the action took effect.
    """
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs) -> bool:
        if isinstance(self.state, Closed):
            return False
        try:
            return bool(method(self, *args, **kwargs))
        except FoucaultError as e:
            logger.info(f"{method.__name__} failed: {e}")
            self.message = e.message
            return False
    return wrapper


class SessionController:
    """State machine driving one interactive session."""

    def __init__(
        self,
        engine: NotebookApi,
        editor: Optional[ExternalEditor] = None,
        terminal: Optional[TerminalControl] = None,
    ):
        self.engine = engine
        self.editor = editor or ExternalEditor()
        self.terminal = terminal or TerminalControl()
        self.state: SessionState = Listing()
        self.entries: List[NoteSummary] = []
        self.filter_tag: Optional[Tag] = None
        self.view: Optional[NoteView] = None
        self.message: Optional[str] = None
        self.help_visible = False
        self._process: Optional[subprocess.Popen] = None
        self._scratch: Optional[Path] = None
        self._edit_stack: Optional[ExitStack] = None

    @property
    def closed(self) -> bool:
        return isinstance(self.state, Closed)

    @property
    def editing(self) -> bool:
        return isinstance(self.state, EditingExternal)

    def _refuse(self, what: str) -> bool:
        self.message = f"Cannot {what} while {type(self.state).__name__.lower()}"
        return False

    # Listings

    def _enter_listing(self, state: ListingState) -> None:
        """Load the notes for ``state`` and switch to it."""
        filter_tag = None
        if isinstance(state, Filtering):
            filter_tag = self.engine.read_tag(state.tag_id)
            entries = self.engine.notes_with_tag(state.tag_id)
        elif isinstance(state, Searching):
            entries = self.engine.search_notes_by_name(state.prefix)
        else:
            entries = self.engine.list_notes()
        self.entries = entries
        self.filter_tag = filter_tag
        self.view = None
        self.state = state

    @action
    def show_all(self) -> bool:
        if self.editing:
            return self._refuse("list notes")
        self._enter_listing(Listing())
        return True

    @action
    def filter_by_tag(self, tag_id: int) -> bool:
        if self.editing:
            return self._refuse("filter notes")
        self._enter_listing(Filtering(tag_id))
        return True

    @action
    def search(self, prefix: str) -> bool:
        if self.editing:
            return self._refuse("search notes")
        self._enter_listing(Searching(prefix))
        return True

    # Viewing

    def _load_view(self, note: Note) -> NoteView:
        return NoteView(
            note=note,
            outgoing=self.engine.outgoing_links(note.id),
            backlinks=self.engine.backlinks_of(note.name),
            tags=self.engine.list_tags_for_note(note.id),
        )

    def _enter_view(self, note: Note, origin: ListingState) -> None:
        self.view = self._load_view(note)
        self.state = Viewing(note.id, origin)

    @action
    def select(self, note_id: int) -> bool:
        """Open a note from the current listing."""
        if not isinstance(self.state, LISTING_STATES):
            return self._refuse("select a note")
        self._enter_view(self.engine.read_note(note_id), self.state)
        return True

    @action
    def follow(self, name: str) -> bool:
        """Open the note a ``[[name]]`` reference points to."""
        if not isinstance(self.state, Viewing):
            return self._refuse("follow a reference")
        self._enter_view(self.engine.read_note_by_name(name), self.state.origin)
        return True

    @action
    def back(self) -> bool:
        """Return from a note to the refreshed listing it was opened from."""
        if not isinstance(self.state, Viewing):
            return self._refuse("go back")
        self._enter_listing(self.state.origin)
        return True

    @action
    def refresh(self) -> bool:
        """Reload whatever is on screen."""
        if isinstance(self.state, Viewing):
            self._enter_view(self.engine.read_note(self.state.note_id), self.state.origin)
            return True
        if isinstance(self.state, LISTING_STATES):
            self._enter_listing(self.state)
            return True
        return self._refuse("refresh")

    # Mutations from the listing or the viewed note

    @action
    def create_note(self, name: str) -> bool:
        """Create an empty note and view it."""
        if self.editing:
            return self._refuse("create a note")
        origin = self.state.origin if isinstance(self.state, Viewing) else self.state
        note_id = self.engine.create_note(name)
        self._enter_view(self.engine.read_note(note_id), origin)
        return True

    @action
    def rename_current(self, name: str) -> bool:
        if not isinstance(self.state, Viewing):
            return self._refuse("rename a note")
        self.engine.rename_note(self.state.note_id, name)
        self._enter_view(self.engine.read_note(self.state.note_id), self.state.origin)
        return True

    @action
    def delete_current(self) -> bool:
        """Delete the viewed note and go back to the listing."""
        if not isinstance(self.state, Viewing):
            return self._refuse("delete a note")
        self.engine.delete_note(self.state.note_id)
        self._enter_listing(self.state.origin)
        return True

    @action
    def tag_current(self, tag_name: str) -> bool:
        """Attach a tag, by name, to the viewed note; unknown tags are created."""
        if not isinstance(self.state, Viewing):
            return self._refuse("tag a note")
        try:
            tag = self.engine.read_tag_by_name(tag_name)
        except NotFoundError:
            tag = self.engine.create_tag(tag_name)
        self.engine.tag(self.state.note_id, tag.id)
        self._enter_view(self.engine.read_note(self.state.note_id), self.state.origin)
        return True

    @action
    def untag_current(self, tag_name: str) -> bool:
        if not isinstance(self.state, Viewing):
            return self._refuse("untag a note")
        tag = self.engine.read_tag_by_name(tag_name)
        self.engine.untag(self.state.note_id, tag.id)
        self._enter_view(self.engine.read_note(self.state.note_id), self.state.origin)
        return True

    # External editing

    @action
    def begin_edit(self) -> bool:
        """Hand the viewed note to the external editor.

        The editor runs on a scratch copy; ``poll_editor`` or
        ``wait_for_editor`` pick up the result.
        """
        if not isinstance(self.state, Viewing):
            return self._refuse("edit")
        if not self.engine.writable:
            self.message = "This notebook is read-only"
            return False
        viewing = self.state
        note = self.engine.read_note(viewing.note_id)
        try:
            scratch = self.editor.write_scratch(note)
        except OSError as e:
            self.message = f"Could not prepare the note for editing: {e}"
            return False

        stack = ExitStack()
        stack.enter_context(self.terminal.hand_off())
        try:
            process = self.editor.launch(scratch)
        except EditorError as e:
            stack.close()
            self.editor.discard(scratch)
            self.message = str(e)
            return False

        self._edit_stack = stack
        self._process = process
        self._scratch = scratch
        self.state = EditingExternal(viewing.note_id, viewing)
        return True

    def poll_editor(self) -> bool:
        """Finish the edit if the editor has exited.

        Returns:
            True once the edit is over (saved or not).
        """
        if not self.editing:
            return False
        returncode = self._process.poll()
        if returncode is None:
            return False
        self._finish_edit(returncode)
        return True

    def wait_for_editor(self, timeout: Optional[float] = None) -> bool:
        """Block until the editor exits, then finish the edit.

        Returns:
            False if not editing, or if ``timeout`` elapsed first.
        """
        if not self.editing:
            return False
        try:
            returncode = self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return False
        self._finish_edit(returncode)
        return True

    def _finish_edit(self, returncode: int) -> None:
        editing = self.state
        scratch = self._scratch
        try:
            if returncode != 0:
                self.message = (
                    f"Editor exited with status {returncode}; "
                    f"your edit is kept in {scratch}"
                )
                return
            try:
                body = self.editor.read_scratch(scratch)
            except (OSError, UnicodeDecodeError) as e:
                self.message = f"Could not read back {scratch}: {e}"
                return
            try:
                self.engine.update_note(editing.note_id, body)
            except FoucaultError as e:
                logger.warning(f"Saving edit of note {editing.note_id} failed: {e}")
                self.message = f"{e.message}; your edit is kept in {scratch}"
                return
            self.editor.discard(scratch)
            try:
                self.view = self._load_view(self.engine.read_note(editing.note_id))
            except FoucaultError as e:
                self.message = e.message
        finally:
            self._end_edit()
            self.state = editing.viewing

    def _end_edit(self) -> None:
        stack, self._edit_stack = self._edit_stack, None
        self._process = None
        self._scratch = None
        if stack is not None:
            stack.close()

    # Session-wide

    def quit(self) -> None:
        """End the session; an editor still running is stopped and its edit dropped."""
        try:
            if self.editing:
                try:
                    self.editor.terminate(self._process)
                finally:
                    self.editor.discard(self._scratch)
                    self._end_edit()
        finally:
            self.state = Closed()

    def toggle_help(self) -> None:
        self.help_visible = not self.help_visible

    def dismiss_message(self) -> None:
        self.message = None
