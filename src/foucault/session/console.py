"""Minimal line-oriented front end for a session."""
import logging
import shlex
import sys
from typing import Callable, Dict, List, Optional, TextIO

from foucault.exceptions import FoucaultError
from foucault.services.base import NotebookApi
from foucault.session.controller import SessionController
from foucault.session.editor import ExternalEditor, TerminalControl
from foucault.session.states import (EditingExternal, Filtering, Searching,
                                     Viewing)

logger = logging.getLogger(__name__)

HELP_TEXT = """\
Commands:
  ls                 list all notes
  find PREFIX        list notes whose name starts with PREFIX
  tags               list tags
  filter TAG_ID      list notes carrying a tag
  open NOTE_ID       view a note
  follow NAME        view the note [[NAME]] refers to
  back               return to the listing
  new NAME           create a note
  edit               edit the viewed note in $EDITOR
  rename NAME        rename the viewed note
  rm                 delete the viewed note
  addtag NAME        tag the viewed note
  rmtag NAME         untag the viewed note
  help               toggle this help
  quit               leave"""


class Console:
    """Reads commands line by line and prints the session after each one."""

    def __init__(
        self,
        engine: NotebookApi,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
        editor: Optional[ExternalEditor] = None,
    ):
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.engine = engine
        self.controller = SessionController(
            engine,
            editor=editor,
            terminal=TerminalControl(release=self.stdout.flush),
        )
        self._commands: Dict[str, Callable[[List[str]], None]] = {
            "ls": lambda args: self.controller.show_all(),
            "find": lambda args: self.controller.search(" ".join(args)),
            "tags": lambda args: self._print_tags(),
            "filter": lambda args: self._with_id(args, self.controller.filter_by_tag),
            "open": lambda args: self._with_id(args, self.controller.select),
            "follow": lambda args: self.controller.follow(" ".join(args)),
            "back": lambda args: self.controller.back(),
            "new": lambda args: self.controller.create_note(" ".join(args)),
            "edit": lambda args: self._edit(),
            "rename": lambda args: self.controller.rename_current(" ".join(args)),
            "rm": lambda args: self.controller.delete_current(),
            "addtag": lambda args: self.controller.tag_current(" ".join(args)),
            "rmtag": lambda args: self.controller.untag_current(" ".join(args)),
            "help": lambda args: self.controller.toggle_help(),
            "quit": lambda args: self.controller.quit(),
            "exit": lambda args: self.controller.quit(),
        }

    def write(self, text: str = "") -> None:
        print(text, file=self.stdout)

    def _with_id(self, args: List[str], method: Callable[[int], bool]) -> None:
        try:
            method(int(args[0]))
        except (IndexError, ValueError):
            self.controller.message = "Expected a numeric ID"

    def _edit(self) -> None:
        if self.controller.begin_edit():
            self.controller.wait_for_editor()

    def _print_tags(self) -> None:
        try:
            tags = self.engine.list_tags()
        except FoucaultError as e:
            self.controller.message = e.message
            return
        for tag in tags:
            self.write(f"  {tag.id:>4}  {tag.name}")
        if not tags:
            self.write("  (no tags)")

    def render(self) -> None:
        controller = self.controller
        if controller.help_visible:
            self.write(HELP_TEXT)
        state = controller.state
        if isinstance(state, Viewing) and controller.view is not None:
            view = controller.view
            self.write(f"# {view.note.name}  (#{view.note.id})")
            if view.tags:
                self.write("tags: " + ", ".join(t.name for t in view.tags))
            self.write()
            self.write(view.note.body)
            self.write()
            self.write("links: " + (", ".join(view.outgoing) or "-"))
            self.write("backlinks: " + (", ".join(n.name for n in view.backlinks) or "-"))
        elif not isinstance(state, EditingExternal) and not controller.closed:
            if isinstance(state, Filtering) and controller.filter_tag is not None:
                self.write(f"Notes tagged '{controller.filter_tag.name}':")
            elif isinstance(state, Searching):
                self.write(f"Notes starting with '{state.prefix}':")
            for entry in controller.entries:
                tags = " ".join(f"[{t.name}]" for t in entry.tags)
                self.write(f"  {entry.id:>4}  {entry.name} {tags}".rstrip())
            if not controller.entries:
                self.write("  (no notes)")
        if controller.message:
            self.write(f"! {controller.message}")
            controller.dismiss_message()

    def execute(self, line: str) -> None:
        """Run one command line."""
        try:
            words = shlex.split(line)
        except ValueError as e:
            self.controller.message = f"Could not parse command: {e}"
            return
        if not words:
            return
        command = self._commands.get(words[0].lower())
        if command is None:
            self.controller.message = f"Unknown command '{words[0]}' (try 'help')"
            return
        command(words[1:])

    def run(self) -> None:
        """Loop until ``quit`` or end of input."""
        info = self.engine.info()
        self.write(f"Notebook '{info.name}' ({info.permissions.value}). Type 'help' for commands.")
        self.controller.show_all()
        self.render()
        try:
            while not self.controller.closed:
                self.stdout.write("> ")
                self.stdout.flush()
                line = self.stdin.readline()
                if not line:
                    break
                self.execute(line)
                self.render()
        finally:
            self.controller.quit()
