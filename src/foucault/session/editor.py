"""External editor hand-off.

A note is edited by writing its body to a scratch file, giving the
terminal to the user's editor, and reading the file back once the
editor exits.
"""
import logging
import os
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from foucault.config import config
from foucault.models.schema import Note
from foucault.utils import sanitize_for_terminal

logger = logging.getLogger(__name__)

# Grace period for an editor asked to terminate before it is killed
TERMINATE_TIMEOUT = 5.0


class EditorError(Exception):
    """The external editor could not be started."""


class TerminalControl:
    """Exclusive control of the terminal, lent to a child process.

    ``release`` and ``restore`` are the presentation layer's hooks for
    leaving and re-entering its screen.
    """

    def __init__(
        self,
        release: Optional[Callable[[], None]] = None,
        restore: Optional[Callable[[], None]] = None,
    ):
        self._release = release
        self._restore = restore
        self.handed_off = False

    @contextmanager
    def hand_off(self) -> Iterator[None]:
        """Give the terminal away for the duration of the block."""
        if self._release is not None:
            self._release()
        self.handed_off = True
        try:
            yield
        finally:
            self.handed_off = False
            if self._restore is not None:
                self._restore()


class ExternalEditor:
    """Runs the configured editor on scratch copies of notes."""

    def __init__(self, command: Optional[List[str]] = None, scratch_dir: Optional[Path] = None):
        """Initialize the editor.

        Args:
            command: Editor command line; the scratch path is appended.
                Resolved from the configuration when None.
            scratch_dir: Where scratch files go (a temporary directory when
                None and ``FOUCAULT_SCRATCH_DIR`` is unset).
        """
        self.command = list(command) if command else config.resolve_editor()
        self.scratch_dir = Path(scratch_dir) if scratch_dir else config.scratch_dir

    def write_scratch(self, note: Note) -> Path:
        """Write the note body to a fresh scratch file and return its path."""
        directory = self.scratch_dir
        if directory is not None:
            directory.mkdir(parents=True, exist_ok=True)
        prefix = f"{sanitize_for_terminal(note.name) or 'note'}-"
        fd, path = tempfile.mkstemp(prefix=prefix, suffix=".md", dir=directory)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(note.body)
        logger.debug(f"Wrote note {note.id} to scratch file {path}")
        return Path(path)

    def launch(self, path: Path) -> subprocess.Popen:
        """Start the editor on ``path`` without waiting for it.

        Raises:
            EditorError: If the editor command cannot be executed.
        """
        argv = [*self.command, str(path)]
        try:
            process = subprocess.Popen(argv)
        except (OSError, ValueError) as e:
            raise EditorError(f"Could not start editor '{self.command[0]}': {e}") from e
        logger.info(f"Started editor (pid {process.pid}) on {path}")
        return process

    @staticmethod
    def read_scratch(path: Path) -> str:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    @staticmethod
    def discard(path: Optional[Path]) -> None:
        """Remove a scratch file; a missing file is not an error."""
        if path is None:
            return
        try:
            Path(path).unlink()
        except FileNotFoundError:
            pass

    @staticmethod
    def terminate(process: subprocess.Popen) -> None:
        """Stop a running editor, killing it if it does not exit in time."""
        if process.poll() is not None:
            return
        process.terminate()
        try:
            process.wait(timeout=TERMINATE_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.warning(f"Editor (pid {process.pid}) ignored SIGTERM, killing it")
            process.kill()
            process.wait()
