"""Configuration module for Foucault."""

import logging
import os
import shlex
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config: lives alongside the notebooks
_USER_ENV = Path.home() / ".foucault" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

NOTEBOOK_SUFFIX = ".book"
DEFAULT_EDITOR = "vi"


class FoucaultConfig(BaseModel):
    """Configuration for notebooks, the HTTP server and the client."""

    # Base directory for relative paths
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("FOUCAULT_BASE_DIR", "."))
    )
    # Where `<name>.book` files live
    notebooks_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv(
                "FOUCAULT_NOTEBOOKS_DIR", str(Path.home() / ".foucault" / "notebooks")
            )
        )
    )
    # External editor command; falls back to $VISUAL / $EDITOR when unset
    editor: Optional[str] = Field(
        default_factory=lambda: os.getenv("FOUCAULT_EDITOR") or None
    )
    # Directory for the editor's scratch files (temporary dir when unset)
    scratch_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("FOUCAULT_SCRATCH_DIR"))
            if os.getenv("FOUCAULT_SCRATCH_DIR")
            else None
        )
    )
    # Server configuration
    server_host: str = Field(
        default_factory=lambda: os.getenv("FOUCAULT_SERVER_HOST", "0.0.0.0")
    )
    server_port: int = Field(
        default_factory=lambda: int(os.getenv("FOUCAULT_SERVER_PORT", "8078"))
    )
    # Bounded wait for every remote call before RemoteUnavailable
    client_timeout: float = Field(
        default_factory=lambda: float(os.getenv("FOUCAULT_CLIENT_TIMEOUT", "5.0"))
    )
    # Logging configuration
    log_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("FOUCAULT_LOG_DIR", str(Path.home() / ".foucault" / "logs"))
        )
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("FOUCAULT_LOG_LEVEL", "INFO")
    )

    @model_validator(mode="after")
    def _validate_network_config(self) -> "FoucaultConfig":
        """Reject values the server or client cannot work with."""
        if self.client_timeout <= 0:
            raise ValueError("client_timeout must be > 0")
        if not 0 < self.server_port < 65536:
            raise ValueError("server_port must be between 1 and 65535")
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_notebooks_dir(self) -> Path:
        """Get the notebooks directory, creating it if needed."""
        notebooks_dir = self.get_absolute_path(self.notebooks_dir)
        notebooks_dir.mkdir(parents=True, exist_ok=True)
        return notebooks_dir

    def get_notebook_path(self, name: str) -> Path:
        """Get the file backing the notebook called ``name``."""
        return self.get_notebooks_dir() / f"{name}{NOTEBOOK_SUFFIX}"

    @staticmethod
    def get_db_url(path: Path) -> str:
        """Get the SQLite database URL for a notebook file."""
        return f"sqlite:///{path}"

    def resolve_editor(self) -> List[str]:
        """Return the external editor command as an argument list.

        Precedence: ``FOUCAULT_EDITOR`` (or ``config.editor``), then
        ``$VISUAL``, then ``$EDITOR``, then ``vi``.
        """
        command = (
            self.editor
            or os.getenv("VISUAL")
            or os.getenv("EDITOR")
            or DEFAULT_EDITOR
        )
        return shlex.split(command)


# Create a global config instance
config = FoucaultConfig()
