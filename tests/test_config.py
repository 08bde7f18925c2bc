"""Tests for configuration loading from the environment."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from foucault.config import _USER_ENV, FoucaultConfig


class TestEnvironment:
    """Config fields read their defaults from FOUCAULT_* variables."""

    def test_user_env_path_is_correct(self):
        assert _USER_ENV == Path.home() / ".foucault" / ".env"

    def test_values_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FOUCAULT_NOTEBOOKS_DIR", str(tmp_path / "books"))
        monkeypatch.setenv("FOUCAULT_SERVER_PORT", "9000")
        monkeypatch.setenv("FOUCAULT_CLIENT_TIMEOUT", "2.5")
        monkeypatch.setenv("FOUCAULT_SCRATCH_DIR", str(tmp_path / "scratch"))

        cfg = FoucaultConfig()
        assert cfg.notebooks_dir == tmp_path / "books"
        assert cfg.server_port == 9000
        assert cfg.client_timeout == 2.5
        assert cfg.scratch_dir == tmp_path / "scratch"

    def test_defaults(self, monkeypatch):
        for name in ["FOUCAULT_SERVER_PORT", "FOUCAULT_CLIENT_TIMEOUT",
                     "FOUCAULT_SCRATCH_DIR", "FOUCAULT_EDITOR"]:
            monkeypatch.delenv(name, raising=False)

        cfg = FoucaultConfig()
        assert cfg.server_port == 8078
        assert cfg.client_timeout == 5.0
        assert cfg.scratch_dir is None
        assert cfg.editor is None

    @pytest.mark.parametrize("name,value", [
        ("FOUCAULT_CLIENT_TIMEOUT", "0"),
        ("FOUCAULT_CLIENT_TIMEOUT", "-1"),
        ("FOUCAULT_SERVER_PORT", "0"),
        ("FOUCAULT_SERVER_PORT", "70000"),
    ])
    def test_invalid_network_values(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ValidationError):
            FoucaultConfig()


class TestPaths:
    def test_notebook_path(self, tmp_path):
        cfg = FoucaultConfig(notebooks_dir=tmp_path / "books")
        path = cfg.get_notebook_path("thoughts")
        assert path == tmp_path / "books" / "thoughts.book"
        assert path.parent.is_dir()

    def test_relative_paths_use_base_dir(self, tmp_path):
        cfg = FoucaultConfig(base_dir=tmp_path, notebooks_dir=Path("books"))
        assert cfg.get_notebooks_dir() == tmp_path / "books"

    def test_db_url(self, tmp_path):
        assert FoucaultConfig.get_db_url(tmp_path / "a.book") == f"sqlite:///{tmp_path / 'a.book'}"


class TestEditorResolution:
    """FOUCAULT_EDITOR wins over $VISUAL, which wins over $EDITOR."""

    @pytest.fixture(autouse=True)
    def _clear_editor_env(self, monkeypatch):
        for name in ["FOUCAULT_EDITOR", "VISUAL", "EDITOR"]:
            monkeypatch.delenv(name, raising=False)

    def test_configured_editor(self, monkeypatch):
        monkeypatch.setenv("VISUAL", "emacs")
        cfg = FoucaultConfig(editor="code --wait")
        assert cfg.resolve_editor() == ["code", "--wait"]

    def test_visual_before_editor(self, monkeypatch):
        monkeypatch.setenv("VISUAL", "emacs -nw")
        monkeypatch.setenv("EDITOR", "nano")
        assert FoucaultConfig().resolve_editor() == ["emacs", "-nw"]

    def test_editor_variable(self, monkeypatch):
        monkeypatch.setenv("EDITOR", "nano")
        assert FoucaultConfig().resolve_editor() == ["nano"]

    def test_fallback(self):
        assert FoucaultConfig().resolve_editor() == ["vi"]
