"""Tests for the command line entry point."""
import pytest

from foucault import main as cli
from foucault.models.schema import Permissions
from foucault.notebook import Notebook
from foucault.services import NotebookService


@pytest.fixture
def sessions(test_config, monkeypatch, tmp_path):
    """Replace interactive sessions and file logging; record each engine."""
    monkeypatch.delenv("FOUCAULT_NOTEBOOKS_DIR", raising=False)
    engines = []

    def fake_session(engine):
        engines.append((engine.info(), [s.name for s in engine.list_notes()]))
        engine.close()

    monkeypatch.setattr(cli, "run_session", fake_session)
    monkeypatch.setattr(cli, "configure_logging", lambda *a, **k: tmp_path / "logs" / "foucault.log")
    return engines


def test_parse_args():
    args = cli.parse_args(["serve", "thoughts", "--port", "9001", "--read-only"])
    assert args.command == "serve"
    assert args.name == "thoughts"
    assert args.port == 9001
    assert args.read_only
    assert args.host is None


def test_command_is_required():
    with pytest.raises(SystemExit):
        cli.parse_args([])


def test_create_open_list_delete(sessions, capsys):
    assert cli.main(["create", "thoughts"]) == 0
    with NotebookService(Notebook.open("thoughts")) as service:
        service.create_note("First")
    assert cli.main(["open", "thoughts"]) == 0
    info, names = sessions[-1]
    assert info.name == "thoughts"
    assert info.permissions == Permissions.READ_WRITE
    assert names == ["First"]

    capsys.readouterr()
    assert cli.main(["list"]) == 0
    assert capsys.readouterr().out.splitlines() == ["thoughts"]

    assert cli.main(["delete", "thoughts"]) == 0
    capsys.readouterr()
    assert cli.main(["list"]) == 0
    assert "thoughts" not in capsys.readouterr().out


def test_engine_errors_exit_nonzero(sessions, capsys):
    assert cli.main(["open", "missing"]) == 1
    assert "foucault: " in capsys.readouterr().err

    cli.main(["create", "dup"])
    assert cli.main(["create", "dup"]) == 1


def test_notebooks_dir_option(sessions, tmp_path, monkeypatch):
    from foucault.config import config

    target = tmp_path / "elsewhere"
    assert cli.main(["--notebooks-dir", str(target), "create", "moved"]) == 0
    assert (target / "moved.book").exists()
    assert config.notebooks_dir == target


def test_serve_uses_permissions(sessions, monkeypatch):
    import foucault.server

    served = []

    def fake_serve(service, host=None, port=None, log_level="INFO"):
        served.append((service.info(), port))

    monkeypatch.setattr(foucault.server, "serve", fake_serve)
    monkeypatch.setattr(cli.metrics, "set_metrics_file", lambda path: None)
    cli.main(["create", "served"])
    assert cli.main(["serve", "served", "--read-only", "--port", "9100"]) == 0
    [(info, port)] = served
    assert info.permissions == Permissions.READ_ONLY
    assert port == 9100
