"""Common test fixtures for Foucault."""

import sys
import textwrap
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from foucault.client import RemoteNotebook
from foucault.config import config
from foucault.models.schema import Permissions
from foucault.notebook import Notebook
from foucault.observability import metrics
from foucault.server import create_app
from foucault.services import NotebookService


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Point the global config at temporary directories (auto-restored)."""
    monkeypatch.setattr(config, "notebooks_dir", tmp_path / "notebooks")
    monkeypatch.setattr(config, "scratch_dir", tmp_path / "scratch")
    monkeypatch.setattr(config, "log_dir", tmp_path / "logs")
    monkeypatch.setattr(config, "editor", None)
    yield config


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def notebook(test_config):
    """A freshly created notebook."""
    nb = Notebook.create("test")
    yield nb
    nb.close()


@pytest.fixture
def service(notebook):
    """A read-write engine over the test notebook."""
    svc = NotebookService(notebook)
    yield svc
    svc.close()


@pytest.fixture
def read_only_service(test_config):
    """A read-only engine over a notebook holding one note and one tag."""
    writer = NotebookService(Notebook.create("shared"))
    writer.create_note("Existing", "Some [[Other]] text")
    writer.create_tag("kept")
    writer.close()
    svc = NotebookService(Notebook.open("shared"), permissions=Permissions.READ_ONLY)
    yield svc
    svc.close()


@pytest.fixture
def http_client(service):
    """In-process HTTP client for a server bound to ``service``."""
    with TestClient(create_app(service)) as client:
        yield client


@pytest.fixture
def remote(http_client):
    """A RemoteNotebook talking to the in-process server."""
    return RemoteNotebook(str(http_client.base_url), client=http_client)


@pytest.fixture(params=["local", "remote"])
def engine(request, service):
    """Each engine variant over the same kind of notebook."""
    if request.param == "local":
        yield service
        return
    with TestClient(create_app(service)) as client:
        yield RemoteNotebook(str(client.base_url), client=client)


@pytest.fixture
def make_editor(tmp_path):
    """Write a Python script acting as an editor and return its command line.

    The script receives the scratch file path as its only argument.
    """
    def _make(source: str, name: str = "editor.py"):
        script = tmp_path / name
        script.write_text(textwrap.dedent(source), encoding="utf-8")
        return [sys.executable, str(script)]
    return _make
