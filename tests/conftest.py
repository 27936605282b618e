"""Shared fixtures for reqman scenario tests."""

import json

import pytest
from click.testing import CliRunner

from reqman import core, placeholders
from reqman.models import Collection, Endpoint, Method, Response


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def global_reqman_dir(tmp_path, monkeypatch):
    """Override the global ~/.reqman directory and $REQMAN_JSON."""
    fake_global = tmp_path / "fake_home" / ".reqman"
    fake_global.mkdir(parents=True)
    monkeypatch.setattr(core, "GLOBAL_DIR", fake_global)
    monkeypatch.setattr(core, "GLOBAL_CONFIG", fake_global / "config.yaml")
    monkeypatch.setattr(core, "GLOBAL_STORE", fake_global / "collections.json")
    monkeypatch.delenv(core.STORE_ENV_VAR, raising=False)
    return fake_global


@pytest.fixture
def tmp_project(tmp_path, monkeypatch):
    """Run inside an empty project directory."""
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    return project


@pytest.fixture
def store_file(global_reqman_dir):
    """Path of the collections file the CLI uses by default."""
    return global_reqman_dir / "collections.json"


@pytest.fixture
def interactive(monkeypatch):
    """Pretend stdin is a terminal so prompts read CliRunner input."""
    real = placeholders.Environment

    def _factory(stdin=None, stdin_isatty=None):
        return real(stdin=stdin, stdin_isatty=True)

    monkeypatch.setattr(placeholders, "Environment", _factory)


# minimal PNG: signature plus an IHDR chunk
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n"
    b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x02\x00\x00\x00\x90wS\xde"
)

# not UTF-8 and no known file signature
UNKNOWN_BYTES = b"\x80\x81\x82\x83 no known signature"


def sample_collections():
    """A small store: one collection with a handful of endpoints."""
    api = Collection(
        name="api",
        url="http://api.example.com/",
        headers={"Content-Type": "application/json", "X-Env": "prod"},
    )
    api.endpoints["users"] = Endpoint(name="users", path="/users")
    api.endpoints["create"] = Endpoint(
        name="create",
        path="users",
        method=Method.POST,
        headers={"Content-Type": "text/plain", "X-Trace": "1"},
        body='{"name":"bob"}',
    )
    api.endpoints["ping"] = Endpoint(name="ping", path="ping", method=Method.POST, body="")
    api.endpoints["fill"] = Endpoint(
        name="fill",
        path="/items/:?",
        method=Method.PUT,
        headers={"Authorization": ":?"},
        body='{"a":":?","b":":?"}',
    )
    return {"api": api}


def write_store(path, collections=None):
    """Write collections (default: sample_collections()) to path."""
    collections = sample_collections() if collections is None else collections
    data = {name: col.to_dict() for name, col in collections.items()}
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))
    return path


def make_response(
    status_code=200,
    body=b"",
    headers=None,
    reason="OK",
    elapsed_ms=42.0,
    url="http://api.example.com/",
    encoding=None,
):
    """Factory for Response objects; dict/list bodies are JSON-encoded."""
    if isinstance(body, dict | list):
        body = json.dumps(body).encode()
    elif isinstance(body, str):
        body = body.encode()
    return Response(
        status_code=status_code,
        headers=headers or {},
        body=body,
        reason=reason,
        elapsed_ms=elapsed_ms,
        url=url,
        encoding=encoding,
    )
