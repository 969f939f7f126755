"""Unit tests for specification loading."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from openapi_to_redux_generator.loader import SpecLoadError, is_url, load_document, parse_document
from .fixture_helpers import CRM_FIXTURE, fixture_dir

_MINIMAL_OPENAPI = {
    "openapi": "3.0.3",
    "info": {"title": "Minimal", "version": "1.0.0"},
    "paths": {},
}


def _fake_get(status_code: int, text: str, calls: list[str]) -> Any:
    def fake_get(url: str, **_: Any) -> httpx.Response:
        calls.append(url)
        return httpx.Response(status_code, text=text, request=httpx.Request("GET", url))

    return fake_get


def test_is_url() -> None:
    """Only ``http(s)`` strings count as URLs."""
    assert is_url("http://localhost:8000/swagger.json")
    assert is_url("https://example.com/openapi.yaml")
    assert not is_url("specs/openapi.yaml")
    assert not is_url(Path("http://not-a-url"))


def test_local_yaml_file() -> None:
    """A local YAML fixture loads as a mapping."""
    document = load_document(fixture_dir() / CRM_FIXTURE)

    assert document["openapi"] == "3.1.0"


def test_remote_document_is_fetched_once(monkeypatch: pytest.MonkeyPatch) -> None:
    """URLs are fetched with httpx and parsed as JSON or YAML."""
    calls: list[str] = []
    monkeypatch.setattr("httpx.get", _fake_get(200, json.dumps(_MINIMAL_OPENAPI), calls))

    document = load_document("http://localhost:8000/swagger.json")

    assert document == _MINIMAL_OPENAPI
    assert calls == ["http://localhost:8000/swagger.json"]


def test_remote_http_error(monkeypatch: pytest.MonkeyPatch) -> None:
    """HTTP error statuses become ``SpecLoadError``."""
    monkeypatch.setattr("httpx.get", _fake_get(404, "missing", []))

    with pytest.raises(SpecLoadError, match="Failed to fetch specification"):
        load_document("http://localhost:8000/swagger.json")


def test_remote_connection_error(monkeypatch: pytest.MonkeyPatch) -> None:
    """Transport failures become ``SpecLoadError``."""

    def refuse(url: str, **_: Any) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=httpx.Request("GET", url))

    monkeypatch.setattr("httpx.get", refuse)

    with pytest.raises(SpecLoadError, match="connection refused"):
        load_document("http://localhost:8000/swagger.json")


def test_missing_file(tmp_path: Path) -> None:
    """Unreadable files become ``SpecLoadError``."""
    with pytest.raises(SpecLoadError, match="Failed to read specification file"):
        load_document(tmp_path / "missing.yaml")


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("paths: [unclosed", "Failed to parse document"),
        ("- just\n- a list\n", "must deserialize to a mapping"),
    ],
    ids=["yaml-error", "not-a-mapping"],
)
def test_parse_errors(text: str, message: str) -> None:
    """Parse failures and non-mapping documents are rejected."""
    with pytest.raises(SpecLoadError, match=message):
        parse_document(text, source="inline")


def test_openapi_validation(tmp_path: Path) -> None:
    """Invalid OpenAPI 3 documents fail unless validation is skipped."""
    path = tmp_path / "invalid.json"
    path.write_text(json.dumps({"openapi": "3.0.3", "paths": {}}), encoding="utf-8")

    with pytest.raises(SpecLoadError, match="OpenAPI schema validation failed"):
        load_document(path)
    assert load_document(path, skip_validation=True) == {"openapi": "3.0.3", "paths": {}}


def test_legacy_documents_are_not_validated(tmp_path: Path) -> None:
    """Swagger 2 documents load without OpenAPI 3 validation."""
    path = tmp_path / "legacy.json"
    path.write_text(json.dumps({"swagger": "2.0", "paths": {}}), encoding="utf-8")

    assert load_document(path)["swagger"] == "2.0"
