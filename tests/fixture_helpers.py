"""Shared helpers for fixture-driven tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import ParamSpec, TypeVar, cast

import pytest
import yaml

from openapi_to_redux_generator.json_types import JSONObject

_FIXTURE_DIR = Path(__file__).resolve().parent / "fixtures" / "openapi_specs"
_P = ParamSpec("_P")
_R = TypeVar("_R")

CRM_FIXTURE = "crm_api.yaml"
PETSTORE_FIXTURE = "petstore_swagger.json"
CRM_BASE_PATH = "api/v1"


def fixture_dir() -> Path:
    """Return the specification fixtures directory."""
    return _FIXTURE_DIR


def iter_fixture_paths() -> list[Path]:
    """Return all YAML and JSON fixture paths sorted by name."""
    paths = (
        sorted(_FIXTURE_DIR.glob("*.yaml"))
        + sorted(_FIXTURE_DIR.glob("*.yml"))
        + sorted(_FIXTURE_DIR.glob("*.json"))
    )
    return [path for path in paths if path.is_file()]


def load_fixture(name: str) -> JSONObject:
    """Parse one fixture document by file name."""
    path = _FIXTURE_DIR / name
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if not isinstance(data, dict):
        pytest.fail(f"Fixture {path} must parse to a mapping, got {type(data)!r}")
    return cast(JSONObject, data)


def base_path_for(path: Path) -> str:
    """API base path the fixture's routes are mounted under."""
    return CRM_BASE_PATH if path.name == CRM_FIXTURE else ""


def parametrize_fixtures() -> Callable[[Callable[_P, _R]], Callable[_P, _R]]:
    """Parametrize a test over all fixture paths."""

    def _decorator(func: Callable[_P, _R]) -> Callable[_P, _R]:
        decorator: Callable[[Callable[_P, _R]], Callable[_P, _R]]
        decorator = pytest.mark.parametrize(
            "fixture_path",
            iter_fixture_paths(),
            ids=lambda path: path.name,
        )
        return decorator(func)

    return _decorator
