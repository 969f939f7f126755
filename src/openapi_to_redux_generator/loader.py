"""Specification document loading and basic validation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import httpx
import yaml
from openapi_python_client.schema import OpenAPI
from pydantic import ValidationError

from .json_types import JSONObject, JSONValue
from .normalize import OPENAPI, detect_dialect

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

type Source = Union[str, Path]


class SpecLoadError(RuntimeError):
    """Raised when a specification document cannot be loaded."""


def is_url(source: Source) -> bool:
    """Whether a source names an ``http(s)`` URL rather than a file."""
    return isinstance(source, str) and source.startswith(("http://", "https://"))


def load_document(
    source: Source,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    skip_validation: bool = False,
) -> JSONObject:
    """Load a JSON or YAML specification from a URL or a local file.

    Args:
        source (Source): ``http(s)://`` URL or filesystem path.
        timeout (float): Seconds to wait for a remote document.
        skip_validation (bool): Skip OpenAPI 3 structural validation.

    Returns:
        JSONObject: The parsed document.
    """
    text = _fetch(str(source), timeout=timeout) if is_url(source) else _read(Path(source))
    document = parse_document(text, source=str(source))
    if not skip_validation:
        validate_document(document, source=str(source))
    return document


def parse_document(text: str, *, source: str) -> JSONObject:
    """Parse JSON or YAML text into a mapping."""
    try:
        payload = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SpecLoadError(f"Failed to parse document from {source}: {exc}") from exc

    payload_value: JSONValue = payload
    if not isinstance(payload_value, dict):
        raise SpecLoadError(
            f"Specification must deserialize to a mapping, got {type(payload_value)!r}"
        )
    return payload_value


def validate_document(document: JSONObject, *, source: str) -> None:
    """Validate OpenAPI 3 documents; legacy documents are accepted as-is."""
    if detect_dialect(document) != OPENAPI:
        logger.debug("Skipping OpenAPI validation for legacy document %s", source)
        return
    try:
        OpenAPI.model_validate(document)
    except ValidationError as exc:
        raise SpecLoadError(f"OpenAPI schema validation failed for {source}: {exc}") from exc


def _fetch(url: str, *, timeout: float) -> str:
    logger.debug("Fetching specification from %s", url)
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise SpecLoadError(f"Failed to fetch specification from {url}: {exc}") from exc
    return response.text


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecLoadError(f"Failed to read specification file {path}: {exc}") from exc
