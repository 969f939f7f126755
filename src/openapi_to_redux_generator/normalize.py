"""Canonical view of legacy (Swagger 2) and modern (OpenAPI 3) documents."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional

from jsonschema.exceptions import SchemaError
from jsonschema.validators import Draft4Validator, Draft202012Validator, validator_for

from .diagnostics import Diagnostic, dedupe, malformed
from .json_types import JSONObject, JSONValue
from .model_types import NormalizedSpec, Operation, Parameter, RequestBody, ResponseSchema, Route
from .schema_compiler import DEFAULT_MAX_DEPTH
from .schema_utils import exceeds_depth

logger = logging.getLogger(__name__)

SWAGGER = "swagger"
OPENAPI = "openapi"

OPERATION_VERBS: tuple[str, ...] = (
    "get",
    "put",
    "post",
    "delete",
    "options",
    "head",
    "patch",
    "trace",
)

_LOCATIONS = {
    "path": "path",
    "query": "query",
    "body": "body",
    "formData": "form",
    "header": "header",
    "cookie": "cookie",
}

# Inline type keywords that legacy non-body parameters declare beside ``in``.
_LEGACY_SCHEMA_KEYS = (
    "type",
    "format",
    "items",
    "enum",
    "default",
    "minimum",
    "maximum",
    "minLength",
    "maxLength",
    "pattern",
    "x-nullable",
)

_PREFERRED_MEDIA_TYPES = (
    "application/json",
    "application/*+json",
    "application/problem+json",
)

_MAX_REF_HOPS = 16


def detect_dialect(document: JSONObject) -> str:
    """Return ``swagger`` for legacy documents and ``openapi`` otherwise.

    Args:
        document (JSONObject): Parsed specification document.

    Returns:
        str: The detected dialect name.
    """
    version = document.get("swagger")
    if isinstance(version, str) and version.strip().startswith("2"):
        return SWAGGER
    if "definitions" in document and "components" not in document:
        return SWAGGER
    return OPENAPI


def normalize_document(document: JSONObject, *, max_depth: int = DEFAULT_MAX_DEPTH) -> NormalizedSpec:
    """Produce the canonical type definitions and routes of a document.

    Missing sections yield empty collections; malformed entries are skipped
    and reported as diagnostics instead of raising.

    Args:
        document (JSONObject): Parsed specification in either dialect.
        max_depth (int): Nesting past which definitions skip meta-schema checks.

    Returns:
        NormalizedSpec: Type definitions keyed by declared name plus routes in
            declaration order.
    """
    dialect = detect_dialect(document)
    diagnostics: list[Diagnostic] = []
    type_definitions = _collect_type_definitions(
        document,
        dialect=dialect,
        max_depth=max_depth,
        diagnostics=diagnostics,
    )
    routes = _collect_routes(document, dialect=dialect, diagnostics=diagnostics)
    logger.debug(
        "Normalized %s document: %d type definitions, %d routes",
        dialect,
        len(type_definitions),
        len(routes),
    )
    return NormalizedSpec(
        dialect=dialect,
        type_definitions=type_definitions,
        routes=tuple(routes),
        diagnostics=dedupe(diagnostics),
    )


def _collect_type_definitions(
    document: JSONObject,
    *,
    dialect: str,
    max_depth: int,
    diagnostics: list[Diagnostic],
) -> dict[str, JSONObject]:
    if dialect == SWAGGER:
        raw = document.get("definitions")
    else:
        components = document.get("components")
        raw = components.get("schemas") if isinstance(components, Mapping) else None

    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        diagnostics.append(malformed("definitions", "type definitions section is not a mapping"))
        return {}

    default_validator = _default_validator(document, dialect=dialect)
    definitions: dict[str, JSONObject] = {}
    for name, schema in raw.items():
        type_name = str(name)
        if not isinstance(schema, Mapping):
            logger.debug("Type definition %s is not an object; treating it as any", type_name)
            diagnostics.append(malformed(type_name, "type definition is not an object"))
            definitions[type_name] = {}
            continue
        if exceeds_depth(schema, max_depth):
            logger.debug("Type definition %s nests past %d levels; skipping schema check", type_name, max_depth)
        else:
            _check_definition(type_name, schema, default_validator, diagnostics)
        definitions[type_name] = schema
    return definitions


def _default_validator(document: JSONObject, *, dialect: str) -> Any:
    if dialect == SWAGGER:
        return Draft4Validator
    version = document.get("openapi")
    if isinstance(version, str) and version.startswith("3.1"):
        return Draft202012Validator
    return Draft4Validator


def _check_definition(
    name: str,
    schema: JSONObject,
    default_validator: Any,
    diagnostics: list[Diagnostic],
) -> None:
    try:
        validator_for(schema, default=default_validator).check_schema(schema)
    except SchemaError as exc:
        logger.debug("Type definition %s is not a valid schema: %s", name, exc.message)
        diagnostics.append(malformed(name, f"invalid schema: {exc.message}"))
    except RecursionError:
        logger.debug("Type definition %s is too deep to check", name)
        diagnostics.append(malformed(name, "schema is nested too deeply to check"))


def _collect_routes(
    document: JSONObject,
    *,
    dialect: str,
    diagnostics: list[Diagnostic],
) -> list[Route]:
    paths = document.get("paths")
    if paths is None:
        return []
    if not isinstance(paths, Mapping):
        diagnostics.append(malformed("paths", "paths section is not a mapping"))
        return []

    routes: list[Route] = []
    for raw_path, path_item in paths.items():
        path = str(raw_path)
        if not isinstance(path_item, Mapping):
            diagnostics.append(malformed(path, "path item is not an object"))
            continue

        shared = _collect_parameters(
            document,
            path_item.get("parameters"),
            subject=path,
            dialect=dialect,
            diagnostics=diagnostics,
        )
        operations: list[Operation] = []
        for verb, operation_node in path_item.items():
            if verb not in OPERATION_VERBS:
                continue
            subject = f"{verb.upper()} {path}"
            if not isinstance(operation_node, Mapping):
                diagnostics.append(malformed(subject, "operation is not an object"))
                continue
            operations.append(
                _build_operation(
                    document,
                    verb,
                    operation_node,
                    subject=subject,
                    dialect=dialect,
                    diagnostics=diagnostics,
                )
            )
        routes.append(Route(path=path, operations=tuple(operations), parameters=tuple(shared)))
    return routes


def _build_operation(
    document: JSONObject,
    verb: str,
    node: JSONObject,
    *,
    subject: str,
    dialect: str,
    diagnostics: list[Diagnostic],
) -> Operation:
    tags = node.get("tags")
    return Operation(
        verb=verb,
        operation_id=_optional_text(node.get("operationId")),
        summary=_optional_text(node.get("summary")),
        description=_optional_text(node.get("description")),
        tags=tuple(tag for tag in tags if isinstance(tag, str)) if isinstance(tags, list) else (),
        parameters=tuple(
            _collect_parameters(
                document,
                node.get("parameters"),
                subject=subject,
                dialect=dialect,
                diagnostics=diagnostics,
            )
        ),
        request_body=_build_request_body(document, node.get("requestBody"), subject, diagnostics),
        responses=tuple(
            _collect_responses(document, node.get("responses"), subject=subject, diagnostics=diagnostics)
        ),
    )


def _collect_parameters(
    document: JSONObject,
    raw: JSONValue,
    *,
    subject: str,
    dialect: str,
    diagnostics: list[Diagnostic],
) -> list[Parameter]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        diagnostics.append(malformed(subject, "parameters is not a list"))
        return []

    parameters: list[Parameter] = []
    for item in raw:
        node = _resolve_local(document, item, subject=subject, diagnostics=diagnostics)
        if node is None:
            continue
        name = node.get("name")
        location = _LOCATIONS.get(str(node.get("in")))
        if not isinstance(name, str) or not name or location is None:
            diagnostics.append(malformed(subject, "parameter without a usable name or location"))
            continue
        parameters.append(
            Parameter(
                name=name,
                location=location,
                required=location == "path" or node.get("required") is True,
                schema=_parameter_schema(node, dialect=dialect),
            )
        )
    return parameters


def _parameter_schema(node: JSONObject, *, dialect: str) -> JSONObject:
    schema = node.get("schema")
    if isinstance(schema, Mapping):
        return schema
    content = node.get("content")
    if isinstance(content, Mapping):
        media_schema = _media_schema(content)
        if media_schema is not None:
            return media_schema
    if dialect == SWAGGER:
        return {key: node[key] for key in _LEGACY_SCHEMA_KEYS if key in node}
    return {}


def _build_request_body(
    document: JSONObject,
    raw: JSONValue,
    subject: str,
    diagnostics: list[Diagnostic],
) -> Optional[RequestBody]:
    if raw is None:
        return None
    node = _resolve_local(document, raw, subject=subject, diagnostics=diagnostics)
    if node is None:
        return None
    content = node.get("content")
    if not isinstance(content, Mapping):
        diagnostics.append(malformed(subject, "request body without content"))
        return None

    entries: list[tuple[str, JSONObject]] = []
    for content_type, media in content.items():
        schema = media.get("schema") if isinstance(media, Mapping) else None
        entries.append((str(content_type), schema if isinstance(schema, Mapping) else {}))
    return RequestBody(required=node.get("required") is True, content=tuple(entries))


def _collect_responses(
    document: JSONObject,
    raw: JSONValue,
    *,
    subject: str,
    diagnostics: list[Diagnostic],
) -> list[ResponseSchema]:
    if raw is None:
        return []
    if not isinstance(raw, Mapping):
        diagnostics.append(malformed(subject, "responses is not a mapping"))
        return []

    responses: list[ResponseSchema] = []
    for status, response in raw.items():
        node = _resolve_local(document, response, subject=subject, diagnostics=diagnostics)
        if node is None:
            continue
        schema: Optional[JSONObject] = None
        legacy_schema = node.get("schema")
        content = node.get("content")
        if isinstance(legacy_schema, Mapping):
            schema = legacy_schema
        elif isinstance(content, Mapping):
            schema = _media_schema(content)
        responses.append(ResponseSchema(status=str(status), schema=schema))
    return responses


def _media_schema(content: JSONObject) -> Optional[JSONObject]:
    ordered = [content[media_type] for media_type in _PREFERRED_MEDIA_TYPES if media_type in content]
    ordered.extend(media for media in content.values() if media not in ordered)
    for media in ordered:
        if isinstance(media, Mapping) and isinstance(media.get("schema"), Mapping):
            return media["schema"]
    return None


def _resolve_local(
    document: JSONObject,
    node: JSONValue,
    *,
    subject: str,
    diagnostics: list[Diagnostic],
) -> Optional[JSONObject]:
    """Follow local ``$ref`` chains of parameter, body, and response objects."""
    current = node
    for _ in range(_MAX_REF_HOPS):
        if not isinstance(current, Mapping):
            diagnostics.append(malformed(subject, "expected an object"))
            return None
        ref = current.get("$ref")
        if not isinstance(ref, str):
            return current
        target = _lookup_pointer(document, ref)
        if target is None:
            diagnostics.append(malformed(subject, f"cannot resolve reference {ref!r}"))
            return None
        current = target
    diagnostics.append(malformed(subject, "reference chain is too long"))
    return None


def _lookup_pointer(document: JSONObject, ref: str) -> Optional[JSONValue]:
    if not ref.startswith("#/"):
        return None
    current: JSONValue = document
    for token in ref[2:].split("/"):
        token = token.replace("~1", "/").replace("~0", "~")
        if not isinstance(current, Mapping) or token not in current:
            return None
        current = current[token]
    return current


def _optional_text(value: JSONValue) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
