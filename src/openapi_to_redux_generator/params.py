"""Synthesize the parameters object each generated endpoint accepts."""

from __future__ import annotations

import logging
from typing import Optional

from .diagnostics import Diagnostic, malformed
from .expressions import typescript_type
from .json_types import JSONObject
from .model_types import Operation, ParamField, ParamInterface, Parameter, RequestBody, Route
from .naming import path_param_name, to_pascal_case, verb_suffix
from .routes import resource_segments
from .schema_compiler import SchemaScope

logger = logging.getLogger(__name__)

BODY_FIELD = "body"

_SKIPPED_LOCATIONS = frozenset({"header", "cookie"})
_BODY_MEDIA_TYPES = (
    "application/json",
    "application/x-www-form-urlencoded",
    "multipart/form-data",
)


def param_interface_name(path: str, verb: str, *, api_base_path: str = "") -> str:
    """Interface name from the path segments plus the verb.

    ``/leads/{lead_id}`` with ``patch`` becomes ``ILeadsLeadIdPatchParams``.
    """
    segments = [
        path_param_name(segment) or segment for segment in resource_segments(path, api_base_path)
    ]
    return f"I{to_pascal_case('_'.join(segments))}{verb_suffix(verb)}Params"


def merged_parameters(route: Route, operation: Operation) -> tuple[Parameter, ...]:
    """Path-item parameters overridden by operation parameters of the same name and location."""
    merged: dict[tuple[str, str], Parameter] = {}
    for parameter in (*route.parameters, *operation.parameters):
        merged[(parameter.name, parameter.location)] = parameter
    return tuple(merged.values())


def synthesize_params(
    route: Route,
    operation: Operation,
    *,
    scope: SchemaScope,
    api_base_path: str = "",
) -> tuple[Optional[ParamInterface], tuple[Diagnostic, ...]]:
    """Derive the parameters interface of one operation.

    Legacy ``in: body`` parameters and a modern ``requestBody`` both map to a
    single ``body`` field; header and cookie parameters are not part of the
    interface.

    Args:
        route (Route): Route owning the operation.
        operation (Operation): The operation to describe.
        scope (SchemaScope): Declared definitions and enum registry.
        api_base_path (str): Base path removed from the interface name.

    Returns:
        tuple: The interface, or ``None`` when it would be empty, plus any
            diagnostics raised while typing its fields.
    """
    subject = f"{operation.verb.upper()} {route.path}"
    diagnostics: list[Diagnostic] = []
    fields: list[ParamField] = []
    body: Optional[ParamField] = None

    for parameter in merged_parameters(route, operation):
        if parameter.location in _SKIPPED_LOCATIONS:
            continue
        if parameter.location == "body":
            if body is not None:
                diagnostics.append(malformed(subject, f"extra body parameter {parameter.name!r} ignored"))
                continue
            body = _typed_field(
                BODY_FIELD,
                parameter.schema,
                required=parameter.required,
                location="body",
                subject=subject,
                scope=scope,
                diagnostics=diagnostics,
            )
            fields.append(body)
            continue
        fields.append(
            _typed_field(
                parameter.name,
                parameter.schema,
                required=parameter.required,
                location=parameter.location,
                subject=subject,
                scope=scope,
                diagnostics=diagnostics,
            )
        )

    if operation.request_body is not None:
        if body is not None:
            diagnostics.append(
                malformed(subject, "both a body parameter and a requestBody; keeping the parameter")
            )
        else:
            fields.append(
                _typed_field(
                    BODY_FIELD,
                    request_body_schema(operation.request_body),
                    required=operation.request_body.required,
                    location="body",
                    subject=subject,
                    scope=scope,
                    diagnostics=diagnostics,
                )
            )

    if not fields:
        return None, tuple(diagnostics)
    name = param_interface_name(route.path, operation.verb, api_base_path=api_base_path)
    return ParamInterface(name=name, fields=tuple(fields)), tuple(diagnostics)


def request_body_schema(request_body: RequestBody) -> JSONObject:
    """Schema of the preferred request body content type."""
    content = dict(request_body.content)
    for media_type in _BODY_MEDIA_TYPES:
        if media_type in content:
            return content[media_type]
    if request_body.content:
        return request_body.content[0][1]
    return {}


def request_content_type(operation: Operation) -> str:
    """Content type a mutation should send."""
    if operation.request_body is not None:
        content_types = operation.request_body.content_types
        if "application/x-www-form-urlencoded" in content_types:
            return "application/x-www-form-urlencoded"
        if "application/json" in content_types:
            return "application/json"
        if content_types:
            return content_types[0]
    if any(parameter.location == "form" for parameter in operation.parameters):
        return "application/x-www-form-urlencoded"
    return "application/json"


def _typed_field(
    name: str,
    schema: JSONObject,
    *,
    required: bool,
    location: str,
    subject: str,
    scope: SchemaScope,
    diagnostics: list[Diagnostic],
) -> ParamField:
    compiled, references, field_diagnostics = scope.compile(schema, subject=subject)
    diagnostics.extend(field_diagnostics)
    return ParamField(
        name=name,
        type_expression=typescript_type(compiled),
        required=required,
        location=location,
        references=tuple(reference for reference in references if reference in scope.definitions),
    )
