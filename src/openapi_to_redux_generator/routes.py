"""Route grouping, endpoint naming, and success response selection."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Optional

from .json_types import JSONObject
from .model_types import EndpointKey, Operation, ResponseSchema, Route, RouteEntry, RouteGroup
from .naming import (
    path_param_name,
    ref_name,
    sanitize_identifier,
    to_camel_case,
    to_pascal_case,
    verb_suffix,
)

logger = logging.getLogger(__name__)

FALLBACK_GROUP = "api"

PAGINATION_PARAMS = frozenset({"limit", "page", "page_size", "offset"})
MUTATION_VERBS = frozenset({"post", "put", "patch", "delete"})

_SUCCESS_ORDER = ("200", "201", "202", "default")
_MUTATION_PREFIXES = {
    "post": "insert",
    "put": "update",
    "patch": "update",
    "delete": "delete",
}


def grouping_depth_for(api_base_path: str) -> int:
    """Number of path segments in a base path such as ``api/v1``."""
    return len([segment for segment in api_base_path.split("/") if segment])


def group_key(path: str, grouping_depth: int) -> str:
    """The path segment at index ``1 + grouping_depth`` or the fallback.

    Segment 0 is the empty string in front of the leading slash. A
    ``{param}`` segment contributes its bare parameter name.
    """
    segments = path.split("/")
    index = 1 + grouping_depth
    if index >= len(segments) or not segments[index]:
        return FALLBACK_GROUP
    segment = segments[index]
    return path_param_name(segment) or segment


def group_routes(routes: Sequence[Route], grouping_depth: int) -> tuple[RouteGroup, ...]:
    """Group operations by resource segment, keyed by ``(path, verb)``.

    Args:
        routes (Sequence[Route]): Normalized routes in declaration order.
        grouping_depth (int): Number of leading base-path segments.

    Returns:
        tuple[RouteGroup, ...]: Groups in first-seen order; each entry keeps
            every verb of a path as a distinct entry.
    """
    grouped: dict[str, dict[EndpointKey, RouteEntry]] = {}
    for route in routes:
        bucket = grouped.setdefault(group_key(route.path, grouping_depth), {})
        for operation in route.operations:
            key = EndpointKey(path=route.path, verb=operation.verb)
            if key in bucket:
                logger.debug("Duplicate operation %s; keeping the first declaration", key)
                continue
            bucket[key] = RouteEntry(key=key, route=route, operation=operation)
    return tuple(
        RouteGroup(name=name, entries=tuple(entries.values())) for name, entries in grouped.items()
    )


def resource_segments(path: str, api_base_path: str) -> list[str]:
    """Non-empty path segments with the base path prefix removed."""
    segments = [segment for segment in path.split("/") if segment]
    base = [segment for segment in api_base_path.split("/") if segment]
    if base and [segment.lower() for segment in segments[: len(base)]] == [
        segment.lower() for segment in base
    ]:
        return segments[len(base) :]
    return segments


def strip_base_path(path: str, api_base_path: str) -> str:
    """Path template relative to the base path, keeping the leading slash."""
    return "/" + "/".join(resource_segments(path, api_base_path))


def is_list_endpoint(
    path: str,
    verb: str,
    *,
    query_params: Iterable[str] = (),
    operation_id: Optional[str] = None,
) -> bool:
    """Whether an operation lists a collection.

    Explicit markers (``/list`` in the path or ``list`` in the operation id)
    always count; pagination query parameters count for ``GET``.
    """
    if "/list" in path.lower():
        return True
    if operation_id is not None and "list" in operation_id.lower():
        return True
    return verb == "get" and any(name in PAGINATION_PARAMS for name in query_params)


def name_endpoint(
    path: str,
    verb: str,
    *,
    summary: Optional[str] = None,
    query_params: Iterable[str] = (),
    operation_id: Optional[str] = None,
    api_base_path: str = "",
) -> str:
    """Derive the camelCase identifier of one (path, verb) operation.

    The result depends only on the arguments. The capitalized verb is always
    appended, so two verbs on one path never share a name.

    Args:
        path (str): Path template with ``{param}`` placeholders.
        verb (str): Lowercase HTTP verb.
        summary (Optional[str]): Operation summary; wins when present.
        query_params (Iterable[str]): Query parameter names.
        operation_id (Optional[str]): Declared operation id.
        api_base_path (str): Base path prefix ignored when composing names.

    Returns:
        str: A TypeScript identifier such as ``listLeadsGet``.
    """
    base = to_camel_case(summary) if summary else ""
    if not base:
        base = _shape_name(
            path,
            verb,
            query_params=tuple(query_params),
            operation_id=operation_id,
            api_base_path=api_base_path,
        )
    return sanitize_identifier(base + verb_suffix(verb))


def _shape_name(
    path: str,
    verb: str,
    *,
    query_params: tuple[str, ...],
    operation_id: Optional[str],
    api_base_path: str,
) -> str:
    segments = resource_segments(path, api_base_path)
    literals = [segment for segment in segments if path_param_name(segment) is None]
    params = [name for name in (path_param_name(segment) for segment in segments) if name]
    resource = to_pascal_case(literals[0]) if literals else ""
    param_part = "".join(to_pascal_case(name) for name in params)

    if resource and is_list_endpoint(
        path, verb, query_params=query_params, operation_id=operation_id
    ):
        return f"list{resource}"

    if verb == "get" and params:
        return "get" + "".join(
            to_pascal_case(path_param_name(segment) or segment) for segment in segments
        )

    if verb in MUTATION_VERBS and literals:
        action_segment = literals[-1]
        if len(literals) > 1 and not action_segment[:1].isdigit():
            action = to_camel_case(action_segment)
            return action + param_part + to_pascal_case(action_segment)
        return _MUTATION_PREFIXES[verb] + resource + param_part

    if verb == "get" and literals:
        if len(literals) > 1:
            return "get" + "".join(to_pascal_case(segment) for segment in literals)
        return f"list{resource}"

    return to_camel_case("_".join(literals)) or "endpoint"


def name_group_endpoints(group: RouteGroup, *, api_base_path: str = "") -> dict[EndpointKey, str]:
    """Name every entry of a group, suffixing repeated names deterministically."""
    names: dict[EndpointKey, str] = {}
    used: dict[str, int] = {}
    for entry in group.entries:
        operation = entry.operation
        name = name_endpoint(
            entry.key.path,
            entry.key.verb,
            summary=operation.summary,
            query_params=query_parameter_names(entry.route, operation),
            operation_id=operation.operation_id,
            api_base_path=api_base_path,
        )
        count = used.get(name, 0) + 1
        used[name] = count
        if count > 1:
            logger.debug("Endpoint name %s repeats in group %s", name, group.name)
            name = f"{name}{count}"
        names[entry.key] = name
    return names


def query_parameter_names(route: Route, operation: Operation) -> tuple[str, ...]:
    """Names of query parameters declared on the path item or the operation."""
    names: list[str] = []
    for parameter in (*route.parameters, *operation.parameters):
        if parameter.location == "query" and parameter.name not in names:
            names.append(parameter.name)
    return tuple(names)


def success_response(operation: Operation) -> Optional[ResponseSchema]:
    """Pick the one success response whose schema describes the result.

    Status preference is 200, 201, 202, ``default``, then any other non-error
    status in declaration order.
    """
    by_status: Mapping[str, ResponseSchema] = {
        response.status: response for response in operation.responses
    }
    ordered = [by_status[status] for status in _SUCCESS_ORDER if status in by_status]
    ordered.extend(
        response
        for response in operation.responses
        if response.status not in _SUCCESS_ORDER and not response.status.startswith(("4", "5"))
    )
    for response in ordered:
        if response.schema is not None:
            return response
    return None


def response_model_name(schema: Optional[JSONObject]) -> Optional[str]:
    """Model a success schema is built around: its ``$ref`` or paginated item."""
    if schema is None:
        return None
    ref = schema.get("$ref")
    if isinstance(ref, str):
        return ref_name(ref)
    for container in (schema, _property(schema, "results")):
        items = container.get("items") if container is not None else None
        if isinstance(items, Mapping) and isinstance(items.get("$ref"), str):
            return ref_name(items["$ref"])
    return None


def is_array_response(schema: Optional[JSONObject]) -> bool:
    """Whether a success schema is an array of references."""
    if schema is None:
        return False
    items = schema.get("items")
    return isinstance(items, Mapping) and isinstance(items.get("$ref"), str)


def tag_constant(group_name: str) -> str:
    """Cache tag constant of a group, e.g. ``lead-notes`` -> ``LEAD_NOTES_LIST``."""
    return sanitize_identifier(group_name.upper().replace("-", "_")) + "_LIST"


def _property(schema: JSONObject, name: str) -> Optional[JSONObject]:
    properties = schema.get("properties")
    if not isinstance(properties, Mapping):
        return None
    value = properties.get(name)
    return value if isinstance(value, Mapping) else None
