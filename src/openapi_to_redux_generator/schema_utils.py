"""Shared helpers for JSON-Schema shape operations."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from typing import Optional

from .json_types import JSONObject, JSONValue, MutableJSONObject
from .naming import ref_name

type RefLookup = Callable[[str], Optional[JSONObject]]


def schema_types(schema: JSONObject) -> tuple[str, ...]:
    """Return the declared ``type`` as a tuple, accepting 3.1 type lists."""
    schema_type = schema.get("type")
    if isinstance(schema_type, str):
        return (schema_type,)
    if isinstance(schema_type, list):
        return tuple(item for item in schema_type if isinstance(item, str))
    return ()


def is_object_schema(schema: JSONObject) -> bool:
    """Return whether a schema behaves as an object schema.

    Args:
        schema (JSONObject): Schema node to inspect.

    Returns:
        bool: Whether object modeling rules should apply.
    """
    if "object" in schema_types(schema):
        return True
    if isinstance(schema.get("properties"), Mapping):
        return True
    return isinstance(schema.get("additionalProperties"), (Mapping, bool)) and not schema_types(schema)


def is_string_enum(schema: JSONValue) -> bool:
    """A string-typed schema carrying a non-empty literal list."""
    if not isinstance(schema, Mapping):
        return False
    values = schema.get("enum")
    return schema_types(schema) == ("string",) and isinstance(values, list) and bool(values)


def merge_all_of(schema: JSONObject, *, resolve_ref: RefLookup) -> Optional[MutableJSONObject]:
    """Merge an object-only ``allOf`` chain into one object schema.

    ``$ref`` members are looked up through ``resolve_ref`` so that a model
    extending another declared model inherits its properties.

    Args:
        schema (JSONObject): Schema holding an ``allOf`` list.
        resolve_ref (RefLookup): Maps a ``$ref`` string to its target schema.

    Returns:
        Optional[MutableJSONObject]: The merged object schema, or ``None``
            when some member is not an object schema.
    """
    return _merge(schema, resolve_ref=resolve_ref, seen=frozenset())


def _merge(
    schema: JSONObject,
    *,
    resolve_ref: RefLookup,
    seen: frozenset[str],
) -> Optional[MutableJSONObject]:
    all_of = schema.get("allOf")
    if not isinstance(all_of, list) or not all_of:
        return None

    merged: MutableJSONObject = {key: value for key, value in schema.items() if key != "allOf"}
    properties: MutableJSONObject = {}
    required: list[str] = []
    own_properties = schema.get("properties")
    for item in all_of:
        child = _expand_member(item, resolve_ref=resolve_ref, seen=seen)
        if child is None:
            return None
        _collect_object_data(child, properties=properties, required=required)
    if isinstance(own_properties, Mapping):
        _collect_object_data(schema, properties=properties, required=required)

    merged["type"] = "object"
    merged["properties"] = properties
    if required:
        merged["required"] = required
    else:
        merged.pop("required", None)
    return merged


def _expand_member(
    item: JSONValue,
    *,
    resolve_ref: RefLookup,
    seen: frozenset[str],
) -> Optional[JSONObject]:
    if not isinstance(item, Mapping):
        return None
    ref = item.get("$ref")
    if isinstance(ref, str):
        if ref in seen:
            return None
        target = resolve_ref(ref)
        if target is None:
            return None
        return _expand_member(target, resolve_ref=resolve_ref, seen=seen | {ref})
    if isinstance(item.get("allOf"), list):
        return _merge(item, resolve_ref=resolve_ref, seen=seen)
    if not is_object_schema(item):
        return None
    return item


def _collect_object_data(
    child: JSONObject,
    *,
    properties: MutableJSONObject,
    required: list[str],
) -> None:
    child_properties = child.get("properties")
    if isinstance(child_properties, Mapping):
        properties.update(child_properties)

    child_required = child.get("required")
    if isinstance(child_required, list):
        for name in child_required:
            if isinstance(name, str) and name not in required:
                required.append(name)


def iter_refs(node: JSONValue) -> Iterator[str]:
    """Yield every ``$ref`` string inside a schema, depth first.

    Traversal is iterative so arbitrarily deep inline schemas are safe.
    """
    stack: list[JSONValue] = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, Mapping):
            ref = current.get("$ref")
            if isinstance(ref, str):
                yield ref
            stack.extend(reversed(list(current.values())))
        elif isinstance(current, list):
            stack.extend(reversed(current))


def exceeds_depth(node: JSONValue, limit: int) -> bool:
    """Whether mappings and lists nest more than ``limit`` levels deep."""
    stack: list[tuple[JSONValue, int]] = [(node, 0)]
    while stack:
        current, depth = stack.pop()
        if isinstance(current, Mapping):
            children = list(current.values())
        elif isinstance(current, list):
            children = current
        else:
            continue
        if depth >= limit:
            return True
        stack.extend((child, depth + 1) for child in children)
    return False


def referenced_names(node: JSONValue) -> tuple[str, ...]:
    """Distinct type names referenced anywhere inside a schema."""
    ordered: list[str] = []
    for ref in iter_refs(node):
        name = ref_name(ref)
        if name not in ordered:
            ordered.append(name)
    return tuple(ordered)


def direct_ref_names(schema: JSONValue) -> tuple[str, ...]:
    """Names a schema points at without descending into properties.

    Covers a bare ``$ref``, ``items.$ref`` and the options of ``allOf``,
    ``anyOf`` and ``oneOf``.
    """
    if not isinstance(schema, Mapping):
        return ()
    names: list[str] = []
    candidates: list[JSONValue] = [schema, schema.get("items")]
    for keyword in ("allOf", "anyOf", "oneOf"):
        options = schema.get(keyword)
        if isinstance(options, list):
            candidates.extend(options)
    for candidate in candidates:
        if isinstance(candidate, Mapping) and isinstance(candidate.get("$ref"), str):
            name = ref_name(candidate["$ref"])
            if name not in names:
                names.append(name)
    return tuple(names)
