"""Compile declared type definitions into field schemas and zod expressions."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Optional

from .diagnostics import Diagnostic, dedupe, malformed, unresolvable, unsupported
from .expressions import field_expression, zod_expression
from .json_types import JSONObject, JSONValue
from .model_types import (
    ArrayField,
    CompilationResult,
    CompiledField,
    CompiledType,
    FieldSchema,
    NullableField,
    ObjectField,
    ObjectMember,
    PrimitiveField,
    ReferenceField,
    UnionField,
    UnknownField,
)
from .naming import ref_name
from .schema_utils import RefLookup, is_object_schema, is_string_enum, merge_all_of, schema_types

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64

_PRIMITIVE_KINDS = {"string", "integer", "number", "boolean", "null", "file"}


@dataclass
class _TypeContext:
    name: str
    diagnostics: list[Diagnostic] = field(default_factory=list)
    references: list[str] = field(default_factory=list)

    def report(self, diagnostic: Diagnostic) -> None:
        logger.debug("%s", diagnostic)
        self.diagnostics.append(diagnostic)

    def track(self, type_name: str) -> None:
        if type_name not in self.references:
            self.references.append(type_name)


@dataclass(frozen=True)
class _Draft:
    """A type whose field schemas are compiled but not yet rendered."""

    name: str
    kind: str
    members: tuple[ObjectMember, ...]
    enum_values: tuple[str, ...]
    alias: Optional[FieldSchema]
    description: Optional[str]
    nested_types: tuple[str, ...]
    field_references: tuple[tuple[str, ...], ...]


class TypeGraphCompiler:
    """Compile a mapping of raw type definitions into ``CompiledType`` records.

    Enum names are collected over every definition before any field is
    compiled, so a ``$ref`` to an enum declared later is still encoded as an
    enum reference.
    """

    def __init__(self, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self._max_depth = max_depth

    def compile(self, type_definitions: Mapping[str, JSONValue]) -> CompilationResult:
        """Compile every declared type definition.

        Args:
            type_definitions (Mapping[str, JSONValue]): Raw schemas by name.

        Returns:
            CompilationResult: Compiled types in declaration order, the enum
                registry, and the diagnostics raised along the way.
        """
        enum_names = frozenset(
            name for name, schema in type_definitions.items() if is_string_enum(schema)
        )
        diagnostics: list[Diagnostic] = []
        drafts: list[_Draft] = []
        for name, schema in type_definitions.items():
            context = _TypeContext(name=name)
            drafts.append(
                self._compile_definition(
                    name,
                    schema,
                    definitions=type_definitions,
                    enum_names=enum_names,
                    context=context,
                )
            )
            diagnostics.extend(context.diagnostics)

        graph = {draft.name: draft.nested_types for draft in drafts}
        types: dict[str, CompiledType] = {}
        for draft in drafts:
            types[draft.name] = _render(draft, lazy_names=_cyclic_references(draft.name, graph))

        logger.debug("Compiled %d types (%d enums)", len(types), len(enum_names))
        return CompilationResult(
            types=types,
            enum_names=enum_names,
            diagnostics=dedupe(diagnostics),
        )

    def compile_field(
        self,
        schema: JSONValue,
        *,
        subject: str,
        definitions: Mapping[str, JSONValue],
        enum_names: frozenset[str],
    ) -> tuple[FieldSchema, tuple[str, ...], tuple[Diagnostic, ...]]:
        """Compile one standalone schema, e.g. a parameter or request body.

        Returns:
            tuple: The field schema, the referenced type names, and the
                diagnostics raised while compiling it.
        """
        context = _TypeContext(name=subject)
        compiled = self._compile(
            schema,
            depth=0,
            definitions=definitions,
            enum_names=enum_names,
            context=context,
        )
        return compiled, tuple(context.references), tuple(context.diagnostics)

    def _compile_definition(
        self,
        name: str,
        schema: JSONValue,
        *,
        definitions: Mapping[str, JSONValue],
        enum_names: frozenset[str],
        context: _TypeContext,
    ) -> _Draft:
        if not isinstance(schema, Mapping) or not schema:
            context.report(malformed(name, "empty type definition; emitting an empty model"))
            return _Draft(name, "object", (), (), None, None, (), ())

        description = schema.get("description")
        description = description.strip() if isinstance(description, str) else None

        if name in enum_names:
            values = tuple(str(value) for value in schema["enum"] if value is not None)
            return _Draft(name, "enum", (), values, None, description, (), ())

        object_schema = _object_view(schema, definitions=definitions)
        if object_schema is not None:
            field_references: list[tuple[str, ...]] = []
            members = self._members(
                object_schema,
                depth=1,
                definitions=definitions,
                enum_names=enum_names,
                context=context,
                collect=field_references,
            )
            nested = tuple(ref for ref in context.references if ref in definitions)
            return _Draft(
                name,
                "object",
                tuple(members),
                (),
                None,
                description,
                nested,
                tuple(field_references),
            )

        alias = self._compile(
            schema,
            depth=0,
            definitions=definitions,
            enum_names=enum_names,
            context=context,
        )
        nested = tuple(ref for ref in context.references if ref in definitions)
        return _Draft(name, "primitive-wrapper", (), (), alias, description, nested, ())

    def _members(
        self,
        schema: JSONObject,
        *,
        depth: int,
        definitions: Mapping[str, JSONValue],
        enum_names: frozenset[str],
        context: _TypeContext,
        collect: Optional[list[tuple[str, ...]]] = None,
    ) -> list[ObjectMember]:
        properties = schema.get("properties")
        if not isinstance(properties, Mapping):
            return []
        required_raw = schema.get("required")
        required = set(required_raw) if isinstance(required_raw, list) else set()

        members: list[ObjectMember] = []
        for property_name, property_schema in properties.items():
            compiled = self._compile(
                property_schema,
                depth=depth,
                definitions=definitions,
                enum_names=enum_names,
                context=context,
            )
            members.append(
                ObjectMember(name=str(property_name), schema=compiled, required=property_name in required)
            )
            if collect is not None:
                collect.append(_references_of(compiled))
        return members

    def _compile(
        self,
        schema: JSONValue,
        *,
        depth: int,
        definitions: Mapping[str, JSONValue],
        enum_names: frozenset[str],
        context: _TypeContext,
    ) -> FieldSchema:
        if depth > self._max_depth:
            context.report(
                malformed(context.name, f"schema nesting exceeds {self._max_depth} levels")
            )
            return UnknownField(reason="too deep")
        if not isinstance(schema, Mapping):
            context.report(malformed(context.name, "schema is not an object"))
            return UnknownField(reason="malformed")
        if not schema:
            return UnknownField()

        compiled = self._compile_shape(
            schema,
            depth=depth,
            definitions=definitions,
            enum_names=enum_names,
            context=context,
        )
        if schema.get("nullable") is True or schema.get("x-nullable") is True:
            return _nullable(compiled)
        return compiled

    def _compile_shape(
        self,
        schema: JSONObject,
        *,
        depth: int,
        definitions: Mapping[str, JSONValue],
        enum_names: frozenset[str],
        context: _TypeContext,
    ) -> FieldSchema:
        ref = schema.get("$ref")
        if isinstance(ref, str):
            return self._reference(ref, definitions=definitions, enum_names=enum_names, context=context)

        for keyword in ("anyOf", "oneOf"):
            options = schema.get(keyword)
            if isinstance(options, list) and options:
                branches = [
                    self._compile(
                        option,
                        depth=depth + 1,
                        definitions=definitions,
                        enum_names=enum_names,
                        context=context,
                    )
                    for option in options
                ]
                return _union(branches)

        all_of = schema.get("allOf")
        if isinstance(all_of, list) and all_of:
            return self._all_of(
                schema,
                all_of,
                depth=depth,
                definitions=definitions,
                enum_names=enum_names,
                context=context,
            )

        kinds = schema_types(schema)
        if not kinds:
            kinds = _inferred_kinds(schema)
        non_null = [kind for kind in kinds if kind != "null"]
        if len(kinds) > 1:
            typed = {key: value for key, value in schema.items() if key != "type"}
            branches = [
                self._typed(
                    kind,
                    typed,
                    depth=depth,
                    definitions=definitions,
                    enum_names=enum_names,
                    context=context,
                )
                for kind in non_null
            ]
            compiled = _union(branches) if branches else PrimitiveField(kind="null")
            return _nullable(compiled) if "null" in kinds and branches else compiled
        if not kinds:
            return UnknownField()
        return self._typed(
            kinds[0],
            schema,
            depth=depth,
            definitions=definitions,
            enum_names=enum_names,
            context=context,
        )

    def _typed(
        self,
        kind: str,
        schema: JSONObject,
        *,
        depth: int,
        definitions: Mapping[str, JSONValue],
        enum_names: frozenset[str],
        context: _TypeContext,
    ) -> FieldSchema:
        if kind == "array":
            items = schema.get("items")
            if items is None:
                return ArrayField(element=UnknownField())
            return ArrayField(
                element=self._compile(
                    items,
                    depth=depth + 1,
                    definitions=definitions,
                    enum_names=enum_names,
                    context=context,
                )
            )
        if kind == "object":
            members = self._members(
                schema,
                depth=depth + 1,
                definitions=definitions,
                enum_names=enum_names,
                context=context,
            )
            additional = schema.get("additionalProperties")
            additional_schema: Optional[FieldSchema] = None
            if isinstance(additional, Mapping) and not members:
                additional_schema = self._compile(
                    additional,
                    depth=depth + 1,
                    definitions=definitions,
                    enum_names=enum_names,
                    context=context,
                )
            return ObjectField(members=tuple(members), additional=additional_schema)
        if kind == "string":
            return _string_field(schema)
        if kind in {"integer", "number"}:
            return PrimitiveField(
                kind=kind,
                minimum=_number(schema.get("minimum")),
                maximum=_number(schema.get("maximum")),
            )
        if kind in _PRIMITIVE_KINDS:
            return PrimitiveField(kind=kind)
        context.report(unsupported(context.name, f"unknown schema type {kind!r}"))
        return UnknownField(reason=f"type {kind}")

    def _reference(
        self,
        ref: str,
        *,
        definitions: Mapping[str, JSONValue],
        enum_names: frozenset[str],
        context: _TypeContext,
    ) -> FieldSchema:
        name = ref_name(ref)
        context.track(name)
        if name not in definitions:
            context.report(unresolvable(context.name, name))
            return ReferenceField(type_name=name, resolved=False)
        return ReferenceField(type_name=name, is_enum=name in enum_names)

    def _all_of(
        self,
        schema: JSONObject,
        all_of: list[JSONValue],
        *,
        depth: int,
        definitions: Mapping[str, JSONValue],
        enum_names: frozenset[str],
        context: _TypeContext,
    ) -> FieldSchema:
        if len(all_of) == 1:
            return self._compile(
                all_of[0],
                depth=depth + 1,
                definitions=definitions,
                enum_names=enum_names,
                context=context,
            )
        merged = merge_all_of(schema, resolve_ref=_ref_lookup(definitions))
        if merged is None:
            context.report(unsupported(context.name, "allOf members that are not all objects"))
            return UnknownField(reason="allOf")
        return self._typed(
            "object",
            merged,
            depth=depth,
            definitions=definitions,
            enum_names=enum_names,
            context=context,
        )


def _object_view(schema: JSONObject, *, definitions: Mapping[str, JSONValue]) -> Optional[JSONObject]:
    """The schema to read model fields from, or ``None`` for wrappers."""
    all_of = schema.get("allOf")
    if isinstance(all_of, list) and len(all_of) > 1:
        return merge_all_of(schema, resolve_ref=_ref_lookup(definitions))
    if isinstance(schema.get("properties"), Mapping):
        return schema
    if schema_types(schema) == ("object",) and not isinstance(
        schema.get("additionalProperties"), Mapping
    ):
        return schema
    return None


def compile_types(
    type_definitions: Mapping[str, JSONValue],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> CompilationResult:
    """Compile type definitions with a fresh ``TypeGraphCompiler``."""
    return TypeGraphCompiler(max_depth=max_depth).compile(type_definitions)


def _render(draft: _Draft, *, lazy_names: frozenset[str]) -> CompiledType:
    if draft.kind == "enum":
        return CompiledType(
            name=draft.name,
            kind="enum",
            enum_values=draft.enum_values,
            description=draft.description,
        )
    if draft.kind == "primitive-wrapper" and draft.alias is not None:
        return CompiledType(
            name=draft.name,
            kind="primitive-wrapper",
            alias=draft.alias,
            alias_expression=zod_expression(draft.alias, lazy_names=lazy_names),
            nested_types=draft.nested_types,
            lazy_references=tuple(sorted(lazy_names)),
            description=draft.description,
        )
    fields = tuple(
        CompiledField(
            name=member.name,
            schema=member.schema,
            required=member.required,
            expression=field_expression(member.schema, required=member.required, lazy_names=lazy_names),
            references=references,
        )
        for member, references in zip(draft.members, draft.field_references, strict=True)
    )
    return CompiledType(
        name=draft.name,
        kind="object",
        fields=fields,
        nested_types=draft.nested_types,
        lazy_references=tuple(sorted(lazy_names)),
        description=draft.description,
    )


def _cyclic_references(name: str, graph: Mapping[str, tuple[str, ...]]) -> frozenset[str]:
    """Referenced names from which ``name`` is reachable again."""
    cyclic: set[str] = set()
    for target in graph.get(name, ()):
        if target == name or name in _reachable(target, graph):
            cyclic.add(target)
    return frozenset(cyclic)


def _reachable(start: str, graph: Mapping[str, tuple[str, ...]]) -> set[str]:
    seen: set[str] = set()
    stack = [start]
    while stack:
        current = stack.pop()
        for target in graph.get(current, ()):
            if target not in seen:
                seen.add(target)
                stack.append(target)
    return seen


def _ref_lookup(definitions: Mapping[str, JSONValue]) -> RefLookup:
    def lookup(ref: str) -> Optional[JSONObject]:
        target = definitions.get(ref_name(ref))
        return target if isinstance(target, Mapping) else None

    return lookup


def _union(branches: list[FieldSchema]) -> FieldSchema:
    has_null = any(_is_null(branch) for branch in branches)
    rest = [branch for branch in branches if not _is_null(branch)]
    if not rest:
        return PrimitiveField(kind="null")
    inner = rest[0] if len(rest) == 1 else UnionField(branches=tuple(rest))
    return _nullable(inner) if has_null else inner


def _nullable(schema: FieldSchema) -> FieldSchema:
    if isinstance(schema, NullableField) or _is_null(schema):
        return schema
    return NullableField(inner=schema)


def _is_null(schema: FieldSchema) -> bool:
    return isinstance(schema, PrimitiveField) and schema.kind == "null"


def _inferred_kinds(schema: JSONObject) -> tuple[str, ...]:
    if is_object_schema(schema):
        return ("object",)
    if "items" in schema:
        return ("array",)
    if isinstance(schema.get("enum"), list) or "pattern" in schema or "format" in schema:
        return ("string",)
    return ()


def _string_field(schema: JSONObject) -> PrimitiveField:
    schema_format = schema.get("format")
    if schema_format == "binary":
        return PrimitiveField(kind="file")
    enum_values = schema.get("enum")
    pattern = schema.get("pattern")
    return PrimitiveField(
        kind="string",
        min_length=_integer(schema.get("minLength")),
        max_length=_integer(schema.get("maxLength")),
        pattern=pattern if isinstance(pattern, str) else None,
        format=schema_format if isinstance(schema_format, str) else None,
        enum_values=(
            tuple(str(value) for value in enum_values if value is not None)
            if isinstance(enum_values, list)
            else ()
        ),
    )


def _integer(value: JSONValue) -> Optional[int]:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _number(value: JSONValue) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


def _references_of(schema: FieldSchema) -> tuple[str, ...]:
    """Type names a field schema references, in first-seen order."""
    ordered: list[str] = []
    stack: list[FieldSchema] = [schema]
    while stack:
        current = stack.pop()
        if isinstance(current, ReferenceField):
            if current.type_name not in ordered:
                ordered.append(current.type_name)
        elif isinstance(current, ArrayField):
            stack.append(current.element)
        elif isinstance(current, NullableField):
            stack.append(current.inner)
        elif isinstance(current, UnionField):
            stack.extend(reversed(current.branches))
        elif isinstance(current, ObjectField):
            if current.additional is not None:
                stack.append(current.additional)
            stack.extend(reversed([member.schema for member in current.members]))
    return tuple(ordered)


@dataclass(frozen=True)
class SchemaScope:
    """Declared definitions plus the enum registry.

    Stages that compile standalone schemas (parameters, request bodies,
    responses) receive this explicitly so that enum references resolve the
    same way they do inside models.
    """

    definitions: Mapping[str, JSONValue]
    enum_names: frozenset[str]
    max_depth: int = DEFAULT_MAX_DEPTH

    def compile(
        self,
        schema: JSONValue,
        *,
        subject: str,
    ) -> tuple[FieldSchema, tuple[str, ...], tuple[Diagnostic, ...]]:
        """Compile one schema against the declared definitions."""
        return TypeGraphCompiler(max_depth=self.max_depth).compile_field(
            schema,
            subject=subject,
            definitions=self.definitions,
            enum_names=self.enum_names,
        )
