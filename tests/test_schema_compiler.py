"""Unit tests for type compilation and zod expression rendering."""

from __future__ import annotations

from typing import Optional

from openapi_to_redux_generator.diagnostics import DiagnosticKind
from openapi_to_redux_generator.expressions import typescript_type, zod_expression
from openapi_to_redux_generator.json_types import JSONValue
from openapi_to_redux_generator.model_types import (
    ArrayField,
    FieldSchema,
    NullableField,
    ObjectField,
    PrimitiveField,
    ReferenceField,
    UnionField,
    UnknownField,
)
from openapi_to_redux_generator.normalize import normalize_document
from openapi_to_redux_generator.schema_compiler import SchemaScope, TypeGraphCompiler, compile_types
from .fixture_helpers import CRM_FIXTURE, load_fixture


def _field_schema(schema: JSONValue, definitions: Optional[dict[str, JSONValue]] = None) -> FieldSchema:
    scope = SchemaScope(definitions=definitions or {}, enum_names=frozenset())
    compiled, _, _ = scope.compile(schema, subject="test")
    return compiled


def test_simple_model_fields() -> None:
    """Required and optional members keep their primitive kinds and constraints."""
    result = compile_types(
        {
            "Widget": {
                "type": "object",
                "properties": {
                    "id": {"type": "integer"},
                    "label": {"type": "string", "maxLength": 40},
                },
                "required": ["id"],
            }
        }
    )

    widget = result.types["Widget"]
    assert widget.kind == "object"
    fields = {field.name: field for field in widget.fields}

    assert fields["id"].required is True
    assert fields["id"].schema == PrimitiveField(kind="integer")
    assert fields["id"].expression == "z.number().int()"

    assert fields["label"].required is False
    assert fields["label"].schema == PrimitiveField(kind="string", max_length=40)
    assert fields["label"].expression == "z.string().max(40).optional()"
    assert result.diagnostics == ()


def test_nullable_reference_collapses() -> None:
    """``anyOf`` of a reference and null becomes a nullable reference."""
    compiled = _field_schema(
        {"anyOf": [{"$ref": "#/components/schemas/Branch"}, {"type": "null"}]},
        {"Branch": {"type": "object", "properties": {"id": {"type": "integer"}}}},
    )

    assert compiled == NullableField(inner=ReferenceField(type_name="Branch"))
    assert zod_expression(compiled) == "BranchSchema.nullable()"
    assert typescript_type(compiled) == "IBranchSerializer | null"


def test_two_branch_null_unions_never_stay_unions() -> None:
    """Every ``{X, null}`` pair compiles to a nullable wrapper of X."""
    branches: list[JSONValue] = [
        {"type": "string"},
        {"type": "integer"},
        {"type": "array", "items": {"type": "boolean"}},
        {"type": "object", "properties": {"a": {"type": "string"}}},
        {},
    ]
    for branch in branches:
        for keyword in ("anyOf", "oneOf"):
            for options in ([branch, {"type": "null"}], [{"type": "null"}, branch]):
                compiled = _field_schema({keyword: options})
                assert isinstance(compiled, NullableField), (keyword, options)
                assert not isinstance(compiled.inner, UnionField)

    assert zod_expression(_field_schema({"anyOf": [{}, {"type": "null"}]})) == "z.any().nullable()"
    assert _field_schema({"type": ["string", "null"]}) == NullableField(inner=PrimitiveField(kind="string"))
    assert _field_schema({"type": "string", "nullable": True}) == NullableField(
        inner=PrimitiveField(kind="string")
    )
    assert _field_schema({"type": "string", "x-nullable": True}) == NullableField(
        inner=PrimitiveField(kind="string")
    )


def test_multi_branch_union() -> None:
    """Unions with several non-null branches keep a union and stay nullable."""
    compiled = _field_schema({"anyOf": [{"type": "string"}, {"type": "integer"}, {"type": "null"}]})

    assert compiled == NullableField(
        inner=UnionField(branches=(PrimitiveField(kind="string"), PrimitiveField(kind="integer")))
    )
    assert zod_expression(compiled) == "z.union([z.string(), z.number().int()]).nullable()"


def test_enum_references_are_known_before_compilation() -> None:
    """An enum declared after its first use still compiles as an enum reference."""
    result = TypeGraphCompiler().compile(
        {
            "Ticket": {
                "type": "object",
                "properties": {"state": {"$ref": "#/components/schemas/TicketState"}},
                "required": ["state"],
            },
            "TicketState": {"type": "string", "enum": ["open", "closed"]},
        }
    )

    assert result.enum_names == frozenset({"TicketState"})
    state = result.types["Ticket"].fields[0]
    assert state.schema == ReferenceField(type_name="TicketState", is_enum=True)
    assert state.enum_name == "TicketState"
    assert state.expression == "z.nativeEnum(TicketState)"
    assert result.types["TicketState"].enum_values == ("open", "closed")


def test_unresolved_reference_keeps_name_and_warns() -> None:
    """A reference to an undeclared type is kept by name and reported."""
    result = compile_types(
        {"Holder": {"type": "object", "properties": {"ghost": {"$ref": "#/definitions/Ghost"}}}}
    )

    ghost = result.types["Holder"].fields[0]
    assert ghost.schema == ReferenceField(type_name="Ghost", resolved=False)
    assert ghost.expression == "z.any().optional()"
    assert [diagnostic.kind for diagnostic in result.diagnostics] == [DiagnosticKind.UNRESOLVABLE_REFERENCE]
    assert "Ghost" in result.diagnostics[0].message


def test_empty_definition_becomes_empty_model() -> None:
    """An empty definition compiles to an object without fields plus a warning."""
    result = compile_types({"Nothing": {}})

    assert result.types["Nothing"].kind == "object"
    assert result.types["Nothing"].fields == ()
    assert result.diagnostics[0].kind == DiagnosticKind.MALFORMED_INPUT


def test_self_reference_is_lazy() -> None:
    """Recursive types reference themselves through ``z.lazy``."""
    spec = normalize_document(load_fixture(CRM_FIXTURE))
    result = compile_types(spec.type_definitions)

    tree = result.types["TreeNode"]
    assert tree.is_recursive
    children = {field.name: field for field in tree.fields}["children"]
    assert children.expression == "z.array(z.lazy(() => TreeNodeSchema)).optional()"
    assert result.types["Lead"].is_recursive is False


def test_mutual_references_are_lazy_on_both_sides() -> None:
    """Two types referencing each other both use lazy references."""
    result = compile_types(
        {
            "A": {"type": "object", "properties": {"b": {"$ref": "#/definitions/B"}}},
            "B": {"type": "object", "properties": {"a": {"$ref": "#/definitions/A"}}},
        }
    )

    assert result.types["A"].fields[0].expression == "z.lazy(() => BSchema).optional()"
    assert result.types["B"].fields[0].expression == "z.lazy(() => ASchema).optional()"


def test_all_of_objects_are_merged() -> None:
    """Object-only ``allOf`` chains inherit the referenced model's properties."""
    result = compile_types(
        {
            "Base": {"type": "object", "properties": {"id": {"type": "integer"}}, "required": ["id"]},
            "Derived": {
                "allOf": [
                    {"$ref": "#/components/schemas/Base"},
                    {"type": "object", "properties": {"name": {"type": "string"}}},
                ]
            },
        }
    )

    derived = result.types["Derived"]
    assert derived.kind == "object"
    assert [(field.name, field.required) for field in derived.fields] == [("id", True), ("name", False)]


def test_unsupported_all_of_is_unknown() -> None:
    """``allOf`` mixing objects and scalars becomes an unknown field."""
    scope = SchemaScope(definitions={}, enum_names=frozenset())
    compiled, _, diagnostics = scope.compile(
        {"allOf": [{"type": "string"}, {"type": "object", "properties": {}}]},
        subject="Mixed",
    )

    assert isinstance(compiled, UnknownField)
    assert diagnostics[0].kind == DiagnosticKind.UNSUPPORTED_SCHEMA


def test_depth_guard_reports_instead_of_recursing() -> None:
    """Inline nesting past the bound degrades to an unknown field."""
    schema: JSONValue = {"type": "string"}
    for _ in range(10):
        schema = {"type": "array", "items": schema}

    scope = SchemaScope(definitions={}, enum_names=frozenset(), max_depth=3)
    compiled, _, diagnostics = scope.compile(schema, subject="Deep")

    assert isinstance(compiled, ArrayField)
    assert any(diagnostic.kind == DiagnosticKind.MALFORMED_INPUT for diagnostic in diagnostics)


def test_primitive_wrapper_alias() -> None:
    """Top-level non-object definitions compile to aliases."""
    result = compile_types(
        {
            "Tags": {"type": "array", "items": {"type": "string"}},
            "Metadata": {"type": "object", "additionalProperties": {"type": "string"}},
        }
    )

    assert result.types["Tags"].kind == "primitive-wrapper"
    assert result.types["Tags"].alias_expression == "z.array(z.string())"
    assert result.types["Metadata"].alias_expression == "z.record(z.string(), z.string())"


def test_string_formats_and_bounds() -> None:
    """String formats and numeric bounds render as zod refinements."""
    assert zod_expression(PrimitiveField(kind="string", format="email", max_length=120)) == (
        "z.string().email().max(120)"
    )
    assert zod_expression(PrimitiveField(kind="string", format="date-time")) == "z.string().datetime()"
    assert zod_expression(PrimitiveField(kind="number", minimum=0.5, maximum=10.0)) == (
        "z.number().max(10).min(0.5)"
    )
    assert zod_expression(PrimitiveField(kind="string", enum_values=("a", "b"))) == "z.enum(['a', 'b'])"
    assert zod_expression(PrimitiveField(kind="file")) == "z.instanceof(File)"
    assert zod_expression(UnknownField()) == "z.any()"


def test_pattern_slashes_are_escaped_once() -> None:
    """Slashes close the regex literal only when the pattern leaves them bare."""
    assert zod_expression(PrimitiveField(kind="string", pattern="^a/b$")) == r"z.string().regex(/^a\/b$/)"
    assert zod_expression(PrimitiveField(kind="string", pattern=r"^a\/b$")) == r"z.string().regex(/^a\/b$/)"
    assert zod_expression(PrimitiveField(kind="string", pattern=r"^a\\/b$")) == r"z.string().regex(/^a\\\/b$/)"


def test_inline_object_expression_and_type() -> None:
    """Inline objects quote non-identifier keys in both renderings."""
    assert zod_expression(ObjectField()) == "z.record(z.string(), z.any())"

    compiled = _field_schema(
        {
            "type": "object",
            "properties": {"first-name": {"type": "string"}, "age": {"type": "integer"}},
            "required": ["age"],
        }
    )
    assert zod_expression(compiled) == "z.object({ 'first-name': z.string().optional(), age: z.number().int() })"
    assert typescript_type(compiled) == "{ 'first-name'?: string; age: number }"
