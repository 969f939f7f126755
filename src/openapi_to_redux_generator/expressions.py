"""Render compiled field schemas as zod expressions and TypeScript types."""

from __future__ import annotations

from collections.abc import Collection

from .model_types import (
    ArrayField,
    FieldSchema,
    NullableField,
    ObjectField,
    PrimitiveField,
    ReferenceField,
    UnionField,
)
from .naming import property_key, quote_string

_DATE_REGEX = r"/^\d{4}-\d{2}-\d{2}$/"
_STRING_FORMATS = {
    "date-time": ".datetime()",
    "date": f".regex({_DATE_REGEX})",
    "uri": ".url()",
    "url": ".url()",
    "email": ".email()",
    "uuid": ".uuid()",
}


def schema_identifier(type_name: str) -> str:
    """Exported zod schema constant of a model."""
    return f"{type_name}Schema"


def serializer_identifier(type_name: str) -> str:
    """Exported inferred TypeScript type of a model."""
    return f"I{type_name}Serializer"


def field_expression(
    schema: FieldSchema,
    *,
    required: bool,
    lazy_names: Collection[str] = (),
) -> str:
    """Zod expression of an object member, optional when not required."""
    expression = zod_expression(schema, lazy_names=lazy_names)
    if not required:
        expression += ".optional()"
    return expression


def zod_expression(schema: FieldSchema, *, lazy_names: Collection[str] = ()) -> str:
    """Render a field schema as a zod expression.

    Args:
        schema (FieldSchema): Compiled field schema.
        lazy_names (Collection[str]): Model names that must be referenced
            through ``z.lazy`` because they take part in a reference cycle
            with the model being rendered.

    Returns:
        str: TypeScript source of the expression.
    """
    if isinstance(schema, PrimitiveField):
        return _primitive_expression(schema)
    if isinstance(schema, ReferenceField):
        return _reference_expression(schema, lazy_names=lazy_names)
    if isinstance(schema, ArrayField):
        return f"z.array({zod_expression(schema.element, lazy_names=lazy_names)})"
    if isinstance(schema, ObjectField):
        if schema.free_form:
            values = (
                "z.any()"
                if schema.additional is None
                else zod_expression(schema.additional, lazy_names=lazy_names)
            )
            return f"z.record(z.string(), {values})"
        rendered = ", ".join(
            f"{property_key(member.name)}: "
            + field_expression(member.schema, required=member.required, lazy_names=lazy_names)
            for member in schema.members
        )
        return f"z.object({{ {rendered} }})"
    if isinstance(schema, UnionField):
        rendered = ", ".join(zod_expression(branch, lazy_names=lazy_names) for branch in schema.branches)
        return f"z.union([{rendered}])"
    if isinstance(schema, NullableField):
        return f"{zod_expression(schema.inner, lazy_names=lazy_names)}.nullable()"
    return "z.any()"


def _reference_expression(schema: ReferenceField, *, lazy_names: Collection[str]) -> str:
    if schema.is_enum:
        return f"z.nativeEnum({schema.type_name})"
    # Unresolved names stay on the field for diagnostics; the output falls back to any.
    if not schema.resolved:
        return "z.any()"
    if schema.type_name in lazy_names:
        return f"z.lazy(() => {schema_identifier(schema.type_name)})"
    return schema_identifier(schema.type_name)


def _primitive_expression(schema: PrimitiveField) -> str:
    if schema.kind == "string":
        if schema.enum_values:
            return f"z.enum([{', '.join(string_literal(value) for value in schema.enum_values)}])"
        expression = "z.string()"
        if schema.format is not None:
            expression += _STRING_FORMATS.get(schema.format, "")
        if schema.max_length is not None:
            expression += f".max({schema.max_length})"
        if schema.min_length is not None:
            expression += f".min({schema.min_length})"
        if schema.pattern is not None:
            expression += f".regex({_regex_literal(schema.pattern)})"
        return expression
    if schema.kind in {"integer", "number"}:
        expression = "z.number().int()" if schema.kind == "integer" else "z.number()"
        if schema.maximum is not None:
            expression += f".max({_number_literal(schema.maximum)})"
        if schema.minimum is not None:
            expression += f".min({_number_literal(schema.minimum)})"
        return expression
    if schema.kind == "boolean":
        return "z.boolean()"
    if schema.kind == "null":
        return "z.null()"
    if schema.kind == "file":
        return "z.instanceof(File)"
    return "z.any()"


def typescript_type(schema: FieldSchema) -> str:
    """Render a field schema as a TypeScript type expression."""
    if isinstance(schema, PrimitiveField):
        if schema.kind == "string" and schema.enum_values:
            return " | ".join(string_literal(value) for value in schema.enum_values)
        return _PRIMITIVE_TYPES.get(schema.kind, "any")
    if isinstance(schema, ReferenceField):
        if schema.is_enum:
            return schema.type_name
        if schema.resolved:
            return serializer_identifier(schema.type_name)
        return "unknown"
    if isinstance(schema, ArrayField):
        inner = typescript_type(schema.element)
        if " | " in inner:
            return f"({inner})[]"
        return f"{inner}[]"
    if isinstance(schema, ObjectField):
        if schema.free_form:
            values = "any" if schema.additional is None else typescript_type(schema.additional)
            return f"Record<string, {values}>"
        rendered = "; ".join(
            f"{property_key(member.name)}{'' if member.required else '?'}: "
            f"{typescript_type(member.schema)}"
            for member in schema.members
        )
        return f"{{ {rendered} }}"
    if isinstance(schema, UnionField):
        return " | ".join(typescript_type(branch) for branch in schema.branches)
    if isinstance(schema, NullableField):
        return f"{typescript_type(schema.inner)} | null"
    return "any"


_PRIMITIVE_TYPES = {
    "string": "string",
    "integer": "number",
    "number": "number",
    "boolean": "boolean",
    "null": "null",
    "file": "File",
}

_REGEX_LINE_ESCAPES = {"\n": "\\n", "\r": "\\r", "\u2028": "\\u2028", "\u2029": "\\u2029"}


def string_literal(value: str) -> str:
    """Single-quoted TypeScript string literal."""
    return quote_string(value)


def _regex_literal(pattern: str) -> str:
    """Render a pattern as a regex literal, keeping slashes the pattern already escapes."""
    escaped: list[str] = []
    backslashes = 0
    for char in pattern:
        if char == "/" and backslashes % 2 == 0:
            escaped.append("\\")
        escaped.append(_REGEX_LINE_ESCAPES.get(char, char))
        backslashes = backslashes + 1 if char == "\\" else 0
    return f"/{''.join(escaped)}/"


def _number_literal(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
