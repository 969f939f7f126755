"""Internal datatypes shared by the generation pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from .diagnostics import Diagnostic
from .json_types import JSONObject

UNCATEGORIZED = "uncategorized"


# ---------------------------------------------------------------------------
# Field schemas
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PrimitiveField:
    """A scalar value with its per-kind constraints.

    ``kind`` is one of ``string``, ``integer``, ``number``, ``boolean``,
    ``null`` or ``file``. String constraints and numeric bounds are only
    populated for the matching kinds.
    """

    kind: str
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    format: Optional[str] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    enum_values: tuple[str, ...] = ()


@dataclass(frozen=True)
class ReferenceField:
    """A ``$ref`` to a named type definition."""

    type_name: str
    is_enum: bool = False
    resolved: bool = True


@dataclass(frozen=True)
class ArrayField:
    """A homogeneous list."""

    element: FieldSchema


@dataclass(frozen=True)
class ObjectMember:
    """One property of an inline object."""

    name: str
    schema: FieldSchema
    required: bool


@dataclass(frozen=True)
class ObjectField:
    """An inline object; ``additional`` types the values of a free-form map."""

    members: tuple[ObjectMember, ...] = ()
    additional: Optional[FieldSchema] = None

    @property
    def free_form(self) -> bool:
        """Whether the object has no declared members."""
        return not self.members


@dataclass(frozen=True)
class UnionField:
    """An ``anyOf``/``oneOf`` with more than one non-null branch."""

    branches: tuple[FieldSchema, ...]


@dataclass(frozen=True)
class NullableField:
    """A value that may also be ``null``."""

    inner: FieldSchema


@dataclass(frozen=True)
class UnknownField:
    """Anything; used for missing, empty, or unsupported schemas."""

    reason: Optional[str] = None


type FieldSchema = Union[
    PrimitiveField,
    ReferenceField,
    ArrayField,
    ObjectField,
    UnionField,
    NullableField,
    UnknownField,
]


# ---------------------------------------------------------------------------
# Compiled type definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompiledField:
    """A compiled top-level property of an object model."""

    name: str
    schema: FieldSchema
    required: bool
    expression: str
    references: tuple[str, ...] = ()


@dataclass(frozen=True)
class CompiledType:
    """A compiled named type definition.

    ``kind`` is ``object``, ``enum`` or ``primitive-wrapper``. Object types
    carry ``fields``; enums carry ``enum_values``; wrappers carry ``alias``
    and ``alias_expression``.
    """

    name: str
    kind: str
    fields: tuple[CompiledField, ...] = ()
    enum_values: tuple[str, ...] = ()
    alias: Optional[FieldSchema] = None
    alias_expression: Optional[str] = None
    nested_types: tuple[str, ...] = ()
    lazy_references: tuple[str, ...] = ()
    description: Optional[str] = None

    @property
    def is_recursive(self) -> bool:
        """Whether the type reaches itself again through its references."""
        return bool(self.lazy_references)

    @property
    def is_enum(self) -> bool:
        """Whether the type is emitted as an enum."""
        return self.kind == "enum"


@dataclass(frozen=True)
class CompilationResult:
    """Output of the type graph compiler."""

    types: dict[str, CompiledType]
    enum_names: frozenset[str]
    diagnostics: tuple[Diagnostic, ...] = ()


# ---------------------------------------------------------------------------
# Routes and operations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Parameter:
    """A declared operation parameter.

    ``location`` is one of ``path``, ``query``, ``body``, ``form``,
    ``header`` or ``cookie``. ``schema`` is the raw parameter schema; legacy
    parameters have their inline type keywords lifted into it.
    """

    name: str
    location: str
    required: bool
    schema: JSONObject


@dataclass(frozen=True)
class RequestBody:
    """A modern request body: content type to raw schema."""

    required: bool
    content: tuple[tuple[str, JSONObject], ...]

    @property
    def content_types(self) -> tuple[str, ...]:
        """Declared content types in declaration order."""
        return tuple(content_type for content_type, _ in self.content)


@dataclass(frozen=True)
class ResponseSchema:
    """The body schema declared for one status code."""

    status: str
    schema: Optional[JSONObject]


@dataclass(frozen=True)
class Operation:
    """One HTTP verb on a route."""

    verb: str
    operation_id: Optional[str]
    summary: Optional[str]
    description: Optional[str]
    tags: tuple[str, ...]
    parameters: tuple[Parameter, ...]
    request_body: Optional[RequestBody]
    responses: tuple[ResponseSchema, ...]


@dataclass(frozen=True)
class Route:
    """A path template with its operations in declaration order."""

    path: str
    operations: tuple[Operation, ...]
    parameters: tuple[Parameter, ...] = ()


@dataclass(frozen=True)
class NormalizedSpec:
    """Canonical view of a specification document in either dialect."""

    dialect: str
    type_definitions: dict[str, JSONObject]
    routes: tuple[Route, ...]
    diagnostics: tuple[Diagnostic, ...] = ()


# ---------------------------------------------------------------------------
# Grouping, naming, parameters, domains
# ---------------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class EndpointKey:
    """Compound key identifying one operation: path plus verb."""

    path: str
    verb: str

    def __str__(self) -> str:
        return f"{self.verb.upper()} {self.path}"


@dataclass(frozen=True)
class RouteEntry:
    """One (path, verb) operation inside a route group."""

    key: EndpointKey
    route: Route
    operation: Operation


@dataclass(frozen=True)
class RouteGroup:
    """A named collection of operations sharing a resource segment."""

    name: str
    entries: tuple[RouteEntry, ...]

    def keys(self) -> tuple[EndpointKey, ...]:
        """Compound keys of the grouped operations."""
        return tuple(entry.key for entry in self.entries)


@dataclass(frozen=True)
class ParamField:
    """One member of a synthesized parameters interface."""

    name: str
    type_expression: str
    required: bool
    location: str
    references: tuple[str, ...] = ()


@dataclass(frozen=True)
class ParamInterface:
    """The implicit parameters object of one operation."""

    name: str
    fields: tuple[ParamField, ...]

    @property
    def references(self) -> tuple[str, ...]:
        """Type names referenced by any field, first-seen order."""
        ordered: list[str] = []
        for param_field in self.fields:
            for name in param_field.references:
                if name not in ordered:
                    ordered.append(name)
        return tuple(ordered)

    def fields_in(self, location: str) -> tuple[ParamField, ...]:
        """Fields coming from one parameter location."""
        return tuple(param_field for param_field in self.fields if param_field.location == location)


@dataclass(frozen=True)
class DomainAssignment:
    """Domain tags for type names and route groups."""

    types: dict[str, str]
    routes: dict[str, str]
    diagnostics: tuple[Diagnostic, ...] = ()

    def domain_of(self, type_name: str) -> str:
        """Domain of a type name, defaulting to the sentinel."""
        return self.types.get(type_name, UNCATEGORIZED)

    def route_domain(self, group_name: str) -> str:
        """Domain of a route group, defaulting to the sentinel."""
        return self.routes.get(group_name, UNCATEGORIZED)


# ---------------------------------------------------------------------------
# Imports and fragments
# ---------------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class ImportSpec:
    """One imported identifier and the module it comes from."""

    module_path: str
    name: str


@dataclass(frozen=True)
class ImportGroup:
    """All identifiers imported from one module."""

    module_path: str
    names: tuple[str, ...]


@dataclass(frozen=True)
class GeneratedFragment:
    """One output unit before template rendering.

    ``target`` is the output-relative file path; ``template`` names the
    template consumed by the render collaborator.
    """

    target: str
    template: str
    payload: dict[str, Any]
    imports: tuple[ImportSpec, ...] = ()
