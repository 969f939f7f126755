"""Assign every type definition and route group to a domain bucket.

Domains decide where model modules are written (``models/<domain>/``) and
therefore how generated modules import each other. Classification runs in
three passes:

1. Non-wrapper types take the first tag of the first operation that
   references them, else the first matching name pattern, else
   ``uncategorized``.
2. Wrapper types (pagination envelopes, array wrappers, data envelopes)
   keep a direct tag when they have one and otherwise inherit the domain of
   the type they wrap.
3. A bounded closure pass lets still-uncategorized types adopt the domain
   of a categorized type that references them.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Optional

from .diagnostics import Diagnostic, DiagnosticKind
from .json_types import JSONObject, JSONValue
from .model_types import UNCATEGORIZED, DomainAssignment, Operation, Route, RouteGroup
from .naming import clean_schema_name, normalize_tag, ref_name
from .schema_utils import direct_ref_names, referenced_names

logger = logging.getLogger(__name__)

DEFAULT_CLOSURE_ROUNDS = 5

DEFAULT_DOMAIN_PATTERNS: tuple[tuple[str, str], ...] = (
    (r"^app__schemas__([a-z_]+)_schemas__", r"\1"),
    (r"^App_schemas_([a-z]+)Schemas_", r"\1"),
)

_CAMEL_HUMP_RE = re.compile(r"([a-z0-9])([A-Z])")


@dataclass(frozen=True)
class DomainPattern:
    """A schema-name regex and the domain template it expands to."""

    pattern: re.Pattern[str]
    domain: str

    @classmethod
    def compile(cls, pattern: str, domain: str) -> DomainPattern:
        """Compile a case-insensitive name pattern."""
        return cls(pattern=re.compile(pattern, re.IGNORECASE), domain=domain)

    def match(self, type_name: str) -> Optional[str]:
        """Normalized domain for ``type_name``, or ``None`` when it does not match."""
        found = self.pattern.search(type_name)
        if found is None:
            return None
        expanded = found.expand(self.domain).replace("_", " ")
        domain = normalize_tag(_CAMEL_HUMP_RE.sub(r"\1 \2", expanded))
        return domain or None


def compile_patterns(pairs: Sequence[tuple[str, str]]) -> tuple[DomainPattern, ...]:
    """Compile ordered ``(regex, domain)`` pairs."""
    return tuple(DomainPattern.compile(pattern, domain) for pattern, domain in pairs)


def classify_domains(
    type_definitions: Mapping[str, JSONValue],
    routes: Sequence[Route],
    *,
    groups: Sequence[RouteGroup] = (),
    patterns: Sequence[DomainPattern] = (),
    api_base_path: str = "",
    closure_rounds: int = DEFAULT_CLOSURE_ROUNDS,
) -> DomainAssignment:
    """Classify type names and route groups into domains.

    Args:
        type_definitions (Mapping[str, JSONValue]): Raw schemas by name, in
            declaration order.
        routes (Sequence[Route]): Normalized routes, in declaration order.
        groups (Sequence[RouteGroup]): Route groups to assign domains to.
        patterns (Sequence[DomainPattern]): Ordered name heuristics.
        api_base_path (str): Base path used to derive cleaned alias names.
        closure_rounds (int): Maximum number of closure rounds.

    Returns:
        DomainAssignment: Domains for declared names, their cleaned aliases,
            and route group names.
    """
    operations = [operation for route in routes for operation in route.operations]
    usage = _operation_usage(operations)
    domains: dict[str, str] = {}

    wrappers: list[tuple[str, str]] = []
    for name, schema in type_definitions.items():
        wrapped = wrapped_type_name(schema)
        if wrapped is not None:
            wrappers.append((name, wrapped))
            continue
        domain = _tag_domain(name, usage) or _pattern_domain(name, patterns) or UNCATEGORIZED
        _assign(domains, name, domain, type_definitions, api_base_path)

    for name, wrapped in wrappers:
        domain = _tag_domain(name, usage) or _inherited_domain(wrapped, domains) or UNCATEGORIZED
        _assign(domains, name, domain, type_definitions, api_base_path)

    _close(domains, type_definitions, api_base_path=api_base_path, rounds=closure_rounds)

    remaining = [
        name for name in type_definitions if domains.get(name, UNCATEGORIZED) == UNCATEGORIZED
    ]
    diagnostics: list[Diagnostic] = []
    if remaining:
        logger.warning(
            "%d types remain uncategorized: %s", len(remaining), ", ".join(remaining)
        )
        diagnostics.extend(
            Diagnostic(
                kind=DiagnosticKind.DOMAIN_RESOLUTION_EXHAUSTED,
                subject=name,
                message="not used by any tagged operation; placed in 'uncategorized'",
            )
            for name in remaining
        )

    return DomainAssignment(
        types=domains,
        routes={group.name: route_group_domain(group) for group in groups},
        diagnostics=tuple(diagnostics),
    )


def route_group_domain(group: RouteGroup) -> str:
    """Normalized first tag of the first tagged operation in a group."""
    for entry in group.entries:
        for tag in entry.operation.tags:
            domain = normalize_tag(tag)
            if domain:
                return domain
    return UNCATEGORIZED


def wrapped_type_name(schema: JSONValue) -> Optional[str]:
    """Name of the type a wrapper schema envelopes, if it is a wrapper.

    Recognized shapes are a paginated ``results`` array, a bare array of a
    reference, and a ``data`` array envelope.
    """
    if not isinstance(schema, Mapping):
        return None
    properties = schema.get("properties")
    if isinstance(properties, Mapping):
        for envelope in ("results", "data"):
            ref = _items_ref(properties.get(envelope))
            if ref is not None:
                return ref_name(ref)
        return None
    ref = _items_ref(schema)
    return ref_name(ref) if ref is not None else None


def _items_ref(node: JSONValue) -> Optional[str]:
    if not isinstance(node, Mapping):
        return None
    items = node.get("items")
    if isinstance(items, Mapping) and isinstance(items.get("$ref"), str):
        return items["$ref"]
    return None


def _operation_usage(operations: Sequence[Operation]) -> list[tuple[tuple[str, ...], frozenset[str]]]:
    """Per operation: its tags and the type names it directly references."""
    usage: list[tuple[tuple[str, ...], frozenset[str]]] = []
    for operation in operations:
        names: set[str] = set()
        for schema in _operation_schemas(operation):
            names.update(direct_ref_names(schema))
        usage.append((operation.tags, frozenset(names)))
    return usage


def _operation_schemas(operation: Operation) -> list[JSONObject]:
    schemas: list[JSONObject] = [parameter.schema for parameter in operation.parameters]
    if operation.request_body is not None:
        schemas.extend(schema for _, schema in operation.request_body.content)
    schemas.extend(response.schema for response in operation.responses if response.schema is not None)
    return schemas


def _tag_domain(name: str, usage: Sequence[tuple[tuple[str, ...], frozenset[str]]]) -> Optional[str]:
    for tags, names in usage:
        if name in names and tags:
            domain = normalize_tag(tags[0])
            if domain:
                return domain
    return None


def _pattern_domain(name: str, patterns: Sequence[DomainPattern]) -> Optional[str]:
    for pattern in patterns:
        domain = pattern.match(name)
        if domain is not None:
            return domain
    return None


def _inherited_domain(wrapped: str, domains: Mapping[str, str]) -> Optional[str]:
    exact = domains.get(wrapped)
    if exact is not None and exact != UNCATEGORIZED:
        return exact
    for other, domain in domains.items():
        if domain != UNCATEGORIZED and other.endswith(wrapped):
            return domain
    return None


def _assign(
    domains: dict[str, str],
    name: str,
    domain: str,
    type_definitions: Mapping[str, JSONValue],
    api_base_path: str,
) -> None:
    domains[name] = domain
    alias = clean_schema_name(name, api_base_path)
    if alias and alias != name and alias not in type_definitions:
        domains[alias] = domain


def _close(
    domains: dict[str, str],
    type_definitions: Mapping[str, JSONValue],
    *,
    api_base_path: str,
    rounds: int,
) -> None:
    references = {name: frozenset(referenced_names(schema)) for name, schema in type_definitions.items()}
    for round_number in range(1, rounds + 1):
        pending = [name for name in type_definitions if domains.get(name) == UNCATEGORIZED]
        if not pending:
            return
        progressed = False
        for name in pending:
            for referencer, referenced in references.items():
                domain = domains.get(referencer, UNCATEGORIZED)
                if domain == UNCATEGORIZED or name not in referenced:
                    continue
                logger.debug("%s inherits domain %s from %s", name, domain, referencer)
                _assign(domains, name, domain, type_definitions, api_base_path)
                progressed = True
                break
        if not progressed:
            logger.debug("Domain closure stopped after %d rounds without progress", round_number)
            return
