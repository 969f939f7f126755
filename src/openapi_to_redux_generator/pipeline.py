"""Run the translation stages and expose their combined output.

The stages run in dependency order: normalize, compile types, group routes,
classify domains, then name endpoints and synthesize their parameter
interfaces. Every stage receives its inputs explicitly and returns frozen
data, so separate documents can be processed side by side.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .diagnostics import Diagnostic, dedupe
from .domains import DEFAULT_CLOSURE_ROUNDS, DEFAULT_DOMAIN_PATTERNS, classify_domains, compile_patterns
from .expressions import typescript_type
from .json_types import JSONObject
from .model_types import (
    CompilationResult,
    DomainAssignment,
    EndpointKey,
    NormalizedSpec,
    Operation,
    ParamInterface,
    Route,
    RouteGroup,
)
from .normalize import normalize_document
from .params import request_content_type, synthesize_params
from .routes import (
    MUTATION_VERBS,
    group_routes,
    grouping_depth_for,
    is_array_response,
    is_list_endpoint,
    name_group_endpoints,
    query_parameter_names,
    response_model_name,
    strip_base_path,
    success_response,
    tag_constant,
)
from .schema_compiler import DEFAULT_MAX_DEPTH, SchemaScope, TypeGraphCompiler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineOptions:
    """Inputs of the translation stages that do not come from the document."""

    api_base_path: str = ""
    domain_patterns: tuple[tuple[str, str], ...] = DEFAULT_DOMAIN_PATTERNS
    max_schema_depth: int = DEFAULT_MAX_DEPTH
    closure_rounds: int = DEFAULT_CLOSURE_ROUNDS

    @property
    def grouping_depth(self) -> int:
        """Segments of the base path skipped when grouping routes."""
        return grouping_depth_for(self.api_base_path)


@dataclass(frozen=True)
class PlannedEndpoint:
    """Everything emitters need to know about one (path, verb) operation."""

    key: EndpointKey
    name: str
    route: Route
    operation: Operation
    relative_path: str
    params: Optional[ParamInterface]
    response_type: str
    response_model: Optional[str]
    response_references: tuple[str, ...]
    is_list: bool
    is_array_response: bool
    content_type: str

    @property
    def verb(self) -> str:
        """Lowercase HTTP verb."""
        return self.key.verb

    @property
    def is_query(self) -> bool:
        """Whether the endpoint is a read rather than a mutation."""
        return self.key.verb not in MUTATION_VERBS

    @property
    def references(self) -> tuple[str, ...]:
        """Model and enum names used by the response and parameters."""
        ordered = list(self.response_references)
        if self.params is not None:
            ordered.extend(name for name in self.params.references if name not in ordered)
        return tuple(ordered)


@dataclass(frozen=True)
class GroupPlan:
    """A route group with its domain, cache tag, and planned endpoints."""

    group: RouteGroup
    domain: str
    tag: str
    endpoints: tuple[PlannedEndpoint, ...]

    @property
    def name(self) -> str:
        """Group key, e.g. ``leads``."""
        return self.group.name

    @property
    def param_interfaces(self) -> tuple[ParamInterface, ...]:
        """Parameter interfaces of the group in endpoint order."""
        return tuple(endpoint.params for endpoint in self.endpoints if endpoint.params is not None)

    @property
    def references(self) -> tuple[str, ...]:
        """Every model and enum name the group's endpoints use."""
        ordered: list[str] = []
        for endpoint in self.endpoints:
            ordered.extend(name for name in endpoint.references if name not in ordered)
        return tuple(ordered)


@dataclass(frozen=True)
class PipelineOutput:
    """Combined output of the translation stages."""

    spec: NormalizedSpec
    compilation: CompilationResult
    domains: DomainAssignment
    groups: tuple[GroupPlan, ...]
    diagnostics: tuple[Diagnostic, ...]


def run_pipeline(document: JSONObject, options: PipelineOptions = PipelineOptions()) -> PipelineOutput:
    """Translate a parsed document into compiled types, domains, and endpoints.

    Args:
        document (JSONObject): Parsed specification in either dialect.
        options (PipelineOptions): Base path, name heuristics, and bounds.

    Returns:
        PipelineOutput: Structures consumed by the emitters.
    """
    spec = normalize_document(document, max_depth=options.max_schema_depth)
    compilation = TypeGraphCompiler(max_depth=options.max_schema_depth).compile(spec.type_definitions)
    groups = group_routes(spec.routes, options.grouping_depth)
    domains = classify_domains(
        spec.type_definitions,
        spec.routes,
        groups=groups,
        patterns=compile_patterns(options.domain_patterns),
        api_base_path=options.api_base_path,
        closure_rounds=options.closure_rounds,
    )
    scope = SchemaScope(
        definitions=spec.type_definitions,
        enum_names=compilation.enum_names,
        max_depth=options.max_schema_depth,
    )

    diagnostics: list[Diagnostic] = [*spec.diagnostics, *compilation.diagnostics, *domains.diagnostics]
    plans: list[GroupPlan] = []
    for group in groups:
        endpoints = _plan_group(group, scope=scope, options=options, diagnostics=diagnostics)
        plans.append(
            GroupPlan(
                group=group,
                domain=domains.route_domain(group.name),
                tag=tag_constant(group.name),
                endpoints=endpoints,
            )
        )

    logger.debug(
        "Planned %d groups with %d endpoints",
        len(plans),
        sum(len(plan.endpoints) for plan in plans),
    )
    return PipelineOutput(
        spec=spec,
        compilation=compilation,
        domains=domains,
        groups=tuple(plans),
        diagnostics=dedupe(diagnostics),
    )


def _plan_group(
    group: RouteGroup,
    *,
    scope: SchemaScope,
    options: PipelineOptions,
    diagnostics: list[Diagnostic],
) -> tuple[PlannedEndpoint, ...]:
    names = name_group_endpoints(group, api_base_path=options.api_base_path)
    endpoints: list[PlannedEndpoint] = []
    for entry in group.entries:
        operation = entry.operation
        params, param_diagnostics = synthesize_params(
            entry.route,
            operation,
            scope=scope,
            api_base_path=options.api_base_path,
        )
        diagnostics.extend(param_diagnostics)

        response = success_response(operation)
        response_schema = response.schema if response is not None else None
        response_type = "void"
        response_references: tuple[str, ...] = ()
        if response_schema is not None:
            compiled, references, response_diagnostics = scope.compile(
                response_schema, subject=str(entry.key)
            )
            diagnostics.extend(response_diagnostics)
            response_type = typescript_type(compiled)
            response_references = tuple(name for name in references if name in scope.definitions)

        endpoints.append(
            PlannedEndpoint(
                key=entry.key,
                name=names[entry.key],
                route=entry.route,
                operation=operation,
                relative_path=strip_base_path(entry.key.path, options.api_base_path),
                params=params,
                response_type=response_type,
                response_model=response_model_name(response_schema),
                response_references=response_references,
                is_list=is_list_endpoint(
                    entry.key.path,
                    entry.key.verb,
                    query_params=query_parameter_names(entry.route, operation),
                    operation_id=operation.operation_id,
                ),
                is_array_response=is_array_response(response_schema),
                content_type=request_content_type(operation),
            )
        )
    return tuple(endpoints)
