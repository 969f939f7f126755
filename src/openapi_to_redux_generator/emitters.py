"""Build template payloads for every generated TypeScript module.

Emitters only consume :class:`~.pipeline.PipelineOutput`; rendering the
returned fragments is left to :mod:`.rendering`. Excluded artifact kinds are
honoured by not calling their emitter at all.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from .expressions import schema_identifier, serializer_identifier, string_literal
from .model_types import (
    CompiledType,
    DomainAssignment,
    GeneratedFragment,
    ImportSpec,
    ParamInterface,
)
from .naming import (
    capitalize,
    enum_member_name,
    property_access,
    property_key,
    sanitize_identifier,
    to_camel_case,
)
from .pipeline import GroupPlan, PipelineOutput, PlannedEndpoint
from .resolver import group_imports, model_symbols, module_path, resolve_imports

logger = logging.getLogger(__name__)

THUNKS = "thunks"
SLICES = "slices"
EXCLUDABLE_ARTIFACTS = frozenset({THUNKS, SLICES})

RUNTIME_FILES: tuple[str, ...] = (
    "redux/hooks.ts",
    "redux/query.ts",
    "redux/response.ts",
    "redux/types.ts",
    "schema/api.ts",
    "slices/authSlice.ts",
)

_PATH_PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")
_VERB_SUFFIX_RE = re.compile(r"(Get|Post|Put|Patch|Delete|Head|Options|Trace)\d*$")
_SLICE_SUFFIX_RE = re.compile(r"(Upsert|GetToAlter)$")
_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
_MULTIPART_CONTENT_TYPE = "multipart/form-data"


@dataclass(frozen=True)
class EmitOptions:
    """Output switches that do not change the analysed structures."""

    use_alias_imports: bool = False
    exclude: frozenset[str] = frozenset()
    api_base_path: str = ""
    redux_copy_dir: Optional[str] = None
    redux_copy_root: str = ".."


@dataclass(frozen=True)
class FormSlice:
    """One generated form slice for an object model."""

    type_name: str
    slice_name: str
    domain: str
    key: str

    @property
    def reducer(self) -> str:
        """Identifier the store imports the slice reducer as."""
        return sanitize_identifier(to_camel_case(self.slice_name) + "FormReducer")

    @property
    def module(self) -> str:
        """Output-relative module path without extension."""
        return f"slices/{self.domain}/{self.slice_name}Slice"


def emit_fragments(output: PipelineOutput, options: EmitOptions = EmitOptions()) -> tuple[GeneratedFragment, ...]:
    """Build every fragment of one generation run.

    Args:
        output (PipelineOutput): Analysed document.
        options (EmitOptions): Alias style, exclusions, and base path.

    Returns:
        tuple[GeneratedFragment, ...]: Fragments in a deterministic order.
    """
    fragments: list[GeneratedFragment] = []
    fragments.extend(emit_models(output, alias_mode=options.use_alias_imports))
    for plan in output.groups:
        fragments.append(emit_service(plan, output, alias_mode=options.use_alias_imports))
        params = emit_params(plan, output, alias_mode=options.use_alias_imports)
        if params is not None:
            fragments.append(params)
        fragments.append(emit_hooks(plan))
        if THUNKS not in options.exclude:
            fragments.append(emit_thunks(plan, output, alias_mode=options.use_alias_imports))

    slices: tuple[FormSlice, ...] = ()
    if SLICES not in options.exclude:
        slices = form_slices(output)
        fragments.extend(emit_slice(form_slice, alias_mode=options.use_alias_imports) for form_slice in slices)

    fragments.append(emit_tags(output.groups))
    fragments.append(emit_redux_constants(slices))
    fragments.append(emit_store(output.groups, slices, target="redux/store.ts"))
    fragments.append(emit_api_config(options.api_base_path))
    fragments.extend(emit_runtime_files())
    if options.redux_copy_dir is not None:
        fragments.extend(
            emit_redux_copy(
                output.groups,
                slices,
                directory=options.redux_copy_dir,
                api_root=options.redux_copy_root,
            )
        )
    logger.debug("Prepared %d fragments", len(fragments))
    return tuple(fragments)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


def model_target(type_name: str, domains: DomainAssignment) -> str:
    """Output path of a model or enum module."""
    return f"models/{domains.domain_of(type_name)}/{type_name}.ts"


def emit_models(output: PipelineOutput, *, alias_mode: bool) -> list[GeneratedFragment]:
    """One module per compiled type definition."""
    return [
        emit_model(compiled, output, alias_mode=alias_mode)
        for compiled in output.compilation.types.values()
    ]


def emit_model(compiled: CompiledType, output: PipelineOutput, *, alias_mode: bool) -> GeneratedFragment:
    """Fragment for one model, wrapper alias, or enum."""
    target = model_target(compiled.name, output.domains)
    if compiled.is_enum:
        return GeneratedFragment(
            target=target,
            template="enum.ts.jinja",
            payload={
                "name": compiled.name,
                "description": _comment(compiled.description),
                "members": _enum_members(compiled.enum_values),
            },
        )

    symbols = [
        symbol
        for name in compiled.nested_types
        if name != compiled.name
        for symbol in model_symbols(name, output.compilation.enum_names, serializer=False)
    ]
    imports = resolve_imports(
        symbols,
        from_domain=output.domains.domain_of(compiled.name),
        domains=output.domains,
        alias_mode=alias_mode,
    )
    return GeneratedFragment(
        target=target,
        template="model.ts.jinja",
        payload={
            "schema": schema_identifier(compiled.name),
            "serializer": serializer_identifier(compiled.name),
            "description": _comment(compiled.description),
            "recursive": compiled.is_recursive,
            "alias_expression": compiled.alias_expression or "",
            "fields": [
                {"key": property_key(field.name), "expression": field.expression}
                for field in compiled.fields
            ],
            "imports": _import_payload(imports),
        },
        imports=imports,
    )


def _enum_members(values: Sequence[str]) -> list[dict[str, str]]:
    members: list[dict[str, str]] = []
    used: dict[str, int] = {}
    for value in values:
        name = enum_member_name(value)
        count = used.get(name, 0) + 1
        used[name] = count
        if count > 1:
            name = f"{name}_{count}"
        members.append({"name": name, "value": string_literal(value)})
    return members


# ---------------------------------------------------------------------------
# Route groups
# ---------------------------------------------------------------------------


def service_identifier(group_name: str) -> str:
    """Exported ``createApi`` constant of a route group."""
    return sanitize_identifier(to_camel_case(group_name) + "Api")


def rtk_hook_name(endpoint: PlannedEndpoint) -> str:
    """Hook name ``createApi`` derives for an endpoint."""
    suffix = "Query" if endpoint.is_query else "Mutation"
    return f"use{capitalize(endpoint.name)}{suffix}"


def url_expression(endpoint: PlannedEndpoint) -> str:
    """Template-literal body of an endpoint URL relative to the base path.

    Placeholders are substituted only for declared path parameters, so the
    generated code never reads a property the params interface lacks.
    """
    declared = (
        {field.name for field in endpoint.params.fields_in("path")}
        if endpoint.params is not None
        else set()
    )

    def substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in declared:
            return match.group(0)
        return "${" + property_access("params", name) + "}"

    url = _PATH_PLACEHOLDER_RE.sub(substitute, endpoint.relative_path.replace("`", "\\`"))
    query = _query_object(endpoint.params)
    if query:
        url += "?${toQueryString(" + query + ")}"
    return url


def body_expression(endpoint: PlannedEndpoint) -> str:
    """Request body expression of a mutation, or an empty string."""
    if endpoint.params is None:
        return ""
    body_fields = endpoint.params.fields_in("body")
    if body_fields:
        if endpoint.content_type == _FORM_CONTENT_TYPE:
            return (
                "new URLSearchParams(Object.entries(params.body ?? {})"
                ".map(([key, value]) => [key, String(value)]))"
            )
        return "params.body"
    form_fields = endpoint.params.fields_in("form")
    if form_fields:
        entries = ", ".join(
            f"{property_key(field.name)}: {property_access('params', field.name)}" for field in form_fields
        )
        return (
            f"new URLSearchParams(Object.entries({{ {entries} }})"
            ".filter(([, value]) => value !== undefined)"
            ".map(([key, value]) => [key, String(value)]))"
        )
    return ""


def _query_object(params: Optional[ParamInterface]) -> str:
    if params is None:
        return ""
    fields = params.fields_in("query")
    if not fields:
        return ""
    entries = ", ".join(f"{property_key(field.name)}: {property_access('params', field.name)}" for field in fields)
    return "{ " + entries + " }"


def _endpoint_payload(endpoint: PlannedEndpoint) -> dict[str, Any]:
    body = body_expression(endpoint)
    content_type = ""
    if body and endpoint.content_type != _MULTIPART_CONTENT_TYPE:
        content_type = endpoint.content_type
    has_params = endpoint.params is not None
    return {
        "name": endpoint.name,
        "kind": "query" if endpoint.is_query else "mutation",
        "method": endpoint.verb.upper(),
        "response_type": endpoint.response_type,
        "params_type": endpoint.params.name if has_params else "void",
        "arg": "params" if has_params else "",
        "call_arg": "params" if has_params else "undefined",
        "url": url_expression(endpoint),
        "body": body,
        "content_type": content_type,
        "summary": _comment(endpoint.operation.summary or endpoint.operation.description),
        "rtk_hook": rtk_hook_name(endpoint),
        "thunk": f"{endpoint.name}Thunk",
    }


def _endpoint_model_imports(
    plan: GroupPlan,
    output: PipelineOutput,
    *,
    alias_mode: bool,
    from_params: bool,
) -> tuple[ImportSpec, ...]:
    names: list[str] = []
    for endpoint in plan.endpoints:
        candidates: Iterable[str] = endpoint.response_references
        if from_params:
            candidates = endpoint.params.references if endpoint.params is not None else ()
        names.extend(name for name in candidates if name not in names)
    symbols = [
        symbol
        for name in names
        for symbol in model_symbols(name, output.compilation.enum_names, schema=False)
    ]
    return resolve_imports(
        symbols,
        from_domain=None,
        domains=output.domains,
        alias_mode=alias_mode,
        models_root="../models",
    )


def _param_imports(plan: GroupPlan) -> tuple[ImportSpec, ...]:
    return tuple(
        ImportSpec(module_path=f"../params/{plan.name}", name=name)
        for name in sorted({interface.name for interface in plan.param_interfaces})
    )


def emit_service(plan: GroupPlan, output: PipelineOutput, *, alias_mode: bool) -> GeneratedFragment:
    """RTK Query API slice with one endpoint per (path, verb)."""
    endpoints = [_endpoint_payload(endpoint) for endpoint in plan.endpoints]
    imports = [
        ImportSpec(module_path="../constants/tags", name="TAGS"),
        ImportSpec(module_path="../redux/config/api", name="createBaseQuery"),
        ImportSpec(module_path="../redux/response", name="transformErrorResponse"),
        *_param_imports(plan),
        *_endpoint_model_imports(plan, output, alias_mode=alias_mode, from_params=False),
    ]
    if any(_query_object(endpoint.params) for endpoint in plan.endpoints):
        imports.append(ImportSpec(module_path="../redux/query", name="toQueryString"))
    ordered = tuple(sorted(set(imports)))
    return GeneratedFragment(
        target=f"services/{plan.name}.ts",
        template="service.ts.jinja",
        payload={
            "service": service_identifier(plan.name),
            "tag": plan.tag,
            "endpoints": endpoints,
            "hooks": [endpoint["rtk_hook"] for endpoint in endpoints],
            "imports": _import_payload(ordered),
        },
        imports=ordered,
    )


def emit_thunks(plan: GroupPlan, output: PipelineOutput, *, alias_mode: bool) -> GeneratedFragment:
    """``createAsyncThunk`` wrappers that dispatch the group's endpoints."""
    service = service_identifier(plan.name)
    imports = tuple(
        sorted(
            {
                ImportSpec(module_path=f"../services/{plan.name}", name=service),
                *_param_imports(plan),
                *_endpoint_model_imports(plan, output, alias_mode=alias_mode, from_params=False),
            }
        )
    )
    return GeneratedFragment(
        target=f"thunks/{plan.name}.ts",
        template="thunk.ts.jinja",
        payload={
            "service": service,
            "group": plan.name,
            "endpoints": [_endpoint_payload(endpoint) for endpoint in plan.endpoints],
            "imports": _import_payload(imports),
        },
        imports=imports,
    )


def emit_params(plan: GroupPlan, output: PipelineOutput, *, alias_mode: bool) -> Optional[GeneratedFragment]:
    """Parameter interfaces of a group, or ``None`` when it has none."""
    interfaces: list[dict[str, Any]] = []
    seen: set[str] = set()
    for interface in plan.param_interfaces:
        if interface.name in seen:
            logger.debug("Parameter interface %s repeats in group %s", interface.name, plan.name)
            continue
        seen.add(interface.name)
        interfaces.append(
            {
                "name": interface.name,
                "fields": [
                    {
                        "key": property_key(field.name),
                        "optional": not field.required,
                        "type": field.type_expression,
                    }
                    for field in interface.fields
                ],
            }
        )
    if not interfaces:
        return None
    imports = tuple(
        sorted(set(_endpoint_model_imports(plan, output, alias_mode=alias_mode, from_params=True)))
    )
    return GeneratedFragment(
        target=f"params/{plan.name}.ts",
        template="params.ts.jinja",
        payload={"interfaces": interfaces, "imports": _import_payload(imports)},
        imports=imports,
    )


def hook_kind(endpoint: PlannedEndpoint) -> str:
    """Classify an endpoint as ``list``, ``detail``, ``create``, ``update`` or ``delete``."""
    if endpoint.is_query:
        return "list" if endpoint.is_list else "detail"
    if endpoint.verb == "post":
        return "create"
    if endpoint.verb == "delete":
        return "delete"
    return "update"


def emit_hooks(plan: GroupPlan) -> GeneratedFragment:
    """Custom hooks with short names over the generated RTK hooks."""
    service = service_identifier(plan.name)
    hooks: list[dict[str, Any]] = []
    used: dict[str, int] = {}
    for endpoint in plan.endpoints:
        short = _VERB_SUFFIX_RE.sub("", endpoint.name) or endpoint.name
        count = used.get(short, 0) + 1
        used[short] = count
        if count > 1:
            short = f"{short}{count}"
        payload = _endpoint_payload(endpoint)
        hooks.append(
            {
                "name": f"use{capitalize(short)}",
                "action": sanitize_identifier(short),
                "kind": hook_kind(endpoint),
                "is_query": endpoint.is_query,
                "summary": payload["summary"],
                "params_type": payload["params_type"],
                "call_arg": payload["call_arg"],
                "rtk_hook": payload["rtk_hook"],
            }
        )
    imports = tuple(
        sorted({ImportSpec(module_path=f"../services/{plan.name}", name=service), *_param_imports(plan)})
    )
    return GeneratedFragment(
        target=f"hooks/{plan.name}.ts",
        template="hooks.ts.jinja",
        payload={"service": service, "hooks": hooks, "imports": _import_payload(imports)},
        imports=imports,
    )


# ---------------------------------------------------------------------------
# Form slices and global modules
# ---------------------------------------------------------------------------


def form_slices(output: PipelineOutput) -> tuple[FormSlice, ...]:
    """One form slice per object model, deduplicated on the slice key."""
    slices: list[FormSlice] = []
    keys: set[str] = set()
    for compiled in output.compilation.types.values():
        if compiled.kind != "object":
            continue
        slice_name = _SLICE_SUFFIX_RE.sub("", compiled.name) or compiled.name
        key = enum_member_name(slice_name)
        if key in keys:
            logger.debug("Form slice %s already generated; skipping %s", key, compiled.name)
            continue
        keys.add(key)
        slices.append(
            FormSlice(
                type_name=compiled.name,
                slice_name=slice_name,
                domain=output.domains.domain_of(compiled.name),
                key=key,
            )
        )
    return tuple(slices)


def emit_slice(form_slice: FormSlice, *, alias_mode: bool) -> GeneratedFragment:
    """Form state slice typed by a model's serializer."""
    model_path = module_path(
        None,
        form_slice.domain,
        form_slice.type_name,
        alias_mode=alias_mode,
        models_root="../../models",
    )
    imports = (
        ImportSpec(module_path=model_path, name=serializer_identifier(form_slice.type_name)),
        ImportSpec(module_path="../../redux/constants", name="FORM_SLICE"),
    )
    base = sanitize_identifier(to_camel_case(form_slice.slice_name))
    pascal = capitalize(base)
    return GeneratedFragment(
        target=f"{form_slice.module}.ts",
        template="slice.ts.jinja",
        payload={
            "key": form_slice.key,
            "slice": f"{base}Slice",
            "state_type": f"I{pascal}FormState",
            "serializer": serializer_identifier(form_slice.type_name),
            "set_values": f"set{pascal}Values",
            "set_errors": f"set{pascal}Errors",
            "reset": f"reset{pascal}Form",
            "imports": _import_payload(imports),
        },
        imports=imports,
    )


def emit_tags(plans: Sequence[GroupPlan]) -> GeneratedFragment:
    """The ``TAGS`` constant shared by every service."""
    tags: list[str] = []
    for plan in plans:
        if plan.tag not in tags:
            tags.append(plan.tag)
    return GeneratedFragment(target="constants/tags.ts", template="tags.ts.jinja", payload={"tags": tags})


def emit_redux_constants(slices: Sequence[FormSlice]) -> GeneratedFragment:
    """``FORM_SLICE`` map with one sorted entry per form slice."""
    entries = [
        {"key": form_slice.key, "value": string_literal(f"{form_slice.slice_name}-form-slice")}
        for form_slice in sorted(slices, key=lambda form_slice: form_slice.key)
    ]
    return GeneratedFragment(
        target="redux/constants.ts",
        template="redux_constants.ts.jinja",
        payload={"entries": entries},
    )


def emit_store(
    plans: Sequence[GroupPlan],
    slices: Sequence[FormSlice],
    *,
    target: str,
    api_root: str = "..",
    auth_slice_module: str = "../slices/authSlice",
) -> GeneratedFragment:
    """Store combining service reducers, middleware, and form slices."""
    services = [
        {"identifier": service_identifier(plan.name), "module": f"{api_root}/services/{plan.name}"}
        for plan in plans
    ]
    reducers = [
        {"key": form_slice.key, "reducer": form_slice.reducer, "module": f"{api_root}/{form_slice.module}"}
        for form_slice in slices
    ]
    return GeneratedFragment(
        target=target,
        template="store.ts.jinja",
        payload={
            "services": services,
            "form_slices": reducers,
            "constants_module": f"{api_root}/redux/constants",
            "auth_slice_module": auth_slice_module,
        },
    )


def emit_api_config(api_base_path: str) -> GeneratedFragment:
    """Base query configuration rendered with the API base path."""
    return GeneratedFragment(
        target="redux/config/api.ts",
        template="config_api.ts.jinja",
        payload={"base_path": string_literal(api_base_path.strip("/"))},
    )


def emit_runtime_files() -> list[GeneratedFragment]:
    """Support modules copied verbatim into the output."""
    return [GeneratedFragment(target=name, template=name, payload={}) for name in RUNTIME_FILES]


def emit_redux_copy(
    plans: Sequence[GroupPlan],
    slices: Sequence[FormSlice],
    *,
    directory: str,
    api_root: str,
) -> list[GeneratedFragment]:
    """A second store and auth slice placed in an application's redux folder.

    Args:
        plans (Sequence[GroupPlan]): Planned route groups.
        slices (Sequence[FormSlice]): Generated form slices.
        directory (str): Target directory relative to the output directory.
        api_root (str): Path from ``directory`` back to the output directory.

    Returns:
        list[GeneratedFragment]: The store and auth slice fragments.
    """
    prefix = directory.rstrip("/")
    return [
        emit_store(
            plans,
            slices,
            target=f"{prefix}/store.ts",
            api_root=api_root,
            auth_slice_module="./slices/authSlice",
        ),
        GeneratedFragment(
            target=f"{prefix}/slices/authSlice.ts",
            template="slices/authSlice.ts",
            payload={},
        ),
    ]


def _import_payload(imports: Iterable[ImportSpec]) -> list[dict[str, Any]]:
    return [
        {"module_path": group.module_path, "names": list(group.names)}
        for group in group_imports(imports)
    ]


def _comment(text: Optional[str]) -> str:
    if not text:
        return ""
    first_line = text.strip().splitlines()[0].strip() if text.strip() else ""
    return first_line.replace("*/", "*\\/")
