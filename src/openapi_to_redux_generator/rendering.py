"""Render generated fragments with Jinja2 templates."""

from __future__ import annotations

import functools
from importlib import resources
from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined

from .model_types import GeneratedFragment

TEMPLATE_SUFFIX = ".jinja"
RUNTIME_DIR = "runtime"


def create_environment() -> Environment:
    """Create the Jinja2 environment for TypeScript templates.

    Output is source code, so autoescaping is off; undefined payload keys are
    errors rather than empty strings.
    """
    return Environment(
        loader=PackageLoader("openapi_to_redux_generator", "templates"),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


@functools.cache
def template_environment() -> Environment:
    """Shared, read-only template environment."""
    return create_environment()


def render(template_name: str, payload: dict[str, Any]) -> str:
    """Render one template with a payload dictionary."""
    return template_environment().get_template(template_name).render(**payload)


def runtime_source(name: str) -> str:
    """Text of a support module shipped under ``runtime/``."""
    resource = resources.files("openapi_to_redux_generator").joinpath(RUNTIME_DIR, *name.split("/"))
    return resource.read_text(encoding="utf-8")


def render_fragment(fragment: GeneratedFragment) -> str:
    """Render a templated fragment or return the runtime file it copies."""
    if fragment.template.endswith(TEMPLATE_SUFFIX):
        return render(fragment.template, fragment.payload)
    return runtime_source(fragment.template)
