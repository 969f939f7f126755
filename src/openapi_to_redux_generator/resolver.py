"""Import resolution between generated modules."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Optional

from .expressions import schema_identifier, serializer_identifier
from .model_types import DomainAssignment, ImportGroup, ImportSpec

DEFAULT_ALIAS_ROOT = "@/api"
MODELS_DIR = "models"


def module_path(
    from_domain: Optional[str],
    to_domain: str,
    to_name: str,
    *,
    alias_mode: bool,
    models_root: str = "..",
    alias_root: str = DEFAULT_ALIAS_ROOT,
) -> str:
    """Import path of the model module ``models/<to_domain>/<to_name>``.

    Args:
        from_domain (Optional[str]): Domain directory of the importing model
            module, or ``None`` when the importer lives outside ``models/``.
        to_domain (str): Domain of the imported type.
        to_name (str): Name of the imported type.
        alias_mode (bool): Emit ``@/api/models/...`` paths for cross-domain
            imports instead of relative ones.
        models_root (str): Relative path from the importer's directory to
            the models directory's parent of domain folders.
        alias_root (str): Alias prefix mapped to the output directory.

    Returns:
        str: The module specifier to import from.
    """
    if from_domain is not None and from_domain == to_domain:
        return f"./{to_name}"
    if alias_mode:
        return f"{alias_root}/{MODELS_DIR}/{to_domain}/{to_name}"
    return f"{models_root}/{to_domain}/{to_name}"


def model_symbols(
    type_name: str,
    enum_names: frozenset[str],
    *,
    schema: bool = True,
    serializer: bool = True,
) -> tuple[tuple[str, str], ...]:
    """``(identifier, type name)`` pairs a module needs to use a model or enum."""
    if type_name in enum_names:
        return ((type_name, type_name),)
    symbols: list[tuple[str, str]] = []
    if schema:
        symbols.append((schema_identifier(type_name), type_name))
    if serializer:
        symbols.append((serializer_identifier(type_name), type_name))
    return tuple(symbols)


def resolve_imports(
    symbols: Iterable[tuple[str, str]],
    *,
    from_domain: Optional[str],
    domains: DomainAssignment,
    alias_mode: bool,
    models_root: str = "..",
) -> tuple[ImportSpec, ...]:
    """Deduplicated imports for ``(identifier, type name)`` pairs.

    Deduplication is on the ``(identifier, module path)`` pair, so equal
    identifiers coming from different domains are both kept.
    """
    resolved = {
        ImportSpec(
            module_path=module_path(
                from_domain,
                domains.domain_of(type_name),
                type_name,
                alias_mode=alias_mode,
                models_root=models_root,
            ),
            name=identifier,
        )
        for identifier, type_name in symbols
    }
    return tuple(sorted(resolved))


def group_imports(imports: Iterable[ImportSpec]) -> tuple[ImportGroup, ...]:
    """Collapse imports into one statement per module, sorted by path."""
    by_module: dict[str, set[str]] = {}
    for spec in imports:
        by_module.setdefault(spec.module_path, set()).add(spec.name)
    return tuple(
        ImportGroup(module_path=path, names=tuple(sorted(names)))
        for path, names in sorted(by_module.items())
    )
