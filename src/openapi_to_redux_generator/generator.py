"""High-level generator orchestration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .config import DEFAULT_OUTPUT_DIR, GeneratorConfig
from .diagnostics import Diagnostic
from .emitters import SLICES, THUNKS, EmitOptions, emit_fragments
from .json_types import JSONObject
from .loader import SpecLoadError, load_document
from .pipeline import PipelineOptions, run_pipeline
from .rendering import render_fragment
from .writer import WriteError, create_output_layout, format_generated_tree, write_files

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedTree:
    """Rendered modules keyed by output-relative path, plus diagnostics."""

    files: dict[str, str]
    diagnostics: tuple[Diagnostic, ...]


@dataclass(frozen=True)
class GenerationResult:
    """Summary of one generation run."""

    output_dir: str
    files: tuple[str, ...]
    diagnostics: tuple[Diagnostic, ...]

    @property
    def warnings(self) -> tuple[str, ...]:
        """Diagnostics formatted for display."""
        return tuple(str(diagnostic) for diagnostic in self.diagnostics)


def pipeline_options(config: GeneratorConfig) -> PipelineOptions:
    """Translation options derived from a configuration."""
    return PipelineOptions(
        api_base_path=config.api_base_path,
        domain_patterns=config.domain_patterns,
        max_schema_depth=config.max_schema_depth,
        closure_rounds=config.closure_rounds,
    )


def emit_options(config: GeneratorConfig) -> EmitOptions:
    """Output options derived from a configuration.

    The optional redux copy directory is expressed relative to the output
    directory, together with the way back, so that fragments stay
    output-relative.
    """
    redux_copy_dir = None
    redux_copy_root = ".."
    if config.redux_path is not None:
        output_dir = (config.output_dir or DEFAULT_OUTPUT_DIR).resolve()
        redux_dir = config.redux_path.resolve()
        redux_copy_dir = Path(os.path.relpath(redux_dir, output_dir)).as_posix()
        redux_copy_root = Path(os.path.relpath(output_dir, redux_dir)).as_posix()
    return EmitOptions(
        use_alias_imports=config.use_alias_imports,
        exclude=frozenset(config.exclude),
        api_base_path=config.api_base_path,
        redux_copy_dir=redux_copy_dir,
        redux_copy_root=redux_copy_root,
    )


def generate_files(document: JSONObject, config: GeneratorConfig) -> GeneratedTree:
    """Translate a parsed document into rendered TypeScript modules.

    Args:
        document (JSONObject): Parsed specification in either dialect.
        config (GeneratorConfig): Generation options.

    Returns:
        GeneratedTree: Rendered files and the diagnostics of the run.
    """
    output = run_pipeline(document, pipeline_options(config))
    options = emit_options(config)
    if THUNKS in options.exclude:
        logger.info("Skipping thunk generation")
    if SLICES in options.exclude:
        logger.info("Skipping form slice generation")
    files = {fragment.target: render_fragment(fragment) for fragment in emit_fragments(output, options)}
    return GeneratedTree(files=files, diagnostics=output.diagnostics)


def run_generation(config: GeneratorConfig) -> GenerationResult:
    """Load a specification and write the generated TypeScript tree.

    Args:
        config (GeneratorConfig): Generation options.

    Returns:
        GenerationResult: Output location, written files, and diagnostics.
    """
    document = load_document(
        config.source,
        timeout=config.timeout,
        skip_validation=config.skip_validation,
    )
    tree = generate_files(document, config)

    output_dir = create_output_layout(config.output_dir or DEFAULT_OUTPUT_DIR, clean=config.clean)
    write_files(output_dir=output_dir, files=tree.files)
    if config.prettier:
        format_generated_tree(output_dir=output_dir)

    logger.info("Generated %d files in %s", len(tree.files), output_dir)
    return GenerationResult(
        output_dir=str(output_dir),
        files=tuple(tree.files),
        diagnostics=tree.diagnostics,
    )


__all__ = [
    "GeneratedTree",
    "GenerationResult",
    "SpecLoadError",
    "WriteError",
    "generate_files",
    "run_generation",
]
