"""OpenAPI to Redux Toolkit generator package."""

from __future__ import annotations

from .cli import main
from .config import ConfigurationError, GeneratorConfig
from .generator import GenerationResult, generate_files, run_generation
from .pipeline import run_pipeline

__all__ = [
    "ConfigurationError",
    "GenerationResult",
    "GeneratorConfig",
    "generate_files",
    "main",
    "run_generation",
    "run_pipeline",
]
