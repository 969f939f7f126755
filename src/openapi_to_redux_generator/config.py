"""Generator configuration."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .domains import DEFAULT_CLOSURE_ROUNDS, DEFAULT_DOMAIN_PATTERNS
from .emitters import EXCLUDABLE_ARTIFACTS
from .routes import grouping_depth_for
from .schema_compiler import DEFAULT_MAX_DEPTH

DEFAULT_SOURCE = "http://localhost:8000/swagger.json"
DEFAULT_OUTPUT_DIR = Path("src/api")
DEFAULT_API_BASE_PATH = "api"


class ConfigurationError(RuntimeError):
    """Raised when generator options contradict each other."""


class GeneratorConfig(BaseModel):
    """Validated options of one generation run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: str = DEFAULT_SOURCE
    output_dir: Optional[Path] = DEFAULT_OUTPUT_DIR
    api_base_path: str = DEFAULT_API_BASE_PATH
    use_alias_imports: bool = False
    exclude: tuple[str, ...] = ()
    clean: bool = False
    skip_validation: bool = False
    prettier: bool = False
    redux_path: Optional[Path] = None
    verbose: bool = False
    domain_patterns: tuple[tuple[str, str], ...] = DEFAULT_DOMAIN_PATTERNS
    max_schema_depth: int = Field(default=DEFAULT_MAX_DEPTH, gt=0)
    closure_rounds: int = Field(default=DEFAULT_CLOSURE_ROUNDS, gt=0)
    timeout: float = Field(default=30.0, gt=0)

    @field_validator("api_base_path")
    @classmethod
    def _strip_base_path(cls, value: str) -> str:
        return value.strip().strip("/")

    @field_validator("exclude")
    @classmethod
    def _check_exclusions(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        unknown = [item for item in value if item not in EXCLUDABLE_ARTIFACTS]
        if unknown:
            allowed = ", ".join(sorted(EXCLUDABLE_ARTIFACTS))
            raise ValueError(f"unknown exclusion {unknown[0]!r}; expected one of {allowed}")
        duplicates = sorted({item for item in value if value.count(item) > 1})
        if duplicates:
            raise ValueError(f"exclusion {duplicates[0]!r} given more than once")
        return value

    @field_validator("domain_patterns")
    @classmethod
    def _check_patterns(cls, value: tuple[tuple[str, str], ...]) -> tuple[tuple[str, str], ...]:
        for pattern, _ in value:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"invalid domain pattern {pattern!r}: {exc}") from exc
        return value

    @model_validator(mode="after")
    def _check_clean(self) -> GeneratorConfig:
        if self.clean and self.output_dir is None:
            raise ValueError("clean requires an output directory")
        return self

    @classmethod
    def from_values(cls, **values: Any) -> GeneratorConfig:
        """Build a configuration, reporting invalid options as ``ConfigurationError``.

        ``None`` values are dropped so that unset command line flags fall back
        to the defaults.
        """
        provided = {key: value for key, value in values.items() if value is not None}
        try:
            return cls.model_validate(provided)
        except ValidationError as exc:
            messages = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}"
                for error in exc.errors()
            )
            raise ConfigurationError(f"Invalid generator configuration: {messages}") from exc

    @property
    def grouping_depth(self) -> int:
        """Number of base path segments skipped when grouping routes."""
        return grouping_depth_for(self.api_base_path)

    def is_excluded(self, artifact: str) -> bool:
        """Whether an artifact kind is excluded."""
        return artifact in self.exclude
