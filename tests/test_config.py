"""Unit tests for generator configuration."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from openapi_to_redux_generator.config import (
    DEFAULT_API_BASE_PATH,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_SOURCE,
    ConfigurationError,
    GeneratorConfig,
)
from openapi_to_redux_generator.domains import DEFAULT_DOMAIN_PATTERNS


def test_defaults() -> None:
    """An empty configuration uses the documented defaults."""
    config = GeneratorConfig.from_values()

    assert config.source == DEFAULT_SOURCE
    assert config.output_dir == DEFAULT_OUTPUT_DIR
    assert config.api_base_path == DEFAULT_API_BASE_PATH
    assert config.grouping_depth == 1
    assert config.exclude == ()
    assert config.domain_patterns == DEFAULT_DOMAIN_PATTERNS
    assert config.prettier is False


def test_none_values_fall_back_to_defaults() -> None:
    """Unset options do not override defaults."""
    config = GeneratorConfig.from_values(source=None, output_dir=None, redux_path=None)

    assert config.source == DEFAULT_SOURCE
    assert config.output_dir == DEFAULT_OUTPUT_DIR


def test_base_path_is_trimmed() -> None:
    """Surrounding slashes are removed from the base path."""
    config = GeneratorConfig.from_values(api_base_path="/api/v1/")

    assert config.api_base_path == "api/v1"
    assert config.grouping_depth == 2
    assert GeneratorConfig.from_values(api_base_path="").grouping_depth == 0


def test_exclusions() -> None:
    """Known exclusions are accepted once each."""
    config = GeneratorConfig.from_values(exclude=("thunks", "slices"))

    assert config.is_excluded("thunks")
    assert config.is_excluded("slices")

    with pytest.raises(ConfigurationError, match="unknown exclusion"):
        GeneratorConfig.from_values(exclude=("hooks",))
    with pytest.raises(ConfigurationError, match="more than once"):
        GeneratorConfig.from_values(exclude=("thunks", "thunks"))


@pytest.mark.parametrize(
    "values",
    [
        {"max_schema_depth": 0},
        {"closure_rounds": -1},
        {"domain_patterns": (("(unclosed", "x"),)},
        {"unexpected": True},
    ],
    ids=["depth", "rounds", "pattern", "extra"],
)
def test_invalid_values_raise_configuration_error(values: dict[str, object]) -> None:
    """Invalid options surface as ``ConfigurationError``."""
    with pytest.raises(ConfigurationError):
        GeneratorConfig.from_values(**values)


def test_clean_requires_output_directory() -> None:
    """Cleaning without an output directory is contradictory."""
    with pytest.raises(ValidationError, match="clean requires an output directory"):
        GeneratorConfig.model_validate({"clean": True, "output_dir": None})
    config = GeneratorConfig.from_values(clean=True, output_dir=Path("out"))
    assert config.clean is True
