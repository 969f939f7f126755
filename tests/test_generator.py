"""Integration tests for generator behavior."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import pytest

from openapi_to_redux_generator.cli import main
from openapi_to_redux_generator.config import GeneratorConfig
from openapi_to_redux_generator.generator import WriteError, generate_files, run_generation
from .fixture_helpers import (
    CRM_BASE_PATH,
    CRM_FIXTURE,
    base_path_for,
    fixture_dir,
    load_fixture,
    parametrize_fixtures,
)

_SRC_DIR = Path(__file__).resolve().parents[1] / "src"


def _config(fixture_path: Path, output_dir: Path, **values: object) -> GeneratorConfig:
    return GeneratorConfig.from_values(
        source=str(fixture_path),
        output_dir=output_dir,
        api_base_path=base_path_for(fixture_path),
        **values,
    )


def _tree(output_dir: Path) -> dict[str, str]:
    return {
        path.relative_to(output_dir).as_posix(): path.read_text(encoding="utf-8")
        for path in sorted(output_dir.rglob("*"))
        if path.is_file()
    }


@parametrize_fixtures()
def test_generation_smoke(fixture_path: Path, tmp_path: Path) -> None:
    """Each fixture should generate a TypeScript tree without crashing."""
    output_dir = tmp_path / fixture_path.stem
    result = run_generation(_config(fixture_path, output_dir))

    assert Path(result.output_dir) == output_dir
    assert (output_dir / "models").is_dir()
    assert (output_dir / "services").is_dir()
    assert (output_dir / "redux" / "store.ts").is_file()
    assert sorted(result.files) == sorted(_tree(output_dir))


@parametrize_fixtures()
def test_generation_is_idempotent(fixture_path: Path, tmp_path: Path) -> None:
    """Two runs over the same input write byte-identical trees."""
    first = tmp_path / "first"
    second = tmp_path / "second"
    run_generation(_config(fixture_path, first))
    run_generation(_config(fixture_path, second))

    assert _tree(first) == _tree(second)


def test_generate_files_is_deterministic() -> None:
    """In-memory generation yields the same files in the same order."""
    document = load_fixture(CRM_FIXTURE)
    config = GeneratorConfig.from_values(api_base_path=CRM_BASE_PATH)

    first = generate_files(document, config)
    second = generate_files(document, config)

    assert list(first.files.items()) == list(second.files.items())
    assert first.diagnostics == second.diagnostics


def test_warnings_are_reported(tmp_path: Path) -> None:
    """Uncategorized types surface as warnings rather than failures."""
    result = run_generation(_config(fixture_dir() / CRM_FIXTURE, tmp_path / "out"))

    assert any(
        warning.startswith("[domain-resolution-exhausted] TreeNode:") for warning in result.warnings
    ), result.warnings


def test_clean_removes_previous_output(tmp_path: Path) -> None:
    """Stale files survive a normal run and disappear with ``clean``."""
    fixture_path = fixture_dir() / CRM_FIXTURE
    output_dir = tmp_path / "api"
    stale = output_dir / "services" / "stale.ts"
    stale.parent.mkdir(parents=True)
    stale.write_text("export {}\n", encoding="utf-8")

    run_generation(_config(fixture_path, output_dir))
    assert stale.exists()

    run_generation(_config(fixture_path, output_dir, clean=True))
    assert not stale.exists()
    assert (output_dir / "services" / "leads.ts").is_file()


def test_exclusions_are_honoured(tmp_path: Path) -> None:
    """Excluded thunks and slices are not written."""
    output_dir = tmp_path / "api"
    run_generation(_config(fixture_dir() / CRM_FIXTURE, output_dir, exclude=("thunks", "slices")))

    assert not (output_dir / "thunks").exists()
    assert [path.name for path in (output_dir / "slices").iterdir()] == ["authSlice.ts"]
    assert (output_dir / "hooks" / "leads.ts").is_file()


def test_redux_copy_is_written_beside_output(tmp_path: Path) -> None:
    """The optional redux path receives a store importing the output tree."""
    output_dir = tmp_path / "src" / "api"
    redux_dir = tmp_path / "src" / "redux"
    run_generation(_config(fixture_dir() / CRM_FIXTURE, output_dir, redux_path=redux_dir))

    store = (redux_dir / "store.ts").read_text(encoding="utf-8")
    assert "import { leadsApi } from '../api/services/leads'" in store
    assert (redux_dir / "slices" / "authSlice.ts").is_file()


def test_generation_invokes_prettier_formatting(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Generation should run prettier on the output directory when asked."""
    output_dir = tmp_path / "formatted"
    captured: dict[str, Path] = {}

    def _fake_format(*, output_dir: Path) -> None:
        captured["output_dir"] = output_dir

    monkeypatch.setattr(
        "openapi_to_redux_generator.generator.format_generated_tree",
        _fake_format,
    )

    run_generation(_config(fixture_dir() / CRM_FIXTURE, output_dir, prettier=True))
    assert captured == {"output_dir": output_dir}


def test_missing_formatter_is_a_write_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A formatter that cannot be executed surfaces as ``WriteError``."""
    monkeypatch.setattr(
        "openapi_to_redux_generator.writer._PRETTIER_COMMAND",
        ("openapi-to-redux-generator-missing-formatter",),
    )

    with pytest.raises(WriteError, match="Failed to execute prettier"):
        run_generation(_config(fixture_dir() / CRM_FIXTURE, tmp_path / "out", prettier=True))


def test_cli_generates_files(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """The CLI writes the tree and reports warnings and a summary."""
    output_dir = tmp_path / "api"
    exit_code = main(
        [
            "--url",
            str(fixture_dir() / CRM_FIXTURE),
            "--output",
            str(output_dir),
            "--api-base-path",
            CRM_BASE_PATH,
            "--exclude",
            "thunks",
        ]
    )

    captured = capsys.readouterr()
    assert exit_code == 0
    assert "Warning: [domain-resolution-exhausted] TreeNode" in captured.out
    assert f"in {output_dir}" in captured.out
    assert (output_dir / "services" / "leads.ts").is_file()
    assert not (output_dir / "thunks").exists()


def test_cli_reports_load_failures(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Fatal errors exit through the argument parser with status 2."""
    with pytest.raises(SystemExit) as excinfo:
        main(["--url", str(tmp_path / "missing.yaml"), "--output", str(tmp_path / "api")])

    assert excinfo.value.code == 2
    assert "Failed to read specification file" in capsys.readouterr().err


def test_cli_help_screen() -> None:
    """Running the CLI help should succeed and print usage information."""
    python_path = [str(_SRC_DIR), os.environ.get("PYTHONPATH", "")]
    env = {**os.environ, "PYTHONPATH": os.pathsep.join(part for part in python_path if part)}
    result = subprocess.run(
        [sys.executable, "-m", "openapi_to_redux_generator", "--help"],
        check=False,
        capture_output=True,
        text=True,
        env=env,
    )
    assert result.returncode == 0
    assert "usage:" in result.stdout.lower()
    assert "--api-base-path" in result.stdout
