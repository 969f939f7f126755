"""Filesystem writers for generated TypeScript modules."""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

_PRETTIER_COMMAND: tuple[str, ...] = ("npx", "--yes", "prettier")


class WriteError(RuntimeError):
    """Raised when output files cannot be written."""


def create_output_layout(output_dir: Path, *, clean: bool = False) -> Path:
    """Create the output directory, removing a previous tree when asked.

    Args:
        output_dir (Path): Root output directory.
        clean (bool): Delete ``output_dir`` before generating.

    Returns:
        Path: The created output directory.
    """
    if clean and output_dir.exists():
        logger.debug("Removing previous output %s", output_dir)
        try:
            shutil.rmtree(output_dir)
        except OSError as exc:
            raise WriteError(f"Failed to clean output directory {output_dir}: {exc}") from exc
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise WriteError(f"Failed to create output directory {output_dir}: {exc}") from exc
    return output_dir


def write_files(*, output_dir: Path, files: Mapping[str, str]) -> tuple[Path, ...]:
    """Write rendered modules below the output directory.

    Args:
        output_dir (Path): Root output directory.
        files (Mapping[str, str]): Output-relative paths to file contents.

    Returns:
        tuple[Path, ...]: Written paths in the order of ``files``.
    """
    written: list[Path] = []
    for target, content in files.items():
        path = output_dir / target
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WriteError(f"Failed to create directory {path.parent}: {exc}") from exc
        _write_file(path, content)
        written.append(path)
    logger.debug("Wrote %d files to %s", len(written), output_dir)
    return tuple(written)


def format_generated_tree(*, output_dir: Path) -> None:
    """Run prettier over the generated tree.

    Args:
        output_dir (Path): Generated output directory to format.
    """
    _run_prettier(output_dir=output_dir, args=("--write", str(output_dir)))


def _run_prettier(*, output_dir: Path, args: tuple[str, ...]) -> None:
    command = [*_PRETTIER_COMMAND, *args]
    command_desc = " ".join(args)
    try:
        subprocess.run(
            command,
            check=True,
            capture_output=True,
            text=True,
        )
    except OSError as exc:
        raise WriteError(f"Failed to execute prettier {command_desc} for {output_dir}: {exc}") from exc
    except subprocess.CalledProcessError as exc:
        error_text = exc.stderr.strip() or exc.stdout.strip() or str(exc)
        raise WriteError(f"prettier {command_desc} failed for {output_dir}: {error_text}") from exc


def _write_file(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise WriteError(f"Failed to write file {path}: {exc}") from exc
