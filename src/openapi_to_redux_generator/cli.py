"""Command line interface for Redux Toolkit API generation."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

from .config import DEFAULT_API_BASE_PATH, DEFAULT_OUTPUT_DIR, DEFAULT_SOURCE, ConfigurationError, GeneratorConfig
from .emitters import EXCLUDABLE_ARTIFACTS
from .generator import SpecLoadError, WriteError, run_generation


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    parser = argparse.ArgumentParser(
        prog="openapi-to-redux-generator",
        description="Generate zod models and Redux Toolkit services from an OpenAPI or Swagger document",
    )
    parser.add_argument(
        "-u",
        "--url",
        default=DEFAULT_SOURCE,
        help=f"URL or file path of the specification (default: {DEFAULT_SOURCE})",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=str(DEFAULT_OUTPUT_DIR),
        help=f"Output directory for generated modules (default: {DEFAULT_OUTPUT_DIR})",
    )
    parser.add_argument(
        "-b",
        "--api-base-path",
        default=DEFAULT_API_BASE_PATH,
        help=f"Base path shared by every route, e.g. api/v1 (default: {DEFAULT_API_BASE_PATH})",
    )
    parser.add_argument(
        "-e",
        "--exclude",
        action="append",
        choices=sorted(EXCLUDABLE_ARTIFACTS),
        default=[],
        help="Artifact kind to skip; may be repeated",
    )
    parser.add_argument("-c", "--clean", action="store_true", help="Remove the output directory first")
    parser.add_argument(
        "-s",
        "--skip-validation",
        action="store_true",
        help="Do not validate OpenAPI 3 documents before generating",
    )
    parser.add_argument(
        "--prettier",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Format the output with prettier",
    )
    parser.add_argument(
        "--use-alias",
        action="store_true",
        help="Import models across domains through the @/api alias",
    )
    parser.add_argument(
        "--redux-path",
        default=None,
        help="Directory that receives a second store and auth slice",
    )
    parser.add_argument(
        "--domain-pattern",
        action="append",
        nargs=2,
        metavar=("REGEX", "DOMAIN"),
        default=None,
        help="Schema name pattern and the domain it maps to; replaces the defaults",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress details")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Run CLI and return process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = GeneratorConfig.from_values(
            source=args.url,
            output_dir=Path(args.output),
            api_base_path=args.api_base_path,
            use_alias_imports=args.use_alias,
            exclude=tuple(args.exclude),
            clean=args.clean,
            skip_validation=args.skip_validation,
            prettier=args.prettier,
            redux_path=Path(args.redux_path) if args.redux_path else None,
            verbose=args.verbose,
            domain_patterns=(
                tuple(tuple(pair) for pair in args.domain_pattern) if args.domain_pattern else None
            ),
        )
        result = run_generation(config)
    except (ConfigurationError, SpecLoadError, WriteError) as exc:
        parser.error(str(exc))
        return 2

    for warning in result.warnings:
        print(f"Warning: {warning}")
    print(f"Generated {len(result.files)} files in {result.output_dir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
