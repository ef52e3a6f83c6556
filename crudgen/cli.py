# File: crudgen/cli.py
"""
crudgen - Command-Line Interface
==================================

``argparse`` front end for ``CodeGenerator``.

Usage examples::

    # Generate next to the sources (output root = the source root)
    crudgen -m shop.entities -o ./src

    # Several modules, sub-packages too, from a config file
    crudgen --config crudgen.yaml -m shop --recursive -v

    # Validate only (no file output)
    crudgen -m shop.entities --validate-only

    # Transfer types only, nothing written
    crudgen -m shop.entities -o ./src --no-crud --dry-run

Exit codes:
    0 — success
    1 — validation error
    2 — generation error
    3 — export error
    4 — input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

from crudgen.exceptions import ConfigurationError

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root crudgen logger based on verbosity level.

    Args:
        verbosity: -1 = CRITICAL only, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.CRITICAL

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("crudgen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from crudgen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="crudgen",
        description=(
            "crudgen — CRUD base and transfer-type generator.\n\n"
            "Scans modules for @codegen classes and writes <Name>CRUD, "
            "<Name>DTO and <Name>DTI modules next to them."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -m shop.entities -o ./src\n"
            "  %(prog)s --config crudgen.yaml -m shop --recursive -v\n"
            "  %(prog)s -m shop.entities --validate-only\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"crudgen v{__version__}",
    )

    # --- Input ---
    input_group = parser.add_argument_group("input")
    input_group.add_argument(
        "-m", "--module",
        dest="modules",
        action="append",
        default=None,
        metavar="MODULE",
        help="Dotted module to scan for @codegen classes (repeatable).",
    )
    input_group.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="PATH",
        help="YAML or JSON configuration file; flags override its values.",
    )
    input_group.add_argument(
        "--recursive",
        action="store_true",
        default=None,
        help="Also scan the sub-modules of package inputs.",
    )
    input_group.add_argument(
        "--sys-path",
        dest="sys_path",
        action="append",
        default=None,
        metavar="DIR",
        help="Directory prepended to sys.path before importing (repeatable).",
    )

    # --- Output ---
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help="Output root; generated modules land at their package paths below it.",
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only validate the discovered classes without generating code.",
    )
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Run the full pipeline but don't write files to disk.",
    )

    # --- Artifacts ---
    artifact_group = parser.add_argument_group("artifacts")
    artifact_group.add_argument(
        "--no-crud", action="store_true", default=False, help="Skip <Name>CRUD bases."
    )
    artifact_group.add_argument(
        "--no-dto", action="store_true", default=False, help="Skip <Name>DTO carriers."
    )
    artifact_group.add_argument(
        "--no-dti", action="store_true", default=False, help="Skip <Name>DTI interfaces."
    )

    # --- Behaviour flags ---
    behaviour_group = parser.add_argument_group("behaviour flags")
    behaviour_group.add_argument(
        "--clean",
        action="store_true",
        default=False,
        help="Remove files listed in the previous manifest before writing.",
    )
    behaviour_group.add_argument(
        "--no-manifest",
        action="store_true",
        default=False,
        help="Do not write crudgen-manifest.json.",
    )
    behaviour_group.add_argument(
        "--no-strict",
        action="store_true",
        default=False,
        help="Generate even if validation has errors.",
    )
    behaviour_group.add_argument(
        "--fail-on-warnings",
        action="store_true",
        default=False,
        help="Treat validation warnings as errors.",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except critical errors.",
    )

    return parser


# ---------------------------------------------------------------------------
# Config override builder
# ---------------------------------------------------------------------------


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Config values set explicitly on the command line."""
    overrides: Dict[str, Any] = {}

    if args.modules:
        overrides["modules"] = list(args.modules)
    if args.sys_path:
        overrides["sys_path"] = list(args.sys_path)
    if args.recursive:
        overrides["recursive"] = True
    if args.output is not None:
        overrides["output_dir"] = args.output
    if args.no_crud:
        overrides["generate_crud"] = False
    if args.no_dto:
        overrides["generate_dto"] = False
    if args.no_dti:
        overrides["generate_dti"] = False
    if args.clean:
        overrides["clean_output"] = True
    if args.no_manifest:
        overrides["write_manifest"] = False

    return overrides


def _exit_code_for(report: Any) -> int:
    if report.success:
        return EXIT_SUCCESS
    if report.input_errors:
        return EXIT_INPUT_ERROR
    if report.validation_errors or report.validation_warnings:
        return EXIT_VALIDATION_ERROR
    if report.generation_errors:
        return EXIT_GENERATION_ERROR
    if report.export_errors:
        return EXIT_EXPORT_ERROR
    return EXIT_GENERATION_ERROR


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Parse *argv*, run the pipeline and return the exit code."""
    from crudgen.generator import (
        CodeGenerator,
        GenerationReport,
        build_config,
        load_config_file,
    )

    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    verbosity: int = -1 if args.quiet else args.verbose
    _setup_logging(verbosity)

    try:
        raw: Dict[str, Any] = (
            load_config_file(Path(args.config)) if args.config else {}
        )
        config = build_config(raw, _build_config_overrides(args))
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return EXIT_INPUT_ERROR

    if not config.modules:
        logger.error("No modules to scan. Use -m/--module or a config file.")
        parser.print_usage(sys.stderr)
        return EXIT_INPUT_ERROR

    logger.info("Modules: %s", ", ".join(config.modules))
    logger.info("Output:  %s", config.output_dir)
    logger.info("Strict:  %s", not args.no_strict)

    generator: CodeGenerator = CodeGenerator(
        config,
        strict_validation=not args.no_strict,
        fail_on_warnings=args.fail_on_warnings,
    )
    report: GenerationReport = generator.run(
        dry_run=args.dry_run,
        validate_only=args.validate_only,
    )

    if not args.quiet:
        if args.validate_only and report.validation is not None:
            print(report.validation.format_report(include_info=args.verbose >= 1))
        else:
            print(report.summary())

    exit_code: int = _exit_code_for(report)
    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)
    return exit_code


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Console-script entry point.

    Can be called from ``__main__.py`` or directly for testing.
    """
    sys.exit(run(argv))


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "run",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("crudgen.cli loaded.")
