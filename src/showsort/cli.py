from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import yaml
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .compiler import PatternCompileError, build_rulebook
from .config import AppConfig, load_config, resolve_config_path
from .logging_utils import configure_logging, render_fields_block
from .processor import BatchProcessor
from .summary_table import SummaryTableRenderer
from .utils import load_yaml_file
from .validation import ValidationReport, validate_config_data
from .version import __version__

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFLICT = 1
EXIT_CONFIG_ERROR = 2


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Rule table YAML (default: $SHOWSORT_CONFIG or ./showsort.yaml)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to the console")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        type=str.upper,
        help="Console log level (overrides settings.log_level)",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="Also write a full debug log to this file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="showsort",
        description="Classify ingest folder entries into show, season and episode using regex rule groups.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    classify = subparsers.add_parser("classify", help="Classify every entry of the source directory")
    _add_common_arguments(classify)
    classify.add_argument("-s", "--source", type=Path, default=None, help="Directory to list (overrides settings)")
    classify.add_argument("--no-summary", action="store_true", help="Do not print the summary tables")
    classify.add_argument("--progress", action="store_true", help="Show a progress bar while classifying")
    classify.set_defaults(handler=run_classify)

    validate = subparsers.add_parser("validate", help="Validate the rule table without classifying anything")
    _add_common_arguments(validate)
    validate.set_defaults(handler=run_validate)

    return parser


def _load_app_config(args: argparse.Namespace) -> Optional[AppConfig]:
    config_path = resolve_config_path(args.config)
    try:
        config = load_config(config_path)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        LOGGER.error(
            render_fields_block(
                "Configuration Error",
                {"Config": config_path, "Error": exc},
            )
        )
        return None

    settings = config.settings
    level_from_settings = args.log_level is None and settings.log_level != "INFO"
    file_from_settings = settings.log_file is not None and args.log_file is None
    if level_from_settings or file_from_settings:
        configure_logging(
            args.log_level or settings.log_level,
            verbose=args.verbose,
            log_file=args.log_file or settings.log_file,
        )
    return config


def run_classify(args: argparse.Namespace) -> int:
    configure_logging(args.log_level or "INFO", verbose=args.verbose, log_file=args.log_file)

    config = _load_app_config(args)
    if config is None:
        return EXIT_CONFIG_ERROR

    try:
        rulebook = build_rulebook(config)
    except PatternCompileError as exc:
        LOGGER.error(
            render_fields_block(
                "Rule Table Error",
                {"Show": exc.show or "(global)", "Kind": exc.kind, "Template": exc.template, "Error": exc.detail},
            )
        )
        return EXIT_CONFIG_ERROR

    source_dir = args.source or config.settings.source_dir
    processor = BatchProcessor(rulebook, show_progress=args.progress)
    try:
        report = processor.run_directory(source_dir)
    except (FileNotFoundError, NotADirectoryError) as exc:
        LOGGER.error(render_fields_block("Source Directory Error", {"Path": source_dir, "Error": exc}))
        return EXIT_CONFIG_ERROR

    if not args.no_summary:
        SummaryTableRenderer().print_report(report)

    if report.aborted:
        conflict = report.conflict
        LOGGER.error(
            "Error classifying %s %s: %s",
            "dir" if conflict.entry.is_dir else "file",
            conflict.entry.name,
            conflict.result.describe(),
        )
        return EXIT_CONFLICT
    return EXIT_OK


def _render_validation_report(report: ValidationReport, console: Console) -> None:
    if not report.errors and not report.warnings:
        console.print("[green]✓ Rule table is valid[/green]")
        return
    table = Table(title="Rule Table Validation", show_header=True, header_style="bold")
    table.add_column("Severity")
    table.add_column("Path", style="cyan")
    table.add_column("Code")
    table.add_column("Message", overflow="fold")
    for issue in [*report.errors, *report.warnings]:
        style = "red" if issue.severity == "error" else "yellow"
        table.add_row(Text(issue.severity, style=style), Text(issue.path), issue.code, Text(issue.message))
    console.print(table)


def run_validate(args: argparse.Namespace, console: Optional[Console] = None) -> int:
    configure_logging(args.log_level or "INFO", verbose=args.verbose, log_file=args.log_file)
    config_path = resolve_config_path(args.config)
    try:
        data = load_yaml_file(config_path)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        LOGGER.error(render_fields_block("Configuration Error", {"Config": config_path, "Error": exc}))
        return EXIT_CONFIG_ERROR

    report = validate_config_data(data)
    _render_validation_report(report, console or Console())
    return EXIT_OK if report.is_valid else EXIT_CONFIG_ERROR


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
