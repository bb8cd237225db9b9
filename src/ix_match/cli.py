from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from rich.console import Console

from .banner import build_banner_info, print_startup_banner
from .config import Settings, load_config_data, settings_from_data
from .errors import ConfigError, IxMatchError
from .logging_utils import configure_logging, render_fields_block
from .models import RunSummary
from .processor import Processor
from .summary_table import SummaryTableRenderer
from .validation import validate_config_file
from .validation_output import ValidationFormatter
from .version import __version__

LOGGER = logging.getLogger(__name__)
CONSOLE = Console()

COMMANDS = ("run", "validate-config")

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130

RUN_EPILOG = """\
examples:
  ix-match --source /mnt/card --dest /data/flights/2024-06-01
  ix-match run --config ix-match.yaml --dry-run
  ix-match run --config ix-match.yaml --camera-dir 'C*_RGB' --camera-dir 'C*_NIR'
  ix-match run --config ix-match.yaml --grammar phaseone --pair-threshold 0.2

environment:
  IX_MATCH_DRY_RUN     force dry-run on or off when the flag is absent
  IX_MATCH_OVERWRITE   force overwrite on or off when the flag is absent
  LOG_LEVEL            default log level when --log-level is absent
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ix-match",
        description="Group IIQ captures into sessions and move them into an IX Capture import layout.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser(
        "run",
        help="Match, group and move capture files",
        epilog=RUN_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    run_parser.add_argument("--config", type=Path, help="YAML configuration file")
    run_parser.add_argument("--source", type=Path, help="Source directory holding the captures")
    run_parser.add_argument("--dest", type=Path, help="Destination root for the session layout")
    run_parser.add_argument("--tolerance", type=float, help="Maximum gap in seconds within one session")
    run_parser.add_argument(
        "--pair-threshold",
        type=float,
        metavar="SECONDS",
        help="Pair frames of the two --camera-dir cameras captured within SECONDS; unpaired frames go to unmatched/",
    )
    run_parser.add_argument("--grammar", help="Filename grammar name (builtin or from the config's grammars)")
    run_parser.add_argument(
        "--glob",
        dest="globs",
        action="append",
        metavar="PATTERN",
        help="Source filename glob; repeat for several (default: *.iiq)",
    )
    run_parser.add_argument(
        "--camera-dir",
        dest="camera_dirs",
        action="append",
        metavar="PATTERN",
        help="Directory pattern under the source matching exactly one camera directory; repeatable",
    )
    run_parser.add_argument("--copy", action="store_true", help="Copy files instead of moving them")
    run_parser.add_argument("--overwrite", action="store_true", help="Replace files already at the destination")
    run_parser.add_argument("--dry-run", action="store_true", help="Plan only; do not touch any file")
    run_parser.add_argument(
        "--passthrough-unmatched",
        action="store_true",
        help="Move files whose names do not parse into the unmatched directory",
    )
    run_parser.add_argument("--keep-empty", action="store_true", help="Group 0-byte files like any other capture")
    run_parser.add_argument("--json", action="store_true", help="Print the run summary as JSON on stdout")
    _add_logging_arguments(run_parser)

    validate_parser = subparsers.add_parser("validate-config", help="Validate a configuration file")
    validate_parser.add_argument("--config", type=Path, required=True, help="YAML configuration file")
    validate_parser.add_argument("--no-suggestions", action="store_true", help="Hide fix suggestions")

    return parser


def _add_logging_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-level", help="Log level for file and console output (default: INFO)")
    parser.add_argument("--console-level", help="Separate log level for console output")
    parser.add_argument("--log-file", type=Path, help="Write plain-text logs to this file")


def _parse_level(name: Optional[str], *, field_name: str) -> Optional[int]:
    if not name:
        return None
    level = logging.getLevelName(str(name).strip().upper())
    if not isinstance(level, int):
        raise ConfigError(f"{field_name} must be a logging level name, got '{name}'")
    return level


def _resolve_log_levels(args: argparse.Namespace) -> tuple[int, Optional[int]]:
    if getattr(args, "verbose", False):
        return logging.DEBUG, None
    level = _parse_level(getattr(args, "log_level", None) or os.environ.get("LOG_LEVEL"), field_name="--log-level")
    console_level = _parse_level(getattr(args, "console_level", None), field_name="--console-level")
    return level if level is not None else logging.INFO, console_level


def _settings_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if getattr(args, "source", None) is not None:
        overrides["source_dir"] = str(args.source)
    if getattr(args, "dest", None) is not None:
        overrides["destination_dir"] = str(args.dest)
    if getattr(args, "tolerance", None) is not None:
        overrides["tolerance_seconds"] = args.tolerance
    if getattr(args, "pair_threshold", None) is not None:
        overrides["pair_threshold_seconds"] = args.pair_threshold
    if getattr(args, "grammar", None):
        overrides["grammar"] = args.grammar
    if getattr(args, "globs", None):
        overrides["source_globs"] = list(args.globs)
    if getattr(args, "camera_dirs", None):
        overrides["camera_dirs"] = list(args.camera_dirs)
    if getattr(args, "copy", False):
        overrides["transfer_mode"] = "copy"
    if getattr(args, "passthrough_unmatched", False):
        overrides["unmatched"] = "passthrough"
    return overrides


def build_run_settings(args: argparse.Namespace) -> Settings:
    """Layer command-line flags over the optional config file.

    Boolean switches are applied after the environment has been read so that
    an explicit flag always wins over ``IX_MATCH_*`` variables.
    """
    config_path = getattr(args, "config", None)
    data: Dict[str, Any] = load_config_data(config_path) if config_path else {"settings": {}}
    settings = settings_from_data(data, _settings_overrides(args))

    flags: Dict[str, Any] = {}
    if getattr(args, "dry_run", False):
        flags["dry_run"] = True
    if getattr(args, "overwrite", False):
        flags["overwrite"] = True
    if getattr(args, "keep_empty", False):
        flags["keep_empty_files"] = True
    return dataclasses.replace(settings, **flags) if flags else settings


def _exit_code_for(summary: RunSummary) -> int:
    return EXIT_FAILURES if summary.failures else EXIT_OK


def run_process(args: argparse.Namespace) -> int:
    json_output = bool(getattr(args, "json", False))
    verbose = bool(getattr(args, "verbose", False))
    try:
        level, console_level = _resolve_log_levels(args)
        configure_logging(level, console_level=console_level, log_file=getattr(args, "log_file", None))
        settings = build_run_settings(args)
    except ConfigError as exc:
        LOGGER.error(render_fields_block("Invalid Configuration", {"Error": str(exc)}))
        return EXIT_CONFIG

    if not json_output:
        print_startup_banner(build_banner_info(settings, verbose=verbose), CONSOLE)

    processor = Processor(settings, show_progress=not json_output)
    try:
        summary = processor.run()
    except ConfigError as exc:
        LOGGER.error(render_fields_block("Invalid Configuration", {"Error": str(exc)}))
        return EXIT_CONFIG
    except IxMatchError as exc:
        LOGGER.error(render_fields_block("Run Aborted", {"Error": str(exc)}))
        return EXIT_FAILURES

    if json_output:
        sys.stdout.write(json.dumps(summary.as_dict(), indent=2) + "\n")
    else:
        SummaryTableRenderer(CONSOLE).print_summary(summary, destination_dir=settings.destination_dir)
    return _exit_code_for(summary)


def run_validate_config(args: argparse.Namespace) -> int:
    report, _ = validate_config_file(args.config)
    formatter = ValidationFormatter(console=CONSOLE, show_suggestions=not getattr(args, "no_suggestions", False))
    formatter.format_report(report)
    return EXIT_OK if report.is_valid else EXIT_FAILURES


def _normalize_argv(argv: Sequence[str]) -> List[str]:
    tokens = list(argv)
    if tokens and (tokens[0] in COMMANDS or tokens[0] in ("-h", "--help", "--version")):
        return tokens
    return ["run", *tokens]


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(_normalize_argv(sys.argv[1:] if argv is None else argv))

    handlers = {
        "run": run_process,
        "validate-config": run_validate_config,
    }
    try:
        return handlers[args.command](args)
    except KeyboardInterrupt:
        CONSOLE.print("[yellow]Interrupted[/yellow]")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
