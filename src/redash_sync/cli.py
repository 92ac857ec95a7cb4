"""Command-line entry point for redash-sync.

Loads configuration (CLI > env / .env > YAML > defaults), checks the
Redash connection, runs one reconciliation pass, and prints the run
summary.  Prompts, diffs and the summary go to stdout; log records go to
stderr.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

import yaml
from dotenv import find_dotenv, load_dotenv

from . import __version__
from .config import Config, load_config
from .config_loader import discover_config_files, load_hierarchical_config
from .config_schema import UnifiedConfig, build_config
from .core.client import RedashClient
from .errors import ConfigurationError, TransportError
from .logger import setup_logging
from .sync import (
    DiffPresenter,
    QueryStore,
    RunStatus,
    SyncEngine,
    create_resolver,
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)
from .sync.resolver import STRATEGIES, InteractiveResolver

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)


def _prompt_on_stderr(prompt: str) -> str:
    sys.stderr.write(prompt)
    sys.stderr.flush()
    return input()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="redash-sync",
        description="Sync Redash queries with a local directory of .sql files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sync using REDASH_URL / REDASH_API_KEY from the environment or .env
  redash-sync

  # Preview what would change
  redash-sync --dry-run

  # Unattended: always push local edits, keep local side in conflicts
  redash-sync --strategy local-wins

Environment variables:
  REDASH_URL      Base URL of your Redash instance
  REDASH_API_KEY  Your Redash API key
        """,
    )
    parser.add_argument(
        "--url",
        help="Override Redash URL (takes precedence over REDASH_URL and config files)",
    )
    parser.add_argument(
        "--api-key",
        help="Override Redash API key (visible in process list -- prefer REDASH_API_KEY)",
    )
    parser.add_argument(
        "--queries-dir",
        help="Directory holding the local query mirror (default: queries)",
    )
    parser.add_argument(
        "--strategy",
        choices=STRATEGIES,
        help="How to answer push and conflict questions (default: interactive)",
    )
    parser.add_argument(
        "--diff-tool",
        help="External diff tool for reviews (supported: git)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Classify queries without prompting, pushing or writing",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the run report as JSON",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        help="Also append log records to this file",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"redash-sync version {__version__}",
    )
    return parser


def _load_settings(args: argparse.Namespace) -> tuple[Config, UnifiedConfig]:
    """Resolve configuration from all sources.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    load_dotenv(find_dotenv(usecwd=True))

    unified = UnifiedConfig()
    if discover_config_files():
        try:
            unified = build_config(load_hierarchical_config())
        except (ValueError, OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"Invalid config file: {exc}") from exc

    config = load_config(
        url=args.url,
        api_key=args.api_key,
        queries_dir=args.queries_dir,
        diff_tool=args.diff_tool,
        debug=args.debug,
        yaml_fallbacks=unified.fallbacks(),
    )
    return config, unified


def _print_report(report: Any, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report_to_json(report), indent=2))
    elif report.dry_run:
        print(format_dry_run_preview(report))
    else:
        print(format_sync_report(report))


def main(argv: list[str] | None = None) -> int:
    """Run one sync pass and return the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        config, unified = _load_settings(args)
    except ConfigurationError as exc:
        setup_logging(debug=args.debug, log_file=args.log_file)
        logger.error("Configuration error: %s", exc)
        _stderr_print(f"ERROR: Configuration error: {exc}")
        return 1

    setup_logging(
        debug=config.debug,
        log_file=args.log_file or unified.logging.file,
        level=unified.logging.level,
    )
    logger.info("Redash URL: %s", config.redash_url)

    client = RedashClient(config)
    try:
        user = client.validate_connection()
    except TransportError as exc:
        logger.error("Failed to connect to Redash: %s", exc)
        _stderr_print(f"ERROR: Redash connection failed: {exc}")
        _stderr_print("  Check REDASH_URL and REDASH_API_KEY.")
        return 1
    logger.info("Connected to Redash as %s", user or "(unknown user)")

    strategy = args.strategy or unified.sync.strategy
    # With --json, stdout carries only the report
    operator_out = sys.stderr if args.json else sys.stdout
    try:
        if strategy == "interactive" and args.json:
            resolver = InteractiveResolver(input_func=_prompt_on_stderr, output=operator_out)
        else:
            resolver = create_resolver(strategy)
    except ValueError as exc:
        _stderr_print(f"ERROR: {exc}")
        return 1

    presenter = (
        DiffPresenter(output=operator_out, tool=config.diff_tool)
        if strategy == "interactive"
        else None
    )
    engine = SyncEngine(
        client=client,
        store=QueryStore(Path(config.queries_dir)),
        resolver=resolver,
        presenter=presenter,
    )

    logger.info("Fetching queries...")
    report = engine.run(dry_run=args.dry_run)
    _print_report(report, args.json)

    if client.quarantined:
        _stderr_print(
            f"Warning: {len(client.quarantined)} malformed queries were skipped."
        )

    return 1 if report.status == RunStatus.FAILED else 0


def run() -> None:
    """Console-script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
