"""Freight CLI entry points.
This module exposes ingest and store administration commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Sequence

from dotenv import load_dotenv

from cli.run_report import render_run_report, render_store_status
from core.config import FreightConfig
from core.constants import DEFAULT_ENV_FILES, SUPPORTED_SOURCE_SUFFIXES
from core.errors import FreightConfigError, FreightError
from core.logging_config import configure_logging
from core.types import IngestOptions
from store.booking_sdk import FreightClient

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="freight", description="Shipping bookings ingestion")
    parser.add_argument(
        "--env-file",
        help="Load environment variables from this file instead of .env.local/.env",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_ingest_command(subparsers)
    subparsers.add_parser("migrate", help="Apply pending schema migrations")
    subparsers.add_parser("check", help="Check store connectivity, schema, and row counts")
    _add_purge_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Freight CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        _load_env_files(args.env_file)
        config = FreightConfig.from_env()
        configure_logging(config.log_level)
        client = FreightClient(config)
        if args.command == "ingest":
            return _run_ingest_command(client, config, args)
        if args.command == "migrate":
            return _run_migrate_command(client)
        if args.command == "check":
            return _run_check_command(client)
        if args.command == "purge":
            return _run_purge_command(client, args)
    except FreightError as error:
        print(f"error: {error}", file=sys.stderr)
        return EXIT_FATAL
    except KeyboardInterrupt:
        print("interrupted: committed chunks were kept", file=sys.stderr)
        return EXIT_INTERRUPTED
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _load_env_files(env_file: str | None) -> None:
    """Load dotenv files without overriding variables already set."""
    if env_file:
        if not Path(env_file).is_file():
            raise FreightConfigError(f"Environment file {env_file} does not exist.")
        load_dotenv(env_file, override=False)
        return
    for candidate in DEFAULT_ENV_FILES:
        if Path(candidate).is_file():
            load_dotenv(candidate, override=False)


def _run_ingest_command(
    client: FreightClient,
    config: FreightConfig,
    args: argparse.Namespace,
) -> int:
    """Handle ingest command.

    Args:
        client: SDK client.
        config: Runtime configuration.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    source = args.source or (str(config.data_dir) if config.data_dir else None)
    if not source:
        raise FreightConfigError(
            "No source given. Pass a file or directory, or set FREIGHT_DATA_DIR."
        )
    config.require_database_url()
    options = IngestOptions(
        source=source,
        suffixes=_normalize_suffixes(args.suffix),
        chunk_size=args.chunk_size,
        load_workers=args.workers,
        max_rows_per_file=args.max_rows_per_file,
    )
    report = client.ingest(options)
    for line in render_run_report(report, config.max_reported_errors):
        print(line)
    return EXIT_OK


def _run_migrate_command(client: FreightClient) -> int:
    """Handle migrate command."""
    applied = client.migrate()
    if not applied:
        print("schema up to date")
        return EXIT_OK
    for version in applied:
        print(f"applied_migration={version}")
    return EXIT_OK


def _run_check_command(client: FreightClient) -> int:
    """Handle check command."""
    for line in render_store_status(client.status()):
        print(line)
    return EXIT_OK


def _run_purge_command(client: FreightClient, args: argparse.Namespace) -> int:
    """Handle purge command."""
    if not args.yes:
        print("refusing to purge without --yes", file=sys.stderr)
        return EXIT_FATAL
    deleted = client.purge()
    print(f"deleted_bookings={deleted}")
    return EXIT_OK


def _normalize_suffixes(raw_suffixes: list[str] | None) -> tuple[str, ...]:
    if not raw_suffixes:
        return SUPPORTED_SOURCE_SUFFIXES
    return tuple("." + suffix.strip().lstrip(".").lower() for suffix in raw_suffixes)


def _positive_int(raw_value: str) -> int:
    value = int(raw_value)
    if value < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {raw_value}")
    return value


def _add_ingest_command(subparsers: Any) -> None:
    """Register ingest subcommand."""
    parser = subparsers.add_parser(
        "ingest", help="Ingest a bookings file, directory, or s3://bucket/prefix"
    )
    parser.add_argument(
        "source",
        nargs="?",
        help="Source file, directory, or s3:// prefix (defaults to FREIGHT_DATA_DIR)",
    )
    parser.add_argument(
        "--suffix",
        action="append",
        help="File suffix to select in a directory; repeatable (default: all supported)",
    )
    parser.add_argument("--chunk-size", type=_positive_int, help="Records per upsert call")
    parser.add_argument("--workers", type=_positive_int, help="Concurrent chunks per load phase")
    parser.add_argument(
        "--max-rows-per-file",
        type=_positive_int,
        help="Stop reading each file after this many rows, e.g. for sampled runs",
    )


def _add_purge_command(subparsers: Any) -> None:
    """Register purge subcommand."""
    parser = subparsers.add_parser(
        "purge", help="Delete all bookings and their detail sequences"
    )
    parser.add_argument("--yes", action="store_true", help="Confirm the deletion")
