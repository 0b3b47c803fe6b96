"""Command-line entry point.

Each sub-command maps to one engine operation and prints one localized
summary, mirroring a single notification per run:

    r2-sync upload      Upload every local document
    r2-sync download    Download every remote document
    r2-sync sync        Upload local-only, then download remote-only
    r2-sync plan        Show what ``sync`` would do
    r2-sync test        Check the connection and count remote documents
    r2-sync watch       Sync now, then every --interval minutes
    r2-sync init        Write a starter config file
"""

import argparse
import json
import logging
import sys
from typing import Any

from . import __version__
from .config import Config, resolve_config, resolve_logging_settings
from .config_loader import ensure_config
from .errors import ConfigurationIncompleteError
from .core.client import ObjectStoreClient
from .file_handler import LocalDocumentStore
from .logger import setup_logging
from .messages import message
from .scheduler import AutoSyncScheduler
from .sync.engine import SyncEngine
from .sync.models import SyncMode, SyncReport
from .sync.reporter import (
    format_operation_error,
    format_plan,
    format_sync_report,
    plan_to_json,
    report_to_json,
)

logger = logging.getLogger(__name__)

_MODES = {
    "upload": SyncMode.UPLOAD_ALL,
    "download": SyncMode.DOWNLOAD_ALL,
    "sync": SyncMode.SYNC,
}


def build_engine(config: Config) -> SyncEngine:
    """Wire the HTTP client and the local store into a ``SyncEngine``."""
    return SyncEngine(
        client=ObjectStoreClient(config),
        store=LocalDocumentStore(config.vault_root),
        config=config,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="r2-sync",
        description="Sync a folder of Markdown notes with an S3-compatible bucket (Cloudflare R2)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Settings from .env / .r2_sync/config.yml, then a two-way sync
  r2-sync sync

  # Preview a sync without transferring anything
  r2-sync plan

  # Only sync the Notes folder of a vault, with Chinese messages
  r2-sync sync --vault ~/Vault --sync-folder Notes --language zh

  # Keep syncing every 10 minutes
  r2-sync watch --interval 10
        """,
    )
    parser.add_argument(
        "command",
        choices=["upload", "download", "sync", "plan", "test", "watch", "init"],
    )
    parser.add_argument("--bucket", help="Bucket name (overrides R2_BUCKET)")
    parser.add_argument(
        "--endpoint",
        help="API endpoint, e.g. https://<account_id>.r2.cloudflarestorage.com (overrides R2_ENDPOINT)",
    )
    parser.add_argument(
        "--access-key-id", help="Access key ID (overrides R2_ACCESS_KEY_ID)"
    )
    parser.add_argument(
        "--secret-access-key",
        help="Secret access key (visible in process list -- prefer R2_SECRET_ACCESS_KEY)",
    )
    parser.add_argument(
        "--vault", help="Local vault directory (default: current directory)"
    )
    parser.add_argument(
        "--sync-folder",
        help="Folder inside the vault to sync (default: entire vault)",
    )
    parser.add_argument(
        "--interval",
        type=int,
        help="Auto sync interval in minutes for 'watch' (default: 5)",
    )
    parser.add_argument(
        "--language", choices=["en", "zh"], help="Message language"
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (use only for development)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print machine-readable JSON instead of text",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--version",
        action="version",
        version=f"r2-sync version {__version__}",
    )
    return parser


def _overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    mapping = {
        "bucket_name": args.bucket,
        "endpoint": args.endpoint,
        "access_key_id": args.access_key_id,
        "secret_access_key": args.secret_access_key,
        "vault_root": args.vault,
        "sync_folder": args.sync_folder,
        "sync_interval": args.interval,
        "language": args.language,
    }
    overrides = {k: v for k, v in mapping.items() if v is not None}
    if args.insecure:
        overrides["insecure"] = True
    if args.debug:
        overrides["debug"] = True
    return overrides


def _print_report(report: SyncReport, config: Config, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report_to_json(report), indent=2))
    else:
        print(format_sync_report(report, config.language))


def _run_once(engine: SyncEngine, mode: SyncMode, as_json: bool) -> int:
    config = engine.config
    try:
        report = engine.run(mode)
    except Exception as exc:
        logger.debug("Operation %s aborted", mode.value, exc_info=True)
        print(format_operation_error(exc, mode, config.language), file=sys.stderr)
        return 1
    _print_report(report, config, as_json)
    return 0 if report.ok else 1


def _test_connection(engine: SyncEngine, as_json: bool) -> int:
    language = engine.config.language
    try:
        count = engine.test_connection()
    except ConfigurationIncompleteError as exc:
        print(message("config_first", language, exc.missing), file=sys.stderr)
        return 1
    except Exception as exc:
        print(message("conn_failed", language, exc), file=sys.stderr)
        return 1
    if as_json:
        print(json.dumps({"connected": True, "documents": count}))
    else:
        print(message("conn_success", language, count))
    return 0


def _show_plan(engine: SyncEngine, as_json: bool) -> int:
    config = engine.config
    try:
        plan = engine.plan()
    except Exception as exc:
        print(
            format_operation_error(exc, SyncMode.SYNC, config.language),
            file=sys.stderr,
        )
        return 1
    if as_json:
        print(json.dumps(plan_to_json(plan), indent=2))
    else:
        print(format_plan(plan, config.language))
    return 0


def _watch(engine: SyncEngine, as_json: bool) -> int:
    config = engine.config
    scheduler = AutoSyncScheduler(
        engine.run_sync,
        config.sync_interval,
        on_result=lambda report: _print_report(report, config, as_json),
    )
    print(message("auto_sync_started", config.language, config.sync_interval))
    scheduler.trigger()
    scheduler.run_forever()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        log_settings = resolve_logging_settings()
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2
    setup_logging(
        mode="cli",
        debug=args.debug,
        log_file=args.log_file or log_settings.file,
        level=log_settings.level,
    )

    if args.command == "init":
        path = ensure_config()
        print(f"Config file: {path}")
        return 0

    try:
        config = resolve_config(_overrides_from_args(args))
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2

    engine = build_engine(config)

    match args.command:
        case "test":
            return _test_connection(engine, args.json)
        case "plan":
            return _show_plan(engine, args.json)
        case "watch":
            return _watch(engine, args.json)
        case command:
            return _run_once(engine, _MODES[command], args.json)


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
