"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from ..config import resolve_config
from ..core.async_utils import run_sync
from ..core.client import ObjectStoreClient
from ..file_handler import LocalDocumentStore
from ..scheduler import AutoSyncScheduler
from ..sync.engine import SyncEngine
from ..sync.reporter import format_sync_report
from .tools.sync import run_exclusive

logger = logging.getLogger(__name__)

_CONFIG_KEYS = (
    "bucket_name",
    "endpoint",
    "access_key_id",
    "secret_access_key",
    "sync_folder",
    "vault_root",
    "sync_interval",
    "language",
    "auto_sync",
    "insecure",
    "debug",
)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Merge all config sources: CLI > env vars > .env > YAML > defaults
    - Build the SyncEngine
    - If connection settings are complete, list the bucket once and fail
      fast if it is unreachable; otherwise start anyway so tools can
      report which settings are missing
    - Start the auto-sync scheduler when ``auto_sync`` is enabled

    On shutdown:
    - Stop the scheduler (an in-flight run is allowed to finish)

    Args:
        config_overrides: Optional dict of ``load_config`` keyword values
            from CLI; unrelated keys (such as ``log_file``) are ignored.

    Yields:
        Dict with 'engine' key containing the initialized SyncEngine

    Raises:
        RuntimeError: If configuration is invalid or the bucket is unreachable.
    """
    logger.info("MCP server starting...")
    _stderr_print("R2 Sync MCP Server starting...")

    overrides = {
        k: v
        for k, v in (config_overrides or {}).items()
        if k in _CONFIG_KEYS
    }
    try:
        config = resolve_config(overrides)
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        raise RuntimeError(f"Configuration error: {e}") from e

    engine = SyncEngine(
        client=ObjectStoreClient(config),
        store=LocalDocumentStore(config.vault_root),
        config=config,
    )
    _stderr_print(f"  Vault: {config.vault_root}")
    _stderr_print(f"  Sync folder: {config.sync_folder or '(entire vault)'}")

    if config.is_configured():
        logger.info("Validating bucket connection...")
        _stderr_print(f"  Bucket: {config.bucket_name} at {config.endpoint}")
        try:
            count = await run_sync(engine.test_connection)
        except Exception as e:
            logger.error("Failed to connect to bucket: %s", e)
            _stderr_print("ERROR: Bucket connection failed.")
            _stderr_print(f"  {e}")
            _stderr_print(
                "  Check R2_ENDPOINT, R2_BUCKET, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY."
            )
            raise RuntimeError(f"Bucket connection failed: {e}") from e
        logger.info("Connected; %d documents in bucket", count)
        _stderr_print(f"  Connected: {count} documents in bucket")
    else:
        missing = ", ".join(config.missing_fields())
        logger.warning("Connection settings incomplete: %s", missing)
        _stderr_print(f"  WARNING: connection settings incomplete ({missing})")

    scheduler: AutoSyncScheduler | None = None
    if config.auto_sync:
        scheduler = AutoSyncScheduler(
            lambda: run_exclusive(engine.run_sync),
            config.sync_interval,
            on_result=lambda report: logger.info(
                "Auto sync: %s", format_sync_report(report, config.language)
            ),
        )
        scheduler.start()
        _stderr_print(
            f"  Auto sync: every {config.sync_interval} minute(s)"
        )

    _stderr_print("Server ready. Waiting for MCP client connection...")
    try:
        yield {"engine": engine, "scheduler": scheduler}
    finally:
        if scheduler is not None:
            scheduler.stop()
        logger.info("MCP server shutting down")
        _stderr_print("R2 Sync MCP Server shutting down.")
