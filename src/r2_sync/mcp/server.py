"""MCP server for R2 sync using stdio transport.

Exposes upload-all, download-all, sync, a dry-run plan and a connection
test as MCP tools so an agent can keep a notes vault in sync with a bucket.

Transport: stdio
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..config import resolve_logging_settings
from ..logger import setup_logging
from ..sync.engine import SyncEngine
from .lifespan import server_lifespan
from .tools import ALL_SPECS, ToolRegistry, build_error_response

logger = logging.getLogger(__name__)

server = Server("r2-sync")

# Initialized in main()
_engine: SyncEngine | None = None
_registry: ToolRegistry | None = None


def get_engine() -> SyncEngine:
    """Get the global SyncEngine instance.

    Raises:
        RuntimeError: If the engine is not initialized
    """
    if _engine is None:
        raise RuntimeError(
            "SyncEngine not initialized. Server lifespan not started."
        )
    return _engine


def set_engine(engine: SyncEngine | None) -> None:
    global _engine
    _engine = engine


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Dispatch a tool call through the ToolRegistry."""
    engine = get_engine()
    try:
        return await get_registry().call_tool(name, arguments, engine)
    except ValueError as e:
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Args:
        config_overrides: Optional dict of config values from CLI
            (``load_config`` keyword names, plus ``log_file``).
    """
    overrides = config_overrides or {}

    # Must run before stdio_server so nothing reaches stdout.
    try:
        log_settings = resolve_logging_settings()
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        raise RuntimeError(f"Configuration error: {e}") from e
    setup_logging(
        mode="mcp",
        debug=overrides.get("debug", False),
        log_file=overrides.get("log_file") or log_settings.file,
        level=log_settings.level,
    )

    registry = ToolRegistry(ALL_SPECS)
    logger.info("Registered %d tools", registry.tool_count())
    set_registry(registry)

    # set_engine() is called here rather than in the lifespan so that
    # running this file as __main__ updates this module's global.
    async with server_lifespan(config_overrides=overrides) as ctx:
        set_engine(ctx["engine"])
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="r2-sync",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(
                    read_stream, write_stream, init_options
                )
        finally:
            set_engine(None)
            set_registry(None)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="R2 Sync MCP Server - sync a Markdown vault with an S3-compatible bucket",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .r2_sync/config.yml)
  r2-sync-mcp

  # Sync one folder of a vault, syncing automatically every 10 minutes
  r2-sync-mcp --vault ~/Vault --sync-folder Notes --auto-sync --interval 10

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr.
        """,
    )
    parser.add_argument("--bucket", help="Bucket name (overrides R2_BUCKET)")
    parser.add_argument(
        "--endpoint", help="API endpoint (overrides R2_ENDPOINT)"
    )
    parser.add_argument(
        "--access-key-id", help="Access key ID (overrides R2_ACCESS_KEY_ID)"
    )
    parser.add_argument(
        "--secret-access-key",
        help="Secret access key (visible in process list -- prefer R2_SECRET_ACCESS_KEY)",
    )
    parser.add_argument("--vault", help="Local vault directory")
    parser.add_argument("--sync-folder", help="Folder inside the vault to sync")
    parser.add_argument(
        "--auto-sync",
        action="store_true",
        help="Run a sync every --interval minutes while the server is up",
    )
    parser.add_argument(
        "--interval", type=int, help="Auto sync interval in minutes"
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
        "--log-file",
        help="Log file path (default: LOG_FILE, then /tmp/r2-sync.log)",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"r2-sync version {__version__}",
    )
    return parser


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    args = _build_parser().parse_args()

    mapping = {
        "bucket_name": args.bucket,
        "endpoint": args.endpoint,
        "access_key_id": args.access_key_id,
        "secret_access_key": args.secret_access_key,
        "vault_root": args.vault,
        "sync_folder": args.sync_folder,
        "sync_interval": args.interval,
        "language": args.language,
        "log_file": args.log_file,
    }
    config_overrides = {k: v for k, v in mapping.items() if v is not None}
    for flag in ("auto_sync", "insecure", "debug"):
        if getattr(args, flag):
            config_overrides[flag] = True

    override_keys = [
        k for k in config_overrides if k != "secret_access_key"
    ]
    if override_keys:
        print(
            f"Config overrides from CLI: {', '.join(override_keys)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(main(config_overrides=config_overrides))
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
