"""MCP tool handlers for vault <-> bucket sync.

Defines five tools:

- ``r2_upload_all`` -- upload every local document.
- ``r2_download_all`` -- download every remote document.
- ``r2_sync`` -- upload local-only, then download remote-only documents.
- ``r2_sync_plan`` -- preview what ``r2_sync`` would transfer.
- ``r2_test_connection`` -- list the bucket and count documents.

Engine calls block, so they run in a worker thread.  The engine keeps no
lock; ``run_exclusive`` serializes tool calls and auto-sync ticks so two
runs never overlap.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any, TypeVar

import mcp.types as types

from ...core.async_utils import run_sync
from ...errors import ConfigurationIncompleteError
from ...messages import message
from ...sync.engine import SyncEngine
from ...sync.models import SyncMode
from ...sync.reporter import (
    format_plan,
    format_sync_report,
    plan_to_json,
    report_to_json,
)
from .errors import build_error_response, translate_operation_error
from .registry import ToolSpec

logger = logging.getLogger(__name__)

T = TypeVar("T")

_engine_lock = threading.Lock()


def run_exclusive(func: Callable[..., T], *args: Any) -> T:
    """Call *func* while holding the engine lock (blocks until free)."""
    with _engine_lock:
        return func(*args)


_NO_INPUT: dict[str, Any] = {
    "type": "object",
    "properties": {},
    "required": [],
}


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


SYNC_TOOLS: list[types.Tool] = [
    types.Tool(
        name="r2_upload_all",
        description=(
            "Upload every Markdown document in the sync folder to the "
            "bucket, overwriting remote copies."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema=_NO_INPUT,
    ),
    types.Tool(
        name="r2_download_all",
        description=(
            "Download every Markdown document in the bucket into the "
            "sync folder, overwriting local copies."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema=_NO_INPUT,
    ),
    types.Tool(
        name="r2_sync",
        description=(
            "Presence-only sync: upload documents that exist only "
            "locally, then download documents that exist only in the "
            "bucket. Documents present on both sides are left alone."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema=_NO_INPUT,
    ),
    types.Tool(
        name="r2_sync_plan",
        description=(
            "Show which documents r2_sync would upload and download, "
            "without transferring anything."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema=_NO_INPUT,
    ),
    types.Tool(
        name="r2_test_connection",
        description=(
            "Check the bucket connection and return the number of "
            "Markdown documents it holds."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema=_NO_INPUT,
    ),
]


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _run_mode(engine: SyncEngine, mode: SyncMode) -> types.CallToolResult:
    language = engine.config.language
    try:
        report = await run_sync(run_exclusive, engine.run, mode)
    except Exception as e:
        logger.error("Operation %s aborted: %s", mode.value, e)
        return translate_operation_error(e, mode, language)

    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text", text=format_sync_report(report, language)
            )
        ],
        structuredContent=report_to_json(report),
    )


async def _handle_upload_all(
    engine: SyncEngine, args: dict
) -> types.CallToolResult:
    return await _run_mode(engine, SyncMode.UPLOAD_ALL)


async def _handle_download_all(
    engine: SyncEngine, args: dict
) -> types.CallToolResult:
    return await _run_mode(engine, SyncMode.DOWNLOAD_ALL)


async def _handle_sync(engine: SyncEngine, args: dict) -> types.CallToolResult:
    return await _run_mode(engine, SyncMode.SYNC)


async def _handle_sync_plan(
    engine: SyncEngine, args: dict
) -> types.CallToolResult:
    """Dry run of ``r2_sync``: lists and walks, transfers nothing."""
    language = engine.config.language
    try:
        plan = await run_sync(engine.plan)
    except Exception as e:
        return translate_operation_error(e, SyncMode.SYNC, language)

    return types.CallToolResult(
        content=[
            types.TextContent(type="text", text=format_plan(plan, language))
        ],
        structuredContent=plan_to_json(plan),
    )


async def _handle_test_connection(
    engine: SyncEngine, args: dict
) -> types.CallToolResult:
    language = engine.config.language
    try:
        count = await run_sync(engine.test_connection)
    except ConfigurationIncompleteError as e:
        return translate_operation_error(e, SyncMode.SYNC, language)
    except Exception as e:
        logger.error("Connection test failed: %s", e)
        return build_error_response(
            "connection_failed",
            message("conn_failed", language, e),
            "Check R2_ENDPOINT, R2_BUCKET and the access key pair.",
        )

    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text", text=message("conn_success", language, count)
            )
        ],
        structuredContent={"connected": True, "documents": count},
    )


_HANDLERS = {
    "r2_upload_all": _handle_upload_all,
    "r2_download_all": _handle_download_all,
    "r2_sync": _handle_sync,
    "r2_sync_plan": _handle_sync_plan,
    "r2_test_connection": _handle_test_connection,
}

SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(tool=tool, handler=_HANDLERS[tool.name]) for tool in SYNC_TOOLS
]
