"""MCP tool handlers wrapping the sync engine."""

from .errors import build_error_response, translate_operation_error
from .registry import ToolRegistry, ToolSpec
from .sync import SYNC_SPECS, SYNC_TOOLS

ALL_SPECS: list[ToolSpec] = list(SYNC_SPECS)

__all__ = [
    "ALL_SPECS",
    "SYNC_SPECS",
    "SYNC_TOOLS",
    "ToolRegistry",
    "ToolSpec",
    "build_error_response",
    "translate_operation_error",
]
