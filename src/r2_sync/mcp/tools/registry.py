"""ToolSpec and ToolRegistry for MCP tool dispatch.

- ToolSpec: Immutable dataclass linking a Tool definition and an async
  handler with standardized signature (engine, args) -> CallToolResult.
- ToolRegistry: Holds specs by name and provides list_tools() and
  call_tool() dispatch with error translation.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import mcp.types as types

from ...sync.engine import SyncEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable specification for a single MCP tool.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        handler: Async handler with signature (engine, args) -> CallToolResult.
    """

    tool: types.Tool
    handler: Callable[[SyncEngine, dict], Awaitable[types.CallToolResult]]


class ToolRegistry:
    """Registry of ToolSpecs keyed by tool name."""

    def __init__(self, specs: list[ToolSpec]):
        self._specs: dict[str, ToolSpec] = {
            spec.tool.name: spec for spec in specs
        }

    def list_tools(self) -> list[types.Tool]:
        """Return list of types.Tool for all registered specs."""
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        engine: SyncEngine,
    ) -> types.CallToolResult:
        """Dispatch tool call to registered handler.

        Handlers translate operation errors themselves; anything that
        escapes is turned into a structured error response here.

        Raises:
            ValueError: If tool name is not registered.
        """
        from .errors import build_error_response

        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(engine, args)
        except ValueError as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Check parameter values and retry.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error",
                str(e),
                "Retry later, or check the server log.",
            )
