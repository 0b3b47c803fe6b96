"""Error response builders for MCP tool handlers.

Responses carry a corrective action so an agent can recover (for example
by asking the user for missing settings) without human intervention.
"""

import mcp.types as types

from ...errors import (
    ConfigurationIncompleteError,
    ListingError,
    SyncFolderNotFoundError,
)
from ...sync.models import SyncMode
from ...sync.reporter import format_operation_error


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (configuration_incomplete,
            sync_folder_not_found, listing_failed, validation_error,
            server_error)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def translate_operation_error(
    exc: Exception, mode: SyncMode, language: str = "en"
) -> types.CallToolResult:
    """Map an aborted operation to a localized error response."""
    text = format_operation_error(exc, mode, language)
    match exc:
        case ConfigurationIncompleteError():
            return build_error_response(
                "configuration_incomplete",
                text,
                "Set R2_BUCKET, R2_ENDPOINT, R2_ACCESS_KEY_ID and "
                "R2_SECRET_ACCESS_KEY (or the r2 section of "
                ".r2_sync/config.yml), then restart the server.",
            )
        case SyncFolderNotFoundError():
            return build_error_response(
                "sync_folder_not_found",
                text,
                "Create the folder in the vault or change R2_SYNC_FOLDER.",
            )
        case ListingError():
            return build_error_response(
                "listing_failed",
                text,
                "Run r2_test_connection to check the endpoint and credentials.",
            )
        case _:
            return build_error_response(
                "server_error", text, "Retry later."
            )
