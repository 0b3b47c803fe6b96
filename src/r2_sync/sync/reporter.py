"""Sync report formatting functions.

Turns structured outcomes into user-facing text and JSON:

- ``format_outcome`` -- summary of one upload-all or download-all batch.
- ``format_sync_report`` -- summary of any run (``SyncReport``).
- ``format_plan`` -- dry-run preview of a reconciliation plan.
- ``format_operation_error`` -- one-line message for an aborted run.
- ``report_to_json`` -- structured dict for MCP tool output.

Failure details are capped at ``MAX_ERROR_LINES`` lines followed by a count
of the elided ones, so a notification stays short whatever the batch size.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..errors import (
    ConfigurationIncompleteError,
    ListingError,
    SyncFolderNotFoundError,
)
from ..messages import get_catalog
from .models import SyncMode, TransferDirection

if TYPE_CHECKING:
    from .models import (
        OperationOutcome,
        ReconciliationPlan,
        SyncReport,
        TransferFailure,
    )

MAX_ERROR_LINES = 5

_OPERATION_FAILED_KEYS = {
    SyncMode.UPLOAD_ALL: "upload_failed",
    SyncMode.DOWNLOAD_ALL: "download_failed",
    SyncMode.SYNC: "sync_failed",
}


# ------------------------------------------------------------------
# Failure details
# ------------------------------------------------------------------


def format_failure_details(
    failures: list[TransferFailure],
    language: str = "en",
    with_direction: bool = False,
) -> str:
    """Render the capped ``<key>: <error>`` block, or "" if no failures.

    Args:
        failures: Failures in the order they happened.
        language: Message language.
        with_direction: Prefix each line with Upload/Download (used when a
            run moved documents both ways).
    """
    if not failures:
        return ""

    msg = get_catalog(language)
    lines = [f"{msg['error_details']()}:"]
    for failure in failures[:MAX_ERROR_LINES]:
        line = f"{failure.key}: {failure.error}"
        if with_direction:
            label = msg[f"direction_{failure.direction.value}"]()
            line = f"{label} {line}"
        lines.append(line)
    if len(failures) > MAX_ERROR_LINES:
        lines.append(msg["more_errors"](len(failures) - MAX_ERROR_LINES))
    return "\n".join(lines)


def _with_details(summary: str, details: str) -> str:
    if not details:
        return summary
    return f"{summary}\n\n{details}"


# ------------------------------------------------------------------
# Summaries
# ------------------------------------------------------------------


def format_outcome(outcome: OperationOutcome, language: str = "en") -> str:
    """Summary line plus capped failure details for one direction."""
    msg = get_catalog(language)
    if outcome.direction == TransferDirection.UPLOAD:
        summary = msg["upload_complete"](
            outcome.succeeded, outcome.failed_count
        )
    else:
        summary = msg["download_complete"](
            outcome.succeeded, outcome.failed_count
        )
    return _with_details(
        summary, format_failure_details(outcome.failed, language)
    )


def format_sync_report(report: SyncReport, language: str = "en") -> str:
    """Format any run's report.

    Single-direction runs render as ``format_outcome``; a bidirectional
    sync reports uploaded, downloaded and failed counts together.
    """
    if report.mode == SyncMode.UPLOAD_ALL and report.upload is not None:
        return format_outcome(report.upload, language)
    if report.mode == SyncMode.DOWNLOAD_ALL and report.download is not None:
        return format_outcome(report.download, language)

    msg = get_catalog(language)
    failures = report.failures
    summary = msg["sync_complete"](
        report.uploaded, report.downloaded, len(failures)
    )
    return _with_details(
        summary,
        format_failure_details(failures, language, with_direction=True),
    )


def format_plan(plan: ReconciliationPlan, language: str = "en") -> str:
    """Dry-run preview: counts, then sorted keys per direction."""
    msg = get_catalog(language)
    if plan.is_empty:
        return msg["plan_empty"]()

    lines = [msg["plan_summary"](len(plan.to_upload), len(plan.to_download))]
    for key in sorted(plan.to_upload):
        lines.append(f"  {msg['direction_upload']()}: {key}")
    for key in sorted(plan.to_download):
        lines.append(f"  {msg['direction_download']()}: {key}")
    return "\n".join(lines)


def format_operation_error(
    exc: Exception, mode: SyncMode, language: str = "en"
) -> str:
    """One-line message for an operation that aborted before finishing."""
    msg = get_catalog(language)
    match exc:
        case ConfigurationIncompleteError():
            return msg["config_first"](exc.missing)
        case SyncFolderNotFoundError():
            return msg["sync_folder_not_exist"](exc.path)
        case ListingError():
            detail = msg["list_failed"](str(exc))
        case _:
            detail = str(exc) or type(exc).__name__
    return msg[_OPERATION_FAILED_KEYS[mode]](detail)


# ------------------------------------------------------------------
# JSON
# ------------------------------------------------------------------


def _outcome_to_json(outcome: OperationOutcome | None) -> dict | None:
    if outcome is None:
        return None
    return {
        "succeeded": outcome.succeeded,
        "failed": outcome.failed_count,
        "errors": [
            {"key": f.key, "error": f.error} for f in outcome.failed
        ],
    }


def report_to_json(report: SyncReport) -> dict[str, Any]:
    """Convert a ``SyncReport`` into a JSON-serializable dict."""
    return {
        "mode": report.mode.value,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "uploaded": report.uploaded,
        "downloaded": report.downloaded,
        "failed": len(report.failures),
        "upload": _outcome_to_json(report.upload),
        "download": _outcome_to_json(report.download),
    }


def plan_to_json(plan: ReconciliationPlan) -> dict[str, Any]:
    return {
        "to_upload": sorted(plan.to_upload),
        "to_download": sorted(plan.to_download),
    }
