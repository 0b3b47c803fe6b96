"""Pydantic models for the sync engine.

- ``SyncMode``: which batch operation ran.
- ``TransferDirection``: upload or download.
- ``ReconciliationPlan``: keys that must move in each direction.
- ``TransferFailure``: one object that could not be transferred.
- ``OperationOutcome``: counts and failures for one direction.
- ``SyncReport``: aggregate result of one run.

All models are frozen.  Outcomes carry structured data only; human-readable
text is produced by ``reporter``.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class SyncMode(str, Enum):
    UPLOAD_ALL = "upload-all"
    DOWNLOAD_ALL = "download-all"
    SYNC = "sync"


class TransferDirection(str, Enum):
    UPLOAD = "upload"
    DOWNLOAD = "download"


class ReconciliationPlan(BaseModel):
    """Keys to transfer in one sync run.

    Attributes:
        to_upload: Present locally, absent remotely.
        to_download: Present remotely, absent locally.
    """

    to_upload: frozenset[str] = frozenset()
    to_download: frozenset[str] = frozenset()

    model_config = {"frozen": True}

    @property
    def is_empty(self) -> bool:
        return not self.to_upload and not self.to_download


class TransferFailure(BaseModel):
    """An object whose transfer raised.

    Attributes:
        key: Object key.
        direction: Direction of the failed transfer.
        error: Raw error message.
    """

    key: str
    direction: TransferDirection
    error: str

    model_config = {"frozen": True}


class OperationOutcome(BaseModel):
    """Result of a batch of transfers in one direction."""

    direction: TransferDirection
    succeeded: int = 0
    failed: list[TransferFailure] = []

    model_config = {"frozen": True}

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def attempted(self) -> int:
        return self.succeeded + len(self.failed)


class SyncReport(BaseModel):
    """Aggregate report for one upload-all, download-all or sync run.

    A direction that was not part of the run has ``None`` as its outcome.

    Attributes:
        mode: Operation that produced the report.
        upload: Upload outcome, if uploads ran.
        download: Download outcome, if downloads ran.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run completed.
    """

    mode: SyncMode
    upload: OperationOutcome | None = None
    download: OperationOutcome | None = None
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def failures(self) -> list[TransferFailure]:
        """All failures, uploads first."""
        out: list[TransferFailure] = []
        if self.upload is not None:
            out.extend(self.upload.failed)
        if self.download is not None:
            out.extend(self.download.failed)
        return out

    @property
    def uploaded(self) -> int:
        return self.upload.succeeded if self.upload else 0

    @property
    def downloaded(self) -> int:
        return self.download.succeeded if self.download else 0

    @property
    def ok(self) -> bool:
        return not self.failures
