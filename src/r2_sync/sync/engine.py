"""Sync engine: upload-all, download-all and presence-only bidirectional sync.

Each public operation is one indivisible batch:

1. Check that the connection settings are complete (no network before).
2. Walk the local sync folder and/or list the bucket.
3. Transfer the selected keys one at a time, strictly sequentially.
4. Return an outcome with success counts and per-key failures.

Error handling is per-object: a failed transfer or local read/write is
recorded and the batch continues.  Incomplete configuration, a missing
sync folder, or a failed bucket listing abort the whole operation.

There is no lock: callers must not start a second run while one is in
flight (see ``r2_sync.scheduler`` for the re-entrancy guard used by
watch mode).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from .mapper import PathMapper
from .models import (
    OperationOutcome,
    ReconciliationPlan,
    SyncMode,
    SyncReport,
    TransferDirection,
    TransferFailure,
)
from .reconciler import plan_sync

if TYPE_CHECKING:
    from ..config import Config
    from ..core.client import ObjectStoreClient
    from ..file_handler import LocalDocumentStore

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_message(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


class SyncEngine:
    """Move Markdown documents between a local vault and a bucket.

    Args:
        client: Signed object store client.
        store: Local document store for the vault.
        config: Settings; ``sync_folder`` selects the synced subtree.
    """

    def __init__(
        self,
        client: ObjectStoreClient,
        store: LocalDocumentStore,
        config: Config,
    ) -> None:
        self.client = client
        self.store = store
        self.config = config
        self.mapper = PathMapper(config.sync_folder)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def _local_documents(self) -> dict[str, str]:
        """Map object key -> vault-relative path, in walk order."""
        documents = self.store.list_text_documents(self.config.sync_folder)
        return {
            self.mapper.to_remote_key(doc.path): doc.path
            for doc in documents
        }

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def test_connection(self) -> int:
        """List the bucket and return the number of Markdown objects."""
        self.config.require_complete()
        return len(self.client.list_objects())

    def plan(self) -> ReconciliationPlan:
        """Compute the plan a ``sync()`` would execute, transferring nothing."""
        self.config.require_complete()
        local = self._local_documents()
        remote = self.client.list_objects()
        return plan_sync(local, remote)

    def upload_all(self) -> OperationOutcome:
        """Upload every local document, whether or not it exists remotely."""
        self.config.require_complete()
        local = self._local_documents()
        logger.info("Uploading %d documents", len(local))
        return self._upload(local, local)

    def download_all(self) -> OperationOutcome:
        """Download every remote document, overwriting local copies."""
        self.config.require_complete()
        remote = self.client.list_objects()
        logger.info("Downloading %d documents", len(remote))
        return self._download(remote)

    def sync(self) -> SyncReport:
        """Upload local-only keys, then download remote-only keys."""
        self.config.require_complete()
        started_at = _now()

        local = self._local_documents()
        remote = self.client.list_objects()
        plan = plan_sync(local, remote)
        logger.info(
            "Sync plan: %d to upload, %d to download, %d unchanged",
            len(plan.to_upload),
            len(plan.to_download),
            len(local.keys() & set(remote)),
        )

        upload = self._upload(
            [key for key in local if key in plan.to_upload], local
        )
        download = self._download(
            [key for key in remote if key in plan.to_download]
        )

        return SyncReport(
            mode=SyncMode.SYNC,
            upload=upload,
            download=download,
            started_at=started_at,
            completed_at=_now(),
        )

    def run_sync(self) -> SyncReport:
        """Parameterless entry point for schedulers."""
        return self.sync()

    def run(self, mode: SyncMode) -> SyncReport:
        """Run *mode* and wrap the result in a ``SyncReport``."""
        if mode == SyncMode.SYNC:
            return self.sync()

        started_at = _now()
        if mode == SyncMode.UPLOAD_ALL:
            return SyncReport(
                mode=mode,
                upload=self.upload_all(),
                started_at=started_at,
                completed_at=_now(),
            )
        return SyncReport(
            mode=mode,
            download=self.download_all(),
            started_at=started_at,
            completed_at=_now(),
        )

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def _upload(
        self, keys: Iterable[str], local_paths: dict[str, str]
    ) -> OperationOutcome:
        def transfer(key: str) -> None:
            content = self.store.read_document(local_paths[key])
            self.client.upload_object(key, content)

        return self._batch(TransferDirection.UPLOAD, keys, transfer)

    def _download(self, keys: Iterable[str]) -> OperationOutcome:
        def transfer(key: str) -> None:
            content = self.client.download_object(key)
            self.store.write_document(self.mapper.to_local_path(key), content)

        return self._batch(TransferDirection.DOWNLOAD, keys, transfer)

    def _batch(
        self,
        direction: TransferDirection,
        keys: Iterable[str],
        transfer: Callable[[str], None],
    ) -> OperationOutcome:
        """Attempt *transfer* for every key; record failures and continue."""
        succeeded = 0
        failed: list[TransferFailure] = []
        for key in keys:
            try:
                transfer(key)
            except Exception as exc:
                logger.error(
                    "Failed to %s %s: %s", direction.value, key, exc
                )
                failed.append(
                    TransferFailure(
                        key=key,
                        direction=direction,
                        error=_error_message(exc),
                    )
                )
            else:
                succeeded += 1
                logger.debug("%sed %s", direction.value.capitalize(), key)

        return OperationOutcome(
            direction=direction, succeeded=succeeded, failed=failed
        )
