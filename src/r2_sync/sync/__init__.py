"""Presence-only document sync between a local vault and a bucket.

Modules:

- ``engine``     -- ``SyncEngine``: upload-all, download-all and sync runs.
- ``reconciler`` -- ``plan_sync``: which keys move in which direction.
- ``mapper``     -- ``PathMapper``: vault paths <-> object keys.
- ``models``     -- ``ReconciliationPlan``, ``OperationOutcome``,
  ``TransferFailure``, ``SyncReport``: data contracts.
- ``reporter``   -- localized text and JSON output.

Usage example
-------------
::

    from r2_sync.config import load_config
    from r2_sync.core.client import ObjectStoreClient
    from r2_sync.file_handler import LocalDocumentStore
    from r2_sync.sync import SyncEngine, format_sync_report

    config = load_config()
    engine = SyncEngine(
        client=ObjectStoreClient(config),
        store=LocalDocumentStore(config.vault_root),
        config=config,
    )
    report = engine.sync()
    print(format_sync_report(report, config.language))
"""

from .engine import SyncEngine
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
from .reporter import (
    format_outcome,
    format_plan,
    format_sync_report,
    report_to_json,
)

__all__ = [
    "OperationOutcome",
    "PathMapper",
    "ReconciliationPlan",
    "SyncEngine",
    "SyncMode",
    "SyncReport",
    "TransferDirection",
    "TransferFailure",
    "format_outcome",
    "format_plan",
    "format_sync_report",
    "plan_sync",
    "report_to_json",
]
