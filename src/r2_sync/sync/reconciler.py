"""Presence-only reconciliation of local and remote key sets.

A key present on both sides is treated as already synchronized, whatever
its content on either side.  Neither content hashes nor modification
times are compared.
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import ReconciliationPlan


def plan_sync(
    local_keys: Iterable[str], remote_keys: Iterable[str]
) -> ReconciliationPlan:
    """Compute which keys move in which direction.

    Args:
        local_keys: Object keys of documents present locally.
        remote_keys: Object keys present in the bucket.

    Returns:
        Plan with ``to_upload = local - remote`` and
        ``to_download = remote - local``.
    """
    local = frozenset(local_keys)
    remote = frozenset(remote_keys)
    return ReconciliationPlan(
        to_upload=local - remote,
        to_download=remote - local,
    )
