"""Mapping between vault-relative paths and object keys.

Object keys are paths relative to the sync folder.  With no sync folder,
the whole vault is synced and keys equal vault-relative paths.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class PathMapper:
    """Translate local document paths to object keys and back.

    Args:
        sync_folder: Vault-relative folder being synced ("" for the whole
            vault).  Leading and trailing slashes are ignored.
    """

    def __init__(self, sync_folder: str = "") -> None:
        self.sync_folder = sync_folder.strip("/")

    @property
    def _prefix(self) -> str:
        return f"{self.sync_folder}/"

    def to_remote_key(self, local_path: str) -> str:
        """Strip the sync folder prefix from *local_path*.

        A path outside the sync folder is returned unchanged; this should
        not happen for paths produced by the store walk, so it is logged.
        """
        if not self.sync_folder:
            return local_path
        if local_path.startswith(self._prefix):
            return local_path[len(self._prefix) :]
        logger.warning(
            "Path %s is outside sync folder %s; using it as the key",
            local_path,
            self.sync_folder,
        )
        return local_path

    def to_local_path(self, key: str) -> str:
        """Prepend the sync folder to *key*."""
        if not self.sync_folder:
            return key
        return f"{self._prefix}{key}"
