"""Exception hierarchy for r2-sync.

Two classes of failure exist:

- **Abort** errors stop a whole operation before or during planning:
  ``ConfigurationIncompleteError``, ``SyncFolderNotFoundError`` and
  ``ListingError``.
- **Per-object** errors (``TransferError`` and local ``OSError``) are caught
  by the sync engine, recorded in the operation outcome, and the batch
  continues.
"""


class R2SyncError(Exception):
    """Base class for all r2-sync errors."""


class ConfigurationIncompleteError(R2SyncError):
    """One or more required connection settings are missing.

    Attributes:
        missing: Names of the missing settings.
    """

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            "Missing required settings: " + ", ".join(self.missing)
        )


class SyncFolderNotFoundError(R2SyncError):
    """The configured sync folder does not exist locally."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Sync folder does not exist: {path}")


class TransferError(R2SyncError):
    """A remote call returned a status outside ``[200, 300)``.

    Attributes:
        status: HTTP status code.
        body: Response body text, verbatim.
    """

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"{status} - {body}")


class ListingError(TransferError):
    """The bucket listing call failed; no plan can be computed."""
