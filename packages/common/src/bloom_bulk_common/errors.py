"""Custom error types for the bloom bulk downloader.

All errors follow the "fail fast" principle with explicit messages.

Two families matter to the orchestrator:

- ``FatalBatchError`` aborts the whole run (sync or catalog failure).
- ``ItemTransferError`` only fails one book; the batch continues.

Per-record catalog problems are never raised; they are returned as
``RecordSkip`` values by the reconciler.
"""


class BloomBulkError(Exception):
    """Base exception for all bloom bulk downloader errors."""

    pass


class ConfigurationError(BloomBulkError):
    """Invalid or incomplete runtime configuration."""

    pass


class FatalBatchError(BloomBulkError):
    """Error that aborts the whole batch run."""

    pass


class SyncError(FatalBatchError):
    """The bulk sync subprocess failed.

    Carries the exit status and the subprocess error stream verbatim.
    """

    def __init__(self, returncode: int, stderr: str = "", command: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        self.command = command
        detail = stderr.strip() or "no diagnostic output"
        super().__init__(f"Sync failed (exit {returncode}): {detail}")


class CatalogError(FatalBatchError):
    """The catalog service was unreachable or returned malformed data."""

    pass


class CatalogTruncationError(CatalogError):
    """The catalog returned exactly the page limit, so records may be missing."""

    def __init__(self, count: int, limit: int):
        self.count = count
        self.limit = limit
        super().__init__(
            f"Catalog returned {count} records, which equals the page limit of {limit}; "
            f"results are probably truncated"
        )


class ItemTransferError(BloomBulkError):
    """Error transferring a single book; the batch continues."""

    pass


class BookNotFoundError(ItemTransferError):
    """The requested book has no files at its expected location."""

    def __init__(self, locator: str, location: str = ""):
        self.locator = locator
        self.location = location
        where = f" at {location}" if location else ""
        super().__init__(f"No files found for book {locator}{where}")
