"""Bloom Bulk Common - errors, logging, settings and the problem log.

Shared by every other package in the repository.
"""

from bloom_bulk_common.config import Settings, get_settings
from bloom_bulk_common.environments import (
    ENVIRONMENTS,
    BucketCategory,
    Environment,
    ParseCredentials,
    get_credentials,
    get_environment,
)
from bloom_bulk_common.errors import (
    BloomBulkError,
    BookNotFoundError,
    CatalogError,
    CatalogTruncationError,
    ConfigurationError,
    FatalBatchError,
    ItemTransferError,
    SyncError,
)
from bloom_bulk_common.logging_config import configure_logging, get_logger
from bloom_bulk_common.problem_log import PROBLEM_FILE_NAME, ProblemLog

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Environments
    "ENVIRONMENTS",
    "BucketCategory",
    "Environment",
    "ParseCredentials",
    "get_credentials",
    "get_environment",
    # Errors
    "BloomBulkError",
    "BookNotFoundError",
    "CatalogError",
    "CatalogTruncationError",
    "ConfigurationError",
    "FatalBatchError",
    "ItemTransferError",
    "SyncError",
    # Logging
    "configure_logging",
    "get_logger",
    # Problem log
    "PROBLEM_FILE_NAME",
    "ProblemLog",
]
