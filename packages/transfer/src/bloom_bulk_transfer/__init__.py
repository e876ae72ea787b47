"""Bloom Bulk Transfer - sync, stage and materialize book folders."""

from bloom_bulk_transfer.copying import CopyResult, ProgressCallback, copy_directory, same_file_content
from bloom_bulk_transfer.exclusions import is_avoided, is_excluded_extension, should_skip
from bloom_bulk_transfer.materialize import (
    RETRY_MESSAGE,
    FolderMaterializer,
    LoggingNotifier,
    MaterializeResult,
    Notifier,
    same_volume,
)
from bloom_bulk_transfer.planner import PlannedTransfer, PlanSkip, TransferPlan, plan_destinations
from bloom_bulk_transfer.sources import (
    BookSource,
    LocalMirrorSource,
    S3BookSource,
    key_from_base_url,
    storage_key,
)
from bloom_bulk_transfer.staging import StagingFolder, delete_folder_that_may_be_in_use
from bloom_bulk_transfer.sync import BulkSync, SyncRequest, SyncResult, build_sync_args
from bloom_bulk_transfer.transfer import FolderTransfer

__all__ = [
    # Copying
    "CopyResult",
    "ProgressCallback",
    "copy_directory",
    "same_file_content",
    # Exclusions
    "is_avoided",
    "is_excluded_extension",
    "should_skip",
    # Materialization
    "RETRY_MESSAGE",
    "FolderMaterializer",
    "LoggingNotifier",
    "MaterializeResult",
    "Notifier",
    "same_volume",
    # Planning
    "PlannedTransfer",
    "PlanSkip",
    "TransferPlan",
    "plan_destinations",
    # Sources
    "BookSource",
    "LocalMirrorSource",
    "S3BookSource",
    "key_from_base_url",
    "storage_key",
    # Staging
    "StagingFolder",
    "delete_folder_that_may_be_in_use",
    # Sync
    "BulkSync",
    "SyncRequest",
    "SyncResult",
    "build_sync_args",
    # Transfer
    "FolderTransfer",
]
