"""Bloom Bulk CLI - command line and run orchestration for bulk downloads."""

from bloom_bulk_cli.options import BulkDownloadOptions
from bloom_bulk_cli.orchestrator import RunSummary, TransferOrchestrator

__all__ = [
    "BulkDownloadOptions",
    "RunSummary",
    "TransferOrchestrator",
]
