"""Bloom Bulk Contracts - Pure Pydantic schemas.

This package contains ONLY schemas and the title sanitizer they depend on.
Dependencies: pydantic only (no logging, no HTTP, no filesystem access).
"""

from bloom_bulk_contracts.models import (
    RESERVED_FILENAME_CHARS,
    # Catalog
    CatalogRecord,
    Language,
    LocatorKind,
    Uploader,
    sanitize_title,
    # Reconciliation
    RecordSkip,
    ResolvedEntry,
    # Transfer
    BatchTotals,
    TransferOutcome,
)

__version__ = "1.0.0"

__all__ = [
    "RESERVED_FILENAME_CHARS",
    # Catalog
    "CatalogRecord",
    "Language",
    "LocatorKind",
    "Uploader",
    "sanitize_title",
    # Reconciliation
    "RecordSkip",
    "ResolvedEntry",
    # Transfer
    "BatchTotals",
    "TransferOutcome",
]
