"""Bloom Bulk Catalog - fetch, filter and reconcile library catalog records."""

from bloom_bulk_catalog.client import (
    BOOKS_ENDPOINT,
    MALFORMED_RECORD,
    RECORD_KEYS,
    CatalogFetch,
    CatalogFetcher,
    ParseCatalogClient,
)
from bloom_bulk_catalog.filtering import filter_records, is_in_circulation
from bloom_bulk_catalog.naming import MAX_SUFFIX, NameAllocation, NameAllocator
from bloom_bulk_catalog.reconcile import (
    NO_LOCATOR,
    TOO_MANY_NAMES,
    IdentityReconciler,
    ReconciliationResult,
    reconcile_records,
)

__all__ = [
    # Client
    "BOOKS_ENDPOINT",
    "MALFORMED_RECORD",
    "RECORD_KEYS",
    "CatalogFetch",
    "CatalogFetcher",
    "ParseCatalogClient",
    # Filtering
    "filter_records",
    "is_in_circulation",
    # Naming
    "MAX_SUFFIX",
    "NameAllocation",
    "NameAllocator",
    # Reconciliation
    "NO_LOCATOR",
    "TOO_MANY_NAMES",
    "IdentityReconciler",
    "ReconciliationResult",
    "reconcile_records",
]
