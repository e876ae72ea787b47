"""Selection of the catalog records a run is responsible for."""

from typing import Iterable, Optional

from bloom_bulk_contracts import CatalogRecord


def is_in_circulation(record: CatalogRecord) -> bool:
    """Absent and true both count as in circulation; only an explicit false excludes."""
    return record.in_circulation is not False


def filter_records(
    records: Iterable[CatalogRecord],
    uploader: Optional[str] = None,
) -> list[CatalogRecord]:
    """Keep in-circulation records, optionally from a single uploader.

    Args:
        records: Raw catalog records
        uploader: If set, only records whose uploader email equals this exactly

    Returns:
        Matching records in input order (empty input gives an empty list)
    """
    result = [r for r in records if is_in_circulation(r)]
    if uploader:
        result = [r for r in result if r.uploader_email == uploader]
    return result
