"""Identity reconciliation: collapse catalog records into unique destination folders.

Steps, in order:

1. Group records by sanitized title, case-insensitively (destination
   filesystems are case-insensitive).
2. A title used once keeps its name.
3. A title shared by several records becomes ``title_uploaderEmail`` for
   every member of the group.
4. Records with no usable locator are dropped.
5. Records sharing a locator are republications of one book; the strictly
   newer ``last_updated`` wins and a tie keeps the first seen.
6. Surviving folder names are made unique with ``_N`` suffixes; a record
   whose name cannot be made unique is dropped.

Nothing here raises for a bad record. Every drop becomes a ``RecordSkip``
that is logged and, when a problem log is supplied, written to it.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from bloom_bulk_common import ProblemLog, get_logger
from bloom_bulk_contracts import CatalogRecord, LocatorKind, RecordSkip, ResolvedEntry

from .naming import NameAllocator, name_key

logger = get_logger(__name__)

NO_LOCATOR = "no locator, can't be copied"
NO_TITLE = "no usable title, can't be copied"
TOO_MANY_NAMES = "too many identical names"


@dataclass
class ReconciliationResult:
    """Unique mapping of locator to entry, plus everything that was dropped."""

    entries: dict[str, ResolvedEntry] = field(default_factory=dict)
    skips: list[RecordSkip] = field(default_factory=list)

    @property
    def folder_names(self) -> list[str]:
        return [e.folder_name for e in self.entries.values()]

    def __len__(self) -> int:
        return len(self.entries)


class IdentityReconciler:
    """Resolve duplicate titles and republished books into one entry per locator.

    Args:
        locator_kind: Field used as the stable identity (baseUrl by default)
        problem_log: Optional sink for skipped records
    """

    def __init__(
        self,
        locator_kind: LocatorKind = LocatorKind.base_url,
        problem_log: Optional[ProblemLog] = None,
    ) -> None:
        self.locator_kind = locator_kind
        self.problem_log = problem_log

    def reconcile(self, records: Iterable[CatalogRecord]) -> ReconciliationResult:
        """Build the locator → entry mapping for already-filtered records."""
        records = list(records)
        result = ReconciliationResult()

        group_sizes: dict[str, int] = {}
        for record in records:
            key = name_key(record.sanitized_title)
            group_sizes[key] = group_sizes.get(key, 0) + 1

        chosen: dict[str, ResolvedEntry] = {}
        for record in records:
            title = record.sanitized_title
            if not title.strip():
                self._skip(result, record, NO_TITLE)
                continue

            locator = record.locator(self.locator_kind)
            if locator is None:
                self._skip(result, record, NO_LOCATOR)
                continue

            if group_sizes[name_key(title)] > 1:
                folder_name = f"{title}_{record.uploader_email}"
            else:
                folder_name = title

            entry = ResolvedEntry(
                key=locator,
                title=title,
                folder_name=folder_name,
                uploader_email=record.uploader_email,
                last_updated=record.last_updated,
                instance_id=record.instance_id,
                base_url=record.base_url,
            )

            existing = chosen.get(locator)
            if existing is None:
                chosen[locator] = entry
            elif entry.last_updated > existing.last_updated:
                chosen[locator] = entry
                self._skip_entry(
                    result,
                    existing,
                    f"superseded by a newer upload from {entry.uploader_email} "
                    f"({entry.last_updated.isoformat()})",
                )
            else:
                self._skip_entry(
                    result,
                    entry,
                    f"duplicate of an upload from {existing.uploader_email} "
                    f"({existing.last_updated.isoformat()}) that is not older",
                )

        allocator = NameAllocator()
        for locator, entry in chosen.items():
            allocation = allocator.allocate(entry.folder_name)
            if not allocation.ok:
                self._skip_entry(result, entry, TOO_MANY_NAMES)
                continue
            if allocation.renamed:
                logger.debug(
                    "folder_name_disambiguated",
                    requested=allocation.requested,
                    assigned=allocation.name,
                    key=locator,
                )
                entry = entry.model_copy(update={"folder_name": allocation.name})
            result.entries[locator] = entry

        logger.info(
            "reconciliation_complete",
            records=len(records),
            resolved=len(result.entries),
            skipped=len(result.skips),
        )
        return result

    def _skip(self, result: ReconciliationResult, record: CatalogRecord, reason: str) -> None:
        self._record_skip(
            result,
            RecordSkip(
                title=record.title,
                uploader_email=record.uploader_email,
                reason=reason,
                key=record.locator(self.locator_kind),
            ),
        )

    def _skip_entry(self, result: ReconciliationResult, entry: ResolvedEntry, reason: str) -> None:
        self._record_skip(
            result,
            RecordSkip(
                title=entry.title,
                uploader_email=entry.uploader_email,
                reason=reason,
                key=entry.key,
            ),
        )

    def _record_skip(self, result: ReconciliationResult, skip: RecordSkip) -> None:
        result.skips.append(skip)
        logger.debug(
            "record_skipped",
            title=skip.title,
            uploader=skip.uploader_email,
            reason=skip.reason,
            key=skip.key,
        )
        if self.problem_log is not None:
            self.problem_log.write(skip.describe())


def reconcile_records(
    records: Iterable[CatalogRecord],
    locator_kind: LocatorKind = LocatorKind.base_url,
    problem_log: Optional[ProblemLog] = None,
) -> ReconciliationResult:
    """Convenience wrapper around ``IdentityReconciler.reconcile``."""
    return IdentityReconciler(locator_kind, problem_log).reconcile(records)
