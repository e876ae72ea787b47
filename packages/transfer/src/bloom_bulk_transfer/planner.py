"""Assign every resolved book its final destination folder before any writes.

The destination root is listed once. Names already there are never
overwritten: a colliding book tries ``name_1`` .. ``name_9`` and is skipped
when all of those exist too.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from bloom_bulk_catalog import MAX_SUFFIX, NameAllocator
from bloom_bulk_common import get_logger
from bloom_bulk_contracts import ResolvedEntry

logger = get_logger(__name__)


@dataclass(frozen=True)
class PlannedTransfer:
    """One book and the folder it will be written to."""

    entry: ResolvedEntry
    destination: Path

    @property
    def folder_name(self) -> str:
        return self.destination.name


@dataclass(frozen=True)
class PlanSkip:
    """A book that has no free destination name."""

    entry: ResolvedEntry
    reason: str

    def describe(self) -> str:
        return f"{self.entry.folder_name} ({self.entry.key}): {self.reason}"


@dataclass
class TransferPlan:
    items: list[PlannedTransfer] = field(default_factory=list)
    skipped: list[PlanSkip] = field(default_factory=list)


def existing_names(destination_root: Path) -> list[str]:
    """Names of everything directly under the destination root."""
    destination_root = Path(destination_root)
    if not destination_root.is_dir():
        return []
    return [p.name for p in destination_root.iterdir()]


def plan_destinations(entries: Iterable[ResolvedEntry], destination_root: Path | str) -> TransferPlan:
    """Choose a free destination folder for each entry, in order."""
    destination_root = Path(destination_root)
    allocator = NameAllocator(existing_names(destination_root))
    plan = TransferPlan()

    for entry in entries:
        allocation = allocator.allocate(entry.folder_name)
        if not allocation.ok:
            reason = (
                f"destination folder and suffixes _1.._{MAX_SUFFIX} already exist; not copied"
            )
            logger.debug("destination_slots_exhausted", folder=entry.folder_name, key=entry.key)
            plan.skipped.append(PlanSkip(entry=entry, reason=reason))
            continue
        if allocation.renamed:
            logger.debug(
                "destination_collision",
                folder=entry.folder_name,
                assigned=allocation.name,
                key=entry.key,
            )
        plan.items.append(PlannedTransfer(entry=entry, destination=destination_root / allocation.name))

    return plan
