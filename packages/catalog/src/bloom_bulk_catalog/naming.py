"""Collision-safe folder name allocation.

Destination filesystems compare names case-insensitively, so the allocator
does too. A taken name is retried with ``_1`` .. ``_9``; when all of those
are taken as well, the allocation reports exhaustion instead of raising and
the caller decides to skip and log.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

MAX_SUFFIX = 9


@dataclass(frozen=True)
class NameAllocation:
    """Outcome of asking for a folder name."""

    requested: str
    name: Optional[str]

    @property
    def ok(self) -> bool:
        return self.name is not None

    @property
    def renamed(self) -> bool:
        return self.name is not None and self.name != self.requested


def name_key(name: str) -> str:
    return name.casefold()


class NameAllocator:
    """Hands out folder names that are unique within one run.

    Args:
        taken: Names already in use (e.g. folders already at the destination)
        max_suffix: Highest numeric suffix to try
    """

    def __init__(self, taken: Iterable[str] = (), max_suffix: int = MAX_SUFFIX):
        self._taken = {name_key(n) for n in taken}
        self.max_suffix = max_suffix

    def is_taken(self, name: str) -> bool:
        return name_key(name) in self._taken

    def allocate(self, name: str) -> NameAllocation:
        """Reserve ``name``, or the first free ``name_N``."""
        candidates = [name] + [f"{name}_{i}" for i in range(1, self.max_suffix + 1)]
        for candidate in candidates:
            if not self.is_taken(candidate):
                self._taken.add(name_key(candidate))
                return NameAllocation(requested=name, name=candidate)
        return NameAllocation(requested=name, name=None)
