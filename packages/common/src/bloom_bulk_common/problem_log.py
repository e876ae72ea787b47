"""Append-only problem file written at the destination root.

Non-fatal anomalies (unresolvable records, books that could not be
copied) are never printed individually. They accumulate in
``problems.txt``; the file's existence after a run signals that the run
was only partially successful.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from .logging_config import get_logger

logger = get_logger(__name__)

PROBLEM_FILE_NAME = "problems.txt"


class ProblemLog:
    """Plain-text problem sink.

    Each write opens, appends and closes the file. The pipeline is
    single-threaded, so no locking is needed.
    """

    def __init__(self, destination_root: Path | str):
        self.path = Path(destination_root) / PROBLEM_FILE_NAME
        self.entries_written = 0

    def write(self, message: str) -> None:
        """Append one problem line."""
        self.write_many([message])

    def write_many(self, messages: Iterable[str]) -> None:
        """Append several problem lines in one open/close cycle."""
        lines = [m.rstrip("\n") for m in messages]
        if not lines:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        with open(self.path, "a", encoding="utf-8") as f:
            for line in lines:
                f.write(f"{stamp} {line}\n")
        self.entries_written += len(lines)
        logger.debug("problems_logged", path=str(self.path), count=len(lines))

    def exists(self) -> bool:
        return self.path.exists()

    def read_lines(self) -> list[str]:
        """Return the logged lines, or an empty list if nothing was logged."""
        if not self.path.exists():
            return []
        return self.path.read_text(encoding="utf-8").splitlines()
