"""Put a fully staged book folder at its final destination.

Order of attempts:

1. Optionally delete an existing destination (single-book downloads replace
   what is there; batch runs never overwrite).
2. If staging and destination are on the same volume and the destination is
   free, rename the staged folder into place. The folder then appears
   complete in one step.
3. Otherwise, or if the rename fails, copy the staged tree over. This path
   is best effort per file.
4. If neither works, tell the user to retry instead of raising; a half
   written book folder is worse than none.
"""

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol

from bloom_bulk_common import get_logger

from .copying import copy_directory, count_files

logger = get_logger(__name__)

RETRY_MESSAGE = (
    "The book was downloaded but there were problems making it available. "
    "Please restart your computer and try again. If you get this message again, "
    "please report the problem to the developers."
)


class Notifier(Protocol):
    """Receives user-facing problem reports."""

    def notify_problem(self, message: str, detail: str) -> None: ...


class LoggingNotifier:
    """Default notifier: reports through the structured log."""

    def notify_problem(self, message: str, detail: str) -> None:
        logger.error("user_notification", message=message, detail=detail)


@dataclass
class MaterializeResult:
    """What happened to one staged folder."""

    destination: Path
    success: bool
    moved: bool = False
    replaced_existing: bool = False
    files_copied: int = 0
    failures: list[str] = field(default_factory=list)


def _existing_ancestor(path: Path) -> Path:
    path = Path(path).absolute()
    while not path.exists() and path != path.parent:
        path = path.parent
    return path


def same_volume(path1: Path | str, path2: Path | str) -> bool:
    """True if both paths (or their nearest existing ancestors) share a device."""
    try:
        return (
            _existing_ancestor(Path(path1)).stat().st_dev
            == _existing_ancestor(Path(path2)).stat().st_dev
        )
    except OSError:
        return False


class FolderMaterializer:
    """Moves or copies staged folders into place.

    Args:
        notifier: Where "please retry" problems are reported
    """

    def __init__(self, notifier: Optional[Notifier] = None):
        self.notifier = notifier or LoggingNotifier()

    def materialize(
        self,
        staged: Path,
        destination: Path,
        replace_existing: bool = False,
    ) -> MaterializeResult:
        """Make ``destination`` hold the contents of ``staged``.

        Args:
            staged: Complete book folder inside a staging area
            destination: Final folder path (not its parent)
            replace_existing: Delete an existing destination first (best effort)

        Returns:
            MaterializeResult; ``success`` is False only when the book could
            not be made fully available
        """
        staged, destination = Path(staged), Path(destination)
        result = MaterializeResult(destination=destination, success=False)
        destination.parent.mkdir(parents=True, exist_ok=True)

        if destination.exists() and replace_existing:
            try:
                shutil.rmtree(destination)
                result.replaced_existing = True
            except OSError as e:
                # can't delete it; see if we can copy into it
                logger.debug("destination_delete_failed", path=str(destination), error=str(e))

        if not destination.exists() and same_volume(staged, destination.parent):
            try:
                files = count_files(staged)
                os.rename(staged, destination)
                result.moved = True
                result.success = True
                result.files_copied = files
                logger.debug("staged_folder_moved", destination=str(destination), files=files)
                return result
            except OSError as e:
                # If moving didn't work we'll just try copying
                logger.debug("staged_move_failed", destination=str(destination), error=str(e))

        copied = copy_directory(staged, destination)
        result.files_copied = copied.files_copied
        result.failures = copied.failures
        result.success = copied.success

        if not result.success:
            self.notifier.notify_problem(
                RETRY_MESSAGE,
                f"{len(copied.failures)} file(s) could not be written under {destination}",
            )
        return result
