"""Per-book transfer: stage the book privately, then materialize it.

Two entry points share the same staging and materialization steps:

- ``transfer`` (batch): the destination was chosen by the planner and is
  never overwritten.
- ``transfer_one`` (single book): an existing copy at the destination is
  deleted first, or merged into if it cannot be deleted.
"""

from pathlib import Path
from typing import Optional

from bloom_bulk_common import get_logger
from bloom_bulk_contracts import ResolvedEntry, TransferOutcome

from .copying import ProgressCallback
from .materialize import FolderMaterializer
from .planner import PlannedTransfer
from .sources import BookSource
from .staging import StagingFolder

logger = get_logger(__name__)


class FolderTransfer:
    """Moves books from a source into the destination, one at a time.

    Args:
        source: Where book files come from
        materializer: Puts staged folders in place
        staging_root: Parent for staging folders (None = system temp)
        progress: Called after each file is staged

    Raises (from ``transfer``/``transfer_one``):
        BookNotFoundError: The source has no files for the book
        ItemTransferError: The book could not be staged
    """

    def __init__(
        self,
        source: BookSource,
        materializer: Optional[FolderMaterializer] = None,
        staging_root: Optional[Path] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.source = source
        self.materializer = materializer or FolderMaterializer()
        self.staging_root = staging_root
        self.progress = progress

    def transfer(self, planned: PlannedTransfer) -> TransferOutcome:
        """Batch path: write a book to its planned, currently free, folder."""
        return self._transfer(planned.entry, planned.destination, replace_existing=False)

    def transfer_one(self, entry: ResolvedEntry, destination_root: Path | str) -> TransferOutcome:
        """Single-book path: replace whatever is at ``destination_root/folder_name``."""
        destination = Path(destination_root) / entry.folder_name
        return self._transfer(entry, destination, replace_existing=True)

    def _transfer(
        self,
        entry: ResolvedEntry,
        destination: Path,
        replace_existing: bool,
    ) -> TransferOutcome:
        with StagingFolder(self.staging_root) as staging:
            staged = staging.combine(destination.name)
            staged_files = self.source.stage(entry, staged, self.progress)
            result = self.materializer.materialize(staged, destination, replace_existing=replace_existing)

        if result.success:
            logger.debug(
                "book_transferred",
                folder=destination.name,
                key=entry.key,
                files=result.files_copied,
                moved=result.moved,
            )
        else:
            logger.debug(
                "book_transfer_incomplete",
                folder=destination.name,
                key=entry.key,
                staged=staged_files,
                failures=len(result.failures),
            )

        return TransferOutcome(
            key=entry.key,
            folder_name=destination.name,
            success=result.success,
            files_copied=result.files_copied,
            destination=str(destination),
            reason=None if result.success else f"{len(result.failures)} file(s) differ and could not be written",
        )
