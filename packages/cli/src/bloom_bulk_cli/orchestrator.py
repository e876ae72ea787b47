"""Bulk download pipeline: sync, fetch catalog, filter, reconcile, plan, transfer.

Usage:
    >>> orchestrator = TransferOrchestrator(options, settings, fetcher, transfer, sync)
    >>> summary = orchestrator.run()
    >>> raise SystemExit(summary.exit_code)

Exit status is 0 whenever the batch completes, even if some books were
skipped; those go to ``problems.txt`` at the destination. Any fatal error
(sync or catalog failure, unexpected fault) is logged and becomes exit 1.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from bloom_bulk_catalog import CatalogFetcher, IdentityReconciler, filter_records
from bloom_bulk_common import (
    BloomBulkError,
    BookNotFoundError,
    ItemTransferError,
    ProblemLog,
    Settings,
    get_logger,
)
from bloom_bulk_contracts import BatchTotals, ResolvedEntry, TransferOutcome
from bloom_bulk_transfer import BulkSync, FolderTransfer, plan_destinations

from .options import BulkDownloadOptions

logger = get_logger(__name__)


@dataclass
class RunSummary:
    """What a run did, for the CLI to report."""

    exit_code: int = 0
    totals: BatchTotals = field(default_factory=BatchTotals)
    dry_run: bool = False
    sync_output: str = ""
    error: Optional[str] = None
    problem_file: Optional[str] = None


class TransferOrchestrator:
    """Runs one bulk download.

    Args:
        options: Command-line choices
        settings: Runtime settings
        fetcher: Catalog source (the Parse client, or a test double)
        transfer: Per-book transfer
        sync: Bulk sync runner (unused when the run skips syncing)
    """

    def __init__(
        self,
        options: BulkDownloadOptions,
        settings: Settings,
        fetcher: CatalogFetcher,
        transfer: FolderTransfer,
        sync: Optional[BulkSync] = None,
    ) -> None:
        self.options = options
        self.settings = settings
        self.fetcher = fetcher
        self.transfer = transfer
        self.sync = sync
        self.problem_log = ProblemLog(options.destination)

    def run(self) -> RunSummary:
        """Run the pipeline; never raises."""
        summary = RunSummary(dry_run=self.options.dry_run)
        try:
            self._run(summary)
        except BloomBulkError as e:
            logger.error("batch_failed", error=str(e), error_type=type(e).__name__)
            summary.exit_code = 1
            summary.error = str(e)
        except Exception as e:
            logger.exception("batch_crashed", error=str(e))
            summary.exit_code = 1
            summary.error = f"Unexpected error: {e}"
        if self.problem_log.exists():
            summary.problem_file = str(self.problem_log.path)
        return summary

    def _run(self, summary: RunSummary) -> None:
        if self.options.runs_sync:
            if self.sync is None:
                raise BloomBulkError("No sync runner configured")
            result = self.sync.run(self.options.sync_request(self.settings))
            summary.sync_output = result.stdout

        if self.options.dry_run:
            logger.info("dry_run_complete")
            return

        user = self.options.effective_user(self.settings)
        fetched = self.fetcher.fetch()
        scoped = filter_records(fetched.records, user)
        malformed = [s for s in fetched.skips if not user or s.uploader_email == user]
        logger.info(
            "records_filtered",
            fetched=len(fetched.records),
            in_scope=len(scoped),
            malformed=len(malformed),
        )
        self.problem_log.write_many(skip.describe() for skip in malformed)

        reconciler = IdentityReconciler(self.options.locator_kind, self.problem_log)
        resolved = reconciler.reconcile(scoped)

        totals = summary.totals
        totals.skipped_records = len(malformed) + len(resolved.skips)

        if self.options.book:
            self._transfer_single(resolved.entries.get(self.options.book), totals)
        else:
            self._transfer_batch(list(resolved.entries.values()), totals)

        if totals.not_found:
            self.problem_log.write_many(f"not found: {item}" for item in totals.not_found)

        logger.info(
            "batch_complete",
            books=totals.book_count,
            files=totals.file_count,
            failed=len(totals.failed),
            not_found=len(totals.not_found),
            skipped=totals.skipped_records,
        )

    def _transfer_batch(self, entries: list[ResolvedEntry], totals: BatchTotals) -> None:
        plan = plan_destinations(entries, self.options.destination)
        for skip in plan.skipped:
            self.problem_log.write(skip.describe())
        totals.skipped_records += len(plan.skipped)

        for planned in plan.items:
            totals.add(self._guarded(planned.entry, planned.folder_name, self.transfer.transfer, planned))

    def _transfer_single(self, entry: Optional[ResolvedEntry], totals: BatchTotals) -> None:
        if entry is None:
            logger.debug("requested_book_not_in_catalog", key=self.options.book)
            totals.not_found.append(f"{self.options.book} (not in catalog)")
            return
        totals.add(
            self._guarded(
                entry,
                entry.folder_name,
                self.transfer.transfer_one,
                entry,
                self.options.destination,
            )
        )

    def _guarded(
        self,
        entry: ResolvedEntry,
        folder_name: str,
        action: Callable[..., TransferOutcome],
        *args: Any,
    ) -> TransferOutcome:
        """Run one book's transfer, turning item-level errors into outcomes."""
        try:
            outcome = action(*args)
        except BookNotFoundError as e:
            logger.debug("book_not_found", key=entry.key, folder=folder_name, location=e.location)
            return TransferOutcome(
                key=entry.key,
                folder_name=folder_name,
                success=False,
                reason=str(e),
                not_found=True,
            )
        except (ItemTransferError, OSError) as e:
            logger.debug("book_transfer_failed", key=entry.key, folder=folder_name, error=str(e))
            outcome = TransferOutcome(
                key=entry.key,
                folder_name=folder_name,
                success=False,
                reason=str(e),
            )

        if not outcome.success:
            self.problem_log.write(f"{outcome.folder_name} ({outcome.key}): {outcome.reason}")
        return outcome
