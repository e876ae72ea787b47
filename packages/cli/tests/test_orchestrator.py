"""Tests for the bulk download pipeline.

Tests cover:
- Fatal errors (sync, catalog) become exit code 1
- Dry runs stop after the sync phase
- Per-book failures are logged without stopping the batch
- Problem file contents
- User scoping and single-book runs
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from bloom_bulk_catalog import MALFORMED_RECORD, CatalogFetch
from bloom_bulk_cli import BulkDownloadOptions, TransferOrchestrator
from bloom_bulk_common import (
    BookNotFoundError,
    BucketCategory,
    CatalogTruncationError,
    ItemTransferError,
    ProblemLog,
    SyncError,
)
from bloom_bulk_contracts import RecordSkip, TransferOutcome
from bloom_bulk_transfer import FolderTransfer, S3BookSource, SyncResult

pytestmark = pytest.mark.unit


# =============================================================================
# Test doubles
# =============================================================================


class FakeFetcher:
    def __init__(self, records=None, error=None, skips=None):
        self.records = records or []
        self.skips = skips or []
        self.error = error
        self.calls = 0

    def fetch(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return CatalogFetch(records=list(self.records), skips=list(self.skips))


class FakeSync:
    def __init__(self, error=None, stdout=""):
        self.error = error
        self.stdout = stdout
        self.requests = []

    def run(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return SyncResult(0, self.stdout, "")


class FakeTransfer:
    """Records transfers; books whose key is in ``missing``/``broken`` fail."""

    def __init__(self, missing=(), broken=()):
        self.missing = set(missing)
        self.broken = set(broken)
        self.transferred = []
        self.replaced = []

    def _outcome(self, entry, destination):
        if entry.key in self.missing:
            raise BookNotFoundError(entry.key, f"s3://bucket/{entry.key}")
        if entry.key in self.broken:
            raise ItemTransferError(f"Could not stage {entry.folder_name}")
        return TransferOutcome(
            key=entry.key,
            folder_name=Path(destination).name,
            success=True,
            files_copied=3,
            destination=str(destination),
        )

    def transfer(self, planned):
        outcome = self._outcome(planned.entry, planned.destination)
        self.transferred.append(planned.folder_name)
        return outcome

    def transfer_one(self, entry, destination_root):
        outcome = self._outcome(entry, Path(destination_root) / entry.folder_name)
        self.replaced.append(entry.folder_name)
        return outcome


@pytest.fixture
def destination(tmp_path):
    return tmp_path / "books"


def make_orchestrator(destination, settings, fetcher, transfer=None, sync=None, **options):
    opts = BulkDownloadOptions(destination=destination, bucket=BucketCategory.sandbox, **options)
    return TransferOrchestrator(opts, settings, fetcher, transfer or FakeTransfer(), sync or FakeSync())


def problem_messages(destination):
    """Problem lines without their timestamps."""
    return [line.split(" ", 2)[2] for line in ProblemLog(destination).read_lines()]


# =============================================================================
# Fatal errors
# =============================================================================


class TestFatalErrors:
    """Tests for errors that abort the batch."""

    def test_sync_failure_exits_1(self, destination, settings):
        """Test a failing sync stops the run before the catalog is read."""
        fetcher = FakeFetcher()
        sync = FakeSync(error=SyncError(1, "access denied"))

        summary = make_orchestrator(destination, settings, fetcher, sync=sync).run()

        assert summary.exit_code == 1
        assert "access denied" in summary.error
        assert fetcher.calls == 0

    def test_catalog_truncation_exits_1(self, destination, settings):
        fetcher = FakeFetcher(error=CatalogTruncationError(2000, 2000))
        transfer = FakeTransfer()

        summary = make_orchestrator(destination, settings, fetcher, transfer).run()

        assert summary.exit_code == 1
        assert "truncated" in summary.error
        assert transfer.transferred == []

    def test_unexpected_error_exits_1(self, destination, settings):
        fetcher = FakeFetcher(error=RuntimeError("boom"))

        summary = make_orchestrator(destination, settings, fetcher).run()

        assert summary.exit_code == 1
        assert summary.error == "Unexpected error: boom"

    def test_missing_sync_runner(self, destination, settings):
        opts = BulkDownloadOptions(destination=destination, bucket=BucketCategory.sandbox)
        orchestrator = TransferOrchestrator(opts, settings, FakeFetcher(), FakeTransfer(), None)

        assert orchestrator.run().exit_code == 1


# =============================================================================
# Sync phase
# =============================================================================


class TestSyncPhase:
    """Tests for the sync phase and what skips it."""

    def test_dry_run_stops_after_sync(self, destination, settings):
        fetcher = FakeFetcher()
        sync = FakeSync(stdout="(dryrun) download: s3://b/x to x\n")

        summary = make_orchestrator(destination, settings, fetcher, sync=sync, dry_run=True).run()

        assert summary.exit_code == 0
        assert summary.dry_run
        assert "(dryrun)" in summary.sync_output
        assert sync.requests[0].dry_run
        assert fetcher.calls == 0
        assert not destination.exists()

    def test_sync_request_uses_environment(self, destination, settings):
        sync = FakeSync()

        make_orchestrator(destination, settings, FakeFetcher(), sync=sync, user="a@x.com").run()

        request = sync.requests[0]
        assert request.bucket_name == "BloomLibraryBooks-Sandbox"
        assert request.remote_prefix == "s3://BloomLibraryBooks-Sandbox/a@x.com"
        assert request.sync_folder == settings.sync_root / "BloomBulkDownloader-SyncFolder-sandbox"

    def test_skip_sync(self, destination, settings):
        sync = FakeSync()

        summary = make_orchestrator(destination, settings, FakeFetcher(), sync=sync, skip_sync=True).run()

        assert summary.exit_code == 0
        assert sync.requests == []

    def test_direct_skips_sync(self, destination, settings):
        sync = FakeSync()

        make_orchestrator(destination, settings, FakeFetcher(), sync=sync, direct=True).run()

        assert sync.requests == []


# =============================================================================
# Batch transfer
# =============================================================================


class TestBatchTransfer:
    """Tests for the transfer phase."""

    def test_transfers_reconciled_books(self, destination, settings, make_record):
        fetcher = FakeFetcher(
            [
                make_record("Alpha", "K1"),
                make_record("Beta", "K2"),
                make_record("Gamma", "K3", in_circulation=False),
            ]
        )
        transfer = FakeTransfer()

        summary = make_orchestrator(destination, settings, fetcher, transfer).run()

        assert summary.exit_code == 0
        assert transfer.transferred == ["Alpha", "Beta"]
        assert summary.totals.book_count == 2
        assert summary.totals.file_count == 6
        assert summary.problem_file is None

    def test_not_found_does_not_abort_batch(self, destination, settings, make_record):
        """Test a book with no remote objects is logged while the others are copied."""
        fetcher = FakeFetcher(
            [make_record("Alpha", "K1"), make_record("Lost", "K2"), make_record("Gamma", "K3")]
        )
        transfer = FakeTransfer(missing={"K2"})

        summary = make_orchestrator(destination, settings, fetcher, transfer).run()

        assert summary.exit_code == 0
        assert transfer.transferred == ["Alpha", "Gamma"]
        assert summary.totals.not_found == ["Lost (K2)"]
        assert problem_messages(destination) == ["not found: Lost (K2)"]
        assert summary.problem_file == str(destination / "problems.txt")

    def test_item_error_logged_and_batch_continues(self, destination, settings, make_record):
        fetcher = FakeFetcher([make_record("Alpha", "K1"), make_record("Beta", "K2")])
        transfer = FakeTransfer(broken={"K1"})

        summary = make_orchestrator(destination, settings, fetcher, transfer).run()

        assert summary.exit_code == 0
        assert transfer.transferred == ["Beta"]
        assert len(summary.totals.failed) == 1
        assert problem_messages(destination) == ["Alpha (K1): Could not stage Alpha"]

    def test_skipped_records_go_to_problem_file(self, destination, settings, make_record):
        fetcher = FakeFetcher([make_record("Alpha", "K1"), make_record("No Home", None)])

        summary = make_orchestrator(destination, settings, fetcher).run()

        assert summary.totals.skipped_records == 1
        assert problem_messages(destination) == ["No Home (a@x.com): no locator, can't be copied"]

    def test_existing_destination_folders_not_overwritten(self, destination, settings, make_record):
        (destination / "Alpha").mkdir(parents=True)
        transfer = FakeTransfer()

        make_orchestrator(destination, settings, FakeFetcher([make_record("Alpha", "K1")]), transfer).run()

        assert transfer.transferred == ["Alpha_1"]

    def test_user_filter(self, destination, settings, make_record):
        fetcher = FakeFetcher(
            [make_record("Alpha", "K1", uploader="a@x.com"), make_record("Beta", "K2", uploader="b@x.com")]
        )
        transfer = FakeTransfer()

        make_orchestrator(destination, settings, fetcher, transfer, user="b@x.com").run()

        assert transfer.transferred == ["Beta"]

    def test_trial_uses_configured_uploader(self, destination, settings, make_record):
        fetcher = FakeFetcher(
            [make_record("Alpha", "K1"), make_record("Beta", "K2", uploader="trial@x.com")]
        )
        transfer = FakeTransfer()

        make_orchestrator(destination, settings, fetcher, transfer, trial=True).run()

        assert transfer.transferred == ["Beta"]


# =============================================================================
# Single book
# =============================================================================


class TestSingleBook:
    """Tests for --book runs."""

    def test_replaces_requested_book(self, destination, settings, make_record):
        fetcher = FakeFetcher([make_record("Alpha", "K1"), make_record("Beta", "K2")])
        transfer = FakeTransfer()

        summary = make_orchestrator(destination, settings, fetcher, transfer, book="K2").run()

        assert transfer.replaced == ["Beta"]
        assert transfer.transferred == []
        assert summary.totals.book_count == 1

    def test_unknown_book(self, destination, settings, make_record):
        fetcher = FakeFetcher([make_record("Alpha", "K1")])
        transfer = FakeTransfer()

        summary = make_orchestrator(destination, settings, fetcher, transfer, book="K9").run()

        assert summary.exit_code == 0
        assert transfer.replaced == []
        assert problem_messages(destination) == ["not found: K9 (not in catalog)"]


# =============================================================================
# Malformed catalog records
# =============================================================================


def malformed(title="Broken", uploader="a@x.com", key="obj9"):
    return RecordSkip(
        title=title,
        uploader_email=uploader,
        reason=f"{MALFORMED_RECORD} (updatedAt: Field required)",
        key=key,
    )


class TestMalformedRecords:
    """Tests for catalog entries that failed validation."""

    def test_batch_continues_past_malformed_record(self, destination, settings, make_record):
        """Test one bad catalog entry is logged once and the good books are still copied."""
        fetcher = FakeFetcher(
            [make_record("Alpha", "K1"), make_record("Beta", "K2")], skips=[malformed()]
        )
        transfer = FakeTransfer()

        summary = make_orchestrator(destination, settings, fetcher, transfer).run()

        assert summary.exit_code == 0
        assert summary.error is None
        assert transfer.transferred == ["Alpha", "Beta"]
        assert summary.totals.skipped_records == 1
        assert problem_messages(destination) == [
            "Broken (a@x.com): malformed catalog record (updatedAt: Field required)"
        ]

    def test_malformed_records_outside_user_scope_ignored(self, destination, settings, make_record):
        fetcher = FakeFetcher(
            [make_record("Beta", "K2", uploader="b@x.com")],
            skips=[malformed("Mine", "b@x.com"), malformed("Theirs", "a@x.com")],
        )

        summary = make_orchestrator(destination, settings, fetcher, user="b@x.com").run()

        assert summary.totals.skipped_records == 1
        assert problem_messages(destination) == [
            "Mine (b@x.com): malformed catalog record (updatedAt: Field required)"
        ]


# =============================================================================
# Direct download storage errors
# =============================================================================


def fake_bucket(objects, download_error=None):
    """MagicMock S3 client serving ``objects`` by prefix; downloads under K1/ fail."""
    s3 = MagicMock()

    def paginate(Bucket, Prefix):
        return [{"Contents": [{"Key": k} for k in objects if k.startswith(Prefix)]}]

    def download_file(bucket, key, filename):
        if download_error is not None and key.startswith("K1/"):
            raise download_error
        with open(filename, "w") as f:
            f.write(key)

    s3.get_paginator.return_value.paginate.side_effect = paginate
    s3.download_file.side_effect = download_file
    return s3


class TestDirectStorageErrors:
    """Tests for storage errors during direct downloads."""

    def run_direct(self, destination, settings, make_record, error):
        s3 = fake_bucket(["K1/Alpha.htm", "K2/Beta.htm"], download_error=error)
        transfer = FolderTransfer(
            S3BookSource("BloomLibraryBooks-Sandbox", s3_client=s3),
            staging_root=settings.staging_root,
        )
        fetcher = FakeFetcher([make_record("Alpha", "K1"), make_record("Beta", "K2")])
        return make_orchestrator(destination, settings, fetcher, transfer, direct=True).run()

    def test_access_denied_fails_one_book(self, destination, settings, make_record):
        error = ClientError({"Error": {"Code": "403", "Message": "Forbidden"}}, "GetObject")

        summary = self.run_direct(destination, settings, make_record, error)

        assert summary.exit_code == 0
        assert (destination / "Beta" / "Beta.htm").read_text() == "K2/Beta.htm"
        assert not (destination / "Alpha").exists()
        assert summary.totals.book_count == 1
        assert len(summary.totals.failed) == 1
        [line] = problem_messages(destination)
        assert line.startswith("Alpha (K1): Could not download s3://BloomLibraryBooks-Sandbox/K1/Alpha.htm")

    def test_missing_object_counts_as_not_found(self, destination, settings, make_record):
        error = ClientError({"Error": {"Code": "NoSuchKey", "Message": "gone"}}, "GetObject")

        summary = self.run_direct(destination, settings, make_record, error)

        assert summary.exit_code == 0
        assert (destination / "Beta" / "Beta.htm").exists()
        assert summary.totals.not_found == ["Alpha (K1)"]
        assert problem_messages(destination) == ["not found: Alpha (K1)"]
