"""Bloom Bulk Download CLI - Main entry point.

Provides the ``bloom-bulk-download`` command: mirror a library bucket
locally, then copy the reconciled set of books to a destination folder.

Usage:
    bloom-bulk-download /data/books -b sandbox
    bloom-bulk-download /data/books -b production -u someone@example.com
    bloom-bulk-download /data/books -b sandbox --dryrun
    bloom-bulk-download /data/books -b production --skipS3
"""

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from bloom_bulk_catalog import ParseCatalogClient
from bloom_bulk_common import (
    BucketCategory,
    Settings,
    configure_logging,
    get_credentials,
    get_settings,
)
from bloom_bulk_contracts import LocatorKind
from bloom_bulk_transfer import (
    BookSource,
    BulkSync,
    FolderMaterializer,
    FolderTransfer,
    LocalMirrorSource,
    S3BookSource,
)

from bloom_bulk_cli.options import BulkDownloadOptions
from bloom_bulk_cli.orchestrator import RunSummary, TransferOrchestrator
from bloom_bulk_cli.progress import ConsoleNotifier, ConsoleProgress

app = typer.Typer(
    name="bloom-bulk-download",
    help="Sync a Bloom library bucket locally and copy the reconciled books to a destination.",
    add_completion=False,
)


def build_orchestrator(
    options: BulkDownloadOptions,
    settings: Settings,
    progress: Optional[ConsoleProgress] = None,
) -> TransferOrchestrator:
    """Wire the real collaborators for a command-line run."""
    fetcher = ParseCatalogClient(
        options.parse_server,
        get_credentials(options.bucket, settings),
        limit=settings.catalog_page_limit,
        timeout=settings.catalog_timeout,
        retries=settings.catalog_retries,
    )

    source: BookSource
    if options.direct:
        source = S3BookSource(options.bucket_name, options.locator_kind)
    else:
        source = LocalMirrorSource(options.resolved_sync_folder(settings), options.locator_kind)

    transfer = FolderTransfer(
        source,
        materializer=FolderMaterializer(ConsoleNotifier()),
        staging_root=settings.staging_root,
        progress=progress,
    )
    sync = BulkSync(settings.sync_executable, timeout=settings.sync_timeout)
    return TransferOrchestrator(options, settings, fetcher, transfer, sync)


def report(summary: RunSummary) -> None:
    """Print the end-of-run summary."""
    if summary.sync_output:
        typer.echo(summary.sync_output.rstrip())

    if summary.error:
        typer.echo(f"Error: {summary.error}", err=True)
        return

    if summary.dry_run:
        typer.echo("Dry run complete; nothing was copied.")
        return

    totals = summary.totals
    typer.echo(f"Copied {totals.book_count} books ({totals.file_count} files).")
    if summary.problem_file:
        typer.echo(f"Some books could not be copied; see {summary.problem_file}")


@app.command()
def download(
    destination: Path = typer.Argument(..., help="Final filtered destination path for books"),
    bucket: BucketCategory = typer.Option(
        ..., "--bucket", "-b", help="S3 bucket to sync with (sandbox or production)"
    ),
    syncfolder: Optional[Path] = typer.Option(
        None, "--syncfolder", "-f", help="Local folder that mirrors the bucket"
    ),
    user: Optional[str] = typer.Option(
        None, "--user", "-u", help="Only books uploaded by this email"
    ),
    dryrun: bool = typer.Option(
        False, "--dryrun", "-d", help="List files the sync would transfer, but don't download"
    ),
    skip_s3: bool = typer.Option(
        False, "--skipS3", "-s", help="Skip the sync and use the existing local mirror"
    ),
    include: Optional[str] = typer.Option(
        None, "--include", "-i", help="Sync only object keys matching this pattern"
    ),
    trial: bool = typer.Option(
        False, "--trial", "-t", help="Restrict the run to the configured trial uploader"
    ),
    direct: bool = typer.Option(
        False, "--direct", help="Download books straight from the bucket instead of the mirror"
    ),
    book: Optional[str] = typer.Option(
        None, "--book", "-k", help="Only this book locator, replacing any existing copy"
    ),
    locator: LocatorKind = typer.Option(
        LocatorKind.base_url, "--locator", help="Record field that identifies a book"
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
    log_format: Optional[str] = typer.Option(None, "--log-format", help="console or json"),
):
    """Sync the bucket, reconcile the catalog and copy books to DESTINATION.

    Exit code 0 means the batch completed (check DESTINATION/problems.txt
    for books that were skipped); 1 means a fatal error.

    Examples:

        bloom-bulk-download /data/books -b sandbox -u someone@example.com
    """
    overrides = {}
    if log_level:
        overrides["log_level"] = log_level
    if log_format:
        overrides["log_format"] = log_format
    try:
        settings = Settings(**overrides) if overrides else get_settings()
    except ValidationError as e:
        typer.echo(f"Error: invalid configuration: {e}", err=True)
        raise typer.Exit(1)

    configure_logging(settings.log_level, settings.log_format)

    options = BulkDownloadOptions(
        destination=destination,
        bucket=bucket,
        sync_folder=syncfolder,
        user=user,
        dry_run=dryrun,
        skip_sync=skip_s3,
        include=include,
        trial=trial,
        direct=direct,
        book=book,
        locator_kind=locator,
    )

    progress = ConsoleProgress()
    summary = build_orchestrator(options, settings, progress).run()
    progress.finish()
    report(summary)
    raise typer.Exit(summary.exit_code)


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
