"""Options for one bulk download run, and what they imply."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from bloom_bulk_common import BucketCategory, Environment, Settings, get_environment
from bloom_bulk_contracts import LocatorKind
from bloom_bulk_transfer import SyncRequest


@dataclass(frozen=True)
class BulkDownloadOptions:
    """Everything the user chose on the command line.

    Attributes:
        destination: Final filtered destination for books
        bucket: Which library copy to mirror
        sync_folder: Override for the local mirror folder
        user: Only this uploader's books (sync prefix and record filter)
        dry_run: Ask the sync tool to list what it would do, then stop
        skip_sync: Reuse the existing mirror without syncing
        include: Sync only object keys matching this pattern
        trial: Restrict to the configured trial uploader
        direct: Download books from the bucket instead of the mirror
        book: Only this locator, replacing any existing copy
        locator_kind: Which record field identifies a book
    """

    destination: Path
    bucket: BucketCategory
    sync_folder: Optional[Path] = None
    user: Optional[str] = None
    dry_run: bool = False
    skip_sync: bool = False
    include: Optional[str] = None
    trial: bool = False
    direct: bool = False
    book: Optional[str] = None
    locator_kind: LocatorKind = LocatorKind.base_url

    @property
    def environment(self) -> Environment:
        return get_environment(self.bucket)

    @property
    def bucket_name(self) -> str:
        return self.environment.bucket_name

    @property
    def parse_server(self) -> str:
        return self.environment.parse_server

    def effective_user(self, settings: Settings) -> Optional[str]:
        """Uploader scope; --user wins over --trial."""
        if self.user:
            return self.user
        if self.trial:
            return settings.trial_uploader
        return None

    def resolved_sync_folder(self, settings: Settings) -> Path:
        if self.sync_folder is not None:
            return Path(self.sync_folder)
        return Path(settings.sync_root) / self.environment.sync_folder_name

    def sync_request(self, settings: Settings) -> SyncRequest:
        return SyncRequest(
            bucket_name=self.bucket_name,
            sync_folder=self.resolved_sync_folder(settings),
            user=self.effective_user(settings),
            dry_run=self.dry_run,
            include=self.include,
        )

    @property
    def runs_sync(self) -> bool:
        """Direct downloads and --skipS3 both bypass the mirror."""
        return not (self.skip_sync or self.direct)
