"""Bulk mirror of the bucket into a local folder with the ``aws s3 sync`` tool.

The sync tool is a black box: it must exit 0, and whatever it wrote to its
error stream is surfaced verbatim when it doesn't.

Example:
    >>> request = SyncRequest(bucket_name="BloomLibraryBooks-Sandbox",
    ...                       sync_folder=Path("/data/mirror"), dry_run=True)
    >>> build_sync_args(request)
    ['s3', 'sync', 's3://BloomLibraryBooks-Sandbox', '/data/mirror', '--dryrun']
"""

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from bloom_bulk_common import SyncError, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SyncRequest:
    """What to mirror and where."""

    bucket_name: str
    sync_folder: Path
    user: Optional[str] = None
    dry_run: bool = False
    include: Optional[str] = None

    @property
    def remote_prefix(self) -> str:
        remote = f"s3://{self.bucket_name}"
        return f"{remote}/{self.user}" if self.user else remote

    @property
    def local_folder(self) -> Path:
        return Path(self.sync_folder) / self.user if self.user else Path(self.sync_folder)


@dataclass(frozen=True)
class SyncResult:
    returncode: int
    stdout: str
    stderr: str


def build_sync_args(request: SyncRequest) -> list[str]:
    """Arguments for the sync tool, without the executable."""
    args = ["s3", "sync", request.remote_prefix, str(request.local_folder)]
    if request.include:
        args += ["--exclude", "*", "--include", request.include]
    if request.dry_run:
        args.append("--dryrun")
    return args


class BulkSync:
    """Runs the sync tool as a subprocess.

    Args:
        executable: Sync tool to run (default: aws)
        timeout: Seconds before the sync is abandoned (None = wait forever)
        runner: subprocess.run compatible callable (tests)
    """

    def __init__(
        self,
        executable: str = "aws",
        timeout: Optional[float] = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        self.executable = executable
        self.timeout = timeout
        self._runner = runner

    def command(self, request: SyncRequest) -> list[str]:
        return [self.executable] + build_sync_args(request)

    def run(self, request: SyncRequest) -> SyncResult:
        """Mirror the bucket prefix.

        Raises:
            SyncError: If the tool is missing, times out, or exits nonzero
        """
        cmd = self.command(request)
        command_text = " ".join(cmd)
        if not request.dry_run:
            request.local_folder.mkdir(parents=True, exist_ok=True)

        logger.info("sync_started", command=command_text)
        try:
            completed = self._runner(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise SyncError(127, f"Sync tool not found: {e}", command_text) from e
        except subprocess.TimeoutExpired as e:
            raise SyncError(-1, f"Sync timed out after {self.timeout}s", command_text) from e

        if completed.returncode != 0:
            raise SyncError(completed.returncode, completed.stderr or "", command_text)

        logger.info("sync_complete", command=command_text)
        return SyncResult(completed.returncode, completed.stdout or "", completed.stderr or "")
