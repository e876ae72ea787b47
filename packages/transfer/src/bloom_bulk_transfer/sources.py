"""Where a resolved book's files come from.

Books live in the bucket under ``<uploader>/<instanceId>/<book folder>/``.
A book source fills a staging folder with one book's transferable files:

- ``LocalMirrorSource`` reads the folder that the bulk sync mirrored locally.
- ``S3BookSource`` downloads the objects straight from the bucket.

Both raise ``BookNotFoundError`` when the book has no transferable files,
which the orchestrator counts and logs without stopping the batch.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Protocol
from urllib.parse import unquote, urlsplit

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from bloom_bulk_common import BookNotFoundError, ItemTransferError, get_logger
from bloom_bulk_contracts import LocatorKind, ResolvedEntry

from .copying import ProgressCallback, copy_directory, count_files
from .exclusions import should_skip

logger = get_logger(__name__)

KEY_DELIMITER = "/"

# S3 error codes that mean the object or prefix is simply not there
NOT_FOUND_CODES = frozenset({"404", "NoSuchKey"})


class BookSource(Protocol):
    """Fills a staging folder with one book."""

    def stage(
        self,
        entry: ResolvedEntry,
        target: Path,
        progress: Optional[ProgressCallback] = None,
    ) -> int: ...


def _safe_parts(key: str) -> list[str]:
    parts = [p for p in key.split(KEY_DELIMITER) if p]
    if any(p in (".", "..") for p in parts):
        raise ItemTransferError(f"Refusing unsafe storage key: {key!r}")
    return parts


def key_from_base_url(base_url: str) -> str:
    """Turn a book's baseUrl into its storage key prefix.

    Handles path-style URLs (``https://s3.amazonaws.com/<bucket>/<key>``)
    and virtual-hosted ones (``https://<bucket>.s3.amazonaws.com/<key>``).
    The key is URL-decoded, so ``%40`` and ``%2f`` become ``@`` and ``/``.

    Example:
        >>> key_from_base_url(
        ...     "https://s3.amazonaws.com/BloomLibraryBooks/a%40x.com%2fabc%2fBox+test%2f"
        ... )
        'a@x.com/abc/Box+test'
    """
    parts = urlsplit(base_url)
    path = unquote(parts.path)
    segments = _safe_parts(path)
    host = parts.hostname or ""
    if host.startswith("s3.") or host.startswith("s3-"):
        # path-style: first segment is the bucket
        segments = segments[1:]
    if not segments:
        raise ItemTransferError(f"baseUrl has no storage key: {base_url}")
    return KEY_DELIMITER.join(segments)


def storage_key(entry: ResolvedEntry, locator_kind: LocatorKind) -> str:
    """Storage key prefix of a book's folder (or of its instance folder)."""
    if locator_kind is LocatorKind.base_url:
        return key_from_base_url(entry.base_url or entry.key)
    instance_id = entry.instance_id or entry.key
    return KEY_DELIMITER.join(_safe_parts(f"{entry.uploader_email}/{instance_id}"))


def storage_error(entry: ResolvedEntry, location: str, error: Exception) -> ItemTransferError:
    """Map a boto3 failure for one book onto the per-item error types."""
    if isinstance(error, ClientError):
        code = str(error.response.get("Error", {}).get("Code", ""))
        if code in NOT_FOUND_CODES:
            return BookNotFoundError(entry.key, location)
    return ItemTransferError(f"Could not download {location}: {error}")


class LocalMirrorSource:
    """Reads books out of the folder produced by the bulk sync.

    Args:
        sync_folder: Local mirror of the bucket
        locator_kind: How entries map to folders
    """

    def __init__(self, sync_folder: Path | str, locator_kind: LocatorKind = LocatorKind.base_url):
        self.sync_folder = Path(sync_folder)
        self.locator_kind = locator_kind

    def book_folder(self, entry: ResolvedEntry) -> Path:
        """Expected location of the book's files in the mirror."""
        folder = self.sync_folder.joinpath(*storage_key(entry, self.locator_kind).split(KEY_DELIMITER))
        if self.locator_kind is LocatorKind.instance_id and folder.is_dir():
            # <uploader>/<instanceId>/ holds the single book folder
            subdirs = [p for p in folder.iterdir() if p.is_dir()]
            if len(subdirs) == 1:
                return subdirs[0]
        return folder

    def stage(
        self,
        entry: ResolvedEntry,
        target: Path,
        progress: Optional[ProgressCallback] = None,
    ) -> int:
        folder = self.book_folder(entry)
        if not folder.is_dir() or count_files(folder, should_skip) == 0:
            raise BookNotFoundError(entry.key, str(folder))

        result = copy_directory(folder, target, skip=should_skip, progress=progress)
        if not result.success:
            raise ItemTransferError(
                f"Could not stage {len(result.failures)} file(s) of {entry.folder_name}"
            )
        return result.files_copied


class S3BookSource:
    """Downloads a book's objects directly from the bucket with boto3.

    Args:
        bucket_name: Bucket holding the books
        locator_kind: How entries map to key prefixes
        s3_client: Optional preconfigured boto3 S3 client
    """

    def __init__(
        self,
        bucket_name: str,
        locator_kind: LocatorKind = LocatorKind.base_url,
        s3_client: Any = None,
    ) -> None:
        self.bucket_name = bucket_name
        self.locator_kind = locator_kind
        self._s3 = s3_client

    @property
    def s3(self) -> Any:
        if self._s3 is None:
            self._s3 = boto3.client("s3")
        return self._s3

    def list_keys(self, prefix: str) -> list[str]:
        """All object keys under ``prefix/``."""
        paginator = self.s3.get_paginator("list_objects_v2")
        keys: list[str] = []
        for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix + KEY_DELIMITER):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
        return keys

    def stage(
        self,
        entry: ResolvedEntry,
        target: Path,
        progress: Optional[ProgressCallback] = None,
    ) -> int:
        """Download the book's wanted objects into ``target``.

        Raises:
            BookNotFoundError: No wanted objects, or the store reports them missing
            ItemTransferError: Any other storage or client error
        """
        prefix = storage_key(entry, self.locator_kind)
        location = f"s3://{self.bucket_name}/{prefix}"
        try:
            keys = self.list_keys(prefix)
        except (BotoCoreError, ClientError) as e:
            raise storage_error(entry, location, e) from e

        wanted = [k for k in keys if not should_skip(k) and not k.endswith(KEY_DELIMITER)]
        if not wanted:
            raise BookNotFoundError(entry.key, location)

        target = Path(target)
        for done, key in enumerate(wanted, start=1):
            relative = _safe_parts(key[len(prefix) + 1 :])
            if self.locator_kind is LocatorKind.instance_id and len(relative) > 1:
                # drop the book folder level below <uploader>/<instanceId>
                relative = relative[1:]
            path = target.joinpath(*relative)
            path.parent.mkdir(parents=True, exist_ok=True)
            try:
                self.s3.download_file(self.bucket_name, key, str(path))
            except (BotoCoreError, ClientError) as e:
                raise storage_error(entry, f"s3://{self.bucket_name}/{key}", e) from e
            if progress:
                progress(done, len(wanted))

        logger.debug("book_downloaded", key=prefix, files=len(wanted))
        return len(wanted)
