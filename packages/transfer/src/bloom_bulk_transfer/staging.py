"""Private staging folders where a book is assembled before it becomes visible.

A file watcher may pick up any folder the moment it appears under the
destination, so books are always built here first and then moved or copied
into place.

Example:
    >>> with StagingFolder() as staging:
    ...     target = staging.combine("Box test")
    ...     # fill target, then materialize it
"""

import shutil
import tempfile
import time
import uuid
from pathlib import Path
from typing import Optional

from bloom_bulk_common import get_logger

logger = get_logger(__name__)

STAGING_PREFIX = "BDS_"
RETRY_DELAY_SECONDS = 1.0


class StagingFolder:
    """A uniquely named temporary folder removed on exit.

    Args:
        root: Parent directory (default: the system temp directory). Keep it
            short; deep book paths can hit Windows path length limits.
        prefix: Folder name prefix
    """

    def __init__(self, root: Optional[Path] = None, prefix: str = STAGING_PREFIX):
        self.root = root
        self.prefix = prefix
        self.path: Optional[Path] = None

    def __enter__(self) -> "StagingFolder":
        if self.root is not None:
            Path(self.root).mkdir(parents=True, exist_ok=True)
        self.path = Path(
            tempfile.mkdtemp(prefix=f"{self.prefix}{uuid.uuid4().hex[:8]}_", dir=self.root)
        )
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.path is not None:
            delete_folder_that_may_be_in_use(self.path)

    def combine(self, *parts: str) -> Path:
        """Path inside the staging folder."""
        if self.path is None:
            raise RuntimeError("StagingFolder used outside its with-block")
        return self.path.joinpath(*parts)


def delete_folder_that_may_be_in_use(folder: Path, retry_delay: float = RETRY_DELAY_SECONDS) -> bool:
    """Remove a folder, retrying once if something still holds files open.

    On the first failure every file that can be deleted is deleted, then the
    whole folder is retried after ``retry_delay`` seconds. A folder that still
    cannot be removed is left behind and logged; it is only temp data.

    Returns:
        True if the folder is gone afterwards
    """
    folder = Path(folder)
    if not folder.exists():
        return True

    try:
        shutil.rmtree(folder)
        return True
    except OSError as e:
        logger.debug("staging_delete_retry", path=str(folder), error=str(e))

    for path in folder.rglob("*"):
        if path.is_file():
            try:
                path.unlink()
            except OSError as e:
                logger.debug("staging_file_locked", path=str(path), error=str(e))

    time.sleep(retry_delay)
    try:
        shutil.rmtree(folder)
        return True
    except OSError as e:
        logger.warning("staging_delete_failed", path=str(folder), error=str(e))
        return False
