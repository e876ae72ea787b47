"""Recursive directory copy that tolerates locked files.

A file that cannot be written is only a failure if the copy already at the
destination differs from the source. A locked file that is byte-identical to
what we would have written (e.g. unchanged since a previous download) counts
as copied.
"""

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from bloom_bulk_common import get_logger

from .exclusions import is_excluded_extension

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024

ProgressCallback = Callable[[int, int], None]


@dataclass
class CopyResult:
    """Outcome of a directory copy."""

    files_copied: int = 0
    failures: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures


def same_file_content(path1: Path | str, path2: Path | str) -> bool:
    """True if both files exist, are readable, and hold the same bytes."""
    path1, path2 = Path(path1), Path(path2)
    try:
        if not path1.is_file() or not path2.is_file():
            return False
        if path1.stat().st_size != path2.stat().st_size:
            return False
        with open(path1, "rb") as f1, open(path2, "rb") as f2:
            for block1 in iter(lambda: f1.read(CHUNK_SIZE), b""):
                if block1 != f2.read(CHUNK_SIZE):
                    return False
        return True
    except OSError:
        # can't even read
        return False


def count_files(folder: Path, skip: Callable[[str], bool] = is_excluded_extension) -> int:
    """Number of files under ``folder`` that a copy would transfer."""
    folder = Path(folder)
    if not folder.is_dir():
        return 0
    return sum(1 for p in folder.rglob("*") if p.is_file() and not skip(p.name))


def copy_directory(
    source: Path | str,
    destination: Path | str,
    skip: Callable[[str], bool] = is_excluded_extension,
    progress: Optional[ProgressCallback] = None,
) -> CopyResult:
    """Copy a directory tree, overwriting files that already exist.

    Args:
        source: Directory to copy
        destination: The directory to create or fill (not its parent)
        skip: Predicate on file names; matching files are not copied
        progress: Called with (files_done, files_total) after each file

    Returns:
        CopyResult listing files that could not be written and differ

    Raises:
        FileNotFoundError: If the source directory does not exist
    """
    source, destination = Path(source), Path(destination)
    if not source.is_dir():
        raise FileNotFoundError(f"Source directory does not exist or could not be found: {source}")

    total = count_files(source, skip) if progress else 0
    result = CopyResult()
    _copy_tree(source, destination, skip, progress, total, result)
    return result


def _copy_tree(
    source: Path,
    destination: Path,
    skip: Callable[[str], bool],
    progress: Optional[ProgressCallback],
    total: int,
    result: CopyResult,
) -> None:
    destination.mkdir(parents=True, exist_ok=True)

    entries = sorted(source.iterdir())
    for path in entries:
        if not path.is_file() or skip(path.name):
            continue
        target = destination / path.name
        try:
            shutil.copy2(path, target)
        except OSError as e:
            # Maybe we don't need to write it; it may be unchanged since a previous download.
            if not same_file_content(target, path):
                logger.debug("file_copy_failed", source=str(path), target=str(target), error=str(e))
                result.failures.append(str(target))
                continue
            logger.debug("file_locked_but_identical", target=str(target))
        result.files_copied += 1
        if progress:
            progress(result.files_copied, total)

    for path in entries:
        if path.is_dir():
            _copy_tree(path, destination / path.name, skip, progress, total, result)
