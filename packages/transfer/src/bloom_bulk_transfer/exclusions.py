"""Which book files are never transferred.

Two lists, applied at different levels:

- Avoided files (``thumbs.db`` and PDFs) are skipped when choosing what to
  fetch for a book at all.
- Excluded extensions are skipped by the low-level directory copy. This is
  similar to the BloomPack exclusion list but not identical; keep them
  separate.
"""

from pathlib import PurePosixPath

AVOIDED_FILE_NAMES = frozenset({"thumbs.db"})
AVOIDED_SUFFIXES = (".pdf",)
EXCLUDED_EXTENSIONS = (".db", ".bloompack", ".bak", ".userprefs")


def _base_name(name: str) -> str:
    # Object keys use "/" whatever the local platform is.
    return PurePosixPath(name.replace("\\", "/")).name.lower()


def is_avoided(name: str) -> bool:
    """True for thumbs.db and PDF files (name may be a bare name, path or object key)."""
    base = _base_name(name)
    return base in AVOIDED_FILE_NAMES or base.endswith(AVOIDED_SUFFIXES)


def is_excluded_extension(name: str) -> bool:
    """True for files the directory copy never writes."""
    return _base_name(name).endswith(EXCLUDED_EXTENSIONS)


def should_skip(name: str) -> bool:
    """Combined policy used when pulling a book out of its source."""
    return is_avoided(name) or is_excluded_extension(name)
