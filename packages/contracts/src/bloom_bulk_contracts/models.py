"""Pydantic schemas for catalog records and transfer results.

Wire models (``CatalogRecord`` and friends) accept the Parse server's
camelCase field names through aliases and ignore fields they don't know.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Characters no destination filesystem accepts in a file name. This is the
# Windows set, which is a superset of what POSIX forbids.
RESERVED_FILENAME_CHARS = frozenset('"<>|:*?\\/' + "".join(chr(c) for c in range(32)))


def sanitize_title(title: str) -> str:
    """Make a title safe to use as a folder name.

    Reserved characters and ``&`` become spaces; nothing else changes, so a
    clean title comes back as-is. Callers trim the raw title first
    (``CatalogRecord.title`` is already trimmed).

    Example:
        >>> sanitize_title("Box\\ntest")
        'Box test'
    """
    return "".join(" " if c in RESERVED_FILENAME_CHARS or c == "&" else c for c in title)


class LocatorKind(str, Enum):
    """Which record field identifies a book across republications."""

    base_url = "base_url"
    instance_id = "instance_id"


# =============================================================================
# Catalog records
# =============================================================================


class Uploader(BaseModel):
    """The user who uploaded a book."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(default=None, alias="objectId")
    email: str = ""
    username: Optional[str] = None
    is_administrator: bool = Field(default=False, alias="administrator")


class Language(BaseModel):
    """A language a book is available in."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    iso_code: Optional[str] = Field(default=None, alias="isoCode")
    name: Optional[str] = None
    ethnologue_code: Optional[str] = Field(default=None, alias="ethnologueCode")


class CatalogRecord(BaseModel):
    """One book entry from the metadata service."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    object_id: str = Field(default="", alias="objectId")
    instance_id: Optional[str] = Field(default=None, alias="bookInstanceId")
    title: str = ""
    uploader: Optional[Uploader] = None
    last_updated: datetime = Field(alias="updatedAt")
    base_url: Optional[str] = Field(default=None, alias="baseUrl")
    in_circulation: Optional[bool] = Field(default=None, alias="inCirculation")
    tags: list[str] = Field(default_factory=list)
    languages: list[Language] = Field(default_factory=list, alias="langPointers")

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: object) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("last_updated")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        # naive timestamps are UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @field_validator("tags", "languages", mode="before")
    @classmethod
    def none_to_empty(cls, v: object) -> object:
        return [] if v is None else v

    @property
    def sanitized_title(self) -> str:
        return sanitize_title(self.title)

    @property
    def uploader_email(self) -> str:
        return self.uploader.email if self.uploader else ""

    @property
    def tag_pairs(self) -> list[tuple[str, str]]:
        """Tags split on the first ':' into (key, value); bare tags get an empty value."""
        pairs = []
        for tag in self.tags:
            key, _, value = tag.partition(":")
            pairs.append((key, value))
        return pairs

    def locator(self, kind: LocatorKind) -> Optional[str]:
        """Return the stable locator of this record, or None if it has none usable."""
        raw = self.base_url if kind is LocatorKind.base_url else self.instance_id
        if raw is None or not raw.strip():
            return None
        return raw.strip()


# =============================================================================
# Reconciliation results
# =============================================================================


class ResolvedEntry(BaseModel):
    """One book chosen for transfer, with its unique destination folder name."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(description="Stable locator (baseUrl or instance id)")
    title: str = Field(description="Sanitized title")
    folder_name: str = Field(description="Destination folder name, unique within a result")
    uploader_email: str = ""
    last_updated: datetime
    instance_id: Optional[str] = None
    base_url: Optional[str] = None


class RecordSkip(BaseModel):
    """A catalog record the reconciler dropped, and why."""

    model_config = ConfigDict(frozen=True)

    title: str
    uploader_email: str = ""
    reason: str
    key: Optional[str] = None

    def describe(self) -> str:
        return f"{self.title} ({self.uploader_email}): {self.reason}"


# =============================================================================
# Transfer results
# =============================================================================


class TransferOutcome(BaseModel):
    """Result of materializing one book."""

    key: str
    folder_name: str
    success: bool
    files_copied: int = 0
    destination: Optional[str] = None
    reason: Optional[str] = None
    not_found: bool = False


class BatchTotals(BaseModel):
    """Running totals for one batch, folded over TransferOutcomes."""

    book_count: int = 0
    file_count: int = 0
    skipped_records: int = 0
    failed: list[str] = Field(default_factory=list)
    not_found: list[str] = Field(default_factory=list)

    def add(self, outcome: TransferOutcome) -> None:
        """Fold one outcome into the totals."""
        if outcome.success:
            self.book_count += 1
            self.file_count += outcome.files_copied
        elif outcome.not_found:
            self.not_found.append(f"{outcome.folder_name} ({outcome.key})")
        else:
            self.failed.append(f"{outcome.folder_name} ({outcome.key}): {outcome.reason}")

    @property
    def had_problems(self) -> bool:
        return bool(self.failed or self.not_found or self.skipped_records)
