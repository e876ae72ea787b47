"""HTTP client for the Parse metadata service that catalogs library books.

Fetches the whole (filtered) book table in one request. The service pages
at ``limit`` records; a response that fills the page exactly is treated as
truncated and fails hard rather than silently dropping books.

Example:
    >>> client = ParseCatalogClient(
    ...     "https://bloom-parse-server-develop.azurewebsites.net",
    ...     ParseCredentials(app_id="...", api_key="..."),
    ... )
    >>> records = client.fetch_records()
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import httpx
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from bloom_bulk_common import (
    CatalogError,
    CatalogTruncationError,
    ParseCredentials,
    get_logger,
)
from bloom_bulk_contracts import CatalogRecord, RecordSkip

logger = get_logger(__name__)

BOOKS_ENDPOINT = "/parse/classes/books"
DEFAULT_PAGE_LIMIT = 2000
DEFAULT_TIMEOUT = 60.0

# Fields the downloader needs; everything else stays on the server.
RECORD_KEYS = (
    "objectId",
    "inCirculation",
    "bookInstanceId",
    "title",
    "tags",
    "langPointers",
    "uploader",
    "updatedAt",
    "baseUrl",
)

MALFORMED_RECORD = "malformed catalog record"


@dataclass
class CatalogFetch:
    """Parsed records plus the raw entries that failed validation."""

    records: list[CatalogRecord] = field(default_factory=list)
    skips: list[RecordSkip] = field(default_factory=list)


class CatalogFetcher(Protocol):
    """Anything that can produce the raw catalog (the HTTP client, or a test double)."""

    def fetch(self) -> CatalogFetch: ...


def malformed_record_skip(raw: Any, error: ValidationError) -> RecordSkip:
    """Describe a catalog entry that could not be parsed, from whatever fields it has."""
    fields = raw if isinstance(raw, dict) else {}
    uploader = fields.get("uploader")
    email = uploader.get("email") if isinstance(uploader, dict) else None
    object_id = fields.get("objectId")
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'record'}: {err['msg']}"
        for err in error.errors()
    )
    return RecordSkip(
        title=str(fields.get("title") or "").strip(),
        uploader_email=str(email or ""),
        reason=f"{MALFORMED_RECORD} ({problems})",
        key=None if object_id is None else str(object_id),
    )


class ParseCatalogClient:
    """Client for the Parse ``books`` class.

    Args:
        server_url: Base URL of the Parse server
        credentials: Application id and REST key
        limit: Page size; a full page is treated as truncation
        timeout: Request timeout in seconds
        retries: Attempts for transport-level failures
        only_in_circulation: Ask the server to drop books explicitly out of circulation
        transport: Optional httpx transport (tests)
    """

    def __init__(
        self,
        server_url: str,
        credentials: ParseCredentials,
        limit: int = DEFAULT_PAGE_LIMIT,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = 3,
        only_in_circulation: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.server_url = server_url.rstrip("/")
        self.credentials = credentials
        self.limit = limit
        self.timeout = timeout
        self.retries = retries
        self.only_in_circulation = only_in_circulation
        self._transport = transport

    @property
    def books_url(self) -> str:
        return self.server_url + BOOKS_ENDPOINT

    def build_params(self) -> dict[str, str]:
        """Query parameters for the books request."""
        params = {
            "limit": str(self.limit),
            "count": "1",
            "keys": ",".join(RECORD_KEYS),
            "include": "uploader,langPointers",
        }
        if self.only_in_circulation:
            # Missing inCirculation counts as in circulation, so filter on != false.
            params["where"] = json.dumps({"inCirculation": {"$ne": False}})
        return params

    def build_headers(self) -> dict[str, str]:
        return {
            "X-Parse-Application-Id": self.credentials.app_id,
            "X-Parse-REST-API-Key": self.credentials.api_key,
            "Accept": "application/json",
        }

    def fetch(self) -> CatalogFetch:
        """Fetch and parse all catalog records.

        A record that fails validation is not fatal; it comes back as a
        ``RecordSkip`` in ``skips`` and the remaining records are kept.

        Returns:
            CatalogFetch with records in server order

        Raises:
            CatalogError: If the service is unreachable or the response is malformed
            CatalogTruncationError: If the result fills the page limit
        """
        payload = self._fetch_payload()

        results = payload.get("results")
        if not isinstance(results, list):
            raise CatalogError("Catalog response has no 'results' list")

        if len(results) >= self.limit:
            raise CatalogTruncationError(len(results), self.limit)

        fetched = CatalogFetch()
        for raw in results:
            try:
                fetched.records.append(CatalogRecord.model_validate(raw))
            except ValidationError as e:
                skip = malformed_record_skip(raw, e)
                logger.debug("catalog_record_malformed", key=skip.key, reason=skip.reason)
                fetched.skips.append(skip)

        logger.info(
            "catalog_fetched",
            url=self.books_url,
            records=len(fetched.records),
            malformed=len(fetched.skips),
            server_count=payload.get("count"),
        )
        return fetched

    def fetch_records(self) -> list[CatalogRecord]:
        """Only the records that parsed."""
        return self.fetch().records

    def _fetch_payload(self) -> dict[str, Any]:
        fetch = retry(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self.retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )(self._get_once)

        try:
            response = fetch()
        except httpx.TransportError as e:
            raise CatalogError(f"Catalog service unreachable at {self.server_url}: {e}") from e

        if response.status_code != 200:
            raise CatalogError(
                f"Catalog request failed ({response.status_code}): {response.text[:200]}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise CatalogError(f"Catalog returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise CatalogError("Catalog response is not a JSON object")
        return payload

    def _get_once(self) -> httpx.Response:
        logger.debug("catalog_request", url=self.books_url)
        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            return client.get(
                self.books_url,
                params=self.build_params(),
                headers=self.build_headers(),
            )
