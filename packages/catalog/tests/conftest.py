"""Shared fixtures for catalog tests."""

from datetime import datetime, timezone

import pytest

from bloom_bulk_contracts import CatalogRecord, Uploader


@pytest.fixture
def make_record():
    """Factory for catalog records with sensible defaults."""

    def _make(
        title="Box test",
        uploader="a@x.com",
        locator="K1",
        updated=datetime(2017, 1, 1, tzinfo=timezone.utc),
        instance_id=None,
        in_circulation=None,
    ):
        return CatalogRecord(
            title=title,
            uploader=Uploader(email=uploader),
            base_url=locator,
            instance_id=instance_id,
            last_updated=updated,
            in_circulation=in_circulation,
        )

    return _make
