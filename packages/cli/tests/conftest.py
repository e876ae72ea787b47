"""Shared fixtures for CLI tests."""

from datetime import datetime, timezone

import pytest
from typer.testing import CliRunner

from bloom_bulk_common import Settings
from bloom_bulk_contracts import CatalogRecord, Uploader


@pytest.fixture
def cli_runner():
    """Typer CLI runner."""
    return CliRunner()


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment and the user's home directory."""
    return Settings(
        _env_file=None,
        sync_root=tmp_path / "sync-root",
        staging_root=tmp_path / "staging",
        trial_uploader="trial@x.com",
    )


@pytest.fixture
def make_record():
    """Factory for catalog records with sensible defaults."""

    def _make(title, locator, uploader="a@x.com", updated=None, in_circulation=None):
        return CatalogRecord(
            title=title,
            uploader=Uploader(email=uploader),
            base_url=locator,
            last_updated=updated or datetime(2017, 1, 1, tzinfo=timezone.utc),
            in_circulation=in_circulation,
        )

    return _make
