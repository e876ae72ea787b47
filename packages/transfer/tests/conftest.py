"""Shared fixtures for transfer tests."""

from datetime import datetime, timezone

import pytest

from bloom_bulk_contracts import ResolvedEntry

BASE_URL = "https://s3.amazonaws.com/BloomLibraryBooks/a%40x.com%2finst-1%2fBox+test%2f"


@pytest.fixture
def make_entry():
    """Factory for resolved entries."""

    def _make(
        folder_name="Box test",
        key=BASE_URL,
        uploader="a@x.com",
        instance_id="inst-1",
        base_url=BASE_URL,
    ):
        return ResolvedEntry(
            key=key,
            title=folder_name,
            folder_name=folder_name,
            uploader_email=uploader,
            last_updated=datetime(2017, 1, 1, tzinfo=timezone.utc),
            instance_id=instance_id,
            base_url=base_url,
        )

    return _make


@pytest.fixture
def book_tree(tmp_path):
    """A small book folder with one excluded and one avoided file."""
    root = tmp_path / "book"
    (root / "audio").mkdir(parents=True)
    (root / "Box test.htm").write_text("<html>book</html>")
    (root / "meta.json").write_text("{}")
    (root / "audio" / "page1.mp3").write_bytes(b"\x00\x01")
    (root / "Box test.pdf").write_bytes(b"%PDF")
    (root / "old.bak").write_text("backup")
    return root
