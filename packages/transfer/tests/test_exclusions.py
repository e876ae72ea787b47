"""Tests for file exclusion rules."""

import pytest

from bloom_bulk_transfer import is_avoided, is_excluded_extension, should_skip

pytestmark = pytest.mark.unit


class TestIsAvoided:
    @pytest.mark.parametrize(
        "name",
        ["Thumbs.db", "thumbs.db", "book.pdf", "BOOK.PDF", "a@x.com/inst/Box test/Box test.pdf"],
    )
    def test_avoided(self, name):
        assert is_avoided(name)

    @pytest.mark.parametrize("name", ["book.htm", "pdf", "thumbs.dbx", "a\\b\\c.png"])
    def test_not_avoided(self, name):
        assert not is_avoided(name)

    def test_windows_separators(self):
        assert is_avoided("a\\b\\Thumbs.db")


class TestIsExcludedExtension:
    @pytest.mark.parametrize("name", ["x.db", "pack.BloomPack", "old.bak", "me.userPrefs"])
    def test_excluded(self, name):
        assert is_excluded_extension(name)

    @pytest.mark.parametrize("name", ["book.pdf", "book.htm", "bak"])
    def test_not_excluded(self, name):
        """Test PDFs are only avoided at the source, not by the copy."""
        assert not is_excluded_extension(name)


class TestShouldSkip:
    @pytest.mark.parametrize(
        "name,expected",
        [("book.pdf", True), ("x.bak", True), ("thumbs.db", True), ("book.htm", False)],
    )
    def test_combined(self, name, expected):
        assert should_skip(name) is expected
