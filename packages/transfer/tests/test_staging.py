"""Tests for private staging folders."""

import shutil

import pytest

from bloom_bulk_transfer import StagingFolder, delete_folder_that_may_be_in_use

pytestmark = pytest.mark.unit


class TestStagingFolder:
    """Tests for StagingFolder."""

    def test_created_under_root_with_prefix(self, tmp_path):
        with StagingFolder(tmp_path / "staging") as staging:
            assert staging.path.is_dir()
            assert staging.path.parent == tmp_path / "staging"
            assert staging.path.name.startswith("BDS_")

    def test_removed_on_exit(self, tmp_path):
        with StagingFolder(tmp_path) as staging:
            (staging.combine("Box test")).mkdir()
            (staging.combine("Box test", "a.htm")).write_text("x")
            path = staging.path

        assert not path.exists()

    def test_removed_after_error(self, tmp_path):
        with pytest.raises(ValueError):
            with StagingFolder(tmp_path) as staging:
                path = staging.path
                raise ValueError("boom")

        assert not path.exists()

    def test_unique_per_use(self, tmp_path):
        with StagingFolder(tmp_path) as first, StagingFolder(tmp_path) as second:
            assert first.path != second.path

    def test_combine_outside_block(self):
        with pytest.raises(RuntimeError):
            StagingFolder().combine("x")


class TestDeleteFolderThatMayBeInUse:
    def test_missing_folder(self, tmp_path):
        assert delete_folder_that_may_be_in_use(tmp_path / "missing")

    def test_deletes_tree(self, tmp_path):
        folder = tmp_path / "f"
        (folder / "sub").mkdir(parents=True)
        (folder / "sub" / "a.txt").write_text("x")

        assert delete_folder_that_may_be_in_use(folder)
        assert not folder.exists()

    def test_retries_after_failure(self, tmp_path, monkeypatch):
        """Test a first rmtree failure is followed by a retry."""
        folder = tmp_path / "f"
        folder.mkdir()
        (folder / "a.txt").write_text("x")
        real_rmtree = shutil.rmtree
        attempts = []

        def flaky_rmtree(path, *args, **kwargs):
            attempts.append(path)
            if len(attempts) == 1:
                raise PermissionError("in use")
            return real_rmtree(path, *args, **kwargs)

        monkeypatch.setattr("bloom_bulk_transfer.staging.shutil.rmtree", flaky_rmtree)

        assert delete_folder_that_may_be_in_use(folder, retry_delay=0)
        assert len(attempts) == 2
        assert not folder.exists()

    def test_gives_up_quietly(self, tmp_path, monkeypatch):
        folder = tmp_path / "f"
        folder.mkdir()

        def stuck_rmtree(path, *args, **kwargs):
            raise PermissionError("in use")

        monkeypatch.setattr("bloom_bulk_transfer.staging.shutil.rmtree", stuck_rmtree)

        assert delete_folder_that_may_be_in_use(folder, retry_delay=0) is False
