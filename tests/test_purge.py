"""Tests for purge.py — expiration sweep over the trash directory."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from rim.exceptions import TrashIOError
from rim.purge import PurgeManager, remove_path

if TYPE_CHECKING:
    from pathlib import Path

# ttl in the store fixture is 3600, so entries created at 0 expire at 3600.
EXPIRED_AT = 0
AFTER = 10_000


@pytest.fixture
def trash(tmp_path: Path) -> Path:
    path = tmp_path / "trash"
    path.mkdir()
    return path


@pytest.fixture
def purger(store) -> PurgeManager:
    return PurgeManager(store)


def _add_file(store, make_snapshot, path: Path, *, now: int = EXPIRED_AT, size: int = 5):
    path.write_text("x" * size)
    return store.create(make_snapshot(f"/orig/{path.name}", file_size=size), path, now=now)


def _add_dir(store, make_snapshot, path: Path, *, now: int = EXPIRED_AT):
    path.mkdir()
    return store.create(make_snapshot(f"/orig/{path.name}", is_dir=True), path, now=now)


# ---------------------------------------------------------------------------
# remove_path
# ---------------------------------------------------------------------------


class TestRemovePath:
    def test_file(self, tmp_path):
        f = tmp_path / "f"
        f.write_text("x")
        remove_path(str(f))
        assert not f.exists()

    def test_empty_dir(self, tmp_path):
        d = tmp_path / "d"
        d.mkdir()
        remove_path(str(d))
        assert not d.exists()

    def test_non_empty_dir_not_removed(self, tmp_path):
        d = tmp_path / "d"
        d.mkdir()
        (d / "inner").write_text("x")
        with pytest.raises(OSError):
            remove_path(str(d))
        assert (d / "inner").exists()

    def test_symlink_to_dir_removes_link_only(self, tmp_path):
        target = tmp_path / "target"
        target.mkdir()
        (target / "keep").write_text("x")
        link = tmp_path / "link"
        link.symlink_to(target)
        remove_path(str(link))
        assert not link.is_symlink()
        assert (target / "keep").exists()


# ---------------------------------------------------------------------------
# purge
# ---------------------------------------------------------------------------


class TestPurge:
    def test_nothing_expired(self, store, purger, trash, make_snapshot):
        _add_file(store, make_snapshot, trash / "a_1234567.txt", now=AFTER)
        result = purger.purge(now=AFTER)
        assert result.deleted_count == 0
        assert (trash / "a_1234567.txt").exists()
        assert len(store.all_entries()) == 1

    def test_deletes_expired_files_and_rows(self, store, purger, trash, make_snapshot):
        _add_file(store, make_snapshot, trash / "a_1111111.txt", size=3)
        _add_file(store, make_snapshot, trash / "b_2222222.txt", size=4)
        keep = _add_file(store, make_snapshot, trash / "c_3333333.txt", now=AFTER)

        result = purger.purge(now=AFTER)

        assert result.deleted_count == 2
        assert result.bytes_freed == 7
        assert not (trash / "a_1111111.txt").exists()
        assert not (trash / "b_2222222.txt").exists()
        assert (trash / "c_3333333.txt").exists()
        assert [e.id for e in store.all_entries()] == [keep.id]

    def test_nested_subtree_children_first(self, store, purger, trash, make_snapshot):
        root = trash / "d_7654321"
        _add_dir(store, make_snapshot, root)
        _add_dir(store, make_snapshot, root / "sub")
        _add_file(store, make_snapshot, root / "sub" / "x")
        _add_file(store, make_snapshot, root / "y")

        result = purger.purge(now=AFTER)

        assert result.deleted_count == 4
        assert not root.exists()
        assert store.all_entries() == []

    def test_trash_root_never_deleted(self, store, purger, trash, make_snapshot):
        _add_file(store, make_snapshot, trash / "only_1234567")
        purger.purge(now=AFTER)
        assert trash.is_dir()
        assert trash.parent.is_dir()

    def test_missing_path_skipped_and_row_dropped(self, store, purger, trash, make_snapshot):
        store.create(make_snapshot("/orig/gone"), trash / "gone_1234567", now=EXPIRED_AT)
        result = purger.purge(now=AFTER)
        assert result.skipped_count == 1
        assert result.deleted_count == 0
        assert store.all_entries() == []

    def test_directory_with_active_entry_deferred(self, store, purger, trash, make_snapshot):
        root = trash / "d_7654321"
        _add_dir(store, make_snapshot, root)
        _add_file(store, make_snapshot, root / "old")
        young = _add_file(store, make_snapshot, root / "young", now=AFTER)

        result = purger.purge(now=AFTER)

        assert result.deferred_paths == [str(root)]
        assert root.is_dir()
        assert not (root / "old").exists()
        assert (root / "young").exists()
        remaining = {e.trash_path for e in store.all_entries()}
        assert remaining == {str(root), young.trash_path}

    def test_failure_halts_and_resumes(self, store, purger, trash, make_snapshot):
        root = trash / "d_7654321"
        _add_dir(store, make_snapshot, root)
        _add_file(store, make_snapshot, root / "tracked")
        (root / "stray").write_text("not in the ledger")

        with pytest.raises(TrashIOError):
            purger.purge(now=AFTER)

        # The tracked child is gone with its row; the directory row survives.
        assert not (root / "tracked").exists()
        assert [e.trash_path for e in store.all_entries()] == [str(root)]

        (root / "stray").unlink()
        result = purger.purge(now=AFTER)
        assert result.deleted_count == 1
        assert not root.exists()
        assert store.all_entries() == []

    def test_find_expired(self, store, purger, trash, make_snapshot):
        old = _add_file(store, make_snapshot, trash / "a")
        _add_file(store, make_snapshot, trash / "b", now=AFTER)
        assert [e.id for e in purger.find_expired(now=AFTER)] == [old.id]
