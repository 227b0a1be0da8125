"""RecycleBin — recycle, recover, list, purge and reconcile.

Recycling is two steps: the ledger row is written first, then the path is
renamed into the trash directory.  If the rename fails the row is deleted
again.  A crash between the two steps leaves a row without a trashed file;
:meth:`RecycleBin.reconcile` finds and drops such rows.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import TYPE_CHECKING

from .exceptions import (
    AlreadyExistsError,
    DirectoryNotEmptyError,
    PathNotFoundError,
    RimError,
    TrashIOError,
)
from .purge import PurgeManager
from .snapshot import take_snapshot
from .store import TrashStore
from .trash_path import generate_trash_path

if TYPE_CHECKING:
    from types import TracebackType

    from .config import RimConfig
    from .models import TrashEntry
    from .purge import PurgeResult
    from .snapshot import FileSnapshot, Snapshotter

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 10
_DB_COMPANION_SUFFIXES = ("", "-wal", "-shm", "-journal")


def _reraise(error: OSError) -> None:
    raise error


class RecycleBin:
    """Facade over the ledger, the trash directory and the purger.

    Usage::

        with RecycleBin(load_config()) as bin_:
            entry = bin_.recycle("notes.txt")
            bin_.recover(entry.id)
    """

    def __init__(
        self,
        config: RimConfig,
        store: TrashStore | None = None,
        *,
        snapshotter: Snapshotter = take_snapshot,
    ) -> None:
        self.config = config
        try:
            self.config.trash_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TrashIOError(f"Cannot create trash directory {self.config.trash_dir}: {e}") from e
        self._owns_store = store is None
        self._store = store if store is not None else TrashStore.from_config(config)
        self._snapshotter = snapshotter

    @property
    def store(self) -> TrashStore:
        return self._store

    def close(self) -> None:
        """Close the ledger if this instance opened it."""
        if self._owns_store:
            self._store.close()

    def __enter__(self) -> RecycleBin:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Recycle
    # ------------------------------------------------------------------

    def recycle(self, path: str | Path, *, recursive: bool = False) -> TrashEntry:
        """Move *path* into the trash and return its ledger entry.

        Non-empty directories need ``recursive=True``; every descendant
        then gets its own entry under the trashed directory.
        """
        abspath = os.path.abspath(path)
        snapshot = self._snapshotter(abspath)
        self._refuse_trash_paths(abspath)

        try:
            descend = snapshot.is_dir and not snapshot.is_symlink and bool(os.listdir(abspath))
        except OSError as e:
            raise TrashIOError(f"Cannot list {abspath}: {e}") from e
        if descend and not recursive:
            raise DirectoryNotEmptyError(
                f"Directory is not empty (use recursive): {abspath}"
            )

        trash_path = self._free_trash_path(snapshot)
        now = int(time.time())
        entry = self._store.create(snapshot, trash_path, now=now)
        created = [entry]

        try:
            if descend:
                created.extend(self._record_subtree(abspath, trash_path, now))
            os.rename(abspath, trash_path)
        except RimError:
            self._compensate(created)
            raise
        except OSError as e:
            self._compensate(created)
            raise TrashIOError(f"Cannot move {abspath} to trash: {e}") from e

        logger.info("Recycled %s -> %s (id %s)", abspath, trash_path, entry.id)
        return entry

    def _refuse_trash_paths(self, abspath: str) -> None:
        trash_dir = str(self.config.trash_dir)
        inside = abspath == trash_dir or abspath.startswith(trash_dir + os.sep)
        contains = trash_dir.startswith(abspath.rstrip(os.sep) + os.sep)
        if inside or contains:
            raise TrashIOError(f"Refusing to recycle the trash directory or its contents: {abspath}")

    def _free_trash_path(self, snapshot: FileSnapshot) -> Path:
        """First generated name not on disk and not recorded in the ledger."""
        attempt = 0
        while True:
            candidate = generate_trash_path(snapshot, self.config.trash_dir, attempt=attempt)
            if not os.path.lexists(candidate) and not self._store.is_trash_path_recorded(candidate):
                return candidate
            attempt += 1

    def _record_subtree(self, root: str, trash_root: Path, now: int) -> list[TrashEntry]:
        """Create rows for every path beneath *root*, mapped under *trash_root*."""
        entries: list[TrashEntry] = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=_reraise):
            for name in [*dirnames, *filenames]:
                full = os.path.join(dirpath, name)
                rel = os.path.relpath(full, root)
                snapshot = self._snapshotter(full)
                entries.append(self._store.create(snapshot, trash_root / rel, now=now))
        logger.debug("Recorded %s nested entries under %s", len(entries), root)
        return entries

    def _compensate(self, created: list[TrashEntry]) -> None:
        """Best-effort removal of rows written for a recycle that failed."""
        try:
            self._store.delete_many(entry.id for entry in created if entry.id is not None)
        except RimError:
            logger.exception(
                "Could not remove ledger rows %s after failed recycle",
                [entry.id for entry in created],
            )

    # ------------------------------------------------------------------
    # Recover
    # ------------------------------------------------------------------

    def recover(self, entry_id: int) -> TrashEntry:
        """Move entry *entry_id* back to its original path.

        Raises ``PathNotFoundError`` for unknown ids and
        ``AlreadyExistsError`` when the original path is occupied.  The
        ledger row is deleted on success.
        """
        entry = self._store.find_by_id(entry_id)
        if entry is None:
            raise PathNotFoundError(f"No trash entry with id {entry_id}")
        return self._restore(entry)

    def recover_path(self, original_path: str | Path) -> TrashEntry:
        """Recover the most recently recycled entry for *original_path*."""
        abspath = os.path.abspath(original_path)
        entries = self._store.find_by_original_path(abspath)
        if not entries:
            raise PathNotFoundError(f"Nothing recycled from {abspath}")
        return self._restore(entries[0])

    def _restore(self, entry: TrashEntry) -> TrashEntry:
        original = entry.original_path
        if os.path.lexists(original):
            raise AlreadyExistsError(f"File already exists: {original}")
        if not os.path.lexists(entry.trash_path):
            raise PathNotFoundError(f"Trashed file is missing: {entry.trash_path}")

        nested = self._store.find_nested(entry.trash_path) if entry.is_dir else []

        try:
            os.makedirs(os.path.dirname(original), exist_ok=True)
            os.rename(entry.trash_path, original)
        except OSError as e:
            raise TrashIOError(f"Cannot restore {entry.trash_path} to {original}: {e}") from e

        consumed = [entry.id, *(child.id for child in nested)]
        self._store.delete_many(i for i in consumed if i is not None)

        self._restore_attributes(entry, original)
        logger.info("Recovered %s (id %s)", original, entry.id)
        return entry

    @staticmethod
    def _restore_attributes(entry: TrashEntry, path: str) -> None:
        """Re-apply the recorded permission bits and ownership."""
        try:
            if entry.link_target is None:
                os.chmod(path, entry.unix_mode)
            st = os.lstat(path)
            if (st.st_uid, st.st_gid) != (entry.uid, entry.gid):
                os.chown(path, entry.uid, entry.gid, follow_symlinks=False)
        except OSError as e:
            raise TrashIOError(f"Cannot restore permissions of {path}: {e}") from e

    # ------------------------------------------------------------------
    # Listing & maintenance
    # ------------------------------------------------------------------

    def list_recent(self, n: int = DEFAULT_LIST_LIMIT) -> list[TrashEntry]:
        """The *n* most recently recycled entries, newest first."""
        return self._store.recent(n)

    def run_maintenance(self, now: int | None = None) -> PurgeResult:
        """Permanently delete every expired entry."""
        return PurgeManager(self._store).purge(now)

    def reconcile(self, *, dry_run: bool = False) -> dict[str, int]:
        """Compare the ledger with the trash directory.

        Rows whose trash path is gone are dropped (``orphaned_rows``).
        Top-level trash files no row points at are only counted
        (``untracked``).
        """
        stats = {"orphaned_rows": 0, "untracked": 0}
        entries = self._store.all_entries()

        orphans = [entry for entry in entries if not os.path.lexists(entry.trash_path)]
        for entry in orphans:
            logger.warning(
                "Ledger entry %s has no trashed file at %s", entry.id, entry.trash_path
            )
        stats["orphaned_rows"] = len(orphans)
        if orphans and not dry_run:
            self._store.delete_many(entry.id for entry in orphans if entry.id is not None)

        recorded = {os.path.normpath(entry.trash_path) for entry in entries}
        ignored = {self.config.database_name + suffix for suffix in _DB_COMPANION_SUFFIXES}
        trash_dir = self.config.trash_dir
        for name in sorted(os.listdir(trash_dir)):
            if name in ignored:
                continue
            full = os.path.normpath(trash_dir / name)
            if full not in recorded:
                logger.warning("Untracked file in trash: %s", full)
                stats["untracked"] += 1

        return stats
