"""PurgeManager — permanent deletion of expired trash entries."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from time import perf_counter
from typing import TYPE_CHECKING

from .exceptions import TrashIOError
from .ordering import AncestryGraph

if TYPE_CHECKING:
    from .models import TrashEntry
    from .store import TrashStore

logger = logging.getLogger(__name__)


@dataclass
class PurgeResult:
    """Outcome of one maintenance sweep."""

    deleted_count: int = 0
    skipped_count: int = 0  # already gone from disk, row dropped
    deferred_paths: list[str] = field(default_factory=list)  # still hold active entries
    bytes_freed: int = 0
    duration_seconds: float = 0.0


def remove_path(path: str) -> None:
    """Remove a file, symlink or *empty* directory.  Never recursive."""
    if os.path.isdir(path) and not os.path.islink(path):
        os.rmdir(path)
    else:
        os.unlink(path)


class PurgeManager:
    """Deletes the trash-side paths of expired entries, deepest first.

    Ordering comes from an :class:`AncestryGraph` over the expired paths;
    ancestor directories that only exist as ordering nodes (the trash
    directory itself, ``/tmp``, ...) are never deleted.
    """

    def __init__(self, store: TrashStore) -> None:
        self._store = store

    def find_expired(self, now: int | None = None) -> list[TrashEntry]:
        now = int(time.time()) if now is None else now
        return self._store.find_expired(now)

    def purge(self, now: int | None = None) -> PurgeResult:
        """Delete every expired entry's path and row.

        Raises ``TrashIOError`` on the first filesystem failure; rows of
        paths already removed are gone, so a later sweep resumes cleanly.
        """
        now = int(time.time()) if now is None else now
        tic = perf_counter()
        result = PurgeResult()

        expired = self._store.find_expired(now)
        if not expired:
            result.duration_seconds = perf_counter() - tic
            return result

        by_path: dict[str, list[TrashEntry]] = {}
        for entry in expired:
            by_path.setdefault(os.path.normpath(entry.trash_path), []).append(entry)

        active_paths = [
            os.path.normpath(entry.trash_path) for entry in self._store.find_active(now)
        ]
        # An expired directory that still holds an active entry must wait.
        # Its expired ancestors are ancestors of that entry too, so they wait as well.
        blocked = {
            path
            for path in by_path
            if any(active.startswith(path + os.sep) for active in active_paths)
        }

        graph = AncestryGraph(by_path)
        for path in graph.deletion_order():
            entries = by_path[path]
            if path in blocked:
                logger.warning("Deferring purge of %s: it still holds unexpired entries", path)
                result.deferred_paths.append(path)
                continue

            if os.path.lexists(path):
                try:
                    remove_path(path)
                except OSError as e:
                    raise TrashIOError(f"Cannot purge {path}: {e}") from e
                result.deleted_count += 1
                result.bytes_freed += sum(entry.file_size for entry in entries)
                logger.debug("Purged %s", path)
            else:
                result.skipped_count += 1
                logger.debug("Already gone, dropping ledger row: %s", path)

            self._store.delete_many(entry.id for entry in entries if entry.id is not None)

        result.duration_seconds = perf_counter() - tic
        logger.info(
            "Purged %s expired entries (%s already gone, %s deferred) in %.3f seconds",
            result.deleted_count,
            result.skipped_count,
            len(result.deferred_paths),
            result.duration_seconds,
        )
        return result
