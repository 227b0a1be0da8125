"""TrashStore — the SQLite ledger of trash entries."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy import delete as sa_delete
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, col, create_engine, select

from .exceptions import StorageError
from .models import TrashEntry

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path
    from types import TracebackType

    from sqlalchemy import Engine
    from sqlmodel.sql.expression import SelectOfScalar

    from .config import RimConfig
    from .snapshot import FileSnapshot

logger = logging.getLogger(__name__)


def create_sqlite_engine(database_path: str | Path) -> Engine:
    """Create an engine for the ledger file with WAL and a busy timeout."""
    engine = create_engine(f"sqlite:///{database_path}", echo=False)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection: object, connection_record: object) -> None:
        cursor = dbapi_connection.cursor()  # type: ignore[union-attr]
        cursor.execute("PRAGMA journal_mode=WAL")
        result = cursor.fetchone()
        if result[0].lower() != "wal":
            logger.warning("WAL mode not active, got: %s", result[0])
        # Another rim process holding the lock makes us wait instead of failing.
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.execute("PRAGMA synchronous=FULL")
        cursor.close()

    return engine


class TrashStore:
    """Persistent ledger of recycled paths.

    Every call opens its own session, so results always reflect what is
    on disk.  The store owns its engine; call :meth:`close` (or use it as
    a context manager) to release it.
    """

    def __init__(self, engine: Engine, *, ttl: int) -> None:
        self._engine = engine
        self.ttl = ttl
        try:
            SQLModel.metadata.create_all(engine, tables=[TrashEntry.__table__])  # type: ignore[attr-defined]
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot initialise ledger: {e}") from e

    @classmethod
    def from_config(cls, config: RimConfig) -> TrashStore:
        """Open (creating if needed) the ledger described by *config*."""
        try:
            config.trash_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create trash directory {config.trash_dir}: {e}") from e
        logger.debug("Opening ledger at %s", config.database_path)
        return cls(create_sqlite_engine(config.database_path), ttl=config.ttl)

    @property
    def engine(self) -> Engine:
        return self._engine

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        self._engine.dispose()

    def __enter__(self) -> TrashStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Session handling
    # ------------------------------------------------------------------

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        """Yield a session; commit on success, map DB errors to ``StorageError``."""
        try:
            with Session(self._engine, expire_on_commit=False) as session:
                yield session
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Ledger error while trying to {action}: {e}") from e

    def _select(self, action: str, query: SelectOfScalar[TrashEntry]) -> list[TrashEntry]:
        with self._session(action) as session:
            return list(session.exec(query).all())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        snapshot: FileSnapshot,
        trash_path: str | Path,
        *,
        now: int | None = None,
    ) -> TrashEntry:
        """Insert a row for *snapshot* and return it with its assigned id."""
        now = int(time.time()) if now is None else now
        entry = TrashEntry.from_snapshot(
            snapshot,
            str(trash_path),
            created_at=now,
            expiration=now + self.ttl,
        )
        with self._session("create entry") as session:
            session.add(entry)
            session.flush()
            if entry.id is None:
                raise StorageError(f"No ledger row written for {snapshot.path}")

        logger.debug("Created ledger entry %s: %s -> %s", entry.id, entry.original_path, entry.trash_path)
        return entry

    def delete(self, entry_id: int) -> None:
        """Remove the row with *entry_id*.  Missing ids are ignored."""
        self.delete_many([entry_id])

    def delete_many(self, entry_ids: Iterable[int]) -> int:
        """Remove several rows in one transaction; return how many existed."""
        ids = list(entry_ids)
        if not ids:
            return 0
        with self._session("delete entries") as session:
            result = session.execute(sa_delete(TrashEntry).where(col(TrashEntry.id).in_(ids)))
            count = result.rowcount or 0
        logger.debug("Deleted %s ledger entries", count)
        return count

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_id(self, entry_id: int) -> TrashEntry | None:
        """Point lookup; ``None`` when absent."""
        with self._session("find entry") as session:
            return session.get(TrashEntry, entry_id)

    def find_expired(self, now: int) -> list[TrashEntry]:
        """Rows whose expiration is strictly before *now*."""
        query = (
            select(TrashEntry)
            .where(TrashEntry.expiration < now)
            .order_by(col(TrashEntry.trash_path).desc())
        )
        return self._select("find expired entries", query)

    def find_active(self, now: int) -> list[TrashEntry]:
        """Rows that have not expired at *now*."""
        query = select(TrashEntry).where(TrashEntry.expiration >= now)
        return self._select("find active entries", query)

    def recent(self, n: int) -> list[TrashEntry]:
        """The *n* most recently created rows, newest first."""
        if n <= 0:
            return []
        query = (
            select(TrashEntry)
            .order_by(col(TrashEntry.created_at).desc(), col(TrashEntry.id).desc())
            .limit(n)
        )
        return self._select("list recent entries", query)

    def find_by_original_path(self, original_path: str | Path) -> list[TrashEntry]:
        """Entries recycled from *original_path*, newest first."""
        query = (
            select(TrashEntry)
            .where(TrashEntry.original_path == str(original_path))
            .order_by(col(TrashEntry.created_at).desc(), col(TrashEntry.id).desc())
        )
        return self._select("find entries by path", query)

    def find_nested(self, trash_path: str | Path) -> list[TrashEntry]:
        """Entries whose trash path lies strictly beneath *trash_path*."""
        prefix = str(trash_path).rstrip("/") + "/"
        query = select(TrashEntry).where(
            col(TrashEntry.trash_path).startswith(prefix, autoescape=True)
        )
        return self._select("find nested entries", query)

    def is_trash_path_recorded(self, trash_path: str | Path) -> bool:
        """True if any row already uses *trash_path*."""
        query = select(TrashEntry.id).where(TrashEntry.trash_path == str(trash_path)).limit(1)
        with self._session("check trash path") as session:
            return session.exec(query).first() is not None

    def all_entries(self) -> list[TrashEntry]:
        """Every row, oldest first."""
        return self._select("list entries", select(TrashEntry).order_by(col(TrashEntry.id)))
