"""TrashEntry ledger model.

One row per recycled path.  ``original_path`` and ``trash_path`` are
written once at creation and never recomputed.
"""

from __future__ import annotations

from sqlmodel import Field, SQLModel

from .snapshot import FileSnapshot


class TrashEntry(SQLModel, table=True):
    """A recycled file, directory or symlink — ``rim_trash_entries``."""

    __tablename__ = "rim_trash_entries"
    # AUTOINCREMENT keeps SQLite from handing out the id of a deleted row again.
    __table_args__ = {"sqlite_autoincrement": True}

    id: int | None = Field(default=None, primary_key=True)
    original_path: str = Field(index=True)
    trash_path: str = Field(index=True)
    is_dir: bool = Field(default=False)
    link_target: str | None = Field(default=None)
    file_size: int = Field(default=0)
    content_hash: str = Field(default="")
    mtime: int = Field(default=0)
    atime: int = Field(default=0)
    unix_mode: int = Field(default=0)
    uid: int = Field(default=0)
    gid: int = Field(default=0)
    created_at: int = Field(default=0, index=True)
    expiration: int = Field(default=0, index=True)

    @property
    def snapshot(self) -> FileSnapshot:
        """The metadata captured when the entry was recycled."""
        return FileSnapshot(
            path=self.original_path,
            file_size=self.file_size,
            content_hash=self.content_hash,
            mtime=self.mtime,
            atime=self.atime,
            unix_mode=self.unix_mode,
            uid=self.uid,
            gid=self.gid,
            is_dir=self.is_dir,
            link_target=self.link_target,
        )

    def is_expired(self, now: int) -> bool:
        """True once *now* is past the expiration time."""
        return self.expiration < now

    @classmethod
    def from_snapshot(
        cls,
        snapshot: FileSnapshot,
        trash_path: str,
        *,
        created_at: int,
        expiration: int,
    ) -> TrashEntry:
        return cls(
            original_path=snapshot.path,
            trash_path=trash_path,
            is_dir=snapshot.is_dir,
            link_target=snapshot.link_target,
            file_size=snapshot.file_size,
            content_hash=snapshot.content_hash,
            mtime=snapshot.mtime,
            atime=snapshot.atime,
            unix_mode=snapshot.unix_mode,
            uid=snapshot.uid,
            gid=snapshot.gid,
            created_at=created_at,
            expiration=expiration,
        )
