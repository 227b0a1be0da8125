"""FileSnapshot — metadata captured from a path before it is recycled."""

from __future__ import annotations

import hashlib
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .exceptions import PathNotFoundError, TrashIOError


@dataclass(frozen=True)
class FileSnapshot:
    """Immutable metadata of a file, directory or symlink at a point in time."""

    path: str
    file_size: int
    content_hash: str
    mtime: int
    atime: int
    unix_mode: int
    uid: int
    gid: int
    is_dir: bool = False
    link_target: str | None = None

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    @property
    def is_symlink(self) -> bool:
        return self.link_target is not None


class Snapshotter(Protocol):
    """Callable producing a snapshot; raises ``PathNotFoundError`` if *path* is missing."""

    def __call__(self, path: str | Path) -> FileSnapshot: ...


def compute_file_hash(path: str | Path) -> str:
    """Return the sha256 hex digest of the file contents at *path*."""
    with open(path, "rb") as f:
        return hashlib.file_digest(f, "sha256").hexdigest()


def compute_dir_hash(path: str | Path) -> str:
    """Return a sha256 hex digest of a directory's sorted entry names."""
    digest = hashlib.sha256()
    for name in sorted(os.listdir(path)):
        digest.update(os.fsencode(name))
        digest.update(b"\0")
    return digest.hexdigest()


def compute_special_hash(st: os.stat_result) -> str:
    """Return a sha256 hex digest of a special file's type and device number.

    FIFOs, sockets and device nodes are never opened.
    """
    descriptor = f"{stat.S_IFMT(st.st_mode):o}:{st.st_rdev}"
    return hashlib.sha256(descriptor.encode()).hexdigest()


def take_snapshot(path: str | Path) -> FileSnapshot:
    """Capture metadata for *path* without following a final symlink.

    Raises ``PathNotFoundError`` if *path* is missing and ``TrashIOError``
    if it cannot be read.
    """
    abspath = os.path.abspath(path)
    try:
        st = os.lstat(abspath)
    except FileNotFoundError:
        raise PathNotFoundError(f"File not found: {abspath}") from None
    except OSError as e:
        raise TrashIOError(f"Cannot stat {abspath}: {e}") from e

    link_target: str | None = None
    is_dir = False
    try:
        if stat.S_ISLNK(st.st_mode):
            link_target = os.readlink(abspath)
            content_hash = hashlib.sha256(os.fsencode(link_target)).hexdigest()
        elif stat.S_ISDIR(st.st_mode):
            is_dir = True
            content_hash = compute_dir_hash(abspath)
        elif stat.S_ISREG(st.st_mode):
            content_hash = compute_file_hash(abspath)
        else:
            content_hash = compute_special_hash(st)
    except FileNotFoundError:
        raise PathNotFoundError(f"File not found: {abspath}") from None
    except OSError as e:
        raise TrashIOError(f"Cannot read {abspath}: {e}") from e

    return FileSnapshot(
        path=abspath,
        file_size=st.st_size,
        content_hash=content_hash,
        mtime=int(st.st_mtime),
        atime=int(st.st_atime),
        unix_mode=stat.S_IMODE(st.st_mode),
        uid=st.st_uid,
        gid=st.st_gid,
        is_dir=is_dir,
        link_target=link_target,
    )
