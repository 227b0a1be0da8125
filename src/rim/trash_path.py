"""Trash path generation — content-tagged file names inside the trash directory."""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .snapshot import FileSnapshot

HASH_PREFIX_LENGTH = 7

# Extension is everything from the last dot; the stem keeps any earlier dots.
_NAME_RE = re.compile(r"(?P<stem>.+?)(?P<ext>\.[^.]*)?", re.DOTALL)


def split_name(name: str) -> tuple[str, str]:
    """Split *name* into ``(stem, ext)``.

    Examples:
        split_name("report.txt") -> ("report", ".txt")
        split_name("archive.tar.gz") -> ("archive.tar", ".gz")
        split_name("Makefile") -> ("Makefile", "")
        split_name(".bashrc") -> (".bashrc", "")
    """
    match = _NAME_RE.fullmatch(name)
    if match is None:
        return name, ""
    return match["stem"], match["ext"] or ""


def tag_filename(name: str, content_hash: str, attempt: int = 0) -> str:
    """Insert the short content hash between stem and extension of *name*."""
    stem, ext = split_name(name)
    tag = content_hash[:HASH_PREFIX_LENGTH]
    suffix = f"-{attempt}" if attempt else ""
    return f"{stem}_{tag}{suffix}{ext}"


def generate_trash_path(
    snapshot: FileSnapshot,
    trash_dir: str | Path,
    *,
    attempt: int = 0,
) -> Path:
    """Return the trash location for *snapshot*.  Never touches the filesystem.

    ``attempt`` selects an alternative name when the first candidate is
    already taken by another entry with the same name and content.
    """
    return Path(trash_dir) / tag_filename(snapshot.name, snapshot.content_hash, attempt)
