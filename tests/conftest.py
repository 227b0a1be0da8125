"""Shared fixtures for rim tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlmodel import SQLModel, create_engine

from rim.config import RimConfig
from rim.recycle_bin import RecycleBin
from rim.snapshot import FileSnapshot
from rim.store import TrashStore

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from sqlalchemy import Engine


def _make_snapshot(path: str = "/tmp/testfile", **overrides: object) -> FileSnapshot:
    fields: dict[str, object] = {
        "path": path,
        "file_size": 1234,
        "content_hash": "1234567890abcdef",
        "mtime": 1709096470,
        "atime": 1709096477,
        "unix_mode": 0o644,
        "uid": 1000,
        "gid": 1000,
    }
    fields.update(overrides)
    return FileSnapshot(**fields)  # type: ignore[arg-type]


@pytest.fixture
def make_snapshot() -> Callable[..., FileSnapshot]:
    """Factory for FileSnapshots with plausible defaults."""
    return _make_snapshot


@pytest.fixture
def engine() -> Engine:
    """In-memory SQLite engine with all tables created."""
    eng = create_engine("sqlite://", echo=False)
    SQLModel.metadata.create_all(eng)
    return eng


@pytest.fixture
def store(engine: Engine) -> Iterator[TrashStore]:
    """Ledger on the in-memory engine with a one hour TTL."""
    s = TrashStore(engine, ttl=3600)
    yield s
    s.close()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Directory holding the files the tests recycle."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def config(tmp_path: Path) -> RimConfig:
    """Config with a trash directory under ``tmp_path``."""
    return RimConfig(trash_dir=tmp_path / "trash", ttl=3600)


@pytest.fixture
def recycle_bin(config: RimConfig) -> Iterator[RecycleBin]:
    """RecycleBin backed by an on-disk ledger in the trash directory."""
    with RecycleBin(config) as rb:
        yield rb
