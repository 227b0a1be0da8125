"""rim: a recycle bin for the command line.

Moves files into a trash directory, records them in a SQLite ledger and
purges them once their time-to-live has passed.
"""

__version__ = "0.1.0"

from rim.config import RimConfig, load_config
from rim.exceptions import (
    AlreadyExistsError,
    ConfigError,
    DirectoryNotEmptyError,
    InvalidEntryIdError,
    PathNotFoundError,
    RimError,
    StorageError,
    TrashIOError,
)
from rim.models import TrashEntry
from rim.ordering import AncestryGraph, deletion_order
from rim.purge import PurgeManager, PurgeResult
from rim.recycle_bin import RecycleBin
from rim.snapshot import FileSnapshot, take_snapshot
from rim.store import TrashStore
from rim.trash_path import generate_trash_path

__all__ = [
    "AlreadyExistsError",
    "AncestryGraph",
    "ConfigError",
    "DirectoryNotEmptyError",
    "FileSnapshot",
    "InvalidEntryIdError",
    "PathNotFoundError",
    "PurgeManager",
    "PurgeResult",
    "RecycleBin",
    "RimConfig",
    "RimError",
    "StorageError",
    "TrashEntry",
    "TrashIOError",
    "TrashStore",
    "__version__",
    "deletion_order",
    "generate_trash_path",
    "load_config",
    "take_snapshot",
]
