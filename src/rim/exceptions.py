"""Custom exception hierarchy for the rim recycle bin."""


class RimError(Exception):
    """Base exception for all rim errors."""


class PathNotFoundError(RimError):
    """Raised when a source path or a ledger entry does not exist."""


class AlreadyExistsError(RimError):
    """Raised when a recover target is already occupied."""


class TrashIOError(RimError):
    """Raised on filesystem failures (rename, unlink, chmod, chown)."""


class DirectoryNotEmptyError(TrashIOError):
    """Raised when a non-empty directory is recycled without ``recursive``."""


class StorageError(RimError):
    """Raised on ledger failures (DB connection, write errors, malformed rows)."""


class InvalidEntryIdError(RimError):
    """Raised when a trash entry id cannot be parsed."""


class ConfigError(RimError):
    """Raised when the configuration file cannot be read or is invalid."""
