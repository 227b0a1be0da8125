"""RimConfig and YAML config discovery."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_NAME = "rim.db"
DEFAULT_TTL = 604800  # 7 days
CONFIG_FILENAME = "config.yaml"


def _default_trash_dir() -> Path:
    return Path(tempfile.gettempdir()) / "rim"


@dataclass
class RimConfig:
    """Settings for a recycle bin instance."""

    trash_dir: Path = field(default_factory=_default_trash_dir)
    """Directory that holds trashed files and the ledger database."""

    database_name: str = DEFAULT_DATABASE_NAME
    """File name of the ledger database inside ``trash_dir``."""

    ttl: int = DEFAULT_TTL
    """Seconds an entry stays recoverable before maintenance purges it."""

    def __post_init__(self) -> None:
        self.trash_dir = Path(self.trash_dir).expanduser().absolute()
        if isinstance(self.ttl, bool) or not isinstance(self.ttl, int):
            raise ConfigError(f"ttl must be an integer number of seconds, got {self.ttl!r}")
        if self.ttl < 0:
            raise ConfigError(f"ttl must not be negative, got {self.ttl}")
        if not self.database_name or "/" in self.database_name:
            raise ConfigError(f"Invalid database_name: {self.database_name!r}")

    @property
    def database_path(self) -> Path:
        """Path of the ledger database."""
        return self.trash_dir / self.database_name

    def to_dict(self) -> dict[str, Any]:
        """Return the YAML-serialisable form (original key names)."""
        return {
            "trashdir": str(self.trash_dir),
            "database_name": self.database_name,
            "ttl": self.ttl,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RimConfig:
        """Build a config from parsed YAML, falling back to defaults."""
        unknown = set(data) - {"trashdir", "database_name", "ttl"}
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        kwargs: dict[str, Any] = {}
        if "trashdir" in data:
            kwargs["trash_dir"] = Path(str(data["trashdir"]))
        if "database_name" in data:
            kwargs["database_name"] = str(data["database_name"])
        if "ttl" in data:
            kwargs["ttl"] = data["ttl"]
        return cls(**kwargs)

    def save(self, path: str | Path) -> None:
        """Write the config to *path* as YAML."""
        path = Path(path)
        path.write_text(yaml.safe_dump(self.to_dict(), sort_keys=False))
        logger.debug("Wrote config to %s", path)

    @classmethod
    def open(cls, path: str | Path) -> RimConfig:
        """Read a config file.  Raises ``ConfigError`` if it is unreadable."""
        path = Path(path)
        try:
            text = path.read_text()
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"Error parsing config file {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        logger.debug("Loaded config from %s", path)
        return cls.from_dict(data)


def config_search_paths() -> list[Path]:
    """Candidate config files, in lookup order."""
    home = Path.home()
    paths: list[Path] = []
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        paths.append(Path(xdg) / "rim" / CONFIG_FILENAME)
    paths.append(home / ".config" / "rim" / CONFIG_FILENAME)
    paths.append(home / ".rim" / CONFIG_FILENAME)
    paths.append(home / ".rim.yaml")
    return paths


def default_config_destination() -> Path:
    """Where a fresh default config is written when none is found."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "rim" / CONFIG_FILENAME
    return Path.home() / ".rim" / CONFIG_FILENAME


def load_config(path: str | Path | None = None) -> RimConfig:
    """Load the config from *path*, or discover it.

    With no explicit path the first existing file from
    :func:`config_search_paths` wins.  If none exists the defaults are
    written to :func:`default_config_destination` and returned.
    """
    if path is not None:
        return RimConfig.open(path)

    for candidate in config_search_paths():
        if candidate.exists():
            return RimConfig.open(candidate)

    config = RimConfig()
    destination = default_config_destination()
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        config.save(destination)
    except OSError as e:
        raise ConfigError(f"Cannot write default config to {destination}: {e}") from e
    logger.info("Created default config at %s", destination)
    return config
