"""Location of the local diff store."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env_var

APP_DIR_NAME: Final[str] = "patchbatch"
DATABASE_FILENAME: Final[str] = "patchbatch.db"


def _platform_data_dir() -> Path:
    if os.name == "nt":
        root = optional_env_var("LOCALAPPDATA")
        return Path(root) if root else Path.home() / "AppData" / "Local"
    root = optional_env_var("XDG_DATA_HOME")
    return Path(root) if root else Path.home() / ".local" / "share"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Directory that holds the SQLite diff store when no database URI is given."""

    data_dir: Path
    database_filename: str = DATABASE_FILENAME

    @classmethod
    def from_environment(cls) -> StorageConfig:
        configured = optional_env_var("PATCHBATCH_DATA_DIR")
        data_dir = Path(configured) if configured else _platform_data_dir() / APP_DIR_NAME
        return cls(data_dir=data_dir)

    @property
    def database_path(self) -> Path:
        return self.data_dir.expanduser().resolve() / self.database_filename

    def sqlite_uri(self, *, create_dir: bool = True) -> str:
        path = self.database_path
        if create_dir:
            path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite+pysqlite:///{path}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str

    @classmethod
    def from_environment(cls, *, storage: StorageConfig | None = None) -> DatabaseConfig:
        explicit = optional_env_var("DATABASE_URI")
        if explicit is not None:
            return cls(uri=explicit)
        return cls(uri=(storage or StorageConfig.from_environment()).sqlite_uri())


def get_storage_config() -> StorageConfig:
    return StorageConfig.from_environment()


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    return DatabaseConfig.from_environment(storage=storage)


def get_database_uri() -> str:
    """``DATABASE_URI`` if set, else a SQLite file under the data directory."""

    return get_database_config().uri
