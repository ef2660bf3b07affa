"""Location of the knowledge store database."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "nutrikb"
DEFAULT_DB_FILENAME: Final[str] = "nutrikb.db"
DATA_DIR_ENV: Final[str] = "NUTRIKB_DATA_DIR"
DATABASE_URI_ENV: Final[str] = "DATABASE_URI"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    @property
    def database_path(self) -> Path:
        return self.data_dir.expanduser().resolve() / self.database_filename

    def sqlite_uri(self, *, create_dir: bool = True) -> str:
        """SQLite URI for the local database file.

        ``create_dir=False`` leaves the filesystem untouched, for callers that
        never open a connection.
        """

        path = self.database_path
        if create_dir:
            path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite+pysqlite:///{path}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        root = Path(base) if base else Path.home() / "AppData" / "Local"
    else:
        base = os.getenv("XDG_DATA_HOME")
        root = Path(base) if base else Path.home() / ".local" / "share"
    return root / APP_DIR_NAME


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv(DATA_DIR_ENV)
    return StorageConfig(data_dir=Path(env_dir) if env_dir else default_data_dir())


def get_database_config(
    *, storage: StorageConfig | None = None, create_dir: bool = True
) -> DatabaseConfig:
    """``DATABASE_URI`` when set, else a SQLite file in the data directory."""

    env_uri = os.getenv(DATABASE_URI_ENV, "").strip()
    if env_uri:
        return DatabaseConfig(uri=env_uri)
    storage_config = storage or get_storage_config()
    return DatabaseConfig(uri=storage_config.sqlite_uri(create_dir=create_dir))


def get_database_uri(*, create_dir: bool = True) -> str:
    return get_database_config(create_dir=create_dir).uri
