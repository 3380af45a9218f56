"""Location of the local Mindat mirror."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_bool, optional_env_var

APP_DIR_NAME: Final[str] = "mineralsync"
MIRROR_FILENAME: Final[str] = "mindat_mirror.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Directory holding the SQLite mirror file."""

    data_dir: Path
    mirror_filename: str = MIRROR_FILENAME

    def mirror_path(self, *, create_dir: bool = True) -> Path:
        directory = self.data_dir.expanduser().resolve()
        if create_dir:
            directory.mkdir(parents=True, exist_ok=True)
        return directory / self.mirror_filename

    def sqlite_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.mirror_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False


def default_data_dir() -> Path:
    if sys.platform == "win32":
        root = optional_env_var("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
    else:
        root = optional_env_var("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(root) / APP_DIR_NAME


def get_storage_config() -> StorageConfig:
    configured = optional_env_var("MINERALSYNC_DATA_DIR")
    return StorageConfig(data_dir=Path(configured) if configured else default_data_dir())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` wins; otherwise the mirror file under the data directory."""

    uri = optional_env_var("DATABASE_URI") or (storage or get_storage_config()).sqlite_uri()
    return DatabaseConfig(uri=uri, echo=env_bool("MINERALSYNC_SQL_ECHO"))
