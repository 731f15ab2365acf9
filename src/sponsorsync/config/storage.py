"""Data storage configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Literal

from .env import optional_env_var, require_env_vars
from .errors import InvalidConfigurationValueError

APP_DIR_NAME: Final[str] = "sponsorsync"
DEFAULT_DB_FILENAME: Final[str] = "sponsorsync.db"
DEFAULT_BUCKET: Final[str] = "snapshots"

type StorageBackend = Literal["local", "gcs"]


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    backend: StorageBackend = "local"
    bucket: str = DEFAULT_BUCKET
    database_filename: str = DEFAULT_DB_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def ensure_data_dir(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def database_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.database_filename

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def get_storage_config() -> StorageConfig:
    env_dir = optional_env_var("SPONSORSYNC_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _default_data_dir()

    backend = optional_env_var("SPONSORSYNC_STORAGE_BACKEND", "local")
    if backend == "gcs":
        bucket = require_env_vars(("SPONSORSYNC_BUCKET",))["SPONSORSYNC_BUCKET"]
        return StorageConfig(data_dir=data_dir, backend="gcs", bucket=bucket)
    if backend == "local":
        bucket = optional_env_var("SPONSORSYNC_BUCKET", DEFAULT_BUCKET) or DEFAULT_BUCKET
        return StorageConfig(data_dir=data_dir, backend="local", bucket=bucket)
    raise InvalidConfigurationValueError(
        "SPONSORSYNC_STORAGE_BACKEND", backend, "expected 'local' or 'gcs'"
    )


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    env_uri = optional_env_var("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri)
    storage_config = storage or get_storage_config()
    return DatabaseConfig(uri=storage_config.database_uri())
