"""Where field and quality-score state is persisted."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

from .env import env_bool

APP_DIR_NAME: Final[str] = "contextmerge"
DEFAULT_DB_FILENAME: Final[str] = "contextmerge.db"


def default_data_dir() -> Path:
    """Per-user data directory (``%LOCALAPPDATA%`` on Windows, XDG elsewhere)."""

    if os.name == "nt":
        root = os.getenv("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
    else:
        root = os.getenv("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(root).expanduser().resolve() / APP_DIR_NAME


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def database_path(self, *, ensure: bool = True) -> Path:
        directory = self.data_dir.expanduser().resolve()
        if ensure:
            directory.mkdir(parents=True, exist_ok=True)
        return directory / self.database_filename


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False
    engine_options: dict[str, Any] = field(default_factory=dict[str, Any])

    @property
    def is_sqlite(self) -> bool:
        return self.uri.startswith("sqlite")


def get_storage_config() -> StorageConfig:
    override = os.getenv("CONTEXTMERGE_DATA_DIR")
    return StorageConfig(data_dir=Path(override) if override else default_data_dir())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """Resolve the database URI: ``DATABASE_URI`` wins, else a SQLite file in the data dir.

    SQLite connections are opened with ``check_same_thread=False`` because field
    stores are shared between ingest workers; each call still uses its own session.
    """

    uri = os.getenv("DATABASE_URI") or (
        f"sqlite+pysqlite:///{(storage or get_storage_config()).database_path()}"
    )
    options: dict[str, Any] = {}
    if uri.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    return DatabaseConfig(
        uri=uri,
        echo=env_bool("CONTEXTMERGE_SQL_ECHO", default=False),
        engine_options=options,
    )
