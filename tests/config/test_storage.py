from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest

from contextmerge.config import (
    ConfigurationError,
    StorageConfig,
    get_database_config,
    get_storage_config,
)
from contextmerge.config.storage import DEFAULT_DB_FILENAME


def test_storage_prefers_explicit_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv("CONTEXTMERGE_DATA_DIR", str(custom))

    storage = get_storage_config()

    assert storage.database_path(ensure=False) == custom.resolve() / DEFAULT_DB_FILENAME
    assert not custom.exists()


def test_storage_falls_back_to_xdg_data_home(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("CONTEXTMERGE_DATA_DIR", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

    storage = get_storage_config()

    assert storage.data_dir == (tmp_path / "contextmerge").resolve()


def test_database_uri_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://merge@db/context")

    database = get_database_config()

    assert database.uri == "postgresql+psycopg://merge@db/context"
    assert not database.is_sqlite
    assert database.engine_options == {}


def test_database_uri_creates_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("CONTEXTMERGE_DATA_DIR", str(tmp_path / "data-dir"))

    database = get_database_config()

    expected_path = (tmp_path / "data-dir" / DEFAULT_DB_FILENAME).resolve()
    assert database.uri == f"sqlite+pysqlite:///{expected_path}"
    assert database.engine_options == {"connect_args": {"check_same_thread": False}}
    assert expected_path.parent.exists()


def test_explicit_storage_config_wins(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    storage = StorageConfig(data_dir=tmp_path, database_filename="merge.db")

    uri = get_database_config(storage=storage).uri

    assert uri.endswith("/merge.db")
    assert storage.database_path(ensure=False) == tmp_path.resolve() / "merge.db"


@pytest.mark.parametrize(
    ("raw", "expected"), [(None, False), ("", False), ("1", True), ("Yes", True), ("off", False)]
)
def test_sql_echo_flag(monkeypatch: pytest.MonkeyPatch, raw: str | None, expected: bool) -> None:
    if raw is None:
        monkeypatch.delenv("CONTEXTMERGE_SQL_ECHO", raising=False)
    else:
        monkeypatch.setenv("CONTEXTMERGE_SQL_ECHO", raw)

    assert get_database_config().echo is expected


def test_sql_echo_rejects_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONTEXTMERGE_SQL_ECHO", "loud")

    with pytest.raises(ConfigurationError, match="CONTEXTMERGE_SQL_ECHO"):
        get_database_config()
