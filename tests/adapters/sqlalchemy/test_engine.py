from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.orm import sessionmaker

from contextmerge.adapters import sqlalchemy as sql_adapter
from contextmerge.adapters.sqlalchemy import (
    SqlAlchemyFieldRepository,
    StartupError,
    create_all_tables,
)
from contextmerge.config import DatabaseConfig
from tests.helpers.fields import make_field

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def _reset_adapter() -> Iterator[None]:
    sql_adapter.shutdown()
    yield
    sql_adapter.shutdown()


def test_repositories_require_startup() -> None:
    assert not sql_adapter.is_started()
    with pytest.raises(StartupError):
        sql_adapter.field_repository()
    with pytest.raises(StartupError):
        sql_adapter.session_factory()


def test_startup_with_existing_engine(sqlite_engine: Engine) -> None:
    sql_adapter.startup(engine=sqlite_engine)

    repository = sql_adapter.field_repository()
    repository.compare_and_swap("acme", make_field(), expected_revision=None)

    assert sql_adapter.is_started()
    assert sql_adapter.configured_engine() is sqlite_engine
    assert set(sql_adapter.field_repository().load_fields("acme")) == {"identity.industry"}


def test_startup_twice_needs_force(sqlite_engine: Engine) -> None:
    sql_adapter.startup(engine=sqlite_engine)

    with pytest.raises(StartupError):
        sql_adapter.startup(engine=sqlite_engine)
    first_factory = sql_adapter.session_factory()
    sql_adapter.startup(engine=sqlite_engine, force=True)

    assert sql_adapter.session_factory() is not first_factory


def test_startup_from_uri_creates_tables() -> None:
    sql_adapter.startup(database_uri="sqlite+pysqlite:///:memory:")

    assert sql_adapter.quality_score_repository().history("acme", "websiteLab") == []


def test_shutdown_resets_state(sqlite_engine: Engine) -> None:
    sql_adapter.startup(engine=sqlite_engine)

    sql_adapter.shutdown()

    assert not sql_adapter.is_started()
    assert sql_adapter.configured_engine() is None


def test_startup_from_database_config_honours_echo() -> None:
    engine = sql_adapter.startup(
        database=DatabaseConfig(uri="sqlite+pysqlite:///:memory:", echo=True)
    )

    assert engine.echo is True
    assert sql_adapter.configured_engine() is engine


def test_in_memory_engine_shares_one_connection() -> None:
    engine = sql_adapter.build_engine(DatabaseConfig(uri="sqlite+pysqlite:///:memory:"))
    create_all_tables(engine)
    try:
        SqlAlchemyFieldRepository(sessionmaker(bind=engine)).compare_and_swap(
            "acme", make_field(), expected_revision=None
        )
        other_sessions = sessionmaker(bind=engine, expire_on_commit=False)

        assert set(SqlAlchemyFieldRepository(other_sessions).load_fields("acme")) == {
            "identity.industry"
        }
    finally:
        engine.dispose()
