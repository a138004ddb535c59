from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from contextmerge.adapters.memory import InMemoryFieldRepository, InMemoryQualityScoreRepository
from contextmerge.adapters.sqlalchemy import (
    SqlAlchemyFieldRepository,
    SqlAlchemyQualityScoreRepository,
    build_engine,
    create_all_tables,
)
from contextmerge.config import DatabaseConfig
from contextmerge.domain.merge import CooldownThrottle, FieldStore, InMemoryCooldownStore
from tests.helpers.clock import FakeClock

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = build_engine(DatabaseConfig(uri="sqlite+pysqlite:///:memory:"))
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session_factory(sqlite_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=sqlite_engine, expire_on_commit=False)


@pytest.fixture
def memory_fields() -> InMemoryFieldRepository:
    return InMemoryFieldRepository()


@pytest.fixture
def memory_scores() -> InMemoryQualityScoreRepository:
    return InMemoryQualityScoreRepository()


@pytest.fixture
def sql_fields(sqlite_session_factory: sessionmaker[Session]) -> SqlAlchemyFieldRepository:
    return SqlAlchemyFieldRepository(sqlite_session_factory)


@pytest.fixture
def sql_scores(
    sqlite_session_factory: sessionmaker[Session],
) -> SqlAlchemyQualityScoreRepository:
    return SqlAlchemyQualityScoreRepository(sqlite_session_factory)


@pytest.fixture
def throttle(clock: FakeClock) -> CooldownThrottle:
    return CooldownThrottle(InMemoryCooldownStore(), clock=clock)


@pytest.fixture
def store(
    memory_fields: InMemoryFieldRepository,
    throttle: CooldownThrottle,
    clock: FakeClock,
) -> FieldStore:
    return FieldStore("acme", memory_fields, throttle=throttle, clock=clock)
