"""Process-wide engine lifecycle for the SQLAlchemy field and score stores."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from contextmerge.adapters.sqlalchemy.mappings import create_all_tables
from contextmerge.adapters.sqlalchemy.repositories import (
    SqlAlchemyFieldRepository,
    SqlAlchemyQualityScoreRepository,
)
from contextmerge.config import DatabaseConfig, get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """The adapter was used before ``startup()`` or started twice."""


class _AdapterState:
    __slots__ = ("engine", "sessions")

    def __init__(self) -> None:
        self.engine: Engine | None = None
        self.sessions: sessionmaker[Session] | None = None

    def bind(self, engine: Engine) -> None:
        self.engine = engine
        self.sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def clear(self) -> Engine | None:
        engine, self.engine, self.sessions = self.engine, None, None
        return engine

    def require_sessions(self) -> sessionmaker[Session]:
        if self.sessions is None:
            raise StartupError(
                "contextmerge.adapters.sqlalchemy.startup() must run before repositories "
                "are requested"
            )
        return self.sessions


_STATE = _AdapterState()


def build_engine(config: DatabaseConfig) -> Engine:
    """Create an engine for ``config``.

    In-memory SQLite shares a single connection so every session sees the same tables.
    """

    options = dict(config.engine_options)
    if config.is_sqlite and ":memory:" in config.uri:
        options.setdefault("poolclass", StaticPool)
        options.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(config.uri, echo=config.echo, **options)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    database: DatabaseConfig | None = None,
    force: bool = False,
) -> Engine:
    """Bind the adapter to an engine and create any missing tables.

    Precedence: an explicit ``engine``, then ``database``, then ``database_uri``,
    then the environment (see :func:`contextmerge.config.get_database_config`).
    """

    if _STATE.engine is not None and not force:
        raise StartupError("SQLAlchemy adapter already started; pass force=True to rebind")

    if engine is None:
        if database is None:
            database = (
                DatabaseConfig(uri=database_uri) if database_uri else get_database_config()
            )
        engine = build_engine(database)
    create_all_tables(engine)
    _STATE.bind(engine)
    log.debug("SQLAlchemy adapter bound to %s", engine.url.render_as_string(hide_password=True))
    return engine


def configured_engine() -> Engine | None:
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def session_factory() -> sessionmaker[Session]:
    return _STATE.require_sessions()


def field_repository() -> SqlAlchemyFieldRepository:
    return SqlAlchemyFieldRepository(_STATE.require_sessions())


def quality_score_repository() -> SqlAlchemyQualityScoreRepository:
    return SqlAlchemyQualityScoreRepository(_STATE.require_sessions())


def shutdown() -> None:
    """Dispose the bound engine, if any, and forget it."""

    engine = _STATE.clear()
    if engine is not None:
        engine.dispose()
