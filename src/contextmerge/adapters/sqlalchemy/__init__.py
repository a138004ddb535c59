"""SQLAlchemy adapter package for the merge engine."""

from __future__ import annotations

from .engine import (
    StartupError,
    build_engine,
    configured_engine,
    field_repository,
    is_started,
    quality_score_repository,
    session_factory,
    shutdown,
    startup,
)
from .mappings import (
    context_field_table,
    create_all_tables,
    lab_quality_score_table,
    mapper_registry,
    proposal_outcome_table,
)
from .repositories import SqlAlchemyFieldRepository, SqlAlchemyQualityScoreRepository

__all__ = [
    "SqlAlchemyFieldRepository",
    "SqlAlchemyQualityScoreRepository",
    "StartupError",
    "build_engine",
    "configured_engine",
    "context_field_table",
    "create_all_tables",
    "field_repository",
    "is_started",
    "lab_quality_score_table",
    "mapper_registry",
    "proposal_outcome_table",
    "quality_score_repository",
    "session_factory",
    "shutdown",
    "startup",
]
