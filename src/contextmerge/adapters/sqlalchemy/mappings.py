"""SQLAlchemy table metadata and row conversion for the merge engine."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final, cast

from pydantic import TypeAdapter
from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Table,
    TypeDecorator,
    orm,
)

from contextmerge.domain.model import (
    Alternative,
    ContextField,
    EvidenceRef,
    FieldStatus,
    LabQualityScore,
    OutcomeKind,
    ProposalOutcome,
    ProposalReason,
    QualityBand,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine, RowMapping

log = logging.getLogger(__name__)

SCORE_ADAPTER: Final[TypeAdapter[LabQualityScore]] = TypeAdapter(LabQualityScore)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Core tables -----------------------------------------------------------------

context_field_table = Table(
    "context_field",
    mapper_registry.metadata,
    Column("company_id", String(128), primary_key=True),
    Column("key", String(255), primary_key=True),
    Column("value", JSON(none_as_null=True), nullable=True),
    Column("status", Enum(FieldStatus, native_enum=False), nullable=False),
    Column("source", String(64), nullable=False),
    Column("source_id", String(255), nullable=False),
    Column("confidence", Float, nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Column("revision", Integer, nullable=False),
    Column("alternatives", JSON, nullable=False),
    Column("evidence", JSON, nullable=False),
    Column("rejected_source_id", String(255), nullable=True),
    Column("rejected_at", UTCDateTime(), nullable=True),
    Column("rejected_reason", String(1024), nullable=True),
    Column("locked_at", UTCDateTime(), nullable=True),
    Column("locked_by", String(255), nullable=True),
    Column("previous_value", JSON(none_as_null=True), nullable=True),
    Column("previous_source", String(64), nullable=True),
)

proposal_outcome_table = Table(
    "proposal_outcome",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("company_id", String(128), nullable=False),
    Column("key", String(255), nullable=False),
    Column("kind", Enum(OutcomeKind, native_enum=False), nullable=False),
    Column("reason", Enum(ProposalReason, native_enum=False), nullable=False),
    Column("source", String(64), nullable=False),
    Column("source_id", String(255), nullable=False),
    Column("recorded_at", UTCDateTime(), nullable=False),
    Column("revision", Integer, nullable=True),
    Column("remaining_seconds", Integer, nullable=True),
    Index("ix_proposal_outcome_company_key", "company_id", "key"),
)

lab_quality_score_table = Table(
    "lab_quality_score",
    mapper_registry.metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String(512), nullable=False),
    Column("company_id", String(128), nullable=False),
    Column("lab_key", String(64), nullable=False),
    Column("run_id", String(255), nullable=False),
    Column("computed_at", UTCDateTime(), nullable=False),
    Column("score", Integer, nullable=False),
    Column("quality_band", Enum(QualityBand, native_enum=False), nullable=False),
    Column("payload", JSON, nullable=False),
    Index("ix_lab_quality_score_company_lab", "company_id", "lab_key"),
)


# Row conversion --------------------------------------------------------------


def field_to_row(company_id: str, field: ContextField) -> dict[str, Any]:
    return {
        "company_id": company_id,
        "key": field.key,
        "value": field.value,
        "status": field.status,
        "source": field.source,
        "source_id": field.source_id,
        "confidence": field.confidence,
        "updated_at": field.updated_at,
        "revision": field.revision,
        "alternatives": [alternative.to_payload() for alternative in field.alternatives],
        "evidence": [ref.to_payload() for ref in field.evidence],
        "rejected_source_id": field.rejected_source_id,
        "rejected_at": field.rejected_at,
        "rejected_reason": field.rejected_reason,
        "locked_at": field.locked_at,
        "locked_by": field.locked_by,
        "previous_value": field.previous_value,
        "previous_source": field.previous_source,
    }


def field_from_row(row: RowMapping) -> ContextField:
    alternatives = cast(list[dict[str, Any]], row["alternatives"] or [])
    evidence = cast(list[dict[str, Any]], row["evidence"] or [])
    return ContextField(
        key=row["key"],
        value=row["value"],
        status=row["status"],
        source=row["source"],
        source_id=row["source_id"],
        confidence=row["confidence"],
        updated_at=row["updated_at"],
        revision=row["revision"],
        alternatives=[Alternative.from_payload(payload) for payload in alternatives],
        evidence=tuple(EvidenceRef.from_payload(payload) for payload in evidence),
        rejected_source_id=row["rejected_source_id"],
        rejected_at=row["rejected_at"],
        rejected_reason=row["rejected_reason"],
        locked_at=row["locked_at"],
        locked_by=row["locked_by"],
        previous_value=row["previous_value"],
        previous_source=row["previous_source"],
    )


def outcome_to_row(outcome: ProposalOutcome) -> dict[str, Any]:
    return {
        "company_id": outcome.company_id,
        "key": outcome.key,
        "kind": outcome.kind,
        "reason": outcome.reason,
        "source": outcome.source,
        "source_id": outcome.source_id,
        "recorded_at": outcome.recorded_at,
        "revision": outcome.revision,
        "remaining_seconds": outcome.remaining_seconds,
    }


def outcome_from_row(row: RowMapping) -> ProposalOutcome:
    return ProposalOutcome(
        company_id=row["company_id"],
        key=row["key"],
        kind=row["kind"],
        reason=row["reason"],
        source=row["source"],
        source_id=row["source_id"],
        recorded_at=row["recorded_at"],
        revision=row["revision"],
        remaining_seconds=row["remaining_seconds"],
    )


def score_to_row(score: LabQualityScore) -> dict[str, Any]:
    return {
        "id": score.id,
        "company_id": score.company_id,
        "lab_key": score.lab_key,
        "run_id": score.run_id,
        "computed_at": score.computed_at,
        "score": score.score,
        "quality_band": score.quality_band,
        "payload": SCORE_ADAPTER.dump_python(score, mode="json"),
    }


def score_from_row(row: RowMapping) -> LabQualityScore:
    return SCORE_ADAPTER.validate_python(row["payload"])


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
