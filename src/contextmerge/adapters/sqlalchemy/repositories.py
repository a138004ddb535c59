"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from contextmerge.adapters.sqlalchemy.mappings import (
    context_field_table,
    field_from_row,
    field_to_row,
    lab_quality_score_table,
    outcome_from_row,
    outcome_to_row,
    proposal_outcome_table,
    score_from_row,
    score_to_row,
)
from contextmerge.domain.errors import StoreUnavailableError

if TYPE_CHECKING:
    from sqlalchemy.engine import CursorResult
    from sqlalchemy.orm import Session, sessionmaker

    from contextmerge.domain.model import ContextField, LabQualityScore, ProposalOutcome

log = logging.getLogger(__name__)


class SqlAlchemyFieldRepository:
    """Field store with optimistic concurrency on the ``revision`` column.

    Each call runs in its own short transaction, so a compare-and-swap is visible
    to other writers as soon as it returns ``True``.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def load_fields(self, company_id: str) -> dict[str, ContextField]:
        stmt = select(context_field_table).where(context_field_table.c.company_id == company_id)
        try:
            with self.session_factory() as session:
                rows = session.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"could not load fields for {company_id}") from exc
        return {row["key"]: field_from_row(row) for row in rows}

    def get_field(self, company_id: str, key: str) -> ContextField | None:
        stmt = (
            select(context_field_table)
            .where(context_field_table.c.company_id == company_id)
            .where(context_field_table.c.key == key)
        )
        try:
            with self.session_factory() as session:
                row = session.execute(stmt).mappings().one_or_none()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"could not read {company_id}/{key}") from exc
        return field_from_row(row) if row is not None else None

    def compare_and_swap(
        self,
        company_id: str,
        field: ContextField,
        *,
        expected_revision: int | None,
    ) -> bool:
        row = field_to_row(company_id, field)
        if expected_revision is None:
            stmt = insert(context_field_table).values(**row)
        else:
            stmt = (
                update(context_field_table)
                .where(context_field_table.c.company_id == company_id)
                .where(context_field_table.c.key == field.key)
                .where(context_field_table.c.revision == expected_revision)
                .values(**row)
            )
        try:
            with self.session_factory.begin() as session:
                result = session.execute(stmt)
        except IntegrityError:
            log.debug("Field %s/%s was created concurrently", company_id, field.key)
            return False
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"could not write {company_id}/{field.key}") from exc
        swapped = expected_revision is None or cast("CursorResult[Any]", result).rowcount == 1
        if not swapped:
            log.debug(
                "Revision mismatch on %s/%s (expected %s)", company_id, field.key, expected_revision
            )
        return swapped

    def append_outcome(self, outcome: ProposalOutcome) -> None:
        try:
            with self.session_factory.begin() as session:
                session.execute(insert(proposal_outcome_table).values(**outcome_to_row(outcome)))
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(
                f"could not record outcome for {outcome.company_id}/{outcome.key}"
            ) from exc

    def list_outcomes(self, company_id: str, *, key: str | None = None) -> list[ProposalOutcome]:
        stmt = select(proposal_outcome_table).where(
            proposal_outcome_table.c.company_id == company_id
        )
        if key is not None:
            stmt = stmt.where(proposal_outcome_table.c.key == key)
        stmt = stmt.order_by(proposal_outcome_table.c.id)
        try:
            with self.session_factory() as session:
                rows = session.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"could not list outcomes for {company_id}") from exc
        return [outcome_from_row(row) for row in rows]


class SqlAlchemyQualityScoreRepository:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def append(self, score: LabQualityScore) -> None:
        stmt = insert(lab_quality_score_table).values(**score_to_row(score))
        try:
            with self.session_factory.begin() as session:
                session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"could not store quality score {score.id}") from exc

    def latest(self, company_id: str, lab_key: str) -> LabQualityScore | None:
        stmt = (
            select(lab_quality_score_table.c.payload)
            .where(lab_quality_score_table.c.company_id == company_id)
            .where(lab_quality_score_table.c.lab_key == lab_key)
            .order_by(lab_quality_score_table.c.seq.desc())
            .limit(1)
        )
        try:
            with self.session_factory() as session:
                row = session.execute(stmt).mappings().one_or_none()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(
                f"could not load latest {lab_key} score for {company_id}"
            ) from exc
        return score_from_row(row) if row is not None else None

    def history(self, company_id: str, lab_key: str) -> list[LabQualityScore]:
        stmt = (
            select(lab_quality_score_table.c.payload)
            .where(lab_quality_score_table.c.company_id == company_id)
            .where(lab_quality_score_table.c.lab_key == lab_key)
            .order_by(lab_quality_score_table.c.seq)
        )
        try:
            with self.session_factory() as session:
                rows = session.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(
                f"could not load {lab_key} score history for {company_id}"
            ) from exc
        return [score_from_row(row) for row in rows]


if TYPE_CHECKING:
    from contextmerge.domain.ports import FieldRepository, QualityScoreRepository

    _field_repo: FieldRepository = SqlAlchemyFieldRepository(sessionmaker())
    _score_repo: QualityScoreRepository = SqlAlchemyQualityScoreRepository(sessionmaker())
