"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from contextmerge.adapters import sqlalchemy as sql_adapter
from contextmerge.adapters.memory import InMemoryFieldRepository, InMemoryQualityScoreRepository
from contextmerge.common.clock import utc_now
from contextmerge.config import EngineConfig, get_engine_config
from contextmerge.domain.extraction import CandidateExtractor
from contextmerge.domain.merge import CooldownThrottle, FieldStore
from contextmerge.domain.model import OutcomeKind
from contextmerge.domain.quality import QualityScoreHistory
from contextmerge.domain.sources import SourcePriority

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.engine import Engine

    from contextmerge.common.clock import Clock
    from contextmerge.domain.extraction import ExtractionResult
    from contextmerge.domain.merge import CooldownStore
    from contextmerge.domain.model import BatchOutcome, LabQualityScore
    from contextmerge.domain.ports import FieldRepository, QualityScoreRepository


log = getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class RunIngestResult:
    """Everything that happened to one producer run."""

    company_id: str
    run_id: str
    extraction: ExtractionResult
    batch: BatchOutcome | None = None
    quality: LabQualityScore | None = None

    @property
    def ok(self) -> bool:
        return self.extraction.ok and (self.batch is None or not self.batch.throttled)


class ContextMergeService:
    """Extract, merge and score producer runs against one set of repositories."""

    def __init__(
        self,
        fields: FieldRepository,
        scores: QualityScoreRepository,
        *,
        config: EngineConfig | None = None,
        priorities: SourcePriority | None = None,
        cooldowns: CooldownStore | None = None,
        extractor: CandidateExtractor | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.fields = fields
        self.config = config or get_engine_config()
        self.priorities = priorities or SourcePriority()
        self.throttle = CooldownThrottle(cooldowns, clock=clock)
        self.extractor = extractor or CandidateExtractor(clock=clock)
        self.history = QualityScoreHistory(
            scores, regression_threshold=self.config.regression_threshold, clock=clock
        )
        self._clock = clock

    def store(self, company_id: str) -> FieldStore:
        return FieldStore(
            company_id,
            self.fields,
            throttle=self.throttle,
            priorities=self.priorities,
            config=self.config,
            clock=self._clock,
        )

    def ingest_run(
        self,
        lab_key: str,
        raw: object,
        *,
        company_id: str,
        run_id: str,
        timestamp: datetime | None = None,
        cooldown_seconds: float | None = None,
    ) -> RunIngestResult:
        """Turn one stored producer run into field proposals and a quality score."""

        extraction = self.extractor.extract(
            lab_key, raw, run_id=run_id, company_id=company_id, timestamp=timestamp
        )
        if not extraction.ok:
            log.warning(
                "Skipping %s run %s for %s: %s",
                lab_key,
                run_id,
                company_id,
                extraction.failure_reason,
            )
            return RunIngestResult(company_id=company_id, run_id=run_id, extraction=extraction)

        batch = None
        if extraction.candidates:
            batch = self.store(company_id).propose_batch(
                extraction.candidates, cooldown_seconds=cooldown_seconds
            )

        quality = None
        if extraction.quality_input is not None:
            quality = self.history.record(extraction.quality_input)

        log.info(
            f"Ingested {lab_key} run {run_id} for {company_id}: "
            f"candidates={len(extraction.candidates)}, "
            f"accepted={batch.count(OutcomeKind.ACCEPTED) if batch else 0}, "
            f"throttled={bool(batch and batch.throttled)}, "
            f"score={quality.score if quality else None}"
        )
        return RunIngestResult(
            company_id=company_id,
            run_id=run_id,
            extraction=extraction,
            batch=batch,
            quality=quality,
        )


def build_in_memory_service(
    *,
    config: EngineConfig | None = None,
    clock: Clock = utc_now,
) -> ContextMergeService:
    return ContextMergeService(
        InMemoryFieldRepository(),
        InMemoryQualityScoreRepository(),
        config=config,
        clock=clock,
    )


def build_sqlalchemy_service(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    config: EngineConfig | None = None,
    clock: Clock = utc_now,
) -> ContextMergeService:
    """Start the SQLAlchemy adapter if needed and build a service on top of it."""

    if not sql_adapter.is_started():
        sql_adapter.startup(engine=engine, database_uri=database_uri)
    return ContextMergeService(
        sql_adapter.field_repository(),
        sql_adapter.quality_score_repository(),
        config=config,
        clock=clock,
    )
