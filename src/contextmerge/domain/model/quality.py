"""Inputs and results of lab-output quality scoring.

Scores are immutable snapshots: a new run produces a new ``LabQualityScore``; older
ones are never rewritten.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime  # noqa: TC003

from contextmerge.domain.model.enums import (  # noqa: TC001
    MetricId,
    QualityBand,
    WarningSeverity,
    WarningType,
)


@dataclass(frozen=True, slots=True, kw_only=True)
class QualityFinding:
    id: str
    text: str
    page_url: str | None = None
    selector: str | None = None
    quoted_text: str | None = None
    specific_reference: str | None = None
    canonical_hash: str | None = None
    category: str | None = None

    @property
    def is_anchored(self) -> bool:
        return bool(self.page_url or self.selector or self.quoted_text)


@dataclass(frozen=True, slots=True, kw_only=True)
class QualityRecommendation:
    id: str
    text: str
    linked_finding_id: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class PersonaJourney:
    persona: str
    goal: str | None = None
    has_clear_goal: bool = False
    has_explicit_failure_point: bool = False
    failure_point_page: str | None = None
    failure_reason: str | None = None
    succeeded: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class LabQualityInput:
    """Structural view of one producer run, as consumed by the quality scorer."""

    lab_key: str
    run_id: str
    company_id: str
    findings: tuple[QualityFinding, ...] = ()
    recommendations: tuple[QualityRecommendation, ...] = ()
    persona_journeys: tuple[PersonaJourney, ...] | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class MetricDetails:
    numerator: int
    denominator: int
    context: str
    issues: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class MetricResult:
    metric_id: MetricId
    name: str
    score: int
    passed: bool
    threshold: int
    details: MetricDetails


@dataclass(frozen=True, slots=True, kw_only=True)
class QualityWarning:
    type: WarningType
    message: str
    severity: WarningSeverity
    metric_id: MetricId


@dataclass(frozen=True, slots=True, kw_only=True)
class RegressionInfo:
    is_regression: bool
    point_difference: int
    previous_score: int
    previous_run_id: str
    previous_run_at: datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class LabQualityScore:
    id: str
    lab_key: str
    run_id: str
    company_id: str
    computed_at: datetime
    score: int
    quality_band: QualityBand
    metrics: dict[MetricId, MetricResult]
    weights: dict[MetricId, int]
    warnings: tuple[QualityWarning, ...] = ()
    regression: RegressionInfo | None = None

    def metric(self, metric_id: MetricId) -> MetricResult | None:
        return self.metrics.get(metric_id)


@dataclass(frozen=True, slots=True, kw_only=True)
class QualityHistoryReport:
    """Dashboard view of one producer's scores for a company, oldest first."""

    company_id: str
    lab_key: str
    history: tuple[LabQualityScore, ...] = ()
    regressions: tuple[LabQualityScore, ...] = ()

    @property
    def latest(self) -> LabQualityScore | None:
        return self.history[-1] if self.history else None
