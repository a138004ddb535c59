"""Composite lab quality score: weights, bands, warnings and regression detection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from contextmerge.common.clock import utc_now
from contextmerge.common.numbers import round_half_up
from contextmerge.config import REGRESSION_THRESHOLD_POINTS
from contextmerge.domain.model import (
    LabQualityScore,
    MetricId,
    QualityBand,
    QualityWarning,
    RegressionInfo,
    WarningSeverity,
    WarningType,
)
from contextmerge.domain.quality.metrics import (
    compute_deduplicated_signal_density,
    compute_evidence_anchoring,
    compute_persona_diagnostic_quality,
    compute_recommendation_traceability,
    compute_specificity,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from contextmerge.common.clock import Clock
    from contextmerge.domain.model import LabQualityInput, MetricResult

log = logging.getLogger(__name__)

PERSONA_METRIC_WEIGHTS: Final[dict[MetricId, int]] = {
    MetricId.EVIDENCE_ANCHORING: 25,
    MetricId.SPECIFICITY: 20,
    MetricId.DEDUPLICATED_SIGNAL_DENSITY: 15,
    MetricId.PERSONA_DIAGNOSTIC_QUALITY: 15,
    MetricId.RECOMMENDATION_TRACEABILITY: 25,
}

DEFAULT_METRIC_WEIGHTS: Final[dict[MetricId, int]] = {
    MetricId.EVIDENCE_ANCHORING: 30,
    MetricId.SPECIFICITY: 25,
    MetricId.DEDUPLICATED_SIGNAL_DENSITY: 20,
    MetricId.RECOMMENDATION_TRACEABILITY: 25,
}


def quality_band(score: int) -> QualityBand:
    if score >= 85:
        return QualityBand.EXCELLENT
    if score >= 70:
        return QualityBand.GOOD
    if score >= 50:
        return QualityBand.WEAK
    return QualityBand.POOR


def select_weights(metrics: Mapping[MetricId, MetricResult]) -> dict[MetricId, int]:
    if MetricId.PERSONA_DIAGNOSTIC_QUALITY in metrics:
        return dict(PERSONA_METRIC_WEIGHTS)
    return dict(DEFAULT_METRIC_WEIGHTS)


def composite_score(
    metrics: Mapping[MetricId, MetricResult],
    weights: Mapping[MetricId, int],
) -> int:
    weighted = 0
    total = 0
    for metric_id, weight in weights.items():
        result = metrics.get(metric_id)
        if result is None:
            continue
        weighted += result.score * weight
        total += weight
    return round_half_up(weighted / total) if total else 0


def build_warnings(metrics: Mapping[MetricId, MetricResult]) -> tuple[QualityWarning, ...]:
    warnings: list[QualityWarning] = []

    def severity(score: int) -> WarningSeverity:
        return WarningSeverity.ERROR if score < 50 else WarningSeverity.WARNING

    evidence = metrics[MetricId.EVIDENCE_ANCHORING]
    if not evidence.passed:
        warnings.append(
            QualityWarning(
                type=WarningType.LOW_EVIDENCE,
                message=(
                    f"Only {evidence.score}% of findings have concrete evidence "
                    f"(target: {evidence.threshold}%)"
                ),
                severity=severity(evidence.score),
                metric_id=MetricId.EVIDENCE_ANCHORING,
            )
        )

    specificity = metrics[MetricId.SPECIFICITY]
    if not specificity.passed:
        warnings.append(
            QualityWarning(
                type=WarningType.GENERIC_FINDINGS,
                message=f"High % of generic findings ({100 - specificity.score}% non-specific)",
                severity=severity(specificity.score),
                metric_id=MetricId.SPECIFICITY,
            )
        )

    density = metrics[MetricId.DEDUPLICATED_SIGNAL_DENSITY]
    if not density.passed:
        duplicate_rate = 100 - density.score
        warnings.append(
            QualityWarning(
                type=WarningType.HIGH_DUPLICATION,
                message=f"{duplicate_rate}% of findings are duplicates",
                severity=severity(density.score),
                metric_id=MetricId.DEDUPLICATED_SIGNAL_DENSITY,
            )
        )

    persona = metrics.get(MetricId.PERSONA_DIAGNOSTIC_QUALITY)
    if persona is not None and not persona.passed:
        warnings.append(
            QualityWarning(
                type=WarningType.WEAK_PERSONAS,
                message=f"Low persona failure clarity ({persona.score}%)",
                severity=severity(persona.score),
                metric_id=MetricId.PERSONA_DIAGNOSTIC_QUALITY,
            )
        )

    traceability = metrics[MetricId.RECOMMENDATION_TRACEABILITY]
    if not traceability.passed:
        orphan_rate = 100 - traceability.score
        warnings.append(
            QualityWarning(
                type=WarningType.ORPHAN_RECOMMENDATIONS,
                message=f"{orphan_rate}% of recommendations not linked to findings",
                severity=severity(traceability.score),
                metric_id=MetricId.RECOMMENDATION_TRACEABILITY,
            )
        )

    return tuple(warnings)


def detect_regression(
    score: int,
    previous: LabQualityScore | None,
    *,
    threshold: int = REGRESSION_THRESHOLD_POINTS,
) -> RegressionInfo | None:
    """Compare against the prior run; only drops of ``threshold`` points or more flag."""

    if previous is None:
        return None
    difference = score - previous.score
    return RegressionInfo(
        is_regression=difference <= -threshold,
        point_difference=difference,
        previous_score=previous.score,
        previous_run_id=previous.run_id,
        previous_run_at=previous.computed_at,
    )


def score_id(company_id: str, lab_key: str, run_id: str) -> str:
    return f"lqs-{company_id}-{lab_key}-{run_id}"


def compute_lab_quality_score(
    data: LabQualityInput,
    *,
    previous: LabQualityScore | None = None,
    regression_threshold: int = REGRESSION_THRESHOLD_POINTS,
    clock: Clock = utc_now,
) -> LabQualityScore | None:
    """Score one producer run, or return ``None`` when it produced no signal at all."""

    if not data.findings and not data.recommendations:
        log.warning(
            "No findings or recommendations for %s run %s; cannot compute quality score",
            data.lab_key,
            data.run_id,
        )
        return None

    metrics: dict[MetricId, MetricResult] = {
        MetricId.EVIDENCE_ANCHORING: compute_evidence_anchoring(data.findings),
        MetricId.SPECIFICITY: compute_specificity(data.findings),
        MetricId.DEDUPLICATED_SIGNAL_DENSITY: compute_deduplicated_signal_density(
            data.findings
        ),
        MetricId.RECOMMENDATION_TRACEABILITY: compute_recommendation_traceability(
            data.findings, data.recommendations
        ),
    }
    persona = compute_persona_diagnostic_quality(data.persona_journeys)
    if persona is not None:
        metrics[MetricId.PERSONA_DIAGNOSTIC_QUALITY] = persona

    weights = select_weights(metrics)
    score = composite_score(metrics, weights)
    return LabQualityScore(
        id=score_id(data.company_id, data.lab_key, data.run_id),
        lab_key=data.lab_key,
        run_id=data.run_id,
        company_id=data.company_id,
        computed_at=clock(),
        score=score,
        quality_band=quality_band(score),
        metrics=metrics,
        weights=weights,
        warnings=build_warnings(metrics),
        regression=detect_regression(score, previous, threshold=regression_threshold),
    )
