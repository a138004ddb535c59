"""The individual quality metrics. Each returns a 0-100 ``MetricResult``.

All scores use half-up rounding so results match across runs and consumers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from contextmerge.common.numbers import round_half_up
from contextmerge.domain.model import MetricDetails, MetricId, MetricResult
from contextmerge.domain.quality.signals import (
    GENERIC_PHRASES,
    canonical_hash,
    contains_generic_phrase,
    excerpt,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from contextmerge.domain.model import PersonaJourney, QualityFinding, QualityRecommendation

METRIC_THRESHOLDS: Final[dict[MetricId, int]] = {
    MetricId.EVIDENCE_ANCHORING: 80,
    MetricId.SPECIFICITY: 70,
    MetricId.DEDUPLICATED_SIGNAL_DENSITY: 70,
    MetricId.PERSONA_DIAGNOSTIC_QUALITY: 75,
    MetricId.RECOMMENDATION_TRACEABILITY: 70,
}

METRIC_NAMES: Final[dict[MetricId, str]] = {
    MetricId.EVIDENCE_ANCHORING: "Evidence Anchoring",
    MetricId.SPECIFICITY: "Specificity",
    MetricId.DEDUPLICATED_SIGNAL_DENSITY: "Signal Density",
    MetricId.PERSONA_DIAGNOSTIC_QUALITY: "Persona Diagnostics",
    MetricId.RECOMMENDATION_TRACEABILITY: "Recommendation Traceability",
}

_MAX_ISSUES = 3


def _result(
    metric_id: MetricId,
    *,
    numerator: int,
    denominator: int,
    context: str,
    issues: Sequence[str] = (),
) -> MetricResult:
    threshold = METRIC_THRESHOLDS[metric_id]
    score = round_half_up(numerator / denominator * 100) if denominator else 100
    return MetricResult(
        metric_id=metric_id,
        name=METRIC_NAMES[metric_id],
        score=score,
        passed=score >= threshold,
        threshold=threshold,
        details=MetricDetails(
            numerator=numerator,
            denominator=denominator,
            context=context,
            issues=tuple(issues),
        ),
    )


def compute_evidence_anchoring(findings: Sequence[QualityFinding]) -> MetricResult:
    if not findings:
        return _result(
            MetricId.EVIDENCE_ANCHORING,
            numerator=0,
            denominator=0,
            context="No findings to evaluate",
        )

    anchored = 0
    issues: list[str] = []
    for finding in findings:
        if finding.is_anchored:
            anchored += 1
        elif len(issues) < _MAX_ISSUES:
            issues.append(excerpt(finding.text))

    return _result(
        MetricId.EVIDENCE_ANCHORING,
        numerator=anchored,
        denominator=len(findings),
        context=f"{anchored} of {len(findings)} findings have concrete evidence",
        issues=issues,
    )


def compute_specificity(
    findings: Sequence[QualityFinding],
    *,
    generic_phrases: Iterable[str] = GENERIC_PHRASES,
) -> MetricResult:
    """A finding is specific only with a concrete reference and no boilerplate phrase."""

    if not findings:
        return _result(
            MetricId.SPECIFICITY,
            numerator=0,
            denominator=0,
            context="No findings to evaluate",
        )

    phrases = tuple(generic_phrases)
    specific = 0
    issues: list[str] = []
    for finding in findings:
        has_reference = bool(finding.specific_reference or finding.page_url)
        is_generic = contains_generic_phrase(finding.text, phrases)
        if has_reference and not is_generic:
            specific += 1
        elif is_generic and len(issues) < _MAX_ISSUES:
            issues.append(excerpt(finding.text))

    return _result(
        MetricId.SPECIFICITY,
        numerator=specific,
        denominator=len(findings),
        context=f"{specific} of {len(findings)} findings are specific and non-generic",
        issues=issues,
    )


def compute_deduplicated_signal_density(findings: Sequence[QualityFinding]) -> MetricResult:
    if not findings:
        return _result(
            MetricId.DEDUPLICATED_SIGNAL_DENSITY,
            numerator=0,
            denominator=0,
            context="No findings to evaluate",
        )

    hashes = {finding.canonical_hash or canonical_hash(finding.text) for finding in findings}
    unique = len(hashes)
    duplicates = len(findings) - unique
    context = (
        f"{unique} unique findings, {duplicates} duplicates removed"
        if duplicates
        else f"{unique} unique findings, no duplicates"
    )
    return _result(
        MetricId.DEDUPLICATED_SIGNAL_DENSITY,
        numerator=unique,
        denominator=len(findings),
        context=context,
    )


def compute_persona_diagnostic_quality(
    journeys: Sequence[PersonaJourney] | None,
) -> MetricResult | None:
    """Score persona journeys; ``None`` when the producer emitted none."""

    if not journeys:
        return None

    quality = 0
    issues: list[str] = []
    for journey in journeys:
        clear_goal = journey.has_clear_goal and bool(journey.goal)
        failure_point = (
            journey.has_explicit_failure_point
            and bool(journey.failure_point_page)
            and bool(journey.failure_reason)
        )
        if clear_goal and failure_point:
            quality += 1
        elif len(issues) < _MAX_ISSUES:
            missing = "clear goal" if not clear_goal else "explicit failure point"
            issues.append(f'"{journey.persona}" lacks {missing}')

    return _result(
        MetricId.PERSONA_DIAGNOSTIC_QUALITY,
        numerator=quality,
        denominator=len(journeys),
        context=(
            f"{quality} of {len(journeys)} persona journeys have clear goals and failure points"
        ),
        issues=issues,
    )


def compute_recommendation_traceability(
    findings: Sequence[QualityFinding],
    recommendations: Sequence[QualityRecommendation],
) -> MetricResult:
    if not recommendations:
        return _result(
            MetricId.RECOMMENDATION_TRACEABILITY,
            numerator=0,
            denominator=0,
            context="No recommendations to evaluate",
        )

    finding_ids = {finding.id for finding in findings}
    traceable = 0
    issues: list[str] = []
    for recommendation in recommendations:
        linked = recommendation.linked_finding_id
        if linked and linked in finding_ids:
            traceable += 1
        elif len(issues) < _MAX_ISSUES:
            issues.append(excerpt(recommendation.text))

    orphaned = len(recommendations) - traceable
    context = (
        f"{traceable} of {len(recommendations)} recommendations linked to findings, "
        f"{orphaned} orphaned"
        if orphaned
        else f"All {len(recommendations)} recommendations linked to findings"
    )
    return _result(
        MetricId.RECOMMENDATION_TRACEABILITY,
        numerator=traceable,
        denominator=len(recommendations),
        context=context,
        issues=issues,
    )
