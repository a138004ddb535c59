"""Competition lab output, in both the scored (v4) and the legacy (v3) shape.

Both shapes propose into the ``competitive`` domain:

- ``primaryCompetitors``: decision-grade direct competitors only
- ``marketAlternatives``: partial competitors, platforms and other substitutes
- ``differentiationAxes``, ``positioningMapSummary``, ``threatSummary``
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import TYPE_CHECKING, Annotated, Any, ClassVar

from pydantic import BeforeValidator, Field

from contextmerge.domain.extraction.producers.base import (
    CandidateBuilder,
    FindingCounter,
    ProducerModel,
    ProducerOutput,
    SnakeCaseModel,
    StringList,
    first_text,
    fingerprint,
    mappings_only,
    scalar_id,
    strings_and_mappings,
)
from contextmerge.domain.model import LabQualityInput, QualityFinding, QualityRecommendation

if TYPE_CHECKING:
    from contextmerge.domain.model import JSONValue

PRIMARY_CAP = 5
ALTERNATIVES_CAP = 5
MIN_THREAT_SCORE = 25
MIN_RELEVANCE_SCORE = 20

_EXCLUDED_FROM_PRIMARY = frozenset({"fractional", "platform", "internal", "irrelevant"})

# keyword -> axis, applied to competitor write-ups
_AXIS_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("price", "cost"), "pricing"),
    (("easy", "simple"), "ease-of-use"),
    (("integrat",), "integrations"),
    (("support", "service"), "support"),
    (("feature",), "features"),
    (("enterprise",), "enterprise-focus"),
    (("small", "smb"), "smb-focus"),
)

_SIGNAL_AXES: dict[str, str] = {
    "serviceOverlap": "service-model",
    "productOverlap": "product-overlap",
    "priceOverlap": "pricing",
    "geoOverlap": "geography",
}


class CompetitionRecommendation(ProducerModel):
    text: str | None = None
    recommendation: str | None = None
    description: str | None = None
    insight_id: int | str | None = None


RecommendationEntry = str | CompetitionRecommendation


def _recommendations(
    entries: list[RecommendationEntry], ids: FindingCounter
) -> list[QualityRecommendation]:
    recommendations: list[QualityRecommendation] = []
    for entry in entries:
        if isinstance(entry, str):
            recommendations.append(QualityRecommendation(id=ids.next_recommendation(), text=entry))
            continue
        recommendations.append(
            QualityRecommendation(
                id=ids.next_recommendation(),
                text=first_text(entry.text, entry.recommendation, entry.description),
                linked_finding_id=scalar_id(entry.insight_id),
            )
        )
    return recommendations


def _competitor_entry(
    name: str | None,
    *,
    domain: str | None,
    kind: str,
    threat: float | None,
    summary: str | None,
) -> dict[str, JSONValue]:
    entry: dict[str, JSONValue] = {"name": name or "Unknown", "type": kind}
    if domain:
        entry["domain"] = domain
    if threat is not None:
        entry["threatScore"] = threat
    if summary:
        entry["summary"] = summary
    return entry


def _snippet(value: JSONValue) -> str:
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
    return text[:200]


# -- scored (v4) -------------------------------------------------------------


class ScoredCompetitor(ProducerModel):
    name: str | None = None
    domain: str | None = None
    classification: str | None = None
    overlap_score: float | None = None
    why_this_matters: str | None = None
    reasons: StringList = Field(default_factory=list[str])
    signals_used: dict[str, Any] | None = None

    def finding_text(self) -> str:
        overlap = _format_number(self.overlap_score)
        head = f"{self.name} ({self.classification}, {overlap}% overlap)"
        return " - ".join(
            part for part in (head, self.why_this_matters or "", "; ".join(self.reasons)) if part
        )


class ScoredBuckets(ProducerModel):
    primary: Annotated[list[ScoredCompetitor], BeforeValidator(mappings_only)] = Field(
        default_factory=list[ScoredCompetitor]
    )
    contextual: Annotated[list[ScoredCompetitor], BeforeValidator(mappings_only)] = Field(
        default_factory=list[ScoredCompetitor]
    )
    alternatives: Annotated[list[ScoredCompetitor], BeforeValidator(mappings_only)] = Field(
        default_factory=list[ScoredCompetitor]
    )

    def all_competitors(self) -> list[ScoredCompetitor]:
        return [*self.primary, *self.contextual, *self.alternatives]


class CompetitionSummary(SnakeCaseModel):
    competitive_positioning: str | None = None
    key_differentiation_axes: StringList = Field(default_factory=list[str])
    competitive_risks: StringList = Field(default_factory=list[str])


class ModalityInference(ProducerModel):
    modality: str | None = None
    confidence: float | None = None
    explanation: str | None = None


class CompetitionV4Output(ProducerOutput):
    LAB_KEY: ClassVar[str] = "competitionLab"
    SOURCE: ClassVar[str] = "competition_v4"
    SIGNATURE_FIELDS: ClassVar[tuple[str, ...]] = ("scoredCompetitors",)

    version: int
    scored_competitors: ScoredBuckets
    summary: CompetitionSummary | None = None
    modality_inference: ModalityInference | None = None
    recommendations: Annotated[
        list[RecommendationEntry], BeforeValidator(strings_and_mappings)
    ] = Field(default_factory=list[RecommendationEntry])

    @classmethod
    def matches(cls, payload: Mapping[str, Any]) -> bool:
        return payload.get("version") == 4 and super().matches(payload)

    def to_candidates(self, builder: CandidateBuilder) -> None:
        scored = self.scored_competitors
        primary: list[JSONValue] = [
            _competitor_entry(
                c.name,
                domain=c.domain,
                kind="direct",
                threat=c.overlap_score,
                summary=c.why_this_matters,
            )
            for c in scored.primary
        ]
        builder.add(
            "competitive.primaryCompetitors",
            primary,
            0.85,
            raw_path="scoredCompetitors.primary",
            snippet=_snippet(primary[:3]),
        )

        alternatives: list[JSONValue] = [
            _competitor_entry(
                c.name,
                domain=c.domain,
                kind=kind,
                threat=c.overlap_score,
                summary=c.why_this_matters,
            )
            for kind, bucket in (("partial", scored.contextual), ("platform", scored.alternatives))
            for c in bucket
        ]
        builder.add(
            "competitive.marketAlternatives",
            alternatives,
            0.65,
            raw_path="scoredCompetitors.contextual|alternatives",
            snippet=_snippet(alternatives[:3]),
        )

        axes = self._axes()
        builder.add(
            "competitive.differentiationAxes",
            axes,
            0.55,
            raw_path="scoredCompetitors.signalsUsed",
            snippet=_snippet(axes),
        )

        parts: list[str] = []
        if scored.primary:
            parts.append("Primary: " + ", ".join(c.name or "Unknown" for c in scored.primary[:4]))
        if scored.contextual:
            parts.append(
                "Contextual: " + ", ".join(c.name or "Unknown" for c in scored.contextual[:3])
            )
        positioning = "; ".join(parts)
        builder.add(
            "competitive.positioningMapSummary",
            positioning,
            0.7,
            raw_path="scoredCompetitors",
            snippet=_snippet(positioning),
        )

        if scored.primary:
            top = ", ".join(
                f"{c.name} ({_format_number(c.overlap_score)} overlap)" for c in scored.primary[:3]
            )
            modality = (
                self.modality_inference.modality
                if self.modality_inference and self.modality_inference.modality
                else "Unknown modality"
            )
            threat = f"{top} are the top direct threats. Modality: {modality}."
            builder.add(
                "competitive.threatSummary",
                threat,
                0.75,
                raw_path="scoredCompetitors.primary",
                snippet=_snippet(threat),
            )

    def _axes(self) -> list[JSONValue]:
        axes: dict[str, None] = {}
        if self.summary is not None:
            axes.update(dict.fromkeys(self.summary.key_differentiation_axes))
        for competitor in self.scored_competitors.all_competitors():
            for signal, axis in _SIGNAL_AXES.items():
                if competitor.signals_used and competitor.signals_used.get(signal):
                    axes[axis] = None
        return list(axes)

    def to_quality_input(self, *, run_id: str, company_id: str) -> LabQualityInput:
        ids = FindingCounter()
        findings: list[QualityFinding] = []
        recommendations: list[QualityRecommendation] = []

        for competitor in self.scored_competitors.all_competitors():
            findings.append(
                QualityFinding(
                    id=ids.next_finding(),
                    text=competitor.finding_text(),
                    page_url=competitor.domain,
                    specific_reference=competitor.name,
                    quoted_text=(
                        json.dumps(competitor.signals_used, sort_keys=True)
                        if competitor.signals_used
                        else None
                    ),
                    canonical_hash=fingerprint(competitor.name or "", competitor.domain or ""),
                )
            )

        if self.summary is not None:
            if self.summary.competitive_positioning:
                recommendations.append(
                    QualityRecommendation(
                        id=ids.next_recommendation(),
                        text=self.summary.competitive_positioning,
                    )
                )
            for axis in self.summary.key_differentiation_axes:
                recommendations.append(
                    QualityRecommendation(
                        id=ids.next_recommendation(), text=f"Differentiation: {axis}"
                    )
                )
            for risk in self.summary.competitive_risks:
                findings.append(
                    QualityFinding(
                        id=ids.next_finding(),
                        text=f"Risk: {risk}",
                        canonical_hash=fingerprint("risk:", risk),
                    )
                )

        modality = self.modality_inference
        if modality is not None and modality.modality:
            findings.append(
                QualityFinding(
                    id=ids.next_finding(),
                    text=(
                        f"Competitive Modality: {modality.modality} "
                        f"({_format_number(modality.confidence)}% confidence)"
                    ),
                    quoted_text=modality.explanation,
                    canonical_hash=fingerprint("modality:", modality.modality),
                )
            )

        recommendations.extend(_recommendations(self.recommendations, ids))
        return LabQualityInput(
            lab_key=self.LAB_KEY,
            run_id=run_id,
            company_id=company_id,
            findings=tuple(findings),
            recommendations=tuple(recommendations),
        )


# -- legacy (v3) -------------------------------------------------------------


class CompetitorAnalysis(ProducerModel):
    why_competitor: str | None = None


class CompetitorClassification(ProducerModel):
    type: str | None = None
    confidence: float | None = None


class CompetitorScores(ProducerModel):
    threat_score: float | None = None
    relevance_score: float | None = None


class CompetitorProfile(ProducerModel):
    name: str | None = None
    domain: str | None = None
    website: str | None = None
    summary: str | None = None
    analysis: str | CompetitorAnalysis | None = None
    classification: CompetitorClassification | None = None
    scores: CompetitorScores | None = None

    @property
    def kind(self) -> str:
        if self.classification is not None and self.classification.type:
            return self.classification.type
        return "unknown"

    @property
    def threat(self) -> float:
        return (self.scores.threat_score or 0) if self.scores else 0

    @property
    def relevance(self) -> float:
        return (self.scores.relevance_score or 0) if self.scores else 0

    @property
    def classification_confidence(self) -> float:
        if self.classification is None:
            return 0
        return self.classification.confidence or 0

    @property
    def why(self) -> str:
        if isinstance(self.analysis, str):
            return first_text(self.analysis, self.summary)
        if self.analysis is not None:
            return first_text(self.analysis.why_competitor, self.summary)
        return self.summary or ""

    @property
    def url(self) -> str | None:
        return self.website or self.domain

    def meets_quality_bar(self) -> bool:
        return self.threat >= MIN_THREAT_SCORE or self.relevance >= MIN_RELEVANCE_SCORE


class CompetitionInsight(ProducerModel):
    text: str | None = None
    insight: str | None = None
    description: str | None = None
    competitor: str | None = None


class CompetitionLabOutput(ProducerOutput):
    LAB_KEY: ClassVar[str] = "competitionLab"
    SOURCE: ClassVar[str] = "competition_lab"
    SIGNATURE_FIELDS: ClassVar[tuple[str, ...]] = ("competitors", "insights")

    competitors: Annotated[list[CompetitorProfile], BeforeValidator(mappings_only)] = Field(
        default_factory=list[CompetitorProfile]
    )
    insights: Annotated[
        list[str | CompetitionInsight], BeforeValidator(strings_and_mappings)
    ] = Field(default_factory=list[str | CompetitionInsight])
    recommendations: Annotated[
        list[RecommendationEntry], BeforeValidator(strings_and_mappings)
    ] = Field(default_factory=list[RecommendationEntry])

    def _ranked(self, kinds: frozenset[str]) -> list[CompetitorProfile]:
        matching = [c for c in self.competitors if c.kind in kinds]
        return sorted(
            matching, key=lambda c: (-c.threat, -c.relevance, -c.classification_confidence)
        )

    def direct_set(self) -> list[CompetitorProfile]:
        """Direct competitors that clear the quality bar, strongest first."""

        ranked = self._ranked(frozenset({"direct"}))
        return [c for c in ranked if c.meets_quality_bar()][:PRIMARY_CAP]

    def to_candidates(self, builder: CandidateBuilder) -> None:
        direct = self.direct_set()
        partial = self._ranked(frozenset({"partial"}))

        primary: list[JSONValue] = [
            _competitor_entry(c.name, domain=c.url, kind=c.kind, threat=c.threat, summary=c.why)
            for c in direct
        ]
        builder.add(
            "competitive.primaryCompetitors",
            primary,
            0.85,
            raw_path="competitors[type=direct]",
            snippet=_snippet(primary[:3]),
        )

        substitutes = [
            *partial,
            *self._ranked(_EXCLUDED_FROM_PRIMARY - {"irrelevant"}),
        ]
        substitutes.sort(key=lambda c: -(c.relevance + c.threat))
        alternatives: list[JSONValue] = [
            _competitor_entry(c.name, domain=c.url, kind=c.kind, threat=c.threat, summary=c.why)
            for c in substitutes[:ALTERNATIVES_CAP]
        ]
        builder.add(
            "competitive.marketAlternatives",
            alternatives,
            0.65,
            raw_path="competitors[type!=direct]",
            snippet=_snippet(alternatives[:3]),
        )

        axes: dict[str, None] = {}
        for competitor in [*direct, *partial]:
            text = competitor.why.casefold()
            for keywords, axis in _AXIS_KEYWORDS:
                if any(keyword in text for keyword in keywords):
                    axes[axis] = None
        axis_list: list[JSONValue] = list(axes)
        builder.add(
            "competitive.differentiationAxes",
            axis_list,
            0.55,
            raw_path="competitors[].analysis",
            snippet=_snippet(axis_list),
        )

        parts: list[str] = []
        if direct:
            names = ", ".join(c.name or "Unknown" for c in direct[:3])
            parts.append(f"Direct competitors: {names}")
        if partial:
            names = ", ".join(c.name or "Unknown" for c in partial[:2])
            parts.append(f"Category neighbors: {names}")
        positioning = ". ".join(parts)
        builder.add(
            "competitive.positioningMapSummary",
            positioning,
            0.7,
            raw_path="competitors",
            snippet=_snippet(positioning),
        )

        threats = "; ".join(
            f"{c.name} (threat: {_format_number(c.threat)}%): {c.why[:80]}"
            for c in direct
            if c.threat >= MIN_THREAT_SCORE
        )
        builder.add(
            "competitive.threatSummary",
            threats,
            0.75,
            raw_path="competitors[type=direct].scores.threatScore",
            snippet=_snippet(threats),
        )

    def to_quality_input(self, *, run_id: str, company_id: str) -> LabQualityInput:
        ids = FindingCounter()
        findings: list[QualityFinding] = []

        for competitor in self.competitors:
            findings.append(
                QualityFinding(
                    id=ids.next_finding(),
                    text=f"{competitor.name or ''}: {competitor.why}",
                    page_url=competitor.website,
                    specific_reference=competitor.name,
                    canonical_hash=fingerprint(competitor.name or "", competitor.why),
                )
            )

        for insight in self.insights:
            if isinstance(insight, str):
                findings.append(
                    QualityFinding(
                        id=ids.next_finding(), text=insight, canonical_hash=fingerprint(insight)
                    )
                )
                continue
            text = first_text(insight.text, insight.insight, insight.description)
            findings.append(
                QualityFinding(
                    id=ids.next_finding(),
                    text=text,
                    specific_reference=insight.competitor,
                    canonical_hash=fingerprint(text),
                )
            )

        return LabQualityInput(
            lab_key=self.LAB_KEY,
            run_id=run_id,
            company_id=company_id,
            findings=tuple(findings),
            recommendations=tuple(_recommendations(self.recommendations, ids)),
        )


def _format_number(value: float | None) -> str:
    if value is None:
        return "?"
    return str(int(value)) if float(value).is_integer() else f"{value:g}"
