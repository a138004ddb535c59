"""Audience lab output: segments, buying signals and issues."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, ClassVar, Final

from pydantic import BeforeValidator, Field

from contextmerge.domain.extraction.producers.base import (
    CandidateBuilder,
    FindingCounter,
    ProducerModel,
    ProducerOutput,
    StringList,
    first_text,
    fingerprint,
    mappings_only,
    scalar_id,
    strings_and_mappings,
)
from contextmerge.domain.model import LabQualityInput, QualityFinding, QualityRecommendation

if TYPE_CHECKING:
    from collections.abc import Sequence

    from contextmerge.domain.model import JSONValue

SIGNAL_REFERENCES: Final[dict[str, str]] = {
    "diy_signals": "DIY Signal",
    "done_for_me_signals": "Done-for-Me Signal",
    "local_signals": "Local Signal",
    "research_signals": "Research Signal",
    "trust_signals": "Trust Signal",
    "proximity_signals": "Proximity Signal",
}

# a string recommendation links to the first finding sharing this many long words
_LINK_MIN_SHARED_WORDS = 3
_LINK_MIN_WORD_LENGTH = 4


class SegmentEvidence(ProducerModel):
    snippet: str | None = None
    source_url: str | None = None


class AudienceSegment(ProducerModel):
    key: str | None = None
    label: str | None = None
    description: str | None = None
    why_this_segment_exists: str | None = None
    evidence: Annotated[list[SegmentEvidence], BeforeValidator(mappings_only)] = Field(
        default_factory=list[SegmentEvidence]
    )

    @property
    def display_label(self) -> str:
        return first_text(self.label, self.key) or "Unknown"


class AudienceSignals(ProducerModel):
    diy_signals: StringList = Field(default_factory=list[str])
    done_for_me_signals: StringList = Field(default_factory=list[str])
    local_signals: StringList = Field(default_factory=list[str])
    research_signals: StringList = Field(default_factory=list[str])
    trust_signals: StringList = Field(default_factory=list[str])
    proximity_signals: StringList = Field(default_factory=list[str])


class AudienceRecommendation(ProducerModel):
    text: str | None = None
    description: str | None = None
    issue_id: int | str | None = None


class AudienceLabOutput(ProducerOutput):
    LAB_KEY: ClassVar[str] = "audienceLab"
    SOURCE: ClassVar[str] = "audience_lab"
    SIGNATURE_FIELDS: ClassVar[tuple[str, ...]] = ("audienceSegments", "signals")

    issues: StringList = Field(default_factory=list[str])
    audience_segments: Annotated[list[AudienceSegment], BeforeValidator(mappings_only)] = Field(
        default_factory=list[AudienceSegment]
    )
    signals: AudienceSignals | None = None
    recommendations: Annotated[
        list[str | AudienceRecommendation], BeforeValidator(strings_and_mappings)
    ] = Field(default_factory=list[str | AudienceRecommendation])

    def to_candidates(self, builder: CandidateBuilder) -> None:
        segments = self.audience_segments
        if not segments:
            return

        lead = segments[0]
        primary = lead.display_label
        if lead.description:
            primary = f"{primary}: {lead.description}"
        builder.add(
            "audience.primaryAudience",
            primary,
            0.8,
            raw_path="audienceSegments[0]",
            snippet=(lead.why_this_segment_exists or primary)[:200],
            url=lead.evidence[0].source_url if lead.evidence else None,
        )

        labels: list[JSONValue] = [segment.display_label for segment in segments]
        builder.add(
            "audience.coreSegments",
            labels,
            0.75,
            raw_path="audienceSegments[].label",
            snippet=", ".join(segment.display_label for segment in segments)[:200],
        )

    def to_quality_input(self, *, run_id: str, company_id: str) -> LabQualityInput:
        ids = FindingCounter()
        findings: list[QualityFinding] = []
        recommendations: list[QualityRecommendation] = []

        for issue in self.issues:
            findings.append(
                QualityFinding(
                    id=ids.next_finding(),
                    text=issue,
                    specific_reference="Audience Issue",
                    canonical_hash=fingerprint("audience-issue", issue),
                )
            )

        for segment in self.audience_segments:
            label = segment.display_label
            why = f" ({segment.why_this_segment_exists})" if segment.why_this_segment_exists else ""
            findings.append(
                QualityFinding(
                    id=ids.next_finding(),
                    text=f"{label}: {segment.description or ''}{why}",
                    specific_reference=label,
                    canonical_hash=fingerprint("segment", label),
                )
            )
            for evidence in segment.evidence:
                snippet = evidence.snippet or ""
                findings.append(
                    QualityFinding(
                        id=ids.next_finding(),
                        text=snippet,
                        page_url=evidence.source_url,
                        specific_reference=label,
                        quoted_text=snippet,
                        canonical_hash=fingerprint(label, snippet),
                    )
                )

        if self.signals is not None:
            for attribute, reference in SIGNAL_REFERENCES.items():
                for signal in getattr(self.signals, attribute):
                    findings.append(
                        QualityFinding(
                            id=ids.next_finding(),
                            text=signal,
                            specific_reference=reference,
                            canonical_hash=fingerprint(reference, signal),
                        )
                    )

        for recommendation in self.recommendations:
            if isinstance(recommendation, str):
                recommendations.append(
                    QualityRecommendation(
                        id=ids.next_recommendation(),
                        text=recommendation,
                        linked_finding_id=match_finding(findings, recommendation),
                    )
                )
                continue
            recommendations.append(
                QualityRecommendation(
                    id=ids.next_recommendation(),
                    text=first_text(recommendation.text, recommendation.description),
                    linked_finding_id=scalar_id(recommendation.issue_id),
                )
            )

        return LabQualityInput(
            lab_key=self.LAB_KEY,
            run_id=run_id,
            company_id=company_id,
            findings=tuple(findings),
            recommendations=tuple(recommendations),
        )


def _long_words(text: str) -> list[str]:
    return [word for word in text.casefold().split() if len(word) >= _LINK_MIN_WORD_LENGTH]


def match_finding(findings: Sequence[QualityFinding], text: str) -> str | None:
    """Id of the first finding sharing enough significant words with ``text``."""

    wanted = set(_long_words(text))
    for finding in findings:
        shared = sum(1 for word in _long_words(finding.text) if word in wanted)
        if shared >= _LINK_MIN_SHARED_WORDS:
            return finding.id
    return None
