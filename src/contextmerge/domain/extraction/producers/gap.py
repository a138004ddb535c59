"""GAP plan output (the full growth acceleration plan)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, ClassVar

from pydantic import BeforeValidator, Field

from contextmerge.domain.extraction.producers.base import (
    CandidateBuilder,
    FindingCounter,
    ProducerModel,
    ProducerOutput,
    first_text,
    fingerprint,
    mappings_only,
    scalar_id,
    strings_and_mappings,
)
from contextmerge.domain.model import LabQualityInput, QualityFinding, QualityRecommendation

if TYPE_CHECKING:
    from contextmerge.domain.model import JSONValue


class GapOffer(ProducerModel):
    name: str | None = None
    description: str | None = None


class GapCompetitor(ProducerModel):
    name: str | None = None
    positioning: str | None = None
    analysis: str | None = None
    url: str | None = None

    @property
    def summary(self) -> str:
        return first_text(self.positioning, self.analysis)


class GapStructured(ProducerModel):
    primary_offers: Annotated[list[GapOffer], BeforeValidator(mappings_only)] = Field(
        default_factory=list[GapOffer]
    )
    competitors: Annotated[list[GapCompetitor], BeforeValidator(mappings_only)] = Field(
        default_factory=list[GapCompetitor]
    )
    audience_summary: str | None = None


class GapInitiative(ProducerModel):
    name: str | None = None
    description: str | None = None
    related_finding_id: int | str | None = None


class GapRecommendation(ProducerModel):
    text: str | None = None
    description: str | None = None
    finding_id: int | str | None = None


class GapPlanOutput(ProducerOutput):
    LAB_KEY: ClassVar[str] = "gapPlan"
    SOURCE: ClassVar[str] = "gap_full"
    SIGNATURE_FIELDS: ClassVar[tuple[str, ...]] = ("gapStructured", "initiatives")

    gap_structured: GapStructured | None = None
    initiatives: Annotated[list[GapInitiative], BeforeValidator(mappings_only)] = Field(
        default_factory=list[GapInitiative]
    )
    recommendations: Annotated[
        list[str | GapRecommendation], BeforeValidator(strings_and_mappings)
    ] = Field(default_factory=list[str | GapRecommendation])

    def to_candidates(self, builder: CandidateBuilder) -> None:
        structured = self.gap_structured
        if structured is None:
            return

        offers: list[JSONValue] = [
            f"{offer.name}: {offer.description}" if offer.description else offer.name
            for offer in structured.primary_offers
            if offer.name
        ]
        builder.add(
            "productOffer.primaryProducts",
            offers,
            0.8,
            raw_path="gapStructured.primaryOffers",
            snippet="; ".join(offer.name or "" for offer in structured.primary_offers)[:200],
        )

        if structured.audience_summary:
            builder.add(
                "audience.primaryAudience",
                structured.audience_summary,
                0.75,
                raw_path="gapStructured.audienceSummary",
                snippet=structured.audience_summary[:200],
            )

        competitors: list[JSONValue] = []
        for competitor in structured.competitors:
            if not competitor.name:
                continue
            entry: dict[str, JSONValue] = {"name": competitor.name, "type": "direct"}
            if competitor.url:
                entry["domain"] = competitor.url
            if competitor.summary:
                entry["summary"] = competitor.summary
            competitors.append(entry)
        builder.add(
            "competitive.primaryCompetitors",
            competitors,
            0.6,
            raw_path="gapStructured.competitors",
            snippet="; ".join(c.name for c in structured.competitors if c.name)[:200],
        )

    def to_quality_input(self, *, run_id: str, company_id: str) -> LabQualityInput:
        ids = FindingCounter()
        findings: list[QualityFinding] = []
        recommendations: list[QualityRecommendation] = []
        structured = self.gap_structured

        if structured is not None:
            for offer in structured.primary_offers:
                findings.append(
                    QualityFinding(
                        id=ids.next_finding(),
                        text=f"{offer.name or ''}: {offer.description or ''}",
                        specific_reference="Primary Offer",
                        canonical_hash=fingerprint("offer", offer.name or ""),
                    )
                )
            for competitor in structured.competitors:
                findings.append(
                    QualityFinding(
                        id=ids.next_finding(),
                        text=f"{competitor.name or ''}: {competitor.summary}",
                        page_url=competitor.url,
                        specific_reference=competitor.name,
                        canonical_hash=fingerprint("comp", competitor.name or ""),
                    )
                )
            if structured.audience_summary:
                findings.append(
                    QualityFinding(
                        id=ids.next_finding(),
                        text=structured.audience_summary,
                        specific_reference="Audience",
                        canonical_hash=fingerprint("audience", structured.audience_summary),
                    )
                )

        for initiative in self.initiatives:
            recommendations.append(
                QualityRecommendation(
                    id=ids.next_recommendation(),
                    text=f"{initiative.name or ''}: {initiative.description or ''}",
                    linked_finding_id=scalar_id(initiative.related_finding_id),
                )
            )

        for recommendation in self.recommendations:
            if isinstance(recommendation, str):
                recommendations.append(
                    QualityRecommendation(id=ids.next_recommendation(), text=recommendation)
                )
                continue
            recommendations.append(
                QualityRecommendation(
                    id=ids.next_recommendation(),
                    text=first_text(recommendation.text, recommendation.description),
                    linked_finding_id=scalar_id(recommendation.finding_id),
                )
            )

        return LabQualityInput(
            lab_key=self.LAB_KEY,
            run_id=run_id,
            company_id=company_id,
            findings=tuple(findings),
            recommendations=tuple(recommendations),
        )
