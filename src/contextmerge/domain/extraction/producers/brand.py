"""Brand lab output."""

from __future__ import annotations

from typing import Annotated, ClassVar

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


class BrandIssue(ProducerModel):
    description: str | None = None
    text: str | None = None
    issue: str | None = None
    url: str | None = None
    evidence: str | None = None


class BrandNote(ProducerModel):
    description: str | None = None
    text: str | None = None


class ValueProp(ProducerModel):
    headline: str | None = None
    description: str | None = None

    def as_text(self) -> str:
        if self.headline and self.description:
            return f"{self.headline}: {self.description}"
        return first_text(self.headline, self.description)


class Positioning(ProducerModel):
    statement: str | None = None
    summary: str | None = None


class IdealCustomer(ProducerModel):
    primary_audience: str | None = None


class Differentiators(ProducerModel):
    bullets: StringList = Field(default_factory=list[str])


class BrandFindings(ProducerModel):
    inconsistencies: Annotated[list[str | BrandNote], BeforeValidator(strings_and_mappings)] = (
        Field(default_factory=list[str | BrandNote])
    )
    opportunities: Annotated[list[str | BrandNote], BeforeValidator(strings_and_mappings)] = (
        Field(default_factory=list[str | BrandNote])
    )
    risks: Annotated[list[str | BrandNote], BeforeValidator(strings_and_mappings)] = Field(
        default_factory=list[str | BrandNote]
    )
    value_prop: ValueProp | None = None
    positioning: Positioning | None = None
    icp: IdealCustomer | None = None
    differentiators: Differentiators | None = None


class BrandQuickWin(ProducerModel):
    description: str | None = None
    text: str | None = None
    action: str | None = None
    issue_id: int | str | None = None


class BrandProject(ProducerModel):
    name: str | None = None
    description: str | None = None


class BrandLabOutput(ProducerOutput):
    LAB_KEY: ClassVar[str] = "brandLab"
    SOURCE: ClassVar[str] = "brand_lab"
    SIGNATURE_FIELDS: ClassVar[tuple[str, ...]] = ("findings", "issues", "quickWins", "projects")

    issues: Annotated[list[str | BrandIssue], BeforeValidator(strings_and_mappings)] = Field(
        default_factory=list[str | BrandIssue]
    )
    findings: BrandFindings | None = None
    quick_wins: Annotated[list[str | BrandQuickWin], BeforeValidator(strings_and_mappings)] = (
        Field(default_factory=list[str | BrandQuickWin])
    )
    projects: Annotated[list[BrandProject], BeforeValidator(mappings_only)] = Field(
        default_factory=list[BrandProject]
    )

    def to_candidates(self, builder: CandidateBuilder) -> None:
        findings = self.findings
        if findings is None:
            return

        if findings.value_prop is not None:
            value_prop = findings.value_prop.as_text()
            builder.add(
                "productOffer.valueProposition",
                value_prop,
                0.85,
                raw_path="findings.valueProp",
                snippet=value_prop[:200],
            )

        if findings.positioning is not None:
            positioning = findings.positioning
            if positioning.statement:
                builder.add(
                    "brand.positioning",
                    positioning.statement,
                    0.85,
                    raw_path="findings.positioning.statement",
                    snippet=positioning.statement[:200],
                )
            elif positioning.summary:
                builder.add(
                    "brand.positioning",
                    positioning.summary,
                    0.75,
                    raw_path="findings.positioning.summary",
                    snippet=positioning.summary[:200],
                )

        if findings.icp is not None and findings.icp.primary_audience:
            builder.add(
                "audience.primaryAudience",
                findings.icp.primary_audience,
                0.8,
                raw_path="findings.icp.primaryAudience",
                snippet=findings.icp.primary_audience[:200],
            )

        if findings.differentiators is not None:
            bullets = findings.differentiators.bullets
            builder.add(
                "brand.differentiators",
                list(bullets),
                0.8,
                raw_path="findings.differentiators.bullets",
                snippet="; ".join(bullets)[:200],
            )

    def to_quality_input(self, *, run_id: str, company_id: str) -> LabQualityInput:
        ids = FindingCounter()
        findings: list[QualityFinding] = []
        recommendations: list[QualityRecommendation] = []

        for issue in self.issues:
            if isinstance(issue, str):
                findings.append(
                    QualityFinding(
                        id=ids.next_finding(), text=issue, canonical_hash=fingerprint(issue)
                    )
                )
                continue
            text = first_text(issue.description, issue.text, issue.issue)
            findings.append(
                QualityFinding(
                    id=ids.next_finding(),
                    text=text,
                    page_url=issue.url,
                    quoted_text=issue.evidence,
                    canonical_hash=fingerprint(text),
                )
            )

        if self.findings is not None:
            for reference, notes in (
                ("Inconsistency", self.findings.inconsistencies),
                ("Opportunity", self.findings.opportunities),
                ("Risk", self.findings.risks),
            ):
                for note in notes:
                    text = (
                        note if isinstance(note, str) else first_text(note.description, note.text)
                    )
                    findings.append(
                        QualityFinding(
                            id=ids.next_finding(),
                            text=text,
                            specific_reference=reference,
                            canonical_hash=fingerprint(reference, text),
                        )
                    )

        for win in self.quick_wins:
            if isinstance(win, str):
                recommendations.append(
                    QualityRecommendation(id=ids.next_recommendation(), text=win)
                )
                continue
            recommendations.append(
                QualityRecommendation(
                    id=ids.next_recommendation(),
                    text=first_text(win.description, win.text, win.action),
                    linked_finding_id=scalar_id(win.issue_id),
                )
            )

        for project in self.projects:
            recommendations.append(
                QualityRecommendation(
                    id=ids.next_recommendation(),
                    text=f"{project.name or ''}: {project.description or ''}",
                )
            )

        return LabQualityInput(
            lab_key=self.LAB_KEY,
            run_id=run_id,
            company_id=company_id,
            findings=tuple(findings),
            recommendations=tuple(recommendations),
        )
