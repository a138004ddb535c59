"""Website lab output (the ``v5Diagnostic`` block)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, ClassVar

from pydantic import BeforeValidator, Field

from contextmerge.domain.extraction.producers.base import (
    CandidateBuilder,
    FindingCounter,
    ProducerModel,
    ProducerOutput,
    StringList,
    first_text,
    fingerprint,
    issue_link,
    mappings_only,
)
from contextmerge.domain.model import (
    LabQualityInput,
    PersonaJourney,
    QualityFinding,
    QualityRecommendation,
)

if TYPE_CHECKING:
    from contextmerge.domain.model import JSONValue

_MAX_QUICK_WINS = 5
_MAX_SUMMARY_LENGTH = 500


class ConcreteFix(ProducerModel):
    what: str | None = None
    where: str | None = None


class BlockingIssue(ProducerModel):
    id: int | str | None = None
    page: str | None = None
    why_it_blocks: str | None = None
    concrete_fix: ConcreteFix | None = None


class PageObservation(ProducerModel):
    page_path: str | None = None
    page_type: str | None = None
    missing_unclear_elements: StringList = Field(default_factory=list[str])


class WebsiteQuickWin(ProducerModel):
    title: str | None = None
    action: str | None = None
    page: str | None = None
    expected_impact: str | None = None
    addresses_issue_id: int | str | None = None


class StructuralChange(ProducerModel):
    title: str | None = None
    description: str | None = None
    pages_affected: StringList = Field(default_factory=list[str])
    addresses_issue_ids: list[int | str] | None = None


class FailurePoint(ProducerModel):
    page: str | None = None
    reason: str | None = None


class JourneyRun(ProducerModel):
    persona: str | None = None
    intended_goal: str | None = None
    succeeded: bool | None = None
    failure_point: str | FailurePoint | None = None
    actual_path: StringList = Field(default_factory=list[str])

    @property
    def failure_page(self) -> str | None:
        if isinstance(self.failure_point, str):
            return self.failure_point or None
        if self.failure_point is not None:
            return self.failure_point.page or None
        return None

    @property
    def failure_reason(self) -> str | None:
        if isinstance(self.failure_point, str):
            return None if self.succeeded else f"Journey failed at {self.failure_point}"
        if self.failure_point is not None:
            if self.failure_point.reason:
                return self.failure_point.reason
            return None if self.succeeded else "Journey failed"
        return None

    def to_persona_journey(self) -> PersonaJourney:
        return PersonaJourney(
            persona=self.persona or "Unknown",
            goal=self.intended_goal,
            has_clear_goal=bool(self.intended_goal),
            has_explicit_failure_point=not self.succeeded and bool(self.failure_point),
            failure_point_page=self.failure_page,
            failure_reason=self.failure_reason,
            succeeded=bool(self.succeeded),
        )


class WebsiteDiagnostic(ProducerModel):
    score: int | float | None = None
    score_justification: str | None = None
    blocking_issues: Annotated[list[BlockingIssue], BeforeValidator(mappings_only)] = Field(
        default_factory=list[BlockingIssue]
    )
    observations: Annotated[list[PageObservation], BeforeValidator(mappings_only)] = Field(
        default_factory=list[PageObservation]
    )
    quick_wins: Annotated[list[WebsiteQuickWin], BeforeValidator(mappings_only)] = Field(
        default_factory=list[WebsiteQuickWin]
    )
    structural_changes: Annotated[list[StructuralChange], BeforeValidator(mappings_only)] = Field(
        default_factory=list[StructuralChange]
    )
    persona_journeys: Annotated[list[JourneyRun], BeforeValidator(mappings_only)] = Field(
        default_factory=list[JourneyRun]
    )


class WebsiteLabOutput(ProducerOutput):
    LAB_KEY: ClassVar[str] = "websiteLab"
    SOURCE: ClassVar[str] = "website_lab"
    SIGNATURE_FIELDS: ClassVar[tuple[str, ...]] = ("v5Diagnostic",)

    v5_diagnostic: WebsiteDiagnostic = Field(alias="v5Diagnostic")

    def to_candidates(self, builder: CandidateBuilder) -> None:
        diagnostic = self.v5_diagnostic
        journeys = diagnostic.persona_journeys
        failed = [journey for journey in journeys if not journey.succeeded]
        succeeded = [journey for journey in journeys if journey.succeeded]

        if diagnostic.score is not None:
            builder.add(
                "website.websiteScore",
                diagnostic.score,
                0.85,
                raw_path="v5Diagnostic.score",
                snippet=(
                    f"Website score: {diagnostic.score}/100; "
                    f"blockingIssues: {len(diagnostic.blocking_issues)}; "
                    f"persona success: {len(succeeded)}/{len(journeys)}"
                ),
            )

        if diagnostic.score_justification or diagnostic.blocking_issues:
            builder.add(
                "website.executiveSummary",
                _executive_summary(diagnostic, failed_journeys=len(failed)),
                0.85,
                raw_path="v5Diagnostic",
                snippet=(diagnostic.score_justification or "")[:200]
                or (
                    f"{len(diagnostic.blocking_issues)} blocking issues, "
                    f"{len(diagnostic.quick_wins)} quick wins"
                ),
                url=diagnostic.blocking_issues[0].page if diagnostic.blocking_issues else None,
            )

        top_wins = diagnostic.quick_wins[:_MAX_QUICK_WINS]
        builder.add(
            "website.quickWins",
            [_quick_win_line(win) for win in top_wins],
            0.85,
            raw_path="v5Diagnostic.quickWins",
            snippet=" | ".join(f"{win.page}: {win.title}" for win in top_wins),
        )

        builder.add(
            "website.conversionBlocks",
            [_blocking_line(issue) for issue in diagnostic.blocking_issues],
            0.85,
            raw_path="v5Diagnostic.blockingIssues",
            snippet=" | ".join(
                f"{issue.page}: {issue.concrete_fix.where if issue.concrete_fix else ''}"
                for issue in diagnostic.blocking_issues[:3]
            ),
        )

        insights: list[JSONValue] = [_failed_journey_line(journey) for journey in failed]
        if succeeded:
            names = ", ".join(journey.persona or "Unknown" for journey in succeeded)
            completed = f"{len(succeeded)}/{len(journeys)} completed goals"
            insights.append(f"SUCCEEDED: {names} ({completed})")
        builder.add(
            "website.personaJourneyInsights",
            insights,
            0.80,
            raw_path="v5Diagnostic.personaJourneys",
            snippet=(
                f"{len(failed)}/{len(journeys)} failed: "
                + ", ".join(journey.failure_page or "unknown" for journey in failed)
            ),
        )

        page_issues: list[JSONValue] = [
            f"Page {obs.page_path} ({obs.page_type}): "
            + ", ".join(obs.missing_unclear_elements[:3])
            for obs in diagnostic.observations
            if obs.missing_unclear_elements
        ]
        builder.add(
            "website.pageIssues",
            page_issues,
            0.80,
            raw_path="v5Diagnostic.observations[].missingUnclearElements",
            snippet=" | ".join(
                f"{obs.page_path}: {len(obs.missing_unclear_elements)} issues"
                for obs in diagnostic.observations[:3]
            ),
        )

        builder.add(
            "website.structuralRecommendations",
            [_structural_line(change) for change in diagnostic.structural_changes],
            0.75,
            raw_path="v5Diagnostic.structuralChanges",
            snippet=" | ".join(
                f"{change.title}: {', '.join(change.pages_affected) or 'site-wide'}"
                for change in diagnostic.structural_changes
            ),
        )

    def to_quality_input(self, *, run_id: str, company_id: str) -> LabQualityInput:
        diagnostic = self.v5_diagnostic
        ids = FindingCounter()
        findings: list[QualityFinding] = []
        recommendations: list[QualityRecommendation] = []

        for issue in diagnostic.blocking_issues:
            text = issue.why_it_blocks or ""
            fix = issue.concrete_fix
            findings.append(
                QualityFinding(
                    id=ids.next_finding(),
                    text=text,
                    page_url=issue.page,
                    specific_reference=issue.page,
                    quoted_text=f"Fix: {fix.what} at {fix.where}" if fix is not None else None,
                    canonical_hash=fingerprint(text),
                )
            )

        for obs in diagnostic.observations:
            for missing in obs.missing_unclear_elements:
                findings.append(
                    QualityFinding(
                        id=ids.next_finding(),
                        text=missing,
                        page_url=obs.page_path,
                        specific_reference=obs.page_path,
                        canonical_hash=fingerprint(missing, obs.page_path or ""),
                    )
                )

        for win in diagnostic.quick_wins:
            recommendations.append(
                QualityRecommendation(
                    id=ids.next_recommendation(),
                    text=first_text(win.action, win.title),
                    linked_finding_id=issue_link(win.addresses_issue_id),
                )
            )

        for change in diagnostic.structural_changes:
            linked = change.addresses_issue_ids[0] if change.addresses_issue_ids else None
            recommendations.append(
                QualityRecommendation(
                    id=ids.next_recommendation(),
                    text=f"{change.title or ''}: {change.description or ''}",
                    linked_finding_id=issue_link(linked),
                )
            )

        journeys = tuple(journey.to_persona_journey() for journey in diagnostic.persona_journeys)
        return LabQualityInput(
            lab_key=self.LAB_KEY,
            run_id=run_id,
            company_id=company_id,
            findings=tuple(findings),
            recommendations=tuple(recommendations),
            persona_journeys=journeys or None,
        )


def _executive_summary(diagnostic: WebsiteDiagnostic, *, failed_journeys: int) -> str:
    parts = [f"Score: {diagnostic.score}/100."]
    if diagnostic.blocking_issues:
        blockers = ". ".join(
            f"{issue.page}: {issue.why_it_blocks}" for issue in diagnostic.blocking_issues[:2]
        )
        parts.append(f"Key blockers: {blockers}.")
    if failed_journeys:
        plural = "s" if failed_journeys > 1 else ""
        parts.append(f"{failed_journeys} persona journey{plural} failed.")
    if diagnostic.quick_wins:
        count = len(diagnostic.quick_wins)
        parts.append(f"{count} quick win{'s' if count > 1 else ''} identified.")
    summary = " ".join(parts)
    if len(summary) > _MAX_SUMMARY_LENGTH:
        return summary[: _MAX_SUMMARY_LENGTH - 3] + "..."
    return summary


def _quick_win_line(win: WebsiteQuickWin) -> str:
    impact = f" -> {win.expected_impact}" if win.expected_impact else ""
    return f"Page {win.page}: {win.action}{impact}"


def _blocking_line(issue: BlockingIssue) -> str:
    fix = issue.concrete_fix
    location = (fix.where if fix else None) or "on page"
    remedy = f" -> {fix.what}" if fix is not None and fix.what else ""
    return f"Page {issue.page} ({location}): {issue.why_it_blocks}{remedy}"


def _failed_journey_line(journey: JourneyRun) -> str:
    page = journey.failure_page or (journey.actual_path[-1] if journey.actual_path else "unknown")
    reason = (
        journey.failure_point.reason
        if not isinstance(journey.failure_point, str) and journey.failure_point is not None
        else None
    ) or "journey incomplete"
    path = " -> ".join(journey.actual_path)
    return f"FAILED: {journey.persona} at Page {page}: {reason} (path: {path})"


def _structural_line(change: StructuralChange) -> str:
    pages = ", ".join(change.pages_affected)
    affects = f" (affects: {pages})" if pages else ""
    return f"{change.title}: {change.description}{affects}"
