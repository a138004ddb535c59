from __future__ import annotations

from typing import TYPE_CHECKING

from contextmerge.domain.extraction.producers import (
    AudienceLabOutput,
    BrandLabOutput,
    CandidateBuilder,
    CompetitionLabOutput,
    CompetitionV4Output,
    GapPlanOutput,
    WebsiteLabOutput,
)
from contextmerge.domain.extraction.producers.audience import match_finding
from contextmerge.domain.model import EvidenceRef, PersonaJourney
from tests.helpers.clock import BASE_TIME
from tests.helpers.fields import bare_finding
from tests.helpers.payloads import (
    audience_payload,
    brand_payload,
    competition_v3_payload,
    competition_v4_payload,
    gap_payload,
    website_payload,
)

if TYPE_CHECKING:
    from contextmerge.domain.extraction import ProducerOutput
    from contextmerge.domain.model import ProposalCandidate


def _candidates(output: ProducerOutput) -> dict[str, ProposalCandidate]:
    builder = CandidateBuilder(source=output.SOURCE, source_id="run1", timestamp=BASE_TIME)
    output.to_candidates(builder)
    return {candidate.key: candidate for candidate in builder.candidates}


class TestWebsiteLab:
    def test_candidates(self) -> None:
        output = WebsiteLabOutput.model_validate(website_payload())

        candidates = _candidates(output)

        assert set(candidates) == {
            "website.websiteScore",
            "website.executiveSummary",
            "website.quickWins",
            "website.conversionBlocks",
            "website.personaJourneyInsights",
            "website.pageIssues",
            "website.structuralRecommendations",
        }
        score = candidates["website.websiteScore"]
        assert score.value == 62
        assert score.confidence == 0.85
        assert score.source == "website_lab"
        assert score.source_id == "run1"
        assert score.evidence == (
            EvidenceRef(
                raw_path="v5Diagnostic.score",
                snippet="Website score: 62/100; blockingIssues: 2; persona success: 1/2",
            ),
        )
        assert candidates["website.quickWins"].value == [
            "Page /pricing: Default the toggle to monthly -> More trial starts",
            "Page /checkout: Drop the phone field",
        ]
        assert candidates["website.conversionBlocks"].value == [
            "Page /pricing (plan table): Monthly plan is hidden behind a toggle"
            " -> Show monthly plan first",
            "Page /checkout (contact step): Phone number is mandatory -> Make phone optional",
        ]
        assert candidates["website.personaJourneyInsights"].value == [
            "FAILED: Budget buyer at Page /pricing: Monthly plan hidden (path: / -> /pricing)",
            "SUCCEEDED: Returning customer (1/2 completed goals)",
        ]
        assert candidates["website.pageIssues"].value == [
            "Page / (home): No social proof, CTA below the fold"
        ]
        assert candidates["website.structuralRecommendations"].confidence == 0.75

    def test_executive_summary(self) -> None:
        output = WebsiteLabOutput.model_validate(website_payload())

        summary = _candidates(output)["website.executiveSummary"]

        assert summary.value == (
            "Score: 62/100. Key blockers: /pricing: Monthly plan is hidden behind a toggle. "
            "/checkout: Phone number is mandatory. 1 persona journey failed. "
            "2 quick wins identified."
        )
        assert summary.evidence[0].url == "/pricing"

    def test_empty_sections_propose_nothing(self) -> None:
        output = WebsiteLabOutput.model_validate({"v5Diagnostic": {"score": 40}})

        assert list(_candidates(output)) == ["website.websiteScore"]

    def test_quality_input(self) -> None:
        output = WebsiteLabOutput.model_validate(website_payload())

        data = output.to_quality_input(run_id="run1", company_id="acme")

        assert data.lab_key == "websiteLab"
        assert [finding.id for finding in data.findings] == [
            "finding-0",
            "finding-1",
            "finding-2",
            "finding-3",
        ]
        assert all(finding.page_url for finding in data.findings)
        assert data.findings[0].quoted_text == "Fix: Show monthly plan first at plan table"
        assert [rec.linked_finding_id for rec in data.recommendations] == [
            "finding-0",
            None,
            "finding-0",
        ]
        assert data.persona_journeys == (
            PersonaJourney(
                persona="Budget buyer",
                goal="Find the monthly price",
                has_clear_goal=True,
                has_explicit_failure_point=True,
                failure_point_page="/pricing",
                failure_reason="Monthly plan hidden",
            ),
            PersonaJourney(
                persona="Returning customer",
                goal="Log in",
                has_clear_goal=True,
                succeeded=True,
            ),
        )

    def test_string_failure_point(self) -> None:
        payload = {
            "v5Diagnostic": {
                "personaJourneys": [
                    {"persona": "Buyer", "intendedGoal": "Buy", "failurePoint": "/cart"}
                ]
            }
        }
        output = WebsiteLabOutput.model_validate(payload)

        journey = output.to_quality_input(run_id="r", company_id="c").persona_journeys

        assert journey is not None
        assert journey[0].failure_point_page == "/cart"
        assert journey[0].failure_reason == "Journey failed at /cart"


class TestCompetition:
    def test_v4_candidates(self) -> None:
        output = CompetitionV4Output.model_validate(competition_v4_payload())

        candidates = _candidates(output)

        assert candidates["competitive.primaryCompetitors"].value == [
            {
                "name": "Rival",
                "type": "direct",
                "domain": "rival.example",
                "threatScore": 82,
                "summary": "Same product, same buyers",
            }
        ]
        assert candidates["competitive.primaryCompetitors"].source == "competition_v4"
        assert candidates["competitive.marketAlternatives"].value == [
            {
                "name": "Neighbour",
                "type": "partial",
                "domain": "neighbour.example",
                "threatScore": 40.5,
            },
            {
                "name": "Marketplace",
                "type": "platform",
                "domain": "market.example",
                "threatScore": 20,
            },
        ]
        assert candidates["competitive.differentiationAxes"].value == [
            "support",
            "product-overlap",
            "pricing",
            "geography",
        ]
        assert candidates["competitive.positioningMapSummary"].value == (
            "Primary: Rival; Contextual: Neighbour"
        )
        assert candidates["competitive.threatSummary"].value == (
            "Rival (82 overlap) are the top direct threats. Modality: Product."
        )

    def test_v4_quality_input(self) -> None:
        output = CompetitionV4Output.model_validate(competition_v4_payload())

        data = output.to_quality_input(run_id="run1", company_id="acme")

        assert data.findings[0].text == (
            "Rival (direct, 82% overlap) - Same product, same buyers - Identical pricing tiers"
        )
        assert data.findings[-1].text == "Competitive Modality: Product (70% confidence)"
        assert len(data.findings) == 5
        assert [rec.text for rec in data.recommendations] == [
            "Premium support for small teams",
            "Differentiation: support",
            "Lead with support",
            "Publish pricing",
        ]

    def test_v3_quality_bar_and_buckets(self) -> None:
        output = CompetitionLabOutput.model_validate(competition_v3_payload())

        candidates = _candidates(output)

        assert [c.name for c in output.direct_set()] == ["Rival"]
        assert candidates["competitive.primaryCompetitors"].value == [
            {
                "name": "Rival",
                "type": "direct",
                "domain": "https://rival.example",
                "threatScore": 80,
                "summary": "Lower price and easy onboarding",
            }
        ]
        assert candidates["competitive.marketAlternatives"].value == [
            {
                "name": "Adjacent",
                "type": "partial",
                "threatScore": 30,
                "summary": "Strong integrations story",
            },
            {"name": "Freelancers", "type": "fractional", "threatScore": 5},
        ]
        assert candidates["competitive.differentiationAxes"].value == [
            "pricing",
            "ease-of-use",
            "integrations",
        ]
        assert candidates["competitive.positioningMapSummary"].value == (
            "Direct competitors: Rival. Category neighbors: Adjacent"
        )
        assert candidates["competitive.threatSummary"].value == (
            "Rival (threat: 80%): Lower price and easy onboarding"
        )

    def test_v3_without_qualifying_competitors_proposes_no_fallbacks(self) -> None:
        payload = {
            "competitors": [
                {
                    "name": "Weakling",
                    "classification": {"type": "direct"},
                    "scores": {"threatScore": 24, "relevanceScore": 19},
                }
            ]
        }
        output = CompetitionLabOutput.model_validate(payload)

        assert _candidates(output) == {}

    def test_v3_primary_list_is_capped(self) -> None:
        payload = {
            "competitors": [
                {
                    "name": f"Rival {i}",
                    "classification": {"type": "direct"},
                    "scores": {"threatScore": 30 + i},
                }
                for i in range(8)
            ]
        }
        output = CompetitionLabOutput.model_validate(payload)

        names = [c.name for c in output.direct_set()]

        assert names == ["Rival 7", "Rival 6", "Rival 5", "Rival 4", "Rival 3"]


def test_brand_candidates_and_quality() -> None:
    output = BrandLabOutput.model_validate(brand_payload())

    candidates = _candidates(output)
    data = output.to_quality_input(run_id="run1", company_id="acme")

    assert {key: c.value for key, c in candidates.items()} == {
        "productOffer.valueProposition": "Fast setup: Live in a day",
        "brand.positioning": "The quickest CRM for agencies",
        "audience.primaryAudience": "Agency owners",
        "brand.differentiators": ["One-day setup", "Agency templates"],
    }
    assert candidates["brand.positioning"].source == "brand_lab"
    assert [f.text for f in data.findings] == [
        "Logo differs between site and app",
        "Tone shifts between pages",
        "Crowded category",
    ]
    assert data.findings[2].specific_reference == "Risk"
    assert [(r.text, r.linked_finding_id) for r in data.recommendations] == [
        ("Unify the logo", "finding-0"),
        ("Fix tone", None),
        ("Brand book: Document voice and visuals", None),
    ]


def test_brand_positioning_falls_back_to_summary() -> None:
    output = BrandLabOutput.model_validate(
        {"findings": {"positioning": {"summary": "Agency CRM"}}}
    )

    positioning = _candidates(output)["brand.positioning"]

    assert positioning.value == "Agency CRM"
    assert positioning.confidence == 0.75


def test_gap_candidates_and_quality() -> None:
    output = GapPlanOutput.model_validate(gap_payload())

    candidates = _candidates(output)
    data = output.to_quality_input(run_id="run1", company_id="acme")

    assert candidates["productOffer.primaryProducts"].value == [
        "CRM: Pipeline tracking",
        "Templates",
    ]
    assert candidates["audience.primaryAudience"].value == "Small agencies"
    assert candidates["competitive.primaryCompetitors"].value == [
        {"name": "Rival", "type": "direct", "domain": "rival.example", "summary": "Cheaper"}
    ]
    assert candidates["competitive.primaryCompetitors"].source == "gap_full"
    assert len(data.findings) == 6
    assert data.recommendations[0].linked_finding_id == "finding-0"


def test_audience_candidates_and_quality() -> None:
    output = AudienceLabOutput.model_validate(audience_payload())

    candidates = _candidates(output)
    data = output.to_quality_input(run_id="run1", company_id="acme")

    primary = candidates["audience.primaryAudience"]
    assert primary.value == "Agency owners: Run 5-20 person shops"
    assert primary.evidence[0].url == "https://forum.example"
    assert primary.evidence[0].snippet == "Most demo requests"
    assert candidates["audience.coreSegments"].value == ["Agency owners", "freelancers"]
    assert [f.specific_reference for f in data.findings] == [
        "Audience Issue",
        "Agency owners",
        "Agency owners",
        "freelancers",
        "Trust Signal",
    ]
    assert [r.linked_finding_id for r in data.recommendations] == ["finding-0", "finding-1"]


def test_match_finding_needs_three_shared_long_words() -> None:
    findings = [
        bare_finding("finding-0", "Pricing page is slow"),
        bare_finding("finding-1", "Pricing page hides annual discounts"),
    ]

    assert match_finding(findings, "Show annual discounts on the pricing page") == "finding-1"
    assert match_finding(findings, "Speed up the pricing page") is None
