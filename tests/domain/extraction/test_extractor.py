from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest

from contextmerge.domain.extraction import CandidateExtractor, ExtractionFailure
from tests.helpers.clock import BASE_TIME, FakeClock
from tests.helpers.fields import at
from tests.helpers.payloads import (
    audience_payload,
    brand_payload,
    competition_v3_payload,
    competition_v4_payload,
    gap_payload,
    website_payload,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    type Envelope = Callable[[dict[str, Any]], dict[str, Any]]


@pytest.fixture
def extractor() -> CandidateExtractor:
    return CandidateExtractor(clock=FakeClock(BASE_TIME))


@pytest.mark.parametrize(
    ("lab_key", "payload", "source"),
    [
        ("websiteLab", website_payload(), "website_lab"),
        ("competitionLab", competition_v4_payload(), "competition_v4"),
        ("competitionLab", competition_v3_payload(), "competition_lab"),
        ("brandLab", brand_payload(), "brand_lab"),
        ("gapPlan", gap_payload(), "gap_full"),
        ("audienceLab", audience_payload(), "audience_lab"),
    ],
)
def test_known_producers_extract_directly(
    extractor: CandidateExtractor, lab_key: str, payload: dict[str, object], source: str
) -> None:
    result = extractor.extract(lab_key, payload, run_id="run7", company_id="acme")

    assert result.ok
    assert result.extraction_path == "direct"
    assert result.source == source
    assert result.candidates
    assert {candidate.source for candidate in result.candidates} == {source}
    assert {candidate.source_id for candidate in result.candidates} == {"run7"}
    assert {candidate.timestamp for candidate in result.candidates} == {BASE_TIME}
    assert result.quality_input is not None
    assert result.quality_input.run_id == "run7"
    assert result.quality_input.company_id == "acme"


def test_explicit_timestamp_wins_over_clock(extractor: CandidateExtractor) -> None:
    result = extractor.extract(
        "websiteLab", website_payload(), run_id="run1", company_id="acme", timestamp=at(90)
    )

    assert {candidate.timestamp for candidate in result.candidates} == {at(90)}


@pytest.mark.parametrize(
    ("envelope", "path"),
    [
        (lambda p: {"rawEvidence": {"labResultV4": p}}, "rawEvidence.labResultV4"),
        (lambda p: {"result": p}, "result"),
        (lambda p: {"data": json.dumps(p)}, "data"),
        (lambda p: {"dataJson": json.dumps(p)}, "dataJson"),
        (lambda p: {"output": p}, "output"),
        (lambda p: {"labResult": p}, "labResult"),
        (
            lambda p: {"evidencePack": json.dumps({"websiteLabV4": json.dumps(p)})},
            "evidencePack.websiteLabV4",
        ),
    ],
)
def test_wrapped_payloads_are_unwrapped(
    extractor: CandidateExtractor, envelope: Envelope, path: str
) -> None:
    result = extractor.extract(
        "websiteLab", envelope(website_payload()), run_id="run1", company_id="acme"
    )

    assert result.ok
    assert result.extraction_path == path
    assert len(result.candidates) == 7


def test_whole_run_may_arrive_as_json_text(extractor: CandidateExtractor) -> None:
    result = extractor.extract(
        "competitionLab", json.dumps(competition_v4_payload()), run_id="run1", company_id="acme"
    )

    assert result.ok
    assert result.source == "competition_v4"


def test_first_matching_strategy_wins(extractor: CandidateExtractor) -> None:
    raw = {**website_payload(), "result": {"v5Diagnostic": {"score": 10}}}

    result = extractor.extract("websiteLab", raw, run_id="run1", company_id="acme")

    scores = [c.value for c in result.candidates if c.key == "website.websiteScore"]
    assert result.extraction_path == "direct"
    assert scores == [62]


def test_unknown_producer(extractor: CandidateExtractor) -> None:
    result = extractor.extract("seoLab", website_payload(), run_id="run1", company_id="acme")

    assert not result.ok
    assert result.failure_reason is ExtractionFailure.UNKNOWN_PRODUCER
    assert result.candidates == ()


def test_invalid_json(extractor: CandidateExtractor) -> None:
    result = extractor.extract("websiteLab", "{not json", run_id="run1", company_id="acme")

    assert result.failure_reason is ExtractionFailure.INVALID_JSON


@pytest.mark.parametrize("raw", [[1, 2, 3], "[1, 2, 3]", 42])
def test_non_object_runs_have_unknown_shape(extractor: CandidateExtractor, raw: object) -> None:
    result = extractor.extract("websiteLab", raw, run_id="run1", company_id="acme")

    assert result.failure_reason is ExtractionFailure.UNKNOWN_SHAPE
    assert result.top_level_keys == ()


def test_unknown_shape_reports_sorted_top_level_keys(
    extractor: CandidateExtractor, caplog: pytest.LogCaptureFixture
) -> None:
    raw = {f"key{index:02d}": index for index in range(12, 0, -1)}

    with caplog.at_level("WARNING"):
        result = extractor.extract("websiteLab", raw, run_id="run1", company_id="acme")

    assert result.failure_reason is ExtractionFailure.UNKNOWN_SHAPE
    assert result.top_level_keys == tuple(f"key{index:02d}" for index in range(1, 11))
    assert result.candidates == ()
    assert result.quality_input is None
    assert len(result.attempts) == 8
    assert "key01, key02" in caplog.text


def test_signature_without_valid_payload_is_invalid(extractor: CandidateExtractor) -> None:
    result = extractor.extract(
        "websiteLab", {"v5Diagnostic": "oops"}, run_id="run1", company_id="acme"
    )

    assert result.failure_reason is ExtractionFailure.INVALID_PAYLOAD
    assert result.top_level_keys == ("v5Diagnostic",)
    assert "direct: WebsiteLabOutput rejected payload (1 errors)" in result.attempts


def test_invalid_root_falls_through_to_a_valid_wrapped_one(extractor: CandidateExtractor) -> None:
    raw = {"v5Diagnostic": "oops", "result": website_payload()}

    result = extractor.extract("websiteLab", raw, run_id="run1", company_id="acme")

    assert result.ok
    assert result.extraction_path == "result"
    assert result.attempts[0].startswith("direct: WebsiteLabOutput rejected payload")
