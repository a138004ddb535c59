from __future__ import annotations

import json

import pytest

from contextmerge.domain.extraction import (
    DEFAULT_STRATEGIES,
    ExtractionStrategy,
    LocatedRoot,
    NotApplicable,
)
from contextmerge.domain.extraction.producers import CompetitionV4Output, WebsiteLabOutput
from contextmerge.domain.extraction.strategies import as_mapping


def test_strategy_order() -> None:
    assert [strategy.name for strategy in DEFAULT_STRATEGIES] == [
        "direct",
        "rawEvidence.labResultV4",
        "result",
        "data",
        "dataJson",
        "output",
        "labResult",
        "evidencePack.websiteLabV4",
    ]


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ({"a": 1}, {"a": 1}),
        ('{"a": 1}', {"a": 1}),
        ("not json", None),
        ("[1, 2]", None),
        ([1, 2], None),
        (None, None),
    ],
)
def test_as_mapping(value: object, expected: dict[str, int] | None) -> None:
    assert as_mapping(value) == expected


def test_nested_path_decodes_json_strings_at_every_level() -> None:
    strategy = ExtractionStrategy("evidencePack.websiteLabV4", ("evidencePack", "websiteLabV4"))
    inner = {"v5Diagnostic": {"score": 50}}
    raw = {"evidencePack": json.dumps({"websiteLabV4": json.dumps(inner)})}

    located = strategy(raw, WebsiteLabOutput)

    assert located == LocatedRoot(path="evidencePack.websiteLabV4", payload=inner)


def test_missing_path_is_not_applicable() -> None:
    strategy = ExtractionStrategy("result", ("result",))

    located = strategy({"data": {}}, WebsiteLabOutput)

    assert isinstance(located, NotApplicable)
    assert located.reason.startswith("result:")


def test_object_without_signature_fields_is_not_applicable() -> None:
    strategy = ExtractionStrategy("result", ("result",))

    located = strategy({"result": {"score": 50}}, WebsiteLabOutput)

    assert located == NotApplicable("result: no WebsiteLabOutput signature fields")


def test_v4_signature_requires_version_four() -> None:
    direct = DEFAULT_STRATEGIES[0]

    v3 = direct({"version": 3, "scoredCompetitors": {}}, CompetitionV4Output)
    v4 = direct({"version": 4, "scoredCompetitors": {}}, CompetitionV4Output)

    assert isinstance(v3, NotApplicable)
    assert isinstance(v4, LocatedRoot)
