from __future__ import annotations

from typing import TYPE_CHECKING

from contextmerge.domain.merge import AlternativesManager
from contextmerge.domain.sources import SourcePriority
from tests.helpers.fields import at, make_alternative

if TYPE_CHECKING:
    from contextmerge.domain.model import Alternative


def _fill(manager: AlternativesManager, domain: str, count: int) -> list[Alternative]:
    alternatives: list[Alternative] = []
    for index in range(count):
        alternatives = manager.add(
            alternatives, make_alternative(f"value-{index}", source_id=f"run{index}"), domain
        )
    return alternatives


def test_add_never_exceeds_the_cap() -> None:
    manager = AlternativesManager()
    alternatives: list[Alternative] = []
    for index in range(12):
        alternatives = manager.add(
            alternatives,
            make_alternative(f"v{index}", source_id=f"run{index}", confidence=index / 20),
            "identity",
        )
        assert len(alternatives) <= 5

    assert len(alternatives) == 5


def test_sixth_alternative_evicts_lowest_confidence_within_a_tier() -> None:
    manager = AlternativesManager()
    alternatives: list[Alternative] = []
    for index, confidence in enumerate([0.5, 0.7, 0.2, 0.9, 0.6]):
        alternatives = manager.add(
            alternatives,
            make_alternative(f"v{index}", source_id=f"run{index}", confidence=confidence),
            "identity",
        )

    alternatives = manager.add(
        alternatives, make_alternative("newcomer", source_id="run9", confidence=0.4), "identity"
    )

    assert [alt.confidence for alt in alternatives] == [0.9, 0.7, 0.6, 0.5, 0.4]
    assert all(alt.value != "v2" for alt in alternatives)


def test_source_priority_dominates_confidence() -> None:
    manager = AlternativesManager(SourcePriority())
    alternatives: list[Alternative] = []
    for index in range(5):
        alternatives = manager.add(
            alternatives,
            make_alternative(
                f"brand-{index}", source="brand_lab", source_id=f"b{index}", confidence=0.3
            ),
            "brand",
        )

    alternatives = manager.add(
        alternatives,
        make_alternative("guess", source="inferred", source_id="i1", confidence=0.99),
        "brand",
    )

    assert len(alternatives) == 5
    assert {alt.source_lab for alt in alternatives} == {"brand_lab"}


def test_higher_priority_source_ranks_first() -> None:
    manager = AlternativesManager()
    low = make_alternative("guess", source="inferred", source_id="i1", confidence=0.99)
    high = make_alternative("lab", source="brand_lab", source_id="b1", confidence=0.1)

    ranked = manager.rank([low, high], "brand")

    assert ranked == [high, low]


def test_recency_breaks_confidence_ties() -> None:
    manager = AlternativesManager()
    older = make_alternative("old", source_id="run1", added_at=at(0))
    newer = make_alternative("new", source_id="run2", added_at=at(30))

    assert manager.rank([older, newer], "identity") == [newer, older]


def test_exact_ties_fall_back_to_source_id() -> None:
    manager = AlternativesManager()
    second = make_alternative("b", source_id="run-b")
    first = make_alternative("a", source_id="run-a")

    assert manager.rank([second, first], "identity") == [first, second]
    assert manager.rank([first, second], "identity") == [first, second]


def test_same_value_and_source_replaces_instead_of_duplicating() -> None:
    manager = AlternativesManager()
    alternatives = manager.add([], make_alternative("Retail", confidence=0.4), "identity")

    alternatives = manager.add(
        alternatives,
        make_alternative("Retail", source_id="run2", confidence=0.5, added_at=at(10)),
        "identity",
    )

    assert len(alternatives) == 1
    assert alternatives[0].source_id == "run2"
    assert alternatives[0].confidence == 0.5


def test_same_value_from_another_source_is_kept_separately() -> None:
    manager = AlternativesManager()
    alternatives = manager.add([], make_alternative("Retail", source="labA"), "identity")

    alternatives = manager.add(
        alternatives, make_alternative("Retail", source="labC", source_id="run3"), "identity"
    )

    assert len(alternatives) == 2


def test_discard_and_contains_match_on_value_and_source() -> None:
    alternatives = [
        make_alternative("Retail", source="labA"),
        make_alternative("Retail", source="labC", source_id="run3"),
    ]

    remaining = AlternativesManager.discard(alternatives, "Retail", "labA")

    assert [alt.source_lab for alt in remaining] == ["labC"]
    assert AlternativesManager.contains(alternatives, "Retail", "labA")
    assert not AlternativesManager.contains(remaining, "Retail", "labA")


def test_custom_cap_is_honoured() -> None:
    manager = AlternativesManager(max_alternatives=2)

    alternatives = _fill(manager, "identity", 4)

    assert len(alternatives) == 2
