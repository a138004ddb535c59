from __future__ import annotations

import pytest

from contextmerge.adapters.memory import InMemoryFieldRepository, InMemoryQualityScoreRepository
from contextmerge.domain.errors import StoreUnavailableError
from contextmerge.domain.quality import compute_lab_quality_score
from tests.helpers.fields import make_field, strong_quality_input


def test_reads_return_copies(memory_fields: InMemoryFieldRepository) -> None:
    assert memory_fields.compare_and_swap("acme", make_field(["Retail"]), expected_revision=None)

    loaded = memory_fields.get_field("acme", "identity.industry")
    assert loaded is not None
    assert isinstance(loaded.value, list)
    loaded.value.append("Outlet")
    loaded.alternatives.clear()

    fresh = memory_fields.load_fields("acme")["identity.industry"]
    assert fresh.value == ["Retail"]


def test_stored_field_is_detached_from_the_caller(memory_fields: InMemoryFieldRepository) -> None:
    field = make_field("Retail")
    memory_fields.compare_and_swap("acme", field, expected_revision=None)

    field.value = "Changed"

    stored = memory_fields.get_field("acme", "identity.industry")
    assert stored is not None
    assert stored.value == "Retail"


def test_unavailable_repository_raises(memory_fields: InMemoryFieldRepository) -> None:
    memory_fields.available = False

    with pytest.raises(StoreUnavailableError):
        memory_fields.load_fields("acme")
    with pytest.raises(StoreUnavailableError):
        memory_fields.compare_and_swap("acme", make_field(), expected_revision=None)


def test_score_history_returns_a_copy(memory_scores: InMemoryQualityScoreRepository) -> None:
    score = compute_lab_quality_score(strong_quality_input())
    assert score is not None
    memory_scores.append(score)

    history = memory_scores.history("acme", "websiteLab")
    history.clear()

    assert memory_scores.history("acme", "websiteLab") == [score]
    assert memory_scores.latest("acme", "websiteLab") == score
    assert memory_scores.latest("acme", "brandLab") is None
