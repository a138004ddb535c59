"""Behaviour every field repository must share, run against each implementation."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

import pytest

from contextmerge.domain.model import OutcomeKind, ProposalOutcome, ProposalReason
from tests.helpers.clock import BASE_TIME
from tests.helpers.fields import make_field

if TYPE_CHECKING:
    from contextmerge.domain.ports import FieldRepository


@pytest.fixture(params=["memory_fields", "sql_fields"])
def repository(request: pytest.FixtureRequest) -> FieldRepository:
    return request.getfixturevalue(request.param)


def _outcome(key: str, kind: OutcomeKind, *, company_id: str = "acme") -> ProposalOutcome:
    return ProposalOutcome(
        company_id=company_id,
        key=key,
        kind=kind,
        reason=ProposalReason.NO_EXISTING,
        source="labA",
        source_id="run1",
        recorded_at=BASE_TIME,
    )


def test_insert_requires_absence(repository: FieldRepository) -> None:
    field = make_field(revision=1)

    assert repository.compare_and_swap("acme", field, expected_revision=None)
    assert not repository.compare_and_swap("acme", field, expected_revision=None)


def test_update_requires_matching_revision(repository: FieldRepository) -> None:
    repository.compare_and_swap("acme", make_field(revision=1), expected_revision=None)

    stale = repository.compare_and_swap(
        "acme", make_field("Outlet", revision=3), expected_revision=2
    )
    fresh = repository.compare_and_swap(
        "acme", make_field("Outlet", revision=2), expected_revision=1
    )

    stored = repository.get_field("acme", "identity.industry")
    assert not stale
    assert fresh
    assert stored is not None
    assert (stored.value, stored.revision) == ("Outlet", 2)


def test_update_of_missing_field_fails(repository: FieldRepository) -> None:
    assert not repository.compare_and_swap("acme", make_field(revision=2), expected_revision=1)
    assert repository.get_field("acme", "identity.industry") is None


def test_fields_are_scoped_per_company(repository: FieldRepository) -> None:
    repository.compare_and_swap("acme", make_field(), expected_revision=None)
    repository.compare_and_swap(
        "acme", make_field("B2B", key="identity.businessModel"), expected_revision=None
    )
    repository.compare_and_swap("globex", make_field("Energy"), expected_revision=None)

    assert set(repository.load_fields("acme")) == {"identity.industry", "identity.businessModel"}
    globex = repository.get_field("globex", "identity.industry")
    assert globex is not None
    assert globex.value == "Energy"
    assert repository.load_fields("initech") == {}


def test_outcomes_keep_insertion_order(repository: FieldRepository) -> None:
    first = _outcome("identity.industry", OutcomeKind.ACCEPTED)
    second = _outcome("brand.positioning", OutcomeKind.DROPPED)
    third = replace(first, kind=OutcomeKind.REJECTED, remaining_seconds=12)
    for outcome in (first, second, third, _outcome("x.y", OutcomeKind.ACCEPTED, company_id="b")):
        repository.append_outcome(outcome)

    assert repository.list_outcomes("acme") == [first, second, third]
    assert repository.list_outcomes("acme", key="identity.industry") == [first, third]
