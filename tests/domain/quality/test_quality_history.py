from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from contextmerge.domain.quality import QualityScoreHistory
from tests.helpers.fields import make_quality_input, strong_quality_input, weak_quality_input

if TYPE_CHECKING:
    from contextmerge.domain.ports import QualityScoreRepository
    from tests.helpers.clock import FakeClock


@pytest.fixture(params=["memory_scores", "sql_scores"])
def repository(request: pytest.FixtureRequest) -> QualityScoreRepository:
    return request.getfixturevalue(request.param)


@pytest.fixture
def history(repository: QualityScoreRepository, clock: FakeClock) -> QualityScoreHistory:
    return QualityScoreHistory(repository, clock=clock)


def test_first_run_has_no_regression_info(history: QualityScoreHistory) -> None:
    score = history.record(strong_quality_input())

    assert score is not None
    assert score.regression is None
    assert history.repository.latest("acme", "websiteLab") == score


def test_drop_against_previous_run_is_flagged(
    history: QualityScoreHistory, clock: FakeClock, caplog: pytest.LogCaptureFixture
) -> None:
    history.record(strong_quality_input(run_id="run1"))
    clock.advance(60)
    with caplog.at_level("WARNING"):
        dropped = history.record(weak_quality_input(run_id="run2"))
    clock.advance(60)
    recovered = history.record(strong_quality_input(run_id="run3"))

    assert dropped is not None
    assert dropped.regression is not None
    assert dropped.regression.is_regression
    assert dropped.regression.point_difference == -55
    assert dropped.regression.previous_run_id == "run1"
    assert "100 -> 45" in caplog.text
    assert recovered is not None
    assert recovered.regression is not None
    assert not recovered.regression.is_regression

    report = history.report("acme", "websiteLab")
    assert [score.run_id for score in report.history] == ["run1", "run2", "run3"]
    assert [score.run_id for score in report.regressions] == ["run2"]
    assert report.latest == recovered


def test_empty_run_is_not_stored(history: QualityScoreHistory) -> None:
    assert history.record(make_quality_input()) is None
    assert history.report("acme", "websiteLab").history == ()
    assert history.report("acme", "websiteLab").latest is None


def test_histories_are_scoped_by_company_and_lab(history: QualityScoreHistory) -> None:
    history.record(strong_quality_input())
    other_lab = make_quality_input(
        lab_key="brandLab", findings=strong_quality_input().findings
    )
    history.record(other_lab)

    assert len(history.report("acme", "websiteLab").history) == 1
    assert len(history.report("acme", "brandLab").history) == 1
    assert history.report("globex", "websiteLab").history == ()


def test_rerun_with_same_run_id_appends(history: QualityScoreHistory) -> None:
    first = history.record(strong_quality_input(run_id="run1"))
    second = history.record(strong_quality_input(run_id="run1"))

    assert first is not None
    assert second is not None
    assert first.id == second.id
    assert len(history.report("acme", "websiteLab").history) == 2
