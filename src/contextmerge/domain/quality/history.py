"""Append-only history of lab quality scores per company and producer."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from contextmerge.common.clock import utc_now
from contextmerge.config import REGRESSION_THRESHOLD_POINTS
from contextmerge.domain.model import QualityHistoryReport
from contextmerge.domain.quality.scoring import compute_lab_quality_score

if TYPE_CHECKING:
    from contextmerge.common.clock import Clock
    from contextmerge.domain.model import LabQualityInput, LabQualityScore
    from contextmerge.domain.ports import QualityScoreRepository

log = logging.getLogger(__name__)


class QualityScoreHistory:
    def __init__(
        self,
        repository: QualityScoreRepository,
        *,
        regression_threshold: int = REGRESSION_THRESHOLD_POINTS,
        clock: Clock = utc_now,
    ) -> None:
        self.repository = repository
        self.regression_threshold = regression_threshold
        self._clock = clock

    def record(self, data: LabQualityInput) -> LabQualityScore | None:
        """Score a run against its predecessor and append it. Empty runs are not stored."""

        previous = self.repository.latest(data.company_id, data.lab_key)
        score = compute_lab_quality_score(
            data,
            previous=previous,
            regression_threshold=self.regression_threshold,
            clock=self._clock,
        )
        if score is None:
            return None
        self.repository.append(score)
        if score.regression is not None and score.regression.is_regression:
            log.warning(
                "Quality regression for %s/%s: %d -> %d (run %s)",
                data.company_id,
                data.lab_key,
                score.regression.previous_score,
                score.score,
                data.run_id,
            )
        return score

    def report(self, company_id: str, lab_key: str) -> QualityHistoryReport:
        history = tuple(self.repository.history(company_id, lab_key))
        regressions = tuple(
            score
            for score in history
            if score.regression is not None and score.regression.is_regression
        )
        return QualityHistoryReport(
            company_id=company_id,
            lab_key=lab_key,
            history=history,
            regressions=regressions,
        )
