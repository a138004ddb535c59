"""In-process repositories, for tests and single-process deployments."""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import TYPE_CHECKING

from contextmerge.domain.errors import StoreUnavailableError

if TYPE_CHECKING:
    from contextmerge.domain.model import ContextField, LabQualityScore, ProposalOutcome


class InMemoryFieldRepository:
    """Dict-backed field store. Every read and write copies the field."""

    def __init__(self) -> None:
        self._fields: dict[str, dict[str, ContextField]] = defaultdict(dict)
        self._outcomes: list[ProposalOutcome] = []
        self._lock = threading.Lock()
        self.available = True

    def _ensure_available(self) -> None:
        if not self.available:
            raise StoreUnavailableError("in-memory field repository marked unavailable")

    def load_fields(self, company_id: str) -> dict[str, ContextField]:
        self._ensure_available()
        with self._lock:
            return {key: field.copy() for key, field in self._fields[company_id].items()}

    def get_field(self, company_id: str, key: str) -> ContextField | None:
        self._ensure_available()
        with self._lock:
            field = self._fields[company_id].get(key)
            return field.copy() if field is not None else None

    def compare_and_swap(
        self,
        company_id: str,
        field: ContextField,
        *,
        expected_revision: int | None,
    ) -> bool:
        self._ensure_available()
        with self._lock:
            current = self._fields[company_id].get(field.key)
            current_revision = current.revision if current is not None else None
            if current_revision != expected_revision:
                return False
            self._fields[company_id][field.key] = field.copy()
            return True

    def append_outcome(self, outcome: ProposalOutcome) -> None:
        self._ensure_available()
        with self._lock:
            self._outcomes.append(outcome)

    def list_outcomes(self, company_id: str, *, key: str | None = None) -> list[ProposalOutcome]:
        self._ensure_available()
        with self._lock:
            return [
                outcome
                for outcome in self._outcomes
                if outcome.company_id == company_id and (key is None or outcome.key == key)
            ]


class InMemoryQualityScoreRepository:
    def __init__(self) -> None:
        self._scores: dict[tuple[str, str], list[LabQualityScore]] = defaultdict(list)
        self._lock = threading.Lock()

    def append(self, score: LabQualityScore) -> None:
        with self._lock:
            self._scores[(score.company_id, score.lab_key)].append(score)

    def latest(self, company_id: str, lab_key: str) -> LabQualityScore | None:
        with self._lock:
            history = self._scores.get((company_id, lab_key))
            return history[-1] if history else None

    def history(self, company_id: str, lab_key: str) -> list[LabQualityScore]:
        with self._lock:
            return list(self._scores.get((company_id, lab_key), ()))


if TYPE_CHECKING:
    from contextmerge.domain.ports import FieldRepository, QualityScoreRepository

    _field_repo: FieldRepository = InMemoryFieldRepository()
    _score_repo: QualityScoreRepository = InMemoryQualityScoreRepository()
