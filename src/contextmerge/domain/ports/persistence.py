"""Ports for persisting context fields, proposal outcomes and quality scores.

Implementations must:
- return copies, so callers never mutate stored state in place
- make ``compare_and_swap`` atomic per ``(company_id, key)``
- raise ``StoreUnavailableError`` when the backing store cannot be reached
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from contextmerge.domain.model import ContextField, LabQualityScore, ProposalOutcome


@runtime_checkable
class FieldRepository(Protocol):
    """Persistence contract for a company's context fields and their audit trail."""

    def load_fields(self, company_id: str) -> dict[str, ContextField]: ...

    def get_field(self, company_id: str, key: str) -> ContextField | None: ...

    def compare_and_swap(
        self,
        company_id: str,
        field: ContextField,
        *,
        expected_revision: int | None,
    ) -> bool:
        """Write ``field`` only if the stored revision still equals ``expected_revision``.

        ``expected_revision=None`` means the key must not exist yet. Returns ``False``
        on a lost race; nothing is written in that case.
        """
        ...

    def append_outcome(self, outcome: ProposalOutcome) -> None: ...

    def list_outcomes(
        self, company_id: str, *, key: str | None = None
    ) -> list[ProposalOutcome]: ...


@runtime_checkable
class QualityScoreRepository(Protocol):
    """Append-only history of lab quality scores."""

    def append(self, score: LabQualityScore) -> None: ...

    def latest(self, company_id: str, lab_key: str) -> LabQualityScore | None: ...

    def history(self, company_id: str, lab_key: str) -> list[LabQualityScore]: ...
