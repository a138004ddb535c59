"""Audit records produced by store mutations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from contextmerge.domain.model.enums import OutcomeKind

if TYPE_CHECKING:
    from datetime import datetime

    from contextmerge.domain.model.enums import ProposalReason


@dataclass(frozen=True, slots=True, kw_only=True)
class ProposalOutcome:
    """What happened to one proposal. Appended to the audit trail, never mutated."""

    company_id: str
    key: str
    kind: OutcomeKind
    reason: ProposalReason
    source: str
    source_id: str
    recorded_at: datetime
    revision: int | None = None
    remaining_seconds: int | None = None

    @property
    def applied(self) -> bool:
        return self.kind in (OutcomeKind.ACCEPTED, OutcomeKind.ADDED_AS_ALTERNATIVE)

    def to_payload(self) -> dict[str, Any]:
        return {
            "companyId": self.company_id,
            "key": self.key,
            "kind": self.kind.value,
            "reason": self.reason.value,
            "source": self.source,
            "sourceId": self.source_id,
            "recordedAt": self.recorded_at.isoformat(),
            "revision": self.revision,
            "remainingSeconds": self.remaining_seconds,
        }


@dataclass(frozen=True, slots=True, kw_only=True)
class BatchOutcome:
    """Result of proposing a whole producer batch."""

    company_id: str
    outcomes: tuple[ProposalOutcome, ...] = ()
    cooldown_remaining: int | None = None

    @property
    def throttled(self) -> bool:
        return self.cooldown_remaining is not None

    def count(self, kind: OutcomeKind) -> int:
        return sum(1 for outcome in self.outcomes if outcome.kind is kind)


@dataclass(slots=True, kw_only=True)
class StatusChangeResult:
    """Keys touched by a confirm/reject call, split by whether anything changed."""

    updated: list[str] = field(default_factory=list[str])
    skipped: list[str] = field(default_factory=list[str])
    missing: list[str] = field(default_factory=list[str])
