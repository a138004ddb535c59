"""Read views over a company's fields: confirmed snapshot, readiness, counts."""

from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from contextmerge.common.numbers import round_half_up
from contextmerge.domain.model import FieldStatus, is_empty_value

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime

    from contextmerge.config import ReadinessRequirement
    from contextmerge.domain.model import ContextField, JSONValue


@dataclass(frozen=True, slots=True, kw_only=True)
class ConfirmedField:
    key: str
    value: JSONValue
    source: str
    confirmed_at: datetime
    confirmed_by: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value,
            "source": self.source,
            "confirmedAt": self.confirmed_at.isoformat(),
            "confirmedBy": self.confirmed_by,
        }


@dataclass(frozen=True, slots=True, kw_only=True)
class ConfirmedSnapshot:
    """Human-verified facts only; never contains proposed or rejected values."""

    snapshot_id: str
    company_id: str
    created_at: datetime
    fields: dict[str, tuple[ConfirmedField, ...]]
    domains: tuple[str, ...]

    @property
    def field_count(self) -> int:
        return sum(len(group) for group in self.fields.values())

    def to_payload(self) -> dict[str, Any]:
        return {
            "snapshotId": self.snapshot_id,
            "companyId": self.company_id,
            "createdAt": self.created_at.isoformat(),
            "fieldCount": self.field_count,
            "fields": {
                domain: [item.to_payload() for item in group]
                for domain, group in self.fields.items()
            },
            "domains": list(self.domains),
        }


@dataclass(frozen=True, slots=True, kw_only=True)
class ReadinessScore:
    score: int
    confirmed_keys: tuple[str, ...] = ()
    proposed_keys: tuple[str, ...] = ()
    missing_keys: tuple[str, ...] = ()

    @property
    def can_synthesize(self) -> bool:
        # soft gate: two or more missing required inputs block downstream synthesis
        return len(self.missing_keys) < 2


@dataclass(slots=True, kw_only=True)
class FieldCounts:
    total: int = 0
    by_status: dict[FieldStatus, int] = field(default_factory=dict[FieldStatus, int])
    by_domain: dict[str, int] = field(default_factory=dict[str, int])

    @property
    def proposed(self) -> int:
        return self.by_status.get(FieldStatus.PROPOSED, 0)

    @property
    def confirmed(self) -> int:
        return self.by_status.get(FieldStatus.CONFIRMED, 0)

    @property
    def rejected(self) -> int:
        return self.by_status.get(FieldStatus.REJECTED, 0)


def build_confirmed_snapshot(
    company_id: str,
    fields: Iterable[ContextField],
    *,
    created_at: datetime,
) -> ConfirmedSnapshot:
    grouped: dict[str, list[ConfirmedField]] = defaultdict(list)
    for item in fields:
        if item.status is not FieldStatus.CONFIRMED:
            continue
        grouped[item.domain].append(
            ConfirmedField(
                key=item.key,
                value=item.value,
                source=item.source,
                confirmed_at=item.locked_at or item.updated_at,
                confirmed_by=item.locked_by,
            )
        )
    domains = tuple(sorted(grouped))
    return ConfirmedSnapshot(
        snapshot_id=f"snap_{uuid.uuid4().hex}",
        company_id=company_id,
        created_at=created_at,
        fields={
            domain: tuple(sorted(grouped[domain], key=lambda entry: entry.key))
            for domain in domains
        },
        domains=domains,
    )


def compute_readiness(
    fields: Mapping[str, ContextField],
    requirements: Iterable[ReadinessRequirement],
) -> ReadinessScore:
    """Weighted share of required keys that are confirmed; proposed ones count half."""

    achieved = 0.0
    total = 0.0
    confirmed: list[str] = []
    proposed: list[str] = []
    missing: list[str] = []
    for requirement in requirements:
        total += requirement.weight
        current = fields.get(requirement.key)
        if current is None or is_empty_value(current.value):
            missing.append(requirement.key)
        elif current.status is FieldStatus.CONFIRMED:
            achieved += requirement.weight
            confirmed.append(requirement.key)
        elif current.status is FieldStatus.PROPOSED:
            achieved += requirement.weight * 0.5
            proposed.append(requirement.key)
        else:
            missing.append(requirement.key)

    score = round_half_up(achieved / total * 100) if total > 0 else 0
    return ReadinessScore(
        score=score,
        confirmed_keys=tuple(confirmed),
        proposed_keys=tuple(proposed),
        missing_keys=tuple(missing),
    )


def count_fields(fields: Iterable[ContextField]) -> FieldCounts:
    counts = FieldCounts()
    for item in fields:
        counts.total += 1
        counts.by_status[item.status] = counts.by_status.get(item.status, 0) + 1
        counts.by_domain[item.domain] = counts.by_domain.get(item.domain, 0) + 1
    return counts
