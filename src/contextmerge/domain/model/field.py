"""Context fields, their retained alternatives, and incoming proposals.

A field is addressed by a dotted key ``<domain>.<factName>``; the domain is always
derived from the key prefix and never stored separately.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, cast

from contextmerge.common.clock import ensure_utc, utc_now
from contextmerge.domain.model.enums import FieldStatus

type JSONValue = str | int | float | bool | list[JSONValue] | dict[str, JSONValue] | None


def domain_of(key: str) -> str:
    """Return the domain prefix of a dotted field key (``""`` if there is none)."""

    head, sep, _ = key.partition(".")
    return head if sep else ""


def is_empty_value(value: JSONValue) -> bool:
    """Whether a value carries no information (None, blank string, empty container)."""

    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


@dataclass(frozen=True, slots=True, kw_only=True)
class EvidenceRef:
    """Pointer back into the producer output that supports a value."""

    raw_path: str | None = None
    snippet: str | None = None
    url: str | None = None

    def to_payload(self) -> dict[str, str]:
        payload: dict[str, str] = {}
        if self.raw_path is not None:
            payload["rawPath"] = self.raw_path
        if self.snippet is not None:
            payload["snippet"] = self.snippet
        if self.url is not None:
            payload["url"] = self.url
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> EvidenceRef:
        return cls(
            raw_path=payload.get("rawPath"),
            snippet=payload.get("snippet"),
            url=payload.get("url"),
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class ProposalCandidate:
    """One producer's attempt to set a field. Never persisted as-is."""

    key: str
    value: JSONValue
    source: str
    source_id: str
    timestamp: datetime = field(default_factory=utc_now)
    confidence: float | None = None
    evidence: tuple[EvidenceRef, ...] = ()

    @property
    def domain(self) -> str:
        return domain_of(self.key)

    @property
    def effective_confidence(self) -> float:
        # a missing confidence is maximally uncertain
        return 0.0 if self.confidence is None else self.confidence


@dataclass(frozen=True, slots=True, kw_only=True)
class Alternative:
    """A retained value that was proposed but not adopted."""

    value: JSONValue
    confidence: float
    source_lab: str
    source_id: str
    added_at: datetime
    evidence_refs: tuple[EvidenceRef, ...] = ()

    def same_origin(self, value: JSONValue, source: str) -> bool:
        return self.source_lab == source and self.value == value

    def to_payload(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "confidence": self.confidence,
            "sourceLab": self.source_lab,
            "sourceId": self.source_id,
            "addedAt": self.added_at.isoformat(),
            "evidenceRefs": [ref.to_payload() for ref in self.evidence_refs],
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Alternative:
        refs = cast(list[dict[str, Any]], payload.get("evidenceRefs") or [])
        return cls(
            value=payload.get("value"),
            confidence=float(payload.get("confidence", 0.0)),
            source_lab=str(payload["sourceLab"]),
            source_id=str(payload.get("sourceId", "")),
            added_at=ensure_utc(datetime.fromisoformat(payload["addedAt"])),
            evidence_refs=tuple(EvidenceRef.from_payload(ref) for ref in refs),
        )

    @classmethod
    def from_candidate(cls, candidate: ProposalCandidate) -> Alternative:
        return cls(
            value=candidate.value,
            confidence=candidate.effective_confidence,
            source_lab=candidate.source,
            source_id=candidate.source_id,
            added_at=ensure_utc(candidate.timestamp),
            evidence_refs=candidate.evidence,
        )


@dataclass(slots=True, kw_only=True)
class ContextField:
    """One fact slot of a company profile."""

    key: str
    value: JSONValue
    status: FieldStatus
    source: str
    source_id: str
    confidence: float
    updated_at: datetime
    revision: int = 1
    alternatives: list[Alternative] = field(default_factory=list["Alternative"])
    evidence: tuple[EvidenceRef, ...] = ()
    rejected_source_id: str | None = None
    rejected_at: datetime | None = None
    rejected_reason: str | None = None
    locked_at: datetime | None = None
    locked_by: str | None = None
    previous_value: JSONValue = None
    previous_source: str | None = None

    @property
    def domain(self) -> str:
        return domain_of(self.key)

    @property
    def is_confirmed(self) -> bool:
        return self.status is FieldStatus.CONFIRMED

    def copy(self) -> ContextField:
        """Return an independent copy; values are JSON trees and get deep-copied."""

        return replace(
            self,
            value=_copy_json(self.value),
            previous_value=_copy_json(self.previous_value),
            alternatives=list(self.alternatives),
        )

    def as_alternative(self) -> Alternative:
        return Alternative(
            value=self.value,
            confidence=self.confidence,
            source_lab=self.source,
            source_id=self.source_id,
            added_at=self.updated_at,
            evidence_refs=self.evidence,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "domain": self.domain,
            "value": self.value,
            "status": self.status.value,
            "source": self.source,
            "sourceId": self.source_id,
            "confidence": self.confidence,
            "updatedAt": self.updated_at.isoformat(),
            "revision": self.revision,
            "alternatives": [alt.to_payload() for alt in self.alternatives],
            "evidence": [ref.to_payload() for ref in self.evidence],
            "rejectedSourceId": self.rejected_source_id,
            "rejectedAt": _iso(self.rejected_at),
            "rejectedReason": self.rejected_reason,
            "lockedAt": _iso(self.locked_at),
            "lockedBy": self.locked_by,
            "previousValue": self.previous_value,
            "previousSource": self.previous_source,
        }


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _copy_json(value: JSONValue) -> JSONValue:
    if isinstance(value, list):
        return [_copy_json(item) for item in value]
    if isinstance(value, dict):
        return {name: _copy_json(item) for name, item in value.items()}
    return value
