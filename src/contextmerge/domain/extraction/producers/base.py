"""Shared pieces for producer output schemas.

Producer payloads are loosely shaped JSON. Every schema ignores unknown keys and
every list field silently drops items of the wrong kind, so one odd entry never
sinks an entire run.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Annotated, Any, ClassVar

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

from contextmerge.domain.model import EvidenceRef, ProposalCandidate, is_empty_value
from contextmerge.domain.quality.signals import canonical_hash

if TYPE_CHECKING:
    from datetime import datetime

    from contextmerge.domain.model import JSONValue, LabQualityInput


class ProducerModel(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class SnakeCaseModel(BaseModel):
    """For payload sections that producers emit with snake_case keys."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


def mappings_only(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, list):
        return [item for item in value if isinstance(item, Mapping)]
    return value


def strings_only(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str) and item.strip()]
    return value


def strings_and_mappings(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, list):
        return [
            item
            for item in value
            if isinstance(item, Mapping) or (isinstance(item, str) and item.strip())
        ]
    return value


StringList = Annotated[list[str], BeforeValidator(strings_only)]


def first_text(*values: object) -> str:
    """First non-blank string among ``values`` (``""`` if none)."""

    for value in values:
        if isinstance(value, str) and value.strip():
            return value
    return ""


def scalar_id(value: object) -> str | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, str)):
        text = str(value).strip()
        return text or None
    return None


def issue_link(issue_number: object) -> str | None:
    """Map a 1-based issue number onto the 0-based finding id it refers to."""

    ident = scalar_id(issue_number)
    if ident is None:
        return None
    try:
        return f"finding-{int(ident) - 1}"
    except ValueError:
        return None


class FindingCounter:
    """Hands out ``finding-<n>`` / ``rec-<n>`` ids in emission order."""

    def __init__(self) -> None:
        self.findings = 0
        self.recommendations = 0

    def next_finding(self) -> str:
        ident = f"finding-{self.findings}"
        self.findings += 1
        return ident

    def next_recommendation(self) -> str:
        ident = f"rec-{self.recommendations}"
        self.recommendations += 1
        return ident


def fingerprint(*parts: str) -> str:
    return canonical_hash("".join(parts))


class CandidateBuilder:
    """Collects candidates for one producer run, skipping empty values."""

    def __init__(self, *, source: str, source_id: str, timestamp: datetime) -> None:
        self.source = source
        self.source_id = source_id
        self.timestamp = timestamp
        self.candidates: list[ProposalCandidate] = []

    def add(
        self,
        key: str,
        value: JSONValue,
        confidence: float,
        *,
        raw_path: str | None = None,
        snippet: str | None = None,
        url: str | None = None,
    ) -> None:
        if is_empty_value(value):
            return
        evidence: tuple[EvidenceRef, ...] = ()
        if raw_path or snippet or url:
            evidence = (EvidenceRef(raw_path=raw_path, snippet=snippet, url=url),)
        self.candidates.append(
            ProposalCandidate(
                key=key,
                value=value,
                source=self.source,
                source_id=self.source_id,
                timestamp=self.timestamp,
                confidence=confidence,
                evidence=evidence,
            )
        )


class ProducerOutput(ProducerModel, ABC):
    """One known producer family. New producers subclass this and register."""

    LAB_KEY: ClassVar[str]
    SOURCE: ClassVar[str]
    SIGNATURE_FIELDS: ClassVar[tuple[str, ...]]

    @classmethod
    def matches(cls, payload: Mapping[str, Any]) -> bool:
        return any(name in payload for name in cls.SIGNATURE_FIELDS)

    @abstractmethod
    def to_candidates(self, builder: CandidateBuilder) -> None: ...

    @abstractmethod
    def to_quality_input(self, *, run_id: str, company_id: str) -> LabQualityInput: ...
