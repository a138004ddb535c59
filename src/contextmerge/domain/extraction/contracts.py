"""Result types shared by extraction strategies and the candidate extractor."""

from __future__ import annotations

from collections.abc import Mapping  # noqa: TC003
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from contextmerge.domain.model import LabQualityInput, ProposalCandidate


class ExtractionFailure(StrEnum):
    """Why a producer run yielded no candidates."""

    INVALID_JSON = "invalid_json"
    UNKNOWN_PRODUCER = "unknown_producer"
    UNKNOWN_SHAPE = "unknown_shape"
    INVALID_PAYLOAD = "invalid_payload"


@dataclass(frozen=True, slots=True)
class NotApplicable:
    """A strategy found nothing it recognises at its path."""

    reason: str


@dataclass(frozen=True, slots=True, kw_only=True)
class LocatedRoot:
    path: str
    payload: Mapping[str, Any]


@dataclass(frozen=True, slots=True, kw_only=True)
class ExtractionResult:
    """Outcome of one extraction; ``extraction_path`` or ``failure_reason`` is always set."""

    lab_key: str
    source: str | None = None
    candidates: tuple[ProposalCandidate, ...] = ()
    quality_input: LabQualityInput | None = None
    extraction_path: str | None = None
    failure_reason: ExtractionFailure | None = None
    top_level_keys: tuple[str, ...] = ()
    attempts: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.failure_reason is None
