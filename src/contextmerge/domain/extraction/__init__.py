"""Candidate extraction from raw producer output."""

from __future__ import annotations

from contextmerge.domain.extraction.contracts import (
    ExtractionFailure,
    ExtractionResult,
    LocatedRoot,
    NotApplicable,
)
from contextmerge.domain.extraction.extractor import CandidateExtractor
from contextmerge.domain.extraction.producers import PRODUCERS, ProducerOutput, RawProducerOutput
from contextmerge.domain.extraction.strategies import DEFAULT_STRATEGIES, ExtractionStrategy

__all__ = [
    "DEFAULT_STRATEGIES",
    "PRODUCERS",
    "CandidateExtractor",
    "ExtractionFailure",
    "ExtractionResult",
    "ExtractionStrategy",
    "LocatedRoot",
    "NotApplicable",
    "ProducerOutput",
    "RawProducerOutput",
]
