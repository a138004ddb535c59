"""Domain model for context fields, proposals and quality scores."""

from __future__ import annotations

from .enums import (
    Decision,
    FieldStatus,
    MetricId,
    OutcomeKind,
    ProposalReason,
    QualityBand,
    WarningSeverity,
    WarningType,
)
from .field import (
    Alternative,
    ContextField,
    EvidenceRef,
    JSONValue,
    ProposalCandidate,
    domain_of,
    is_empty_value,
)
from .outcome import BatchOutcome, ProposalOutcome, StatusChangeResult
from .quality import (
    LabQualityInput,
    LabQualityScore,
    MetricDetails,
    MetricResult,
    PersonaJourney,
    QualityFinding,
    QualityHistoryReport,
    QualityRecommendation,
    QualityWarning,
    RegressionInfo,
)

__all__ = [
    "Alternative",
    "BatchOutcome",
    "ContextField",
    "Decision",
    "EvidenceRef",
    "FieldStatus",
    "JSONValue",
    "LabQualityInput",
    "LabQualityScore",
    "MetricDetails",
    "MetricId",
    "MetricResult",
    "OutcomeKind",
    "PersonaJourney",
    "ProposalCandidate",
    "ProposalOutcome",
    "ProposalReason",
    "QualityBand",
    "QualityFinding",
    "QualityHistoryReport",
    "QualityRecommendation",
    "QualityWarning",
    "RegressionInfo",
    "StatusChangeResult",
    "WarningSeverity",
    "WarningType",
    "domain_of",
    "is_empty_value",
]
