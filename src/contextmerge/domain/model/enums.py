"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class FieldStatus(StrEnum):
    PROPOSED = "proposed"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class Decision(StrEnum):
    """Verdict of the merge arbiter for one incoming candidate."""

    ACCEPT = "accept"
    REJECT = "reject"
    ACCEPT_AS_ALTERNATIVE = "accept_as_alternative"


class OutcomeKind(StrEnum):
    """What a proposal actually did to the store, as recorded in the audit trail."""

    ACCEPTED = "accepted"
    ADDED_AS_ALTERNATIVE = "added_as_alternative"
    REJECTED = "rejected"
    DROPPED = "dropped"
    COOLDOWN = "cooldown"


class ProposalReason(StrEnum):
    # merge arbiter decision table
    NO_EXISTING = "no_existing"
    EXISTING_CONFIRMED = "existing_confirmed"
    EXISTING_REJECTED_SAME_SOURCE = "existing_rejected_same_source"
    EXISTING_REJECTED_DIFFERENT_SOURCE = "existing_rejected_different_source"
    HIGHER_PRIORITY_SOURCE = "higher_priority_source"
    LOWER_PRIORITY = "lower_priority"
    HIGHER_CONFIDENCE = "higher_confidence"
    LOW_CONFIDENCE = "low_confidence"
    SAME_PRIORITY_NEWER = "same_priority_newer"
    LOWER_OR_EQUAL_CONFIDENCE = "lower_or_equal_confidence"

    # malformed candidates
    MISSING_KEY = "missing_key"
    INVALID_KEY = "invalid_key"
    MISSING_VALUE = "missing_value"
    EMPTY_VALUE = "empty_value"
    INVALID_CONFIDENCE = "invalid_confidence"

    # store level
    COOLDOWN_ACTIVE = "cooldown_active"
    WRITE_CONFLICT = "write_conflict"
    HUMAN_EDIT = "human_edit"


class QualityBand(StrEnum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    WEAK = "Weak"
    POOR = "Poor"


class MetricId(StrEnum):
    EVIDENCE_ANCHORING = "evidence_anchoring"
    SPECIFICITY = "specificity"
    DEDUPLICATED_SIGNAL_DENSITY = "deduplicated_signal_density"
    PERSONA_DIAGNOSTIC_QUALITY = "persona_diagnostic_quality"
    RECOMMENDATION_TRACEABILITY = "recommendation_traceability"


class WarningType(StrEnum):
    LOW_EVIDENCE = "low_evidence"
    GENERIC_FINDINGS = "generic_findings"
    HIGH_DUPLICATION = "high_duplication"
    WEAK_PERSONAS = "weak_personas"
    ORPHAN_RECOMMENDATIONS = "orphan_recommendations"


class WarningSeverity(StrEnum):
    WARNING = "warning"
    ERROR = "error"
