"""Deterministic quality scoring for producer ("lab") runs."""

from __future__ import annotations

from .history import QualityScoreHistory
from .metrics import (
    METRIC_NAMES,
    METRIC_THRESHOLDS,
    compute_deduplicated_signal_density,
    compute_evidence_anchoring,
    compute_persona_diagnostic_quality,
    compute_recommendation_traceability,
    compute_specificity,
)
from .scoring import (
    DEFAULT_METRIC_WEIGHTS,
    PERSONA_METRIC_WEIGHTS,
    build_warnings,
    composite_score,
    compute_lab_quality_score,
    detect_regression,
    quality_band,
    select_weights,
)
from .signals import GENERIC_PHRASES, canonical_hash, contains_generic_phrase, normalize_text

__all__ = [
    "DEFAULT_METRIC_WEIGHTS",
    "GENERIC_PHRASES",
    "METRIC_NAMES",
    "METRIC_THRESHOLDS",
    "PERSONA_METRIC_WEIGHTS",
    "QualityScoreHistory",
    "build_warnings",
    "canonical_hash",
    "composite_score",
    "compute_deduplicated_signal_density",
    "compute_evidence_anchoring",
    "compute_lab_quality_score",
    "compute_persona_diagnostic_quality",
    "compute_recommendation_traceability",
    "compute_specificity",
    "contains_generic_phrase",
    "detect_regression",
    "normalize_text",
    "quality_band",
    "select_weights",
]
