"""Field merge engine: arbitration, alternatives, cooldown and the FieldStore."""

from __future__ import annotations

from .alternatives import AlternativesManager
from .arbiter import MergeDecision, can_propose
from .cooldown import CooldownStore, CooldownThrottle, InMemoryCooldownStore
from .store import FieldStore, validate_candidate
from .views import (
    ConfirmedField,
    ConfirmedSnapshot,
    FieldCounts,
    ReadinessScore,
    build_confirmed_snapshot,
    compute_readiness,
    count_fields,
)

__all__ = [
    "AlternativesManager",
    "ConfirmedField",
    "ConfirmedSnapshot",
    "CooldownStore",
    "CooldownThrottle",
    "FieldCounts",
    "FieldStore",
    "InMemoryCooldownStore",
    "MergeDecision",
    "ReadinessScore",
    "build_confirmed_snapshot",
    "can_propose",
    "compute_readiness",
    "count_fields",
    "validate_candidate",
]
