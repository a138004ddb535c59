"""Tunables for the merge engine (alternatives cap, cooldown window, readiness)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from .env import env_int
from .errors import ConfigurationError

MAX_ALTERNATIVES: Final[int] = 5
MIN_COOLDOWN_SECONDS: Final[int] = 30
MAX_COOLDOWN_SECONDS: Final[int] = 120
DEFAULT_COOLDOWN_SECONDS: Final[int] = 60
REGRESSION_THRESHOLD_POINTS: Final[int] = 10


@dataclass(frozen=True, slots=True)
class ReadinessRequirement:
    """A required field key and its share of the readiness score."""

    key: str
    weight: float = 1.0
    label: str | None = None


DEFAULT_READINESS_REQUIREMENTS: Final[tuple[ReadinessRequirement, ...]] = (
    ReadinessRequirement(key="identity.businessModel", weight=1.0, label="Model"),
    ReadinessRequirement(key="productOffer.primaryProducts", weight=1.0, label="Offering"),
    ReadinessRequirement(key="audience.primaryAudience", weight=1.0, label="Audience"),
    ReadinessRequirement(key="brand.positioning", weight=0.9, label="Value Prop"),
)


@dataclass(frozen=True, slots=True)
class EngineConfig:
    max_alternatives: int = MAX_ALTERNATIVES
    default_cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS
    regression_threshold: int = REGRESSION_THRESHOLD_POINTS
    readiness_requirements: tuple[ReadinessRequirement, ...] = field(
        default=DEFAULT_READINESS_REQUIREMENTS
    )

    def __post_init__(self) -> None:
        if not 1 <= self.max_alternatives <= MAX_ALTERNATIVES:
            raise ConfigurationError(
                f"max_alternatives must be between 1 and {MAX_ALTERNATIVES}, "
                f"got {self.max_alternatives}"
            )
        if self.regression_threshold < 1:
            raise ConfigurationError("regression_threshold must be at least 1")
        for requirement in self.readiness_requirements:
            if requirement.weight <= 0:
                raise ConfigurationError(
                    f"Readiness weight for {requirement.key} must be positive"
                )


def get_engine_config() -> EngineConfig:
    """Build the engine configuration, honouring environment overrides."""

    return EngineConfig(
        max_alternatives=env_int("CONTEXTMERGE_MAX_ALTERNATIVES", MAX_ALTERNATIVES, minimum=1),
        default_cooldown_seconds=env_int(
            "CONTEXTMERGE_DEFAULT_COOLDOWN_SECONDS", DEFAULT_COOLDOWN_SECONDS, minimum=0
        ),
        regression_threshold=env_int(
            "CONTEXTMERGE_REGRESSION_THRESHOLD", REGRESSION_THRESHOLD_POINTS, minimum=1
        ),
    )
