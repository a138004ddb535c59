"""Domain ports (persistence contracts)."""

from __future__ import annotations

from .persistence import FieldRepository, QualityScoreRepository

__all__ = ["FieldRepository", "QualityScoreRepository"]
