"""Bounded, ranked storage of runner-up values per field."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from contextmerge.config import MAX_ALTERNATIVES
from contextmerge.domain.sources import SourcePriority

if TYPE_CHECKING:
    from contextmerge.domain.model import Alternative, JSONValue

log = logging.getLogger(__name__)


class AlternativesManager:
    """Rank alternatives by (source priority, confidence, recency), best first.

    Exact ties on all three fall back to ascending ``source_id`` so ordering never
    depends on insertion order.
    """

    def __init__(
        self,
        priorities: SourcePriority | None = None,
        *,
        max_alternatives: int = MAX_ALTERNATIVES,
    ) -> None:
        self.priorities = priorities or SourcePriority()
        self.max_alternatives = max_alternatives

    def rank(self, alternatives: list[Alternative], domain: str) -> list[Alternative]:
        def sort_key(alt: Alternative) -> tuple[int, float, float, str]:
            return (
                -self.priorities.priority_of(alt.source_lab, domain),
                -alt.confidence,
                -alt.added_at.timestamp(),
                alt.source_id,
            )

        return sorted(alternatives, key=sort_key)

    def add(
        self,
        alternatives: list[Alternative],
        candidate: Alternative,
        domain: str,
    ) -> list[Alternative]:
        """Return a new ranked list holding ``candidate``, trimmed to the cap.

        An entry with the same value and source is replaced rather than duplicated.
        """

        kept = [
            alt
            for alt in alternatives
            if not alt.same_origin(candidate.value, candidate.source_lab)
        ]
        kept.append(candidate)
        ranked = self.rank(kept, domain)
        for evicted in ranked[self.max_alternatives :]:
            log.debug(
                "Evicting alternative from %s (source=%s, confidence=%.2f)",
                domain,
                evicted.source_lab,
                evicted.confidence,
            )
        return ranked[: self.max_alternatives]

    @staticmethod
    def discard(
        alternatives: list[Alternative],
        value: JSONValue,
        source: str,
    ) -> list[Alternative]:
        return [alt for alt in alternatives if not alt.same_origin(value, source)]

    @staticmethod
    def contains(alternatives: list[Alternative], value: JSONValue, source: str) -> bool:
        return any(alt.same_origin(value, source) for alt in alternatives)
