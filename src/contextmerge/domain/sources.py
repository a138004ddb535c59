"""Static ranking of proposal sources.

Human sources outrank every automated producer in every domain. Automated producers
are ranked per domain by an ordered table (highest first); a producer the table does
not list, or a domain the table does not know, ranks 0.
"""

from __future__ import annotations

import sys
from enum import StrEnum, unique
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping


@unique
class HumanSource(StrEnum):
    """The closed set of human sources. Extending it weakens the trust boundary."""

    USER = "user"
    MANUAL = "manual"
    QBR = "qbr"
    STRATEGY = "strategy"


HUMAN_PRIORITY: Final[int] = sys.maxsize
HUMAN_SOURCES: Final[frozenset[str]] = frozenset(source.value for source in HumanSource)

type PriorityTable = Mapping[str, tuple[str, ...]]

DEFAULT_DOMAIN_PRIORITIES: Final[dict[str, tuple[str, ...]]] = {
    "identity": (
        "gap_heavy",
        "gap_full",
        "gap_ia",
        "setup_wizard",
        "fcb",
        "airtable",
        "brain",
        "inferred",
    ),
    "brand": ("brand_lab", "gap_heavy", "gap_full", "gap_ia", "fcb", "brain", "inferred"),
    "audience": ("audience_lab", "gap_heavy", "gap_full", "gap_ia", "fcb", "brain", "inferred"),
    "website": (
        "website_lab",
        "ux_lab",
        "gap_heavy",
        "gap_full",
        "gap_ia",
        "fcb",
        "brain",
        "inferred",
    ),
    "content": (
        "gap_heavy",
        "content_lab",
        "seo_lab",
        "gap_full",
        "gap_ia",
        "fcb",
        "brain",
        "inferred",
    ),
    "seo": (
        "seo_lab",
        "gap_heavy",
        "content_lab",
        "gap_full",
        "gap_ia",
        "fcb",
        "brain",
        "inferred",
    ),
    "performanceMedia": (
        "media_lab",
        "media_cockpit",
        "media_memory",
        "demand_lab",
        "gap_heavy",
        "gap_full",
        "analytics_gads",
        "brain",
        "inferred",
    ),
    "budgetOps": (
        "media_lab",
        "media_cockpit",
        "ops_lab",
        "media_memory",
        "airtable",
        "brain",
        "inferred",
    ),
    "objectives": (
        "gap_heavy",
        "gap_full",
        "gap_ia",
        "setup_wizard",
        "fcb",
        "brain",
        "inferred",
    ),
    "productOffer": ("gap_heavy", "gap_full", "gap_ia", "fcb", "brain", "inferred"),
    "operationalConstraints": ("ops_lab", "gap_heavy", "airtable", "brain", "inferred"),
    "storeRisk": ("ops_lab", "gap_heavy", "airtable", "brain", "inferred"),
    "historical": (
        "media_lab",
        "media_cockpit",
        "media_memory",
        "analytics_ga4",
        "analytics_gads",
        "gap_heavy",
        "brain",
        "inferred",
    ),
    "historyRefs": (
        "website_lab",
        "brand_lab",
        "audience_lab",
        "media_lab",
        "gap_heavy",
        "gap_full",
        "gap_ia",
    ),
    "digitalInfra": ("website_lab", "gap_heavy", "gap_full", "gap_ia", "fcb", "brain", "inferred"),
    "ops": ("ops_lab", "gap_heavy", "airtable", "brain", "inferred"),
    "creative": (
        "gap_heavy",
        "brand_lab",
        "content_lab",
        "gap_full",
        "gap_ia",
        "fcb",
        "brain",
        "inferred",
    ),
    "competitive": (
        "competition_v4",
        "competition_lab",
        "gap_heavy",
        "gap_full",
        "gap_ia",
        "brand_lab",
        "fcb",
        "brain",
        "inferred",
    ),
    "social": ("gap_ia", "gap_heavy", "gap_full", "fcb", "brain", "inferred"),
    "capabilities": ("brain",),
}

SOURCE_DISPLAY_NAMES: Final[dict[str, str]] = {
    "user": "User Edit",
    "manual": "Manual Entry",
    "qbr": "QBR",
    "strategy": "Strategy",
    "brand_lab": "Brand Lab",
    "audience_lab": "Audience Lab",
    "media_lab": "Media Lab",
    "website_lab": "Website Lab",
    "ux_lab": "UX Lab",
    "seo_lab": "SEO Lab",
    "content_lab": "Content Lab",
    "demand_lab": "Demand Lab",
    "ops_lab": "Ops Lab",
    "competition_lab": "Competition Lab",
    "competition_v4": "Competition V4",
    "gap_heavy": "GAP Heavy",
    "gap_full": "GAP Full",
    "gap_ia": "GAP IA",
    "fcb": "Auto-fill",
    "brain": "AI Brain",
    "inferred": "AI Inferred",
    "airtable": "Airtable",
    "setup_wizard": "Setup Wizard",
}


def is_human(source: str) -> bool:
    return source in HUMAN_SOURCES


class SourcePriority:
    """Per-domain ranking of sources; construct with a custom table to override."""

    def __init__(self, table: PriorityTable | None = None) -> None:
        self._table: dict[str, tuple[str, ...]] = dict(
            DEFAULT_DOMAIN_PRIORITIES if table is None else table
        )
        for domain, ranked in self._table.items():
            leaked = HUMAN_SOURCES.intersection(ranked)
            if leaked:
                # human sources rank above the table; listing them would demote them
                self._table[domain] = tuple(src for src in ranked if src not in leaked)

    @staticmethod
    def is_human(source: str) -> bool:
        return is_human(source)

    def priority_of(self, source: str, domain: str) -> int:
        if is_human(source):
            return HUMAN_PRIORITY
        ranked = self._table.get(domain)
        if ranked is None or source not in ranked:
            return 0
        return len(ranked) - ranked.index(source)

    def authoritative_sources(self, domain: str, *, limit: int = 3) -> tuple[str, ...]:
        return self._table.get(domain, ())[:limit]

    def domains(self) -> tuple[str, ...]:
        return tuple(self._table)


def display_name(source: str) -> str:
    return SOURCE_DISPLAY_NAMES.get(source, source)
