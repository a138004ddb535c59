"""Text normalisation used by the quality metrics."""

from __future__ import annotations

import hashlib
import re
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterable

_WHITESPACE = re.compile(r"\s+")

GENERIC_PHRASES: Final[tuple[str, ...]] = (
    "improve ux",
    "improve the ux",
    "improve user experience",
    "enhance user experience",
    "strengthen funnel",
    "strengthen the funnel",
    "clarify value proposition",
    "clarify the value proposition",
    "improve conversion",
    "increase conversions",
    "better messaging",
    "improve messaging",
    "optimize the website",
    "improve engagement",
    "build trust",
    "improve seo",
)


def normalize_text(text: str) -> str:
    return _WHITESPACE.sub(" ", text.strip()).casefold()


def canonical_hash(text: str) -> str:
    """Stable fingerprint of finding text, insensitive to case and whitespace runs."""

    digest = hashlib.sha1(normalize_text(text).encode("utf-8"), usedforsecurity=False)
    return digest.hexdigest()[:16]


def contains_generic_phrase(text: str, phrases: Iterable[str] = GENERIC_PHRASES) -> bool:
    if not text:
        return False
    normalized = normalize_text(text)
    return any(normalize_text(phrase) in normalized for phrase in phrases)


def excerpt(text: str, limit: int = 80) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
