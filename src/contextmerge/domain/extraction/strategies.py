"""Ordered strategies for locating a producer payload inside a stored run.

Producers have wrapped their output in several envelopes over time. Each
strategy looks at exactly one path and either returns the payload found there
or says why it does not apply; nothing here guesses.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from contextmerge.domain.extraction.contracts import LocatedRoot, NotApplicable

if TYPE_CHECKING:
    from contextmerge.domain.extraction.producers import ProducerOutput


def as_mapping(value: object) -> Mapping[str, Any] | None:
    """Return ``value`` as a JSON object, decoding it first if it is a JSON string."""

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return None
    return value if isinstance(value, Mapping) else None


@dataclass(frozen=True, slots=True)
class ExtractionStrategy:
    name: str
    path: tuple[str, ...] = ()

    def locate(self, raw: Mapping[str, Any]) -> Mapping[str, Any] | None:
        node: Mapping[str, Any] | None = raw
        for segment in self.path:
            if node is None:
                return None
            node = as_mapping(node.get(segment))
        return node

    def __call__(
        self, raw: Mapping[str, Any], model: type[ProducerOutput]
    ) -> LocatedRoot | NotApplicable:
        node = self.locate(raw)
        if node is None:
            return NotApplicable(f"{self.name}: no object at this path")
        if not model.matches(node):
            return NotApplicable(f"{self.name}: no {model.__name__} signature fields")
        return LocatedRoot(path=self.name, payload=node)


DIRECT: Final = ExtractionStrategy("direct")

DEFAULT_STRATEGIES: Final[tuple[ExtractionStrategy, ...]] = (
    DIRECT,
    ExtractionStrategy("rawEvidence.labResultV4", ("rawEvidence", "labResultV4")),
    ExtractionStrategy("result", ("result",)),
    ExtractionStrategy("data", ("data",)),
    ExtractionStrategy("dataJson", ("dataJson",)),
    ExtractionStrategy("output", ("output",)),
    ExtractionStrategy("labResult", ("labResult",)),
    ExtractionStrategy("evidencePack.websiteLabV4", ("evidencePack", "websiteLabV4")),
)
