"""Schemas for every known producer family, keyed by lab.

A lab may ship more than one payload generation; they are listed newest first and
the first whose signature matches a located root wins.
"""

from __future__ import annotations

from typing import Final

from contextmerge.domain.extraction.producers.audience import AudienceLabOutput
from contextmerge.domain.extraction.producers.base import CandidateBuilder, ProducerOutput
from contextmerge.domain.extraction.producers.brand import BrandLabOutput
from contextmerge.domain.extraction.producers.competition import (
    CompetitionLabOutput,
    CompetitionV4Output,
)
from contextmerge.domain.extraction.producers.gap import GapPlanOutput
from contextmerge.domain.extraction.producers.website import WebsiteLabOutput

type RawProducerOutput = (
    WebsiteLabOutput
    | CompetitionV4Output
    | CompetitionLabOutput
    | BrandLabOutput
    | GapPlanOutput
    | AudienceLabOutput
)

PRODUCERS: Final[dict[str, tuple[type[ProducerOutput], ...]]] = {
    WebsiteLabOutput.LAB_KEY: (WebsiteLabOutput,),
    CompetitionV4Output.LAB_KEY: (CompetitionV4Output, CompetitionLabOutput),
    BrandLabOutput.LAB_KEY: (BrandLabOutput,),
    GapPlanOutput.LAB_KEY: (GapPlanOutput,),
    AudienceLabOutput.LAB_KEY: (AudienceLabOutput,),
}

__all__ = [
    "PRODUCERS",
    "AudienceLabOutput",
    "BrandLabOutput",
    "CandidateBuilder",
    "CompetitionLabOutput",
    "CompetitionV4Output",
    "GapPlanOutput",
    "ProducerOutput",
    "RawProducerOutput",
    "WebsiteLabOutput",
]
