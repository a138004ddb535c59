"""Turn a producer's raw output into proposal candidates and a quality input."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from contextmerge.common.clock import utc_now
from contextmerge.domain.extraction.contracts import (
    ExtractionFailure,
    ExtractionResult,
    LocatedRoot,
)
from contextmerge.domain.extraction.producers import PRODUCERS, CandidateBuilder
from contextmerge.domain.extraction.strategies import DEFAULT_STRATEGIES

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from contextmerge.common.clock import Clock
    from contextmerge.domain.extraction.producers import ProducerOutput
    from contextmerge.domain.extraction.strategies import ExtractionStrategy

log = logging.getLogger(__name__)

_MAX_REPORTED_KEYS = 10


class CandidateExtractor:
    """Try every strategy against every schema registered for a lab, in order.

    The first strategy that locates a payload matching a schema's signature and
    validates against it wins. Runs that match nothing produce an explicit failed
    result carrying the top-level keys that were seen.
    """

    def __init__(
        self,
        *,
        producers: Mapping[str, Sequence[type[ProducerOutput]]] = PRODUCERS,
        strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES,
        clock: Clock = utc_now,
    ) -> None:
        self.producers = producers
        self.strategies = tuple(strategies)
        self._clock = clock

    def extract(
        self,
        lab_key: str,
        raw: object,
        *,
        run_id: str,
        company_id: str,
        timestamp: datetime | None = None,
    ) -> ExtractionResult:
        schemas = self.producers.get(lab_key)
        if not schemas:
            log.warning("No producer schema registered for lab %r (run %s)", lab_key, run_id)
            return ExtractionResult(
                lab_key=lab_key, failure_reason=ExtractionFailure.UNKNOWN_PRODUCER
            )

        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except ValueError:
                log.warning("Run %s of %s is not valid JSON", run_id, lab_key)
                return ExtractionResult(
                    lab_key=lab_key, failure_reason=ExtractionFailure.INVALID_JSON
                )

        if not isinstance(raw, Mapping):
            log.warning("Run %s of %s is not a JSON object", run_id, lab_key)
            return ExtractionResult(lab_key=lab_key, failure_reason=ExtractionFailure.UNKNOWN_SHAPE)

        payload: Mapping[str, Any] = raw
        attempts: list[str] = []
        invalid = False
        for strategy in self.strategies:
            for schema in schemas:
                located = strategy(payload, schema)
                if not isinstance(located, LocatedRoot):
                    attempts.append(located.reason)
                    continue
                try:
                    output = schema.model_validate(located.payload)
                except ValidationError as exc:
                    invalid = True
                    attempts.append(
                        f"{located.path}: {schema.__name__} rejected payload "
                        f"({exc.error_count()} errors)"
                    )
                    log.warning(
                        "Payload at %s of %s run %s failed %s validation: %s",
                        located.path,
                        lab_key,
                        run_id,
                        schema.__name__,
                        exc,
                    )
                    continue
                return self._build(
                    output,
                    path=located.path,
                    run_id=run_id,
                    company_id=company_id,
                    timestamp=timestamp,
                    attempts=attempts,
                )

        top_level_keys = tuple(sorted(payload))[:_MAX_REPORTED_KEYS]
        reason = ExtractionFailure.INVALID_PAYLOAD if invalid else ExtractionFailure.UNKNOWN_SHAPE
        log.warning(
            "Could not extract %s run %s (%s); top-level keys: %s",
            lab_key,
            run_id,
            reason,
            ", ".join(top_level_keys) or "<none>",
        )
        return ExtractionResult(
            lab_key=lab_key,
            failure_reason=reason,
            top_level_keys=top_level_keys,
            attempts=tuple(attempts),
        )

    def _build(
        self,
        output: ProducerOutput,
        *,
        path: str,
        run_id: str,
        company_id: str,
        timestamp: datetime | None,
        attempts: list[str],
    ) -> ExtractionResult:
        builder = CandidateBuilder(
            source=output.SOURCE,
            source_id=run_id,
            timestamp=timestamp if timestamp is not None else self._clock(),
        )
        output.to_candidates(builder)
        quality_input = output.to_quality_input(run_id=run_id, company_id=company_id)
        log.debug(
            "Extracted %d candidates from %s run %s via %s",
            len(builder.candidates),
            output.LAB_KEY,
            run_id,
            path,
        )
        return ExtractionResult(
            lab_key=output.LAB_KEY,
            source=output.SOURCE,
            candidates=tuple(builder.candidates),
            quality_input=quality_input,
            extraction_path=path,
            attempts=tuple(attempts),
        )
