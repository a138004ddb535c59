"""FieldStore: the per-company aggregate that owns context fields.

Responsibilities:
- validate incoming candidates and drop malformed ones without raising
- gate automated proposals behind the company cooldown
- ask the arbiter for a decision and commit it with compare-and-swap
- keep the audit trail of proposal outcomes
- expose read views (full map, review queue, confirmed snapshot, readiness)

Every write goes through the repository's ``compare_and_swap``. A lost race is
re-decided once against fresh state; a second loss is reported as a rejected
``write_conflict`` outcome instead of overwriting the other writer.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from contextmerge.common.clock import ensure_utc, utc_now
from contextmerge.config import EngineConfig
from contextmerge.domain.errors import HumanSourceRequiredError, StoreUnavailableError
from contextmerge.domain.merge.alternatives import AlternativesManager
from contextmerge.domain.merge.arbiter import MergeDecision, can_propose
from contextmerge.domain.merge.cooldown import CooldownThrottle
from contextmerge.domain.merge.views import (
    build_confirmed_snapshot,
    compute_readiness,
    count_fields,
)
from contextmerge.domain.model import (
    Alternative,
    BatchOutcome,
    ContextField,
    Decision,
    FieldStatus,
    OutcomeKind,
    ProposalCandidate,
    ProposalOutcome,
    ProposalReason,
    StatusChangeResult,
    is_empty_value,
)
from contextmerge.domain.sources import HumanSource, SourcePriority, is_human

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from contextmerge.common.clock import Clock
    from contextmerge.config import ReadinessRequirement
    from contextmerge.domain.merge.views import ConfirmedSnapshot, FieldCounts, ReadinessScore
    from contextmerge.domain.model import JSONValue
    from contextmerge.domain.ports import FieldRepository

log = logging.getLogger(__name__)

_CAS_ATTEMPTS = 2

_KIND_BY_DECISION: dict[Decision, OutcomeKind] = {
    Decision.ACCEPT: OutcomeKind.ACCEPTED,
    Decision.ACCEPT_AS_ALTERNATIVE: OutcomeKind.ADDED_AS_ALTERNATIVE,
    Decision.REJECT: OutcomeKind.REJECTED,
}


def validate_candidate(candidate: ProposalCandidate) -> ProposalReason | None:
    """Return why a candidate is malformed, or ``None`` if it can be arbitrated."""

    if not candidate.key or not candidate.key.strip():
        return ProposalReason.MISSING_KEY
    head, _, tail = candidate.key.partition(".")
    if not head or not tail:
        return ProposalReason.INVALID_KEY
    if candidate.value is None:
        return ProposalReason.MISSING_VALUE
    if is_empty_value(candidate.value):
        return ProposalReason.EMPTY_VALUE
    # also rejects nan, which fails both comparisons
    if candidate.confidence is not None and not 0.0 <= candidate.confidence <= 1.0:
        return ProposalReason.INVALID_CONFIDENCE
    return None


class FieldStore:
    def __init__(
        self,
        company_id: str,
        repository: FieldRepository,
        *,
        throttle: CooldownThrottle | None = None,
        priorities: SourcePriority | None = None,
        config: EngineConfig | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.company_id = company_id
        self.repository = repository
        self.config = config or EngineConfig()
        self.priorities = priorities or SourcePriority()
        self.throttle = throttle or CooldownThrottle(clock=clock)
        self.alternatives = AlternativesManager(
            self.priorities, max_alternatives=self.config.max_alternatives
        )
        self._clock = clock

    # Reads -------------------------------------------------------------------

    def fields(self) -> dict[str, ContextField]:
        return self.repository.load_fields(self.company_id)

    def field(self, key: str) -> ContextField | None:
        return self.repository.get_field(self.company_id, key)

    def proposed_fields(
        self,
        *,
        domain: str | None = None,
        source: str | None = None,
    ) -> list[ContextField]:
        """Review queue: proposed fields, most confident first, then most recent."""

        queue = [
            item
            for item in self.fields().values()
            if item.status is FieldStatus.PROPOSED
            and (domain is None or item.domain == domain)
            and (source is None or item.source == source)
        ]
        queue.sort(key=lambda item: (-item.confidence, -item.updated_at.timestamp()))
        return queue

    def confirmed_fields(self) -> list[ContextField]:
        confirmed = [item for item in self.fields().values() if item.is_confirmed]
        confirmed.sort(key=lambda item: (item.domain, item.key))
        return confirmed

    def confirmed_snapshot(self) -> ConfirmedSnapshot:
        return build_confirmed_snapshot(
            self.company_id, self.fields().values(), created_at=self._clock()
        )

    def readiness(
        self, requirements: Iterable[ReadinessRequirement] | None = None
    ) -> ReadinessScore:
        required = self.config.readiness_requirements if requirements is None else requirements
        return compute_readiness(self.fields(), required)

    def counts(self) -> FieldCounts:
        return count_fields(self.fields().values())

    def outcomes(self, *, key: str | None = None) -> list[ProposalOutcome]:
        return self.repository.list_outcomes(self.company_id, key=key)

    # Proposals ---------------------------------------------------------------

    def propose(self, candidate: ProposalCandidate) -> ProposalOutcome:
        """Arbitrate and commit one candidate, honouring the company cooldown."""

        invalid = validate_candidate(candidate)
        if invalid is not None:
            return self._drop(candidate, invalid)
        if not is_human(candidate.source):
            remaining = self.throttle.get_cooldown_remaining(self.company_id)
            if remaining is not None:
                return self._throttled(candidate, remaining)
        return self._arbitrate(candidate)

    def propose_batch(
        self,
        candidates: Iterable[ProposalCandidate],
        *,
        cooldown_seconds: float | None = None,
    ) -> BatchOutcome:
        """Apply a producer batch, or nothing at all if the company is cooling down.

        Automated batches claim the cooldown window before any field is touched. The
        claim is released again if the store turns out to be unavailable.
        """

        batch = list(candidates)
        automated = any(not is_human(candidate.source) for candidate in batch)
        claimed = False
        if automated:
            seconds = (
                self.config.default_cooldown_seconds
                if cooldown_seconds is None
                else cooldown_seconds
            )
            remaining = self.throttle.try_begin(self.company_id, seconds)
            if remaining is not None:
                log.warning(
                    "Cooldown active for %s (%ss left); skipping batch of %d",
                    self.company_id,
                    remaining,
                    len(batch),
                )
                outcomes = tuple(self._throttled(candidate, remaining) for candidate in batch)
                return BatchOutcome(
                    company_id=self.company_id,
                    outcomes=outcomes,
                    cooldown_remaining=remaining,
                )
            claimed = True

        results: list[ProposalOutcome] = []
        try:
            for candidate in batch:
                invalid = validate_candidate(candidate)
                if invalid is not None:
                    results.append(self._drop(candidate, invalid))
                    continue
                results.append(self._arbitrate(candidate))
        except StoreUnavailableError:
            if claimed:
                self.throttle.clear_cooldown(self.company_id)
            raise

        return BatchOutcome(company_id=self.company_id, outcomes=tuple(results))

    # Human actions -----------------------------------------------------------

    def confirm(
        self, keys: Iterable[str], *, confirmed_by: str | None = None
    ) -> StatusChangeResult:
        """Lock proposed fields as human-verified truth. Other statuses are skipped."""

        now = self._clock()

        def lock(current: ContextField) -> ContextField | None:
            if current.status is not FieldStatus.PROPOSED:
                return None
            return replace(
                current.copy(),
                status=FieldStatus.CONFIRMED,
                locked_at=now,
                locked_by=confirmed_by,
                revision=current.revision + 1,
            )

        result = self._change_status(keys, lock)
        if result.updated:
            log.info("Confirmed %d field(s) for %s", len(result.updated), self.company_id)
        return result

    def reject(self, keys: Iterable[str], *, reason: str | None = None) -> StatusChangeResult:
        """Reject proposed fields, remembering which source id made the attempt."""

        now = self._clock()

        def mark(current: ContextField) -> ContextField | None:
            if current.status is not FieldStatus.PROPOSED:
                return None
            return replace(
                current.copy(),
                status=FieldStatus.REJECTED,
                rejected_at=now,
                rejected_reason=reason,
                rejected_source_id=current.source_id,
                revision=current.revision + 1,
            )

        result = self._change_status(keys, mark)
        if result.updated:
            log.info("Rejected %d field(s) for %s", len(result.updated), self.company_id)
        return result

    def edit(
        self,
        key: str,
        value: JSONValue,
        *,
        user_id: str | None = None,
        source: str = HumanSource.USER,
    ) -> ProposalOutcome:
        """Write a human value directly as confirmed; the only path past a confirmation."""

        if not is_human(source):
            raise HumanSourceRequiredError(f"Source {source!r} may not edit {key!r}")
        now = self._clock()
        candidate = ProposalCandidate(
            key=key,
            value=value,
            source=str(source),
            source_id=user_id or str(source),
            confidence=1.0,
            timestamp=now,
        )
        invalid = validate_candidate(candidate)
        if invalid is not None:
            return self._drop(candidate, invalid)

        for _ in range(_CAS_ATTEMPTS):
            existing = self.field(key)
            updated = self._accept(existing, candidate)
            updated.status = FieldStatus.CONFIRMED
            updated.locked_at = now
            updated.locked_by = user_id
            if self._swap(updated, existing):
                return self._record(
                    candidate,
                    OutcomeKind.ACCEPTED,
                    ProposalReason.HUMAN_EDIT,
                    revision=updated.revision,
                )
        return self._conflict(candidate)

    # Internals ---------------------------------------------------------------

    def _arbitrate(self, candidate: ProposalCandidate) -> ProposalOutcome:
        for attempt in range(_CAS_ATTEMPTS):
            existing = self.field(candidate.key)
            decision = can_propose(existing, candidate, self.priorities)
            if decision.decision is Decision.REJECT:
                return self._record_decision(candidate, decision, existing)

            if decision.decision is Decision.ACCEPT or existing is None:
                updated = self._accept(existing, candidate)
            else:
                updated = self._add_alternative(existing, candidate)

            if self._swap(updated, existing):
                log.debug(
                    "%s %s from %s (%s)",
                    decision.decision,
                    candidate.key,
                    candidate.source,
                    decision.reason,
                )
                return self._record_decision(candidate, decision, updated)
            log.info(
                "Revision conflict on %s/%s (attempt %d), re-reading",
                self.company_id,
                candidate.key,
                attempt + 1,
            )
        return self._conflict(candidate)

    def _accept(self, existing: ContextField | None, candidate: ProposalCandidate) -> ContextField:
        timestamp = ensure_utc(candidate.timestamp)
        if existing is None:
            return ContextField(
                key=candidate.key,
                value=candidate.value,
                status=FieldStatus.PROPOSED,
                source=candidate.source,
                source_id=candidate.source_id,
                confidence=candidate.effective_confidence,
                updated_at=timestamp,
                evidence=candidate.evidence,
            )

        updated = existing.copy()
        alternatives = self.alternatives.discard(
            updated.alternatives, candidate.value, candidate.source
        )
        demote = (
            existing.status is FieldStatus.PROPOSED
            and not (existing.value == candidate.value and existing.source == candidate.source)
            and not self.alternatives.contains(alternatives, existing.value, existing.source)
        )
        if demote:
            alternatives = self.alternatives.add(
                alternatives, existing.as_alternative(), existing.domain
            )

        updated.alternatives = alternatives
        updated.previous_value = existing.value
        updated.previous_source = existing.source
        updated.value = candidate.value
        updated.confidence = candidate.effective_confidence
        updated.source = candidate.source
        updated.source_id = candidate.source_id
        updated.status = FieldStatus.PROPOSED
        updated.updated_at = timestamp
        updated.evidence = candidate.evidence
        updated.locked_at = None
        updated.locked_by = None
        updated.rejected_at = None
        updated.rejected_reason = None
        updated.rejected_source_id = None
        updated.revision = existing.revision + 1
        return updated

    def _add_alternative(
        self, existing: ContextField, candidate: ProposalCandidate
    ) -> ContextField:
        updated = existing.copy()
        updated.alternatives = self.alternatives.add(
            updated.alternatives, Alternative.from_candidate(candidate), existing.domain
        )
        updated.revision = existing.revision + 1
        return updated

    def _swap(self, updated: ContextField, existing: ContextField | None) -> bool:
        expected = existing.revision if existing is not None else None
        return self.repository.compare_and_swap(
            self.company_id, updated, expected_revision=expected
        )

    def _change_status(
        self,
        keys: Iterable[str],
        transition: Callable[[ContextField], ContextField | None],
    ) -> StatusChangeResult:
        result = StatusChangeResult()
        for key in keys:
            for _ in range(_CAS_ATTEMPTS):
                current = self.field(key)
                if current is None:
                    result.missing.append(key)
                    break
                updated = transition(current)
                if updated is None:
                    result.skipped.append(key)
                    break
                if self._swap(updated, current):
                    result.updated.append(key)
                    break
            else:
                log.warning("Status change on %s/%s lost two races", self.company_id, key)
                result.skipped.append(key)
        return result

    def _record_decision(
        self,
        candidate: ProposalCandidate,
        decision: MergeDecision,
        state: ContextField | None,
    ) -> ProposalOutcome:
        return self._record(
            candidate,
            _KIND_BY_DECISION[decision.decision],
            decision.reason,
            revision=state.revision if state is not None else None,
        )

    def _drop(self, candidate: ProposalCandidate, reason: ProposalReason) -> ProposalOutcome:
        log.warning(
            "Dropping malformed candidate %r from %s/%s: %s",
            candidate.key,
            candidate.source,
            candidate.source_id,
            reason,
        )
        return self._record(candidate, OutcomeKind.DROPPED, reason)

    def _throttled(self, candidate: ProposalCandidate, remaining: int) -> ProposalOutcome:
        return self._record(
            candidate,
            OutcomeKind.COOLDOWN,
            ProposalReason.COOLDOWN_ACTIVE,
            remaining_seconds=remaining,
        )

    def _conflict(self, candidate: ProposalCandidate) -> ProposalOutcome:
        log.warning(
            "Giving up on %s/%s from %s after repeated revision conflicts",
            self.company_id,
            candidate.key,
            candidate.source_id,
        )
        return self._record(candidate, OutcomeKind.REJECTED, ProposalReason.WRITE_CONFLICT)

    def _record(
        self,
        candidate: ProposalCandidate,
        kind: OutcomeKind,
        reason: ProposalReason,
        *,
        revision: int | None = None,
        remaining_seconds: int | None = None,
    ) -> ProposalOutcome:
        outcome = ProposalOutcome(
            company_id=self.company_id,
            key=candidate.key,
            kind=kind,
            reason=reason,
            source=candidate.source,
            source_id=candidate.source_id,
            recorded_at=self._clock(),
            revision=revision,
            remaining_seconds=remaining_seconds,
        )
        self.repository.append_outcome(outcome)
        return outcome
