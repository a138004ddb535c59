"""Merge arbitration: decide what an incoming candidate may do to an existing field.

``can_propose`` is a pure function of its arguments. The decision table is
evaluated top to bottom and the first matching row wins:

1. no existing field                               -> accept
2. existing confirmed                              -> reject
3. existing rejected, same source id as rejection  -> reject
4. existing rejected, different source id          -> accept
5. existing proposed, higher source priority       -> accept
6. existing proposed, lower source priority        -> accept as alternative
7. same priority, higher incoming confidence       -> accept
8. same priority, lower incoming confidence        -> accept as alternative
9. same priority, equal confidence                 -> alternative if newer, else reject

Priorities are looked up in the field's domain.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from contextmerge.common.clock import ensure_utc
from contextmerge.domain.model import Decision, FieldStatus, ProposalReason
from contextmerge.domain.sources import SourcePriority

if TYPE_CHECKING:
    from contextmerge.domain.model import ContextField, ProposalCandidate

_DEFAULT_PRIORITIES = SourcePriority()


@dataclass(frozen=True, slots=True)
class MergeDecision:
    decision: Decision
    reason: ProposalReason


def can_propose(
    existing: ContextField | None,
    incoming: ProposalCandidate,
    priorities: SourcePriority | None = None,
) -> MergeDecision:
    if existing is None:
        return MergeDecision(Decision.ACCEPT, ProposalReason.NO_EXISTING)

    if existing.status is FieldStatus.CONFIRMED:
        return MergeDecision(Decision.REJECT, ProposalReason.EXISTING_CONFIRMED)

    if existing.status is FieldStatus.REJECTED:
        if incoming.source_id == existing.rejected_source_id:
            return MergeDecision(Decision.REJECT, ProposalReason.EXISTING_REJECTED_SAME_SOURCE)
        return MergeDecision(Decision.ACCEPT, ProposalReason.EXISTING_REJECTED_DIFFERENT_SOURCE)

    ranking = priorities or _DEFAULT_PRIORITIES
    incoming_priority = ranking.priority_of(incoming.source, existing.domain)
    existing_priority = ranking.priority_of(existing.source, existing.domain)
    if incoming_priority > existing_priority:
        return MergeDecision(Decision.ACCEPT, ProposalReason.HIGHER_PRIORITY_SOURCE)
    if incoming_priority < existing_priority:
        return MergeDecision(Decision.ACCEPT_AS_ALTERNATIVE, ProposalReason.LOWER_PRIORITY)

    confidence = incoming.effective_confidence
    if confidence > existing.confidence:
        return MergeDecision(Decision.ACCEPT, ProposalReason.HIGHER_CONFIDENCE)
    if confidence < existing.confidence:
        return MergeDecision(Decision.ACCEPT_AS_ALTERNATIVE, ProposalReason.LOW_CONFIDENCE)

    if ensure_utc(incoming.timestamp) > ensure_utc(existing.updated_at):
        return MergeDecision(Decision.ACCEPT_AS_ALTERNATIVE, ProposalReason.SAME_PRIORITY_NEWER)
    return MergeDecision(Decision.REJECT, ProposalReason.LOWER_OR_EQUAL_CONFIDENCE)
