"""Exceptions raised by the merge engine."""

from __future__ import annotations


class ContextMergeError(Exception):
    """Marker base for engine failures callers may want to catch as a group."""


class StoreUnavailableError(ContextMergeError, RuntimeError):
    """The persistence layer could not be reached; the batch must not proceed."""


class FieldNotFoundError(ContextMergeError, LookupError):
    """Raised when an operation targets a field key the store does not hold."""


class HumanSourceRequiredError(ContextMergeError, PermissionError):
    """Raised when an automated source attempts a human-only operation."""
