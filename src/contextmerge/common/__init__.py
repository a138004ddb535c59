"""Shared helpers that do not belong to a specific layer."""

from __future__ import annotations

from .clock import Clock, ensure_utc, utc_now
from .numbers import round_half_up

__all__ = ["Clock", "ensure_utc", "round_half_up", "utc_now"]
