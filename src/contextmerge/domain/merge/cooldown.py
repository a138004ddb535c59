"""Per-company throttle for proposal batches.

Cooldowns are advisory: the default store lives in memory and a restart clears it.
Back ``CooldownThrottle`` with a shared ``CooldownStore`` when several processes must
throttle together.
"""

from __future__ import annotations

import logging
import math
import threading
from datetime import timedelta
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from contextmerge.common.clock import utc_now
from contextmerge.config import MAX_COOLDOWN_SECONDS, MIN_COOLDOWN_SECONDS

if TYPE_CHECKING:
    from datetime import datetime

    from contextmerge.common.clock import Clock

log = logging.getLogger(__name__)


@runtime_checkable
class CooldownStore(Protocol):
    """Keyed expiry map. Entries at or past ``now`` count as absent and may be pruned."""

    def get(self, company_id: str, *, now: datetime) -> datetime | None: ...

    def set(self, company_id: str, expires_at: datetime) -> None: ...

    def set_if_absent(
        self, company_id: str, expires_at: datetime, *, now: datetime
    ) -> datetime | None:
        """Claim the entry unless a live one exists; return the live expiry if so."""
        ...

    def clear(self, company_id: str) -> None: ...


class InMemoryCooldownStore:
    def __init__(self) -> None:
        self._entries: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def get(self, company_id: str, *, now: datetime) -> datetime | None:
        with self._lock:
            return self._live_entry(company_id, now)

    def set(self, company_id: str, expires_at: datetime) -> None:
        with self._lock:
            self._entries[company_id] = expires_at

    def set_if_absent(
        self, company_id: str, expires_at: datetime, *, now: datetime
    ) -> datetime | None:
        with self._lock:
            current = self._live_entry(company_id, now)
            if current is not None:
                return current
            self._entries[company_id] = expires_at
            return None

    def clear(self, company_id: str) -> None:
        with self._lock:
            self._entries.pop(company_id, None)

    def __len__(self) -> int:
        return len(self._entries)

    def _live_entry(self, company_id: str, now: datetime) -> datetime | None:
        expires_at = self._entries.get(company_id)
        if expires_at is None:
            return None
        if expires_at <= now:
            del self._entries[company_id]
            return None
        return expires_at


class CooldownThrottle:
    def __init__(self, store: CooldownStore | None = None, *, clock: Clock = utc_now) -> None:
        self.store = store if store is not None else InMemoryCooldownStore()
        self._clock = clock

    @staticmethod
    def clamp(seconds: float) -> int:
        if not math.isfinite(seconds):
            # nan falls to the floor, infinities to their own bound
            return MAX_COOLDOWN_SECONDS if seconds > 0 else MIN_COOLDOWN_SECONDS
        return int(min(max(seconds, MIN_COOLDOWN_SECONDS), MAX_COOLDOWN_SECONDS))

    def set_cooldown(self, company_id: str, seconds: float) -> datetime:
        duration = self.clamp(seconds)
        expires_at = self._clock() + timedelta(seconds=duration)
        self.store.set(company_id, expires_at)
        log.debug("Cooldown set for %s: %ss", company_id, duration)
        return expires_at

    def get_cooldown_remaining(self, company_id: str) -> int | None:
        now = self._clock()
        expires_at = self.store.get(company_id, now=now)
        if expires_at is None:
            return None
        return _whole_seconds(expires_at - now)

    def is_in_cooldown(self, company_id: str) -> bool:
        return self.get_cooldown_remaining(company_id) is not None

    def clear_cooldown(self, company_id: str) -> None:
        self.store.clear(company_id)

    def try_begin(self, company_id: str, seconds: float) -> int | None:
        """Atomically start a cooldown window.

        Returns ``None`` when the window was claimed, otherwise the seconds left on
        the window already in force.
        """

        now = self._clock()
        duration = self.clamp(seconds)
        current = self.store.set_if_absent(
            company_id, now + timedelta(seconds=duration), now=now
        )
        if current is None:
            log.debug("Cooldown claimed for %s: %ss", company_id, duration)
            return None
        return _whole_seconds(current - now)


def _whole_seconds(delta: timedelta) -> int:
    return max(1, math.ceil(delta.total_seconds()))
