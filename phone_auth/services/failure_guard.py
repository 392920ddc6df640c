"""Consecutive-failure lockout shared by the OTP and password flows.

A failure increments the counter for ``key`` and refreshes its TTL, so
the window slides with every new failure. Reaching ``limit`` deletes the
counter (and any ``purge`` keys, e.g. the code being guessed) instead of
letting it grow past the limit; the next failure starts a fresh budget.
"""

import logging
from dataclasses import dataclass

from phone_auth.services.counters import CounterStore

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class FailureOutcome:
    count: int
    remaining: int
    locked: bool


class FailureGuard:
    def __init__(self, store: CounterStore) -> None:
        self._store = store

    def record_failure(
        self, key: str, ttl_seconds: int, limit: int, purge: tuple[str, ...] = ()
    ) -> FailureOutcome:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        count = self._store.increment(key, ttl_seconds)
        if count >= limit:
            self._store.delete(key, *purge)
            LOGGER.warning("Lockout reached key=%s failures=%s", key, count)
            return FailureOutcome(count=min(count, limit), remaining=0, locked=True)
        remaining = limit - count
        LOGGER.info("Failure recorded key=%s failures=%s remaining=%s", key, count, remaining)
        return FailureOutcome(count=count, remaining=remaining, locked=False)

    def clear(self, key: str) -> None:
        self._store.delete(key)
