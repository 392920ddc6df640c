"""TTL counter store used for every piece of throttling state.

All values are strings with a time-to-live. ``increment`` and
``increment_if_below`` are the only read-modify-write operations and both
are atomic in each implementation, so concurrent writers never lose an
update or push a capped counter past its limit.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional

import redis

from phone_auth.config import settings
from phone_auth.services.errors import CounterStoreError

LOGGER = logging.getLogger(__name__)


class SystemClock:
    def time(self) -> float:
        return time.time()

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class CounterStore:
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        raise NotImplementedError

    def delete(self, *keys: str) -> None:
        raise NotImplementedError

    def increment(self, key: str, ttl_seconds: int) -> int:
        raise NotImplementedError

    def increment_if_below(self, key: str, limit: int, ttl_seconds: int) -> Optional[int]:
        """Increment ``key`` only while its count is below ``limit``.

        Returns the new count, or ``None`` when the counter is already at
        the limit (the key and its TTL are left untouched in that case).
        """
        raise NotImplementedError

    def ping(self) -> bool:
        return True

    def get_int(self, key: str) -> int:
        raw_value = self.get(key)
        if raw_value is None:
            return 0
        try:
            return max(0, int(raw_value))
        except ValueError:
            LOGGER.warning("Discarding non-integer counter key=%s", key)
            return 0


# Non-integer or negative values restart at 1, matching get_int.
CAPPED_INCREMENT_SCRIPT = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local ttl = tonumber(ARGV[2])

local count = tonumber(redis.call('GET', key) or '0')
if count == nil or count < 0 or count ~= math.floor(count) then
    count = 0
end

if count >= limit then
    return -1
end

count = count + 1
redis.call('SET', key, count, 'EX', ttl)
return count
"""


class RedisCounterStore(CounterStore):
    def __init__(self, client: "redis.Redis") -> None:
        self._client = client
        self._capped_increment = None

    @classmethod
    def from_url(cls, url: str) -> "RedisCounterStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Optional[str]:
        try:
            return self._client.get(key)
        except redis.RedisError as exc:
            raise self._unavailable("get", key, exc) from exc

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self._client.set(key, value, ex=ttl_seconds)
        except redis.RedisError as exc:
            raise self._unavailable("set", key, exc) from exc

    def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            self._client.delete(*keys)
        except redis.RedisError as exc:
            raise self._unavailable("delete", ",".join(keys), exc) from exc

    def increment(self, key: str, ttl_seconds: int) -> int:
        try:
            with self._client.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, ttl_seconds)
                count, _ = pipe.execute()
        except redis.RedisError as exc:
            raise self._unavailable("increment", key, exc) from exc
        return int(count)

    def increment_if_below(self, key: str, limit: int, ttl_seconds: int) -> Optional[int]:
        try:
            if self._capped_increment is None:
                self._capped_increment = self._client.register_script(CAPPED_INCREMENT_SCRIPT)
            count = int(self._capped_increment(keys=[key], args=[limit, ttl_seconds]))
        except redis.RedisError as exc:
            raise self._unavailable("increment_if_below", key, exc) from exc
        if count < 0:
            return None
        return count

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False

    def _unavailable(self, operation: str, key: str, exc: Exception) -> CounterStoreError:
        LOGGER.error("Counter store %s failed key=%s error=%s", operation, key, exc)
        return CounterStoreError("Counter store is unavailable")


class InMemoryCounterStore(CounterStore):
    """Process-local store for tests and single-process development."""

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self._clock = clock or time.time
        self._lock = threading.RLock()
        self._entries: dict[str, tuple[str, float]] = {}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._live_value(key)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = (str(value), self._clock() + ttl_seconds)

    def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._entries.pop(key, None)

    def increment(self, key: str, ttl_seconds: int) -> int:
        with self._lock:
            current = self._live_value(key)
            count = int(current) + 1 if current is not None else 1
            self._entries[key] = (str(count), self._clock() + ttl_seconds)
            return count

    def increment_if_below(self, key: str, limit: int, ttl_seconds: int) -> Optional[int]:
        with self._lock:
            count = self.get_int(key)
            if count >= limit:
                return None
            count += 1
            self._entries[key] = (str(count), self._clock() + ttl_seconds)
            return count

    def ttl(self, key: str) -> Optional[float]:
        with self._lock:
            if self._live_value(key) is None:
                return None
            return self._entries[key][1] - self._clock()

    def _live_value(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        return value


_store: Optional[CounterStore] = None
_store_lock = threading.Lock()


def build_counter_store(url: str) -> CounterStore:
    if url.startswith("memory://"):
        LOGGER.warning("Using in-memory counter store, throttling is per process")
        return InMemoryCounterStore()
    return RedisCounterStore.from_url(url)


def get_counter_store() -> CounterStore:
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = build_counter_store(settings.redis_url)
    return _store
