from dataclasses import dataclass
from datetime import datetime
import hmac
import logging
import secrets
from typing import Optional
from zoneinfo import ZoneInfo

from phone_auth.config import settings
from phone_auth.services.counters import CounterStore, SystemClock
from phone_auth.services.errors import CodeLocked, QuotaExceeded, WrongCode
from phone_auth.services.failure_guard import FailureGuard

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedCode:
    code: str
    remaining: int


def code_key(phone: str) -> str:
    return f"otp:{phone}"


def failure_key(phone: str) -> str:
    return f"otp-fail:{phone}"


def quota_key(phone: str, day: str) -> str:
    return f"otp-sends:{phone}:{day}"


class OtpLedger:
    def __init__(
        self,
        store: CounterStore,
        guard: FailureGuard,
        clock: Optional[SystemClock] = None,
        *,
        code_length: int = settings.otp_length,
        ttl_seconds: int = settings.otp_ttl_seconds,
        daily_limit: int = settings.otp_daily_send_limit,
        quota_ttl_seconds: int = settings.otp_quota_ttl_seconds,
        max_failures: int = settings.otp_max_failures,
        quota_timezone: str = settings.otp_quota_timezone,
    ) -> None:
        self._store = store
        self._guard = guard
        self._clock = clock or SystemClock()
        self._code_length = code_length
        self._ttl_seconds = ttl_seconds
        self._daily_limit = daily_limit
        self._quota_ttl_seconds = quota_ttl_seconds
        self._max_failures = max_failures
        self._timezone = ZoneInfo(quota_timezone)

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def today(self) -> str:
        now: datetime = self._clock.now()
        return now.astimezone(self._timezone).date().isoformat()

    def issue(self, phone: str) -> IssuedCode:
        sent = self._store.increment_if_below(
            quota_key(phone, self.today()), self._daily_limit, self._quota_ttl_seconds
        )
        if sent is None:
            LOGGER.warning("OTP daily quota reached phone=%s", phone)
            raise QuotaExceeded()

        code = self._generate_code()
        self._store.set(code_key(phone), code, self._ttl_seconds)
        remaining = max(0, self._daily_limit - sent)
        LOGGER.info("OTP issued phone=%s sent_today=%s remaining=%s", phone, sent, remaining)
        return IssuedCode(code=code, remaining=remaining)

    def consume(self, phone: str, candidate: str) -> None:
        stored = self._store.get(code_key(phone))
        if stored is None or not hmac.compare_digest(
            stored.encode("utf-8"), candidate.strip().encode("utf-8")
        ):
            outcome = self._guard.record_failure(
                failure_key(phone),
                self._ttl_seconds,
                self._max_failures,
                purge=(code_key(phone),),
            )
            if outcome.locked:
                raise CodeLocked()
            raise WrongCode(outcome.remaining)

        self._store.delete(failure_key(phone), code_key(phone))
        LOGGER.info("OTP consumed phone=%s", phone)

    def reset_send_quota(self, phone: str) -> None:
        self._store.delete(quota_key(phone, self.today()))

    def _generate_code(self) -> str:
        value = secrets.randbelow(10**self._code_length)
        return str(value).zfill(self._code_length)
