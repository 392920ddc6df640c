# tests/conftest.py
from __future__ import annotations

import os
import tempfile
from collections.abc import Iterator
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

_DB_DIR = tempfile.mkdtemp(prefix="phone-auth-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/test.db"
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-phone-auth-suite")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("REDIS_URL", "memory://")
os.environ.setdefault("SMS_ENABLED", "false")

from phone_auth.database import Base, engine
from phone_auth.main import app as fastapi_app
from phone_auth.models import user as _user_model  # noqa: F401
from phone_auth.routers.auth import get_auth_service
from phone_auth.services.auth import AuthService
from phone_auth.services.counters import InMemoryCounterStore, get_counter_store
from phone_auth.services.failure_guard import FailureGuard
from phone_auth.services.otp import OtpLedger
from phone_auth.services.sessions import SessionIssuer
from phone_auth.services.users import UserStore


class FakeClock:
    """Manually advanced clock shared by the TTL store and the ledger."""

    def __init__(self, start: datetime) -> None:
        self._now = start.timestamp()

    def time(self) -> float:
        return self._now

    def now(self) -> datetime:
        return datetime.fromtimestamp(self._now, tz=timezone.utc)

    def advance(self, seconds: float) -> None:
        self._now += seconds


@pytest.fixture(autouse=True)
def fresh_database() -> Iterator[None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc))


@pytest.fixture()
def store(clock: FakeClock) -> InMemoryCounterStore:
    return InMemoryCounterStore(clock.time)


@pytest.fixture()
def guard(store: InMemoryCounterStore) -> FailureGuard:
    return FailureGuard(store)


@pytest.fixture()
def ledger(store: InMemoryCounterStore, guard: FailureGuard, clock: FakeClock) -> OtpLedger:
    return OtpLedger(store, guard, clock)


@pytest.fixture()
def users() -> UserStore:
    return UserStore()


@pytest.fixture()
def sms_sender() -> MagicMock:
    return MagicMock(name="send_otp_sms")


@pytest.fixture()
def service(
    ledger: OtpLedger, guard: FailureGuard, users: UserStore, sms_sender: MagicMock
) -> AuthService:
    return AuthService(ledger, guard, users, SessionIssuer(), sms_sender=sms_sender)


@pytest.fixture()
def app(store: InMemoryCounterStore, service: AuthService) -> Iterator[FastAPI]:
    fastapi_app.dependency_overrides[get_counter_store] = lambda: store
    fastapi_app.dependency_overrides[get_auth_service] = lambda: service
    try:
        yield fastapi_app
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client
