"""Phone authentication flows.

Each public method is one use case (send a code, log in with a code, log
in with a password, set or reset a password). The flows own no state:
codes, quotas and failure counters live in the counter store, accounts
live in the user store.
"""

from dataclasses import dataclass
import logging
from typing import Callable

from phone_auth.config import settings
from phone_auth.services.errors import (
    AuthError,
    NoPassword,
    NotFound,
    PasswordLocked,
    WrongPassword,
)
from phone_auth.services.failure_guard import FailureGuard
from phone_auth.services.otp import IssuedCode, OtpLedger
from phone_auth.services.passwords import (
    burn_verification,
    hash_password,
    validate_password_policy,
    verify_password,
)
from phone_auth.services.sessions import SessionIssuer
from phone_auth.services.sms import send_otp_sms
from phone_auth.services.users import UserRecord, UserStore

LOGGER = logging.getLogger(__name__)


def password_failure_key(phone: str) -> str:
    return f"pwd-fail:{phone}"


@dataclass(frozen=True)
class AuthResult:
    token: str
    user: UserRecord


class AuthService:
    def __init__(
        self,
        ledger: OtpLedger,
        guard: FailureGuard,
        users: UserStore,
        issuer: SessionIssuer,
        sms_sender: Callable[[str, str], None] = send_otp_sms,
        *,
        password_max_failures: int = settings.password_max_failures,
        password_failure_ttl_seconds: int = settings.password_failure_ttl_seconds,
    ) -> None:
        self._ledger = ledger
        self._guard = guard
        self._users = users
        self._issuer = issuer
        self._sms_sender = sms_sender
        self._password_max_failures = password_max_failures
        self._password_failure_ttl_seconds = password_failure_ttl_seconds

    @property
    def ledger(self) -> OtpLedger:
        return self._ledger

    def send_otp(self, phone: str) -> IssuedCode:
        issued = self._ledger.issue(phone)
        self._sms_sender(phone, issued.code)
        return issued

    def login_with_otp(self, phone: str, code: str) -> AuthResult:
        self._ledger.consume(phone, code)
        user = self._users.create_with_phone(phone)
        return self._authenticated(user)

    def login_with_password(self, phone: str, password: str) -> AuthResult:
        user = self._users.find_by_phone(phone)
        if user is None:
            # Unknown phones fail exactly like a wrong password.
            burn_verification(password)
            raise self._password_failure(phone)
        if not user.has_password:
            raise NoPassword()
        if not verify_password(password, user.password_hash):
            raise self._password_failure(phone)

        self._guard.clear(password_failure_key(phone))
        LOGGER.info("Password login succeeded user_id=%s", user.id)
        return self._authenticated(user)

    def set_password(self, phone: str, code: str, password: str) -> AuthResult:
        validate_password_policy(password)
        self._ledger.consume(phone, code)
        user = self._users.create_with_phone(phone)
        # Sign first so a signing failure leaves the stored password unchanged.
        token = self._issuer.issue(user.id, user.phone_number)
        user = self._users.set_password_hash(user.id, hash_password(password))
        LOGGER.info("Password set user_id=%s", user.id)
        return AuthResult(token=token, user=user)

    def reset_password(self, phone: str, code: str, new_password: str) -> UserRecord:
        validate_password_policy(new_password)
        self._ledger.consume(phone, code)
        user = self._users.find_by_phone(phone)
        if user is None:
            raise NotFound()
        user = self._users.set_password_hash(user.id, hash_password(new_password))
        self._guard.clear(password_failure_key(phone))
        LOGGER.info("Password reset user_id=%s", user.id)
        return user

    def reset_send_quota(self, phone: str) -> None:
        self._ledger.reset_send_quota(phone)
        LOGGER.info("OTP send quota reset phone=%s", phone)

    def _password_failure(self, phone: str) -> AuthError:
        outcome = self._guard.record_failure(
            password_failure_key(phone),
            self._password_failure_ttl_seconds,
            self._password_max_failures,
        )
        if outcome.locked:
            return PasswordLocked()
        return WrongPassword(outcome.remaining)

    def _authenticated(self, user: UserRecord) -> AuthResult:
        token = self._issuer.issue(user.id, user.phone_number)
        return AuthResult(token=token, user=user)
