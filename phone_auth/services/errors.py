"""Domain errors raised by the credential and throttling services.

Every error carries a stable ``code`` for clients, a human readable
``message`` and, for the throttled outcomes, the number of attempts (or
sends) still ``remaining``. Routers translate them into HTTP responses;
the services never know about status codes.
"""

from typing import Optional


class AuthError(Exception):
    code = "AUTH_ERROR"
    default_message = "Authentication failed"

    def __init__(self, message: Optional[str] = None, remaining: Optional[int] = None):
        self.message = message or self.default_message
        self.remaining = remaining
        super().__init__(self.message)

    def to_detail(self) -> dict:
        detail = {"code": self.code, "message": self.message}
        if self.remaining is not None:
            detail["remaining"] = self.remaining
        return detail


class QuotaExceeded(AuthError):
    code = "QUOTA_EXCEEDED"
    default_message = "Daily verification code limit reached, try again tomorrow"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, remaining=0)


class WrongCode(AuthError):
    code = "WRONG_CODE"

    def __init__(self, remaining: int):
        super().__init__(
            f"Invalid verification code, {remaining} attempt(s) remaining",
            remaining=remaining,
        )


class WrongPassword(AuthError):
    code = "WRONG_PASSWORD"

    def __init__(self, remaining: int):
        super().__init__(
            f"Wrong phone number or password, {remaining} attempt(s) remaining",
            remaining=remaining,
        )


class Locked(AuthError):
    code = "LOCKED"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, remaining=0)


class CodeLocked(Locked):
    default_message = (
        "Too many wrong codes, this code has been invalidated. Request a new one"
    )


class PasswordLocked(Locked):
    default_message = (
        "Too many wrong passwords, reset your password or try again later"
    )


class PolicyViolation(AuthError):
    code = "POLICY_VIOLATION"
    default_message = "Password must be 6-12 letters or digits"


class NotFound(AuthError):
    code = "NOT_FOUND"
    default_message = "Account not found"


class NoPassword(AuthError):
    code = "NO_PASSWORD"
    default_message = "No password set for this account, log in with a verification code"


class CounterStoreError(RuntimeError):
    pass
