from functools import lru_cache
import re

import bcrypt

from phone_auth.config import settings
from phone_auth.services.errors import PolicyViolation

PASSWORD_PATTERN = re.compile(r"^[A-Za-z0-9]{6,12}$")


def validate_password_policy(password: str) -> str:
    if not isinstance(password, str) or not PASSWORD_PATTERN.fullmatch(password):
        raise PolicyViolation()
    return password


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
    except ValueError:
        # Malformed stored hash.
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("placeholder0")


def burn_verification(password: str) -> None:
    """Spend the same bcrypt work as a real check when no account exists."""
    verify_password(password or "x", _dummy_hash())
