from __future__ import annotations

import pytest

from phone_auth.services.errors import PolicyViolation
from phone_auth.services.passwords import (
    burn_verification,
    hash_password,
    validate_password_policy,
    verify_password,
)


@pytest.mark.parametrize("password", ["abc123", "ABCdef123456", "000000", "Zz9Zz9"])
def test_policy_accepts_alphanumeric_6_to_12(password) -> None:
    assert validate_password_policy(password) == password


@pytest.mark.parametrize(
    "password",
    ["abc", "abc12", "abcdefghi1234", "abc 123", "abc-123", "pässwort1", ""],
)
def test_policy_rejects_everything_else(password) -> None:
    with pytest.raises(PolicyViolation) as excinfo:
        validate_password_policy(password)
    assert excinfo.value.code == "POLICY_VIOLATION"


def test_hash_and_verify() -> None:
    hashed = hash_password("Secret123")

    assert hashed != "Secret123"
    assert hashed.startswith("$2")
    assert verify_password("Secret123", hashed) is True
    assert verify_password("Secret124", hashed) is False


def test_verify_rejects_empty_and_malformed_hashes() -> None:
    assert verify_password("Secret123", "") is False
    assert verify_password("", hash_password("Secret123")) is False
    assert verify_password("Secret123", "not-a-bcrypt-hash") is False


def test_burn_verification_never_raises() -> None:
    burn_verification("whatever1")
    burn_verification("")
