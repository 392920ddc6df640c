from __future__ import annotations

import pytest

from phone_auth.services.users import normalize_phone


def test_create_with_phone_is_idempotent(users) -> None:
    first = users.create_with_phone("0912345678")
    second = users.create_with_phone("0912-345-678")

    assert first.id == second.id
    assert first.phone_number == "0912345678"
    assert first.has_password is False


def test_find_by_phone(users) -> None:
    assert users.find_by_phone("0912345678") is None
    created = users.create_with_phone("0912345678")
    assert users.find_by_phone("0912345678").id == created.id
    assert users.find_by_phone("") is None


def test_set_password_hash(users) -> None:
    created = users.create_with_phone("0912345678")

    updated = users.set_password_hash(created.id, "$2b$04$hash")

    assert updated.has_password is True
    assert users.find_by_phone("0912345678").password_hash == "$2b$04$hash"


def test_set_password_hash_for_missing_user(users) -> None:
    with pytest.raises(ValueError):
        users.set_password_hash(999, "$2b$04$hash")
    assert users.find_by_phone("0900000000") is None


def test_normalize_phone() -> None:
    assert normalize_phone(" 0912 345 678 ") == "0912345678"
    assert normalize_phone(None) == ""
