from dataclasses import dataclass
from datetime import datetime, timezone
import re
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from phone_auth.database import session_scope
from phone_auth.models.user import UserEntry


def normalize_phone(phone_number: str) -> str:
    return re.sub(r"\D", "", phone_number or "")


@dataclass(frozen=True)
class UserRecord:
    id: int
    phone_number: str
    password_hash: Optional[str]
    created_at: datetime

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)


def _to_record(entry: UserEntry) -> UserRecord:
    return UserRecord(
        id=entry.id,
        phone_number=entry.phone_number,
        password_hash=entry.password_hash,
        created_at=entry.created_at,
    )


class UserStore:
    def find_by_phone(self, phone_number: str) -> Optional[UserRecord]:
        key = normalize_phone(phone_number)
        if not key:
            return None
        with session_scope() as session:
            entry = session.execute(
                select(UserEntry).where(UserEntry.phone_number == key)
            ).scalar_one_or_none()
            if entry is None:
                return None
            return _to_record(entry)

    def create_with_phone(self, phone_number: str) -> UserRecord:
        key = normalize_phone(phone_number)
        if not key:
            raise ValueError("Phone number is required")
        existing = self.find_by_phone(key)
        if existing is not None:
            return existing
        now = datetime.now(timezone.utc)
        try:
            with session_scope() as session:
                entry = UserEntry(
                    phone_number=key,
                    password_hash=None,
                    created_at=now,
                    updated_at=now,
                )
                session.add(entry)
                session.flush()
                return _to_record(entry)
        except IntegrityError:
            # Lost a race with a concurrent signup for the same phone.
            existing = self.find_by_phone(key)
            if existing is None:
                raise
            return existing

    def set_password_hash(self, user_id: int, password_hash: str) -> UserRecord:
        with session_scope() as session:
            entry = session.get(UserEntry, user_id)
            if entry is None:
                raise ValueError("User not found")
            entry.password_hash = password_hash
            entry.updated_at = datetime.now(timezone.utc)
            session.flush()
            return _to_record(entry)


user_store = UserStore()
