import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from phone_auth.config import settings

OTP_LENGTH = settings.otp_length
PHONE_PATTERN = re.compile(r"^09\d{8}$")


def _normalize_phone(value: str) -> str:
    cleaned = re.sub(r"[\s-]", "", value or "")
    if not PHONE_PATTERN.fullmatch(cleaned):
        raise ValueError("Phone number must look like 09XXXXXXXX")
    return cleaned


class PhoneRequest(BaseModel):
    phone: str = Field(min_length=10, max_length=16, examples=["0912345678"])

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, value: str) -> str:
        return _normalize_phone(value)


class CodeRequest(PhoneRequest):
    code: str = Field(min_length=OTP_LENGTH, max_length=OTP_LENGTH)

    @field_validator("code")
    @classmethod
    def digits_only(cls, value: str) -> str:
        if not value.isdigit():
            raise ValueError("Verification code must be digits")
        return value


class PasswordLoginRequest(PhoneRequest):
    password: str = Field(min_length=1, max_length=128)


class SetPasswordRequest(CodeRequest):
    password: str = Field(min_length=1, max_length=128)


class ResetPasswordRequest(CodeRequest):
    new_password: str = Field(min_length=1, max_length=128)


class VerifyPhoneResponse(BaseModel):
    message: str
    remaining: int
    expires_in_seconds: int
    code: Optional[str] = None


class UserSummary(BaseModel):
    id: int
    phone: str
    has_password: bool
    created_at: datetime


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserSummary
    message: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
