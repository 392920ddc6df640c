import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_list(name: str, default: str) -> tuple[str, ...]:
    raw_value = os.getenv(name, default)
    return tuple(item.strip() for item in raw_value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    jwt_secret: str = os.getenv("JWT_SECRET", "")
    jwt_algorithm: str = os.getenv("ALGORITHM", "HS256")
    access_token_expire_minutes: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "43200")
    )
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./phone_auth.db")
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    otp_length: int = int(os.getenv("OTP_LENGTH", "6"))
    otp_ttl_seconds: int = int(os.getenv("OTP_TTL_SECONDS", "300"))
    otp_daily_send_limit: int = int(os.getenv("OTP_DAILY_SEND_LIMIT", "5"))
    otp_quota_ttl_seconds: int = int(os.getenv("OTP_QUOTA_TTL_SECONDS", "86400"))
    otp_quota_timezone: str = os.getenv("OTP_QUOTA_TIMEZONE", "UTC")
    otp_max_failures: int = int(os.getenv("OTP_MAX_FAILURES", "5"))
    otp_debug: bool = _env_bool("OTP_DEBUG", False)

    password_max_failures: int = int(os.getenv("PASSWORD_MAX_FAILURES", "5"))
    password_failure_ttl_seconds: int = int(
        os.getenv("PASSWORD_FAILURE_TTL_SECONDS", "300")
    )
    bcrypt_rounds: int = int(os.getenv("BCRYPT_ROUNDS", "10"))

    sms_enabled: bool = _env_bool("SMS_ENABLED", False)
    sms_sender_name: str = os.getenv("SMS_SENDER_NAME", "Phone Auth")
    twilio_account_sid: str = os.getenv("TWILIO_ACCOUNT_SID", "")
    twilio_auth_token: str = os.getenv("TWILIO_AUTH_TOKEN", "")
    twilio_phone_number: str = os.getenv(
        "TWILIO_PHONE_NUMBER", os.getenv("PHONE_NUMBER", "")
    )
    default_country_code: str = os.getenv("DEFAULT_COUNTRY_CODE", "+886")

    cors_origins: tuple[str, ...] = field(
        default_factory=lambda: _env_list("CORS_ORIGINS", "*")
    )
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
