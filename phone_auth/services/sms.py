from __future__ import annotations

import base64
import logging
import re
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from phone_auth.config import settings

LOGGER = logging.getLogger(__name__)

TWILIO_MESSAGES_ENDPOINT = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


class SmsSendError(RuntimeError):
    pass


def send_otp_sms(to_phone: str, code: str) -> None:
    if not settings.sms_enabled:
        LOGGER.info("SMS delivery disabled, skipping OTP SMS to=%s", to_phone)
        return

    account_sid = settings.twilio_account_sid
    auth_token = settings.twilio_auth_token
    from_phone = settings.twilio_phone_number
    if not account_sid or not auth_token or not from_phone:
        raise SmsSendError("Twilio is not configured")

    to_number = to_e164(to_phone)
    from_number = to_e164(from_phone)
    body = build_body(code, settings.otp_ttl_seconds)
    LOGGER.info("Sending OTP SMS to=%s from=%s", to_number, from_number)
    payload = urlencode({"To": to_number, "From": from_number, "Body": body}).encode(
        "utf-8"
    )
    token = base64.b64encode(f"{account_sid}:{auth_token}".encode("utf-8")).decode(
        "ascii"
    )
    request = Request(
        TWILIO_MESSAGES_ENDPOINT.format(sid=account_sid),
        data=payload,
        headers={
            "Authorization": f"Basic {token}",
            "Content-Type": "application/x-www-form-urlencoded",
        },
        method="POST",
    )
    try:
        with urlopen(request, timeout=10) as response:
            response.read()
    except HTTPError as exc:
        error_body = exc.read().decode("utf-8", errors="replace")
        LOGGER.error("Twilio API error to=%s response=%s", to_number, error_body)
        raise SmsSendError("Failed to send OTP SMS") from exc
    except URLError as exc:
        LOGGER.error("Twilio API unreachable to=%s error=%s", to_number, exc)
        raise SmsSendError("Failed to reach SMS gateway") from exc


def to_e164(phone_number: str) -> str:
    digits = re.sub(r"\D", "", phone_number.strip())
    if not digits:
        raise SmsSendError("Phone number is missing")
    if phone_number.strip().startswith("+"):
        return f"+{digits}"
    if digits.startswith("0"):
        # Local trunk prefix, e.g. 0912345678.
        country_code = re.sub(r"\D", "", settings.default_country_code)
        if not country_code:
            raise SmsSendError("Default country code is not configured")
        digits = f"{country_code}{digits[1:]}"
    if len(digits) < 10 or len(digits) > 15:
        raise SmsSendError("Phone number must include a valid country code")
    return f"+{digits}"


def build_body(code: str, ttl_seconds: int) -> str:
    minutes = max(1, ttl_seconds // 60)
    return (
        f"[{settings.sms_sender_name}] Your verification code is {code}."
        f" It expires in {minutes} minute(s)."
    )
