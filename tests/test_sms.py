from __future__ import annotations

import io
from dataclasses import replace
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError, URLError

import pytest

from phone_auth.config import settings
from phone_auth.services import sms
from phone_auth.services.sms import SmsSendError, build_body, send_otp_sms, to_e164


@pytest.fixture()
def twilio_settings(monkeypatch):
    configured = replace(
        settings,
        sms_enabled=True,
        twilio_account_sid="AC123",
        twilio_auth_token="token",
        twilio_phone_number="+15005550006",
        default_country_code="+886",
    )
    monkeypatch.setattr(sms, "settings", configured)
    return configured


def test_local_numbers_become_e164(twilio_settings) -> None:
    assert to_e164("0912345678") == "+886912345678"
    assert to_e164("+886 912 345 678") == "+886912345678"
    with pytest.raises(SmsSendError):
        to_e164("")
    with pytest.raises(SmsSendError):
        to_e164("12345")


def test_body_mentions_code_and_expiry() -> None:
    body = build_body("012345", 300)
    assert "012345" in body
    assert "5 minute(s)" in body


def test_disabled_delivery_skips_gateway() -> None:
    with patch.object(sms, "urlopen") as urlopen:
        send_otp_sms("0912345678", "123456")
    urlopen.assert_not_called()


def test_missing_credentials_raise(monkeypatch) -> None:
    monkeypatch.setattr(sms, "settings", replace(settings, sms_enabled=True, twilio_account_sid=""))
    with pytest.raises(SmsSendError, match="not configured"):
        send_otp_sms("0912345678", "123456")


def test_posts_message_to_twilio(twilio_settings) -> None:
    response = MagicMock()
    response.__enter__.return_value = response
    with patch.object(sms, "urlopen", return_value=response) as urlopen:
        send_otp_sms("0912345678", "123456")

    request = urlopen.call_args.args[0]
    assert request.full_url.endswith("/Accounts/AC123/Messages.json")
    assert request.get_method() == "POST"
    assert b"To=%2B886912345678" in request.data
    assert b"123456" in request.data


def test_gateway_errors_raise_send_error(twilio_settings) -> None:
    http_error = HTTPError(
        "https://api.twilio.com", 400, "Bad Request", {}, io.BytesIO(b'{"message":"bad"}')
    )
    with patch.object(sms, "urlopen", side_effect=http_error):
        with pytest.raises(SmsSendError, match="Failed to send"):
            send_otp_sms("0912345678", "123456")

    with patch.object(sms, "urlopen", side_effect=URLError("unreachable")):
        with pytest.raises(SmsSendError, match="reach"):
            send_otp_sms("0912345678", "123456")
