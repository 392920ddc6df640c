import logging

from fastapi import APIRouter, Depends, HTTPException, status

from phone_auth.config import settings
from phone_auth.schemas.auth import (
    AuthResponse,
    CodeRequest,
    MessageResponse,
    PasswordLoginRequest,
    PhoneRequest,
    ResetPasswordRequest,
    SetPasswordRequest,
    UserSummary,
    VerifyPhoneResponse,
)
from phone_auth.services.auth import AuthResult, AuthService
from phone_auth.services.counters import CounterStore, get_counter_store
from phone_auth.services.errors import (
    AuthError,
    CounterStoreError,
    NotFound,
    PolicyViolation,
    QuotaExceeded,
)
from phone_auth.services.failure_guard import FailureGuard
from phone_auth.services.otp import OtpLedger
from phone_auth.services.sessions import session_issuer
from phone_auth.services.sms import SmsSendError
from phone_auth.services.tokens import TokenError
from phone_auth.services.users import UserRecord, user_store

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(store: CounterStore = Depends(get_counter_store)) -> AuthService:
    guard = FailureGuard(store)
    return AuthService(OtpLedger(store, guard), guard, user_store, session_issuer)


def _status_for(exc: AuthError) -> int:
    if isinstance(exc, QuotaExceeded):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(exc, PolicyViolation):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NotFound):
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_401_UNAUTHORIZED


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, AuthError):
        return HTTPException(status_code=_status_for(exc), detail=exc.to_detail())
    if isinstance(exc, CounterStoreError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"code": "STORE_UNAVAILABLE", "message": str(exc)},
        )
    if isinstance(exc, SmsSendError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"code": "SMS_FAILED", "message": str(exc)},
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"code": "TOKEN_ERROR", "message": str(exc)},
    )


_HANDLED = (AuthError, CounterStoreError, SmsSendError, TokenError)


def _user_summary(user: UserRecord) -> UserSummary:
    return UserSummary(
        id=user.id,
        phone=user.phone_number,
        has_password=user.has_password,
        created_at=user.created_at,
    )


def _auth_response(result: AuthResult, message: str | None = None) -> AuthResponse:
    return AuthResponse(
        access_token=result.token,
        token_type="bearer",
        user=_user_summary(result.user),
        message=message,
    )


@router.post(
    "/verify-phone",
    response_model=VerifyPhoneResponse,
    response_model_exclude_none=True,
)
def verify_phone(
    payload: PhoneRequest, service: AuthService = Depends(get_auth_service)
) -> VerifyPhoneResponse:
    try:
        issued = service.send_otp(payload.phone)
    except _HANDLED as exc:
        raise _http_error(exc) from exc
    if settings.otp_debug:
        LOGGER.debug("OTP for phone=%s code=%s", payload.phone, issued.code)
    return VerifyPhoneResponse(
        message="Verification code sent",
        remaining=issued.remaining,
        expires_in_seconds=service.ledger.ttl_seconds,
        code=issued.code if settings.otp_debug else None,
    )


@router.post("/login", response_model=AuthResponse, response_model_exclude_none=True)
def login(
    payload: CodeRequest, service: AuthService = Depends(get_auth_service)
) -> AuthResponse:
    try:
        result = service.login_with_otp(payload.phone, payload.code)
    except _HANDLED as exc:
        raise _http_error(exc) from exc
    return _auth_response(result)


@router.post(
    "/password-login", response_model=AuthResponse, response_model_exclude_none=True
)
def password_login(
    payload: PasswordLoginRequest, service: AuthService = Depends(get_auth_service)
) -> AuthResponse:
    try:
        result = service.login_with_password(payload.phone, payload.password)
    except _HANDLED as exc:
        raise _http_error(exc) from exc
    return _auth_response(result)


@router.post(
    "/set-password", response_model=AuthResponse, response_model_exclude_none=True
)
def set_password(
    payload: SetPasswordRequest, service: AuthService = Depends(get_auth_service)
) -> AuthResponse:
    try:
        result = service.set_password(payload.phone, payload.code, payload.password)
    except _HANDLED as exc:
        raise _http_error(exc) from exc
    return _auth_response(result, message="Password set")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    payload: ResetPasswordRequest, service: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    try:
        service.reset_password(payload.phone, payload.code, payload.new_password)
    except _HANDLED as exc:
        raise _http_error(exc) from exc
    return MessageResponse(message="Password reset, please log in again")


@router.post("/reset-verify-count", response_model=MessageResponse)
def reset_verify_count(
    payload: PhoneRequest, service: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    if not settings.otp_debug:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    try:
        service.reset_send_quota(payload.phone)
    except CounterStoreError as exc:
        raise _http_error(exc) from exc
    return MessageResponse(message="Verification send count reset")
