"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses.

Phone authentication failures are modelled twice: services return an
AuthErrorCode inside a result value, and the HTTP layer lifts that code into
a PhoneAuthError so the client gets a distinct status, code and message.

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"


class StoreError(AppError):
    """Raised by repositories and session stores when the backend fails."""

    status_code = 503
    error_code = "store_error"


class StoreReadError(StoreError):
    error_code = "store_read_failed"


class StoreWriteError(StoreError):
    error_code = "store_write_failed"


class AuthErrorCode(str, Enum):
    INVALID_PHONE_FORMAT = "invalid_phone_format"
    PHONE_ALREADY_REGISTERED = "phone_already_registered"
    RESEND_COOLDOWN = "resend_cooldown"
    CHALLENGE_NOT_FOUND = "challenge_not_found"
    ALREADY_USED = "already_used"
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    EXPIRED = "expired"
    INVALID_CODE = "invalid_code"
    DELIVERY_FAILED = "delivery_failed"
    STORE_READ_FAILED = "store_read_failed"
    STORE_WRITE_FAILED = "store_write_failed"
    PROFILE_NOT_FOUND = "profile_not_found"
    INVALID_PROFILE = "invalid_profile"
    PROFILE_FETCH_FAILED = "profile_fetch_failed"
    PROVIDER_SIGN_OUT_FAILED = "provider_sign_out_failed"
    PROFILE_ALREADY_COMPLETE = "profile_already_complete"
    INVALID_REQUEST = "invalid_request"


AUTH_ERROR_MESSAGES: dict[AuthErrorCode, str] = {
    AuthErrorCode.INVALID_PHONE_FORMAT: (
        "Invalid phone number format. Please enter a 10-digit Indian mobile number."
    ),
    AuthErrorCode.PHONE_ALREADY_REGISTERED: (
        "This phone number is already registered. Please log in instead."
    ),
    AuthErrorCode.RESEND_COOLDOWN: (
        "An OTP was sent recently. Please wait before requesting a new one."
    ),
    AuthErrorCode.CHALLENGE_NOT_FOUND: "OTP not found. Please request a new OTP.",
    AuthErrorCode.ALREADY_USED: (
        "OTP has already been used. Please request a new OTP."
    ),
    AuthErrorCode.TOO_MANY_ATTEMPTS: (
        "Too many attempts. Please request a new OTP or contact support."
    ),
    AuthErrorCode.EXPIRED: "OTP has expired. Please request a new OTP.",
    AuthErrorCode.INVALID_CODE: "Invalid OTP. Please try again.",
    AuthErrorCode.DELIVERY_FAILED: "Failed to send OTP. Please try again.",
    AuthErrorCode.STORE_READ_FAILED: (
        "We could not read your verification data. Please try again."
    ),
    AuthErrorCode.STORE_WRITE_FAILED: (
        "We could not save your verification data. Please try again."
    ),
    AuthErrorCode.PROFILE_NOT_FOUND: "User not found.",
    AuthErrorCode.INVALID_PROFILE: "Please enter your name.",
    AuthErrorCode.PROFILE_FETCH_FAILED: "Could not load your profile.",
    AuthErrorCode.PROVIDER_SIGN_OUT_FAILED: "Sign-out could not reach the provider.",
    AuthErrorCode.PROFILE_ALREADY_COMPLETE: (
        "Your profile is already set up. Update it from your account page."
    ),
    AuthErrorCode.INVALID_REQUEST: (
        "Some details are missing or invalid. Please check and try again."
    ),
}

_AUTH_ERROR_STATUS: dict[AuthErrorCode, int] = {
    AuthErrorCode.INVALID_PHONE_FORMAT: 400,
    AuthErrorCode.PHONE_ALREADY_REGISTERED: 409,
    AuthErrorCode.RESEND_COOLDOWN: 429,
    AuthErrorCode.CHALLENGE_NOT_FOUND: 404,
    AuthErrorCode.ALREADY_USED: 409,
    AuthErrorCode.TOO_MANY_ATTEMPTS: 429,
    AuthErrorCode.EXPIRED: 410,
    AuthErrorCode.INVALID_CODE: 400,
    AuthErrorCode.DELIVERY_FAILED: 502,
    AuthErrorCode.STORE_READ_FAILED: 503,
    AuthErrorCode.STORE_WRITE_FAILED: 503,
    AuthErrorCode.PROFILE_NOT_FOUND: 404,
    AuthErrorCode.INVALID_PROFILE: 400,
    AuthErrorCode.PROFILE_FETCH_FAILED: 503,
    AuthErrorCode.PROVIDER_SIGN_OUT_FAILED: 502,
    AuthErrorCode.PROFILE_ALREADY_COMPLETE: 409,
    AuthErrorCode.INVALID_REQUEST: 422,
}


def auth_error_message(code: AuthErrorCode) -> str:
    return AUTH_ERROR_MESSAGES[code]


class PhoneAuthError(AppError):
    """HTTP-facing wrapper around an AuthErrorCode."""

    def __init__(
        self,
        code: AuthErrorCode,
        message: Optional[str] = None,
        *,
        field: Optional[str] = None,
    ) -> None:
        super().__init__(message or auth_error_message(code), field=field)
        self.code = code
        self.error_code = code.value
        self.status_code = _AUTH_ERROR_STATUS.get(code, 400)


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        return JSONResponse(
            status_code=500,
            content={"error": "An internal server error occurred.", "code": "internal_error"},
        )
