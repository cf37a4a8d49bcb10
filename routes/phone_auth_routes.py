"""
Phone authentication endpoints.

POST /auth/phone/send-otp          — issue and deliver a 6-digit code
POST /auth/phone/verify-otp        — verify the code, resolve the principal
POST /auth/phone/complete-profile  — set display name (and email) after verify

Service results come back as Ok/Err values; an Err is raised as
PhoneAuthError so the shared AppError handler renders it.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_otp_issuer, get_otp_verifier, get_phone_profile_service
from errors import AuthErrorCode, PhoneAuthError
from schemas.dto.requests.phone_auth import (
    CompleteProfileRequest,
    SendOTPRequest,
    VerifyOTPRequest,
)
from schemas.dto.responses.phone_auth import (
    CompleteProfileResponse,
    PrincipalResponse,
    SendOTPResponse,
    VerifyOTPResponse,
)
from services.auth.otp_issuer import OTPIssuer
from services.auth.otp_verifier import OTPVerifier
from services.auth.phone_profile_service import PhoneProfileService
from shared.result import Err

router = APIRouter(prefix="/auth/phone", tags=["phone-auth"])


_ERROR_FIELDS = {
    AuthErrorCode.INVALID_PHONE_FORMAT: "phone_number",
    AuthErrorCode.PHONE_ALREADY_REGISTERED: "phone_number",
    AuthErrorCode.INVALID_CODE: "code",
    AuthErrorCode.INVALID_PROFILE: "display_name",
}


def _raise_for(result) -> None:
    if isinstance(result, Err):
        raise PhoneAuthError(
            result.code, result.message, field=_ERROR_FIELDS.get(result.code)
        )


@router.post("/send-otp", response_model=SendOTPResponse, response_model_by_alias=True)
async def send_otp(
    body: SendOTPRequest,
    issuer: OTPIssuer = Depends(get_otp_issuer),
) -> SendOTPResponse:
    result = await issuer.issue(body.phone_number, intent=body.intent, name=body.name)
    _raise_for(result)
    return SendOTPResponse(phone_number=result.value, expires_in=issuer.ttl_seconds)


@router.post("/verify-otp", response_model=VerifyOTPResponse, response_model_by_alias=True)
async def verify_otp(
    body: VerifyOTPRequest,
    verifier: OTPVerifier = Depends(get_otp_verifier),
) -> VerifyOTPResponse:
    result = await verifier.verify(body.phone_number, body.code)
    _raise_for(result)
    verified = result.value
    return VerifyOTPResponse(
        user=PrincipalResponse.from_principal(verified.principal),
        profile_complete=verified.profile_complete,
        is_new_user=verified.is_new,
    )


@router.post(
    "/complete-profile",
    response_model=CompleteProfileResponse,
    response_model_by_alias=True,
)
async def complete_profile(
    body: CompleteProfileRequest,
    service: PhoneProfileService = Depends(get_phone_profile_service),
) -> CompleteProfileResponse:
    result = await service.complete(body.phone_number, body.display_name, body.email)
    _raise_for(result)
    return CompleteProfileResponse(user=PrincipalResponse.from_profile(result.value))
