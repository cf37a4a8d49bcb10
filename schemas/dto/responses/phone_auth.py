"""
Response DTOs for phone authentication endpoints.

PrincipalResponse         — identity block inside the verify/complete responses
SendOTPResponse           — POST /auth/phone/send-otp  (200)
VerifyOTPResponse         — POST /auth/phone/verify-otp  (200)
CompleteProfileResponse   — POST /auth/phone/complete-profile  (200)
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.session import Principal
from schemas.models.user import Role, UserProfileDoc


class PrincipalResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, serialization_alias="displayName")
    phone_number: Optional[str] = Field(default=None, serialization_alias="phoneNumber")
    photo_url: Optional[str] = Field(default=None, serialization_alias="photoURL")
    role: Role = Field(default="user", serialization_alias="userType")

    @classmethod
    def from_principal(cls, principal: Principal) -> "PrincipalResponse":
        return cls(
            uid=principal.id,
            email=principal.email,
            display_name=principal.display_name,
            phone_number=principal.phone_number,
            photo_url=principal.photo_url,
            role=principal.role,
        )

    @classmethod
    def from_profile(cls, profile: UserProfileDoc) -> "PrincipalResponse":
        return cls.from_principal(Principal.from_profile(profile))


class SendOTPResponse(BaseModel):
    """Response body for POST /auth/phone/send-otp (200)."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = "OTP sent successfully"
    phone_number: str = Field(serialization_alias="phoneNumber")
    expires_in: int = Field(serialization_alias="expiresIn")


class VerifyOTPResponse(BaseModel):
    """Response body for POST /auth/phone/verify-otp (200).

    ``profile_complete`` is False for first-time numbers; the client should
    collect a display name next.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    user: PrincipalResponse
    profile_complete: bool = Field(serialization_alias="profileComplete")
    is_new_user: bool = Field(serialization_alias="isNewUser")


class CompleteProfileResponse(BaseModel):
    """Response body for POST /auth/phone/complete-profile (200)."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    user: PrincipalResponse
