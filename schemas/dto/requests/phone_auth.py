"""
Request DTOs for phone authentication endpoints.

SendOTPRequest          — POST /auth/phone/send-otp
VerifyOTPRequest        — POST /auth/phone/verify-otp
CompleteProfileRequest  — POST /auth/phone/complete-profile

Phone numbers are accepted as typed (spaces, dashes, +91 prefix); the
services normalize them.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class SendOTPRequest(BaseModel):
    """Request body for POST /auth/phone/send-otp."""

    model_config = ConfigDict(populate_by_name=True)

    phone_number: str = Field(alias="phoneNumber", min_length=1)
    intent: Literal["login", "register"] = "login"
    name: str = "User"


class VerifyOTPRequest(BaseModel):
    """Request body for POST /auth/phone/verify-otp."""

    model_config = ConfigDict(populate_by_name=True)

    phone_number: str = Field(alias="phoneNumber", min_length=1)
    code: str = Field(alias="otp", min_length=1, max_length=12)


class CompleteProfileRequest(BaseModel):
    """Request body for POST /auth/phone/complete-profile.

    Only valid after the number has been verified.
    """

    model_config = ConfigDict(populate_by_name=True)

    phone_number: str = Field(alias="phoneNumber", min_length=1)
    display_name: str = Field(alias="displayName")
    email: Optional[str] = None
