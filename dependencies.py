"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. The objects themselves are built once in the
app lifespan and stored on app.state.
"""

from __future__ import annotations

from fastapi import Request

from services.auth.otp_issuer import OTPIssuer
from services.auth.otp_verifier import OTPVerifier
from services.auth.phone_profile_service import PhoneProfileService


def get_otp_issuer(request: Request) -> OTPIssuer:
    return request.app.state.otp_issuer


def get_otp_verifier(request: Request) -> OTPVerifier:
    return request.app.state.otp_verifier


def get_phone_profile_service(request: Request) -> PhoneProfileService:
    return request.app.state.phone_profile_service
