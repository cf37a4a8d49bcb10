"""
Integration test configuration.

phone_app builds the phone auth router on a bare FastAPI app whose services
run against the in-memory fakes from tests/conftest.py. The OTP generator is
pinned to TEST_CODE so tests can verify without reading the sender.
"""

import pytest
from fastapi import FastAPI

from config import OTPSettings
from errors import register_error_handlers
from routes.phone_auth_routes import router as phone_auth_router
from services.auth.otp_issuer import OTPIssuer
from services.auth.otp_verifier import OTPVerifier
from services.auth.phone_profile_service import PhoneProfileService

TEST_CODE = "482917"


@pytest.fixture
def phone_app(otp_store, profile_store, sender, clock) -> FastAPI:
    settings = OTPSettings()
    app = FastAPI()
    register_error_handlers(app)
    app.include_router(phone_auth_router)

    app.state.otp_issuer = OTPIssuer(
        otp_store,
        profile_store,
        sender,
        settings,
        clock=clock,
        code_generator=lambda: TEST_CODE,
    )
    app.state.otp_verifier = OTPVerifier(
        otp_store, profile_store, settings, sender=sender, clock=clock
    )
    app.state.phone_profile_service = PhoneProfileService(
        otp_store, profile_store, settings, clock=clock
    )
    return app
