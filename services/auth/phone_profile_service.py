"""
Profile completion for phone-only users.

A first-time phone user is created with an empty display name; complete()
fills in the name (and optionally an email) once the number has been
verified. Completion is one-shot: it is only accepted shortly after the
verification and only while the profile has no display name yet.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from config import OTPSettings
from errors import AuthErrorCode, StoreReadError, StoreWriteError
from repositories.protocol import OTPStore, ProfileStore
from schemas.models.user import UserProfileDoc
from shared.datetime_utils import Clock, utc_now
from shared.logging import get_logger
from shared.phone import normalize_phone
from shared.result import Err, Ok, Result
from shared.validators import validate_display_name, validate_email

log = get_logger(__name__)


class PhoneProfileService:
    def __init__(
        self,
        otp_store: OTPStore,
        profile_store: ProfileStore,
        settings: OTPSettings,
        clock: Clock = utc_now,
    ) -> None:
        self._otps = otp_store
        self._profiles = profile_store
        self._settings = settings
        self._clock = clock

    async def complete(
        self, raw_phone: str, display_name: str, email: Optional[str] = None
    ) -> Result[UserProfileDoc]:
        normalized = normalize_phone(raw_phone, self._settings.otp_country_code)
        if isinstance(normalized, Err):
            return normalized
        phone = normalized.value

        if not validate_display_name(display_name):
            return Err(AuthErrorCode.INVALID_PROFILE)
        email = (email or "").strip()
        if email and not validate_email(email):
            return Err(AuthErrorCode.INVALID_PROFILE, "Please enter a valid email address.")

        try:
            challenge = await self._otps.get(phone)
            profile = await self._profiles.find_by_phone(phone)
        except StoreReadError:
            return Err(AuthErrorCode.STORE_READ_FAILED)

        # Only a number that has passed verification may be completed
        if challenge is None or not challenge.verified:
            return Err(
                AuthErrorCode.CHALLENGE_NOT_FOUND,
                "Please verify your phone number first.",
            )
        window = timedelta(seconds=self._settings.otp_profile_completion_window_seconds)
        if challenge.verified_at is None or self._clock() - challenge.verified_at > window:
            return Err(
                AuthErrorCode.EXPIRED,
                "Verification has expired. Please verify your phone number again.",
            )
        if profile is None:
            return Err(AuthErrorCode.PROFILE_NOT_FOUND)
        if profile.is_complete:
            log.warning("phone_profile_completion_rejected", uid=profile.uid)
            return Err(AuthErrorCode.PROFILE_ALREADY_COMPLETE)

        updates: dict = {"displayName": display_name.strip(), "updatedAt": self._clock()}
        if email:
            updates["email"] = email

        try:
            updated = await self._profiles.update_profile(profile.uid, updates)
        except StoreWriteError:
            return Err(AuthErrorCode.STORE_WRITE_FAILED)
        if updated is None:
            return Err(AuthErrorCode.PROFILE_NOT_FOUND)

        log.info("phone_profile_completed", uid=updated.uid, email_set=bool(email))
        return Ok(updated)
