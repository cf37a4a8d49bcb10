"""
OTP verification for the phone sign-in path.

Checks run in a fixed order so the most actionable error wins:

    1. no challenge for the number      → CHALLENGE_NOT_FOUND
    2. challenge already verified       → ALREADY_USED
    3. attempts exhausted               → TOO_MANY_ATTEMPTS
    4. challenge expired                → EXPIRED
    5. wrong code (attempts += 1)       → INVALID_CODE
    6. correct code                     → verified, principal resolved

A verified challenge can never be consumed again, even with the right code
and even after it would have expired.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass

from config import OTPSettings
from errors import AuthErrorCode, StoreReadError, StoreWriteError
from infrastructure.messaging.protocol import MessageSender
from repositories.protocol import OTPStore, ProfileStore
from schemas.models.session import Principal
from schemas.models.user import UserProfileDoc
from shared.datetime_utils import Clock, utc_now
from shared.logging import get_logger
from shared.phone import normalize_phone, phone_principal_id
from shared.result import Err, Ok, Result

log = get_logger(__name__)


@dataclass(frozen=True)
class VerifiedPhone:
    """Outcome of a successful verification.

    ``profile_complete`` is False for first-time phone users; they must go
    through profile completion before the session is fully usable.
    """

    principal: Principal
    profile: UserProfileDoc
    is_new: bool

    @property
    def profile_complete(self) -> bool:
        return self.profile.is_complete


class OTPVerifier:
    def __init__(
        self,
        otp_store: OTPStore,
        profile_store: ProfileStore,
        settings: OTPSettings,
        sender: MessageSender | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._otps = otp_store
        self._profiles = profile_store
        self._settings = settings
        self._sender = sender
        self._clock = clock

    async def verify(self, raw_phone: str, submitted_code: str) -> Result[VerifiedPhone]:
        normalized = normalize_phone(raw_phone, self._settings.otp_country_code)
        if isinstance(normalized, Err):
            return normalized
        phone = normalized.value

        try:
            challenge = await self._otps.get(phone)
        except StoreReadError:
            return Err(AuthErrorCode.STORE_READ_FAILED)

        if challenge is None:
            return Err(AuthErrorCode.CHALLENGE_NOT_FOUND)
        if challenge.verified:
            return Err(AuthErrorCode.ALREADY_USED)
        if challenge.attempts >= self._settings.otp_max_attempts:
            log.warning("otp_attempts_exhausted", phone_number=phone, attempts=challenge.attempts)
            return Err(AuthErrorCode.TOO_MANY_ATTEMPTS)

        now = self._clock()
        if challenge.is_expired(now):
            return Err(AuthErrorCode.EXPIRED)

        submitted = (submitted_code or "").strip().encode("utf-8")
        if not hmac.compare_digest(challenge.code.encode("utf-8"), submitted):
            try:
                await self._otps.increment_attempts(phone)
            except StoreWriteError:
                return Err(AuthErrorCode.STORE_WRITE_FAILED)
            log.info("otp_verify_failed", phone_number=phone, attempts=challenge.attempts + 1)
            return Err(AuthErrorCode.INVALID_CODE)

        try:
            consumed = await self._otps.mark_verified(
                phone, now, self._settings.otp_max_attempts
            )
        except StoreWriteError:
            return Err(AuthErrorCode.STORE_WRITE_FAILED)
        if not consumed:
            log.warning("otp_verify_lost_race", phone_number=phone)
            return Err(AuthErrorCode.ALREADY_USED)
        log.info("otp_verified", phone_number=phone)

        return await self._resolve_principal(phone)

    async def _resolve_principal(self, phone: str) -> Result[VerifiedPhone]:
        try:
            profile = await self._profiles.find_by_phone(phone)
        except StoreReadError:
            return Err(AuthErrorCode.STORE_READ_FAILED)

        is_new = profile is None
        if profile is None:
            now = self._clock()
            profile = UserProfileDoc(
                uid=phone_principal_id(phone),
                phone_number=phone,
                user_type="user",
                created_at=now,
                updated_at=now,
            )
            try:
                await self._profiles.create_profile(profile)
            except StoreWriteError:
                return Err(AuthErrorCode.STORE_WRITE_FAILED)
            log.info("phone_profile_created", uid=profile.uid)

        await self._send_welcome(phone, profile)
        return Ok(
            VerifiedPhone(
                principal=Principal.from_profile(profile),
                profile=profile,
                is_new=is_new,
            )
        )

    async def _send_welcome(self, phone: str, profile: UserProfileDoc) -> None:
        if self._sender is None:
            return
        try:
            result = await self._sender.send(
                phone, "WELCOME_LOGIN", {"name": profile.display_name or "User"}
            )
            if not result.delivered:
                log.warning("welcome_message_not_delivered", phone_number=phone)
        except Exception as e:
            log.error(
                "welcome_message_error",
                phone_number=phone,
                error=str(e),
                error_type=type(e).__name__,
            )
