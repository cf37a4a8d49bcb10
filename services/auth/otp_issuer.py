"""
OTP issuance for the phone sign-in path.

issue() normalizes the number, writes a fresh challenge (overwriting any
previous one for that number) and hands the code to the outbound message
sender. Failures come back as Err values; nothing here raises for a domain
failure.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Callable, Literal

from config import OTPSettings
from errors import AuthErrorCode, StoreReadError, StoreWriteError
from infrastructure.messaging.protocol import MessageSender
from repositories.protocol import OTPStore, ProfileStore
from schemas.models.otp import OTPChallengeDoc
from shared.datetime_utils import Clock, utc_now
from shared.generators import generate_otp_code
from shared.logging import get_logger
from shared.phone import normalize_phone
from shared.result import Err, Ok, Result

log = get_logger(__name__)

IssueIntent = Literal["login", "register"]


class OTPIssuer:
    def __init__(
        self,
        otp_store: OTPStore,
        profile_store: ProfileStore,
        sender: MessageSender,
        settings: OTPSettings,
        clock: Clock = utc_now,
        code_generator: Callable[[], str] = generate_otp_code,
    ) -> None:
        self._otps = otp_store
        self._profiles = profile_store
        self._sender = sender
        self._settings = settings
        self._clock = clock
        self._generate_code = code_generator

    @property
    def ttl_seconds(self) -> int:
        return self._settings.otp_ttl_seconds

    async def issue(
        self, raw_phone: str, intent: IssueIntent = "login", name: str = "User"
    ) -> Result[str]:
        """Issue and dispatch a new OTP.

        Args:
            raw_phone: Phone number as entered by the user.
            intent: ``"register"`` rejects numbers that already have a profile.
            name: Greeting name passed to the message template.

        Returns:
            ``Ok(canonical_phone)`` on success, otherwise ``Err`` with one of
            INVALID_PHONE_FORMAT, PHONE_ALREADY_REGISTERED, RESEND_COOLDOWN,
            STORE_READ_FAILED, STORE_WRITE_FAILED, DELIVERY_FAILED.
        """
        normalized = normalize_phone(raw_phone, self._settings.otp_country_code)
        if isinstance(normalized, Err):
            log.info("otp_issue_rejected", reason=normalized.code.value)
            return normalized
        phone = normalized.value

        if intent == "register":
            try:
                existing = await self._profiles.find_by_phone(phone)
            except StoreReadError:
                return Err(AuthErrorCode.STORE_READ_FAILED)
            if existing is not None:
                log.info("otp_issue_rejected", phone_number=phone, reason="already_registered")
                return Err(AuthErrorCode.PHONE_ALREADY_REGISTERED)

        now = self._clock()

        if self._settings.otp_resend_cooldown_seconds > 0:
            try:
                previous = await self._otps.get(phone)
            except StoreReadError:
                return Err(AuthErrorCode.STORE_READ_FAILED)
            cooldown = timedelta(seconds=self._settings.otp_resend_cooldown_seconds)
            if (
                previous is not None
                and not previous.verified
                and now - previous.created_at < cooldown
            ):
                log.warning("otp_issue_rate_limited", phone_number=phone)
                return Err(AuthErrorCode.RESEND_COOLDOWN)

        code = self._generate_code()
        challenge = OTPChallengeDoc(
            phone_number=phone,
            code=code,
            created_at=now,
            expires_at=now + timedelta(seconds=self._settings.otp_ttl_seconds),
            attempts=0,
            verified=False,
        )
        try:
            await self._otps.put(challenge)
        except StoreWriteError:
            return Err(AuthErrorCode.STORE_WRITE_FAILED)

        try:
            delivery = await self._sender.send(
                phone, "PHONE_VERIFICATION_OTP", {"name": name, "otp": code}
            )
        except Exception as e:
            log.error(
                "otp_delivery_error",
                phone_number=phone,
                error=str(e),
                error_type=type(e).__name__,
            )
            return Err(AuthErrorCode.DELIVERY_FAILED)

        if not delivery.delivered:
            log.warning("otp_delivery_failed", phone_number=phone, detail=delivery.detail)
            return Err(AuthErrorCode.DELIVERY_FAILED)

        log.info("otp_issued", phone_number=phone, expires_at=challenge.expires_at.isoformat())
        return Ok(phone)

    async def cleanup_expired(self) -> Result[int]:
        """Delete challenges whose expiry has passed. Returns the number removed."""
        try:
            removed = await self._otps.delete_expired(self._clock())
        except StoreWriteError:
            return Err(AuthErrorCode.STORE_WRITE_FAILED)
        log.info("otp_cleanup_completed", removed=removed)
        return Ok(removed)
