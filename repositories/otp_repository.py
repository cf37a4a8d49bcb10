"""MongoDB implementation of OTPStore (`phoneAuth` collection).

Every pymongo failure is re-raised as StoreReadError / StoreWriteError so the
OTP services can turn it into a result value without knowing about pymongo.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from errors import StoreReadError, StoreWriteError
from schemas.models.otp import OTPChallengeDoc
from shared.logging import get_logger

log = get_logger(__name__)

OTP_COLLECTION = "phoneAuth"


class MongoOTPRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def get(self, phone_number: str) -> Optional[OTPChallengeDoc]:
        try:
            raw = await self._col.find_one({"_id": phone_number})
        except PyMongoError as e:
            log.error(
                "otp_read_failed",
                phone_number=phone_number,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreReadError("Failed to read OTP challenge") from e
        return OTPChallengeDoc.from_mongo(raw)

    async def put(self, challenge: OTPChallengeDoc) -> None:
        """Write *challenge*, replacing any previous one for the same number."""
        doc = challenge.to_mongo()
        doc["_id"] = challenge.phone_number
        try:
            await self._col.replace_one({"_id": challenge.phone_number}, doc, upsert=True)
        except PyMongoError as e:
            log.error(
                "otp_write_failed",
                phone_number=challenge.phone_number,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreWriteError("Failed to store OTP challenge") from e

    async def increment_attempts(self, phone_number: str) -> None:
        # $inc keeps concurrent wrong guesses from overwriting each other
        try:
            await self._col.update_one({"_id": phone_number}, {"$inc": {"attempts": 1}})
        except PyMongoError as e:
            log.error(
                "otp_attempts_increment_failed",
                phone_number=phone_number,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreWriteError("Failed to record OTP attempt") from e

    async def mark_verified(
        self, phone_number: str, verified_at: datetime, max_attempts: int
    ) -> bool:
        """Consume the challenge. False if it was already used or exhausted."""
        # Only one request can flip verified; the others match nothing
        try:
            result = await self._col.update_one(
                {
                    "_id": phone_number,
                    "verified": False,
                    "attempts": {"$lt": max_attempts},
                },
                {"$set": {"verified": True, "verifiedAt": verified_at}},
            )
        except PyMongoError as e:
            log.error(
                "otp_mark_verified_failed",
                phone_number=phone_number,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreWriteError("Failed to mark OTP as verified") from e
        return result.matched_count == 1

    async def delete_expired(self, now: datetime) -> int:
        try:
            result = await self._col.delete_many({"expiresAt": {"$lt": now}})
        except PyMongoError as e:
            log.error("otp_cleanup_failed", error=str(e), error_type=type(e).__name__)
            raise StoreWriteError("Failed to clean up expired OTPs") from e
        return result.deleted_count
