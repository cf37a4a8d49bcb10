"""MongoDB implementation of ProfileStore (`users` collection)."""

from __future__ import annotations

from typing import Optional

from pymongo import ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from errors import StoreReadError, StoreWriteError
from schemas.models.user import ROLES, Role, UserProfileDoc
from shared.logging import get_logger

log = get_logger(__name__)

USERS_COLLECTION = "users"


class MongoProfileRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def get_profile(self, uid: str) -> Optional[UserProfileDoc]:
        try:
            raw = await self._col.find_one({"_id": uid})
        except PyMongoError as e:
            log.error("profile_read_failed", uid=uid, error=str(e), error_type=type(e).__name__)
            raise StoreReadError("Failed to read user profile") from e
        return UserProfileDoc.from_mongo(raw)

    async def get_role(self, uid: str) -> Optional[Role]:
        """Return the stored role, "user" when unset, None when no profile exists."""
        try:
            raw = await self._col.find_one({"_id": uid}, projection={"userType": 1})
        except PyMongoError as e:
            log.error("role_read_failed", uid=uid, error=str(e), error_type=type(e).__name__)
            raise StoreReadError("Failed to read user role") from e
        if raw is None:
            return None
        role = raw.get("userType")
        return role if role in ROLES else "user"

    async def find_by_phone(self, phone_number: str) -> Optional[UserProfileDoc]:
        try:
            raw = await self._col.find_one({"phoneNumber": phone_number})
        except PyMongoError as e:
            log.error(
                "profile_lookup_failed",
                phone_number=phone_number,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreReadError("Failed to look up profile by phone") from e
        return UserProfileDoc.from_mongo(raw)

    async def create_profile(self, profile: UserProfileDoc) -> None:
        doc = profile.to_mongo()
        doc["_id"] = profile.uid
        try:
            await self._col.insert_one(doc)
        except PyMongoError as e:
            log.error(
                "profile_create_failed",
                uid=profile.uid,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreWriteError("Failed to create user profile") from e

    async def update_profile(self, uid: str, updates: dict) -> Optional[UserProfileDoc]:
        """Apply *updates* (stored field names) and return the updated profile."""
        try:
            raw = await self._col.find_one_and_update(
                {"_id": uid},
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            log.error("profile_update_failed", uid=uid, error=str(e), error_type=type(e).__name__)
            raise StoreWriteError("Failed to update user profile") from e
        return UserProfileDoc.from_mongo(raw)
