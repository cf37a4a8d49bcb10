"""Index bootstrap for the auth collections. Safe to run on every startup."""

from pymongo import ASCENDING
from pymongo.asynchronous.database import AsyncDatabase

from repositories.otp_repository import OTP_COLLECTION
from repositories.profile_repository import USERS_COLLECTION
from shared.logging import get_logger

log = get_logger(__name__)


async def ensure_indexes(db: AsyncDatabase) -> None:
    await db[OTP_COLLECTION].create_index([("expiresAt", ASCENDING)])
    await db[USERS_COLLECTION].create_index([("phoneNumber", ASCENDING)])
    log.info("indexes_ensured", collections=[OTP_COLLECTION, USERS_COLLECTION])
