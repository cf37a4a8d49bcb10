"""Redis-backed SessionPersistence.

One key per client (``{storage_key}:{client_id}``) holding the session blob
as JSON (not pickle) so entries stay debuggable. The key carries a Redis TTL
equal to the session TTL as a safety net; the Session Facade still performs
its own expiry check on load.
"""

from typing import Optional

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError

from errors import StoreReadError, StoreWriteError
from schemas.models.session import PersistedPhoneSession
from shared.logging import get_logger

log = get_logger(__name__)


class RedisSessionPersistence:
    def __init__(
        self,
        redis_client: aioredis.Redis,
        client_id: str,
        storage_key: str = "phoneAuthSession",
        ttl_seconds: int = 86400,
    ) -> None:
        self._redis = redis_client
        self._key = f"{storage_key}:{client_id}"
        self.ttl_seconds = ttl_seconds

    @property
    def key(self) -> str:
        return self._key

    async def load(self) -> Optional[PersistedPhoneSession]:
        try:
            raw = await self._redis.get(self._key)
        except UnicodeDecodeError as e:
            # decode_responses=True fails on bytes that are not UTF-8
            log.warning("session_record_corrupt", backend="redis", error=str(e))
            await self.clear()
            return None
        except RedisError as e:
            log.error("session_load_failed", backend="redis", error=str(e))
            raise StoreReadError("Failed to load persisted session") from e
        if raw is None:
            return None
        try:
            return PersistedPhoneSession.from_json(raw)
        except ValidationError as e:
            log.warning("session_record_corrupt", backend="redis", error=str(e))
            await self.clear()
            return None

    async def save(self, record: PersistedPhoneSession) -> None:
        try:
            await self._redis.setex(self._key, self.ttl_seconds, record.to_json())
        except RedisError as e:
            log.error("session_save_failed", backend="redis", error=str(e))
            raise StoreWriteError("Failed to persist session") from e

    async def clear(self) -> None:
        try:
            await self._redis.delete(self._key)
        except RedisError as e:
            log.error("session_clear_failed", backend="redis", error=str(e))
            raise StoreWriteError("Failed to clear persisted session") from e
