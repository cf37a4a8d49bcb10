"""In-process SessionPersistence.

Keeps the serialised JSON rather than the model so a round trip exercises the
same encoding as the durable backends. Used for single-process runtimes and
tests.
"""

from typing import Optional

from pydantic import ValidationError

from schemas.models.session import PersistedPhoneSession
from shared.logging import get_logger

log = get_logger(__name__)


class InMemorySessionPersistence:
    def __init__(self, raw: Optional[str] = None) -> None:
        self.raw = raw

    async def load(self) -> Optional[PersistedPhoneSession]:
        if self.raw is None:
            return None
        try:
            return PersistedPhoneSession.from_json(self.raw)
        except ValidationError as e:
            log.warning("session_record_corrupt", backend="memory", error=str(e))
            self.raw = None
            return None

    async def save(self, record: PersistedPhoneSession) -> None:
        self.raw = record.to_json()

    async def clear(self) -> None:
        self.raw = None
