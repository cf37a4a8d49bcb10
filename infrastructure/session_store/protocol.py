"""SessionPersistence protocol. The Session Facade depends on this, not on a storage backend."""

from typing import Optional, Protocol

from schemas.models.session import PersistedPhoneSession


class SessionPersistence(Protocol):
    async def load(self) -> Optional[PersistedPhoneSession]: ...

    async def save(self, record: PersistedPhoneSession) -> None: ...

    async def clear(self) -> None: ...
