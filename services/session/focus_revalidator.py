"""
Focus-time revalidation of phone sessions.

The keep-alive timer does not run while a client is suspended, so a session
can outlive its TTL without anyone noticing. Each time the client regains
focus, the revalidator re-reads the persisted lastExtendedAt and signs out
when it is TTL or more in the past (or when the record has disappeared).
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Awaitable, Callable, Optional, Protocol

from errors import StoreReadError
from infrastructure.session_store.protocol import SessionPersistence
from shared.datetime_utils import Clock, utc_now
from shared.events import EventEmitter
from shared.logging import get_logger

log = get_logger(__name__)


class FocusEventSource(Protocol):
    def subscribe(self, listener: Callable[[None], None]) -> Callable[[], None]: ...


class FocusEvents(EventEmitter[None]):
    """Focus event source fed by the host (window focus, app resume, CLI prompt)."""

    def __init__(self) -> None:
        super().__init__("focus")

    def focus(self) -> None:
        self.emit(None)


class FocusRevalidator:
    def __init__(
        self,
        persistence: SessionPersistence,
        on_expired: Callable[[], Awaitable[None]],
        is_active: Callable[[], bool],
        ttl_seconds: int = 86400,
        clock: Clock = utc_now,
    ) -> None:
        self._persistence = persistence
        self._on_expired = on_expired
        self._is_active = is_active
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._pending: set[asyncio.Task] = set()

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def attach(self, source: FocusEventSource) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = source.subscribe(self._on_focus)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_focus(self, _event: None) -> None:
        task = asyncio.get_running_loop().create_task(self.revalidate())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def wait_idle(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def revalidate(self) -> bool:
        """Check the persisted session; returns True when it forced a sign-out."""
        if not self._is_active():
            return False

        try:
            record = await self._persistence.load()
        except StoreReadError:
            # Unreadable storage is not proof of expiry; try again next focus
            return False

        now = self._clock()
        if record is not None and record.is_valid(now, self._ttl):
            return False

        log.info(
            "session_expired_on_focus",
            record_present=record is not None,
            last_extended_at=record.last_extended_at.isoformat() if record else None,
        )
        await self._on_expired()
        return True
