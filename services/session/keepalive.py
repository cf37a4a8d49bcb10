"""
Periodic phone-session extension.

While a phone session is active, the keep-alive calls its ``extend``
coroutine every interval (30 minutes by default). It does not re-validate the
principal; it only pushes lastExtendedAt forward. The owner starts it on
entering phone mode and stops it on any transition away from it.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from shared.logging import get_logger

log = get_logger(__name__)


class SessionKeepAlive:
    def __init__(
        self,
        extend: Callable[[], Awaitable[None]],
        interval_seconds: float = 1800,
    ) -> None:
        self._extend = extend
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="session-keepalive"
        )
        log.debug("keepalive_started", interval_seconds=self.interval_seconds)

    def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        log.debug("keepalive_stopped")

    async def tick(self) -> None:
        """Run one extension now. Errors are logged; the loop keeps going."""
        try:
            await self._extend()
        except Exception as e:
            log.error("keepalive_tick_failed", error=str(e), error_type=type(e).__name__)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.tick()
