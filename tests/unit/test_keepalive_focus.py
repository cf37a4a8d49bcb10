"""Unit tests for SessionKeepAlive and FocusRevalidator in isolation."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from errors import StoreReadError
from infrastructure.session_store.memory_store import InMemorySessionPersistence
from schemas.models.session import PersistedPhoneSession, Principal
from services.session.focus_revalidator import FocusEvents, FocusRevalidator
from services.session.keepalive import SessionKeepAlive
from shared.datetime_utils import to_epoch_millis


def _record(last_extended_at) -> PersistedPhoneSession:
    return PersistedPhoneSession(
        user=Principal(id="phone_919876543210"),
        timestamp=to_epoch_millis(last_extended_at),
    )


class TestSessionKeepAlive:
    async def test_runs_extend_every_interval(self):
        extend = AsyncMock()
        keepalive = SessionKeepAlive(extend, interval_seconds=0.01)

        keepalive.start()
        await asyncio.sleep(0.05)
        keepalive.stop()

        assert extend.await_count >= 2
        assert not keepalive.running

    async def test_start_is_idempotent(self):
        keepalive = SessionKeepAlive(AsyncMock(), interval_seconds=60)
        keepalive.start()
        first = keepalive._task
        keepalive.start()
        assert keepalive._task is first
        keepalive.stop()

    async def test_stop_cancels_before_first_tick(self):
        extend = AsyncMock()
        keepalive = SessionKeepAlive(extend, interval_seconds=0.05)
        keepalive.start()
        keepalive.stop()
        await asyncio.sleep(0.1)
        extend.assert_not_awaited()

    async def test_tick_error_does_not_stop_loop(self):
        extend = AsyncMock(side_effect=[RuntimeError("disk"), None, None, None, None, None])
        keepalive = SessionKeepAlive(extend, interval_seconds=0.01)

        keepalive.start()
        await asyncio.sleep(0.05)

        assert keepalive.running
        assert extend.await_count >= 2
        keepalive.stop()

    def test_stop_without_start(self):
        SessionKeepAlive(AsyncMock()).stop()


class TestFocusRevalidator:
    def _make(self, persistence, clock, active=True):
        on_expired = AsyncMock()
        revalidator = FocusRevalidator(
            persistence,
            on_expired=on_expired,
            is_active=lambda: active,
            ttl_seconds=86400,
            clock=clock,
        )
        return revalidator, on_expired

    async def test_fresh_record_survives(self, clock):
        persistence = InMemorySessionPersistence()
        await persistence.save(_record(clock.now - timedelta(hours=23, minutes=59)))
        revalidator, on_expired = self._make(persistence, clock)

        assert await revalidator.revalidate() is False
        on_expired.assert_not_awaited()

    async def test_record_at_ttl_expires(self, clock):
        persistence = InMemorySessionPersistence()
        await persistence.save(_record(clock.now - timedelta(hours=24)))
        revalidator, on_expired = self._make(persistence, clock)

        assert await revalidator.revalidate() is True
        on_expired.assert_awaited_once()

    async def test_missing_record_expires(self, clock):
        revalidator, on_expired = self._make(InMemorySessionPersistence(), clock)
        assert await revalidator.revalidate() is True

    async def test_inactive_session_is_skipped(self, clock):
        revalidator, on_expired = self._make(InMemorySessionPersistence(), clock, active=False)
        assert await revalidator.revalidate() is False
        on_expired.assert_not_awaited()

    async def test_read_failure_does_not_sign_out(self, clock):
        persistence = MagicMock()
        persistence.load = AsyncMock(side_effect=StoreReadError("redis down"))
        revalidator, on_expired = self._make(persistence, clock)

        assert await revalidator.revalidate() is False
        on_expired.assert_not_awaited()

    async def test_focus_events_drive_revalidation(self, clock):
        persistence = InMemorySessionPersistence()
        revalidator, on_expired = self._make(persistence, clock)
        events = FocusEvents()

        revalidator.attach(events)
        events.focus()
        await revalidator.wait_idle()
        on_expired.assert_awaited_once()

        revalidator.detach()
        events.focus()
        await revalidator.wait_idle()
        on_expired.assert_awaited_once()
        assert events.listener_count == 0
