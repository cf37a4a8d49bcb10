"""
Session Facade: the single source of truth for "who is signed in".

Two sign-in paths feed one state machine:

    Initializing ──restore ok──▶ PhoneSession
         │
         └──no/expired record──▶ (subscribe to provider)
                                   ├─ principal ─▶ FederatedSession
                                   └─ None ──────▶ NoSession

Phone sessions are tracked locally (persisted blob + keep-alive + focus
revalidation); federated sessions live and die with the identity provider.
When a valid phone session is restored the provider is never consulted, so
a stale provider callback can not overwrite it.

Profile and role for a federated principal are fetched by two independent
background tasks. Each writes only its own field and drops its result if the
principal changed while it was in flight.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import timedelta
from typing import Callable, Optional, Protocol

from config import SessionSettings
from errors import AuthErrorCode, StoreError
from infrastructure.federated.protocol import FederatedAuthProvider
from infrastructure.session_store.protocol import SessionPersistence
from schemas.models.session import (
    FederatedSession,
    Initializing,
    NoSession,
    PhoneSession,
    Principal,
    Session,
)
from schemas.models.user import ROLES, Role, UserProfileDoc
from services.session.focus_revalidator import FocusEventSource, FocusRevalidator
from services.session.keepalive import SessionKeepAlive
from shared.datetime_utils import Clock, utc_now
from shared.events import EventEmitter, Unsubscribe
from shared.logging import get_logger

log = get_logger(__name__)


class ProfileSource(Protocol):
    async def get_profile(self, uid: str) -> Optional[UserProfileDoc]: ...

    async def get_role(self, uid: str) -> Optional[Role]: ...


class SessionFacade:
    def __init__(
        self,
        persistence: SessionPersistence,
        federated: FederatedAuthProvider,
        profiles: ProfileSource,
        settings: Optional[SessionSettings] = None,
        focus_source: Optional[FocusEventSource] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._settings = settings or SessionSettings()
        self._persistence = persistence
        self._federated = federated
        self._profiles = profiles
        self._focus_source = focus_source
        self._clock = clock
        self._ttl = timedelta(seconds=self._settings.session_ttl_seconds)

        self._state: Session = Initializing()
        self._events: EventEmitter[Session] = EventEmitter("session")
        self._ready = asyncio.Event()
        self._role_ready = asyncio.Event()
        self._initialized = False
        self._unsubscribe_federated: Optional[Unsubscribe] = None
        self._skip_replay = False
        self._pending: set[asyncio.Task] = set()
        self._persist_lock = asyncio.Lock()
        self._writes: set[asyncio.Task] = set()

        self._keepalive = SessionKeepAlive(
            self.extend_phone_session,
            interval_seconds=self._settings.session_keepalive_interval_seconds,
        )
        self._revalidator = FocusRevalidator(
            persistence,
            on_expired=self.sign_out,
            is_active=lambda: isinstance(self._state, PhoneSession),
            ttl_seconds=self._settings.session_ttl_seconds,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> Session:
        return self._state

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    @property
    def principal(self) -> Optional[Principal]:
        if isinstance(self._state, (PhoneSession, FederatedSession)):
            return self._state.principal
        return None

    @property
    def profile(self) -> Optional[UserProfileDoc]:
        if isinstance(self._state, (PhoneSession, FederatedSession)):
            return self._state.profile
        return None

    @property
    def role_resolved(self) -> bool:
        """False while restoration is undecided or a federated role is in flight."""
        state = self._state
        if isinstance(state, Initializing):
            return False
        if isinstance(state, FederatedSession):
            return state.role_resolved
        return True

    @property
    def role(self) -> Optional[Role]:
        """Resolved role, or None when signed out or still resolving."""
        principal = self.principal
        if principal is None or not self.role_resolved:
            return None
        return principal.role

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_user(self) -> bool:
        return self.role == "user"

    @property
    def keepalive(self) -> SessionKeepAlive:
        return self._keepalive

    @property
    def revalidator(self) -> FocusRevalidator:
        return self._revalidator

    def subscribe(self, listener: Callable[[Session], None]) -> Unsubscribe:
        """Register for every state transition. Returns the unsubscribe function."""
        return self._events.subscribe(listener)

    async def wait_until_ready(self) -> Session:
        await self._ready.wait()
        return self._state

    async def wait_for_role(self) -> Optional[Role]:
        await self._role_ready.wait()
        return self.role

    async def wait_idle(self) -> None:
        """Wait for in-flight profile/role fetches and focus checks."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        await self._revalidator.wait_idle()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _set_state(self, new: Session) -> None:
        old = self._state
        self._state = new

        was_phone = isinstance(old, PhoneSession)
        is_phone = isinstance(new, PhoneSession)
        if was_phone and not is_phone:
            self._keepalive.stop()
            self._revalidator.detach()
        elif is_phone and not was_phone:
            self._keepalive.start()
            if self._focus_source is not None:
                self._revalidator.attach(self._focus_source)

        if not isinstance(new, Initializing):
            self._ready.set()
        if self.role_resolved:
            self._role_ready.set()
        else:
            self._role_ready.clear()

        if type(old) is not type(new):
            log.info(
                "session_transition",
                from_state=type(old).__name__,
                to_state=type(new).__name__,
                principal_id=self.principal.id if self.principal else None,
            )
        self._events.emit(new)

    async def initialize(self) -> Session:
        """Restore a phone session or fall through to the federated observer."""
        if self._initialized:
            log.warning("session_initialize_repeated")
            return self._state
        self._initialized = True

        try:
            record = await self._persistence.load()
        except (StoreError, ValueError) as e:
            log.error(
                "phone_session_restore_failed", error=str(e), error_type=type(e).__name__
            )
            record = None

        if record is not None:
            if record.is_valid(self._clock(), self._ttl):
                self._set_state(PhoneSession.from_persisted(record))
                log.info("phone_session_restored", principal_id=record.user.id)
                return self._state
            log.info(
                "phone_session_expired",
                principal_id=record.user.id,
                last_extended_at=record.last_extended_at.isoformat(),
            )

        await self._clear_persisted()
        self._subscribe_federated()
        return self._state

    def _subscribe_federated(self, replay: bool = True) -> None:
        if self._unsubscribe_federated is not None:
            return
        # The provider always replays its current state first
        self._skip_replay = not replay
        self._unsubscribe_federated = self._federated.subscribe(self._on_federated_change)

    def _on_federated_change(self, principal: Optional[Principal]) -> None:
        if self._skip_replay:
            self._skip_replay = False
            log.debug(
                "federated_replay_ignored", principal_id=principal.id if principal else None
            )
            return

        current = self._state

        if principal is None:
            if isinstance(current, (Initializing, FederatedSession)):
                self._cancel_fetches()
                self._set_state(NoSession())
            return

        if isinstance(current, PhoneSession):
            log.warning(
                "federated_sign_in_ignored",
                reason="phone_session_active",
                principal_id=principal.id,
            )
            return
        if isinstance(current, FederatedSession) and current.principal.id == principal.id:
            return

        self._cancel_fetches()
        self._set_state(
            FederatedSession(
                principal=principal.model_copy(update={"role": "user"}),
                profile=None,
                role_resolved=False,
            )
        )
        self._spawn(self._fetch_profile(principal.id))
        self._spawn(self._fetch_role(principal.id))

    async def login_with_phone(self, profile: UserProfileDoc) -> PhoneSession:
        """Enter phone mode for a freshly verified profile and persist it."""
        if isinstance(self._state, FederatedSession):
            log.info("federated_session_replaced", principal_id=self._state.principal.id)
            await self.sign_out()

        self._initialized = True
        now = self._clock()
        session = PhoneSession(
            principal=Principal.from_profile(profile),
            profile=profile,
            issued_at=now,
            last_extended_at=now,
        )
        self._cancel_fetches()
        self._set_state(session)
        await self._save_persisted(session)
        log.info("phone_session_started", principal_id=session.principal.id)
        return session

    async def sign_out(self) -> None:
        """Leave any session. Local state is cleared even if the provider call fails."""
        previous = self._state
        self._cancel_fetches()
        self._set_state(NoSession())

        await self._clear_persisted()

        if isinstance(previous, FederatedSession):
            try:
                await self._federated.sign_out()
            except Exception as e:
                log.error(
                    "provider_sign_out_failed",
                    error_code=AuthErrorCode.PROVIDER_SIGN_OUT_FAILED.value,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        else:
            # A restored phone session never subscribed. Start observing now, but
            # an identity the provider already held must not sign straight back in
            self._subscribe_federated(replay=False)

        log.info("session_signed_out", from_state=type(previous).__name__)

    async def extend_phone_session(self) -> None:
        """Push lastExtendedAt to now; issuedAt is kept."""
        current = self._state
        if not isinstance(current, PhoneSession):
            return
        extended = current.extended(self._clock())
        self._set_state(extended)
        await self._save_persisted(extended)
        log.debug("phone_session_extended", principal_id=extended.principal.id)

    async def refresh_profile(self) -> None:
        """Re-fetch profile and role for the current principal."""
        current = self._state
        if not isinstance(current, (PhoneSession, FederatedSession)):
            return
        uid = current.principal.id

        await asyncio.gather(self._fetch_profile(uid), self._fetch_role(uid))

        refreshed = self._state
        if isinstance(refreshed, PhoneSession) and refreshed.principal.id == uid:
            extended = refreshed.extended(self._clock())
            self._set_state(extended)
            await self._save_persisted(extended)

    async def update_profile(self, profile: UserProfileDoc) -> bool:
        """Apply a profile the caller already holds (e.g. after completion).

        Ignored unless it belongs to the current principal. A phone session
        is re-persisted; its timestamps are left alone.
        """
        if not self._apply_profile(profile.uid, profile):
            return False
        current = self._state
        if isinstance(current, PhoneSession):
            await self._save_persisted(current)
        return True

    async def close(self) -> None:
        if self._unsubscribe_federated is not None:
            self._unsubscribe_federated()
            self._unsubscribe_federated = None
        self._keepalive.stop()
        self._revalidator.detach()
        pending = list(self._pending)
        self._cancel_fetches()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        if self._writes:
            await asyncio.gather(*list(self._writes), return_exceptions=True)

    # ------------------------------------------------------------------
    # Background fetches
    # ------------------------------------------------------------------

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _cancel_fetches(self) -> None:
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()

    def _is_current(self, uid: str) -> bool:
        state = self._state
        return (
            isinstance(state, (PhoneSession, FederatedSession))
            and state.principal.id == uid
        )

    async def _fetch_profile(self, uid: str) -> None:
        try:
            profile = await self._profiles.get_profile(uid)
        except Exception as e:
            log.error(
                "profile_fetch_failed",
                error_code=AuthErrorCode.PROFILE_FETCH_FAILED.value,
                principal_id=uid,
                error=str(e),
                error_type=type(e).__name__,
            )
            return

        if profile is not None:
            self._apply_profile(uid, profile)

    def _apply_profile(self, uid: str, profile: UserProfileDoc) -> bool:
        if not self._is_current(uid):
            log.debug("stale_profile_dropped", principal_id=uid)
            return False

        current = self._state
        principal = current.principal
        if isinstance(current, PhoneSession):
            # Phone identities are built from the profile; only the role is kept
            updates = Principal.from_profile(profile).model_dump(exclude={"id", "role"})
        else:
            updates = {"phone_number": profile.phone_number or principal.phone_number}
            if not principal.display_name and profile.display_name:
                updates["display_name"] = profile.display_name
            if not principal.email and profile.email:
                updates["email"] = profile.email
        self._set_state(
            replace(current, principal=principal.model_copy(update=updates), profile=profile)
        )
        return True

    async def _fetch_role(self, uid: str) -> None:
        try:
            role = await self._profiles.get_role(uid)
        except Exception as e:
            # Resolve to the least-privileged role rather than hang guards
            log.error(
                "role_fetch_failed",
                error_code=AuthErrorCode.PROFILE_FETCH_FAILED.value,
                principal_id=uid,
                error=str(e),
                error_type=type(e).__name__,
            )
            role = None

        if not self._is_current(uid):
            log.debug("stale_role_dropped", principal_id=uid)
            return

        if role not in ROLES:
            role = "user"
        current = self._state
        principal = current.principal.model_copy(update={"role": role})
        if isinstance(current, FederatedSession):
            self._set_state(replace(current, principal=principal, role_resolved=True))
        else:
            self._set_state(replace(current, principal=principal))

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    async def _save_persisted(self, session: PhoneSession) -> None:
        task = asyncio.get_running_loop().create_task(self._write_record(session))
        self._writes.add(task)
        task.add_done_callback(self._writes.discard)
        # A cancelled caller (e.g. a stopped keep-alive tick) must not release
        # the lock while its write is still in flight
        await asyncio.shield(task)

    async def _write_record(self, session: PhoneSession) -> None:
        async with self._persist_lock:
            current = self._state
            if not (
                isinstance(current, PhoneSession)
                and current.principal.id == session.principal.id
            ):
                log.debug("phone_session_persist_skipped", principal_id=session.principal.id)
                return
            try:
                await self._persistence.save(session.to_persisted())
            except StoreError as e:
                log.error("phone_session_persist_failed", error=str(e))

    async def _clear_persisted(self) -> None:
        async with self._persist_lock:
            try:
                await self._persistence.clear()
            except StoreError as e:
                log.error("phone_session_clear_failed", error=str(e))
