"""In-process FederatedAuthProvider.

The identity provider's SDK (or an OAuth callback handler) pushes state into
the bridge with publish(); the Session Facade consumes it through the
FederatedAuthProvider protocol. New subscribers get the current state
replayed immediately, matching the provider's observer semantics.
"""

from typing import Awaitable, Callable, Optional

from infrastructure.federated.protocol import AuthStateCallback
from schemas.models.session import Principal
from shared.events import EventEmitter
from shared.logging import get_logger

log = get_logger(__name__)


class FederatedAuthBridge:
    def __init__(
        self,
        sign_out_hook: Optional[Callable[[], Awaitable[None]]] = None,
        initial: Optional[Principal] = None,
    ) -> None:
        self._current = initial
        self._events: EventEmitter[Optional[Principal]] = EventEmitter("federated_auth")
        self._sign_out_hook = sign_out_hook

    @property
    def current(self) -> Optional[Principal]:
        return self._current

    @property
    def subscriber_count(self) -> int:
        return self._events.listener_count

    def subscribe(self, callback: AuthStateCallback) -> Callable[[], None]:
        unsubscribe = self._events.subscribe(callback)
        callback(self._current)
        return unsubscribe

    def publish(self, principal: Optional[Principal]) -> None:
        """Record a provider-side sign-in (principal) or sign-out (None)."""
        self._current = principal
        log.info(
            "federated_state_changed",
            signed_in=principal is not None,
            principal_id=principal.id if principal else None,
        )
        self._events.emit(principal)

    async def sign_out(self) -> None:
        # The remote call goes first; a failure leaves provider state untouched
        if self._sign_out_hook is not None:
            await self._sign_out_hook()
        self.publish(None)
