"""FederatedAuthProvider protocol: the identity provider as seen by the Session Facade.

subscribe() fires the callback once with the current state (principal or
None), then on every sign-in / sign-out transition. It returns the matching
unsubscribe function.
"""

from typing import Callable, Optional, Protocol

from schemas.models.session import Principal

AuthStateCallback = Callable[[Optional[Principal]], None]


class FederatedAuthProvider(Protocol):
    def subscribe(self, callback: AuthStateCallback) -> Callable[[], None]: ...

    async def sign_out(self) -> None: ...
