"""
Role-based route guard.

decide() is a pure function of (session, rule) and answers one of:

    Allow            render the route
    Hold(reason)     render nothing yet (restoring, role in flight, or
                     already at the redirect target)
    Redirect(path)   navigate away

A session whose role is not yet resolved always gets Hold; treating an
unresolved role as "not admin" would bounce an admin to the user area and
back once the role lands.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional, TypeVar, Union

from config import RouteSettings
from schemas.models.session import (
    FederatedSession,
    Initializing,
    NoSession,
    PhoneSession,
    Session,
)
from schemas.models.user import Role
from shared.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RouteAccessRule:
    allowed_roles: frozenset[Role]
    redirect_to: Optional[str] = None

    @classmethod
    def of(cls, *roles: Role, redirect_to: Optional[str] = None) -> "RouteAccessRule":
        return cls(allowed_roles=frozenset(roles), redirect_to=redirect_to)

    @property
    def admin_only(self) -> bool:
        return "admin" in self.allowed_roles and "user" not in self.allowed_roles

    def permits(self, role: Optional[Role]) -> bool:
        return role is not None and role in self.allowed_roles


ADMIN_ONLY = RouteAccessRule.of("admin")
USER_ONLY = RouteAccessRule.of("user")
ANY_ROLE = RouteAccessRule.of("user", "admin")


@dataclass(frozen=True)
class Allow:
    pass


@dataclass(frozen=True)
class Hold:
    reason: str


@dataclass(frozen=True)
class Redirect:
    path: str


GuardDecision = Union[Allow, Hold, Redirect]


def home_for(role: Role, routes: RouteSettings) -> str:
    return routes.admin_home_path if role == "admin" else routes.user_home_path


def decide(
    session: Session,
    rule: RouteAccessRule,
    routes: RouteSettings,
    current_path: Optional[str] = None,
) -> GuardDecision:
    if isinstance(session, Initializing):
        return Hold("initializing")

    if isinstance(session, NoSession):
        target = routes.admin_login_path if rule.admin_only else routes.user_login_path
    elif isinstance(session, (PhoneSession, FederatedSession)):
        if not session.role_resolved:
            return Hold("role_pending")
        role = session.principal.role
        if rule.permits(role):
            return Allow()
        target = rule.redirect_to or home_for(role, routes)
    else:
        raise TypeError(f"Unknown session variant: {type(session).__name__}")

    # Already there; redirecting again would loop
    if current_path is not None and current_path == target:
        return Hold("at_redirect_target")
    return Redirect(target)


class RouteGuard:
    """Guard bound to a live SessionFacade.

    Exposes the same answers a UI layer needs from a hook: the current role,
    whether it is still loading, and whether a role set has access.
    """

    def __init__(self, facade, routes: Optional[RouteSettings] = None) -> None:
        self._facade = facade
        self._routes = routes or RouteSettings()

    @property
    def role(self) -> Optional[Role]:
        return self._facade.role

    @property
    def loading(self) -> bool:
        return not self._facade.ready or not self._facade.role_resolved

    @property
    def is_admin(self) -> bool:
        return self._facade.is_admin

    @property
    def is_user(self) -> bool:
        return self._facade.is_user

    def has_access(self, allowed_roles: Iterable[Role]) -> bool:
        role = self.role
        return role is not None and role in set(allowed_roles)

    def evaluate(
        self, rule: RouteAccessRule, current_path: Optional[str] = None
    ) -> GuardDecision:
        return decide(self._facade.state, rule, self._routes, current_path)

    async def resolve(
        self, rule: RouteAccessRule, current_path: Optional[str] = None
    ) -> GuardDecision:
        """Wait out restoration and role resolution, then decide."""
        await self._facade.wait_until_ready()
        decision = self.evaluate(rule, current_path)
        while isinstance(decision, Hold) and decision.reason == "role_pending":
            await self._facade.wait_for_role()
            decision = self.evaluate(rule, current_path)
        log.debug("route_guard_decision", decision=type(decision).__name__, path=current_path)
        return decision

    async def protect(
        self,
        rule: RouteAccessRule,
        render: Callable[[], Awaitable[T]],
        current_path: Optional[str] = None,
    ) -> Union[T, Hold, Redirect]:
        """Run ``render`` only when the rule allows the current session."""
        decision = await self.resolve(rule, current_path)
        if isinstance(decision, Allow):
            return await render()
        return decision

    def admin_only(self) -> Optional[Redirect]:
        """Signed-in non-admins go to the user home. Signed-out sessions are left alone."""
        if self.loading or self._facade.principal is None or self.is_admin:
            return None
        return Redirect(self._routes.user_home_path)

    def user_only(self) -> Optional[Redirect]:
        """Signed-in non-users go to the admin home. Signed-out sessions are left alone."""
        if self.loading or self._facade.principal is None or self.is_user:
            return None
        return Redirect(self._routes.admin_home_path)
