"""
Admin navigation guard.

`evaluate()` is the pure decision: session snapshot + path in, state + redirect
target out. `AdminGuard` wraps it for hosts that resolve sessions
asynchronously and must drop redirects from superseded evaluations.
`guard_admin_request()` is the Flask hook used by the admin page blueprint.
"""
from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urlencode

from flask import g, redirect, render_template, request

from app.bestar.permissions import (
    LOGIN_PATH,
    Principal,
    can_access_admin,
    can_access_module,
    denied_redirect_target,
    resolve_module,
)

logger = logging.getLogger(__name__)


class SessionStatus(str, enum.Enum):
    LOADING = "loading"
    NONE = "none"
    AUTHENTICATED = "authenticated"


class GuardState(str, enum.Enum):
    PENDING = "pending"
    UNAUTHENTICATED = "unauthenticated"
    AUTHORIZED = "authorized"
    REDIRECTING = "redirecting"


@dataclass(frozen=True)
class SessionSnapshot:
    status: SessionStatus
    principal: Principal | None = None

    @classmethod
    def loading(cls) -> "SessionSnapshot":
        return cls(SessionStatus.LOADING)

    @classmethod
    def from_principal(cls, principal: Principal | None) -> "SessionSnapshot":
        if principal is None:
            return cls(SessionStatus.NONE)
        return cls(SessionStatus.AUTHENTICATED, principal)


@dataclass(frozen=True)
class GuardDecision:
    state: GuardState
    redirect_to: str | None = None

    @property
    def renders_content(self) -> bool:
        return self.state is GuardState.AUTHORIZED


def evaluate(snapshot: SessionSnapshot, path: str) -> GuardDecision:
    if snapshot.status is SessionStatus.LOADING:
        return GuardDecision(GuardState.PENDING)
    p = snapshot.principal
    if snapshot.status is SessionStatus.NONE or p is None:
        return GuardDecision(GuardState.UNAUTHENTICATED, LOGIN_PATH)

    # Coarse gate first: the redirect target depends on which gate failed.
    if not can_access_admin(p.role):
        return GuardDecision(GuardState.REDIRECTING, denied_redirect_target(p.role))

    module = resolve_module(path)
    if module is None or not can_access_module(p.role, module, p.can_manage_articles):
        return GuardDecision(GuardState.REDIRECTING, denied_redirect_target(p.role))

    return GuardDecision(GuardState.AUTHORIZED)


class AdminGuard:
    """
    Stateful wrapper around `evaluate()`.

    Every navigation takes a new generation ticket. A redirect is only issued
    while its ticket is still the latest one, so a slow evaluation finishing
    after the user moved on cannot yank them somewhere stale.
    """

    def __init__(self, redirect_to: Callable[[str], None]) -> None:
        self._redirect_to = redirect_to
        self._lock = threading.Lock()
        self._generation = 0

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def begin(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._generation

    def issue(self, ticket: int, decision: GuardDecision) -> bool:
        """Perform the decision's redirect if `ticket` is still current."""
        if decision.redirect_to is None:
            return False
        with self._lock:
            if ticket != self._generation:
                logger.debug("Dropping stale guard redirect to %s (ticket=%s)", decision.redirect_to, ticket)
                return False
        self._redirect_to(decision.redirect_to)
        return True

    def navigate(self, snapshot: SessionSnapshot, path: str) -> GuardDecision:
        ticket = self.begin()
        decision = evaluate(snapshot, path)
        self.issue(ticket, decision)
        return decision


def guard_admin_request():
    """before_request hook for admin pages."""
    principal: Principal | None = getattr(g, "principal", None)
    decision = evaluate(SessionSnapshot.from_principal(principal), request.path)
    g.guard_decision = decision

    if decision.state is GuardState.AUTHORIZED:
        return None
    if decision.state is GuardState.PENDING:
        return render_template("admin/loading.html"), 200
    if decision.state is GuardState.UNAUTHENTICATED:
        return redirect(f"{LOGIN_PATH}?{urlencode({'next': request.path})}")

    logger.info(
        "Admin guard redirect: user_id=%s role=%s path=%s -> %s",
        principal.id if principal else None,
        principal.role.value if principal and principal.role else None,
        request.path,
        decision.redirect_to,
    )
    return redirect(decision.redirect_to or LOGIN_PATH)
