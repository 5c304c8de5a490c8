from collections.abc import Callable
from functools import wraps
from typing import Any
from urllib.parse import urlencode

from flask import current_app, g, jsonify, redirect, request

from app.bestar.models import User
from app.bestar.permissions import (
    LOGIN_PATH,
    AdminModule,
    Principal,
    can_access_admin,
    can_access_module,
)


def current_principal() -> Principal | None:
    return getattr(g, "principal", None)


def current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def principal_can(principal: Principal | None, module: AdminModule) -> bool:
    """Same two gates the admin page guard applies, coarse one first."""
    if principal is None:
        return False
    if not can_access_admin(principal.role):
        return False
    return can_access_module(principal.role, module, principal.can_manage_articles)


def require_login(fn: Callable[..., Any]) -> Callable[..., Any]:
    """JSON endpoints: 401 when nobody is signed in."""

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        if current_principal() is None:
            return jsonify({"error": "Not authenticated"}), 401
        return fn(*args, **kwargs)

    return wrapped


def require_login_page(fn: Callable[..., Any]) -> Callable[..., Any]:
    """HTML pages: unauthenticated users are sent to the login page."""

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        if current_principal() is None:
            return redirect(f"{LOGIN_PATH}?{urlencode({'next': request.path})}")
        return fn(*args, **kwargs)

    return wrapped


def require_module(module: AdminModule) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """JSON admin endpoints: 401 when anonymous, 403 when the role cannot open `module`."""

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            principal = current_principal()
            if principal is None:
                return jsonify({"error": "Not authenticated"}), 401
            if not principal_can(principal, module):
                g.missing_permission = module.value
                current_app.logger.warning(
                    "Forbidden: user_id=%s role=%s module=%s request_id=%s",
                    principal.id,
                    principal.role.value if principal.role else None,
                    module.value,
                    getattr(g, "request_id", None),
                )
                return jsonify({"error": "No permission"}), 403
            return fn(*args, **kwargs)

        return wrapped

    return decorator
