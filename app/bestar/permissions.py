"""
Role-based access rules for the admin area.

Everything here is static data plus pure functions over it. The table and the
path mapping are built once at import time and never mutated; callers pass the
principal's role and article override explicitly.
"""
from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    WAREHOUSE = "WAREHOUSE"
    FINANCE = "FINANCE"
    CUSTOMER = "CUSTOMER"
    PARTNER = "PARTNER"


class AdminModule(str, enum.Enum):
    OVERVIEW = "overview"
    ARTICLES = "articles"
    QUOTES = "quotes"
    USERS = "users"
    MESSAGES = "messages"
    PAGES = "pages"
    SETTINGS = "settings"


ADMIN_ROOT = "/admin"

ROLE_PERMISSIONS: Mapping[Role, frozenset[AdminModule]] = MappingProxyType(
    {
        Role.ADMIN: frozenset(AdminModule),
        # Staff only get the message centre by default; articles via the per-user override.
        Role.STAFF: frozenset({AdminModule.MESSAGES}),
        Role.WAREHOUSE: frozenset({AdminModule.MESSAGES}),
        Role.FINANCE: frozenset({AdminModule.MESSAGES}),
        Role.CUSTOMER: frozenset(),
        Role.PARTNER: frozenset(),
    }
)

ADMIN_AREA_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.STAFF, Role.WAREHOUSE, Role.FINANCE})

# Overview matches the admin root exactly; every other module matches by prefix.
# Prefixes must stay disjoint. If two ever overlap, the first entry in this
# mapping's order wins, so add narrower prefixes before broader ones.
MODULE_PATHS: Mapping[AdminModule, str] = MappingProxyType(
    {
        AdminModule.OVERVIEW: ADMIN_ROOT,
        AdminModule.ARTICLES: "/admin/articles",
        AdminModule.QUOTES: "/admin/quotes",
        AdminModule.USERS: "/admin/users",
        AdminModule.MESSAGES: "/admin/messages",
        AdminModule.PAGES: "/admin/pages",
        AdminModule.SETTINGS: "/admin/settings",
    }
)

LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"
STAFF_LANDING_PATH = MODULE_PATHS[AdminModule.MESSAGES]


@dataclass(frozen=True)
class Principal:
    """The authenticated user as seen by access checks."""

    id: int
    email: str
    role: Role | None
    can_manage_articles: bool = False
    name: str | None = None


def coerce_role(value: object) -> Role | None:
    """
    Map a stored role value onto Role.

    Anything unrecognised becomes None, which has no permissions and no admin
    access. This is the single unknown-role policy for the whole app.
    """
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value.strip().upper())
    except ValueError:
        return None


def resolve_module(path: str) -> AdminModule | None:
    if path == ADMIN_ROOT:
        return AdminModule.OVERVIEW
    for module, prefix in MODULE_PATHS.items():
        if module is AdminModule.OVERVIEW:
            continue
        if path.startswith(prefix):
            return module
    return None


def can_access_module(role: Role | str | None, module: AdminModule, can_manage_articles: bool = False) -> bool:
    r = coerce_role(role)
    if r is Role.ADMIN:
        return True
    if r is Role.STAFF and module is AdminModule.ARTICLES and can_manage_articles:
        return True
    if r is None:
        return False
    return module in ROLE_PERMISSIONS.get(r, frozenset())


def can_access_admin(role: Role | str | None) -> bool:
    return coerce_role(role) in ADMIN_AREA_ROLES


def can_access_path(role: Role | str | None, path: str, can_manage_articles: bool = False) -> bool:
    module = resolve_module(path)
    if module is None:
        return False
    return can_access_module(role, module, can_manage_articles)


def accessible_modules(role: Role | str | None, can_manage_articles: bool = False) -> list[AdminModule]:
    """Modules the role can open, in sidebar (table) order."""
    return [m for m in MODULE_PATHS if can_access_module(role, m, can_manage_articles)]


def denied_redirect_target(role: Role | str | None) -> str:
    """Where a signed-in user goes when a gate refuses them."""
    if coerce_role(role) is Role.STAFF:
        return STAFF_LANDING_PATH
    return DASHBOARD_PATH
