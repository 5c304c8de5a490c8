import pytest

from app.bestar.permissions import (
    MODULE_PATHS,
    ROLE_PERMISSIONS,
    AdminModule,
    Role,
    accessible_modules,
    can_access_admin,
    can_access_module,
    can_access_path,
    coerce_role,
    denied_redirect_target,
    resolve_module,
)


def test_every_role_has_a_table_entry():
    assert set(ROLE_PERMISSIONS) == set(Role)


def test_table_is_read_only():
    with pytest.raises(TypeError):
        ROLE_PERMISSIONS[Role.CUSTOMER] = frozenset(AdminModule)  # type: ignore[index]


@pytest.mark.parametrize("module", list(AdminModule))
def test_admin_can_access_every_module(module):
    assert can_access_module(Role.ADMIN, module) is True
    assert can_access_module(Role.ADMIN, module, True) is True


def test_override_only_affects_articles():
    for module in AdminModule:
        without = can_access_module(Role.STAFF, module, False)
        with_override = can_access_module(Role.STAFF, module, True)
        if module is AdminModule.ARTICLES:
            assert (without, with_override) == (False, True)
        else:
            assert without == with_override


@pytest.mark.parametrize("role", [Role.WAREHOUSE, Role.FINANCE, Role.CUSTOMER, Role.PARTNER])
def test_override_is_staff_only(role):
    assert can_access_module(role, AdminModule.ARTICLES, True) is False


def test_staff_article_override():
    assert can_access_module(Role.STAFF, AdminModule.ARTICLES, True) is True
    assert can_access_module(Role.STAFF, AdminModule.ARTICLES, False) is False


@pytest.mark.parametrize("role", [Role.STAFF, Role.WAREHOUSE, Role.FINANCE])
def test_back_office_roles_default_to_messages(role):
    assert accessible_modules(role) == [AdminModule.MESSAGES]


@pytest.mark.parametrize("role", [Role.CUSTOMER, Role.PARTNER])
def test_customer_and_partner_never_reach_admin(role):
    assert can_access_admin(role) is False
    for module in AdminModule:
        assert can_access_module(role, module, True) is False
    assert accessible_modules(role, True) == []


@pytest.mark.parametrize("role", [Role.ADMIN, Role.STAFF, Role.WAREHOUSE, Role.FINANCE])
def test_admin_area_roles(role):
    assert can_access_admin(role) is True


@pytest.mark.parametrize("raw", ["SUPERUSER", "", None, 42, "root"])
def test_unknown_roles_are_denied_everywhere(raw):
    assert coerce_role(raw) is None
    assert can_access_admin(raw) is False
    for module in AdminModule:
        assert can_access_module(raw, module, True) is False
    assert denied_redirect_target(raw) == "/dashboard"


def test_coerce_role_accepts_stored_spellings():
    assert coerce_role("staff") is Role.STAFF
    assert coerce_role(" ADMIN ") is Role.ADMIN
    assert coerce_role(Role.FINANCE) is Role.FINANCE


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/admin", AdminModule.OVERVIEW),
        ("/admin/users", AdminModule.USERS),
        ("/admin/articles/12/edit", AdminModule.ARTICLES),
        ("/admin/messages", AdminModule.MESSAGES),
        ("/admin/settings", AdminModule.SETTINGS),
        ("/random", None),
        ("/admin/", None),
        ("/admin/unknown", None),
        ("/dashboard", None),
    ],
)
def test_resolve_module(path, expected):
    assert resolve_module(path) is expected


def test_module_prefixes_do_not_overlap():
    prefixes = [p for m, p in MODULE_PATHS.items() if m is not AdminModule.OVERVIEW]
    for a in prefixes:
        for b in prefixes:
            if a != b:
                assert not a.startswith(b)


def test_can_access_path_denies_unmapped_paths():
    assert can_access_path(Role.ADMIN, "/random") is False
    assert can_access_path(Role.ADMIN, "/admin/quotes") is True
    assert can_access_path(Role.STAFF, "/admin/articles/new", True) is True


def test_decisions_are_idempotent():
    for role in list(Role) + ["SUPERUSER"]:
        for module in AdminModule:
            for flag in (False, True):
                first = can_access_module(role, module, flag)
                assert all(can_access_module(role, module, flag) == first for _ in range(3))
        for path in ("/admin", "/admin/articles", "/x"):
            assert resolve_module(path) is resolve_module(path)


def test_denied_redirect_targets():
    assert denied_redirect_target(Role.STAFF) == "/admin/messages"
    for role in (Role.WAREHOUSE, Role.FINANCE, Role.CUSTOMER, Role.PARTNER, Role.ADMIN):
        assert denied_redirect_target(role) == "/dashboard"


def test_accessible_modules_follow_table_order():
    assert accessible_modules(Role.ADMIN) == list(MODULE_PATHS)
    assert accessible_modules(Role.STAFF, True) == [AdminModule.ARTICLES, AdminModule.MESSAGES]
