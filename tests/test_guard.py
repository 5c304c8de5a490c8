import pytest

from app.bestar.guard import AdminGuard, GuardDecision, GuardState, SessionSnapshot, SessionStatus, evaluate
from app.bestar.permissions import Principal, Role


def _p(role, override=False):
    return Principal(id=1, email="u@example.com", role=role, can_manage_articles=override)


def _snap(role, override=False):
    return SessionSnapshot.from_principal(_p(role, override))


# --- pure decision ---


def test_loading_session_is_pending():
    d = evaluate(SessionSnapshot.loading(), "/admin/articles")
    assert d.state is GuardState.PENDING
    assert d.redirect_to is None
    assert not d.renders_content


@pytest.mark.parametrize("path", ["/admin", "/admin/users", "/admin/articles/new", "/admin/nowhere"])
def test_no_session_goes_to_login(path):
    d = evaluate(SessionSnapshot(SessionStatus.NONE), path)
    assert d.state is GuardState.UNAUTHENTICATED
    assert d.redirect_to == "/login"
    assert not d.renders_content


def test_staff_without_override_bounced_to_messages():
    d = evaluate(_snap(Role.STAFF), "/admin/articles")
    assert d == GuardDecision(GuardState.REDIRECTING, "/admin/messages")


def test_staff_with_override_renders_articles():
    d = evaluate(_snap(Role.STAFF, True), "/admin/articles")
    assert d.state is GuardState.AUTHORIZED
    assert d.renders_content


def test_warehouse_reaches_messages():
    assert evaluate(_snap(Role.WAREHOUSE), "/admin/messages").state is GuardState.AUTHORIZED


def test_customer_fails_coarse_gate_before_module_resolution():
    # "/admin/nowhere" resolves to no module; the coarse gate decides first either way.
    for path in ("/admin", "/admin/nowhere"):
        d = evaluate(_snap(Role.CUSTOMER), path)
        assert d == GuardDecision(GuardState.REDIRECTING, "/dashboard")


def test_unknown_role_fails_closed():
    d = evaluate(SessionSnapshot.from_principal(_p(None)), "/admin/messages")
    assert d == GuardDecision(GuardState.REDIRECTING, "/dashboard")


def test_unmapped_admin_path_redirects_even_for_admin():
    d = evaluate(_snap(Role.ADMIN), "/admin/nowhere")
    assert d.state is GuardState.REDIRECTING
    assert d.redirect_to == "/dashboard"


def test_finance_denied_settings_goes_to_dashboard():
    assert evaluate(_snap(Role.FINANCE), "/admin/settings") == GuardDecision(GuardState.REDIRECTING, "/dashboard")


def test_evaluate_is_idempotent():
    snap = _snap(Role.STAFF)
    assert {evaluate(snap, "/admin/quotes") for _ in range(5)} == {evaluate(snap, "/admin/quotes")}


# --- stateful guard ---


def test_navigate_issues_redirect_for_current_generation():
    issued = []
    guard = AdminGuard(issued.append)
    d = guard.navigate(_snap(Role.STAFF), "/admin/articles")
    assert d.state is GuardState.REDIRECTING
    assert issued == ["/admin/messages"]


def test_authorized_navigation_issues_nothing():
    issued = []
    guard = AdminGuard(issued.append)
    guard.navigate(_snap(Role.ADMIN), "/admin/users")
    assert issued == []


def test_stale_evaluation_is_dropped():
    issued = []
    guard = AdminGuard(issued.append)

    # A slow check for the old path starts, then the user navigates again.
    stale_ticket = guard.begin()
    stale = evaluate(_snap(Role.CUSTOMER), "/admin")
    guard.navigate(_snap(Role.ADMIN), "/admin/users")

    assert guard.issue(stale_ticket, stale) is False
    assert issued == []
    assert not guard.is_current(stale_ticket)


def test_override_change_is_picked_up_on_next_navigation():
    issued = []
    guard = AdminGuard(issued.append)
    guard.navigate(_snap(Role.STAFF, False), "/admin/articles")
    d = guard.navigate(_snap(Role.STAFF, True), "/admin/articles")
    assert d.state is GuardState.AUTHORIZED
    assert issued == ["/admin/messages"]
    assert guard.generation == 2


# --- Flask integration (end-to-end) ---


def test_anonymous_admin_redirects_to_login(client):
    for path in ("/admin", "/admin/articles", "/admin/settings"):
        r = client.get(path)
        assert r.status_code == 302
        assert r.headers["Location"].startswith("/login?next=")


def test_staff_articles_without_override_redirects(client, make_user, login):
    make_user("staff@example.com", "STAFF")
    login(client, "staff@example.com")
    r = client.get("/admin/articles")
    assert r.status_code == 302
    assert r.headers["Location"] == "/admin/messages"


def test_staff_articles_with_override_renders(client, make_user, login):
    make_user("editor@example.com", "STAFF", can_manage_articles=True)
    login(client, "editor@example.com")
    r = client.get("/admin/articles")
    assert r.status_code == 200
    assert b"Articles" in r.data


def test_warehouse_messages_renders(client, make_user, login):
    make_user("wh@example.com", "WAREHOUSE")
    login(client, "wh@example.com")
    assert client.get("/admin/messages").status_code == 200


def test_customer_admin_redirects_to_dashboard(client, make_user, login):
    make_user("cust@example.com", "CUSTOMER")
    login(client, "cust@example.com")
    r = client.get("/admin")
    assert r.status_code == 302
    assert r.headers["Location"] == "/dashboard"


def test_unknown_stored_role_redirects_to_dashboard(client, make_user, login):
    make_user("odd@example.com", "SUPERUSER")
    login(client, "odd@example.com")
    r = client.get("/admin/messages")
    assert r.status_code == 302
    assert r.headers["Location"] == "/dashboard"


def test_admin_sees_every_module_page(admin_client):
    for path in ("/admin", "/admin/articles", "/admin/quotes", "/admin/users", "/admin/messages", "/admin/pages", "/admin/settings"):
        assert admin_client.get(path).status_code == 200, path


def test_role_change_applies_on_next_request(app, client, make_user, login):
    from app.bestar.db import session_scope
    from app.bestar.models import User

    uid = make_user("promote@example.com", "STAFF")
    login(client, "promote@example.com")
    assert client.get("/admin/users").status_code == 302

    with session_scope(app) as s:
        s.get(User, uid).role = "ADMIN"
    assert client.get("/admin/users").status_code == 200
