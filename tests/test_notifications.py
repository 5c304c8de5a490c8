from datetime import datetime

from app.bestar.db import session_scope
from app.bestar.modules.messages.models import Notification


def _notify(app, user_id, title="Hello", is_read=False):
    with session_scope(app) as s:
        n = Notification(user_id=user_id, title=title, content="Body", type="SYSTEM", is_read=is_read, created_at=datetime.utcnow())
        s.add(n)
        s.flush()
        return n.id


def test_admin_sends_to_one_user(app, admin_client, make_user, csrf, client):
    uid = make_user("cust@example.com")
    r = admin_client.post(
        "/api/notifications",
        json={"title": "Closed Friday", "content": "Warehouse closed on Friday", "user_id": uid},
        headers=csrf(admin_client),
    )
    assert r.status_code == 200
    assert r.json == {"success": True, "count": 1}


def test_send_to_all_and_validation(admin_client, make_user, csrf):
    make_user("a@example.com")
    make_user("b@example.com")
    h = csrf(admin_client)
    r = admin_client.post("/api/notifications", json={"title": "News", "content": "New route", "send_to_all": True}, headers=h)
    assert r.json["count"] == 3

    assert admin_client.post("/api/notifications", json={"title": "News"}, headers=h).status_code == 400
    assert admin_client.post("/api/notifications", json={"title": "T", "content": "C"}, headers=h).status_code == 400
    r = admin_client.post("/api/notifications", json={"title": "T", "content": "C", "user_id": 9999}, headers=h)
    assert r.status_code == 400
    r = admin_client.post("/api/notifications", json={"title": "T", "content": "C", "send_to_all": True, "type": "SPAM"}, headers=h)
    assert r.status_code == 400


def test_staff_can_send_customer_cannot(client, make_user, login, csrf):
    target = make_user("cust@example.com")
    make_user("staff@example.com", "STAFF")
    login(client, "staff@example.com")
    r = client.post("/api/notifications", json={"title": "T", "content": "C", "user_id": target}, headers=csrf(client))
    assert r.status_code == 200

    client.get("/auth/logout")
    login(client, "cust@example.com")
    r = client.post("/api/notifications", json={"title": "T", "content": "C", "user_id": target}, headers=csrf(client))
    assert r.status_code == 403


def test_inbox_listing_and_mark_read(app, client, make_user, login, csrf):
    uid = make_user("cust@example.com")
    other = make_user("other@example.com")
    first = _notify(app, uid, "One")
    _notify(app, uid, "Two")
    _notify(app, uid, "Old", is_read=True)
    _notify(app, other, "Not mine")

    login(client, "cust@example.com")
    body = client.get("/api/notifications").json
    assert body["total"] == 3
    assert body["unread_count"] == 2
    assert client.get("/api/notifications?unread=1").json["total"] == 2

    h = csrf(client)
    r = client.patch("/api/notifications", json={"id": first}, headers=h)
    assert r.json["notification"]["is_read"] is True
    assert client.get("/api/notifications").json["unread_count"] == 1

    r = client.patch("/api/notifications", json={"mark_all_read": True}, headers=h)
    assert r.json["updated"] == 1
    assert client.get("/api/notifications").json["unread_count"] == 0


def test_cannot_touch_another_users_notification(app, client, make_user, login, csrf):
    make_user("cust@example.com")
    other = make_user("other@example.com")
    theirs = _notify(app, other)

    login(client, "cust@example.com")
    h = csrf(client)
    assert client.patch("/api/notifications", json={"id": theirs}, headers=h).status_code == 404
    assert client.delete(f"/api/notifications?id={theirs}", headers=h).status_code == 404
    with session_scope(app) as s:
        assert s.get(Notification, theirs).is_read is False


def test_delete_own(app, client, make_user, login, csrf):
    uid = make_user("cust@example.com")
    mine = _notify(app, uid)
    login(client, "cust@example.com")
    r = client.delete(f"/api/notifications?id={mine}", headers=csrf(client))
    assert r.json == {"success": True}
    with session_scope(app) as s:
        assert s.get(Notification, mine) is None


def test_inbox_requires_login(client):
    assert client.get("/api/notifications").status_code == 401


def test_recipients_listing_for_staff(client, make_user, login):
    cust = make_user("cust@example.com", name="Li Wei")
    make_user("staff@example.com", "STAFF", name="Staff")
    login(client, "staff@example.com")
    r = client.get("/api/admin/messages/recipients?search=li")
    assert r.status_code == 200
    assert r.json["recipients"] == [{"id": cust, "name": "Li Wei", "email": "cust@example.com"}]

    client.get("/auth/logout")
    login(client, "cust@example.com")
    assert client.get("/api/admin/messages/recipients").status_code == 403
