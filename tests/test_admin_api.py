from datetime import datetime, timedelta

import pytest

from app.bestar.admin import change_string
from app.bestar.db import session_scope
from app.bestar.models import AuditEvent, User
from app.bestar.modules.messages.models import Contact, Notification
from app.bestar.modules.quotes.models import Quote
from app.bestar.modules.settings.models import Setting


def _quote(app, user_id=None, email="cust@example.com", created_at=None):
    now = created_at or datetime.utcnow()
    with session_scope(app) as s:
        q = Quote(
            user_id=user_id,
            name="Cust",
            email=email,
            phone="4035550100",
            service_type="FBA",
            message="Need a quote please",
            created_at=now,
            updated_at=now,
        )
        s.add(q)
        s.flush()
        return q.id


# --- access ---


@pytest.mark.parametrize(
    "path",
    ["/api/admin/stats", "/api/admin/articles", "/api/admin/quotes", "/api/admin/users", "/api/admin/messages", "/api/admin/pages", "/api/admin/settings"],
)
def test_admin_api_requires_login(client, path):
    assert client.get(path).status_code == 401


@pytest.mark.parametrize(
    "path,status",
    [
        ("/api/admin/messages", 200),
        ("/api/admin/stats", 403),
        ("/api/admin/quotes", 403),
        ("/api/admin/users", 403),
        ("/api/admin/settings", 403),
        ("/api/admin/articles", 403),
    ],
)
def test_staff_api_scope(client, make_user, login, path, status):
    make_user("staff@example.com", "STAFF")
    login(client, "staff@example.com")
    assert client.get(path).status_code == status


def test_unknown_role_denied(client, make_user, login):
    make_user("ghost@example.com", "JANITOR")
    login(client, "ghost@example.com")
    assert client.get("/api/admin/messages").status_code == 403
    assert client.get("/api/admin/modules").json == {"role": None, "modules": []}


def test_modules_listing(admin_client, client):
    body = admin_client.get("/api/admin/modules").json
    assert body["role"] == "ADMIN"
    assert body["modules"] == ["overview", "articles", "quotes", "users", "messages", "pages", "settings"]


def test_staff_modules_with_article_override(client, make_user, login):
    make_user("writer@example.com", "STAFF", can_manage_articles=True)
    login(client, "writer@example.com")
    assert client.get("/api/admin/modules").json["modules"] == ["articles", "messages"]


# --- articles ---


def test_article_crud(app, admin_client, csrf):
    h = csrf(admin_client)
    content = "x" * 450
    r = admin_client.post(
        "/api/admin/articles",
        json={"title": "Hello World 2024!", "content": content, "status": "PUBLISHED", "tags": ["fba", "calgary"]},
        headers=h,
    )
    assert r.status_code == 200
    article = r.json["article"]
    assert article["slug"] == "hello-world-2024"
    assert article["excerpt"] == "x" * 200
    assert article["author"] == "Admin"
    assert article["published_at"] is not None

    again = admin_client.post("/api/admin/articles", json={"title": "Hello World 2024", "content": "y"}, headers=h).json["article"]
    assert again["slug"] == "hello-world-2024-2"
    assert again["status"] == "DRAFT"
    assert again["published_at"] is None

    r = admin_client.patch("/api/admin/articles", json={"id": again["id"], "title": "Second Post", "status": "PUBLISHED"}, headers=h)
    assert r.json["article"]["slug"] == "second-post"
    assert r.json["article"]["published_at"] is not None

    listing = admin_client.get("/api/admin/articles?search=Second").json
    assert listing["total"] == 1
    assert admin_client.get(f"/api/admin/articles/{article['id']}").json["title"] == "Hello World 2024!"

    assert admin_client.delete(f"/api/admin/articles?id={article['id']}", headers=h).status_code == 200
    assert admin_client.get(f"/api/admin/articles/{article['id']}").status_code == 404
    with session_scope(app) as s:
        actions = [e.action for e in s.query(AuditEvent).filter(AuditEvent.entity_type == "Article")]
    assert actions.count("article.create") == 2
    assert "article.edit" in actions
    assert "article.delete" in actions


def test_article_validation(admin_client, csrf):
    h = csrf(admin_client)
    assert admin_client.post("/api/admin/articles", json={"title": "Only title"}, headers=h).status_code == 400
    r = admin_client.post("/api/admin/articles", json={"title": "T", "content": "C", "status": "LIVE"}, headers=h)
    assert r.status_code == 400
    assert admin_client.patch("/api/admin/articles", json={"id": 9999, "title": "X"}, headers=h).status_code == 404


def test_staff_article_override(client, make_user, login, csrf):
    make_user("writer@example.com", "STAFF", can_manage_articles=True, name="Writer")
    login(client, "writer@example.com")
    r = client.post("/api/admin/articles", json={"title": "Port update", "content": "Vancouver port is busy."}, headers=csrf(client))
    assert r.status_code == 200
    assert r.json["article"]["author"] == "Writer"

    client.get("/auth/logout")
    make_user("plain@example.com", "STAFF")
    login(client, "plain@example.com")
    r = client.post("/api/admin/articles", json={"title": "Nope", "content": "Nope"}, headers=csrf(client))
    assert r.status_code == 403


# --- quotes ---


def test_quote_status_notifies_owner_in_locale(app, admin_client, make_user, csrf):
    uid = make_user("cust@example.com", locale="fr")
    qid = _quote(app, user_id=uid)

    r = admin_client.patch(
        "/api/admin/quotes",
        json={"id": qid, "status": "QUOTED", "quoted_price": "CAD 1,250", "quote_note": "Valid 30 days"},
        headers=csrf(admin_client),
    )
    assert r.status_code == 200
    assert r.json["quote"]["status"] == "QUOTED"
    assert r.json["quote"]["quoted_at"] is not None

    with session_scope(app) as s:
        n = s.query(Notification).filter(Notification.user_id == uid).one()
        assert n.type == "QUOTE"
        assert n.title == "Votre devis est prêt"
        assert "CAD 1,250" in n.content
        assert n.link == "/user/quotes"


def test_quote_note_only_does_not_notify(app, admin_client, make_user, csrf):
    uid = make_user("cust@example.com")
    qid = _quote(app, user_id=uid)
    r = admin_client.patch("/api/admin/quotes", json={"id": qid, "quote_note": "Called customer"}, headers=csrf(admin_client))
    assert r.status_code == 200
    with session_scope(app) as s:
        assert s.query(Notification).count() == 0


def test_quote_invalid_status(app, admin_client, csrf):
    qid = _quote(app)
    r = admin_client.patch("/api/admin/quotes", json={"id": qid, "status": "SHIPPED"}, headers=csrf(admin_client))
    assert r.status_code == 400
    with session_scope(app) as s:
        assert s.get(Quote, qid).status == "PENDING"


def test_quote_list_filters(app, admin_client):
    _quote(app, email="alpha@example.com")
    _quote(app, email="beta@example.com")
    assert admin_client.get("/api/admin/quotes").json["total"] == 2
    assert admin_client.get("/api/admin/quotes?search=alpha").json["total"] == 1
    assert admin_client.get("/api/admin/quotes?status=QUOTED").json["total"] == 0


# --- users ---


def test_user_role_change(app, admin_client, make_user, csrf, client):
    uid = make_user("cust@example.com")
    h = csrf(admin_client)
    assert admin_client.patch("/api/admin/users", json={"id": uid, "role": "OVERLORD"}, headers=h).status_code == 400
    assert admin_client.patch("/api/admin/users", json={"id": uid, "can_manage_articles": "yes"}, headers=h).status_code == 400

    r = admin_client.patch("/api/admin/users", json={"id": uid, "role": "STAFF", "can_manage_articles": True}, headers=h)
    assert r.status_code == 200
    assert r.json["user"]["role"] == "STAFF"
    with session_scope(app) as s:
        u = s.get(User, uid)
        assert u.role == "STAFF"
        assert u.can_manage_articles is True


def test_role_change_applies_on_next_request(app, client, make_user, login):
    uid = make_user("cust@example.com")
    login(client, "cust@example.com")
    assert client.get("/api/admin/messages").status_code == 403
    with session_scope(app) as s:
        s.get(User, uid).role = "STAFF"
    assert client.get("/api/admin/messages").status_code == 200


def test_user_delete(app, admin_client, make_user, csrf):
    uid = make_user("cust@example.com")
    h = csrf(admin_client)
    with session_scope(app) as s:
        admin_id = s.query(User.id).filter(User.email == "admin@example.com").scalar()

    r = admin_client.delete(f"/api/admin/users?id={admin_id}", headers=h)
    assert r.status_code == 400
    assert admin_client.delete(f"/api/admin/users?id={uid}", headers=h).status_code == 200
    with session_scope(app) as s:
        assert s.get(User, uid) is None


def test_user_list_filters(admin_client, make_user):
    make_user("staff@example.com", "STAFF", name="Sally")
    make_user("cust@example.com")
    assert admin_client.get("/api/admin/users?role=STAFF").json["total"] == 1
    assert admin_client.get("/api/admin/users?search=sally").json["total"] == 1
    assert admin_client.get("/api/admin/users").json["total"] == 3


# --- messages ---


def test_contact_status_update(app, admin_client, csrf):
    with session_scope(app) as s:
        c = Contact(name="Sam", email="sam@example.com", subject="Hi", message="Hello there friend", created_at=datetime.utcnow())
        s.add(c)
        s.flush()
        cid = c.id

    assert admin_client.get("/api/admin/messages?status=UNREAD").json["total"] == 1
    h = csrf(admin_client)
    assert admin_client.patch("/api/admin/messages", json={"id": cid, "status": "ARCHIVED"}, headers=h).status_code == 400
    r = admin_client.patch("/api/admin/messages", json={"id": cid, "status": "REPLIED"}, headers=h)
    assert r.json["message"]["status"] == "REPLIED"
    assert admin_client.get("/api/admin/messages?status=UNREAD").json["total"] == 0


# --- pages ---


def test_page_lifecycle(admin_client, csrf):
    h = csrf(admin_client)
    payload = {"slug": "about", "title": "关于我们", "title_en": "About us", "content": "内容"}
    r = admin_client.post("/api/admin/pages", json=payload, headers=h)
    assert r.status_code == 201
    page_id = r.json["page"]["id"]
    assert r.json["page"]["published_at"] is None

    assert admin_client.post("/api/admin/pages", json=payload, headers=h).status_code == 409
    assert admin_client.post("/api/admin/pages", json={"slug": "x"}, headers=h).status_code == 400

    first = admin_client.patch(f"/api/admin/pages/{page_id}", json={"status": "PUBLISHED"}, headers=h).json["page"]
    assert first["published_at"] is not None
    second = admin_client.patch(f"/api/admin/pages/{page_id}", json={"status": "PUBLISHED", "title": ""}, headers=h).json["page"]
    assert second["published_at"] == first["published_at"]
    assert second["title"] == "关于我们"

    assert admin_client.get("/api/pages/about?lang=en").json["title"] == "About us"
    assert admin_client.get("/api/admin/pages?status=DRAFT").json["total"] == 0

    assert admin_client.delete(f"/api/admin/pages/{page_id}", headers=h).status_code == 200
    assert admin_client.get(f"/api/admin/pages/{page_id}").status_code == 404


# --- settings ---


def test_settings_defaults_and_save(app, admin_client, csrf):
    settings = admin_client.get("/api/admin/settings").json["settings"]
    assert settings["site_name"] == "Bestar Service CCA"
    assert settings["enable_registration"] == "true"

    h = csrf(admin_client)
    r = admin_client.put(
        "/api/admin/settings",
        json={"settings": {"enable_quote_form": False, "business_hours": "Mon-Sat 9:00-17:00", "fax": None}},
        headers=h,
    )
    assert r.status_code == 200
    assert r.json["settings"]["enable_quote_form"] == "false"
    assert r.json["settings"]["site_name"] == "Bestar Service CCA"
    with session_scope(app) as s:
        assert s.get(Setting, "fax").value == ""

    assert admin_client.put("/api/admin/settings", json={"settings": ["nope"]}, headers=h).status_code == 400


# --- stats ---


def test_stats(app, admin_client, make_user):
    make_user("cust@example.com")
    _quote(app)
    _quote(app, created_at=datetime.utcnow() - timedelta(days=1))
    _quote(app, created_at=datetime.utcnow() - timedelta(days=1))
    body = admin_client.get("/api/admin/stats").json

    assert set(body["stats"]) == {"users", "quotes", "articles", "messages"}
    assert body["stats"]["quotes"]["total"] == 3
    assert body["stats"]["users"]["total"] == 2
    assert body["stats"]["articles"] == {"total": 0, "today": 0, "change": "0"}
    assert len(body["recent_quotes"]) == 3
    assert body["recent_articles"] == []


@pytest.mark.parametrize(
    "today,yesterday,expected",
    [(0, 0, "0"), (3, 0, "+3"), (5, 2, "+3"), (2, 5, "-3"), (4, 4, "+0")],
)
def test_change_string(today, yesterday, expected):
    assert change_string(today, yesterday) == expected
