from datetime import datetime

import pytest
from werkzeug.security import generate_password_hash

from app.bestar import create_app
from app.bestar.db import session_scope
from app.bestar.models import Base, User

PASSWORD = "secret123"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    for k in ("RECAPTCHA_SECRET_KEY", "SMTP_ENABLED", "EMAIL_TO"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_user(app):
    def _make(email, role="CUSTOMER", *, can_manage_articles=False, name="Test User", locale="en", password=PASSWORD):
        now = datetime.utcnow()
        with session_scope(app) as s:
            u = User(
                email=email,
                password_hash=generate_password_hash(password) if password else None,
                name=name,
                role=role,
                can_manage_articles=can_manage_articles,
                locale=locale,
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            s.add(u)
            s.flush()
            return u.id

    return _make


@pytest.fixture()
def login():
    def _login(client, email, password=PASSWORD):
        r = client.post("/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.json
        return r

    return _login


@pytest.fixture()
def csrf():
    """Headers carrying the current session's CSRF token (fetch after login; login resets the session)."""

    def _headers(client):
        token = client.get("/auth/csrf").json["csrf_token"]
        return {"X-CSRF-Token": token}

    return _headers


@pytest.fixture()
def admin_client(client, make_user, login):
    make_user("admin@example.com", "ADMIN", name="Admin")
    login(client, "admin@example.com")
    return client
