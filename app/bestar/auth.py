from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, jsonify, redirect, render_template, request, session, url_for
from sqlalchemy import func
from werkzeug.security import check_password_hash, generate_password_hash

from app.bestar.audit import record_event
from app.bestar.captcha import CaptchaError, RecaptchaVerifier
from app.bestar.db import db_session
from app.bestar.models import User
from app.bestar.modules.messages.models import Contact
from app.bestar.modules.quotes.models import Quote
from app.bestar.modules.settings.service import is_enabled
from app.bestar.permissions import Role, can_access_admin
from app.bestar.security import ensure_csrf_token
from app.bestar.two_factor import verify_token as verify_totp
from app.bestar.utils import clean_str, json_body, text_field
from app.bestar.validation import validate_register_payload

bp = Blueprint("auth", __name__)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _attempts() -> dict[str, list[datetime]]:
    # Per-app so separate app instances (tests, workers) don't share counters.
    return current_app.extensions.setdefault("login_attempts", defaultdict(list))


def _check_rate_limit(ip: str) -> bool:
    attempts = _attempts()
    cutoff = datetime.utcnow() - timedelta(seconds=_LOGIN_RATE_WINDOW)
    attempts[ip] = [t for t in attempts[ip] if t > cutoff]
    return len(attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _attempts()[ip].append(datetime.utcnow())


def load_current_user() -> None:
    """
    Loads g.current_user / g.principal from the signed session cookie.
    Role and article override are re-read from the database on every request,
    so role changes apply immediately.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.current_user = None
    g.principal = None
    if request.path.startswith(("/static/", "/health", "/healthz")):
        return

    user_id = session.get("user_id")
    if not user_id:
        return

    try:
        s = db_session()
        user = s.get(User, int(user_id))
    except Exception as e:
        # Session lookup failure is handled as "no active session".
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
        session.pop("user_id", None)
        return
    if not user or not user.is_active:
        session.pop("user_id", None)
        return
    g.current_user = user
    g.principal = user.to_principal()


def is_local_path(target: str) -> bool:
    """Only same-site paths: browsers read "//host" and "/\\host" as another origin."""
    return target.startswith("/") and target[1:2] not in ("/", "\\")


def _landing_for(user: User) -> str:
    return "/admin" if can_access_admin(user.role) else "/dashboard"


@bp.get("/login")
def login_page():
    if getattr(g, "principal", None) is not None:
        return redirect(_landing_for(g.current_user))
    nxt = (request.args.get("next") or "").strip()
    return render_template("auth/login.html", next=nxt)


@bp.get("/register")
def register_page():
    return render_template("auth/register.html")


@bp.get("/auth/csrf")
def csrf_token():
    return jsonify({"csrf_token": ensure_csrf_token()})


@bp.get("/auth/session")
def session_info():
    p = getattr(g, "principal", None)
    if p is None:
        return jsonify({"authenticated": False})
    return jsonify(
        {
            "authenticated": True,
            "user": {
                "id": p.id,
                "email": p.email,
                "name": p.name,
                "role": p.role.value if p.role else None,
                "can_manage_articles": p.can_manage_articles,
            },
        }
    )


@bp.post("/auth/login")
def login_post():
    data = json_body()
    email = (clean_str(data.get("email")) or "").lower()
    password = text_field(data, "password")
    nxt = clean_str(data.get("next")) or ""
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        return jsonify({"error": "Too many login attempts. Please wait 5 minutes."}), 429

    _record_attempt(ip)

    try:
        s = db_session()
        user = s.query(User).filter(func.lower(User.email) == email).one_or_none()
        if (
            not user
            or not user.is_active
            or not user.password_hash
            or not check_password_hash(user.password_hash, password)
        ):
            record_event(
                s,
                actor=None,
                actor_email=email or None,
                action="auth.login_failed",
                entity_type="User",
                entity_id=email,
                reason="Invalid credentials",
            )
            s.commit()
            return jsonify({"error": "Invalid credentials"}), 401

        if user.two_factor_enabled:
            code = clean_str(data.get("code"))
            if not code:
                return jsonify({"error": "Two-factor code required", "two_factor_required": True}), 401
            if not verify_totp(user.two_factor_secret, code):
                record_event(
                    s,
                    actor=user,
                    action="auth.login_failed",
                    entity_type="User",
                    entity_id=str(user.id),
                    reason="Invalid two-factor code",
                )
                s.commit()
                return jsonify({"error": "Invalid two-factor code", "two_factor_required": True}), 401

        session.clear()
        session["user_id"] = user.id
        session.permanent = True
        _attempts()[ip].clear()
        record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
        s.commit()
    except Exception:
        current_app.logger.exception("Login POST crashed (email=%s request_id=%s)", email, getattr(g, "request_id", None))
        raise

    # Optional "next" redirect (only allow local paths to avoid open redirects).
    target = nxt if is_local_path(nxt) else _landing_for(user)
    return jsonify({"success": True, "redirect": target, "user": {"id": user.id, "email": user.email, "role": user.role}})


@bp.route("/auth/logout", methods=["GET", "POST"])
def logout():
    user = getattr(g, "current_user", None)
    if user:
        s = db_session()
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    session.clear()
    if request.method == "GET":
        return redirect(url_for("routes.index"))
    return jsonify({"success": True})


@bp.post("/auth/register")
def register():
    data = json_body()
    if not is_enabled(db_session(), "enable_registration"):
        return jsonify({"success": False, "error": "Registration is currently closed"}), 403
    errors = validate_register_payload(data)
    if errors:
        return jsonify({"success": False, "error": errors[0], "errors": errors}), 400

    email = (clean_str(data.get("email")) or "").lower()
    s = db_session()
    try:
        if s.query(User).filter(func.lower(User.email) == email).one_or_none():
            return jsonify({"success": False, "error": "This email is already registered"}), 400

        now = datetime.utcnow()
        user = User(
            email=email,
            password_hash=generate_password_hash(text_field(data, "password")),
            name=clean_str(data.get("name")),
            company=clean_str(data.get("company")),
            phone=clean_str(data.get("phone")),
            role=Role.CUSTOMER.value,
            created_at=now,
            updated_at=now,
        )
        s.add(user)
        s.flush()

        # Claim earlier anonymous submissions made with this address.
        linked_quotes = (
            s.query(Quote)
            .filter(func.lower(Quote.email) == email, Quote.user_id.is_(None))
            .update({Quote.user_id: user.id}, synchronize_session=False)
        )
        linked_contacts = (
            s.query(Contact)
            .filter(func.lower(Contact.email) == email, Contact.user_id.is_(None))
            .update({Contact.user_id: user.id}, synchronize_session=False)
        )
        record_event(
            s,
            actor=user,
            action="auth.register",
            entity_type="User",
            entity_id=str(user.id),
            metadata={"linked_quotes": linked_quotes, "linked_contacts": linked_contacts},
        )
        s.commit()
    except Exception:
        s.rollback()
        current_app.logger.exception("Registration failed (email=%s)", email)
        return jsonify({"success": False, "error": "Registration failed, please try again later"}), 500

    current_app.logger.info("User registered: %s (linked %s quotes, %s contacts)", email, linked_quotes, linked_contacts)
    return jsonify(
        {
            "success": True,
            "message": "Registration successful",
            "linked_quotes": linked_quotes,
            "linked_contacts": linked_contacts,
        }
    )


@bp.post("/auth/verify-captcha")
def verify_captcha():
    data = json_body()
    token = clean_str(data.get("token")) or ""
    if not token:
        return jsonify({"success": False, "error": "Missing CAPTCHA token"}), 400

    secret = current_app.config.get("RECAPTCHA_SECRET_KEY") or ""
    if not secret:
        current_app.logger.warning("RECAPTCHA_SECRET_KEY not configured, skipping verification")
        return jsonify({"success": True, "score": 1.0})

    verifier = RecaptchaVerifier(secret_key=secret, min_score=float(current_app.config.get("RECAPTCHA_MIN_SCORE", 0.5)))
    try:
        result = verifier.verify(token, remote_ip=request.remote_addr)
    except CaptchaError as e:
        current_app.logger.error("CAPTCHA verification error: %s", e)
        return jsonify({"success": False, "error": "Verification failed"}), 500

    if result.success:
        return jsonify({"success": True, "score": result.score, "action": result.action})
    if result.low_score:
        return jsonify({"success": False, "error": "Low score - suspected bot", "score": result.score}), 403
    return jsonify({"success": False, "error": "CAPTCHA verification failed", "errors": result.error_codes}), 400
