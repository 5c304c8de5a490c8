"""Signed-in user self-service: dashboard pages and the /api/user endpoints."""
import json
import math
from datetime import datetime

from flask import Blueprint, abort, current_app, jsonify, render_template, request
from werkzeug.security import check_password_hash, generate_password_hash

from app.bestar import two_factor
from app.bestar.audit import record_event
from app.bestar.db import db_session
from app.bestar.i18n import LOCALE_NAMES, LOCALES
from app.bestar.models import AuditEvent
from app.bestar.modules.messages.service import unread_count
from app.bestar.modules.quotes.models import Quote
from app.bestar.modules.quotes.service import quote_to_dict, quotes_for_user
from app.bestar.modules.users.service import user_to_dict
from app.bestar.rbac import current_user, require_login, require_login_page
from app.bestar.utils import clean_str, iso, json_body, page_count, page_params, text_field
from app.bestar.validation import MIN_PASSWORD_LENGTH

pages_bp = Blueprint("account", __name__)
api_bp = Blueprint("user_api", __name__)

USER_SECTIONS = ("profile", "password", "quotes", "settings", "notifications")
_PREFERENCE_FIELDS = ("email_notifications", "quote_updates", "news_updates")
_LOGIN_ACTIONS = ("auth.login", "auth.login_failed")


# --- pages ---


@pages_bp.get("/dashboard")
@require_login_page
def dashboard():
    s = db_session()
    user = current_user()
    recent = quotes_for_user(s, user).order_by(Quote.created_at.desc()).limit(5).all()
    return render_template(
        "user/dashboard.html",
        user=user,
        recent_quotes=recent,
        quote_total=quotes_for_user(s, user).count(),
        unread=unread_count(s, user.id),
    )


@pages_bp.get("/user/<section>")
@require_login_page
def section(section: str):
    if section not in USER_SECTIONS:
        abort(404)
    user = current_user()
    setup = None
    if section == "settings" and not user.two_factor_enabled:
        entry, _ = two_factor.start_setup(user.email)
        setup = {
            "secret": entry["secret"],
            "qr_code": two_factor.qr_code_data_url(two_factor.provisioning_uri(entry["secret"], user.email)),
        }
    return render_template(
        "user/section.html",
        user=user,
        two_factor_setup=setup,
        section=section,
        sections=USER_SECTIONS,
        locales=[(code, LOCALE_NAMES[code]) for code in LOCALES],
    )


# --- profile ---


@api_bp.get("/profile")
@require_login
def profile_get():
    return jsonify(user_to_dict(current_user()))


@api_bp.patch("/profile")
@require_login
def profile_patch():
    s = db_session()
    user = current_user()
    payload = json_body()

    if "name" in payload:
        name = clean_str(payload.get("name"))
        if not name or len(name) < 2:
            return jsonify({"error": "Name must be at least 2 characters"}), 400
        user.name = name
    if "phone" in payload:
        user.phone = clean_str(payload.get("phone"))
    if "company" in payload:
        user.company = clean_str(payload.get("company"))
    user.updated_at = datetime.utcnow()

    record_event(s, actor=user, action="user.profile_update", entity_type="User", entity_id=str(user.id))
    s.commit()
    return jsonify({"success": True, "user": user_to_dict(user)})


@api_bp.patch("/password")
@require_login
def password_patch():
    s = db_session()
    user = current_user()
    payload = json_body()
    current_password = text_field(payload, "current_password")
    new_password = text_field(payload, "new_password")

    if not current_password or not new_password:
        return jsonify({"error": "Current and new password are required"}), 400
    if len(new_password) < MIN_PASSWORD_LENGTH:
        return jsonify({"error": f"New password must be at least {MIN_PASSWORD_LENGTH} characters"}), 400
    if not user.password_hash:
        return jsonify({"error": "This account has no password set"}), 400
    if not check_password_hash(user.password_hash, current_password):
        return jsonify({"error": "Current password is incorrect"}), 400

    user.password_hash = generate_password_hash(new_password)
    user.updated_at = datetime.utcnow()
    record_event(s, actor=user, action="user.password_change", entity_type="User", entity_id=str(user.id))
    s.commit()
    current_app.logger.info("Password changed for user_id=%s", user.id)
    return jsonify({"success": True, "message": "Password updated"})


# --- quotes ---


@api_bp.get("/quotes")
@require_login
def quotes():
    s = db_session()
    page, limit = page_params()
    q = quotes_for_user(s, current_user(), status=(request.args.get("status") or "").strip() or None)
    total = q.count()
    rows = q.order_by(Quote.created_at.desc(), Quote.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return jsonify(
        {
            "quotes": [quote_to_dict(x) for x in rows],
            "total": total,
            "page": page,
            "pages": page_count(total, limit),
        }
    )


# --- settings ---


def _settings_dict(user) -> dict:
    d = {field: getattr(user, field) for field in _PREFERENCE_FIELDS}
    d["locale"] = user.locale
    d["two_factor_enabled"] = user.two_factor_enabled
    return d


@api_bp.get("/settings")
@require_login
def settings_get():
    return jsonify(_settings_dict(current_user()))


@api_bp.patch("/settings")
@require_login
def settings_patch():
    s = db_session()
    user = current_user()
    payload = json_body()

    updates = {}
    for field in _PREFERENCE_FIELDS:
        if field in payload:
            if not isinstance(payload[field], bool):
                return jsonify({"error": f"{field} must be a boolean"}), 400
            updates[field] = payload[field]
    if "locale" in payload:
        if payload["locale"] not in LOCALES:
            return jsonify({"error": f"locale must be one of: {', '.join(LOCALES)}"}), 400
        updates["locale"] = payload["locale"]
    if not updates:
        return jsonify({"error": "No valid fields to update"}), 400

    for field, value in updates.items():
        setattr(user, field, value)
    user.updated_at = datetime.utcnow()
    s.commit()
    return jsonify({"success": True, "settings": _settings_dict(user)})


# --- login history ---


@api_bp.get("/login-history")
@require_login
def login_history():
    s = db_session()
    user = current_user()
    rows = (
        s.query(AuditEvent)
        .filter(
            AuditEvent.action.in_(_LOGIN_ACTIONS),
            (AuditEvent.actor_user_id == user.id) | (AuditEvent.actor_user_email == user.email),
        )
        .order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc())
        .limit(20)
        .all()
    )
    return jsonify(
        {
            "history": [
                {
                    "id": ev.id,
                    "success": ev.action == "auth.login",
                    "ip": ev.client_ip,
                    "user_agent": ev.user_agent,
                    "reason": ev.reason,
                    "created_at": iso(ev.created_at),
                    "metadata": json.loads(ev.metadata_json) if ev.metadata_json else None,
                }
                for ev in rows
            ]
        }
    )


# --- two-factor ---


def _too_many(retry_after: int):
    return jsonify({"error": "Too many requests", "retry_after": retry_after}), 429


def _two_factor_failed(s, user, reason: str, message: str):
    if two_factor.limiter().record_failure(user.id):
        current_app.logger.warning("2FA lockout for user_id=%s", user.id)
    record_event(s, actor=user, action="user.2fa_failed", entity_type="User", entity_id=str(user.id), reason=reason)
    s.commit()
    return jsonify({"error": message}), 400


@api_bp.get("/2fa")
@require_login
def two_factor_get():
    user = current_user()
    allowed, retry_after = two_factor.limiter().allow(f"get:{user.id}")
    if not allowed:
        return _too_many(retry_after)
    if user.two_factor_enabled:
        return jsonify({"enabled": True})

    entry, cached = two_factor.start_setup(user.email)
    uri = two_factor.provisioning_uri(entry["secret"], user.email)
    current_app.logger.info("2FA setup requested (user_id=%s cached=%s)", user.id, cached)
    return jsonify(
        {
            "enabled": False,
            "secret": entry["secret"],
            "otpauth_uri": uri,
            "qr_code": two_factor.qr_code_data_url(uri),
            "cached": cached,
        }
    )


@api_bp.post("/2fa")
@require_login
def two_factor_post():
    s = db_session()
    user = current_user()
    limits = two_factor.limiter()
    allowed, retry_after = limits.allow(f"post:{user.id}")
    if not allowed:
        return _too_many(retry_after)
    locked = limits.locked_for(user.id)
    if locked:
        minutes = math.ceil(locked / 60)
        return jsonify({"error": f"Account temporarily locked. Try again in {minutes} minutes."}), 423

    payload = json_body()
    action = clean_str(payload.get("action"))
    token = clean_str(payload.get("token"))

    if action == "enable":
        secret = clean_str(payload.get("secret"))
        if user.two_factor_enabled:
            return jsonify({"error": "2FA is already enabled"}), 400
        if not secret or not token:
            return jsonify({"error": "Missing parameters"}), 400
        if not two_factor.is_valid_token(token):
            return _two_factor_failed(s, user, "Invalid token format", "Invalid token")
        pending = two_factor.pending_setup(user.email)
        if pending is None or pending["secret"] != secret:
            return _two_factor_failed(
                s, user, "Secret mismatch or expired", "Invalid or expired setup. Please refresh and try again."
            )
        if not two_factor.verify_token(secret, token):
            return _two_factor_failed(s, user, "Wrong code", "Invalid token")

        user.two_factor_enabled = True
        user.two_factor_secret = secret
        user.updated_at = datetime.utcnow()
        two_factor.clear_setup()
        limits.clear(user.id)
        record_event(s, actor=user, action="user.2fa_enable", entity_type="User", entity_id=str(user.id))
        s.commit()
        return jsonify({"success": True, "message": "2FA enabled"})

    if action == "disable":
        if not user.two_factor_enabled:
            return jsonify({"error": "2FA is not enabled"}), 400
        if not token:
            return jsonify({"error": "Token required"}), 400
        if not two_factor.verify_token(user.two_factor_secret, token):
            return _two_factor_failed(s, user, "Wrong code during disable", "Invalid token")

        user.two_factor_enabled = False
        user.two_factor_secret = None
        user.updated_at = datetime.utcnow()
        limits.clear(user.id)
        record_event(s, actor=user, action="user.2fa_disable", entity_type="User", entity_id=str(user.id))
        s.commit()
        return jsonify({"success": True, "message": "2FA disabled"})

    return jsonify({"error": "Invalid action"}), 400
