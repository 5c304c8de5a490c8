import logging
import os
from datetime import timedelta

from flask import Flask, g, jsonify, render_template, request, session
from dotenv import load_dotenv

from app.bestar.config import load_config
from app.bestar.db import init_db, teardown_db_session

# Load the models package first: the module models import Base from it and it imports them back.
from app.bestar import models  # noqa: E402,F401

from app.bestar.routes import bp as routes_bp
from app.bestar.api import bp as public_api_bp
from app.bestar.auth import bp as auth_bp, load_current_user
from app.bestar.account import api_bp as user_api_bp, pages_bp as account_bp
from app.bestar.admin import api_bp as admin_api_bp, bp as admin_bp
from app.bestar.modules.articles.admin import bp as articles_api_bp
from app.bestar.modules.quotes.admin import bp as quotes_api_bp
from app.bestar.modules.users.admin import bp as users_api_bp
from app.bestar.modules.messages.admin import bp as messages_api_bp
from app.bestar.modules.messages.notifications import bp as notifications_api_bp
from app.bestar.modules.pages.admin import bp as pages_api_bp
from app.bestar.modules.settings.admin import bp as settings_api_bp

_UNGUARDED_PREFIXES = ("/static/", "/health", "/healthz", "/robots.txt", "/sitemap.xml")


def _wants_json() -> bool:
    return request.path.startswith("/api/") or request.path.startswith("/auth/")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    # CSRF protection (minimal)
    from app.bestar.security import ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.context_processor
    def _inject_principal() -> dict:
        return {"principal": getattr(g, "principal", None)}

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return "-"
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # Login/register/logout carry no session yet to forge against.
            if (request.endpoint or "").startswith("auth."):
                return None
            if not validate_csrf(request):
                if _wants_json():
                    return jsonify({"error": "CSRF token missing or invalid"}), 400
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        if not app.config.get("RECAPTCHA_SECRET_KEY"):
            app.logger.warning("RECAPTCHA_SECRET_KEY not set; CAPTCHA checks will pass without verification.")

    init_db(app)

    if hasattr(os, "register_at_fork"):

        def _after_fork_child():
            engine = app.extensions.get("sqlalchemy_engine")
            if engine:
                engine.dispose()
                app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

        os.register_at_fork(after_in_child=_after_fork_child)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(account_bp)
    app.register_blueprint(public_api_bp, url_prefix="/api")
    app.register_blueprint(user_api_bp, url_prefix="/api/user")
    app.register_blueprint(notifications_api_bp, url_prefix="/api/notifications")
    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(admin_api_bp, url_prefix="/api/admin")
    app.register_blueprint(articles_api_bp, url_prefix="/api/admin")
    app.register_blueprint(quotes_api_bp, url_prefix="/api/admin")
    app.register_blueprint(users_api_bp, url_prefix="/api/admin")
    app.register_blueprint(messages_api_bp, url_prefix="/api/admin")
    app.register_blueprint(pages_api_bp, url_prefix="/api/admin")
    app.register_blueprint(settings_api_bp, url_prefix="/api/admin")

    def _load_user_wrapper():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            g.current_user = None
            g.principal = None
            return None
        return load_current_user()

    # App-level hooks run before blueprint hooks, so the admin guard sees g.principal.
    app.before_request(_load_user_wrapper)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        if _wants_json():
            return jsonify({"error": "Internal server error"}), 500
        return render_template("errors/500.html"), 500

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        if _wants_json():
            return jsonify({"error": "Not found"}), 404
        return render_template("errors/404.html"), 404

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        missing = getattr(g, "missing_permission", None)
        if missing:
            app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        if _wants_json():
            return jsonify({"error": "No permission"}), 403
        return render_template("errors/403.html", missing_permission=missing), 403

    @app.errorhandler(413)
    def _err_413(e):  # type: ignore[no-redef]
        return jsonify({"error": "Request body too large"}), 413

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
