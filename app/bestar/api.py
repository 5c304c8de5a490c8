"""Public JSON API: published content and the two lead-capture forms."""
from flask import Blueprint, current_app, g, jsonify, request

from app.bestar.db import db_session
from app.bestar.i18n import normalize_locale
from app.bestar.mailer import contact_notification, notify_staff, quote_notification
from app.bestar.modules.articles.models import Article
from app.bestar.modules.articles.service import article_to_dict, published_articles
from app.bestar.modules.messages.service import create_contact
from app.bestar.modules.pages.models import Page
from app.bestar.modules.pages.service import localized
from app.bestar.modules.quotes.service import create_quote
from app.bestar.modules.settings.service import is_enabled
from app.bestar.utils import json_body, page_count, page_params, parse_int
from app.bestar.validation import validate_contact_payload, validate_quote_payload

bp = Blueprint("api", __name__)


@bp.get("/articles")
def articles():
    s = db_session()
    article_id = parse_int(request.args.get("id"), 0)
    slug = (request.args.get("slug") or "").strip()
    if article_id or slug:
        q = published_articles(s)
        q = q.filter(Article.id == article_id) if article_id else q.filter(Article.slug == slug)
        article = q.one_or_none()
        if article is None:
            return jsonify({"error": "Article not found"}), 404
        return jsonify(article_to_dict(article))

    page, limit = page_params()
    q = published_articles(s, category=(request.args.get("category") or "").strip() or None)
    total = q.count()
    rows = q.order_by(Article.published_at.desc(), Article.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return jsonify(
        {
            "articles": [article_to_dict(a, include_content=False) for a in rows],
            "total": total,
            "page": page,
            "pages": page_count(total, limit),
        }
    )


@bp.get("/pages/<slug>")
def page(slug: str):
    p = db_session().query(Page).filter(Page.slug == slug, Page.status == "PUBLISHED").one_or_none()
    if p is None:
        return jsonify({"error": "Page not found"}), 404
    return jsonify(localized(p, normalize_locale(request.args.get("lang"))))


@bp.post("/contact")
def contact():
    payload = json_body()
    errors = validate_contact_payload(payload)
    if errors:
        return jsonify({"success": False, "error": errors[0], "errors": errors}), 400

    s = db_session()
    try:
        c = create_contact(s, payload, session_user=getattr(g, "current_user", None))
        s.commit()
    except Exception:
        s.rollback()
        current_app.logger.exception("Contact submission failed (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"success": False, "error": "Submission failed, please try again later"}), 500

    notify_staff(current_app.config, *contact_notification(payload))
    return jsonify({"success": True, "message": "Message received", "contact_id": c.id})


@bp.post("/quote")
def quote():
    payload = json_body()
    if not is_enabled(db_session(), "enable_quote_form"):
        return jsonify({"success": False, "error": "Quote requests are currently closed"}), 403
    errors = validate_quote_payload(payload)
    if errors:
        return jsonify({"success": False, "error": errors[0], "errors": errors}), 400

    s = db_session()
    try:
        q = create_quote(s, payload, session_user=getattr(g, "current_user", None))
        s.commit()
    except Exception:
        s.rollback()
        current_app.logger.exception("Quote submission failed (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"success": False, "error": "Submission failed, please try again later"}), 500

    notify_staff(current_app.config, *quote_notification(payload))
    current_app.logger.info("Quote %s created (user_id=%s)", q.id, q.user_id)
    return jsonify({"success": True, "message": "Quote request received", "quote_id": q.id})
