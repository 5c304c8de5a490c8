from datetime import datetime, time, timedelta

from flask import Blueprint, abort, jsonify, render_template
from sqlalchemy import func

from app.bestar.db import db_session
from app.bestar.guard import guard_admin_request
from app.bestar.models import User
from app.bestar.modules.articles.models import Article
from app.bestar.modules.messages.models import Contact
from app.bestar.modules.quotes.models import Quote
from app.bestar.permissions import MODULE_PATHS, AdminModule, accessible_modules
from app.bestar.rbac import current_principal, require_login, require_module
from app.bestar.utils import iso

bp = Blueprint("admin", __name__)
api_bp = Blueprint("admin_api", __name__)

bp.before_request(guard_admin_request)

MODULE_TITLES = {
    AdminModule.OVERVIEW: "Overview",
    AdminModule.ARTICLES: "Articles",
    AdminModule.QUOTES: "Quotes",
    AdminModule.USERS: "Users",
    AdminModule.MESSAGES: "Messages",
    AdminModule.PAGES: "Pages",
    AdminModule.SETTINGS: "Settings",
}


def _sidebar() -> list[dict]:
    p = current_principal()
    if p is None:
        return []
    return [
        {"key": m.value, "title": MODULE_TITLES[m], "href": MODULE_PATHS[m]}
        for m in accessible_modules(p.role, p.can_manage_articles)
    ]


@bp.get("")
def index():
    return render_template("admin/index.html", sidebar=_sidebar(), active=AdminModule.OVERVIEW.value)


@bp.get("/<module>")
def module_page(module: str):
    try:
        m = AdminModule(module)
    except ValueError:
        abort(404)
    if m is AdminModule.OVERVIEW:
        abort(404)
    return render_template("admin/module.html", sidebar=_sidebar(), active=m.value, title=MODULE_TITLES[m])


@bp.get("/articles/new")
def article_new():
    return render_template("admin/article_edit.html", sidebar=_sidebar(), active="articles", article_id=None)


@bp.get("/articles/<int:article_id>/edit")
def article_edit(article_id: int):
    return render_template("admin/article_edit.html", sidebar=_sidebar(), active="articles", article_id=article_id)


# --- JSON ---


def change_string(today: int, yesterday: int) -> str:
    """Day-over-day change as shown on the overview cards."""
    if yesterday == 0:
        return f"+{today}" if today > 0 else "0"
    diff = today - yesterday
    return f"+{diff}" if diff >= 0 else str(diff)


def _daily(s, model, *conditions) -> dict:
    start_today = datetime.combine(datetime.utcnow().date(), time.min)
    start_yesterday = start_today - timedelta(days=1)
    start_tomorrow = start_today + timedelta(days=1)

    def count_between(lo, hi) -> int:
        return (
            s.query(func.count(model.id))
            .filter(model.created_at >= lo, model.created_at < hi, *conditions)
            .scalar()
            or 0
        )

    today = count_between(start_today, start_tomorrow)
    yesterday = count_between(start_yesterday, start_today)
    return {"today": today, "change": change_string(today, yesterday)}


@api_bp.get("/stats")
@require_module(AdminModule.OVERVIEW)
def stats():
    s = db_session()
    totals = {
        "users": s.query(func.count(User.id)).scalar() or 0,
        "quotes": s.query(func.count(Quote.id)).scalar() or 0,
        "articles": s.query(func.count(Article.id)).filter(Article.status == "PUBLISHED").scalar() or 0,
        "messages": s.query(func.count(Contact.id)).filter(Contact.status == "UNREAD").scalar() or 0,
    }
    daily = {
        "users": _daily(s, User),
        "quotes": _daily(s, Quote),
        "articles": _daily(s, Article),
        "messages": _daily(s, Contact),
    }

    recent_quotes = s.query(Quote).order_by(Quote.created_at.desc(), Quote.id.desc()).limit(5).all()
    recent_articles = (
        s.query(Article)
        .filter(Article.status == "PUBLISHED")
        .order_by(Article.created_at.desc(), Article.id.desc())
        .limit(5)
        .all()
    )
    return jsonify(
        {
            "stats": {key: {"total": totals[key], **daily[key]} for key in totals},
            "recent_quotes": [
                {"id": q.id, "name": q.name, "service_type": q.service_type, "created_at": iso(q.created_at)}
                for q in recent_quotes
            ],
            "recent_articles": [
                {
                    "id": a.id,
                    "title": a.title,
                    "status": a.status,
                    "published_at": iso(a.published_at),
                    "created_at": iso(a.created_at),
                }
                for a in recent_articles
            ],
        }
    )


@api_bp.get("/modules")
@require_login
def modules():
    p = current_principal()
    return jsonify(
        {
            "role": p.role.value if p.role else None,
            "modules": [m.value for m in accessible_modules(p.role, p.can_manage_articles)],
        }
    )
