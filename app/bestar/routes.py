from flask import Blueprint, abort, current_app, render_template, request, url_for
from sqlalchemy.exc import SQLAlchemyError

from app.bestar.db import db_session
from app.bestar.i18n import normalize_locale
from app.bestar.modules.articles.models import Article
from app.bestar.modules.articles.service import published_articles
from app.bestar.modules.pages.models import Page
from app.bestar.modules.pages.service import localized
from app.bestar.site import SOLUTIONS, get_solution, neighbours
from app.bestar.utils import page_count, page_params

bp = Blueprint("routes", __name__)

_ROBOTS_DISALLOW = ("/api/", "/admin/", "/user/", "/dashboard/", "/login", "/register")
_SITEMAP_PAGES = (("/", "daily", "1.0"), ("/solutions", "weekly", "0.9"), ("/news", "daily", "0.8"), ("/contact", "monthly", "0.7"))


@bp.get("/")
def index():
    latest = published_articles(db_session()).order_by(Article.published_at.desc()).limit(3).all()
    return render_template("public/index.html", solutions=SOLUTIONS, latest=latest)


@bp.get("/solutions")
def solutions():
    return render_template("public/solutions.html", solutions=SOLUTIONS)


@bp.get("/solutions/<slug>")
def solution_detail(slug: str):
    solution = get_solution(slug)
    if solution is None:
        abort(404)
    prev_solution, next_solution = neighbours(slug)
    return render_template(
        "public/solution_detail.html",
        solution=solution,
        prev_solution=prev_solution,
        next_solution=next_solution,
        others=[x for x in SOLUTIONS if x.slug != slug],
    )


@bp.get("/news")
def news():
    page, limit = page_params(default_limit=9)
    category = (request.args.get("category") or "").strip() or None
    q = published_articles(db_session(), category=category)
    total = q.count()
    articles = q.order_by(Article.published_at.desc(), Article.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return render_template(
        "public/news.html",
        articles=articles,
        category=category,
        page=page,
        pages=page_count(total, limit),
        total=total,
    )


@bp.get("/news/<slug>")
def news_detail(slug: str):
    article = published_articles(db_session()).filter(Article.slug == slug).one_or_none()
    if article is None:
        abort(404)
    return render_template("public/article.html", article=article)


@bp.get("/contact")
def contact():
    return render_template("public/contact.html")


@bp.get("/p/<slug>")
def cms_page(slug: str):
    page = db_session().query(Page).filter(Page.slug == slug, Page.status == "PUBLISHED").one_or_none()
    if page is None:
        abort(404)
    locale = normalize_locale(request.args.get("lang"))
    return render_template("public/page.html", page=localized(page, locale))


@bp.get("/robots.txt")
def robots():
    site_url = current_app.config.get("SITE_URL", "")
    lines = ["User-agent: *", "Allow: /"]
    lines += [f"Disallow: {path}" for path in _ROBOTS_DISALLOW]
    lines += ["", f"Sitemap: {site_url}/sitemap.xml", ""]
    return "\n".join(lines), 200, {"Content-Type": "text/plain; charset=utf-8"}


@bp.get("/sitemap.xml")
def sitemap():
    site_url = current_app.config.get("SITE_URL", "")
    entries = [(f"{site_url}{path}", None, freq, prio) for path, freq, prio in _SITEMAP_PAGES]
    entries += [
        (f"{site_url}{url_for('routes.solution_detail', slug=x.slug)}", None, "monthly", "0.8") for x in SOLUTIONS
    ]
    try:
        for a in published_articles(db_session()).order_by(Article.published_at.desc()).all():
            entries.append((f"{site_url}{url_for('routes.news_detail', slug=a.slug)}", a.updated_at, "weekly", "0.6"))
    except SQLAlchemyError:
        # The static part of the sitemap is still useful without the database.
        current_app.logger.exception("Sitemap article lookup failed")
    xml = render_template("public/sitemap.xml", entries=entries)
    return xml, 200, {"Content-Type": "application/xml; charset=utf-8"}


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for k8s/DO liveness checks. No DB access, minimal overhead.
    """
    return "ok", 200
