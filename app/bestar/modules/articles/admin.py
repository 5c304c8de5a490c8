from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.bestar.db import db_session
from app.bestar.modules.articles.models import Article
from app.bestar.modules.articles.service import (
    article_to_dict,
    create_article,
    delete_article,
    filtered_articles,
    update_article,
    validate_article_payload,
)
from app.bestar.permissions import AdminModule
from app.bestar.rbac import current_user, require_module
from app.bestar.utils import json_body, page_count, page_params, parse_int

bp = Blueprint("articles_api", __name__)


@bp.get("/articles")
@require_module(AdminModule.ARTICLES)
def articles_list():
    s = db_session()
    page, limit = page_params()
    q = filtered_articles(
        s,
        status=(request.args.get("status") or "").strip() or None,
        category=(request.args.get("category") or "").strip() or None,
        search=(request.args.get("search") or "").strip() or None,
    )
    total = q.count()
    rows = q.order_by(Article.created_at.desc(), Article.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return jsonify(
        {
            "articles": [article_to_dict(a) for a in rows],
            "total": total,
            "page": page,
            "pages": page_count(total, limit),
        }
    )


@bp.post("/articles")
@require_module(AdminModule.ARTICLES)
def articles_create():
    s = db_session()
    payload = json_body()
    errors = validate_article_payload(payload)
    if errors:
        return jsonify({"error": errors[0], "errors": errors}), 400
    try:
        article = create_article(s, payload, current_user())
        s.commit()
    except Exception:
        s.rollback()
        current_app.logger.exception("Article create failed")
        return jsonify({"error": "Failed to create article"}), 500
    return jsonify({"success": True, "article": article_to_dict(article)})


@bp.patch("/articles")
@require_module(AdminModule.ARTICLES)
def articles_update():
    s = db_session()
    payload = json_body()
    article_id = parse_int(str(payload.get("id") or ""), 0)
    if not article_id:
        return jsonify({"error": "Article ID required"}), 400
    errors = validate_article_payload(payload, partial=True)
    if errors:
        return jsonify({"error": errors[0], "errors": errors}), 400
    article = s.get(Article, article_id)
    if not article:
        return jsonify({"error": "Article not found"}), 404
    update_article(s, article, payload, current_user())
    s.commit()
    return jsonify({"success": True, "article": article_to_dict(article)})


@bp.delete("/articles")
@require_module(AdminModule.ARTICLES)
def articles_delete():
    s = db_session()
    article_id = parse_int(request.args.get("id"), 0)
    if not article_id:
        return jsonify({"error": "Article ID required"}), 400
    article = s.get(Article, article_id)
    if not article:
        return jsonify({"error": "Article not found"}), 404
    delete_article(s, article, current_user())
    s.commit()
    return jsonify({"success": True, "message": "Article deleted"})


@bp.get("/articles/<int:article_id>")
@require_module(AdminModule.ARTICLES)
def article_detail(article_id: int):
    s = db_session()
    article = s.get(Article, article_id)
    if not article:
        return jsonify({"error": "Article not found"}), 404
    return jsonify(article_to_dict(article))
