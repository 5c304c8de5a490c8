from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_

from app.bestar.audit import record_event
from app.bestar.modules.articles.models import ARTICLE_STATUSES, Article
from app.bestar.utils import clean_str, iso, slugify

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.bestar.models import User

EXCERPT_LENGTH = 200


def article_to_dict(a: Article, *, include_content: bool = True) -> dict[str, Any]:
    d: dict[str, Any] = {
        "id": a.id,
        "title": a.title,
        "slug": a.slug,
        "excerpt": a.excerpt,
        "cover_image": a.cover_image,
        "category": a.category,
        "tags": a.tag_list,
        "status": a.status,
        "author": a.author,
        "published_at": iso(a.published_at),
        "created_at": iso(a.created_at),
        "updated_at": iso(a.updated_at),
    }
    if include_content:
        d["content"] = a.content
    return d


def validate_article_payload(payload: dict, *, partial: bool = False) -> list[str]:
    errors = []
    if not partial:
        if not clean_str(payload.get("title")) or not clean_str(payload.get("content")):
            errors.append("Title and content are required.")
    status = clean_str(payload.get("status"))
    if status and status not in ARTICLE_STATUSES:
        errors.append(f"Invalid status. Must be one of: {', '.join(ARTICLE_STATUSES)}")
    return errors


def _unique_slug(s: "Session", base: str, *, exclude_id: int | None = None) -> str:
    base = base.strip("-") or "article"
    candidate = base
    n = 2
    while True:
        q = s.query(Article.id).filter(Article.slug == candidate)
        if exclude_id is not None:
            q = q.filter(Article.id != exclude_id)
        if q.first() is None:
            return candidate
        candidate = f"{base}-{n}"
        n += 1


def _tags_value(raw: Any) -> str | None:
    if isinstance(raw, (list, tuple)):
        raw = ",".join(str(t).strip() for t in raw if str(t).strip())
    return clean_str(raw)


def filtered_articles(s: "Session", *, status: str | None, category: str | None, search: str | None) -> "Query":
    q = s.query(Article)
    if status and status != "all":
        q = q.filter(Article.status == status)
    if category and category != "all":
        q = q.filter(Article.category == category)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Article.title.ilike(like), Article.content.ilike(like)))
    return q


def published_articles(s: "Session", *, category: str | None = None) -> "Query":
    q = s.query(Article).filter(Article.status == "PUBLISHED")
    if category and category != "all":
        q = q.filter(Article.category == category)
    return q


def create_article(s: "Session", payload: dict, user: "User") -> Article:
    now = datetime.utcnow()
    title = clean_str(payload.get("title")) or ""
    content = clean_str(payload.get("content")) or ""
    status = clean_str(payload.get("status")) or "DRAFT"
    article = Article(
        title=title,
        slug=_unique_slug(s, slugify(title)),
        content=content,
        excerpt=content[:EXCERPT_LENGTH],
        cover_image=clean_str(payload.get("cover_image")),
        category=clean_str(payload.get("category")) or "news",
        tags=_tags_value(payload.get("tags")),
        status=status,
        author=user.name or user.email or "Unknown",
        published_at=now if status == "PUBLISHED" else None,
        created_at=now,
        updated_at=now,
    )
    s.add(article)
    s.flush()

    record_event(
        s,
        actor=user,
        action="article.create",
        entity_type="Article",
        entity_id=str(article.id),
        metadata={"title": article.title, "status": article.status},
    )
    return article


def update_article(s: "Session", article: Article, payload: dict, user: "User") -> Article:
    changes: dict[str, Any] = {}

    title = clean_str(payload.get("title"))
    if title and title != article.title:
        changes["title"] = {"old": article.title, "new": title}
        article.title = title
        article.slug = _unique_slug(s, slugify(title), exclude_id=article.id)

    content = clean_str(payload.get("content"))
    if content and content != article.content:
        changes["content"] = True
        article.content = content
        article.excerpt = content[:EXCERPT_LENGTH]

    category = clean_str(payload.get("category"))
    if category and category != article.category:
        changes["category"] = {"old": article.category, "new": category}
        article.category = category

    if "cover_image" in payload:
        article.cover_image = clean_str(payload.get("cover_image"))
    if "tags" in payload:
        article.tags = _tags_value(payload.get("tags"))

    status = clean_str(payload.get("status"))
    if status:
        if status != article.status:
            changes["status"] = {"old": article.status, "new": status}
        article.status = status
        if status == "PUBLISHED":
            article.published_at = datetime.utcnow()

    article.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="article.edit",
        entity_type="Article",
        entity_id=str(article.id),
        metadata={"title": article.title, "changes": changes},
    )
    return article


def delete_article(s: "Session", article: Article, user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="article.delete",
        entity_type="Article",
        entity_id=str(article.id),
        metadata={"title": article.title},
    )
    s.delete(article)
