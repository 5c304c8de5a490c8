from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.bestar.audit import record_event
from app.bestar.modules.pages.models import PAGE_STATUSES, Page
from app.bestar.utils import clean_str, iso

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.bestar.models import User

_TEXT_FIELDS = ("title", "title_en", "title_fr", "content", "content_en", "content_fr")


class PageConflictError(ValueError):
    """Another page already uses the slug."""


def page_to_dict(p: Page) -> dict[str, Any]:
    return {
        "id": p.id,
        "slug": p.slug,
        "title": p.title,
        "title_en": p.title_en,
        "title_fr": p.title_fr,
        "content": p.content,
        "content_en": p.content_en,
        "content_fr": p.content_fr,
        "status": p.status,
        "published_at": iso(p.published_at),
        "created_at": iso(p.created_at),
        "updated_at": iso(p.updated_at),
    }


def localized(p: Page, locale: str) -> dict[str, Any]:
    """Title/content for `locale`, falling back to the base (Chinese) text."""
    title = getattr(p, f"title_{locale}", None) if locale != "zh" else None
    content = getattr(p, f"content_{locale}", None) if locale != "zh" else None
    return {"slug": p.slug, "title": title or p.title, "content": content or p.content, "locale": locale}


def validate_page_payload(payload: dict, *, partial: bool = False) -> list[str]:
    errors = []
    if not partial:
        if not (clean_str(payload.get("slug")) and clean_str(payload.get("title")) and clean_str(payload.get("content"))):
            errors.append("Slug, title and content are required.")
    status = clean_str(payload.get("status"))
    if status and status not in PAGE_STATUSES:
        errors.append(f"Invalid status. Must be one of: {', '.join(PAGE_STATUSES)}")
    return errors


def _slug_taken(s: "Session", slug: str, *, exclude_id: int | None = None) -> bool:
    q = s.query(Page.id).filter(Page.slug == slug)
    if exclude_id is not None:
        q = q.filter(Page.id != exclude_id)
    return q.first() is not None


def create_page(s: "Session", payload: dict, user: "User") -> Page:
    slug = clean_str(payload.get("slug")) or ""
    if _slug_taken(s, slug):
        raise PageConflictError(f"Page with slug '{slug}' already exists")

    now = datetime.utcnow()
    status = clean_str(payload.get("status")) or "DRAFT"
    page = Page(slug=slug, status=status, published_at=now if status == "PUBLISHED" else None, created_at=now, updated_at=now)
    for field in _TEXT_FIELDS:
        setattr(page, field, clean_str(payload.get(field)))
    s.add(page)
    s.flush()
    record_event(
        s,
        actor=user,
        action="page.create",
        entity_type="Page",
        entity_id=str(page.id),
        metadata={"slug": page.slug, "status": page.status},
    )
    return page


def update_page(s: "Session", page: Page, payload: dict, user: "User") -> Page:
    slug = clean_str(payload.get("slug"))
    if slug and slug != page.slug:
        if _slug_taken(s, slug, exclude_id=page.id):
            raise PageConflictError(f"Page with slug '{slug}' already exists")
        page.slug = slug

    for field in _TEXT_FIELDS:
        if field not in payload:
            continue
        value = clean_str(payload.get(field))
        # title/content are required columns; blank input leaves them alone.
        if value is None and field in ("title", "content"):
            continue
        setattr(page, field, value)

    status = clean_str(payload.get("status"))
    old_status = page.status
    if status:
        if status == "PUBLISHED" and old_status != "PUBLISHED":
            page.published_at = datetime.utcnow()
        page.status = status

    page.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="page.update",
        entity_type="Page",
        entity_id=str(page.id),
        metadata={"slug": page.slug, "status": {"old": old_status, "new": page.status}},
    )
    return page


def delete_page(s: "Session", page: Page, user: "User") -> None:
    record_event(s, actor=user, action="page.delete", entity_type="Page", entity_id=str(page.id), metadata={"slug": page.slug})
    s.delete(page)
