from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, or_

from app.bestar.audit import record_event
from app.bestar.i18n import notification_content
from app.bestar.models import User
from app.bestar.modules.messages.models import Notification
from app.bestar.modules.quotes.models import QUOTE_STATUSES, Quote
from app.bestar.utils import clean_str, iso

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session

logger = logging.getLogger(__name__)

_OPTIONAL_FIELDS = ("company", "origin", "destination", "cargo_type", "weight", "dimensions")


def quote_to_dict(q: Quote) -> dict[str, Any]:
    return {
        "id": q.id,
        "user_id": q.user_id,
        "name": q.name,
        "email": q.email,
        "phone": q.phone,
        "company": q.company,
        "service_type": q.service_type,
        "origin": q.origin,
        "destination": q.destination,
        "cargo_type": q.cargo_type,
        "weight": q.weight,
        "dimensions": q.dimensions,
        "message": q.message,
        "status": q.status,
        "quoted_price": q.quoted_price,
        "quote_note": q.quote_note,
        "quoted_at": iso(q.quoted_at),
        "created_at": iso(q.created_at),
        "updated_at": iso(q.updated_at),
    }


def create_quote(s: "Session", payload: dict, *, session_user: User | None = None) -> Quote:
    """
    Stores a public quote request.
    The quote is linked to the signed-in user, otherwise to an account with the same email.
    """
    email = (clean_str(payload.get("email")) or "").lower()
    user_id = session_user.id if session_user else None
    if user_id is None:
        match = s.query(User.id).filter(func.lower(User.email) == email).first()
        user_id = match[0] if match else None

    now = datetime.utcnow()
    quote = Quote(
        user_id=user_id,
        name=clean_str(payload.get("name")) or "",
        email=email,
        phone=clean_str(payload.get("phone")) or "",
        service_type=clean_str(payload.get("service_type")) or "OTHER",
        message=clean_str(payload.get("message")) or "",
        status="PENDING",
        created_at=now,
        updated_at=now,
    )
    for field in _OPTIONAL_FIELDS:
        setattr(quote, field, clean_str(payload.get(field)))
    s.add(quote)
    s.flush()
    record_event(
        s,
        actor=session_user,
        actor_email=email,
        action="quote.create",
        entity_type="Quote",
        entity_id=str(quote.id),
        metadata={"service_type": quote.service_type, "linked_user_id": user_id},
    )
    return quote


def filtered_quotes(s: "Session", *, status: str | None, search: str | None) -> "Query":
    q = s.query(Quote)
    if status and status != "all":
        q = q.filter(Quote.status == status)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Quote.name.ilike(like), Quote.email.ilike(like), Quote.phone.ilike(like)))
    return q


def quotes_for_user(s: "Session", user: User, *, status: str | None = None) -> "Query":
    q = s.query(Quote).filter(or_(Quote.user_id == user.id, func.lower(Quote.email) == user.email.lower()))
    if status and status != "all":
        q = q.filter(Quote.status == status)
    return q


def _notify_status_change(s: "Session", quote: Quote) -> Notification | None:
    if quote.user_id is None:
        return None
    owner = s.get(User, quote.user_id)
    if owner is None:
        return None
    title, content = notification_content(quote.status, quote.quoted_price, owner.locale)
    n = Notification(
        user_id=owner.id,
        type="QUOTE",
        title=title,
        content=content,
        link="/user/quotes",
        created_at=datetime.utcnow(),
    )
    s.add(n)
    return n


def update_quote(s: "Session", quote: Quote, payload: dict, user: User) -> tuple[Quote, list[str]]:
    """
    Applies status / price / note. Returns (quote, errors); nothing is changed when errors is non-empty.
    A status change notifies the linked customer in their locale.
    """
    status = clean_str(payload.get("status"))
    if status and status not in QUOTE_STATUSES:
        return quote, [f"Invalid status. Must be one of: {', '.join(QUOTE_STATUSES)}"]

    old_status = quote.status
    changes: dict[str, Any] = {}
    if status:
        quote.status = status
    if "quoted_price" in payload:
        price = clean_str(payload.get("quoted_price"))
        changes["quoted_price"] = {"old": quote.quoted_price, "new": price}
        quote.quoted_price = price
        if price:
            quote.quoted_at = datetime.utcnow()
    if "quote_note" in payload:
        quote.quote_note = clean_str(payload.get("quote_note"))
    quote.updated_at = datetime.utcnow()

    if status and status != old_status:
        changes["status"] = {"old": old_status, "new": status}
        try:
            _notify_status_change(s, quote)
        except Exception:
            # The quote update still goes through without the notification.
            logger.exception("Quote %s status notification failed", quote.id)

    record_event(
        s,
        actor=user,
        action="quote.update",
        entity_type="Quote",
        entity_id=str(quote.id),
        metadata={"changes": changes},
    )
    return quote, []
