from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func

from app.bestar.audit import record_event
from app.bestar.models import User
from app.bestar.modules.messages.models import CONTACT_STATUSES, NOTIFICATION_TYPES, Contact, Notification
from app.bestar.utils import clean_str, iso

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session


def contact_to_dict(c: Contact) -> dict[str, Any]:
    return {
        "id": c.id,
        "user_id": c.user_id,
        "name": c.name,
        "email": c.email,
        "phone": c.phone,
        "subject": c.subject,
        "message": c.message,
        "status": c.status,
        "created_at": iso(c.created_at),
    }


def notification_to_dict(n: Notification) -> dict[str, Any]:
    return {
        "id": n.id,
        "type": n.type,
        "title": n.title,
        "content": n.content,
        "link": n.link,
        "is_read": n.is_read,
        "created_at": iso(n.created_at),
    }


def create_contact(s: "Session", payload: dict, *, session_user: User | None = None) -> Contact:
    email = (clean_str(payload.get("email")) or "").lower()
    user_id = session_user.id if session_user else None
    if user_id is None:
        match = s.query(User.id).filter(func.lower(User.email) == email).first()
        user_id = match[0] if match else None

    contact = Contact(
        user_id=user_id,
        name=clean_str(payload.get("name")) or "",
        email=email,
        phone=clean_str(payload.get("phone")),
        subject=clean_str(payload.get("subject")) or "",
        message=clean_str(payload.get("message")) or "",
        status="UNREAD",
        created_at=datetime.utcnow(),
    )
    s.add(contact)
    s.flush()
    record_event(
        s,
        actor=session_user,
        actor_email=email,
        action="contact.create",
        entity_type="Contact",
        entity_id=str(contact.id),
        metadata={"subject": contact.subject},
    )
    return contact


def filtered_contacts(s: "Session", *, status: str | None) -> "Query":
    q = s.query(Contact)
    if status and status != "all":
        q = q.filter(Contact.status == status)
    return q


def set_contact_status(s: "Session", contact: Contact, status: str, user: User) -> list[str]:
    if status not in CONTACT_STATUSES:
        return [f"Invalid status. Must be one of: {', '.join(CONTACT_STATUSES)}"]
    old = contact.status
    contact.status = status
    record_event(
        s,
        actor=user,
        action="contact.update",
        entity_type="Contact",
        entity_id=str(contact.id),
        metadata={"status": {"old": old, "new": status}},
    )
    return []


def send_notifications(
    s: "Session",
    *,
    sender: User,
    title: str,
    content: str,
    type_: str = "SYSTEM",
    link: str | None = None,
    user_id: int | None = None,
    send_to_all: bool = False,
) -> int:
    """
    Creates one notification for `user_id`, or one per active user when `send_to_all`.
    Returns the number created; raises ValueError for an unknown type or missing target.
    """
    if type_ not in NOTIFICATION_TYPES:
        raise ValueError(f"Invalid type. Must be one of: {', '.join(NOTIFICATION_TYPES)}")

    if send_to_all:
        recipients = [uid for (uid,) in s.query(User.id).filter(User.is_active.is_(True)).all()]
    else:
        if user_id is None or s.get(User, user_id) is None:
            raise ValueError("Target user not found")
        recipients = [user_id]

    now = datetime.utcnow()
    s.add_all(
        Notification(user_id=uid, type=type_, title=title, content=content, link=link, created_at=now)
        for uid in recipients
    )
    record_event(
        s,
        actor=sender,
        action="notification.send",
        entity_type="Notification",
        metadata={"count": len(recipients), "send_to_all": send_to_all, "title": title},
    )
    return len(recipients)


def unread_count(s: "Session", user_id: int) -> int:
    return (
        s.query(func.count(Notification.id))
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .scalar()
        or 0
    )
