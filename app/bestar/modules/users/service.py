from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_

from app.bestar.audit import record_event
from app.bestar.models import User
from app.bestar.permissions import Role, coerce_role
from app.bestar.utils import clean_str, iso

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session


class SelfDeleteError(ValueError):
    pass


def user_to_dict(u: User) -> dict[str, Any]:
    return {
        "id": u.id,
        "email": u.email,
        "name": u.name,
        "phone": u.phone,
        "company": u.company,
        "role": u.role,
        "can_manage_articles": u.can_manage_articles,
        "locale": u.locale,
        "two_factor_enabled": u.two_factor_enabled,
        "is_active": u.is_active,
        "created_at": iso(u.created_at),
        "updated_at": iso(u.updated_at),
    }


def filtered_users(s: "Session", *, role: str | None, search: str | None) -> "Query":
    q = s.query(User)
    if role and role != "all":
        q = q.filter(User.role == role)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(User.email.ilike(like), User.name.ilike(like), User.company.ilike(like)))
    return q


def update_user(s: "Session", target: User, payload: dict, actor: User) -> list[str]:
    """Applies role / profile / article-override changes. Returns errors; nothing changes when non-empty."""
    changes: dict[str, Any] = {}

    if "role" in payload:
        role = coerce_role(payload.get("role"))
        if role is None:
            return [f"Invalid role. Must be one of: {', '.join(r.value for r in Role)}"]
        if role.value != target.role:
            changes["role"] = {"old": target.role, "new": role.value}
            target.role = role.value

    if "can_manage_articles" in payload:
        flag = payload.get("can_manage_articles")
        if not isinstance(flag, bool):
            return ["can_manage_articles must be a boolean"]
        if flag != target.can_manage_articles:
            changes["can_manage_articles"] = {"old": target.can_manage_articles, "new": flag}
            target.can_manage_articles = flag

    if "name" in payload:
        name = clean_str(payload.get("name"))
        if name is not None and len(name) < 2:
            return ["Name must be at least 2 characters."]
        target.name = name
    if "phone" in payload:
        target.phone = clean_str(payload.get("phone"))
    if "company" in payload:
        target.company = clean_str(payload.get("company"))

    target.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=actor,
        action="user.update",
        entity_type="User",
        entity_id=str(target.id),
        metadata={"email": target.email, "changes": changes},
    )
    return []


def delete_user(s: "Session", target: User, actor: User) -> None:
    if target.id == actor.id:
        raise SelfDeleteError("Cannot delete your own account")
    record_event(
        s,
        actor=actor,
        action="user.delete",
        entity_type="User",
        entity_id=str(target.id),
        metadata={"email": target.email, "role": target.role},
    )
    s.delete(target)
