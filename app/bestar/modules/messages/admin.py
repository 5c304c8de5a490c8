from __future__ import annotations

from flask import Blueprint, jsonify, request
from sqlalchemy import or_

from app.bestar.db import db_session
from app.bestar.models import User
from app.bestar.modules.messages.models import Contact
from app.bestar.modules.messages.service import contact_to_dict, filtered_contacts, set_contact_status
from app.bestar.permissions import AdminModule
from app.bestar.rbac import current_user, require_module
from app.bestar.utils import clean_str, json_body, page_count, page_params, parse_int

bp = Blueprint("messages_api", __name__)


@bp.get("/messages")
@require_module(AdminModule.MESSAGES)
def messages_list():
    s = db_session()
    page, limit = page_params()
    q = filtered_contacts(s, status=(request.args.get("status") or "").strip() or None)
    total = q.count()
    rows = q.order_by(Contact.created_at.desc(), Contact.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return jsonify(
        {
            "messages": [contact_to_dict(c) for c in rows],
            "total": total,
            "page": page,
            "pages": page_count(total, limit),
        }
    )


@bp.patch("/messages")
@require_module(AdminModule.MESSAGES)
def messages_update():
    s = db_session()
    payload = json_body()
    contact_id = parse_int(str(payload.get("id") or ""), 0)
    status = clean_str(payload.get("status"))
    if not contact_id or not status:
        return jsonify({"error": "Message ID and status required"}), 400
    contact = s.get(Contact, contact_id)
    if not contact:
        return jsonify({"error": "Message not found"}), 404
    errors = set_contact_status(s, contact, status, current_user())
    if errors:
        return jsonify({"error": errors[0]}), 400
    s.commit()
    return jsonify({"success": True, "message": contact_to_dict(contact)})


@bp.get("/messages/recipients")
@require_module(AdminModule.MESSAGES)
def messages_recipients():
    """Notification targets for the message centre (the users module may be out of reach)."""
    s = db_session()
    _, limit = page_params(default_limit=100)
    q = s.query(User).filter(User.is_active.is_(True))
    search = (request.args.get("search") or "").strip()
    if search:
        like = f"%{search}%"
        q = q.filter(or_(User.email.ilike(like), User.name.ilike(like)))
    rows = q.order_by(User.name.asc(), User.email.asc()).limit(limit).all()
    return jsonify({"recipients": [{"id": u.id, "name": u.name, "email": u.email} for u in rows]})
