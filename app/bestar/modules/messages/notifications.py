"""
Per-user notification inbox (`/api/notifications`).

Reading and marking are open to any signed-in user and always scoped to the
caller. Sending goes through the admin `messages` module.
"""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.bestar.db import db_session
from app.bestar.modules.messages.models import Notification
from app.bestar.modules.messages.service import notification_to_dict, send_notifications, unread_count
from app.bestar.permissions import AdminModule
from app.bestar.rbac import current_user, require_login, require_module
from app.bestar.utils import clean_str, json_body, page_count, page_params, parse_int

bp = Blueprint("notifications_api", __name__)


@bp.get("")
@require_login
def notifications_list():
    s = db_session()
    user = current_user()
    page, limit = page_params(default_limit=20)
    q = s.query(Notification).filter(Notification.user_id == user.id)
    if (request.args.get("unread") or "").strip().lower() in ("1", "true", "yes"):
        q = q.filter(Notification.is_read.is_(False))
    total = q.count()
    rows = (
        q.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return jsonify(
        {
            "notifications": [notification_to_dict(n) for n in rows],
            "total": total,
            "unread_count": unread_count(s, user.id),
            "page": page,
            "pages": page_count(total, limit),
        }
    )


@bp.post("")
@require_module(AdminModule.MESSAGES)
def notifications_send():
    s = db_session()
    payload = json_body()
    title = clean_str(payload.get("title"))
    content = clean_str(payload.get("content"))
    if not title or not content:
        return jsonify({"error": "Title and content are required"}), 400

    send_to_all = bool(payload.get("send_to_all"))
    target = payload.get("user_id")
    user_id = parse_int(str(target), 0) if target is not None else 0
    if not send_to_all and not user_id:
        return jsonify({"error": "Target user required"}), 400

    try:
        count = send_notifications(
            s,
            sender=current_user(),
            title=title,
            content=content,
            type_=clean_str(payload.get("type")) or "SYSTEM",
            link=clean_str(payload.get("link")),
            user_id=user_id or None,
            send_to_all=send_to_all,
        )
    except ValueError as e:
        s.rollback()
        return jsonify({"error": str(e)}), 400
    s.commit()
    current_app.logger.info("Notifications sent: count=%s send_to_all=%s", count, send_to_all)
    return jsonify({"success": True, "count": count})


@bp.patch("")
@require_login
def notifications_mark_read():
    s = db_session()
    user = current_user()
    payload = json_body()

    if payload.get("mark_all_read"):
        updated = (
            s.query(Notification)
            .filter(Notification.user_id == user.id, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        s.commit()
        return jsonify({"success": True, "updated": updated})

    notification_id = parse_int(str(payload.get("id") or ""), 0)
    if not notification_id:
        return jsonify({"error": "Notification ID required"}), 400
    n = s.get(Notification, notification_id)
    if not n or n.user_id != user.id:
        return jsonify({"error": "Notification not found"}), 404
    n.is_read = True
    s.commit()
    return jsonify({"success": True, "notification": notification_to_dict(n)})


@bp.delete("")
@require_login
def notifications_delete():
    s = db_session()
    user = current_user()
    notification_id = parse_int(request.args.get("id"), 0)
    if not notification_id:
        return jsonify({"error": "Notification ID required"}), 400
    n = s.get(Notification, notification_id)
    if not n or n.user_id != user.id:
        return jsonify({"error": "Notification not found"}), 404
    s.delete(n)
    s.commit()
    return jsonify({"success": True})
