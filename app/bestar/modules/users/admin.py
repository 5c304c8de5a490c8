from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.bestar.db import db_session
from app.bestar.models import User
from app.bestar.modules.users.service import SelfDeleteError, delete_user, filtered_users, update_user, user_to_dict
from app.bestar.permissions import AdminModule
from app.bestar.rbac import current_user, require_module
from app.bestar.utils import json_body, page_count, page_params, parse_int

bp = Blueprint("users_api", __name__)


@bp.get("/users")
@require_module(AdminModule.USERS)
def users_list():
    s = db_session()
    page, limit = page_params()
    q = filtered_users(
        s,
        role=(request.args.get("role") or "").strip() or None,
        search=(request.args.get("search") or "").strip() or None,
    )
    total = q.count()
    rows = q.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return jsonify(
        {
            "users": [user_to_dict(u) for u in rows],
            "total": total,
            "page": page,
            "pages": page_count(total, limit),
        }
    )


@bp.patch("/users")
@require_module(AdminModule.USERS)
def users_update():
    s = db_session()
    payload = json_body()
    user_id = parse_int(str(payload.get("id") or ""), 0)
    if not user_id:
        return jsonify({"error": "User ID required"}), 400
    target = s.get(User, user_id)
    if not target:
        return jsonify({"error": "User not found"}), 404

    errors = update_user(s, target, payload, current_user())
    if errors:
        s.rollback()
        return jsonify({"error": errors[0]}), 400
    s.commit()
    current_app.logger.info("User %s updated by %s (role=%s)", target.id, current_user().id, target.role)
    return jsonify({"success": True, "user": user_to_dict(target)})


@bp.delete("/users")
@require_module(AdminModule.USERS)
def users_delete():
    s = db_session()
    user_id = parse_int(request.args.get("id"), 0)
    if not user_id:
        return jsonify({"error": "User ID required"}), 400
    target = s.get(User, user_id)
    if not target:
        return jsonify({"error": "User not found"}), 404
    try:
        delete_user(s, target, current_user())
    except SelfDeleteError as e:
        return jsonify({"error": str(e)}), 400
    s.commit()
    return jsonify({"success": True})
