from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.bestar.db import db_session
from app.bestar.modules.pages.models import Page
from app.bestar.modules.pages.service import (
    PageConflictError,
    create_page,
    delete_page,
    page_to_dict,
    update_page,
    validate_page_payload,
)
from app.bestar.permissions import AdminModule
from app.bestar.rbac import current_user, require_module
from app.bestar.utils import json_body

bp = Blueprint("pages_api", __name__)


@bp.get("/pages")
@require_module(AdminModule.PAGES)
def pages_list():
    s = db_session()
    q = s.query(Page)
    status = (request.args.get("status") or "").strip()
    if status and status != "all":
        q = q.filter(Page.status == status)
    rows = q.order_by(Page.updated_at.desc(), Page.id.desc()).all()
    return jsonify({"pages": [page_to_dict(p) for p in rows], "total": len(rows)})


@bp.post("/pages")
@require_module(AdminModule.PAGES)
def pages_create():
    s = db_session()
    payload = json_body()
    errors = validate_page_payload(payload)
    if errors:
        return jsonify({"error": errors[0], "errors": errors}), 400
    try:
        page = create_page(s, payload, current_user())
    except PageConflictError as e:
        s.rollback()
        return jsonify({"error": str(e)}), 409
    s.commit()
    return jsonify({"success": True, "page": page_to_dict(page)}), 201


@bp.get("/pages/<int:page_id>")
@require_module(AdminModule.PAGES)
def page_detail(page_id: int):
    s = db_session()
    page = s.get(Page, page_id)
    if not page:
        return jsonify({"error": "Page not found"}), 404
    return jsonify(page_to_dict(page))


@bp.patch("/pages/<int:page_id>")
@require_module(AdminModule.PAGES)
def page_update(page_id: int):
    s = db_session()
    page = s.get(Page, page_id)
    if not page:
        return jsonify({"error": "Page not found"}), 404
    payload = json_body()
    errors = validate_page_payload(payload, partial=True)
    if errors:
        return jsonify({"error": errors[0], "errors": errors}), 400
    try:
        update_page(s, page, payload, current_user())
    except PageConflictError as e:
        s.rollback()
        return jsonify({"error": str(e)}), 409
    s.commit()
    return jsonify({"success": True, "page": page_to_dict(page)})


@bp.delete("/pages/<int:page_id>")
@require_module(AdminModule.PAGES)
def page_delete(page_id: int):
    s = db_session()
    page = s.get(Page, page_id)
    if not page:
        return jsonify({"error": "Page not found"}), 404
    delete_page(s, page, current_user())
    s.commit()
    return jsonify({"success": True})
