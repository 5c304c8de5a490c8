from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.bestar.db import db_session
from app.bestar.modules.quotes.models import Quote
from app.bestar.modules.quotes.service import filtered_quotes, quote_to_dict, update_quote
from app.bestar.permissions import AdminModule
from app.bestar.rbac import current_user, require_module
from app.bestar.utils import json_body, page_count, page_params, parse_int

bp = Blueprint("quotes_api", __name__)


@bp.get("/quotes")
@require_module(AdminModule.QUOTES)
def quotes_list():
    s = db_session()
    page, limit = page_params()
    q = filtered_quotes(
        s,
        status=(request.args.get("status") or "").strip() or None,
        search=(request.args.get("search") or "").strip() or None,
    )
    total = q.count()
    rows = q.order_by(Quote.created_at.desc(), Quote.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return jsonify(
        {
            "quotes": [quote_to_dict(x) for x in rows],
            "total": total,
            "page": page,
            "pages": page_count(total, limit),
        }
    )


@bp.patch("/quotes")
@require_module(AdminModule.QUOTES)
def quotes_update():
    s = db_session()
    payload = json_body()
    quote_id = parse_int(str(payload.get("id") or ""), 0)
    if not quote_id:
        return jsonify({"error": "Quote ID required"}), 400
    quote = s.get(Quote, quote_id)
    if not quote:
        return jsonify({"error": "Quote not found"}), 404

    quote, errors = update_quote(s, quote, payload, current_user())
    if errors:
        s.rollback()
        return jsonify({"error": errors[0], "errors": errors}), 400
    s.commit()
    return jsonify({"success": True, "quote": quote_to_dict(quote)})
