from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.bestar.db import db_session
from app.bestar.modules.settings.service import get_settings, save_settings
from app.bestar.permissions import AdminModule
from app.bestar.rbac import current_user, require_module

bp = Blueprint("settings_api", __name__)


@bp.get("/settings")
@require_module(AdminModule.SETTINGS)
def settings_get():
    return jsonify({"settings": get_settings(db_session())})


@bp.put("/settings")
@require_module(AdminModule.SETTINGS)
def settings_put():
    data = request.get_json(silent=True)
    values = data.get("settings") if isinstance(data, dict) else None
    if not isinstance(values, dict):
        return jsonify({"error": "Invalid settings data"}), 400

    s = db_session()
    try:
        merged = save_settings(s, values, current_user())
        s.commit()
    except Exception:
        s.rollback()
        current_app.logger.exception("Settings update failed (keys=%s)", sorted(values))
        return jsonify({"error": "Failed to save settings"}), 500
    return jsonify({"success": True, "settings": merged})
