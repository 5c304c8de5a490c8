from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.bestar.audit import record_event
from app.bestar.modules.settings.models import Setting

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.bestar.models import User

DEFAULT_SETTINGS: dict[str, str] = {
    "site_name": "Bestar Service CCA",
    "site_description": "Cross-border logistics: FBA first-mile, dropshipping and returns relabelling",
    "contact_email": "manage.bestar@gmail.com",
    "contact_phone": "+1(587)437 2088",
    "address": "7405 108 Ave SE Unit150, Calgary, AB T2C 4N7",
    "business_hours": "Mon-Fri 9:00-18:00",
    "enable_registration": "true",
    "enable_quote_form": "true",
}


def get_settings(s: "Session") -> dict[str, str]:
    merged = dict(DEFAULT_SETTINGS)
    merged.update({row.key: row.value for row in s.query(Setting).all()})
    return merged


def is_enabled(s: "Session", key: str) -> bool:
    """Boolean site switch (stored as "true"/"false")."""
    return get_settings(s).get(key, "").strip().lower() == "true"


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)


def save_settings(s: "Session", values: dict[str, Any], user: "User") -> dict[str, str]:
    """Upserts every key as a string. Caller commits, so the batch lands in one transaction."""
    now = datetime.utcnow()
    existing = {row.key: row for row in s.query(Setting).filter(Setting.key.in_(list(values))).all()}
    for key, raw in values.items():
        value = _as_text(raw)
        row = existing.get(key)
        if row is None:
            s.add(Setting(key=str(key), value=value, updated_at=now))
        else:
            row.value = value
            row.updated_at = now
    record_event(
        s,
        actor=user,
        action="settings.update",
        entity_type="Setting",
        metadata={"keys": sorted(str(k) for k in values)},
    )
    s.flush()
    return get_settings(s)
