from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any

from flask import request

_SLUG_STRIP = re.compile(r"[^a-z0-9\u4e00-\u9fa5]+")


def parse_int(value: str | None, default: int, *, minimum: int = 1, maximum: int | None = None) -> int:
    try:
        n = int((value or "").strip())
    except ValueError:
        return default
    if n < minimum:
        return default
    if maximum is not None and n > maximum:
        return maximum
    return n


def page_params(default_limit: int = 10) -> tuple[int, int]:
    """(page, limit) from the query string; limit is capped at 100."""
    page = parse_int(request.args.get("page"), 1)
    limit = parse_int(request.args.get("limit"), default_limit, maximum=100)
    return page, limit


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value is not None else None


def slugify(title: str) -> str:
    # Keeps CJK characters so Chinese titles still produce readable slugs.
    return _SLUG_STRIP.sub("-", (title or "").lower())


def json_body() -> dict[str, Any]:
    """Request payload as a dict: JSON body if present, else form fields."""
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def clean_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def text_field(payload: dict[str, Any], key: str) -> str:
    """Raw string value (passwords, codes): not stripped, "" when missing or not a string."""
    value = payload.get(key)
    return value if isinstance(value, str) else ""
