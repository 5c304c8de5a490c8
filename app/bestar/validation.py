"""
Form validation for public/self-service payloads.

Each validator returns a list of human-readable errors; an empty list means the
payload is acceptable. Callers turn the first error into a 400.
"""
from __future__ import annotations

import re
from typing import Any

from app.bestar.modules.quotes.models import SERVICE_TYPES
from app.bestar.utils import text_field

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_PASSWORD_LENGTH = 6


def _s(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    return str(value).strip() if value is not None else ""


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value or ""))


def validate_quote_payload(payload: dict[str, Any]) -> list[str]:
    errors = []
    if len(_s(payload, "name")) < 2:
        errors.append("Name must be at least 2 characters.")
    if not is_valid_email(_s(payload, "email")):
        errors.append("A valid email address is required.")
    if len(_s(payload, "phone")) < 10:
        errors.append("A valid phone number is required.")
    if _s(payload, "service_type") not in SERVICE_TYPES:
        errors.append(f"Service type must be one of: {', '.join(SERVICE_TYPES)}")
    if len(_s(payload, "message")) < 10:
        errors.append("Message must be at least 10 characters.")
    return errors


def validate_contact_payload(payload: dict[str, Any]) -> list[str]:
    errors = []
    if len(_s(payload, "name")) < 2:
        errors.append("Name must be at least 2 characters.")
    if not is_valid_email(_s(payload, "email")):
        errors.append("A valid email address is required.")
    if len(_s(payload, "subject")) < 2:
        errors.append("Subject must be at least 2 characters.")
    if len(_s(payload, "message")) < 10:
        errors.append("Message must be at least 10 characters.")
    return errors


def validate_register_payload(payload: dict[str, Any]) -> list[str]:
    errors = []
    if len(_s(payload, "name")) < 2:
        errors.append("Name must be at least 2 characters.")
    if not is_valid_email(_s(payload, "email")):
        errors.append("A valid email address is required.")
    password = text_field(payload, "password")
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if password != text_field(payload, "confirm_password"):
        errors.append("Passwords do not match.")
    return errors
