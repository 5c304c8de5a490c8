"""
TOTP two-factor authentication (any RFC 6238 authenticator app).

Setup takes two steps. GET hands out a fresh secret and QR code, kept in the
signed session for five minutes. POST action=enable stores that secret on the
user once a code generated from it verifies.

Requests are rate limited per user and repeated bad codes lock the user out
for a while. Both counters live in app.extensions, like the login limiter.
"""
from __future__ import annotations

import base64
import io
import math
import re
import threading
import time

import pyotp
import qrcode
from flask import current_app, session

ISSUER = "Bestar Logistics"
SETUP_TTL_SECONDS = 5 * 60

RATE_LIMIT_WINDOW = 60  # seconds
MAX_REQUESTS_PER_WINDOW = 10
MAX_FAILED_ATTEMPTS = 5
LOCKOUT_SECONDS = 15 * 60

_TOKEN_RE = re.compile(r"^\d{6}$")
_SETUP_KEY = "two_factor_setup"


def generate_secret() -> str:
    return pyotp.random_base32()


def provisioning_uri(secret: str, email: str) -> str:
    return pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=ISSUER)


def qr_code_data_url(uri: str) -> str:
    qr = qrcode.QRCode(box_size=8, border=4, error_correction=qrcode.constants.ERROR_CORRECT_L)
    qr.add_data(uri)
    qr.make(fit=True)
    buffer = io.BytesIO()
    qr.make_image(fill_color="black", back_color="white").save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def is_valid_token(token: str | None) -> bool:
    return bool(token and _TOKEN_RE.match(token))


def verify_token(secret: str | None, token: str | None) -> bool:
    """Accepts the current code and one step either side for clock drift."""
    if not secret or not is_valid_token(token):
        return False
    return pyotp.TOTP(secret).verify(token, valid_window=1)


# --- pending setup (session) ---


def pending_setup(email: str) -> dict | None:
    entry = session.get(_SETUP_KEY)
    if not isinstance(entry, dict) or entry.get("email") != email:
        return None
    if time.time() - float(entry.get("created_at") or 0) > SETUP_TTL_SECONDS:
        return None
    return entry


def start_setup(email: str) -> tuple[dict, bool]:
    """(entry, cached): reuses an unexpired pending secret so a reload shows the same QR code."""
    entry = pending_setup(email)
    if entry is not None:
        return entry, True
    entry = {"secret": generate_secret(), "email": email, "created_at": time.time()}
    session[_SETUP_KEY] = entry
    return entry, False


def clear_setup() -> None:
    session.pop(_SETUP_KEY, None)


# --- rate limit and lockout ---


class TwoFactorLimiter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._windows: dict[str, list[float]] = {}  # key -> [count, reset_at]
        self._failures: dict[int, list[float]] = {}  # user_id -> [count, locked_until]

    def allow(self, key: str, now: float | None = None) -> tuple[bool, int]:
        """(allowed, retry_after_seconds) for a fixed window per key."""
        now = time.time() if now is None else now
        with self._lock:
            window = self._windows.get(key)
            if window is None or now >= window[1]:
                self._windows[key] = [1, now + RATE_LIMIT_WINDOW]
                return True, 0
            if window[0] >= MAX_REQUESTS_PER_WINDOW:
                return False, max(1, math.ceil(window[1] - now))
            window[0] += 1
            return True, 0

    def locked_for(self, user_id: int, now: float | None = None) -> int:
        """Seconds left on the user's lockout, 0 when not locked."""
        now = time.time() if now is None else now
        with self._lock:
            entry = self._failures.get(user_id)
            if entry is None or not entry[1]:
                return 0
            if now < entry[1]:
                return math.ceil(entry[1] - now)
            del self._failures[user_id]
            return 0

    def record_failure(self, user_id: int, now: float | None = None) -> bool:
        """Counts a bad code; returns True when this failure starts a lockout."""
        now = time.time() if now is None else now
        with self._lock:
            entry = self._failures.setdefault(user_id, [0, 0.0])
            entry[0] += 1
            if entry[0] >= MAX_FAILED_ATTEMPTS and not entry[1]:
                entry[1] = now + LOCKOUT_SECONDS
                return True
            return False

    def clear(self, user_id: int) -> None:
        with self._lock:
            self._failures.pop(user_id, None)


def limiter() -> TwoFactorLimiter:
    return current_app.extensions.setdefault("two_factor_limiter", TwoFactorLimiter())
