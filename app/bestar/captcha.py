from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Any

SITEVERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


class CaptchaError(RuntimeError):
    pass


@dataclass(frozen=True)
class CaptchaResult:
    success: bool
    score: float = 1.0
    action: str | None = None
    error_codes: list[str] = field(default_factory=list)
    low_score: bool = False


@dataclass(frozen=True)
class RecaptchaVerifier:
    """reCAPTCHA v3 siteverify client. Scoring is entirely the provider's."""

    secret_key: str
    min_score: float = 0.5
    verify_url: str = SITEVERIFY_URL
    timeout_seconds: int = 10

    def _post(self, token: str, remote_ip: str | None) -> dict[str, Any]:
        form = {"secret": self.secret_key, "response": token}
        if remote_ip:
            form["remoteip"] = remote_ip
        data = urllib.parse.urlencode(form).encode("utf-8")
        req = urllib.request.Request(self.verify_url, data=data, method="POST")
        req.add_header("Content-Type", "application/x-www-form-urlencoded")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read()
        except (urllib.error.URLError, OSError) as e:
            raise CaptchaError(f"siteverify request failed: {type(e).__name__}") from e
        try:
            payload = json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise CaptchaError("Invalid JSON from siteverify") from e
        if not isinstance(payload, dict):
            raise CaptchaError("Unexpected siteverify payload")
        return payload

    def verify(self, token: str, remote_ip: str | None = None) -> CaptchaResult:
        payload = self._post(token, remote_ip)
        if not payload.get("success"):
            return CaptchaResult(success=False, score=0.0, error_codes=list(payload.get("error-codes") or []))
        # v2 responses carry no score; treat them as human.
        raw_score = payload.get("score")
        score = 1.0 if raw_score is None else float(raw_score)
        if score < self.min_score:
            return CaptchaResult(success=False, score=score, action=payload.get("action"), low_score=True)
        return CaptchaResult(success=True, score=score, action=payload.get("action"))
