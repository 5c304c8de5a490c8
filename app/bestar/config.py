import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    site_url: str

    recaptcha_secret_key: str
    recaptcha_min_score: float

    smtp_enabled: bool
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_pass: str
    smtp_starttls: bool
    email_from: str
    email_to: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getbool(name: str, default: bool = False) -> bool:
    raw = _getenv(name, "1" if default else "0").lower()
    return raw in ("1", "true", "yes", "on")


def _getfloat(name: str, default: float) -> float:
    try:
        return float(_getenv(name, str(default)))
    except ValueError:
        return default


def _getint(name: str, default: int) -> int:
    try:
        return int(_getenv(name, str(default)))
    except ValueError:
        return default


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///bestar.db"),
        site_url=_getenv("SITE_URL", "https://bestarca.com").rstrip("/"),
        recaptcha_secret_key=_getenv("RECAPTCHA_SECRET_KEY", ""),
        recaptcha_min_score=_getfloat("RECAPTCHA_MIN_SCORE", 0.5),
        smtp_enabled=_getbool("SMTP_ENABLED", False),
        smtp_host=_getenv("SMTP_HOST", "localhost"),
        smtp_port=_getint("SMTP_PORT", 587),
        smtp_user=_getenv("SMTP_USER", ""),
        smtp_pass=os.environ.get("SMTP_PASS") or "",
        smtp_starttls=_getbool("SMTP_STARTTLS", True),
        email_from=_getenv("EMAIL_FROM", "Bestar Logistics <noreply@bestarca.com>"),
        email_to=_getenv("EMAIL_TO", ""),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "SITE_URL": s.site_url,
        "RECAPTCHA_SECRET_KEY": s.recaptcha_secret_key,
        "RECAPTCHA_MIN_SCORE": s.recaptcha_min_score,
        "SMTP_ENABLED": s.smtp_enabled,
        "SMTP_HOST": s.smtp_host,
        "SMTP_PORT": s.smtp_port,
        "SMTP_USER": s.smtp_user,
        "SMTP_PASS": s.smtp_pass,
        "SMTP_STARTTLS": s.smtp_starttls,
        "EMAIL_FROM": s.email_from,
        "EMAIL_TO": s.email_to,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # form posts and JSON bodies only; no uploads
        "MAX_CONTENT_LENGTH": 2 * 1024 * 1024,
    }
