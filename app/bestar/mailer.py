from __future__ import annotations

import html
import logging
import smtplib
import ssl
from collections.abc import Mapping
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Any

logger = logging.getLogger(__name__)


class MailerError(RuntimeError):
    """Raised when sending email fails (without leaking secrets)."""


@dataclass(frozen=True)
class SmtpMailer:
    host: str
    port: int
    user: str
    password: str
    starttls: bool
    sender: str
    timeout_seconds: int = 15

    def _build_message(self, to: list[str], subject: str, body_html: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = ", ".join(to)
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid()
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(body_html, subtype="html")
        return msg

    def _send(self, msg: EmailMessage) -> None:
        try:
            with smtplib.SMTP(host=self.host, port=self.port, timeout=self.timeout_seconds) as smtp:
                smtp.ehlo()
                if self.starttls:
                    smtp.starttls(context=ssl.create_default_context())
                    smtp.ehlo()
                if self.user:
                    smtp.login(self.user, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise MailerError(f"SMTP send failed: {type(e).__name__}") from e

    def send_html(self, to: str | list[str], subject: str, body_html: str) -> str:
        """Send and return the Message-ID."""
        recipients = [to] if isinstance(to, str) else list(to)
        try:
            msg = self._build_message(recipients, subject, body_html)
        except ValueError as e:
            # email rejects CR/LF in header values
            raise MailerError(f"Invalid message headers: {e}") from e
        self._send(msg)
        return msg["Message-ID"]


def get_mailer(config: Mapping[str, Any]) -> SmtpMailer | None:
    """
    Returns None when SMTP is disabled so dev/test never sends by accident.
    """
    if not config.get("SMTP_ENABLED"):
        return None
    return SmtpMailer(
        host=config.get("SMTP_HOST") or "localhost",
        port=int(config.get("SMTP_PORT") or 587),
        user=config.get("SMTP_USER") or "",
        password=config.get("SMTP_PASS") or "",
        starttls=bool(config.get("SMTP_STARTTLS", True)),
        sender=config.get("EMAIL_FROM") or "Bestar Logistics <noreply@bestarca.com>",
    )


def notify_staff(config: Mapping[str, Any], subject: str, body_html: str) -> bool:
    """
    Best-effort mail to the staff inbox (EMAIL_TO).
    Never raises: the form submission that triggered it has already been saved.
    """
    to = (config.get("EMAIL_TO") or "").strip()
    if not to:
        return False
    mailer = get_mailer(config)
    if mailer is None:
        logger.warning("EMAIL_TO is set but SMTP is disabled; skipping notification %r", subject)
        return False
    try:
        message_id = mailer.send_html([a.strip() for a in to.split(",") if a.strip()], subject, body_html)
    except MailerError as e:
        logger.error("Staff notification failed (%s): %s", subject, e)
        return False
    logger.info("Staff notification sent: %s (%s)", subject, message_id)
    return True


# --- Templates ---

_ROW = '<tr><td style="padding: 8px; border: 1px solid #ddd;"><strong>{label}</strong></td><td style="padding: 8px; border: 1px solid #ddd;">{value}</td></tr>'


def _subject(prefix: str, value: Any) -> str:
    # Form input ends up in the Subject header, which must stay on one line.
    text = " ".join(str(value or "").split())
    return f"{prefix} - {text}"


def _table(heading: str, rows: list[tuple[str, Any]]) -> str:
    body = "".join(_ROW.format(label=html.escape(label), value=html.escape(str(value or "-"))) for label, value in rows)
    return f'<h2>{html.escape(heading)}</h2><table style="border-collapse: collapse; width: 100%;">{body}</table>'


def quote_notification(data: Mapping[str, Any]) -> tuple[str, str]:
    subject = _subject("新询价请求", data.get("name"))
    return subject, _table(
        "新询价请求",
        [
            ("姓名", data.get("name")),
            ("邮箱", data.get("email")),
            ("电话", data.get("phone")),
            ("公司", data.get("company")),
            ("服务类型", data.get("service_type")),
            ("起运地", data.get("origin")),
            ("目的地", data.get("destination")),
            ("留言", data.get("message")),
        ],
    )


def contact_notification(data: Mapping[str, Any]) -> tuple[str, str]:
    subject = _subject("新联系留言", data.get("subject"))
    return subject, _table(
        "新联系留言",
        [
            ("姓名", data.get("name")),
            ("邮箱", data.get("email")),
            ("电话", data.get("phone")),
            ("主题", data.get("subject")),
            ("内容", data.get("message")),
        ],
    )
