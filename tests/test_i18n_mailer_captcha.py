import pytest

from app.bestar.captcha import CaptchaError, RecaptchaVerifier
from app.bestar.i18n import get_dictionary, locale_from_path, normalize_locale, notification_content
from app.bestar.mailer import MailerError, SmtpMailer, contact_notification, get_mailer, notify_staff, quote_notification

# --- i18n ---


def test_quoted_notification_per_locale():
    assert notification_content("QUOTED", "CAD 900", "en") == (
        "Your quote is ready",
        "We have provided a price for your quote: CAD 900",
    )
    assert notification_content("QUOTED", "CAD 900", "zh")[0] == "您的询价已报价"
    assert notification_content("QUOTED", None, "fr")[1].endswith("Devis envoyé")


def test_status_notification_uses_label():
    title, content = notification_content("PROCESSING", None, "en")
    assert title == "Quote status updated"
    assert content.endswith("Processing")
    assert notification_content("ACCEPTED", None, "fr")[0] == "Devis accepté"
    assert notification_content("REJECTED", None, "en")[0] == "Quote declined"


def test_unknown_locale_falls_back_to_chinese():
    assert notification_content("ACCEPTED", None, "de")[0] == "询价已接受"
    assert normalize_locale(None) == "zh"
    assert get_dictionary("xx")["nav"]["home"] == "首页"
    assert get_dictionary("fr")["nav"]["news"] == "Actualités"


@pytest.mark.parametrize(
    "path,expected",
    [("/en/news", "en"), ("/fr", "fr"), ("/zh/solutions/warehouse", "zh"), ("/news", "zh"), ("/", "zh"), ("", "zh")],
)
def test_locale_from_path(path, expected):
    assert locale_from_path(path) == expected


# --- mailer ---


def test_notify_staff_needs_recipient():
    assert notify_staff({"SMTP_ENABLED": True}, "s", "<p>x</p>") is False


def test_notify_staff_skips_when_smtp_disabled():
    assert get_mailer({"SMTP_ENABLED": False}) is None
    assert notify_staff({"EMAIL_TO": "ops@example.com", "SMTP_ENABLED": False}, "s", "<p>x</p>") is False


def test_notify_staff_sends(monkeypatch):
    sent = []
    monkeypatch.setattr(SmtpMailer, "_send", lambda self, msg: sent.append(msg))
    config = {"EMAIL_TO": "ops@example.com, sales@example.com", "SMTP_ENABLED": True, "SMTP_HOST": "smtp.example.com"}

    assert notify_staff(config, "New quote", "<p>hi</p>") is True
    msg = sent[0]
    assert msg["To"] == "ops@example.com, sales@example.com"
    assert msg["Subject"] == "New quote"
    assert msg["From"] == "Bestar Logistics <noreply@bestarca.com>"


def test_notify_staff_swallows_send_failure(monkeypatch):
    def boom(self, msg):
        raise MailerError("SMTP send failed: SMTPAuthenticationError")

    monkeypatch.setattr(SmtpMailer, "_send", boom)
    assert notify_staff({"EMAIL_TO": "ops@example.com", "SMTP_ENABLED": True}, "s", "<p>x</p>") is False


def test_notification_bodies_escape_input():
    subject, body = quote_notification({"name": "<b>Eve</b>", "email": "eve@example.com", "message": "a & b"})
    assert subject == "新询价请求 - <b>Eve</b>"
    assert "&lt;b&gt;Eve&lt;/b&gt;" in body
    assert "a &amp; b" in body
    assert "<b>Eve</b>" not in body

    subject, body = contact_notification({"name": "Sam", "subject": "Rates", "message": "hi"})
    assert subject == "新联系留言 - Rates"
    assert "<td style=\"padding: 8px; border: 1px solid #ddd;\">-</td>" in body


# --- captcha ---


def _verifier(monkeypatch, payload, min_score=0.5):
    monkeypatch.setattr(RecaptchaVerifier, "_post", lambda self, token, ip: payload)
    return RecaptchaVerifier(secret_key="k", min_score=min_score)


def test_captcha_without_score_counts_as_human(monkeypatch):
    r = _verifier(monkeypatch, {"success": True}).verify("tok")
    assert r.success is True
    assert r.score == 1.0


def test_captcha_zero_score_is_low(monkeypatch):
    r = _verifier(monkeypatch, {"success": True, "score": 0.0, "action": "login"}).verify("tok")
    assert r.success is False
    assert r.low_score is True
    assert r.action == "login"


def test_captcha_threshold_is_inclusive(monkeypatch):
    assert _verifier(monkeypatch, {"success": True, "score": 0.5}).verify("tok").success is True


def test_captcha_provider_rejection(monkeypatch):
    r = _verifier(monkeypatch, {"success": False, "error-codes": ["timeout-or-duplicate"]}).verify("tok")
    assert r.success is False
    assert r.low_score is False
    assert r.error_codes == ["timeout-or-duplicate"]


def test_captcha_transport_error(monkeypatch):
    def fail(self, token, ip):
        raise CaptchaError("siteverify request failed: URLError")

    monkeypatch.setattr(RecaptchaVerifier, "_post", fail)
    with pytest.raises(CaptchaError):
        RecaptchaVerifier(secret_key="k").verify("tok")


def test_subjects_stay_on_one_line():
    subject, _ = contact_notification({"name": "Sam", "subject": "Hi\r\nBcc: victim@example.com", "message": "x"})
    assert subject == "新联系留言 - Hi Bcc: victim@example.com"
    assert quote_notification({"name": "Li\nWei"})[0] == "新询价请求 - Li Wei"


def test_bad_header_is_a_mailer_error(monkeypatch):
    monkeypatch.setattr(SmtpMailer, "_send", lambda self, msg: None)
    mailer = get_mailer({"SMTP_ENABLED": True})
    with pytest.raises(MailerError):
        mailer.send_html("ops@example.com", "line one\nline two", "<p>x</p>")
    assert notify_staff({"EMAIL_TO": "ops@example.com", "SMTP_ENABLED": True}, "a\nb", "<p>x</p>") is False


def test_contact_with_multiline_subject_still_succeeds(app, client, monkeypatch):
    sent = []
    monkeypatch.setattr(SmtpMailer, "_send", lambda self, msg: sent.append(msg["Subject"]))
    app.config.update(SMTP_ENABLED=True, EMAIL_TO="ops@example.com")
    token = client.get("/auth/csrf").json["csrf_token"]

    r = client.post(
        "/api/contact",
        json={"name": "Sam", "email": "sam@example.com", "subject": "Hi\nthere", "message": "Please call me back today."},
        headers={"X-CSRF-Token": token},
    )
    assert r.status_code == 200
    assert sent == ["新联系留言 - Hi there"]
