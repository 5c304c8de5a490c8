"""
Locale dictionaries.

Only the strings rendered server-side live here (notifications, mail subjects,
navigation labels); everything else belongs to the templates.
"""
from __future__ import annotations

from typing import Any

LOCALES: tuple[str, ...] = ("zh", "en", "fr")
DEFAULT_LOCALE = "zh"

LOCALE_NAMES = {
    "zh": "中文",
    "en": "English",
    "fr": "Français",
}

_DICTIONARIES: dict[str, dict[str, Any]] = {
    "zh": {
        "nav": {
            "home": "首页",
            "solutions": "解决方案",
            "news": "新闻动态",
            "contact": "联系我们",
        },
        "notifications": {
            "statusLabels": {
                "PENDING": "待处理",
                "PROCESSING": "处理中",
                "QUOTED": "已报价",
                "ACCEPTED": "已接受",
                "REJECTED": "已拒绝",
                "COMPLETED": "已完成",
            },
            "quoteStatusUpdated": "询价状态已更新",
            "quoteStatusUpdatedContent": "您的询价状态已更新为：{status}",
            "yourQuoteHasBeenQuoted": "您的询价已报价",
            "quoteAmountProvided": "我们已为您的询价提供报价：{price}",
            "quoteAccepted": "询价已接受",
            "quoteAcceptedContent": "您的询价已被接受，我们的团队将尽快与您联系。",
            "quoteRejected": "询价未通过",
            "quoteRejectedContent": "很抱歉，您的询价未能通过。如有疑问请联系我们。",
        },
    },
    "en": {
        "nav": {
            "home": "Home",
            "solutions": "Solutions",
            "news": "News",
            "contact": "Contact",
        },
        "notifications": {
            "statusLabels": {
                "PENDING": "Pending",
                "PROCESSING": "Processing",
                "QUOTED": "Quoted",
                "ACCEPTED": "Accepted",
                "REJECTED": "Rejected",
                "COMPLETED": "Completed",
            },
            "quoteStatusUpdated": "Quote status updated",
            "quoteStatusUpdatedContent": "Your quote status has been updated to: {status}",
            "yourQuoteHasBeenQuoted": "Your quote is ready",
            "quoteAmountProvided": "We have provided a price for your quote: {price}",
            "quoteAccepted": "Quote accepted",
            "quoteAcceptedContent": "Your quote has been accepted. Our team will contact you shortly.",
            "quoteRejected": "Quote declined",
            "quoteRejectedContent": "Unfortunately your quote could not be accepted. Please contact us with any questions.",
        },
    },
    "fr": {
        "nav": {
            "home": "Accueil",
            "solutions": "Solutions",
            "news": "Actualités",
            "contact": "Contact",
        },
        "notifications": {
            "statusLabels": {
                "PENDING": "En attente",
                "PROCESSING": "En cours",
                "QUOTED": "Devis envoyé",
                "ACCEPTED": "Accepté",
                "REJECTED": "Refusé",
                "COMPLETED": "Terminé",
            },
            "quoteStatusUpdated": "Statut du devis mis à jour",
            "quoteStatusUpdatedContent": "Le statut de votre devis est maintenant : {status}",
            "yourQuoteHasBeenQuoted": "Votre devis est prêt",
            "quoteAmountProvided": "Nous avons chiffré votre demande : {price}",
            "quoteAccepted": "Devis accepté",
            "quoteAcceptedContent": "Votre devis a été accepté. Notre équipe vous contactera rapidement.",
            "quoteRejected": "Devis refusé",
            "quoteRejectedContent": "Votre devis n'a malheureusement pas pu être accepté. Contactez-nous pour toute question.",
        },
    },
}


def normalize_locale(locale: str | None) -> str:
    return locale if locale in LOCALES else DEFAULT_LOCALE


def get_dictionary(locale: str | None) -> dict[str, Any]:
    return _DICTIONARIES[normalize_locale(locale)]


def locale_from_path(path: str) -> str:
    """First path segment if it names a locale (/en/news -> en), else the default."""
    segments = (path or "").split("/")
    candidate = segments[1] if len(segments) > 1 else ""
    return candidate if candidate in LOCALES else DEFAULT_LOCALE


def notification_content(status: str, quoted_price: str | None = None, locale: str | None = "en") -> tuple[str, str]:
    """(title, content) for a quote status change, in the recipient's locale."""
    t = get_dictionary(locale)["notifications"]
    labels: dict[str, str] = t["statusLabels"]
    label = labels.get(status, status)

    if status == "QUOTED":
        return t["yourQuoteHasBeenQuoted"], t["quoteAmountProvided"].replace("{price}", quoted_price or labels["QUOTED"])
    if status == "ACCEPTED":
        return t["quoteAccepted"], t["quoteAcceptedContent"]
    if status == "REJECTED":
        return t["quoteRejected"], t["quoteRejectedContent"]
    return t["quoteStatusUpdated"], t["quoteStatusUpdatedContent"].replace("{status}", label)
