from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.bestar.permissions import Principal, Role, coerce_role


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"
    __table_args__ = (Index("idx_users_role", "role"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    # Null for accounts created through an external identity provider.
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Stored as plain text so an unknown value reads back as "no role" instead of failing to load.
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=Role.CUSTOMER.value)
    can_manage_articles: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Preferences
    locale: Mapped[str] = mapped_column(String(8), nullable=False, default="en")
    email_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    quote_updates: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    news_updates: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # TOTP (pyotp). The secret is only stored once a code has confirmed it.
    two_factor_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    two_factor_secret: Mapped[str | None] = mapped_column(String(64), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def to_principal(self) -> Principal:
        return Principal(
            id=self.id,
            email=self.email,
            role=coerce_role(self.role),
            can_manage_articles=bool(self.can_manage_articles),
            name=self.name,
        )


class AuditEvent(Base):
    """
    Append-only audit trail event.
    Also serves the per-user login history (auth.login / auth.login_failed).
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        Index("idx_audit_events_action", "action"),
        Index("idx_audit_events_actor", "actor_user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    actor_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    actor_user_email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    action: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "auth.login"
    entity_type: Mapped[str | None] = mapped_column(String(128), nullable=True)  # e.g. "Article"
    entity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    reason: Mapped[str | None] = mapped_column(String(512), nullable=True)
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # small JSON string
    client_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.bestar.modules.articles.models import Article  # noqa: E402,F401
from app.bestar.modules.pages.models import Page  # noqa: E402,F401
from app.bestar.modules.quotes.models import Quote  # noqa: E402,F401
from app.bestar.modules.messages.models import Contact, Notification  # noqa: E402,F401
from app.bestar.modules.settings.models import Setting  # noqa: E402,F401
