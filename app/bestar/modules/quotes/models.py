from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.bestar.models import Base

SERVICE_TYPES = ("FBA", "DROPSHIPPING", "RETURNS", "OTHER")
QUOTE_STATUSES = ("PENDING", "PROCESSING", "QUOTED", "ACCEPTED", "REJECTED", "COMPLETED")


class Quote(Base):
    __tablename__ = "quotes"
    __table_args__ = (
        Index("idx_quotes_status", "status"),
        Index("idx_quotes_email", "email"),
        Index("idx_quotes_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # Anonymous requests stay unlinked until someone registers with the same email.
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    phone: Mapped[str] = mapped_column(String(64), nullable=False)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    service_type: Mapped[str] = mapped_column(String(32), nullable=False)
    origin: Mapped[str | None] = mapped_column(String(255), nullable=True)
    destination: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cargo_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    weight: Mapped[str | None] = mapped_column(String(64), nullable=True)
    dimensions: Mapped[str | None] = mapped_column(String(128), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING")
    quoted_price: Mapped[str | None] = mapped_column(String(64), nullable=True)
    quote_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    quoted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
