"""initial schema: users, audit, content, quotes, contacts, notifications, settings

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    conn = op.get_bind()
    existing_tables = set(sa.inspect(conn).get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(320), nullable=False, unique=True),
            sa.Column("password_hash", sa.String(255), nullable=True),
            sa.Column("name", sa.String(128), nullable=True),
            sa.Column("phone", sa.String(64), nullable=True),
            sa.Column("company", sa.String(255), nullable=True),
            sa.Column("role", sa.String(32), nullable=False, server_default="CUSTOMER"),
            sa.Column("can_manage_articles", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("locale", sa.String(8), nullable=False, server_default="en"),
            sa.Column("email_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("quote_updates", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("news_updates", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )
        op.create_index("idx_users_role", "users", ["role"])

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("actor_user_email", sa.String(320), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(128), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("reason", sa.String(512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.Column("client_ip", sa.String(45), nullable=True),
            sa.Column("user_agent", sa.String(512), nullable=True),
        )
        op.create_index("idx_audit_events_action", "audit_events", ["action"])
        op.create_index("idx_audit_events_actor", "audit_events", ["actor_user_id"])

    if "articles" not in existing_tables:
        op.create_table(
            "articles",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("slug", sa.String(255), nullable=False, unique=True),
            sa.Column("excerpt", sa.Text(), nullable=True),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("cover_image", sa.String(512), nullable=True),
            sa.Column("category", sa.String(64), nullable=False, server_default="news"),
            sa.Column("tags", sa.String(512), nullable=True),
            sa.Column("status", sa.String(16), nullable=False, server_default="DRAFT"),
            sa.Column("author", sa.String(255), nullable=True),
            sa.Column("published_at", sa.DateTime(), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_articles_status", "articles", ["status"])
        op.create_index("idx_articles_category", "articles", ["category"])
        op.create_index("idx_articles_published_at", "articles", ["published_at"])

    if "pages" not in existing_tables:
        op.create_table(
            "pages",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("slug", sa.String(128), nullable=False, unique=True),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("title_en", sa.String(255), nullable=True),
            sa.Column("title_fr", sa.String(255), nullable=True),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("content_en", sa.Text(), nullable=True),
            sa.Column("content_fr", sa.Text(), nullable=True),
            sa.Column("status", sa.String(16), nullable=False, server_default="DRAFT"),
            sa.Column("published_at", sa.DateTime(), nullable=True),
            *_timestamps(),
        )

    if "quotes" not in existing_tables:
        op.create_table(
            "quotes",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("name", sa.String(128), nullable=False),
            sa.Column("email", sa.String(320), nullable=False),
            sa.Column("phone", sa.String(64), nullable=False),
            sa.Column("company", sa.String(255), nullable=True),
            sa.Column("service_type", sa.String(32), nullable=False),
            sa.Column("origin", sa.String(255), nullable=True),
            sa.Column("destination", sa.String(255), nullable=True),
            sa.Column("cargo_type", sa.String(128), nullable=True),
            sa.Column("weight", sa.String(64), nullable=True),
            sa.Column("dimensions", sa.String(128), nullable=True),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
            sa.Column("quoted_price", sa.String(64), nullable=True),
            sa.Column("quote_note", sa.Text(), nullable=True),
            sa.Column("quoted_at", sa.DateTime(), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_quotes_status", "quotes", ["status"])
        op.create_index("idx_quotes_email", "quotes", ["email"])
        op.create_index("idx_quotes_user_id", "quotes", ["user_id"])

    if "contacts" not in existing_tables:
        op.create_table(
            "contacts",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("name", sa.String(128), nullable=False),
            sa.Column("email", sa.String(320), nullable=False),
            sa.Column("phone", sa.String(64), nullable=True),
            sa.Column("subject", sa.String(255), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("status", sa.String(16), nullable=False, server_default="UNREAD"),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("idx_contacts_status", "contacts", ["status"])
        op.create_index("idx_contacts_email", "contacts", ["email"])

    if "notifications" not in existing_tables:
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("type", sa.String(16), nullable=False, server_default="SYSTEM"),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("link", sa.String(512), nullable=True),
            sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("idx_notifications_user_read", "notifications", ["user_id", "is_read"])

    if "settings" not in existing_tables:
        op.create_table(
            "settings",
            sa.Column("key", sa.String(128), primary_key=True),
            sa.Column("value", sa.Text(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )


def downgrade() -> None:
    for table in ("settings", "notifications", "contacts", "quotes", "pages", "articles", "audit_events", "users"):
        op.drop_table(table)
