"""users: TOTP two-factor columns

Revision ID: 0002_user_two_factor
Revises: 0001_initial_schema
Create Date: 2026-10-19 14:03:11.502917

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0002_user_two_factor'
down_revision: Union[str, Sequence[str], None] = '0001_initial_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    columns = {c["name"] for c in sa.inspect(conn).get_columns("users")}

    with op.batch_alter_table("users") as batch:
        if "two_factor_enabled" not in columns:
            batch.add_column(sa.Column("two_factor_enabled", sa.Boolean(), nullable=False, server_default=sa.false()))
        if "two_factor_secret" not in columns:
            batch.add_column(sa.Column("two_factor_secret", sa.String(64), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("users") as batch:
        batch.drop_column("two_factor_secret")
        batch.drop_column("two_factor_enabled")
