"""telegram_channel_forwards

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 09:41:07.215830

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "telegram_channel_forwards",
        sa.Column("forward_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("source_channel_id", sa.Text(), nullable=False),
        sa.Column("source_channel_name", sa.Text(), nullable=False),
        sa.Column("target_group_id", sa.Text(), nullable=False),
        sa.Column("target_group_name", sa.Text(), nullable=False),
        sa.Column(
            "is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False
        ),
        sa.Column("last_forwarded_message_id", sa.Integer(), nullable=True),
        sa.Column("last_forwarded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("forward_id", name=op.f("pk_telegram_channel_forwards")),
        sa.UniqueConstraint(
            "source_channel_id",
            "target_group_id",
            name="uq_telegram_channel_forwards_source_target",
        ),
    )


def downgrade() -> None:
    op.drop_table("telegram_channel_forwards")
