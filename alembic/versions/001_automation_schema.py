"""automation_schema

Revision ID: 001
Revises:
Create Date: 2026-09-14 10:12:31.402117

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "course_schedules",
        sa.Column("schedule_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("course_name", sa.Text(), nullable=False),
        sa.Column("level", sa.String(length=16), nullable=False),
        sa.Column("teacher_name", sa.Text(), nullable=False),
        sa.Column("day", sa.String(length=16), nullable=False),
        sa.Column("time", sa.Text(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("telegram_group", sa.Text(), server_default="", nullable=True),
        sa.Column("zoom_host_email", sa.Text(), server_default="", nullable=True),
        sa.Column(
            "is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False
        ),
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
        sa.PrimaryKeyConstraint("schedule_id", name=op.f("pk_course_schedules")),
    )
    op.create_index(
        "idx_course_schedules_day", "course_schedules", ["day"], unique=False
    )

    op.create_table(
        "zoom_meetings",
        sa.Column("meeting_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("course_schedule_id", sa.Integer(), nullable=False),
        sa.Column("zoom_meeting_id", sa.Text(), nullable=False),
        sa.Column("join_url", sa.Text(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status", sa.String(length=16), server_default="scheduled", nullable=False
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
        sa.ForeignKeyConstraint(
            ["course_schedule_id"],
            ["course_schedules.schedule_id"],
            name=op.f("fk_zoom_meetings_course_schedule_id_course_schedules"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("meeting_id", name=op.f("pk_zoom_meetings")),
    )
    op.create_index(
        "idx_zoom_meetings_course_schedule_id",
        "zoom_meetings",
        ["course_schedule_id"],
        unique=False,
    )
    op.create_index(
        "uq_zoom_meetings_live_schedule",
        "zoom_meetings",
        ["course_schedule_id"],
        unique=True,
        postgresql_where=sa.text("status = 'scheduled'"),
        sqlite_where=sa.text("status = 'scheduled'"),
    )

    op.create_table(
        "automation_logs",
        sa.Column("log_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "details",
            sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql"),
            nullable=True,
        ),
        sa.Column("course_schedule_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["course_schedule_id"],
            ["course_schedules.schedule_id"],
            name=op.f("fk_automation_logs_course_schedule_id_course_schedules"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("log_id", name=op.f("pk_automation_logs")),
    )
    op.create_index(
        "idx_automation_logs_created_at", "automation_logs", ["created_at"], unique=False
    )
    op.create_index("idx_automation_logs_type", "automation_logs", ["type"], unique=False)
    op.create_index(
        "idx_automation_logs_status", "automation_logs", ["status"], unique=False
    )
    op.create_index(
        "idx_automation_logs_course_schedule_id",
        "automation_logs",
        ["course_schedule_id"],
        unique=False,
    )

    op.create_table(
        "system_settings",
        sa.Column("setting_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("key", sa.Text(), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
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
        sa.PrimaryKeyConstraint("setting_id", name=op.f("pk_system_settings")),
        sa.UniqueConstraint("key", name=op.f("uq_system_settings_key")),
    )


def downgrade() -> None:
    op.drop_table("system_settings")
    op.drop_index("idx_automation_logs_course_schedule_id", table_name="automation_logs")
    op.drop_index("idx_automation_logs_status", table_name="automation_logs")
    op.drop_index("idx_automation_logs_type", table_name="automation_logs")
    op.drop_index("idx_automation_logs_created_at", table_name="automation_logs")
    op.drop_table("automation_logs")
    op.drop_index("uq_zoom_meetings_live_schedule", table_name="zoom_meetings")
    op.drop_index("idx_zoom_meetings_course_schedule_id", table_name="zoom_meetings")
    op.drop_table("zoom_meetings")
    op.drop_index("idx_course_schedules_day", table_name="course_schedules")
    op.drop_table("course_schedules")
