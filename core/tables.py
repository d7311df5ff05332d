"""SQLAlchemy Core table definitions for the database schema."""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB

from .enums import (
    course_level_enum,
    log_status_enum,
    log_type_enum,
    meeting_status_enum,
    weekday_enum,
)

# Naming convention for constraints (helps Alembic generate better names)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=convention)

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


# =====================================================
# 1. COURSE SCHEDULES
# =====================================================
# Owned by the dashboard CRUD screens; read-only to the automation scheduler
course_schedules = Table(
    "course_schedules",
    metadata,
    Column("schedule_id", Integer, primary_key=True, autoincrement=True),
    Column("course_name", Text, nullable=False),
    Column("level", course_level_enum, nullable=False),
    Column("teacher_name", Text, nullable=False),
    Column("day", weekday_enum, nullable=False),
    Column("time", Text, nullable=False),  # HH:MM local time
    Column("duration_minutes", Integer, nullable=False),
    Column("telegram_group", Text, server_default=""),
    Column("zoom_host_email", Text, server_default=""),
    Column("is_active", Boolean, server_default=text("true"), nullable=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
    Index("idx_course_schedules_day", "day"),
)


# =====================================================
# 2. ZOOM MEETINGS
# =====================================================
zoom_meetings = Table(
    "zoom_meetings",
    metadata,
    Column("meeting_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "course_schedule_id",
        Integer,
        ForeignKey("course_schedules.schedule_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("zoom_meeting_id", Text, nullable=False),
    Column("join_url", Text, nullable=False),
    Column("start_time", DateTime(timezone=True), nullable=False),  # UTC
    Column("end_time", DateTime(timezone=True), nullable=False),  # UTC
    Column("status", meeting_status_enum, nullable=False, server_default="scheduled"),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Index("idx_zoom_meetings_course_schedule_id", "course_schedule_id"),
    # At most one live meeting per course schedule
    Index(
        "uq_zoom_meetings_live_schedule",
        "course_schedule_id",
        unique=True,
        postgresql_where=text("status = 'scheduled'"),
        sqlite_where=text("status = 'scheduled'"),
    ),
)


# =====================================================
# 3. AUTOMATION LOGS
# =====================================================
# Append-only; rows are only removed by explicit administrative cleanup
automation_logs = Table(
    "automation_logs",
    metadata,
    Column("log_id", Integer, primary_key=True, autoincrement=True),
    Column("type", log_type_enum, nullable=False),
    Column("status", log_status_enum, nullable=False),
    Column("message", Text, nullable=False),
    Column("details", JSONType),
    Column(
        "course_schedule_id",
        Integer,
        ForeignKey("course_schedules.schedule_id", ondelete="SET NULL"),
    ),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("idx_automation_logs_created_at", "created_at"),
    Index("idx_automation_logs_type", "type"),
    Index("idx_automation_logs_status", "status"),
    Index("idx_automation_logs_course_schedule_id", "course_schedule_id"),
)


# =====================================================
# 4. SYSTEM SETTINGS
# =====================================================
system_settings = Table(
    "system_settings",
    metadata,
    Column("setting_id", Integer, primary_key=True, autoincrement=True),
    Column("key", Text, nullable=False, unique=True),
    Column("value", Text, nullable=False),
    Column("description", Text),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
)


# =====================================================
# 5. TELEGRAM CHANNEL FORWARDS
# =====================================================
# New posts of a source channel are forwarded hourly to a course group
telegram_channel_forwards = Table(
    "telegram_channel_forwards",
    metadata,
    Column("forward_id", Integer, primary_key=True, autoincrement=True),
    Column("source_channel_id", Text, nullable=False),
    Column("source_channel_name", Text, nullable=False),
    Column("target_group_id", Text, nullable=False),
    Column("target_group_name", Text, nullable=False),
    Column("is_active", Boolean, server_default=text("true"), nullable=False),
    Column("last_forwarded_message_id", Integer),
    Column("last_forwarded_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
    UniqueConstraint(
        "source_channel_id",
        "target_group_id",
        name="uq_telegram_channel_forwards_source_target",
    ),
)
