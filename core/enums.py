"""SQLAlchemy enum definitions for the database schema."""

import enum

from sqlalchemy import Enum as SQLEnum


# =====================================================
# Python Enum Classes
# =====================================================


class Weekday(str, enum.Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"
    sunday = "sunday"


class CourseLevel(str, enum.Enum):
    bbg = "bbg"
    a1 = "a1"
    a2 = "a2"
    b1 = "b1"
    b2 = "b2"
    c1 = "c1"
    c2 = "c2"


class MeetingStatus(str, enum.Enum):
    scheduled = "scheduled"
    completed = "completed"


class LogType(str, enum.Enum):
    zoom_creation = "zoom_creation"
    zoom_auth = "zoom_auth"
    telegram_message = "telegram_message"
    telegram_info = "telegram_info"
    telegram_config = "telegram_config"
    scheduled_message = "scheduled_message"
    reminder = "reminder"
    scheduled_task = "scheduled_task"
    cleanup = "cleanup"
    test = "test"


class LogStatus(str, enum.Enum):
    success = "success"
    error = "error"
    simulated = "simulated"


# =====================================================
# SQLAlchemy Enum Types
# Stored as VARCHAR so the same schema runs on PostgreSQL and SQLite
# =====================================================

weekday_enum = SQLEnum(
    Weekday, name="weekday", native_enum=False, create_constraint=False, length=16
)
course_level_enum = SQLEnum(
    CourseLevel,
    name="course_level",
    native_enum=False,
    create_constraint=False,
    length=16,
)
meeting_status_enum = SQLEnum(
    MeetingStatus,
    name="meeting_status",
    native_enum=False,
    create_constraint=False,
    length=16,
)
log_type_enum = SQLEnum(
    LogType, name="log_type", native_enum=False, create_constraint=False, length=32
)
log_status_enum = SQLEnum(
    LogStatus, name="log_status", native_enum=False, create_constraint=False, length=16
)
