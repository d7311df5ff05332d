"""Query layer for database operations using SQLAlchemy Core."""

from .channel_forwards import list_channel_forwards, record_forwarded, upsert_channel_forward
from .meetings import complete_past_meetings, get_live_meeting, insert_meeting, list_meetings
from .schedules import (
    create_schedule,
    get_schedule,
    list_active_schedules,
    set_schedule_active,
)

__all__ = [
    # Course schedules
    "list_active_schedules",
    "get_schedule",
    "create_schedule",
    "set_schedule_active",
    # Meetings
    "get_live_meeting",
    "complete_past_meetings",
    "insert_meeting",
    "list_meetings",
    # Telegram channel forwards
    "list_channel_forwards",
    "upsert_channel_forward",
    "record_forwarded",
]
