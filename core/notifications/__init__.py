"""
Telegram message templates for course automation.

Public API:
    format_course_message(schedule, join_url, timezone_name) - Daily course message
    format_reminder_message(schedule, join_url, timezone_name, minutes) - Pre-class reminder
"""

from .templates import (
    format_course_message,
    format_reminder_message,
    get_message,
    load_templates,
)

__all__ = [
    "format_course_message",
    "format_reminder_message",
    "get_message",
    "load_templates",
]
