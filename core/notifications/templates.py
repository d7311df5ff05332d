"""Telegram message templates for course notifications and reminders."""

import html
from pathlib import Path

import yaml


_templates: dict | None = None


def load_templates() -> dict:
    """
    Load message templates from messages.yaml.

    Caches templates after first load.
    """
    global _templates
    if _templates is not None:
        return _templates

    yaml_path = Path(__file__).parent / "messages.yaml"
    with open(yaml_path, encoding="utf-8") as f:
        _templates = yaml.safe_load(f)

    return _templates


def render_message(template: str, context: dict) -> str:
    """
    Render a message template with context variables.

    Raises:
        KeyError: If a required variable is missing from context
    """
    return template.format(**context)


def get_message(message_type: str, channel: str, context: dict) -> str:
    """
    Get and render a message for a specific type and channel.

    Args:
        message_type: "course_message" or "course_reminder"
        channel: "telegram"
        context: Variables to substitute
    """
    templates = load_templates()
    template = templates[message_type][channel]
    return render_message(template, context)


def build_course_context(
    schedule: dict,
    join_url: str,
    timezone_name: str,
    minutes: int | None = None,
) -> dict:
    """
    Build template variables for a course schedule.

    Free-text fields are HTML-escaped since messages go out with parse_mode=HTML.
    """
    level = schedule.get("level")
    return {
        "course_name": html.escape(schedule["course_name"]),
        "teacher_name": html.escape(schedule.get("teacher_name") or ""),
        "level": getattr(level, "value", level) or "",
        "course_time": schedule["time"],
        "timezone": timezone_name,
        "join_url": html.escape(join_url, quote=True),
        "minutes": minutes if minutes is not None else "",
    }


def format_course_message(schedule: dict, join_url: str, timezone_name: str) -> str:
    context = build_course_context(schedule, join_url, timezone_name)
    return get_message("course_message", "telegram", context)


def format_reminder_message(
    schedule: dict, join_url: str, timezone_name: str, minutes: int
) -> str:
    context = build_course_context(schedule, join_url, timezone_name, minutes)
    return get_message("course_reminder", "telegram", context)
