"""Tests for message template loading and rendering."""

import pytest
from core.notifications.templates import (
    format_course_message,
    format_reminder_message,
    load_templates,
    render_message,
)

SCHEDULE = {
    "schedule_id": 1,
    "course_name": "Anglais B1",
    "level": "b1",
    "teacher_name": "Mme Koné",
    "day": "monday",
    "time": "20:00",
    "duration_minutes": 60,
    "telegram_group": "-100123",
}


class TestLoadTemplates:
    def test_loads_yaml_file(self):
        templates = load_templates()
        assert isinstance(templates, dict)
        assert "course_message" in templates
        assert "course_reminder" in templates

    def test_templates_have_telegram_channel(self):
        templates = load_templates()
        assert "telegram" in templates["course_message"]
        assert "telegram" in templates["course_reminder"]


class TestRenderMessage:
    def test_renders_simple_variable(self):
        result = render_message("Hello {name}!", {"name": "Awa"})
        assert result == "Hello Awa!"

    def test_missing_variable_raises(self):
        with pytest.raises(KeyError):
            render_message("Hello {name}!", {})


class TestCourseMessages:
    def test_course_message_contains_details(self):
        message = format_course_message(SCHEDULE, "https://zoom.us/j/123", "GMT")

        assert "<b>Anglais B1</b>" in message
        assert "Mme Koné" in message
        assert "20:00 GMT" in message
        assert '<a href="https://zoom.us/j/123">' in message
        assert "RAPPEL" not in message

    def test_reminder_mentions_lead_time(self):
        message = format_reminder_message(SCHEDULE, "https://zoom.us/j/123", "GMT", 15)

        assert message.startswith("⏰ <b>RAPPEL: Cours dans 15 minutes</b>")
        assert "<b>Anglais B1</b>" in message

    def test_escapes_html_in_names(self):
        schedule = {**SCHEDULE, "course_name": "Français <avancé> & co"}

        message = format_course_message(schedule, "https://zoom.us/j/1", "GMT")

        assert "Français &lt;avancé&gt; &amp; co" in message
