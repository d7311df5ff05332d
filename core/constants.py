"""
Shared constants used across the platform.
"""

# Day name list for ordering (Monday first, matches datetime.weekday())
DAY_NAMES = [
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
]

# APScheduler cron day_of_week codes
CRON_DAY_CODES = {
    "monday": "mon",
    "tuesday": "tue",
    "wednesday": "wed",
    "thursday": "thu",
    "friday": "fri",
    "saturday": "sat",
    "sunday": "sun",
}

# System settings seeded on first start: key -> (value, description)
DEFAULT_SETTINGS = {
    "simulation_mode": (
        "true",
        "Replace Telegram and Zoom API calls with simulated results",
    ),
    "reminder_minutes_before": (
        "30",
        "Minutes before a class starts at which the reminder is sent",
    ),
    "timezone": (
        "GMT",
        "Timezone used for course times and scheduled tasks",
    ),
}

# Weekly bulk meeting creation runs Sunday at midnight
MEETING_CREATION_DAY = "sunday"
MEETING_CREATION_TIME = "00:00"

# Hourly forward of new Telegram channel posts; posts fetched per channel per run
CHANNEL_FORWARDS_MINUTE = 0
CHANNEL_FORWARD_POST_LIMIT = 5

# Default limit for audit log queries
DEFAULT_LOG_LIMIT = 100
MAX_LOG_LIMIT = 1000

# Common timezones offered by the dashboard settings form
TIMEZONES = [
    "GMT",
    "UTC",
    "Africa/Abidjan",
    "Africa/Dakar",
    "Africa/Casablanca",
    "Africa/Lagos",
    "Africa/Cairo",
    "Europe/London",
    "Europe/Paris",
    "Europe/Berlin",
    "America/New_York",
    "America/Montreal",
]
