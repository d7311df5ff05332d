"""
Centralized configuration for the school automation service.

Environment-level settings only. Runtime toggles that operators flip from
the dashboard (simulation mode, reminder lead time, timezone) live in the
system_settings table, see core.system_settings.
"""

import os


def is_dev_mode() -> bool:
    """Check if running in development mode (--dev flag or DEV_MODE env)."""
    return os.getenv("DEV_MODE", "").lower() in ("true", "1", "yes")


def is_production() -> bool:
    """Check if running on Railway (production environment)."""
    return bool(os.environ.get("RAILWAY_ENVIRONMENT"))


def is_scheduler_disabled() -> bool:
    """Check if the background scheduler is disabled (--no-scheduler flag)."""
    return os.getenv("DISABLE_SCHEDULER", "").lower() in ("true", "1", "yes")


def get_api_port() -> int:
    """Get API server port from env or default."""
    return int(os.getenv("API_PORT", "8000"))


def get_frontend_url() -> str:
    """Get dashboard frontend URL."""
    return os.environ.get("FRONTEND_URL", "http://localhost:5173").rstrip("/")


def get_allowed_origins() -> list[str]:
    """
    Get list of allowed CORS origins.

    Includes localhost variants for dev and the production frontend URL.
    """
    origins = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        f"http://localhost:{get_api_port()}",
    ]

    frontend_url = get_frontend_url()
    if frontend_url not in origins:
        origins.append(frontend_url)

    return origins


def get_course_message_time() -> tuple[int, int]:
    """
    Get the local wall-clock time at which daily course messages go out.

    Read from COURSE_MESSAGE_TIME as HH:MM, defaults to 06:00.
    """
    raw = os.getenv("COURSE_MESSAGE_TIME", "06:00")
    try:
        hours, minutes = (int(part) for part in raw.split(":"))
    except ValueError:
        print(f"Warning: invalid COURSE_MESSAGE_TIME {raw!r}, using 06:00")
        return 6, 0
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        print(f"Warning: invalid COURSE_MESSAGE_TIME {raw!r}, using 06:00")
        return 6, 0
    return hours, minutes


def get_telegram_bot_token() -> str:
    return os.environ.get("TELEGRAM_BOT_TOKEN", "")


def get_telegram_api_url() -> str:
    return os.environ.get("TELEGRAM_API_URL", "https://api.telegram.org").rstrip("/")


def get_zoom_credentials() -> tuple[str, str, str]:
    """Get Zoom Server-to-Server OAuth credentials (account_id, client_id, secret)."""
    return (
        os.environ.get("ZOOM_ACCOUNT_ID", ""),
        os.environ.get("ZOOM_CLIENT_ID", ""),
        os.environ.get("ZOOM_CLIENT_SECRET", ""),
    )


# Required environment variables for production
# Format: (name, description, required_in_dev)
REQUIRED_ENV_VARS = [
    ("DATABASE_URL", "PostgreSQL or SQLite connection string", True),
    ("TELEGRAM_BOT_TOKEN", "Telegram bot token for course messages", False),
    ("ZOOM_ACCOUNT_ID", "Zoom Server-to-Server OAuth account ID", False),
    ("ZOOM_CLIENT_ID", "Zoom Server-to-Server OAuth client ID", False),
    ("ZOOM_CLIENT_SECRET", "Zoom Server-to-Server OAuth client secret", False),
]


def check_required_env_vars() -> tuple[bool, list[str]]:
    """
    Check that required environment variables are set.

    Returns:
        (all_ok, warnings): Tuple of success flag and list of warning messages
    """
    warnings = []
    errors = []
    in_dev = is_dev_mode()

    for name, description, required_in_dev in REQUIRED_ENV_VARS:
        value = os.environ.get(name)

        if not value:
            if is_production():
                errors.append(f"  ✗ {name}: Not set ({description})")
            elif required_in_dev or not in_dev:
                warnings.append(f"  ⚠ {name}: Not set ({description})")

    if errors:
        for error in errors:
            print(error)
        return False, warnings

    return True, warnings
