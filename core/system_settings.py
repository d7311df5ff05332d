"""
System settings store.

Key/value settings operators change from the dashboard at runtime. Every read
goes to the database so the latest write is visible without a restart.

This module knows nothing about the scheduler: callers that change
simulation_mode or timezone are responsible for reinitializing it.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import insert, select, update

from core.constants import DEFAULT_SETTINGS
from core.database import get_connection, get_transaction
from core.tables import system_settings
from core.timezone import is_valid_timezone

logger = logging.getLogger(__name__)

SIMULATION_MODE = "simulation_mode"
REMINDER_MINUTES_BEFORE = "reminder_minutes_before"
TIMEZONE = "timezone"


async def get_all_settings() -> list[dict]:
    """Get all settings ordered by key."""
    async with get_connection() as conn:
        result = await conn.execute(
            select(system_settings).order_by(system_settings.c.key)
        )
        return [dict(row) for row in result.mappings()]


async def get_setting(key: str) -> dict | None:
    """Get a single setting row by key."""
    async with get_connection() as conn:
        result = await conn.execute(
            select(system_settings).where(system_settings.c.key == key)
        )
        row = result.mappings().first()
        return dict(row) if row else None


async def get_setting_value(key: str, default: str = "") -> str:
    """
    Get a setting's raw value.

    Unknown keys return `default`, never an error.
    """
    setting = await get_setting(key)
    return setting["value"] if setting else default


async def update_setting(key: str, value: str, description: str | None = None) -> dict:
    """
    Write a setting, creating it if it doesn't exist yet.

    Returns:
        The updated setting row
    """
    now = datetime.now(timezone.utc)

    async with get_transaction() as conn:
        result = await conn.execute(
            update(system_settings)
            .where(system_settings.c.key == key)
            .values(value=value, updated_at=now)
            .returning(system_settings)
        )
        row = result.mappings().first()

        if row is None:
            result = await conn.execute(
                insert(system_settings)
                .values(
                    key=key,
                    value=value,
                    description=description,
                    created_at=now,
                    updated_at=now,
                )
                .returning(system_settings)
            )
            row = result.mappings().first()

    logger.info(f"System setting {key} set to {value!r}")
    return dict(row)


async def ensure_default_settings() -> None:
    """Insert any default setting that doesn't exist yet. Existing values are kept."""
    for key, (value, description) in DEFAULT_SETTINGS.items():
        if await get_setting(key) is None:
            await update_setting(key, value, description)
            print(f"Created default setting {key}={value}")


def validate_setting_value(key: str, value: str) -> None:
    """
    Validate a value before it's written.

    Raises:
        ValueError: If the value is not acceptable for a known key
    """
    if key == SIMULATION_MODE:
        if value.lower() not in ("true", "false"):
            raise ValueError("simulation_mode must be 'true' or 'false'")
    elif key == REMINDER_MINUTES_BEFORE:
        try:
            minutes = int(value)
        except ValueError:
            raise ValueError("reminder_minutes_before must be an integer")
        if minutes < 0:
            raise ValueError("reminder_minutes_before must be zero or positive")
    elif key == TIMEZONE:
        if not is_valid_timezone(value):
            raise ValueError(f"Unknown timezone: {value}")


# =============================================================================
# Typed accessors
# =============================================================================


async def is_simulation_mode_enabled() -> bool:
    """Simulation mode defaults to on, so a fresh install never calls live APIs."""
    value = await get_setting_value(SIMULATION_MODE, DEFAULT_SETTINGS[SIMULATION_MODE][0])
    return value.strip().lower() == "true"


async def get_reminder_minutes_before() -> int:
    default = int(DEFAULT_SETTINGS[REMINDER_MINUTES_BEFORE][0])
    value = await get_setting_value(REMINDER_MINUTES_BEFORE, str(default))
    try:
        minutes = int(value)
    except ValueError:
        logger.warning(f"Invalid reminder_minutes_before {value!r}, using {default}")
        return default
    if minutes < 0:
        logger.warning(f"Negative reminder_minutes_before {minutes}, using {default}")
        return default
    return minutes


async def get_timezone() -> str:
    return await get_setting_value(TIMEZONE, DEFAULT_SETTINGS[TIMEZONE][0])
