"""
Automation audit log.

Append-only record of every automation outcome (meeting creation, Telegram
messages, reminders, scheduled task runs). This is the dashboard's only
durable view of what the automation did, so writes must never break the
operation being logged.
"""

import json
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, desc, insert, select

from core.constants import DEFAULT_LOG_LIMIT
from core.database import get_connection, get_transaction
from core.enums import LogStatus, LogType
from core.tables import automation_logs

logger = logging.getLogger(__name__)


def _json_safe(details: dict | None) -> dict | None:
    """Round-trip details through JSON so datetimes and enums become strings."""
    if details is None:
        return None
    return json.loads(json.dumps(details, default=str))


async def create_log(
    log_type: LogType,
    status: LogStatus,
    message: str,
    details: dict | None = None,
    course_schedule_id: int | None = None,
) -> dict | None:
    """
    Append an entry to the automation log.

    Each call is its own transaction. Failures are reported and swallowed,
    never retried.

    Args:
        log_type: Kind of automation (zoom_creation, telegram_message, ...)
        status: success, error or simulated
        message: Human-readable summary shown in the dashboard
        details: Structured payload (request params, upstream errors, ...)
        course_schedule_id: Course schedule this entry relates to, if any

    Returns:
        The stored row as a dict, or None if the write failed
    """
    values = {
        "type": log_type,
        "status": status,
        "message": message,
        "details": _json_safe(details),
        "course_schedule_id": course_schedule_id,
        "created_at": datetime.now(timezone.utc),
    }

    try:
        async with get_transaction() as conn:
            result = await conn.execute(
                insert(automation_logs).values(**values).returning(automation_logs)
            )
            row = result.mappings().first()
            return dict(row) if row else None
    except Exception as e:
        # Don't let logging failures break the automation being logged
        print(f"Warning: Failed to write automation log: {e}")
        logger.warning(f"Failed to write automation log ({log_type}, {status}): {e}")
        return None


async def list_logs(
    log_type: LogType | str | None = None,
    status: LogStatus | str | None = None,
    course_schedule_id: int | None = None,
    limit: int = DEFAULT_LOG_LIMIT,
) -> list[dict]:
    """
    List automation log entries, newest first.

    Filters are combined with AND; omitted filters match everything.
    """
    query = select(automation_logs)
    if log_type is not None:
        query = query.where(automation_logs.c.type == LogType(log_type))
    if status is not None:
        query = query.where(automation_logs.c.status == LogStatus(status))
    if course_schedule_id is not None:
        query = query.where(automation_logs.c.course_schedule_id == course_schedule_id)

    query = query.order_by(
        desc(automation_logs.c.created_at), desc(automation_logs.c.log_id)
    ).limit(limit)

    async with get_connection() as conn:
        result = await conn.execute(query)
        return [dict(row) for row in result.mappings()]


async def cleanup_logs(older_than_days: int) -> int:
    """
    Delete log entries older than the given number of days.

    Administrative pruning only; the deletion itself is recorded as a
    cleanup entry.

    Returns:
        Number of deleted entries
    """
    if older_than_days < 0:
        raise ValueError("older_than_days must be zero or positive")

    cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)

    async with get_transaction() as conn:
        result = await conn.execute(
            delete(automation_logs).where(automation_logs.c.created_at < cutoff)
        )
        deleted = result.rowcount or 0

    logger.info(f"Deleted {deleted} automation log entries older than {cutoff}")
    await create_log(
        LogType.cleanup,
        LogStatus.success,
        f"Deleted {deleted} automation log entries older than {older_than_days} days",
        {"deleted": deleted, "cutoff": cutoff},
    )
    return deleted
