"""Database queries for weekly course schedules."""

from datetime import datetime, timezone

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from ..enums import CourseLevel, Weekday
from ..tables import course_schedules


async def list_active_schedules(
    conn: AsyncConnection,
    weekday: Weekday | str | None = None,
) -> list[dict]:
    """
    Get active course schedules, optionally for a single weekday.

    Ordered by schedule_id so batches always process in the same order.
    """
    query = select(course_schedules).where(course_schedules.c.is_active.is_(True))
    if weekday is not None:
        query = query.where(course_schedules.c.day == Weekday(weekday))

    result = await conn.execute(query.order_by(course_schedules.c.schedule_id))
    return [dict(row) for row in result.mappings()]


async def get_schedule(
    conn: AsyncConnection,
    schedule_id: int,
) -> dict | None:
    """Get a single course schedule by ID."""
    result = await conn.execute(
        select(course_schedules).where(course_schedules.c.schedule_id == schedule_id)
    )
    row = result.mappings().first()
    return dict(row) if row else None


async def create_schedule(
    conn: AsyncConnection,
    course_name: str,
    level: CourseLevel | str,
    teacher_name: str,
    day: Weekday | str,
    time: str,
    duration_minutes: int,
    telegram_group: str = "",
    zoom_host_email: str = "",
    is_active: bool = True,
) -> int:
    """
    Create a course schedule.

    Returns:
        The new schedule_id
    """
    now = datetime.now(timezone.utc)
    result = await conn.execute(
        insert(course_schedules)
        .values(
            course_name=course_name,
            level=CourseLevel(level),
            teacher_name=teacher_name,
            day=Weekday(day),
            time=time,
            duration_minutes=duration_minutes,
            telegram_group=telegram_group,
            zoom_host_email=zoom_host_email,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        .returning(course_schedules.c.schedule_id)
    )
    return result.scalar_one()


async def set_schedule_active(
    conn: AsyncConnection,
    schedule_id: int,
    is_active: bool,
) -> bool:
    """
    Activate or deactivate a course schedule.

    Returns:
        True if the schedule exists
    """
    result = await conn.execute(
        update(course_schedules)
        .where(course_schedules.c.schedule_id == schedule_id)
        .values(is_active=is_active, updated_at=datetime.now(timezone.utc))
    )
    return result.rowcount > 0
