"""Database queries for Zoom meetings created for course schedules."""

from datetime import datetime

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from ..automation.errors import DuplicateResourceError
from ..enums import MeetingStatus
from ..tables import zoom_meetings


async def get_live_meeting(
    conn: AsyncConnection,
    course_schedule_id: int,
) -> dict | None:
    """Get the non-completed meeting for a course schedule, if any."""
    result = await conn.execute(
        select(zoom_meetings)
        .where(zoom_meetings.c.course_schedule_id == course_schedule_id)
        .where(zoom_meetings.c.status == MeetingStatus.scheduled)
        .order_by(zoom_meetings.c.start_time)
        .limit(1)
    )
    row = result.mappings().first()
    return dict(row) if row else None


async def complete_past_meetings(
    conn: AsyncConnection,
    course_schedule_id: int,
    now: datetime,
) -> int:
    """
    Mark meetings that have already ended as completed.

    Returns:
        Number of meetings completed
    """
    result = await conn.execute(
        update(zoom_meetings)
        .where(zoom_meetings.c.course_schedule_id == course_schedule_id)
        .where(zoom_meetings.c.status == MeetingStatus.scheduled)
        .where(zoom_meetings.c.end_time <= now)
        .values(status=MeetingStatus.completed)
    )
    return result.rowcount or 0


async def insert_meeting(
    conn: AsyncConnection,
    course_schedule_id: int,
    zoom_meeting_id: str,
    join_url: str,
    start_time: datetime,
    end_time: datetime,
    created_at: datetime,
) -> dict:
    """
    Record a newly created meeting.

    Raises:
        DuplicateResourceError: If the schedule already has a live meeting
        IntegrityError: If another process inserted one concurrently
            (partial unique index on live meetings)
    """
    existing = await get_live_meeting(conn, course_schedule_id)
    if existing:
        raise DuplicateResourceError(existing)

    result = await conn.execute(
        insert(zoom_meetings)
        .values(
            course_schedule_id=course_schedule_id,
            zoom_meeting_id=zoom_meeting_id,
            join_url=join_url,
            start_time=start_time,
            end_time=end_time,
            status=MeetingStatus.scheduled,
            created_at=created_at,
        )
        .returning(zoom_meetings)
    )
    return dict(result.mappings().one())


async def list_meetings(
    conn: AsyncConnection,
    course_schedule_id: int | None = None,
) -> list[dict]:
    """List meetings, most recent start first."""
    query = select(zoom_meetings)
    if course_schedule_id is not None:
        query = query.where(zoom_meetings.c.course_schedule_id == course_schedule_id)

    result = await conn.execute(query.order_by(zoom_meetings.c.start_time.desc()))
    return [dict(row) for row in result.mappings()]
