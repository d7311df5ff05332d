"""Database queries for Telegram channel forward configurations."""

from datetime import datetime, timezone

from sqlalchemy import and_, insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from ..tables import telegram_channel_forwards


async def list_channel_forwards(
    conn: AsyncConnection,
    active_only: bool = False,
) -> list[dict]:
    """List forward configurations ordered by forward_id."""
    query = select(telegram_channel_forwards)
    if active_only:
        query = query.where(telegram_channel_forwards.c.is_active.is_(True))

    result = await conn.execute(query.order_by(telegram_channel_forwards.c.forward_id))
    return [dict(row) for row in result.mappings()]


async def upsert_channel_forward(
    conn: AsyncConnection,
    source_channel_id: str,
    source_channel_name: str,
    target_group_id: str,
    target_group_name: str,
) -> tuple[dict, bool]:
    """
    Create or reactivate the forward from a channel to a group.

    Returns:
        (row, created) - created is False when an existing pair was updated
    """
    now = datetime.now(timezone.utc)
    pair = and_(
        telegram_channel_forwards.c.source_channel_id == source_channel_id,
        telegram_channel_forwards.c.target_group_id == target_group_id,
    )

    result = await conn.execute(
        update(telegram_channel_forwards)
        .where(pair)
        .values(
            source_channel_name=source_channel_name,
            target_group_name=target_group_name,
            is_active=True,
            updated_at=now,
        )
        .returning(telegram_channel_forwards)
    )
    row = result.mappings().first()
    if row:
        return dict(row), False

    result = await conn.execute(
        insert(telegram_channel_forwards)
        .values(
            source_channel_id=source_channel_id,
            source_channel_name=source_channel_name,
            target_group_id=target_group_id,
            target_group_name=target_group_name,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        .returning(telegram_channel_forwards)
    )
    return dict(result.mappings().one()), True


async def record_forwarded(
    conn: AsyncConnection,
    forward_id: int,
    last_message_id: int,
    forwarded_at: datetime,
) -> None:
    """Remember the newest message forwarded for a configuration."""
    await conn.execute(
        update(telegram_channel_forwards)
        .where(telegram_channel_forwards.c.forward_id == forward_id)
        .values(
            last_forwarded_message_id=last_message_id,
            last_forwarded_at=forwarded_at,
            updated_at=forwarded_at,
        )
    )
