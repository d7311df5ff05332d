"""
Telegram channel forward configurations.

A configuration pairs a source channel with a course group; the scheduler's
hourly channel-forwards task copies new channel posts into the group.
"""

import logging

from core.automation_logs import create_log
from core.database import get_connection, get_transaction
from core.enums import LogStatus, LogType
from core.queries.channel_forwards import list_channel_forwards, upsert_channel_forward

logger = logging.getLogger(__name__)


async def get_channel_forwards(active_only: bool = False) -> list[dict]:
    async with get_connection() as conn:
        return await list_channel_forwards(conn, active_only=active_only)


async def configure_channel_forward(
    source_channel_id: str,
    source_channel_name: str,
    target_group_id: str,
    target_group_name: str,
) -> dict:
    """
    Create a forward from a channel to a group, or reactivate an existing one.

    Raises:
        ValueError: If a channel or group id is empty
    """
    if not source_channel_id or not target_group_id:
        raise ValueError("source_channel_id and target_group_id are required")

    details = {"sourceChannelId": source_channel_id, "targetGroupId": target_group_id}
    try:
        async with get_transaction() as conn:
            config, created = await upsert_channel_forward(
                conn,
                source_channel_id,
                source_channel_name,
                target_group_id,
                target_group_name,
            )
    except Exception as e:
        logger.error(f"Failed to configure forward {source_channel_id} -> {target_group_id}: {e}")
        await create_log(
            LogType.telegram_config,
            LogStatus.error,
            f"Failed to configure forward from {source_channel_id} to {target_group_id}",
            {**details, "error": str(e)},
        )
        raise

    action = "created" if created else "updated"
    await create_log(
        LogType.telegram_config,
        LogStatus.success,
        f"Channel forward {action}: {source_channel_name} -> {target_group_name}",
        {**details, "forwardId": config["forward_id"]},
    )
    return config
