"""
Automation API routes.

Endpoints:
- POST /tasks/meetings - Ensure next meetings for every active course now
- POST /tasks/notifications?day= - Send a weekday's course messages now
- POST /tasks/channel-forwards - Forward new Telegram channel posts now
- POST /scheduler/reset - Reinitialize the scheduler
- GET /scheduler/status - Triggers and armed reminders
- GET /logs - Query the automation log
- DELETE /logs?older_than_days= - Prune the automation log
- GET /meetings - List meetings created for courses
- GET /channel-forwards - List channel forward configurations
- POST /channel-forwards - Create or reactivate a channel forward
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from core.automation.scheduler import AutomationScheduler
from core.automation_logs import cleanup_logs, list_logs
from core.channel_forwards import configure_channel_forward, get_channel_forwards
from core.constants import DEFAULT_LOG_LIMIT, MAX_LOG_LIMIT
from core.database import get_connection
from core.queries.meetings import list_meetings
from web_api.dependencies import get_automation_scheduler

logger = logging.getLogger(__name__)

router = APIRouter(tags=["automation"])


# =============================================================================
# Manual task runs
# =============================================================================


@router.post("/tasks/meetings")
async def run_meeting_creation(
    scheduler: AutomationScheduler = Depends(get_automation_scheduler),
) -> dict[str, Any]:
    try:
        result = await scheduler.manually_run_meeting_creation()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"status": "ok", "result": result}


@router.post("/tasks/notifications")
async def run_notifications(
    day: str | None = None,
    scheduler: AutomationScheduler = Depends(get_automation_scheduler),
) -> dict[str, Any]:
    """Run the course messages for `day` (defaults to today)."""
    try:
        result = await scheduler.manually_run_notifications(day)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"status": "ok", "result": result}


@router.post("/tasks/channel-forwards")
async def run_channel_forwards(
    scheduler: AutomationScheduler = Depends(get_automation_scheduler),
) -> dict[str, Any]:
    try:
        result = await scheduler.manually_run_channel_forwards()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"status": "ok", "result": result}


# =============================================================================
# Scheduler
# =============================================================================


@router.post("/scheduler/reset")
async def reset_scheduler(
    scheduler: AutomationScheduler = Depends(get_automation_scheduler),
) -> dict[str, Any]:
    result = await scheduler.reinitialize()
    return {"status": "ok", **result}


@router.get("/scheduler/status")
async def scheduler_status(
    scheduler: AutomationScheduler = Depends(get_automation_scheduler),
) -> dict[str, Any]:
    return scheduler.get_status()


# =============================================================================
# Automation log
# =============================================================================


@router.get("/logs")
async def get_logs(
    log_type: str | None = Query(None, alias="type"),
    status: str | None = None,
    schedule_id: int | None = None,
    limit: int = Query(DEFAULT_LOG_LIMIT, ge=1, le=MAX_LOG_LIMIT),
) -> dict[str, Any]:
    try:
        logs = await list_logs(
            log_type=log_type,
            status=status,
            course_schedule_id=schedule_id,
            limit=limit,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"logs": logs}


@router.delete("/logs")
async def delete_logs(older_than_days: int) -> dict[str, Any]:
    try:
        deleted = await cleanup_logs(older_than_days)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"deleted": deleted}


# =============================================================================
# Meetings
# =============================================================================


@router.get("/meetings")
async def get_meetings(schedule_id: int | None = None) -> dict[str, Any]:
    async with get_connection() as conn:
        meetings = await list_meetings(conn, schedule_id)
    return {"meetings": meetings}


# =============================================================================
# Channel forwards
# =============================================================================


class ChannelForwardRequest(BaseModel):
    """Request body for configuring a channel forward."""

    source_channel_id: str
    source_channel_name: str
    target_group_id: str
    target_group_name: str


@router.get("/channel-forwards")
async def list_forwards(active_only: bool = False) -> dict[str, Any]:
    return {"forwards": await get_channel_forwards(active_only=active_only)}


@router.post("/channel-forwards")
async def create_forward(request: ChannelForwardRequest) -> dict[str, Any]:
    try:
        return await configure_channel_forward(
            request.source_channel_id,
            request.source_channel_name,
            request.target_group_id,
            request.target_group_name,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
