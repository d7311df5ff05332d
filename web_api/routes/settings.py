"""
System settings API routes.

Endpoints:
- GET /settings - List all settings
- GET /settings/{key} - Get one setting
- PUT /settings/{key} - Update a setting (reinitializes the scheduler on simulation_mode
  and timezone)
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from core.automation.scheduler import AutomationScheduler
from core.system_settings import (
    SIMULATION_MODE,
    TIMEZONE,
    get_all_settings,
    get_setting,
    update_setting,
    validate_setting_value,
)
from web_api.dependencies import get_optional_scheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


class SettingUpdateRequest(BaseModel):
    """Request body for updating a setting."""

    value: str


@router.get("")
async def list_settings() -> dict[str, Any]:
    return {"settings": await get_all_settings()}


@router.get("/{key}")
async def get_setting_endpoint(key: str) -> dict[str, Any]:
    setting = await get_setting(key)
    if setting is None:
        raise HTTPException(status_code=404, detail=f"Setting {key} not found")
    return setting


@router.put("/{key}")
async def update_setting_endpoint(
    key: str,
    request: SettingUpdateRequest,
    scheduler: AutomationScheduler | None = Depends(get_optional_scheduler),
) -> dict[str, Any]:
    """
    Update an existing setting.

    Switching simulation_mode reinitializes the scheduler so no timer armed
    under the old mode survives. A timezone change does the same, since the
    cron triggers are registered in the configured zone.
    """
    if await get_setting(key) is None:
        raise HTTPException(status_code=404, detail=f"Setting {key} not found")

    try:
        validate_setting_value(key, request.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    setting = await update_setting(key, request.value)

    if key in (SIMULATION_MODE, TIMEZONE) and scheduler is not None:
        await scheduler.reinitialize()
        logger.info(f"Scheduler reinitialized after {key}={request.value}")

    return setting
