"""FastAPI dependencies shared by the automation routes."""

from fastapi import HTTPException, Request

from core.automation.scheduler import AutomationScheduler


def get_optional_scheduler(request: Request) -> AutomationScheduler | None:
    """Get the running scheduler, or None when started with --no-scheduler."""
    return getattr(request.app.state, "automation_scheduler", None)


def get_automation_scheduler(request: Request) -> AutomationScheduler:
    """
    Get the running scheduler.

    Raises:
        HTTPException 503: If the scheduler is disabled
    """
    scheduler = get_optional_scheduler(request)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Scheduler is not running")
    return scheduler
