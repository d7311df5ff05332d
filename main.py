"""
Automation server entry point.

Architecture:
- One Python process, one asyncio event loop
- Two services sharing that loop:
  1. FastAPI (HTTP server for the operations dashboard)
  2. Automation scheduler (APScheduler: course messages, meetings, reminders)

We use FastAPI's lifespan to manage startup/shutdown. The scheduler runs on
the same event loop as the HTTP server, so routes and scheduled jobs share
one AutomationScheduler instance (app.state.automation_scheduler).

Run with: python main.py [--no-scheduler] [--port PORT]
"""

import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Set up import paths before any local imports
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

# Load .env.local first (if exists), then .env as fallback
# .env.local is gitignored and used for local dev overrides
load_dotenv(project_root / ".env.local")  # Local overrides (gitignored)
load_dotenv()  # Fallback to .env

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.automation.scheduler import AutomationScheduler
from core.config import (
    check_required_env_vars,
    get_allowed_origins,
    get_api_port,
    is_scheduler_disabled,
)
from core.database import close_engine, create_tables, is_sqlite
from core.integrations import MeetingGateway, MessagingGateway
from core.system_settings import ensure_default_settings
from web_api.routes.automation import router as automation_router
from web_api.routes.settings import router as settings_router

if os.environ.get("SENTRY_DSN"):
    sentry_sdk.init(
        dsn=os.environ["SENTRY_DSN"],
        environment=os.environ.get("RAILWAY_ENVIRONMENT", "development"),
    )


async def start_scheduler(app: FastAPI) -> AutomationScheduler | None:
    """Create, start and initialize the automation scheduler."""
    if is_scheduler_disabled():
        print("Automation scheduler disabled (--no-scheduler flag or DISABLE_SCHEDULER=true)")
        return None

    scheduler = AutomationScheduler(MessagingGateway(), MeetingGateway())
    scheduler.start()
    await scheduler.initialize()
    app.state.automation_scheduler = scheduler
    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager.

    Prepares the database and starts the scheduler alongside FastAPI.
    """
    ok, warnings = check_required_env_vars()
    for warning in warnings:
        print(warning)
    if not ok:
        raise RuntimeError("Missing required environment variables")

    if is_sqlite():
        # Local dev: no migrations, create tables directly
        await create_tables()
    await ensure_default_settings()

    app.state.automation_scheduler = None
    print("Starting automation scheduler...")
    scheduler = await start_scheduler(app)

    yield  # FastAPI runs here, scheduler runs alongside it

    print("Shutting down automation scheduler...")
    if scheduler:
        scheduler.shutdown()
    await close_engine()  # Close database connections


# Create FastAPI app with lifespan
app = FastAPI(
    title="School Operations Automation API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(settings_router)
app.include_router(automation_router)


@app.get("/health")
async def health():
    """Health check endpoint with scheduler status."""
    scheduler = getattr(app.state, "automation_scheduler", None)
    return {
        "status": "healthy",
        "scheduler_running": bool(scheduler and scheduler.scheduler.running),
    }


if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="School Operations Automation Server")
    parser.add_argument(
        "--no-scheduler",
        action="store_true",
        help="Disable the automation scheduler (useful for running multiple dev servers)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=get_api_port(),
        help="Port to run the server on (default: API_PORT or 8000)",
    )
    args = parser.parse_args()

    # Set env var so it persists across uvicorn reloads
    if args.no_scheduler:
        os.environ["DISABLE_SCHEDULER"] = "true"

    # Pass app object directly (not string) to avoid module reimport issues
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=args.port,
    )
