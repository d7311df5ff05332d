"""Root pytest configuration."""

from pathlib import Path

import pytest
import pytest_asyncio
from dotenv import load_dotenv

# Load environment variables before tests run
_root = Path(__file__).parent
load_dotenv(_root / ".env")
load_dotenv(_root / ".env.local", override=True)


@pytest.fixture(scope="session")
def event_loop_policy():
    """Use default event loop policy for all async tests."""
    import asyncio

    return asyncio.DefaultEventLoopPolicy()


@pytest_asyncio.fixture
async def db(monkeypatch):
    """
    Fresh in-memory SQLite database with tables and default settings.

    Every test gets its own engine, so nothing leaks between tests.
    """
    from core.database import close_engine, create_tables
    from core.system_settings import ensure_default_settings

    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite://")
    await close_engine()
    await create_tables()
    await ensure_default_settings()

    yield

    await close_engine()


@pytest_asyncio.fixture
async def schedule_factory(db):
    """Create course schedules: `await schedule_factory(course_name=..., ...)`."""
    from core.database import get_transaction
    from core.queries.schedules import create_schedule

    async def _create(**overrides) -> int:
        values = {
            "course_name": "Anglais B1",
            "level": "b1",
            "teacher_name": "Mme Koné",
            "day": "monday",
            "time": "20:00",
            "duration_minutes": 60,
            "telegram_group": "-1001234567890",
            "zoom_host_email": "teacher@example.com",
        }
        values.update(overrides)
        async with get_transaction() as conn:
            return await create_schedule(conn, **values)

    return _create
