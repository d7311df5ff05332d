# web_api/tests/conftest.py
"""Pytest fixtures for web API tests.

Routes get a mocked AutomationScheduler through dependency overrides, so
tests exercise request handling without starting APScheduler.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

# Ensure we import from root main.py
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from main import app
from web_api.dependencies import get_automation_scheduler, get_optional_scheduler


@pytest.fixture
def mock_scheduler():
    """A stand-in AutomationScheduler with async operations mocked."""
    scheduler = MagicMock()
    scheduler.reinitialize = AsyncMock(return_value={"generation": 1, "triggers": 9})
    scheduler.manually_run_meeting_creation = AsyncMock(
        return_value={"total": 2, "succeeded": 2, "failed": []}
    )
    scheduler.manually_run_notifications = AsyncMock(
        return_value={"day": "monday", "total": 1, "succeeded": 1, "failed": []}
    )
    scheduler.manually_run_channel_forwards = AsyncMock(
        return_value={"configs": 1, "forwarded": 2, "failed": []}
    )
    scheduler.get_status.return_value = {
        "running": True,
        "generation": 0,
        "triggers": [],
        "reminders": [],
    }
    return scheduler


@pytest.fixture
def client(mock_scheduler):
    """Test client with the scheduler dependency overridden."""
    app.dependency_overrides[get_automation_scheduler] = lambda: mock_scheduler
    app.dependency_overrides[get_optional_scheduler] = lambda: mock_scheduler
    yield TestClient(app)
    app.dependency_overrides.pop(get_automation_scheduler, None)
    app.dependency_overrides.pop(get_optional_scheduler, None)
