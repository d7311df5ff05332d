# web_api/tests/test_settings_routes.py
"""Tests for the /settings endpoints.

Tests cover:
- Listing and reading settings
- 404 for unknown keys, 400 for invalid values
- Switching simulation_mode reinitializes the scheduler
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from main import app
from web_api.dependencies import get_optional_scheduler


def _setting(key, value):
    return {"setting_id": 1, "key": key, "value": value, "description": None}


class TestGetSettings:
    def test_lists_settings(self, client):
        settings = [_setting("simulation_mode", "true"), _setting("timezone", "GMT")]
        with patch(
            "web_api.routes.settings.get_all_settings",
            new_callable=AsyncMock,
            return_value=settings,
        ):
            response = client.get("/settings")

        assert response.status_code == 200
        assert response.json() == {"settings": settings}

    def test_get_one(self, client):
        with patch(
            "web_api.routes.settings.get_setting",
            new_callable=AsyncMock,
            return_value=_setting("timezone", "GMT"),
        ):
            response = client.get("/settings/timezone")

        assert response.status_code == 200
        assert response.json()["value"] == "GMT"

    def test_unknown_key_404(self, client):
        with patch(
            "web_api.routes.settings.get_setting",
            new_callable=AsyncMock,
            return_value=None,
        ):
            response = client.get("/settings/nope")

        assert response.status_code == 404


class TestUpdateSetting:
    def test_simulation_toggle_reinitializes(self, client, mock_scheduler):
        with patch(
            "web_api.routes.settings.get_setting",
            new_callable=AsyncMock,
            return_value=_setting("simulation_mode", "true"),
        ), patch(
            "web_api.routes.settings.update_setting",
            new_callable=AsyncMock,
            return_value=_setting("simulation_mode", "false"),
        ) as mock_update:
            response = client.put("/settings/simulation_mode", json={"value": "false"})

        assert response.status_code == 200
        assert response.json()["value"] == "false"
        mock_update.assert_awaited_once_with("simulation_mode", "false")
        mock_scheduler.reinitialize.assert_awaited_once()

    def test_timezone_change_reinitializes(self, client, mock_scheduler):
        """Cron triggers are registered in the configured zone."""
        with patch(
            "web_api.routes.settings.get_setting",
            new_callable=AsyncMock,
            return_value=_setting("timezone", "GMT"),
        ), patch(
            "web_api.routes.settings.update_setting",
            new_callable=AsyncMock,
            return_value=_setting("timezone", "Africa/Abidjan"),
        ) as mock_update:
            response = client.put("/settings/timezone", json={"value": "Africa/Abidjan"})

        assert response.status_code == 200
        mock_update.assert_awaited_once_with("timezone", "Africa/Abidjan")
        mock_scheduler.reinitialize.assert_awaited_once()

    def test_other_keys_do_not_reinitialize(self, client, mock_scheduler):
        with patch(
            "web_api.routes.settings.get_setting",
            new_callable=AsyncMock,
            return_value=_setting("reminder_minutes_before", "30"),
        ), patch(
            "web_api.routes.settings.update_setting",
            new_callable=AsyncMock,
            return_value=_setting("reminder_minutes_before", "15"),
        ):
            response = client.put("/settings/reminder_minutes_before", json={"value": "15"})

        assert response.status_code == 200
        mock_scheduler.reinitialize.assert_not_awaited()

    def test_invalid_value_400(self, client, mock_scheduler):
        with patch(
            "web_api.routes.settings.get_setting",
            new_callable=AsyncMock,
            return_value=_setting("simulation_mode", "true"),
        ), patch(
            "web_api.routes.settings.update_setting",
            new_callable=AsyncMock,
        ) as mock_update:
            response = client.put("/settings/simulation_mode", json={"value": "maybe"})

        assert response.status_code == 400
        mock_update.assert_not_awaited()
        mock_scheduler.reinitialize.assert_not_awaited()

    def test_missing_key_404(self, client):
        with patch(
            "web_api.routes.settings.get_setting",
            new_callable=AsyncMock,
            return_value=None,
        ):
            response = client.put("/settings/nope", json={"value": "x"})

        assert response.status_code == 404

    def test_missing_body_422(self, client):
        response = client.put("/settings/simulation_mode", json={})
        assert response.status_code == 422

    def test_toggle_without_scheduler(self):
        """With --no-scheduler the setting is still saved."""
        app.dependency_overrides[get_optional_scheduler] = lambda: None
        try:
            with patch(
                "web_api.routes.settings.get_setting",
                new_callable=AsyncMock,
                return_value=_setting("simulation_mode", "true"),
            ), patch(
                "web_api.routes.settings.update_setting",
                new_callable=AsyncMock,
                return_value=_setting("simulation_mode", "false"),
            ):
                response = TestClient(app).put(
                    "/settings/simulation_mode", json={"value": "false"}
                )
        finally:
            app.dependency_overrides.pop(get_optional_scheduler, None)

        assert response.status_code == 200
