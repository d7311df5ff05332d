"""Tests for the Telegram messaging gateway."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from core.automation.errors import ConfigurationError, ExternalGatewayError
from core.automation_logs import list_logs
from core.enums import LogStatus, LogType
from core.integrations.messaging import MessagingGateway, TelegramMessagingBackend
from core.system_settings import update_setting


def _telegram_response(status_code: int, body: dict) -> httpx.Response:
    return httpx.Response(
        status_code,
        json=body,
        request=httpx.Request("POST", "https://api.telegram.org/botTOKEN/sendMessage"),
    )


@pytest.fixture
def real_backend():
    backend = AsyncMock()
    backend.send.return_value = {"message_id": 42}
    return backend


class TestSimulatedSend:
    @pytest.mark.asyncio
    async def test_never_calls_real_backend(self, db, real_backend):
        gateway = MessagingGateway(real_backend=real_backend)

        result = await gateway.send("-100123", "<b>Hello</b>", course_schedule_id=None)

        assert result["simulated"] is True
        assert result["message_id"].startswith("simulated_")
        real_backend.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_logs_simulated_entry(self, db, real_backend):
        gateway = MessagingGateway(real_backend=real_backend)

        await gateway.send("-100123", "Hello", log_type=LogType.reminder)

        logs = await list_logs(log_type=LogType.reminder)
        assert len(logs) == 1
        assert logs[0]["status"] == LogStatus.simulated
        assert logs[0]["details"]["chatId"] == "-100123"

    @pytest.mark.asyncio
    async def test_empty_channel_is_configuration_error(self, db, real_backend):
        gateway = MessagingGateway(real_backend=real_backend)

        with pytest.raises(ConfigurationError):
            await gateway.send("", "Hello")

        assert await list_logs() == []


class TestRealSend:
    @pytest.mark.asyncio
    async def test_success_logged_with_message_id(self, db, real_backend):
        await update_setting("simulation_mode", "false")
        gateway = MessagingGateway(real_backend=real_backend)

        result = await gateway.send("-100123", "Hello", course_schedule_id=None)

        assert result == {"message_id": 42, "simulated": False}
        real_backend.send.assert_awaited_once_with("-100123", "Hello", "HTML", False)
        logs = await list_logs(log_type=LogType.telegram_message)
        assert logs[0]["status"] == LogStatus.success
        assert logs[0]["details"]["messageId"] == 42

    @pytest.mark.asyncio
    async def test_failure_logged_once_and_raised(self, db, real_backend):
        await update_setting("simulation_mode", "false")
        real_backend.send.side_effect = ExternalGatewayError(
            "Telegram API error 400", payload={"description": "chat not found"}
        )
        gateway = MessagingGateway(real_backend=real_backend)

        with pytest.raises(ExternalGatewayError):
            await gateway.send("-100123", "Hello")

        logs = await list_logs(status=LogStatus.error)
        assert len(logs) == 1
        assert logs[0]["details"]["error"] == {"description": "chat not found"}

    @pytest.mark.asyncio
    async def test_unexpected_backend_error_becomes_gateway_error(self, db, real_backend):
        await update_setting("simulation_mode", "false")
        real_backend.send.side_effect = RuntimeError("boom")
        gateway = MessagingGateway(real_backend=real_backend)

        with pytest.raises(ExternalGatewayError):
            await gateway.send("-100123", "Hello")


class TestTelegramBackend:
    @pytest.mark.asyncio
    async def test_posts_send_message(self):
        backend = TelegramMessagingBackend(bot_token="TOKEN", api_url="https://api.telegram.org")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.__aenter__.return_value = mock_client
            mock_client.__aexit__.return_value = None
            mock_client.post.return_value = _telegram_response(
                200, {"ok": True, "result": {"message_id": 7}}
            )
            mock_client_class.return_value = mock_client

            result = await backend.send("-100123", "<b>Hi</b>", silent=True)

        assert result == {"message_id": 7}
        url = mock_client.post.call_args[0][0]
        assert url == "https://api.telegram.org/botTOKEN/sendMessage"
        body = mock_client.post.call_args[1]["json"]
        assert body == {
            "chat_id": "-100123",
            "text": "<b>Hi</b>",
            "parse_mode": "HTML",
            "disable_notification": True,
        }

    @pytest.mark.asyncio
    async def test_api_error_carries_payload(self):
        backend = TelegramMessagingBackend(bot_token="TOKEN")
        error_body = {"ok": False, "error_code": 400, "description": "Bad Request: chat not found"}

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.__aenter__.return_value = mock_client
            mock_client.__aexit__.return_value = None
            mock_client.post.return_value = _telegram_response(400, error_body)
            mock_client_class.return_value = mock_client

            with pytest.raises(ExternalGatewayError) as exc_info:
                await backend.send("-100123", "Hi")

        assert exc_info.value.payload == error_body

    @pytest.mark.asyncio
    async def test_transport_error(self):
        backend = TelegramMessagingBackend(bot_token="TOKEN")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.__aenter__.return_value = mock_client
            mock_client.__aexit__.return_value = None
            mock_client.post.side_effect = httpx.ConnectError("unreachable")
            mock_client_class.return_value = mock_client

            with pytest.raises(ExternalGatewayError):
                await backend.send("-100123", "Hi")

    @pytest.mark.asyncio
    async def test_missing_token(self):
        backend = TelegramMessagingBackend(bot_token="")

        with pytest.raises(ExternalGatewayError):
            await backend.send("-100123", "Hi")

    @pytest.mark.asyncio
    async def test_posts_forward_message(self):
        backend = TelegramMessagingBackend(bot_token="TOKEN", api_url="https://api.telegram.org")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.__aenter__.return_value = mock_client
            mock_client.__aexit__.return_value = None
            mock_client.post.return_value = _telegram_response(
                200, {"ok": True, "result": {"message_id": 99}}
            )
            mock_client_class.return_value = mock_client

            result = await backend.forward("-100123", "@ecole_annonces", 12)

        assert result == {"message_id": 99}
        url = mock_client.post.call_args[0][0]
        assert url == "https://api.telegram.org/botTOKEN/forwardMessage"
        assert mock_client.post.call_args[1]["json"] == {
            "chat_id": "-100123",
            "from_chat_id": "@ecole_annonces",
            "message_id": 12,
        }

    @pytest.mark.asyncio
    async def test_channel_posts_filtered_from_updates(self):
        backend = TelegramMessagingBackend(bot_token="TOKEN")
        updates = [
            {"update_id": 1, "channel_post": {
                "message_id": 8, "date": 100, "text": "other channel",
                "chat": {"id": -100999, "username": "autre"},
            }},
            {"update_id": 2, "message": {"message_id": 3, "chat": {"id": -100777}}},
            {"update_id": 3, "channel_post": {
                "message_id": 21, "date": 300, "caption": "photo",
                "chat": {"id": -100777, "username": "ecole_annonces"},
            }},
            {"update_id": 4, "channel_post": {
                "message_id": 20, "date": 200, "text": "first",
                "chat": {"id": -100777, "username": "ecole_annonces"},
            }},
            {"update_id": 5, "channel_post": {
                "message_id": 22, "date": 400, "text": "latest",
                "chat": {"id": -100777, "username": "ecole_annonces"},
            }},
        ]

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.__aenter__.return_value = mock_client
            mock_client.__aexit__.return_value = None
            mock_client.post.return_value = _telegram_response(200, {"ok": True, "result": updates})
            mock_client_class.return_value = mock_client

            by_username = await backend.get_channel_posts("@ecole_annonces", limit=2)
            by_id = await backend.get_channel_posts("-100777")

        assert [p["message_id"] for p in by_username] == [21, 22]
        assert by_username[0]["text"] == "photo"
        assert [p["message_id"] for p in by_id] == [20, 21, 22]
        assert mock_client.post.call_args[0][0].endswith("/getUpdates")
        assert mock_client.post.call_args[1]["json"]["allowed_updates"] == ["channel_post"]


class TestChannelPosts:
    @pytest.mark.asyncio
    async def test_simulated_fetch_is_logged(self, db, real_backend):
        gateway = MessagingGateway(real_backend=real_backend)

        posts = await gateway.fetch_channel_posts("@ecole_annonces", limit=3)

        assert [p["message_id"] for p in posts] == [1, 2, 3]
        real_backend.get_channel_posts.assert_not_called()
        [entry] = await list_logs(log_type=LogType.telegram_info)
        assert entry["status"] == LogStatus.simulated
        assert entry["details"] == {"chatId": "@ecole_annonces", "messageCount": 3}

    @pytest.mark.asyncio
    async def test_empty_channel_is_configuration_error(self, db, real_backend):
        gateway = MessagingGateway(real_backend=real_backend)

        with pytest.raises(ConfigurationError):
            await gateway.fetch_channel_posts("")

    @pytest.mark.asyncio
    async def test_real_fetch_failure_logged(self, db, real_backend):
        await update_setting("simulation_mode", "false")
        real_backend.get_channel_posts.side_effect = ExternalGatewayError("Telegram API error 409")
        gateway = MessagingGateway(real_backend=real_backend)

        with pytest.raises(ExternalGatewayError):
            await gateway.fetch_channel_posts("@ecole_annonces")

        [entry] = await list_logs(log_type=LogType.telegram_info)
        assert entry["status"] == LogStatus.error


class TestForward:
    @pytest.mark.asyncio
    async def test_simulated_forward(self, db, real_backend):
        gateway = MessagingGateway(real_backend=real_backend)

        result = await gateway.forward("@ecole_annonces", "-100123", 4)

        assert result["simulated"] is True
        real_backend.forward.assert_not_called()
        [entry] = await list_logs(log_type=LogType.telegram_message)
        assert entry["status"] == LogStatus.simulated
        assert entry["details"]["messageId"] == 4

    @pytest.mark.asyncio
    async def test_real_forward_logged_with_new_message_id(self, db, real_backend):
        await update_setting("simulation_mode", "false")
        real_backend.forward.return_value = {"message_id": 501}
        gateway = MessagingGateway(real_backend=real_backend)

        result = await gateway.forward("@ecole_annonces", "-100123", 4)

        assert result == {"message_id": 501, "simulated": False}
        real_backend.forward.assert_awaited_once_with("-100123", "@ecole_annonces", 4)
        [entry] = await list_logs(log_type=LogType.telegram_message)
        assert entry["status"] == LogStatus.success
        assert entry["details"] == {
            "messageId": 4,
            "fromChatId": "@ecole_annonces",
            "toChatId": "-100123",
            "forwardedMessageId": 501,
        }

    @pytest.mark.asyncio
    async def test_real_forward_failure_logged_once(self, db, real_backend):
        await update_setting("simulation_mode", "false")
        real_backend.forward.side_effect = RuntimeError("boom")
        gateway = MessagingGateway(real_backend=real_backend)

        with pytest.raises(ExternalGatewayError):
            await gateway.forward("@ecole_annonces", "-100123", 4)

        [entry] = await list_logs(status=LogStatus.error)
        assert entry["details"]["error"] == "boom"
