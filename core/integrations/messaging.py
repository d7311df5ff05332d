"""
Messaging gateway (Telegram bot).

`MessagingGateway` picks a backend per call from the simulation_mode setting:
the simulated backend never touches the network, the Telegram backend calls
the Bot API. Every call ends up in the automation log.
"""

import itertools
import logging
import time

import httpx

from core.automation.errors import ConfigurationError, ExternalGatewayError
from core.automation_logs import create_log
from core.config import get_telegram_api_url, get_telegram_bot_token
from core.enums import LogStatus, LogType
from core.system_settings import is_simulation_mode_enabled

logger = logging.getLogger(__name__)


class SimulatedMessagingBackend:
    """Pretends to send; returns fake message ids."""

    def __init__(self):
        self._counter = itertools.count(1)

    def _fake_id(self) -> str:
        return f"simulated_{int(time.time())}_{next(self._counter)}"

    async def send(
        self,
        chat_id: str,
        text: str,
        parse_mode: str = "HTML",
        silent: bool = False,
    ) -> dict:
        return {"message_id": self._fake_id()}

    async def get_channel_posts(self, channel_id: str, limit: int = 5) -> list[dict]:
        # Stable ids 1..limit, so already-forwarded posts are not replayed
        now = int(time.time())
        return [
            {
                "message_id": i,
                "text": f"Simulated post {i} from {channel_id}",
                "date": now - (limit - i) * 3600,
            }
            for i in range(1, limit + 1)
        ]

    async def forward(self, to_chat_id: str, from_chat_id: str, message_id: int) -> dict:
        return {"message_id": self._fake_id()}


class TelegramMessagingBackend:
    """Talks to the Telegram Bot API."""

    def __init__(
        self,
        bot_token: str | None = None,
        api_url: str | None = None,
        timeout: float = 30.0,
    ):
        self.bot_token = bot_token if bot_token is not None else get_telegram_bot_token()
        self.api_url = api_url or get_telegram_api_url()
        self.timeout = timeout

    async def _call(self, method: str, payload: dict):
        """
        POST a Bot API method and return its `result`.

        Raises:
            ExternalGatewayError: On transport errors, HTTP errors or ok=false
        """
        if not self.bot_token:
            raise ExternalGatewayError("TELEGRAM_BOT_TOKEN is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.api_url}/bot{self.bot_token}/{method}",
                    json=payload,
                )
        except httpx.HTTPError as e:
            raise ExternalGatewayError(f"Telegram request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {"description": response.text}

        if response.is_error or not data.get("ok"):
            raise ExternalGatewayError(
                f"Telegram API error {response.status_code}: "
                f"{data.get('description', 'unknown error')}",
                payload=data,
            )

        return data["result"]

    async def send(
        self,
        chat_id: str,
        text: str,
        parse_mode: str = "HTML",
        silent: bool = False,
    ) -> dict:
        result = await self._call(
            "sendMessage",
            {
                "chat_id": chat_id,
                "text": text,
                "parse_mode": parse_mode,
                "disable_notification": silent,
            },
        )
        return {"message_id": result["message_id"]}

    async def get_channel_posts(self, channel_id: str, limit: int = 5) -> list[dict]:
        """
        Recent posts of a channel the bot administers.

        The Bot API has no history endpoint; posts come from the pending
        `channel_post` updates (kept by Telegram for 24 hours). Updates are
        not acknowledged, so every forward configuration sees the same posts.
        """
        updates = await self._call(
            "getUpdates",
            {"allowed_updates": ["channel_post"], "limit": 100, "timeout": 0},
        )

        posts = []
        for update in updates:
            post = update.get("channel_post")
            if not post:
                continue
            chat = post.get("chat", {})
            if channel_id not in (str(chat.get("id")), f"@{chat.get('username')}"):
                continue
            posts.append({
                "message_id": post["message_id"],
                "text": post.get("text") or post.get("caption") or "",
                "date": post.get("date"),
            })

        posts.sort(key=lambda p: p["message_id"])
        return posts[-limit:]

    async def forward(self, to_chat_id: str, from_chat_id: str, message_id: int) -> dict:
        result = await self._call(
            "forwardMessage",
            {"chat_id": to_chat_id, "from_chat_id": from_chat_id, "message_id": message_id},
        )
        return {"message_id": result["message_id"]}


class MessagingGateway:
    """Sends and forwards Telegram messages, simulated or real depending on settings."""

    def __init__(self, real_backend=None, simulated_backend=None):
        self.real_backend = real_backend or TelegramMessagingBackend()
        self.simulated_backend = simulated_backend or SimulatedMessagingBackend()

    async def _select_backend(self):
        simulated = await is_simulation_mode_enabled()
        return (self.simulated_backend if simulated else self.real_backend), simulated

    async def _log_failure(
        self,
        e: Exception,
        log_type: LogType,
        message: str,
        details: dict,
        course_schedule_id: int | None = None,
    ) -> None:
        """Record a failed real call in the automation log."""
        payload = e.payload if isinstance(e, ExternalGatewayError) else None
        logger.error(f"{message}: {e}")
        await create_log(
            log_type,
            LogStatus.error,
            message,
            {"error": payload or str(e), **details},
            course_schedule_id,
        )

    async def send(
        self,
        channel_id: str,
        message: str,
        parse_mode: str = "HTML",
        silent: bool = False,
        course_schedule_id: int | None = None,
        log_type: LogType = LogType.telegram_message,
    ) -> dict:
        """
        Send a message to a Telegram group or channel.

        Args:
            channel_id: Telegram chat ID or @username
            message: Message text (HTML by default)
            parse_mode: "HTML" or "Markdown"
            silent: Deliver without notification sound
            course_schedule_id: Course schedule the message belongs to (for the log)
            log_type: Log type to record the outcome under (reminders use LogType.reminder)

        Returns:
            {"message_id": ..., "simulated": bool}

        Raises:
            ConfigurationError: If channel_id is empty
            ExternalGatewayError: If the real send failed (already logged)
        """
        if not channel_id:
            raise ConfigurationError("No Telegram channel configured")

        backend, simulated = await self._select_backend()
        log_details = {
            "chatId": channel_id,
            "message": message,
            "parseMode": parse_mode,
            "silent": silent,
        }

        if simulated:
            result = await backend.send(channel_id, message, parse_mode, silent)
            await create_log(
                log_type,
                LogStatus.simulated,
                f"Simulated Telegram message to {channel_id}",
                {**log_details, "messageId": result["message_id"]},
                course_schedule_id,
            )
            return {**result, "simulated": True}

        try:
            result = await backend.send(channel_id, message, parse_mode, silent)
        except Exception as e:
            await self._log_failure(
                e,
                log_type,
                f"Failed to send Telegram message to {channel_id}",
                {"chatId": channel_id},
                course_schedule_id,
            )
            if isinstance(e, ExternalGatewayError):
                raise
            raise ExternalGatewayError(f"Telegram send failed: {e}") from e

        await create_log(
            log_type,
            LogStatus.success,
            f"Telegram message sent to {channel_id}",
            {
                "chatId": channel_id,
                "messageId": result["message_id"],
                "silent": silent,
            },
            course_schedule_id,
        )
        return {**result, "simulated": False}

    async def fetch_channel_posts(self, channel_id: str, limit: int = 5) -> list[dict]:
        """
        Get the latest posts of a Telegram channel, oldest first.

        Raises:
            ConfigurationError: If channel_id is empty
            ExternalGatewayError: If the real fetch failed (already logged)
        """
        if not channel_id:
            raise ConfigurationError("No source channel configured")

        backend, simulated = await self._select_backend()

        try:
            posts = await backend.get_channel_posts(channel_id, limit)
        except Exception as e:
            await self._log_failure(
                e,
                LogType.telegram_info,
                f"Failed to fetch posts from channel {channel_id}",
                {"chatId": channel_id},
            )
            if isinstance(e, ExternalGatewayError):
                raise
            raise ExternalGatewayError(f"Telegram fetch failed: {e}") from e

        await create_log(
            LogType.telegram_info,
            LogStatus.simulated if simulated else LogStatus.success,
            f"{'Simulated fetch of' if simulated else 'Fetched'} {len(posts)} posts "
            f"from channel {channel_id}",
            {"chatId": channel_id, "messageCount": len(posts)},
        )
        return posts

    async def forward(self, from_chat_id: str, to_chat_id: str, message_id: int) -> dict:
        """
        Forward one message from a channel to a group.

        Returns:
            {"message_id": ..., "simulated": bool}

        Raises:
            ExternalGatewayError: If the real forward failed (already logged)
        """
        backend, simulated = await self._select_backend()
        details = {"messageId": message_id, "fromChatId": from_chat_id, "toChatId": to_chat_id}

        if simulated:
            result = await backend.forward(to_chat_id, from_chat_id, message_id)
            await create_log(
                LogType.telegram_message,
                LogStatus.simulated,
                f"Simulated forward of message {message_id} from {from_chat_id} to {to_chat_id}",
                details,
            )
            return {**result, "simulated": True}

        try:
            result = await backend.forward(to_chat_id, from_chat_id, message_id)
        except Exception as e:
            await self._log_failure(
                e,
                LogType.telegram_message,
                f"Failed to forward message {message_id} from {from_chat_id} to {to_chat_id}",
                details,
            )
            if isinstance(e, ExternalGatewayError):
                raise
            raise ExternalGatewayError(f"Telegram forward failed: {e}") from e

        await create_log(
            LogType.telegram_message,
            LogStatus.success,
            f"Message {message_id} forwarded from {from_chat_id} to {to_chat_id}",
            {**details, "forwardedMessageId": result["message_id"]},
        )
        return {**result, "simulated": False}
