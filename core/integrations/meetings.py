"""
Meeting gateway (Zoom).

`MeetingGateway.ensure_meeting()` guarantees at most one live meeting per
course schedule. Creation goes to the simulated backend or to Zoom depending
on the simulation_mode setting, and every attempt is written to the
automation log.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import httpx
from sqlalchemy.exc import IntegrityError

from core.automation.errors import DuplicateResourceError, ExternalGatewayError
from core.automation_logs import create_log
from core.database import get_connection, get_transaction
from core.enums import LogStatus, LogType
from core.queries.meetings import (
    complete_past_meetings,
    get_live_meeting,
    insert_meeting,
    list_meetings,
)
from core.system_settings import get_timezone, is_simulation_mode_enabled
from core.timezone import ensure_utc

from .zoom_oauth import ZoomOAuthClient

logger = logging.getLogger(__name__)


class SimulatedMeetingBackend:
    """Returns a deterministic fake meeting without calling Zoom."""

    async def create_meeting(
        self,
        schedule_id: int,
        topic: str,
        start_time: datetime,
        duration_minutes: int,
        timezone_name: str,
        host_email: str = "",
    ) -> dict:
        meeting_id = f"simulated_{schedule_id}_{int(start_time.timestamp())}"
        return {"id": meeting_id, "join_url": f"https://zoom.us/j/{meeting_id}"}


class ZoomMeetingBackend:
    """Creates scheduled meetings through the Zoom REST API."""

    def __init__(self, oauth: ZoomOAuthClient | None = None):
        self.oauth = oauth or ZoomOAuthClient()

    async def resolve_host(self, host_email: str) -> str:
        """
        Find the Zoom user ID for a host email.

        Falls back to "me" (the account owner) when no email is given or the
        lookup fails.
        """
        if not host_email:
            return "me"

        try:
            data = await self.oauth.request("GET", f"/users/{host_email}")
        except httpx.HTTPError as e:
            logger.warning(f"Zoom user {host_email} not found, using account owner: {e}")
            return "me"

        return data.get("id") or "me"

    async def create_meeting(
        self,
        schedule_id: int,
        topic: str,
        start_time: datetime,
        duration_minutes: int,
        timezone_name: str,
        host_email: str = "",
    ) -> dict:
        """
        Create a scheduled (type 2) Zoom meeting.

        Raises:
            ExternalGatewayError: On missing credentials or API errors
        """
        user_id = await self.resolve_host(host_email)

        try:
            data = await self.oauth.request(
                "POST",
                f"/users/{user_id}/meetings",
                json={
                    "topic": topic,
                    "type": 2,
                    "start_time": ensure_utc(start_time).strftime("%Y-%m-%dT%H:%M:%SZ"),
                    "duration": duration_minutes,
                    "timezone": timezone_name,
                    "settings": {
                        "host_video": True,
                        "participant_video": True,
                        "join_before_host": True,
                        "mute_upon_entry": True,
                        "auto_recording": "none",
                    },
                },
            )
        except httpx.HTTPStatusError as e:
            try:
                payload = e.response.json()
            except ValueError:
                payload = e.response.text
            raise ExternalGatewayError(
                f"Zoom API error {e.response.status_code}", payload=payload
            ) from e
        except httpx.HTTPError as e:
            raise ExternalGatewayError(f"Zoom request failed: {e}") from e

        return {"id": str(data["id"]), "join_url": data["join_url"]}


class MeetingGateway:
    """Idempotent meeting creation, simulated or real depending on settings."""

    def __init__(self, real_backend=None, simulated_backend=None, clock=None):
        self.real_backend = real_backend or ZoomMeetingBackend()
        self.simulated_backend = simulated_backend or SimulatedMeetingBackend()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._locks: dict[int, asyncio.Lock] = {}

    def _lock_for(self, schedule_id: int) -> asyncio.Lock:
        if schedule_id not in self._locks:
            self._locks[schedule_id] = asyncio.Lock()
        return self._locks[schedule_id]

    async def ensure_meeting(
        self,
        schedule_id: int,
        topic: str,
        start_time: datetime,
        duration_minutes: int,
        host_email: str = "",
    ) -> dict:
        """
        Get the live meeting for a schedule, creating it if there is none.

        Meetings that already ended are marked completed first, so each
        weekly occurrence gets its own meeting.

        Args:
            schedule_id: Course schedule the meeting belongs to
            topic: Meeting title
            start_time: Timezone-aware start of the occurrence
            duration_minutes: Meeting length
            host_email: Zoom host (real backend only)

        Returns:
            The zoom_meetings row

        Raises:
            ExternalGatewayError: If the backend failed (already logged)
        """
        async with self._lock_for(schedule_id):
            async with get_transaction() as conn:
                await complete_past_meetings(conn, schedule_id, ensure_utc(self._clock()))
                live = await get_live_meeting(conn, schedule_id)
            if live:
                return live

            created = await self._create(
                schedule_id, topic, start_time, duration_minutes, host_email
            )

            start_utc = ensure_utc(start_time)
            try:
                async with get_transaction() as conn:
                    meeting = await insert_meeting(
                        conn,
                        course_schedule_id=schedule_id,
                        zoom_meeting_id=created["id"],
                        join_url=created["join_url"],
                        start_time=start_utc,
                        end_time=start_utc + timedelta(minutes=duration_minutes),
                        created_at=ensure_utc(self._clock()),
                    )
            except DuplicateResourceError as e:
                return e.meeting
            except IntegrityError:
                # Another process inserted between our check and insert
                async with get_connection() as conn:
                    live = await get_live_meeting(conn, schedule_id)
                if live is None:
                    raise
                return live

        logger.info(
            f"Created meeting {meeting['zoom_meeting_id']} for schedule {schedule_id}"
        )
        return meeting

    async def _create(
        self,
        schedule_id: int,
        topic: str,
        start_time: datetime,
        duration_minutes: int,
        host_email: str,
    ) -> dict:
        simulated = await is_simulation_mode_enabled()
        timezone_name = await get_timezone()
        params = {
            "topic": topic,
            "startTime": start_time.isoformat(),
            "duration": duration_minutes,
            "timezone": timezone_name,
            "hostEmail": host_email,
        }

        if simulated:
            created = await self.simulated_backend.create_meeting(
                schedule_id, topic, start_time, duration_minutes, timezone_name, host_email
            )
            await create_log(
                LogType.zoom_creation,
                LogStatus.simulated,
                f"Simulated Zoom meeting: {topic}",
                {**params, "meetingId": created["id"], "joinUrl": created["join_url"]},
                schedule_id,
            )
            return created

        try:
            created = await self.real_backend.create_meeting(
                schedule_id, topic, start_time, duration_minutes, timezone_name, host_email
            )
        except Exception as e:
            payload = e.payload if isinstance(e, ExternalGatewayError) else None
            logger.error(f"Failed to create Zoom meeting for schedule {schedule_id}: {e}")
            await create_log(
                LogType.zoom_creation,
                LogStatus.error,
                f"Failed to create Zoom meeting: {topic}",
                {"error": payload or str(e), "params": params},
                schedule_id,
            )
            if isinstance(e, ExternalGatewayError):
                raise
            raise ExternalGatewayError(f"Zoom meeting creation failed: {e}") from e

        await create_log(
            LogType.zoom_creation,
            LogStatus.success,
            f"Zoom meeting created: {topic}",
            {"meetingId": created["id"], "joinUrl": created["join_url"], "params": params},
            schedule_id,
        )
        return created

    async def get_live_meeting(self, schedule_id: int) -> dict | None:
        async with get_connection() as conn:
            return await get_live_meeting(conn, schedule_id)

    async def list_meetings(self, schedule_id: int | None = None) -> list[dict]:
        async with get_connection() as conn:
            return await list_meetings(conn, schedule_id)
