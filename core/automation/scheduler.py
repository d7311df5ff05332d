"""
Course automation scheduler.

Owns the recurring triggers and reminder timers:

    course-messages-<day>  every weekday at the course message time (06:00):
                           ensure today's meetings, post the course message,
                           arm a reminder for each course
    meeting-creation       Sundays at 00:00: ensure next meetings for every
                           active course
    channel-forwards       hourly: forward new Telegram channel posts to the
                           configured course groups
    reminder-<schedule>    one-shot timer, lead time before class start

All state lives in a SchedulerState owned by one AutomationScheduler. Every
registration captures the current generation; reinitialize() bumps it and
removes every job, so a callback that still runs afterwards sees a stale
generation and exits without side effects.

Timers are in memory only. After a restart the next trigger re-arms them.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

import sentry_sdk
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from core.automation.errors import (
    ConfigurationError,
    ExternalGatewayError,
    SchedulerRaceError,
)
from core.automation_logs import create_log
from core.config import get_course_message_time
from core.constants import (
    CHANNEL_FORWARD_POST_LIMIT,
    CHANNEL_FORWARDS_MINUTE,
    CRON_DAY_CODES,
    DAY_NAMES,
    MEETING_CREATION_DAY,
    MEETING_CREATION_TIME,
)
from core.database import get_connection, get_transaction
from core.enums import LogStatus, LogType, Weekday
from core.notifications.templates import format_course_message, format_reminder_message
from core.queries.channel_forwards import list_channel_forwards, record_forwarded
from core.queries.schedules import get_schedule, list_active_schedules
from core.system_settings import get_reminder_minutes_before, get_timezone
from core.timezone import (
    ensure_utc,
    next_occurrence,
    parse_time_of_day,
    reminder_fire_time,
    resolve_timezone,
    weekday_name,
)

logger = logging.getLogger(__name__)

JOB_DEFAULTS = {
    "coalesce": True,  # Combine missed runs into one
    "max_instances": 1,
    "misfire_grace_time": 3600,  # Allow 1 hour late execution
}

MEETING_CREATION_JOB_ID = "meeting-creation"
CHANNEL_FORWARDS_JOB_ID = "channel-forwards"


def course_messages_job_id(day: str) -> str:
    return f"course-messages-{day}"


def reminder_job_id(schedule_id: int) -> str:
    return f"reminder-{schedule_id}"


@dataclass
class ReminderTimer:
    schedule_id: int
    fire_at: datetime
    starts_at: datetime
    job_id: str
    token: str
    generation: int


@dataclass
class SchedulerState:
    generation: int = 0
    trigger_job_ids: list[str] = field(default_factory=list)
    reminders: dict[int, ReminderTimer] = field(default_factory=dict)


def validate_schedule(schedule: dict, require_channel: bool = True) -> None:
    """
    Check a course schedule has what automation needs.

    Raises:
        ConfigurationError: Naming the first missing or invalid field
    """
    if not schedule.get("course_name"):
        raise ConfigurationError(f"Schedule {schedule['schedule_id']} has no course name")

    try:
        Weekday(schedule.get("day"))
    except ValueError:
        raise ConfigurationError(
            f"Schedule {schedule['schedule_id']} has invalid day {schedule.get('day')!r}"
        )

    try:
        parse_time_of_day(schedule.get("time"))
    except ValueError as e:
        raise ConfigurationError(f"Schedule {schedule['schedule_id']}: {e}")

    if not schedule.get("duration_minutes") or schedule["duration_minutes"] <= 0:
        raise ConfigurationError(
            f"Schedule {schedule['schedule_id']} needs a positive duration"
        )

    if require_channel and not schedule.get("telegram_group"):
        raise ConfigurationError(
            f"Schedule {schedule['schedule_id']} has no Telegram group"
        )


def meeting_topic(schedule: dict) -> str:
    return f"{schedule['course_name']} - {schedule['teacher_name']}"


class AutomationScheduler:
    """
    Background automation for course schedules.

    Args:
        messaging: MessagingGateway (send / fetch_channel_posts / forward)
        meetings: MeetingGateway (ensure_meeting / get_live_meeting)
        scheduler: APScheduler instance, defaults to an in-memory AsyncIOScheduler
        clock: Callable returning the current aware datetime
        trigger_time: (hour, minute) for the daily course messages,
            defaults to COURSE_MESSAGE_TIME
    """

    def __init__(
        self,
        messaging,
        meetings,
        scheduler: AsyncIOScheduler | None = None,
        clock=None,
        trigger_time: tuple[int, int] | None = None,
    ):
        self.messaging = messaging
        self.meetings = meetings
        self.scheduler = scheduler or AsyncIOScheduler(job_defaults=JOB_DEFAULTS)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.trigger_time = trigger_time or get_course_message_time()
        self.state = SchedulerState()
        self._lock = asyncio.Lock()

    def _now(self) -> datetime:
        return self._clock()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            print("Automation scheduler started")

    def shutdown(self) -> None:
        # In-flight callbacks must not act after shutdown either
        self.state.generation += 1
        self._teardown()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            print("Automation scheduler stopped")

    async def initialize(self) -> None:
        """Register the daily, weekly and hourly triggers, replacing any existing ones."""
        self._teardown()

        timezone_name = await get_timezone()
        tz = resolve_timezone(timezone_name)
        generation = self.state.generation
        hour, minute = self.trigger_time

        for day in DAY_NAMES:
            job_id = course_messages_job_id(day)
            self.scheduler.add_job(
                self._run_scheduled_notifications,
                trigger=CronTrigger(
                    day_of_week=CRON_DAY_CODES[day], hour=hour, minute=minute, timezone=tz
                ),
                id=job_id,
                replace_existing=True,
                kwargs={"day": day, "generation": generation},
            )
            self.state.trigger_job_ids.append(job_id)

        creation_time = parse_time_of_day(MEETING_CREATION_TIME)
        self.scheduler.add_job(
            self._run_scheduled_meeting_creation,
            trigger=CronTrigger(
                day_of_week=CRON_DAY_CODES[MEETING_CREATION_DAY],
                hour=creation_time.hour,
                minute=creation_time.minute,
                timezone=tz,
            ),
            id=MEETING_CREATION_JOB_ID,
            replace_existing=True,
            kwargs={"generation": generation},
        )
        self.state.trigger_job_ids.append(MEETING_CREATION_JOB_ID)

        self.scheduler.add_job(
            self._run_scheduled_channel_forwards,
            trigger=CronTrigger(minute=CHANNEL_FORWARDS_MINUTE, timezone=tz),
            id=CHANNEL_FORWARDS_JOB_ID,
            replace_existing=True,
            kwargs={"generation": generation},
        )
        self.state.trigger_job_ids.append(CHANNEL_FORWARDS_JOB_ID)

        logger.info(
            f"Registered {len(self.state.trigger_job_ids)} automation triggers "
            f"(generation {generation}, timezone {timezone_name}, "
            f"course messages at {hour:02d}:{minute:02d})"
        )

    async def reinitialize(self) -> dict:
        """
        Drop every trigger and timer and register fresh triggers.

        Callbacks captured before this call become no-ops.
        """
        async with self._lock:
            cancelled_reminders = len(self.state.reminders)
            self.state.generation += 1
            self._teardown()
            await self.initialize()
            generation = self.state.generation
            triggers = len(self.state.trigger_job_ids)

        logger.info(f"Scheduler reinitialized (generation {generation})")
        await create_log(
            LogType.scheduled_task,
            LogStatus.success,
            "Scheduler reinitialized",
            {
                "generation": generation,
                "triggers": triggers,
                "cancelledReminders": cancelled_reminders,
            },
        )
        return {"generation": generation, "triggers": triggers}

    def _remove_job(self, job_id: str) -> None:
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            pass

    def _teardown(self) -> None:
        for job_id in self.state.trigger_job_ids:
            self._remove_job(job_id)
        for timer in self.state.reminders.values():
            self._remove_job(timer.job_id)
        self.state.trigger_job_ids.clear()
        self.state.reminders.clear()

    def _check_generation(self, generation: int) -> None:
        if generation != self.state.generation:
            raise SchedulerRaceError(
                f"Generation {generation} superseded by {self.state.generation}"
            )

    # =========================================================================
    # Scheduled entry points (APScheduler callbacks)
    # =========================================================================

    async def _run_scheduled_notifications(self, day: str, generation: int) -> None:
        try:
            await self._process_day(day, generation)
        except SchedulerRaceError:
            logger.info(f"Course messages for {day} superseded by reinitialize, skipping")
        except Exception as e:
            logger.error(f"Scheduled course messages for {day} failed: {e}")
            sentry_sdk.capture_exception(e)
            await create_log(
                LogType.scheduled_task,
                LogStatus.error,
                f"Scheduled course messages for {day} failed",
                {"day": day, "error": str(e)},
            )

    async def _run_scheduled_meeting_creation(self, generation: int) -> None:
        try:
            await self._create_meetings(generation)
        except SchedulerRaceError:
            logger.info("Meeting creation superseded by reinitialize, skipping")
        except Exception as e:
            logger.error(f"Scheduled meeting creation failed: {e}")
            sentry_sdk.capture_exception(e)
            await create_log(
                LogType.scheduled_task,
                LogStatus.error,
                "Scheduled meeting creation failed",
                {"error": str(e)},
            )

    async def _run_scheduled_channel_forwards(self, generation: int) -> None:
        try:
            await self._forward_channels(generation)
        except SchedulerRaceError:
            logger.info("Channel forwards superseded by reinitialize, skipping")
        except Exception as e:
            logger.error(f"Scheduled channel forwards failed: {e}")
            sentry_sdk.capture_exception(e)
            await create_log(
                LogType.telegram_message,
                LogStatus.error,
                "Scheduled channel forwards failed",
                {"error": str(e)},
            )

    # =========================================================================
    # Manual runs (HTTP)
    # =========================================================================

    async def manually_run_meeting_creation(self) -> dict:
        """
        Ensure next meetings for every active course now.

        Raises:
            Exception: Batch-level failures (per-course failures are only logged)
        """
        try:
            return await self._create_meetings(self.state.generation)
        except SchedulerRaceError:
            logger.info("Manual meeting creation superseded by reinitialize")
            return {"superseded": True}
        except Exception as e:
            logger.error(f"Manual meeting creation failed: {e}")
            await create_log(
                LogType.scheduled_task,
                LogStatus.error,
                "Manual meeting creation failed",
                {"error": str(e)},
            )
            raise

    async def manually_run_notifications(self, day: str | None = None) -> dict:
        """
        Run the course messages for a weekday now.

        Args:
            day: Lowercase weekday, defaults to today in the configured timezone

        Raises:
            ValueError: If day is not a weekday name
        """
        if day is None:
            tz = resolve_timezone(await get_timezone())
            day = weekday_name(self._now(), tz)

        day = day.strip().lower()
        if day not in DAY_NAMES:
            raise ValueError(f"Invalid day: {day}")

        try:
            return await self._process_day(day, self.state.generation)
        except SchedulerRaceError:
            logger.info(f"Manual course messages for {day} superseded by reinitialize")
            return {"day": day, "superseded": True}
        except Exception as e:
            logger.error(f"Manual course messages for {day} failed: {e}")
            await create_log(
                LogType.scheduled_task,
                LogStatus.error,
                f"Manual course messages for {day} failed",
                {"day": day, "error": str(e)},
            )
            raise

    async def manually_run_channel_forwards(self) -> dict:
        """Forward new posts for every active channel forward now."""
        try:
            return await self._forward_channels(self.state.generation)
        except SchedulerRaceError:
            logger.info("Manual channel forwards superseded by reinitialize")
            return {"superseded": True}
        except Exception as e:
            logger.error(f"Manual channel forwards failed: {e}")
            await create_log(
                LogType.telegram_message,
                LogStatus.error,
                "Manual channel forwards failed",
                {"error": str(e)},
            )
            raise

    # =========================================================================
    # Batches
    # =========================================================================

    async def _process_day(self, day: str, generation: int) -> dict:
        self._check_generation(generation)
        async with get_connection() as conn:
            schedules = await list_active_schedules(conn, day)

        outcomes = {"succeeded": [], "skipped": [], "failed": []}
        for schedule in schedules:
            outcome = await self._run_isolated(
                schedule, LogType.scheduled_message, self._send_course_message, generation
            )
            outcomes[outcome].append(schedule["schedule_id"])

        succeeded = len(outcomes["succeeded"])
        summary = {
            "day": day,
            "total": len(schedules),
            "succeeded": succeeded,
            "skipped": outcomes["skipped"],
            "failed": outcomes["failed"],
        }
        self._check_generation(generation)
        await create_log(
            LogType.scheduled_task,
            LogStatus.error if outcomes["failed"] else LogStatus.success,
            f"Course messages for {day}: {succeeded}/{len(schedules)} sent",
            summary,
        )
        return summary

    async def _create_meetings(self, generation: int) -> dict:
        self._check_generation(generation)
        async with get_connection() as conn:
            schedules = await list_active_schedules(conn)

        succeeded = 0
        failed = []
        for schedule in schedules:
            outcome = await self._run_isolated(
                schedule, LogType.zoom_creation, self._ensure_next_meeting, generation
            )
            if outcome == "failed":
                failed.append(schedule["schedule_id"])
            else:
                succeeded += 1

        summary = {"total": len(schedules), "succeeded": succeeded, "failed": failed}
        self._check_generation(generation)
        await create_log(
            LogType.scheduled_task,
            LogStatus.error if failed else LogStatus.success,
            f"Meeting creation: {succeeded}/{len(schedules)} ensured",
            summary,
        )
        return summary

    async def _forward_channels(self, generation: int) -> dict:
        self._check_generation(generation)
        async with get_connection() as conn:
            configs = await list_channel_forwards(conn, active_only=True)

        forwarded = 0
        failed = []
        for config in configs:
            forward_id = config["forward_id"]
            try:
                forwarded += await self._forward_channel(config, generation)
            except SchedulerRaceError:
                raise
            except ExternalGatewayError as e:
                logger.warning(f"Gateway error for channel forward {forward_id}: {e}")
                failed.append(forward_id)
            except Exception as e:
                logger.error(f"Channel forward {forward_id} failed: {e}")
                if not isinstance(e, ConfigurationError):
                    sentry_sdk.capture_exception(e)
                await create_log(
                    LogType.telegram_message,
                    LogStatus.error,
                    f"Channel forward {forward_id} failed",
                    {"forwardId": forward_id, "error": str(e), "errorType": type(e).__name__},
                )
                failed.append(forward_id)

        summary = {"configs": len(configs), "forwarded": forwarded, "failed": failed}
        self._check_generation(generation)
        await create_log(
            LogType.telegram_message,
            LogStatus.error if failed else LogStatus.success,
            f"Channel forwards: {forwarded} messages forwarded",
            summary,
        )
        return summary

    async def _run_isolated(self, schedule: dict, log_type: LogType, action, generation: int) -> str:
        """
        Run one course's work so its failure can't affect the rest of the batch.

        Gateway errors are already in the automation log; anything else is
        logged here once.

        Returns:
            "succeeded", "skipped" (the action returned False) or "failed"
        """
        schedule_id = schedule["schedule_id"]
        try:
            result = await action(schedule, generation)
        except SchedulerRaceError:
            raise
        except ExternalGatewayError as e:
            logger.warning(f"Gateway error for schedule {schedule_id}: {e}")
            return "failed"
        except Exception as e:
            logger.error(f"Automation failed for schedule {schedule_id}: {e}")
            if not isinstance(e, ConfigurationError):
                sentry_sdk.capture_exception(e)
            await create_log(
                log_type,
                LogStatus.error,
                f"Automation failed for {schedule.get('course_name') or schedule_id}",
                {"error": str(e), "errorType": type(e).__name__},
                schedule_id,
            )
            return "failed"
        return "skipped" if result is False else "succeeded"

    # =========================================================================
    # Per-course work
    # =========================================================================

    async def _next_start(self, schedule: dict) -> tuple[datetime, str]:
        timezone_name = await get_timezone()
        tz = resolve_timezone(timezone_name)
        starts_at = next_occurrence(
            Weekday(schedule["day"]).value,
            parse_time_of_day(schedule["time"]),
            tz,
            self._now(),
        )
        return starts_at, timezone_name

    async def _ensure_next_meeting(self, schedule: dict, generation: int) -> dict:
        validate_schedule(schedule, require_channel=False)
        starts_at, _ = await self._next_start(schedule)

        self._check_generation(generation)
        return await self.meetings.ensure_meeting(
            schedule["schedule_id"],
            meeting_topic(schedule),
            starts_at,
            schedule["duration_minutes"],
            schedule.get("zoom_host_email") or "",
        )

    async def _send_course_message(self, schedule: dict, generation: int) -> bool:
        """
        Ensure the meeting, post the course message and arm the reminder.

        Returns:
            False if today's class has already started (nothing is sent)
        """
        validate_schedule(schedule)
        schedule_id = schedule["schedule_id"]
        starts_at, timezone_name = await self._next_start(schedule)

        local_now = self._now().astimezone(resolve_timezone(timezone_name))
        today = DAY_NAMES[local_now.weekday()]
        if today == Weekday(schedule["day"]).value and starts_at.date() != local_now.date():
            logger.info(
                f"Class for schedule {schedule_id} already started today, "
                f"not sending next week's link"
            )
            return False

        self._check_generation(generation)
        meeting = await self.meetings.ensure_meeting(
            schedule_id,
            meeting_topic(schedule),
            starts_at,
            schedule["duration_minutes"],
            schedule.get("zoom_host_email") or "",
        )

        self._check_generation(generation)
        await self.messaging.send(
            schedule["telegram_group"],
            format_course_message(schedule, meeting["join_url"], timezone_name),
            course_schedule_id=schedule_id,
            log_type=LogType.scheduled_message,
        )

        self._check_generation(generation)
        await self.arm_reminder(schedule_id, starts_at, generation)
        return True

    async def _forward_channel(self, config: dict, generation: int) -> int:
        """
        Forward a channel's posts newer than the last forwarded one.

        Returns:
            Number of messages forwarded
        """
        source = config["source_channel_id"]
        last_id = config["last_forwarded_message_id"] or 0

        self._check_generation(generation)
        posts = await self.messaging.fetch_channel_posts(source, CHANNEL_FORWARD_POST_LIMIT)
        new_posts = sorted(
            (p for p in posts if p["message_id"] > last_id),
            key=lambda p: p["message_id"],
        )

        forwarded = 0
        try:
            for post in new_posts:
                self._check_generation(generation)
                await self.messaging.forward(source, config["target_group_id"], post["message_id"])
                last_id = post["message_id"]
                forwarded += 1
        finally:
            # Keep progress of partial runs so nothing is forwarded twice
            if forwarded:
                async with get_transaction() as conn:
                    await record_forwarded(
                        conn, config["forward_id"], last_id, ensure_utc(self._now())
                    )
        return forwarded

    # =========================================================================
    # Reminders
    # =========================================================================

    async def arm_reminder(
        self,
        schedule_id: int,
        starts_at: datetime,
        generation: int | None = None,
    ) -> ReminderTimer | None:
        """
        Arm the reminder for a class, replacing any armed one for the schedule.

        Returns:
            The armed timer, or None if the fire time has already passed
        """
        if generation is None:
            generation = self.state.generation
        self._check_generation(generation)

        minutes = await get_reminder_minutes_before()
        fire_at = reminder_fire_time(starts_at, minutes)
        if fire_at <= self._now():
            logger.info(
                f"Reminder for schedule {schedule_id} would fire at {fire_at}, "
                f"already past; not arming"
            )
            return None

        # reinitialize() may have run while the lead time was being read
        self._check_generation(generation)
        self.cancel_reminder(schedule_id)

        job_id = reminder_job_id(schedule_id)
        token = uuid.uuid4().hex
        self.scheduler.add_job(
            self._fire_reminder,
            trigger=DateTrigger(run_date=fire_at),
            id=job_id,
            replace_existing=True,
            kwargs={"schedule_id": schedule_id, "generation": generation, "token": token},
        )

        timer = ReminderTimer(
            schedule_id=schedule_id,
            fire_at=fire_at,
            starts_at=starts_at,
            job_id=job_id,
            token=token,
            generation=generation,
        )
        self.state.reminders[schedule_id] = timer
        logger.info(f"Armed reminder for schedule {schedule_id} at {fire_at}")
        return timer

    def cancel_reminder(self, schedule_id: int) -> bool:
        timer = self.state.reminders.pop(schedule_id, None)
        if timer is None:
            return False
        self._remove_job(timer.job_id)
        return True

    async def _fire_reminder(self, schedule_id: int, generation: int, token: str) -> None:
        try:
            self._check_generation(generation)
            timer = self.state.reminders.get(schedule_id)
            if timer is None or timer.token != token:
                raise SchedulerRaceError(f"Reminder for schedule {schedule_id} was re-armed")
            await self._send_reminder(timer)
        except SchedulerRaceError as e:
            logger.info(f"Stale reminder for schedule {schedule_id} ignored: {e}")
        except ExternalGatewayError as e:
            logger.warning(f"Reminder for schedule {schedule_id} failed: {e}")
        except Exception as e:
            logger.error(f"Reminder for schedule {schedule_id} failed: {e}")
            sentry_sdk.capture_exception(e)
            await create_log(
                LogType.reminder,
                LogStatus.error,
                f"Reminder for schedule {schedule_id} failed",
                {"error": str(e), "errorType": type(e).__name__},
                schedule_id,
            )
        finally:
            timer = self.state.reminders.get(schedule_id)
            if timer is not None and timer.token == token:
                del self.state.reminders[schedule_id]

    async def _send_reminder(self, timer: ReminderTimer) -> None:
        schedule_id = timer.schedule_id
        async with get_connection() as conn:
            schedule = await get_schedule(conn, schedule_id)

        if schedule is None or not schedule["is_active"]:
            logger.info(f"Schedule {schedule_id} removed or inactive, skipping reminder")
            return
        if self._now() >= timer.starts_at:
            logger.info(f"Class for schedule {schedule_id} already started, skipping reminder")
            return

        validate_schedule(schedule)
        timezone_name = await get_timezone()

        meeting = await self.meetings.get_live_meeting(schedule_id)
        if meeting is None:
            self._check_generation(timer.generation)
            meeting = await self.meetings.ensure_meeting(
                schedule_id,
                meeting_topic(schedule),
                timer.starts_at,
                schedule["duration_minutes"],
                schedule.get("zoom_host_email") or "",
            )

        minutes = await get_reminder_minutes_before()
        self._check_generation(timer.generation)
        await self.messaging.send(
            schedule["telegram_group"],
            format_reminder_message(schedule, meeting["join_url"], timezone_name, minutes),
            course_schedule_id=schedule_id,
            log_type=LogType.reminder,
        )

    # =========================================================================
    # Status
    # =========================================================================

    def get_status(self) -> dict:
        triggers = []
        for job_id in self.state.trigger_job_ids:
            job = self.scheduler.get_job(job_id)
            triggers.append({
                "id": job_id,
                "next_run_time": getattr(job, "next_run_time", None) if job else None,
            })

        return {
            "running": self.scheduler.running,
            "generation": self.state.generation,
            "triggers": triggers,
            "reminders": [
                {
                    "schedule_id": timer.schedule_id,
                    "job_id": timer.job_id,
                    "fire_at": timer.fire_at,
                    "starts_at": timer.starts_at,
                }
                for timer in self.state.reminders.values()
            ],
        }
