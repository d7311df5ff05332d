"""Exceptions raised by the automation engine and its gateways."""


class AutomationError(Exception):
    """Base exception for automation errors."""
    pass


class ConfigurationError(AutomationError):
    """A course schedule is missing fields required to automate it."""
    pass


class ExternalGatewayError(AutomationError):
    """
    An upstream API (Telegram, Zoom) call failed.

    The gateway has already written an error entry to the automation log;
    `payload` carries the upstream error body when one was returned.
    """

    def __init__(self, message: str, payload=None):
        super().__init__(message)
        self.payload = payload


class DuplicateResourceError(AutomationError):
    """
    A live meeting already exists for the course schedule.

    Not a failure: callers return `meeting` instead of creating another one.
    """

    def __init__(self, meeting: dict):
        super().__init__(
            f"Course schedule {meeting['course_schedule_id']} already has "
            f"live meeting {meeting['meeting_id']}"
        )
        self.meeting = meeting


class SchedulerRaceError(AutomationError):
    """A callback was superseded by a scheduler reinitialization."""
    pass
