"""External gateways: Telegram messaging and Zoom meetings."""

from .meetings import MeetingGateway, SimulatedMeetingBackend, ZoomMeetingBackend
from .messaging import (
    MessagingGateway,
    SimulatedMessagingBackend,
    TelegramMessagingBackend,
)
from .zoom_oauth import ZoomOAuthClient

__all__ = [
    "MeetingGateway",
    "MessagingGateway",
    "SimulatedMeetingBackend",
    "SimulatedMessagingBackend",
    "TelegramMessagingBackend",
    "ZoomMeetingBackend",
    "ZoomOAuthClient",
]
