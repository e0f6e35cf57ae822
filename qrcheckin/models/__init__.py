"""
Database models package.
"""

from .attendee import Attendee
from .authorization import AttendeeEvent
from .checkin import CheckinRecord
from .event import Event

__all__ = [
    "Attendee",
    "AttendeeEvent",
    "CheckinRecord",
    "Event",
]
