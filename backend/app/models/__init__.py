from app.models.action_item import ActionItem
from app.models.base import Base
from app.models.calendar_event import CalendarConnection, CalendarEvent
from app.models.session import RecordingSession
from app.models.summary import Summary

__all__ = [
    "Base",
    "RecordingSession",
    "Summary",
    "ActionItem",
    "CalendarConnection",
    "CalendarEvent",
]
