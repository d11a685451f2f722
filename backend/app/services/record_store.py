"""Record stores queried by the strategy executor.

A store only applies the coarse filters every backend can express: date
bounds, participant substrings, status sets, ordering and a row limit.
Keyword matching is done by the executor on the returned records.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import Select, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.schemas.search import SELF_PARTICIPANT, DateRange, SearchStrategy
from app.models.action_item import OPEN_STATUSES, ActionItem
from app.models.calendar_event import CalendarConnection, CalendarEvent
from app.models.session import RecordingSession
from app.models.summary import Summary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MeetingRecord:
    id: str
    session_id: str
    created_at: datetime
    title: str | None = None
    session_title: str | None = None
    tldr: str | None = None
    key_decisions: list[str] = field(default_factory=list)
    action_items: list[str] = field(default_factory=list)
    participant_me: str | None = None
    participant_them: str | None = None

    @property
    def primary_text(self) -> list[str | None]:
        return [self.title, self.session_title]

    @property
    def secondary_text(self) -> list[Any]:
        return [self.tldr, self.key_decisions, self.action_items]

    @property
    def timestamp(self) -> datetime:
        return self.created_at

    @property
    def people(self) -> list[str]:
        return [p for p in (self.participant_me, self.participant_them) if p]


@dataclass(frozen=True)
class ActionItemRecord:
    id: str
    session_id: str
    text: str
    status: str
    created_at: datetime
    session_title: str | None = None
    session_created_at: datetime | None = None

    @property
    def primary_text(self) -> list[str | None]:
        return [self.text]

    @property
    def secondary_text(self) -> list[Any]:
        return [self.session_title]

    @property
    def timestamp(self) -> datetime:
        # Date filters apply to the parent session, so scoring does too.
        return self.session_created_at or self.created_at

    @property
    def people(self) -> list[str]:
        return []


@dataclass(frozen=True)
class CalendarEventRecord:
    id: str
    title: str
    start_time: datetime
    end_time: datetime
    description: str | None = None
    attendees: list[dict[str, Any]] = field(default_factory=list)
    meeting_url: str | None = None

    @property
    def primary_text(self) -> list[str | None]:
        return [self.title]

    @property
    def secondary_text(self) -> list[Any]:
        return [self.description]

    @property
    def timestamp(self) -> datetime:
        return self.start_time

    @property
    def people(self) -> list[str]:
        return [a.get("email") or a.get("name") for a in self.attendees if a.get("email") or a.get("name")]


class RecordStore(ABC):
    """Abstract source of meetings, action items and calendar events for one user."""

    @abstractmethod
    async def fetch_meetings(self, strategy: SearchStrategy) -> list[MeetingRecord]:
        """Completed summaries, newest first, bounded by the strategy date range."""
        ...

    @abstractmethod
    async def fetch_meetings_by_participants(
        self, strategy: SearchStrategy
    ) -> list[MeetingRecord]:
        """Completed summaries whose counterpart matches any strategy participant."""
        ...

    @abstractmethod
    async def fetch_action_items(self, strategy: SearchStrategy) -> list[ActionItemRecord]:
        """Open action items; the date range applies to the parent session."""
        ...

    @abstractmethod
    async def fetch_calendar_events(
        self, strategy: SearchStrategy, now: datetime
    ) -> list[CalendarEventRecord]:
        """Calendar events from `now` onward unless the strategy gives a start."""
        ...


def _apply_date_range(stmt: Select, column: Any, date_range: DateRange | None) -> Select:
    if date_range is None:
        return stmt
    start = date_range.start_datetime()
    end = date_range.end_datetime()
    if start is not None:
        stmt = stmt.where(column >= start)
    if end is not None:
        stmt = stmt.where(column <= end)
    return stmt


def searchable_participants(participants: list[str] | None) -> list[str]:
    return [p for p in (participants or []) if p and p != SELF_PARTICIPANT]


class SqlRecordStore(RecordStore):
    """RecordStore over the application database, scoped to a single user.

    Each lookup opens its own session so the executor can run them concurrently.
    """

    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession], user_id: str
    ) -> None:
        self.session_factory = session_factory
        self.user_id = user_id

    async def fetch_meetings(self, strategy: SearchStrategy) -> list[MeetingRecord]:
        stmt = (
            select(Summary, RecordingSession)
            .join(RecordingSession, Summary.session_id == RecordingSession.id)
            .where(Summary.user_id == self.user_id, Summary.generation_status == "completed")
        )
        stmt = _apply_date_range(stmt, Summary.created_at, strategy.filters.date_range)
        stmt = stmt.order_by(Summary.created_at.desc()).limit(strategy.limit)

        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()

        logger.debug("Meeting lookup returned %d rows before keyword filtering", len(rows))
        return [self._meeting_record(summary, rec_session) for summary, rec_session in rows]

    async def fetch_meetings_by_participants(
        self, strategy: SearchStrategy
    ) -> list[MeetingRecord]:
        stmt = (
            select(Summary, RecordingSession)
            .join(RecordingSession, Summary.session_id == RecordingSession.id)
            .where(
                RecordingSession.user_id == self.user_id,
                Summary.generation_status == "completed",
            )
        )
        names = searchable_participants(strategy.filters.participants)
        if names:
            stmt = stmt.where(
                or_(*[RecordingSession.participant_them.ilike(f"%{name}%") for name in names])
            )
        stmt = _apply_date_range(stmt, RecordingSession.created_at, strategy.filters.date_range)
        stmt = stmt.order_by(RecordingSession.created_at.desc()).limit(strategy.limit)

        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()

        return [self._meeting_record(summary, rec_session) for summary, rec_session in rows]

    async def fetch_action_items(self, strategy: SearchStrategy) -> list[ActionItemRecord]:
        stmt = (
            select(ActionItem, RecordingSession)
            .join(RecordingSession, ActionItem.session_id == RecordingSession.id)
            .where(
                RecordingSession.user_id == self.user_id,
                ActionItem.status.in_(OPEN_STATUSES),
            )
        )
        stmt = _apply_date_range(stmt, RecordingSession.created_at, strategy.filters.date_range)
        stmt = stmt.order_by(ActionItem.created_at.desc()).limit(strategy.limit)

        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()

        return [
            ActionItemRecord(
                id=str(item.id),
                session_id=str(item.session_id),
                text=item.text,
                status=item.status,
                created_at=item.created_at,
                session_title=rec_session.title,
                session_created_at=rec_session.created_at,
            )
            for item, rec_session in rows
        ]

    async def fetch_calendar_events(
        self, strategy: SearchStrategy, now: datetime
    ) -> list[CalendarEventRecord]:
        date_range = strategy.filters.date_range
        start = date_range.start_datetime() if date_range else None
        end = date_range.end_datetime() if date_range else None

        stmt = (
            select(CalendarEvent)
            .join(CalendarConnection, CalendarEvent.connection_id == CalendarConnection.id)
            .where(
                CalendarConnection.user_id == self.user_id,
                CalendarEvent.start_time >= (start or now),
            )
        )
        if end is not None:
            stmt = stmt.where(CalendarEvent.start_time <= end)
        stmt = stmt.order_by(CalendarEvent.start_time.asc()).limit(strategy.limit)

        async with self.session_factory() as session:
            events = (await session.execute(stmt)).scalars().all()

        return [
            CalendarEventRecord(
                id=str(ev.id),
                title=ev.title,
                description=ev.description,
                start_time=ev.start_time,
                end_time=ev.end_time,
                attendees=list(ev.attendees or []),
                meeting_url=ev.meeting_url,
            )
            for ev in events
        ]

    def _meeting_record(self, summary: Summary, rec_session: RecordingSession) -> MeetingRecord:
        return MeetingRecord(
            id=str(summary.id),
            session_id=str(rec_session.id),
            created_at=summary.created_at,
            title=summary.title,
            session_title=rec_session.title,
            tldr=summary.tldr,
            key_decisions=list(summary.key_decisions or []),
            action_items=list(summary.action_items or []),
            participant_me=rec_session.participant_me,
            participant_them=rec_session.participant_them,
        )
