from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from app.config import settings


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire. Both are accepted on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class QueryIntent(str, Enum):
    GENERAL = "general"
    ACTION_ITEMS = "action_items"
    SCHEDULE = "schedule"
    PARTICIPANT_LOOKUP = "participant_lookup"


class StrategyType(str, Enum):
    TEMPORAL = "temporal"
    TOPIC = "topic"
    ENTITY = "entity"
    HYBRID = "hybrid"
    PARTICIPANT = "participant"


class ResultType(str, Enum):
    MEETING = "meeting"
    ACTION_ITEM = "action_item"
    CALENDAR_EVENT = "calendar_event"


SELF_PARTICIPANT = "self"


class DateRange(CamelModel):
    """Inclusive calendar-date range. A missing bound is open ended."""

    start: date | None = None
    end: date | None = None

    def start_datetime(self) -> datetime | None:
        return datetime.combine(self.start, time.min) if self.start else None

    def end_datetime(self) -> datetime | None:
        return datetime.combine(self.end, time.max) if self.end else None

    def contains(self, moment: datetime) -> bool:
        day = moment.date()
        if self.start and day < self.start:
            return False
        if self.end and day > self.end:
            return False
        return True

    def days_outside(self, moment: datetime) -> float:
        """Distance in days from the nearest bound, 0 when inside."""
        start = self.start_datetime()
        end = self.end_datetime()
        if start and moment < start:
            return (start - moment).total_seconds() / 86400
        if end and moment > end:
            return (moment - end).total_seconds() / 86400
        return 0.0


class AnalyzedQuery(CamelModel):
    original_query: str = ""
    intent: QueryIntent = QueryIntent.GENERAL
    keywords: list[str] = Field(default_factory=list)
    participants: set[str] = Field(default_factory=set)
    date_range: DateRange | None = None
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("date_range")
    @classmethod
    def _drop_unbounded_range(cls, date_range: DateRange | None) -> DateRange | None:
        if date_range is not None and date_range.start is None and date_range.end is None:
            return None
        return date_range

    @field_serializer("participants")
    def _serialize_participants(self, participants: set[str]) -> list[str]:
        return sorted(participants)

    @property
    def named_participants(self) -> list[str]:
        return sorted(p for p in self.participants if p != SELF_PARTICIPANT)


class StrategyFilters(CamelModel):
    keywords: list[str] | None = None
    participants: list[str] | None = None
    date_range: DateRange | None = None
    # None searches every source that applies to the query.
    sources: list[ResultType] | None = None


class SearchStrategy(CamelModel):
    type: StrategyType
    filters: StrategyFilters = Field(default_factory=StrategyFilters)
    limit: int = Field(default=10, gt=0)


class SearchPlan(CamelModel):
    strategies: list[SearchStrategy]
    fallback_strategy: SearchStrategy | None = None


class Relevance(CamelModel):
    score: float
    explanation: str


class SearchResult(CamelModel):
    id: str
    type: ResultType
    title: str
    summary: str | None = None
    date: str
    participants: list[str] | None = None
    relevance: Relevance
    metadata: dict[str, Any] | None = None


class SearchRequest(CamelModel):
    query: str = Field(min_length=1)
    max_results: int = Field(default=settings.search_default_max_results, ge=1, le=100)
    timeout_ms: int | None = Field(default=settings.search_default_timeout_ms, gt=0)


class SearchResponse(CamelModel):
    query: AnalyzedQuery
    search_plan: SearchPlan
    results: list[SearchResult]
    total_found: int
    executed_strategies: int
