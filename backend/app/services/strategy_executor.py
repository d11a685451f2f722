from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from app.api.schemas.search import (
    AnalyzedQuery,
    QueryIntent,
    ResultType,
    SearchResult,
    SearchStrategy,
    StrategyType,
)
from app.models.base import utcnow
from app.services.exceptions import StrategyExecutionError
from app.services.record_store import (
    ActionItemRecord,
    CalendarEventRecord,
    MeetingRecord,
    RecordStore,
)
from app.services.relevance import calculate_relevance, weigh_for_result_type
from app.services.text_matching import build_search_text, matches_keywords

logger = logging.getLogger(__name__)

ACTION_ITEM_WEIGHT = 0.9
SCHEDULE_HINTS = ("meeting", "calendar", "schedule", "upcoming", "event", "agenda")


def wants_calendar(strategy: SearchStrategy, query: AnalyzedQuery) -> bool:
    if strategy.filters.sources is not None:
        return ResultType.CALENDAR_EVENT in strategy.filters.sources
    if query.intent == QueryIntent.SCHEDULE:
        return True
    keywords = strategy.filters.keywords or query.keywords
    return any(hint in keyword for keyword in keywords for hint in SCHEDULE_HINTS)


def record_search_text(record: Any) -> str:
    return build_search_text(*record.primary_text, *record.secondary_text)


def meeting_result(
    record: MeetingRecord, query: AnalyzedQuery, strategy: SearchStrategy
) -> SearchResult:
    return SearchResult(
        id=f"{ResultType.MEETING.value}_{record.id}",
        type=ResultType.MEETING,
        title=record.title or record.session_title or "Untitled Meeting",
        summary=record.tldr or None,
        date=record.created_at.isoformat(),
        participants=record.people or None,
        relevance=weigh_for_result_type(
            calculate_relevance(record, query, strategy), ResultType.MEETING, query
        ),
        metadata={
            "session_id": record.session_id,
            "key_decisions": list(record.key_decisions),
            "action_items": list(record.action_items),
            "source_strategy": strategy.type.value,
        },
    )


def action_item_result(
    record: ActionItemRecord, query: AnalyzedQuery, strategy: SearchStrategy
) -> SearchResult:
    relevance = weigh_for_result_type(
        calculate_relevance(record, query, strategy),
        ResultType.ACTION_ITEM,
        query,
        weight=ACTION_ITEM_WEIGHT,
    )
    return SearchResult(
        id=f"{ResultType.ACTION_ITEM.value}_{record.id}",
        type=ResultType.ACTION_ITEM,
        title=record.text or "Untitled Action",
        date=record.created_at.isoformat(),
        relevance=relevance,
        metadata={
            "status": record.status,
            "session_id": record.session_id,
            "session_title": record.session_title,
            "source_strategy": strategy.type.value,
        },
    )


def calendar_event_result(
    record: CalendarEventRecord, query: AnalyzedQuery, strategy: SearchStrategy
) -> SearchResult:
    return SearchResult(
        id=f"{ResultType.CALENDAR_EVENT.value}_{record.id}",
        type=ResultType.CALENDAR_EVENT,
        title=record.title,
        summary=record.description or None,
        date=record.start_time.isoformat(),
        participants=record.people or None,
        relevance=weigh_for_result_type(
            calculate_relevance(record, query, strategy), ResultType.CALENDAR_EVENT, query
        ),
        metadata={
            "end_time": record.end_time.isoformat(),
            "meeting_url": record.meeting_url,
            "source_strategy": strategy.type.value,
        },
    )


Lookup = tuple[str, Awaitable[list[Any]], Callable[..., SearchResult]]


class StrategyExecutor:
    """Runs one strategy against every applicable source and scores the hits.

    Sources are independent, so their lookups run concurrently. A source that
    fails is logged and left out; the other sources still contribute.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.clock = clock

    def _meeting_lookup(self, strategy: SearchStrategy) -> Awaitable[list[MeetingRecord]]:
        if strategy.type == StrategyType.PARTICIPANT:
            return self.store.fetch_meetings_by_participants(strategy)
        if strategy.type in (
            StrategyType.TEMPORAL,
            StrategyType.TOPIC,
            StrategyType.ENTITY,
            StrategyType.HYBRID,
        ):
            return self.store.fetch_meetings(strategy)
        raise ValueError(f"Unsupported strategy type: {strategy.type}")

    def _lookups(self, strategy: SearchStrategy, query: AnalyzedQuery) -> list[Lookup]:
        sources = strategy.filters.sources
        lookups: list[Lookup] = []
        if sources is None or ResultType.MEETING in sources:
            lookups.append(("meetings", self._meeting_lookup(strategy), meeting_result))
        if sources is None or ResultType.ACTION_ITEM in sources:
            lookups.append((
                "action_items", self.store.fetch_action_items(strategy), action_item_result
            ))
        if wants_calendar(strategy, query):
            lookups.append((
                "calendar_events",
                self.store.fetch_calendar_events(strategy, self.clock()),
                calendar_event_result,
            ))
        return lookups

    async def execute(
        self, strategy: SearchStrategy, query: AnalyzedQuery
    ) -> list[SearchResult]:
        lookups = self._lookups(strategy, query)
        outcomes = await asyncio.gather(
            *(lookup for _, lookup, _ in lookups), return_exceptions=True
        )

        results: list[SearchResult] = []
        keywords = strategy.filters.keywords
        for (source, _, to_result), outcome in zip(lookups, outcomes):
            if isinstance(outcome, Exception):
                error = StrategyExecutionError(strategy.type.value, source, outcome)
                logger.warning("Skipping source: %s", error)
                continue
            if isinstance(outcome, BaseException):
                raise outcome

            matched = [r for r in outcome if matches_keywords(record_search_text(r), keywords)]
            logger.debug(
                "%s strategy: %s returned %d records, %d after keyword filtering",
                strategy.type.value, source, len(outcome), len(matched),
            )
            results.extend(to_result(record, query, strategy) for record in matched)

        return results
