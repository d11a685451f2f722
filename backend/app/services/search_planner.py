"""Turns an analyzed query into an ordered list of retrieval strategies.

The planner is pure: the same AnalyzedQuery, max_results and today always
produce the same plan.
"""

from __future__ import annotations

from datetime import date, timedelta

from app.api.schemas.search import (
    AnalyzedQuery,
    DateRange,
    QueryIntent,
    ResultType,
    SearchPlan,
    SearchStrategy,
    StrategyFilters,
    StrategyType,
)
from app.config import settings

# A participant strategy leads the plan when keywords are this sparse.
SPARSE_KEYWORD_COUNT = 1
FALLBACK_LIMIT_MULTIPLIER = 2
SCHEDULE_HORIZON_DAYS = 30


def strategy_limit(max_results: int) -> int:
    return max(1, min(max_results, settings.search_strategy_limit_cap))


def _strategy_type(keywords: list[str], date_range: DateRange | None) -> StrategyType | None:
    if date_range and not keywords:
        return StrategyType.TEMPORAL
    if keywords and not date_range:
        return StrategyType.TOPIC
    if keywords and date_range:
        return StrategyType.HYBRID
    return None


def _intent_strategy(query: AnalyzedQuery, limit: int, today: date) -> SearchStrategy | None:
    """Targets the source the intent asks for, ahead of the general strategies."""
    keywords = list(query.keywords) or None

    if query.intent == QueryIntent.ACTION_ITEMS:
        kind = _strategy_type(query.keywords, query.date_range) or StrategyType.ENTITY
        return SearchStrategy(
            type=kind,
            filters=StrategyFilters(
                keywords=keywords,
                date_range=query.date_range,
                sources=[ResultType.ACTION_ITEM],
            ),
            limit=limit,
        )

    if query.intent == QueryIntent.SCHEDULE:
        date_range = query.date_range or DateRange(
            start=today, end=today + timedelta(days=SCHEDULE_HORIZON_DAYS)
        )
        return SearchStrategy(
            type=StrategyType.TEMPORAL,
            filters=StrategyFilters(
                keywords=keywords,
                date_range=date_range,
                sources=[ResultType.CALENDAR_EVENT],
            ),
            limit=limit,
        )

    return None


def _participant_strategy(query: AnalyzedQuery, limit: int) -> SearchStrategy | None:
    names = query.named_participants
    if not names:
        return None
    sparse = len(query.keywords) <= SPARSE_KEYWORD_COUNT
    if query.intent != QueryIntent.PARTICIPANT_LOOKUP and not sparse:
        return None
    return SearchStrategy(
        type=StrategyType.PARTICIPANT,
        filters=StrategyFilters(participants=names),
        limit=limit,
    )


def _content_strategy(query: AnalyzedQuery, limit: int) -> SearchStrategy | None:
    keywords = list(query.keywords)
    kind = _strategy_type(keywords, query.date_range)
    if kind is None:
        return None
    # Passed through as given; a missing bound is open ended, never empty.
    return SearchStrategy(
        type=kind,
        filters=StrategyFilters(
            keywords=keywords if kind != StrategyType.TEMPORAL else None,
            date_range=query.date_range if kind != StrategyType.TOPIC else None,
        ),
        limit=limit,
    )


def create_search_plan(
    query: AnalyzedQuery, max_results: int = 20, today: date | None = None
) -> SearchPlan:
    limit = strategy_limit(max_results)
    today = today or date.today()

    strategies = [
        strategy
        for strategy in (
            _intent_strategy(query, limit, today),
            _participant_strategy(query, limit),
            _content_strategy(query, limit),
        )
        if strategy is not None
    ]

    if not strategies:
        # Broadest search; nothing wider exists to fall back to.
        return SearchPlan(
            strategies=[SearchStrategy(type=StrategyType.ENTITY, limit=limit)],
            fallback_strategy=None,
        )

    fallback = SearchStrategy(
        type=StrategyType.ENTITY,
        filters=StrategyFilters(keywords=list(query.keywords) or None),
        limit=limit * FALLBACK_LIMIT_MULTIPLIER,
    )
    return SearchPlan(strategies=strategies, fallback_strategy=fallback)
