from __future__ import annotations

from datetime import datetime
from typing import Any

from app.api.schemas.search import (
    SELF_PARTICIPANT,
    AnalyzedQuery,
    DateRange,
    QueryIntent,
    Relevance,
    ResultType,
    SearchStrategy,
    StrategyType,
)
from app.services.text_matching import build_search_text

# (textual, temporal, participant)
STRATEGY_WEIGHTS: dict[StrategyType, tuple[float, float, float]] = {
    StrategyType.TOPIC: (0.6, 0.25, 0.15),
    StrategyType.ENTITY: (0.6, 0.2, 0.2),
    StrategyType.TEMPORAL: (0.35, 0.5, 0.15),
    StrategyType.PARTICIPANT: (0.35, 0.15, 0.5),
    StrategyType.HYBRID: (1 / 3, 1 / 3, 1 / 3),
}

TITLE_MATCH = 1.0
SECONDARY_MATCH = 0.5
NO_KEYWORDS_TEXTUAL = 0.5
TEMPORAL_DECAY_DAYS = 30

# Weighted scores stay within [0, 1], so a boosted result never ranks below
# a result of another type.
INTENT_RESULT_TYPES: dict[QueryIntent, ResultType] = {
    QueryIntent.ACTION_ITEMS: ResultType.ACTION_ITEM,
    QueryIntent.SCHEDULE: ResultType.CALENDAR_EVENT,
}
REQUESTED_TYPE_BOOST = 1.0


def _textual_factor(record: Any, keywords: list[str]) -> tuple[float, bool]:
    if not keywords:
        return NO_KEYWORDS_TEXTUAL, False

    primary = build_search_text(*record.primary_text)
    secondary = build_search_text(*record.secondary_text)

    total = 0.0
    title_hit = False
    for keyword in keywords:
        keyword = keyword.lower()
        if keyword in primary:
            total += TITLE_MATCH
            title_hit = True
        elif keyword in secondary:
            total += SECONDARY_MATCH
    return total / len(keywords), title_hit


def _temporal_factor(timestamp: datetime | None, date_range: DateRange | None) -> float:
    if date_range is None or timestamp is None:
        return 0.0
    if date_range.start is None and date_range.end is None:
        return 0.0
    if date_range.contains(timestamp):
        return 1.0
    return max(0.0, 1.0 - date_range.days_outside(timestamp) / TEMPORAL_DECAY_DAYS)


def _participant_factor(people: list[str], participants: set[str]) -> float:
    if not participants:
        return 0.0
    lowered = [p.lower() for p in people]
    matched = sum(
        1
        for participant in participants
        if participant == SELF_PARTICIPANT or any(participant.lower() in p for p in lowered)
    )
    return matched / len(participants)


def calculate_relevance(
    record: Any, query: AnalyzedQuery, strategy: SearchStrategy
) -> Relevance:
    """Score one candidate record for the query and the strategy that found it.

    The record must expose `primary_text`, `secondary_text`, `timestamp` and
    `people` (see record_store). Keywords found in the title count double
    compared to keywords found only in secondary fields.
    """
    keywords = strategy.filters.keywords or query.keywords
    date_range = strategy.filters.date_range or query.date_range

    textual, title_hit = _textual_factor(record, keywords)
    temporal = _temporal_factor(record.timestamp, date_range)
    participant = _participant_factor(record.people, query.participants)

    w_text, w_time, w_people = STRATEGY_WEIGHTS[strategy.type]
    score = textual * w_text + temporal * w_time + participant * w_people

    parts: list[str] = []
    if temporal > 0.5:
        parts.append("Strong date match")
    if keywords and textual > 0:
        parts.append(f"{round(textual * 100)}% keyword match")
    if title_hit:
        parts.append("Title match")
    if participant > 0.5:
        parts.append("Participant match")

    return Relevance(
        score=round(score, 6),
        explanation=", ".join(parts) or "Partial match",
    )


def weigh_for_result_type(
    relevance: Relevance,
    result_type: ResultType,
    query: AnalyzedQuery,
    weight: float = 1.0,
) -> Relevance:
    """Apply the per-source weight and boost the type the query intent asks for."""
    score = relevance.score * weight
    explanation = relevance.explanation
    if INTENT_RESULT_TYPES.get(query.intent) == result_type:
        score += REQUESTED_TYPE_BOOST
        if explanation == "Partial match":
            explanation = "Requested result type"
        else:
            explanation = f"Requested result type, {explanation}"
    return Relevance(score=round(score, 6), explanation=explanation)
