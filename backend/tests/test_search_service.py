"""Tests for the search aggregator."""

import asyncio
from datetime import timedelta

import pytest

from app.api.schemas.search import (
    AnalyzedQuery,
    DateRange,
    QueryIntent,
    Relevance,
    ResultType,
    SearchResult,
    StrategyType,
)
from app.services.exceptions import QueryAnalysisError
from app.services.query_analyzer import RuleBasedQueryAnalyzer
from app.services.search_service import (
    ResultAccumulator,
    SearchService,
    has_enough_results,
    needs_fallback,
)
from app.services.strategy_executor import StrategyExecutor
from fakes import (
    NOW,
    TODAY,
    FakeRecordStore,
    StubAnalyzer,
    make_action_item,
    make_event,
    make_meeting,
)

WINDOW = DateRange(start=TODAY - timedelta(days=30), end=TODAY)


def service_for(store, analyzed=None, executor=None, analyzer=None) -> SearchService:
    return SearchService(
        analyzer or StubAnalyzer(analyzed),
        executor or StrategyExecutor(store, clock=lambda: NOW),
    )


def service_result(result_id, score, source):
    return SearchResult(
        id=result_id,
        type=ResultType.MEETING,
        title="Sync",
        date=NOW.isoformat(),
        relevance=Relevance(score=score, explanation="Partial match"),
        metadata={"source_strategy": source},
    )


def assert_response_invariants(response, max_results):
    ids = [r.id for r in response.results]
    scores = [r.relevance.score for r in response.results]
    assert len(ids) == len(set(ids))
    assert len(response.results) <= max_results
    assert response.total_found >= len(response.results)
    assert scores == sorted(scores, reverse=True)


class TestPredicates:
    def test_has_enough_results(self):
        assert has_enough_results(20, 20)
        assert not has_enough_results(19, 20)

    def test_needs_fallback_threshold(self):
        assert needs_fallback(4)
        assert not needs_fallback(5)


class TestFallback:
    async def test_low_yield_runs_fallback(self):
        meetings = [make_meeting(f"in{i}", f"Acme sync {i}", age_days=2 + i) for i in range(3)]
        meetings += [make_meeting(f"out{i}", f"Acme review {i}", age_days=60 + i) for i in range(2)]
        store = FakeRecordStore(meetings=meetings)
        analyzed = AnalyzedQuery(keywords=["acme"], date_range=WINDOW)

        response = await service_for(store, analyzed).search("acme last month", max_results=20)

        assert response.executed_strategies == 2
        assert store.strategy_types_called() == ["hybrid", "entity"]
        assert response.total_found == 5
        assert_response_invariants(response, 20)

    async def test_enough_yield_skips_fallback(self):
        meetings = [make_meeting(f"in{i}", f"Acme sync {i}", age_days=2 + i) for i in range(6)]
        meetings.append(make_meeting("out", "Acme review", age_days=60))
        store = FakeRecordStore(meetings=meetings)
        analyzed = AnalyzedQuery(keywords=["acme"], date_range=WINDOW)

        response = await service_for(store, analyzed).search("acme last month", max_results=20)

        assert response.executed_strategies == 1
        assert store.strategy_types_called() == ["hybrid"]
        assert response.total_found == 6
        assert "meeting_out" not in [r.id for r in response.results]

    async def test_fallback_results_are_deduplicated(self):
        store = FakeRecordStore(meetings=[make_meeting("1", "Acme sync", age_days=2)])
        analyzed = AnalyzedQuery(keywords=["acme"], date_range=WINDOW)

        response = await service_for(store, analyzed).search("acme", max_results=20)

        assert response.executed_strategies == 2
        assert [r.id for r in response.results] == ["meeting_1"]
        assert response.results[0].metadata["source_strategy"] == "hybrid"

    async def test_bare_entity_plan_has_no_fallback(self):
        store = FakeRecordStore(meetings=[make_meeting("1", "Sync")])

        response = await service_for(store, AnalyzedQuery()).search("anything")

        assert response.search_plan.fallback_strategy is None
        assert response.executed_strategies == 1


class TestOrchestration:
    async def test_early_stop_skips_remaining_primary_strategies(self):
        store = FakeRecordStore(meetings=[
            make_meeting(str(i), f"1:1 #{i}", age_days=i + 1, participant_them="Sarah Chen")
            for i in range(3)
        ])
        analyzed = AnalyzedQuery(participants={"sarah"}, keywords=["budget"])

        response = await service_for(store, analyzed).search("sarah budget", max_results=2)

        plan_types = [s.type for s in response.search_plan.strategies]
        assert plan_types == [StrategyType.PARTICIPANT, StrategyType.TOPIC]
        # topic never ran; the low yield still triggers the fallback
        assert store.strategy_types_called() == ["participant", "entity"]
        assert response.executed_strategies == 2
        assert len(response.results) == 2
        assert_response_invariants(response, 2)

    async def test_earlier_strategy_copy_wins(self):
        store = FakeRecordStore(meetings=[
            make_meeting("1", "Budget review", participant_them="Sarah Chen"),
        ])
        analyzed = AnalyzedQuery(participants={"sarah"}, keywords=["budget"])

        response = await service_for(store, analyzed).search("sarah budget")

        assert [r.id for r in response.results] == ["meeting_1"]
        assert response.results[0].metadata["source_strategy"] == "participant"

    async def test_results_are_ranked_and_truncated(self, acme_store, acme_query):
        response = await service_for(acme_store, acme_query).search("acme", max_results=3)

        assert len(response.results) == 3
        assert response.total_found == 5
        assert_response_invariants(response, 3)

    async def test_ties_keep_execution_order(self):
        store = FakeRecordStore(meetings=[
            make_meeting("newer", "Acme", age_days=1),
            make_meeting("older", "Acme", age_days=2),
        ])

        response = await service_for(store, AnalyzedQuery(keywords=["acme"])).search("acme")

        assert [r.id for r in response.results] == ["meeting_newer", "meeting_older"]

    async def test_empty_result_is_not_an_error(self):
        response = await service_for(FakeRecordStore(), AnalyzedQuery(keywords=["acme"])).search("acme")

        assert response.results == []
        assert response.total_found == 0


class TestFailures:
    async def test_analysis_error_is_fatal(self):
        analyzer = StubAnalyzer(error=QueryAnalysisError("bad output"))

        with pytest.raises(QueryAnalysisError):
            await service_for(FakeRecordStore(), analyzer=analyzer).search("acme")

    async def test_unexpected_analyzer_error_is_wrapped(self):
        analyzer = StubAnalyzer(error=RuntimeError("model offline"))

        with pytest.raises(QueryAnalysisError):
            await service_for(FakeRecordStore(), analyzer=analyzer).search("acme")

    async def test_strategy_failure_does_not_abort_search(self):
        class FlakyExecutor(StrategyExecutor):
            async def execute(self, strategy, query):
                if strategy.type == StrategyType.HYBRID:
                    raise RuntimeError("store timeout")
                return await super().execute(strategy, query)

        store = FakeRecordStore(meetings=[make_meeting("1", "Acme review", age_days=2)])
        analyzed = AnalyzedQuery(keywords=["acme"], date_range=WINDOW)
        executor = FlakyExecutor(store, clock=lambda: NOW)

        response = await service_for(store, analyzed, executor=executor).search("acme")

        assert response.executed_strategies == 2
        assert [r.id for r in response.results] == ["meeting_1"]

    async def test_fallback_failure_is_recovered(self):
        class BrokenFallbackExecutor(StrategyExecutor):
            async def execute(self, strategy, query):
                if strategy.type == StrategyType.ENTITY:
                    raise RuntimeError("store timeout")
                return await super().execute(strategy, query)

        store = FakeRecordStore(meetings=[make_meeting("1", "Acme review", age_days=2)])
        analyzed = AnalyzedQuery(keywords=["acme"], date_range=WINDOW)
        executor = BrokenFallbackExecutor(store, clock=lambda: NOW)

        response = await service_for(store, analyzed, executor=executor).search("acme")

        assert [r.id for r in response.results] == ["meeting_1"]

    async def test_timeout_returns_partial_results(self):
        class SlowFallbackExecutor(StrategyExecutor):
            async def execute(self, strategy, query):
                if strategy.type == StrategyType.ENTITY:
                    await asyncio.sleep(5)
                return await super().execute(strategy, query)

        store = FakeRecordStore(meetings=[make_meeting("1", "Acme review", age_days=2)])
        analyzed = AnalyzedQuery(keywords=["acme"], date_range=WINDOW)
        executor = SlowFallbackExecutor(store, clock=lambda: NOW)

        response = await service_for(store, analyzed, executor=executor).search(
            "acme", timeout_ms=200
        )

        assert [r.id for r in response.results] == ["meeting_1"]
        assert response.executed_strategies == 2


async def test_acme_last_month_end_to_end(acme_store):
    analyzer = RuleBasedQueryAnalyzer(today=lambda: TODAY)
    service = SearchService(analyzer, StrategyExecutor(acme_store, clock=lambda: NOW))

    response = await service.search("what did we decide with Acme last month", max_results=20)

    assert response.query.intent == QueryIntent.GENERAL
    assert response.query.keywords == ["acme"]
    assert response.query.participants == set()
    assert response.query.date_range == DateRange(start=TODAY - timedelta(days=30), end=TODAY)

    assert [s.type for s in response.search_plan.strategies] == [StrategyType.HYBRID]
    fallback = response.search_plan.fallback_strategy
    assert fallback.type == StrategyType.ENTITY
    assert fallback.filters.keywords == ["acme"]
    assert fallback.limit == 2 * response.search_plan.strategies[0].limit

    ids = [r.id for r in response.results]
    assert sorted(ids) == ["meeting_m1", "meeting_m2", "meeting_m3", "meeting_m4", "meeting_m5"]
    # title matches rank ahead of decision-only matches
    assert set(ids[:3]) == {"meeting_m1", "meeting_m3", "meeting_m5"}
    assert response.executed_strategies == 1
    assert_response_invariants(response, 20)


def test_accumulator_keeps_first_copy_and_ranks_stably():
    first = service_result("meeting_1", 0.4, "hybrid")
    duplicate = service_result("meeting_1", 0.9, "entity")
    tie = service_result("meeting_2", 0.4, "hybrid")
    best = service_result("meeting_3", 0.8, "entity")
    accumulator = ResultAccumulator()

    assert accumulator.add([first, tie]) == 2
    assert accumulator.add([duplicate, best]) == 1

    ranked = accumulator.ranked()
    assert [r.id for r in ranked] == ["meeting_3", "meeting_1", "meeting_2"]
    assert ranked[1].metadata["source_strategy"] == "hybrid"


@pytest.fixture
def busy_meetings():
    """More meetings than a page of results can hold."""
    return [make_meeting(f"m{i}", f"Sync #{i}", age_days=i + 1) for i in range(25)]


async def test_open_action_items_end_to_end(busy_meetings):
    store = FakeRecordStore(
        meetings=busy_meetings,
        action_items=[
            make_action_item("a1", "Send Acme the contract", age_days=2),
            make_action_item("a2", "Draft pricing memo", status="in_progress", age_days=4),
            make_action_item("a3", "Book venue", status="todo", age_days=9),
            make_action_item("a4", "Archive old deck", status="completed", age_days=1),
        ],
    )
    analyzer = RuleBasedQueryAnalyzer(today=lambda: TODAY)
    service = SearchService(analyzer, StrategyExecutor(store, clock=lambda: NOW))

    response = await service.search("show my open action items", max_results=10)

    assert response.query.intent == QueryIntent.ACTION_ITEMS
    lead = response.search_plan.strategies[0]
    assert lead.filters.sources == [ResultType.ACTION_ITEM]

    assert len(response.results) == 10
    top = response.results[:3]
    assert {r.type for r in top} == {ResultType.ACTION_ITEM}
    assert {r.id for r in top} == {"action_item_a1", "action_item_a2", "action_item_a3"}
    assert "action_item_a4" not in [r.id for r in response.results]
    assert_response_invariants(response, 10)


async def test_calendar_end_to_end(busy_meetings):
    store = FakeRecordStore(
        meetings=busy_meetings,
        events=[
            make_event("e1", "Acme demo", in_days=1),
            make_event("e2", "Board prep", in_days=3),
            make_event("e3", "Quarterly planning", in_days=10),
            make_event("far", "Offsite", in_days=45),
            make_event("past", "Old standup", in_days=-3),
        ],
    )
    analyzer = RuleBasedQueryAnalyzer(today=lambda: TODAY)
    service = SearchService(analyzer, StrategyExecutor(store, clock=lambda: NOW))

    response = await service.search("what's on my calendar", max_results=10)

    assert response.query.intent == QueryIntent.SCHEDULE
    lead = response.search_plan.strategies[0]
    assert lead.type == StrategyType.TEMPORAL
    assert lead.filters.sources == [ResultType.CALENDAR_EVENT]
    assert lead.filters.date_range == DateRange(start=TODAY, end=TODAY + timedelta(days=30))

    ids = [r.id for r in response.results]
    assert len(ids) == 10
    assert set(ids[:3]) == {"calendar_event_e1", "calendar_event_e2", "calendar_event_e3"}
    assert "calendar_event_far" in ids
    assert "calendar_event_past" not in ids
    assert all(r.type == ResultType.CALENDAR_EVENT for r in response.results[:4])
    assert_response_invariants(response, 10)
