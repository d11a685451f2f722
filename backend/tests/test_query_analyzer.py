"""Tests for the rule-based and LLM query analyzers."""

import json
from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from app.api.schemas.search import AnalyzedQuery, DateRange, QueryIntent, StrategyType
from app.config import settings
from app.services.exceptions import QueryAnalysisError
from app.services.query_analyzer import (
    LLMQueryAnalyzer,
    RuleBasedQueryAnalyzer,
    get_query_analyzer,
)
from app.services.search_planner import create_search_plan
from fakes import TODAY

# TODAY is Monday 2026-10-19.


@pytest.fixture
def analyzer() -> RuleBasedQueryAnalyzer:
    return RuleBasedQueryAnalyzer(today=lambda: TODAY)


class TestRuleBasedAnalyzer:
    def test_company_question_with_relative_month(self, analyzer):
        result = analyzer.parse("what did we decide with Acme last month")

        assert result.intent == QueryIntent.GENERAL
        assert result.keywords == ["acme"]
        assert result.participants == set()
        assert result.date_range == DateRange(start=TODAY - timedelta(days=30), end=TODAY)
        assert result.original_query == "what did we decide with Acme last month"

    def test_open_action_items_for_self(self, analyzer):
        result = analyzer.parse("show my open action items")

        assert result.intent == QueryIntent.ACTION_ITEMS
        assert result.keywords == []
        assert result.participants == {"self"}
        assert result.date_range is None

    def test_person_lookup_last_week(self, analyzer):
        result = analyzer.parse("meetings with Sarah Chen last week")

        assert result.intent == QueryIntent.PARTICIPANT_LOOKUP
        assert result.participants == {"sarah chen"}
        assert result.keywords == []
        assert result.date_range == DateRange(start=date(2026, 10, 12), end=date(2026, 10, 18))

    def test_team_and_email_participants(self, analyzer):
        team = analyzer.parse("calls with the Platform team")
        email = analyzer.parse("meetings with sarah@acme.com")

        assert team.participants == {"platform"}
        assert team.intent == QueryIntent.PARTICIPANT_LOOKUP
        assert email.participants == {"sarah@acme.com"}
        assert email.keywords == []

    def test_quoted_phrase_stays_whole(self, analyzer):
        result = analyzer.parse('notes about "pricing tiers"')

        assert result.keywords == ["pricing tiers"]

    def test_named_meeting_becomes_phrase(self, analyzer):
        result = analyzer.parse("what happened in the Zen Sciences meeting")

        assert result.keywords == ["zen sciences"]
        assert result.intent == QueryIntent.GENERAL

    def test_schedule_next_week(self, analyzer):
        result = analyzer.parse("what's on my calendar next week")

        assert result.intent == QueryIntent.SCHEDULE
        assert result.keywords == []
        assert result.participants == {"self"}
        assert result.date_range == DateRange(start=date(2026, 10, 26), end=date(2026, 11, 1))

    @pytest.mark.parametrize(
        "phrase,expected",
        [
            ("today", DateRange(start=TODAY, end=TODAY)),
            ("yesterday", DateRange(start=date(2026, 10, 18), end=date(2026, 10, 18))),
            ("this week", DateRange(start=TODAY, end=TODAY)),
            ("this month", DateRange(start=date(2026, 10, 1), end=TODAY)),
            ("the last 7 days", DateRange(start=date(2026, 10, 12), end=TODAY)),
            ("the past 2 weeks", DateRange(start=date(2026, 10, 5), end=TODAY)),
            ("the next 3 days", DateRange(start=TODAY, end=date(2026, 10, 22))),
        ],
    )
    def test_relative_dates(self, analyzer, phrase, expected):
        result = analyzer.parse(f"budget review {phrase}")

        assert result.date_range == expected
        assert result.keywords == ["budget", "review"]

    def test_confidence_grows_with_signals(self, analyzer):
        vague = analyzer.parse("anything")
        rich = analyzer.parse("meetings with Sarah Chen last week")

        assert vague.confidence == 0.5
        assert rich.confidence > vague.confidence

    async def test_analyze_matches_parse(self, analyzer):
        assert await analyzer.analyze("budget review") == analyzer.parse("budget review")


def fake_client(content=None, error=None):
    calls = []

    async def create(**kwargs):
        calls.append(kwargs)
        if error is not None:
            raise error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])

    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return client, calls


class TestLLMAnalyzer:
    async def test_parses_json_output(self):
        payload = {
            "intent": "participant_lookup",
            "keywords": ["Zen Sciences", "zen sciences"],
            "participants": ["Sarah", "self"],
            "date_range": {"start": "2026-10-12", "end": "2026-10-18"},
        }
        client, calls = fake_client(json.dumps(payload))
        analyzer = LLMQueryAnalyzer(client=client, model="test-model", today=lambda: TODAY)

        result = await analyzer.analyze("zen sciences calls with Sarah last week")

        assert result.intent == QueryIntent.PARTICIPANT_LOOKUP
        assert result.keywords == ["zen sciences"]
        assert result.participants == {"sarah", "self"}
        assert result.date_range == DateRange(start=date(2026, 10, 12), end=date(2026, 10, 18))
        assert result.original_query == "zen sciences calls with Sarah last week"

        request = calls[0]
        assert request["model"] == "test-model"
        assert request["response_format"] == {"type": "json_object"}
        assert "2026-10-19" in request["messages"][0]["content"]

    async def test_unbounded_date_range_is_dropped(self):
        payload = {"intent": "general", "keywords": [], "date_range": {"start": None, "end": None}}
        client, _ = fake_client(json.dumps(payload))

        result = await LLMQueryAnalyzer(client=client, model="m").analyze("anything new")

        assert result.date_range is None
        plan = create_search_plan(result)
        assert [s.type for s in plan.strategies] == [StrategyType.ENTITY]
        assert plan.fallback_strategy is None

    async def test_missing_fields_use_defaults(self):
        client, _ = fake_client("{}")

        result = await LLMQueryAnalyzer(client=client, model="m").analyze("hello")

        assert result.intent == QueryIntent.GENERAL
        assert result.keywords == []
        assert result.date_range is None

    @pytest.mark.parametrize("content", ["not json", "[1, 2]", '{"intent": "gossip"}'])
    async def test_bad_output_raises_analysis_error(self, content):
        client, _ = fake_client(content)

        with pytest.raises(QueryAnalysisError):
            await LLMQueryAnalyzer(client=client, model="m").analyze("hello")

    async def test_client_failure_raises_analysis_error(self):
        client, _ = fake_client(error=ConnectionError("api down"))

        with pytest.raises(QueryAnalysisError):
            await LLMQueryAnalyzer(client=client, model="m").analyze("hello")


def test_rule_based_analyzer_is_the_default(monkeypatch):
    monkeypatch.setattr(settings, "query_analyzer", "rules")

    assert isinstance(get_query_analyzer(), RuleBasedQueryAnalyzer)


def test_llm_analyzer_needs_an_api_key(monkeypatch):
    monkeypatch.setattr(settings, "query_analyzer", "llm")
    monkeypatch.setattr(settings, "openai_api_key", "")
    assert isinstance(get_query_analyzer(), RuleBasedQueryAnalyzer)

    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    assert isinstance(get_query_analyzer(), LLMQueryAnalyzer)


def test_analyzed_query_treats_an_empty_range_as_no_range():
    assert AnalyzedQuery(date_range=DateRange()).date_range is None
    assert AnalyzedQuery.model_validate({"dateRange": {"start": None, "end": None}}).date_range is None
    assert AnalyzedQuery(date_range=DateRange(start=TODAY)).date_range == DateRange(start=TODAY)
