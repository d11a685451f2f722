"""Pytest configuration and shared fixtures."""

from datetime import timedelta

import pytest

from app.api.schemas.search import AnalyzedQuery, DateRange, QueryIntent
from fakes import TODAY, FakeRecordStore, make_meeting


@pytest.fixture
def acme_query() -> AnalyzedQuery:
    """Analyzer output for "what did we decide with Acme last month"."""
    return AnalyzedQuery(
        original_query="what did we decide with Acme last month",
        intent=QueryIntent.GENERAL,
        keywords=["acme"],
        participants=set(),
        date_range=DateRange(start=TODAY - timedelta(days=30), end=TODAY),
    )


@pytest.fixture
def acme_meetings():
    """Five in-window Acme meetings (three by title, two by decision) plus noise."""
    return [
        make_meeting("m1", "Acme pricing review", age_days=3),
        make_meeting("m2", "Weekly sync", age_days=5, key_decisions=["Send Acme the revised quote"]),
        make_meeting("m3", "Acme renewal call", age_days=10),
        make_meeting("m4", "Pipeline review", age_days=12, key_decisions=["Loop legal in on acme terms"]),
        make_meeting("m5", "Acme onboarding kickoff", age_days=20),
        make_meeting("m6", "Acme discovery call", age_days=75),
        make_meeting("m7", "Globex budget planning", age_days=4),
    ]


@pytest.fixture
def acme_store(acme_meetings) -> FakeRecordStore:
    return FakeRecordStore(meetings=acme_meetings)
