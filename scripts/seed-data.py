"""Seed the database with sample sessions and calendar events for development testing.

Usage (from backend/): PRIMARY_USER_ID=dev-user python ../scripts/seed-data.py
"""

import asyncio
from datetime import timedelta

from app.config import settings
from app.db.postgres import async_session_factory
from app.models import ActionItem, CalendarConnection, CalendarEvent, RecordingSession, Summary
from app.models.base import utcnow

SAMPLE_SESSIONS = [
    {
        "title": "Q1 Product Roadmap Planning",
        "days_ago": 14,
        "participant_them": "Sarah Chen",
        "summary_title": "Q1 roadmap: search before dashboard",
        "tldr": "Planned Q1 roadmap focusing on search and performance. Sarah leads the search design doc, Mike handles load testing.",
        "key_decisions": [
            "Search improvements take priority over dashboard redesign",
            "API performance audit before scaling",
        ],
        "action_items": [
            ("Write the search improvements design doc", "pending"),
            ("Run load tests on current API endpoints", "in_progress"),
        ],
    },
    {
        "title": "Weekly Engineering Standup",
        "days_ago": 7,
        "participant_them": "Platform team",
        "summary_title": "Sprint update",
        "tldr": "Search indexing 70% done, date parsing bug found, velocity on track.",
        "key_decisions": ["Ship indexing pipeline before the date parsing fix"],
        "action_items": [
            ("Fix date parsing bug for recurring events", "completed"),
            ("Update search UI to show result highlights", "todo"),
        ],
    },
    {
        "title": "Customer Feedback Review - Acme Corp",
        "days_ago": 3,
        "participant_them": "David Kim",
        "summary_title": "Acme Corp feedback",
        "tldr": "Acme Corp likes notes, finds search confusing. CTO David Kim wants API access.",
        "key_decisions": ["Offer Acme early API access", "Demo new search to David Kim once ready"],
        "action_items": [
            ("Schedule follow-up search demo with David Kim from Acme", "pending"),
        ],
    },
    {
        "title": "Pricing Strategy Discussion",
        "days_ago": 1,
        "participant_them": "Mike Johnson",
        "summary_title": "Tiered pricing",
        "tldr": "Planning tiered pricing (Starter/Pro/Enterprise). Enterprise needs SSO and audit. Board presentation next week.",
        "key_decisions": ["Move to three pricing tiers"],
        "action_items": [
            ("Prepare pricing tier comparison for board presentation", "pending"),
            ("Estimate engineering effort for SSO and audit logging", "cancelled"),
        ],
    },
]

SAMPLE_EVENTS = [
    {
        "title": "Acme search demo",
        "in_days": 2,
        "minutes": 45,
        "attendees": [{"name": "David Kim", "email": "david@acme.com"}],
        "meeting_url": "https://meet.example.com/acme-demo",
    },
    {
        "title": "Board meeting: pricing",
        "in_days": 8,
        "minutes": 90,
        "attendees": [{"name": "Sarah Chen", "email": "sarah@company.com"}],
        "meeting_url": None,
    },
]


async def seed(user_id: str):
    now = utcnow()
    async with async_session_factory() as session:
        for data in SAMPLE_SESSIONS:
            created = now - timedelta(days=data["days_ago"])
            rec = RecordingSession(
                user_id=user_id,
                title=data["title"],
                participant_me="me",
                participant_them=data["participant_them"],
                created_at=created,
                updated_at=created,
            )
            session.add(rec)
            session.add(Summary(
                user_id=user_id,
                session=rec,
                title=data["summary_title"],
                tldr=data["tldr"],
                key_decisions=data["key_decisions"],
                action_items=[text for text, _ in data["action_items"]],
                generation_status="completed",
                created_at=created,
                updated_at=created,
            ))
            for text, status in data["action_items"]:
                session.add(ActionItem(session=rec, text=text, status=status))

        connection = CalendarConnection(user_id=user_id, provider="google", last_sync=now)
        for data in SAMPLE_EVENTS:
            start = now + timedelta(days=data["in_days"])
            session.add(CalendarEvent(
                connection=connection,
                external_id=f"seed-{data['in_days']}",
                title=data["title"],
                start_time=start,
                end_time=start + timedelta(minutes=data["minutes"]),
                attendees=data["attendees"],
                meeting_url=data["meeting_url"],
            ))

        await session.commit()
        print(f"Seeded {len(SAMPLE_SESSIONS)} sessions and {len(SAMPLE_EVENTS)} calendar events for {user_id}.")


if __name__ == "__main__":
    if not settings.primary_user_id:
        raise SystemExit("Set PRIMARY_USER_ID to the user the sample data belongs to")
    asyncio.run(seed(settings.primary_user_id))
