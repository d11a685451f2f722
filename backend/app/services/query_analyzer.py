"""Query analysis: raw natural-language text -> AnalyzedQuery.

RuleBasedQueryAnalyzer is deterministic and needs no network. LLMQueryAnalyzer
asks the chat model for the same structure and validates it with pydantic.
The search pipeline treats both as a black box.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import date, timedelta

from openai import AsyncOpenAI
from pydantic import ValidationError

from app.api.schemas.search import SELF_PARTICIPANT, AnalyzedQuery, DateRange, QueryIntent
from app.config import settings
from app.services.exceptions import QueryAnalysisError

logger = logging.getLogger(__name__)

ACTION_ITEM_PATTERN = re.compile(
    r"\b(action items?|tasks?|to-?dos?|follow[- ]ups?|pending|assigned)\b"
)
SCHEDULE_PATTERN = re.compile(
    r"\b(upcoming|schedule|calendar|agenda|next meeting|when is)\b"
)
LOOKUP_PATTERN = re.compile(
    r"\b(meet|met|meetings?|calls?|talk(?:ed)?|spoke|chat(?:ted)?|1:1s?|one-on-ones?|syncs?)\b"
)
SELF_PATTERN = re.compile(r"\b(my|i|me|mine)\b")

NAME_PATTERN = re.compile(r"\b(?:with|from)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)")
TEAM_PATTERN = re.compile(r"\b([A-Z][a-z]+) team\b")
EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
QUOTED_PATTERN = re.compile(r'"([^"]+)"')
MEETING_NAME_PATTERN = re.compile(r"\b((?:[a-z0-9]+\s+){1,4})meeting\b")
TOKEN_PATTERN = re.compile(r"[a-z0-9][a-z0-9\-]*")

STOP_WORDS = {
    "a", "about", "across", "after", "all", "am", "an", "and", "any", "are", "as",
    "at", "be", "been", "before", "but", "by", "can", "could", "did", "do", "does",
    "for", "from", "get", "give", "had", "has", "have", "how", "in", "into", "is",
    "it", "its", "just", "list", "me", "mine", "my", "of", "on", "open", "or", "our",
    "out", "over", "please", "recent", "see", "show", "so", "some", "tell", "that",
    "the", "their", "them", "there", "these", "they", "this", "those", "to", "us",
    "was", "we", "were", "what", "when", "where", "which", "who", "why", "will",
    "with", "would", "you", "your", "find", "search", "look", "looking",
    "meeting", "meetings", "call", "calls", "notes", "anything", "everything",
    "decide", "decided", "decision", "decisions", "discuss", "discussed", "talk",
    "talked", "say", "said", "agree", "agreed", "mention", "mentioned", "happened",
    "team",
}

WEEK = 7


def _week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def _date_rules(today: date) -> list[tuple[re.Pattern[str], Callable[[re.Match[str]], DateRange]]]:
    last_week_start = _week_start(today) - timedelta(days=WEEK)
    next_week_start = _week_start(today) + timedelta(days=WEEK)
    return [
        (re.compile(r"\btoday\b"), lambda m: DateRange(start=today, end=today)),
        (re.compile(r"\byesterday\b"), lambda m: DateRange(
            start=today - timedelta(days=1), end=today - timedelta(days=1))),
        (re.compile(r"\btomorrow\b"), lambda m: DateRange(
            start=today + timedelta(days=1), end=today + timedelta(days=1))),
        (re.compile(r"\bthis week\b"), lambda m: DateRange(start=_week_start(today), end=today)),
        (re.compile(r"\blast week\b"), lambda m: DateRange(
            start=last_week_start, end=last_week_start + timedelta(days=WEEK - 1))),
        (re.compile(r"\bnext week\b"), lambda m: DateRange(
            start=next_week_start, end=next_week_start + timedelta(days=WEEK - 1))),
        (re.compile(r"\bthis month\b"), lambda m: DateRange(start=today.replace(day=1), end=today)),
        (re.compile(r"\blast month\b"), lambda m: DateRange(
            start=today - timedelta(days=30), end=today)),
        (re.compile(r"\b(?:last|past) (\d+) days?\b"), lambda m: DateRange(
            start=today - timedelta(days=int(m.group(1))), end=today)),
        (re.compile(r"\b(?:last|past) (\d+) weeks?\b"), lambda m: DateRange(
            start=today - timedelta(days=WEEK * int(m.group(1))), end=today)),
        (re.compile(r"\bnext (\d+) days?\b"), lambda m: DateRange(
            start=today, end=today + timedelta(days=int(m.group(1))))),
    ]


def _dedupe(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out


class QueryAnalyzer(ABC):
    @abstractmethod
    async def analyze(self, raw_query: str) -> AnalyzedQuery:
        ...


class RuleBasedQueryAnalyzer(QueryAnalyzer):
    def __init__(self, today: Callable[[], date] = date.today) -> None:
        self.today = today

    async def analyze(self, raw_query: str) -> AnalyzedQuery:
        return self.parse(raw_query)

    def parse(self, raw_query: str) -> AnalyzedQuery:
        text = " ".join(raw_query.split())
        lowered = text.lower()

        date_range, lowered = self._extract_date_range(lowered)

        is_action = bool(ACTION_ITEM_PATTERN.search(lowered))
        is_schedule = bool(SCHEDULE_PATTERN.search(lowered))
        is_lookup = bool(LOOKUP_PATTERN.search(lowered))

        participants: set[str] = set()
        name_keywords: list[str] = []
        for name in NAME_PATTERN.findall(text):
            if is_lookup:
                participants.add(name.lower())
            else:
                name_keywords.append(name.lower())
        participants.update(t.lower() for t in TEAM_PATTERN.findall(text))
        participants.update(e.lower() for e in EMAIL_PATTERN.findall(text))

        keywords = [p.strip().lower() for p in QUOTED_PATTERN.findall(text)]
        working = QUOTED_PATTERN.sub(" ", lowered)
        working = EMAIL_PATTERN.sub(" ", working)
        working = ACTION_ITEM_PATTERN.sub(" ", working)
        working = SCHEDULE_PATTERN.sub(" ", working)

        for match in MEETING_NAME_PATTERN.finditer(working):
            words = match.group(1).split()
            name_words: list[str] = []
            for word in reversed(words):
                if word in STOP_WORDS:
                    break
                name_words.insert(0, word)
            if name_words:
                keywords.append(" ".join(name_words))
        working = MEETING_NAME_PATTERN.sub(" ", working)

        excluded = set(STOP_WORDS)
        for name in participants:
            excluded.update(name.split())
        keywords.extend(name_keywords)
        keywords.extend(
            token for token in TOKEN_PATTERN.findall(working)
            if len(token) > 2 and token not in excluded
        )
        keywords = _dedupe(keywords)

        if SELF_PATTERN.search(lowered):
            participants.add(SELF_PARTICIPANT)

        named = participants - {SELF_PARTICIPANT}
        if is_action:
            intent = QueryIntent.ACTION_ITEMS
        elif is_schedule:
            intent = QueryIntent.SCHEDULE
        elif named and not keywords:
            intent = QueryIntent.PARTICIPANT_LOOKUP
        else:
            intent = QueryIntent.GENERAL

        confidence = 0.5
        for signal in (intent != QueryIntent.GENERAL, date_range, participants, keywords):
            if signal:
                confidence += 0.1

        analyzed = AnalyzedQuery(
            original_query=raw_query,
            intent=intent,
            keywords=keywords,
            participants=participants,
            date_range=date_range,
            confidence=min(confidence, 1.0),
        )
        logger.info(
            "Analyzed query: intent=%s keywords=%s participants=%s date_range=%s",
            analyzed.intent.value, analyzed.keywords, sorted(analyzed.participants),
            analyzed.date_range,
        )
        return analyzed

    def _extract_date_range(self, lowered: str) -> tuple[DateRange | None, str]:
        for pattern, build in _date_rules(self.today()):
            match = pattern.search(lowered)
            if match:
                return build(match), pattern.sub(" ", lowered)
        return None, lowered


ANALYZER_SYSTEM_PROMPT = """You convert a user's search request over their meetings, action items and calendar into a structured query.

Return a JSON object with exactly these keys:
{
  "intent": "general" | "action_items" | "schedule" | "participant_lookup",
  "keywords": ["lower-cased topic words or multi-word phrases"],
  "participants": ["lower-cased person, team or company names the user met with; use \\"self\\" for the user"],
  "date_range": {"start": "YYYY-MM-DD" or null, "end": "YYYY-MM-DD" or null} or null
}

Rules:
- Today's date is {today}. Resolve relative dates ("last week", "yesterday") against it.
- Keep multi-word names as one phrase ("zen sciences"), never split them
- Do not include filler words, question words or dates in keywords
- Use empty lists and null when a field does not apply
- Return valid JSON only, no markdown or explanation"""


class LLMQueryAnalyzer(QueryAnalyzer):
    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key)
        self.model = model or settings.openai_model
        self.today = today

    async def analyze(self, raw_query: str) -> AnalyzedQuery:
        prompt = ANALYZER_SYSTEM_PROMPT.replace("{today}", self.today().isoformat())
        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": prompt},
                    {"role": "user", "content": raw_query},
                ],
                response_format={"type": "json_object"},
                temperature=0,
            )
        except Exception as e:
            raise QueryAnalysisError(f"Query analyzer call failed: {e}") from e

        raw_text = resp.choices[0].message.content or ""
        try:
            payload = json.loads(raw_text)
            return AnalyzedQuery.model_validate({
                "original_query": raw_query,
                "intent": payload.get("intent") or QueryIntent.GENERAL,
                "keywords": _dedupe([str(k).strip().lower() for k in payload.get("keywords") or []]),
                "participants": {str(p).strip().lower() for p in payload.get("participants") or []},
                "date_range": payload.get("date_range"),
                "confidence": 0.9,
            })
        except (json.JSONDecodeError, AttributeError, ValidationError) as e:
            raise QueryAnalysisError(f"Unparseable analyzer output: {raw_text[:200]!r}") from e


def get_query_analyzer() -> QueryAnalyzer:
    if settings.query_analyzer == "llm" and settings.openai_api_key:
        return LLMQueryAnalyzer()
    return RuleBasedQueryAnalyzer()
