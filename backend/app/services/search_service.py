from __future__ import annotations

import asyncio
import logging

from app.api.schemas.search import (
    AnalyzedQuery,
    SearchResponse,
    SearchResult,
    SearchStrategy,
)
from app.config import settings
from app.services.exceptions import QueryAnalysisError
from app.services.query_analyzer import QueryAnalyzer
from app.services.search_planner import create_search_plan
from app.services.strategy_executor import StrategyExecutor

logger = logging.getLogger(__name__)


def has_enough_results(count: int, max_results: int) -> bool:
    return count >= max_results


def needs_fallback(count: int, min_yield: int = settings.search_min_yield) -> bool:
    return count < min_yield


def _budget_exhausted(deadline: float | None) -> bool:
    if deadline is None:
        return False
    if asyncio.get_running_loop().time() < deadline:
        return False
    logger.warning("Search budget exhausted, returning partial results")
    return True


class ResultAccumulator:
    """Distinct results in arrival order. The first copy of an id wins."""

    def __init__(self) -> None:
        self._results: dict[str, SearchResult] = {}

    def __len__(self) -> int:
        return len(self._results)

    def add(self, results: list[SearchResult]) -> int:
        added = 0
        for result in results:
            if result.id not in self._results:
                self._results[result.id] = result
                added += 1
        return added

    def ranked(self) -> list[SearchResult]:
        # sorted() is stable, so equal scores keep execution order.
        return sorted(self._results.values(), key=lambda r: r.relevance.score, reverse=True)


class SearchService:
    def __init__(
        self,
        analyzer: QueryAnalyzer,
        executor: StrategyExecutor,
        min_yield: int = settings.search_min_yield,
    ) -> None:
        self.analyzer = analyzer
        self.executor = executor
        self.min_yield = min_yield

    async def search(
        self,
        query: str,
        max_results: int = settings.search_default_max_results,
        timeout_ms: int | None = None,
    ) -> SearchResponse:
        analyzed = await self._analyze(query)
        plan = create_search_plan(analyzed, max_results, today=self.executor.clock().date())
        logger.info(
            "Search plan: %s (fallback: %s)",
            [s.type.value for s in plan.strategies],
            plan.fallback_strategy.type.value if plan.fallback_strategy else None,
        )

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000 if timeout_ms else None

        accumulator = ResultAccumulator()
        executed = 0
        timed_out = False

        for strategy in plan.strategies:
            if has_enough_results(len(accumulator), max_results):
                break
            if _budget_exhausted(deadline):
                timed_out = True
                break
            executed += 1
            results = await self._run_strategy(strategy, analyzed, deadline)
            if results is None:
                timed_out = True
                break
            added = accumulator.add(results)
            logger.info(
                "%s strategy yielded %d results (%d new, %d total)",
                strategy.type.value, len(results), added, len(accumulator),
            )

        fallback = plan.fallback_strategy
        if (
            not timed_out
            and fallback is not None
            and needs_fallback(len(accumulator), self.min_yield)
            and not _budget_exhausted(deadline)
        ):
            executed += 1
            logger.info("Low yield (%d), running fallback strategy", len(accumulator))
            results = await self._run_strategy(fallback, analyzed, deadline)
            if results is not None:
                accumulator.add(results)

        ranked = accumulator.ranked()
        return SearchResponse(
            query=analyzed,
            search_plan=plan,
            results=ranked[:max_results],
            total_found=len(ranked),
            executed_strategies=executed,
        )

    async def _analyze(self, query: str) -> AnalyzedQuery:
        try:
            return await self.analyzer.analyze(query)
        except QueryAnalysisError:
            raise
        except Exception as e:
            raise QueryAnalysisError(f"Query analysis failed: {e}") from e

    async def _run_strategy(
        self,
        strategy: SearchStrategy,
        analyzed: AnalyzedQuery,
        deadline: float | None,
    ) -> list[SearchResult] | None:
        """Execute one strategy. Returns None when the time budget ran out."""
        timeout = None
        if deadline is not None:
            timeout = max(deadline - asyncio.get_running_loop().time(), 0)

        try:
            return await asyncio.wait_for(self.executor.execute(strategy, analyzed), timeout)
        except asyncio.TimeoutError:
            logger.warning("%s strategy timed out, returning partial results", strategy.type.value)
            return None
        except Exception:
            logger.exception("%s strategy failed, continuing with the plan", strategy.type.value)
            return []
