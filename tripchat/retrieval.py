"""Fan criteria out into searches and fold the hits into ranked travel items."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence, Tuple

from tripchat.agents.content_classifier import classify_result
from tripchat.agents.query_planner import plan_queries
from tripchat.config import get_settings
from tripchat.errors import ConfigurationError, PerQueryFailure, RetrievalBatchFailure
from tripchat.log import get_logger
from tripchat.schemas import RawSearchResult, TravelItem, TripCriteria
from tripchat.tools.providers import DEFAULT_CATALOG, ProviderCatalog

logger = get_logger(__name__)


class DocumentSearch(Protocol):
    async def search(self, query: str) -> Sequence[RawSearchResult]: ...


@dataclass
class RetrievalOutcome:
    queries: List[str]
    items: List[TravelItem] = field(default_factory=list)
    failures: List[PerQueryFailure] = field(default_factory=list)
    raw_count: int = 0
    unique_count: int = 0


class TravelRetriever:
    """Runs one retrieval batch per call; holds no per-batch state."""

    def __init__(
        self,
        searcher: Optional[DocumentSearch] = None,
        *,
        catalog: ProviderCatalog = DEFAULT_CATALOG,
        query_timeout: Optional[float] = None,
        batch_timeout: Optional[float] = None,
        max_results: Optional[int] = None,
    ):
        settings = get_settings()
        self._searcher = searcher
        self.catalog = catalog
        self.query_timeout = query_timeout or settings.query_timeout
        self.batch_timeout = batch_timeout if batch_timeout is not None else settings.batch_timeout
        self.max_results = max_results or settings.max_results

    @property
    def searcher(self) -> DocumentSearch:
        if self._searcher is None:
            # imported late so tests that inject a searcher never build an HTTP client
            from tripchat.tools.websearch import ExaSearcher

            self._searcher = ExaSearcher(include_domains=self.catalog.allowed_domains)
        return self._searcher

    async def retrieve(self, criteria: TripCriteria) -> List[TravelItem]:
        return (await self.collect(criteria)).items

    async def collect(self, criteria: TripCriteria) -> RetrievalOutcome:
        queries = plan_queries(criteria, self.catalog)
        outcome = RetrievalOutcome(queries=queries)

        batches = await self._search_all(queries, outcome)
        if queries and len(outcome.failures) == len(queries):
            config_errors = [f.cause for f in outcome.failures if isinstance(f.cause, ConfigurationError)]
            if config_errors:
                raise config_errors[0]
            raise RetrievalBatchFailure(outcome.failures)

        # DEDUPE by url, first occurrence in query order wins
        seen_urls = set()
        unique: List[RawSearchResult] = []
        for batch in batches:
            for result in batch:
                outcome.raw_count += 1
                if result.url in seen_urls:
                    continue
                seen_urls.add(result.url)
                unique.append(result)
        outcome.unique_count = len(unique)

        # CLASSIFY
        ranked: List[Tuple[float, TravelItem]] = []
        for result in unique:
            item = classify_result(result, criteria.destination, self.catalog)
            if item is not None:
                ranked.append((result.score, item))

        # RANK (stable, so equal scores keep encounter order)
        ranked.sort(key=lambda pair: pair[0], reverse=True)
        outcome.items = [item for _, item in ranked[: self.max_results]]

        logger.info(
            "Retrieval kept %d of %d travel items (%d raw hits, %d unique, %d/%d queries failed)",
            len(outcome.items),
            len(ranked),
            outcome.raw_count,
            outcome.unique_count,
            len(outcome.failures),
            len(queries),
        )
        return outcome

    async def _search_all(self, queries: List[str], outcome: RetrievalOutcome) -> List[Sequence[RawSearchResult]]:
        if not queries:
            return []
        tasks = [asyncio.ensure_future(self._search_one(q)) for q in queries]
        done, pending = await asyncio.wait(tasks, timeout=self.batch_timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(
                "Batch timeout after %.1fs; proceeding without %d pending queries",
                self.batch_timeout or 0.0,
                len(pending),
            )
            await asyncio.gather(*pending, return_exceptions=True)

        batches: List[Sequence[RawSearchResult]] = []
        for query, task in zip(queries, tasks):
            if task in pending:
                outcome.failures.append(PerQueryFailure(query, asyncio.TimeoutError()))
                continue
            error = task.exception()
            if error is not None:
                failure = error if isinstance(error, PerQueryFailure) else PerQueryFailure(query, error)
                outcome.failures.append(failure)
                continue
            batches.append(task.result())
        return batches

    async def _search_one(self, query: str) -> Sequence[RawSearchResult]:
        try:
            hits = await asyncio.wait_for(self.searcher.search(query), timeout=self.query_timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("Search timed out after %.1fs for query '%s'", self.query_timeout, query)
            raise PerQueryFailure(query, exc) from exc
        except Exception as exc:
            logger.warning("Search failed for query '%s'", query, exc_info=True)
            raise PerQueryFailure(query, exc) from exc
        logger.info("Search query '%s' produced %d hits", query, len(hits))
        return list(hits)
