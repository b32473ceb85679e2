import asyncio
import logging
from typing import Awaitable, Dict, Iterable, List, Any, Optional, Tuple
from dataclasses import dataclass

from feedboard.models.content import ALL_CONTENT_TYPES, ContentItem, ContentType, ProviderResponse
from feedboard.services.adapter_factory import ProviderSet
from feedboard.services.movie_service import is_known_genre
from feedboard.utils.logging_config import PerformanceTracker, log_pipeline_metrics, log_provider_call
from feedboard.utils.timestamps import recency_key

DEFAULT_CALL_TIMEOUT_SECONDS = 15.0
# Search results stop paginating after this page regardless of providers
SEARCH_PAGE_LIMIT = 3
ALL_PROVIDERS_FAILED = "All content providers failed"


@dataclass
class ProviderCallResult:
    """Outcome of one adapter call within an aggregation run"""
    provider: str
    operation: str
    page: int
    item_count: int
    fetch_time: float
    error: Optional[str] = None


def sort_by_recency(items: Iterable[ContentItem]) -> List[ContentItem]:
    """Newest first. Stable: items with equal timestamps keep input order."""
    return sorted(items, key=lambda item: recency_key(item.published_at), reverse=True)


def merge_responses(responses: List[ProviderResponse]) -> ProviderResponse:
    """
    Fan-in step shared by feed and search aggregation.

    Failed and empty responses are discarded. The survivors' articles are
    concatenated in call order and sorted newest first; ``has_more`` is the OR
    and ``total_results`` the sum over survivors. When every response failed
    the result is empty and carries an error.
    """
    successful = [r for r in responses if not r.failed and r.articles]

    if not successful:
        all_failed = bool(responses) and all(r.failed for r in responses)
        return ProviderResponse.empty(error=ALL_PROVIDERS_FAILED if all_failed else None)

    articles: List[ContentItem] = []
    for response in successful:
        articles.extend(response.articles)

    return ProviderResponse(
        articles=sort_by_recency(articles),
        has_more=any(r.has_more for r in successful),
        total_results=sum(r.total_results for r in successful),
    )


class ContentAggregator:
    """
    Concurrent provider fan-out with fail-soft merging.

    Every adapter call for a request is started before any is awaited, and
    the merge only runs once all of them have settled. A failing or slow
    provider yields an empty page; it never blocks or aborts the others.
    """

    def __init__(
        self,
        providers: ProviderSet,
        call_timeout: float = DEFAULT_CALL_TIMEOUT_SECONDS,
    ) -> None:
        self.providers = providers
        self.call_timeout = call_timeout
        self.logger = logging.getLogger(__name__)

        # Per-call outcomes of the most recent run
        self._fetch_stats: List[ProviderCallResult] = []

    async def get_all_content(
        self,
        categories: Optional[List[str]],
        page: int = 1,
        content_types: Optional[Iterable[Any]] = None,
    ) -> ProviderResponse:
        """
        Fetch one merged page across the requested content types.

        Args:
            categories: Dashboard categories; news is skipped when empty
            page: 1-based page number
            content_types: Subset of news/movie/social; all when None

        Returns:
            Merged ProviderResponse sorted newest first. Never raises for
            provider failures; raises ValueError for invalid arguments.
        """
        categories = self._validate_categories(categories)
        self._validate_page(page)
        types = self._parse_content_types(content_types)

        calls = self._plan_feed_calls(categories, page, types)
        if not calls:
            self.logger.info(f"No provider calls for types={sorted(t.value for t in types)} categories={categories}")
            self._fetch_stats = []
            return ProviderResponse.empty()

        with PerformanceTracker(f"get_all_content page {page}", self.logger) as tracker:
            responses = await self._fan_out(calls, page)
            merged = merge_responses(responses)

        self._log_merge("feed_merge", responses, merged, tracker.duration_ms, page)
        return merged

    async def search_all_content(
        self,
        query: str,
        categories: Optional[List[str]] = None,
        page: int = 1,
    ) -> ProviderResponse:
        """
        Search every provider and keep only items whose title or description
        contains ``query`` (case-insensitive).
        """
        if not isinstance(query, str) or not query.strip():
            raise ValueError("Search query must be a non-empty string")
        query = query.strip()
        categories = self._validate_categories(categories)
        self._validate_page(page)

        calls = [
            ("news", "search", self.providers.news.search(query, categories, page)),
            ("movies", "search", self.providers.movies.search(query, page)),
            ("social", "search", self.providers.social.search(query, categories, page)),
        ]

        with PerformanceTracker(f"search_all_content '{query}' page {page}", self.logger) as tracker:
            responses = await self._fan_out(calls, page)
            merged = merge_responses(responses)

        # Provider search is approximate; filter again locally
        matching = [item for item in merged.articles if item.matches(query)]
        result = ProviderResponse(
            articles=matching,
            has_more=merged.has_more and page < SEARCH_PAGE_LIMIT,
            total_results=len(matching),
            error=merged.error,
        )

        self._log_merge("search_merge", responses, result, tracker.duration_ms, page, query=query)
        return result

    def _plan_feed_calls(
        self,
        categories: List[str],
        page: int,
        types: frozenset,
    ) -> List[Tuple[str, str, Awaitable[ProviderResponse]]]:
        calls: List[Tuple[str, str, Awaitable[ProviderResponse]]] = []

        if ContentType.NEWS in types:
            if categories:
                calls.append(("news", "top_headlines", self.providers.news.fetch_page(categories, page)))
            else:
                self.logger.debug("Skipping news: no categories selected")

        if ContentType.MOVIE in types:
            calls.append(("movies", "trending", self.providers.movies.fetch_page(categories, page)))
            genre = next((c for c in categories if is_known_genre(c)), None)
            if genre:
                calls.append(("genre_movies", "discover", self.providers.genre_movies.fetch_page(genre, page)))

        if ContentType.SOCIAL in types:
            calls.append(("social", "feed", self.providers.social.fetch_page(categories, page)))

        return calls

    async def _fan_out(
        self,
        calls: List[Tuple[str, str, Awaitable[ProviderResponse]]],
        page: int,
    ) -> List[ProviderResponse]:
        """Start every call, then wait for all of them to settle."""
        tasks = [
            asyncio.create_task(self._settle(name, operation, page, call))
            for name, operation, call in calls
        ]
        self.logger.info(f"Fanned out {len(tasks)} provider calls for page {page}")

        results = await asyncio.gather(*tasks, return_exceptions=True)

        stats: List[ProviderCallResult] = []
        responses: List[ProviderResponse] = []
        for (name, operation, _), result in zip(calls, results):
            if isinstance(result, BaseException):
                # _settle already converts failures; this only catches cancellation races
                self.logger.error(f"Provider call {name}.{operation} raised: {result!r}")
                result = (ProviderResponse.empty(error=str(result)), 0.0)
            response, fetch_time = result
            responses.append(response)
            stats.append(ProviderCallResult(
                provider=name,
                operation=operation,
                page=page,
                item_count=len(response.articles),
                fetch_time=fetch_time,
                error=response.error,
            ))

        self._fetch_stats = stats
        return responses

    async def _settle(
        self,
        name: str,
        operation: str,
        page: int,
        call: Awaitable[ProviderResponse],
    ) -> Tuple[ProviderResponse, float]:
        """Await one adapter call under the per-call timeout; never raises."""
        start = asyncio.get_running_loop().time()
        try:
            response = await asyncio.wait_for(call, timeout=self.call_timeout)
            if not isinstance(response, ProviderResponse):
                raise TypeError(f"{name} returned {type(response).__name__}, expected ProviderResponse")
        except Exception as e:
            error_context = self.providers.error_handler.handle_error(
                e, name, operation, {"page": page}
            )
            response = ProviderResponse.empty(error=error_context.user_message)

        elapsed = asyncio.get_running_loop().time() - start
        log_provider_call(
            self.logger, name, operation, len(response.articles), elapsed * 1000, response.error, page=page
        )
        return response, elapsed

    def _log_merge(
        self,
        stage: str,
        responses: List[ProviderResponse],
        merged: ProviderResponse,
        duration_ms: float,
        page: int,
        **extra,
    ) -> None:
        input_count = sum(len(r.articles) for r in responses)
        failed = sum(1 for r in responses if r.failed)
        log_pipeline_metrics(
            self.logger,
            stage,
            input_count,
            len(merged.articles),
            duration_ms,
            page=page,
            providers=len(responses),
            failed_providers=failed,
            has_more=merged.has_more,
            total_results=merged.total_results,
            **extra,
        )
        if merged.error:
            self.logger.error(f"{stage}: every provider failed on page {page}")

    @staticmethod
    def _validate_categories(categories: Optional[List[str]]) -> List[str]:
        if categories is None:
            return []
        if isinstance(categories, str) or not all(isinstance(c, str) for c in categories):
            raise ValueError("categories must be a list of strings")
        return [c for c in categories if c.strip()]

    @staticmethod
    def _validate_page(page: int) -> None:
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise ValueError(f"page must be a positive integer, got {page!r}")

    @staticmethod
    def _parse_content_types(content_types: Optional[Iterable[Any]]) -> frozenset:
        if content_types is None:
            return ALL_CONTENT_TYPES
        if isinstance(content_types, (str, ContentType)):
            content_types = [content_types]
        return frozenset(ContentType.parse(t) for t in content_types)

    def get_fetch_statistics(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {"sources": {}, "total_errors": 0}
        for fr in self._fetch_stats:
            src_stats = stats["sources"].setdefault(fr.provider, {"count": 0, "items": 0, "time": 0.0, "errors": 0})
            src_stats["count"] += 1
            src_stats["items"] += fr.item_count
            src_stats["time"] += float(fr.fetch_time)
            if fr.error:
                src_stats["errors"] += 1
                stats["total_errors"] += 1
        return stats
