"""
Simulated social media provider.

There is no real upstream: posts are generated per call. The provider adds
bounded random latency and a small random failure probability so the
aggregator's partial-failure path gets exercised. Randomness, the clock and
the sleep function are all injectable so tests can force either path.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Tuple

from feedboard.models.content import ContentItem, ContentType, ProviderResponse
from feedboard.utils.error_monitoring import ErrorHandler, ProviderUnavailableError
from feedboard.utils.timestamps import hours_ago, isoformat_utc, utc_now

logger = logging.getLogger(__name__)

PLATFORMS = ['Twitter', 'Instagram', 'LinkedIn', 'Facebook', 'TikTok']
SEARCH_PLATFORMS = ['Twitter', 'Instagram', 'LinkedIn']
POST_TYPES = [
    '🔥 Hot take', '💡 Insight', '🎯 Update', '📊 Analysis', '🚀 News',
    '💭 Opinion', '🎉 Celebration', '🔍 Deep dive', '⚡ Breaking', '🎪 Trending',
]

DEFAULT_HASHTAG = "technology"
ITEMS_PER_PAGE = 10


@dataclass
class SimulationProfile:
    """Shape of one simulated endpoint."""
    posts_per_call: int
    latency_ms: Tuple[int, int]
    failure_rate: float
    max_age_hours: int
    page_limit: int
    total_results: int


FEED_PROFILE = SimulationProfile(
    posts_per_call=12, latency_ms=(300, 800), failure_rate=0.02,
    max_age_hours=72, page_limit=5, total_results=50,
)
SEARCH_PROFILE = SimulationProfile(
    posts_per_call=8, latency_ms=(200, 600), failure_rate=0.01,
    max_age_hours=48, page_limit=3, total_results=25,
)


class MockSocialService:
    """
    Generates social posts for a hashtag or a search query.

    Args:
        rng: Source of randomness; pass ``random.Random(seed)`` for determinism
        sleep: Coroutine function used for simulated latency
        clock: Returns the current aware datetime, used for post timestamps
        failure_rate: Overrides the feed failure probability
        search_failure_rate: Overrides the search failure probability
    """

    service_name = "Social"

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        failure_rate: Optional[float] = None,
        search_failure_rate: Optional[float] = None,
        error_handler: Optional[ErrorHandler] = None,
    ):
        self.rng = rng or random.Random()
        self.sleep = sleep or asyncio.sleep
        self.clock = clock or utc_now
        self.error_handler = error_handler or ErrorHandler()
        self.logger = logger

        self.feed_profile = FEED_PROFILE if failure_rate is None else replace(FEED_PROFILE, failure_rate=failure_rate)
        self.search_profile = SEARCH_PROFILE if search_failure_rate is None else replace(
            SEARCH_PROFILE, failure_rate=search_failure_rate
        )

    async def fetch_page(self, hashtags: List[str], page: int = 1) -> ProviderResponse:
        """Posts about the first hashtag. Never raises."""
        try:
            await self._simulate_network(self.feed_profile, "Social media service temporarily unavailable")
        except ProviderUnavailableError as e:
            return self._record_failure(e, "feed", {"hashtags": list(hashtags), "page": page})

        category = hashtags[0] if hashtags else DEFAULT_HASHTAG
        posts = [
            self._make_post(category, page, index)
            for index in range(self.feed_profile.posts_per_call)
        ]
        return self._paginate(posts, page, self.feed_profile)

    async def search(self, query: str, hashtags: Optional[List[str]] = None, page: int = 1) -> ProviderResponse:
        """Posts matching ``query``. Never raises."""
        try:
            await self._simulate_network(self.search_profile, "Social search temporarily unavailable")
        except ProviderUnavailableError as e:
            return self._record_failure(e, "search", {"query": query, "page": page})

        category = hashtags[0] if hashtags else query
        posts = [
            self._make_search_post(query, category, page, index)
            for index in range(self.search_profile.posts_per_call)
        ]
        return self._paginate(posts, page, self.search_profile)

    async def _simulate_network(self, profile: SimulationProfile, failure_message: str) -> None:
        low, high = profile.latency_ms
        delay_ms = low + self.rng.random() * (high - low)
        await self.sleep(delay_ms / 1000.0)

        if self.rng.random() < profile.failure_rate:
            raise ProviderUnavailableError(failure_message, service=self.service_name)

    def _record_failure(self, error: Exception, operation: str, context: dict) -> ProviderResponse:
        error_context = self.error_handler.handle_error(error, self.service_name, operation, context)
        return ProviderResponse.empty(error=error_context.user_message)

    def _timestamp(self, max_age_hours: int) -> str:
        return isoformat_utc(hours_ago(self.clock(), self.rng.random() * max_age_hours))

    def _make_post(self, category: str, page: int, index: int) -> ContentItem:
        platform = self.rng.choice(PLATFORMS)
        post_type = self.rng.choice(POST_TYPES)
        engagement = self.rng.randint(100, 5099)
        comments = self.rng.randint(10, 509)

        return ContentItem(
            id=f"social-{category}-{page}-{index}",
            type=ContentType.SOCIAL,
            title=f"{post_type}: {category} is revolutionizing the industry",
            description=(
                f"Engaging discussion about {category} with {engagement} likes, {comments} comments "
                f"and growing engagement. Community insights and expert opinions on the latest "
                f"developments in {category}. Join the conversation!"
            ),
            image_url=f"https://picsum.photos/400/400?social={page * 10 + index}",
            url="#",
            category=category,
            published_at=self._timestamp(self.feed_profile.max_age_hours),
            source=platform,
        )

    def _make_search_post(self, query: str, category: str, page: int, index: int) -> ContentItem:
        platform = self.rng.choice(SEARCH_PLATFORMS)
        engagement = self.rng.randint(50, 2049)

        return ContentItem(
            id=f"social-search-{query}-{page}-{index}",
            type=ContentType.SOCIAL,
            title=f"Search result: {query} discussion trending now",
            description=(
                f'Found relevant content about "{query}" with {engagement} interactions. '
                f"This post matches your search criteria and includes valuable insights from the community."
            ),
            image_url=f"https://picsum.photos/400/400?search={query}{index}",
            url="#",
            category=category,
            published_at=self._timestamp(self.search_profile.max_age_hours),
            source=f"{platform} Search",
        )

    def _paginate(self, posts: List[ContentItem], page: int, profile: SimulationProfile) -> ProviderResponse:
        start = (page - 1) * ITEMS_PER_PAGE
        window = posts[start:start + ITEMS_PER_PAGE]
        self.logger.info(f"Social page {page}: {len(window)} posts")
        return ProviderResponse(
            articles=window,
            has_more=page < profile.page_limit,
            total_results=profile.total_results,
        )
