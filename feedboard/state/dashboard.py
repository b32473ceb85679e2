"""
Dashboard container.

Owns the four state slices and the aggregator behind them. One instance is
created per process and handed to whatever drives the dashboard; nothing in
the package reaches for it globally.
"""

import logging
from typing import Any, Iterable, List, Optional

from feedboard.models.content import ContentItem
from feedboard.models.state import FeedState, UserPreferences
from feedboard.pipeline.content_aggregator import ContentAggregator
from feedboard.pipeline.feed_views import TRENDING_LIMIT, filter_feed, project_favorites, trending
from feedboard.services.adapter_factory import AdapterFactory, ProviderSet
from feedboard.state.feed_store import FeedStore
from feedboard.state.preferences_store import PreferencesStore
from feedboard.state.search_store import SearchStore
from feedboard.state.ui_store import UIStore


class DashboardState:
    def __init__(
        self,
        aggregator: ContentAggregator,
        preferences: Optional[UserPreferences] = None,
        guard_stale_responses: bool = True,
    ):
        self.logger = logging.getLogger(__name__)
        self.aggregator = aggregator
        self.feed = FeedStore(aggregator, guard_stale_responses=guard_stale_responses)
        self.preferences = PreferencesStore(preferences)
        self.search = SearchStore(aggregator)
        self.ui = UIStore()

    @classmethod
    def from_config(cls, config) -> "DashboardState":
        """
        Build providers, aggregator and fresh slices from a DashboardConfig.

        Args:
            config: feedboard.main.DashboardConfig

        Returns:
            DashboardState seeded with the configured default categories
        """
        providers = AdapterFactory.create_from_config(config)
        aggregator = ContentAggregator(
            providers,
            call_timeout=config.provider_call_timeout_seconds,
        )
        return cls(
            aggregator,
            preferences=UserPreferences(categories=list(config.default_categories)),
            guard_stale_responses=config.guard_stale_responses,
        )

    @property
    def providers(self) -> ProviderSet:
        return self.aggregator.providers

    async def refresh_feed(self, content_types: Optional[Iterable[Any]] = None) -> FeedState:
        """Page 1 for the current categories."""
        return await self.feed.fetch_page(self.preferences.state.categories, 1, content_types)

    async def update_categories(self, categories: Iterable[str]) -> FeedState:
        """Replace the subscribed categories and reload the feed when any remain."""
        prefs = self.preferences.update_categories(categories)
        if not prefs.categories:
            self.logger.info("No categories selected; keeping the current feed")
            return self.feed.state
        return await self.refresh_feed()

    async def search_content(self, query: str, page: int = 1):
        self.ui.set_search_query(query)
        self.ui.set_search_active(bool(query.strip()))
        return await self.search.perform_search(query, self.preferences.state.categories, page)

    def favorite_items(self) -> List[ContentItem]:
        return project_favorites(self.preferences.favorites, self.feed.feed)

    def trending_items(self, limit: int = TRENDING_LIMIT) -> List[ContentItem]:
        return trending(self.feed.feed, limit)

    def visible_feed(self) -> List[ContentItem]:
        """Feed narrowed by the UI search box."""
        return filter_feed(self.feed.feed, self.ui.state.search_query)

    def move_favorite(self, active_id: str, over_id: Optional[str]) -> bool:
        return self.preferences.move_favorite(active_id, over_id, self.feed.feed)

    async def close(self) -> None:
        await self.providers.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
