#!/usr/bin/env python3
"""
Adapter Factory

Builds the set of provider adapters the ContentAggregator fans out to. All
adapters share one ErrorHandler so provider failures can be inspected in one
place.
"""

import logging
import os
import random
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from feedboard.services.movie_service import TmdbGenreService, TmdbTrendingService
from feedboard.services.news_service import NewsService
from feedboard.services.provider_client import DEFAULT_TIMEOUT_SECONDS
from feedboard.services.social_service import MockSocialService
from feedboard.utils.error_monitoring import ErrorHandler


@dataclass
class ProviderSet:
    """The adapters behind one aggregator."""
    news: NewsService
    movies: TmdbTrendingService
    genre_movies: TmdbGenreService
    social: MockSocialService
    error_handler: ErrorHandler = field(default_factory=ErrorHandler)

    async def close(self) -> None:
        """Close HTTP sessions held by the network-backed adapters."""
        for adapter in (self.news, self.movies, self.genre_movies):
            try:
                await adapter.close_session()
            except Exception as e:
                logging.getLogger(__name__).warning(f"Error closing {adapter.service_name} session: {e}")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def get_metrics(self) -> Dict[str, Any]:
        return {
            "news_enabled": self.news.enabled,
            "movies_enabled": self.movies.enabled,
            "genre_movies_enabled": self.genre_movies.enabled,
            **self.error_handler.get_error_statistics(),
        }


class AdapterFactory:
    """
    Factory for the dashboard's provider adapters.

    Missing API keys never fail construction: the affected adapter logs a
    warning and every call to it returns an empty, fail-soft page.
    """

    @staticmethod
    def create(
        news_api_key: Optional[str] = None,
        tmdb_api_key: Optional[str] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        social_seed: Optional[int] = None,
        social_failure_rate: Optional[float] = None,
        social_search_failure_rate: Optional[float] = None,
    ) -> ProviderSet:
        logger = logging.getLogger(__name__)
        error_handler = ErrorHandler()

        rng = random.Random(social_seed) if social_seed is not None else random.Random()
        if social_seed is not None:
            logger.info(f"Social provider seeded with {social_seed}")

        providers = ProviderSet(
            news=NewsService(api_key=news_api_key, timeout_seconds=timeout_seconds, error_handler=error_handler),
            movies=TmdbTrendingService(api_key=tmdb_api_key, timeout_seconds=timeout_seconds, error_handler=error_handler),
            genre_movies=TmdbGenreService(api_key=tmdb_api_key, timeout_seconds=timeout_seconds, error_handler=error_handler),
            social=MockSocialService(
                rng=rng,
                failure_rate=social_failure_rate,
                search_failure_rate=social_search_failure_rate,
                error_handler=error_handler,
            ),
            error_handler=error_handler,
        )
        logger.info(
            f"Providers ready (news={'on' if providers.news.enabled else 'off'}, "
            f"movies={'on' if providers.movies.enabled else 'off'}, social=simulated)"
        )
        return providers

    @staticmethod
    def create_from_config(config) -> ProviderSet:
        """
        Create adapters from a DashboardConfig.

        Args:
            config: feedboard.main.DashboardConfig

        Returns:
            ProviderSet wired with one shared ErrorHandler
        """
        return AdapterFactory.create(
            news_api_key=config.news_api_key,
            tmdb_api_key=config.tmdb_api_key,
            timeout_seconds=config.request_timeout_seconds,
            social_seed=config.social_mock_seed,
            social_failure_rate=config.social_failure_rate,
            social_search_failure_rate=config.social_search_failure_rate,
        )

    @staticmethod
    def create_from_environment() -> ProviderSet:
        """
        Create adapters straight from environment variables.

        Environment variables:
        - NEWS_API_KEY: NewsAPI key
        - TMDB_API_KEY: TMDB v3 API key
        - SOCIAL_MOCK_SEED: integer seed for the simulated social provider
        """
        seed = os.getenv("SOCIAL_MOCK_SEED")
        return AdapterFactory.create(
            news_api_key=os.getenv("NEWS_API_KEY"),
            tmdb_api_key=os.getenv("TMDB_API_KEY"),
            social_seed=int(seed) if seed and seed.strip().lstrip('-').isdigit() else None,
        )
