"""Shared fixtures for the feedboard test suite."""

import random
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytz

from feedboard.models.content import ContentItem, ContentType, ProviderResponse
from feedboard.services.adapter_factory import ProviderSet
from feedboard.services.social_service import MockSocialService
from feedboard.utils.error_monitoring import ErrorHandler


FIXED_NOW = datetime(2024, 3, 15, 12, 0, 0, tzinfo=pytz.UTC)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def make_item():
    """Factory for ContentItems with sensible defaults."""
    def _make(
        item_id,
        published_at="2024-03-15T10:00:00Z",
        content_type=ContentType.NEWS,
        title=None,
        description="",
        category="technology",
        source="Test Source",
    ):
        return ContentItem(
            id=item_id,
            type=content_type,
            title=title or f"Item {item_id}",
            description=description,
            category=category,
            published_at=published_at,
            source=source,
        )
    return _make


@pytest.fixture
def error_handler():
    return ErrorHandler()


@pytest.fixture
def mock_providers(error_handler):
    """ProviderSet whose adapters are AsyncMocks returning empty pages."""
    providers = ProviderSet(
        news=MagicMock(),
        movies=MagicMock(),
        genre_movies=MagicMock(),
        social=MagicMock(),
        error_handler=error_handler,
    )
    for adapter in (providers.news, providers.movies, providers.genre_movies, providers.social):
        adapter.fetch_page = AsyncMock(return_value=ProviderResponse.empty())
        adapter.search = AsyncMock(return_value=ProviderResponse.empty())
        adapter.close_session = AsyncMock()
    return providers


async def _no_sleep(_seconds):
    return None


@pytest.fixture
def no_sleep():
    return _no_sleep


@pytest.fixture
def seeded_social(fixed_now, error_handler):
    """Deterministic social provider that never fails."""
    return MockSocialService(
        rng=random.Random(42),
        sleep=_no_sleep,
        clock=lambda: fixed_now,
        failure_rate=0.0,
        search_failure_rate=0.0,
        error_handler=error_handler,
    )
