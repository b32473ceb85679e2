import asyncio
from unittest.mock import AsyncMock

import pytest

from feedboard.models.content import ContentType, ProviderResponse
from feedboard.pipeline.content_aggregator import (
    ALL_PROVIDERS_FAILED,
    ContentAggregator,
    merge_responses,
    sort_by_recency,
)
from feedboard.utils.timestamps import recency_key


def _response(items, has_more=False, total=None):
    return ProviderResponse(articles=items, has_more=has_more, total_results=len(items) if total is None else total)


@pytest.fixture
def aggregator(mock_providers):
    return ContentAggregator(mock_providers, call_timeout=0.2)


@pytest.fixture
def three_providers(mock_providers, make_item):
    """News, trending movies and social each returning two items."""
    mock_providers.news.fetch_page = AsyncMock(return_value=_response([
        make_item("news-1", "2024-03-15T09:00:00Z"),
        make_item("news-2", "2024-03-14T09:00:00Z"),
    ], has_more=True, total=40))
    mock_providers.movies.fetch_page = AsyncMock(return_value=_response([
        make_item("movie-1", "2024-03-15", ContentType.MOVIE),
        make_item("movie-2", "2024-03-10", ContentType.MOVIE),
    ], has_more=False, total=200))
    mock_providers.social.fetch_page = AsyncMock(return_value=_response([
        make_item("social-1", "2024-03-15T11:00:00Z", ContentType.SOCIAL),
        make_item("social-2", "2024-03-13T11:00:00Z", ContentType.SOCIAL),
    ], has_more=False, total=50))
    return mock_providers


def _assert_newest_first(items):
    keys = [recency_key(item.published_at) for item in items]
    assert keys == sorted(keys, reverse=True)


class TestMergeResponses:
    """Fan-in"""

    def test_stable_for_equal_timestamps(self, make_item):
        a = make_item("a", "2024-03-15T10:00:00Z")
        b = make_item("b", "2024-03-15T10:00:00Z")
        c = make_item("c", "2024-03-15T10:00:00Z")
        merged = merge_responses([_response([a, b]), _response([c])])
        assert [item.id for item in merged.articles] == ["a", "b", "c"]

    def test_unparseable_timestamps_sort_last(self, make_item):
        items = sort_by_recency([make_item("bad", "soon"), make_item("old", "2001-01-01")])
        assert [item.id for item in items] == ["old", "bad"]

    def test_failed_and_empty_responses_are_discarded(self, make_item):
        merged = merge_responses([
            ProviderResponse.empty(error="down"),
            ProviderResponse(articles=[], has_more=True, total_results=99),
            _response([make_item("a")], has_more=False, total=5),
        ])
        assert [item.id for item in merged.articles] == ["a"]
        assert merged.has_more is False
        assert merged.total_results == 5
        assert merged.error is None

    def test_all_failed_carries_error(self):
        merged = merge_responses([ProviderResponse.empty(error="x"), ProviderResponse.empty(error="y")])
        assert merged.to_dict() == {"articles": [], "hasMore": False, "totalResults": 0}
        assert merged.error == ALL_PROVIDERS_FAILED

    def test_all_empty_is_not_an_error(self):
        merged = merge_responses([ProviderResponse.empty(), ProviderResponse.empty(error="x")])
        assert merged.error is None

    def test_no_responses(self):
        assert merge_responses([]) == ProviderResponse.empty()


class TestGetAllContent:
    """Feed aggregation"""

    def test_three_providers_succeed(self, aggregator, three_providers):
        response = asyncio.run(aggregator.get_all_content(["technology"], 1, ["news", "movie", "social"]))

        assert len(response.articles) == 6
        _assert_newest_first(response.articles)
        assert [item.id for item in response.articles] == [
            "social-1", "news-1", "movie-1", "news-2", "social-2", "movie-2",
        ]
        assert response.total_results == 290
        assert response.has_more is True
        # technology is not a movie genre: exactly three calls
        three_providers.genre_movies.fetch_page.assert_not_called()

    def test_news_timeout_keeps_other_providers(self, aggregator, three_providers):
        async def hang(*args, **kwargs):
            await asyncio.sleep(10)

        three_providers.news.fetch_page = hang

        response = asyncio.run(aggregator.get_all_content(["technology"], 1))

        assert len(response.articles) == 4
        assert {item.type for item in response.articles} == {ContentType.MOVIE, ContentType.SOCIAL}
        assert response.has_more is False
        assert response.total_results == 250
        assert response.error is None
        assert three_providers.error_handler.error_counts["timeout"] == 1

    def test_adapter_exception_is_contained(self, aggregator, three_providers):
        three_providers.movies.fetch_page = AsyncMock(side_effect=RuntimeError("bug in adapter"))
        response = asyncio.run(aggregator.get_all_content(["technology"], 1))
        assert len(response.articles) == 4

    def test_out_of_range_timestamp_sorts_last(self, aggregator, mock_providers, make_item):
        mock_providers.social.fetch_page = AsyncMock(return_value=_response([
            make_item("social-old", "0001-01-01T00:00:00+05:00", ContentType.SOCIAL),
        ]))
        mock_providers.news.fetch_page = AsyncMock(return_value=_response([
            make_item("news-1", "2024-03-15T09:00:00Z"),
        ]))

        response = asyncio.run(aggregator.get_all_content(["technology"], 1))

        assert [item.id for item in response.articles] == ["news-1", "social-old"]
        assert response.error is None

    def test_every_provider_failing_does_not_raise(self, aggregator, mock_providers):
        for adapter in (mock_providers.news, mock_providers.movies, mock_providers.social):
            adapter.fetch_page = AsyncMock(return_value=ProviderResponse.empty(error="down"))

        response = asyncio.run(aggregator.get_all_content(["technology"], 1))

        assert response.articles == []
        assert response.has_more is False
        assert response.total_results == 0
        assert response.failed

    def test_calls_are_issued_before_any_is_awaited(self, aggregator, mock_providers):
        started = []
        release = asyncio.Event()

        def adapter_call(name):
            async def call(*args, **kwargs):
                started.append(name)
                await release.wait()
                return ProviderResponse.empty()
            return call

        async def release_when_all_started():
            while len(started) < 3:
                await asyncio.sleep(0)
            release.set()

        mock_providers.news.fetch_page = adapter_call("news")
        mock_providers.movies.fetch_page = adapter_call("movies")
        mock_providers.social.fetch_page = adapter_call("social")

        async def run():
            releaser = asyncio.create_task(release_when_all_started())
            result = await aggregator.get_all_content(["technology"], 1)
            await releaser
            return result

        asyncio.run(run())
        assert sorted(started) == ["movies", "news", "social"]

    def test_empty_categories_skip_news(self, aggregator, mock_providers):
        asyncio.run(aggregator.get_all_content([], 1))
        mock_providers.news.fetch_page.assert_not_called()
        mock_providers.movies.fetch_page.assert_awaited_once()
        mock_providers.social.fetch_page.assert_awaited_once()

    def test_genre_category_adds_secondary_movie_call(self, aggregator, mock_providers):
        asyncio.run(aggregator.get_all_content(["technology", "Comedy", "horror"], 2, ["movie"]))
        mock_providers.genre_movies.fetch_page.assert_awaited_once_with("Comedy", 2)
        mock_providers.news.fetch_page.assert_not_called()
        mock_providers.social.fetch_page.assert_not_called()

    def test_types_subset(self, aggregator, mock_providers):
        asyncio.run(aggregator.get_all_content(["technology"], 3, [ContentType.SOCIAL]))
        mock_providers.social.fetch_page.assert_awaited_once_with(["technology"], 3)
        mock_providers.movies.fetch_page.assert_not_called()

    def test_no_types_means_no_calls(self, aggregator, mock_providers):
        response = asyncio.run(aggregator.get_all_content(["technology"], 1, []))
        assert response == ProviderResponse.empty()
        assert aggregator.get_fetch_statistics() == {"sources": {}, "total_errors": 0}

    @pytest.mark.parametrize("kwargs", [
        {"categories": "technology"},
        {"categories": ["technology", 3]},
        {"page": 0},
        {"page": "2"},
        {"page": True},
        {"content_types": ["podcast"]},
    ])
    def test_contract_violations_raise(self, aggregator, kwargs):
        arguments = {"categories": ["technology"], "page": 1, "content_types": None}
        arguments.update(kwargs)
        with pytest.raises(ValueError):
            asyncio.run(aggregator.get_all_content(**arguments))

    def test_fetch_statistics(self, aggregator, three_providers):
        three_providers.news.fetch_page = AsyncMock(return_value=ProviderResponse.empty(error="down"))
        asyncio.run(aggregator.get_all_content(["technology"], 1))

        stats = aggregator.get_fetch_statistics()
        assert set(stats["sources"]) == {"news", "movies", "social"}
        assert stats["sources"]["movies"]["items"] == 2
        assert stats["sources"]["news"]["errors"] == 1
        assert stats["total_errors"] == 1


class TestSearchAllContent:
    """Search aggregation"""

    def test_rocket_query_keeps_single_match(self, aggregator, mock_providers, make_item):
        mock_providers.news.search = AsyncMock(return_value=_response([
            make_item("n1", title="Markets rally", description="Stocks climb"),
            make_item("n2", title="Launch", description="A Rocket reaches orbit"),
        ]))
        mock_providers.movies.search = AsyncMock(return_value=_response([
            make_item("m1", content_type=ContentType.MOVIE, title="Space drama", description="Astronauts"),
        ]))

        response = asyncio.run(aggregator.search_all_content("rocket", ["science"], 1))

        assert [item.id for item in response.articles] == ["n2"]
        assert response.total_results == 1
        mock_providers.news.search.assert_awaited_once_with("rocket", ["science"], 1)
        mock_providers.movies.search.assert_awaited_once_with("rocket", 1)
        mock_providers.social.search.assert_awaited_once_with("rocket", ["science"], 1)

    def test_has_more_stops_at_page_three(self, aggregator, mock_providers, make_item):
        mock_providers.news.search = AsyncMock(return_value=_response(
            [make_item("n1", title="rocket")], has_more=True,
        ))
        assert asyncio.run(aggregator.search_all_content("rocket", page=2)).has_more is True
        assert asyncio.run(aggregator.search_all_content("rocket", page=3)).has_more is False

    def test_non_string_description_does_not_break_filter(self, aggregator, mock_providers, make_item):
        mock_providers.news.search = AsyncMock(return_value=_response([
            make_item("n1", title="Rocket launch", description=["list"]),
            make_item("n2", title="Markets", description=None),
        ]))

        response = asyncio.run(aggregator.search_all_content("rocket"))

        assert [item.id for item in response.articles] == ["n1"]

    def test_blank_query_raises(self, aggregator):
        with pytest.raises(ValueError):
            asyncio.run(aggregator.search_all_content("   "))

    def test_all_failed_search_carries_error(self, aggregator, mock_providers):
        for adapter in (mock_providers.news, mock_providers.movies, mock_providers.social):
            adapter.search = AsyncMock(return_value=ProviderResponse.empty(error="down"))
        response = asyncio.run(aggregator.search_all_content("rocket"))
        assert response.articles == []
        assert response.failed
