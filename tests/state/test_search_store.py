import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from feedboard.models.content import ProviderResponse
from feedboard.models.state import SearchState
from feedboard.state.search_store import SEARCH_ERROR_MESSAGE, SearchStore


@pytest.fixture
def aggregator():
    aggregator = MagicMock()
    aggregator.search_all_content = AsyncMock(return_value=ProviderResponse.empty())
    return aggregator


class TestPerformSearch:
    """Search lifecycle"""

    def test_results_replace_previous(self, aggregator, make_item):
        aggregator.search_all_content = AsyncMock(side_effect=[
            ProviderResponse([make_item("r1")], has_more=True),
            ProviderResponse([make_item("r2")], has_more=False),
        ])
        store = SearchStore(aggregator)

        asyncio.run(store.perform_search("rocket", ["science"]))
        assert [item.id for item in store.state.results] == ["r1"]
        assert store.state.query == "rocket"
        assert store.state.has_more is True

        asyncio.run(store.perform_search("moon"))
        assert [item.id for item in store.state.results] == ["r2"]
        assert store.state.loading is False
        aggregator.search_all_content.assert_awaited_with("moon", [], 1)

    def test_blank_query_clears(self, aggregator, make_item):
        store = SearchStore(aggregator, initial=SearchState(results=[make_item("old")], query="old"))
        asyncio.run(store.perform_search("   "))
        assert store.state.results == []
        assert store.state.query == ""
        aggregator.search_all_content.assert_not_called()

    def test_all_failed(self, aggregator):
        aggregator.search_all_content = AsyncMock(return_value=ProviderResponse.empty(error="down"))
        store = SearchStore(aggregator)
        asyncio.run(store.perform_search("rocket"))
        assert store.state.error == SEARCH_ERROR_MESSAGE
        assert store.state.loading is False

    def test_unexpected_exception(self, aggregator):
        aggregator.search_all_content = AsyncMock(side_effect=RuntimeError("boom"))
        store = SearchStore(aggregator)
        asyncio.run(store.perform_search("rocket"))
        assert store.state.error == SEARCH_ERROR_MESSAGE

    def test_superseded_search_is_dropped(self, aggregator, make_item):
        release_first = asyncio.Event()

        async def search(query, categories, page):
            if query == "first":
                await release_first.wait()
                return ProviderResponse([make_item("old")])
            return ProviderResponse([make_item("new")])

        aggregator.search_all_content = search
        store = SearchStore(aggregator)

        async def run():
            first = asyncio.create_task(store.perform_search("first"))
            await asyncio.sleep(0)
            await store.perform_search("second")
            release_first.set()
            await first

        asyncio.run(run())
        assert [item.id for item in store.state.results] == ["new"]
        assert store.state.query == "second"


class TestClearAndQuery:
    """Synchronous search actions"""

    def test_clear_search(self, aggregator, make_item):
        store = SearchStore(aggregator, initial=SearchState(results=[make_item("a")], query="a", error="x"))
        store.clear_search()
        assert store.state.results == []
        assert store.state.query == ""
        assert store.state.error is None

    def test_set_query(self, aggregator):
        store = SearchStore(aggregator)
        store.set_query("roc")
        assert store.state.query == "roc"
        assert store.state.results == []
