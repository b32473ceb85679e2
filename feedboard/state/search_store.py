"""Search results slice."""

import logging
from dataclasses import replace
from typing import List, Optional

from feedboard.models.state import SearchState
from feedboard.pipeline.content_aggregator import ContentAggregator

logger = logging.getLogger(__name__)

SEARCH_ERROR_MESSAGE = "Search failed. Please try again."


class SearchStore:
    """
    Runs searches through the aggregator and holds the latest results.

    Results of a search are replaced, never appended. Only the most recently
    issued search may apply its results; earlier ones that finish later are
    dropped.
    """

    def __init__(self, aggregator: ContentAggregator, initial: Optional[SearchState] = None):
        self.aggregator = aggregator
        self._state = initial or SearchState()
        self._generation = 0

    @property
    def state(self) -> SearchState:
        return self._state

    def _apply(self, new_state: SearchState, event: str) -> SearchState:
        self._state = new_state
        logger.debug(
            f"search/{event}: query={new_state.query!r}, {len(new_state.results)} results, "
            f"loading={new_state.loading}, error={new_state.error!r}"
        )
        return new_state

    async def perform_search(
        self,
        query: str,
        categories: Optional[List[str]] = None,
        page: int = 1,
    ) -> SearchState:
        """Search every provider; a blank query clears the slice instead."""
        if not (query or "").strip():
            self.clear_search()
            return self._state

        self._generation += 1
        generation = self._generation
        self._apply(replace(self._state, loading=True, error=None), "pending")

        try:
            response = await self.aggregator.search_all_content(query, categories or [], page)
        except ValueError:
            if generation == self._generation:
                self._apply(replace(self._state, loading=False, error=SEARCH_ERROR_MESSAGE), "rejected")
            raise
        except Exception as e:
            logger.error(f"Search for {query!r} failed: {e!r}")
            if generation == self._generation:
                self._apply(replace(self._state, loading=False, error=SEARCH_ERROR_MESSAGE), "rejected")
            return self._state

        if generation != self._generation:
            logger.info(f"Discarding results for superseded search {query!r}")
            return self._state

        if response.failed and not response.articles:
            return self._apply(replace(self._state, loading=False, error=SEARCH_ERROR_MESSAGE), "rejected")

        return self._apply(
            SearchState(
                results=list(response.articles),
                loading=False,
                error=None,
                query=query.strip(),
                has_more=response.has_more,
            ),
            "fulfilled",
        )

    def clear_search(self) -> None:
        # An in-flight search must not repopulate a cleared slice
        self._generation += 1
        self._apply(replace(self._state, results=[], query="", error=None, loading=False), "cleared")

    def set_query(self, query: str) -> None:
        self._apply(replace(self._state, query=query), "query")
