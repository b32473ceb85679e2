"""
Feed state store.

Transitions are pure reducer functions over FeedState; FeedStore drives them
around the aggregator call and swaps the state in one assignment, so readers
never see a partially applied update.
"""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, replace
from typing import Any, Deque, Dict, Iterable, List, Optional, Sequence

from feedboard.models.content import ContentItem, ContentType, ProviderResponse
from feedboard.models.state import FeedState
from feedboard.pipeline.content_aggregator import ContentAggregator
from feedboard.state.reorder import is_permutation, move_by_id
from feedboard.utils.error_monitoring import FEED_LOAD_FAILED, AggregationError, user_facing_message

logger = logging.getLogger(__name__)


def feed_pending(state: FeedState) -> FeedState:
    return replace(state, loading=True, error=None)


def feed_fulfilled(state: FeedState, page: int, response: ProviderResponse) -> FeedState:
    """Page 1 replaces the feed; later pages append to it."""
    if page == 1:
        feed = list(response.articles)
    else:
        feed = state.feed + list(response.articles)
    return replace(
        state,
        feed=feed,
        loading=False,
        error=None,
        has_more=response.has_more,
        page=page,
    )


def feed_rejected(state: FeedState, message: str) -> FeedState:
    """Failed request: surface the message, keep the feed as it was."""
    return replace(state, loading=False, error=message)


def feed_reordered(state: FeedState, ordered_ids: Sequence[str]) -> FeedState:
    """
    Apply a user reorder given as ids in their new order.

    Items are taken from the current feed, so a reorder can never introduce
    divergent copies. A list that is not a permutation of the current ids
    leaves the state untouched.
    """
    if not is_permutation(state.ids(), ordered_ids):
        return state

    pool: Dict[str, Deque[ContentItem]] = defaultdict(deque)
    for item in state.feed:
        pool[item.id].append(item)
    return replace(state, feed=[pool[item_id].popleft() for item_id in ordered_ids])


def feed_cleared(state: FeedState) -> FeedState:
    return replace(state, feed=[], page=1, has_more=True, error=None)


def _freeze_types(content_types: Optional[Iterable[Any]]) -> Optional[frozenset]:
    if content_types is None:
        return None
    if isinstance(content_types, (str, ContentType)):
        content_types = [content_types]
    return frozenset(content_types)


@dataclass
class FeedRequest:
    """One fetch issued by the store"""
    categories: List[str]
    page: int
    content_types: Optional[frozenset]
    generation: int


class FeedStore:
    """
    Owns FeedState and the fetch lifecycle around the aggregator.

    Concurrent fetches are neither queued nor cancelled. Each request gets a
    generation number; with ``guard_stale_responses`` on, a completion older
    than the latest page-1 request is dropped instead of applied. With it off,
    the request's page alone decides replace vs append.
    """

    def __init__(
        self,
        aggregator: ContentAggregator,
        guard_stale_responses: bool = True,
        initial: Optional[FeedState] = None,
    ):
        self.aggregator = aggregator
        self.guard_stale_responses = guard_stale_responses
        self._state = initial or FeedState()
        self._generation = 0
        self._latest_refresh = 0
        self._in_flight = 0
        self._last_request: Optional[FeedRequest] = None

    @property
    def state(self) -> FeedState:
        return self._state

    @property
    def feed(self) -> List[ContentItem]:
        return self._state.feed

    def _apply(self, new_state: FeedState, event: str) -> FeedState:
        if self._in_flight > 0 and not new_state.loading:
            new_state = replace(new_state, loading=True)
        self._state = new_state
        logger.debug(
            f"feed/{event}: {len(new_state.feed)} items, page={new_state.page}, "
            f"has_more={new_state.has_more}, loading={new_state.loading}, error={new_state.error!r}"
        )
        return new_state

    async def fetch_page(
        self,
        categories: Iterable[str],
        page: int = 1,
        content_types: Optional[Iterable[Any]] = None,
    ) -> FeedState:
        """Fetch one page through the aggregator and apply the outcome."""
        self._generation += 1
        request = FeedRequest(
            categories=list(categories),
            page=page,
            content_types=_freeze_types(content_types),
            generation=self._generation,
        )
        if page == 1:
            self._latest_refresh = request.generation
        self._last_request = request

        self._in_flight += 1
        self._apply(feed_pending(self._state), "pending")

        response: Optional[ProviderResponse] = None
        failure: Optional[BaseException] = None
        try:
            response = await self.aggregator.get_all_content(
                request.categories, request.page, request.content_types
            )
        except Exception as e:
            failure = e
        finally:
            self._in_flight -= 1

        if self.guard_stale_responses and request.generation < self._latest_refresh:
            logger.info(
                f"Discarding stale page {request.page} response "
                f"(request #{request.generation}, latest refresh #{self._latest_refresh})"
            )
            return self._apply(replace(self._state, loading=self._in_flight > 0), "stale")

        if failure is not None:
            logger.error(f"Feed request page {request.page} failed: {failure!r}")
            self._apply(feed_rejected(self._state, user_facing_message(failure)), "rejected")
            if isinstance(failure, ValueError):
                raise failure
            return self._state

        if response.failed and not response.articles:
            logger.warning(f"Feed request page {request.page}: {response.error}")
            failure = AggregationError(FEED_LOAD_FAILED)
            return self._apply(feed_rejected(self._state, user_facing_message(failure)), "rejected")

        return self._apply(feed_fulfilled(self._state, request.page, response), "fulfilled")

    async def load_more(self) -> FeedState:
        """Next page of the last request, when idle and more is available."""
        if self._state.loading or not self._state.has_more or self._last_request is None:
            return self._state
        last = self._last_request
        return await self.fetch_page(last.categories, self._state.page + 1, last.content_types)

    async def retry(self) -> FeedState:
        """Re-issue the most recent request."""
        if self._last_request is None:
            return self._state
        last = self._last_request
        return await self.fetch_page(last.categories, last.page, last.content_types)

    def reorder(self, items: Sequence[ContentItem]) -> bool:
        """Replace the feed with a permutation of itself. False if rejected."""
        ordered_ids = [item.id for item in items]
        new_state = feed_reordered(self._state, ordered_ids)
        if new_state is self._state:
            if ordered_ids != self._state.ids():
                logger.debug("feed/reorder ignored: not a permutation of the current feed")
            return False
        self._apply(new_state, "reordered")
        return True

    def move(self, active_id: str, over_id: Optional[str]) -> bool:
        """Drag-end helper: move ``active_id`` to the position of ``over_id``."""
        moved = move_by_id(self._state.feed, active_id, over_id, key=lambda item: item.id)
        if moved is None:
            return False
        return self.reorder(moved)

    def clear(self) -> None:
        self._apply(feed_cleared(self._state), "cleared")
