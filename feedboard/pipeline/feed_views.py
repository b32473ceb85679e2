"""
Read-side projections over the feed.

These are pure functions of store state. Callers recompute them whenever the
favorites list or the feed changes; nothing here is cached.
"""

from typing import Dict, List, Sequence

from feedboard.models.content import ContentItem
from feedboard.pipeline.content_aggregator import sort_by_recency

TRENDING_LIMIT = 12


def project_favorites(favorite_ids: Sequence[str], feed: Sequence[ContentItem]) -> List[ContentItem]:
    """
    Favorites in preference order, resolved against the current feed.

    Ids with no matching feed item are left out of the view. They stay in the
    preferences and reappear once the item is back in the feed.
    """
    by_id: Dict[str, ContentItem] = {}
    for item in feed:
        by_id.setdefault(item.id, item)

    projected: List[ContentItem] = []
    seen = set()
    for favorite_id in favorite_ids:
        if favorite_id in seen:
            continue
        item = by_id.get(favorite_id)
        if item is not None:
            projected.append(item)
            seen.add(favorite_id)
    return projected


def trending(feed: Sequence[ContentItem], limit: int = TRENDING_LIMIT) -> List[ContentItem]:
    """Most recent items across every category, without touching feed order."""
    if limit <= 0:
        return []
    return sort_by_recency(list(feed))[:limit]


def filter_feed(feed: Sequence[ContentItem], query: str) -> List[ContentItem]:
    """Local feed filter on title, description or category (case-insensitive)."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(feed)
    return [
        item for item in feed
        if item.matches(needle)
        or (isinstance(item.category, str) and needle in item.category.lower())
    ]
