"""
User preferences and favorites store.

Every operation builds a new UserPreferences and swaps it in. Favorites are an
ordered list of item ids, independent of the feed; the view of favorites that
resolves ids to items lives in feedboard.pipeline.feed_views.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from feedboard.models.content import ContentItem
from feedboard.models.state import NotificationSettings, UserPreferences
from feedboard.pipeline.feed_views import project_favorites
from feedboard.state.reorder import is_permutation, move_by_id

logger = logging.getLogger(__name__)

NOTIFICATION_KEYS = ("news", "recommendations", "social")


class PreferencesStore:
    """Reducer-style owner of UserPreferences."""

    def __init__(self, initial: Optional[UserPreferences] = None):
        self._state = initial or UserPreferences()

    @property
    def state(self) -> UserPreferences:
        return self._state

    @property
    def favorites(self) -> List[str]:
        return self._state.favorite_content

    def _apply(self, new_state: UserPreferences, event: str) -> UserPreferences:
        self._state = new_state
        logger.debug(f"preferences/{event}: {new_state.to_dict()}")
        return new_state

    def update_categories(self, categories: Iterable[str]) -> UserPreferences:
        """Replace the category list wholesale."""
        categories = list(categories)
        if not all(isinstance(c, str) for c in categories):
            raise ValueError("categories must be strings")
        return self._apply(replace(self._state, categories=categories), "categories")

    def add_to_favorites(self, item_id: str) -> UserPreferences:
        """Append ``item_id``; already-present ids leave the list unchanged."""
        if item_id in self._state.favorite_content:
            return self._state
        favorites = self._state.favorite_content + [item_id]
        return self._apply(replace(self._state, favorite_content=favorites), "favorite_added")

    def remove_from_favorites(self, item_id: str) -> UserPreferences:
        if item_id not in self._state.favorite_content:
            return self._state
        favorites = [f for f in self._state.favorite_content if f != item_id]
        return self._apply(replace(self._state, favorite_content=favorites), "favorite_removed")

    def toggle_favorite(self, item_id: str) -> bool:
        """Flip membership of ``item_id``. Returns whether it is now a favorite."""
        if self.is_favorite(item_id):
            self.remove_from_favorites(item_id)
            return False
        self.add_to_favorites(item_id)
        return True

    def is_favorite(self, item_id: str) -> bool:
        return item_id in self._state.favorite_content

    def update_language(self, language: str) -> UserPreferences:
        if not isinstance(language, str) or not language.strip():
            logger.warning(f"Ignoring invalid language {language!r}")
            return self._state
        return self._apply(replace(self._state, language=language.strip()), "language")

    def update_notification_settings(
        self,
        patch: Optional[Mapping[str, Any]] = None,
        **changes: Any,
    ) -> UserPreferences:
        """
        Shallow-merge notification flags.

        Keys not present in the patch keep their value; unknown keys are
        ignored with a warning.
        """
        merged: Dict[str, Any] = dict(patch or {})
        merged.update(changes)

        accepted = {}
        for key, value in merged.items():
            if key not in NOTIFICATION_KEYS:
                logger.warning(f"Ignoring unknown notification setting '{key}'")
                continue
            accepted[key] = bool(value)

        if not accepted:
            return self._state

        settings: NotificationSettings = replace(self._state.notification_settings, **accepted)
        return self._apply(replace(self._state, notification_settings=settings), "notifications")

    def reorder_favorites(self, ordered_ids: Sequence[str]) -> bool:
        """Replace the favorites order. Rejected unless it permutes the current ids."""
        ordered_ids = list(ordered_ids)
        if not is_permutation(self._state.favorite_content, ordered_ids):
            logger.debug("preferences/reorder ignored: not a permutation of the favorites")
            return False
        self._apply(replace(self._state, favorite_content=ordered_ids), "favorites_reordered")
        return True

    def move_favorite(self, active_id: str, over_id: Optional[str], feed: Sequence[ContentItem]) -> bool:
        """
        Drag-end on the favorites view.

        The move is computed over the projected view (favorites present in
        ``feed``). Favorites that are not in the feed are hidden from that view
        and keep their positions in the stored list.
        """
        visible = [item.id for item in project_favorites(self._state.favorite_content, feed)]
        moved = move_by_id(visible, active_id, over_id, key=lambda item_id: item_id)
        if moved is None:
            return False

        # Refill the slots held by visible ids in their new order
        visible_set = set(visible)
        refill = iter(moved)
        placed = set()
        ordered: List[str] = []
        for favorite_id in self._state.favorite_content:
            if favorite_id in visible_set and favorite_id not in placed:
                next_id = next(refill)
                placed.add(favorite_id)
                ordered.append(next_id)
            else:
                ordered.append(favorite_id)
        return self.reorder_favorites(ordered)
