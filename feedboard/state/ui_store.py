"""Presentation flags slice."""

import logging
from dataclasses import replace
from typing import Optional, Union

from feedboard.models.state import ActiveSection, UIState

logger = logging.getLogger(__name__)


class UIStore:
    def __init__(self, initial: Optional[UIState] = None):
        self._state = initial or UIState()

    @property
    def state(self) -> UIState:
        return self._state

    def _apply(self, new_state: UIState, event: str) -> UIState:
        self._state = new_state
        logger.debug(f"ui/{event}: {new_state}")
        return new_state

    def toggle_dark_mode(self) -> UIState:
        return self._apply(replace(self._state, dark_mode=not self._state.dark_mode), "dark_mode")

    def toggle_sidebar(self) -> UIState:
        return self._apply(replace(self._state, sidebar_open=not self._state.sidebar_open), "sidebar")

    def set_active_section(self, section: Union[str, ActiveSection]) -> UIState:
        """Accepts 'feed', 'trending' or 'favorites'; anything else raises ValueError."""
        return self._apply(replace(self._state, active_section=ActiveSection(section)), "section")

    def set_search_query(self, query: str) -> UIState:
        return self._apply(replace(self._state, search_query=query), "search_query")

    def set_search_active(self, active: bool) -> UIState:
        return self._apply(replace(self._state, search_active=bool(active)), "search_active")
