"""
State slices held by the dashboard container.

Each slice is replaced wholesale by its store on every transition, so a
reader never observes a half-applied update.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from feedboard.models.content import ContentItem


DEFAULT_CATEGORIES = ["technology", "sports"]


@dataclass
class FeedState:
    """The ordered feed shown to the user, plus request bookkeeping."""

    feed: List[ContentItem] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None
    has_more: bool = True
    page: int = 1

    def ids(self) -> List[str]:
        return [item.id for item in self.feed]


@dataclass
class NotificationSettings:
    news: bool = True
    recommendations: bool = True
    social: bool = True

    def to_dict(self) -> Dict[str, bool]:
        return {
            "news": self.news,
            "recommendations": self.recommendations,
            "social": self.social,
        }


@dataclass
class UserPreferences:
    """
    Category subscriptions and favorites.

    ``favorite_content`` is an ordered list of item ids. It is independent of
    the feed order and survives feed refreshes.
    """

    categories: List[str] = field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    favorite_content: List[str] = field(default_factory=list)
    language: str = "en"
    notification_settings: NotificationSettings = field(default_factory=NotificationSettings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": list(self.categories),
            "favoriteContent": list(self.favorite_content),
            "language": self.language,
            "notificationSettings": self.notification_settings.to_dict(),
        }


class ActiveSection(str, Enum):
    FEED = "feed"
    TRENDING = "trending"
    FAVORITES = "favorites"


@dataclass
class UIState:
    dark_mode: bool = False
    sidebar_open: bool = True
    active_section: ActiveSection = ActiveSection.FEED
    search_query: str = ""
    search_active: bool = False


@dataclass
class SearchState:
    results: List[ContentItem] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None
    query: str = ""
    has_more: bool = False
