"""
Content models shared by every provider adapter, the aggregator and the stores.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ContentType(str, Enum):
    """Kinds of content a provider can contribute to the feed."""

    NEWS = "news"
    MOVIE = "movie"
    SOCIAL = "social"

    @classmethod
    def parse(cls, value: Any) -> "ContentType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown content type: {value!r}. "
                f"Valid types: {[t.value for t in cls]}"
            ) from None


ALL_CONTENT_TYPES = frozenset(ContentType)


@dataclass
class ContentItem:
    """Normalized unit of content, independent of the provider it came from."""

    id: str
    type: ContentType
    title: str
    description: str
    category: str
    published_at: str  # ISO-8601, as reported by the provider
    source: str
    image_url: Optional[str] = None
    url: Optional[str] = None

    def __hash__(self):
        """Identity is the id; used for favorites and drag-reorder."""
        return hash(self.id)

    def matches(self, query: str) -> bool:
        """Case-insensitive containment in title or description."""
        needle = query.lower()
        return any(
            isinstance(text, str) and needle in text.lower()
            for text in (self.title, self.description)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "imageUrl": self.image_url,
            "url": self.url,
            "category": self.category,
            "publishedAt": self.published_at,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentItem":
        return cls(
            id=data["id"],
            type=ContentType.parse(data["type"]),
            title=data["title"],
            description=data.get("description") or "",
            category=data.get("category") or "",
            published_at=data.get("publishedAt") or "",
            source=data.get("source") or "",
            image_url=data.get("imageUrl"),
            url=data.get("url"),
        )


@dataclass
class ProviderResponse:
    """
    Uniform page of results returned by every adapter and by the aggregator.

    ``error`` is set only on fail-soft responses so callers can tell a failed
    provider from one that simply had nothing to return. It is not part of
    the public dict shape.
    """

    articles: List[ContentItem] = field(default_factory=list)
    has_more: bool = False
    total_results: int = 0
    error: Optional[str] = None

    @classmethod
    def empty(cls, error: Optional[str] = None) -> "ProviderResponse":
        return cls(articles=[], has_more=False, total_results=0, error=error)

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "articles": [item.to_dict() for item in self.articles],
            "hasMore": self.has_more,
            "totalResults": self.total_results,
        }
