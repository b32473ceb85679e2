"""
NewsAPI adapter.

Fetches top headlines for a category and free-text article search, and maps
NewsAPI's article payloads onto ContentItems. NewsAPI has no stable article
id, so ids are derived from the article URL.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from feedboard.models.content import ContentItem, ContentType, ProviderResponse
from feedboard.services.provider_client import ProviderClient

logger = logging.getLogger(__name__)

NEWS_CATEGORIES = (
    "business", "entertainment", "general", "health", "science", "sports", "technology",
)

# Dashboard category names that NewsAPI does not accept directly
CATEGORY_ALIASES = {
    "tech": "technology",
    "finance": "business",
    "economy": "business",
    "markets": "business",
    "movies": "entertainment",
    "film": "entertainment",
    "music": "entertainment",
    "medicine": "health",
    "wellness": "health",
    "space": "science",
    "politics": "general",
    "world": "general",
    "top": "general",
}

FALLBACK_CATEGORY = "general"
PAGE_SIZE = 20
REMOVED_MARKER = "[Removed]"
NO_DESCRIPTION = "No description available"


def map_news_category(category: Optional[str]) -> str:
    """Map a dashboard category onto NewsAPI's category vocabulary."""
    if not category:
        return FALLBACK_CATEGORY
    key = category.strip().lower()
    if key in NEWS_CATEGORIES:
        return key
    return CATEGORY_ALIASES.get(key, FALLBACK_CATEGORY)


def _optional_text(value: Any) -> Optional[str]:
    """Optional string fields: anything that is not a non-blank str becomes None."""
    if isinstance(value, str) and value.strip():
        return value
    return None


@dataclass
class NewsApiArticle:
    """The subset of a NewsAPI article record the dashboard relies on."""
    title: str
    source_name: str
    published_at: str
    description: Optional[str]
    content: Optional[str]
    url: Optional[str]
    url_to_image: Optional[str]

    @classmethod
    def from_payload(cls, raw: Any) -> Optional["NewsApiArticle"]:
        """Validate one upstream record; None for malformed or removed articles."""
        if not isinstance(raw, dict):
            return None

        title = raw.get('title')
        if not isinstance(title, str) or not title.strip() or title.strip() == REMOVED_MARKER:
            return None

        source = raw.get('source')
        source_name = source.get('name') if isinstance(source, dict) else None
        if not isinstance(source_name, str) or not source_name.strip():
            return None

        published_at = raw.get('publishedAt')
        if not isinstance(published_at, str) or not published_at.strip():
            return None

        return cls(
            title=title.strip(),
            source_name=source_name.strip(),
            published_at=published_at,
            description=_optional_text(raw.get('description')),
            content=_optional_text(raw.get('content')),
            url=_optional_text(raw.get('url')),
            url_to_image=_optional_text(raw.get('urlToImage')),
        )

    def natural_key(self) -> str:
        return self.url or f"{self.title}|{self.published_at}"

    def to_content_item(self, item_id: str, category: str) -> ContentItem:
        return ContentItem(
            id=item_id,
            type=ContentType.NEWS,
            title=self.title,
            description=self.description or self.content or NO_DESCRIPTION,
            image_url=self.url_to_image,
            url=self.url,
            category=category,
            published_at=self.published_at,
            source=self.source_name,
        )


def _digest(value: str) -> str:
    return hashlib.sha1(value.encode('utf-8')).hexdigest()[:16]


class NewsService(ProviderClient):
    """
    Service for fetching articles from NewsAPI.

    Only the first requested category is sent upstream; NewsAPI's
    top-headlines endpoint accepts a single category per request.
    """

    service_name = "News"
    BASE_URL = "https://newsapi.org/v2"

    def __init__(self, api_key: Optional[str] = None, country: str = "us", language: str = "en", **kwargs):
        super().__init__(api_key=api_key, **kwargs)
        self.country = country
        self.language = language

    async def fetch_page(self, categories: List[str], page: int = 1) -> ProviderResponse:
        """Top headlines for the first category. Never raises."""
        return await self._fail_soft(
            "top_headlines",
            self._fetch_headlines(categories, page),
            {"categories": list(categories), "page": page},
        )

    async def search(self, query: str, categories: Optional[List[str]] = None, page: int = 1) -> ProviderResponse:
        """Article search across all sources. Never raises."""
        return await self._fail_soft(
            "search",
            self._fetch_search(query, categories or [], page),
            {"query": query, "page": page},
        )

    async def _fetch_headlines(self, categories: List[str], page: int) -> ProviderResponse:
        api_key = self._require_api_key()
        category = map_news_category(categories[0] if categories else None)

        data = await self._get_json(f"{self.BASE_URL}/top-headlines", {
            "apiKey": api_key,
            "category": category,
            "page": page,
            "pageSize": PAGE_SIZE,
            "country": self.country,
            "language": self.language,
        })

        raw_articles = data.get('articles') or []
        articles: List[ContentItem] = []
        for raw in raw_articles:
            article = NewsApiArticle.from_payload(raw)
            if article is None:
                continue
            articles.append(article.to_content_item(
                item_id=f"news-{_digest(article.natural_key())}",
                category=category,
            ))

        dropped = len(raw_articles) - len(articles)
        self.logger.info(
            f"News headlines '{category}' page {page}: {len(articles)} articles"
            + (f" ({dropped} malformed dropped)" if dropped else "")
        )
        return ProviderResponse(
            articles=articles,
            has_more=len(raw_articles) == PAGE_SIZE,
            total_results=int(data.get('totalResults') or 0),
        )

    async def _fetch_search(self, query: str, categories: List[str], page: int) -> ProviderResponse:
        api_key = self._require_api_key()
        category = map_news_category(categories[0]) if categories else FALLBACK_CATEGORY

        data = await self._get_json(f"{self.BASE_URL}/everything", {
            "apiKey": api_key,
            "q": query,
            "page": page,
            "pageSize": PAGE_SIZE,
            "language": self.language,
            "sortBy": "relevancy",
        })

        raw_articles = data.get('articles') or []
        articles: List[ContentItem] = []
        for index, raw in enumerate(raw_articles):
            article = NewsApiArticle.from_payload(raw)
            if article is None:
                continue
            item_id = (
                f"search-news-{_digest(article.url)}" if article.url
                else f"search-news-{query}-{page}-{index}"
            )
            articles.append(article.to_content_item(item_id=item_id, category=category))

        self.logger.info(f"News search '{query}' page {page}: {len(articles)} articles")
        return ProviderResponse(
            articles=articles,
            has_more=len(raw_articles) == PAGE_SIZE,
            total_results=int(data.get('totalResults') or 0),
        )
