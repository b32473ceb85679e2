"""
TMDB (The Movie Database) adapters.

Two providers share one payload schema:
- TmdbTrendingService: daily trending movies, plus title search
- TmdbGenreService: discover-by-genre, the secondary movie provider
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from feedboard.models.content import ContentItem, ContentType, ProviderResponse
from feedboard.services.provider_client import ProviderClient

logger = logging.getLogger(__name__)

IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"
MOVIE_PAGE_URL = "https://www.themoviedb.org/movie"
MOVIE_CATEGORY = "entertainment"

TRENDING_PAGE_CAP = 10
TRENDING_RESULTS_CAP = 200
SEARCH_PAGE_CAP = 5
GENRE_PAGE_CAP = 5

GENRE_IDS: Dict[str, int] = {
    'action': 28,
    'adventure': 12,
    'animation': 16,
    'comedy': 35,
    'crime': 80,
    'documentary': 99,
    'drama': 18,
    'family': 10751,
    'fantasy': 14,
    'horror': 27,
    'music': 10402,
    'mystery': 9648,
    'romance': 10749,
    'science-fiction': 878,
    'thriller': 53,
    'war': 10752,
    'western': 37,
}
DEFAULT_GENRE_ID = GENRE_IDS['action']


def _genre_key(name: str) -> str:
    key = name.strip().lower().replace(' ', '-').replace('_', '-')
    return 'science-fiction' if key in ('sci-fi', 'scifi') else key


def genre_id_for(genre: Optional[str]) -> int:
    """TMDB genre id for a free-form genre name; Action when unmapped."""
    if not genre:
        return DEFAULT_GENRE_ID
    return GENRE_IDS.get(_genre_key(genre), DEFAULT_GENRE_ID)


def is_known_genre(name: Optional[str]) -> bool:
    return bool(name) and _genre_key(name) in GENRE_IDS


@dataclass
class TmdbMovie:
    """The subset of a TMDB movie record the dashboard relies on."""
    tmdb_id: int
    title: str
    overview: str
    release_date: str
    poster_path: Optional[str]

    @classmethod
    def from_payload(cls, raw: Any) -> Optional["TmdbMovie"]:
        """Validate one upstream record; None when it cannot be shown."""
        if not isinstance(raw, dict):
            return None

        tmdb_id = raw.get('id')
        if isinstance(tmdb_id, bool) or not isinstance(tmdb_id, int):
            return None

        title = raw.get('title')
        if not isinstance(title, str) or not title.strip():
            return None

        # Unreleased titles come back with an empty release_date
        release_date = raw.get('release_date')
        if not isinstance(release_date, str) or not release_date.strip():
            return None

        overview = raw.get('overview')
        poster_path = raw.get('poster_path')
        return cls(
            tmdb_id=tmdb_id,
            title=title.strip(),
            overview=overview if isinstance(overview, str) else "",
            release_date=release_date.strip(),
            poster_path=poster_path if isinstance(poster_path, str) and poster_path else None,
        )

    def to_content_item(self, id_prefix: str, source: str) -> ContentItem:
        return ContentItem(
            id=f"{id_prefix}-{self.tmdb_id}",
            type=ContentType.MOVIE,
            title=self.title,
            description=self.overview,
            image_url=f"{IMAGE_BASE_URL}{self.poster_path}" if self.poster_path else None,
            url=f"{MOVIE_PAGE_URL}/{self.tmdb_id}",
            category=MOVIE_CATEGORY,
            published_at=self.release_date,
            source=source,
        )


class _TmdbService(ProviderClient):
    """Shared request and mapping logic for TMDB endpoints."""

    BASE_URL = "https://api.themoviedb.org/3"

    def __init__(self, api_key: Optional[str] = None, language: str = "en-US", **kwargs):
        super().__init__(api_key=api_key, **kwargs)
        self.language = language

    async def _fetch_movies(
        self,
        path: str,
        params: Dict[str, Any],
        page: int,
        id_prefix: str,
        source: str,
        page_cap: int,
        results_cap: Optional[int] = None,
    ) -> ProviderResponse:
        api_key = self._require_api_key()
        data = await self._get_json(f"{self.BASE_URL}{path}", {
            "api_key": api_key,
            "page": page,
            "language": self.language,
            **params,
        })

        raw_results = data.get('results') or []
        articles: List[ContentItem] = []
        for raw in raw_results:
            movie = TmdbMovie.from_payload(raw)
            if movie is not None:
                articles.append(movie.to_content_item(id_prefix, source))

        total_pages = int(data.get('total_pages') or 0)
        total_results = int(data.get('total_results') or 0)
        if results_cap is not None:
            total_results = min(total_results, results_cap)

        self.logger.info(f"{source} {path} page {page}: {len(articles)} movies")
        return ProviderResponse(
            articles=articles,
            has_more=page < total_pages and page < page_cap,
            total_results=total_results,
        )


class TmdbTrendingService(_TmdbService):
    """Primary movie provider: what is trending today."""

    service_name = "TMDB"

    async def fetch_page(self, selectors: Optional[List[str]] = None, page: int = 1) -> ProviderResponse:
        """Trending movies; selectors are ignored. Never raises."""
        return await self._fail_soft(
            "trending",
            self._fetch_movies(
                "/trending/movie/day", {}, page,
                id_prefix="movie", source="The Movie Database",
                page_cap=TRENDING_PAGE_CAP, results_cap=TRENDING_RESULTS_CAP,
            ),
            {"page": page},
        )

    async def search(self, query: str, page: int = 1) -> ProviderResponse:
        """Title search. Never raises."""
        return await self._fail_soft(
            "search",
            self._fetch_movies(
                "/search/movie", {"query": query}, page,
                id_prefix="search-movie", source="TMDB Search",
                page_cap=SEARCH_PAGE_CAP,
            ),
            {"query": query, "page": page},
        )


class TmdbGenreService(_TmdbService):
    """Secondary movie provider: popular titles in one genre."""

    service_name = "TMDB Genre"

    async def fetch_page(self, genre: Optional[str] = None, page: int = 1) -> ProviderResponse:
        """Most popular movies in ``genre`` (Action when unmapped). Never raises."""
        genre_id = genre_id_for(genre)
        return await self._fail_soft(
            "discover",
            self._fetch_movies(
                "/discover/movie",
                {"with_genres": genre_id, "sort_by": "popularity.desc"},
                page,
                id_prefix="genre-movie", source="TMDB Genre",
                page_cap=GENRE_PAGE_CAP,
            ),
            {"genre": genre, "genre_id": genre_id, "page": page},
        )
