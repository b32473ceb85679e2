#!/usr/bin/env python3
import os
import sys
import json
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from feedboard.models.content import ContentItem
from feedboard.models.state import DEFAULT_CATEGORIES
from feedboard.pipeline.content_aggregator import DEFAULT_CALL_TIMEOUT_SECONDS
from feedboard.services.provider_client import DEFAULT_TIMEOUT_SECONDS
from feedboard.state.dashboard import DashboardState
from feedboard.utils.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


@dataclass
class DashboardConfig:
    """Dashboard configuration"""
    # API keys; a missing key disables that provider without failing startup
    news_api_key: Optional[str] = None
    tmdb_api_key: Optional[str] = None

    # Timeouts
    request_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    provider_call_timeout_seconds: float = DEFAULT_CALL_TIMEOUT_SECONDS

    # Simulated social provider
    social_mock_seed: Optional[int] = None
    social_failure_rate: float = 0.02
    social_search_failure_rate: float = 0.01

    # Feed behavior
    guard_stale_responses: bool = True
    default_categories: List[str] = field(default_factory=lambda: list(DEFAULT_CATEGORIES))

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"
    enable_file_logging: bool = False
    structured_logs: bool = False


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, 'true' if default else 'false').lower() == 'true'


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}; using default {default}")
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    return [part.strip() for part in raw.split(',') if part.strip()]


def load_config() -> DashboardConfig:
    """Load configuration from the environment (and a .env file, if present)"""
    load_dotenv()
    return DashboardConfig(
        news_api_key=os.getenv('NEWS_API_KEY') or None,
        tmdb_api_key=os.getenv('TMDB_API_KEY') or None,
        request_timeout_seconds=_env_number('REQUEST_TIMEOUT_SECONDS', DEFAULT_TIMEOUT_SECONDS, float),
        provider_call_timeout_seconds=_env_number(
            'PROVIDER_CALL_TIMEOUT_SECONDS', DEFAULT_CALL_TIMEOUT_SECONDS, float
        ),
        social_mock_seed=_env_number('SOCIAL_MOCK_SEED', None, int),
        social_failure_rate=_env_number('SOCIAL_FAILURE_RATE', 0.02, float),
        social_search_failure_rate=_env_number('SOCIAL_SEARCH_FAILURE_RATE', 0.01, float),
        guard_stale_responses=_env_bool('GUARD_STALE_RESPONSES', True),
        default_categories=_env_list('DEFAULT_CATEGORIES', DEFAULT_CATEGORIES),
        log_level=os.getenv('LOG_LEVEL', 'INFO'),
        log_dir=os.getenv('LOG_DIR', 'logs'),
        enable_file_logging=_env_bool('ENABLE_FILE_LOGGING', False),
        structured_logs=_env_bool('STRUCTURED_LOGS', False),
    )


def format_item(item: ContentItem) -> str:
    return f"[{item.type.value:<6}] {item.published_at}  {item.title}  ({item.source})"


async def run(args, config: DashboardConfig) -> int:
    """Run one CLI command against a fresh dashboard. Returns the exit code."""
    async with DashboardState.from_config(config) as dashboard:
        if args.categories is not None:
            dashboard.preferences.update_categories(args.categories)
        categories = dashboard.preferences.state.categories

        if args.search:
            state = await dashboard.search.perform_search(args.search, categories, args.page)
            items, error, has_more = state.results, state.error, state.has_more
        else:
            state = await dashboard.feed.fetch_page(categories, args.page, args.types)
            items, error, has_more = state.feed, state.error, state.has_more
            if args.trending:
                items = dashboard.trending_items()

        if args.json:
            payload: Dict[str, Any] = {
                'articles': [item.to_dict() for item in items],
                'hasMore': has_more,
                'error': error,
                'fetchStatistics': dashboard.aggregator.get_fetch_statistics(),
            }
            print(json.dumps(payload, indent=2))
        else:
            for item in items:
                print(format_item(item))
            print(f"\n{len(items)} items, more available: {has_more}")
            if error:
                print(f"Error: {error}")

        patterns = dashboard.providers.error_handler.detect_error_patterns()
        for pattern in patterns:
            logger.warning(pattern)

        return 1 if error else 0


async def main():
    """Main entry point"""
    import argparse
    parser = argparse.ArgumentParser(description="Personalized content dashboard feed")
    parser.add_argument('--categories', type=lambda s: [c.strip() for c in s.split(',') if c.strip()],
                        help='Comma-separated categories (default: DEFAULT_CATEGORIES)')
    parser.add_argument('--types', type=lambda s: [t.strip() for t in s.split(',') if t.strip()],
                        help='Comma-separated content types: news,movie,social (default: all)')
    parser.add_argument('--page', type=int, default=1, help='Page to fetch (default: 1)')
    parser.add_argument('--search', help='Search all providers instead of loading the feed')
    parser.add_argument('--trending', action='store_true', help='Show the 12 most recent items')
    parser.add_argument('--json', action='store_true', help='Print the response as JSON')
    args = parser.parse_args()

    config = load_config()
    setup_logging(
        log_level=config.log_level,
        log_dir=config.log_dir,
        enable_file_logging=config.enable_file_logging,
        enable_structured_logging=config.structured_logs,
    )

    try:
        exit_code = await run(args, config)
    except ValueError as e:
        print(f"Invalid request: {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(130)
    except Exception as e:  # noqa: BLE001
        print(f"Fatal error: {e}")
        logging.exception("Fatal error in main")
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
