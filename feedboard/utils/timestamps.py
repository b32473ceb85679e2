"""
Timestamp utilities for ordering content by publication time.

Providers report ``publishedAt`` in different shapes:
- full ISO-8601 with a ``Z`` suffix (NewsAPI)
- ISO-8601 with an explicit offset (generated social posts)
- a bare ``YYYY-MM-DD`` release date (TMDB)
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Optional

import pytz
from dateutil.parser import isoparse

logger = logging.getLogger(__name__)

# Sorts after every real timestamp when ordering newest-first
EPOCH_FLOOR = datetime.min.replace(tzinfo=pytz.UTC)

_DATE_ONLY = re.compile(r'^(\d{4})-(\d{1,2})-(\d{1,2})$')


def parse_published_at(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a provider timestamp into an aware UTC datetime.

    Args:
        value: Timestamp string as reported by the provider

    Returns:
        Aware datetime in UTC, or None if the value is missing or unparseable
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    match = _DATE_ONLY.match(text)
    if match:
        year, month, day = match.groups()
        try:
            return datetime(int(year), int(month), int(day), tzinfo=pytz.UTC)
        except ValueError:
            logger.debug(f"Invalid calendar date: {text}")
            return None

    try:
        parsed = isoparse(text)
        if parsed.tzinfo is None:
            return pytz.UTC.localize(parsed)
        # Offsets near datetime.min/max overflow when shifted to UTC
        return parsed.astimezone(pytz.UTC)
    except (ValueError, OverflowError):
        logger.debug(f"Unparseable timestamp: {value}")
        return None


def recency_key(value: Optional[str]) -> datetime:
    """Sort key for newest-first ordering; missing timestamps sort last."""
    parsed = parse_published_at(value)
    return parsed if parsed is not None else EPOCH_FLOOR


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


def isoformat_utc(moment: datetime) -> str:
    """Render an aware datetime the way NewsAPI does (millisecond precision, Z suffix)."""
    if moment.tzinfo is None:
        moment = pytz.UTC.localize(moment)
    moment = moment.astimezone(pytz.UTC)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f"{moment.microsecond // 1000:03d}Z"


def hours_ago(now: datetime, hours: float) -> datetime:
    return now - timedelta(hours=hours)
