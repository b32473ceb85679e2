import json
import logging
import traceback
import asyncio
from typing import Dict, Any, Optional, List, Deque, Tuple
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from collections import defaultdict, deque

import aiohttp
import pytz


class ErrorKind(Enum):
    """Provider failure classifications"""
    RATE_LIMIT = "rate_limit"
    AUTH = "auth"
    SERVER = "server"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    CONFIG = "config"
    UNAVAILABLE = "unavailable"
    BAD_PAYLOAD = "bad_payload"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Context for a provider failure"""
    error_type: str
    error_message: str
    stack_trace: str
    timestamp: datetime
    service: str
    operation: str
    kind: str
    user_message: str
    status: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class ProviderError(Exception):
    """Failure talking to a content provider"""

    def __init__(self, message: str, service: str = "", status: Optional[int] = None):
        super().__init__(message)
        self.service = service
        self.status = status


class MissingApiKeyError(ProviderError):
    """Adapter was configured without its API key"""
    pass


class ProviderUnavailableError(ProviderError):
    """Provider reported itself temporarily unavailable"""
    pass


FEED_LOAD_FAILED = "Could not load feed. Please try again."


class AggregationError(Exception):
    """Every provider failed; the feed could not be loaded"""
    pass


class ErrorHandler:
    """
    Records provider failures for observability.

    Adapters are fail-soft: they hand every exception to ``handle_error`` and
    return an empty page. Nothing here raises.
    """

    def __init__(self) -> None:
        self.error_history: Deque[ErrorContext] = deque(maxlen=100)
        self.error_counts: Dict[str, int] = defaultdict(int)
        self.service_counts: Dict[str, int] = defaultdict(int)
        self.logger = logging.getLogger(__name__)

    def handle_error(
        self,
        error: BaseException,
        service: str,
        operation: str,
        context: Optional[Dict[str, Any]] = None
    ) -> ErrorContext:
        kind = self.classify(error)
        status = self._status_of(error)
        stack_trace = ''.join(traceback.format_exception(type(error), error, error.__traceback__))
        timestamp = datetime.now(pytz.UTC)

        error_context = ErrorContext(
            error_type=type(error).__name__,
            error_message=str(error),
            stack_trace=stack_trace,
            timestamp=timestamp,
            service=service,
            operation=operation,
            kind=kind.value,
            user_message=self.describe(kind, service),
            status=status,
            metadata=context or {},
        )

        self.error_history.append(error_context)
        self.error_counts[kind.value] += 1
        self.service_counts[service] += 1

        self.logger.warning(json.dumps({
            'event': 'provider_error',
            'service': service,
            'operation': operation,
            'kind': kind.value,
            'status': status,
            'error_type': error_context.error_type,
            'error_message': error_context.error_message,
            'timestamp': timestamp.isoformat(),
        }))

        return error_context

    def classify(self, error: BaseException) -> ErrorKind:
        if isinstance(error, MissingApiKeyError):
            return ErrorKind.CONFIG
        if isinstance(error, ProviderUnavailableError):
            return ErrorKind.UNAVAILABLE
        if isinstance(error, asyncio.TimeoutError):
            return ErrorKind.TIMEOUT

        status = self._status_of(error)
        if status is not None:
            if status == 429:
                return ErrorKind.RATE_LIMIT
            if status in (401, 403):
                return ErrorKind.AUTH
            if status >= 500:
                return ErrorKind.SERVER

        if isinstance(error, (aiohttp.ContentTypeError, json.JSONDecodeError, KeyError, TypeError)):
            return ErrorKind.BAD_PAYLOAD
        if isinstance(error, aiohttp.ClientError):
            return ErrorKind.TRANSPORT

        message_lower = str(error).lower()
        if 'rate limit' in message_lower or 'too many requests' in message_lower:
            return ErrorKind.RATE_LIMIT
        if 'unauthorized' in message_lower or 'invalid api key' in message_lower:
            return ErrorKind.AUTH
        if 'timeout' in message_lower:
            return ErrorKind.TIMEOUT
        return ErrorKind.UNKNOWN

    def describe(self, kind: ErrorKind, service: str) -> str:
        """Human-readable message for a failure kind."""
        if kind == ErrorKind.RATE_LIMIT:
            return f"{service} API rate limit exceeded. Please try again later."
        if kind == ErrorKind.AUTH:
            return f"Invalid {service} API key. Please check your configuration."
        if kind == ErrorKind.CONFIG:
            return f"{service} API key not configured."
        if kind in (ErrorKind.SERVER, ErrorKind.UNAVAILABLE):
            return f"{service} service is temporarily unavailable."
        if kind == ErrorKind.TIMEOUT:
            return f"{service} request timeout. Please try again."
        return f"Failed to fetch {service.lower()} data"

    def _status_of(self, error: BaseException) -> Optional[int]:
        if isinstance(error, aiohttp.ClientResponseError):
            return error.status
        if isinstance(error, ProviderError):
            return error.status
        return None

    def detect_error_patterns(self) -> List[str]:
        patterns: List[str] = []
        if not self.error_history:
            return patterns

        tuple_counts: Dict[Tuple[str, str], int] = defaultdict(int)
        for ctx in self.error_history:
            tuple_counts[(ctx.kind, ctx.service)] += 1

        for (kind, service), count in tuple_counts.items():
            if count >= 3:
                patterns.append(
                    f"Repeated pattern: {kind} in {service} occurred {count} times recently"
                )

        return patterns

    def get_error_statistics(self) -> Dict[str, Any]:
        total = sum(self.error_counts.values())
        return {
            'total_errors': total,
            'error_kinds': dict(self.error_counts),
            'services': dict(self.service_counts),
        }


def user_facing_message(error: BaseException) -> str:
    """Message shown to the end user; never carries per-provider detail."""
    if isinstance(error, AggregationError) and str(error):
        return str(error)
    return FEED_LOAD_FAILED
