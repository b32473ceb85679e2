"""
Shared plumbing for provider adapters.

Adapters talk to one upstream each. They own an aiohttp session with a fixed
request timeout, translate provider-native payloads into ContentItems, and
never let a transport, auth, rate-limit or server failure escape: every public
fetch goes through ``_fail_soft`` and comes back as a ProviderResponse.
"""

import asyncio
import logging
import ssl
from typing import Any, Awaitable, Dict, Optional

import aiohttp
import certifi

from feedboard.models.content import ProviderResponse
from feedboard.utils.error_monitoring import ErrorHandler, MissingApiKeyError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class ProviderClient:
    """
    Base class for HTTP-backed adapters.

    Subclasses set ``service_name`` (the display name used in log and error
    messages) and implement their fetch methods on top of ``_get_json``.
    """

    service_name = "Provider"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        error_handler: Optional[ErrorHandler] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.api_key = api_key
        self.logger = logging.getLogger(type(self).__module__)
        self.error_handler = error_handler or ErrorHandler()

        if not self.api_key:
            self.logger.warning(
                f"{self.service_name} API key not found - "
                f"{self.service_name.lower()} features will return no content"
            )

        # Session management
        self.session: Optional[aiohttp.ClientSession] = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp ClientSession with proper SSL configuration."""
        if self.session is None or self.session.closed:
            ssl_context = ssl.create_default_context(cafile=certifi.where())
            connector = aiohttp.TCPConnector(ssl=ssl_context)

            self.session = aiohttp.ClientSession(
                timeout=self.timeout,
                connector=connector
            )
            self._owns_session = True
        return self.session

    async def close_session(self):
        """Close aiohttp session for cleanup."""
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
        self.session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close_session()
        return False

    def _require_api_key(self) -> str:
        if not self.api_key:
            raise MissingApiKeyError(
                f"{self.service_name} API key not configured",
                service=self.service_name,
            )
        return self.api_key

    async def _get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Issue a GET and decode the JSON body.

        Raises aiohttp.ClientResponseError for non-2xx statuses and
        asyncio.TimeoutError when the fixed request timeout elapses.
        """
        session = await self._get_session()
        # aiohttp rejects None values in query params
        clean_params = {k: v for k, v in params.items() if v is not None}
        self.logger.debug(f"GET {url} params={sorted(k for k in clean_params if 'key' not in k.lower())}")

        async with session.get(url, params=clean_params, timeout=self.timeout) as response:
            response.raise_for_status()
            data = await response.json()

        if not isinstance(data, dict):
            raise TypeError(f"{self.service_name} returned {type(data).__name__}, expected object")
        return data

    async def _fail_soft(
        self,
        operation: str,
        call: Awaitable[ProviderResponse],
        context: Optional[Dict[str, Any]] = None,
    ) -> ProviderResponse:
        """Await ``call``; on any failure record it and return an empty page."""
        try:
            return await call
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error_context = self.error_handler.handle_error(
                e, self.service_name, operation, context
            )
            return ProviderResponse.empty(error=error_context.user_message)
