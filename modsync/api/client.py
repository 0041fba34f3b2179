"""
Shared async HTTP plumbing for the catalog platform clients.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Mapping, Optional

import aiohttp

from modsync.exceptions import NotFoundError, RateLimitedError, TransportError

from .rate_limiter import AdaptiveRateLimiter

log = logging.getLogger(__name__)


class CatalogClient:
    """
    Base async client for a JSON catalog API.

    Features:
    - Connection pooling sized to the number of parallel fetches
    - Adaptive rate limiting that follows the platform's quota headers
    - Translation of HTTP failures into the fetch error taxonomy

    Subclasses add the `fetch` of the `Platform` protocol, which must be safe
    to call concurrently.
    """

    BASE_URL = ""
    PLATFORM = "catalog"

    def __init__(self, user_agent: str, max_connections: int = 10):
        """
        Args:
            user_agent: User-Agent sent with every request, as the platforms require.
            max_connections: Used to tune the connection pool.
        """
        self.user_agent = user_agent
        self.max_connections = max_connections
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_lock = asyncio.Lock()
        self._rate_limiter = AdaptiveRateLimiter()

    def _headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
        }

    async def _initialize_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        async with self._session_lock:
            if self._session is None or self._session.closed:
                connector = aiohttp.TCPConnector(
                    limit=self.max_connections * 2,
                    limit_per_host=self.max_connections,
                    ttl_dns_cache=300,
                    enable_cleanup_closed=True,
                )
                self._session = aiohttp.ClientSession(
                    connector=connector,
                    headers=self._headers(),
                    timeout=aiohttp.ClientTimeout(total=60, connect=15, sock_read=30),
                )
            return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    def _quota(
        self, headers: Mapping[str, str]
    ) -> tuple[Optional[int], Optional[float]]:
        """Reads the remaining request quota and seconds until it resets."""
        remaining = headers.get("X-Ratelimit-Remaining")
        reset = headers.get("X-Ratelimit-Reset")
        try:
            return (
                int(remaining) if remaining is not None else None,
                float(reset) if reset is not None else None,
            )
        except ValueError:
            return None, None

    async def api_call(self, endpoint: str, **params: Any) -> Any:
        """
        Makes a rate limited GET request and decodes the JSON body.

        Raises:
            NotFoundError: The platform answered 404.
            RateLimitedError: The platform's request quota is exhausted.
            TransportError: Any other network or HTTP failure.
        """
        session = await self._initialize_session()
        await self._rate_limiter.acquire()

        start_time = time.monotonic()
        try:
            async with session.get(self.BASE_URL + endpoint, params=params) as r:
                duration_ms = (time.monotonic() - start_time) * 1000
                log.debug(
                    f"{self.PLATFORM} GET {endpoint} -> {r.status} ({duration_ms:.0f}ms)"
                )
                remaining, reset_after = self._quota(r.headers)
                self._rate_limiter.update_quota(remaining, reset_after)

                if r.status == 429 or (r.status == 403 and remaining == 0):
                    await self._rate_limiter.on_429()
                    raise RateLimitedError(
                        f"{self.PLATFORM} rate limit exceeded"
                        + (f", resets in {reset_after:.0f}s" if reset_after else "")
                    )
                if r.status == 404:
                    raise NotFoundError(f"{endpoint} was not found on {self.PLATFORM}")

                r.raise_for_status()
                return await r.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.debug(f"API call to {endpoint} failed: {e}")
            raise TransportError(
                f"{self.PLATFORM} request failed: {e or type(e).__name__}"
            ) from e
