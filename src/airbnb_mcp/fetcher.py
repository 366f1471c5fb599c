from __future__ import annotations

import asyncio
import logging

import httpx

from .errors import FetchTimeoutError, NetworkError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 6.0


class Fetcher:
    """Single-attempt HTTP GET with the server's fixed header policy."""

    def __init__(self, user_agent: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.user_agent = user_agent
        self.timeout = timeout

    @property
    def headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept-Language": "en-US,en;q=0.9",
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Cache-Control": "no-cache",
        }

    async def fetch(self, url: str) -> httpx.Response:
        """GET ``url`` once. Raises FetchTimeoutError or NetworkError; never retries."""
        # No client-level timeout: the wall-clock limit below cancels the whole exchange.
        async with httpx.AsyncClient(headers=self.headers, follow_redirects=True, timeout=None) as client:
            try:
                response = await asyncio.wait_for(client.get(url), timeout=self.timeout)
            except asyncio.TimeoutError as e:
                logger.warning("Fetch of %s timed out after %ss", url, self.timeout)
                raise FetchTimeoutError(self.timeout) from e
            except httpx.TimeoutException as e:
                raise FetchTimeoutError(self.timeout) from e
            except httpx.HTTPError as e:
                logger.error("Fetch of %s failed: %s", url, e)
                raise NetworkError(str(e) or type(e).__name__) from e

        logger.info("Fetched %s -> %s (%d bytes)", url, response.status_code, len(response.content))
        return response
