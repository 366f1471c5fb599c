"""robots.txt gate.

The policy is advisory: the Fetcher never consults it. Extractors ask
``is_allowed`` before fetching and refuse to go further on a disallow,
unless the caller passed the per-request override.
"""
from __future__ import annotations

import logging
from urllib.parse import urlsplit

from protego import Protego

from .errors import NetworkError
from .fetcher import Fetcher

logger = logging.getLogger(__name__)

ROBOTS_ERROR_MESSAGE = (
    "This path is disallowed by Airbnb's robots.txt to this User-agent. "
    "You may or may not want to run the server with '--ignore-robots-txt' args"
)


def request_path(url: str) -> str:
    """Path plus query string, the part robots.txt rules match against."""
    parts = urlsplit(url)
    path = parts.path or "/"
    return f"{path}?{parts.query}" if parts.query else path


class RobotsPolicy:
    """Process-lifetime robots.txt cache.

    Created once at startup and shared by every tool call. The file is fetched
    on first use and never refreshed. If it cannot be fetched, the policy stays
    empty and everything is allowed. With ``ignore=True`` nothing is fetched.
    """

    def __init__(self, fetcher: Fetcher, base_url: str, user_agent: str, ignore: bool = False) -> None:
        self._fetcher = fetcher
        self._robots_url = f"{base_url.rstrip('/')}/robots.txt"
        self._user_agent = user_agent
        self._ignore = ignore
        self._loaded = False
        self._content = ""
        self._parser: Protego | None = None

    @property
    def ignored(self) -> bool:
        return self._ignore

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def content(self) -> str:
        return self._content

    async def ensure_loaded(self) -> None:
        # Concurrent first calls may each fetch; the last writer wins with identical content.
        if self._ignore or self._loaded:
            return

        logger.info("Loading %s", self._robots_url)
        try:
            response = await self._fetcher.fetch(self._robots_url)
        except NetworkError as e:
            logger.error("Error fetching robots.txt: %s", e)
            self._set_content("")
            return

        if response.is_success:
            self._set_content(response.text)
        else:
            logger.warning("robots.txt returned HTTP %s; treating as empty", response.status_code)
            self._set_content("")

    def load(self, content: str) -> None:
        """Install robots.txt content directly (skips the network)."""
        self._set_content(content)

    def _set_content(self, content: str) -> None:
        self._content = content
        self._parser = Protego.parse(content) if content.strip() else None
        self._loaded = True

    def is_allowed(self, path: str) -> bool:
        if self._ignore or self._parser is None:
            return True
        if not self._parser.can_fetch(path, self._user_agent):
            logger.error(ROBOTS_ERROR_MESSAGE)
            return False
        return True
