"""Locate and validate the deferred-render JSON payload in an Airbnb page."""
from __future__ import annotations

import json
import logging
from typing import Any

from bs4 import BeautifulSoup

from .errors import PageNotReady
from .projection import dig

logger = logging.getLogger(__name__)

DEFERRED_STATE_ID = "data-deferred-state-0"

PAGE_NOT_READY_MESSAGE = (
    "Page not ready or data not available. The page may not have loaded "
    "completely or the data structure has changed."
)


def _deferred_state_text(html: str) -> str | None:
    soup = BeautifulSoup(html, "html.parser")
    element = soup.find(id=DEFERRED_STATE_ID)
    if element is None:
        return None
    return element.get_text()


def _has_client_data(parsed: Any) -> bool:
    if not isinstance(parsed, dict):
        return False
    client_data = parsed.get("niobeClientData")
    if not isinstance(client_data, list) or not client_data:
        return False
    first = client_data[0]
    return isinstance(first, list) and len(first) > 1 and bool(first[1])


def is_page_ready(html: str) -> bool:
    """Return True when the page carries a parseable deferred-state payload.

    Never raises: a shell/loading page is an expected outcome, not a bug.
    """
    text = _deferred_state_text(html or "")
    if text is None:
        logger.warning("No script element found with %s", DEFERRED_STATE_ID)
        return False
    if not text.strip():
        logger.warning("Script element found but content is empty")
        return False

    try:
        parsed = json.loads(text)
    except ValueError as e:
        logger.warning("Error parsing script content: %s", e)
        return False

    if not _has_client_data(parsed):
        logger.warning("Script element found but data structure is invalid")
        return False

    logger.debug("Page data is ready and valid")
    return True


def load_client_data(html: str) -> Any:
    """Return ``niobeClientData[0][1]`` from the page's deferred state."""
    text = _deferred_state_text(html)
    if text is None or not text.strip():
        raise PageNotReady(PAGE_NOT_READY_MESSAGE, htmlLength=len(html))
    return dig(json.loads(text), "niobeClientData", 0, 1)
