"""Airbnb MCP tools.

- search.py: ``airbnb_search`` (search results page extractor)
- listing.py: ``airbnb_listing_details`` (listing page section extractor)
"""

from __future__ import annotations

from .listing import LISTING_DETAILS_TOOL, listing_details
from .search import SEARCH_TOOL, search

__all__ = [
    "LISTING_DETAILS_TOOL",
    "SEARCH_TOOL",
    "listing_details",
    "search",
]
