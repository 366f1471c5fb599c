from __future__ import annotations

import base64
import logging
from typing import Any
from urllib.parse import quote, urlencode

from mcp.types import CallToolResult, Tool

from ..errors import ExtractionError, HTTPStatusError, NetworkError, PageNotReady, PolicyViolation
from ..fetcher import Fetcher
from ..models import SearchQuery
from ..page import PAGE_NOT_READY_MESSAGE, is_page_ready, load_client_data
from ..projection import AllowSchema, dig, flatten_arrays, pick_by_schema, prune
from ..robots import ROBOTS_ERROR_MESSAGE, RobotsPolicy, request_path
from ..utils import handle_tool_errors, ok_result

logger = logging.getLogger(__name__)

TOOL_NAME = "airbnb_search"

SEARCH_TOOL = Tool(
    name=TOOL_NAME,
    description=(
        "Search for Airbnb listings with various filters and pagination. "
        "Provide direct links to the user"
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "location": {"type": "string", "description": "Location to search for (city, state, etc.)"},
            "placeId": {
                "type": "string",
                "description": "Google Maps Place ID (overrides the location parameter)",
            },
            "checkin": {"type": "string", "description": "Check-in date (YYYY-MM-DD)"},
            "checkout": {"type": "string", "description": "Check-out date (YYYY-MM-DD)"},
            "adults": {"type": "number", "description": "Number of adults"},
            "children": {"type": "number", "description": "Number of children"},
            "infants": {"type": "number", "description": "Number of infants"},
            "pets": {"type": "number", "description": "Number of pets"},
            "minPrice": {"type": "number", "description": "Minimum price for the stay"},
            "maxPrice": {"type": "number", "description": "Maximum price for the stay"},
            "cursor": {"type": "string", "description": "Base64-encoded string used for Pagination"},
            "ignoreRobotsText": {
                "type": "boolean",
                "description": "Ignore robots.txt rules for this request",
            },
        },
        "required": ["location"],
    },
)

SEARCH_RESULT_SCHEMA: AllowSchema = {
    "demandStayListing": {
        "id": True,
        "description": True,
        "location": True,
    },
    "badges": {
        "text": True,
    },
    "structuredContent": {
        "mapCategoryInfo": {"body": True},
        "mapSecondaryLine": {"body": True},
        "primaryLine": {"body": True},
        "secondaryLine": {"body": True},
    },
    "avgRatingA11yLabel": True,
    "listingParamOverrides": True,
    "structuredDisplayPrice": {
        "primaryLine": {"accessibilityLabel": True},
        "secondaryLine": {"accessibilityLabel": True},
        "explanationData": {
            "title": True,
            "priceDetails": {
                "items": {
                    "description": True,
                    "priceString": True,
                },
            },
        },
    },
}


def _format_price(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def build_search_url(query: SearchQuery, base_url: str) -> str:
    base = base_url.rstrip("/")
    if query.location:
        url = f"{base}/s/{quote(query.location, safe='')}/homes"
    else:
        # placeId-only searches use the location-less results page
        url = f"{base}/s/homes"

    params: list[tuple[str, str]] = []
    if query.place_id:
        params.append(("place_id", query.place_id))
    if query.checkin:
        params.append(("checkin", query.checkin.isoformat()))
    if query.checkout:
        params.append(("checkout", query.checkout.isoformat()))
    params.extend(query.guest_params())
    if query.min_price:
        params.append(("price_min", _format_price(query.min_price)))
    if query.max_price:
        params.append(("price_max", _format_price(query.max_price)))
    if query.cursor:
        params.append(("cursor", query.cursor))

    if params:
        url = f"{url}?{urlencode(params)}"
    return url


def decode_listing_id(encoded: str) -> str:
    """``RGVtYW5kU3RheUxpc3Rpbmc6MTIz`` -> ``123`` (base64 of ``DemandStayListing:123``)."""
    try:
        decoded = base64.b64decode(encoded).decode("utf-8")
    except (ValueError, UnicodeDecodeError) as e:
        raise ExtractionError(f"Listing id {encoded!r} is not valid base64") from e
    parts = decoded.split(":")
    if len(parts) < 2 or not parts[1]:
        raise ExtractionError(f"Unexpected listing id format: {decoded!r}")
    return parts[1]


def extract_search_results(client_data: Any, base_url: str) -> dict[str, Any]:
    results = prune(dig(client_data, "data", "presentation", "staysSearch", "results"))
    search_results = dig(results, "searchResults")
    if not isinstance(search_results, list):
        raise ExtractionError("searchResults is not a list")
    logger.info("Found %d search results", len(search_results))

    listings = []
    for result in search_results:
        projected = flatten_arrays(pick_by_schema(result, SEARCH_RESULT_SCHEMA))
        listing_id = decode_listing_id(dig(projected, "demandStayListing", "id"))
        listings.append({"id": listing_id, "url": f"{base_url.rstrip('/')}/rooms/{listing_id}", **projected})

    return {
        "searchResults": listings,
        "paginationInfo": results.get("paginationInfo"),
    }


@handle_tool_errors
async def search(
    arguments: dict[str, Any],
    *,
    robots: RobotsPolicy,
    fetcher: Fetcher,
    base_url: str,
) -> CallToolResult:
    """Run an Airbnb search and return the compacted results page."""
    query = SearchQuery.model_validate(arguments)
    search_url = build_search_url(query, base_url)
    logger.info("Built search URL: %s", search_url)

    if not query.ignore_robots_text and not robots.is_allowed(request_path(search_url)):
        raise PolicyViolation(ROBOTS_ERROR_MESSAGE, url=search_url)

    try:
        response = await fetcher.fetch(search_url)
    except NetworkError as e:
        e.context["searchUrl"] = search_url
        raise
    if not response.is_success:
        raise HTTPStatusError(response.status_code, response.reason_phrase, searchUrl=search_url)

    html = response.text
    if not is_page_ready(html):
        raise PageNotReady(PAGE_NOT_READY_MESSAGE, searchUrl=search_url, htmlLength=len(html))

    try:
        payload = extract_search_results(load_client_data(html), base_url)
    except Exception as e:
        logger.error("Error parsing search results: %s", e)
        raise ExtractionError(
            "Failed to parse search results", details=str(e), searchUrl=search_url
        ) from e

    logger.info("Processed %d listings", len(payload["searchResults"]))
    return ok_result({"searchUrl": search_url, **payload})
