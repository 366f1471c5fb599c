from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote, urlencode

from mcp.types import CallToolResult, Tool

from ..errors import ExtractionError, HTTPStatusError, NetworkError, PageNotReady, PolicyViolation
from ..fetcher import Fetcher
from ..models import ListingQuery
from ..page import PAGE_NOT_READY_MESSAGE, is_page_ready, load_client_data
from ..projection import AllowSchema, dig, flatten_arrays, pick_by_schema, prune
from ..robots import ROBOTS_ERROR_MESSAGE, RobotsPolicy, request_path
from ..utils import handle_tool_errors, ok_result

logger = logging.getLogger(__name__)

TOOL_NAME = "airbnb_listing_details"

LISTING_DETAILS_TOOL = Tool(
    name=TOOL_NAME,
    description=(
        "Get detailed information about a specific Airbnb listing. "
        "Provide direct links to the user"
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "id": {"type": "string", "description": "The Airbnb listing ID"},
            "checkin": {"type": "string", "description": "Check-in date (YYYY-MM-DD)"},
            "checkout": {"type": "string", "description": "Check-out date (YYYY-MM-DD)"},
            "adults": {"type": "number", "description": "Number of adults"},
            "children": {"type": "number", "description": "Number of children"},
            "infants": {"type": "number", "description": "Number of infants"},
            "pets": {"type": "number", "description": "Number of pets"},
            "ignoreRobotsText": {
                "type": "boolean",
                "description": "Ignore robots.txt rules for this request",
            },
        },
        "required": ["id"],
    },
)

# Keyed by sectionId. ``True`` keeps the whole section.
LISTING_SECTION_SCHEMA: AllowSchema = {
    "LOCATION_DEFAULT": {
        "lat": True,
        "lng": True,
        "subtitle": True,
        "title": True,
    },
    "POLICIES_DEFAULT": {
        "title": True,
        "houseRulesSections": {
            "title": True,
            "items": {"title": True},
        },
    },
    "HIGHLIGHTS_DEFAULT": {
        "highlights": {"title": True},
    },
    "DESCRIPTION_DEFAULT": {
        "htmlDescription": {"htmlText": True},
    },
    "AMENITIES_DEFAULT": {
        "title": True,
        "seeAllAmenitiesGroups": {
            "title": True,
            "amenities": {"title": True},
        },
    },
    "HERO_DEFAULT": True,
    "BOOK_IT_SIDEBAR": True,
}


def build_listing_url(query: ListingQuery, base_url: str) -> str:
    url = f"{base_url.rstrip('/')}/rooms/{quote(query.id, safe='')}"

    params: list[tuple[str, str]] = []
    if query.checkin:
        params.append(("check_in", query.checkin.isoformat()))
    if query.checkout:
        params.append(("check_out", query.checkout.isoformat()))
    params.extend(query.guest_params())

    if params:
        url = f"{url}?{urlencode(params)}"
    return url


def extract_sections(client_data: Any) -> list[dict[str, Any]]:
    sections = dig(
        client_data, "data", "presentation", "stayProductDetailPage", "sections", "sections"
    )
    if not isinstance(sections, list):
        raise ExtractionError("sections is not a list")
    logger.info("Found %d sections", len(sections))

    details = []
    for section in sections:
        section = prune(section)
        if not isinstance(section, dict):
            continue
        section_id = section.get("sectionId")
        if not isinstance(section_id, str) or section_id not in LISTING_SECTION_SCHEMA:
            continue

        projected = flatten_arrays(pick_by_schema(section.get("section", {}), LISTING_SECTION_SCHEMA[section_id]))
        entry: dict[str, Any] = {"id": section_id}
        if isinstance(projected, dict):
            entry.update((k, v) for k, v in projected.items() if k != "id")
        details.append(entry)
    return details


@handle_tool_errors
async def listing_details(
    arguments: dict[str, Any],
    *,
    robots: RobotsPolicy,
    fetcher: Fetcher,
    base_url: str,
) -> CallToolResult:
    """Fetch one listing page and return its allow-listed sections."""
    query = ListingQuery.model_validate(arguments)
    listing_url = build_listing_url(query, base_url)
    logger.info("Built listing URL: %s", listing_url)

    if not query.ignore_robots_text and not robots.is_allowed(request_path(listing_url)):
        raise PolicyViolation(ROBOTS_ERROR_MESSAGE, url=listing_url)

    try:
        response = await fetcher.fetch(listing_url)
    except NetworkError as e:
        e.context["listingUrl"] = listing_url
        raise
    if not response.is_success:
        raise HTTPStatusError(response.status_code, response.reason_phrase, listingUrl=listing_url)

    html = response.text
    if not is_page_ready(html):
        raise PageNotReady(PAGE_NOT_READY_MESSAGE, listingUrl=listing_url, htmlLength=len(html))

    try:
        details = extract_sections(load_client_data(html))
    except Exception as e:
        logger.error("Error parsing listing details: %s", e)
        raise ExtractionError(
            "Failed to parse listing details", details=str(e), listingUrl=listing_url
        ) from e

    logger.info("Processed %d sections", len(details))
    return ok_result({"listingUrl": listing_url, "details": details})
