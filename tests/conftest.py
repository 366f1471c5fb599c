import base64
import json

import pytest

from airbnb_mcp.fetcher import Fetcher
from airbnb_mcp.registry import build_dispatcher
from airbnb_mcp.robots import RobotsPolicy

BASE_URL = "https://www.airbnb.com"
USER_AGENT = "ModelContextProtocol/1.0 (Autonomous; +https://github.com/modelcontextprotocol/servers)"
LISTING_ID = "12345"
ENCODED_LISTING_ID = base64.b64encode(f"DemandStayListing:{LISTING_ID}".encode()).decode()


def make_page(client_data) -> str:
    """Render a page whose deferred state wraps ``client_data`` like Airbnb does."""
    state = {"niobeClientData": [["StaysSearch:{}", client_data]]}
    return (
        "<!doctype html><html><head><title>Airbnb</title></head><body>"
        f'<script id="data-deferred-state-0" type="application/json">{json.dumps(state)}</script>'
        "</body></html>"
    )


def search_client_data(results=None, pagination=None):
    if results is None:
        results = [search_result()]
    return {
        "data": {
            "presentation": {
                "staysSearch": {
                    "results": {
                        "searchResults": results,
                        "paginationInfo": pagination or {"nextPageCursor": "YWJj", "pageCursors": ["YWJj", "ZGVm"]},
                    }
                }
            }
        }
    }


def search_result(encoded_id: str = ENCODED_LISTING_ID):
    return {
        "__typename": "StaySearchResult",
        "demandStayListing": {
            "id": encoded_id,
            "description": {"name": {"value": "Cozy loft near the Seine"}},
            "location": {"coordinate": {"latitude": 48.85, "longitude": 2.35}},
        },
        "badges": [{"text": "Guest favorite", "loggingContext": {"badgeType": "GUEST_FAVORITE"}}],
        "avgRatingA11yLabel": "4.92 out of 5 average rating, 120 reviews",
        "structuredDisplayPrice": {
            "primaryLine": {"accessibilityLabel": "€120 per night"},
            "secondaryLine": None,
        },
        "contextualPictures": [{"picture": "https://a0.muscache.com/im/pictures/1.jpg"}],
        "listingParamOverrides": "",
    }


def details_client_data(sections):
    return {
        "data": {
            "presentation": {
                "stayProductDetailPage": {
                    "sections": {"sections": sections},
                }
            }
        }
    }


@pytest.fixture
def fetcher():
    return Fetcher(user_agent=USER_AGENT, timeout=6.0)


@pytest.fixture
def robots(fetcher):
    policy = RobotsPolicy(fetcher, base_url=BASE_URL, user_agent=USER_AGENT)
    policy.load("")
    return policy


@pytest.fixture
def tool_kwargs(robots, fetcher):
    return {"robots": robots, "fetcher": fetcher, "base_url": BASE_URL}


@pytest.fixture
def dispatcher():
    return build_dispatcher(
        base_url=BASE_URL,
        user_agent=USER_AGENT,
        timeout=6.0,
        ignore_robots_txt=True,
    )
