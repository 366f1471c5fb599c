"""Common result helpers for Airbnb MCP tools."""
from __future__ import annotations

import functools
import json
import logging
from typing import Any, Awaitable, Callable

from mcp.types import CallToolResult, TextContent
from pydantic import ValidationError

from .errors import AirbnbMCPError

logger = logging.getLogger("airbnb_mcp")


# ---------------------------------------------------------------------------
# Result envelope helpers
# ---------------------------------------------------------------------------

def text_result(text: str, *, is_error: bool = False) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=is_error)


def json_result(payload: dict[str, Any], *, is_error: bool = False) -> CallToolResult:
    return text_result(json.dumps(payload, ensure_ascii=False, indent=2), is_error=is_error)


def ok_result(payload: dict[str, Any]) -> CallToolResult:
    return json_result(payload)


def error_result(message: str, **context: Any) -> CallToolResult:
    """Return an isError envelope whose text is ``{"error": message, **context}``."""
    return json_result({"error": message, **context}, is_error=True)


def result_payload(result: CallToolResult) -> Any:
    """Decode the JSON text of the first content block."""
    return json.loads(result.content[0].text)  # type: ignore[union-attr]


# ---------------------------------------------------------------------------
# Decorator converting extractor exceptions to structured output
# ---------------------------------------------------------------------------

def handle_tool_errors(
    func: Callable[..., Awaitable[CallToolResult]],
) -> Callable[..., Awaitable[CallToolResult]]:
    """Wrap an extractor so it always returns a CallToolResult instead of raising."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except AirbnbMCPError as e:
            logger.error("%s in %s: %s", type(e).__name__, func.__name__, e.message)
            return error_result(e.message, **e.context)
        except ValidationError as e:
            logger.error("Invalid arguments for %s: %s", func.__name__, e)
            details = [
                {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ]
            return error_result("Invalid arguments", details=details)
        except Exception as e:
            logger.error("Unexpected error in %s: %s", func.__name__, e, exc_info=True)
            return error_result(str(e) or type(e).__name__)

    return wrapper
