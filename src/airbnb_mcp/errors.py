"""Error taxonomy for the Airbnb MCP server.

Every error carries a human-readable ``message`` plus a ``context`` dict of
diagnostic fields (URL attempted, HTML length, ...) that ends up verbatim in
the JSON payload of the error result.
"""
from __future__ import annotations

from typing import Any

from mcp.types import METHOD_NOT_FOUND


class AirbnbMCPError(Exception):
    error_type = "error"

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)


class NetworkError(AirbnbMCPError):
    error_type = "network_error"


class FetchTimeoutError(NetworkError):
    error_type = "timeout"

    def __init__(self, timeout: float, **context: Any) -> None:
        self.timeout = timeout
        super().__init__(f"Request timed out after {timeout:g} seconds", **context)


class HTTPStatusError(NetworkError):
    error_type = "http_error"

    def __init__(self, status_code: int, reason: str, **context: Any) -> None:
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {reason}", status=status_code, **context)


class PolicyViolation(AirbnbMCPError):
    error_type = "robots_disallowed"


class PageNotReady(AirbnbMCPError):
    error_type = "page_not_ready"


class ExtractionError(AirbnbMCPError):
    error_type = "extraction_error"


class UnknownOperation(AirbnbMCPError):
    error_type = "unknown_tool"
    code = METHOD_NOT_FOUND

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")
