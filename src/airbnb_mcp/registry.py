from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from mcp.server.lowlevel import Server
from mcp.types import CallToolResult, Tool

from .errors import UnknownOperation
from .fetcher import Fetcher
from .robots import RobotsPolicy
from .tools import LISTING_DETAILS_TOOL, SEARCH_TOOL, listing_details, search
from .utils import text_result

logger = logging.getLogger(__name__)

SERVER_NAME = "airbnb"
SERVER_VERSION = "0.1.0"

Handler = Callable[..., Awaitable[CallToolResult]]


class ToolDispatcher:
    """Name -> tool registry with a single call entry point.

    Every call returns a CallToolResult; nothing raised by a tool reaches the
    transport.
    """

    def __init__(self, robots: RobotsPolicy, fetcher: Fetcher, base_url: str) -> None:
        self.robots = robots
        self.fetcher = fetcher
        self.base_url = base_url
        self._tools: dict[str, tuple[Tool, Handler]] = {}

    def register(self, tool: Tool, handler: Handler) -> None:
        self._tools[tool.name] = (tool, handler)

    def list_tools(self) -> list[Tool]:
        return [tool for tool, _ in self._tools.values()]

    def resolve(self, name: str) -> Handler:
        try:
            return self._tools[name][1]
        except KeyError:
            raise UnknownOperation(name) from None

    async def call(self, name: str, arguments: dict[str, Any] | None = None) -> CallToolResult:
        logger.info("CallTool request received - Tool: %s", name)
        try:
            handler = self.resolve(name)
            await self.robots.ensure_loaded()
            result = await handler(
                arguments or {},
                robots=self.robots,
                fetcher=self.fetcher,
                base_url=self.base_url,
            )
        except Exception as e:
            logger.error("Error in CallTool handler: %s", e)
            return text_result(f"Error: {e}", is_error=True)

        logger.info("Tool execution completed - Success: %s", not result.isError)
        return result


def register_all(dispatcher: ToolDispatcher) -> None:
    """Register every Airbnb tool with the dispatcher."""
    dispatcher.register(SEARCH_TOOL, search)
    dispatcher.register(LISTING_DETAILS_TOOL, listing_details)


def build_dispatcher(
    *,
    base_url: str,
    user_agent: str,
    timeout: float,
    ignore_robots_txt: bool = False,
) -> ToolDispatcher:
    fetcher = Fetcher(user_agent=user_agent, timeout=timeout)
    robots = RobotsPolicy(fetcher, base_url=base_url, user_agent=user_agent, ignore=ignore_robots_txt)
    dispatcher = ToolDispatcher(robots, fetcher, base_url)
    register_all(dispatcher)
    return dispatcher


def create_server(dispatcher: ToolDispatcher) -> Server:
    """Bind the dispatcher to a low-level MCP server."""
    server: Server = Server(SERVER_NAME, version=SERVER_VERSION)

    @server.list_tools()
    async def _list_tools() -> list[Tool]:
        logger.info("ListTools request received")
        return dispatcher.list_tools()

    @server.call_tool()
    async def _call_tool(name: str, arguments: dict[str, Any] | None) -> CallToolResult:
        return await dispatcher.call(name, arguments)

    return server
