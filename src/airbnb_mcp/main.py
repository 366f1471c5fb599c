"""
Airbnb MCP Server

Exposes Airbnb search and listing details as Model Context Protocol tools.

Usage:
    airbnb-mcp                       # stdio transport (Claude Desktop, Cursor, ...)
    airbnb-mcp --http --port=3000    # HTTP + SSE sessions
    airbnb-mcp --ignore-robots-txt
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

import anyio
from mcp.server.stdio import stdio_server

from airbnb_mcp.config import get_settings
from airbnb_mcp.registry import ToolDispatcher, build_dispatcher, create_server

logger = logging.getLogger("airbnb_mcp")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="airbnb-mcp", description="Airbnb MCP server")
    parser.add_argument(
        "--ignore-robots-txt",
        action="store_true",
        default=settings.AIRBNB_IGNORE_ROBOTS_TXT,
        help="Do not fetch or honour Airbnb's robots.txt",
    )
    parser.add_argument("--http", action="store_true", help="Serve over HTTP/SSE instead of stdio")
    parser.add_argument("--host", default=settings.MCP_HTTP_HOST)
    parser.add_argument("--port", type=int, default=settings.MCP_HTTP_PORT)
    parser.add_argument("--log-level", default=settings.LOG_LEVEL)
    return parser.parse_args(argv)


async def run_stdio(dispatcher: ToolDispatcher) -> None:
    server = create_server(dispatcher)
    async with stdio_server() as (read_stream, write_stream):
        logger.info("Airbnb MCP Server running on stdio")
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)

    # stdout carries the stdio protocol, so logs go to stderr
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    settings = get_settings()
    dispatcher = build_dispatcher(
        base_url=settings.AIRBNB_BASE_URL,
        user_agent=settings.AIRBNB_USER_AGENT,
        timeout=settings.AIRBNB_FETCH_TIMEOUT,
        ignore_robots_txt=args.ignore_robots_txt,
    )
    logger.info(
        "Server started with options: %s",
        "ignore-robots-txt" if args.ignore_robots_txt else "respect-robots-txt",
    )

    if args.http:
        from airbnb_mcp.http_server import run_http

        run_http(dispatcher, host=args.host, port=args.port, log_level=args.log_level)
    else:
        anyio.run(run_stdio, dispatcher)


if __name__ == "__main__":
    main()
