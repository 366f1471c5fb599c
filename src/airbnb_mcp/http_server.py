"""HTTP transport: one Server-Sent-Events stream per client session.

``GET /mcp?sessionId=<id>`` opens the stream for a session. The client then
delivers JSON-RPC messages with ``POST /mcp`` carrying the same id in the
``mcp-session-id`` header (or a ``sessionId`` query parameter). The
``session_id`` the SDK announces on the stream's ``endpoint`` event is filled
in from the registry when a POST does not carry it.
"""
from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlencode

import uvicorn
from mcp.server.lowlevel import Server
from mcp.server.sse import SseServerTransport
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from .debug_http import create_debug_routes
from .registry import ToolDispatcher, create_server

logger = logging.getLogger(__name__)

MCP_PATH = "/mcp"
SESSION_HEADER = "mcp-session-id"


class SessionRegistry:
    """Active session transports keyed by client session id.

    Each entry also remembers the transport's own session id (the one the SDK
    announces on the ``endpoint`` event) so POSTs can be routed by client id alone.
    """

    def __init__(self) -> None:
        self._transports: dict[str, SseServerTransport] = {}
        self._transport_session_ids: dict[str, str] = {}

    def add(
        self,
        session_id: str,
        transport: SseServerTransport,
        transport_session_id: Optional[str] = None,
    ) -> None:
        if session_id in self._transports:
            logger.warning("Session %s reconnected; replacing its transport", session_id)
        self._transports[session_id] = transport
        if transport_session_id:
            self._transport_session_ids[session_id] = transport_session_id
        else:
            self._transport_session_ids.pop(session_id, None)
        logger.info("Transport created, total sessions: %d", len(self))

    def get(self, session_id: str) -> Optional[SseServerTransport]:
        return self._transports.get(session_id)

    def transport_session_id(self, session_id: str) -> Optional[str]:
        return self._transport_session_ids.get(session_id)

    def remove(self, session_id: str, transport: Optional[SseServerTransport] = None) -> None:
        """Drop a session. With ``transport`` given, only if it is still the registered one."""
        current = self._transports.get(session_id)
        if current is None or (transport is not None and current is not transport):
            return
        del self._transports[session_id]
        self._transport_session_ids.pop(session_id, None)
        logger.info("Session %s removed, remaining sessions: %d", session_id, len(self))

    def session_ids(self) -> list[str]:
        return list(self._transports)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._transports

    def __len__(self) -> int:
        return len(self._transports)


def _announced_session_id(transport: SseServerTransport) -> Optional[str]:
    # One transport per client session, so it holds exactly one stream writer.
    for key in getattr(transport, "_read_stream_writers", {}):
        return key.hex
    return None


def _with_query_param(scope: Scope, name: str, value: str) -> Scope:
    query = scope.get("query_string", b"")
    extra = urlencode({name: value}).encode()
    scope = dict(scope)
    scope["query_string"] = query + b"&" + extra if query else extra
    return scope


class PostMessageEndpoint:
    """Raw ASGI endpoint routing a POSTed message to its session's transport."""

    def __init__(self, sessions: SessionRegistry) -> None:
        self.sessions = sessions

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        session_id = request.headers.get(SESSION_HEADER) or request.query_params.get("sessionId")
        transport = self.sessions.get(session_id) if session_id else None
        if transport is None:
            logger.error("Invalid or missing session ID: %s", session_id)
            response = PlainTextResponse("Invalid or missing session ID", status_code=400)
            await response(scope, receive, send)
            return

        if "session_id" not in request.query_params:
            transport_session_id = self.sessions.transport_session_id(session_id)
            if transport_session_id:
                scope = _with_query_param(scope, "session_id", transport_session_id)

        await transport.handle_post_message(scope, receive, send)


def create_app(
    dispatcher: ToolDispatcher,
    server: Optional[Server] = None,
    sessions: Optional[SessionRegistry] = None,
) -> Starlette:
    server = server or create_server(dispatcher)
    sessions = sessions if sessions is not None else SessionRegistry()

    async def open_stream(request: Request) -> Response:
        session_id = request.query_params.get("sessionId")
        if not session_id:
            logger.error("Missing sessionId parameter")
            return PlainTextResponse("Missing sessionId parameter", status_code=400)

        transport = SseServerTransport(MCP_PATH)
        try:
            async with transport.connect_sse(request.scope, request.receive, request._send) as (read, write):
                sessions.add(session_id, transport, _announced_session_id(transport))
                logger.info("Transport connected for session: %s", session_id)
                await server.run(read, write, server.create_initialization_options())
        finally:
            logger.info("SSE transport closed for session: %s", session_id)
            sessions.remove(session_id, transport)
        return Response()

    async def health(request: Request) -> Response:
        return JSONResponse({"status": "ok", "sessions": len(sessions)})

    routes = [
        Route(MCP_PATH, open_stream, methods=["GET"]),
        Route(MCP_PATH, PostMessageEndpoint(sessions), methods=["POST"]),
        Route("/health", health, methods=["GET"]),
        *create_debug_routes(dispatcher),
    ]
    app = Starlette(routes=routes)
    app.state.sessions = sessions
    return app


def run_http(dispatcher: ToolDispatcher, host: str, port: int, log_level: str = "info") -> None:
    app = create_app(dispatcher)
    logger.info("Airbnb MCP Server running on HTTP port %d", port)
    logger.info("Connect via SSE at: http://localhost:%d%s?sessionId=<your-session-id>", port, MCP_PATH)
    uvicorn.run(app, host=host, port=port, log_level=log_level.lower())
