from __future__ import annotations

import json
from typing import Any, List

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from airbnb_mcp.registry import ToolDispatcher

__all__ = ["create_debug_routes"]


def _decode_payload(result_text: str) -> Any:
    try:
        return json.loads(result_text)
    except ValueError:
        return result_text


def create_debug_routes(dispatcher: ToolDispatcher, base_path: str = "/debug") -> List[Route]:
    """Return Starlette Route objects for the debug API (plain JSON, no MCP session)."""

    async def list_tools(request: Request) -> Response:
        tools = [
            {"name": t.name, "description": t.description, "inputSchema": t.inputSchema}
            for t in dispatcher.list_tools()
        ]
        return JSONResponse({"ok": True, "tools": tools})

    async def call_tool(request: Request) -> Response:
        try:
            payload = await request.json()
        except ValueError:
            return JSONResponse({"ok": False, "error": "Body must be JSON"}, status_code=400)
        if not isinstance(payload, dict):
            return JSONResponse({"ok": False, "error": "Body must be a JSON object"}, status_code=400)

        name = payload.get("name")
        tool_input = payload.get("input")
        if tool_input is None:
            tool_input = {}
        if not isinstance(name, str):
            return JSONResponse({"ok": False, "error": "Missing tool name"}, status_code=400)
        if not isinstance(tool_input, dict):
            return JSONResponse({"ok": False, "error": "input must be object"}, status_code=400)

        result = await dispatcher.call(name, tool_input)
        text = result.content[0].text if result.content else ""  # type: ignore[union-attr]
        return JSONResponse(
            {
                "ok": not result.isError,
                "tool": name,
                "input": tool_input,
                "result": _decode_payload(text),
            }
        )

    return [
        Route(f"{base_path}/tools/list", list_tools, methods=["POST"]),
        Route(f"{base_path}/tools/call", call_tool, methods=["POST"]),
    ]
