import json

import anyio
import pytest
from mcp.types import LATEST_PROTOCOL_VERSION
from starlette.testclient import TestClient

from airbnb_mcp.http_server import SessionRegistry, create_app


class _Transport:
    """Stands in for SseServerTransport; the registry never touches it."""


@pytest.fixture
def sessions():
    return SessionRegistry()


@pytest.fixture
def client(dispatcher, sessions):
    return TestClient(create_app(dispatcher, sessions=sessions))


def test_registry_add_get_remove(sessions):
    a, b = _Transport(), _Transport()
    sessions.add("a", a)
    sessions.add("b", b)

    assert len(sessions) == 2
    assert "a" in sessions
    assert sessions.get("b") is b
    assert sorted(sessions.session_ids()) == ["a", "b"]

    sessions.remove("a")
    assert "a" not in sessions
    assert sessions.get("a") is None
    assert len(sessions) == 1


def test_registry_remove_ignores_replaced_transport(sessions):
    old, new = _Transport(), _Transport()
    sessions.add("s", old)
    sessions.add("s", new)

    sessions.remove("s", old)
    assert sessions.get("s") is new

    sessions.remove("s", new)
    assert "s" not in sessions


def test_registry_tracks_transport_session_id(sessions):
    old, new = _Transport(), _Transport()
    sessions.add("s", old, "aaaa")
    assert sessions.transport_session_id("s") == "aaaa"

    sessions.add("s", new)
    assert sessions.transport_session_id("s") is None

    sessions.add("s", new, "bbbb")
    sessions.remove("s", new)
    assert sessions.transport_session_id("s") is None


def test_registry_remove_unknown_is_noop(sessions):
    sessions.remove("missing")
    assert len(sessions) == 0


def test_stream_requires_session_id(client):
    response = client.get("/mcp")
    assert response.status_code == 400
    assert response.text == "Missing sessionId parameter"


def test_post_without_session_id(client):
    response = client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "ping"})
    assert response.status_code == 400
    assert response.text == "Invalid or missing session ID"


def test_post_with_unknown_session_id(client):
    response = client.post(
        "/mcp",
        headers={"mcp-session-id": "nope"},
        json={"jsonrpc": "2.0", "id": 1, "method": "ping"},
    )
    assert response.status_code == 400


def test_health_reports_sessions(client, sessions):
    sessions.add("s1", _Transport())
    response = client.get("/health")
    assert response.json() == {"status": "ok", "sessions": 1}


def test_debug_list_tools(client):
    response = client.post("/debug/tools/list")
    assert response.status_code == 200
    names = {t["name"] for t in response.json()["tools"]}
    assert names == {"airbnb_search", "airbnb_listing_details"}


def test_debug_call_unknown_tool(client):
    response = client.post("/debug/tools/call", json={"name": "nope", "input": {}})
    body = response.json()
    assert body["ok"] is False
    assert body["result"] == "Error: Unknown tool: nope"


def test_debug_call_validates_body(client):
    assert client.post("/debug/tools/call", json={"input": {}}).status_code == 400
    assert client.post("/debug/tools/call", json={"name": "x", "input": []}).status_code == 400
    assert client.post("/debug/tools/call", content=b"{not json", headers={"content-type": "application/json"}).status_code == 400


def test_debug_call_invalid_arguments(client):
    response = client.post("/debug/tools/call", json={"name": "airbnb_search", "input": {}})
    body = response.json()
    assert body["ok"] is False
    assert body["result"]["error"] == "Invalid arguments"


def test_debug_call_null_input_means_no_arguments(client):
    response = client.post("/debug/tools/call", json={"name": "airbnb_listing_details", "input": None})
    body = response.json()
    assert response.status_code == 200
    assert body["input"] == {}
    assert body["result"]["error"] == "Invalid arguments"


# --- live sessions over raw ASGI (TestClient buffers whole responses) ---


def _scope(method: str, query: str = "", headers=()) -> dict:
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": "/mcp",
        "raw_path": b"/mcp",
        "root_path": "",
        "query_string": query.encode(),
        "headers": [(b"host", b"testserver"), *headers],
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 50000),
    }


def _parse_event(block: str):
    event, data = "message", []
    for line in block.split("\n"):
        if line.startswith("event:"):
            event = line[len("event:"):].strip()
        elif line.startswith("data:"):
            data.append(line[len("data:"):].strip())
    return (event, "\n".join(data)) if data else None


async def _open_stream(app, session_id: str, events, disconnected: anyio.Event) -> None:
    request_sent = False
    buffer = ""

    async def receive():
        nonlocal request_sent
        if not request_sent:
            request_sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await disconnected.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        nonlocal buffer
        if message["type"] != "http.response.body":
            return
        buffer += message.get("body", b"").decode().replace("\r\n", "\n")
        while "\n\n" in buffer:
            block, buffer = buffer.split("\n\n", 1)
            event = _parse_event(block)
            if event is not None:
                await events.send(event)

    await app(_scope("GET", query=f"sessionId={session_id}"), receive, send)


async def _post(app, session_id: str, message: dict) -> int:
    body = json.dumps(message).encode()
    headers = [
        (b"mcp-session-id", session_id.encode()),
        (b"content-type", b"application/json"),
        (b"content-length", str(len(body)).encode()),
    ]
    body_sent = False
    statuses = []

    async def receive():
        nonlocal body_sent
        if not body_sent:
            body_sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return {"type": "http.disconnect"}

    async def send(message):
        if message["type"] == "http.response.start":
            statuses.append(message["status"])

    await app(_scope("POST", headers=headers), receive, send)
    return statuses[0]


async def _next_message(events) -> dict:
    while True:
        kind, data = await events.receive()
        if kind == "message":
            return json.loads(data)


def _initialize(request_id: str) -> dict:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "initialize",
        "params": {
            "protocolVersion": LATEST_PROTOCOL_VERSION,
            "capabilities": {},
            "clientInfo": {"name": "test-client", "version": "0.0.1"},
        },
    }


@pytest.mark.asyncio
async def test_messages_routed_by_client_session_id(dispatcher):
    sessions = SessionRegistry()
    app = create_app(dispatcher, sessions=sessions)
    streams = {}

    with anyio.fail_after(10):
        async with anyio.create_task_group() as tg:
            for sid in ("alpha", "beta"):
                send_events, receive_events = anyio.create_memory_object_stream(100)
                disconnected = anyio.Event()
                streams[sid] = (receive_events, disconnected)
                tg.start_soon(_open_stream, app, sid, send_events, disconnected)

            for events, _ in streams.values():
                kind, data = await events.receive()
                assert kind == "endpoint"
                assert "session_id=" in data
            while len(sessions) < 2:
                await anyio.sleep(0.01)
            assert sessions.transport_session_id("alpha") != sessions.transport_session_id("beta")

            for sid in streams:
                assert await _post(app, sid, _initialize(f"{sid}-init")) == 202
            for sid, (events, _) in streams.items():
                reply = await _next_message(events)
                assert reply["id"] == f"{sid}-init"
                assert reply["result"]["serverInfo"]["name"] == "airbnb"

            assert await _post(app, "alpha", {"jsonrpc": "2.0", "method": "notifications/initialized"}) == 202
            assert await _post(app, "alpha", {"jsonrpc": "2.0", "id": "alpha-tools", "method": "tools/list"}) == 202
            reply = await _next_message(streams["alpha"][0])
            assert reply["id"] == "alpha-tools"
            assert {t["name"] for t in reply["result"]["tools"]} == {"airbnb_search", "airbnb_listing_details"}

            # nothing from alpha's exchange leaked onto beta's stream
            assert streams["beta"][0].statistics().current_buffer_used == 0

            for _, disconnected in streams.values():
                disconnected.set()

    assert len(sessions) == 0
