"""Tests for the stateless HTTP transport and per-request sessions."""

import asyncio
import json

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from dadjokes.catalog import JOKE_TOOL
from dadjokes.main import create_app
from dadjokes.mcp.dispatcher import Dispatcher, ServerInfo
from dadjokes.mcp.errors import INVALID_REQUEST, PARSE_ERROR
from dadjokes.mcp.registry import CapabilityRegistry
from dadjokes.mcp.schema import ToolDescriptor, ToolInputModel, ToolOutputModel
from dadjokes.mcp.session import ProtocolSession, SessionClosedError
from dadjokes.mcp.transport import CLIENT_CLOSED_REQUEST, StreamableHTTPTransport

ACCEPT_BOTH = {"Accept": "application/json, text/event-stream"}


class TestEndpoint:
    def test_tool_call_round_trip(self, client, rpc):
        response = client.post(
            "/mcp",
            json=rpc("tools/call", {"name": JOKE_TOOL, "arguments": {"id": 1}}),
            headers=ACCEPT_BOTH,
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        assert response.json() == {
            "jsonrpc": "2.0",
            "id": 1,
            "result": {"content": [], "structuredContent": {"joke": "b"}},
        }

    def test_no_session_header_is_issued(self, client, rpc):
        response = client.post("/mcp", json=rpc("initialize", {}))
        assert "mcp-session-id" not in response.headers

    def test_domain_error_is_not_an_http_failure(self, client, rpc):
        response = client.post(
            "/mcp", json=rpc("tools/call", {"name": JOKE_TOOL, "arguments": {"id": 5}})
        )
        assert response.status_code == 200
        assert response.json()["error"]["data"]["type"] == "ValidationError"

    def test_parse_error_is_bad_request(self, client):
        response = client.post(
            "/mcp", content=b"{oops", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        body = response.json()
        assert body["id"] is None
        assert body["error"]["code"] == PARSE_ERROR

    def test_deeply_nested_body_is_bad_request(self, client):
        response = client.post(
            "/mcp", content=b"[" * 200000, headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        body = response.json()
        assert body["id"] is None
        assert body["error"]["code"] == PARSE_ERROR

    def test_boolean_id_is_bad_request(self, client):
        response = client.post("/mcp", json={"jsonrpc": "2.0", "id": True, "method": "ping"})
        assert response.status_code == 400
        body = response.json()
        assert body["id"] is None
        assert body["error"]["code"] == INVALID_REQUEST

    def test_notification_is_accepted(self, client):
        response = client.post(
            "/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"}
        )
        assert response.status_code == 202
        assert response.content == b""

    def test_get_and_delete_not_allowed(self, client):
        for method in ("GET", "DELETE"):
            response = client.request(method, "/mcp")
            assert response.status_code == 405
            assert response.headers["allow"] == "POST"

    def test_manifest_and_health(self, client):
        manifest = client.get("/manifest.json").json()
        assert manifest == {
            "name": "dadjokes",
            "version": "1.0.0",
            "description": manifest["description"],
            "transport": {"type": "streamable-http", "url": "/mcp"},
        }
        assert client.get("/health").json() == {"status": "ok"}

    def test_custom_path(self, provider, rpc, settings_factory):
        client = TestClient(create_app(settings_factory(mcp_path="/protocol"), provider=provider))
        assert client.post("/protocol", json=rpc("ping")).json()["result"] == {}
        assert client.post("/mcp", json=rpc("ping")).status_code == 404

    def test_event_stream_mode(self, provider, rpc, settings_factory):
        client = TestClient(create_app(settings_factory(json_response=False), provider=provider))
        response = client.post(
            "/mcp", json=rpc("ping", id=7), headers={"Accept": "text/event-stream"}
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        prefix = "event: message\ndata: "
        assert response.text.startswith(prefix)
        payload = json.loads(response.text[len(prefix):].strip())
        assert payload == {"jsonrpc": "2.0", "id": 7, "result": {}}


class ValueInput(ToolInputModel):
    value: int


class ValueOutput(ToolOutputModel):
    value: int


class RecordingFactory:
    """Session factory that keeps every session it hands out."""

    def __init__(self):
        self.sessions: list[ProtocolSession] = []
        self.teardowns: dict[str, int] = {}

    def __call__(self, dispatcher: Dispatcher) -> ProtocolSession:
        session = ProtocolSession(dispatcher)
        self.teardowns[session.session_id] = 0

        def _count() -> None:
            self.teardowns[session.session_id] += 1

        session.on_close(_count)
        self.sessions.append(session)
        return session


def _post_scope() -> dict:
    return {
        "type": "http",
        "asgi": {"version": "3.0", "spec_version": "2.3"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": "/mcp",
        "raw_path": b"/mcp",
        "root_path": "",
        "query_string": b"",
        "headers": [(b"content-type", b"application/json"), (b"host", b"test")],
        "client": ("127.0.0.1", 5000),
        "server": ("test", 80),
    }


def _echo_app(factory, *, delay: float = 0.01, json_response: bool = True):
    async def echo(payload: ValueInput) -> ValueOutput:
        await asyncio.sleep(delay)
        return ValueOutput(value=payload.value)

    registry = CapabilityRegistry()
    registry.register(
        ToolDescriptor(name="echo", description="echo", input_model=ValueInput, handler=echo)
    )
    registry.seal()
    dispatcher = Dispatcher(registry, ServerInfo(name="test", version="0"))
    transport = StreamableHTTPTransport(
        dispatcher, json_response=json_response, session_factory=factory
    )
    app = FastAPI()
    app.include_router(transport.router())
    return app


class TestSessions:
    def test_fresh_session_per_request(self, rpc):
        factory = RecordingFactory()
        client = TestClient(_echo_app(factory, delay=0))
        for value in (1, 2):
            client.post("/mcp", json=rpc("tools/call", {"name": "echo", "arguments": {"value": value}}))
        first, second = factory.sessions
        assert first is not second
        assert first.session_id != second.session_id
        assert all(session.closed for session in factory.sessions)
        assert all(session.close_reason == "completed" for session in factory.sessions)
        assert set(factory.teardowns.values()) == {1}

    def test_concurrent_requests_stay_paired(self, rpc):
        factory = RecordingFactory()
        app = _echo_app(factory)
        count = 25

        async def scenario():
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
                # every client reuses the same JSON-RPC id on purpose
                requests = [
                    client.post(
                        "/mcp",
                        json=rpc("tools/call", {"name": "echo", "arguments": {"value": value}}, id=1),
                    )
                    for value in range(count)
                ]
                return await asyncio.gather(*requests)

        responses = asyncio.run(scenario())
        values = [response.json()["result"]["structuredContent"]["value"] for response in responses]
        assert values == list(range(count))
        assert len({session.session_id for session in factory.sessions}) == count
        assert set(factory.teardowns.values()) == {1}

    def test_disconnect_tears_down_exactly_once(self, rpc):
        release = asyncio.Event()
        finished: list[int] = []
        factory_sessions: list[ProtocolSession] = []
        teardowns = []

        async def slow(payload: ValueInput) -> ValueOutput:
            await release.wait()
            finished.append(payload.value)
            return ValueOutput(value=payload.value)

        def factory(dispatcher: Dispatcher) -> ProtocolSession:
            session = ProtocolSession(dispatcher)

            def _teardown() -> None:
                teardowns.append(session.session_id)
                release.set()

            session.on_close(_teardown)
            factory_sessions.append(session)
            return session

        registry = CapabilityRegistry()
        registry.register(
            ToolDescriptor(name="slow", description="", input_model=ValueInput, handler=slow)
        )
        registry.seal()
        transport = StreamableHTTPTransport(
            Dispatcher(registry, ServerInfo(name="test", version="0")),
            session_factory=factory,
        )
        app = FastAPI()
        app.include_router(transport.router())

        body = json.dumps(rpc("tools/call", {"name": "slow", "arguments": {"value": 3}})).encode()
        inbound = [
            {"type": "http.request", "body": body, "more_body": False},
            {"type": "http.disconnect"},
        ]
        sent = []

        async def receive():
            if inbound:
                return inbound.pop(0)
            await asyncio.Event().wait()

        async def send(message):
            sent.append(message)

        asyncio.run(app(_post_scope(), receive, send))

        (session,) = factory_sessions
        assert teardowns == [session.session_id]
        assert session.close_reason == "client_disconnected"
        # the handler was allowed to finish; its result was discarded
        assert finished == [3]
        start = next(message for message in sent if message["type"] == "http.response.start")
        assert start["status"] == CLIENT_CLOSED_REQUEST

    def test_disconnect_while_reading_body(self):
        factory = RecordingFactory()
        app = _echo_app(factory, delay=0)
        sent = []

        async def receive():
            return {"type": "http.disconnect"}

        async def send(message):
            sent.append(message)

        asyncio.run(app(_post_scope(), receive, send))

        assert factory.sessions == []
        start = next(message for message in sent if message["type"] == "http.response.start")
        assert start["status"] == CLIENT_CLOSED_REQUEST

    def test_event_stream_session_closes_once(self, rpc):
        factory = RecordingFactory()
        client = TestClient(_echo_app(factory, delay=0, json_response=False))
        response = client.post(
            "/mcp",
            json=rpc("tools/call", {"name": "echo", "arguments": {"value": 4}}),
            headers={"Accept": "text/event-stream"},
        )
        assert response.status_code == 200
        payload = json.loads(response.text.split("data: ", 1)[1].strip())
        assert payload["result"]["structuredContent"] == {"value": 4}
        (session,) = factory.sessions
        assert session.closed
        assert session.close_reason == "completed"
        assert factory.teardowns == {session.session_id: 1}


class TestProtocolSession:
    def test_close_runs_hooks_once_in_reverse_order(self, dispatcher):
        calls = []
        session = ProtocolSession(dispatcher)
        session.on_close(lambda: calls.append("first"))

        async def second():
            calls.append("second")

        session.on_close(second)

        async def scenario():
            assert await session.close("completed") is True
            assert await session.close("client_disconnected") is False

        asyncio.run(scenario())
        assert calls == ["second", "first"]
        assert session.close_reason == "completed"

    def test_error_exit_still_closes(self, dispatcher):
        calls = []

        async def scenario():
            async with ProtocolSession(dispatcher) as session:
                session.on_close(lambda: calls.append(session.session_id))
                raise ValueError("boom")

        with pytest.raises(ValueError):
            asyncio.run(scenario())
        assert len(calls) == 1

    def test_failing_hook_does_not_block_others(self, dispatcher):
        calls = []
        session = ProtocolSession(dispatcher)
        session.on_close(lambda: calls.append("ran"))

        def broken():
            raise RuntimeError("hook failed")

        session.on_close(broken)
        asyncio.run(session.close())
        assert calls == ["ran"]

    def test_closed_session_rejects_work(self, dispatcher):
        session = ProtocolSession(dispatcher)
        asyncio.run(session.close())
        with pytest.raises(SessionClosedError):
            asyncio.run(session.handle(b"{}"))
