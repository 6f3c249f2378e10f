from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from pyfloorplan.client import FloorplanClient
from pyfloorplan.config import FloorplanConfig
from pyfloorplan.engine import FloorplanEngine
from pyfloorplan.exceptions import (
    FloorplanAuthenticationError,
    FloorplanDecodeError,
    FloorplanProtocolError,
    FloorplanTransportError,
)
from pyfloorplan.models.state import StateSource
from pyfloorplan.render.memory import MemoryRenderer
from pyfloorplan.sync import ConnectionState

TOKEN = "long-lived-token"


@dataclass
class FakeHomeAssistant:
    """Minimal ``/api/states`` + ``/api/stream`` server.

    ``stream_changes[n]`` lists the ``(entity_id, state)`` changes pushed on
    the n-th stream connection; each change also updates the state table so
    later snapshots agree with what was streamed.
    """

    states: dict[str, str] = field(default_factory=dict)
    stream_changes: list[list[tuple[str, str]]] = field(default_factory=list)
    states_status: int = 200
    states_body: str | None = None
    stream_status: int = 200
    calls: dict[str, int] = field(default_factory=dict)
    seen_headers: list[dict[str, str]] = field(default_factory=list)

    def _record_call(self, endpoint: str, request: web.Request) -> int:
        index = self.calls.get(endpoint, 0)
        self.calls[endpoint] = index + 1
        self.seen_headers.append(dict(request.headers))
        return index

    def _authorized(self, request: web.Request) -> bool:
        return request.headers.get("Authorization") == f"Bearer {TOKEN}"

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/states", self._handle_states)
        app.router.add_get("/api/stream", self._handle_stream)
        return app

    async def _handle_states(self, request: web.Request) -> web.StreamResponse:
        self._record_call("states", request)
        if not self._authorized(request):
            return web.json_response({"message": "401: Unauthorized"}, status=401)
        if self.states_status != 200:
            return web.Response(status=self.states_status, text="Internal Server Error")
        if self.states_body is not None:
            return web.Response(text=self.states_body, content_type="application/json")
        return web.json_response(
            [{"entity_id": entity_id, "state": state, "attributes": {}} for entity_id, state in self.states.items()]
        )

    async def _handle_stream(self, request: web.Request) -> web.StreamResponse:
        index = self._record_call("stream", request)
        if not self._authorized(request):
            return web.json_response({"message": "401: Unauthorized"}, status=401)
        if self.stream_status != 200:
            return web.Response(status=self.stream_status, text="Bad Gateway")

        response = web.StreamResponse()
        response.content_type = "text/event-stream"
        await response.prepare(request)
        await response.write(b"data: ping\n\n")

        changes = self.stream_changes[index] if index < len(self.stream_changes) else []
        for entity_id, state in changes:
            self.states[entity_id] = state
            payload = {
                "event_type": "state_changed",
                "data": {
                    "entity_id": entity_id,
                    "old_state": None,
                    "new_state": {"entity_id": entity_id, "state": state, "attributes": {}},
                },
            }
            await response.write(f"data: {json.dumps(payload)}\n\n".encode())
        return response


def _config(server: TestServer, **overrides: Any) -> FloorplanConfig:
    kwargs: dict[str, Any] = {"url": str(server.make_url("/")), "token": TOKEN}
    kwargs.update(overrides)
    return FloorplanConfig(**kwargs)


async def _wait_until(predicate: Callable[[], bool], timeout: float = 3.0) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.01)


# ----------------------------------------------------------------------
# Client
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_states_sends_bearer_token_and_normalizes() -> None:
    backend = FakeHomeAssistant(states={"light.kitchen": "on", "cover.garage": "closed", "sun.sun": "above_horizon"})

    async with TestServer(backend.app()) as server, FloorplanClient(_config(server)) as client:
        states = await client.get_states()

    assert [(s.entity_id, s.state) for s in states] == [
        ("light.kitchen", True),
        ("cover.garage", False),
        ("sun.sun", None),
    ]
    assert all(s.source == StateSource.SNAPSHOT for s in states)
    assert backend.seen_headers[0]["Authorization"] == f"Bearer {TOKEN}"


@pytest.mark.asyncio
async def test_get_states_domain_filter() -> None:
    backend = FakeHomeAssistant(states={"light.kitchen": "on", "sensor.power": "12"})

    async with TestServer(backend.app()) as server:
        async with FloorplanClient(_config(server, domains=frozenset({"light"}))) as client:
            states = await client.get_states()

    assert [s.entity_id for s in states] == ["light.kitchen"]


@pytest.mark.asyncio
async def test_get_states_bad_token_raises_authentication_error() -> None:
    backend = FakeHomeAssistant()

    async with TestServer(backend.app()) as server:
        async with FloorplanClient(_config(server, token="wrong")) as client:
            with pytest.raises(FloorplanAuthenticationError) as exc_info:
                await client.get_states()

    assert exc_info.value.status_code == 401
    assert exc_info.value.endpoint == "api/states"


@pytest.mark.asyncio
async def test_get_states_server_error_raises_protocol_error() -> None:
    backend = FakeHomeAssistant(states_status=500)

    async with TestServer(backend.app()) as server, FloorplanClient(_config(server)) as client:
        with pytest.raises(FloorplanProtocolError) as exc_info:
            await client.get_states()

    assert not isinstance(exc_info.value, FloorplanAuthenticationError)
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_get_states_malformed_body_raises_decode_error() -> None:
    backend = FakeHomeAssistant(states_body='{"message": "not a list"}')

    async with TestServer(backend.app()) as server, FloorplanClient(_config(server)) as client:
        with pytest.raises(FloorplanDecodeError):
            await client.get_states()


@pytest.mark.asyncio
async def test_unreachable_host_raises_transport_error() -> None:
    config = FloorplanConfig(url="http://127.0.0.1:1", token=TOKEN, snapshot_timeout=2.0, connect_timeout=2.0)

    async with FloorplanClient(config) as client:
        with pytest.raises(FloorplanTransportError):
            await client.get_states()
        with pytest.raises(FloorplanTransportError):
            await client.stream_states()


@pytest.mark.asyncio
async def test_stream_states_yields_changes_until_connection_closes() -> None:
    backend = FakeHomeAssistant(stream_changes=[[("light.kitchen", "off"), ("binary_sensor.door", "on")]])

    async with TestServer(backend.app()) as server, FloorplanClient(_config(server)) as client:
        stream = await client.stream_states()
        received = [(s.entity_id, s.state) async for s in stream]

    assert received == [("light.kitchen", False), ("binary_sensor.door", True)]
    assert stream.closed
    assert backend.seen_headers[0]["Accept"] == "text/event-stream"


@pytest.mark.asyncio
async def test_stream_states_non_success_status_fails_immediately() -> None:
    backend = FakeHomeAssistant(stream_status=502)

    async with TestServer(backend.app()) as server, FloorplanClient(_config(server)) as client:
        with pytest.raises(FloorplanProtocolError) as exc_info:
            await client.stream_states()

    assert exc_info.value.status_code == 502
    assert exc_info.value.endpoint == "api/stream"


# ----------------------------------------------------------------------
# Engine
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_engine_snapshot_then_stream_event() -> None:
    backend = FakeHomeAssistant(
        states={"light.kitchen": "on"},
        stream_changes=[[("light.kitchen", "off")]],
    )
    transitions: list[tuple[str, frozenset[str]]] = []
    renderer = MemoryRenderer(on_change=lambda element_id, classes: transitions.append((element_id, classes)))
    renderer.add_element("light.kitchen", ["room"])

    async with TestServer(backend.app()) as server:
        engine = FloorplanEngine(_config(server, reconnect_delay=30.0), renderer)
        async with engine:
            await _wait_until(lambda: engine.state == ConnectionState.RECONNECTING)
            await _wait_until(lambda: backend.calls.get("states") == 2)
            await _wait_until(lambda: len(transitions) >= 3)

        assert engine.state == ConnectionState.STOPPED

    assert transitions[:2] == [
        ("light.kitchen", frozenset({"room", "on"})),
        ("light.kitchen", frozenset({"room", "off"})),
    ]
    assert renderer.classes("light.kitchen") == frozenset({"room", "off"})


@pytest.mark.asyncio
async def test_engine_uses_alias_table() -> None:
    backend = FakeHomeAssistant(states={"light.kitchen": "on", "switch.unmapped": "off"})
    renderer = MemoryRenderer(["kitchen_lamp"])

    async with TestServer(backend.app()) as server:
        config = _config(server, mapping={"light.kitchen": "kitchen_lamp"}, reconnect_delay=30.0)
        async with FloorplanEngine(config, renderer):
            await _wait_until(lambda: renderer.classes("kitchen_lamp") == frozenset({"on"}))

    assert renderer.snapshot() == {"kitchen_lamp": frozenset({"on"})}


@pytest.mark.asyncio
async def test_engine_reconnects_after_stream_ends() -> None:
    backend = FakeHomeAssistant(
        states={"switch.fan": "off"},
        stream_changes=[[("switch.fan", "on")], [("switch.fan", "off")]],
    )
    renderer = MemoryRenderer(["switch.fan"])

    async with TestServer(backend.app()) as server:
        async with FloorplanEngine(_config(server, reconnect_delay=0.05), renderer):
            await _wait_until(lambda: backend.calls.get("stream", 0) >= 2)
            await _wait_until(lambda: renderer.classes("switch.fan") == frozenset({"off"}))

    assert backend.calls["states"] >= 2


@pytest.mark.asyncio
async def test_engine_close_is_ordered_and_idempotent() -> None:
    backend = FakeHomeAssistant(states={"light.a": "on"})
    renderer = MemoryRenderer(["light.a"])

    async with TestServer(backend.app()) as server:
        engine = FloorplanEngine(_config(server, reconnect_delay=30.0), renderer)
        await engine.start()
        await _wait_until(lambda: renderer.classes("light.a") == frozenset({"on"}))

        engine.stop()
        await asyncio.wait_for(engine.wait(), 1.0)
        assert engine.stop_requested
        assert not engine.running

        await engine.close()
        await engine.close()

    assert engine.state == ConnectionState.STOPPED
