from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

import pytest

from pyfloorplan.exceptions import FloorplanProtocolError, FloorplanTransportError
from pyfloorplan.models.state import EntityState, StateSource
from pyfloorplan.sync import ConnectionState, SyncLoop
from pyfloorplan.update_queue import UpdateQueue


def _s(entity_id: str, state: bool | None, source: StateSource = StateSource.STREAM) -> EntityState:
    return EntityState(entity_id=entity_id, state=state, source=source)


class FakeStream:
    """Yields the given records, then ends (or idles forever when *hold_open*)."""

    def __init__(self, states: list[EntityState], *, hold_open: bool = False) -> None:
        self._states = list(states)
        self._hold_open = hold_open
        self.close_calls = 0

    def __aiter__(self) -> FakeStream:
        return self

    async def __anext__(self) -> EntityState:
        if self._states:
            return self._states.pop(0)
        if self._hold_open:
            await asyncio.Event().wait()
        raise StopAsyncIteration

    def close(self) -> None:
        self.close_calls += 1


class FakeClient:
    def __init__(
        self,
        *,
        snapshots: list[list[EntityState] | Exception] | None = None,
        streams: list[FakeStream | Exception] | None = None,
    ) -> None:
        self.snapshots = list(snapshots or [])
        self.streams = list(streams or [])
        self.calls: list[str] = []
        self.opened: list[FakeStream] = []

    async def get_states(self) -> list[EntityState]:
        self.calls.append("snapshot")
        item = self.snapshots.pop(0) if self.snapshots else []
        if isinstance(item, Exception):
            raise item
        return item

    async def stream_states(self) -> FakeStream:
        self.calls.append("stream")
        item = self.streams.pop(0) if self.streams else FakeStream([], hold_open=True)
        if isinstance(item, Exception):
            raise item
        self.opened.append(item)
        return item


async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)


def _drain(queue: UpdateQueue) -> list[tuple[str, bool | None]]:
    items = []
    while queue.qsize():
        state = queue._items.popleft()  # noqa: SLF001
        items.append((state.entity_id, state.state))
    return items


@pytest.mark.asyncio
async def test_reconnect_resyncs_waits_and_opens_new_stream() -> None:
    client = FakeClient(
        snapshots=[[_s("light.a", True, StateSource.SNAPSHOT)], [_s("light.a", False, StateSource.SNAPSHOT)]],
        streams=[FakeStream([_s("light.b", True), _s("light.b", False)])],
    )
    queue = UpdateQueue()
    loop = SyncLoop(client, queue, reconnect_delay=0.05)

    task = asyncio.create_task(loop.run())
    await _wait_until(lambda: client.calls.count("stream") == 2)
    await _wait_until(lambda: loop.state == ConnectionState.STREAMING)

    assert client.calls == ["snapshot", "stream", "snapshot", "stream"]
    assert _drain(queue) == [("light.a", True), ("light.b", True), ("light.b", False), ("light.a", False)]
    assert client.opened[0].close_calls == 1

    loop.stop()
    await asyncio.wait_for(task, 1.0)

    assert loop.state == ConnectionState.STOPPED
    assert client.opened[1].close_calls == 1


@pytest.mark.asyncio
async def test_stop_preempts_reconnect_delay() -> None:
    client = FakeClient(streams=[FakeStream([_s("light.a", True)])])
    loop = SyncLoop(client, UpdateQueue(), reconnect_delay=30.0)

    task = asyncio.create_task(loop.run())
    await _wait_until(lambda: loop.state == ConnectionState.RECONNECTING)

    started = time.monotonic()
    loop.stop()
    await asyncio.wait_for(task, 1.0)

    assert time.monotonic() - started < 1.0
    assert loop.state == ConnectionState.STOPPED
    assert client.calls.count("stream") == 1


@pytest.mark.asyncio
async def test_stream_failure_resyncs_and_retries() -> None:
    client = FakeClient(
        snapshots=[[], [_s("switch.fan", True, StateSource.SNAPSHOT)]],
        streams=[FloorplanTransportError("connection refused", endpoint="api/stream")],
    )
    queue = UpdateQueue()
    loop = SyncLoop(client, queue, reconnect_delay=0.05)

    task = asyncio.create_task(loop.run())
    await _wait_until(lambda: client.calls.count("stream") == 2)

    assert client.calls == ["snapshot", "stream", "snapshot", "stream"]
    assert _drain(queue) == [("switch.fan", True)]

    loop.stop()
    await asyncio.wait_for(task, 1.0)


@pytest.mark.asyncio
async def test_snapshot_failure_does_not_block_streaming(caplog: pytest.LogCaptureFixture) -> None:
    client = FakeClient(
        snapshots=[FloorplanProtocolError("HTTP 500", status_code=500, endpoint="api/states")],
        streams=[FakeStream([_s("light.a", True)], hold_open=True)],
    )
    queue = UpdateQueue()
    loop = SyncLoop(client, queue, name="hall")

    task = asyncio.create_task(loop.run())
    await _wait_until(lambda: queue.qsize() == 1)

    assert loop.state == ConnectionState.STREAMING
    assert "Error fetching states name=hall" in caplog.text

    loop.stop()
    await asyncio.wait_for(task, 1.0)


@pytest.mark.asyncio
async def test_stop_observed_while_queue_full() -> None:
    stream = FakeStream([_s(f"light.l{i}", True) for i in range(5)], hold_open=True)
    client = FakeClient(streams=[stream])
    queue = UpdateQueue(maxsize=1)
    loop = SyncLoop(client, queue)

    task = asyncio.create_task(loop.run())
    await _wait_until(lambda: queue.full() and loop.state == ConnectionState.STREAMING)
    await asyncio.sleep(0.02)

    loop.stop()
    await asyncio.wait_for(task, 1.0)

    assert queue.qsize() == 1
    assert stream.close_calls == 1


@pytest.mark.asyncio
async def test_stop_while_waiting_on_idle_stream() -> None:
    stream = FakeStream([], hold_open=True)
    client = FakeClient(streams=[stream])
    loop = SyncLoop(client, UpdateQueue())

    task = asyncio.create_task(loop.run())
    await _wait_until(lambda: client.opened == [stream])

    loop.stop()
    loop.stop()
    await asyncio.wait_for(task, 1.0)

    assert stream.close_calls == 1
    assert loop.state == ConnectionState.STOPPED


@pytest.mark.asyncio
async def test_stop_before_run_exits_immediately() -> None:
    client = FakeClient()
    stop = asyncio.Event()
    stop.set()
    loop = SyncLoop(client, UpdateQueue(), stop=stop)

    await asyncio.wait_for(loop.run(), 1.0)

    assert client.calls == []
    assert loop.state == ConnectionState.STOPPED


@pytest.mark.asyncio
async def test_queue_closed_early_stops_loop() -> None:
    client = FakeClient(snapshots=[[_s("light.a", True, StateSource.SNAPSHOT)]])
    queue = UpdateQueue()
    await queue.close()
    loop = SyncLoop(client, queue)

    await asyncio.wait_for(loop.run(), 1.0)

    assert loop.stop_event.is_set()
    assert client.calls == ["snapshot"]
