"""Snapshot-then-stream synchronization loop.

State machine::

    idle -> syncing -> streaming -> reconnecting -> streaming -> ...
                           |              |
                           +--> stopped <-+

Every blocking wait (snapshot request, stream connect, stream read,
enqueue, reconnect delay) races the shared stop event, so raising it
unwinds the loop promptly even with a full queue or an idle socket.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable
from enum import StrEnum
from typing import Protocol, TypeVar

from pyfloorplan._constants import DEFAULT_RECONNECT_DELAY
from pyfloorplan.exceptions import FloorplanError, QueueClosedError
from pyfloorplan.models.state import EntityState
from pyfloorplan.update_queue import UpdateQueue

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConnectionState(StrEnum):
    IDLE = "idle"
    SYNCING = "syncing"
    STREAMING = "streaming"
    RECONNECTING = "reconnecting"
    STOPPED = "stopped"


class EntityStream(Protocol):
    def __aiter__(self) -> EntityStream: ...

    async def __anext__(self) -> EntityState: ...

    def close(self) -> None: ...


class StateClient(Protocol):
    """What the loop needs from :class:`pyfloorplan.client.FloorplanClient`."""

    async def get_states(self) -> list[EntityState]: ...

    async def stream_states(self) -> EntityStream: ...


async def _next_or_none(stream: EntityStream) -> EntityState | None:
    try:
        return await stream.__anext__()
    except StopAsyncIteration:
        return None


class SyncLoop:
    """Keeps an :class:`UpdateQueue` fed from a snapshot plus the live stream.

    Usage::

        loop = SyncLoop(client, queue, reconnect_delay=10.0)
        task = asyncio.create_task(loop.run())
        ...
        loop.stop()
        await task
    """

    def __init__(
        self,
        client: StateClient,
        queue: UpdateQueue,
        *,
        stop: asyncio.Event | None = None,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        name: str = "floorplan",
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self._queue = queue
        self._stop = stop if stop is not None else asyncio.Event()
        self._reconnect_delay = reconnect_delay
        self._name = name
        self._logger = logger or _logger
        self._state = ConnectionState.IDLE
        self._resync_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def stop_event(self) -> asyncio.Event:
        return self._stop

    def stop(self) -> None:
        """Raise the stop signal. Safe to call repeatedly."""
        self._stop.set()

    def _set_state(self, state: ConnectionState) -> None:
        if state != self._state:
            self._logger.debug("Connection state name=%s %s -> %s", self._name, self._state, state)
            self._state = state

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Run until the stop signal is raised. Never raises on remote errors."""
        try:
            self._set_state(ConnectionState.SYNCING)
            self._logger.info("Fetching state data name=%s", self._name)
            await self._sync()

            while not self._stop.is_set():
                # Snapshot and stream producers never overlap.
                await self._join_resync()
                if self._stop.is_set():
                    break

                self._set_state(ConnectionState.STREAMING)
                self._logger.info("Listening for event data name=%s", self._name)
                stream = await self._open_stream()
                if stream is not None:
                    count = await self._pump(stream)
                    if self._stop.is_set():
                        break
                    self._logger.info("Event stream ended name=%s records=%d", self._name, count)

                self._set_state(ConnectionState.RECONNECTING)
                self._start_resync()
                if await self._sleep(self._reconnect_delay):
                    break
                self._logger.info("Reconnecting to event stream name=%s", self._name)
        finally:
            await self._cancel_resync()
            self._set_state(ConnectionState.STOPPED)
            self._logger.debug("Sync loop stopped name=%s", self._name)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    async def _sync(self) -> None:
        try:
            completed, states = await self._until_stopped(self._client.get_states())
        except FloorplanError as exc:
            self._logger.error("Error fetching states name=%s: %s", self._name, exc)
            return
        except Exception:
            self._logger.exception("Unexpected error fetching states name=%s", self._name)
            return
        if not completed or states is None:
            return

        for state in states:
            if not await self._enqueue(state):
                return
        self._logger.debug("Snapshot enqueued name=%s records=%d", self._name, len(states))

    def _start_resync(self) -> None:
        if self._resync_task is not None and not self._resync_task.done():
            return
        self._resync_task = asyncio.create_task(self._sync(), name=f"{self._name}-resync")

    async def _join_resync(self) -> None:
        task = self._resync_task
        self._resync_task = None
        if task is not None:
            await self._until_stopped(task)

    async def _cancel_resync(self) -> None:
        task = self._resync_task
        self._resync_task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    # ------------------------------------------------------------------
    # Stream
    # ------------------------------------------------------------------

    async def _open_stream(self) -> EntityStream | None:
        try:
            completed, stream = await self._until_stopped(self._client.stream_states())
        except FloorplanError as exc:
            self._logger.error("Error listening to events name=%s: %s", self._name, exc)
            return None
        except Exception:
            self._logger.exception("Unexpected error listening to events name=%s", self._name)
            return None
        if not completed or stream is None:
            return None
        if self._stop.is_set():
            stream.close()
            return None
        return stream

    async def _pump(self, stream: EntityStream) -> int:
        """Forward stream records to the queue until the stream ends or stop."""
        count = 0
        try:
            while True:
                completed, state = await self._until_stopped(_next_or_none(stream))
                if not completed or state is None:
                    return count
                if not await self._enqueue(state):
                    return count
                count += 1
        finally:
            stream.close()

    # ------------------------------------------------------------------
    # Stop-aware primitives
    # ------------------------------------------------------------------

    async def _enqueue(self, state: EntityState) -> bool:
        try:
            completed, _ = await self._until_stopped(self._queue.put(state))
        except QueueClosedError:
            self._logger.warning("Update queue closed before stop name=%s", self._name)
            self._stop.set()
            return False
        return completed

    async def _until_stopped(self, aw: Awaitable[T]) -> tuple[bool, T | None]:
        """Await *aw* unless the stop signal fires first.

        Returns ``(True, result)`` when *aw* finished (its exception, if any,
        propagates) and ``(False, None)`` when it was abandoned because of
        stop.
        """
        if self._stop.is_set():
            if inspect.iscoroutine(aw):
                aw.close()
            return False, None

        task = asyncio.ensure_future(aw)
        stopper = asyncio.ensure_future(self._stop.wait())
        try:
            await asyncio.wait({task, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopper.cancel()
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        if task.cancelled():
            return False, None
        return True, task.result()

    async def _sleep(self, delay: float) -> bool:
        """Wait *delay* seconds; return ``True`` if stopped during the wait."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
        except TimeoutError:
            return False
        return True
