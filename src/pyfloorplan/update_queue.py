"""Bounded single-consumer hand-off between the network task and the applier."""

from __future__ import annotations

import asyncio
from collections import deque

from pyfloorplan._constants import DEFAULT_QUEUE_SIZE
from pyfloorplan.exceptions import QueueClosedError
from pyfloorplan.models.state import EntityState


class UpdateQueue:
    """FIFO channel of :class:`EntityState` records with blocking ``put``.

    A full queue blocks the producer instead of dropping records, which in
    turn stalls the stream read loop. Closing is reserved for the owner,
    after the producer side has stopped; records still queued at that point
    are delivered before consumers see :class:`QueueClosedError`.
    """

    def __init__(self, maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self._maxsize = maxsize
        self._items: deque[EntityState] = deque()
        self._cond = asyncio.Condition()
        self._closed = False

    @property
    def maxsize(self) -> int:
        return self._maxsize

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return len(self._items)

    def full(self) -> bool:
        return len(self._items) >= self._maxsize

    async def put(self, state: EntityState) -> None:
        """Append *state*, waiting while the queue is full."""
        async with self._cond:
            await self._cond.wait_for(lambda: self._closed or not self.full())
            if self._closed:
                raise QueueClosedError("update queue is closed")
            self._items.append(state)
            self._cond.notify_all()

    async def get(self) -> EntityState:
        """Pop the oldest record, waiting while the queue is empty."""
        async with self._cond:
            await self._cond.wait_for(lambda: self._closed or bool(self._items))
            if not self._items:
                raise QueueClosedError("update queue is closed")
            state = self._items.popleft()
            self._cond.notify_all()
            return state

    async def close(self) -> None:
        """Close the queue and wake every waiter. Later calls are no-ops."""
        async with self._cond:
            if self._closed:
                return
            self._closed = True
            self._cond.notify_all()

    def __aiter__(self) -> UpdateQueue:
        return self

    async def __anext__(self) -> EntityState:
        try:
            return await self.get()
        except QueueClosedError:
            raise StopAsyncIteration from None
