"""Engine lifecycle: wires client, sync loop, update queue and applier."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from pyfloorplan.applier import UIApplier
from pyfloorplan.client import FloorplanClient
from pyfloorplan.config import FloorplanConfig
from pyfloorplan.exceptions import FloorplanError
from pyfloorplan.render.base import Renderer
from pyfloorplan.sync import ConnectionState, StateClient, SyncLoop
from pyfloorplan.update_queue import UpdateQueue

_logger = logging.getLogger(__name__)


class FloorplanEngine:
    """Keeps a renderer in sync with Home Assistant until closed.

    Runs two tasks: the network task (:class:`SyncLoop`) producing into a
    bounded :class:`UpdateQueue`, and the consumer task
    (:class:`UIApplier`) draining it. Shutdown is ordered: stop signal,
    join the network task, close the queue, join the consumer.

    Usage::

        config = FloorplanConfig.from_env()
        async with FloorplanEngine(config, renderer) as engine:
            await engine.wait()
    """

    def __init__(
        self,
        config: FloorplanConfig,
        renderer: Renderer,
        *,
        client: StateClient | None = None,
        session: aiohttp.ClientSession | None = None,
        name: str = "floorplan",
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._name = name
        self._logger = logger or _logger
        self._session = session
        self._client: StateClient | None = client
        self._owned_client: FloorplanClient | None = None
        self._applier = UIApplier(renderer, config.mapping, name=name, logger=self._logger)
        self._stop = asyncio.Event()
        self._queue: UpdateQueue | None = None
        self._sync: SyncLoop | None = None
        self._network_task: asyncio.Task[None] | None = None
        self._consumer_task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def applier(self) -> UIApplier:
        return self._applier

    @property
    def state(self) -> ConnectionState:
        if self._sync is None:
            return ConnectionState.IDLE
        return self._sync.state

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    @property
    def running(self) -> bool:
        return self._network_task is not None and not self._network_task.done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Spawn the consumer and network tasks."""
        if self._network_task is not None or self._closed:
            raise FloorplanError("Engine can only be started once")

        client = self._client
        if client is None:
            self._owned_client = FloorplanClient(self._config, session=self._session)
            await self._owned_client.__aenter__()
            client = self._owned_client
            self._client = client

        self._queue = UpdateQueue(self._config.queue_size)
        self._sync = SyncLoop(
            client,
            self._queue,
            stop=self._stop,
            reconnect_delay=self._config.reconnect_delay,
            name=self._name,
            logger=self._logger,
        )

        self._logger.info("Starting floorplan engine name=%s url=%s", self._name, self._config.url)
        self._consumer_task = asyncio.create_task(self._applier.run(self._queue), name=f"{self._name}-applier")
        self._network_task = asyncio.create_task(self._sync.run(), name=f"{self._name}-sync")

    def stop(self) -> None:
        """Raise the stop signal without waiting. Safe to call repeatedly."""
        self._stop.set()

    async def wait(self) -> None:
        """Block until the network task has exited (i.e. after :meth:`stop`)."""
        if self._network_task is not None:
            await asyncio.shield(self._network_task)

    async def close(self) -> None:
        """Stop and fully unwind the engine. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        self._stop.set()

        if self._network_task is not None:
            await self._join(self._network_task, "network")
        if self._queue is not None:
            await self._queue.close()
        if self._consumer_task is not None:
            await self._join(self._consumer_task, "applier")

        if self._owned_client is not None:
            await self._owned_client.__aexit__(None, None, None)
            self._owned_client = None
        self._logger.info("Floorplan engine stopped name=%s", self._name)

    async def _join(self, task: asyncio.Task[None], label: str) -> None:
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
        except Exception:
            self._logger.exception("Floorplan %s task failed name=%s", label, self._name)

    async def __aenter__(self) -> FloorplanEngine:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()
