"""High-level async client for the Home Assistant state API."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from pyfloorplan._constants import STATES_PATH, STREAM_PATH
from pyfloorplan._transport import HttpTransport, Transport
from pyfloorplan.config import FloorplanConfig
from pyfloorplan.exceptions import FloorplanError
from pyfloorplan.ingestion.snapshot import parse_states
from pyfloorplan.ingestion.stream import StateStream
from pyfloorplan.models.state import EntityState

_logger = logging.getLogger(__name__)


class FloorplanClient:
    """Async client for the Home Assistant REST and event-stream APIs.

    The client performs no retries; reconnect policy lives in
    :class:`pyfloorplan.sync.SyncLoop`.

    Usage::

        async with FloorplanClient(config) as client:
            states = await client.get_states()
            async with await client.stream_states() as stream:
                async for state in stream:
                    ...
    """

    def __init__(
        self,
        config: FloorplanConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport

    @property
    def config(self) -> FloorplanConfig:
        return self._config

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FloorplanClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise FloorplanError("Client not initialized. Use 'async with FloorplanClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Read endpoints
    # ------------------------------------------------------------------

    async def get_states(self) -> list[EntityState]:
        """Fetch the current state of every entity.

        Raises
        ------
        FloorplanTransportError
            On network failure or timeout.
        FloorplanProtocolError
            On a non-200 answer (:class:`FloorplanAuthenticationError` for
            401/403).
        FloorplanDecodeError
            When the body is not a list of state objects.
        """
        transport = self._require_transport()
        body = await transport.fetch(STATES_PATH)
        states = parse_states(body, domains=self._config.domains)
        _logger.debug("Fetched %d states", len(states))
        return states

    async def stream_states(self) -> StateStream:
        """Open the event stream.

        Raises the same errors as :meth:`get_states` when the stream cannot
        be established. Once returned, the stream never raises; it simply
        ends, and the caller decides whether to reconnect. Each call opens a
        new connection.
        """
        transport = self._require_transport()
        response = await transport.open_stream(STREAM_PATH)
        _logger.debug("Event stream established status=%s", response.status)
        return StateStream(response, domains=self._config.domains)
