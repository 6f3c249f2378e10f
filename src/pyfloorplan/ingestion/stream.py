"""Server-sent event decoding for ``GET /api/stream``.

The stream is line oriented. Relevant lines look like::

    data: {"event_type": "state_changed", "data": {"new_state": {...}}}

and the server interleaves ``data: ping`` heartbeats. A malformed JSON
payload ends the whole stream rather than skipping the frame; the sync loop
resynchronises and reconnects whenever a stream ends, for whatever reason.
"""

from __future__ import annotations

import logging
from collections.abc import Container
from typing import Any

import aiohttp
from pydantic import ValidationError

from pyfloorplan._constants import DATA_PREFIX, PING_PAYLOAD, STATE_CHANGED_EVENT, STREAM_PATH
from pyfloorplan._redact import redact_for_log
from pyfloorplan.exceptions import FloorplanDecodeError
from pyfloorplan.ingestion.normalize import build_entity_state
from pyfloorplan.models.state import EntityState, StateSource
from pyfloorplan.models.wire import StreamEvent

_logger = logging.getLogger(__name__)


def decode_frame(line: str, *, domains: Container[str] | None = None) -> EntityState | None:
    """Decode one stream line (without its line terminator).

    Returns ``None`` for lines that carry no state update: non-data lines,
    heartbeats, other event types, removed entities and filtered domains.

    Raises
    ------
    FloorplanDecodeError
        If a data line carries a malformed payload.
    """
    if not line.startswith(DATA_PREFIX):
        return None

    payload = line[len(DATA_PREFIX) :]
    if payload == PING_PAYLOAD:
        return None

    try:
        event = StreamEvent.model_validate_json(payload)
    except ValidationError as exc:
        raise FloorplanDecodeError(
            f"Malformed event payload from {STREAM_PATH}: {exc.error_count()} error(s)",
            endpoint=STREAM_PATH,
        ) from exc

    if event.event_type != STATE_CHANGED_EVENT:
        return None

    new_state = event.data.new_state
    if new_state is None:
        # Entity removed from Home Assistant.
        return None
    return build_entity_state(new_state.entity_id, new_state.state, source=StateSource.STREAM, domains=domains)


class StateStream:
    """Async iterator over state changes of one open event-stream response.

    The iterator ends when the connection closes, a read fails or a payload
    cannot be decoded. The response is released exactly once, either when
    iteration ends or on :meth:`close`, whichever comes first.

    Usage::

        async with await client.stream_states() as stream:
            async for state in stream:
                ...
    """

    def __init__(
        self,
        response: aiohttp.ClientResponse,
        *,
        domains: Container[str] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._response = response
        self._domains = domains
        self._logger = logger or _logger
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> StateStream:
        return self

    async def __anext__(self) -> EntityState:
        while not self._closed:
            line = await self._readline()
            if line is None:
                break
            try:
                state = decode_frame(line, domains=self._domains)
            except FloorplanDecodeError:
                self._logger.debug("Ending event stream on bad frame=%s", redact_for_log(line), exc_info=True)
                break
            if state is not None:
                return state

        self.close()
        raise StopAsyncIteration

    async def _readline(self) -> str | None:
        try:
            raw = await self._response.content.readline()
        except (aiohttp.ClientError, TimeoutError, ValueError) as exc:
            # ValueError: line exceeded the reader's buffer limit.
            self._logger.debug("Event stream read failed: %s", exc)
            return None
        if not raw.endswith(b"\n"):
            # EOF, possibly after a partial frame.
            return None
        return raw.decode("utf-8", errors="replace").rstrip("\r\n")

    def close(self) -> None:
        """Release the underlying connection. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        self._response.close()
        self._logger.debug("Event stream connection released")

    async def __aenter__(self) -> StateStream:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.close()
