"""HTTP transport with bearer authentication and error mapping."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import aiohttp

from pyfloorplan._constants import USER_AGENT
from pyfloorplan._redact import redact_for_log
from pyfloorplan.config import FloorplanConfig
from pyfloorplan.exceptions import (
    FloorplanAuthenticationError,
    FloorplanProtocolError,
    FloorplanTransportError,
)

_logger = logging.getLogger(__name__)

_AUTH_STATUSES = frozenset({401, 403})


class Transport(Protocol):
    """Structural transport interface used by the client.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def fetch(self, endpoint: str) -> bytes: ...

    async def open_stream(self, endpoint: str) -> aiohttp.ClientResponse: ...


def _status_error(status: int, endpoint: str, text: str) -> FloorplanProtocolError:
    message = f"HTTP {status} from {endpoint}: {text[:200]}"
    if status in _AUTH_STATUSES:
        return FloorplanAuthenticationError(message, status_code=status, endpoint=endpoint)
    return FloorplanProtocolError(message, status_code=status, endpoint=endpoint)


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class HttpTransport:
    """Authenticated GET requests against a Home Assistant instance."""

    def __init__(self, config: FloorplanConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _url(self, endpoint: str) -> str:
        return self._config.endpoint_url(endpoint)

    def _headers(self, accept: str) -> dict[str, str]:
        return {
            "authorization": f"Bearer {self._config.token}",
            "accept": accept,
            "user-agent": USER_AGENT,
        }

    async def fetch(self, endpoint: str) -> bytes:
        """GET *endpoint* and return the full body.

        The body is read on every path so the connection can go back to
        the pool.
        """
        url = self._url(endpoint)
        headers = self._headers("application/json")
        timeout = aiohttp.ClientTimeout(total=self._config.snapshot_timeout)

        _logger.debug("GET %s headers=%s", url, redact_for_log(headers))

        try:
            async with self._http.get(url, headers=headers, timeout=timeout) as resp:
                body = await resp.read()
                if resp.status != 200:
                    raise _status_error(resp.status, endpoint, body.decode("utf-8", errors="replace"))
        except FloorplanProtocolError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise FloorplanTransportError(
                f"Request to {endpoint} failed: {_describe(exc)}",
                endpoint=endpoint,
            ) from exc

        return body

    async def open_stream(self, endpoint: str) -> aiohttp.ClientResponse:
        """Open a long-lived GET on *endpoint* and return the live response.

        Only establishing the connection is bounded by
        ``config.connect_timeout``; the body has no read deadline. The caller
        owns the returned response and must close it.
        """
        url = self._url(endpoint)
        headers = self._headers("text/event-stream")
        timeout = aiohttp.ClientTimeout(total=None)

        _logger.debug("GET (stream) %s headers=%s", url, redact_for_log(headers))

        try:
            async with asyncio.timeout(self._config.connect_timeout):
                resp = await self._http.get(url, headers=headers, timeout=timeout)
                if resp.status != 200:
                    try:
                        text = await resp.text(errors="replace")
                    finally:
                        resp.release()
                    raise _status_error(resp.status, endpoint, text)
        except FloorplanProtocolError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise FloorplanTransportError(
                f"Stream to {endpoint} failed: {_describe(exc)}",
                endpoint=endpoint,
            ) from exc

        return resp
