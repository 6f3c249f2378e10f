"""Custom exception hierarchy for pyfloorplan."""

from __future__ import annotations


class FloorplanError(Exception):
    """Base exception for all pyfloorplan errors."""


class FloorplanConfigError(FloorplanError):
    """Invalid or missing configuration."""


class FloorplanTransportError(FloorplanError):
    """Network-level failure (connection refused, reset, timeout)."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class FloorplanProtocolError(FloorplanError):
    """Home Assistant answered with a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FloorplanAuthenticationError(FloorplanProtocolError):
    """Bearer token rejected (HTTP 401/403).

    Tokens are never refreshed; the sync loop keeps retrying on its fixed
    delay so a token fixed out-of-band is picked up on the next attempt.
    """


class FloorplanDecodeError(FloorplanError):
    """Payload could not be parsed into state records."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class FloorplanRenderError(FloorplanError):
    """The renderer failed to locate or mutate an element."""

    def __init__(self, message: str, *, element_id: str = "") -> None:
        self.element_id = element_id
        super().__init__(message)


class QueueClosedError(FloorplanError):
    """The update queue was closed by its owner."""
