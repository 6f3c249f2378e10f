"""pyfloorplan - Mirror Home Assistant entity states onto a floorplan."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyfloorplan")
except PackageNotFoundError:
    __version__ = "0+local"
from pyfloorplan.applier import UIApplier
from pyfloorplan.client import FloorplanClient
from pyfloorplan.config import FloorplanConfig
from pyfloorplan.engine import FloorplanEngine
from pyfloorplan.exceptions import (
    FloorplanAuthenticationError,
    FloorplanConfigError,
    FloorplanDecodeError,
    FloorplanError,
    FloorplanProtocolError,
    FloorplanRenderError,
    FloorplanTransportError,
    QueueClosedError,
)
from pyfloorplan.ingestion.normalize import normalize_state
from pyfloorplan.ingestion.stream import StateStream
from pyfloorplan.models import EntityState, StateSource, TriState
from pyfloorplan.render import MemoryRenderer, Renderer, SvgRenderer, element_selector
from pyfloorplan.sync import ConnectionState, SyncLoop
from pyfloorplan.update_queue import UpdateQueue

__all__ = [
    "__version__",
    "ConnectionState",
    "EntityState",
    "FloorplanAuthenticationError",
    "FloorplanClient",
    "FloorplanConfig",
    "FloorplanConfigError",
    "FloorplanDecodeError",
    "FloorplanEngine",
    "FloorplanError",
    "FloorplanProtocolError",
    "FloorplanRenderError",
    "FloorplanTransportError",
    "MemoryRenderer",
    "QueueClosedError",
    "Renderer",
    "StateSource",
    "StateStream",
    "SvgRenderer",
    "SyncLoop",
    "TriState",
    "UIApplier",
    "UpdateQueue",
    "element_selector",
    "normalize_state",
]
