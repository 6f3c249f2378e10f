"""Public model exports."""

from pyfloorplan.models.state import EntityState, StateSource, TriState
from pyfloorplan.models.wire import StateChangedData, StateRow, StreamEvent

__all__ = [
    "EntityState",
    "StateChangedData",
    "StateRow",
    "StateSource",
    "StreamEvent",
    "TriState",
]
