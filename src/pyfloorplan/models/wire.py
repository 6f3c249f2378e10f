"""Home Assistant REST payload shapes.

Missing keys fall back to empty strings, matching how the API omits fields
for partially initialised entities. Wrong types (e.g. a numeric ``state``)
fail validation and surface as decode errors.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class StateRow(BaseModel):
    """One entry of ``GET /api/states`` (also the ``new_state`` of an event)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    entity_id: str = ""
    state: str = ""


class StateChangedData(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    new_state: StateRow | None = None


class StreamEvent(BaseModel):
    """A JSON frame of ``GET /api/stream``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    event_type: str = ""
    data: StateChangedData = Field(default_factory=StateChangedData)


STATE_ROWS = TypeAdapter(list[StateRow])
