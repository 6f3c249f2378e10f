"""Normalized entity state records.

Both ingestion paths (snapshot and stream) convert their payloads into
:class:`EntityState`. Records are value objects: created once, consumed once
by the applier, never mutated.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyfloorplan._constants import CLASS_OFF, CLASS_ON, CLASS_UNAVAILABLE


class TriState(StrEnum):
    """Visual status of an entity; the value doubles as the element class."""

    ON = CLASS_ON
    OFF = CLASS_OFF
    UNKNOWN = CLASS_UNAVAILABLE

    @classmethod
    def from_bool(cls, value: bool | None) -> TriState:
        if value is None:
            return cls.UNKNOWN
        return cls.ON if value else cls.OFF


class StateSource(StrEnum):
    SNAPSHOT = "snapshot"
    STREAM = "stream"


class EntityState(BaseModel):
    """One observation of one remote entity."""

    model_config = ConfigDict(frozen=True)

    entity_id: str = Field(..., description="Home Assistant entity id")
    state: bool | None = Field(
        default=None,
        description="True for on, False for off, None when unknown/unavailable.",
    )
    source: StateSource = StateSource.STREAM
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("entity_id")
    @classmethod
    def _normalize_entity_id(cls, value: str) -> str:
        entity_id = value.strip()
        if not entity_id:
            raise ValueError("entity_id must be non-empty")
        return entity_id

    @property
    def value(self) -> TriState:
        return TriState.from_bool(self.state)
