"""Normalization helpers.

Home Assistant states are free-form strings. The floorplan only
distinguishes three visual classes, so every state collapses to on, off
or unknown.
"""

from __future__ import annotations

from collections.abc import Container

from pyfloorplan.models.state import EntityState, StateSource

_ON_STATES: frozenset[str] = frozenset({"on", "open"})
_OFF_STATES: frozenset[str] = frozenset({"off", "closed"})


def normalize_state(text: str | None) -> bool | None:
    """Map a textual state to ``True`` (on), ``False`` (off) or ``None``.

    Anything that is not an exact on/off spelling, including
    ``"unavailable"``, ``"unknown"`` and the empty string, is unknown.
    """
    if text in _ON_STATES:
        return True
    if text in _OFF_STATES:
        return False
    return None


def entity_domain(entity_id: str) -> str:
    return entity_id.partition(".")[0]


def build_entity_state(
    entity_id: str,
    state: str | None,
    *,
    source: StateSource,
    domains: Container[str] | None = None,
) -> EntityState | None:
    """Build a normalized record, or ``None`` when the row should be skipped.

    Rows are skipped when they carry no entity id or fall outside the
    configured *domains*.
    """
    entity_id = entity_id.strip()
    if not entity_id:
        return None
    if domains is not None and entity_domain(entity_id) not in domains:
        return None
    return EntityState(entity_id=entity_id, state=normalize_state(state), source=source)
