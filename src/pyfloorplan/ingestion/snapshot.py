"""Decode the ``GET /api/states`` snapshot body."""

from __future__ import annotations

import logging
from collections.abc import Container

from pydantic import ValidationError

from pyfloorplan._constants import STATES_PATH
from pyfloorplan._redact import redact_for_log
from pyfloorplan.exceptions import FloorplanDecodeError
from pyfloorplan.ingestion.normalize import build_entity_state
from pyfloorplan.models.state import EntityState, StateSource
from pyfloorplan.models.wire import STATE_ROWS

_logger = logging.getLogger(__name__)


def parse_states(body: str | bytes, *, domains: Container[str] | None = None) -> list[EntityState]:
    """Parse a snapshot body into normalized records, preserving order.

    Raises
    ------
    FloorplanDecodeError
        If the body is not a JSON array of ``{entity_id, state}`` objects.
    """
    try:
        rows = STATE_ROWS.validate_json(body)
    except ValidationError as exc:
        _logger.debug("Snapshot decode failed body=%s", redact_for_log(body))
        raise FloorplanDecodeError(
            f"Invalid state list from {STATES_PATH}: {exc.error_count()} error(s)",
            endpoint=STATES_PATH,
        ) from exc

    states: list[EntityState] = []
    for row in rows:
        state = build_entity_state(row.entity_id, row.state, source=StateSource.SNAPSHOT, domains=domains)
        if state is not None:
            states.append(state)
    return states
