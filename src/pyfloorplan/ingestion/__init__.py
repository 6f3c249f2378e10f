"""Ingestion layer.

This package contains adapters that decode Home Assistant payloads (REST
snapshot and the server-sent event stream) into normalized
:class:`pyfloorplan.models.EntityState` records.
"""

__all__: list[str] = []
