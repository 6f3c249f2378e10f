"""Renderer boundary used by :class:`pyfloorplan.applier.UIApplier`."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


class RenderElement(Protocol):
    """A located visual element whose class list can be mutated."""

    def remove_class(self, *names: str) -> None: ...

    def add_class(self, name: str) -> None: ...


class Renderer(Protocol):
    """Element lookup by visual element id.

    ``find_element`` returns ``None`` when the floorplan has no element for
    the id. Any method may raise; the applier logs and carries on.
    """

    def find_element(self, element_id: str) -> RenderElement | None: ...


@runtime_checkable
class FlushableRenderer(Renderer, Protocol):
    """Renderer that buffers changes until :meth:`flush` is awaited.

    The applier flushes once the update queue runs dry, so a burst of records
    (a snapshot, say) costs one write instead of one per record.
    """

    async def flush(self) -> None: ...


def element_selector(element_id: str) -> str:
    """CSS id selector for *element_id* (``light.kitchen`` -> ``#light\\.kitchen``)."""
    return "#" + element_id.replace(".", "\\.")
