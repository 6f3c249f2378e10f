"""Apply normalized entity states to the renderer."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pyfloorplan._constants import STATE_CLASSES
from pyfloorplan.exceptions import FloorplanRenderError
from pyfloorplan.models.state import EntityState
from pyfloorplan.render.base import FlushableRenderer, RenderElement, Renderer
from pyfloorplan.update_queue import UpdateQueue

_logger = logging.getLogger(__name__)


class UIApplier:
    """Consumes :class:`EntityState` records and tags floorplan elements.

    Each record removes all three state classes and adds the one matching
    its value, so re-applying a record (or a late duplicate) converges on
    the last one applied. Renderer failures are logged, never raised.
    """

    def __init__(
        self,
        renderer: Renderer,
        mapping: Mapping[str, str] | None = None,
        *,
        name: str = "floorplan",
        logger: logging.Logger | None = None,
    ) -> None:
        self._renderer = renderer
        self._mapping: Mapping[str, str] = mapping if mapping is not None else {}
        self._name = name
        self._logger = logger or _logger

    def resolve(self, entity_id: str) -> str:
        """Visual element id for *entity_id* (alias or the id itself)."""
        return self._mapping.get(entity_id, entity_id)

    def apply(self, state: EntityState) -> bool:
        """Apply one record. Returns ``True`` if the element was tagged."""
        element_id = self.resolve(state.entity_id)

        element = self._find(element_id)
        if element is None:
            return False

        css_class = state.value.value
        ok = True
        try:
            element.remove_class(*STATE_CLASSES)
        except Exception as exc:
            self._log_render_error("remove", element_id, exc)
            ok = False
        try:
            element.add_class(css_class)
        except Exception as exc:
            self._log_render_error("add", element_id, exc)
            return False

        self._logger.debug(
            "Applied state name=%s entity_id=%s element_id=%s class=%s",
            self._name,
            state.entity_id,
            element_id,
            css_class,
        )
        return ok

    def _find(self, element_id: str) -> RenderElement | None:
        try:
            return self._renderer.find_element(element_id)
        except Exception as exc:
            self._log_render_error("find", element_id, exc)
            return None

    def _log_render_error(self, action: str, element_id: str, exc: Exception) -> None:
        error = FloorplanRenderError(f"could not {action} element: {exc}", element_id=element_id)
        self._logger.error(
            "Could not update state name=%s element_id=%s: %s",
            self._name,
            element_id,
            error,
            exc_info=exc,
        )

    async def run(self, queue: UpdateQueue) -> None:
        """Apply records in delivery order until *queue* is closed.

        Buffering renderers are flushed whenever the queue runs dry and once
        more after it closes.
        """
        async for state in queue:
            self.apply(state)
            if queue.qsize() == 0:
                await self.flush()
        await self.flush()
        self._logger.debug("Update queue closed name=%s", self._name)

    async def flush(self) -> None:
        if not isinstance(self._renderer, FlushableRenderer):
            return
        try:
            await self._renderer.flush()
        except Exception as exc:
            self._logger.error("Could not write floorplan name=%s: %s", self._name, exc, exc_info=exc)
