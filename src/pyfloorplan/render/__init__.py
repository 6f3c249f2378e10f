"""Renderer collaborators.

The engine only talks to the :class:`Renderer` protocol. Two implementations
ship with the library: an in-memory class-list tree and an SVG floorplan.
"""

from pyfloorplan.render.base import FlushableRenderer, RenderElement, Renderer, element_selector
from pyfloorplan.render.memory import MemoryElement, MemoryRenderer
from pyfloorplan.render.svg import SvgRenderer

__all__ = [
    "FlushableRenderer",
    "MemoryElement",
    "MemoryRenderer",
    "RenderElement",
    "Renderer",
    "SvgRenderer",
    "element_selector",
]
