"""SVG floorplan renderer.

Elements are located by their ``id`` attribute and tagged through the
``class`` attribute, so a stylesheet such as::

    .hass-floorplan .on { fill: #ffd54f; }
    .hass-floorplan .unavailable { opacity: 0.4; }

renders the current state. A stylesheet along those lines ships with the
package and is used unless a custom one is given. With an ``output`` path
the document is written back to disk on :meth:`SvgRenderer.flush`, once per
batch of changes.
"""

from __future__ import annotations

import asyncio
import logging
from importlib import resources
from pathlib import Path
from xml.etree import ElementTree as ET

from pyfloorplan._constants import HTML_WRAPPER
from pyfloorplan.exceptions import FloorplanConfigError

_logger = logging.getLogger(__name__)

_SVG_NS = "http://www.w3.org/2000/svg"
ET.register_namespace("", _SVG_NS)
ET.register_namespace("xlink", "http://www.w3.org/1999/xlink")


def default_stylesheet() -> str:
    """The stylesheet bundled as ``pyfloorplan/assets/style.css``."""
    return resources.files("pyfloorplan").joinpath("assets/style.css").read_text(encoding="utf-8")


class SvgElement:
    def __init__(self, node: ET.Element, renderer: SvgRenderer) -> None:
        self._node = node
        self._renderer = renderer

    @property
    def classes(self) -> list[str]:
        return (self._node.get("class") or "").split()

    def _set_classes(self, classes: list[str]) -> None:
        if classes == self.classes:
            return
        if classes:
            self._node.set("class", " ".join(classes))
        else:
            del self._node.attrib["class"]
        self._renderer.dirty = True

    def remove_class(self, *names: str) -> None:
        self._set_classes([name for name in self.classes if name not in names])

    def add_class(self, name: str) -> None:
        classes = self.classes
        if name not in classes:
            self._set_classes([*classes, name])


class SvgRenderer:
    """Renderer over a parsed SVG document.

    Parameters
    ----------
    svg : str
        SVG markup.
    css : str or None
        Stylesheet embedded by :meth:`to_html`.
    output : str, Path or None
        When set, :meth:`flush` writes pending changes to this path.
    """

    def __init__(self, svg: str, *, css: str | None = None, output: str | Path | None = None) -> None:
        try:
            self._root = ET.fromstring(svg)
        except ET.ParseError as exc:
            raise FloorplanConfigError(f"could not parse floorplan image: {exc}") from exc
        self._css = css
        self._output = Path(output) if output is not None else None
        self.dirty = False
        self._written = self.to_svg()
        self._index: dict[str, ET.Element] = {}
        for node in self._root.iter():
            node_id = node.get("id")
            if node_id and node_id not in self._index:
                self._index[node_id] = node

    @classmethod
    def from_files(
        cls,
        floorplan: str | Path,
        *,
        css: str | Path | None = None,
        output: str | Path | None = None,
    ) -> SvgRenderer:
        """Load a floorplan from disk, styled by *css* or the bundled stylesheet."""
        try:
            svg = Path(floorplan).read_text(encoding="utf-8")
        except OSError as exc:
            raise FloorplanConfigError(f"could not read floorplan image: {exc}") from exc
        if css is None:
            stylesheet = default_stylesheet()
        else:
            try:
                stylesheet = Path(css).read_text(encoding="utf-8")
            except OSError as exc:
                raise FloorplanConfigError(f"could not read css: {exc}") from exc
        return cls(svg, css=stylesheet, output=output)

    @property
    def element_ids(self) -> frozenset[str]:
        return frozenset(self._index)

    def find_element(self, element_id: str) -> SvgElement | None:
        node = self._index.get(element_id)
        if node is None:
            return None
        return SvgElement(node, self)

    async def flush(self) -> None:
        """Write pending changes to the output path, off the event loop."""
        if not self.dirty or self._output is None:
            return
        self.dirty = False
        text = self.to_svg()
        if text == self._written:
            return
        await asyncio.to_thread(_write_atomic, self._output, text)
        self._written = text
        _logger.debug("Floorplan written path=%s", self._output)

    def to_svg(self) -> str:
        return ET.tostring(self._root, encoding="unicode")

    def to_html(self) -> str:
        body = self.to_svg()
        if self._css:
            body = f"<style>{self._css}</style>{body}"
        return HTML_WRAPPER.format(body)

    def save(self, path: str | Path) -> None:
        _write_atomic(Path(path), self.to_svg())


def _write_atomic(target: Path, text: str) -> None:
    tmp = target.with_name(target.name + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    tmp.replace(target)
