"""In-memory renderer: a flat tree of elements with class lists."""

from __future__ import annotations

from collections.abc import Callable, Iterable

OnChange = Callable[[str, frozenset[str]], None]


class MemoryElement:
    def __init__(self, element_id: str, classes: Iterable[str] = (), *, on_change: OnChange | None = None) -> None:
        self.element_id = element_id
        self._classes: set[str] = set(classes)
        self._on_change = on_change

    @property
    def classes(self) -> frozenset[str]:
        return frozenset(self._classes)

    def remove_class(self, *names: str) -> None:
        self._classes.difference_update(names)

    def add_class(self, name: str) -> None:
        self._classes.add(name)
        if self._on_change is not None:
            self._on_change(self.element_id, self.classes)

    def __repr__(self) -> str:
        return f"MemoryElement({self.element_id!r}, classes={sorted(self._classes)!r})"


class MemoryRenderer:
    """Renderer backed by a dict of :class:`MemoryElement`.

    With ``auto_create=True`` every looked-up id gets an element, which is
    handy for dry runs against a live instance without a floorplan.
    """

    def __init__(
        self,
        element_ids: Iterable[str] = (),
        *,
        auto_create: bool = False,
        on_change: OnChange | None = None,
    ) -> None:
        self._auto_create = auto_create
        self._on_change = on_change
        self._elements: dict[str, MemoryElement] = {}
        for element_id in element_ids:
            self.add_element(element_id)

    def add_element(self, element_id: str, classes: Iterable[str] = ()) -> MemoryElement:
        element = MemoryElement(element_id, classes, on_change=self._on_change)
        self._elements[element_id] = element
        return element

    def find_element(self, element_id: str) -> MemoryElement | None:
        element = self._elements.get(element_id)
        if element is None and self._auto_create:
            element = self.add_element(element_id)
        return element

    def classes(self, element_id: str) -> frozenset[str]:
        element = self._elements.get(element_id)
        return element.classes if element is not None else frozenset()

    def snapshot(self) -> dict[str, frozenset[str]]:
        return {element_id: element.classes for element_id, element in self._elements.items()}
