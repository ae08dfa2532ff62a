from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from PySide6 import QtGui

from .geometry import Position, Size
from .models import Layout, TemplateElement, TextStyle


# called after every redo/undo so views can repaint and revalidate
ChangedCallback = Optional[Callable[[], None]]


class _LayoutCmd(QtGui.QUndoCommand):
    def __init__(self, layout: Layout, text: str, on_changed: ChangedCallback = None):
        super().__init__(text)
        self.layout = layout
        self.on_changed = on_changed

    def _notify(self) -> None:
        if self.on_changed is not None:
            self.on_changed()


class AddElementCmd(_LayoutCmd):
    """
    Add a single element to a layout.

    The element keeps the id and z-index it was created with, so redo after
    undo puts back exactly the same element.
    """

    def __init__(
        self,
        layout: Layout,
        elem: TemplateElement,
        text: str = "Add element",
        on_changed: ChangedCallback = None,
    ):
        super().__init__(layout, text, on_changed)
        self.elem = elem

    def redo(self) -> None:
        if self.layout.find(self.elem.id) is None:
            self.layout.append(self.elem)
        self._notify()

    def undo(self) -> None:
        if self.layout.find(self.elem.id) is not None:
            self.layout.remove_element(self.elem.id)
        self._notify()


class DeleteElementCmd(_LayoutCmd):
    """
    Delete an element from a layout.

    Stores its sequence index so undo restores the original paint-tie order.
    """

    def __init__(
        self,
        layout: Layout,
        element_id: str,
        text: str = "Delete element",
        on_changed: ChangedCallback = None,
    ):
        super().__init__(layout, text, on_changed)
        self.elem = layout.get(element_id)
        self._index = layout.index_of(element_id)

    def redo(self) -> None:
        if self.layout.find(self.elem.id) is not None:
            self.layout.remove_element(self.elem.id)
        self._notify()

    def undo(self) -> None:
        if self.layout.find(self.elem.id) is None:
            self.layout.insert(min(self._index, len(self.layout.elements)), self.elem)
        self._notify()


class MoveElementCmd(_LayoutCmd):
    """
    Move and/or resize an element.

    Built from a finished drag (old/new position) so the move itself has
    already happened; the first redo is a no-op in effect.
    """

    def __init__(
        self,
        layout: Layout,
        element_id: str,
        old_pos: Position,
        new_pos: Position,
        old_size: Optional[Size] = None,
        new_size: Optional[Size] = None,
        text: str = "Move element",
        on_changed: ChangedCallback = None,
    ):
        super().__init__(layout, text, on_changed)
        self.element_id = element_id
        self.old_pos = old_pos
        self.new_pos = new_pos
        self.old_size = old_size
        self.new_size = new_size

    def _apply(self, pos: Position, size: Optional[Size]) -> None:
        elem = self.layout.find(self.element_id)
        if elem is None:
            return
        elem.position = pos
        if size is not None:
            elem.size = size
        self._notify()

    def redo(self) -> None:
        self._apply(self.new_pos, self.new_size)

    def undo(self) -> None:
        self._apply(self.old_pos, self.old_size)


class PropertyChangeCmd(_LayoutCmd):
    """
    Generic attribute change on an element.

    prop:     attribute name (content, is_visible, is_locked, z_index, ...)
    old/new:  values
    """

    def __init__(
        self,
        layout: Layout,
        element_id: str,
        prop: str,
        old_value: Any,
        new_value: Any,
        text: str = "Change property",
        on_changed: ChangedCallback = None,
    ):
        super().__init__(layout, text, on_changed)
        self.element_id = element_id
        self.prop = prop
        self.old_value = old_value
        self.new_value = new_value

    def _apply(self, value: Any) -> None:
        elem = self.layout.find(self.element_id)
        if elem is None:
            return
        setattr(elem, self.prop, value)
        self._notify()

    def redo(self) -> None:
        self._apply(self.new_value)

    def undo(self) -> None:
        self._apply(self.old_value)


class StyleChangeCmd(_LayoutCmd):
    """Partial text-style change; only the given fields are touched."""

    def __init__(
        self,
        layout: Layout,
        element_id: str,
        changes: Dict[str, Any],
        text: str = "Change style",
        on_changed: ChangedCallback = None,
    ):
        super().__init__(layout, text, on_changed)
        self.element_id = element_id
        elem = layout.get(element_id)
        self._old: TextStyle = elem.style
        self._new: TextStyle = elem.style.updated(**changes)

    def _apply(self, style: TextStyle) -> None:
        elem = self.layout.find(self.element_id)
        if elem is None:
            return
        elem.style = style
        self._notify()

    def redo(self) -> None:
        self._apply(self._new)

    def undo(self) -> None:
        self._apply(self._old)
