"""
Tests for undoable layout edits driven through a QUndoStack.
"""
from __future__ import annotations

import os

import pytest

# Qt offscreen so these tests work in headless CI
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6 import QtGui, QtWidgets

from rx_designer.core.commands import (
    AddElementCmd,
    DeleteElementCmd,
    MoveElementCmd,
    PropertyChangeCmd,
    StyleChangeCmd,
)
from rx_designer.core.geometry import Position, Size
from rx_designer.core.models import Layout, TemplateElement


@pytest.fixture(scope="module")
def qapp():
    """Ensure a QApplication exists for the module."""
    app = QtWidgets.QApplication.instance()
    if app is None:
        app = QtWidgets.QApplication([])
    yield app


@pytest.fixture()
def layout():
    lay = Layout()
    for eid in ("a", "b", "c"):
        lay.append(TemplateElement(id=eid, type="text", position=Position(0, 0), size=Size(10, 10), z_index=1))
    return lay


@pytest.fixture()
def stack(qapp):
    return QtGui.QUndoStack()


class TestCommands:
    def test_add_undo_redo_keeps_identity(self, layout, stack):
        elem = layout.create_element("qr")
        stack.push(AddElementCmd(layout, elem))
        assert layout.get(elem.id) is elem
        stack.undo()
        assert layout.find(elem.id) is None
        stack.redo()
        assert layout.get(elem.id).z_index == elem.z_index

    def test_delete_restores_sequence_position(self, layout, stack):
        stack.push(DeleteElementCmd(layout, "b"))
        assert [e.id for e in layout] == ["a", "c"]
        stack.undo()
        assert [e.id for e in layout] == ["a", "b", "c"]

    def test_move_and_resize(self, layout, stack):
        layout.move_element("a", Position(40, 40))
        stack.push(MoveElementCmd(layout, "a", Position(0, 0), Position(40, 40), Size(10, 10), Size(20, 20)))
        assert layout.get("a").size == Size(20, 20)
        stack.undo()
        assert layout.get("a").position == Position(0, 0)
        assert layout.get("a").size == Size(10, 10)

    def test_property_change(self, layout, stack):
        stack.push(PropertyChangeCmd(layout, "a", "is_locked", False, True))
        assert layout.get("a").is_locked
        stack.undo()
        assert not layout.get("a").is_locked

    def test_style_change_is_partial(self, layout, stack):
        layout.update_style("a", font_size=18)
        stack.push(StyleChangeCmd(layout, "a", {"font_weight": "bold"}))
        style = layout.get("a").style
        assert style.font_weight == "bold"
        assert style.font_size == 18
        stack.undo()
        assert layout.get("a").style.font_weight is None

    def test_changed_callback(self, layout, stack):
        calls = []
        stack.push(PropertyChangeCmd(layout, "a", "content", "", "x", on_changed=lambda: calls.append(1)))
        stack.undo()
        assert len(calls) == 2

    def test_commands_on_missing_element_are_noops(self, layout, stack):
        stack.push(MoveElementCmd(layout, "ghost", Position(0, 0), Position(1, 1)))
        stack.undo()
        assert len(layout) == 3
