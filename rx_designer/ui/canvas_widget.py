from __future__ import annotations

from typing import Mapping, Optional

from PySide6 import QtCore, QtGui, QtWidgets

from ..core.canvas import CanvasTransform, PositionUpdate
from ..core.geometry import Position
from ..core.models import Layout
from ..core.raster import paint_page
from ..core.render import render

CANVAS_MARGIN = 24


class CanvasWidget(QtWidgets.QWidget):
    """
    Editor surface: paints the layout through the editor render target and
    feeds mouse events into the CanvasTransform drag session.
    """

    selectionChanged = QtCore.Signal(str)               # "" when cleared
    elementMoved = QtCore.Signal(object)                # PositionUpdate (drag finished)
    dragging = QtCore.Signal(object)                    # PositionUpdate (each move)
    zoomChanged = QtCore.Signal(float)

    def __init__(self, layout: Layout, transform: Optional[CanvasTransform] = None, parent=None):
        super().__init__(parent)
        self._layout = layout
        self._bindings: Mapping[str, str] = {}
        self._qr_png: Optional[bytes] = None
        self.transform = transform or CanvasTransform(origin=Position(CANVAS_MARGIN, CANVAS_MARGIN))
        self.setMouseTracking(False)
        self.setFocusPolicy(QtCore.Qt.StrongFocus)
        self._update_size()

    # ---------- model ----------
    @property
    def layout_model(self) -> Layout:
        return self._layout

    def set_layout(self, layout: Layout) -> None:
        if self.transform.is_dragging:
            self.transform.cancel_drag(self._layout)
        self._layout = layout
        self.transform.select(None)
        self._update_size()
        self.update()

    def set_bindings(self, bindings: Mapping[str, str]) -> None:
        self._bindings = dict(bindings)
        self.update()

    def set_qr_image(self, png: Optional[bytes]) -> None:
        self._qr_png = png
        self.update()

    def selected_id(self) -> Optional[str]:
        return self.transform.selected_id

    def select(self, element_id: Optional[str]) -> None:
        if self.transform.is_dragging:
            return
        self.transform.select(element_id)
        self.selectionChanged.emit(element_id or "")
        self.update()

    # ---------- zoom ----------
    def set_zoom(self, value: float) -> None:
        self.transform.zoom = value
        self._update_size()
        self.update()
        self.zoomChanged.emit(self.transform.zoom)

    def zoom_in(self) -> None:
        self.set_zoom(self.transform.zoom + self.transform.zoom_step)

    def zoom_out(self) -> None:
        self.set_zoom(self.transform.zoom - self.transform.zoom_step)

    def _update_size(self) -> None:
        size = self._layout.canvas_settings.canvas_size
        w = size.width if size else 794
        h = size.height if size else 1123
        z = self.transform.zoom
        self.setMinimumSize(int(w * z) + 2 * CANVAS_MARGIN, int(h * z) + 2 * CANVAS_MARGIN)

    # ---------- painting ----------
    def paintEvent(self, event: QtGui.QPaintEvent) -> None:
        p = QtGui.QPainter(self)
        p.fillRect(self.rect(), QtGui.QColor("#e5e7eb"))
        p.setRenderHint(QtGui.QPainter.Antialiasing, True)
        p.setRenderHint(QtGui.QPainter.TextAntialiasing, True)

        page = render(
            self._layout,
            self._bindings,
            "editor",
            qr_image=self._qr_png,
            selected_id=self.transform.selected_id,
        )
        origin = self.transform.origin
        p.translate(origin.x, origin.y)
        p.scale(self.transform.zoom, self.transform.zoom)
        if page.width and page.height:
            # page shadow
            p.fillRect(QtCore.QRectF(3, 3, page.width, page.height), QtGui.QColor(0, 0, 0, 40))
        paint_page(p, page, watermark=False)
        p.end()

    # ---------- mouse ----------
    @staticmethod
    def _pos(event) -> Position:
        pt = event.position()
        return Position(pt.x(), pt.y())

    def mousePressEvent(self, event: QtGui.QMouseEvent) -> None:
        if event.button() != QtCore.Qt.LeftButton:
            return super().mousePressEvent(event)
        before = self.transform.selected_id
        self.transform.pointer_down(self._layout, self._pos(event))
        if self.transform.selected_id != before:
            self.selectionChanged.emit(self.transform.selected_id or "")
            # a single press on a new element selects and starts dragging it
            if self.transform.selected_id is not None:
                self.transform.begin_drag(self._layout, self.transform.selected_id, self._pos(event))
        self.update()

    def mouseMoveEvent(self, event: QtGui.QMouseEvent) -> None:
        update = self.transform.pointer_move(self._layout, self._pos(event))
        if update is not None:
            self.dragging.emit(update)
            self.update()

    def mouseReleaseEvent(self, event: QtGui.QMouseEvent) -> None:
        if event.button() != QtCore.Qt.LeftButton:
            return super().mouseReleaseEvent(event)
        update: Optional[PositionUpdate] = self.transform.pointer_up()
        if update is not None and update.changed:
            self.elementMoved.emit(update)
        self.update()

    def leaveEvent(self, event: QtCore.QEvent) -> None:
        if self.transform.is_dragging:
            self.transform.cancel_drag(self._layout)
            self.update()
        super().leaveEvent(event)

    def wheelEvent(self, event: QtGui.QWheelEvent) -> None:
        if event.modifiers() & QtCore.Qt.ControlModifier:
            if event.angleDelta().y() > 0:
                self.zoom_in()
            else:
                self.zoom_out()
            event.accept()
            return
        super().wheelEvent(event)

    def keyPressEvent(self, event: QtGui.QKeyEvent) -> None:
        if event.key() == QtCore.Qt.Key_Escape and self.transform.is_dragging:
            self.transform.cancel_drag(self._layout)
            self.update()
            return
        super().keyPressEvent(event)
