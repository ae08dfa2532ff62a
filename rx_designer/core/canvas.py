"""
core/canvas.py - Screen <-> canvas coordinates and the drag session.

The drag session is an explicit two-state machine owned by CanvasTransform:

    IDLE --pointer_down on the selected, unlocked element--> DRAGGING
    DRAGGING --pointer_up / cancel_drag--> IDLE

Only one element can be dragged at a time. While dragging, each pointer move
places the element at (pointer - grab offset), clamped to x >= 0, y >= 0.
Right/bottom overflow is left to validation.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from .geometry import Position
from .models import Layout, TemplateElement


DEFAULT_MIN_ZOOM = 0.25
DEFAULT_MAX_ZOOM = 2.0


class DragState(enum.Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class PositionUpdate:
    element_id: str
    old: Position
    new: Position

    @property
    def changed(self) -> bool:
        return self.old != self.new


class CanvasTransform:
    def __init__(
        self,
        zoom: float = 1.0,
        min_zoom: float = DEFAULT_MIN_ZOOM,
        max_zoom: float = DEFAULT_MAX_ZOOM,
        origin: Position = Position(0.0, 0.0),
        zoom_step: float = 0.1,
    ):
        if min_zoom <= 0 or max_zoom < min_zoom:
            raise ValueError(f"Invalid zoom bounds: {min_zoom}..{max_zoom}")
        self.min_zoom = float(min_zoom)
        self.max_zoom = float(max_zoom)
        self.zoom_step = float(zoom_step)
        self.origin = origin
        self._zoom = self._clamp_zoom(zoom)

        self.selected_id: Optional[str] = None
        self._state = DragState.IDLE
        self._drag_id: Optional[str] = None
        self._drag_offset = Position(0.0, 0.0)
        self._drag_start: Optional[Position] = None
        self._drag_last: Optional[Position] = None

    # ---------- zoom ----------
    def _clamp_zoom(self, value: float) -> float:
        return max(self.min_zoom, min(self.max_zoom, float(value)))

    @property
    def zoom(self) -> float:
        return self._zoom

    @zoom.setter
    def zoom(self, value: float) -> None:
        self._zoom = self._clamp_zoom(value)

    def zoom_in(self) -> float:
        self.zoom = round(self._zoom + self.zoom_step, 4)
        return self._zoom

    def zoom_out(self) -> float:
        self.zoom = round(self._zoom - self.zoom_step, 4)
        return self._zoom

    # ---------- coordinates ----------
    def screen_to_canvas(self, screen: Position) -> Position:
        return Position(
            (screen.x - self.origin.x) / self._zoom,
            (screen.y - self.origin.y) / self._zoom,
        )

    def canvas_to_screen(self, canvas: Position) -> Position:
        return Position(
            canvas.x * self._zoom + self.origin.x,
            canvas.y * self._zoom + self.origin.y,
        )

    # ---------- selection / hit testing ----------
    @staticmethod
    def hit_test(layout: Layout, point: Position) -> Optional[TemplateElement]:
        """Topmost visible element under a canvas point (last painted wins)."""
        for elem in reversed(layout.sorted_for_paint()):
            if elem.is_visible and elem.rect.contains(point):
                return elem
        return None

    def select(self, element_id: Optional[str]) -> None:
        if self.is_dragging and element_id != self._drag_id:
            raise RuntimeError("Cannot change selection during a drag")
        self.selected_id = element_id

    # ---------- drag session ----------
    @property
    def state(self) -> DragState:
        return self._state

    @property
    def is_dragging(self) -> bool:
        return self._state is DragState.DRAGGING

    @property
    def dragged_id(self) -> Optional[str]:
        return self._drag_id

    def pointer_down(self, layout: Layout, screen: Position) -> bool:
        """
        Handle a press on the canvas. Pressing an unselected element selects
        it; pressing the already-selected element starts a drag. Returns True
        when a drag session started.
        """
        if self.is_dragging:
            return False
        hit = self.hit_test(layout, self.screen_to_canvas(screen))
        if hit is None:
            self.selected_id = None
            return False
        if hit.id != self.selected_id:
            self.selected_id = hit.id
            return False
        return self.begin_drag(layout, hit.id, screen)

    def begin_drag(self, layout: Layout, element_id: str, screen: Position) -> bool:
        if self.is_dragging or element_id != self.selected_id:
            return False
        elem = layout.get(element_id)
        if elem.is_locked:
            return False
        pointer = self.screen_to_canvas(screen)
        self._drag_offset = Position(pointer.x - elem.position.x, pointer.y - elem.position.y)
        self._drag_start = elem.position
        self._drag_last = elem.position
        self._drag_id = element_id
        self._state = DragState.DRAGGING
        return True

    def pointer_move(self, layout: Layout, screen: Position) -> Optional[PositionUpdate]:
        if not self.is_dragging:
            return None
        elem = layout.get(self._drag_id)
        pointer = self.screen_to_canvas(screen)
        new_pos = Position(
            max(0.0, pointer.x - self._drag_offset.x),
            max(0.0, pointer.y - self._drag_offset.y),
        )
        update = PositionUpdate(elem.id, elem.position, new_pos)
        elem.position = new_pos
        self._drag_last = new_pos
        return update

    def pointer_up(self) -> Optional[PositionUpdate]:
        """End the drag; returns start -> end for the whole session."""
        if not self.is_dragging:
            return None
        update = PositionUpdate(self._drag_id, self._drag_start, self._drag_last)
        self._reset()
        return update

    def cancel_drag(self, layout: Layout) -> None:
        """Pointer left the canvas: put the element back where it started."""
        if not self.is_dragging:
            return
        elem = layout.find(self._drag_id)
        if elem is not None:
            elem.position = self._drag_start
        self._reset()

    def _reset(self) -> None:
        self._state = DragState.IDLE
        self._drag_id = None
        self._drag_offset = Position(0.0, 0.0)
        self._drag_start = None
        self._drag_last = None
