"""
Tests for the canvas transform: zoom, coordinate mapping, hit testing and
the drag state machine.
"""
import pytest

from rx_designer.core.canvas import CanvasTransform, DragState
from rx_designer.core.geometry import Position, Size
from rx_designer.core.models import Layout, TemplateElement


@pytest.fixture()
def layout():
    lay = Layout()
    lay.append(TemplateElement(id="back", type="box", position=Position(0, 0), size=Size(200, 200), z_index=1))
    lay.append(TemplateElement(id="front", type="text", position=Position(50, 50), size=Size(50, 50), z_index=2))
    lay.append(TemplateElement(id="locked", type="text", position=Position(300, 300), size=Size(50, 50),
                               z_index=3, is_locked=True))
    return lay


class TestZoom:
    def test_clamped(self):
        t = CanvasTransform(zoom=5.0)
        assert t.zoom == 2.0
        t.zoom = 0.01
        assert t.zoom == 0.25

    def test_step(self):
        t = CanvasTransform()
        assert t.zoom_in() == pytest.approx(1.1)
        assert t.zoom_out() == pytest.approx(1.0)

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            CanvasTransform(min_zoom=0)

    def test_screen_to_canvas_roundtrip(self):
        t = CanvasTransform(zoom=2.0, origin=Position(10, 20))
        c = t.screen_to_canvas(Position(110, 220))
        assert c == Position(50, 100)
        assert t.canvas_to_screen(c) == Position(110, 220)


class TestHitTest:
    def test_topmost_wins(self, layout):
        assert CanvasTransform.hit_test(layout, Position(60, 60)).id == "front"
        assert CanvasTransform.hit_test(layout, Position(10, 10)).id == "back"

    def test_invisible_skipped(self, layout):
        layout.get("front").is_visible = False
        assert CanvasTransform.hit_test(layout, Position(60, 60)).id == "back"

    def test_miss(self, layout):
        assert CanvasTransform.hit_test(layout, Position(1000, 1000)) is None


class TestDrag:
    def test_first_press_selects_second_drags(self, layout):
        t = CanvasTransform()
        assert t.pointer_down(layout, Position(60, 60)) is False
        assert t.selected_id == "front"
        assert t.state is DragState.IDLE
        assert t.pointer_down(layout, Position(60, 60)) is True
        assert t.state is DragState.DRAGGING

    def test_move_keeps_grab_offset(self, layout):
        t = CanvasTransform()
        t.select("front")
        t.begin_drag(layout, "front", Position(60, 60))
        update = t.pointer_move(layout, Position(110, 80))
        assert update.new == Position(100, 70)
        assert layout.get("front").position == Position(100, 70)

    def test_move_clamps_to_origin_only(self, layout):
        t = CanvasTransform()
        t.select("front")
        t.begin_drag(layout, "front", Position(50, 50))
        assert t.pointer_move(layout, Position(-30, -40)).new == Position(0, 0)
        # no clamp on the right/bottom side
        assert t.pointer_move(layout, Position(5000, 5000)).new == Position(5000, 5000)

    def test_zoom_applies_to_drag(self, layout):
        t = CanvasTransform(zoom=2.0)
        t.select("front")
        t.begin_drag(layout, "front", Position(100, 100))    # canvas (50, 50)
        update = t.pointer_move(layout, Position(200, 100))  # canvas (100, 50)
        assert update.new == Position(100, 50)

    def test_pointer_up_reports_whole_session(self, layout):
        t = CanvasTransform()
        t.select("front")
        t.begin_drag(layout, "front", Position(50, 50))
        t.pointer_move(layout, Position(60, 60))
        t.pointer_move(layout, Position(70, 90))
        update = t.pointer_up()
        assert update.old == Position(50, 50)
        assert update.new == Position(70, 90)
        assert update.changed
        assert t.state is DragState.IDLE

    def test_click_without_move_is_unchanged(self, layout):
        t = CanvasTransform()
        t.select("front")
        t.begin_drag(layout, "front", Position(50, 50))
        assert not t.pointer_up().changed

    def test_locked_element_never_drags(self, layout):
        t = CanvasTransform()
        t.pointer_down(layout, Position(310, 310))
        assert t.selected_id == "locked"
        assert t.pointer_down(layout, Position(310, 310)) is False
        assert t.state is DragState.IDLE

    def test_unselected_element_cannot_drag(self, layout):
        t = CanvasTransform()
        assert t.begin_drag(layout, "front", Position(60, 60)) is False

    def test_cancel_restores_start(self, layout):
        t = CanvasTransform()
        t.select("front")
        t.begin_drag(layout, "front", Position(50, 50))
        t.pointer_move(layout, Position(300, 300))
        t.cancel_drag(layout)
        assert layout.get("front").position == Position(50, 50)
        assert not t.is_dragging

    def test_single_drag_session(self, layout):
        t = CanvasTransform()
        t.select("front")
        t.begin_drag(layout, "front", Position(50, 50))
        assert t.begin_drag(layout, "front", Position(50, 50)) is False
        with pytest.raises(RuntimeError):
            t.select("back")

    def test_press_on_empty_canvas_deselects(self, layout):
        t = CanvasTransform()
        t.select("front")
        t.pointer_down(layout, Position(1000, 1000))
        assert t.selected_id is None

    def test_move_without_drag_is_noop(self, layout):
        t = CanvasTransform()
        assert t.pointer_move(layout, Position(1, 1)) is None
        assert t.pointer_up() is None
