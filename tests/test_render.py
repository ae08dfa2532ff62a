"""
Tests for the render pipeline (pure, no Qt).
"""
from datetime import datetime

import pytest

from rx_designer.core.geometry import Position, Size
from rx_designer.core.models import CanvasSettings, Layout, TemplateElement, TextStyle, UnknownElementTypeError
from rx_designer.core.render import (
    fixed_clock,
    format_long_date,
    format_time,
    print_color,
    render,
)

NOW = datetime(2026, 10, 17, 9, 5, 0)
CLOCK = fixed_clock(NOW)


def elem(eid, kind, content="", z=0, **kw):
    return TemplateElement(id=eid, type=kind, position=Position(10, 10), size=Size(100, 50),
                           content=content, z_index=z, **kw)


def layout_of(*elements, background="#ffffff"):
    return Layout(elements=list(elements),
                  canvas_settings=CanvasSettings(background_color=background, canvas_size=Size(794, 1123)))


class TestClock:
    def test_long_date_spanish(self):
        assert format_long_date(NOW) == "17 de octubre de 2026"
        assert format_long_date(datetime(2027, 1, 3)) == "3 de enero de 2027"

    def test_time(self):
        assert format_time(NOW) == "09:05"


class TestRender:
    def test_one_node_per_visible_element_in_paint_order(self):
        layout = layout_of(
            elem("a", "text", z=2),
            elem("b", "text", z=1),
            elem("hidden", "text", z=0, is_visible=False),
            elem("c", "text", z=2),
        )
        page = render(layout, {}, "preview", clock=CLOCK)
        assert [n.element_id for n in page.nodes] == ["b", "a", "c"]

    def test_placeholders_resolved(self):
        layout = layout_of(elem("t", "text", "Paciente: {{patientName}}"))
        page = render(layout, {"patientName": "Ana"}, "preview", clock=CLOCK)
        assert page.node("t").text == "Paciente: Ana"

    def test_unknown_token_fails_open(self):
        layout = layout_of(elem("t", "text", "{{patientName}} {{unbound}}"))
        page = render(layout, {"patientName": "Ana"}, "print", clock=CLOCK)
        assert page.node("t").text == "Ana {{unbound}}"

    def test_date_token_falls_back_to_clock(self):
        layout = layout_of(elem("t", "text", "Fecha: {{date}}"))
        assert render(layout, {}, "preview", clock=CLOCK).node("t").text == "Fecha: 17 de octubre de 2026"
        bound = render(layout, {"date": "01/02/2026"}, "preview", clock=CLOCK)
        assert bound.node("t").text == "Fecha: 01/02/2026"

    def test_date_and_time_elements_ignore_content(self):
        layout = layout_of(elem("d", "date", "stale"), elem("h", "time", "stale"))
        page = render(layout, {}, "preview", clock=CLOCK)
        assert page.node("d").text == "17 de octubre de 2026"
        assert page.node("h").text == "09:05"

    def test_table_rows_and_header(self):
        layout = layout_of(elem("tb", "table", "Medicamento | Dosis\n{{med}} | 500mg\n"))
        node = render(layout, {"med": "Amoxicilina"}, "print", clock=CLOCK).node("tb")
        assert node.rows == (("Medicamento", "Dosis"), ("Amoxicilina", "500mg"))
        assert node.header_rows == 1

    def test_header_kept_in_every_target(self):
        layout = layout_of(elem("tb", "table", "A | B\n1 | 2"))
        for target in ("editor", "preview", "print"):
            assert render(layout, {}, target, clock=CLOCK).node("tb").header_rows == 1

    def test_logo_sentinel_is_placeholder(self):
        layout = layout_of(elem("l", "logo", "LOGO"), elem("img", "logo", "/tmp/logo.png"))
        page = render(layout, {}, "preview", clock=CLOCK)
        assert page.node("l").placeholder
        assert page.node("img").image_ref == "/tmp/logo.png"
        assert not page.node("img").placeholder

    def test_qr_uses_supplied_image_not_content(self):
        layout = layout_of(elem("q", "qr", "{{prescriptionId}}"))
        without = render(layout, {"prescriptionId": "RX"}, "preview", clock=CLOCK).node("q")
        assert without.placeholder
        assert without.image_png is None
        with_img = render(layout, {}, "preview", clock=CLOCK, qr_image=b"png-bytes").node("q")
        assert with_img.image_png == b"png-bytes"
        assert not with_img.placeholder

    def test_signature_label_and_image(self):
        layout = layout_of(elem("s", "signature", "{{doctorName}}"))
        node = render(layout, {"doctorName": "Dr. Luis"}, "print", clock=CLOCK, signature_image=b"sig").node("s")
        assert node.text == "Dr. Luis"
        assert node.image_png == b"sig"

    def test_icon_keeps_type(self):
        layout = layout_of(elem("i", "icon", "", icon_type="stethoscope"))
        assert render(layout, {}, "preview", clock=CLOCK).node("i").icon_type == "stethoscope"

    def test_unknown_target(self):
        with pytest.raises(ValueError):
            render(layout_of(), {}, "screen", clock=CLOCK)

    def test_unknown_type_raises(self):
        bad = elem("x", "text")
        bad.type = "hologram"
        with pytest.raises(UnknownElementTypeError):
            render(layout_of(bad), {}, "preview", clock=CLOCK)


class TestTargets:
    def test_selection_only_in_editor(self):
        layout = layout_of(elem("t", "text"))
        assert render(layout, {}, "editor", clock=CLOCK, selected_id="t").node("t").selected
        assert not render(layout, {}, "preview", clock=CLOCK, selected_id="t").node("t").selected
        assert not render(layout, {}, "print", clock=CLOCK, selected_id="t").node("t").selected

    def test_print_forces_white_page(self):
        layout = layout_of(elem("t", "text"), background="#fef3c7")
        assert render(layout, {}, "preview", clock=CLOCK).background_color == "#fef3c7"
        assert render(layout, {}, "print", clock=CLOCK).background_color == "#ffffff"

    def test_print_makes_colors_opaque(self):
        layout = layout_of(elem("t", "text", style=TextStyle(color="rgba(255, 0, 0, 0.4)"),
                                background_color="#00ff0080"))
        node = render(layout, {}, "print", clock=CLOCK).node("t")
        assert node.style.color == "#ff0000"
        assert node.background_color == "#00ff00"

    def test_geometry_and_content_identical_across_targets(self):
        layout = layout_of(elem("t", "text", "{{patientName}}"), elem("b", "box", "x", z=1))
        pages = [render(layout, {"patientName": "Ana"}, t, clock=CLOCK) for t in ("editor", "preview", "print")]
        for page in pages[1:]:
            assert [(n.element_id, n.rect, n.text) for n in page.nodes] == [
                (n.element_id, n.rect, n.text) for n in pages[0].nodes
            ]

    def test_grayscale_print_mode(self):
        layout = layout_of(elem("t", "text", style=TextStyle(color="#ff0000")))
        layout.print_settings.color_mode = "grayscale"
        page = render(layout, {}, "print", clock=CLOCK)
        assert page.node("t").style.color == "#4c4c4c"
        assert page.color_mode == "grayscale"
        # preview keeps real colors
        assert render(layout, {}, "preview", clock=CLOCK).node("t").style.color == "#ff0000"

    def test_print_color_helper(self):
        assert print_color("#000", "color") == "#000000"
        assert print_color("#777777", "blackwhite") == "#000000"
        assert print_color("#eeeeee", "blackwhite") == "#ffffff"
        assert print_color("transparent", "color") == "transparent"
        assert print_color(None, "color") is None

    def test_page_text_helpers(self):
        layout = layout_of(elem("t", "text", "Hola {{patientName}}"), elem("tb", "table", "A | B", z=1))
        page = render(layout, {"patientName": "Ana"}, "print", clock=CLOCK)
        assert page.contains_text("Hola Ana")
        assert "B" in page.texts()
