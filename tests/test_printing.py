"""
Tests for printing exceptions, the page rasterizer and the export paths.

These tests run without real printers. They verify:
  1) A rendered page rasterizes to a QImage of the right size.
  2) PDF / PNG export and the export worker write files to disk.
  3) Errors are mapped consistently via printing/exceptions.py.
"""
from __future__ import annotations

import os
from datetime import datetime

import pytest

# Qt offscreen so these tests work in headless CI
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6 import QtGui, QtWidgets

from rx_designer.core.barcodes import render_qr_png
from rx_designer.core.catalog import get_catalog_layout
from rx_designer.core.geometry import Position, Size
from rx_designer.core.models import CanvasSettings, Layout, TemplateElement
from rx_designer.core.raster import page_to_image
from rx_designer.core.render import fixed_clock, render
from rx_designer.core.validation import validate_layout
from rx_designer.printing.exceptions import (
    PrintBlockedError,
    PrintConfigError,
    PrintError,
    PrintExportError,
    friendly_message,
    map_exception,
)
from rx_designer.printing.export import (
    PageSetup,
    ensure_printable,
    export_pdf,
    export_png,
    make_printer,
    parse_length_mm,
    send_to_printer,
)
from rx_designer.printing.worker import ExportWorker

CLOCK = fixed_clock(datetime(2026, 10, 17, 10, 0))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module")
def qapp():
    """Ensure a QApplication exists for the module (needed for fonts)."""
    app = QtWidgets.QApplication.instance()
    if app is None:
        app = QtWidgets.QApplication([])
    yield app


@pytest.fixture()
def tiny_page(qapp):
    """A 200x100 print page with one text element."""
    layout = Layout(canvas_settings=CanvasSettings(background_color="#fef3c7", canvas_size=Size(200, 100)))
    layout.append(TemplateElement(id="t", type="text", position=Position(10, 10), size=Size(150, 30),
                                  content="Paciente: {{patientName}}", z_index=1))
    return render(layout, {"patientName": "Ana"}, "print", clock=CLOCK)


@pytest.fixture()
def full_page(qapp):
    """The classic catalog layout rendered with a real QR image."""
    layout = get_catalog_layout("horizontal_classic")
    return render(layout, {"patientName": "Ana"}, "print", clock=CLOCK,
                  qr_image=render_qr_png("RX-1", 100))


# ---------------------------------------------------------------------------
# 1) Rasterizer
# ---------------------------------------------------------------------------

class TestRaster:
    def test_page_to_image_size(self, tiny_page):
        img = page_to_image(tiny_page, scale=1.0)
        assert not img.isNull()
        assert (img.width(), img.height()) == (200, 100)

    def test_page_to_image_with_scale(self, tiny_page):
        img = page_to_image(tiny_page, scale=2.0)
        assert (img.width(), img.height()) == (400, 200)

    def test_print_page_is_white(self, tiny_page):
        """The print target ignores the canvas tint."""
        color = QtGui.QColor(page_to_image(tiny_page).pixel(199, 99))
        assert (color.red(), color.green(), color.blue()) == (255, 255, 255)

    def test_preview_keeps_tint(self, qapp):
        layout = Layout(canvas_settings=CanvasSettings(background_color="#000000", canvas_size=Size(50, 50)))
        page = render(layout, {}, "preview", clock=CLOCK)
        color = QtGui.QColor(page_to_image(page).pixel(25, 25))
        assert color.red() == 0

    def test_every_element_type_paints(self, full_page):
        """Placeholders, images, tables and icons all paint without errors."""
        img = page_to_image(full_page, scale=0.5)
        assert not img.isNull()


# ---------------------------------------------------------------------------
# 2) Export paths
# ---------------------------------------------------------------------------

class TestPageSetup:
    def test_parse_length(self):
        assert parse_length_mm("15mm") == 15.0
        assert parse_length_mm("1cm") == 10.0
        assert parse_length_mm("1in") == pytest.approx(25.4)
        assert parse_length_mm(12) == 12.0
        with pytest.raises(PrintConfigError):
            parse_length_mm("wide")

    def test_from_layout(self):
        layout = get_catalog_layout("horizontal_compact")
        layout.print_settings.print_quality = "draft"
        setup = PageSetup.from_layout(layout)
        assert setup.page_size == "Letter"
        assert setup.orientation == "landscape"
        assert setup.dpi == 150
        assert all(v >= 0 for v in setup.margins_mm.values())

    def test_unknown_page_size(self):
        with pytest.raises(PrintConfigError):
            PageSetup(page_size="A0").page_layout()

    def test_landscape_page_layout(self, qapp):
        page_layout = PageSetup(orientation="landscape").page_layout()
        assert page_layout.orientation() == QtGui.QPageLayout.Landscape


class TestExport:
    def test_export_pdf(self, full_page, tmp_path):
        out = export_pdf(full_page, str(tmp_path / "receta"), PageSetup(dpi=150))
        assert out.endswith("receta.pdf")
        with open(out, "rb") as f:
            assert f.read(4) == b"%PDF"

    def test_export_png(self, tiny_page, tmp_path):
        out = export_png(tiny_page, str(tmp_path / "receta.png"), scale=2.0)
        img = QtGui.QImage(out)
        assert (img.width(), img.height()) == (400, 200)

    def test_pdf_without_canvas_size(self, qapp, tmp_path):
        layout = Layout(canvas_settings=CanvasSettings(canvas_size=None))
        page = render(layout, {}, "print", clock=CLOCK)
        with pytest.raises(PrintConfigError):
            export_pdf(page, str(tmp_path / "empty.pdf"), PageSetup())

    def test_printer_to_file(self, tiny_page, tmp_path):
        out = str(tmp_path / "job.pdf")
        setup = PageSetup(dpi=150)
        send_to_printer(tiny_page, make_printer(setup, output_file=out), setup)
        assert os.path.getsize(out) > 0

    def test_ensure_printable(self):
        ensure_printable(validate_layout(get_catalog_layout("portrait_default")))
        bad = Layout()
        bad.append(TemplateElement(id="t", type="text", position=Position(-1, 0), size=Size(10, 10)))
        with pytest.raises(PrintBlockedError) as info:
            ensure_printable(validate_layout(bad))
        assert "ELEMENT_OUT_OF_BOUNDS_NEGATIVE" in info.value.codes


class TestExportWorker:
    def test_png_run(self, tiny_page, tmp_path):
        """Run synchronously (call run() directly instead of start())."""
        worker = ExportWorker("png", tiny_page, str(tmp_path / "w.png"), scale=1.0)
        done, progress = [], []
        worker.signals.done.connect(done.append)
        worker.signals.progress.connect(progress.append)
        worker.run()
        assert worker.output_path == str(tmp_path / "w.png")
        assert done == [worker.output_path]
        assert progress == [10, 100]

    def test_unknown_action_reports_error(self, tiny_page, tmp_path):
        worker = ExportWorker("fax", tiny_page, str(tmp_path / "w"))
        errors, finished = [], []
        worker.signals.error.connect(errors.append)
        worker.signals.finished.connect(lambda: finished.append(True))
        worker.run()
        assert worker.output_path is None
        assert "fax" in errors[0]
        assert finished == [True]


# ---------------------------------------------------------------------------
# 3) Exception mapping
# ---------------------------------------------------------------------------

class TestExceptionMapping:
    def test_permission_error(self):
        exc = PermissionError("denied")
        mapped = map_exception(exc)
        assert isinstance(mapped, PrintExportError)
        assert mapped.__cause__ is exc
        assert "permission" in str(mapped).lower()

    def test_missing_folder(self):
        assert "folder" in str(map_exception(FileNotFoundError("x"))).lower()

    def test_os_error(self):
        assert isinstance(map_exception(OSError("disk full")), PrintExportError)

    def test_value_error_maps_to_config_error(self):
        assert isinstance(map_exception(ValueError("bad")), PrintConfigError)

    def test_generic_exception_maps_to_export_error(self):
        mapped = map_exception(RuntimeError("something weird happened"))
        assert isinstance(mapped, PrintExportError)
        assert "weird" in str(mapped)

    def test_print_error_passes_through(self):
        exc = PrintBlockedError("blocked", ["POOR_CONTRAST"])
        assert map_exception(exc) is exc
        assert exc.codes == ("POOR_CONTRAST",)

    def test_friendly_message_returns_string(self):
        msg = friendly_message(PermissionError("nope"))
        assert isinstance(msg, str) and msg

    def test_hierarchy(self):
        for cls in (PrintConfigError, PrintExportError, PrintBlockedError):
            assert issubclass(cls, PrintError)
