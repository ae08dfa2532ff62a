"""
printing/export.py - Hand a rendered page to PDF, PNG or a system printer.

All three paths paint the same RenderedPage through core.raster.paint_page;
only the paint device differs. Callers render with target="print" (or use
reprint() for an issued snapshot) and gate on validation before calling in.
"""
from __future__ import annotations

import re
import sys
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from PySide6 import QtCore, QtGui
from PySide6.QtPrintSupport import QPrinter

from ..core.models import Layout, PrintSettings
from ..core.raster import page_to_image, paint_page
from ..core.render import RenderedPage
from ..core.validation import ValidationFinding, is_valid
from .exceptions import PrintBlockedError, PrintConfigError, PrintExportError


DEBUG_PRINT = False

QUALITY_DPI = {"draft": 150, "normal": 300, "high": 600}

_PAGE_SIZES = {
    "A4": QtGui.QPageSize.A4,
    "Letter": QtGui.QPageSize.Letter,
    "Legal": QtGui.QPageSize.Legal,
}

_UNIT_RE = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*(mm|cm|in|px|pt)?\s*$", re.I)
_MM_PER_UNIT = {"mm": 1.0, "cm": 10.0, "in": 25.4, "pt": 25.4 / 72.0, "px": 25.4 / 96.0}


def parse_length_mm(value) -> float:
    """'15mm' -> 15.0; bare numbers are millimetres."""
    if isinstance(value, (int, float)):
        return float(value)
    m = _UNIT_RE.match(str(value or ""))
    if not m:
        raise PrintConfigError(f"Invalid length {value!r} (expected e.g. '15mm')")
    unit = (m.group(2) or "mm").lower()
    return float(m.group(1)) * _MM_PER_UNIT[unit]


@dataclass
class PageSetup:
    page_size: str = "A4"
    orientation: str = "portrait"
    margins_mm: Dict[str, float] = field(
        default_factory=lambda: {"top": 20.0, "right": 15.0, "bottom": 20.0, "left": 15.0}
    )
    dpi: int = 600
    scale_factor: float = 1.0

    @staticmethod
    def from_layout(layout: Layout, settings: Optional[PrintSettings] = None) -> "PageSetup":
        ps = settings or layout.print_settings
        return PageSetup(
            page_size=layout.canvas_settings.page_size,
            orientation=layout.orientation,
            margins_mm={k: parse_length_mm(v) for k, v in ps.page_margins.items()},
            dpi=QUALITY_DPI.get(ps.print_quality, 300),
            scale_factor=float(ps.scale_factor or 1.0),
        )

    def page_layout(self) -> QtGui.QPageLayout:
        size_id = _PAGE_SIZES.get(self.page_size)
        if size_id is None:
            raise PrintConfigError(f"Unsupported page size {self.page_size!r}")
        orientation = (
            QtGui.QPageLayout.Landscape
            if self.orientation == "landscape"
            else QtGui.QPageLayout.Portrait
        )
        m = self.margins_mm
        margins = QtCore.QMarginsF(
            m.get("left", 0.0), m.get("top", 0.0), m.get("right", 0.0), m.get("bottom", 0.0)
        )
        return QtGui.QPageLayout(
            QtGui.QPageSize(size_id), orientation, margins, QtGui.QPageLayout.Millimeter
        )


def ensure_printable(findings: Iterable[ValidationFinding]) -> None:
    """Raise PrintBlockedError when any finding is an error."""
    findings = list(findings)
    if not is_valid(findings):
        codes = [f.code for f in findings if f.is_error]
        raise PrintBlockedError(
            f"Fix {len(codes)} layout error(s) before printing: {', '.join(codes)}", codes
        )


def _paint_to_device(device: QtGui.QPagedPaintDevice, page: RenderedPage, setup: PageSetup) -> None:
    if page.width <= 0 or page.height <= 0:
        raise PrintConfigError("Cannot print a page without a canvas size")

    painter = QtGui.QPainter()
    if not painter.begin(device):
        raise PrintExportError("Could not start painting on the output device")
    try:
        painter.setRenderHint(QtGui.QPainter.Antialiasing, True)
        painter.setRenderHint(QtGui.QPainter.TextAntialiasing, True)
        # fit the canvas into the printable area, then apply the user scale
        fit = min(device.width() / page.width, device.height() / page.height)
        painter.scale(fit * setup.scale_factor, fit * setup.scale_factor)
        paint_page(painter, page)
    finally:
        painter.end()


def export_pdf(page: RenderedPage, path: str, setup: PageSetup) -> str:
    if not path.lower().endswith(".pdf"):
        path += ".pdf"
    writer = QtGui.QPdfWriter(path)
    writer.setPageLayout(setup.page_layout())
    writer.setResolution(int(setup.dpi))
    writer.setTitle("Receta médica")
    writer.setCreator("Rx Designer")
    _paint_to_device(writer, page, setup)
    if DEBUG_PRINT:
        print(f"[PRINT] PDF {path} ({setup.page_size} {setup.orientation}, {setup.dpi} dpi)", file=sys.stderr)
    return path


def export_png(page: RenderedPage, path: str, scale: float = 1.0) -> str:
    if not path.lower().endswith(".png"):
        path += ".png"
    img = page_to_image(page, scale=scale)
    if not img.save(path, "PNG"):
        raise PrintExportError(f"Could not write PNG to {path}")
    if DEBUG_PRINT:
        print(f"[PRINT] PNG {path} ({img.width()}x{img.height()})", file=sys.stderr)
    return path


def make_printer(setup: PageSetup, printer_name: str = "", output_file: str = "") -> QPrinter:
    """
    Configured QPrinter. With *output_file* the job goes to a PDF file
    instead of a device (used for dry runs).
    """
    printer = QPrinter(QPrinter.HighResolution)
    if printer_name:
        printer.setPrinterName(printer_name)
    if output_file:
        printer.setOutputFormat(QPrinter.PdfFormat)
        printer.setOutputFileName(output_file)
    printer.setPageLayout(setup.page_layout())
    printer.setDocName("Receta médica")
    return printer


def send_to_printer(page: RenderedPage, printer: QPrinter, setup: PageSetup) -> None:
    if not printer.isValid():
        raise PrintConfigError(f"Printer {printer.printerName()!r} is not available")
    _paint_to_device(printer, page, setup)
    if DEBUG_PRINT:
        print(f"[PRINT] sent to {printer.printerName() or printer.outputFileName()}", file=sys.stderr)
