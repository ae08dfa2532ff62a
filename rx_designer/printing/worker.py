from __future__ import annotations

import sys
from typing import Optional

from PySide6 import QtCore

from ..core.render import RenderedPage
from .exceptions import PrintConfigError, friendly_message
from .export import PageSetup, export_pdf, export_png


class WorkerSignals(QtCore.QObject):
    done = QtCore.Signal(str)        # output path
    error = QtCore.Signal(str)       # error message
    progress = QtCore.Signal(int)    # 0–100
    finished = QtCore.Signal()       # always, after done or error


class ExportWorker(QtCore.QThread):
    """
    Thread that writes a rendered page to PDF or PNG so the editor stays
    responsive on high-resolution exports.

    action: "pdf" | "png"
    """

    def __init__(
        self,
        action: str,
        page: RenderedPage,
        path: str,
        setup: Optional[PageSetup] = None,
        scale: float = 2.0,
        parent=None,
    ):
        super().__init__(parent)
        self.action = (action or "").lower()
        self.page = page
        self.path = path
        self.setup = setup or PageSetup()
        self.scale = scale
        self.signals = WorkerSignals()
        self.output_path: Optional[str] = None

    def run(self):
        try:
            print(f"[PRINT] worker start action={self.action} path={self.path}", file=sys.stderr)
            self.signals.progress.emit(10)
            if self.action == "pdf":
                out = export_pdf(self.page, self.path, self.setup)
            elif self.action == "png":
                out = export_png(self.page, self.path, self.scale)
            else:
                raise PrintConfigError(f"Unknown export action {self.action!r}")
            self.output_path = out
            self.signals.progress.emit(100)
            self.signals.done.emit(out)
        except Exception as e:
            print(f"[PRINT] worker failed: {type(e).__name__}: {e}", file=sys.stderr)
            self.signals.error.emit(friendly_message(e))
        finally:
            self.signals.finished.emit()
