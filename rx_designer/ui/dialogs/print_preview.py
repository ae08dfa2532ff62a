# rx_designer/ui/dialogs/print_preview.py
"""Print preview dialog with zoom controls."""
from __future__ import annotations

from PySide6 import QtCore, QtGui, QtWidgets

from ...core.raster import page_to_image
from ...core.render import RenderedPage


class PrintPreviewDialog(QtWidgets.QDialog):
    """
    Modal dialog showing a print-target page with zoom controls.

    Accepting the dialog means "print"; the caller checks
    wants_pdf to tell a PDF export from a printer job.
    """

    def __init__(self, page: RenderedPage, parent=None, title: str = "Print Preview"):
        super().__init__(parent)
        self.setWindowTitle(title)
        self.page = page
        self.image = page_to_image(page, scale=1.0)
        self._zoom = 1.0
        self.wants_pdf = False

        self._build_ui()
        self.resize(900, 900)

    def _build_ui(self):
        layout = QtWidgets.QVBoxLayout(self)

        # Info bar with zoom controls
        info_layout = QtWidgets.QHBoxLayout()
        self.lbl_info = QtWidgets.QLabel(
            f"Preview: {self.image.width()}×{self.image.height()} px"
            + (f" · {self.page.color_mode}" if self.page.color_mode != "color" else "")
        )
        info_layout.addWidget(self.lbl_info)
        info_layout.addStretch()

        btn_zoom_out = QtWidgets.QPushButton("−")
        btn_zoom_out.setMaximumWidth(30)
        btn_zoom_out.clicked.connect(self._zoom_out)

        btn_zoom_in = QtWidgets.QPushButton("+")
        btn_zoom_in.setMaximumWidth(30)
        btn_zoom_in.clicked.connect(self._zoom_in)

        btn_zoom_fit = QtWidgets.QPushButton("Fit")
        btn_zoom_fit.clicked.connect(self._zoom_fit)

        self.lbl_zoom = QtWidgets.QLabel("100%")
        self.lbl_zoom.setMinimumWidth(50)

        info_layout.addWidget(btn_zoom_out)
        info_layout.addWidget(self.lbl_zoom)
        info_layout.addWidget(btn_zoom_in)
        info_layout.addWidget(btn_zoom_fit)

        layout.addLayout(info_layout)

        self.lbl_image = QtWidgets.QLabel()
        self.lbl_image.setAlignment(QtCore.Qt.AlignCenter)
        self._update_preview()

        self.scroll = QtWidgets.QScrollArea()
        self.scroll.setWidget(self.lbl_image)
        self.scroll.setWidgetResizable(False)
        layout.addWidget(self.scroll)

        btn_box = QtWidgets.QDialogButtonBox(
            QtWidgets.QDialogButtonBox.Ok | QtWidgets.QDialogButtonBox.Cancel
        )
        btn_box.button(QtWidgets.QDialogButtonBox.Ok).setText("Print")
        btn_pdf = btn_box.addButton("Export PDF…", QtWidgets.QDialogButtonBox.ActionRole)
        btn_pdf.clicked.connect(self._accept_pdf)
        btn_box.accepted.connect(self.accept)
        btn_box.rejected.connect(self.reject)
        layout.addWidget(btn_box)

    def _accept_pdf(self):
        self.wants_pdf = True
        self.accept()

    def _update_preview(self):
        scaled = self.image.scaled(
            int(self.image.width() * self._zoom),
            int(self.image.height() * self._zoom),
            QtCore.Qt.KeepAspectRatio,
            QtCore.Qt.SmoothTransformation
        )
        self.lbl_image.setPixmap(QtGui.QPixmap.fromImage(scaled))
        self.lbl_image.resize(scaled.size())
        self.lbl_zoom.setText(f"{int(self._zoom * 100)}%")

    def _zoom_in(self):
        self._zoom = min(4.0, self._zoom * 1.25)
        self._update_preview()

    def _zoom_out(self):
        self._zoom = max(0.25, self._zoom / 1.25)
        self._update_preview()

    def _zoom_fit(self):
        viewport_size = self.scroll.viewport().size()
        w_ratio = viewport_size.width() / max(1, self.image.width())
        h_ratio = viewport_size.height() / max(1, self.image.height())
        self._zoom = min(w_ratio, h_ratio) * 0.95
        self._update_preview()
