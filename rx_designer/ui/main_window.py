from __future__ import annotations

import os
import sys
from typing import Dict, List, Optional

from PySide6 import QtCore, QtGui, QtWidgets
from PySide6.QtPrintSupport import QPrintDialog

from ..core.bindings import DoctorIdentity, Medication, Prescription, build_binding_context
from ..core.canvas import CanvasTransform, PositionUpdate
from ..core.catalog import get_catalog_layout, list_catalog
from ..core.commands import AddElementCmd, DeleteElementCmd, MoveElementCmd, PropertyChangeCmd
from ..core.config import APP_NAME, ORG_NAME, EditorConfig, load_editor_config, save_editor_config
from ..core.geometry import Position
from ..core.models import ELEMENT_TYPES, Layout
from ..core.payload import PayloadComposer, qr_side_px
from ..core.persistence import LayoutFileError, SnapshotStore, load_layout, save_layout
from ..core.render import render
from ..core.scheduling import Debouncer
from ..core.snapshot import issue, reprint
from ..core.validation import ValidationFinding, is_valid, validate_layout
from ..printing.exceptions import PrintError, friendly_message
from ..printing.export import PageSetup, ensure_printable, make_printer, send_to_printer
from ..printing.worker import ExportWorker
from .canvas_widget import CanvasWidget
from .dialogs import PrintPreviewDialog
from .validation_panel import ValidationPanel

# -------------------------
# App constants / QSettings
# -------------------------
APP_TITLE = "Rx Designer"
APP_VERSION = "0.1.0"

QtCore.QCoreApplication.setOrganizationName(ORG_NAME)
QtCore.QCoreApplication.setApplicationName(APP_NAME)
QtCore.QCoreApplication.setApplicationVersion(APP_VERSION)

_INSERT_LABELS = {
    "text": "Text",
    "logo": "Logo",
    "signature": "Signature",
    "qr": "QR code",
    "separator": "Separator",
    "box": "Box",
    "date": "Date",
    "time": "Time",
    "table": "Table",
    "icon": "Icon",
}


def sample_prescription() -> Prescription:
    """Example data so templates preview with realistic values."""
    return Prescription(
        prescription_id="RX-DEMO-0001",
        patient_id="PAT-0001",
        patient_name="Ana García López",
        diagnosis="Faringitis aguda",
        patient_age="34 años",
        medications=[
            Medication("Amoxicilina", "500mg", "cada 8 horas", "7 días", "tomar con alimentos"),
            Medication("Paracetamol", "500mg", "cada 6 horas", "3 días"),
        ],
        has_signature=True,
    )


def sample_identity() -> DoctorIdentity:
    return DoctorIdentity(
        doctor_name="Dra. María Pérez",
        doctor_license="12345678",
        clinic_name="Clínica San Rafael",
        clinic_phone="55 1234 5678",
    )


class MainWindow(QtWidgets.QMainWindow):
    def __init__(self, layout: Optional[Layout] = None, snapshot_dir: Optional[str] = None):
        super().__init__()

        self.setWindowTitle(f"{APP_TITLE} — {APP_VERSION}")
        self.resize(1300, 900)
        self.settings = QtCore.QSettings(ORG_NAME, APP_NAME)
        self.config: EditorConfig = load_editor_config(self.settings)

        self.layout_model: Layout = layout or get_catalog_layout(self.config.last_layout_id)
        self.prescription = sample_prescription()
        self.identity = sample_identity()
        self.bindings: Dict[str, str] = build_binding_context(self.prescription, self.identity)
        self.findings: List[ValidationFinding] = []

        self.undo_stack = QtGui.QUndoStack(self)
        self.undo_stack.indexChanged.connect(self._on_undo_redo_changed)
        self._workers: set[ExportWorker] = set()
        self._current_file_path: Optional[str] = None

        self.snapshot_store = SnapshotStore(snapshot_dir or self._default_snapshot_dir())
        self.composer = self._new_composer()

        self._validation_debounce = Debouncer(self.config.validation_debounce_ms, self.run_validation, self)
        self._qr_debounce = Debouncer(self.config.qr_debounce_ms, self.refresh_qr, self)

        self._build_canvas()
        self._build_docks()
        self._build_actions()

        self.run_validation()
        self.refresh_qr()
        self.statusBar().showMessage("Ready.")

    # ---------- setup ----------
    @staticmethod
    def _default_snapshot_dir() -> str:
        base = QtCore.QStandardPaths.writableLocation(QtCore.QStandardPaths.AppDataLocation)
        return os.path.join(base or os.path.expanduser("~/.rx_designer"), "snapshots")

    def _new_composer(self) -> PayloadComposer:
        return PayloadComposer(self.prescription, side_px=qr_side_px(self.layout_model.elements))

    def _build_canvas(self) -> None:
        transform = CanvasTransform(
            zoom=self.config.default_zoom,
            min_zoom=self.config.min_zoom,
            max_zoom=self.config.max_zoom,
            zoom_step=self.config.zoom_step,
            origin=Position(24, 24),
        )
        self.canvas = CanvasWidget(self.layout_model, transform)
        self.canvas.set_bindings(self.bindings)
        self.canvas.selectionChanged.connect(self._on_selection_changed)
        self.canvas.dragging.connect(lambda _update: self.schedule_validation())
        self.canvas.elementMoved.connect(self._on_element_moved)
        self.canvas.zoomChanged.connect(lambda z: self.statusBar().showMessage(f"Zoom {int(z * 100)}%", 1500))

        scroll = QtWidgets.QScrollArea()
        scroll.setWidget(self.canvas)
        scroll.setWidgetResizable(True)
        self.setCentralWidget(scroll)

    def _build_docks(self) -> None:
        self.validation_panel = ValidationPanel()
        self.validation_panel.elementActivated.connect(self.canvas.select)
        dock = QtWidgets.QDockWidget("Validation", self)
        dock.setObjectName("ValidationDock")
        dock.setWidget(self.validation_panel)
        self.addDockWidget(QtCore.Qt.RightDockWidgetArea, dock)
        dock.setVisible(self.config.show_validation_panel)
        self.validation_dock = dock

    def _act(self, text: str, slot, shortcut=None) -> QtGui.QAction:
        act = QtGui.QAction(text, self)
        if shortcut is not None:
            act.setShortcut(shortcut)
        act.triggered.connect(slot)
        return act

    def _build_actions(self) -> None:
        mb = self.menuBar()
        tb = self.addToolBar("Main")
        tb.setObjectName("MainToolbar")

        # File
        m_file = mb.addMenu("&File")
        m_new = m_file.addMenu("New from catalog")
        for entry in list_catalog():
            m_new.addAction(self._act(entry.name, lambda _=False, lid=entry.id: self.load_catalog_layout(lid)))
        self.act_open = self._act("Open…", self.open_layout, QtGui.QKeySequence.Open)
        self.act_save = self._act("Save…", self.save_layout_as, QtGui.QKeySequence.Save)
        self.act_preview = self._act("Print preview…", self.print_preview, "Ctrl+P")
        self.act_issue = self._act("Issue prescription", self.issue_prescription, "Ctrl+I")
        self.act_reprint = self._act("Reprint issued…", self.reprint_issued)
        for a in (self.act_open, self.act_save):
            m_file.addAction(a)
        m_file.addSeparator()
        for a in (self.act_preview, self.act_issue, self.act_reprint):
            m_file.addAction(a)
        m_file.addSeparator()
        m_file.addAction(self._act("Quit", self.close, QtGui.QKeySequence.Quit))

        # Edit
        m_edit = mb.addMenu("&Edit")
        self.act_undo = self.undo_stack.createUndoAction(self, "Undo")
        self.act_undo.setShortcut(QtGui.QKeySequence.Undo)
        self.act_redo = self.undo_stack.createRedoAction(self, "Redo")
        self.act_redo.setShortcut(QtGui.QKeySequence.Redo)
        self.act_delete = self._act("Delete", self.delete_selected, QtGui.QKeySequence.Delete)
        self.act_duplicate = self._act("Duplicate", self.duplicate_selected, "Ctrl+D")
        self.act_lock = self._act("Lock / unlock", self.toggle_lock_selected, "Ctrl+L")
        for a in (self.act_undo, self.act_redo, self.act_delete, self.act_duplicate, self.act_lock):
            m_edit.addAction(a)

        # Insert
        m_insert = mb.addMenu("&Insert")
        for kind in ELEMENT_TYPES:
            m_insert.addAction(self._act(_INSERT_LABELS[kind], lambda _=False, k=kind: self.add_element(k)))

        # View
        m_view = mb.addMenu("&View")
        m_view.addAction(self._act("Zoom in", self.canvas.zoom_in, QtGui.QKeySequence.ZoomIn))
        m_view.addAction(self._act("Zoom out", self.canvas.zoom_out, QtGui.QKeySequence.ZoomOut))
        m_view.addAction(self._act("Actual size", lambda: self.canvas.set_zoom(1.0), "Ctrl+0"))
        m_view.addAction(self.validation_dock.toggleViewAction())

        for a in (self.act_undo, self.act_redo, self.act_preview, self.act_issue):
            tb.addAction(a)

    # ---------- validation / QR ----------
    def schedule_validation(self) -> None:
        self._validation_debounce.trigger()

    def schedule_qr(self) -> None:
        self._qr_debounce.trigger()

    def run_validation(self) -> None:
        self.findings = validate_layout(self.layout_model)
        self.validation_panel.set_findings(self.findings)
        ok = is_valid(self.findings)
        for a in (self.act_preview, self.act_issue):
            a.setEnabled(ok)

    def refresh_qr(self) -> None:
        if self.composer.frozen:
            return
        self.composer.side_px = qr_side_px(self.layout_model.elements)
        self.composer.update(self.prescription)
        self.canvas.set_qr_image(self.composer.png)

    def set_prescription(self, prescription: Prescription) -> None:
        """New or edited prescription data from the host application."""
        self.prescription = prescription
        self.bindings = build_binding_context(prescription, self.identity)
        self.canvas.set_bindings(self.bindings)
        self.schedule_qr()

    def _model_changed(self) -> None:
        self.canvas.update()
        self.schedule_validation()

    def _on_undo_redo_changed(self, _index: int) -> None:
        self._model_changed()

    # ---------- selection / editing ----------
    def _on_selection_changed(self, element_id: str) -> None:
        if element_id:
            self.statusBar().showMessage(f"Selected {element_id}", 2000)

    def _on_element_moved(self, update: PositionUpdate) -> None:
        self.undo_stack.push(
            MoveElementCmd(self.layout_model, update.element_id, update.old, update.new,
                           on_changed=self._model_changed)
        )
        if self.layout_model.get(update.element_id).type == "qr":
            self.schedule_qr()

    def add_element(self, kind: str) -> None:
        elem = self.layout_model.create_element(kind)
        self.undo_stack.push(AddElementCmd(self.layout_model, elem, f"Add {kind}", self._model_changed))
        self.canvas.select(elem.id)

    def delete_selected(self) -> None:
        eid = self.canvas.selected_id()
        if not eid:
            return
        self.canvas.select(None)
        self.undo_stack.push(DeleteElementCmd(self.layout_model, eid, on_changed=self._model_changed))

    def duplicate_selected(self) -> None:
        eid = self.canvas.selected_id()
        if not eid:
            return
        copy = self.layout_model.make_duplicate(eid)
        self.undo_stack.push(AddElementCmd(self.layout_model, copy, "Duplicate element", self._model_changed))
        self.canvas.select(copy.id)

    def toggle_lock_selected(self) -> None:
        eid = self.canvas.selected_id()
        if not eid:
            return
        elem = self.layout_model.get(eid)
        self.undo_stack.push(
            PropertyChangeCmd(self.layout_model, eid, "is_locked", elem.is_locked, not elem.is_locked,
                              "Toggle lock", self._model_changed)
        )

    # ---------- layouts ----------
    def set_layout(self, layout: Layout) -> None:
        self.layout_model = layout
        self.undo_stack.clear()
        self.canvas.set_layout(layout)
        self.run_validation()
        self.refresh_qr()

    def load_catalog_layout(self, layout_id: str) -> None:
        self.set_layout(get_catalog_layout(layout_id))
        self.config.last_layout_id = layout_id
        self._current_file_path = None
        self.statusBar().showMessage(f"Loaded catalog layout {layout_id}", 3000)

    def open_layout(self) -> None:
        path, _ = QtWidgets.QFileDialog.getOpenFileName(self, "Open Layout", "", "Layout JSON (*.json)")
        if not path:
            return
        try:
            layout = load_layout(path)
        except LayoutFileError as e:
            QtWidgets.QMessageBox.critical(self, "Open Error", str(e))
            return
        self.set_layout(layout)
        self._current_file_path = path
        self.statusBar().showMessage(f"Opened: {path}", 3000)

    def save_layout_as(self) -> None:
        path, _ = QtWidgets.QFileDialog.getSaveFileName(
            self, "Save Layout", self._current_file_path or "", "Layout JSON (*.json)"
        )
        if not path:
            return
        self._validation_debounce.flush()
        try:
            path = save_layout(self.layout_model, path)
        except LayoutFileError as e:
            QtWidgets.QMessageBox.critical(self, "Save Error", str(e))
            return
        self._current_file_path = path
        self.statusBar().showMessage(f"Saved: {path}", 3000)

    # ---------- print / issue ----------
    def _ensure_printable(self) -> bool:
        self._validation_debounce.flush()
        try:
            ensure_printable(self.findings)
        except PrintError as e:
            QtWidgets.QMessageBox.warning(self, "Layout has errors", friendly_message(e))
            return False
        return True

    def print_preview(self) -> None:
        if not self._ensure_printable():
            return
        self._qr_debounce.flush()
        page = render(self.layout_model, self.bindings, "print", qr_image=self.composer.png)
        self._show_and_print(page, PageSetup.from_layout(self.layout_model), "Print Preview")

    def _show_and_print(self, page, setup: PageSetup, title: str) -> None:
        dlg = PrintPreviewDialog(page, self, title)
        if dlg.exec() != QtWidgets.QDialog.Accepted:
            return
        if dlg.wants_pdf:
            path, _ = QtWidgets.QFileDialog.getSaveFileName(self, "Export PDF", "", "PDF (*.pdf)")
            if path:
                self._start_export("pdf", page, path, setup)
            return

        printer = make_printer(setup)
        if QPrintDialog(printer, self).exec() != QtWidgets.QDialog.Accepted:
            return
        try:
            send_to_printer(page, printer, setup)
        except PrintError as e:
            QtWidgets.QMessageBox.critical(self, "Print Error", friendly_message(e))
            return
        self.statusBar().showMessage("Sent to printer.", 3000)

    def _start_export(self, action: str, page, path: str, setup: PageSetup) -> None:
        worker = ExportWorker(action, page, path, setup, parent=self)
        worker.signals.done.connect(lambda out: self.statusBar().showMessage(f"Exported: {out}", 4000))
        worker.signals.error.connect(lambda msg: QtWidgets.QMessageBox.critical(self, "Export Error", msg))
        worker.signals.finished.connect(lambda w=worker: self._workers.discard(w))
        self._workers.add(worker)
        worker.start()

    def issue_prescription(self) -> None:
        if not self._ensure_printable():
            return
        pid = self.prescription.prescription_id
        if pid in self.snapshot_store:
            QtWidgets.QMessageBox.warning(self, "Already issued", f"Prescription {pid} was already issued.")
            return
        snap = issue(self.layout_model, self.bindings, self.prescription, composer=self.composer)
        try:
            self.snapshot_store.save(snap)
        except LayoutFileError as e:
            QtWidgets.QMessageBox.critical(self, "Issue Error", str(e))
            return
        if snap.qr_error:
            print(f"[SNAPSHOT] {pid} issued without QR: {snap.qr_error}", file=sys.stderr)
            self.statusBar().showMessage(f"Issued {pid} (QR unavailable: {snap.qr_error})", 6000)
        else:
            self.statusBar().showMessage(f"Issued {pid}", 4000)
        # the frozen composer belongs to the issued prescription now
        self.composer = self._new_composer()

    def reprint_issued(self) -> None:
        ids = self.snapshot_store.ids()
        if not ids:
            QtWidgets.QMessageBox.information(self, "Reprint", "No issued prescriptions yet.")
            return
        pid, ok = QtWidgets.QInputDialog.getItem(self, "Reprint", "Prescription:", ids, 0, False)
        if not ok or not pid:
            return
        try:
            snap = self.snapshot_store.load(pid)
        except LayoutFileError as e:
            QtWidgets.QMessageBox.critical(self, "Reprint Error", str(e))
            return
        if snap is None:
            return
        self._show_and_print(reprint(snap), PageSetup.from_layout(snap.layout), f"Reprint {pid}")

    # ---------- shutdown ----------
    def closeEvent(self, event: QtGui.QCloseEvent) -> None:
        self.config.show_validation_panel = self.validation_dock.isVisible()
        self.config.default_zoom = self.canvas.transform.zoom
        save_editor_config(self.config, self.settings)
        for w in list(self._workers):
            w.wait(5000)
        super().closeEvent(event)


__all__ = ["MainWindow"]
