from __future__ import annotations

from typing import List, Sequence

from PySide6 import QtCore, QtGui, QtWidgets

from ..core.validation import ERROR, INFO, WARNING, ValidationFinding, summarize


_SEVERITY_COLORS = {
    ERROR: "#dc2626",
    WARNING: "#d97706",
    INFO: "#2563eb",
}
_SEVERITY_LABELS = {ERROR: "Error", WARNING: "Warning", INFO: "Info"}


class ValidationPanel(QtWidgets.QWidget):
    """
    List of validation findings. Double-clicking a finding tied to an
    element emits elementActivated with its id so the canvas can select it.
    """

    elementActivated = QtCore.Signal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._findings: List[ValidationFinding] = []

        layout = QtWidgets.QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)

        self.lbl_summary = QtWidgets.QLabel("No issues")
        layout.addWidget(self.lbl_summary)

        self.list = QtWidgets.QListWidget()
        self.list.setWordWrap(True)
        self.list.itemDoubleClicked.connect(self._on_item_activated)
        layout.addWidget(self.list)

    @property
    def findings(self) -> List[ValidationFinding]:
        return list(self._findings)

    def set_findings(self, findings: Sequence[ValidationFinding]) -> None:
        self._findings = list(findings)
        self.list.clear()
        for f in self._findings:
            text = f"{_SEVERITY_LABELS.get(f.severity, f.severity)}: {f.message}"
            if f.suggestion:
                text += f"\n  → {f.suggestion}"
            item = QtWidgets.QListWidgetItem(text)
            item.setForeground(QtGui.QColor(_SEVERITY_COLORS.get(f.severity, "#374151")))
            item.setData(QtCore.Qt.UserRole, f.element_id or "")
            item.setToolTip(f.code)
            self.list.addItem(item)

        counts = summarize(self._findings)
        if not self._findings:
            self.lbl_summary.setText("No issues")
        else:
            self.lbl_summary.setText(
                f"{counts[ERROR]} error(s), {counts[WARNING]} warning(s), {counts[INFO]} info"
            )

    def _on_item_activated(self, item: QtWidgets.QListWidgetItem) -> None:
        element_id = item.data(QtCore.Qt.UserRole)
        if element_id:
            self.elementActivated.emit(element_id)
