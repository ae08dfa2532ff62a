from __future__ import annotations

from typing import Callable, Optional

from PySide6 import QtCore


class Debouncer(QtCore.QObject):
    """
    Single-shot QTimer wrapper: every trigger() restarts the countdown and
    *callback* runs once, interval_ms after the last trigger.

    The editor keeps two of these with different windows: validation
    (~100 ms) and QR regeneration (~300 ms).
    """

    fired = QtCore.Signal()

    def __init__(self, interval_ms: int, callback: Optional[Callable[[], None]] = None, parent=None):
        super().__init__(parent)
        self._callback = callback
        self._timer = QtCore.QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(max(0, int(interval_ms)))
        self._timer.timeout.connect(self._fire)

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    @interval_ms.setter
    def interval_ms(self, value: int) -> None:
        self._timer.setInterval(max(0, int(value)))

    @property
    def pending(self) -> bool:
        return self._timer.isActive()

    def trigger(self) -> None:
        self._timer.start()

    def cancel(self) -> None:
        self._timer.stop()

    def flush(self) -> None:
        """Run now if a call is pending (e.g. right before save or print)."""
        if self._timer.isActive():
            self._timer.stop()
            self._fire()

    def _fire(self) -> None:
        if self._callback is not None:
            self._callback()
        self.fired.emit()
