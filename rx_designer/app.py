from __future__ import annotations
import sys
from typing import Optional, Sequence

from PySide6.QtWidgets import QApplication

from .core.persistence import LayoutFileError, load_layout
from .ui.main_window import MainWindow


def main(argv: Optional[Sequence[str]] = None):
    """
    Start the editor. An optional first argument is a layout JSON file to
    open instead of the last catalog layout.
    """
    argv = list(sys.argv if argv is None else argv)
    app = QApplication(argv)

    layout = None
    if len(argv) > 1:
        try:
            layout = load_layout(argv[1])
        except LayoutFileError as e:
            print(f"[RxDesigner] {e}", file=sys.stderr)

    win = MainWindow(layout)
    win.show()
    sys.exit(app.exec())


if __name__ == '__main__':
    main()
