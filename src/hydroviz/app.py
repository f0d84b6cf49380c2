from __future__ import annotations

import sys

from PySide6 import QtWidgets

from hydroviz.logconfig import configure_logging
from hydroviz.views.main_window import HydroVizMainWindow


def main() -> None:
    configure_logging()
    app = QtWidgets.QApplication(sys.argv)
    app.setApplicationName("HydroViz")
    app.setStyle("Fusion")
    window = HydroVizMainWindow()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
