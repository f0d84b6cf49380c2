from __future__ import annotations

from PySide6 import QtCore, QtWidgets
from pyvistaqt import QtInteractor


class PlotterFrame(QtWidgets.QFrame):
    """Frame hosting a pyvista interactor with labelled bounds axes."""

    def __init__(self, parent: QtWidgets.QWidget | None = None) -> None:
        super().__init__(parent)
        self.setFrameStyle(QtWidgets.QFrame.Shape.StyledPanel | QtWidgets.QFrame.Shadow.Sunken)
        self._plotter_closed = False
        self.show_bounds_axes: bool = True
        self.plotter = QtInteractor(self)
        self.plotter.set_background("#000000")

        layout = QtWidgets.QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.plotter, 1)

    def apply_bounds(self) -> None:
        if not self.show_bounds_axes:
            self.plotter.remove_bounds_axes()
            return
        self.plotter.show_bounds(
            grid="front",
            location="outer",
            xtitle="x (bohr)",
            ytitle="y (bohr)",
            ztitle="z (bohr)",
            color="#f8fafc",
            font_size=10,
        )

    def set_show_bounds(self, enabled: bool) -> None:
        self.show_bounds_axes = bool(enabled)
        self.apply_bounds()

    def cleanup(self) -> None:
        """Close the underlying VTK render window before Qt tears down."""
        if self._plotter_closed:
            return
        self.plotter.close()
        self._plotter_closed = True

    def closeEvent(self, event) -> None:
        self.cleanup()
        super().closeEvent(event)


class CollapsibleGroup(QtWidgets.QGroupBox):
    def __init__(self, title: str, parent: QtWidgets.QWidget | None = None) -> None:
        super().__init__(title, parent)
        self.setCheckable(True)
        self.setChecked(True)
        self.toggled.connect(self._update_visibility)

    def _update_visibility(self, checked: bool) -> None:
        for child in self.findChildren(QtWidgets.QWidget, options=QtCore.Qt.FindChildOption.FindDirectChildrenOnly):
            child.setVisible(checked)
        self.setMaximumHeight(16777215 if checked else 28)
