from __future__ import annotations

import numpy as np
import pyvista as pv
from PySide6 import QtWidgets

from hydroviz.colormap import FIRE, resolve_cmap
from hydroviz.widgets import PlotterFrame


def points_to_polydata(points: np.ndarray) -> pv.PolyData:
    """Wrap an ``(N, 4)`` sample array (x, y, z, density) as point data."""
    cloud = pv.PolyData(np.ascontiguousarray(points[:, :3]))
    cloud["density"] = points[:, 3]
    return cloud


class PointCloudView(QtWidgets.QWidget):
    def __init__(self, parent: QtWidgets.QWidget | None = None) -> None:
        super().__init__(parent)
        self.plotter_frame = PlotterFrame(self)
        self.plotter = self.plotter_frame.plotter
        self.cmap = "inferno"

        layout = QtWidgets.QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.plotter_frame)

    def set_cmap(self, name: str) -> None:
        self.cmap = "inferno" if name == FIRE else name

    def set_points(self, points: np.ndarray, label: str) -> None:
        self.plotter.clear()
        if len(points) == 0:
            self.plotter.add_text("No samples", color="white", font_size=10)
            return
        self.plotter.add_points(
            points_to_polydata(points),
            scalars="density",
            cmap=resolve_cmap(self.cmap),
            point_size=3.0,
            opacity=0.6,
            show_scalar_bar=False,
        )
        self.plotter.add_text(label, font_size=10, color="white")
        self.plotter_frame.apply_bounds()
        self.plotter.reset_camera()

    def cleanup(self) -> None:
        self.plotter_frame.cleanup()
