from __future__ import annotations

import logging
import math

import numpy as np
import qtawesome as qta
from pint import UnitRegistry
from PySide6 import QtCore, QtGui, QtWidgets

from hydroviz.colorbar_widget import HorizontalColorbarWidget
from hydroviz.colormap import FIRE
from hydroviz.orbitals import LIGHTING_SCALER
from hydroviz.rendering.slice import EQUATORIAL, MERIDIONAL, SliceParams, slice_coordinates
from hydroviz.rendering.volume import DEFAULT_SAMPLES, EXTENT_PER_SHELL, VolumeParams, cast_ray
from hydroviz.views.orbital_view import OrbitalImageView
from hydroviz.views.point_cloud_view import PointCloudView
from hydroviz.views.render_worker import (
    GRAYSCALE,
    SLICE,
    VOLUME,
    RenderController,
    RenderRequest,
    SampleRequest,
)
from hydroviz.widgets import CollapsibleGroup

logger = logging.getLogger(__name__)

ureg = UnitRegistry()
Q_ = ureg.Quantity

MODE_LABELS = {
    "Slice": SLICE,
    "Slice (grayscale)": GRAYSCALE,
    "Volume": VOLUME,
}
COLORMAPS = [FIRE, "inferno", "magma", "plasma", "viridis", "batlow", "lajolla", "bamako", "oslo"]
# volume frames render smaller and are upscaled by the view
MAX_RENDER_EDGE = {SLICE: 720, GRAYSCALE: 720, VOLUME: 360}
MAX_N = 7


class HydroVizMainWindow(QtWidgets.QMainWindow):
    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("HydroViz")
        self.setMinimumSize(1100, 700)
        self._settings = QtCore.QSettings("HydroViz", "HydroViz")

        self.current_n = self._settings.value("quantum/n", 2, type=int)
        self.current_l = self._settings.value("quantum/l", 1, type=int)
        self.current_m = self._settings.value("quantum/m", 0, type=int)
        self._points_seed = 0
        self._last_request: RenderRequest | None = None

        self.controller = RenderController(self)
        self.controller.result_ready.connect(self._on_result)
        self.controller.render_failed.connect(self._on_failed)

        self._render_timer = QtCore.QTimer(self)
        self._render_timer.setSingleShot(True)
        self._render_timer.setInterval(40)
        self._render_timer.timeout.connect(self._request_render)

        self.image_view = OrbitalImageView()
        self.image_view.pixel_hovered.connect(self._probe_pixel)
        self.colorbar = HorizontalColorbarWidget()
        self.point_view = PointCloudView()

        density_tab = QtWidgets.QWidget()
        density_layout = QtWidgets.QVBoxLayout(density_tab)
        density_layout.setContentsMargins(0, 0, 0, 0)
        density_layout.addWidget(self.image_view, 1)
        density_layout.addWidget(self.colorbar, 0)

        self.tabs = QtWidgets.QTabWidget()
        self.tabs.addTab(density_tab, "Density")
        self.tabs.addTab(self.point_view, "Point cloud")
        self.tabs.currentChanged.connect(self._on_tab_changed)

        controls = QtWidgets.QScrollArea()
        controls.setWidgetResizable(True)
        controls.setWidget(self._build_controls())
        controls.setMinimumWidth(320)

        central = QtWidgets.QWidget()
        layout = QtWidgets.QHBoxLayout(central)
        layout.addWidget(self.tabs, 4)
        layout.addWidget(controls, 0)
        self.setCentralWidget(central)

        self._build_toolbar()
        self._restore_settings()
        self._set_quantum_numbers(self.current_n, self.current_l, self.current_m, trigger_render=False)
        self._update_visibility_controls()
        self.statusBar().showMessage("Ready.")
        self._schedule_render()

    # ------------------------------------------------------------------ layout

    def _build_toolbar(self) -> None:
        toolbar = QtWidgets.QToolBar("Export/Copy")
        toolbar.setMovable(False)
        self.addToolBar(QtCore.Qt.ToolBarArea.TopToolBarArea, toolbar)
        export_act = QtGui.QAction("Export PNG…", self)
        export_act.setIcon(qta.icon("fa5s.file-export"))
        export_act.triggered.connect(self._export_current_view)
        copy_act = QtGui.QAction("Copy to clipboard", self)
        copy_act.setIcon(qta.icon("fa5s.copy"))
        copy_act.triggered.connect(self._copy_current_view)
        toolbar.addAction(export_act)
        toolbar.addAction(copy_act)

    def _build_controls(self) -> QtWidgets.QWidget:
        container = QtWidgets.QWidget()
        layout = QtWidgets.QVBoxLayout(container)

        quantum_group = QtWidgets.QGroupBox("Quantum numbers")
        quantum_layout = QtWidgets.QFormLayout(quantum_group)
        self.n_spin = QtWidgets.QSpinBox()
        self.n_spin.setRange(1, MAX_N)
        self.n_spin.valueChanged.connect(self._set_n)
        quantum_layout.addRow("n (principal)", self.n_spin)
        self.l_spin = QtWidgets.QSpinBox()
        self.l_spin.valueChanged.connect(self._set_l)
        quantum_layout.addRow("l (angular)", self.l_spin)
        self.m_spin = QtWidgets.QSpinBox()
        self.m_spin.valueChanged.connect(self._set_m)
        quantum_layout.addRow("m (magnetic)", self.m_spin)
        layout.addWidget(quantum_group)

        view_group = CollapsibleGroup("Visualization")
        view_layout = QtWidgets.QFormLayout(view_group)
        self.mode_combo = QtWidgets.QComboBox()
        self.mode_combo.addItems(list(MODE_LABELS))
        view_layout.addRow("Mode", self.mode_combo)
        self.cmap_combo = QtWidgets.QComboBox()
        self.cmap_combo.addItems(COLORMAPS)
        self.cmap_combo.currentTextChanged.connect(self._on_cmap_changed)
        view_layout.addRow("Colormap", self.cmap_combo)
        layout.addWidget(view_group)

        self.slice_group = CollapsibleGroup("2D Slice")
        slice_layout = QtWidgets.QFormLayout(self.slice_group)
        self.plane_combo = QtWidgets.QComboBox()
        self.plane_combo.addItem("Meridional (contains polar axis)", MERIDIONAL)
        self.plane_combo.addItem("Equatorial", EQUATORIAL)
        self.plane_combo.currentIndexChanged.connect(self._schedule_render)
        slice_layout.addRow("Plane", self.plane_combo)
        self.scale_spin = QtWidgets.QDoubleSpinBox()
        self.scale_spin.setRange(2.0, 400.0)
        self.scale_spin.setSingleStep(5.0)
        self.scale_spin.setValue(50.0)
        self.scale_spin.valueChanged.connect(self._schedule_render)
        slice_layout.addRow("Scale", self.scale_spin)
        layout.addWidget(self.slice_group)

        self.volume_group = CollapsibleGroup("3D Volume")
        volume_layout = QtWidgets.QFormLayout(self.volume_group)
        self.rotation_sliders: list[QtWidgets.QSlider] = []
        defaults = VolumeParams()
        for axis, value in zip("XYZ", (defaults.rotation_x, defaults.rotation_y, defaults.rotation_z)):
            slider = QtWidgets.QSlider(QtCore.Qt.Orientation.Horizontal)
            slider.setRange(-180, 180)
            slider.setValue(round(math.degrees(value)))
            slider.valueChanged.connect(self._schedule_render)
            self.rotation_sliders.append(slider)
            volume_layout.addRow(f"Rotation {axis}", slider)
        self.clip_sliders: list[QtWidgets.QSlider] = []
        for axis in "XYZ":
            slider = QtWidgets.QSlider(QtCore.Qt.Orientation.Horizontal)
            slider.setRange(0, 100)
            slider.setValue(0)
            slider.valueChanged.connect(self._schedule_render)
            self.clip_sliders.append(slider)
            volume_layout.addRow(f"Clip {axis} (%)", slider)
        self.color_scale_spin = QtWidgets.QDoubleSpinBox()
        self.color_scale_spin.setRange(0.05, 20.0)
        self.color_scale_spin.setSingleStep(0.1)
        self.color_scale_spin.setValue(defaults.color_scale)
        self.color_scale_spin.valueChanged.connect(self._schedule_render)
        volume_layout.addRow("Color scale", self.color_scale_spin)
        self.samples_spin = QtWidgets.QSpinBox()
        self.samples_spin.setRange(10, 400)
        self.samples_spin.setValue(DEFAULT_SAMPLES)
        self.samples_spin.valueChanged.connect(self._schedule_render)
        volume_layout.addRow("Depth samples", self.samples_spin)
        reset_btn = QtWidgets.QPushButton("Reset view")
        reset_btn.clicked.connect(self._reset_volume_controls)
        volume_layout.addRow(reset_btn)
        layout.addWidget(self.volume_group)

        points_group = CollapsibleGroup("Point cloud")
        points_layout = QtWidgets.QFormLayout(points_group)
        self.points_spin = QtWidgets.QSpinBox()
        self.points_spin.setRange(100, 100000)
        self.points_spin.setSingleStep(1000)
        self.points_spin.setValue(5000)
        self.points_spin.valueChanged.connect(self._request_points)
        points_layout.addRow("Samples", self.points_spin)
        resample_btn = QtWidgets.QPushButton("Resample")
        resample_btn.clicked.connect(self._resample_points)
        points_layout.addRow(resample_btn)
        self.axes_check = QtWidgets.QCheckBox("Show axes")
        self.axes_check.setChecked(True)
        self.axes_check.toggled.connect(self.point_view.plotter_frame.set_show_bounds)
        points_layout.addRow(self.axes_check)
        layout.addWidget(points_group)

        # connected last: the handler toggles the slice/volume groups built above
        self.mode_combo.currentTextChanged.connect(self._on_mode_changed)
        layout.addStretch()
        return container

    # -------------------------------------------------------------- settings

    def _restore_settings(self) -> None:
        geometry = self._settings.value("window/geometry")
        if geometry is not None:
            self.restoreGeometry(geometry)
        self.mode_combo.setCurrentText(self._settings.value("view/mode", "Volume"))
        self.cmap_combo.setCurrentText(self._settings.value("view/cmap", FIRE))
        self.scale_spin.setValue(self._settings.value("slice/scale", 50.0, type=float))
        for axis, slider in zip("xyz", self.rotation_sliders):
            slider.setValue(self._settings.value(f"volume/rotation_{axis}", slider.value(), type=int))
        self.color_scale_spin.setValue(self._settings.value("volume/color_scale", 1.0, type=float))
        self.samples_spin.setValue(self._settings.value("volume/samples", DEFAULT_SAMPLES, type=int))

    def _save_settings(self) -> None:
        self._settings.setValue("window/geometry", self.saveGeometry())
        self._settings.setValue("quantum/n", self.current_n)
        self._settings.setValue("quantum/l", self.current_l)
        self._settings.setValue("quantum/m", self.current_m)
        self._settings.setValue("view/mode", self.mode_combo.currentText())
        self._settings.setValue("view/cmap", self.cmap_combo.currentText())
        self._settings.setValue("slice/scale", self.scale_spin.value())
        for axis, slider in zip("xyz", self.rotation_sliders):
            self._settings.setValue(f"volume/rotation_{axis}", slider.value())
        self._settings.setValue("volume/color_scale", self.color_scale_spin.value())
        self._settings.setValue("volume/samples", self.samples_spin.value())

    def closeEvent(self, event) -> None:
        self._save_settings()
        self._render_timer.stop()
        self.controller.shutdown()
        self.point_view.cleanup()
        super().closeEvent(event)

    # -------------------------------------------------------- quantum numbers

    def _set_quantum_numbers(self, n: int, l: int, m: int, trigger_render: bool = True) -> None:
        n_val = min(max(int(n), 1), MAX_N)
        l_val = min(max(int(l), 0), n_val - 1)
        m_val = int(np.clip(int(m), -l_val, l_val))
        self.current_n, self.current_l, self.current_m = n_val, l_val, m_val
        for spin in (self.n_spin, self.l_spin, self.m_spin):
            spin.blockSignals(True)
        self.n_spin.setValue(n_val)
        self.l_spin.setRange(0, n_val - 1)
        self.l_spin.setValue(l_val)
        self.m_spin.setRange(-l_val, l_val)
        self.m_spin.setValue(m_val)
        for spin in (self.n_spin, self.l_spin, self.m_spin):
            spin.blockSignals(False)
        if trigger_render:
            self._schedule_render()
            if self.tabs.currentWidget() is self.point_view:
                self._request_points()

    def _set_n(self, n: int) -> None:
        self._set_quantum_numbers(n, self.current_l, self.current_m)

    def _set_l(self, l: int) -> None:
        self._set_quantum_numbers(self.current_n, l, self.current_m)

    def _set_m(self, m: int) -> None:
        self._set_quantum_numbers(self.current_n, self.current_l, m)

    # ---------------------------------------------------------------- render

    @property
    def current_mode(self) -> str:
        return MODE_LABELS.get(self.mode_combo.currentText(), VOLUME)

    def _on_mode_changed(self, _text: str) -> None:
        self._update_visibility_controls()
        self._schedule_render()

    def _on_cmap_changed(self, name: str) -> None:
        self.point_view.set_cmap(name)
        self._schedule_render()

    def _update_visibility_controls(self) -> None:
        mode = self.current_mode
        self.volume_group.setVisible(mode == VOLUME)
        self.slice_group.setVisible(mode != VOLUME)
        self.cmap_combo.setEnabled(mode == SLICE)

    def _reset_volume_controls(self) -> None:
        defaults = VolumeParams()
        for slider, value in zip(self.rotation_sliders, (defaults.rotation_x, defaults.rotation_y, defaults.rotation_z)):
            slider.setValue(round(math.degrees(value)))
        for slider in self.clip_sliders:
            slider.setValue(0)
        self.color_scale_spin.setValue(defaults.color_scale)
        self.samples_spin.setValue(DEFAULT_SAMPLES)

    def resizeEvent(self, event: QtGui.QResizeEvent) -> None:
        super().resizeEvent(event)
        self._schedule_render()

    def _schedule_render(self, *_args) -> None:
        self._render_timer.start()

    def _volume_params(self) -> VolumeParams:
        rx, ry, rz = (math.radians(slider.value()) for slider in self.rotation_sliders)
        cx, cy, cz = (slider.value() / 100.0 for slider in self.clip_sliders)
        return VolumeParams(
            rotation_x=rx,
            rotation_y=ry,
            rotation_z=rz,
            clip_x=cx,
            clip_y=cy,
            clip_z=cz,
            color_scale=self.color_scale_spin.value(),
            samples=self.samples_spin.value(),
        )

    def _slice_params(self) -> SliceParams:
        return SliceParams(
            scale=self.scale_spin.value(),
            plane=self.plane_combo.currentData() or MERIDIONAL,
            cmap=self.cmap_combo.currentText(),
        )

    def _render_size(self, mode: str) -> tuple[int, int]:
        width = max(self.image_view.width(), 64)
        height = max(self.image_view.height(), 64)
        limit = MAX_RENDER_EDGE[mode]
        factor = min(1.0, limit / max(width, height))
        return max(int(width * factor), 16), max(int(height * factor), 16)

    def _request_render(self) -> None:
        mode = self.current_mode
        width, height = self._render_size(mode)
        request = RenderRequest(
            mode=mode,
            n=self.current_n,
            l=self.current_l,
            m=self.current_m,
            width=width,
            height=height,
            slice_params=self._slice_params(),
            volume_params=self._volume_params(),
        )
        self.controller.submit(request)

    def _on_tab_changed(self, index: int) -> None:
        if self.tabs.widget(index) is self.point_view:
            self._request_points()

    def _request_points(self, *_args) -> None:
        request = SampleRequest(
            n=self.current_n,
            l=self.current_l,
            m=self.current_m,
            count=self.points_spin.value(),
            seed=self._points_seed,
        )
        self.controller.submit(request)

    def _resample_points(self) -> None:
        self._points_seed += 1
        self._request_points()

    def _on_result(self, request, result) -> None:
        if isinstance(request, SampleRequest):
            self.point_view.set_points(result, f"n={request.n}  l={request.l}  m={request.m}  ({request.count} points)")
            return
        self._last_request = request
        self.image_view.set_frame(result, request.width, request.height)
        self._update_legend(request)
        self.statusBar().showMessage(self._describe_extent(request))

    def _on_failed(self, message: str) -> None:
        self._last_request = None
        self.image_view.set_placeholder("Render failed")
        self.colorbar.clear()
        self.statusBar().showMessage(f"Render error: {message}")

    def _update_legend(self, request: RenderRequest) -> None:
        if request.mode == GRAYSCALE:
            self.colorbar.set_data("gray", 0.0, 1.0, "log(1 + I) / peak I")
            return
        cmap = request.slice_params.cmap if request.mode == SLICE else FIRE
        scaler = LIGHTING_SCALER * (request.volume_params.color_scale if request.mode == VOLUME else 1.0)
        self.colorbar.set_data(cmap or FIRE, 0.0, 1.0 / scaler, "Raw intensity R²P²")

    def _describe_extent(self, request: RenderRequest) -> str:
        if request.mode == VOLUME:
            half = Q_(EXTENT_PER_SHELL * request.n, "bohr")
        else:
            half = Q_(request.width / 2.0 / (request.slice_params.scale / max(1, request.n)), "bohr")
        return (
            f"n={request.n} l={request.l} m={request.m}  |  half-width {half.magnitude:.2f} a₀"
            f" = {half.to('angstrom').magnitude:.2f} Å"
        )

    def _probe_pixel(self, x: int, y: int) -> None:
        request = self._last_request
        if request is None:
            return
        if request.mode == VOLUME:
            ray = cast_ray(request.n, request.l, request.m, x, y, request.width, request.height, request.volume_params)
            self.statusBar().showMessage(f"pixel ({x}, {y})  opacity {ray.alpha:.3f}  rgb {ray.rgb}")
            return
        p = request.slice_params
        r, theta, _phi = slice_coordinates(request.n, request.width, request.height, p.scale, p.plane, y, y + 1)
        self.statusBar().showMessage(
            f"pixel ({x}, {y})  r = {r[0, x]:.2f} a₀  θ = {math.degrees(theta[0, x]):.1f}°"
        )

    # ---------------------------------------------------------------- export

    def _current_image(self) -> QtGui.QImage | None:
        if self.tabs.currentWidget() is self.point_view:
            return self.point_view.grab().toImage()
        return self.image_view.image

    def _export_current_view(self) -> None:
        image = self._current_image()
        if image is None:
            self.statusBar().showMessage("Nothing rendered yet.")
            return
        path, _ = QtWidgets.QFileDialog.getSaveFileName(self, "Export image", "orbital.png", "PNG Images (*.png)")
        if not path:
            return
        if image.save(path):
            self.statusBar().showMessage(f"Saved {path}")
        else:
            logger.error("Failed to save image to %s", path)
            self.statusBar().showMessage(f"Could not save {path}")

    def _copy_current_view(self) -> None:
        image = self._current_image()
        if image is None:
            return
        QtWidgets.QApplication.clipboard().setImage(image)
        self.statusBar().showMessage("Copied to clipboard.")
