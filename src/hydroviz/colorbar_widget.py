from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from PySide6 import QtCore, QtGui, QtWidgets

from hydroviz.colormap import colorize_with_cmap

TICK_FRACTIONS = (0.0, 0.25, 0.5, 0.75, 1.0)


@dataclass
class ColorbarData:
    cmap_name: str
    vmin: float
    vmax: float
    label: str

    def value_at(self, fraction: float) -> float:
        return self.vmin + fraction * (self.vmax - self.vmin)


class HorizontalColorbarWidget(QtWidgets.QWidget):
    """Legend strip under the density view.

    The gradient is sampled through the same colormap path as the renderers,
    so the fire table and named colormaps look identical in both places.
    """

    def __init__(self, parent: QtWidgets.QWidget | None = None) -> None:
        super().__init__(parent)
        self._data: ColorbarData | None = None
        self._text_color = QtGui.QColor("#e5e7eb")
        self._border_color = QtGui.QColor("#94a3b8")
        self._surface_color = QtGui.QColor("#111827")
        self._gradient: QtGui.QImage | None = None
        self.setMinimumHeight(58)

    @property
    def data(self) -> ColorbarData | None:
        return self._data

    def set_data(self, cmap_name: str, vmin: float, vmax: float, label: str) -> None:
        data = ColorbarData(cmap_name=cmap_name, vmin=vmin, vmax=vmax, label=label)
        if data == self._data:
            return
        if self._data is None or data.cmap_name != self._data.cmap_name:
            self._gradient = None
        self._data = data
        self.update()

    def clear(self) -> None:
        self._data = None
        self._gradient = None
        self.update()

    def _gradient_image(self, width: int) -> QtGui.QImage:
        if self._gradient is None or self._gradient.width() != width:
            rgb = np.ascontiguousarray(colorize_with_cmap(np.linspace(0.0, 1.0, max(width, 1)), self._data.cmap_name))
            row = QtGui.QImage(rgb.data, rgb.shape[0], 1, rgb.shape[0] * 3, QtGui.QImage.Format.Format_RGB888)
            self._gradient = row.copy()
        return self._gradient

    def paintEvent(self, event: QtGui.QPaintEvent) -> None:
        painter = QtGui.QPainter(self)
        try:
            rect = self.rect()
            painter.fillRect(rect, self._surface_color)
            data = self._data
            if data is None:
                return
            metrics = painter.fontMetrics()
            margin = 8
            bar = QtCore.QRect(
                rect.left() + margin,
                rect.top() + margin + metrics.height(),
                max(rect.width() - 2 * margin, 1),
                12,
            )
            # a one-pixel-high gradient stretched over the bar
            painter.drawImage(bar, self._gradient_image(bar.width()))
            painter.setPen(self._border_color)
            painter.drawRect(bar.adjusted(0, 0, -1, -1))

            painter.setPen(self._text_color)
            painter.drawText(bar.left(), rect.top() + margin + metrics.ascent(), data.label)
            baseline = bar.bottom() + 4 + metrics.height()
            for fraction in TICK_FRACTIONS:
                x = bar.left() + round(fraction * (bar.width() - 1))
                painter.drawLine(x, bar.bottom() + 1, x, bar.bottom() + 3)
                text = f"{data.value_at(fraction):.3g}"
                advance = metrics.horizontalAdvance(text)
                left = min(max(x - advance // 2, bar.left()), bar.right() - advance)
                painter.drawText(left, baseline, text)
        finally:
            painter.end()
