from __future__ import annotations

from PySide6 import QtCore, QtGui, QtWidgets

from hydroviz.rendering.buffers import BYTES_PER_PIXEL


def buffer_to_qimage(buffer: bytes, width: int, height: int) -> QtGui.QImage:
    """Copy a BGRA render buffer into a QImage.

    ``Format_ARGB32`` stores 0xAARRGGBB words, which sit in memory as B, G, R, A
    on little-endian hosts, so the bytes are used as-is.
    """
    expected = width * height * BYTES_PER_PIXEL
    if len(buffer) != expected:
        raise ValueError(f"Buffer holds {len(buffer)} bytes, expected {expected} for {width}x{height}.")
    image = QtGui.QImage(buffer, width, height, width * BYTES_PER_PIXEL, QtGui.QImage.Format.Format_ARGB32)
    return image.copy()


class OrbitalImageView(QtWidgets.QWidget):
    """Presents the latest rendered frame, letterboxed on a black background."""

    pixel_hovered = QtCore.Signal(int, int)

    def __init__(self, parent: QtWidgets.QWidget | None = None) -> None:
        super().__init__(parent)
        self._image: QtGui.QImage | None = None
        self._placeholder = "Rendering…"
        self.setMinimumSize(240, 240)
        self.setMouseTracking(True)
        self.setSizePolicy(QtWidgets.QSizePolicy.Policy.Expanding, QtWidgets.QSizePolicy.Policy.Expanding)

    @property
    def image(self) -> QtGui.QImage | None:
        return self._image

    def set_frame(self, buffer: bytes, width: int, height: int) -> None:
        self._image = buffer_to_qimage(buffer, width, height)
        self.update()

    def set_placeholder(self, text: str) -> None:
        self._image = None
        self._placeholder = text
        self.update()

    def _target_rect(self) -> QtCore.QRect:
        if self._image is None:
            return self.rect()
        size = self._image.size().scaled(self.size(), QtCore.Qt.AspectRatioMode.KeepAspectRatio)
        left = (self.width() - size.width()) // 2
        top = (self.height() - size.height()) // 2
        return QtCore.QRect(left, top, size.width(), size.height())

    def paintEvent(self, event: QtGui.QPaintEvent) -> None:
        painter = QtGui.QPainter(self)
        try:
            painter.fillRect(self.rect(), QtGui.QColor("#000000"))
            if self._image is None:
                painter.setPen(QtGui.QPen(QtGui.QColor("#94a3b8")))
                painter.drawText(self.rect(), QtCore.Qt.AlignmentFlag.AlignCenter, self._placeholder)
                return
            painter.setRenderHint(QtGui.QPainter.RenderHint.SmoothPixmapTransform, True)
            painter.drawImage(self._target_rect(), self._image)
        finally:
            painter.end()

    def mouseMoveEvent(self, event: QtGui.QMouseEvent) -> None:
        if self._image is not None:
            rect = self._target_rect()
            pos = event.position().toPoint()
            if rect.contains(pos) and rect.width() > 0 and rect.height() > 0:
                x = (pos.x() - rect.left()) * self._image.width() // rect.width()
                y = (pos.y() - rect.top()) * self._image.height() // rect.height()
                self.pixel_hovered.emit(
                    min(x, self._image.width() - 1),
                    min(y, self._image.height() - 1),
                )
        super().mouseMoveEvent(event)
