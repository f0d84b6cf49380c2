from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import numpy as np

from hydroviz.colormap import colorize_with_cmap
from hydroviz.orbitals import LIGHTING_SCALER, raw_intensity, validate_quantum_state
from hydroviz.rendering.buffers import check_dimensions, pack_bgra, render_rows

logger = logging.getLogger(__name__)

MERIDIONAL = "meridional"
EQUATORIAL = "equatorial"
PLANES = (MERIDIONAL, EQUATORIAL)
# scaled peaks below this are rounding noise and render black
NOISE_FLOOR = 1e-12


@dataclass(frozen=True)
class SliceParams:
    scale: float = 50.0
    plane: str = MERIDIONAL
    cmap: str | None = None


def _check_slice_args(width: int, height: int, scale: float, plane: str) -> None:
    check_dimensions(width, height)
    if not scale > 0:
        raise ValueError(f"Slice scale must be positive, got {scale}.")
    if plane not in PLANES:
        raise ValueError(f"Unknown slice plane '{plane}', expected one of {PLANES}.")


def slice_coordinates(
    n: int, width: int, height: int, scale: float, plane: str, start: int = 0, stop: int | None = None
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Spherical (r, theta, phi) for pixel rows ``start:stop`` of a slice.

    Pixels are centred on the image middle and divided by ``scale / max(1, n)``
    so the frame zooms out as the orbital grows. The meridional plane is the
    volume renderer's screen plane at zero rotation: the polar axis runs down
    the image. The equatorial plane holds theta at pi/2.
    """
    if stop is None:
        stop = height
    divisor = scale / max(1, n)
    xs = (np.arange(width) - width / 2.0) / divisor
    ys = (np.arange(start, stop) - height / 2.0) / divisor
    px, py = np.meshgrid(xs, ys)
    r = np.hypot(px, py)
    if plane == EQUATORIAL:
        theta = np.full_like(r, np.pi / 2.0)
        phi = np.arctan2(py, px)
    else:
        safe_r = np.where(r > 0.0, r, 1.0)
        theta = np.arccos(np.clip(py / safe_r, -1.0, 1.0))
        phi = np.arctan2(0.0, px)
    return r, theta, phi


def render_slice(
    n: int,
    l: int,
    m: int,
    width: int,
    height: int,
    scale: float = 50.0,
    *,
    plane: str = MERIDIONAL,
    cmap: str | None = None,
    workers: int | None = None,
) -> bytes:
    """Render a density cross-section as a BGRA heatmap.

    Intensity is the raw orbital intensity times ``LIGHTING_SCALER``, clamped
    to [0, 1] and colored with the fire stops, or with ``cmap`` when a
    matplotlib/cmcrameri colormap name is given.
    """
    n, l, m = validate_quantum_state(n, l, m)
    _check_slice_args(width, height, scale, plane)
    width, height = int(width), int(height)

    def _block(start: int, stop: int) -> np.ndarray:
        r, theta, phi = slice_coordinates(n, width, height, scale, plane, start, stop)
        intensity = np.clip(raw_intensity(n, l, m, r, theta, phi) * LIGHTING_SCALER, 0.0, 1.0)
        return colorize_with_cmap(intensity, cmap)

    started = time.perf_counter()
    rgb = render_rows(_block, height, workers)
    logger.debug(
        "Slice (%d, %d, %d) %dx%d %s rendered in %.1f ms",
        n, l, m, width, height, plane, (time.perf_counter() - started) * 1000.0,
    )
    return pack_bgra(rgb)


def render_slice_grayscale(
    n: int,
    l: int,
    m: int,
    width: int,
    height: int,
    scale: float = 50.0,
    *,
    plane: str = MERIDIONAL,
    workers: int | None = None,
) -> bytes:
    """Log-compressed grayscale slice: log(1 + I) over the frame's peak intensity."""
    n, l, m = validate_quantum_state(n, l, m)
    _check_slice_args(width, height, scale, plane)
    width, height = int(width), int(height)

    def _block(start: int, stop: int) -> np.ndarray:
        r, theta, phi = slice_coordinates(n, width, height, scale, plane, start, stop)
        return np.asarray(raw_intensity(n, l, m, r, theta, phi))

    density = render_rows(_block, height, workers)
    peak = float(density.max())
    if peak * LIGHTING_SCALER > NOISE_FLOOR:
        gray = np.minimum(np.log1p(density) / peak, 1.0)
    else:
        gray = np.zeros_like(density)
    levels = (gray * 255.0).astype(np.uint8)
    return pack_bgra(np.repeat(levels[..., None], 3, axis=2))
