"""Front-to-back volume ray marching through a rotated, clippable cube.

Each pixel casts one ray along the view axis through a cube of half-extent
``5 * n``. Samples are taken at evenly spaced depths, rotated (X, then Y, then
Z), tested against the clip slabs, turned into spherical coordinates with the
polar axis along +y and composited with the "over" operator. A ray stops once
its opacity passes ``OPACITY_CUTOFF``.

All rays of a row block march together as flat numpy arrays; rays that have
saturated are masked out of later steps, which gives the same result as
breaking out of a per-ray loop.
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np

from hydroviz.colormap import colorize
from hydroviz.orbitals import LIGHTING_SCALER, raw_intensity, validate_quantum_state
from hydroviz.rendering.buffers import check_dimensions, pack_bgra, render_rows

logger = logging.getLogger(__name__)

DEFAULT_SAMPLES = 50
EXTENT_PER_SHELL = 5.0
CLIP_THRESHOLD = 0.01
MIN_RADIUS = 0.01
MIN_INTENSITY = 0.01
OPACITY_CUTOFF = 0.95
ALPHA_GAIN = 8.0


@dataclass(frozen=True)
class VolumeParams:
    rotation_x: float = 0.3
    rotation_y: float = 0.5
    rotation_z: float = 0.0
    clip_x: float = 0.0
    clip_y: float = 0.0
    clip_z: float = 0.0
    color_scale: float = 1.0
    samples: int = DEFAULT_SAMPLES
    length_scale: float = 1.0
    early_exit: bool = True

    def __post_init__(self) -> None:
        if int(self.samples) != self.samples or self.samples < 1:
            raise ValueError(f"samples must be a positive integer, got {self.samples!r}.")
        if not self.length_scale > 0:
            raise ValueError(f"length_scale must be positive, got {self.length_scale!r}.")
        if self.color_scale < 0:
            raise ValueError(f"color_scale must be >= 0, got {self.color_scale!r}.")


class RaySample(NamedTuple):
    rgb: tuple[int, int, int]
    alpha: float
    alpha_history: tuple[float, ...]


def rotate(x, y, z, rotation_x: float, rotation_y: float, rotation_z: float):
    """Euler rotation about X, then Y, then Z."""
    sin_x, cos_x = math.sin(rotation_x), math.cos(rotation_x)
    y1 = y * cos_x - z * sin_x
    z1 = y * sin_x + z * cos_x

    sin_y, cos_y = math.sin(rotation_y), math.cos(rotation_y)
    x2 = x * cos_y + z1 * sin_y
    z2 = -x * sin_y + z1 * cos_y

    sin_z, cos_z = math.sin(rotation_z), math.cos(rotation_z)
    x3 = x2 * cos_z - y1 * sin_z
    y3 = x2 * sin_z + y1 * cos_z
    return x3, y3, z2


def _clip_limits(extent: float, params: VolumeParams) -> list[tuple[int, float]]:
    limits = []
    for axis, fraction in enumerate((params.clip_x, params.clip_y, params.clip_z)):
        if fraction > CLIP_THRESHOLD:
            limits.append((axis, extent * (1.0 - fraction)))
    return limits


def _march(
    n: int,
    l: int,
    m: int,
    world_x: np.ndarray,
    world_y: np.ndarray,
    params: VolumeParams,
    history: list[np.ndarray] | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """March rays starting at screen-space world positions; returns (rgb floats, alpha)."""
    count = world_x.size
    extent = EXTENT_PER_SHELL * n
    samples = int(params.samples)
    scaler = LIGHTING_SCALER * params.color_scale
    limits = _clip_limits(extent, params)

    acc_color = np.zeros((count, 3))
    acc_alpha = np.zeros(count)
    active = np.ones(count, dtype=bool)
    every_ray = np.arange(count)

    for step in range(samples):
        if params.early_exit:
            rays = np.flatnonzero(active)
            if rays.size == 0:
                if history is not None:
                    history.append(acc_alpha.copy())
                continue
        else:
            rays = every_ray
        t = (step + 0.5) / samples
        depth = (t - 0.5) * 2.0 * extent
        coords = rotate(world_x[rays], world_y[rays], depth, params.rotation_x, params.rotation_y, params.rotation_z)
        x, y, z = (np.broadcast_to(c, rays.shape) for c in coords)

        keep = np.ones(rays.size, dtype=bool)
        for axis, limit in limits:
            # a fully clipped axis leaves a zero-width slab
            keep &= (np.abs((x, y, z)[axis]) <= limit) & (limit > 0.0)
        magnitude = np.sqrt(x * x + y * y + z * z)
        r = magnitude * params.length_scale
        keep &= r >= MIN_RADIUS

        if keep.any():
            rays, x, y, z, r, magnitude = rays[keep], x[keep], y[keep], z[keep], r[keep], magnitude[keep]
            theta = np.arccos(np.clip(y / magnitude, -1.0, 1.0))
            phi = np.arctan2(z, x)
            intensity = np.clip(np.asarray(raw_intensity(n, l, m, r, theta, phi)) * scaler, 0.0, 1.0)

            visible = intensity > MIN_INTENSITY
            rays, intensity = rays[visible], intensity[visible]
            if rays.size:
                color = colorize(intensity) / 255.0
                alpha = np.minimum(intensity * ALPHA_GAIN / samples, 1.0)
                weight = (1.0 - acc_alpha[rays]) * alpha
                acc_color[rays] += weight[:, None] * color
                acc_alpha[rays] += weight
                if params.early_exit:
                    active[rays[acc_alpha[rays] > OPACITY_CUTOFF]] = False

        if history is not None:
            history.append(acc_alpha.copy())

    return acc_color, acc_alpha


def _to_bytes(acc_color: np.ndarray, acc_alpha: np.ndarray) -> np.ndarray:
    background = np.zeros(3)
    final = acc_color + (1.0 - acc_alpha)[:, None] * background
    return np.minimum(255.0, final * 255.0).astype(np.uint8)


def _screen_axis(pixels: np.ndarray, size: int) -> np.ndarray:
    half = size / 2.0
    return (pixels - half) / half


def _check_volume_args(n: int, l: int, m: int, width: int, height: int, params: VolumeParams):
    n, l, m = validate_quantum_state(n, l, m)
    check_dimensions(width, height)
    if not isinstance(params, VolumeParams):
        raise TypeError(f"params must be VolumeParams, got {type(params).__name__}.")
    return n, l, m


def render_volume(
    n: int,
    l: int,
    m: int,
    width: int,
    height: int,
    params: VolumeParams | None = None,
    *,
    workers: int | None = None,
) -> bytes:
    """Ray-march the orbital density into a BGRA image on a black background."""
    if params is None:
        params = VolumeParams()
    n, l, m = _check_volume_args(n, l, m, width, height, params)
    width, height = int(width), int(height)
    extent = EXTENT_PER_SHELL * n
    sx = _screen_axis(np.arange(width), width) * extent

    def _block(start: int, stop: int) -> np.ndarray:
        sy = _screen_axis(np.arange(start, stop), height) * extent
        world_x, world_y = np.meshgrid(sx, sy)
        acc_color, acc_alpha = _march(n, l, m, world_x.ravel(), world_y.ravel(), params)
        return _to_bytes(acc_color, acc_alpha).reshape(stop - start, width, 3)

    started = time.perf_counter()
    rgb = render_rows(_block, height, workers)
    logger.debug(
        "Volume (%d, %d, %d) %dx%d x%d samples rendered in %.1f ms",
        n, l, m, width, height, params.samples, (time.perf_counter() - started) * 1000.0,
    )
    return pack_bgra(rgb)


def cast_ray(
    n: int, l: int, m: int, x: int, y: int, width: int, height: int, params: VolumeParams | None = None
) -> RaySample:
    """March the single ray behind pixel (x, y) and report its opacity after every depth step."""
    if params is None:
        params = VolumeParams()
    n, l, m = _check_volume_args(n, l, m, width, height, params)
    if not (0 <= x < width and 0 <= y < height):
        raise ValueError(f"Pixel ({x}, {y}) lies outside a {width}x{height} image.")
    extent = EXTENT_PER_SHELL * n
    world_x = _screen_axis(np.array([x], dtype=float), width) * extent
    world_y = _screen_axis(np.array([y], dtype=float), height) * extent
    history: list[np.ndarray] = []
    acc_color, acc_alpha = _march(n, l, m, world_x, world_y, params, history)
    r, g, b = _to_bytes(acc_color, acc_alpha)[0]
    return RaySample(
        rgb=(int(r), int(g), int(b)),
        alpha=float(acc_alpha[0]),
        alpha_history=tuple(float(step[0]) for step in history),
    )
