"""Pixel-buffer helpers shared by the slice and volume renderers.

Buffers are plain ``bytes`` in B, G, R, A order, row-major, top row first,
``width * height * 4`` long. Row blocks are evaluated on a shared thread pool;
numpy releases the GIL inside the array kernels that dominate each block.
"""
from __future__ import annotations

import atexit
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

import numpy as np

BYTES_PER_PIXEL = 4

RowBlockFn = Callable[[int, int], np.ndarray]

_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


def default_workers() -> int:
    return os.cpu_count() or 4


def get_executor() -> ThreadPoolExecutor:
    """Get or create the process-wide render pool."""
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=default_workers(), thread_name_prefix="hydroviz-render")
    return _executor


def _shutdown_executor() -> None:
    global _executor
    with _executor_lock:
        if _executor is not None:
            _executor.shutdown(wait=False)
            _executor = None


atexit.register(_shutdown_executor)


def check_dimensions(width: int, height: int) -> None:
    if int(width) != width or int(height) != height:
        raise ValueError(f"Image size must be integral, got {width}x{height}.")
    if width < 1 or height < 1:
        raise ValueError(f"Image size must be at least 1x1, got {width}x{height}.")


def row_blocks(height: int, workers: int) -> list[tuple[int, int]]:
    """Split ``range(height)`` into at most ``workers`` contiguous (start, stop) blocks."""
    count = max(1, min(int(workers), height))
    edges = np.linspace(0, height, count + 1).round().astype(int)
    return [(int(start), int(stop)) for start, stop in zip(edges[:-1], edges[1:]) if stop > start]


def render_rows(fn: RowBlockFn, height: int, workers: int | None = None) -> np.ndarray:
    """Evaluate ``fn(start, stop)`` over row blocks and stack the results in row order."""
    if workers is None:
        workers = default_workers()
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}.")
    blocks = row_blocks(height, workers)
    if len(blocks) == 1:
        return fn(0, height)
    futures = [get_executor().submit(fn, start, stop) for start, stop in blocks]
    return np.concatenate([future.result() for future in futures], axis=0)


def pack_bgra(rgb: np.ndarray) -> bytes:
    """Turn an ``(height, width, 3)`` uint8 RGB image into opaque BGRA bytes."""
    height, width, _ = rgb.shape
    pixels = np.empty((height, width, BYTES_PER_PIXEL), dtype=np.uint8)
    pixels[..., 0] = rgb[..., 2]
    pixels[..., 1] = rgb[..., 1]
    pixels[..., 2] = rgb[..., 0]
    pixels[..., 3] = 255
    return pixels.tobytes()


def unpack_bgra(buffer: bytes, width: int, height: int) -> np.ndarray:
    """View a BGRA buffer as an ``(height, width, 4)`` uint8 array."""
    expected = width * height * BYTES_PER_PIXEL
    if len(buffer) != expected:
        raise ValueError(f"Buffer holds {len(buffer)} bytes, expected {expected} for {width}x{height}.")
    return np.frombuffer(buffer, dtype=np.uint8).reshape(height, width, BYTES_PER_PIXEL)
