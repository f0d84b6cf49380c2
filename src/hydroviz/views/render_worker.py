from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field, replace

import numpy as np
from PySide6 import QtCore

from hydroviz.rendering.slice import SliceParams, render_slice, render_slice_grayscale
from hydroviz.rendering.volume import VolumeParams, render_volume
from hydroviz.sampling import sample_array

logger = logging.getLogger(__name__)

SLICE = "slice"
GRAYSCALE = "grayscale"
VOLUME = "volume"
RENDER_MODES = (SLICE, GRAYSCALE, VOLUME)


@dataclass(frozen=True)
class RenderRequest:
    mode: str
    n: int
    l: int
    m: int
    width: int
    height: int
    slice_params: SliceParams = field(default_factory=SliceParams)
    volume_params: VolumeParams = field(default_factory=VolumeParams)

    channel = "image"

    def key(self) -> tuple:
        if self.mode == VOLUME:
            params = self.volume_params
        elif self.mode == GRAYSCALE:
            # grayscale frames ignore the colormap
            params = replace(self.slice_params, cmap=None)
        else:
            params = self.slice_params
        return (self.mode, self.n, self.l, self.m, self.width, self.height, params)

    def run(self) -> bytes:
        if self.mode == VOLUME:
            return render_volume(self.n, self.l, self.m, self.width, self.height, self.volume_params)
        p = self.slice_params
        if self.mode == GRAYSCALE:
            return render_slice_grayscale(self.n, self.l, self.m, self.width, self.height, p.scale, plane=p.plane)
        if self.mode == SLICE:
            return render_slice(
                self.n, self.l, self.m, self.width, self.height, p.scale, plane=p.plane, cmap=p.cmap
            )
        raise ValueError(f"Unknown render mode '{self.mode}'.")


@dataclass(frozen=True)
class SampleRequest:
    n: int
    l: int
    m: int
    count: int
    seed: int | None = None

    channel = "points"

    def key(self) -> tuple:
        return ("points", self.n, self.l, self.m, self.count, self.seed)

    def run(self) -> np.ndarray:
        return sample_array(self.n, self.l, self.m, self.count, np.random.default_rng(self.seed))


class FrameCache:
    """Small LRU of finished results keyed by request."""

    def __init__(self, max_entries: int = 24) -> None:
        self._entries: OrderedDict[tuple, object] = OrderedDict()
        self._max_entries = max_entries

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: tuple) -> bool:
        return key in self._entries

    def get(self, key: tuple):
        if key not in self._entries:
            return None
        value = self._entries.pop(key)
        self._entries[key] = value
        return value

    def put(self, key: tuple, value) -> None:
        self._entries.pop(key, None)
        self._entries[key] = value
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()


class RenderWorker(QtCore.QObject):
    finished = QtCore.Signal(int, object, object)
    failed = QtCore.Signal(int, str)

    def __init__(self) -> None:
        super().__init__()
        self._latest_id: dict[str, int] = {}
        self._lock = threading.Lock()

    def supersede(self, channel: str, request_id: int) -> None:
        """Mark queued requests on ``channel`` older than ``request_id`` as stale."""
        with self._lock:
            self._latest_id[channel] = max(self._latest_id.get(channel, 0), request_id)

    def _is_stale(self, channel: str, request_id: int) -> bool:
        with self._lock:
            return request_id < self._latest_id.get(channel, 0)

    @QtCore.Slot(int, object)
    def run(self, request_id: int, request) -> None:
        if self._is_stale(request.channel, request_id):
            logger.debug("Skipping stale request %d", request_id)
            return
        try:
            result = request.run()
        except Exception as exc:
            logger.exception("Render request %d failed", request_id)
            self.failed.emit(request_id, str(exc))
            return
        self.finished.emit(request_id, request, result)


class RenderController(QtCore.QObject):
    """Runs render and sampling requests on a worker thread, newest request wins.

    Results are cached by request key so repeating a request (same quantum
    numbers and parameters) is answered without recomputing.
    """

    result_ready = QtCore.Signal(object, object)
    render_failed = QtCore.Signal(str)
    _dispatch = QtCore.Signal(int, object)

    def __init__(self, parent: QtCore.QObject | None = None, cache_size: int = 24) -> None:
        super().__init__(parent)
        self.cache = FrameCache(cache_size)
        self._next_id = 0
        self._latest_id: dict[str, int] = {}

        self._thread = QtCore.QThread(self)
        self._worker = RenderWorker()
        self._worker.moveToThread(self._thread)
        self._dispatch.connect(self._worker.run)
        self._worker.finished.connect(self._on_finished)
        self._worker.failed.connect(self._on_failed)
        self._thread.finished.connect(self._worker.deleteLater)
        self._thread.start()

    def submit(self, request) -> int:
        self._next_id += 1
        request_id = self._next_id
        self._latest_id[request.channel] = request_id
        self._worker.supersede(request.channel, request_id)
        cached = self.cache.get(request.key())
        if cached is not None:
            self.result_ready.emit(request, cached)
            return request_id
        self._dispatch.emit(request_id, request)
        return request_id

    def _on_finished(self, request_id: int, request, result) -> None:
        self.cache.put(request.key(), result)
        if self._latest_id.get(request.channel) != request_id:
            logger.debug("Dropping superseded result %d", request_id)
            return
        self.result_ready.emit(request, result)

    def _on_failed(self, request_id: int, message: str) -> None:
        if request_id in self._latest_id.values():
            self.render_failed.emit(message)

    def shutdown(self) -> None:
        self._thread.quit()
        self._thread.wait()
