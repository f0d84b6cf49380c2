from __future__ import annotations

import cmcrameri.cm as cmc
import matplotlib
import numpy as np

FIRE = "fire"

# Black -> dark purple -> deep red -> orange -> yellow -> white, evenly spaced on [0, 1].
COLOR_STOPS = np.array(
    [
        (0.0, 0.0, 0.0),
        (0.3, 0.0, 0.6),
        (0.8, 0.0, 0.0),
        (1.0, 0.5, 0.0),
        (1.0, 1.0, 0.0),
        (1.0, 1.0, 1.0),
    ],
    dtype=float,
)
STOP_POSITIONS = np.linspace(0.0, 1.0, len(COLOR_STOPS))


def colorize(values) -> np.ndarray:
    """Map densities in [0, 1] through the fire stops; returns uint8 RGB with a trailing axis of 3."""
    v = np.clip(np.nan_to_num(np.asarray(values, dtype=float), nan=0.0), 0.0, 1.0)
    scaled = v * (len(COLOR_STOPS) - 1)
    index = np.minimum(scaled.astype(np.intp), len(COLOR_STOPS) - 2)
    local_t = (scaled - index)[..., None]
    lower = COLOR_STOPS[index]
    upper = COLOR_STOPS[index + 1]
    rgb = lower + local_t * (upper - lower)
    return (rgb * 255.0).astype(np.uint8)


def density_to_color(value: float) -> tuple[int, int, int]:
    r, g, b = colorize(value)
    return int(r), int(g), int(b)


def resolve_cmap(name: str):
    try:
        return matplotlib.colormaps[name]
    except KeyError:
        pass
    try:
        return getattr(cmc, name)
    except AttributeError:
        pass
    try:
        return matplotlib.colormaps[f"cmc.{name}"]
    except KeyError:
        pass
    return matplotlib.colormaps["viridis"]


def colorize_with_cmap(values, name: str | None) -> np.ndarray:
    """Like :func:`colorize` but through a named matplotlib/cmcrameri colormap."""
    if name is None or name == FIRE:
        return colorize(values)
    v = np.clip(np.nan_to_num(np.asarray(values, dtype=float), nan=0.0), 0.0, 1.0)
    rgba = resolve_cmap(name)(v)
    return (np.asarray(rgba)[..., :3] * 255.0).astype(np.uint8)
