"""Rejection sampling of electron positions for point-cloud views.

Candidates come from an exponential radial prior ``r = -n^2 ln(U)`` and an
isotropic angular prior. A candidate is accepted with probability
``w / w_max`` where ``w = |psi|^2 r^2 / prior(r)`` is the ratio of the target
radial measure to the proposal, so accepted points follow |psi|^2 in space.
``w_max`` is estimated from a first pass of ``count`` candidates.
"""
from __future__ import annotations

import logging
from typing import Iterator, NamedTuple

import numpy as np

from hydroviz.orbitals import probability_density, validate_quantum_state

logger = logging.getLogger(__name__)

_BATCH_SIZE = 1024


class SamplePoint(NamedTuple):
    x: float
    y: float
    z: float
    density: float


def _draw_candidates(n: int, size: int, rng: np.random.Generator) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    # 1 - U keeps the logarithm finite since Generator.random() may return 0.0
    r = -n * n * np.log(1.0 - rng.random(size))
    theta = np.arccos(2.0 * rng.random(size) - 1.0)
    phi = 2.0 * np.pi * rng.random(size)
    return r, theta, phi


def _weights(n: int, r: np.ndarray, density: np.ndarray) -> np.ndarray:
    scale = float(n * n)
    return density * r * r * scale * np.exp(r / scale)


def _accept_reject(
    n: int, l: int, m: int, count: int, max_weight: float, rng: np.random.Generator
) -> Iterator[SamplePoint]:
    accepted = 0
    drawn = 0
    while accepted < count:
        r, theta, phi = _draw_candidates(n, _BATCH_SIZE, rng)
        density = probability_density(n, l, m, r, theta, phi)
        keep = rng.random(_BATCH_SIZE) < _weights(n, r, density) / max_weight
        drawn += _BATCH_SIZE
        sin_theta = np.sin(theta[keep])
        r_kept = r[keep]
        xs = r_kept * sin_theta * np.cos(phi[keep])
        ys = r_kept * sin_theta * np.sin(phi[keep])
        zs = r_kept * np.cos(theta[keep])
        for x, y, z, p in zip(xs, ys, zs, density[keep]):
            yield SamplePoint(float(x), float(y), float(z), float(p))
            accepted += 1
            if accepted >= count:
                break
    logger.debug("Accepted %d of %d candidates for (%d, %d, %d)", accepted, drawn, n, l, m)


def sample(
    n: int, l: int, m: int, count: int, rng: np.random.Generator | None = None
) -> Iterator[SamplePoint]:
    """Draw exactly ``count`` points distributed like |psi_{n,l,m}|^2.

    Validation and the max-weight pass run eagerly; the accept/reject pass
    runs lazily as the returned iterator is consumed. Pass a seeded
    ``numpy.random.Generator`` for reproducible output.
    """
    n, l, m = validate_quantum_state(n, l, m)
    if count < 0:
        raise ValueError(f"Sample count must be >= 0, got {count}.")
    if count == 0:
        return iter(())
    if rng is None:
        rng = np.random.default_rng()

    r, theta, phi = _draw_candidates(n, count, rng)
    max_weight = float(np.max(_weights(n, r, probability_density(n, l, m, r, theta, phi))))
    if max_weight <= 0.0:
        raise ValueError(
            f"Density estimate for ({n}, {l}, {m}) is zero over {count} candidates; "
            "increase the sample count."
        )
    return _accept_reject(n, l, m, count, max_weight, rng)


def sample_array(
    n: int, l: int, m: int, count: int, rng: np.random.Generator | None = None
) -> np.ndarray:
    """Same points as :func:`sample`, stacked into a ``(count, 4)`` array of x, y, z, density."""
    points = list(sample(n, l, m, count, rng))
    return np.array(points, dtype=float).reshape(len(points), 4)
