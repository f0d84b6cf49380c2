from __future__ import annotations

import math
import warnings
from numbers import Integral

import numpy as np

A0 = 1.0  # Bohr radius, atomic units
LIGHTING_SCALER = 700.0

_INTEGER_TOLERANCE = 1e-9
_COS_ZERO_TOLERANCE = 1e-15

ArrayLike = np.ndarray | float


class InvalidQuantumState(ValueError):
    """Raised when (n, l, m) does not name a hydrogen orbital."""

    def __init__(self, n, l, m, reason: str) -> None:
        super().__init__(f"Invalid quantum state (n={n!r}, l={l!r}, m={m!r}): {reason}")
        self.n = n
        self.l = l
        self.m = m


class GammaDomainWarning(RuntimeWarning):
    """gamma() was asked for a non-positive argument and fell back to 1.0."""


def validate_quantum_state(n, l, m) -> tuple[int, int, int]:
    """Return (n, l, m) as ints or raise InvalidQuantumState."""
    for value in (n, l, m):
        if isinstance(value, bool) or not isinstance(value, Integral):
            raise InvalidQuantumState(n, l, m, "quantum numbers must be integers")
    n, l, m = int(n), int(l), int(m)
    if n < 1:
        raise InvalidQuantumState(n, l, m, "n must be >= 1")
    if not 0 <= l <= n - 1:
        raise InvalidQuantumState(n, l, m, f"l must lie in [0, {n - 1}]")
    if abs(m) > l:
        raise InvalidQuantumState(n, l, m, f"m must lie in [-{l}, {l}]")
    return n, l, m


def _validate_nl(n, l) -> tuple[int, int]:
    n_val, l_val, _ = validate_quantum_state(n, l, 0)
    return n_val, l_val


def _polar_cosine(theta: ArrayLike) -> np.ndarray:
    # cos(pi/2) rounds to 6e-17; snap nodal planes to exactly zero
    cosine = np.cos(np.asarray(theta, dtype=float))
    return np.where(np.abs(cosine) < _COS_ZERO_TOLERANCE, 0.0, cosine)


def _finish(result: np.ndarray, *inputs) -> ArrayLike:
    """Broadcast against every input and unwrap 0-d results to float."""
    shape = np.broadcast_shapes(*(np.shape(value) for value in inputs))
    result = np.broadcast_to(result, shape)
    if result.ndim == 0:
        return float(result)
    return np.ascontiguousarray(result)


def gamma(x: float) -> float:
    """Gamma function: exact factorial at positive integers, Stirling elsewhere."""
    if x <= 0:
        warnings.warn(
            f"gamma() called with non-positive argument {x!r}; returning 1.0",
            GammaDomainWarning,
            stacklevel=2,
        )
        return 1.0
    nearest = round(x)
    if abs(x - nearest) < _INTEGER_TOLERANCE:
        result = 1.0
        for k in range(2, int(nearest)):
            result *= k
        return result
    return math.sqrt(2.0 * math.pi / x) * (x / math.e) ** x


def associated_laguerre(k: int, alpha: float, x: ArrayLike) -> ArrayLike:
    """Generalized Laguerre polynomial L_k^alpha(x) by upward recurrence."""
    if k < 0:
        raise ValueError(f"Laguerre degree must be >= 0, got {k}.")
    x_arr = np.asarray(x, dtype=float)
    prev2 = np.ones_like(x_arr)
    if k == 0:
        return _finish(prev2, x)
    prev1 = 1.0 + alpha - x_arr
    for j in range(2, k + 1):
        current = ((2 * j - 1 + alpha - x_arr) * prev1 - (j - 1 + alpha) * prev2) / j
        prev2, prev1 = prev1, current
    return _finish(prev1, x)


def associated_legendre(l: int, m: int, x: ArrayLike) -> ArrayLike:
    """Associated Legendre P_l^m(x) for 0 <= m <= l, Condon-Shortley phase included."""
    if m < 0 or m > l:
        raise ValueError(f"associated_legendre needs 0 <= m <= l, got l={l}, m={m}.")
    x_arr = np.asarray(x, dtype=float)
    pmm = np.ones_like(x_arr)
    if m > 0:
        somx2 = np.sqrt(np.clip((1.0 - x_arr) * (1.0 + x_arr), 0.0, None))
        fact = 1.0
        for _ in range(m):
            pmm = -fact * somx2 * pmm
            fact += 2.0
    if l == m:
        return _finish(pmm, x)
    pmmp1 = x_arr * (2 * m + 1) * pmm
    for ll in range(m + 2, l + 1):
        pll = ((2 * ll - 1) * x_arr * pmmp1 - (ll + m - 1) * pmm) / (ll - m)
        pmm, pmmp1 = pmmp1, pll
    return _finish(pmmp1, x)


def radial_wave(n: int, l: int, r: ArrayLike) -> ArrayLike:
    """Normalized hydrogen radial function R_{n,l}(r) in atomic units."""
    n, l = _validate_nl(n, l)
    r_arr = np.asarray(r, dtype=float)
    rho = 2.0 * r_arr / (n * A0)
    norm = math.sqrt((2.0 / (n * A0)) ** 3 * gamma(n - l) / (2.0 * n * gamma(n + l + 1)))
    laguerre = np.asarray(associated_laguerre(n - l - 1, 2 * l + 1, rho))
    return _finish(norm * np.exp(-rho / 2.0) * rho**l * laguerre, r)


def harmonic_normalization(l: int, m: int) -> float:
    """Squared spherical-harmonic normalization (2l+1)(l-|m|)! / (4 pi (l+|m|)!)."""
    m_abs = abs(m)
    return (2 * l + 1) * gamma(l - m_abs + 1) / (4.0 * math.pi * gamma(l + m_abs + 1))


def raw_intensity(n: int, l: int, m: int, r: ArrayLike, theta: ArrayLike, phi: ArrayLike = 0.0) -> ArrayLike:
    """R^2 * P_l^|m|(cos theta)^2 without harmonic normalization.

    This is the field the renderers draw: the normalized density fades out at
    large l while this form keeps relative contrast inside one frame. ``phi``
    has no effect and only takes part in broadcasting.
    """
    n, l, m = validate_quantum_state(n, l, m)
    radial = np.asarray(radial_wave(n, l, r))
    angular = np.asarray(associated_legendre(l, abs(m), _polar_cosine(theta)))
    return _finish(radial * radial * angular * angular, r, theta, phi)


def probability_density(
    n: int, l: int, m: int, r: ArrayLike, theta: ArrayLike, phi: ArrayLike = 0.0
) -> ArrayLike:
    """True |psi|^2, used where probability mass matters (rejection sampling)."""
    n, l, m = validate_quantum_state(n, l, m)
    raw = np.asarray(raw_intensity(n, l, m, r, theta, phi))
    return _finish(raw * harmonic_normalization(l, m), r, theta, phi)


def spherical_harmonic(l: int, m: int, theta: ArrayLike, phi: ArrayLike) -> ArrayLike:
    """Complex Y_l^m(theta, phi) = N P_l^|m|(cos theta) exp(i m phi)."""
    if isinstance(l, bool) or not isinstance(l, Integral) or l < 0:
        raise ValueError(f"l must be a non-negative integer, got {l!r}.")
    if isinstance(m, bool) or not isinstance(m, Integral) or abs(m) > l:
        raise ValueError(f"m must be an integer in [-{l}, {l}], got {m!r}.")
    theta_arr = np.asarray(theta, dtype=float)
    phi_arr = np.asarray(phi, dtype=float)
    amplitude = math.sqrt(harmonic_normalization(l, m)) * np.asarray(
        associated_legendre(l, abs(m), _polar_cosine(theta_arr))
    )
    result = np.broadcast_to(amplitude * np.exp(1j * m * phi_arr), np.broadcast_shapes(theta_arr.shape, phi_arr.shape))
    if result.ndim == 0:
        return complex(result)
    return np.ascontiguousarray(result)


def wave_function(n: int, l: int, m: int, r: ArrayLike, theta: ArrayLike, phi: ArrayLike):
    """Complex psi_{n,l,m} = R_{n,l}(r) Y_l^m(theta, phi)."""
    n, l, m = validate_quantum_state(n, l, m)
    radial = np.asarray(radial_wave(n, l, r))
    harmonic = np.asarray(spherical_harmonic(l, m, theta, phi))
    result = np.broadcast_to(
        radial * harmonic,
        np.broadcast_shapes(np.shape(r), np.shape(theta), np.shape(phi)),
    )
    if result.ndim == 0:
        return complex(result)
    return np.ascontiguousarray(result)
