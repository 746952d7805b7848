"""Student's t and normal distribution helpers for the Welch test.

The t CDF follows B.E. Cooper, "Algorithm AS 3: The integral of Student's
t-distribution", Applied Statistics 17 (1968), p. 189. The recurrence is exact
for integer degrees of freedom, so no series truncation or quadrature is
involved.
"""
from __future__ import annotations

import math

import numpy as np

_SQRT2 = math.sqrt(2.0)


def student_t_cdf(t: float, v: int) -> float:
    """Return ``P(T <= t)`` for ``v`` degrees of freedom (``0.0`` when ``v < 1``)."""
    v = int(v)
    if v < 1:
        return 0.0
    b = v / (v + t * t)
    c = 1.0
    s = 1.0
    ioe = v % 2
    k = 2 + ioe
    while k <= v - 2:
        c *= b - b / k
        s += c
        k += 2
    c = t / math.sqrt(v)
    if ioe != 1:
        return 0.5 + 0.5 * math.sqrt(b) * c * s
    term = 0.0 if v == 1 else b * c * s
    return 0.5 + (term + math.atan(c)) / math.pi


def student_t_cdf_array(t: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Vectorized :func:`student_t_cdf` over broadcastable ``t`` and ``v``."""
    t, v = np.broadcast_arrays(np.asarray(t, dtype=np.float64), np.asarray(v, dtype=np.int64))
    out = np.zeros(t.shape, dtype=np.float64)
    defined = v >= 1
    if not defined.any():
        return out

    tv = t[defined]
    vv = v[defined]
    vf = vv.astype(np.float64)
    b = vf / (vf + tv * tv)
    c = np.ones_like(b)
    s = np.ones_like(b)
    ioe = vv % 2
    k = 2 + ioe

    # Only elements whose recurrence is still running are touched per step.
    active = np.flatnonzero(k <= vv - 2)
    while active.size:
        b_active = b[active]
        c[active] *= b_active - b_active / k[active]
        s[active] += c[active]
        k[active] += 2
        active = active[k[active] <= vv[active] - 2]

    c = tv / np.sqrt(vf)
    even = ioe != 1
    result = np.empty_like(b)
    result[even] = 0.5 + 0.5 * np.sqrt(b[even]) * c[even] * s[even]
    odd = ~even
    term = np.where(vv[odd] == 1, 0.0, b[odd] * c[odd] * s[odd])
    result[odd] = 0.5 + (term + np.arctan(c[odd])) / math.pi
    out[defined] = result
    return out


def normal_cdf_approx(t: float) -> float:
    """Approximate two-tailed normal tail mass ``erfc(|t| / sqrt(2))``.

    Abramowitz & Stegun 7.1.26-style rational approximation of ``erf``; the
    absolute error is on the order of ``1e-5``.
    """
    tt = abs(t) / _SQRT2
    x = 1.0 / (1.0 + 0.47047 * tt)
    erf = 1.0 - x * (0.3480242 + x * (-0.0958798 + 0.7478556 * x)) * math.exp(-tt * tt)
    return 1.0 - erf


def normal_cdf_approx_array(t: np.ndarray) -> np.ndarray:
    tt = np.abs(np.asarray(t, dtype=np.float64)) / _SQRT2
    x = 1.0 / (1.0 + 0.47047 * tt)
    erf = 1.0 - x * (0.3480242 + x * (-0.0958798 + 0.7478556 * x)) * np.exp(-tt * tt)
    return 1.0 - erf
