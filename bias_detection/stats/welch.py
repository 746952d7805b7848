"""Per-element Welch's t-test over moment accumulators.

Each element (one color channel of one pixel) carries the sum and the sum of
squares of ``n`` independent draws for two estimators. The variance, pooled
standard error and Welch–Satterthwaite degrees of freedom are evaluated in
float32 like the accumulators; the t CDF itself runs in float64.

When the degrees of freedom cannot be represented as a 32-bit integer, or are
NaN because both the estimate and its denominator underflow or overflow in
float32, the p-value falls back to the normal tail approximation. Such an
element is reported with that approximate p-value rather than as p = 0 from a
zero-dof cast; this departs on purpose from the reference command-line tool.

See A. Jung, J. Hanika and C. Dachsbacher, "Detecting Bias in Monte Carlo
Renderers using Welch's t-test", JCGT 9(2), 2020.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

import numpy as np

from bias_detection.errors import (
    InputShapeMismatchError,
    InvalidSampleSizeError,
    NegativeVarianceError,
)
from bias_detection.stats.student_t import (
    normal_cdf_approx,
    normal_cdf_approx_array,
    student_t_cdf,
    student_t_cdf_array,
)

MAX_DEGREES_OF_FREEDOM = 2**31 - 1

ArrayLike = Sequence[float] | np.ndarray


def check_sample_sizes(n1: int, n2: int) -> None:
    if n1 <= 1:
        raise InvalidSampleSizeError(f"Sample 1 needs at least 2 draws (n1={n1})")
    if n2 <= 1:
        raise InvalidSampleSizeError(f"Sample 2 needs at least 2 draws (n2={n2})")


def _round_half_away(nu: np.ndarray | np.floating) -> np.ndarray:
    # Degrees of freedom are never negative, so floor(x + 0.5) rounds half away from zero.
    return np.floor(np.asarray(nu, dtype=np.float64) + 0.5)


def welch_p_value(
    sum1: float,
    sumsq1: float,
    n1: int,
    sum2: float,
    sumsq2: float,
    n2: int,
) -> float | None:
    """Two-tailed Welch p-value for a single element, or ``None`` when undefined.

    The result is undefined when the pooled standard error is zero or not
    finite, typically because both samples are constant.
    """
    check_sample_sizes(n1, n2)
    f32 = np.float32
    inv_n1 = f32(1.0) / f32(n1)
    inv_n2 = f32(1.0) / f32(n2)
    dof1 = f32(n1) - f32(1.0)
    dof2 = f32(n2) - f32(1.0)
    sum1, sumsq1, sum2, sumsq2 = f32(sum1), f32(sumsq1), f32(sum2), f32(sumsq2)

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        var1 = (f32(1.0) / dof1) * (sumsq1 - inv_n1 * sum1**2)
        var2 = (f32(1.0) / dof2) * (sumsq2 - inv_n2 * sum2**2)
        if var1 < 0 or var2 < 0:
            raise NegativeVarianceError(
                f"Negative sample variance (var1={var1}, var2={var2}); "
                "sum and sum of squares are inconsistent"
            )

        pooled = var1 * inv_n1 + var2 * inv_n2
        if pooled == 0 or not np.isfinite(pooled):
            return None

        t = -abs(sum1 * inv_n1 - sum2 * inv_n2) / np.sqrt(pooled)
        nu = pooled**2 / (var1**2 * inv_n1**2 / dof1 + var2**2 * inv_n2**2 / dof2)

    if not np.isfinite(nu) or _round_half_away(nu) > MAX_DEGREES_OF_FREEDOM:
        return float(f32(normal_cdf_approx(float(t))))
    return float(f32(2.0 * student_t_cdf(float(t), int(_round_half_away(nu)))))


def _p_values_chunk(
    sum1: np.ndarray,
    sumsq1: np.ndarray,
    n1: int,
    sum2: np.ndarray,
    sumsq2: np.ndarray,
    n2: int,
) -> np.ndarray:
    f32 = np.float32
    inv_n1 = f32(1.0) / f32(n1)
    inv_n2 = f32(1.0) / f32(n2)
    dof1 = f32(n1) - f32(1.0)
    dof2 = f32(n2) - f32(1.0)
    p_values = np.full(sum1.shape, np.nan, dtype=np.float32)

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        var1 = (f32(1.0) / dof1) * (sumsq1 - inv_n1 * sum1**2)
        var2 = (f32(1.0) / dof2) * (sumsq2 - inv_n2 * sum2**2)
        negative = (var1 < 0) | (var2 < 0)
        if negative.any():
            index = int(np.flatnonzero(negative)[0])
            raise NegativeVarianceError(
                f"Negative sample variance at element {index} "
                f"(var1={var1[index]}, var2={var2[index]}); "
                "sum and sum of squares are inconsistent"
            )

        pooled = var1 * inv_n1 + var2 * inv_n2
        defined = (pooled != 0) & np.isfinite(pooled)
        if not defined.any():
            return p_values

        var1, var2, pooled = var1[defined], var2[defined], pooled[defined]
        t = -np.abs(sum1[defined] * inv_n1 - sum2[defined] * inv_n2) / np.sqrt(pooled)
        nu = pooled**2 / (var1**2 * inv_n1**2 / dof1 + var2**2 * inv_n2**2 / dof2)
        nu_rounded = _round_half_away(nu)

    exact = np.isfinite(nu_rounded) & (nu_rounded <= MAX_DEGREES_OF_FREEDOM)
    result = np.empty(t.shape, dtype=np.float64)
    result[exact] = 2.0 * student_t_cdf_array(t[exact], nu_rounded[exact].astype(np.int64))
    result[~exact] = normal_cdf_approx_array(t[~exact])
    p_values[defined] = result.astype(np.float32)
    return p_values


def welch_t_test_array(
    sum1: ArrayLike,
    sumsq1: ArrayLike,
    n1: int,
    sum2: ArrayLike,
    sumsq2: ArrayLike,
    n2: int,
    *,
    workers: int = 1,
) -> np.ndarray:
    """Welch p-values for every element of four aligned accumulator arrays.

    Returns a float32 array shaped like the inputs, ``NaN`` where the
    comparison is undefined. With ``workers > 1`` contiguous chunks are
    evaluated in a thread pool; the output does not depend on the chunking.
    """
    check_sample_sizes(n1, n2)
    arrays = [np.asarray(a, dtype=np.float32) for a in (sum1, sumsq1, sum2, sumsq2)]
    shapes = [a.shape for a in arrays]
    if len(set(shapes)) != 1:
        raise InputShapeMismatchError(
            "Moment arrays must have equal shapes "
            f"(sum1={shapes[0]}, sumsq1={shapes[1]}, sum2={shapes[2]}, sumsq2={shapes[3]})"
        )
    shape = shapes[0]
    flat = [a.ravel() for a in arrays]

    if workers <= 1 or flat[0].size < workers:
        p_values = _p_values_chunk(flat[0], flat[1], n1, flat[2], flat[3], n2)
        return p_values.reshape(shape)

    bounds = np.linspace(0, flat[0].size, workers + 1).astype(np.int64)
    chunks = [tuple(a[start:stop] for a in flat) for start, stop in zip(bounds[:-1], bounds[1:])]
    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = list(
            executor.map(lambda c: _p_values_chunk(c[0], c[1], n1, c[2], c[3], n2), chunks)
        )
    return np.concatenate(results).reshape(shape)


def compute_welch_t_test(
    sum1: ArrayLike,
    sumsq1: ArrayLike,
    n1: int,
    sum2: ArrayLike,
    sumsq2: ArrayLike,
    n2: int,
    *,
    workers: int = 1,
) -> list[float | None]:
    """Like :func:`welch_t_test_array` but flattened to optional p-values."""
    p_values = welch_t_test_array(sum1, sumsq1, n1, sum2, sumsq2, n2, workers=workers)
    return [None if np.isnan(p) else float(p) for p in p_values.ravel()]
