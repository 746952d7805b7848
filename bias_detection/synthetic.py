"""Synthetic Monte Carlo estimates for trying the detector end to end."""
from __future__ import annotations

import numpy as np


def reference_image(width: int, height: int) -> np.ndarray:
    """Smooth RGB gradient with a bright disk and a black border column."""
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
    u = xs / max(width - 1, 1)
    v = ys / max(height - 1, 1)
    disk = ((u - 0.5) ** 2 + (v - 0.5) ** 2 < 0.05).astype(np.float32)
    image = np.stack([0.2 + 0.6 * u, 0.2 + 0.6 * v, 0.5 + 0.0 * u], axis=-1) + disk[..., None]
    image[:, 0, :] = 0.0
    return image.astype(np.float32)


def accumulate_moments(
    image: np.ndarray,
    spp: int,
    rng: np.random.Generator,
    bias: float = 1.0,
) -> tuple[np.ndarray, np.ndarray]:
    """Sum and sum of squares of ``spp`` noisy draws whose mean is ``bias * image``.

    Each draw multiplies the radiance by unit-mean exponential noise, which
    mimics the heavy-tailed per-sample estimates of a path tracer.
    """
    if spp < 1:
        raise ValueError(f"spp must be positive, got {spp}")
    target = np.asarray(image, dtype=np.float32) * np.float32(bias)
    total = np.zeros_like(target)
    total_sq = np.zeros_like(target)
    for _ in range(spp):
        draw = target * rng.exponential(1.0, size=target.shape).astype(np.float32)
        total += draw
        total_sq += draw * draw
    return total, total_sq
