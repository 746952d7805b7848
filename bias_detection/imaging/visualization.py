"""False-color p-value images and histograms."""
from __future__ import annotations

from pathlib import Path

import cv2
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np
from PIL import Image

_VIRIDIS_R = (0.280268003, -0.143510503, 2.225793877, -14.815088879, 25.212752309, -11.772589584)
_VIRIDIS_G = (-0.002117546, 1.617109353, -1.909305070, 2.701152864, -1.685288385, 0.178738871)
_VIRIDIS_B = (0.300805501, 2.614650302, -12.019139090, 28.933559110, -33.491294770, 13.762053843)


def _quintic(coeffs: tuple[float, ...], x: np.ndarray) -> np.ndarray:
    x2 = x * x
    x3 = x2 * x
    x4 = x2 * x2
    x5 = x3 * x2
    c0, c1, c2, c3, c4, c5 = coeffs
    return c0 + c1 * x + c2 * x2 + c3 * x3 + c4 * x4 + c5 * x5


def viridis_quintic(x: np.ndarray | float) -> np.ndarray:
    """Quintic fit of the viridis ramp; returns ``(..., 3)`` RGB floats (not clamped)."""
    x = np.minimum(np.asarray(x, dtype=np.float32), np.float32(1.0))
    return np.stack(
        [_quintic(_VIRIDIS_R, x), _quintic(_VIRIDIS_G, x), _quintic(_VIRIDIS_B, x)], axis=-1
    ).astype(np.float32)


def p_values_to_rgb(p_values: np.ndarray) -> np.ndarray:
    """Map per-channel p-values ``(H, W[, C])`` to an ``(H, W, 3)`` uint8 image.

    Each pixel shows its smallest channel p-value. Pixels where every channel
    is undefined (``NaN``) are black.
    """
    p = np.asarray(p_values, dtype=np.float32)
    if p.ndim == 2:
        p = p[:, :, None]
    if p.ndim != 3:
        raise ValueError(f"Expected p-values of shape (H, W) or (H, W, C), got {p.shape}")
    undefined = np.isnan(p)
    filled = np.where(undefined, np.finfo(np.float32).max, p)
    colors = viridis_quintic(filled.min(axis=2))
    rgb = (np.clip(colors, 0.0, 1.0) * 255.0).astype(np.uint8)
    rgb[undefined.all(axis=2)] = 0
    return rgb


def scale_image(rgb: np.ndarray, scale: float) -> np.ndarray:
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")
    if scale == 1.0:
        return rgb
    height, width = rgb.shape[:2]
    new_size = (int(width * scale), int(height * scale))
    if new_size[0] < 1 or new_size[1] < 1:
        raise ValueError(f"scale {scale} shrinks {width}x{height} image to nothing")
    return cv2.resize(rgb, new_size, interpolation=cv2.INTER_NEAREST)


def save_p_value_image(rgb: np.ndarray, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(np.ascontiguousarray(rgb, dtype=np.uint8)).save(path)


def save_p_value_histogram(p_values: np.ndarray, path: Path, bins: int = 32) -> None:
    """Histogram of the defined p-values over ``[0, 1]``, mean marked in red."""
    values = np.asarray(p_values, dtype=np.float64).ravel()
    values = values[~np.isnan(values)]
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.figure(figsize=(8, 6))
    plt.hist(values, bins=bins, range=(0.0, 1.0))
    if values.size:
        plt.plot(float(values.mean()), 0.0, "ro")
    plt.xlim(0.0, 1.0)
    plt.xlabel("p-value")
    plt.ylabel("Samples")
    plt.grid(which="major", linestyle="solid", color="lightgray")
    plt.tight_layout()
    plt.savefig(path)
    plt.close()
