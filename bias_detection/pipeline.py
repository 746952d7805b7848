"""End-to-end bias detection over two sets of moment images."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np

from bias_detection.errors import ImageSizeMismatchError, InvalidSampleSizeError
from bias_detection.imaging.pfm import PfmImage, load_pfm
from bias_detection.imaging.visualization import p_values_to_rgb
from bias_detection.report import BiasSummary, summarize_p_values
from bias_detection.stats.welch import welch_t_test_array


@dataclass(frozen=True)
class BiasDetectionConfig:
    scale: float = 1.0
    alpha: float = 0.05
    histogram_bins: int = 32
    workers: int = 1


@dataclass(frozen=True)
class MomentImages:
    """Sum and sum-of-squares accumulators of one estimator over ``spp`` draws."""

    sum_image: PfmImage
    sumsq_image: PfmImage
    spp: int

    @classmethod
    def load(cls, sum_path: Path, sumsq_path: Path, spp: int) -> "MomentImages":
        return cls(sum_image=load_pfm(sum_path), sumsq_image=load_pfm(sumsq_path), spp=spp)


@dataclass
class BiasDetectionResult:
    p_values: np.ndarray
    summary: BiasSummary
    rgb: np.ndarray

    @property
    def width(self) -> int:
        return int(self.p_values.shape[1])

    @property
    def height(self) -> int:
        return int(self.p_values.shape[0])


def _shape(image: PfmImage) -> tuple[int, int, int]:
    return image.width, image.height, image.channels


def check_geometry(first: MomentImages, second: MomentImages) -> None:
    pairs = (
        ("sum images", first.sum_image, second.sum_image),
        ("squared sum images", first.sumsq_image, second.sumsq_image),
        ("across squared and sum images", first.sumsq_image, second.sum_image),
    )
    for label, a, b in pairs:
        if _shape(a) != _shape(b):
            raise ImageSizeMismatchError(
                f"Image sizes do not match ({label}): {_shape(a)} != {_shape(b)}"
            )


def check_spp(first: MomentImages, second: MomentImages) -> None:
    if first.spp <= 1:
        raise InvalidSampleSizeError(f"Image 1 needs at least 2 spp (spp: {first.spp})")
    if second.spp <= 1:
        raise InvalidSampleSizeError(f"Image 2 needs at least 2 spp (spp: {second.spp})")


def detect_bias(
    first: MomentImages,
    second: MomentImages,
    config: BiasDetectionConfig | None = None,
) -> BiasDetectionResult:
    config = config or BiasDetectionConfig()
    check_geometry(first, second)
    check_spp(first, second)

    p_values = welch_t_test_array(
        first.sum_image.data,
        first.sumsq_image.data,
        first.spp,
        second.sum_image.data,
        second.sumsq_image.data,
        second.spp,
        workers=config.workers,
    )
    summary = summarize_p_values(p_values, alpha=config.alpha)
    return BiasDetectionResult(p_values=p_values, summary=summary, rgb=p_values_to_rgb(p_values))
