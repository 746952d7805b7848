"""Image input and visualization for moment accumulators."""

from bias_detection.imaging.pfm import PfmImage, load_pfm, write_pfm
from bias_detection.imaging.visualization import (
    p_values_to_rgb,
    save_p_value_histogram,
    save_p_value_image,
    scale_image,
    viridis_quintic,
)

__all__ = [
    "PfmImage",
    "load_pfm",
    "write_pfm",
    "viridis_quintic",
    "p_values_to_rgb",
    "scale_image",
    "save_p_value_image",
    "save_p_value_histogram",
]
