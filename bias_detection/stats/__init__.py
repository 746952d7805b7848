"""Statistics for per-element bias detection."""

from bias_detection.stats.student_t import (
    normal_cdf_approx,
    normal_cdf_approx_array,
    student_t_cdf,
    student_t_cdf_array,
)
from bias_detection.stats.welch import (
    check_sample_sizes,
    compute_welch_t_test,
    welch_p_value,
    welch_t_test_array,
)

__all__ = [
    "student_t_cdf",
    "student_t_cdf_array",
    "normal_cdf_approx",
    "normal_cdf_approx_array",
    "check_sample_sizes",
    "compute_welch_t_test",
    "welch_p_value",
    "welch_t_test_array",
]
