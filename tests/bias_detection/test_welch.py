from __future__ import annotations

import numpy as np
import pytest

from bias_detection.errors import (
    InputShapeMismatchError,
    InvalidSampleSizeError,
    NegativeVarianceError,
)
from bias_detection.stats import compute_welch_t_test, welch_p_value, welch_t_test_array


def _moments(values: np.ndarray) -> tuple[float, float, int]:
    values = np.asarray(values, dtype=np.float64)
    return float(values.sum()), float((values**2).sum()), int(values.size)


def _random_moment_arrays(
    rng: np.random.Generator, count: int, n1: int, n2: int
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    draws1 = rng.normal(1.0, 0.5, size=(count, n1))
    draws2 = rng.normal(1.1, 0.8, size=(count, n2))
    return (
        draws1.sum(axis=1).astype(np.float32),
        (draws1**2).sum(axis=1).astype(np.float32),
        draws2.sum(axis=1).astype(np.float32),
        (draws2**2).sum(axis=1).astype(np.float32),
    )


def test_constant_samples_are_undefined() -> None:
    # [1, 1, 1, 1] against [5, 5, 5, 5]: both variances are zero.
    assert welch_p_value(4.0, 4.0, 4, 20.0, 100.0, 4) is None
    assert welch_p_value(12.0, 36.0, 4, 24.0, 72.0, 8) is None


def test_concrete_scenario_with_variance() -> None:
    p = welch_p_value(50.0, 270.0, 10, 80.0, 660.0, 10)
    assert p is not None
    assert 0.0 < p < 1.0
    assert p < 1e-3


def test_concrete_scenario_matches_reference_cdf() -> None:
    stats = pytest.importorskip("scipy.stats")
    # var1 = var2 = 20 / 9, so t = -4.5 and the Welch-Satterthwaite dof is 18.
    p = welch_p_value(50.0, 270.0, 10, 80.0, 660.0, 10)
    assert p == pytest.approx(2.0 * stats.t.cdf(-4.5, 18), rel=1e-4)


def test_result_is_reproducible() -> None:
    first = welch_p_value(50.0, 270.0, 10, 80.0, 660.0, 10)
    second = welch_p_value(50.0, 270.0, 10, 80.0, 660.0, 10)
    assert first == second


def test_symmetric_under_sample_swap() -> None:
    rng = np.random.default_rng(7)
    for _ in range(50):
        a = rng.normal(0.0, 1.0, size=rng.integers(2, 40))
        b = rng.normal(0.3, 2.0, size=rng.integers(2, 40))
        s1, q1, n1 = _moments(a)
        s2, q2, n2 = _moments(b)
        assert welch_p_value(s1, q1, n1, s2, q2, n2) == welch_p_value(s2, q2, n2, s1, q1, n1)


def test_identical_samples_give_high_p_value() -> None:
    s, q, n = _moments(np.array([0.5, 1.5, 2.0, 0.25, 3.0]))
    p = welch_p_value(s, q, n, s, q, n)
    assert p is not None
    assert p > 0.99


def test_clear_difference_gives_small_p_value() -> None:
    rng = np.random.default_rng(3)
    s1, q1, n1 = _moments(rng.normal(0.0, 1.0, size=200))
    s2, q2, n2 = _moments(rng.normal(2.0, 1.0, size=200))
    p = welch_p_value(s1, q1, n1, s2, q2, n2)
    assert p is not None
    assert p < 1e-10


def test_close_to_scipy_welch() -> None:
    stats = pytest.importorskip("scipy.stats")
    rng = np.random.default_rng(11)
    a = rng.normal(0.0, 1.0, size=20)
    b = rng.normal(0.6, 1.5, size=25)
    s1, q1, n1 = _moments(a)
    s2, q2, n2 = _moments(b)
    expected = stats.ttest_ind(a, b, equal_var=False).pvalue
    # Degrees of freedom are rounded to an integer, so only approximate agreement.
    assert welch_p_value(s1, q1, n1, s2, q2, n2) == pytest.approx(expected, rel=0.05)


def test_non_finite_pooled_variance_is_undefined() -> None:
    assert welch_p_value(2.0, float("inf"), 4, 2.0, 3.0, 4) is None


@pytest.mark.parametrize("n1, n2", [(1, 4), (4, 1), (0, 4), (4, -2)])
def test_invalid_sample_size(n1: int, n2: int) -> None:
    with pytest.raises(InvalidSampleSizeError):
        welch_p_value(1.0, 2.0, n1, 1.0, 2.0, n2)
    with pytest.raises(InvalidSampleSizeError):
        welch_t_test_array([1.0], [2.0], n1, [1.0], [2.0], n2)


def test_negative_variance_is_an_invariant_violation() -> None:
    with pytest.raises(NegativeVarianceError):
        welch_p_value(10.0, 1.0, 4, 2.0, 3.0, 4)
    with pytest.raises(NegativeVarianceError):
        welch_t_test_array([2.0, 10.0], [3.0, 1.0], 4, [2.0, 2.0], [3.0, 3.0], 4)


def test_shape_mismatch_is_rejected() -> None:
    with pytest.raises(InputShapeMismatchError):
        welch_t_test_array([1.0, 2.0], [1.0, 2.0], 4, [1.0], [1.0], 4)
    with pytest.raises(InputShapeMismatchError):
        compute_welch_t_test([1.0, 2.0], [1.0], 4, [1.0, 2.0], [1.0, 2.0], 4)


def test_batch_preserves_order_and_marks_undefined() -> None:
    # Constant, spread and constant samples of 8 draws each.
    result = compute_welch_t_test(
        [8.0, 40.0, 24.0],
        [8.0, 208.0, 72.0],
        8,
        [40.0, 64.0, 24.0],
        [200.0, 520.0, 72.0],
        8,
    )
    assert len(result) == 3
    assert result[0] is None
    assert result[1] is not None and 0.0 < result[1] < 1.0
    assert result[2] is None


def test_batch_matches_scalar() -> None:
    rng = np.random.default_rng(5)
    s1, q1, s2, q2 = _random_moment_arrays(rng, 200, 16, 9)
    batch = welch_t_test_array(s1, q1, 16, s2, q2, 9)
    assert batch.dtype == np.float32
    for idx in range(batch.size):
        expected = welch_p_value(s1[idx], q1[idx], 16, s2[idx], q2[idx], 9)
        assert expected is not None
        assert batch[idx] == pytest.approx(expected, rel=1e-6)


def test_batch_keeps_image_shape() -> None:
    rng = np.random.default_rng(9)
    s1, q1, s2, q2 = (a.reshape(4, 5, 3) for a in _random_moment_arrays(rng, 60, 8, 8))
    assert welch_t_test_array(s1, q1, 8, s2, q2, 8).shape == (4, 5, 3)


def test_worker_count_does_not_change_result() -> None:
    rng = np.random.default_rng(13)
    s1, q1, s2, q2 = _random_moment_arrays(rng, 1001, 16, 32)
    # Every seventh element holds constant draws of 2.0 in both samples.
    s1[::7] = 32.0
    q1[::7] = 64.0
    s2[::7] = 64.0
    q2[::7] = 128.0
    sequential = welch_t_test_array(s1, q1, 16, s2, q2, 32)
    parallel = welch_t_test_array(s1, q1, 16, s2, q2, 32, workers=4)
    np.testing.assert_array_equal(sequential, parallel)
    assert np.isnan(sequential[::7]).all()


def test_batch_values_in_unit_interval() -> None:
    rng = np.random.default_rng(17)
    s1, q1, s2, q2 = _random_moment_arrays(rng, 500, 4, 30)
    p_values = welch_t_test_array(s1, q1, 4, s2, q2, 30)
    assert np.all((p_values >= 0.0) & (p_values <= 1.0))


def test_underflowing_dof_falls_back_to_normal_tail() -> None:
    # Variances of ~5e-27 square to zero in float32, so the dof estimate is 0/0.
    s1, q1, n1 = 3e-13, 5e-26, 2
    s2, q2, n2 = 7e-13, 2.5e-25, 2
    p = welch_p_value(s1, q1, n1, s2, q2, n2)
    assert p is not None
    assert 0.0 < p < 0.01
    batch = welch_t_test_array([s1], [q1], n1, [s2], [q2], n2)
    assert batch[0] == pytest.approx(p, rel=1e-6)
