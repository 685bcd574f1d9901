import numpy as np
import pytest
from scipy import stats

from taxanet.correlation.statistics import (
    off_diagonal_argmax,
    off_diagonal_argmin,
    pearson_matrix,
    pearson_p_values,
)


def test_pearson_matrix_matches_numpy():
    rng = np.random.default_rng(7)
    data = rng.integers(0, 50, size=(6, 5)).astype(float)
    observed = pearson_matrix(data)
    expected = np.corrcoef(data, rowvar=False)
    np.testing.assert_allclose(observed, expected, atol=1e-12)
    assert np.array_equal(observed, observed.T)


def test_p_values_follow_t_distribution():
    r = np.array([[1.0, 0.5], [0.5, 1.0]])
    p = pearson_p_values(r, 10)
    t_stat = 0.5 * np.sqrt(8 / (1 - 0.25))
    assert p[0, 1] == pytest.approx(2 * stats.t.sf(t_stat, 8))
    assert p[0, 0] == 0.0
    assert p[0, 1] == p[1, 0]


def test_perfect_correlation_has_zero_p_value():
    r = np.array([[1.0, -1.0], [-1.0, 1.0]])
    assert pearson_p_values(r, 5)[0, 1] == 0.0


def test_p_values_need_three_samples():
    with pytest.raises(ValueError):
        pearson_p_values(np.eye(2), 2)


def test_off_diagonal_extremes_ignore_diagonal():
    m = np.array(
        [
            [9.0, 0.2, -0.4],
            [0.2, 9.0, 0.7],
            [-0.4, 0.7, 9.0],
        ]
    )
    assert off_diagonal_argmax(m) == (1, 2)
    assert off_diagonal_argmin(m) == (0, 2)


def test_off_diagonal_ties_resolve_row_major():
    m = np.array([[1.0, 0.5, 0.5], [0.5, 1.0, 0.5], [0.5, 0.5, 1.0]])
    assert off_diagonal_argmax(m) == (0, 1)


def test_empty_matrices():
    assert pearson_matrix(np.zeros((3, 0))).shape == (0, 0)
    assert off_diagonal_argmax(np.zeros((1, 1))) is None


def test_pearson_matrix_is_independent_of_row_order():
    rng = np.random.default_rng(3)
    data = rng.integers(0, 10_000, size=(9, 30))
    forward = pearson_matrix(data)
    for order in (np.arange(9)[::-1], rng.permutation(9)):
        assert np.array_equal(forward, pearson_matrix(data[order]))


def test_pearson_matrix_accepts_non_integer_values():
    data = np.array([[0.5, 1.0], [1.5, 2.5], [2.5, 2.0]])
    np.testing.assert_allclose(
        pearson_matrix(data), np.corrcoef(data, rowvar=False), atol=1e-12
    )
