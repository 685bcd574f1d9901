"""
Vectorised correlation statistics over per-sample count vectors.

All matrices returned here are exactly symmetric: values are computed on the
upper triangle and mirrored, so ``m[i, j] == m[j, i]`` holds bit for bit.
"""

from typing import Optional, Tuple

import numpy as np
from numpy.typing import NDArray
from scipy import stats


def pearson_matrix(count_vectors: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Compute the Pearson correlation between every pair of columns.

    Integer-valued input (raw counts) is summed in exact integer arithmetic
    as ``r = (n Sxy - Sx Sy) / sqrt((n Sxx - Sx^2)(n Syy - Sy^2))`` with a
    single float division at the end, so the result does not depend on the
    order of the rows. Other input falls back to centred float sums.

    Parameters:
    -----------
    count_vectors : NDArray[np.float64]
        Array of shape ``(n_samples, n_taxa)``; column ``i`` holds the counts
        of taxon ``i`` across samples.

    Returns:
    --------
    NDArray[np.float64]
        Symmetric ``(n_taxa, n_taxa)`` matrix with a unit diagonal. Pairs
        involving a taxon without variance across samples are set to 0.
    """
    data = np.asarray(count_vectors)
    n_taxa = data.shape[1]
    if _is_integral(data):
        covariance, variance = _exact_moments(data)
    else:
        centered = data.astype(float) - data.astype(float).mean(axis=0)
        covariance = centered.T @ centered
        variance = np.diagonal(covariance).copy()
    scale = np.sqrt(variance)
    with np.errstate(divide="ignore", invalid="ignore"):
        correlation = covariance / np.outer(scale, scale)
    correlation[~np.isfinite(correlation)] = 0.0
    np.clip(correlation, -1.0, 1.0, out=correlation)
    return _mirror_upper(correlation, diagonal=1.0) if n_taxa else correlation


def _is_integral(data: np.ndarray) -> bool:
    if np.issubdtype(data.dtype, np.integer):
        return True
    if not np.issubdtype(data.dtype, np.floating):
        return False
    return bool(np.all(np.isfinite(data)) and np.all(data == np.floor(data)))


def _exact_moments(data: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    # Python ints never round, so every sum below is independent of row order
    values = data.astype(np.int64).astype(object)
    n = values.shape[0]
    sums = values.sum(axis=0)
    scaled_cov = n * (values.T @ values) - np.outer(sums, sums)
    variance = np.diagonal(scaled_cov).astype(float)
    return scaled_cov.astype(float), variance


def pearson_p_values(
    correlation: NDArray[np.float64], n_samples: int
) -> NDArray[np.float64]:
    """
    Two-tailed p-values of Pearson coefficients under the t approximation.

    ``t = r * sqrt(df / (1 - r^2))`` with ``df = n_samples - 2``.

    Parameters:
    -----------
    correlation : NDArray[np.float64]
        Symmetric correlation matrix.
    n_samples : int
        Number of samples the coefficients were computed from (at least 3).

    Returns:
    --------
    NDArray[np.float64]
        Symmetric matrix of p-values in ``[0, 1]`` with a zero diagonal.
    """
    if n_samples < 3:
        raise ValueError(f"p-values need at least 3 samples, got {n_samples}")
    df = n_samples - 2
    r = np.asarray(correlation, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        t_stat = r * np.sqrt(df / (1.0 - r * r))
    # |r| == 1 yields an infinite statistic and a p-value of 0
    t_stat = np.where(np.abs(r) >= 1.0, np.inf, t_stat)
    p_values = 2.0 * stats.t.sf(np.abs(t_stat), df)
    np.clip(p_values, 0.0, 1.0, out=p_values)
    if r.shape[0] == 0:
        return p_values
    return _mirror_upper(p_values, diagonal=0.0)


def off_diagonal_argmax(matrix: NDArray[np.float64]) -> Optional[Tuple[int, int]]:
    """Return ``(i, j)``, ``i < j``, of the largest off-diagonal entry, first in row-major order."""
    return _off_diagonal_extreme(matrix, np.argmax)


def off_diagonal_argmin(matrix: NDArray[np.float64]) -> Optional[Tuple[int, int]]:
    """Return ``(i, j)``, ``i < j``, of the smallest off-diagonal entry, first in row-major order."""
    return _off_diagonal_extreme(matrix, np.argmin)


def _off_diagonal_extreme(matrix, pick) -> Optional[Tuple[int, int]]:
    n = matrix.shape[0]
    if n < 2:
        return None
    rows, cols = np.triu_indices(n, k=1)
    k = int(pick(matrix[rows, cols]))
    return int(rows[k]), int(cols[k])


def _mirror_upper(
    matrix: NDArray[np.float64], diagonal: float
) -> NDArray[np.float64]:
    upper = np.triu(matrix, k=1)
    mirrored = upper + upper.T
    np.fill_diagonal(mirrored, diagonal)
    return mirrored
