"""Cross-sample correlation analysis."""

from taxanet.correlation.engine import (
    MIN_SAMPLES,
    CorrelationEngine,
    CorrelationResult,
)
from taxanet.correlation.statistics import (
    off_diagonal_argmax,
    off_diagonal_argmin,
    pearson_matrix,
    pearson_p_values,
)

__all__ = [
    "MIN_SAMPLES",
    "CorrelationEngine",
    "CorrelationResult",
    "pearson_matrix",
    "pearson_p_values",
    "off_diagonal_argmax",
    "off_diagonal_argmin",
]
