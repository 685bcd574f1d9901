from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from taxanet.correlation.statistics import (
    off_diagonal_argmax,
    off_diagonal_argmin,
    pearson_matrix,
    pearson_p_values,
)
from taxanet.exceptions import InsufficientSamplesError
from taxanet.samples import Sample
from taxanet.taxonomy import Rank, TaxonHierarchy, TaxonNode, normalize_rank

logger = logging.getLogger(__name__)

# Correlation and its significance are undefined or unstable below this
MIN_SAMPLES = 3


@dataclass(frozen=True, eq=False)
class CorrelationResult:
    """
    Output of one correlation analysis.

    Rows and columns of ``correlation`` and ``p_values`` are aligned with
    ``taxa``, which is sorted by taxon id.

    Attributes:
        taxa: Unified taxon list at ``rank`` over the analysed samples.
        correlation: Symmetric Pearson correlation matrix.
        p_values: Symmetric two-tailed p-value matrix.
        max_relative_frequencies: Maximum relative frequency of every taxon
            over the analysed samples.
        rank: Aggregation rank of the analysis.
        sample_count: Number of samples analysed.
    """

    taxa: List[TaxonNode]
    correlation: NDArray[np.float64]
    p_values: NDArray[np.float64]
    max_relative_frequencies: Dict[TaxonNode, float] = field(default_factory=dict)
    rank: str = ""
    sample_count: int = 0

    def __len__(self) -> int:
        return len(self.taxa)

    def index_of(self, taxon: TaxonNode) -> int:
        for i, candidate in enumerate(self.taxa):
            if candidate.taxon_id == taxon.taxon_id:
                return i
        raise KeyError(f"Taxon {taxon.taxon_id} is not part of this analysis")

    def correlation_between(self, first: TaxonNode, second: TaxonNode) -> float:
        return float(self.correlation[self.index_of(first), self.index_of(second)])

    def p_value_between(self, first: TaxonNode, second: TaxonNode) -> float:
        return float(self.p_values[self.index_of(first), self.index_of(second)])

    def highest_positive_coordinates(self) -> Optional[Tuple[int, int]]:
        return off_diagonal_argmax(self.correlation)

    def highest_negative_coordinates(self) -> Optional[Tuple[int, int]]:
        return off_diagonal_argmin(self.correlation)

    def highest_positive_pair(self) -> Optional[Tuple[TaxonNode, TaxonNode, float]]:
        return self._pair_at(self.highest_positive_coordinates())

    def highest_negative_pair(self) -> Optional[Tuple[TaxonNode, TaxonNode, float]]:
        return self._pair_at(self.highest_negative_coordinates())

    def highest_frequency(self) -> Optional[Tuple[TaxonNode, float]]:
        """Return the taxon with the largest maximum relative frequency, lowest id on ties."""
        if not self.max_relative_frequencies:
            return None
        taxon = min(
            self.max_relative_frequencies,
            key=lambda t: (-self.max_relative_frequencies[t], t.taxon_id),
        )
        return taxon, self.max_relative_frequencies[taxon]

    def to_frame(self, kind: str = "correlation") -> pd.DataFrame:
        """
        Return one of the matrices as a DataFrame labelled by taxon name.

        Args:
            kind: ``"correlation"`` or ``"p_value"``.
        """
        if kind == "correlation":
            matrix = self.correlation
        elif kind == "p_value":
            matrix = self.p_values
        else:
            raise ValueError(f"Unknown matrix kind '{kind}'")
        labels = [taxon.name or str(taxon.taxon_id) for taxon in self.taxa]
        return pd.DataFrame(matrix, index=labels, columns=labels)

    def _pair_at(
        self, coordinates: Optional[Tuple[int, int]]
    ) -> Optional[Tuple[TaxonNode, TaxonNode, float]]:
        if coordinates is None:
            return None
        i, j = coordinates
        return self.taxa[i], self.taxa[j], float(self.correlation[i, j])


class CorrelationEngine:
    """
    Derives the unified taxon list and the correlation/significance matrices
    for a set of samples at a chosen rank.
    """

    def __init__(self, hierarchy: TaxonHierarchy):
        self.hierarchy = hierarchy

    # ------------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------------
    def unify_taxa(
        self, samples: Sequence[Sample], rank: Union[Rank, str]
    ) -> List[TaxonNode]:
        """
        Collect the taxa at ``rank`` with a non-zero recursive count in at
        least one sample, sorted by taxon id.
        """
        rank_name = normalize_rank(rank)
        unified: Dict[int, TaxonNode] = {}
        for sample in samples:
            for node, total in sample.rolled_up_counts().items():
                if total > 0 and node.rank == rank_name and node in self.hierarchy:
                    unified[node.taxon_id] = node
        return [unified[taxon_id] for taxon_id in sorted(unified)]

    def build_count_vectors(
        self, samples: Sequence[Sample], taxa: Sequence[TaxonNode]
    ) -> NDArray[np.int64]:
        """
        Return the recursive counts as an array of shape
        ``(len(samples), len(taxa))``. Counts stay integers so the correlation
        sums are exact.
        """
        vectors = np.zeros((len(samples), len(taxa)), dtype=np.int64)
        for s, sample in enumerate(samples):
            for i, taxon in enumerate(taxa):
                vectors[s, i] = self.hierarchy.recursive_count(sample, taxon)
        return vectors

    def maximum_relative_frequency_per_taxon(
        self,
        samples: Sequence[Sample],
        rank: Union[Rank, str],
        taxa: Optional[Sequence[TaxonNode]] = None,
    ) -> Dict[TaxonNode, float]:
        """
        For each taxon return the maximum over samples of its recursive count
        divided by the sample's total count.
        """
        if taxa is None:
            taxa = self.unify_taxa(samples, rank)
        vectors = self.build_count_vectors(samples, taxa)
        return self._max_relative_frequencies(samples, taxa, vectors)

    def average_counts(
        self, samples: Sequence[Sample], rank: Union[Rank, str]
    ) -> Dict[TaxonNode, float]:
        """Mean recursive count of every unified taxon over ``samples``."""
        taxa = self.unify_taxa(samples, rank)
        if not samples:
            return {taxon: 0.0 for taxon in taxa}
        means = self.build_count_vectors(samples, taxa).mean(axis=0)
        return {taxon: float(means[i]) for i, taxon in enumerate(taxa)}

    # ------------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------------
    def analyze(
        self, samples: Sequence[Sample], rank: Union[Rank, str]
    ) -> CorrelationResult:
        """
        Run the full correlation analysis.

        Raises:
            InsufficientSamplesError: If fewer than ``MIN_SAMPLES`` samples
                are given. Nothing is computed in that case.
        """
        self._require_samples(samples)
        rank_name = normalize_rank(rank)
        taxa = self.unify_taxa(samples, rank_name)
        vectors = self.build_count_vectors(samples, taxa)
        correlation = pearson_matrix(vectors)
        p_values = pearson_p_values(correlation, len(samples))
        frequencies = self._max_relative_frequencies(samples, taxa, vectors)
        logger.info(
            "Correlated %d taxa at rank '%s' across %d samples",
            len(taxa),
            rank_name,
            len(samples),
        )
        return CorrelationResult(
            taxa=taxa,
            correlation=correlation,
            p_values=p_values,
            max_relative_frequencies=frequencies,
            rank=rank_name,
            sample_count=len(samples),
        )

    def correlation_matrix(
        self, samples: Sequence[Sample], rank: Union[Rank, str]
    ) -> NDArray[np.float64]:
        return self.analyze(samples, rank).correlation

    def p_value_matrix(
        self, samples: Sequence[Sample], rank: Union[Rank, str]
    ) -> NDArray[np.float64]:
        return self.analyze(samples, rank).p_values

    @staticmethod
    def _require_samples(samples: Sequence[Sample]) -> None:
        if len(samples) < MIN_SAMPLES:
            logger.warning(
                "Refusing correlation analysis on %d samples (minimum %d)",
                len(samples),
                MIN_SAMPLES,
            )
            raise InsufficientSamplesError(len(samples), MIN_SAMPLES)

    @staticmethod
    def _max_relative_frequencies(
        samples: Sequence[Sample],
        taxa: Sequence[TaxonNode],
        vectors: NDArray[np.int64],
    ) -> Dict[TaxonNode, float]:
        if not taxa or not samples:
            return {taxon: 0.0 for taxon in taxa}
        totals = np.array([sample.total_count for sample in samples], dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            relative = vectors / totals[:, np.newaxis]
        relative[~np.isfinite(relative)] = 0.0
        maxima = relative.max(axis=0)
        return {taxon: float(maxima[i]) for i, taxon in enumerate(taxa)}
