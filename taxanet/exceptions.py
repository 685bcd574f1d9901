"""
Custom exceptions for taxonomy handling and correlation analysis.
"""

from __future__ import annotations


class TaxaNetError(Exception):
    """Base exception for all TaxaNet errors."""

    pass


class TaxonomyError(TaxaNetError):
    """Base exception for taxonomy construction and lookup errors."""

    pass


class MalformedHierarchyError(TaxonomyError):
    """Raised when taxonomy records do not describe a single rooted tree."""

    pass


class UnknownTaxonError(TaxonomyError, KeyError):
    """Raised when a taxon id cannot be resolved against the hierarchy."""

    def __init__(self, taxon_id: int):
        self.taxon_id = taxon_id
        super().__init__(f"Taxon id {taxon_id} was not found in the hierarchy")

    def __str__(self) -> str:
        # KeyError would otherwise quote the message
        return str(self.args[0])


class AnalysisError(TaxaNetError):
    """Base exception for correlation analysis errors."""

    pass


class InsufficientSamplesError(AnalysisError):
    """Raised when fewer samples than required are passed to the analysis."""

    def __init__(self, sample_count: int, required: int = 3):
        self.sample_count = sample_count
        self.required = required
        super().__init__(
            f"Correlation analysis needs at least {required} samples, "
            f"got {sample_count}"
        )
