"""Taxon correlation networks with live threshold filtering."""

__all__ = [
    "Rank",
    "TaxonNode",
    "TaxonHierarchy",
    "Sample",
    "SampleStore",
    "CorrelationEngine",
    "CorrelationResult",
    "FilterState",
    "TaxonNetwork",
    "GraphAnalysis",
    "AnalysisConfig",
    "HubPolicy",
    "AnalysisSession",
]


def __getattr__(name):
    if name in {"Rank", "TaxonNode", "TaxonHierarchy"}:
        from .taxonomy import Rank, TaxonNode, TaxonHierarchy

        return locals()[name]
    if name in {"Sample", "SampleStore"}:
        from .samples import Sample, SampleStore

        return locals()[name]
    if name in {"CorrelationEngine", "CorrelationResult"}:
        from .correlation import CorrelationEngine, CorrelationResult

        return locals()[name]
    if name == "FilterState":
        from .filter_state import FilterState

        return FilterState
    if name in {"TaxonNetwork", "GraphAnalysis"}:
        from .network import TaxonNetwork, GraphAnalysis

        return locals()[name]
    if name in {"AnalysisConfig", "HubPolicy"}:
        from .config import AnalysisConfig, HubPolicy

        return locals()[name]
    if name == "AnalysisSession":
        from .session import AnalysisSession

        return AnalysisSession
    raise AttributeError(name)
