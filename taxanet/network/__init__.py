"""Taxon correlation network and its visibility filtering."""

from taxanet.network.analysis import GraphAnalysis
from taxanet.network.elements import TaxonEdge, TaxonVertex, canonical_pair
from taxanet.network.graph import UndirectedSparseGraph
from taxanet.network.taxon_network import TaxonNetwork

__all__ = [
    "GraphAnalysis",
    "TaxonEdge",
    "TaxonVertex",
    "TaxonNetwork",
    "UndirectedSparseGraph",
    "canonical_pair",
]
