"""Read-only statistics over an already filtered taxon network."""

from __future__ import annotations

from collections import Counter
from typing import Dict, Optional

import pandas as pd

from taxanet.network.elements import TaxonEdge
from taxanet.network.taxon_network import TaxonNetwork
from taxanet.taxonomy import TaxonNode


class GraphAnalysis:
    """
    Degree statistics of the visible part of a ``TaxonNetwork``.

    Nothing is recomputed here: the queries read the visibility flags left
    by the last ``recompute_visibility`` call.
    """

    def __init__(self, network: TaxonNetwork):
        self.network = network

    def node_degrees(self) -> Dict[TaxonNode, int]:
        """Visible degree of every visible vertex, keyed by taxon."""
        return {
            vertex.taxon: self.network.visible_degree(vertex)
            for vertex in self.network.visible_vertices()
        }

    def degree_distribution(self) -> Dict[int, float]:
        """Fraction of visible vertices per visible degree, sorted by degree."""
        degrees = self.node_degrees()
        if not degrees:
            return {}
        counts = Counter(degrees.values())
        total = len(degrees)
        return {degree: counts[degree] / total for degree in sorted(counts)}

    def mean_degree(self) -> float:
        degrees = self.node_degrees()
        if not degrees:
            return 0.0
        return sum(degrees.values()) / len(degrees)

    def hubs(self) -> Dict[TaxonNode, int]:
        """Hub taxa with their visible degree, highest degree first."""
        hubs = [
            (vertex.taxon, self.network.visible_degree(vertex))
            for vertex in self.network.hubs()
        ]
        hubs.sort(key=lambda item: (-item[1], item[0].taxon_id))
        return dict(hubs)

    def strongest_edge(
        self, positive: bool = True, visible_only: bool = True
    ) -> Optional[TaxonEdge]:
        """
        Return the edge with the highest (``positive``) or lowest correlation.

        Ties resolve to the smallest canonical taxon-id pair.
        """
        edges = self.network.visible_edges() if visible_only else self.network.edges
        if not edges:
            return None
        if positive:
            return min(edges, key=lambda e: (-e.correlation, e.pair))
        return min(edges, key=lambda e: (e.correlation, e.pair))

    def summary(self) -> Dict[str, float]:
        return {
            "visible_taxa": len(self.network.visible_vertices()),
            "visible_edges": len(self.network.visible_edges()),
            "mean_degree": self.mean_degree(),
            "hubs": len(self.network.hubs()),
        }

    def degree_frame(self) -> pd.DataFrame:
        """Visible vertices as a table with id, name, degree and hub flag."""
        rows = [
            {
                "taxon_id": vertex.taxon_id,
                "name": vertex.name,
                "degree": self.network.visible_degree(vertex),
                "is_hub": vertex.is_hub,
                "max_relative_frequency": self.network.max_relative_frequencies.get(
                    vertex.taxon, 0.0
                ),
            }
            for vertex in self.network.visible_vertices()
        ]
        columns = ["taxon_id", "name", "degree", "is_hub", "max_relative_frequency"]
        return pd.DataFrame(rows, columns=columns)
