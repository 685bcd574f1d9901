from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from taxanet.config import AnalysisConfig, HubPolicy
from taxanet.filter_state import FilterState
from taxanet.network.elements import TaxonEdge, TaxonVertex, canonical_pair
from taxanet.network.graph import UndirectedSparseGraph
from taxanet.taxonomy import TaxonNode

logger = logging.getLogger(__name__)

TaxonKey = Union[TaxonNode, int]


class TaxonNetwork:
    """
    Undirected correlation network over taxa.

    The network composes a generic ``UndirectedSparseGraph`` with a
    ``taxon id -> vertex`` map and a ``(taxon id, taxon id) -> edge`` index
    keyed by the canonical (smaller id first) pair. Every taxon pair holds
    at most one edge.

    Visibility is derived state: ``recompute_visibility`` sets
    ``TaxonEdge.is_hidden`` from the thresholds, hides the edges of vertices
    outside the frequency range, and then marks a vertex hidden when none
    of its incident edges is visible.
    """

    def __init__(
        self,
        max_relative_frequencies: Optional[Mapping[TaxonNode, float]] = None,
        config: Optional[AnalysisConfig] = None,
    ):
        self.config = config or AnalysisConfig()
        self.max_relative_frequencies: Dict[TaxonNode, float] = dict(
            max_relative_frequencies or {}
        )
        self._graph: UndirectedSparseGraph[TaxonVertex, TaxonEdge] = (
            UndirectedSparseGraph()
        )
        self._vertices_by_id: Dict[int, TaxonVertex] = {}
        self._edge_index: Dict[Tuple[int, int], TaxonEdge] = {}

    # ------------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------------
    @classmethod
    def build_from(
        cls,
        taxa: Sequence[TaxonNode],
        correlation: NDArray[np.float64],
        p_values: NDArray[np.float64],
        max_relative_frequencies: Optional[Mapping[TaxonNode, float]] = None,
        config: Optional[AnalysisConfig] = None,
    ) -> TaxonNetwork:
        """
        Build the complete network: one vertex per taxon and one edge per
        unordered taxon pair, weighted from the aligned matrices.

        Raises:
            ValueError: If the matrices are not square with one row per taxon.
        """
        n = len(taxa)
        correlation = np.asarray(correlation, dtype=float)
        p_values = np.asarray(p_values, dtype=float)
        if correlation.shape != (n, n) or p_values.shape != (n, n):
            raise ValueError(
                f"Matrices of shape {correlation.shape} and {p_values.shape} "
                f"do not match {n} taxa"
            )

        network = cls(max_relative_frequencies, config)
        vertices = [TaxonVertex(taxon) for taxon in taxa]
        for vertex in vertices:
            if not network.add_vertex(vertex):
                raise ValueError(f"Taxon {vertex.taxon_id} occurs twice in the taxon list")

        for i in range(n):
            for j in range(i + 1, n):
                edge = TaxonEdge(
                    vertices[i], vertices[j], correlation[i, j], p_values[i, j]
                )
                network.add_edge(edge)

        logger.debug(
            "Built network with %d vertices and %d edges",
            network.vertex_count,
            network.edge_count,
        )
        return network

    def add_vertex(self, vertex: Optional[TaxonVertex]) -> bool:
        """Add ``vertex``; fails for ``None`` or a taxon that already has a vertex."""
        if vertex is None or vertex.taxon_id in self._vertices_by_id:
            return False
        self._graph.add_vertex(vertex)
        self._vertices_by_id[vertex.taxon_id] = vertex
        return True

    def add_edge(self, edge: Optional[TaxonEdge]) -> bool:
        """
        Add ``edge`` between its endpoints.

        Unknown endpoints are added first. Fails, leaving the network
        unchanged, for ``None``, a self loop, an endpoint whose taxon is
        already represented by another vertex object, or a taxon pair that
        already has an edge.
        """
        if edge is None or edge.first.taxon_id == edge.second.taxon_id:
            return False
        if edge.pair in self._edge_index:
            return False
        for endpoint in (edge.first, edge.second):
            registered = self._vertices_by_id.get(endpoint.taxon_id)
            if registered is not None and registered is not endpoint:
                return False

        self.add_vertex(edge.first)
        self.add_vertex(edge.second)
        if not self._graph.add_edge(edge, edge.first, edge.second):
            return False
        self._edge_index[edge.pair] = edge
        return True

    def connect(
        self, first: TaxonKey, second: TaxonKey, correlation: float, p_value: float
    ) -> Optional[TaxonEdge]:
        """Create an edge between two existing vertices; ``None`` if it cannot be added."""
        first_vertex = self.vertex_for(first)
        second_vertex = self.vertex_for(second)
        if first_vertex is None or second_vertex is None:
            return None
        edge = TaxonEdge(first_vertex, second_vertex, correlation, p_value)
        return edge if self.add_edge(edge) else None

    def remove_edge(self, edge: TaxonEdge) -> bool:
        if not self._graph.remove_edge(edge):
            return False
        del self._edge_index[edge.pair]
        return True

    def remove_vertex(self, vertex: TaxonVertex) -> bool:
        """Remove ``vertex`` together with all of its incident edges."""
        if self._vertices_by_id.get(vertex.taxon_id) is not vertex:
            return False
        for edge in self._graph.incident_edges(vertex):
            self.remove_edge(edge)
        self._graph.remove_vertex(vertex)
        del self._vertices_by_id[vertex.taxon_id]
        return True

    # ------------------------------------------------------------------------
    # Structure queries
    # ------------------------------------------------------------------------
    @property
    def vertices(self) -> List[TaxonVertex]:
        return self._graph.vertices

    @property
    def edges(self) -> List[TaxonEdge]:
        return self._graph.edges

    @property
    def vertex_count(self) -> int:
        return self._graph.vertex_count

    @property
    def edge_count(self) -> int:
        return self._graph.edge_count

    def vertex_for(self, taxon: TaxonKey) -> Optional[TaxonVertex]:
        taxon_id = taxon.taxon_id if isinstance(taxon, TaxonNode) else int(taxon)
        return self._vertices_by_id.get(taxon_id)

    def edge_between(self, first: TaxonKey, second: TaxonKey) -> Optional[TaxonEdge]:
        first_id = first.taxon_id if isinstance(first, TaxonNode) else int(first)
        second_id = second.taxon_id if isinstance(second, TaxonNode) else int(second)
        return self._edge_index.get(canonical_pair(first_id, second_id))

    def neighbors(self, vertex: TaxonVertex) -> List[TaxonVertex]:
        return self._graph.neighbors(vertex)

    def incident_edges(self, vertex: TaxonVertex) -> List[TaxonEdge]:
        return self._graph.incident_edges(vertex)

    def degree(self, vertex: TaxonVertex) -> int:
        return self._graph.degree(vertex)

    def visible_degree(self, vertex: TaxonVertex) -> int:
        return sum(1 for edge in self._graph.incident_edges(vertex) if not edge.is_hidden)

    # ------------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------------
    def recompute_visibility(self, filter_state: FilterState) -> None:
        """
        Recompute edge, vertex and hub state from ``filter_state``.

        Runs the threshold pass before the frequency pass so that culling
        by frequency is never undone by the threshold pass. Never fails:
        inverted or out-of-domain thresholds just hide everything.
        """
        self.apply_edge_thresholds(filter_state)
        self.apply_frequency_range(filter_state)
        degrees = self._update_vertex_visibility(filter_state)
        self._update_hubs(degrees)
        logger.debug(
            "Visibility recomputed: %d/%d vertices, %d/%d edges visible",
            sum(1 for v in self.vertices if not v.is_hidden),
            self.vertex_count,
            sum(1 for e in self.edges if not e.is_hidden),
            self.edge_count,
        )

    def apply_edge_thresholds(self, filter_state: FilterState) -> None:
        """Set every edge's visibility from the correlation and p-value thresholds."""
        low = filter_state.min_correlation
        high = filter_state.max_correlation
        max_p = filter_state.max_p_value
        for edge in self._graph.edges:
            edge.is_hidden = (
                not edge.is_finite()
                or edge.correlation < low
                or edge.correlation > high
                or edge.p_value > max_p
            )

    def apply_frequency_range(self, filter_state: FilterState) -> None:
        """
        Hide every edge incident to a vertex whose maximum relative frequency
        lies outside the frequency range.

        Only ever hides edges, so it must follow ``apply_edge_thresholds``.
        """
        for vertex in self._graph.vertices:
            if not self._in_frequency_range(vertex, filter_state):
                for edge in self._graph.incident_edges(vertex):
                    edge.is_hidden = True

    def _in_frequency_range(self, vertex: TaxonVertex, filter_state: FilterState) -> bool:
        frequency = self.max_relative_frequencies.get(vertex.taxon, 0.0)
        return filter_state.min_frequency <= frequency <= filter_state.max_frequency

    def _update_vertex_visibility(self, filter_state: FilterState) -> Dict[TaxonVertex, int]:
        degrees: Dict[TaxonVertex, int] = {}
        show_unconnected = self.config.show_unconnected_vertices
        for vertex in self._graph.vertices:
            visible = self.visible_degree(vertex)
            degrees[vertex] = visible
            if visible > 0:
                vertex.is_hidden = False
            elif show_unconnected and self._graph.degree(vertex) == 0:
                vertex.is_hidden = not self._in_frequency_range(vertex, filter_state)
            else:
                vertex.is_hidden = True
        return degrees

    def _update_hubs(self, degrees: Dict[TaxonVertex, int]) -> None:
        for vertex in degrees:
            vertex.is_hub = False
        candidates = [v for v, d in degrees.items() if not v.is_hidden and d > 0]
        if not candidates:
            return

        if self.config.hub_policy is HubPolicy.TOP_K:
            ranked = sorted(candidates, key=lambda v: (-degrees[v], v.taxon_id))
            hubs = ranked[: self.config.hub_top_k]
        else:
            visible = [v for v in degrees if not v.is_hidden]
            mean_degree = sum(degrees[v] for v in visible) / len(visible)
            hubs = [v for v in candidates if degrees[v] > mean_degree]

        for vertex in hubs:
            vertex.is_hub = True

    # ------------------------------------------------------------------------
    # Visible views
    # ------------------------------------------------------------------------
    def visible_vertices(self) -> List[TaxonVertex]:
        return sorted(
            (v for v in self._graph.vertices if not v.is_hidden),
            key=lambda v: v.taxon_id,
        )

    def visible_edges(self) -> List[TaxonEdge]:
        return sorted(
            (e for e in self._graph.edges if not e.is_hidden), key=lambda e: e.pair
        )

    def hubs(self) -> List[TaxonVertex]:
        return [v for v in self.visible_vertices() if v.is_hub]

    def __repr__(self) -> str:
        return f"TaxonNetwork(vertices={self.vertex_count}, edges={self.edge_count})"
