"""Sparse undirected graph with at most one edge per vertex pair."""

from __future__ import annotations

from typing import Dict, Generic, Hashable, List, Optional, Tuple, TypeVar

V = TypeVar("V", bound=Hashable)
E = TypeVar("E", bound=Hashable)


class UndirectedSparseGraph(Generic[V, E]):
    """
    Adjacency-map graph.

    ``_adjacency`` maps each vertex to a ``{neighbour: edge}`` map, and
    ``_endpoints`` maps each edge to its vertex pair. Both directions of an
    undirected edge resolve to the same edge object. Insertion methods
    return ``False`` instead of raising when the element is ``None`` or
    already present.
    """

    def __init__(self) -> None:
        self._adjacency: Dict[V, Dict[V, E]] = {}
        self._endpoints: Dict[E, Tuple[V, V]] = {}

    # ------------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------------
    def add_vertex(self, vertex: Optional[V]) -> bool:
        if vertex is None or vertex in self._adjacency:
            return False
        self._adjacency[vertex] = {}
        return True

    def add_edge(self, edge: Optional[E], first: Optional[V], second: Optional[V]) -> bool:
        """
        Connect ``first`` and ``second`` with ``edge``.

        Missing endpoints are added. Fails for ``None`` arguments, self
        loops, an edge object already in the graph, or a pair that is
        already connected; the existing edge is left untouched.
        """
        if edge is None or first is None or second is None:
            return False
        if first == second or edge in self._endpoints:
            return False
        if self.find_edge(first, second) is not None:
            return False

        self.add_vertex(first)
        self.add_vertex(second)
        self._endpoints[edge] = (first, second)
        self._adjacency[first][second] = edge
        self._adjacency[second][first] = edge
        return True

    def remove_edge(self, edge: E) -> bool:
        endpoints = self._endpoints.pop(edge, None)
        if endpoints is None:
            return False
        first, second = endpoints
        del self._adjacency[first][second]
        del self._adjacency[second][first]
        return True

    def remove_vertex(self, vertex: V) -> bool:
        """Remove ``vertex`` after removing every incident edge."""
        if vertex not in self._adjacency:
            return False
        for edge in list(self._adjacency[vertex].values()):
            self.remove_edge(edge)
        del self._adjacency[vertex]
        return True

    # ------------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------------
    def contains_vertex(self, vertex: V) -> bool:
        return vertex in self._adjacency

    def contains_edge(self, edge: E) -> bool:
        return edge in self._endpoints

    def find_edge(self, first: V, second: V) -> Optional[E]:
        if first not in self._adjacency or second not in self._adjacency:
            return None
        return self._adjacency[first].get(second)

    def endpoints(self, edge: E) -> Optional[Tuple[V, V]]:
        return self._endpoints.get(edge)

    def neighbors(self, vertex: V) -> List[V]:
        if vertex not in self._adjacency:
            return []
        return list(self._adjacency[vertex])

    def incident_edges(self, vertex: V) -> List[E]:
        if vertex not in self._adjacency:
            return []
        return list(self._adjacency[vertex].values())

    def degree(self, vertex: V) -> int:
        return len(self._adjacency.get(vertex, ()))

    @property
    def vertices(self) -> List[V]:
        return list(self._adjacency)

    @property
    def edges(self) -> List[E]:
        return list(self._endpoints)

    @property
    def vertex_count(self) -> int:
        return len(self._adjacency)

    @property
    def edge_count(self) -> int:
        return len(self._endpoints)
