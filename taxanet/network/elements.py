from __future__ import annotations

import math
from typing import Optional, Tuple

from taxanet.taxonomy import TaxonNode


def canonical_pair(first_id: int, second_id: int) -> Tuple[int, int]:
    """Return the taxon id pair with the smaller id first."""
    return (first_id, second_id) if first_id <= second_id else (second_id, first_id)


class TaxonVertex:
    """
    Network vertex wrapping a taxon.

    ``is_hidden`` and ``is_hub`` are derived by the visibility pass;
    ``is_selected`` and the coordinates belong to the presentation layer.
    """

    __slots__ = ("taxon", "is_hidden", "is_hub", "is_selected", "x", "y")

    def __init__(self, taxon: TaxonNode):
        self.taxon = taxon
        self.is_hidden = False
        self.is_hub = False
        self.is_selected = False
        self.x: Optional[float] = None
        self.y: Optional[float] = None

    @property
    def taxon_id(self) -> int:
        return self.taxon.taxon_id

    @property
    def name(self) -> str:
        return self.taxon.name

    def __repr__(self) -> str:
        return f"TaxonVertex({self.taxon_id}, '{self.name}')"


class TaxonEdge:
    """Correlation edge between two taxon vertices."""

    __slots__ = ("first", "second", "correlation", "p_value", "is_hidden")

    def __init__(
        self,
        first: TaxonVertex,
        second: TaxonVertex,
        correlation: float,
        p_value: float,
    ):
        self.first = first
        self.second = second
        self.correlation = float(correlation)
        self.p_value = float(p_value)
        self.is_hidden = False

    @property
    def pair(self) -> Tuple[int, int]:
        return canonical_pair(self.first.taxon_id, self.second.taxon_id)

    def other(self, vertex: TaxonVertex) -> TaxonVertex:
        if vertex is self.first:
            return self.second
        if vertex is self.second:
            return self.first
        raise ValueError(f"{vertex!r} is not an endpoint of {self!r}")

    def is_finite(self) -> bool:
        return math.isfinite(self.correlation) and math.isfinite(self.p_value)

    def __repr__(self) -> str:
        return (
            f"TaxonEdge({self.first.taxon_id}-{self.second.taxon_id}, "
            f"r={self.correlation:.3f}, p={self.p_value:.3g})"
        )
