from dataclasses import dataclass
from enum import Enum


class HubPolicy(Enum):
    ABOVE_MEAN = "above_mean"
    TOP_K = "top_k"


@dataclass
class AnalysisConfig:
    """Configuration for an analysis session and the networks it builds."""

    # Show vertices that have no edge at all in the full network
    show_unconnected_vertices: bool = False
    hub_policy: HubPolicy = HubPolicy.ABOVE_MEAN
    hub_top_k: int = 5
    # Rebuild automatically when samples or the rank change
    auto_rebuild: bool = True
    logger_name: str = "taxanet.session"

    def __post_init__(self) -> None:
        if isinstance(self.hub_policy, str):
            self.hub_policy = HubPolicy(self.hub_policy)
        if self.hub_top_k < 0:
            raise ValueError(f"hub_top_k must be non-negative, got {self.hub_top_k}")
