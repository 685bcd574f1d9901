from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional, Sequence, Tuple

from taxanet.config import AnalysisConfig
from taxanet.correlation.engine import MIN_SAMPLES, CorrelationEngine, CorrelationResult
from taxanet.filter_state import FilterState
from taxanet.network.analysis import GraphAnalysis
from taxanet.network.taxon_network import TaxonNetwork
from taxanet.samples import Sample, SampleStore
from taxanet.taxonomy import TaxonHierarchy, TaxonNode

# Rank plus every analysed sample with the count version it was read at
AnalysisKey = Tuple[str, Tuple[Tuple[Sample, int], ...]]


@dataclass(frozen=True)
class NetworkSnapshot:
    """
    Consistent view of the visible network after one recompute.

    Attributes:
        visible_taxa: Taxa of visible vertices, sorted by id.
        visible_edges: ``(id, id, correlation, p_value)`` per visible edge,
            sorted by canonical pair.
        hubs: Taxa flagged as hubs.
        filter_values: Filter fields the snapshot was computed with.
    """

    visible_taxa: Tuple[TaxonNode, ...] = ()
    visible_edges: Tuple[Tuple[int, int, float, float], ...] = ()
    hubs: Tuple[TaxonNode, ...] = ()
    filter_values: Dict[str, Any] = field(default_factory=dict)


class AnalysisSession:
    """
    Owns the state of one interactive analysis: loaded samples, the filter,
    the current correlation result and the network built from it.

    All mutations and passes are serialised by a re-entrant lock. Filter
    threshold changes only recompute visibility; sample and rank changes
    rebuild the analysis (when ``auto_rebuild`` is enabled and enough
    samples are available). Editing the counts of a loaded sample marks the
    session stale without rebuilding; call ``start_analysis`` to refresh.
    """

    def __init__(
        self,
        hierarchy: TaxonHierarchy,
        store: Optional[SampleStore] = None,
        filter_state: Optional[FilterState] = None,
        config: Optional[AnalysisConfig] = None,
    ):
        self.hierarchy = hierarchy
        self.store = store if store is not None else SampleStore()
        self.filter_state = filter_state if filter_state is not None else FilterState()
        self.config = config or AnalysisConfig()
        self.engine = CorrelationEngine(hierarchy)
        self.logger = logging.getLogger(self.config.logger_name)

        self.result: Optional[CorrelationResult] = None
        self.network: Optional[TaxonNetwork] = None
        self._built_key: Optional[AnalysisKey] = None
        self._lock = threading.RLock()
        self._unsubscribe = self.filter_state.subscribe(self._on_filter_change)

    # ------------------------------------------------------------------------
    # Analysis lifecycle
    # ------------------------------------------------------------------------
    @property
    def is_stale(self) -> bool:
        """
        True when the analysed samples, their counts or the rank changed
        since the last successful build.
        """
        with self._lock:
            return self.result is None or self._built_key != self._analysis_key(
                self.store.samples_to_analyze(), self.filter_state.rank
            )

    @staticmethod
    def _analysis_key(samples: Sequence[Sample], rank: str) -> AnalysisKey:
        return rank, tuple((sample, sample.version) for sample in samples)

    def start_analysis(self) -> TaxonNetwork:
        """
        Recompute the correlation analysis and rebuild the network.

        Raises:
            InsufficientSamplesError: If fewer than three samples are to be
                analysed. The previous result and network are kept.
        """
        with self._lock:
            samples = self.store.samples_to_analyze()
            rank = self.filter_state.rank
            result = self.engine.analyze(samples, rank)
            network = TaxonNetwork.build_from(
                result.taxa,
                result.correlation,
                result.p_values,
                result.max_relative_frequencies,
                self.config,
            )
            network.recompute_visibility(self.filter_state)

            self.result = result
            self.network = network
            self._built_key = self._analysis_key(samples, rank)
            self.logger.info(
                "Analysis rebuilt at rank '%s': %d taxa, %d edges",
                rank,
                network.vertex_count,
                network.edge_count,
            )
            return network

    def recompute_visibility(self) -> None:
        with self._lock:
            if self.network is not None:
                self.network.recompute_visibility(self.filter_state)

    def update_filter(self, **fields: Any) -> FrozenSet[str]:
        """Change filter fields under the session lock and react to the change."""
        with self._lock:
            return self.filter_state.update(**fields)

    def _on_filter_change(self, state: FilterState, changed: FrozenSet[str]) -> None:
        with self._lock:
            if "rank" in changed:
                self._rebuild_if_possible()
            elif any(FilterState.is_threshold_field(name) for name in changed):
                self.recompute_visibility()

    def _rebuild_if_possible(self) -> None:
        if not self.config.auto_rebuild:
            return
        available = len(self.store.samples_to_analyze())
        if available < MIN_SAMPLES:
            self.logger.warning(
                "Keeping previous network: %d samples selected, %d needed",
                available,
                MIN_SAMPLES,
            )
            return
        self.start_analysis()

    # ------------------------------------------------------------------------
    # Sample management
    # ------------------------------------------------------------------------
    def load_sample(
        self,
        id_counts: Mapping[int, int],
        sample_id: str = "",
        metadata: Optional[Mapping[str, str]] = None,
    ) -> Sample:
        """
        Resolve parser output against the hierarchy and add it as a sample.

        Raises:
            UnknownTaxonError: If a taxon id is unknown; nothing is added.
        """
        sample = Sample.from_taxon_ids(self.hierarchy, id_counts, sample_id, metadata)
        self.add_sample(sample)
        return sample

    def add_sample(self, sample: Sample) -> bool:
        with self._lock:
            return self._after_store_change(self.store.add(sample))

    def remove_sample(self, sample: Sample) -> bool:
        with self._lock:
            return self._after_store_change(self.store.remove(sample))

    def select_sample(self, sample: Sample) -> bool:
        with self._lock:
            changed = self.store.select(sample)
            return self._after_store_change(changed and self.store.analyze_selected)

    def deselect_sample(self, sample: Sample) -> bool:
        with self._lock:
            changed = self.store.deselect(sample)
            return self._after_store_change(changed and self.store.analyze_selected)

    def set_analyze_selected(self, analyze_selected: bool) -> bool:
        with self._lock:
            before = self.store.version
            self.store.set_analyze_selected(analyze_selected)
            return self._after_store_change(self.store.version != before)

    def _after_store_change(self, changed: bool) -> bool:
        if changed:
            self._rebuild_if_possible()
        return changed

    # ------------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------------
    def snapshot(self) -> NetworkSnapshot:
        with self._lock:
            if self.network is None:
                return NetworkSnapshot(filter_values=self.filter_state.to_dict())
            return NetworkSnapshot(
                visible_taxa=tuple(v.taxon for v in self.network.visible_vertices()),
                visible_edges=tuple(
                    (*edge.pair, edge.correlation, edge.p_value)
                    for edge in self.network.visible_edges()
                ),
                hubs=tuple(v.taxon for v in self.network.hubs()),
                filter_values=self.filter_state.to_dict(),
            )

    def analysis(self) -> Optional[GraphAnalysis]:
        with self._lock:
            if self.network is None:
                return None
            return GraphAnalysis(self.network)

    def close(self) -> None:
        """Detach from the filter state."""
        self._unsubscribe()
