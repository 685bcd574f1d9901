from __future__ import annotations

import logging
from numbers import Integral
from typing import Dict, Iterator, List, Mapping, Optional

from taxanet.taxonomy import TaxonHierarchy, TaxonNode, roll_up_counts

logger = logging.getLogger(__name__)


class Sample:
    """
    Raw taxon counts of one sample plus opaque metadata.

    Counts are non-negative integers keyed by ``TaxonNode``. Recursive
    (rolled-up) counts are cached and dropped on every count change, and
    ``version`` increases so that analyses built from the sample can tell
    they are stale.
    """

    def __init__(
        self,
        sample_id: str = "",
        counts: Optional[Mapping[TaxonNode, int]] = None,
        metadata: Optional[Mapping[str, str]] = None,
    ):
        self.sample_id = sample_id
        self.metadata: Dict[str, str] = dict(metadata) if metadata else {}
        self._counts: Dict[TaxonNode, int] = {}
        self._rollup_cache: Optional[Dict[TaxonNode, int]] = None
        self.version = 0
        for node, count in (counts or {}).items():
            self.set_count(node, count)

    @classmethod
    def from_taxon_ids(
        cls,
        hierarchy: TaxonHierarchy,
        id_counts: Mapping[int, int],
        sample_id: str = "",
        metadata: Optional[Mapping[str, str]] = None,
    ) -> Sample:
        """
        Create a sample from parser output keyed by taxon id.

        Raises:
            UnknownTaxonError: If an id is not part of ``hierarchy``. No
                sample is created in that case.
            ValueError: If a count is negative or not an integer.
        """
        resolved = {hierarchy.lookup(int(tid)): count for tid, count in id_counts.items()}
        return cls(sample_id=sample_id, counts=resolved, metadata=metadata)

    # ------------------------------------------------------------------------
    # Counts
    # ------------------------------------------------------------------------
    def set_count(self, node: TaxonNode, count: int) -> None:
        if isinstance(count, bool) or not isinstance(count, Integral):
            raise ValueError(
                f"Count for taxon {node.taxon_id} must be an integer, got {count!r}"
            )
        if count < 0:
            raise ValueError(
                f"Count for taxon {node.taxon_id} must be non-negative, got {count}"
            )
        self._counts[node] = int(count)
        self._rollup_cache = None
        self.version += 1

    def remove_taxon(self, node: TaxonNode) -> bool:
        if node not in self._counts:
            return False
        del self._counts[node]
        self._rollup_cache = None
        self.version += 1
        return True

    def count(self, node: TaxonNode) -> int:
        return self._counts.get(node, 0)

    @property
    def counts(self) -> Mapping[TaxonNode, int]:
        return dict(self._counts)

    @property
    def taxa(self) -> List[TaxonNode]:
        return list(self._counts)

    @property
    def total_count(self) -> int:
        return sum(self._counts.values())

    def rolled_up_counts(self) -> Dict[TaxonNode, int]:
        """Return the cached recursive counts of every node with a counted descendant."""
        if self._rollup_cache is None:
            self._rollup_cache = roll_up_counts(self._counts)
        return self._rollup_cache

    def __len__(self) -> int:
        return len(self._counts)

    def __repr__(self) -> str:
        return f"Sample('{self.sample_id}', taxa={len(self._counts)})"


class SampleStore:
    """
    Ordered collection of loaded samples with an optional selection.

    ``version`` increases on every mutation so dependants can tell that
    analysis results derived from the store are stale.
    """

    def __init__(self, samples: Optional[List[Sample]] = None):
        self._samples: List[Sample] = []
        self._selected: List[Sample] = []
        self.analyze_selected = False
        self.version = 0
        for sample in samples or []:
            self.add(sample)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    def __contains__(self, sample: object) -> bool:
        return any(s is sample for s in self._samples)

    @property
    def samples(self) -> List[Sample]:
        return list(self._samples)

    @property
    def selected(self) -> List[Sample]:
        return list(self._selected)

    def add(self, sample: Sample) -> bool:
        if sample in self:
            return False
        self._samples.append(sample)
        self._touch()
        logger.debug("Added sample %r (%d loaded)", sample.sample_id, len(self))
        return True

    def remove(self, sample: Sample) -> bool:
        if sample not in self:
            return False
        self._samples = [s for s in self._samples if s is not sample]
        self._selected = [s for s in self._selected if s is not sample]
        self._touch()
        return True

    def select(self, sample: Sample) -> bool:
        if sample not in self:
            raise ValueError(f"Sample {sample.sample_id!r} is not part of the store")
        if any(s is sample for s in self._selected):
            return False
        self._selected.append(sample)
        self._touch()
        return True

    def deselect(self, sample: Sample) -> bool:
        if not any(s is sample for s in self._selected):
            return False
        self._selected = [s for s in self._selected if s is not sample]
        self._touch()
        return True

    def clear_selection(self) -> None:
        if self._selected:
            self._selected = []
            self._touch()

    def set_analyze_selected(self, analyze_selected: bool) -> None:
        if self.analyze_selected != analyze_selected:
            self.analyze_selected = analyze_selected
            self._touch()

    def samples_to_analyze(self) -> List[Sample]:
        """Return the selected samples in selection mode, otherwise all samples."""
        if self.analyze_selected:
            # Keep load order so results do not depend on click order
            return [s for s in self._samples if any(s is t for t in self._selected)]
        return list(self._samples)

    def _touch(self) -> None:
        self.version += 1
