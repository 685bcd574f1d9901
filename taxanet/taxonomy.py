from __future__ import annotations

import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from taxanet.exceptions import MalformedHierarchyError, UnknownTaxonError

if TYPE_CHECKING:
    from taxanet.samples import Sample

logger = logging.getLogger(__name__)

TaxonRecord = Tuple[int, str, str, Optional[int]]


class Rank(str, Enum):
    SUPERKINGDOM = "superkingdom"
    KINGDOM = "kingdom"
    PHYLUM = "phylum"
    CLASS = "class"
    ORDER = "order"
    FAMILY = "family"
    GENUS = "genus"
    SPECIES = "species"


def normalize_rank(rank: Union[Rank, str]) -> str:
    """
    Return the lower-case rank name used to tag taxon nodes.

    Standard levels may be passed as ``Rank`` members; any other NCBI rank
    string (``"no rank"``, ``"subspecies"``, ...) is passed through.
    """
    if isinstance(rank, Rank):
        return rank.value
    if not isinstance(rank, str):
        raise TypeError(f"Rank must be a string or Rank, got {type(rank).__name__}")
    return rank.strip().lower()


class TaxonNode:
    """
    Node of the taxonomy tree.

    Nodes are owned by their ``TaxonHierarchy``; ``parent`` and ``children``
    are references into the same hierarchy. Identity is the taxon id.
    """

    __slots__ = ("taxon_id", "name", "rank", "parent_id", "parent", "children")

    taxon_id: int
    name: str
    rank: str
    parent_id: Optional[int]
    parent: Optional[TaxonNode]
    children: List[TaxonNode]

    def __init__(
        self,
        taxon_id: int,
        name: str = "",
        rank: Union[Rank, str] = "no rank",
        parent_id: Optional[int] = None,
    ):
        self.taxon_id = int(taxon_id)
        self.name = name
        self.rank = normalize_rank(rank)
        self.parent_id = parent_id
        self.parent = None
        self.children = []

    def is_root(self) -> bool:
        return self.parent is None

    def is_leaf(self) -> bool:
        return not self.children

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, TaxonNode):
            return NotImplemented
        return self.taxon_id == other.taxon_id

    def __hash__(self) -> int:
        return hash(self.taxon_id)

    def __lt__(self, other: TaxonNode) -> bool:
        return self.taxon_id < other.taxon_id

    def __repr__(self) -> str:
        return f"TaxonNode({self.taxon_id}, '{self.name}', '{self.rank}')"

    def to_hierarchy(self) -> Dict[str, Any]:
        return {
            "id": self.taxon_id,
            "name": self.name,
            "rank": self.rank,
            "children": [child.to_hierarchy() for child in self.children],
        }


def roll_up_counts(counts: Mapping[TaxonNode, int]) -> Dict[TaxonNode, int]:
    """
    Sum raw counts into every ancestor of each counted taxon.

    The returned mapping holds, for every node on the lineage of a counted
    taxon, its own count plus the counts of its whole subtree. Nodes absent
    from the mapping have a recursive count of 0.

    Args:
        counts: Raw per-taxon counts of one sample.

    Returns:
        Dict[TaxonNode, int]: Recursive counts keyed by node.
    """
    totals: Dict[TaxonNode, int] = {}
    for node, count in counts.items():
        current: Optional[TaxonNode] = node
        while current is not None:
            totals[current] = totals.get(current, 0) + count
            current = current.parent
    return totals


class TaxonHierarchy:
    """Immutable taxonomy tree keyed by taxon id."""

    def __init__(self, root: TaxonNode, nodes: Dict[int, TaxonNode]):
        self._root = root
        self._nodes = nodes

    # ------------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------------
    @classmethod
    def build(cls, records: Iterable[TaxonRecord]) -> TaxonHierarchy:
        """
        Build the hierarchy from ``(taxon_id, name, rank, parent_id)`` records.

        The root is the single record whose parent id is ``None`` or equal to
        its own id. Children keep the order in which records were given.

        Raises:
            MalformedHierarchyError: If there is not exactly one root, an id
                is duplicated, a parent id is missing, or the records contain
                a cycle. No partial hierarchy is returned.
        """
        nodes: Dict[int, TaxonNode] = {}
        roots: List[TaxonNode] = []

        for taxon_id, name, rank, parent_id in records:
            node = TaxonNode(taxon_id, name, rank, parent_id)
            if node.taxon_id in nodes:
                raise MalformedHierarchyError(
                    f"Duplicate taxon id {node.taxon_id} in hierarchy records"
                )
            nodes[node.taxon_id] = node
            if parent_id is None or int(parent_id) == node.taxon_id:
                node.parent_id = None
                roots.append(node)
            else:
                node.parent_id = int(parent_id)

        if not roots:
            raise MalformedHierarchyError("Hierarchy records contain no root")
        if len(roots) > 1:
            root_ids = sorted(r.taxon_id for r in roots)
            raise MalformedHierarchyError(
                f"Hierarchy records contain {len(roots)} roots: {root_ids[:10]}"
            )

        for node in nodes.values():
            if node.parent_id is None:
                continue
            parent = nodes.get(node.parent_id)
            if parent is None:
                raise MalformedHierarchyError(
                    f"Parent id {node.parent_id} of taxon {node.taxon_id} "
                    f"is not part of the hierarchy"
                )
            node.parent = parent
            parent.children.append(node)

        root = roots[0]
        reachable = sum(1 for _ in _iter_subtree(root))
        if reachable != len(nodes):
            # Every node has a parent, so unreachable nodes sit on a cycle
            reached = {n.taxon_id for n in _iter_subtree(root)}
            cyclic = sorted(set(nodes) - reached)
            logger.error(
                "Taxonomy contains %d nodes unreachable from root %d",
                len(cyclic),
                root.taxon_id,
            )
            raise MalformedHierarchyError(
                f"Cycle detected among taxon ids {cyclic[:10]}"
            )

        logger.info(
            "Built taxonomy with %d nodes rooted at %d", len(nodes), root.taxon_id
        )
        return cls(root, nodes)

    # ------------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------------
    @property
    def root(self) -> TaxonNode:
        return self._root

    def lookup(self, taxon_id: int) -> TaxonNode:
        """
        Return the node for ``taxon_id``.

        Raises:
            UnknownTaxonError: If the id is not part of the hierarchy.
        """
        node = self._nodes.get(taxon_id)
        if node is None:
            raise UnknownTaxonError(taxon_id)
        return node

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, item: Any) -> bool:
        if isinstance(item, TaxonNode):
            return self._nodes.get(item.taxon_id) is item
        return item in self._nodes

    def __iter__(self) -> Iterator[TaxonNode]:
        return iter(self._nodes.values())

    def traverse(self, node: Optional[TaxonNode] = None) -> List[TaxonNode]:
        """Return the subtree rooted at ``node`` (default: root) in pre-order."""
        return list(_iter_subtree(node if node is not None else self._root))

    def nodes_at_rank(self, rank: Union[Rank, str]) -> List[TaxonNode]:
        rank_name = normalize_rank(rank)
        return sorted(n for n in self._nodes.values() if n.rank == rank_name)

    def lineage(self, node: TaxonNode) -> List[TaxonNode]:
        """Return the path from the root down to ``node`` (both included)."""
        path: List[TaxonNode] = []
        current: Optional[TaxonNode] = node
        while current is not None:
            path.append(current)
            current = current.parent
        return path[::-1]

    def ancestor_at_rank(
        self, node: TaxonNode, rank: Union[Rank, str]
    ) -> Optional[TaxonNode]:
        """Return the closest node at ``rank`` on the lineage of ``node``, itself included."""
        rank_name = normalize_rank(rank)
        current: Optional[TaxonNode] = node
        while current is not None:
            if current.rank == rank_name:
                return current
            current = current.parent
        return None

    # ------------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------------
    def recursive_count(self, sample: Sample, node: TaxonNode) -> int:
        """
        Return the count of ``node`` in ``sample`` plus the counts of all its
        descendants.

        The per-node totals of a sample are computed once and cached on the
        sample until its counts change.

        Raises:
            UnknownTaxonError: If ``node`` does not belong to this hierarchy.
        """
        if node not in self:
            raise UnknownTaxonError(node.taxon_id)
        return sample.rolled_up_counts().get(node, 0)

    def to_hierarchy(self) -> Dict[str, Any]:
        return self._root.to_hierarchy()


def _iter_subtree(node: TaxonNode) -> Iterator[TaxonNode]:
    # Iterative so that deep taxonomies do not hit the recursion limit
    stack: List[TaxonNode] = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def load_hierarchy_in_background(
    records_source: Union[Callable[[], Iterable[TaxonRecord]], Iterable[TaxonRecord]],
    executor: Optional[Executor] = None,
) -> Future[TaxonHierarchy]:
    """
    Build a hierarchy off the calling thread.

    Args:
        records_source: Records, or a callable producing them (e.g. a parser
            reading a taxonomy dump), evaluated inside the worker.
        executor: Executor to run on. A single-worker thread pool is used
            when omitted.

    Returns:
        Future[TaxonHierarchy]: Resolves to the hierarchy or raises the
        build error.
    """

    def _load() -> TaxonHierarchy:
        records = records_source() if callable(records_source) else records_source
        return TaxonHierarchy.build(records)

    if executor is not None:
        return executor.submit(_load)

    own_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="taxonomy")
    try:
        return own_executor.submit(_load)
    finally:
        own_executor.shutdown(wait=False)
