"""
Circular transaction chain detection (A -> B -> C -> A).

Closed chains of three or more accounts are a classic laundering and
wash-trading signal. The search is a depth-first enumeration bounded by
``max_cycle_length``, so its exponential worst case stays tractable for graphs
of tens to low hundreds of nodes.
"""

import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

import networkx as nx

from network_analysis.cancellation import AnalysisDeadline
from network_analysis.graph_builder import IndexedGraph, index_graph
from network_analysis.models import CyclePattern
from network_analysis.thresholds import CycleThresholds, DEFAULT_THRESHOLDS


def normalize_cycle(cycle: List[str]) -> List[str]:
    """
    Rotate a cycle so that its lexicographically smallest id comes first.

    Direction is preserved: ``[A, C, B]`` and ``[A, B, C]`` stay distinct.
    """
    if not cycle:
        return []
    start = cycle.index(min(cycle))
    return cycle[start:] + cycle[:start]


class CycleDetector:
    """
    Enumerates bounded cycles and scores them by length, amount and frequency.

    Traversal runs over integer node indices with a single reusable path stack
    and a boolean on-path array.
    """

    def __init__(
        self,
        thresholds: CycleThresholds = DEFAULT_THRESHOLDS.cycle,
        logger: Optional[logging.Logger] = None,
    ):
        self.thresholds = thresholds
        self.logger = logger or logging.getLogger(__name__)

    def detect(
        self,
        graph: nx.Graph,
        relationships: Iterable,
        max_cycle_length: Optional[int] = None,
        deadline: Optional[AnalysisDeadline] = None,
    ) -> List[CyclePattern]:
        """
        Find, score and rank circular transaction chains.

        Args:
            graph: Undirected relationship graph
            relationships: Relationship records used to total each cycle's
                amount and transaction count
            max_cycle_length: Longest cycle to search for
            deadline: Optional deadline, checked once per DFS branch

        Returns:
            Up to ``result_limit`` cycles, most suspicious first
        """
        max_length = max_cycle_length or self.thresholds.max_cycle_length
        indexed = index_graph(graph)
        cycles = self._find_cycles(indexed, max_length, deadline)

        relationship_index = self._index_relationships(relationships)
        patterns = [self._analyze_cycle(cycle, relationship_index) for cycle in cycles]
        patterns.sort(key=lambda p: p.suspicion_score, reverse=True)

        self.logger.info(
            f"Found {len(cycles)} distinct cycles (max length {max_length})"
        )
        return patterns[: self.thresholds.result_limit]

    def _find_cycles(
        self,
        indexed: IndexedGraph,
        max_length: int,
        deadline: Optional[AnalysisDeadline],
    ) -> List[List[str]]:
        seen: Set[Tuple[str, ...]] = set()
        cycles: List[List[str]] = []
        path: List[int] = []
        on_path = [False] * len(indexed)

        def record() -> None:
            cycle = normalize_cycle([indexed.node_ids[i] for i in path])
            key = tuple(cycle)
            if key not in seen:
                seen.add(key)
                cycles.append(cycle)

        def search(current: int, start: int) -> None:
            if deadline is not None:
                deadline.check("cycle detection")
            for neighbor in indexed.neighbors[current]:
                if neighbor == start and len(path) >= self.thresholds.min_cycle_length:
                    record()
                elif not on_path[neighbor] and len(path) < max_length:
                    path.append(neighbor)
                    on_path[neighbor] = True
                    search(neighbor, start)
                    path.pop()
                    on_path[neighbor] = False

        for start in range(len(indexed)):
            path.append(start)
            on_path[start] = True
            search(start, start)
            path.pop()
            on_path[start] = False

        return cycles

    @staticmethod
    def _index_relationships(relationships: Iterable) -> Dict[FrozenSet[str], object]:
        """Map each unordered pair to its first relationship record."""
        index: Dict[FrozenSet[str], object] = {}
        for rel in relationships:
            index.setdefault(frozenset((rel.user_id, rel.related_user_id)), rel)
        return index

    def _analyze_cycle(
        self, cycle: List[str], relationship_index: Dict[FrozenSet[str], object]
    ) -> CyclePattern:
        t = self.thresholds
        total_amount = 0.0
        total_count = 0

        for position, source in enumerate(cycle):
            target = cycle[(position + 1) % len(cycle)]
            rel = relationship_index.get(frozenset((source, target)))
            if rel is not None:
                total_amount += float(rel.total_amount or 0)
                total_count += int(rel.transaction_count or 0)

        avg_amount = total_amount / total_count if total_count > 0 else 0.0

        reasons = []
        if len(cycle) == 3:
            score = t.triangle_score
            reasons.append("Triangular circular transactions (3 accounts)")
        elif len(cycle) == 4:
            score = t.square_score
            reasons.append("Four-account circular transactions")
        else:
            score = t.longer_cycle_score
            reasons.append(f"{len(cycle)}-account circular transactions")

        if total_amount > t.high_amount:
            score += t.high_amount_score
            reasons.append(f"High total amount in cycle ({total_amount:,.0f})")

        if total_count > t.high_count:
            score += t.high_count_score
            reasons.append(f"Frequent transactions in cycle ({total_count} transactions)")

        return CyclePattern(
            cycle=cycle,
            total_amount=total_amount,
            avg_amount=avg_amount,
            transaction_count=total_count,
            suspicion_score=score,
            reasons=reasons,
        )


def detect_cycles(
    graph: nx.Graph,
    relationships: Iterable,
    max_cycle_length: int = DEFAULT_THRESHOLDS.cycle.max_cycle_length,
    deadline: Optional[AnalysisDeadline] = None,
) -> List[CyclePattern]:
    return CycleDetector().detect(graph, relationships, max_cycle_length, deadline)
