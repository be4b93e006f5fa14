"""
PageRank centrality for relationship networks.

Uses plain power iteration with a fixed number of iterations rather than a
convergence threshold, so the cost and the result for a given snapshot are
always the same regardless of topology.
"""

import logging
from typing import Dict, List, Optional

import networkx as nx
import numpy as np

from network_analysis.cancellation import AnalysisDeadline
from network_analysis.graph_builder import index_graph
from network_analysis.models import KeyNode
from network_analysis.thresholds import DEFAULT_THRESHOLDS, PageRankThresholds


class PageRankEngine:
    """
    Fixed-iteration PageRank over an undirected relationship graph.

    Every neighbor counts as an incoming link. A node's out-degree is the
    number of distinct neighbors other than itself, so self-loops neither
    feed a node's own rank nor dilute what it passes on.
    """

    def __init__(
        self,
        thresholds: PageRankThresholds = DEFAULT_THRESHOLDS.pagerank,
        logger: Optional[logging.Logger] = None,
    ):
        self.thresholds = thresholds
        self.logger = logger or logging.getLogger(__name__)

    def calculate(
        self, graph: nx.Graph, deadline: Optional[AnalysisDeadline] = None
    ) -> Dict[str, float]:
        """
        Calculate PageRank for every node in the graph.

        Args:
            graph: Undirected relationship graph
            deadline: Optional deadline, checked once per iteration

        Returns:
            Mapping of node id to rank; ranks sum to 1. Empty for an empty graph.
        """
        indexed = index_graph(graph)
        n = len(indexed)
        if n == 0:
            return {}

        damping = self.thresholds.damping_factor
        adjacency = np.zeros((n, n), dtype=float)
        for source, neighbors in enumerate(indexed.neighbors):
            if neighbors:
                adjacency[source, neighbors] = 1.0

        out_degree = adjacency.sum(axis=1)
        inverse_degree = np.divide(
            1.0, out_degree, out=np.zeros(n, dtype=float), where=out_degree > 0
        )

        ranks = np.full(n, 1.0 / n, dtype=float)
        base = (1.0 - damping) / n

        for _ in range(self.thresholds.iterations):
            if deadline is not None:
                deadline.check("pagerank")
            ranks = base + damping * adjacency.T.dot(ranks * inverse_degree)

        total = ranks.sum()
        if np.isfinite(total) and total > 0:
            ranks = ranks / total

        self.logger.debug(f"PageRank computed for {n} nodes")
        return {node_id: float(ranks[i]) for i, node_id in enumerate(indexed.node_ids)}

    def key_nodes(
        self, scores: Dict[str, float], limit: Optional[int] = None
    ) -> List[KeyNode]:
        """Top nodes by rank; equal ranks keep graph insertion order."""
        limit = self.thresholds.key_node_limit if limit is None else limit
        ordered = sorted(scores.items(), key=lambda item: item[1], reverse=True)
        return [
            KeyNode(user_id=user_id, pagerank=rank, rank=position + 1)
            for position, (user_id, rank) in enumerate(ordered[:limit])
        ]


def calculate_pagerank(
    graph: nx.Graph,
    iterations: int = DEFAULT_THRESHOLDS.pagerank.iterations,
    damping_factor: float = DEFAULT_THRESHOLDS.pagerank.damping_factor,
    deadline: Optional[AnalysisDeadline] = None,
) -> Dict[str, float]:
    thresholds = PageRankThresholds(
        damping_factor=damping_factor,
        iterations=iterations,
        key_node_limit=DEFAULT_THRESHOLDS.pagerank.key_node_limit,
    )
    return PageRankEngine(thresholds).calculate(graph, deadline)
