"""
Graph construction for relationship network analysis.

Builds an undirected, weighted NetworkX graph from pairwise transaction
aggregates and provides an index-based view of that graph for the numeric
and traversal algorithms.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List

import networkx as nx

logger = logging.getLogger(__name__)


@dataclass
class IndexedGraph:
    """
    Integer-indexed adjacency view of a graph.

    Node ``i`` is ``node_ids[i]``; ``neighbors[i]`` and ``weights[i]`` are
    parallel lists in the graph's adjacency order. Self-loops are omitted.
    """

    node_ids: List[str]
    index: Dict[str, int]
    neighbors: List[List[int]]
    weights: List[List[float]]

    def __len__(self) -> int:
        return len(self.node_ids)


def build_graph(relationships: Iterable) -> nx.Graph:
    """
    Build an undirected graph from relationship aggregates.

    Each record needs ``user_id``, ``related_user_id`` and
    ``transaction_count``. The edge weight is the transaction count; a pair
    seen twice keeps the weight of the last record, so callers must
    pre-aggregate.

    Args:
        relationships: Iterable of relationship records

    Returns:
        NetworkX Graph with a ``weight`` attribute on every edge
    """
    graph = nx.Graph()

    for rel in relationships:
        graph.add_edge(
            rel.user_id, rel.related_user_id, weight=rel.transaction_count
        )

    logger.debug(
        f"Built graph with {graph.number_of_nodes()} nodes and {graph.number_of_edges()} edges"
    )
    return graph


def index_graph(graph: nx.Graph) -> IndexedGraph:
    """Convert a graph into the integer-indexed arena used by hot loops."""
    node_ids = list(graph.nodes())
    index = {node_id: position for position, node_id in enumerate(node_ids)}
    neighbors: List[List[int]] = []
    weights: List[List[float]] = []

    for node_id in node_ids:
        node_neighbors = []
        node_weights = []
        for neighbor_id, edge_data in graph.adj[node_id].items():
            if neighbor_id == node_id:
                continue
            node_neighbors.append(index[neighbor_id])
            node_weights.append(float(edge_data.get("weight", 0) or 0))
        neighbors.append(node_neighbors)
        weights.append(node_weights)

    return IndexedGraph(
        node_ids=node_ids, index=index, neighbors=neighbors, weights=weights
    )
