"""
Community detection for relationship networks.

This is a single-level greedy local-move pass, not the multi-level Louvain
method: there is no graph aggregation or refinement step, and the reported
``modularity`` is a local density ratio ``internal / (internal + external)``
rather than the global modularity Q. It produces fraud signals, not an optimal
partition.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

import networkx as nx

from network_analysis.cancellation import AnalysisDeadline
from network_analysis.models import Community
from network_analysis.thresholds import CommunityThresholds, DEFAULT_THRESHOLDS


class CommunityDetector:
    """
    Groups tightly connected accounts and scores each group for suspicion.

    Every node starts in its own community. On each pass a node moves to the
    neighboring community it is most strongly tied to, provided that tie
    outweighs its tie to the rest of its current community.
    """

    def __init__(
        self,
        thresholds: CommunityThresholds = DEFAULT_THRESHOLDS.community,
        logger: Optional[logging.Logger] = None,
    ):
        self.thresholds = thresholds
        self.logger = logger or logging.getLogger(__name__)

    def detect(
        self, graph: nx.Graph, deadline: Optional[AnalysisDeadline] = None
    ) -> List[Community]:
        """
        Partition the graph and return scored communities.

        Args:
            graph: Undirected relationship graph with ``weight`` on edges
            deadline: Optional deadline, checked once per pass

        Returns:
            Communities with at least ``min_members`` members, most suspicious first
        """
        assignment = self._assign_communities(graph, deadline)

        groups: Dict[int, List[str]] = defaultdict(list)
        for node, community_id in assignment.items():
            groups[community_id].append(node)

        communities = []
        for community_id, members in groups.items():
            if len(members) < self.thresholds.min_members:
                continue

            internal, external, modularity = self._community_stats(graph, members)
            score, reasons = self._score_community(members, internal, external, modularity)
            communities.append(
                Community(
                    community_id=community_id,
                    members=members,
                    internal_edges=internal,
                    external_edges=external,
                    modularity=modularity,
                    suspicion_score=score,
                    reasons=reasons,
                )
            )

        communities.sort(key=lambda c: c.suspicion_score, reverse=True)
        self.logger.info(
            f"Detected {len(communities)} communities across {graph.number_of_nodes()} nodes"
        )
        return communities

    def _assign_communities(
        self, graph: nx.Graph, deadline: Optional[AnalysisDeadline]
    ) -> Dict[str, int]:
        nodes = list(graph.nodes())
        assignment = {node: position for position, node in enumerate(nodes)}

        for pass_number in range(self.thresholds.max_passes):
            if deadline is not None:
                deadline.check("community detection")

            moved = False
            for node in nodes:
                current = assignment[node]
                weight_by_community = self._weights_by_community(graph, node, assignment)
                current_weight = weight_by_community.pop(current, 0.0)

                best_community = current
                best_gain = 0.0
                for community_id, weight in weight_by_community.items():
                    gain = weight - current_weight
                    if gain > best_gain:
                        best_gain = gain
                        best_community = community_id

                if best_community != current:
                    assignment[node] = best_community
                    moved = True

            if not moved:
                self.logger.debug(f"Community assignment stable after {pass_number + 1} passes")
                break

        return assignment

    @staticmethod
    def _weights_by_community(
        graph: nx.Graph, node: str, assignment: Dict[str, int]
    ) -> Dict[int, float]:
        """Edge weight from ``node`` into each adjacent community, in adjacency order."""
        weights: Dict[int, float] = {}
        for neighbor, edge_data in graph.adj[node].items():
            if neighbor == node:
                continue
            community_id = assignment[neighbor]
            weights[community_id] = weights.get(community_id, 0.0) + float(
                edge_data.get("weight", 0) or 0
            )
        return weights

    @staticmethod
    def _community_stats(
        graph: nx.Graph, members: List[str]
    ) -> Tuple[float, float, float]:
        member_set = set(members)
        internal = 0.0
        external = 0.0

        for member in members:
            for neighbor, edge_data in graph.adj[member].items():
                if neighbor == member:
                    continue
                weight = float(edge_data.get("weight", 0) or 0)
                if neighbor in member_set:
                    internal += weight
                else:
                    external += weight

        # every internal edge was seen from both endpoints
        internal = internal / 2
        total = internal + external
        modularity = internal / total if total > 0 else 0.0
        return internal, external, modularity

    def _score_community(
        self, members: List[str], internal: float, external: float, modularity: float
    ) -> Tuple[int, List[str]]:
        t = self.thresholds
        size = len(members)
        score = 0
        reasons = []

        if modularity > t.high_modularity and size >= t.high_modularity_min_members:
            score += t.high_modularity_score
            reasons.append(
                f"Extremely tight internal connections (density: {modularity * 100:.1f}%)"
            )

        if t.suspicious_size_min <= size <= t.suspicious_size_max:
            score += t.suspicious_size_score
            reasons.append(f"Group size typical of coordinated accounts ({size} accounts)")

        avg_internal = internal / size if size > 0 else 0.0
        if avg_internal > t.dense_internal_per_member:
            score += t.dense_internal_score
            reasons.append(
                f"Frequent internal transactions ({avg_internal:.1f} per member)"
            )

        total = internal + external
        if total > 0:
            external_ratio = external / total
            if external_ratio < t.closed_group_external_ratio:
                score += t.closed_group_score
                reasons.append(
                    f"Few transactions outside the group (only {external_ratio * 100:.1f}%)"
                )

        return score, reasons


def detect_communities(
    graph: nx.Graph, deadline: Optional[AnalysisDeadline] = None
) -> List[Community]:
    return CommunityDetector().detect(graph, deadline)
