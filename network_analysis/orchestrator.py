"""
Relationship network analysis orchestration.

Fetches a snapshot of transaction aggregates for one target account through
the data provider, then runs every analysis component over it and assembles a
single RelationshipNetwork. Provider calls are the only awaits; the graph
computations run in a worker thread under an AnalysisDeadline so a slow or
pathological analysis cannot block the event loop.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from network_analysis.cancellation import AnalysisDeadline
from network_analysis.community_detector import CommunityDetector
from network_analysis.cycle_detector import CycleDetector
from network_analysis.exceptions import DataProviderError
from network_analysis.graph_builder import build_graph
from network_analysis.guild_correlation_analyzer import GuildCorrelationAnalyzer
from network_analysis.models import (
    DirectionalFlow,
    GuildActivity,
    GuildCorrelation,
    NetworkStats,
    RelationshipAggregate,
    RelationshipNetwork,
    UserRelationship,
)
from network_analysis.pagerank import PageRankEngine
from network_analysis.provider import RelationshipDataProvider, guarded_fetch
from network_analysis.relationship_strength import score_relationship, to_utc
from network_analysis.suspicious_cluster_detector import SuspiciousClusterDetector
from network_analysis.thresholds import DEFAULT_THRESHOLDS, DetectionThresholds


class NetworkAnalysisOrchestrator:
    """
    Composes graph building, PageRank, community detection, cycle detection,
    rule-based clusters and guild correlations into one result.
    """

    def __init__(
        self,
        provider: Optional[RelationshipDataProvider] = None,
        thresholds: DetectionThresholds = DEFAULT_THRESHOLDS,
        timeout_seconds: Optional[float] = None,
        max_cycle_length: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            provider: Data provider for snapshots; only needed by ``analyze``
            thresholds: Detection threshold contract
            timeout_seconds: Per-analysis deadline, None for no deadline
            max_cycle_length: Overrides the threshold contract's cycle length
            logger: Optional logger for debugging and monitoring
        """
        if max_cycle_length is not None:
            thresholds = replace(
                thresholds, cycle=replace(thresholds.cycle, max_cycle_length=max_cycle_length)
            )

        self.provider = provider
        self.thresholds = thresholds
        self.timeout_seconds = timeout_seconds
        self.logger = logger or logging.getLogger(__name__)

        self.pagerank_engine = PageRankEngine(thresholds.pagerank, self.logger)
        self.community_detector = CommunityDetector(thresholds.community, self.logger)
        self.cycle_detector = CycleDetector(thresholds.cycle, self.logger)
        self.cluster_detector = SuspiciousClusterDetector(
            thresholds.cluster, thresholds.flow_cluster, self.logger
        )
        self.guild_analyzer = GuildCorrelationAnalyzer(
            provider, thresholds.guild, self.logger
        )

    async def analyze(
        self,
        target_user_id: str,
        top_guilds: Optional[Sequence[GuildActivity]] = None,
        as_of: Optional[datetime] = None,
        deadline: Optional[AnalysisDeadline] = None,
    ) -> RelationshipNetwork:
        """
        Analyze the relationship network around one account.

        Args:
            target_user_id: Account under analysis
            top_guilds: Guilds the account uses most, with usage counts
            as_of: Reference time for age-based rules, defaults to now
            deadline: Overrides the configured per-analysis deadline

        Returns:
            RelationshipNetwork for the account

        Raises:
            DataProviderError: If any snapshot query fails
            AnalysisCancelledError: If the deadline passes or the call is cancelled
        """
        if self.provider is None:
            raise DataProviderError(
                "Network analysis requires a data provider", operation="analyze"
            )
        if deadline is None:
            deadline = AnalysisDeadline(self.timeout_seconds)
        as_of = to_utc(as_of) if as_of is not None else datetime.now(timezone.utc)
        network_limits = self.thresholds.network

        self.logger.info(f"Starting relationship network analysis for {target_user_id}")

        direct_rows = await guarded_fetch(
            "get_direct_relationships",
            self.provider.get_direct_relationships(
                target_user_id, limit=network_limits.direct_limit
            ),
        )
        direct_ids = [row.related_user_id for row in direct_rows]

        indirect_rows: List[RelationshipAggregate] = []
        flows: List[DirectionalFlow] = []
        if direct_ids:
            indirect_rows = await guarded_fetch(
                "get_indirect_relationships",
                self.provider.get_indirect_relationships(
                    target_user_id,
                    exclude_ids=direct_ids,
                    min_transactions=network_limits.indirect_min_transactions,
                    limit=network_limits.indirect_limit,
                ),
            )
            flows = await guarded_fetch(
                "get_directional_flows",
                self.provider.get_directional_flows(target_user_id, direct_ids),
            )

        guild_correlations: List[GuildCorrelation] = []
        if top_guilds:
            guild_correlations = await self.guild_analyzer.analyze(
                target_user_id, top_guilds
            )

        deadline.check("data fetch")
        try:
            return await asyncio.to_thread(
                self.build_network,
                target_user_id,
                direct_rows,
                indirect_rows,
                flows,
                guild_correlations,
                as_of,
                deadline,
            )
        except asyncio.CancelledError:
            deadline.cancel()
            raise

    def build_network(
        self,
        target_user_id: str,
        direct_rows: Sequence[RelationshipAggregate],
        indirect_rows: Sequence[RelationshipAggregate] = (),
        flows: Sequence[DirectionalFlow] = (),
        guild_correlations: Sequence[GuildCorrelation] = (),
        as_of: Optional[datetime] = None,
        deadline: Optional[AnalysisDeadline] = None,
    ) -> RelationshipNetwork:
        """
        Run every analysis component over an already fetched snapshot.

        Synchronous and free of I/O; identical inputs give identical output.
        """
        as_of = to_utc(as_of) if as_of is not None else datetime.now(timezone.utc)

        direct = self._select_direct(direct_rows)
        direct_ids = {rel.related_user_id for rel in direct}
        indirect = self._select_indirect(target_user_id, direct_ids, indirect_rows)

        clusters = self.cluster_detector.detect(target_user_id, direct, flows, as_of)

        relationships = direct + indirect
        graph = build_graph(relationships)

        scores = self.pagerank_engine.calculate(graph, deadline)
        key_nodes = self.pagerank_engine.key_nodes(scores)
        communities = self.community_detector.detect(graph, deadline)
        cycles = self.cycle_detector.detect(
            graph, relationships, self.thresholds.cycle.max_cycle_length, deadline
        )

        self.logger.info(
            f"Network analysis for {target_user_id}: {len(direct)} direct, "
            f"{len(indirect)} indirect, {len(communities)} communities, "
            f"{len(cycles)} cycles, {len(clusters)} clusters"
        )

        return RelationshipNetwork(
            target_user_id=target_user_id,
            direct_connections=direct,
            indirect_connections=indirect,
            communities=communities,
            cycle_patterns=cycles,
            suspicious_clusters=clusters,
            key_nodes=key_nodes,
            guild_correlations=list(guild_correlations),
            network_stats=calculate_network_stats(direct),
            thresholds_version=self.thresholds.version,
            analyzed_at=as_of,
        )

    def _select_direct(
        self, rows: Sequence[RelationshipAggregate]
    ) -> List[UserRelationship]:
        ordered = sorted(rows, key=lambda row: row.transaction_count, reverse=True)
        return [
            score_relationship(row, self.thresholds.strength)
            for row in ordered[: self.thresholds.network.direct_limit]
        ]

    def _select_indirect(
        self,
        target_user_id: str,
        direct_ids: set,
        rows: Sequence[RelationshipAggregate],
    ) -> List[UserRelationship]:
        limits = self.thresholds.network
        kept = [
            row
            for row in rows
            if row.related_user_id != target_user_id
            and row.related_user_id not in direct_ids
            and row.transaction_count >= limits.indirect_min_transactions
        ]
        kept.sort(key=lambda row: row.transaction_count, reverse=True)
        return [
            score_relationship(row, self.thresholds.strength)
            for row in kept[: limits.indirect_limit]
        ]


def calculate_network_stats(connections: Sequence[UserRelationship]) -> NetworkStats:
    if not connections:
        return NetworkStats()

    return NetworkStats(
        total_connections=len(connections),
        total_transactions=sum(int(c.transaction_count or 0) for c in connections),
        total_amount=sum(float(c.total_amount or 0) for c in connections),
        avg_relationship_strength=sum(c.relationship_strength for c in connections)
        / len(connections),
    )
