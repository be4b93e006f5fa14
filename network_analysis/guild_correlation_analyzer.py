"""
Guild correlation analysis.

Works backwards from the target account to the guilds (communities) it is
most active in, and applies scaled-down circular-flow and high-frequency
heuristics to each guild's active-member transaction matrix.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from network_analysis.exceptions import DataProviderError
from network_analysis.models import (
    ActiveMember,
    GuildActivity,
    GuildCorrelation,
    GuildStatistics,
    PairAggregate,
    SuspiciousMember,
)
from network_analysis.provider import RelationshipDataProvider, guarded_fetch
from network_analysis.thresholds import DEFAULT_THRESHOLDS, GuildThresholds


class GuildCorrelationAnalyzer:
    """
    Scores the guilds a target account uses most.

    Fetching goes through the data provider; ``analyze_guild`` is the pure
    scoring step and can be called directly with a member list and matrix.
    """

    def __init__(
        self,
        provider: Optional[RelationshipDataProvider] = None,
        thresholds: GuildThresholds = DEFAULT_THRESHOLDS.guild,
        logger: Optional[logging.Logger] = None,
    ):
        self.provider = provider
        self.thresholds = thresholds
        self.logger = logger or logging.getLogger(__name__)

    async def analyze(
        self, target_user_id: str, top_guilds: Sequence[GuildActivity]
    ) -> List[GuildCorrelation]:
        """
        Analyze the target's most used guilds.

        Args:
            target_user_id: Account whose guilds are examined
            top_guilds: Guilds with the target's usage count

        Returns:
            GuildCorrelation per analyzable guild, most suspicious first

        Raises:
            DataProviderError: If any guild query fails
        """
        if self.provider is None:
            raise DataProviderError(
                "Guild correlation analysis requires a data provider",
                operation="guild_correlations",
            )

        t = self.thresholds
        ranked = sorted(top_guilds, key=lambda g: g.usage_count, reverse=True)
        correlations = []

        for guild in ranked[: t.max_guilds]:
            members = await guarded_fetch(
                "get_guild_active_members",
                self.provider.get_guild_active_members(
                    guild.guild_id,
                    window_days=t.activity_window_days,
                    min_usage=t.min_member_usage,
                    limit=t.max_members,
                ),
            )
            members = [m for m in members if m.usage_count >= t.min_member_usage][
                : t.max_members
            ]
            if len(members) < t.min_members:
                self.logger.info(
                    f"Skipping guild {guild.guild_id}: only {len(members)} active members"
                )
                continue

            pairs = await guarded_fetch(
                "get_member_transaction_matrix",
                self.provider.get_member_transaction_matrix(
                    guild.guild_id, [m.user_id for m in members]
                ),
            )
            correlation = self.analyze_guild(guild.guild_id, members, pairs)
            if correlation is not None:
                correlations.append(correlation)

        correlations.sort(key=lambda c: c.suspicion_score, reverse=True)
        self.logger.info(
            f"Guild correlation analysis for {target_user_id} covered {len(correlations)} guilds"
        )
        return correlations

    def analyze_guild(
        self,
        guild_id: str,
        members: Sequence[ActiveMember],
        pairs: Sequence[PairAggregate],
    ) -> Optional[GuildCorrelation]:
        """Score one guild from its active members and directed pair aggregates."""
        t = self.thresholds
        if len(members) < t.min_members:
            return None

        member_ids = {m.user_id for m in members}
        matrix: Dict[Tuple[str, str], PairAggregate] = {}
        for pair in pairs:
            if (
                pair.sender_id == pair.receiver_id
                or pair.sender_id not in member_ids
                or pair.receiver_id not in member_ids
                or pair.transaction_count <= t.min_pair_transactions
            ):
                continue
            matrix[(pair.sender_id, pair.receiver_id)] = pair

        suspicious: Dict[str, SuspiciousMember] = {}
        circular_pairs = self._flag_circular_pairs(matrix, suspicious)
        high_frequency = self._flag_high_frequency(matrix, suspicious)

        score = 0
        patterns = []
        if circular_pairs >= t.many_circular_pairs:
            score += t.many_circular_pairs_score
            patterns.append(f"{circular_pairs} circular-flow pairs detected")
        elif circular_pairs >= t.some_circular_pairs:
            score += t.some_circular_pairs_score
            patterns.append(f"{circular_pairs} circular-flow pairs detected")

        if high_frequency >= t.many_high_frequency:
            score += t.many_high_frequency_score
            patterns.append(f"{high_frequency} members with high-frequency transactions")
        elif high_frequency >= t.some_high_frequency:
            score += t.some_high_frequency_score
            patterns.append(f"{high_frequency} members with high-frequency transactions")

        suspicious_ratio = len(suspicious) / len(members)
        if suspicious_ratio > t.high_suspicious_ratio:
            score += t.high_suspicious_ratio_score
            patterns.append(f"{suspicious_ratio:.0%} of active members show suspicious behavior")
        elif suspicious_ratio > t.elevated_suspicious_ratio:
            score += t.elevated_suspicious_ratio_score
            patterns.append(f"{suspicious_ratio:.0%} of active members show suspicious behavior")

        total_transactions = sum(p.transaction_count for p in matrix.values())
        total_amount = sum(float(p.total_amount or 0) for p in matrix.values())
        ranked_members = sorted(
            suspicious.values(), key=lambda m: m.suspicion_score, reverse=True
        )

        return GuildCorrelation(
            guild_id=guild_id,
            suspicion_score=min(t.max_score, score),
            member_count=len(members),
            suspicious_members=ranked_members[: t.suspicious_member_limit],
            patterns=patterns,
            statistics=GuildStatistics(
                total_transactions=total_transactions,
                total_amount=total_amount,
                avg_transactions_per_member=total_transactions / len(members),
                high_frequency_members=high_frequency,
                circular_flow_pairs=circular_pairs,
            ),
        )

    def _flag_circular_pairs(
        self,
        matrix: Dict[Tuple[str, str], PairAggregate],
        suspicious: Dict[str, SuspiciousMember],
    ) -> int:
        t = self.thresholds
        visited = set()
        circular_pairs = 0

        for (sender, receiver), forward in matrix.items():
            pair_key = frozenset((sender, receiver))
            if pair_key in visited:
                continue
            reverse = matrix.get((receiver, sender))
            if reverse is None:
                continue
            visited.add(pair_key)

            combined_count = forward.transaction_count + reverse.transaction_count
            total_flow = float(forward.total_amount or 0) + float(reverse.total_amount or 0)
            net_flow = abs(float(forward.total_amount or 0) - float(reverse.total_amount or 0))
            ratio = net_flow / total_flow if total_flow > 0 else 0.0

            if combined_count > t.circular_min_count and ratio < t.circular_max_flow_ratio:
                circular_pairs += 1
                for member_id, partner_id in ((sender, receiver), (receiver, sender)):
                    if member_id in suspicious:
                        continue
                    suspicious[member_id] = SuspiciousMember(
                        user_id=member_id,
                        suspicion_score=t.circular_member_score,
                        reasons=[
                            "Participates in circular-flow transactions",
                            f"Frequent mutual transfers with {partner_id} with near-zero net flow",
                        ],
                        transaction_count=combined_count,
                        total_amount=total_flow,
                        net_flow=net_flow,
                    )

        return circular_pairs

    def _flag_high_frequency(
        self,
        matrix: Dict[Tuple[str, str], PairAggregate],
        suspicious: Dict[str, SuspiciousMember],
    ) -> int:
        t = self.thresholds
        counts: Dict[str, int] = {}
        for pair in matrix.values():
            counts[pair.sender_id] = counts.get(pair.sender_id, 0) + pair.transaction_count
            counts[pair.receiver_id] = counts.get(pair.receiver_id, 0) + pair.transaction_count

        high_frequency = 0
        for member_id, count in counts.items():
            if count <= t.high_frequency_min_count:
                continue
            high_frequency += 1
            if member_id not in suspicious:
                suspicious[member_id] = SuspiciousMember(
                    user_id=member_id,
                    suspicion_score=t.high_frequency_member_score,
                    reasons=[
                        "High-frequency transactions inside the guild",
                        f"{count} transactions in the last {t.activity_window_days} days",
                    ],
                    transaction_count=count,
                    total_amount=0.0,
                    net_flow=0.0,
                )

        return high_frequency
