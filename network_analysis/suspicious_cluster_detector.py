"""
Rule-based suspicious cluster detection over a target's direct relationships.

Each rule is independent and yields at most one cluster. The rules only look
at the target's one-hop relationships, never the wider graph:

- high_frequency: many transactions with strongly tied partners
- high_amount: large totals with large average transactions
- new_account_burst: several brand-new partners with a burst of activity

When sent/received splits are available, three flow rules run as well:

- circular_flow: heavy two-way traffic that nets out to almost nothing
- large_outflow: large one-way transfers out of the target
- short_term_high_frequency: scripted-looking daily rates with recent partners
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from network_analysis.models import (
    DirectionalFlow,
    SuspiciousCluster,
    TransactionPattern,
    UserRelationship,
)
from network_analysis.relationship_strength import days_between, to_utc
from network_analysis.thresholds import (
    ClusterThresholds,
    DEFAULT_THRESHOLDS,
    FlowClusterThresholds,
)

HOURS_PER_DAY = 24.0


class SuspiciousClusterDetector:
    """Applies the cluster rules to one target account's relationships."""

    def __init__(
        self,
        thresholds: ClusterThresholds = DEFAULT_THRESHOLDS.cluster,
        flow_thresholds: FlowClusterThresholds = DEFAULT_THRESHOLDS.flow_cluster,
        logger: Optional[logging.Logger] = None,
    ):
        self.thresholds = thresholds
        self.flow_thresholds = flow_thresholds
        self.logger = logger or logging.getLogger(__name__)

    def detect(
        self,
        target_user_id: str,
        relationships: Sequence[UserRelationship],
        flows: Optional[Sequence[DirectionalFlow]] = None,
        as_of: Optional[datetime] = None,
    ) -> List[SuspiciousCluster]:
        """
        Run every rule and collect the clusters that fire.

        Args:
            target_user_id: Account under analysis
            relationships: The target's direct relationships with strength scores
            flows: Optional sent/received split per partner
            as_of: Reference time for age-based rules, defaults to now

        Returns:
            List of SuspiciousCluster records, in rule order
        """
        as_of = to_utc(as_of) if as_of is not None else datetime.now(timezone.utc)
        clusters = []

        for rule in (
            self._high_frequency_cluster,
            self._high_amount_cluster,
            self._new_account_cluster,
        ):
            cluster = rule(target_user_id, relationships, as_of)
            if cluster is not None:
                clusters.append(cluster)

        if flows:
            by_partner = {rel.related_user_id: rel for rel in relationships}
            for rule in (
                self._circular_flow_cluster,
                self._large_outflow_cluster,
                self._short_term_high_frequency_cluster,
            ):
                cluster = rule(target_user_id, flows, by_partner, as_of)
                if cluster is not None:
                    clusters.append(cluster)

        self.logger.info(
            f"Suspicious cluster rules fired {len(clusters)} times for {target_user_id}"
        )
        return clusters

    def _high_frequency_cluster(
        self,
        target_user_id: str,
        relationships: Sequence[UserRelationship],
        as_of: datetime,
    ) -> Optional[SuspiciousCluster]:
        t = self.thresholds
        qualifying = [
            rel
            for rel in relationships
            if rel.transaction_count > t.high_frequency_min_count
            and rel.relationship_strength > t.high_frequency_min_strength
        ]
        if len(qualifying) < t.high_frequency_min_partners:
            return None

        pattern = build_transaction_pattern(qualifying)
        avg_strength = sum(rel.relationship_strength for rel in qualifying) / len(qualifying)
        return SuspiciousCluster(
            cluster_id=f"high_frequency_{target_user_id}",
            cluster_type="high_frequency",
            user_ids=[target_user_id] + [rel.related_user_id for rel in qualifying],
            suspicion_score=t.high_frequency_score,
            reasons=[
                f"{len(qualifying)} partners with more than {t.high_frequency_min_count} transactions each",
                f"Average relationship strength {avg_strength:.0f}/100",
                f"{pattern.total_transactions} transactions in total",
            ],
            transaction_pattern=pattern,
        )

    def _high_amount_cluster(
        self,
        target_user_id: str,
        relationships: Sequence[UserRelationship],
        as_of: datetime,
    ) -> Optional[SuspiciousCluster]:
        t = self.thresholds
        qualifying = [
            rel
            for rel in relationships
            if rel.total_amount > t.high_amount_min_total
            and rel.avg_amount > t.high_amount_min_average
        ]
        if len(qualifying) < t.high_amount_min_partners:
            return None

        pattern = build_transaction_pattern(qualifying)
        return SuspiciousCluster(
            cluster_id=f"high_amount_{target_user_id}",
            cluster_type="high_amount",
            user_ids=[target_user_id] + [rel.related_user_id for rel in qualifying],
            suspicion_score=t.high_amount_score,
            reasons=[
                f"{len(qualifying)} partners with total amount above {t.high_amount_min_total:,.0f}",
                f"Average transaction above {t.high_amount_min_average:,.0f}",
                f"Combined amount {pattern.total_amount:,.0f}",
            ],
            transaction_pattern=pattern,
        )

    def _new_account_cluster(
        self,
        target_user_id: str,
        relationships: Sequence[UserRelationship],
        as_of: datetime,
    ) -> Optional[SuspiciousCluster]:
        t = self.thresholds
        qualifying = [
            rel
            for rel in relationships
            if rel.first_transaction is not None
            and days_between(rel.first_transaction, as_of) < t.new_account_max_age_days
            and rel.transaction_count > t.new_account_min_count
        ]
        if len(qualifying) < t.new_account_min_partners:
            return None

        pattern = build_transaction_pattern(qualifying)
        return SuspiciousCluster(
            cluster_id=f"new_account_burst_{target_user_id}",
            cluster_type="new_account_burst",
            user_ids=[target_user_id] + [rel.related_user_id for rel in qualifying],
            suspicion_score=t.new_account_score,
            reasons=[
                f"{len(qualifying)} partners first seen within {t.new_account_max_age_days:g} days",
                f"Each with more than {t.new_account_min_count} transactions",
                "Possible coordinated alt accounts",
            ],
            transaction_pattern=pattern,
        )

    def _circular_flow_cluster(
        self,
        target_user_id: str,
        flows: Sequence[DirectionalFlow],
        by_partner: Dict[str, UserRelationship],
        as_of: datetime,
    ) -> Optional[SuspiciousCluster]:
        t = self.flow_thresholds
        qualifying = []
        for flow in flows:
            rel = by_partner.get(flow.related_user_id)
            if rel is None:
                continue
            ratio = flow_ratio(flow)
            if (
                rel.transaction_count > t.circular_min_count
                and flow.total_flow > t.circular_min_total_flow
                and ratio < t.circular_max_flow_ratio
            ):
                qualifying.append((flow, rel))

        if len(qualifying) < t.circular_min_partners:
            return None

        relationships = [rel for _, rel in qualifying]
        total_transactions = sum(rel.transaction_count for rel in relationships)
        avg_net_flow = sum(abs(flow.net_flow) for flow, _ in qualifying) / len(qualifying)
        pattern = build_transaction_pattern(relationships)
        pattern.total_amount = sum(flow.total_flow for flow, _ in qualifying)
        return SuspiciousCluster(
            cluster_id=f"circular_flow_{target_user_id}",
            cluster_type="circular_flow",
            user_ids=[target_user_id] + [rel.related_user_id for rel in relationships],
            suspicion_score=t.circular_score,
            reasons=[
                f"{len(qualifying)} partners exchanging funds back and forth",
                f"High interaction ({total_transactions} transactions) with near-zero net flow",
                f"Average net flow {avg_net_flow:,.0f} (< {t.circular_max_flow_ratio:.0%})",
            ],
            transaction_pattern=pattern,
        )

    def _large_outflow_cluster(
        self,
        target_user_id: str,
        flows: Sequence[DirectionalFlow],
        by_partner: Dict[str, UserRelationship],
        as_of: datetime,
    ) -> Optional[SuspiciousCluster]:
        t = self.flow_thresholds
        qualifying = []
        for flow in flows:
            rel = by_partner.get(flow.related_user_id)
            if rel is None:
                continue
            if (
                flow.net_flow > t.outflow_min_net
                and flow.sent_amount > flow.received_amount * t.outflow_min_ratio
                and rel.transaction_count > t.outflow_min_count
            ):
                qualifying.append((flow, rel))

        if len(qualifying) < t.outflow_min_partners:
            return None

        relationships = [rel for _, rel in qualifying]
        total_outflow = sum(flow.net_flow for flow, _ in qualifying)
        pattern = build_transaction_pattern(relationships)
        pattern.total_amount = total_outflow
        return SuspiciousCluster(
            cluster_id=f"large_outflow_{target_user_id}",
            cluster_type="large_outflow",
            user_ids=[target_user_id] + [rel.related_user_id for rel in relationships],
            suspicion_score=t.outflow_score,
            reasons=[
                f"{len(qualifying)} partners receiving large one-way transfers",
                f"Net outflow {total_outflow:,.0f}",
                f"Outflow exceeds inflow by more than {t.outflow_min_ratio:g}:1",
            ],
            transaction_pattern=pattern,
        )

    def _short_term_high_frequency_cluster(
        self,
        target_user_id: str,
        flows: Sequence[DirectionalFlow],
        by_partner: Dict[str, UserRelationship],
        as_of: datetime,
    ) -> Optional[SuspiciousCluster]:
        t = self.flow_thresholds
        qualifying = []
        daily_rates = []
        for flow in flows:
            rel = by_partner.get(flow.related_user_id)
            if rel is None or rel.first_transaction is None:
                continue
            age_days = days_between(rel.first_transaction, as_of)
            daily_rate = rel.transaction_count / age_days if age_days > 0 else 0.0
            if (
                age_days < t.short_term_max_age_days
                and daily_rate > t.short_term_min_daily_rate
                and rel.transaction_count > t.short_term_min_count
            ):
                qualifying.append(rel)
                daily_rates.append(daily_rate)

        if len(qualifying) < t.short_term_min_partners:
            return None

        avg_rate = sum(daily_rates) / len(daily_rates)
        return SuspiciousCluster(
            cluster_id=f"short_term_high_frequency_{target_user_id}",
            cluster_type="short_term_high_frequency",
            user_ids=[target_user_id] + [rel.related_user_id for rel in qualifying],
            suspicion_score=t.short_term_score,
            reasons=[
                f"{len(qualifying)} recent partners with sustained high-frequency activity",
                f"Average {avg_rate:.1f} transactions per day",
                "Possible scripted or automated activity",
            ],
            transaction_pattern=build_transaction_pattern(qualifying),
        )


def flow_ratio(flow: DirectionalFlow) -> float:
    """|sent - received| / (sent + received), 0 when nothing moved."""
    total = flow.total_flow
    return abs(flow.net_flow) / total if total > 0 else 0.0


def build_transaction_pattern(
    relationships: Sequence[UserRelationship],
) -> TransactionPattern:
    """Aggregate counts, amounts and timing over a set of relationships."""
    total_transactions = sum(int(rel.transaction_count or 0) for rel in relationships)
    total_amount = sum(float(rel.total_amount or 0) for rel in relationships)

    firsts = [to_utc(rel.first_transaction) for rel in relationships if rel.first_transaction]
    lasts = [to_utc(rel.last_transaction) for rel in relationships if rel.last_transaction]
    span_days = 0.0
    if firsts and lasts:
        span_days = max(days_between(min(firsts), max(lasts)), 0.0)

    avg_interval_hours = (
        span_days * HOURS_PER_DAY / total_transactions if total_transactions > 0 else 0.0
    )
    return TransactionPattern(
        total_transactions=total_transactions,
        total_amount=total_amount,
        time_span_days=round(span_days, 2),
        avg_interval_hours=round(avg_interval_hours, 2),
    )
