"""
Detection thresholds for the relationship network fraud model.

Every constant that influences a suspicion score or a fetch limit lives here,
grouped by the component that consumes it. The whole structure is frozen and
versioned: bump ``version`` whenever a value changes so that stored results
can be traced back to the model that produced them.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class StrengthThresholds:
    frequency_divisor: float = 100.0
    frequency_weight: float = 40.0
    amount_divisor: float = 1_000_000.0
    amount_weight: float = 30.0
    duration_divisor_days: float = 365.0
    duration_weight: float = 30.0
    max_score: int = 100


@dataclass(frozen=True)
class PageRankThresholds:
    damping_factor: float = 0.85
    iterations: int = 20
    key_node_limit: int = 10


@dataclass(frozen=True)
class CommunityThresholds:
    max_passes: int = 10
    min_members: int = 2
    high_modularity: float = 0.8
    high_modularity_min_members: int = 3
    high_modularity_score: int = 30
    suspicious_size_min: int = 3
    suspicious_size_max: int = 10
    suspicious_size_score: int = 20
    dense_internal_per_member: float = 20.0
    dense_internal_score: int = 25
    closed_group_external_ratio: float = 0.2
    closed_group_score: int = 25


@dataclass(frozen=True)
class CycleThresholds:
    max_cycle_length: int = 5
    min_cycle_length: int = 3
    triangle_score: int = 40
    square_score: int = 35
    longer_cycle_score: int = 30
    high_amount: float = 100_000.0
    high_amount_score: int = 30
    high_count: int = 50
    high_count_score: int = 30
    result_limit: int = 10


@dataclass(frozen=True)
class ClusterThresholds:
    high_frequency_min_count: int = 50
    high_frequency_min_strength: int = 70
    high_frequency_min_partners: int = 2
    high_frequency_score: int = 85

    high_amount_min_total: float = 1_000_000.0
    high_amount_min_average: float = 10_000.0
    high_amount_min_partners: int = 1
    high_amount_score: int = 75

    new_account_max_age_days: float = 7.0
    new_account_min_count: int = 20
    new_account_min_partners: int = 2
    new_account_score: int = 90


@dataclass(frozen=True)
class FlowClusterThresholds:
    circular_min_count: int = 30
    circular_min_total_flow: float = 50_000.0
    circular_max_flow_ratio: float = 0.1
    circular_min_partners: int = 2
    circular_score: int = 90

    outflow_min_net: float = 500_000.0
    outflow_min_ratio: float = 5.0
    outflow_min_count: int = 5
    outflow_min_partners: int = 1
    outflow_score: int = 85

    short_term_max_age_days: float = 30.0
    short_term_min_daily_rate: float = 5.0
    short_term_min_count: int = 50
    short_term_min_partners: int = 2
    short_term_score: int = 80


@dataclass(frozen=True)
class GuildThresholds:
    max_guilds: int = 3
    activity_window_days: int = 30
    min_member_usage: int = 10
    max_members: int = 50
    min_members: int = 3
    min_pair_transactions: int = 5

    circular_min_count: int = 30
    circular_max_flow_ratio: float = 0.15
    circular_member_score: int = 85
    high_frequency_min_count: int = 100
    high_frequency_member_score: int = 70

    many_circular_pairs: int = 3
    many_circular_pairs_score: int = 40
    some_circular_pairs: int = 1
    some_circular_pairs_score: int = 20
    many_high_frequency: int = 5
    many_high_frequency_score: int = 30
    some_high_frequency: int = 2
    some_high_frequency_score: int = 15
    high_suspicious_ratio: float = 0.3
    high_suspicious_ratio_score: int = 30
    elevated_suspicious_ratio: float = 0.1
    elevated_suspicious_ratio_score: int = 15
    max_score: int = 100
    suspicious_member_limit: int = 10


@dataclass(frozen=True)
class NetworkThresholds:
    direct_limit: int = 50
    indirect_min_transactions: int = 3
    indirect_limit: int = 20


@dataclass(frozen=True)
class DetectionThresholds:
    """Versioned set of every tunable constant in the fraud model."""

    version: str = "1.0.0"
    strength: StrengthThresholds = field(default_factory=StrengthThresholds)
    pagerank: PageRankThresholds = field(default_factory=PageRankThresholds)
    community: CommunityThresholds = field(default_factory=CommunityThresholds)
    cycle: CycleThresholds = field(default_factory=CycleThresholds)
    cluster: ClusterThresholds = field(default_factory=ClusterThresholds)
    flow_cluster: FlowClusterThresholds = field(default_factory=FlowClusterThresholds)
    guild: GuildThresholds = field(default_factory=GuildThresholds)
    network: NetworkThresholds = field(default_factory=NetworkThresholds)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


DEFAULT_THRESHOLDS = DetectionThresholds()
