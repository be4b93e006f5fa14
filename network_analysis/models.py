"""
Data structures for relationship network analysis.

Every structure here is created for a single analysis call and discarded once
the result has been serialized. ``RelationshipNetwork.to_dict`` is the only
serialization path; datetimes become ISO 8601 strings.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class RelationshipAggregate:
    """Pairwise transaction aggregate as returned by the data provider"""

    user_id: str
    related_user_id: str
    transaction_count: int
    total_amount: float
    avg_amount: float
    first_transaction: Optional[datetime] = None
    last_transaction: Optional[datetime] = None


@dataclass
class UserRelationship:
    """Aggregate enriched with a bounded 0-100 relationship strength"""

    user_id: str
    related_user_id: str
    transaction_count: int
    total_amount: float
    avg_amount: float
    first_transaction: Optional[datetime]
    last_transaction: Optional[datetime]
    relationship_strength: int


@dataclass
class DirectionalFlow:
    """Sent/received split between the target account and one partner"""

    related_user_id: str
    sent_amount: float
    received_amount: float
    sent_count: int
    received_count: int

    @property
    def total_flow(self) -> float:
        return self.sent_amount + self.received_amount

    @property
    def net_flow(self) -> float:
        return self.sent_amount - self.received_amount


@dataclass
class GuildActivity:
    guild_id: str
    usage_count: int


@dataclass
class ActiveMember:
    user_id: str
    usage_count: int


@dataclass
class PairAggregate:
    """Directed sender -> receiver aggregate inside one guild"""

    sender_id: str
    receiver_id: str
    transaction_count: int
    total_amount: float


@dataclass
class Community:
    community_id: int
    members: List[str]
    internal_edges: float
    external_edges: float
    modularity: float
    suspicion_score: int
    reasons: List[str] = field(default_factory=list)


@dataclass
class CyclePattern:
    cycle: List[str]
    total_amount: float
    avg_amount: float
    transaction_count: int
    suspicion_score: int
    reasons: List[str] = field(default_factory=list)


@dataclass
class TransactionPattern:
    total_transactions: int
    total_amount: float
    time_span_days: float
    avg_interval_hours: float


@dataclass
class SuspiciousCluster:
    cluster_id: str
    cluster_type: str
    user_ids: List[str]
    suspicion_score: int
    reasons: List[str]
    transaction_pattern: TransactionPattern


@dataclass
class SuspiciousMember:
    user_id: str
    suspicion_score: int
    reasons: List[str]
    transaction_count: int
    total_amount: float
    net_flow: float


@dataclass
class GuildStatistics:
    total_transactions: int
    total_amount: float
    avg_transactions_per_member: float
    high_frequency_members: int
    circular_flow_pairs: int


@dataclass
class GuildCorrelation:
    guild_id: str
    suspicion_score: int
    member_count: int
    suspicious_members: List[SuspiciousMember]
    patterns: List[str]
    statistics: GuildStatistics


@dataclass
class KeyNode:
    user_id: str
    pagerank: float
    rank: int


@dataclass
class NetworkStats:
    total_connections: int = 0
    total_transactions: int = 0
    total_amount: float = 0.0
    avg_relationship_strength: float = 0.0


@dataclass
class RelationshipNetwork:
    """Complete analysis result for one target account"""

    target_user_id: str
    direct_connections: List[UserRelationship] = field(default_factory=list)
    indirect_connections: List[UserRelationship] = field(default_factory=list)
    communities: List[Community] = field(default_factory=list)
    cycle_patterns: List[CyclePattern] = field(default_factory=list)
    suspicious_clusters: List[SuspiciousCluster] = field(default_factory=list)
    key_nodes: List[KeyNode] = field(default_factory=list)
    guild_correlations: List[GuildCorrelation] = field(default_factory=list)
    network_stats: NetworkStats = field(default_factory=NetworkStats)
    thresholds_version: Optional[str] = None
    analyzed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(asdict(self))


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    return value
