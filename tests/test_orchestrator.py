"""
Tests for relationship network orchestration
"""
import asyncio

import pytest

from network_analysis.cancellation import AnalysisDeadline
from network_analysis.exceptions import AnalysisCancelledError, DataProviderError
from network_analysis.models import ActiveMember, GuildActivity, PairAggregate
from network_analysis.orchestrator import NetworkAnalysisOrchestrator, calculate_network_stats
from network_analysis.thresholds import DEFAULT_THRESHOLDS
from conftest import AS_OF, FakeRelationshipProvider, make_aggregate, make_relationship


def run_analysis(orchestrator, user_id="100", **kwargs):
    kwargs.setdefault("as_of", AS_OF)
    return asyncio.run(orchestrator.analyze(user_id, **kwargs))


def test_account_without_transactions_gets_empty_network(empty_provider):
    network = run_analysis(NetworkAnalysisOrchestrator(empty_provider))

    assert network.target_user_id == "100"
    assert network.direct_connections == []
    assert network.indirect_connections == []
    assert network.communities == []
    assert network.cycle_patterns == []
    assert network.suspicious_clusters == []
    assert network.key_nodes == []
    assert network.network_stats.total_connections == 0
    assert network.network_stats.avg_relationship_strength == 0.0
    assert empty_provider.calls == ["get_direct_relationships"]


def test_full_network_analysis(network_provider):
    network = run_analysis(NetworkAnalysisOrchestrator(network_provider))

    assert [c.related_user_id for c in network.direct_connections] == ["200", "300"]
    assert [c.related_user_id for c in network.indirect_connections] == ["400"]
    assert network.indirect_connections[0].user_id == "200"

    assert [c.cluster_type for c in network.suspicious_clusters] == ["high_amount"]
    assert network.suspicious_clusters[0].user_ids == ["100", "200"]

    assert network.cycle_patterns == []
    assert len(network.key_nodes) == 4
    assert network.thresholds_version == DEFAULT_THRESHOLDS.version
    assert network.analyzed_at == AS_OF

    stats = network.network_stats
    assert stats.total_connections == 2
    assert stats.total_transactions == 65
    assert stats.total_amount == pytest.approx(2_001_000)
    assert stats.avg_relationship_strength == pytest.approx(30.0)

    assert network_provider.calls == [
        "get_direct_relationships",
        "get_indirect_relationships",
        "get_directional_flows",
    ]


def test_network_serializes_to_plain_dict(network_provider):
    result = run_analysis(NetworkAnalysisOrchestrator(network_provider)).to_dict()

    assert result["analyzed_at"] == AS_OF.isoformat()
    assert isinstance(result["direct_connections"][0]["first_transaction"], str)
    assert result["suspicious_clusters"][0]["transaction_pattern"]["total_transactions"] == 60
    assert set(result["network_stats"]) == {
        "total_connections",
        "total_transactions",
        "total_amount",
        "avg_relationship_strength",
    }


def test_indirect_accounts_close_cycles():
    provider = FakeRelationshipProvider(
        direct={"1": [make_aggregate("1", "2"), make_aggregate("1", "3")]},
        indirect={
            "1": [
                make_aggregate("2", "4", transaction_count=5),
                make_aggregate("3", "4", transaction_count=5),
            ]
        },
    )

    network = run_analysis(NetworkAnalysisOrchestrator(provider), user_id="1")

    assert sorted(p.cycle for p in network.cycle_patterns) == [
        ["1", "2", "4", "3"],
        ["1", "3", "4", "2"],
    ]
    assert all(p.suspicion_score == 35 for p in network.cycle_patterns)


def test_guild_correlations_are_included():
    provider = FakeRelationshipProvider(
        direct={"100": [make_aggregate("100", "200")]},
        guild_members={
            "g1": [ActiveMember(user_id, 20) for user_id in ["a", "b", "c"]]
        },
        guild_pairs={
            "g1": [PairAggregate("a", "b", 20, 1000), PairAggregate("b", "a", 20, 1000)]
        },
    )

    network = run_analysis(
        NetworkAnalysisOrchestrator(provider), top_guilds=[GuildActivity("g1", 12)]
    )

    assert [g.guild_id for g in network.guild_correlations] == ["g1"]
    assert network.guild_correlations[0].suspicion_score == 50


def test_provider_failure_is_not_swallowed(failing_provider):
    with pytest.raises(DataProviderError) as exc_info:
        run_analysis(NetworkAnalysisOrchestrator(failing_provider))

    assert exc_info.value.operation == "get_indirect_relationships"


def test_provider_errors_pass_through_unchanged(provider_error):
    provider = FakeRelationshipProvider(
        fail_on={"get_direct_relationships"}, error=provider_error
    )

    with pytest.raises(DataProviderError) as exc_info:
        run_analysis(NetworkAnalysisOrchestrator(provider))

    assert exc_info.value is provider_error


def test_analysis_without_provider_fails():
    with pytest.raises(DataProviderError):
        run_analysis(NetworkAnalysisOrchestrator())


def test_cancelled_deadline_aborts_analysis(network_provider):
    deadline = AnalysisDeadline.unbounded()
    deadline.cancel()

    with pytest.raises(AnalysisCancelledError) as exc_info:
        run_analysis(NetworkAnalysisOrchestrator(network_provider), deadline=deadline)

    assert exc_info.value.stage == "data fetch"


def test_expired_deadline_aborts_graph_stage():
    now = [0.0]
    deadline = AnalysisDeadline(5.0, clock=lambda: now[0])
    now[0] = 10.0
    orchestrator = NetworkAnalysisOrchestrator()

    with pytest.raises(AnalysisCancelledError) as exc_info:
        orchestrator.build_network(
            "100", [make_aggregate("100", "200")], as_of=AS_OF, deadline=deadline
        )

    assert exc_info.value.stage == "pagerank"


def test_build_network_is_deterministic():
    orchestrator = NetworkAnalysisOrchestrator()
    direct = [make_aggregate("1", str(i), transaction_count=i) for i in range(2, 8)]
    indirect = [make_aggregate(str(i), str(i + 1), transaction_count=5) for i in range(2, 7)]

    first = orchestrator.build_network("1", direct, indirect, as_of=AS_OF).to_dict()
    second = orchestrator.build_network("1", direct, indirect, as_of=AS_OF).to_dict()

    assert first == second


def test_direct_connections_are_limited_and_ordered():
    orchestrator = NetworkAnalysisOrchestrator()
    direct = [make_aggregate("1", f"p{i}", transaction_count=i + 1) for i in range(60)]

    network = orchestrator.build_network("1", direct, as_of=AS_OF)

    assert len(network.direct_connections) == 50
    assert network.direct_connections[0].transaction_count == 60
    counts = [c.transaction_count for c in network.direct_connections]
    assert counts == sorted(counts, reverse=True)


def test_indirect_rows_are_filtered():
    orchestrator = NetworkAnalysisOrchestrator()
    direct = [make_aggregate("1", "2")]
    indirect = [
        make_aggregate("2", "1", transaction_count=10),
        make_aggregate("2", "2", transaction_count=10),
        make_aggregate("2", "3", transaction_count=2),
        make_aggregate("2", "4", transaction_count=3),
    ]

    network = orchestrator.build_network("1", direct, indirect, as_of=AS_OF)

    assert [c.related_user_id for c in network.indirect_connections] == ["4"]


def test_max_cycle_length_override():
    orchestrator = NetworkAnalysisOrchestrator(max_cycle_length=3)

    assert orchestrator.thresholds.cycle.max_cycle_length == 3
    assert DEFAULT_THRESHOLDS.cycle.max_cycle_length == 5


def test_network_stats_average_strength():
    connections = [
        make_relationship("1", "2", transaction_count=100, total_amount=1_000_000,
                          first_days_ago=365, last_days_ago=0),
        make_relationship("1", "3", transaction_count=0, total_amount=0,
                          first_days_ago=None, last_days_ago=None),
    ]

    stats = calculate_network_stats(connections)

    assert stats.total_connections == 2
    assert stats.avg_relationship_strength == pytest.approx(50.0)
