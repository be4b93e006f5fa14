"""
Tests for rule-based suspicious cluster detection
"""
import pytest

from network_analysis.models import DirectionalFlow
from network_analysis.suspicious_cluster_detector import (
    SuspiciousClusterDetector,
    build_transaction_pattern,
    flow_ratio,
)
from conftest import AS_OF, make_relationship


@pytest.fixture
def detector():
    return SuspiciousClusterDetector()


def cluster_types(clusters):
    return [c.cluster_type for c in clusters]


def test_no_relationships_no_clusters(detector):
    assert detector.detect("100", [], as_of=AS_OF) == []


def test_high_frequency_needs_two_strong_partners(detector):
    strong = [
        make_relationship(
            "100", partner, transaction_count=60, total_amount=1_000_000,
            first_days_ago=400, last_days_ago=0,
        )
        for partner in ["200", "300"]
    ]
    assert all(rel.relationship_strength > 70 for rel in strong)

    clusters = detector.detect("100", strong, as_of=AS_OF)
    assert cluster_types(clusters) == ["high_frequency"]

    cluster = clusters[0]
    assert cluster.cluster_id == "high_frequency_100"
    assert cluster.user_ids == ["100", "200", "300"]
    assert cluster.suspicion_score == 85
    assert cluster.transaction_pattern.total_transactions == 120

    assert detector.detect("100", strong[:1], as_of=AS_OF) == []


def test_high_amount_fires_for_a_single_partner(detector):
    relationships = [
        make_relationship("100", "200", transaction_count=60, total_amount=2_000_000),
        make_relationship("100", "300", transaction_count=5, total_amount=1000),
    ]

    clusters = detector.detect("100", relationships, as_of=AS_OF)

    assert cluster_types(clusters) == ["high_amount"]
    assert clusters[0].user_ids == ["100", "200"]
    assert clusters[0].suspicion_score == 75
    assert clusters[0].transaction_pattern.total_amount == pytest.approx(2_000_000)


def test_high_amount_requires_large_average(detector):
    # 1.5M total but only 7500 per transaction
    relationships = [
        make_relationship("100", "200", transaction_count=200, total_amount=1_500_000)
    ]
    assert detector.detect("100", relationships, as_of=AS_OF) == []


def test_new_account_burst_needs_two_partners(detector):
    fresh = [
        make_relationship(
            "100", partner, transaction_count=25, total_amount=1000,
            first_days_ago=2, last_days_ago=0,
        )
        for partner in ["200", "300"]
    ]

    clusters = detector.detect("100", fresh, as_of=AS_OF)
    assert cluster_types(clusters) == ["new_account_burst"]
    assert clusters[0].suspicion_score == 90
    assert clusters[0].cluster_id == "new_account_burst_100"

    assert detector.detect("100", fresh[:1], as_of=AS_OF) == []


def test_new_account_ignores_partners_without_first_transaction(detector):
    relationships = [
        make_relationship(
            "100", partner, transaction_count=25, first_days_ago=None, last_days_ago=None
        )
        for partner in ["200", "300"]
    ]
    assert detector.detect("100", relationships, as_of=AS_OF) == []


def test_circular_flow_rule(detector):
    relationships = [
        make_relationship("100", partner, transaction_count=40, total_amount=59_000)
        for partner in ["200", "300"]
    ]
    flows = [
        DirectionalFlow(partner, sent_amount=30_000, received_amount=29_000,
                        sent_count=20, received_count=20)
        for partner in ["200", "300"]
    ]

    clusters = detector.detect("100", relationships, flows=flows, as_of=AS_OF)

    assert cluster_types(clusters) == ["circular_flow"]
    assert clusters[0].suspicion_score == 90
    assert clusters[0].transaction_pattern.total_amount == pytest.approx(118_000)


def test_large_outflow_rule(detector):
    relationships = [make_relationship("100", "200", transaction_count=10, total_amount=600_000)]
    flows = [DirectionalFlow("200", sent_amount=600_000, received_amount=0,
                             sent_count=10, received_count=0)]

    clusters = detector.detect("100", relationships, flows=flows, as_of=AS_OF)

    assert cluster_types(clusters) == ["large_outflow"]
    assert clusters[0].suspicion_score == 85
    assert clusters[0].transaction_pattern.total_amount == pytest.approx(600_000)


def test_short_term_high_frequency_rule(detector):
    relationships = [
        make_relationship(
            "100", partner, transaction_count=120, total_amount=5000,
            first_days_ago=10, last_days_ago=0,
        )
        for partner in ["200", "300"]
    ]
    flows = [
        DirectionalFlow(partner, sent_amount=2500, received_amount=2500,
                        sent_count=60, received_count=60)
        for partner in ["200", "300"]
    ]

    clusters = detector.detect("100", relationships, flows=flows, as_of=AS_OF)

    assert "short_term_high_frequency" in cluster_types(clusters)
    short_term = next(c for c in clusters if c.cluster_type == "short_term_high_frequency")
    assert short_term.suspicion_score == 80
    assert "12.0 transactions per day" in short_term.reasons[1]


def test_flow_rules_skip_unknown_partners(detector):
    flows = [DirectionalFlow("999", sent_amount=900_000, received_amount=0,
                             sent_count=50, received_count=0)]
    assert detector.detect("100", [], flows=flows, as_of=AS_OF) == []


def test_flow_ratio_handles_zero_flow():
    assert flow_ratio(DirectionalFlow("200", 0, 0, 0, 0)) == 0.0
    assert flow_ratio(DirectionalFlow("200", 75, 25, 1, 1)) == pytest.approx(0.5)


def test_transaction_pattern_timing():
    relationships = [
        make_relationship("100", "200", transaction_count=12, first_days_ago=10, last_days_ago=5),
        make_relationship("100", "300", transaction_count=12, first_days_ago=4, last_days_ago=0),
    ]

    pattern = build_transaction_pattern(relationships)

    assert pattern.total_transactions == 24
    assert pattern.time_span_days == pytest.approx(10.0)
    assert pattern.avg_interval_hours == pytest.approx(10.0)


def test_transaction_pattern_without_transactions():
    pattern = build_transaction_pattern([])
    assert pattern.total_transactions == 0
    assert pattern.avg_interval_hours == 0.0
