"""
Tests for circular transaction chain detection
"""
import networkx as nx
import pytest

from network_analysis.cancellation import AnalysisDeadline
from network_analysis.cycle_detector import CycleDetector, detect_cycles, normalize_cycle
from network_analysis.exceptions import AnalysisCancelledError
from network_analysis.graph_builder import build_graph
from conftest import make_relationship


def ring(ids, transaction_count=10, total_amount=5000):
    return [
        make_relationship(
            ids[i],
            ids[(i + 1) % len(ids)],
            transaction_count=transaction_count,
            total_amount=total_amount,
        )
        for i in range(len(ids))
    ]


def test_normalize_cycle_rotates_smallest_id_first():
    assert normalize_cycle(["c", "a", "b"]) == ["a", "b", "c"]
    assert normalize_cycle(["b", "a", "c"]) == ["a", "c", "b"]
    assert normalize_cycle([]) == []


def test_triangle_is_reported_in_both_directions():
    relationships = ring(["A", "B", "C"])
    patterns = detect_cycles(build_graph(relationships), relationships)

    assert sorted(p.cycle for p in patterns) == [["A", "B", "C"], ["A", "C", "B"]]
    for pattern in patterns:
        assert pattern.total_amount == pytest.approx(15000)
        assert pattern.transaction_count == 30
        assert pattern.avg_amount == pytest.approx(500)
        assert pattern.suspicion_score == 40


def test_high_amount_and_frequency_raise_the_score():
    relationships = ring(["A", "B", "C"], transaction_count=20, total_amount=50_000)
    patterns = detect_cycles(build_graph(relationships), relationships)

    # triangle 40 + amount 150000 > 100000 (30) + 60 transactions > 50 (30)
    assert patterns[0].suspicion_score == 100
    assert len(patterns[0].reasons) == 3


def test_square_cycle_score():
    relationships = ring(["A", "B", "C", "D"])
    patterns = detect_cycles(build_graph(relationships), relationships)

    assert len(patterns) == 2
    assert all(len(p.cycle) == 4 for p in patterns)
    assert all(p.suspicion_score == 35 for p in patterns)


def test_cycles_longer_than_the_limit_are_ignored():
    relationships = ring(["A", "B", "C", "D", "E", "F"], transaction_count=5)
    graph = build_graph(relationships)

    assert detect_cycles(graph, relationships, max_cycle_length=5) == []

    patterns = detect_cycles(graph, relationships, max_cycle_length=6)
    assert len(patterns) == 2
    assert all(p.suspicion_score == 30 for p in patterns)


def test_trees_and_two_node_edges_have_no_cycles():
    relationships = [
        make_relationship("A", "B"),
        make_relationship("A", "C"),
        make_relationship("C", "D"),
    ]
    assert detect_cycles(build_graph(relationships), relationships) == []


def test_self_loops_are_not_cycles():
    graph = nx.Graph()
    graph.add_edge("A", "A", weight=5)
    graph.add_edge("A", "B", weight=5)
    assert detect_cycles(graph, []) == []


def test_results_are_limited_and_sorted():
    ids = [f"n{i}" for i in range(6)]
    relationships = [
        make_relationship(ids[i], ids[j])
        for i in range(len(ids))
        for j in range(i + 1, len(ids))
    ]

    patterns = detect_cycles(build_graph(relationships), relationships, max_cycle_length=4)

    assert len(patterns) == 10
    scores = [p.suspicion_score for p in patterns]
    assert scores == sorted(scores, reverse=True)


def test_missing_relationship_records_count_as_zero():
    graph = nx.Graph()
    graph.add_edge("A", "B", weight=1)
    graph.add_edge("B", "C", weight=1)
    graph.add_edge("C", "A", weight=1)

    patterns = detect_cycles(graph, [])

    assert all(p.total_amount == 0 and p.avg_amount == 0 for p in patterns)


def test_cancelled_deadline_stops_search():
    relationships = ring(["A", "B", "C"])
    deadline = AnalysisDeadline.unbounded()
    deadline.cancel()

    with pytest.raises(AnalysisCancelledError) as exc_info:
        CycleDetector().detect(build_graph(relationships), relationships, deadline=deadline)

    assert exc_info.value.stage == "cycle detection"
