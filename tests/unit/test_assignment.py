"""Unit tests for logical time assignment."""
import json
import logging

import networkx as nx
import pytest

from conftest import build_store, make_event
from horus_causality.assignment import (
    AssignmentSummary,
    ClockAssignmentEngine,
    LogicalTimeAssignment,
    OnlyMatchingClockAssignment,
    SubgraphClockAssignment,
)
from horus_causality.causal_node import CausalNode
from horus_causality.models import MalformedClockError, MissingTimelineIdError
from horus_causality.storage import InMemoryEventGraph

# event_id -> (lamport time, vector time)
EXPECTED_THREE_TIMELINES = {
    "a1": (1, {"T1": 1}),
    "a2": (2, {"T1": 2}),
    "b1": (2, {"T1": 1, "T2": 1}),
    "c1": (3, {"T1": 2, "T3": 1}),
    "c2": (4, {"T1": 2, "T3": 2}),
    "b2": (5, {"T1": 2, "T2": 2, "T3": 2}),
    "b3": (6, {"T1": 2, "T2": 3, "T3": 2}),
    "c3": (7, {"T1": 2, "T2": 3, "T3": 3}),
    "c4": (8, {"T1": 2, "T2": 3, "T3": 4}),
    "b4": (7, {"T1": 2, "T2": 4, "T3": 2}),
    "a3": (9, {"T1": 3, "T2": 3, "T3": 4}),
    "a4": (10, {"T1": 4, "T2": 4, "T3": 4}),
    "d1": (1, {"T4": 1}),
}


def stored(store, event_id):
    lamport, vector = store.get_timestamp(event_id)
    return lamport, json.loads(vector)


class TestAssignmentSummary:
    """Tests for AssignmentSummary."""

    def test_complete(self):
        summary = AssignmentSummary(events_assigned=3, edges_visited=2)
        assert summary.complete
        assert summary.pending_event_ids == ()

    def test_incomplete(self):
        summary = AssignmentSummary(
            events_assigned=1, edges_visited=1, pending_event_ids=("x",)
        )
        assert not summary.complete


class TestClockAssignmentEngine:
    """Tests for whole-graph assignment."""

    def test_abstract_base(self):
        with pytest.raises(TypeError):
            LogicalTimeAssignment()  # type: ignore

    def test_three_timelines(self, three_timeline_store):
        """Test every event gets the expected Lamport and vector time."""
        summary = ClockAssignmentEngine(three_timeline_store).run()

        assert summary.events_assigned == 13
        assert summary.edges_visited == 15
        assert summary.complete
        for event_id, expected in EXPECTED_THREE_TIMELINES.items():
            assert stored(three_timeline_store, event_id) == expected, event_id

    def test_roots_start_at_one(self, three_timeline_store):
        ClockAssignmentEngine(three_timeline_store).run()
        for root in three_timeline_store.root_events():
            assert stored(three_timeline_store, root.event_id) == (
                1,
                {root.timeline_id: 1},
            )

    def test_isolated_event(self):
        store = build_store([make_event(event_id="solo", timeline_id="t1")], [])
        summary = ClockAssignmentEngine(store).run()
        assert summary.events_assigned == 1
        assert summary.edges_visited == 0
        assert store.get_timestamp("solo") == (1, '{"t1":1}')

    def test_join_waits_for_all_predecessors(self):
        """Test a join merges every predecessor before advancing."""
        events = [
            make_event(event_id="fork", timeline_id="main"),
            make_event(event_id="left", timeline_id="w1"),
            make_event(event_id="right", timeline_id="w2"),
            make_event(event_id="right2", timeline_id="w2"),
            make_event(event_id="join", timeline_id="main"),
        ]
        edges = [
            ("fork", "left"),
            ("fork", "right"),
            ("right", "right2"),
            ("left", "join"),
            ("right2", "join"),
            ("fork", "join"),
        ]
        store = build_store(events, edges)
        ClockAssignmentEngine(store).run()
        assert stored(store, "join") == (4, {"main": 2, "w1": 1, "w2": 2})

    def test_reannotate_after_clear(self, three_timeline_store):
        ClockAssignmentEngine(three_timeline_store).run()
        first = {e.event_id: three_timeline_store.get_timestamp(e.event_id)
                 for e in three_timeline_store}
        three_timeline_store.clear_timestamps()
        ClockAssignmentEngine(three_timeline_store).run()
        second = {e.event_id: three_timeline_store.get_timestamp(e.event_id)
                  for e in three_timeline_store}
        assert first == second

    def test_missing_timeline(self):
        store = build_store([make_event(event_id="e1", timeline_id=None)], [])
        with pytest.raises(MissingTimelineIdError) as exc_info:
            ClockAssignmentEngine(store).run()
        assert exc_info.value.event_id == "e1"

    def test_malformed_stored_clock(self, three_timeline_store):
        """Test an unparseable stored clock aborts the run."""
        three_timeline_store.properties("b2")["vectorLogicalTime"] = '{"T1": -1}'
        with pytest.raises(MalformedClockError) as exc_info:
            ClockAssignmentEngine(three_timeline_store).run()
        assert exc_info.value.event_id == "b2"

    def test_cycle_leaves_pending_join(self, caplog):
        """Test events whose join never completes are reported."""
        events = [
            make_event(event_id="r", timeline_id="R"),
            make_event(event_id="x", timeline_id="X"),
            make_event(event_id="y", timeline_id="Y"),
        ]
        store = build_store(events, [("r", "x"), ("x", "y"), ("y", "x")])

        with caplog.at_level(logging.WARNING, logger="horus_causality.assignment"):
            summary = ClockAssignmentEngine(store).run()

        assert summary.events_assigned == 1
        assert summary.edges_visited == 1
        assert summary.pending_event_ids == ("x",)
        assert not summary.complete
        assert store.get_timestamp("x") == (1, '{"R":1}')
        assert store.get_timestamp("y") == (None, None)
        assert "waiting for predecessors" in caplog.text

    def test_cycle_without_roots(self):
        events = [
            make_event(event_id="u", timeline_id="U"),
            make_event(event_id="v", timeline_id="V"),
        ]
        store = build_store(events, [("u", "v"), ("v", "u")])
        summary = ClockAssignmentEngine(store).run()
        assert summary.events_assigned == 0
        assert summary.complete

    def test_logs_summary(self, three_timeline_store, caplog):
        with caplog.at_level(logging.INFO, logger="horus_causality.assignment"):
            ClockAssignmentEngine(three_timeline_store).run()
        assert "Assigned logical time to 13 events over 15 edges" in caplog.text


def subgraph(*edges):
    """Build a CausalNode DiGraph; each timeline ID is the event ID's first letter."""
    nodes = {}
    graph = nx.DiGraph()
    for pair in edges:
        for event_id in pair:
            if event_id not in nodes:
                nodes[event_id] = CausalNode(
                    make_event(event_id=event_id, timeline_id=event_id[0].upper())
                )
        graph.add_edge(nodes[pair[0]], nodes[pair[1]])
    return graph, nodes


class TestSubgraphClockAssignment:
    """Tests for scoped assignment over a CausalNode graph."""

    def test_assigns_on_nodes(self):
        graph, nodes = subgraph(("a1", "a2"), ("a1", "b1"), ("b1", "a2"))
        summary = SubgraphClockAssignment(graph, nodes["a1"]).run()

        assert summary.events_assigned == 3
        assert nodes["a1"].lamport_time == 1
        assert nodes["b1"].lamport_time == 2
        assert nodes["a2"].lamport_time == 3
        assert nodes["a2"].require_vector_clock().to_dict() == {"A": 2, "B": 1}

    def test_start_not_in_graph(self):
        graph, _ = subgraph(("a1", "a2"))
        outsider = CausalNode(make_event(event_id="z1", timeline_id="Z"))
        with pytest.raises(ValueError, match="not in the subgraph"):
            SubgraphClockAssignment(graph, outsider)

    def test_start_with_predecessor_in_subgraph(self):
        """Test the start node gets the root treatment regardless of in-degree."""
        graph, nodes = subgraph(("a1", "a2"), ("a2", "a3"))
        SubgraphClockAssignment(graph, nodes["a2"]).run()
        assert nodes["a1"].lamport_time is None
        assert nodes["a2"].lamport_time == 1
        assert nodes["a3"].require_vector_clock().to_dict() == {"A": 2}

    def test_write_back(self):
        """Test timestamps are also persisted when a store is given."""
        store = InMemoryEventGraph()
        graph, nodes = subgraph(("a1", "b1"))
        for node in nodes.values():
            store.add_event(node.event)
        SubgraphClockAssignment(graph, nodes["a1"], store=store).run()
        assert store.get_timestamp("b1") == (2, '{"A":1,"B":1}')


class TestOnlyMatchingClockAssignment:
    """Tests for scoped assignment where only matching nodes advance."""

    def build(self):
        graph = nx.DiGraph()
        nodes = {
            "p1": CausalNode(make_event(event_id="p1", timeline_id="P", host="h1")),
            "p2": CausalNode(make_event(event_id="p2", timeline_id="P", host="h1",
                                        labels=frozenset({"LOG"}))),
            "p3": CausalNode(make_event(event_id="p3", timeline_id="P", host="h2",
                                        labels=frozenset({"LOG"}))),
            "p4": CausalNode(make_event(event_id="p4", timeline_id="P", host=None,
                                        labels=frozenset({"LOG"}))),
        }
        for source, target in (("p1", "p2"), ("p2", "p3"), ("p3", "p4")):
            graph.add_edge(nodes[source], nodes[target])
        return graph, nodes

    def test_only_matching_nodes_increment(self):
        graph, nodes = self.build()
        OnlyMatchingClockAssignment(graph, nodes["p1"], "LOG", ["h1"]).run()

        assert nodes["p1"].lamport_time == 1
        assert nodes["p2"].lamport_time == 2
        assert nodes["p2"].require_vector_clock().to_dict() == {"P": 2}
        # p3 is on another host and p4 has no host
        assert nodes["p3"].lamport_time == 2
        assert nodes["p3"].require_vector_clock().to_dict() == {"P": 2}
        assert nodes["p4"].lamport_time == 2

    def test_empty_allow_list_matches_nothing(self):
        """Test only the start node advances with an empty host list."""
        graph, nodes = self.build()
        OnlyMatchingClockAssignment(graph, nodes["p1"], "LOG", []).run()
        for node in nodes.values():
            assert node.lamport_time == 1
            assert node.require_vector_clock().to_dict() == {"P": 1}

    def test_label_required(self):
        graph, nodes = self.build()
        OnlyMatchingClockAssignment(graph, nodes["p1"], "SND", ["h1", "h2"]).run()
        assert nodes["p4"].require_vector_clock().to_dict() == {"P": 1}
