"""Causal-order operations over a graph store.

``annotate_logical_time`` must have been run over the store before the
query functions are used: they read the persisted timestamps.
"""
from __future__ import annotations

import logging
from typing import Collection, Dict, List, Optional, Tuple, Union

import networkx as nx

from horus_causality.assignment import (
    AssignmentSummary,
    ClockAssignmentEngine,
    OnlyMatchingClockAssignment,
    SubgraphClockAssignment,
)
from horus_causality.causal_node import CausalNode
from horus_causality.config import DEFAULT_CONFIG, CausalityConfig
from horus_causality.models import Event
from horus_causality.stats import ExecutionStats, measured
from horus_causality.storage import EventGraphStore

logger = logging.getLogger("horus_causality.queries")

EventRef = Union[Event, str]


def _event_id(ref: EventRef) -> str:
    return ref.event_id if isinstance(ref, Event) else ref


def _bound_node(store: EventGraphStore, ref: EventRef) -> CausalNode:
    return CausalNode(store.get_event(_event_id(ref)), store)


def _node_order(node: CausalNode) -> Tuple[bool, int, str]:
    # Nodes the traversal never reached sort last.
    lamport = node.lamport_time
    return (lamport is None, lamport if lamport is not None else 0, node.event_id)


def annotate_logical_time(
    store: EventGraphStore,
    *,
    stats: Optional[ExecutionStats] = None,
) -> AssignmentSummary:
    """Assign Lamport and vector time to every event in ``store``.

    Events must not carry timestamps from an earlier run; clear them first
    when re-annotating.

    Raises:
        MalformedClockError: If a stored timestamp cannot be parsed.
        MissingTimelineIdError: If a reached event has no timeline.
    """
    with measured(stats, "annotate_logical_time"):
        return ClockAssignmentEngine(store).run()


def _causal_path_nodes(
    store: EventGraphStore, start: CausalNode, end: CausalNode
) -> List[CausalNode]:
    low = start.require_lamport_time()
    high = end.require_lamport_time()
    start_clock = start.require_vector_clock()
    end_clock = end.require_vector_clock()

    candidates = store.events_in_lamport_range(low, high)
    logger.debug(
        "%d candidate events with lamport time in [%d, %d]",
        len(candidates),
        low,
        high,
    )

    nodes = []
    for event in candidates:
        node = CausalNode(event, store)
        if node.require_vector_clock().within_causal_path(start_clock, end_clock):
            nodes.append(node)
    return sorted(nodes, key=_node_order)


def get_causal_nodes(
    store: EventGraphStore,
    from_event: EventRef,
    to_event: EventRef,
    *,
    stats: Optional[ExecutionStats] = None,
) -> List[Event]:
    """Events on causal paths from ``from_event`` to ``to_event``.

    Both endpoints are included. Events whose Lamport time falls in range
    but whose clock is concurrent with the path are excluded.

    Raises:
        MissingTimestampError: If an endpoint or candidate is unassigned.
    """
    with measured(stats, "get_causal_nodes"):
        start = _bound_node(store, from_event)
        end = _bound_node(store, to_event)
        return [node.event for node in _causal_path_nodes(store, start, end)]


def get_causal_graph(
    store: EventGraphStore,
    from_event: EventRef,
    to_event: EventRef,
    only_logs: bool = False,
    filter_hosts: Collection[str] = (),
    *,
    config: Optional[CausalityConfig] = None,
    stats: Optional[ExecutionStats] = None,
) -> List[CausalNode]:
    """Causal subgraph between two events, re-timed from ``from_event``.

    The events returned by ``get_causal_nodes`` and the edges among them
    form a subgraph whose logical time is reassigned starting at
    ``from_event``. The returned nodes carry those subgraph-local
    timestamps, ordered by Lamport time. Nodes the traversal cannot reach
    from ``from_event`` (such as an unrelated ``to_event``) are returned
    last, without timestamps.

    With ``only_logs`` set, only events with the configured log label whose
    host is in ``filter_hosts`` advance their clocks, and only labelled
    events are returned (restricted to ``filter_hosts`` when non-empty).
    """
    config = config or DEFAULT_CONFIG
    with measured(stats, "get_causal_graph"):
        start = _bound_node(store, from_event)
        end = _bound_node(store, to_event)
        members = _causal_path_nodes(store, start, end)

        nodes: Dict[str, CausalNode] = {
            member.event_id: CausalNode(member.event) for member in members
        }
        if start.event_id not in nodes:
            logger.debug("No causal path from %s to %s", start.event_id, end.event_id)
            return []

        graph = nx.DiGraph()
        graph.add_nodes_from(nodes.values())
        for edge in store.induced_edges(nodes):
            graph.add_edge(nodes[edge.source], nodes[edge.target])

        root = nodes[start.event_id]
        write_back = store if config.persist_subgraph_clocks else None
        hosts = frozenset(filter_hosts)

        if only_logs:
            OnlyMatchingClockAssignment(
                graph, root, config.log_label, hosts, store=write_back
            ).run()
            result = [
                node
                for node in nodes.values()
                if node.has_label(config.log_label)
                and (not hosts or node.event.host in hosts)
            ]
        else:
            SubgraphClockAssignment(graph, root, store=write_back).run()
            result = list(nodes.values())

        return sorted(result, key=_node_order)


def happens_before(
    store: EventGraphStore,
    from_event: EventRef,
    to_event: EventRef,
    *,
    stats: Optional[ExecutionStats] = None,
) -> bool:
    """Check whether ``from_event`` causally precedes ``to_event``.

    Raises:
        MissingTimestampError: If either event has no vector time.
    """
    with measured(stats, "happens_before"):
        first = _bound_node(store, from_event).require_vector_clock()
        second = _bound_node(store, to_event).require_vector_clock()
        return first.less_than(second)
