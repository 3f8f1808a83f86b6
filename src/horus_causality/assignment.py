"""Logical time assignment over a causal event DAG.

The traversal is breadth-first from the start vertices. A vertex is
re-encountered once per incoming edge; each encounter counts one more
predecessor as reported. Until the last predecessor reports, the vertex only
accumulates a partial clock (merge without increment) and the branch is
pruned. The last arrival completes the join: the clock is merged with the
receive rule, the Lamport time advances past every predecessor, and traversal
continues to the successors.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import (
    Collection,
    Deque,
    Dict,
    Generic,
    Hashable,
    Iterable,
    Optional,
    Tuple,
    TypeVar,
)

import networkx as nx
from pydantic import BaseModel, ConfigDict, Field

from horus_causality.causal_node import CausalNode
from horus_causality.models import MissingTimelineIdError
from horus_causality.serialization import (
    decode_timestamp,
    encode_lamport_time,
    encode_vector_time,
)
from horus_causality.storage import EventGraphStore
from horus_causality.vector_clock import VectorClock

logger = logging.getLogger("horus_causality.assignment")

V = TypeVar("V", bound=Hashable)


class AssignmentSummary(BaseModel):
    """Outcome of one assignment run."""

    model_config = ConfigDict(frozen=True)

    events_assigned: int = Field(..., ge=0, description="Events given a final timestamp")
    edges_visited: int = Field(..., ge=0, description="Happens-before edges processed")
    pending_event_ids: Tuple[str, ...] = Field(
        default=(),
        description="Events whose join never completed (cyclic or unreachable input)",
    )

    @property
    def complete(self) -> bool:
        return not self.pending_event_ids


class LogicalTimeAssignment(ABC, Generic[V]):
    """Join-barrier traversal shared by the whole-graph and scoped runs.

    Subclasses adapt a graph representation through the ``_`` hooks.
    """

    def __init__(self) -> None:
        self._arrivals: Dict[V, int] = {}

    @abstractmethod
    def _start_vertices(self) -> Iterable[V]:
        """Vertices that receive the root treatment."""

    @abstractmethod
    def _successors(self, vertex: V) -> Iterable[V]:
        ...

    @abstractmethod
    def _in_degree(self, vertex: V) -> int:
        ...

    @abstractmethod
    def _vertex_id(self, vertex: V) -> str:
        ...

    @abstractmethod
    def _timeline_id(self, vertex: V) -> str:
        ...

    @abstractmethod
    def _load_timestamp(self, vertex: V) -> Tuple[Optional[int], Optional[VectorClock]]:
        ...

    @abstractmethod
    def _store_timestamp(
        self, vertex: V, lamport_time: int, clock: VectorClock, final: bool
    ) -> None:
        ...

    def _should_increment(self, vertex: V) -> bool:
        """Whether a completed join advances the vertex's own counter."""
        return True

    def run(self) -> AssignmentSummary:
        """Assign timestamps to every vertex reachable from the start set."""
        self._arrivals = {}
        assigned = 0
        edges_visited = 0
        queue: Deque[Tuple[V, Optional[V]]] = deque(
            (vertex, None) for vertex in self._start_vertices()
        )

        while queue:
            vertex, parent = queue.popleft()
            if parent is not None:
                edges_visited += 1
            if not self._encounter(vertex, parent):
                continue
            assigned += 1
            queue.extend((child, vertex) for child in self._successors(vertex))

        pending = tuple(sorted(self._vertex_id(v) for v in self._arrivals))
        if pending:
            logger.warning(
                "%d events still waiting for predecessors after traversal: %s",
                len(pending),
                ", ".join(pending),
            )
        summary = AssignmentSummary(
            events_assigned=assigned,
            edges_visited=edges_visited,
            pending_event_ids=pending,
        )
        logger.info(
            "Assigned logical time to %d events over %d edges",
            summary.events_assigned,
            summary.edges_visited,
        )
        return summary

    def _encounter(self, vertex: V, parent: Optional[V]) -> bool:
        """Process one arrival; return True if traversal continues past it."""
        timeline_id = self._timeline_id(vertex)

        if parent is None:
            self._store_timestamp(vertex, 1, VectorClock(timeline_id).increment(), True)
            return True

        parents = self._in_degree(vertex)
        arrived = self._arrivals.get(vertex, 0) + 1

        parent_lamport, parent_clock = self._load_timestamp(parent)
        if parent_clock is None:
            parent_clock = VectorClock(timeline_id)
        if parent_lamport is None:
            parent_lamport = 0

        lamport, clock = self._load_timestamp(vertex)
        if clock is None:
            clock = VectorClock(timeline_id)
        if lamport is None:
            lamport = 1

        if arrived == parents:
            self._arrivals.pop(vertex, None)
            if self._should_increment(vertex):
                clock.merge(parent_clock)
                lamport = max(lamport, parent_lamport) + 1
            else:
                clock.merge_without_increment(parent_clock)
                lamport = max(lamport, parent_lamport)
            self._store_timestamp(vertex, lamport, clock, True)
            return True

        logger.debug(
            "Waiting for %d more predecessors of %s",
            parents - arrived,
            self._vertex_id(vertex),
        )
        self._arrivals[vertex] = arrived
        clock.merge_without_increment(parent_clock)
        lamport = max(lamport, parent_lamport)
        self._store_timestamp(vertex, lamport, clock, False)
        return False


class ClockAssignmentEngine(LogicalTimeAssignment[str]):
    """Assigns and persists logical time for every event of a store."""

    def __init__(self, store: EventGraphStore) -> None:
        super().__init__()
        self._store = store

    def _start_vertices(self) -> Iterable[str]:
        roots = [event.event_id for event in self._store.root_events()]
        logger.debug("Starting with root events: %s", roots)
        return roots

    def _successors(self, vertex: str) -> Iterable[str]:
        return [edge.target for edge in self._store.outgoing_edges(vertex)]

    def _in_degree(self, vertex: str) -> int:
        return self._store.incoming_degree(vertex)

    def _vertex_id(self, vertex: str) -> str:
        return vertex

    def _timeline_id(self, vertex: str) -> str:
        timeline_id = self._store.get_event(vertex).timeline_id
        if timeline_id is None:
            raise MissingTimelineIdError(vertex)
        return timeline_id

    def _load_timestamp(self, vertex: str) -> Tuple[Optional[int], Optional[VectorClock]]:
        raw_lamport, raw_vector = self._store.get_timestamp(vertex)
        return decode_timestamp(
            raw_lamport, raw_vector, self._timeline_id(vertex), event_id=vertex
        )

    def _store_timestamp(
        self, vertex: str, lamport_time: int, clock: VectorClock, final: bool
    ) -> None:
        logger.debug(
            "Assigning %s lamport time %d and %r to event %s",
            "final" if final else "partial",
            lamport_time,
            clock,
            vertex,
        )
        self._store.set_timestamp(
            vertex, encode_lamport_time(lamport_time), encode_vector_time(clock)
        )


class SubgraphClockAssignment(LogicalTimeAssignment[CausalNode]):
    """Assigns query-local logical time over an induced subgraph.

    Timestamps are kept on the ``CausalNode`` objects. When ``store`` is
    given they are also written back onto the stored events.
    """

    def __init__(
        self,
        graph: nx.DiGraph,
        start: CausalNode,
        store: Optional[EventGraphStore] = None,
    ) -> None:
        super().__init__()
        if start not in graph:
            raise ValueError(f"Start node {start.event_id!r} is not in the subgraph")
        self._graph = graph
        self._start = start
        self._store = store

    def _start_vertices(self) -> Iterable[CausalNode]:
        return [self._start]

    def _successors(self, vertex: CausalNode) -> Iterable[CausalNode]:
        return list(self._graph.successors(vertex))

    def _in_degree(self, vertex: CausalNode) -> int:
        degree: int = self._graph.in_degree(vertex)
        return degree

    def _vertex_id(self, vertex: CausalNode) -> str:
        return vertex.event_id

    def _timeline_id(self, vertex: CausalNode) -> str:
        return vertex.timeline_id

    def _load_timestamp(
        self, vertex: CausalNode
    ) -> Tuple[Optional[int], Optional[VectorClock]]:
        return vertex.lamport_time, vertex.vector_clock

    def _store_timestamp(
        self, vertex: CausalNode, lamport_time: int, clock: VectorClock, final: bool
    ) -> None:
        vertex.assign(lamport_time, clock)
        if self._store is not None:
            self._store.set_timestamp(
                vertex.event_id,
                encode_lamport_time(lamport_time),
                encode_vector_time(clock),
            )


class OnlyMatchingClockAssignment(SubgraphClockAssignment):
    """Scoped assignment where only matching nodes advance their clock.

    A completed join increments the node's own counter only if the node
    carries ``label`` and its host is in ``filter_hosts``. Other nodes pass
    the merged clock through unchanged, so the ordering among matching nodes
    keeps their causal dependencies without counting intermediate steps.
    """

    def __init__(
        self,
        graph: nx.DiGraph,
        start: CausalNode,
        label: str,
        filter_hosts: Collection[str],
        store: Optional[EventGraphStore] = None,
    ) -> None:
        super().__init__(graph, start, store=store)
        self._label = label
        self._filter_hosts = frozenset(filter_hosts)

    def _should_increment(self, vertex: CausalNode) -> bool:
        # An empty allow-list matches no host.
        host = vertex.event.host
        return (
            vertex.has_label(self._label)
            and host is not None
            and host in self._filter_hosts
        )
