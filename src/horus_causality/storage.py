"""Graph store abstractions and the in-memory adapter.

The core never talks to a concrete database: it needs only the capabilities
of ``EventGraphStore``. ``InMemoryEventGraph`` keeps events in a
``networkx.DiGraph`` and is used for tests and small traces.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import networkx as nx

from horus_causality.config import DEFAULT_CONFIG, CausalityConfig
from horus_causality.models import Edge, Event, UnknownEventError
from horus_causality.serialization import decode_lamport_time


class EventGraphStore(ABC):
    """Capabilities the core needs from a causal event graph store."""

    @abstractmethod
    def get_event(self, event_id: str) -> Event:
        """Load one event.

        Raises:
            UnknownEventError: If no event has this ID.
        """

    @abstractmethod
    def root_events(self) -> List[Event]:
        """Events without incoming happens-before edges."""

    @abstractmethod
    def outgoing_edges(self, event_id: str) -> List[Edge]:
        """Happens-before edges leaving ``event_id``."""

    @abstractmethod
    def incoming_degree(self, event_id: str) -> int:
        """Number of direct causal predecessors of ``event_id``."""

    @abstractmethod
    def get_timestamp(self, event_id: str) -> Tuple[Optional[Any], Optional[Any]]:
        """Raw persisted ``(lamport, vector)`` properties, ``None`` if unset."""

    @abstractmethod
    def set_timestamp(self, event_id: str, lamport: int, vector: str) -> None:
        """Persist encoded Lamport and vector time for ``event_id``."""

    @abstractmethod
    def events_in_lamport_range(self, low: int, high: int) -> List[Event]:
        """Events whose persisted Lamport time lies in ``[low, high]``.

        Events without a Lamport time are left out.

        Raises:
            MalformedClockError: If a persisted Lamport time is not a
                non-negative integer.
        """

    @abstractmethod
    def induced_edges(self, event_ids: Iterable[str]) -> List[Edge]:
        """Edges whose source and target are both in ``event_ids``."""


class InMemoryEventGraph(EventGraphStore):
    """In-memory store backed by a ``networkx.DiGraph``.

    Node keys are event IDs; each node carries the ``Event`` record under
    ``"event"`` and its persisted properties under ``"properties"``.
    """

    def __init__(self, config: Optional[CausalityConfig] = None) -> None:
        self._config = config or DEFAULT_CONFIG
        self._graph: nx.DiGraph = nx.DiGraph()

    @property
    def config(self) -> CausalityConfig:
        return self._config

    @property
    def graph(self) -> nx.DiGraph:
        """Underlying graph (read-only use)."""
        return self._graph

    # -- population -------------------------------------------------------

    def add_event(self, event: Event) -> Event:
        """Add an event, replacing the record of an existing ID.

        Persisted properties of a replaced event are kept.
        """
        if event.event_id in self._graph:
            self._graph.nodes[event.event_id]["event"] = event
        else:
            self._graph.add_node(event.event_id, event=event, properties={})
        return event

    def add_edge(self, source: str, target: str) -> Edge:
        """Record that ``source`` happened directly before ``target``."""
        edge = Edge(source=source, target=target)
        for event_id in (source, target):
            if event_id not in self._graph:
                raise UnknownEventError(event_id)
        self._graph.add_edge(source, target)
        return edge

    def add_chain(self, *event_ids: str) -> List[Edge]:
        """Link consecutive events of one timeline."""
        return [
            self.add_edge(source, target)
            for source, target in zip(event_ids, event_ids[1:])
        ]

    def events(self) -> List[Event]:
        """All events in insertion order."""
        return [data["event"] for _, data in self._graph.nodes(data=True)]

    def edges(self) -> List[Edge]:
        return [Edge(source=s, target=t) for s, t in self._graph.edges()]

    def clear_timestamps(self) -> None:
        """Drop persisted logical time from every event."""
        for _, data in self._graph.nodes(data=True):
            data["properties"].pop(self._config.lamport_property, None)
            data["properties"].pop(self._config.vector_property, None)

    def properties(self, event_id: str) -> Dict[str, Any]:
        """Persisted properties of ``event_id`` (live mapping)."""
        return self._node(event_id)["properties"]

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._graph

    def __iter__(self) -> Iterator[Event]:
        return iter(self.events())

    # -- EventGraphStore --------------------------------------------------

    def get_event(self, event_id: str) -> Event:
        event: Event = self._node(event_id)["event"]
        return event

    def root_events(self) -> List[Event]:
        return [
            data["event"]
            for node, data in self._graph.nodes(data=True)
            if self._graph.in_degree(node) == 0
        ]

    def outgoing_edges(self, event_id: str) -> List[Edge]:
        self._node(event_id)
        return [
            Edge(source=event_id, target=target)
            for target in self._graph.successors(event_id)
        ]

    def incoming_degree(self, event_id: str) -> int:
        self._node(event_id)
        degree: int = self._graph.in_degree(event_id)
        return degree

    def get_timestamp(self, event_id: str) -> Tuple[Optional[Any], Optional[Any]]:
        props = self.properties(event_id)
        return (
            props.get(self._config.lamport_property),
            props.get(self._config.vector_property),
        )

    def set_timestamp(self, event_id: str, lamport: int, vector: str) -> None:
        if lamport < 0:
            raise ValueError(f"Lamport time must be ≥ 0, got {lamport}")
        props = self.properties(event_id)
        props[self._config.lamport_property] = lamport
        props[self._config.vector_property] = vector

    def events_in_lamport_range(self, low: int, high: int) -> List[Event]:
        key = self._config.lamport_property
        matches = []
        for event_id, data in self._graph.nodes(data=True):
            raw = data["properties"].get(key)
            if raw is None:
                continue
            if low <= decode_lamport_time(raw, event_id=event_id) <= high:
                matches.append(data["event"])
        return matches

    def induced_edges(self, event_ids: Iterable[str]) -> List[Edge]:
        members = [event_id for event_id in event_ids if event_id in self._graph]
        subgraph = self._graph.subgraph(members)
        return [Edge(source=s, target=t) for s, t in subgraph.edges()]

    def _node(self, event_id: str) -> Dict[str, Any]:
        try:
            node: Dict[str, Any] = self._graph.nodes[event_id]
        except KeyError:
            raise UnknownEventError(event_id) from None
        return node
