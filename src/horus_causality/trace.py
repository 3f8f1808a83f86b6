"""Trace documents: a JSON-friendly form of an event graph."""
from __future__ import annotations

from typing import List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, model_validator

from horus_causality.config import CausalityConfig
from horus_causality.models import Edge, Event
from horus_causality.storage import InMemoryEventGraph


class TraceDocument(BaseModel):
    """Events and happens-before edges of one recorded execution."""

    model_config = ConfigDict(frozen=True)

    events: List[Event] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_references(self) -> "TraceDocument":
        seen: Set[str] = set()
        for event in self.events:
            if event.event_id in seen:
                raise ValueError(f"Duplicate event_id {event.event_id!r}")
            seen.add(event.event_id)
        for edge in self.edges:
            for event_id in (edge.source, edge.target):
                if event_id not in seen:
                    raise ValueError(
                        f"Edge {edge.source} -> {edge.target} references "
                        f"unknown event {event_id!r}"
                    )
        return self

    def to_graph(self, config: Optional[CausalityConfig] = None) -> InMemoryEventGraph:
        """Load the trace into a fresh in-memory store."""
        store = InMemoryEventGraph(config)
        for event in self.events:
            store.add_event(event)
        for edge in self.edges:
            store.add_edge(edge.source, edge.target)
        return store

    @classmethod
    def from_graph(cls, store: InMemoryEventGraph) -> "TraceDocument":
        """Export the events and edges of an in-memory store."""
        return cls(events=store.events(), edges=store.edges())
