"""Transient event wrapper carrying a cached logical timestamp."""
from __future__ import annotations

from typing import Optional

from horus_causality.models import Event, MissingTimelineIdError, MissingTimestampError
from horus_causality.serialization import decode_timestamp
from horus_causality.storage import EventGraphStore
from horus_causality.vector_clock import VectorClock


class CausalNode:
    """Pairs an ``Event`` with its Lamport time and vector clock.

    A node bound to a store decodes the persisted timestamp on first access
    and caches it. An unbound node starts unassigned and only holds
    timestamps set on it during one query.
    """

    __slots__ = ("_event", "_store", "_lamport_time", "_vector_clock", "_loaded")

    def __init__(self, event: Event, store: Optional[EventGraphStore] = None) -> None:
        self._event = event
        self._store = store
        self._lamport_time: Optional[int] = None
        self._vector_clock: Optional[VectorClock] = None
        self._loaded = store is None

    @property
    def event(self) -> Event:
        return self._event

    @property
    def event_id(self) -> str:
        return self._event.event_id

    @property
    def timeline_id(self) -> str:
        """Timeline of the wrapped event.

        Raises:
            MissingTimelineIdError: If the event has none.
        """
        if self._event.timeline_id is None:
            raise MissingTimelineIdError(self._event.event_id)
        return self._event.timeline_id

    @property
    def lamport_time(self) -> Optional[int]:
        self._load()
        return self._lamport_time

    @property
    def vector_clock(self) -> Optional[VectorClock]:
        self._load()
        return self._vector_clock

    def require_lamport_time(self) -> int:
        lamport = self.lamport_time
        if lamport is None:
            raise MissingTimestampError(self.event_id, field="lamport time")
        return lamport

    def require_vector_clock(self) -> VectorClock:
        clock = self.vector_clock
        if clock is None:
            raise MissingTimestampError(self.event_id)
        return clock

    def assign(self, lamport_time: int, vector_clock: VectorClock) -> None:
        """Replace the cached timestamp (the store is not written)."""
        self._loaded = True
        self._lamport_time = lamport_time
        self._vector_clock = vector_clock

    def has_label(self, label: str) -> bool:
        return self._event.has_label(label)

    def _load(self) -> None:
        if self._loaded or self._store is None:
            return
        raw_lamport, raw_vector = self._store.get_timestamp(self.event_id)
        self._lamport_time, self._vector_clock = decode_timestamp(
            raw_lamport, raw_vector, self.timeline_id, event_id=self.event_id
        )
        self._loaded = True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CausalNode):
            return NotImplemented
        return self.event_id == other.event_id

    def __hash__(self) -> int:
        return hash(self.event_id)

    def __repr__(self) -> str:
        return (
            f"CausalNode(event_id={self.event_id}, "
            f"lamport={self._lamport_time}, clock={self._vector_clock})"
        )
