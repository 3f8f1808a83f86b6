"""Core data models for horus-causality library."""
from typing import Any, Dict, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from ulid import ULID


def _new_event_id() -> str:
    return str(ULID())


class Event(BaseModel):
    """Immutable record of one traced event on an execution timeline.

    Logical timestamps are not part of the record: they are persisted
    properties owned by the graph store.
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(
        default_factory=_new_event_id,
        min_length=1,
        description="Stable event identifier (defaults to a fresh ULID)",
    )
    timeline_id: Optional[str] = Field(
        None,
        min_length=1,
        description="Thread/process timeline the event belongs to",
    )
    host: Optional[str] = Field(
        None,
        description="Host the event was recorded on (optional grouping key)",
    )
    labels: FrozenSet[str] = Field(
        default_factory=frozenset,
        description="Event kind tags (e.g. 'LOG', 'SND', 'RCV')",
    )
    attributes: Dict[str, Any] = Field(
        default_factory=dict,
        description="Other recorded properties (opaque to the library)",
    )

    def has_label(self, label: str) -> bool:
        """Check whether the event carries the given tag."""
        return label in self.labels

    def __repr__(self) -> str:
        """Human-readable representation."""
        return (
            f"Event(event_id={self.event_id}, "
            f"timeline={self.timeline_id}, "
            f"host={self.host}, "
            f"labels={sorted(self.labels)})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize event to dictionary (for storage)."""
        return self.model_dump()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        """Deserialize event from dictionary."""
        return cls(**data)


class Edge(BaseModel):
    """Happens-before relation from ``source`` to ``target``."""

    model_config = ConfigDict(frozen=True)

    source: str = Field(..., min_length=1, description="Event ID of the cause")
    target: str = Field(..., min_length=1, description="Event ID of the effect")

    @model_validator(mode="after")
    def _reject_self_loop(self) -> "Edge":
        if self.source == self.target:
            raise ValueError(f"Self-loop on event {self.source!r} is not allowed")
        return self

    def __repr__(self) -> str:
        """Human-readable representation."""
        return f"Edge({self.source} -> {self.target})"


# Custom Exceptions
class HorusCausalityError(Exception):
    """Base exception for all library errors."""

    def __init__(self, message: str, event_id: Optional[str] = None) -> None:
        self.event_id = event_id
        if event_id is not None:
            message = f"{message} (event {event_id!r})"
        super().__init__(message)


class StorageError(HorusCausalityError):
    """Storage adapter failure."""
    pass


class UnknownEventError(StorageError):
    """Event ID not present in the graph store."""

    def __init__(self, event_id: str) -> None:
        super().__init__("Unknown event", event_id=event_id)


class MalformedClockError(HorusCausalityError):
    """Stored Lamport or vector time could not be parsed."""
    pass


class MissingTimelineIdError(HorusCausalityError):
    """Event has no timeline to key its own clock entry."""

    def __init__(self, event_id: str) -> None:
        super().__init__("Event has no timeline_id", event_id=event_id)


class MissingTimestampError(HorusCausalityError):
    """Event has not been assigned a logical timestamp."""

    def __init__(self, event_id: str, field: str = "vector time") -> None:
        self.field = field
        super().__init__(f"Event has no assigned {field}", event_id=event_id)
