"""
horus-causality: Logical time and causal queries over traced event graphs.

This library assigns Lamport and vector clocks to the events of a causal
event graph (a DAG of happens-before edges across execution timelines) and
answers causal-order queries over it: happens-before checks and the set of
events lying on causal paths between two events.

Example:
    >>> from horus_causality import Event, InMemoryEventGraph, annotate_logical_time
    >>> store = InMemoryEventGraph()
    >>> send = store.add_event(Event(event_id="snd", timeline_id="t1"))
    >>> recv = store.add_event(Event(event_id="rcv", timeline_id="t2"))
    >>> _ = store.add_edge("snd", "rcv")
    >>> annotate_logical_time(store).events_assigned
    2
    >>> store.get_timestamp("rcv")
    (2, '{"t1":1,"t2":1}')
"""

__version__ = "1.0.0"

# Core data models
from horus_causality.models import (
    Event,
    Edge,
    HorusCausalityError,
    StorageError,
    UnknownEventError,
    MalformedClockError,
    MissingTimelineIdError,
    MissingTimestampError,
)

# Vector clock
from horus_causality.vector_clock import VectorClock

# Persisted property encoding
from horus_causality.serialization import (
    encode_vector_time,
    decode_vector_time,
    decode_lamport_time,
    decode_timestamp,
)

# Configuration
from horus_causality.config import CausalityConfig, DEFAULT_CONFIG

# Storage abstractions
from horus_causality.storage import EventGraphStore, InMemoryEventGraph

# Causal nodes and assignment
from horus_causality.causal_node import CausalNode
from horus_causality.assignment import (
    AssignmentSummary,
    LogicalTimeAssignment,
    ClockAssignmentEngine,
    SubgraphClockAssignment,
    OnlyMatchingClockAssignment,
)

# Causal queries
from horus_causality.queries import (
    annotate_logical_time,
    get_causal_nodes,
    get_causal_graph,
    happens_before,
)

# Execution statistics
from horus_causality.stats import ExecutionStats, OperationStats, measured

# Trace documents
from horus_causality.trace import TraceDocument

__all__ = [
    # Version
    "__version__",
    # Models
    "Event",
    "Edge",
    # Exceptions
    "HorusCausalityError",
    "StorageError",
    "UnknownEventError",
    "MalformedClockError",
    "MissingTimelineIdError",
    "MissingTimestampError",
    # Vector clock
    "VectorClock",
    # Serialization
    "encode_vector_time",
    "decode_vector_time",
    "decode_lamport_time",
    "decode_timestamp",
    # Configuration
    "CausalityConfig",
    "DEFAULT_CONFIG",
    # Storage
    "EventGraphStore",
    "InMemoryEventGraph",
    # Assignment
    "CausalNode",
    "AssignmentSummary",
    "LogicalTimeAssignment",
    "ClockAssignmentEngine",
    "SubgraphClockAssignment",
    "OnlyMatchingClockAssignment",
    # Queries
    "annotate_logical_time",
    "get_causal_nodes",
    "get_causal_graph",
    "happens_before",
    # Stats
    "ExecutionStats",
    "OperationStats",
    "measured",
    # Trace documents
    "TraceDocument",
]
