"""Shared pytest fixtures for all tests."""
from typing import Any, Dict, Iterable, Tuple

import pytest

from horus_causality import Event, InMemoryEventGraph


def make_event(**overrides: Any) -> Event:
    """Build an Event with defaults for all fields.

    Callers override specific fields as needed.
    """
    defaults: Dict[str, Any] = {
        "timeline_id": "test-timeline",
        "host": "test-host",
        "labels": frozenset(),
        "attributes": {},
    }
    defaults.update(overrides)
    return Event(**defaults)


def build_store(
    events: Iterable[Event], edges: Iterable[Tuple[str, str]]
) -> InMemoryEventGraph:
    store = InMemoryEventGraph()
    for event in events:
        store.add_event(event)
    for source, target in edges:
        store.add_edge(source, target)
    return store


# Three client/server timelines plus one unrelated timeline.
THREE_TIMELINE_EDGES = [
    ("a1", "a2"), ("a2", "a3"), ("a3", "a4"),
    ("b1", "b2"), ("b2", "b3"), ("b3", "b4"),
    ("c1", "c2"), ("c2", "c3"), ("c3", "c4"),
    ("a1", "b1"),
    ("a2", "c1"),
    ("b3", "c3"),
    ("b4", "a4"),
    ("c2", "b2"),
    ("c4", "a3"),
]


@pytest.fixture
def three_timeline_store() -> InMemoryEventGraph:
    """Timelines T1 (a*), T2 (b*), T3 (c*) with cross edges, and T4 (d1)."""
    events = [
        make_event(event_id=f"{prefix}{i}", timeline_id=timeline)
        for prefix, timeline in (("a", "T1"), ("b", "T2"), ("c", "T3"))
        for i in range(1, 5)
    ]
    events.append(make_event(event_id="d1", timeline_id="T4"))
    return build_store(events, THREE_TIMELINE_EDGES)


HOST = "cloud83.cluster.lsd.di.uminho.pt"
DRIVER = f"1900@{HOST}"
SERVER = f"1911@{HOST}"
CLIENT = f"1912@{HOST}"

# A driver forks a server and a client thread, which exchange one message,
# and then joins both.
CLIENT_SERVER_EVENTS = [
    ("pt1", DRIVER, "CREATE"),
    ("pt2", SERVER, "START"),
    ("pt3", DRIVER, "CREATE"),
    ("pt4", CLIENT, "START"),
    ("pt10", CLIENT, "END"),
    ("pt9", DRIVER, "JOIN"),
    ("pt14", SERVER, "END"),
    ("pt13", DRIVER, "JOIN"),
    ("pt5", CLIENT, "CONNECT"),
    ("pt6", CLIENT, "RCV"),
    ("pt7", SERVER, "ACCEPT"),
    ("pt8", SERVER, "SND"),
]

CLIENT_SERVER_EDGES = [
    ("pt1", "pt2"),
    ("pt1", "pt3"),
    ("pt3", "pt4"),
    ("pt3", "pt9"),
    ("pt10", "pt9"),
    ("pt14", "pt13"),
    ("pt9", "pt13"),
    ("pt4", "pt5"),
    ("pt5", "pt6"),
    ("pt6", "pt10"),
    ("pt2", "pt7"),
    ("pt5", "pt7"),
    ("pt7", "pt8"),
    ("pt8", "pt14"),
    ("pt8", "pt6"),
]


@pytest.fixture
def client_server_store() -> InMemoryEventGraph:
    events = [
        make_event(
            event_id=event_id,
            timeline_id=timeline,
            host=HOST,
            labels=frozenset({"EVENT", kind}),
        )
        for event_id, timeline, kind in CLIENT_SERVER_EVENTS
    ]
    return build_store(events, CLIENT_SERVER_EDGES)


@pytest.fixture
def log_store() -> InMemoryEventGraph:
    """Two timelines where some events are logs on hosts h1/h2.

    P: p1 -> p2(LOG@h1) -> p3(LOG@h2) -> p4(LOG@h1)
    Q: q1(LOG@h1), with p2 -> q1 -> p4
    """
    events = [
        make_event(event_id="p1", timeline_id="P", host="h1"),
        make_event(event_id="p2", timeline_id="P", host="h1", labels=frozenset({"LOG"})),
        make_event(event_id="p3", timeline_id="P", host="h2", labels=frozenset({"LOG"})),
        make_event(event_id="p4", timeline_id="P", host="h1", labels=frozenset({"LOG"})),
        make_event(event_id="q1", timeline_id="Q", host="h1", labels=frozenset({"LOG"})),
    ]
    edges = [("p1", "p2"), ("p2", "p3"), ("p3", "p4"), ("p2", "q1"), ("q1", "p4")]
    return build_store(events, edges)
