"""Vector clock value type.

A clock maps timeline IDs to non-negative counters. Timelines absent from the
mapping read as 0, so clocks observed on different subsets of timelines can be
compared and merged directly.
"""
from __future__ import annotations

from typing import Annotated, Dict, FrozenSet, Mapping, Optional

from pydantic import Field, StrictStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from horus_causality.models import MalformedClockError

Counter = Annotated[int, Field(strict=True, ge=0)]

COUNTERS_ADAPTER: TypeAdapter[Dict[str, int]] = TypeAdapter(Dict[StrictStr, Counter])


def validate_counters(
    counters: object, event_id: Optional[str] = None
) -> Dict[str, int]:
    """Validate a timeline -> counter mapping.

    Raises:
        MalformedClockError: If the value is not a mapping of string keys
            to non-negative integers.
    """
    try:
        return COUNTERS_ADAPTER.validate_python(counters)
    except PydanticValidationError as e:
        raise MalformedClockError(
            f"Invalid vector clock counters: {_first_error(e)}",
            event_id=event_id,
        ) from e


def _first_error(error: PydanticValidationError) -> str:
    details = error.errors()
    if not details:
        return str(error)
    first = details[0]
    loc = ".".join(str(part) for part in first["loc"])
    return f"{loc}: {first['msg']}" if loc else first["msg"]


class VectorClock:
    """Vector clock owned by one timeline.

    ``increment``, ``merge`` and ``merge_without_increment`` mutate the clock
    in place and return it, so calls can be chained.
    """

    __slots__ = ("_owner", "_counters")

    def __init__(
        self,
        owner: str,
        counters: Optional[Mapping[str, int]] = None,
    ) -> None:
        self._owner = owner
        self._counters: Dict[str, int] = (
            validate_counters(counters) if counters is not None else {}
        )

    @property
    def owner(self) -> str:
        """Timeline whose counter ``increment`` advances."""
        return self._owner

    @property
    def timelines(self) -> FrozenSet[str]:
        """Timelines with an explicit entry in this clock."""
        return frozenset(self._counters)

    def get(self, timeline_id: str) -> int:
        """Return the counter for ``timeline_id`` (0 if absent)."""
        return self._counters.get(timeline_id, 0)

    def increment(self) -> VectorClock:
        """Advance the owner's own counter by one."""
        self._counters[self._owner] = self.get(self._owner) + 1
        return self

    def merge_without_increment(self, other: VectorClock) -> VectorClock:
        """Take the component-wise maximum with ``other``."""
        for timeline_id in other._counters:
            theirs = other.get(timeline_id)
            if self.get(timeline_id) < theirs:
                self._counters[timeline_id] = theirs
        return self

    def merge(self, other: VectorClock) -> VectorClock:
        """Receive rule: component-wise maximum, then increment."""
        return self.merge_without_increment(other).increment()

    def less_than(self, other: VectorClock) -> bool:
        """Strict causal precedence: every entry <= and at least one <."""
        found_less = False
        for timeline_id in self._counters.keys() | other._counters.keys():
            mine = self.get(timeline_id)
            theirs = other.get(timeline_id)
            if mine > theirs:
                return False
            if mine < theirs:
                found_less = True
        return found_less

    def equals(self, other: VectorClock) -> bool:
        """Entry-wise equality over the union of timelines."""
        if other is self:
            return True
        return all(
            self.get(timeline_id) == other.get(timeline_id)
            for timeline_id in self._counters.keys() | other._counters.keys()
        )

    def concurrent_with(self, other: VectorClock) -> bool:
        """True if the clocks are distinct and neither precedes the other."""
        return not (
            self.equals(other) or self.less_than(other) or other.less_than(self)
        )

    def within_causal_path(self, start: VectorClock, end: VectorClock) -> bool:
        """Check whether this clock lies on a causal path from start to end.

        Both endpoints count as being on the path.
        """
        if self.equals(start) or self.equals(end):
            return True
        return start.less_than(self) and self.less_than(end)

    def copy(self) -> VectorClock:
        """Return an independent copy with the same owner."""
        clone = VectorClock(self._owner)
        clone._counters = dict(self._counters)
        return clone

    def to_dict(self) -> Dict[str, int]:
        """Snapshot of the explicit entries."""
        return dict(self._counters)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VectorClock):
            return NotImplemented
        return self.equals(other)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, VectorClock):
            return NotImplemented
        return self.less_than(other)

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, VectorClock):
            return NotImplemented
        return other.less_than(self)

    # Mutable value: equal clocks may diverge later.
    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        items = ", ".join(f"{k}:{v}" for k, v in sorted(self._counters.items()))
        return f"VectorClock(owner={self._owner!r}, [{items}])"
