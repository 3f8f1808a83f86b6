"""Encoding of the persisted logical-time properties.

``lamportLogicalTime`` is stored as a non-negative integer and
``vectorLogicalTime`` as a compact JSON object mapping timeline IDs to
non-negative integers, e.g. ``{"t1":2,"t2":0}``.
"""
from __future__ import annotations

import json
from typing import Annotated, Dict, Mapping, Optional, Tuple

from pydantic import Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from horus_causality.models import MalformedClockError
from horus_causality.vector_clock import COUNTERS_ADAPTER, VectorClock, validate_counters

_LAMPORT_ADAPTER: TypeAdapter[int] = TypeAdapter(
    Annotated[int, Field(strict=True, ge=0)]
)


def encode_lamport_time(lamport_time: int) -> int:
    """Validate a Lamport time before it is persisted."""
    return decode_lamport_time(lamport_time)


def decode_lamport_time(raw: object, event_id: Optional[str] = None) -> int:
    """Parse a persisted Lamport time.

    Raises:
        MalformedClockError: If the value is not a non-negative integer.
    """
    try:
        return _LAMPORT_ADAPTER.validate_python(raw)
    except PydanticValidationError as e:
        raise MalformedClockError(
            f"Invalid lamport time {raw!r}", event_id=event_id
        ) from e


def encode_vector_time(clock: VectorClock) -> str:
    """Serialize a clock to its persisted JSON form (keys sorted)."""
    return json.dumps(clock.to_dict(), sort_keys=True, separators=(",", ":"))


def decode_counters(raw: object, event_id: Optional[str] = None) -> Dict[str, int]:
    """Parse a persisted vector time into a timeline -> counter dict.

    Accepts the JSON text (``str`` or ``bytes``) or an already decoded
    mapping.

    Raises:
        MalformedClockError: If the value is not a flat object of string keys
            to non-negative integers.
    """
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            return COUNTERS_ADAPTER.validate_json(raw)
        except PydanticValidationError as e:
            raise MalformedClockError(
                f"Invalid vector time {raw!r}", event_id=event_id
            ) from e
    if isinstance(raw, Mapping):
        return validate_counters(raw, event_id=event_id)
    raise MalformedClockError(
        f"Vector time must be a JSON object, got {type(raw).__name__}",
        event_id=event_id,
    )


def decode_vector_time(
    raw: object, owner: str, event_id: Optional[str] = None
) -> VectorClock:
    """Parse a persisted vector time into a clock owned by ``owner``."""
    return VectorClock(owner, decode_counters(raw, event_id=event_id))


def decode_timestamp(
    raw_lamport: object,
    raw_vector: object,
    owner: str,
    event_id: Optional[str] = None,
) -> Tuple[Optional[int], Optional[VectorClock]]:
    """Parse a raw ``(lamport, vector)`` pair; ``None`` stays ``None``."""
    lamport = (
        None if raw_lamport is None else decode_lamport_time(raw_lamport, event_id)
    )
    vector = (
        None if raw_vector is None else decode_vector_time(raw_vector, owner, event_id)
    )
    return lamport, vector
