"""Execution statistics for causal operations.

An ``ExecutionStats`` collector is created by the caller and passed to the
operations it wants measured; there is no process-wide instance.
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, Optional

logger = logging.getLogger("horus_causality.stats")


@dataclass
class OperationStats:
    """Accumulated count and elapsed time of one operation."""

    n_ops: int = 0
    elapsed_ms: float = 0.0

    @property
    def throughput(self) -> float:
        """Operations per second (0 when nothing was timed)."""
        if self.elapsed_ms <= 0:
            return 0.0
        return self.n_ops / (self.elapsed_ms / 1000.0)

    @property
    def latency(self) -> float:
        """Milliseconds per operation (0 when nothing was recorded)."""
        if self.n_ops == 0:
            return 0.0
        return self.elapsed_ms / self.n_ops

    def __str__(self) -> str:
        return (
            f"{{nOps={self.n_ops}, elapsedTime(ms)={self.elapsed_ms:.3f}, "
            f"ops/s={self.throughput:.3f}, ms/op={self.latency:.3f}}}"
        )


class ExecutionStats:
    """Per-operation timing collector."""

    def __init__(self) -> None:
        self._stats: Dict[str, OperationStats] = {}

    def measure(self, op_name: str, millis: float) -> None:
        """Record one execution of ``op_name`` that took ``millis`` ms."""
        if millis < 0:
            raise ValueError(f"Elapsed time must be ≥ 0, got {millis}")
        stats = self._stats.setdefault(op_name, OperationStats())
        stats.n_ops += 1
        stats.elapsed_ms += millis

    def get(self, op_name: str) -> OperationStats:
        """Stats for ``op_name`` (zeroed if never measured)."""
        return self._stats.get(op_name, OperationStats())

    def operations(self) -> Dict[str, OperationStats]:
        return dict(self._stats)

    @property
    def total_ops(self) -> int:
        return sum(s.n_ops for s in self._stats.values())

    @property
    def total_elapsed_ms(self) -> float:
        return sum(s.elapsed_ms for s in self._stats.values())

    def reset(self) -> None:
        self._stats.clear()

    def format_report(self) -> str:
        """Render a multi-line report, one line per operation."""
        lines = ["-----------"]
        for op_name in sorted(self._stats):
            lines.append(f"{op_name}: {self._stats[op_name]}")
        lines.append("-----------")
        lines.append(
            f"total ops: {self.total_ops}, "
            f"total ms: {self.total_elapsed_ms:.3f}"
        )
        lines.append("-----------")
        return "\n".join(lines)

    def log_report(self, level: int = logging.INFO) -> None:
        logger.log(level, "Execution stats\n%s", self.format_report())


@contextmanager
def measured(stats: Optional[ExecutionStats], op_name: str) -> Iterator[None]:
    """Time the enclosed block into ``stats`` (no-op when ``stats`` is None).

    Failed executions are not recorded.
    """
    if stats is None:
        yield
        return
    started = time.perf_counter()
    yield
    stats.measure(op_name, (time.perf_counter() - started) * 1000.0)
