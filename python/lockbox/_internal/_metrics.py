"""Internal metrics helpers."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any


@dataclass
class OperationMetrics:
    """Timing and size info for one storage operation."""

    duration_ms: float = 0.0
    items_count: int | None = None
    _started: float = field(default_factory=time.perf_counter, repr=False, compare=False)

    def finish(self, items_count: int | None = None) -> OperationMetrics:
        """Stop the clock and record how many rows were touched."""
        self.duration_ms = (time.perf_counter() - self._started) * 1000
        self.items_count = items_count
        return self


class DictWithMetrics(dict[str, Any]):
    """A dict subclass that carries operation metrics.

    Internal class - users just see a dict with .metrics attribute.
    """

    metrics: OperationMetrics

    def __init__(self, data: dict[str, Any], metrics: OperationMetrics):
        super().__init__(data)
        self.metrics = metrics
