"""
Name: Stage Timing Utilities

Responsibilities:
  - Measure the duration of pipeline stages (embed, retrieve, rank, generate)
  - Expose timings as a flat dict for response metadata and metrics

Collaborators:
  - application/use_cases: wrap each stage in timings.measure(...)
  - metrics.py: consumes the recorded seconds

Notes:
  - Use as: with timings.measure("embed"): ...
  - time.perf_counter based, monotonic
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator


@dataclass
class StageTimings:
    """
    R: Per-request container of stage durations.

    to_dict() returns {"<stage>_ms": float, ..., "total_ms": float}.
    """

    _stages: dict[str, float] = field(default_factory=dict)
    _started_at: float = field(default_factory=time.perf_counter)

    @contextmanager
    def measure(self, stage_name: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(stage_name, time.perf_counter() - start)

    def record(self, stage_name: str, elapsed_seconds: float) -> None:
        """R: Record (or accumulate) a stage duration in seconds."""
        self._stages[stage_name] = self._stages.get(stage_name, 0.0) + elapsed_seconds

    def seconds(self, stage_name: str) -> float | None:
        return self._stages.get(stage_name)

    def to_dict(self) -> dict[str, float]:
        result = {f"{name}_ms": round(sec * 1000, 2) for name, sec in self._stages.items()}
        result["total_ms"] = round((time.perf_counter() - self._started_at) * 1000, 2)
        return result
