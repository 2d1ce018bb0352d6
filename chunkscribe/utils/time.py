from __future__ import annotations

import time
from dataclasses import dataclass


def now_unix_ms() -> int:
    """Wall-clock milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


@dataclass(slots=True)
class Timer:
    """Monotonic stopwatch; unaffected by wall-clock adjustments."""

    started_at: float

    @classmethod
    def start(cls) -> "Timer":
        return cls(started_at=time.monotonic())

    def elapsed_s(self) -> float:
        return time.monotonic() - self.started_at
