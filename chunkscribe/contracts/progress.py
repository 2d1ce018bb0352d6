from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable


class Phase(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    UPLOADING = "uploading"
    TRANSCRIBING = "transcribing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """
    Snapshot of run state for an external reporting sink.
    `streamed_text` is cumulative for `current_segment`; a new segment index starts over.
    """

    phase: Phase
    message: str
    current_segment: int | None = None
    total_segments: int | None = None
    streamed_text: str | None = None
    error: str | None = None


type ProgressSink = Callable[[ProgressEvent], None]
type MessageSink = Callable[[str], None]


def ignore_progress(event: ProgressEvent) -> None:
    return None


__all__ = ["MessageSink", "Phase", "ProgressEvent", "ProgressSink", "ignore_progress"]
