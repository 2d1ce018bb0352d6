from __future__ import annotations

from dataclasses import dataclass


WAV_MIME_TYPE = "audio/wav"


@dataclass(frozen=True, slots=True)
class AudioAsset:
    data: bytes
    name: str
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True, slots=True)
class SegmentSpan:
    index: int
    start_s: float
    duration_s: float

    @property
    def end_s(self) -> float:
        return self.start_s + self.duration_s


@dataclass(frozen=True, slots=True)
class StoredSegment:
    key: int
    data: bytes
    display_name: str
    mime_type: str = WAV_MIME_TYPE


@dataclass(frozen=True, slots=True)
class SegmentationResult:
    total_chunks: int


@dataclass(frozen=True, slots=True)
class RemoteHandle:
    name: str
    uri: str
    mime_type: str


@dataclass(frozen=True, slots=True)
class TranscriptionResult:
    text: str
    segment_count: int
