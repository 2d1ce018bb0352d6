from .artifacts import (
    WAV_MIME_TYPE,
    AudioAsset,
    RemoteHandle,
    SegmentationResult,
    SegmentSpan,
    StoredSegment,
    TranscriptionResult,
)
from .errors import (
    ComponentError,
    FfmpegError,
    InputValidationError,
    PipelineError,
    ProviderError,
    RemotePermissionError,
    SegmentationError,
    SegmentStoreError,
    StreamError,
    TranscriptionCancelledError,
    TranscriptionError,
    UploadError,
)
from .progress import MessageSink, Phase, ProgressEvent, ProgressSink, ignore_progress

__all__ = [
    "WAV_MIME_TYPE",
    "AudioAsset",
    "SegmentSpan",
    "StoredSegment",
    "SegmentationResult",
    "RemoteHandle",
    "TranscriptionResult",
    "Phase",
    "ProgressEvent",
    "ProgressSink",
    "MessageSink",
    "ignore_progress",
    "PipelineError",
    "RemotePermissionError",
    "TranscriptionCancelledError",
    "ComponentError",
    "InputValidationError",
    "FfmpegError",
    "SegmentationError",
    "SegmentStoreError",
    "TranscriptionError",
    "ProviderError",
    "UploadError",
    "StreamError",
]
