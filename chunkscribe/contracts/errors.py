from __future__ import annotations


class PipelineError(Exception):
    """Raised by the transcription run for user-facing failures."""


class RemotePermissionError(PipelineError):
    """Raised when the remote service rejects the caller's credentials or project setup."""


class TranscriptionCancelledError(PipelineError):
    """Raised when the caller cancels a run before it completes."""


class ComponentError(Exception):
    """Base exception for component-level failures."""


class InputValidationError(ComponentError):
    """Raised when an input asset, path or config is invalid."""


class FfmpegError(ComponentError):
    """Raised when ffmpeg/ffprobe operations fail."""


class SegmentationError(ComponentError):
    """Raised when audio cannot be probed, decoded or encoded into segments."""


class SegmentStoreError(ComponentError):
    """Raised when a segment is missing or the store backend is unusable."""


class TranscriptionError(ComponentError):
    """Raised when transcription service calls fail."""


class ProviderError(TranscriptionError):
    """Base class for remote provider/API failures."""


class UploadError(ProviderError):
    """Raised when a segment upload is rejected or returns no handle."""


class StreamError(ProviderError):
    """Raised when the transcription stream fails mid-flight."""
