from __future__ import annotations

from .ffmpeg import (
    FfmpegAdapter,
    ProbeResult,
    build_ffmpeg_extract_pcm_cmd,
    build_ffprobe_cmd,
    parse_ffprobe_output,
    run_ffmpeg_or_raise,
)
from .gemini_transcription import (
    DEFAULT_GEMINI_MODEL,
    GeminiClientLike,
    GeminiTranscriptionService,
    build_gemini_client,
)
from .transcription import RemoteTranscriptionService

__all__ = [
    "FfmpegAdapter",
    "ProbeResult",
    "build_ffprobe_cmd",
    "build_ffmpeg_extract_pcm_cmd",
    "parse_ffprobe_output",
    "run_ffmpeg_or_raise",
    "RemoteTranscriptionService",
    "DEFAULT_GEMINI_MODEL",
    "GeminiClientLike",
    "GeminiTranscriptionService",
    "build_gemini_client",
]
