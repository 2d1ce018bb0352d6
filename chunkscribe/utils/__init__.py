"""Utility package for audio encoding, detached work and timing helpers."""

from __future__ import annotations

from .tasks import DetachedTaskRunner
from .time import Timer, now_unix_ms
from .wav import downmix_to_mono, encode_wav, pcm_bytes_to_frames

__all__ = [
    "DetachedTaskRunner",
    "Timer",
    "now_unix_ms",
    "downmix_to_mono",
    "encode_wav",
    "pcm_bytes_to_frames",
]
