from __future__ import annotations

import io
import logging
import math
import mimetypes
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import numpy as np
from pydub import AudioSegment

from chunkscribe.adapters.ffmpeg import FfmpegAdapter
from chunkscribe.components.segment_store import SegmentStore
from chunkscribe.contracts.artifacts import AudioAsset, SegmentationResult, SegmentSpan
from chunkscribe.contracts.errors import ComponentError, InputValidationError, SegmentationError
from chunkscribe.contracts.progress import MessageSink
from chunkscribe.utils.wav import downmix_to_mono, encode_wav, pcm_bytes_to_frames


logger = logging.getLogger(__name__)

DEFAULT_CHUNK_DURATION_S = 20 * 60.0
DEFAULT_OVERLAP_DURATION_S = 0.5 * 60.0
DEFAULT_SAMPLE_RATE = 16000

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True, slots=True)
class SegmentationConfig:
    chunk_duration_s: float = DEFAULT_CHUNK_DURATION_S
    overlap_duration_s: float = DEFAULT_OVERLAP_DURATION_S
    sample_rate: int = DEFAULT_SAMPLE_RATE

    def __post_init__(self) -> None:
        if not math.isfinite(self.chunk_duration_s) or self.chunk_duration_s <= 0:
            raise InputValidationError("chunk_duration_s must be > 0")
        if not math.isfinite(self.overlap_duration_s) or self.overlap_duration_s < 0:
            raise InputValidationError("overlap_duration_s must be >= 0")
        if self.overlap_duration_s >= self.chunk_duration_s:
            raise InputValidationError("overlap_duration_s must be smaller than chunk_duration_s")
        if self.sample_rate <= 0:
            raise InputValidationError("sample_rate must be > 0")

    @classmethod
    def from_minutes(
        cls,
        chunk_minutes: float,
        overlap_minutes: float,
        *,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
    ) -> "SegmentationConfig":
        return cls(
            chunk_duration_s=chunk_minutes * 60.0,
            overlap_duration_s=overlap_minutes * 60.0,
            sample_rate=sample_rate,
        )

    @property
    def step_s(self) -> float:
        return self.chunk_duration_s - self.overlap_duration_s


class AudioSegmenter(Protocol):
    """Turns one audio asset into normalized overlapping segments inside a store."""

    def segment(self, asset: AudioAsset, store: SegmentStore, on_message: MessageSink) -> SegmentationResult:
        """Write segments 0..N-1 into store and return N."""


def plan_segments(duration_s: float, config: SegmentationConfig) -> list[SegmentSpan]:
    """
    Plan overlapping windows over [0, duration_s).
    Window i starts at i * step and lasts min(chunk, remaining); the last one ends at duration_s.
    """
    if not math.isfinite(duration_s) or duration_s < 0:
        raise SegmentationError(f"invalid audio duration: {duration_s!r}")

    chunk_s = config.chunk_duration_s
    if duration_s <= chunk_s:
        return [SegmentSpan(index=0, start_s=0.0, duration_s=duration_s)]

    spans: list[SegmentSpan] = []
    index = 0
    current_s = 0.0
    while current_s < duration_s:
        length_s = min(chunk_s, duration_s - current_s)
        if length_s <= 0:
            break
        spans.append(SegmentSpan(index=index, start_s=current_s, duration_s=length_s))
        index += 1
        if current_s + length_s >= duration_s:
            break
        current_s = index * config.step_s
    return spans


def segment_display_name(index: int, asset_name: str) -> str:
    return f"chunk_{index}_{asset_name}.wav"


def _format_hint(asset: AudioAsset) -> str | None:
    suffix = Path(asset.name).suffix.lower().lstrip(".")
    if suffix:
        return suffix
    guessed = mimetypes.guess_extension(asset.mime_type or "")
    return guessed.lstrip(".") if guessed else None


def _store_segments(
    spans: list[SegmentSpan],
    frames: np.ndarray,
    sample_rate: int,
    asset: AudioAsset,
    store: SegmentStore,
    on_message: MessageSink,
) -> int:
    stored = 0
    for span in spans:
        if len(spans) > 1:
            on_message(f"Creating and storing segment {span.index + 1}...")
        start_frame = int(math.floor(span.start_s * sample_rate))
        end_frame = int(math.floor(span.end_s * sample_rate))
        if len(spans) > 1 and end_frame <= start_frame:
            logger.debug("segment %d has no frames, stopping", span.index)
            break
        logger.debug(
            "segment %d: %.3fs-%.3fs frames %d-%d",
            span.index,
            span.start_s,
            span.end_s,
            start_frame,
            end_frame,
        )
        wav_bytes = encode_wav(downmix_to_mono(frames[start_frame:end_frame]), sample_rate)
        store.save(span.index, wav_bytes, segment_display_name(span.index, asset.name))
        stored += 1
    return stored


class PydubAudioSegmenter(AudioSegmenter):
    """
    Decodes the whole asset in memory with pydub, resamples once to the target
    rate, then slices by frame and downmixes each window.
    """

    def __init__(self, config: SegmentationConfig | None = None) -> None:
        self._config = config or SegmentationConfig()

    @property
    def config(self) -> SegmentationConfig:
        return self._config

    def _decode(self, asset: AudioAsset) -> AudioSegment:
        try:
            audio = AudioSegment.from_file(io.BytesIO(asset.data), format=_format_hint(asset))
            return audio.set_frame_rate(self._config.sample_rate).set_sample_width(2)
        except Exception as exc:
            raise SegmentationError(f"could not decode {asset.name}: {exc}") from exc

    def segment(self, asset: AudioAsset, store: SegmentStore, on_message: MessageSink) -> SegmentationResult:
        on_message("Decoding audio file...")
        audio = self._decode(asset)
        channels = int(audio.channels)
        frames = np.frombuffer(audio.raw_data, dtype="<i2").reshape(-1, channels)
        sample_rate = self._config.sample_rate
        duration_s = frames.shape[0] / float(sample_rate)
        logger.debug(
            "decoded %s: %.3fs, %d channel(s), resampled to %d Hz",
            asset.name,
            duration_s,
            channels,
            sample_rate,
        )

        spans = plan_segments(duration_s, self._config)
        if len(spans) == 1:
            on_message("Audio is short enough, no splitting needed.")
        total = _store_segments(spans, frames, sample_rate, asset, store, on_message)
        if total > 1:
            on_message(f"Created and stored {total} segments.")
        return SegmentationResult(total_chunks=total)


class FfmpegAudioSegmenter(AudioSegmenter):
    """
    Probes the asset with ffprobe and extracts each window with ffmpeg.
    The asset is written to a private temp directory that is removed afterwards.
    """

    def __init__(self, config: SegmentationConfig | None = None, *, ffmpeg: FfmpegAdapter | None = None) -> None:
        self._config = config or SegmentationConfig()
        self._ffmpeg = ffmpeg or FfmpegAdapter()

    @property
    def config(self) -> SegmentationConfig:
        return self._config

    def segment(self, asset: AudioAsset, store: SegmentStore, on_message: MessageSink) -> SegmentationResult:
        sample_rate = self._config.sample_rate
        with tempfile.TemporaryDirectory(prefix="chunkscribe-audio-") as tmp:
            on_message("Preparing temporary file for processing...")
            input_name = _UNSAFE_FILENAME_RE.sub("_", Path(asset.name).name) or "input"
            input_path = Path(tmp) / input_name
            input_path.write_bytes(asset.data)
            logger.debug("wrote %s to %s", asset.name, input_path)

            on_message("Reading audio metadata...")
            try:
                probe = self._ffmpeg.probe(input_path)
            except ComponentError:
                raise
            except Exception as exc:
                raise SegmentationError(f"could not probe {asset.name}: {exc}") from exc
            logger.debug("probed %s: %.3fs, %d channel(s)", asset.name, probe.duration_s, probe.channels)

            spans = plan_segments(probe.duration_s, self._config)
            if len(spans) == 1:
                on_message("Audio is short enough, no splitting needed.")

            for span in spans:
                if len(spans) > 1:
                    on_message(f"Creating and storing segment {span.index + 1}...")
                pcm = self._ffmpeg.extract_pcm(
                    input_path,
                    span.start_s,
                    span.duration_s,
                    sample_rate=sample_rate,
                    channels=probe.channels,
                )
                frames = pcm_bytes_to_frames(pcm, probe.channels)
                wav_bytes = encode_wav(downmix_to_mono(frames), sample_rate)
                store.save(span.index, wav_bytes, segment_display_name(span.index, asset.name))
                logger.debug("segment %d: %.3fs-%.3fs, %d frames", span.index, span.start_s, span.end_s, frames.shape[0])

        if len(spans) > 1:
            on_message(f"Created and stored {len(spans)} segments.")
        return SegmentationResult(total_chunks=len(spans))


__all__ = [
    "DEFAULT_CHUNK_DURATION_S",
    "DEFAULT_OVERLAP_DURATION_S",
    "DEFAULT_SAMPLE_RATE",
    "AudioSegmenter",
    "FfmpegAudioSegmenter",
    "PydubAudioSegmenter",
    "SegmentationConfig",
    "plan_segments",
    "segment_display_name",
]
