from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Any, Callable, Sequence

from chunkscribe.contracts.errors import FfmpegError


type StrPath = str | PathLike[str]
type CommandRunner = Callable[..., subprocess.CompletedProcess[Any]]


def _path_str(value: StrPath) -> str:
    return str(Path(value))


def _require_positive_int(name: str, value: int) -> None:
    if value <= 0:
        raise ValueError(f"{name} must be > 0")


def _require_non_negative(name: str, value: float) -> None:
    if value < 0:
        raise ValueError(f"{name} must be >= 0")


def _seconds_arg(value: float) -> str:
    return f"{value:.6f}".rstrip("0").rstrip(".") or "0"


def build_ffprobe_cmd(input_path: StrPath) -> list[str]:
    """Build a deterministic ffprobe command reporting duration and audio channel count as JSON."""
    return [
        "ffprobe",
        "-v",
        "error",
        "-select_streams",
        "a:0",
        "-show_entries",
        "format=duration:stream=channels",
        "-of",
        "json",
        _path_str(input_path),
    ]


def build_ffmpeg_extract_pcm_cmd(
    input_path: StrPath,
    start_s: float,
    duration_s: float,
    *,
    sample_rate: int = 16000,
    channels: int = 1,
) -> list[str]:
    """Build a deterministic ffmpeg command piping one window as raw s16le PCM to stdout."""
    _require_non_negative("start_s", start_s)
    _require_non_negative("duration_s", duration_s)
    _require_positive_int("sample_rate", sample_rate)
    _require_positive_int("channels", channels)

    return [
        "ffmpeg",
        "-v",
        "error",
        "-nostdin",
        "-ss",
        _seconds_arg(start_s),
        "-t",
        _seconds_arg(duration_s),
        "-i",
        _path_str(input_path),
        "-vn",
        "-map",
        "0:a:0",
        "-acodec",
        "pcm_s16le",
        "-ar",
        str(sample_rate),
        "-ac",
        str(channels),
        "-f",
        "s16le",
        "pipe:1",
    ]


@dataclass(frozen=True, slots=True)
class ProbeResult:
    duration_s: float
    channels: int


def parse_ffprobe_output(stdout: str | bytes) -> ProbeResult:
    text = stdout.decode("utf-8", errors="replace") if isinstance(stdout, bytes) else stdout
    try:
        payload = json.loads(text or "{}")
    except json.JSONDecodeError as exc:
        raise FfmpegError(f"ffprobe returned invalid JSON: {exc}") from exc

    raw_duration = (payload.get("format") or {}).get("duration")
    if raw_duration in (None, "", "N/A"):
        raise FfmpegError("Could not determine audio duration.")
    try:
        duration_s = float(raw_duration)
    except (TypeError, ValueError) as exc:
        raise FfmpegError(f"ffprobe reported a non-numeric duration: {raw_duration!r}") from exc

    streams = payload.get("streams") or []
    if not streams:
        raise FfmpegError("ffprobe found no audio stream")
    try:
        channels = int(streams[0].get("channels") or 0)
    except (TypeError, ValueError):
        channels = 0
    if channels <= 0:
        raise FfmpegError("ffprobe reported no audio channels")

    return ProbeResult(duration_s=duration_s, channels=channels)


def run_ffmpeg_or_raise(
    cmd: Sequence[str],
    fallback_message: str,
    *,
    runner: CommandRunner = subprocess.run,
) -> bytes:
    try:
        completed = runner(list(cmd), capture_output=True, check=False)
    except FileNotFoundError as exc:
        raise FfmpegError(f"{cmd[0]} not found. Install ffmpeg and add it to PATH.") from exc
    if completed.returncode == 0:
        stdout = completed.stdout
        return stdout if isinstance(stdout, bytes) else (stdout or "").encode("utf-8")
    message = _decode(completed.stderr).strip() or fallback_message
    raise FfmpegError(message)


def _decode(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


@dataclass(frozen=True, slots=True)
class FfmpegAdapter:
    runner: CommandRunner = subprocess.run

    def probe(self, input_path: StrPath) -> ProbeResult:
        stdout = run_ffmpeg_or_raise(build_ffprobe_cmd(input_path), "ffprobe failed", runner=self.runner)
        return parse_ffprobe_output(stdout)

    def extract_pcm(
        self,
        input_path: StrPath,
        start_s: float,
        duration_s: float,
        *,
        sample_rate: int,
        channels: int,
    ) -> bytes:
        cmd = build_ffmpeg_extract_pcm_cmd(
            input_path,
            start_s,
            duration_s,
            sample_rate=sample_rate,
            channels=channels,
        )
        return run_ffmpeg_or_raise(cmd, "ffmpeg extraction failed", runner=self.runner)


__all__ = [
    "CommandRunner",
    "FfmpegAdapter",
    "ProbeResult",
    "build_ffmpeg_extract_pcm_cmd",
    "build_ffprobe_cmd",
    "parse_ffprobe_output",
    "run_ffmpeg_or_raise",
]
