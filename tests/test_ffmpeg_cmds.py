from __future__ import annotations

import json
import subprocess
import unittest
from pathlib import Path

from chunkscribe.adapters.ffmpeg import (
    FfmpegAdapter,
    ProbeResult,
    build_ffmpeg_extract_pcm_cmd,
    build_ffprobe_cmd,
    parse_ffprobe_output,
    run_ffmpeg_or_raise,
)
from chunkscribe.contracts.errors import FfmpegError


class _RecordingRunner:
    def __init__(self, *, returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"") -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.calls: list[tuple[list[str], dict[str, object]]] = []

    def __call__(self, cmd: list[str], **kwargs: object) -> subprocess.CompletedProcess[bytes]:
        self.calls.append((cmd, kwargs))
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, self.stderr)


class FfmpegCommandBuilderTests(unittest.TestCase):
    def test_build_ffprobe_cmd_reports_duration_and_channels_as_json(self) -> None:
        cmd = build_ffprobe_cmd(Path("in") / "talk.mp3")

        self.assertEqual(
            cmd,
            [
                "ffprobe",
                "-v",
                "error",
                "-select_streams",
                "a:0",
                "-show_entries",
                "format=duration:stream=channels",
                "-of",
                "json",
                str(Path("in") / "talk.mp3"),
            ],
        )

    def test_build_extract_pcm_cmd_is_deterministic(self) -> None:
        cmd = build_ffmpeg_extract_pcm_cmd("talk.mp3", 1170.0, 1200.0, sample_rate=16000, channels=2)

        self.assertEqual(
            cmd,
            [
                "ffmpeg",
                "-v",
                "error",
                "-nostdin",
                "-ss",
                "1170",
                "-t",
                "1200",
                "-i",
                "talk.mp3",
                "-vn",
                "-map",
                "0:a:0",
                "-acodec",
                "pcm_s16le",
                "-ar",
                "16000",
                "-ac",
                "2",
                "-f",
                "s16le",
                "pipe:1",
            ],
        )

    def test_fractional_seconds_keep_precision(self) -> None:
        cmd = build_ffmpeg_extract_pcm_cmd("talk.mp3", 0.0, 19.5)

        self.assertEqual(cmd[cmd.index("-ss") + 1], "0")
        self.assertEqual(cmd[cmd.index("-t") + 1], "19.5")

    def test_extract_pcm_cmd_validates_arguments(self) -> None:
        with self.assertRaises(ValueError):
            build_ffmpeg_extract_pcm_cmd("a.wav", -1.0, 1.0)
        with self.assertRaises(ValueError):
            build_ffmpeg_extract_pcm_cmd("a.wav", 0.0, 1.0, sample_rate=0)
        with self.assertRaises(ValueError):
            build_ffmpeg_extract_pcm_cmd("a.wav", 0.0, 1.0, channels=0)


class ParseFfprobeOutputTests(unittest.TestCase):
    def test_parses_duration_and_channels(self) -> None:
        stdout = json.dumps({"streams": [{"channels": 2}], "format": {"duration": "2700.123000"}})

        self.assertEqual(parse_ffprobe_output(stdout), ProbeResult(duration_s=2700.123, channels=2))

    def test_accepts_bytes(self) -> None:
        stdout = b'{"streams": [{"channels": 1}], "format": {"duration": "5"}}'

        self.assertEqual(parse_ffprobe_output(stdout), ProbeResult(duration_s=5.0, channels=1))

    def test_missing_duration_is_an_error(self) -> None:
        for payload in ({"streams": [{"channels": 1}]}, {"format": {"duration": "N/A"}, "streams": [{"channels": 1}]}):
            with self.subTest(payload=payload):
                with self.assertRaisesRegex(FfmpegError, "Could not determine audio duration"):
                    parse_ffprobe_output(json.dumps(payload))

    def test_missing_audio_stream_is_an_error(self) -> None:
        with self.assertRaises(FfmpegError):
            parse_ffprobe_output(json.dumps({"format": {"duration": "1.0"}, "streams": []}))
        with self.assertRaises(FfmpegError):
            parse_ffprobe_output(json.dumps({"format": {"duration": "1.0"}, "streams": [{}]}))

    def test_invalid_json_is_an_error(self) -> None:
        with self.assertRaises(FfmpegError):
            parse_ffprobe_output("not json")


class RunFfmpegTests(unittest.TestCase):
    def test_returns_stdout_bytes_on_success(self) -> None:
        runner = _RecordingRunner(stdout=b"\x01\x02")

        output = run_ffmpeg_or_raise(("ffmpeg", "-version"), "failed", runner=runner)

        self.assertEqual(output, b"\x01\x02")
        self.assertEqual(runner.calls, [(["ffmpeg", "-version"], {"capture_output": True, "check": False})])

    def test_nonzero_exit_uses_stderr_message(self) -> None:
        runner = _RecordingRunner(returncode=1, stderr=b"  talk.mp3: Invalid data found  \n")

        with self.assertRaisesRegex(FfmpegError, "^talk.mp3: Invalid data found$"):
            run_ffmpeg_or_raise(["ffmpeg"], "ffmpeg failed", runner=runner)

    def test_nonzero_exit_without_stderr_uses_fallback(self) -> None:
        runner = _RecordingRunner(returncode=1)

        with self.assertRaisesRegex(FfmpegError, "^ffmpeg failed$"):
            run_ffmpeg_or_raise(["ffmpeg"], "ffmpeg failed", runner=runner)

    def test_missing_binary_is_reported(self) -> None:
        def missing(cmd: list[str], **kwargs: object) -> subprocess.CompletedProcess[bytes]:
            raise FileNotFoundError(cmd[0])

        with self.assertRaisesRegex(FfmpegError, "ffprobe not found"):
            run_ffmpeg_or_raise(["ffprobe", "x"], "failed", runner=missing)

    def test_adapter_probe_runs_ffprobe(self) -> None:
        runner = _RecordingRunner(stdout=b'{"streams": [{"channels": 2}], "format": {"duration": "60.5"}}')

        probe = FfmpegAdapter(runner=runner).probe("talk.mp3")

        self.assertEqual(probe, ProbeResult(duration_s=60.5, channels=2))
        self.assertEqual(runner.calls[0][0], build_ffprobe_cmd("talk.mp3"))


if __name__ == "__main__":
    unittest.main()
