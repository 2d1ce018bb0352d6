from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence, TextIO

from chunkscribe.config import Settings
from chunkscribe.contracts.artifacts import TranscriptionResult
from chunkscribe.contracts.progress import ProgressEvent
from chunkscribe.pipeline.factory import build_orchestrator
from chunkscribe.pipeline.io import (
    DEFAULT_INSTRUCTIONS_PATH,
    load_audio_asset,
    load_instructions,
    render_transcript_markdown,
    write_text_file,
)


type Argv = Sequence[str]

logger = logging.getLogger(__name__)

RULE = "-" * 36
DELETE_WAIT_TIMEOUT_S = 30.0


@dataclass(frozen=True, slots=True)
class CliRunResult:
    result: TranscriptionResult
    output_path: Path | None


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {value}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be > 0")
    return parsed


def _nonnegative_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {value}") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError("must be >= 0")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chunkscribe",
        description="Transcribe a long audio file with overlapping segments and a remote model.",
    )
    parser.add_argument("--file", dest="file_path", type=Path, required=True, help="Input audio file path.")
    parser.add_argument(
        "--prompt",
        dest="prompt_path",
        type=Path,
        default=None,
        help="Transcription instructions file (defaults to the bundled prompt).",
    )
    parser.add_argument(
        "--output",
        dest="output_path",
        type=Path,
        default=None,
        help="Write the transcript as Markdown to this path instead of printing it.",
    )
    parser.add_argument("--model", default=None, help="Remote transcription model.")
    parser.add_argument("--chunk-minutes", type=_positive_float, default=None, help="Segment length in minutes.")
    parser.add_argument(
        "--overlap-minutes",
        type=_nonnegative_float,
        default=None,
        help="Overlap between consecutive segments in minutes.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging on stderr.")
    return parser


def parse_args(argv: Argv | None = None) -> argparse.Namespace:
    return build_parser().parse_args(list(argv) if argv is not None else None)


def build_settings(args: argparse.Namespace, *, base: Settings | None = None) -> Settings:
    settings = base if base is not None else Settings()
    updates: dict[str, Any] = {}
    if args.model:
        updates["model"] = args.model
    if args.chunk_minutes is not None:
        updates["chunk_minutes"] = float(args.chunk_minutes)
    if args.overlap_minutes is not None:
        updates["overlap_minutes"] = float(args.overlap_minutes)
    if args.verbose:
        updates["debug"] = True
    if not updates:
        return settings
    return settings.model_copy(update=updates)


class ConsoleProgress:
    """Rewrites a single status line in place."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._width = 0

    def __call__(self, event: ProgressEvent) -> None:
        line = event.message
        padding = " " * max(0, self._width - len(line))
        self._stream.write(f"\r{line}{padding}")
        self._stream.flush()
        self._width = len(line)

    def finish(self) -> None:
        if self._width:
            self._stream.write("\n")
            self._stream.flush()
            self._width = 0


def run_from_args(
    args: argparse.Namespace,
    *,
    settings: Settings | None = None,
    orchestrator: Any = None,
    progress_stream: TextIO | None = None,
) -> CliRunResult:
    effective_settings = build_settings(args, base=settings)
    asset = load_audio_asset(Path(args.file_path))
    instructions = load_instructions(Path(args.prompt_path) if args.prompt_path else DEFAULT_INSTRUCTIONS_PATH)
    logger.debug("loaded instructions from %s", instructions.path)

    runner = orchestrator or build_orchestrator(effective_settings)
    progress = ConsoleProgress(progress_stream or sys.stderr)
    try:
        result = runner.run(asset, instructions.text, progress)
    finally:
        progress.finish()
        runner.wait_for_cleanup(DELETE_WAIT_TIMEOUT_S)

    output_path = Path(args.output_path) if args.output_path else None
    if output_path is not None:
        write_text_file(output_path, render_transcript_markdown(asset.name, result.text))
    return CliRunResult(result=result, output_path=output_path)


def main(argv: Argv | None = None) -> int:
    args = parse_args(argv)
    configure_logging(bool(args.verbose))
    try:
        outcome = run_from_args(args)
    except Exception as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if outcome.output_path is not None:
        print(f"Transcription complete. Output saved to: {outcome.output_path}")
    else:
        print("Transcription complete.")
        print(RULE)
        print(outcome.result.text)
        print(RULE)
    print(f"segments={outcome.result.segment_count}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
