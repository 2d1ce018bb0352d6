from __future__ import annotations

import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Literal, Mapping

from chunkscribe.adapters.gemini_transcription import GeminiTranscriptionService, build_gemini_client
from chunkscribe.adapters.transcription import RemoteTranscriptionService
from chunkscribe.components.segment_store import SegmentStore, SqliteSegmentStore, TempDirSegmentStore
from chunkscribe.components.segmentation import AudioSegmenter, FfmpegAudioSegmenter, PydubAudioSegmenter
from chunkscribe.config import Settings
from chunkscribe.contracts.errors import InputValidationError
from chunkscribe.pipeline.orchestrator import TranscriptionOrchestrator


logger = logging.getLogger(__name__)

RUNTIME_ENV_VAR = "CHUNKSCRIBE_RUNTIME"

type Runtime = Literal["interactive", "batch"]


def _interactive_interpreter() -> bool:
    return hasattr(sys, "ps1") or bool(sys.flags.interactive)


def detect_runtime(
    *,
    configured: str | None = None,
    env: Mapping[str, str] | None = None,
    interactive: bool | None = None,
) -> Runtime:
    """
    Pick the backend family for this process.
    An explicit setting wins, then CHUNKSCRIBE_RUNTIME, then interactive-interpreter detection.
    """
    effective_env: Mapping[str, str] = dict(os.environ) if env is None else env
    for candidate in (configured, effective_env.get(RUNTIME_ENV_VAR)):
        if candidate is None:
            continue
        value = candidate.strip().lower()
        if value in ("", "auto"):
            continue
        if value in ("interactive", "batch"):
            return value  # type: ignore[return-value]
        raise InputValidationError(f"unknown runtime {candidate!r}; expected 'interactive', 'batch' or 'auto'")

    is_interactive = _interactive_interpreter() if interactive is None else interactive
    return "interactive" if is_interactive else "batch"


def default_store_path() -> Path:
    return Path(tempfile.gettempdir()) / "chunkscribe" / f"segments-{os.getpid()}.sqlite3"


def build_backends(settings: Settings, runtime: Runtime) -> tuple[AudioSegmenter, SegmentStore]:
    config = settings.segmentation_config()
    if runtime == "interactive":
        store_path = settings.store_path or default_store_path()
        return PydubAudioSegmenter(config), SqliteSegmentStore(store_path)
    return FfmpegAudioSegmenter(config), TempDirSegmentStore()


def build_orchestrator(
    settings: Settings,
    service: RemoteTranscriptionService | None = None,
    *,
    runtime: Runtime | None = None,
) -> TranscriptionOrchestrator:
    selected = runtime or detect_runtime(configured=settings.runtime)
    segmenter, store = build_backends(settings, selected)
    if service is None:
        service = GeminiTranscriptionService(build_gemini_client(settings.api_key or ""), model=settings.model)
    logger.debug(
        "runtime=%s segmenter=%s store=%s service=%s",
        selected,
        type(segmenter).__name__,
        type(store).__name__,
        type(service).__name__,
    )
    return TranscriptionOrchestrator(segmenter=segmenter, store=store, service=service)


__all__ = [
    "RUNTIME_ENV_VAR",
    "Runtime",
    "build_backends",
    "build_orchestrator",
    "default_store_path",
    "detect_runtime",
]
