from __future__ import annotations

import mimetypes
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

import filetype

from chunkscribe.contracts.artifacts import AudioAsset
from chunkscribe.contracts.errors import InputValidationError


DEFAULT_INSTRUCTIONS_PATH = Path(__file__).resolve().parents[1] / "prompts" / "transcribe.md"

_SNIFF_BYTES = 261

_EXTRA_MEDIA_TYPES = {
    ".m4a": "audio/mp4",
    ".opus": "audio/ogg",
    ".flac": "audio/flac",
    ".webm": "audio/webm",
}


@dataclass(frozen=True, slots=True)
class LoadedInstructions:
    path: Path
    text: str


def _require_file(path: Path, label: str) -> None:
    if not path.exists():
        raise InputValidationError(f"{label} not found: {path}")
    if not path.is_file():
        raise InputValidationError(f"{label} is not a file: {path}")


def load_instructions(path: Path = DEFAULT_INSTRUCTIONS_PATH) -> LoadedInstructions:
    path = Path(path)
    _require_file(path, "instructions")
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        raise InputValidationError(f"instructions file is empty: {path}")
    return LoadedInstructions(path=path, text=text)


def _read_head(path: Path) -> bytes:
    try:
        with path.open("rb") as handle:
            return handle.read(_SNIFF_BYTES)
    except OSError:
        return b""


def _guess_from_name(path: Path) -> str | None:
    return _EXTRA_MEDIA_TYPES.get(path.suffix.lower()) or mimetypes.guess_type(path.name)[0]


def detect_media_type(path: Path, data: bytes | None = None) -> str:
    """
    Media type of an input file, sniffed from its leading bytes.
    The file name is consulted only when the content is not recognised.
    """
    path = Path(path)
    head = data[:_SNIFF_BYTES] if data is not None else _read_head(path)
    kind = filetype.guess(head) if head else None
    media_type = kind.mime if kind is not None else _guess_from_name(path)
    if not media_type:
        raise InputValidationError(
            f"could not determine file type of {path}. Please provide a valid audio file."
        )
    if not media_type.startswith(("audio/", "video/")):
        raise InputValidationError(f"{path} is not an audio file (detected {media_type})")
    return media_type


def load_audio_asset(path: Path) -> AudioAsset:
    path = Path(path)
    _require_file(path, "audio file")
    data = path.read_bytes()
    if not data:
        raise InputValidationError(f"audio file is empty: {path}")
    media_type = detect_media_type(path, data)
    return AudioAsset(data=data, name=path.name, mime_type=media_type)


def render_transcript_markdown(source_name: str, transcript: str) -> str:
    return "\n\n".join(
        [
            f"![](./{source_name})",
            f"# Transcript: {source_name}",
            transcript,
        ]
    )


def write_text_file(path: Path, text: str, *, encoding: str = "utf-8") -> None:
    _atomic_write_bytes(path, text.encode(encoding))


def _atomic_write_bytes(path: Path, payload: bytes) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f"{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as tmp_file:
            tmp_file.write(payload)
            tmp_file.flush()
            try:
                os.fsync(tmp_file.fileno())
            except OSError:
                # Some sandboxes do not support fsync.
                pass
        os.replace(tmp_path, path)
    finally:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError:
            pass


__all__ = [
    "DEFAULT_INSTRUCTIONS_PATH",
    "LoadedInstructions",
    "detect_media_type",
    "load_audio_asset",
    "load_instructions",
    "render_transcript_markdown",
    "write_text_file",
]
