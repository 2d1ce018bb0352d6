from __future__ import annotations

import logging
import random
import string
import threading
from typing import Callable

from chunkscribe.adapters.transcription import RemoteTranscriptionService
from chunkscribe.contracts.artifacts import RemoteHandle, StoredSegment
from chunkscribe.contracts.errors import ProviderError, StreamError, TranscriptionCancelledError, UploadError
from chunkscribe.utils.time import now_unix_ms


logger = logging.getLogger(__name__)

MAX_RESOURCE_NAME_CHARS = 40

_BASE36_ALPHABET = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("value must be >= 0")
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_resource_name(
    index: int,
    *,
    rng: random.Random | None = None,
    clock_ms: Callable[[], int] = now_unix_ms,
) -> str:
    """
    Run-unique remote resource name: c<index>-<10 random base36>-<6 clock base36>.
    Only lowercase alphanumerics and dashes, kept under MAX_RESOURCE_NAME_CHARS.
    """
    source = rng or random.SystemRandom()
    random_part = "".join(source.choice(_BASE36_ALPHABET) for _ in range(10))
    time_part = _to_base36(clock_ms())[-6:]
    name = f"c{index}-{random_part}-{time_part}"
    if len(name) >= MAX_RESOURCE_NAME_CHARS:
        raise ValueError(f"resource name too long for segment index {index}")
    return name


def remote_display_name(index: int, asset_name: str) -> str:
    return f"chunk_{index}_{asset_name}"


def accumulate_fragment(accumulated: str, fragment: str) -> str:
    """
    Fold one stream fragment into the segment text.
    Fragments are deltas; one that strictly extends the text so far is a cumulative snapshot.
    """
    if accumulated and len(fragment) > len(accumulated) and fragment.startswith(accumulated):
        return fragment
    return accumulated + fragment


def raise_if_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise TranscriptionCancelledError("transcription was cancelled")


def upload_segment(
    service: RemoteTranscriptionService,
    segment: StoredSegment,
    *,
    index: int,
    asset_name: str,
    resource_name: str,
) -> RemoteHandle:
    display_name = remote_display_name(index, asset_name)
    logger.debug("uploading segment %d as %s (%s)", index, resource_name, display_name)
    try:
        handle = service.upload(
            segment.data,
            name=resource_name,
            display_name=display_name,
            mime_type=segment.mime_type,
        )
    except ProviderError:
        raise
    except Exception as exc:
        raise UploadError(f"upload of segment {index} failed: {exc}") from exc
    if handle is None:
        raise UploadError("upload to the transcription service failed: no file object was returned")
    logger.debug("uploaded segment %d: %s", index, handle.uri)
    return handle


def stream_segment_text(
    service: RemoteTranscriptionService,
    handle: RemoteHandle,
    instructions: str,
    *,
    on_text: Callable[[str], None],
    cancel_event: threading.Event | None = None,
) -> str:
    """Consume the transcription stream, reporting the cumulative text after every fragment."""
    text = ""
    try:
        stream = iter(service.stream_transcribe(handle, instructions))
    except ProviderError:
        raise
    except Exception as exc:
        raise StreamError(f"could not start transcription stream for {handle.name}: {exc}") from exc
    try:
        while True:
            try:
                fragment = next(stream)
            except StopIteration:
                break
            except ProviderError:
                raise
            except Exception as exc:
                raise StreamError(f"transcription stream failed for {handle.name}: {exc}") from exc
            raise_if_cancelled(cancel_event)
            if not fragment:
                continue
            text = accumulate_fragment(text, fragment)
            on_text(text)
    finally:
        close = getattr(stream, "close", None)
        if callable(close):
            close()
    return text


__all__ = [
    "MAX_RESOURCE_NAME_CHARS",
    "accumulate_fragment",
    "generate_resource_name",
    "raise_if_cancelled",
    "remote_display_name",
    "stream_segment_text",
    "upload_segment",
]
