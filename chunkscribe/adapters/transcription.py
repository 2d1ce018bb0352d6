from __future__ import annotations

from typing import Iterator, Protocol

from chunkscribe.contracts.artifacts import RemoteHandle


class RemoteTranscriptionService(Protocol):
    """Provider adapter boundary for upload/stream/delete transcription services."""

    def upload(self, data: bytes, *, name: str, display_name: str, mime_type: str) -> RemoteHandle | None:
        """Upload one segment and return a handle to the remote copy."""

    def stream_transcribe(self, handle: RemoteHandle, instructions: str) -> Iterator[str]:
        """Yield text fragments for the uploaded audio; finite and not restartable."""

    def delete(self, handle: RemoteHandle) -> None:
        """Release the remote copy behind handle."""


__all__ = ["RemoteTranscriptionService"]
