from __future__ import annotations

import io
import logging
from typing import Any, Iterator, Protocol

from google import genai
from google.genai import types

from chunkscribe.adapters.transcription import RemoteTranscriptionService
from chunkscribe.contracts.artifacts import RemoteHandle
from chunkscribe.contracts.errors import ProviderError, StreamError, UploadError


logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"


class _GeminiFilesAPI(Protocol):
    def upload(self, *, file: Any, config: Any = None) -> Any: ...

    def delete(self, *, name: str, config: Any = None) -> Any: ...


class _GeminiModelsAPI(Protocol):
    def generate_content_stream(self, *, model: str, contents: Any, config: Any = None) -> Any: ...


class GeminiClientLike(Protocol):
    files: _GeminiFilesAPI
    models: _GeminiModelsAPI


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def build_gemini_client(api_key: str) -> genai.Client:
    if not api_key:
        raise ProviderError("a Gemini API key is required (set GEMINI_API_KEY or API_KEY)")
    return genai.Client(api_key=api_key)


class GeminiTranscriptionService(RemoteTranscriptionService):
    """Gemini File API + streaming generation adapter."""

    def __init__(self, client: GeminiClientLike, *, model: str = DEFAULT_GEMINI_MODEL) -> None:
        if not model:
            raise ValueError("model is required")
        self._client = client
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    def upload(self, data: bytes, *, name: str, display_name: str, mime_type: str) -> RemoteHandle | None:
        config = types.UploadFileConfig(name=name, display_name=display_name, mime_type=mime_type)
        logger.debug("uploading %s (%d bytes) as %s", display_name, len(data), name)
        try:
            uploaded = self._client.files.upload(file=io.BytesIO(data), config=config)
        except Exception as exc:
            raise UploadError(f"upload of {display_name} failed: {exc}") from exc

        if uploaded is None:
            return None
        remote_name = _field(uploaded, "name")
        uri = _field(uploaded, "uri")
        if not remote_name or not uri:
            raise UploadError(f"upload of {display_name} returned an incomplete file object")
        return RemoteHandle(
            name=str(remote_name),
            uri=str(uri),
            mime_type=str(_field(uploaded, "mime_type") or mime_type),
        )

    def stream_transcribe(self, handle: RemoteHandle, instructions: str) -> Iterator[str]:
        contents = [
            types.Part.from_uri(file_uri=handle.uri, mime_type=handle.mime_type),
            instructions,
        ]
        logger.debug("streaming transcription for %s with model %s", handle.uri, self._model)
        try:
            stream = self._client.models.generate_content_stream(model=self._model, contents=contents)
            for response in stream:
                text = _field(response, "text")
                if text:
                    yield str(text)
        except Exception as exc:
            raise StreamError(f"transcription stream failed for {handle.name}: {exc}") from exc

    def delete(self, handle: RemoteHandle) -> None:
        self._client.files.delete(name=handle.name)
        logger.debug("deleted remote file %s", handle.name)


__all__ = [
    "DEFAULT_GEMINI_MODEL",
    "GeminiClientLike",
    "GeminiTranscriptionService",
    "build_gemini_client",
]
