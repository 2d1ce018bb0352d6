from __future__ import annotations

import logging
import threading
from functools import partial
from typing import Callable

from chunkscribe.adapters.transcription import RemoteTranscriptionService
from chunkscribe.components.segment_store import SegmentStore
from chunkscribe.components.segmentation import AudioSegmenter
from chunkscribe.components.stitching import stitch_all
from chunkscribe.components.transcription import (
    generate_resource_name,
    raise_if_cancelled,
    stream_segment_text,
    upload_segment,
)
from chunkscribe.contracts.artifacts import AudioAsset, RemoteHandle, TranscriptionResult
from chunkscribe.contracts.errors import (
    InputValidationError,
    PipelineError,
    RemotePermissionError,
    SegmentStoreError,
)
from chunkscribe.contracts.progress import Phase, ProgressEvent, ProgressSink, ignore_progress
from chunkscribe.utils.tasks import DetachedTaskRunner
from chunkscribe.utils.time import Timer


logger = logging.getLogger(__name__)

PERMISSION_ERROR_MESSAGE = (
    "Permission error from the transcription API. Make sure your API key is valid "
    "and that the File API is enabled for your Google Cloud project."
)
UNKNOWN_ERROR_MESSAGE = "Unknown error while communicating with the transcription service."

type ResourceNamer = Callable[[int], str]


def is_permission_error(exc: BaseException) -> bool:
    """Inspect exc and its causes for a permission-class remote failure."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if getattr(current, "code", None) == 403:
            return True
        status = getattr(current, "status", None)
        if isinstance(status, str) and status.upper() == "PERMISSION_DENIED":
            return True
        # Local filesystem errors also say "Permission denied".
        if not isinstance(current, OSError) and "permission" in str(current).lower():
            return True
        current = current.__cause__ or current.__context__
    return False


def to_pipeline_error(exc: BaseException) -> PipelineError:
    if isinstance(exc, PipelineError):
        return exc
    if is_permission_error(exc):
        return RemotePermissionError(PERMISSION_ERROR_MESSAGE)
    return PipelineError(str(exc) or UNKNOWN_ERROR_MESSAGE)


class TranscriptionOrchestrator:
    """
    Drives one run: segment the asset, then for each segment fetch, upload,
    stream and release, and finally stitch the per-segment transcripts.

    Segments are processed strictly one at a time. Remote deletions are the
    only work that is not awaited. The segment store is cleared once at the
    end of every run, whatever happened before.
    """

    def __init__(
        self,
        *,
        segmenter: AudioSegmenter,
        store: SegmentStore,
        service: RemoteTranscriptionService,
        detached: DetachedTaskRunner | None = None,
        resource_namer: ResourceNamer = generate_resource_name,
    ) -> None:
        self._segmenter = segmenter
        self._store = store
        self._service = service
        self._detached = detached or DetachedTaskRunner()
        self._resource_namer = resource_namer

    @property
    def store(self) -> SegmentStore:
        return self._store

    def transcribe(
        self,
        asset: AudioAsset,
        instructions: str,
        on_progress: ProgressSink | None = None,
        *,
        cancel_event: threading.Event | None = None,
    ) -> str:
        return self.run(asset, instructions, on_progress, cancel_event=cancel_event).text

    def run(
        self,
        asset: AudioAsset,
        instructions: str,
        on_progress: ProgressSink | None = None,
        *,
        cancel_event: threading.Event | None = None,
    ) -> TranscriptionResult:
        emit = on_progress or ignore_progress
        timer = Timer.start()
        logger.info("starting transcription of %s (%d bytes)", asset.name, asset.size)
        try:
            result = self._run(asset, instructions, emit, cancel_event)
        except Exception as exc:
            error = to_pipeline_error(exc)
            logger.error("transcription of %s failed: %s", asset.name, error)
            self._report_error(emit, error)
            if error is exc:
                raise
            raise error from exc
        finally:
            self._clear_store()

        logger.info(
            "transcribed %s: %d segment(s), %d chars in %.1fs",
            asset.name,
            result.segment_count,
            len(result.text),
            timer.elapsed_s(),
        )
        return result

    @staticmethod
    def _report_error(emit: ProgressSink, error: PipelineError) -> None:
        try:
            emit(ProgressEvent(phase=Phase.ERROR, message=str(error), error=str(error)))
        except Exception as sink_exc:
            logger.warning("progress sink failed while reporting an error: %s", sink_exc)

    def wait_for_cleanup(self, timeout: float | None = None) -> bool:
        """Block until dispatched remote deletions have finished."""
        return self._detached.wait_all(timeout)

    def _run(
        self,
        asset: AudioAsset,
        instructions: str,
        emit: ProgressSink,
        cancel_event: threading.Event | None,
    ) -> TranscriptionResult:
        if not asset.data:
            raise InputValidationError(f"audio asset is empty: {asset.name}")

        emit(ProgressEvent(phase=Phase.PREPARING, message="Preparing and segmenting audio..."))
        raise_if_cancelled(cancel_event)
        segmentation = self._segmenter.segment(
            asset,
            self._store,
            lambda message: emit(ProgressEvent(phase=Phase.PREPARING, message=message)),
        )
        total = segmentation.total_chunks
        logger.debug("segmentation produced %d segment(s)", total)

        transcripts: list[str] = []
        for index in range(total):
            raise_if_cancelled(cancel_event)
            transcripts.append(
                self._transcribe_segment(asset, instructions, index, total, emit, cancel_event)
            )

        emit(
            ProgressEvent(
                phase=Phase.TRANSCRIBING,
                message="Stitching all transcript parts...",
                current_segment=total,
                total_segments=total,
            )
        )
        text = stitch_all(transcripts)
        emit(
            ProgressEvent(
                phase=Phase.COMPLETE,
                message="Transcription complete.",
                current_segment=total,
                total_segments=total,
            )
        )
        return TranscriptionResult(text=text, segment_count=total)

    def _transcribe_segment(
        self,
        asset: AudioAsset,
        instructions: str,
        index: int,
        total: int,
        emit: ProgressSink,
        cancel_event: threading.Event | None,
    ) -> str:
        logger.debug("processing segment %d/%d", index + 1, total)
        segment = self._store.get(index)
        if segment is None:
            raise SegmentStoreError(f"could not retrieve segment {index} from storage")

        position = index + 1
        handle: RemoteHandle | None = None
        try:
            emit(
                ProgressEvent(
                    phase=Phase.UPLOADING,
                    message=f"Uploading segment {position}/{total}...",
                    current_segment=position,
                    total_segments=total,
                )
            )
            handle = upload_segment(
                self._service,
                segment,
                index=index,
                asset_name=asset.name,
                resource_name=self._resource_namer(index),
            )
            raise_if_cancelled(cancel_event)

            message = f"Transcribing segment {position}/{total}..."
            emit(
                ProgressEvent(
                    phase=Phase.TRANSCRIBING,
                    message=message,
                    current_segment=position,
                    total_segments=total,
                )
            )
            text = stream_segment_text(
                self._service,
                handle,
                instructions,
                on_text=lambda so_far: emit(
                    ProgressEvent(
                        phase=Phase.TRANSCRIBING,
                        message=message,
                        current_segment=position,
                        total_segments=total,
                        streamed_text=so_far,
                    )
                ),
                cancel_event=cancel_event,
            )
            logger.debug("segment %d/%d transcribed: %d chars", position, total, len(text))
            return text
        finally:
            if handle is not None:
                self._release(handle)

    def _release(self, handle: RemoteHandle) -> None:
        logger.debug("dispatching deletion of remote file %s", handle.name)
        try:
            self._detached.spawn(
                self._service.delete,
                handle,
                on_error=partial(self._on_delete_failed, handle),
                description=f"delete {handle.name}",
            )
        except RuntimeError as exc:
            self._on_delete_failed(handle, exc)

    @staticmethod
    def _on_delete_failed(handle: RemoteHandle, exc: BaseException) -> None:
        logger.warning("failed to delete remote file %s: %s", handle.name, exc)

    def _clear_store(self) -> None:
        logger.debug("clearing local segment store")
        try:
            self._store.clear()
        except SegmentStoreError as exc:
            logger.warning("could not clear segment store: %s", exc)


__all__ = [
    "PERMISSION_ERROR_MESSAGE",
    "ResourceNamer",
    "TranscriptionOrchestrator",
    "is_permission_error",
    "to_pipeline_error",
]
