from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable


logger = logging.getLogger(__name__)

type ErrorCallback = Callable[[BaseException], None]


class DetachedTaskRunner:
    """
    Runs fire-and-forget work on a small thread pool.
    Callers never join the returned future; failures go to `on_error` instead of
    the caller's control flow.
    """

    def __init__(self, *, max_workers: int = 2, thread_name_prefix: str = "chunkscribe-detached") -> None:
        if max_workers <= 0:
            raise ValueError("max_workers must be > 0")
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=thread_name_prefix)
        self._idle = threading.Condition()
        self._pending: set[Future[Any]] = set()

    def spawn(
        self,
        fn: Callable[..., Any],
        *args: Any,
        on_error: ErrorCallback | None = None,
        description: str | None = None,
    ) -> Future[Any]:
        label = description or getattr(fn, "__name__", repr(fn))
        future = self._executor.submit(fn, *args)
        with self._idle:
            self._pending.add(future)

        def _done(done: Future[Any]) -> None:
            try:
                exc = done.exception()
                if exc is None:
                    logger.debug("detached task finished: %s", label)
                elif on_error is not None:
                    on_error(exc)
                else:
                    logger.warning("detached task failed: %s: %s", label, exc)
            finally:
                with self._idle:
                    self._pending.discard(done)
                    self._idle.notify_all()

        future.add_done_callback(_done)
        return future

    def pending_count(self) -> int:
        with self._idle:
            return len(self._pending)

    def wait_all(self, timeout: float | None = None) -> bool:
        """Block until every spawned task and its error callback finished; returns False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: not self._pending, timeout=timeout)

    def shutdown(self, *, wait_for_pending: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_pending)


__all__ = ["DetachedTaskRunner", "ErrorCallback"]
