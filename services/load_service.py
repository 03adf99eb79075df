"""
PIXELBOOST - Load Service

Runs decode + upscale on a thread pool so large sources do not block the
caller, and hands results back to an EditingSession without letting a
superseded load overwrite a newer one.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from bitmap import DecodeError
from workers.image_processor import decode_and_upscale

logger = logging.getLogger(__name__)


@dataclass
class PendingLoad:
    """A load request in flight."""
    generation: int
    future: Future


class LoadService:
    """
    Background decode/upscale for an editing session.

    ``request`` starts work and returns immediately. ``deliver`` is called
    from the session's own thread and installs the result, but only if no
    newer request has been made since.
    """

    # OpenCV releases the GIL while resizing, threads are enough
    WORKER_THREADS = 2

    def __init__(self, session, max_workers: int = None):
        self._session = session
        self._executor = ThreadPoolExecutor(max_workers=max_workers or self.WORKER_THREADS)
        self._latest: Optional[PendingLoad] = None

    def request(self, data: bytes, mime_type: str = None) -> PendingLoad:
        """Start loading new source bytes. Supersedes any earlier request."""
        if self._latest is not None and not self._latest.future.done():
            # Stale work is useless; drop it if it has not started yet
            self._latest.future.cancel()

        generation = self._session.begin_load()
        future = self._executor.submit(decode_and_upscale, data, mime_type)
        self._latest = PendingLoad(generation=generation, future=future)
        logger.debug("[LoadService] Requested load %d (%d bytes)", generation, len(data))
        return self._latest

    def deliver(self, pending: PendingLoad, timeout: float = None) -> bool:
        """
        Wait for a request and hand its result to the session.

        Returns:
            True if the result (bitmap or failure) was applied, False if the
            request had been superseded or cancelled.
        """
        if pending.future.cancelled():
            return False
        try:
            bitmap = pending.future.result(timeout=timeout)
        except DecodeError as e:
            return self._session.fail_load(pending.generation, str(e))
        return self._session.finish_load(pending.generation, bitmap)

    def deliver_latest(self, timeout: float = None) -> bool:
        """Deliver the most recent request, if any."""
        if self._latest is None:
            return False
        return self.deliver(self._latest, timeout)

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait, cancel_futures=not wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
        return False
