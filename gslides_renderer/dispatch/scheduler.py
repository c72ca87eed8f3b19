"""Split request lists into rate-limited chunks and pace their dispatch."""
from __future__ import annotations

import time
from typing import Callable, Iterable, List, Optional, Sequence

from gslides_renderer.renderer.mutations import RATE_LIMITED_KINDS, Request, request_kind
from gslides_renderer.utils.config import RenderSettings
from gslides_renderer.utils.errors import BatchUpdateError
from gslides_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)


def chunk_requests(
    requests: Sequence[Request],
    max_per_chunk: int,
    rate_limited: Iterable[str] = RATE_LIMITED_KINDS,
) -> List[List[Request]]:
    """Group ``requests`` so no chunk holds more than ``max_per_chunk`` limited requests.

    Order is preserved and chunks only break immediately before a limited
    request, so whatever follows an image create (its alt text) always
    travels in the same chunk.
    """
    if max_per_chunk <= 0:
        raise ValueError("max_per_chunk must be positive")
    limited = frozenset(rate_limited)
    chunks: List[List[Request]] = []
    current: List[Request] = []
    count = 0
    for request in requests:
        if request_kind(request) in limited:
            if count == max_per_chunk and current:
                chunks.append(current)
                current = []
                count = 0
            count += 1
        current.append(request)
    if current:
        chunks.append(current)
    return chunks


class DispatchScheduler:
    """Send chunks in order with a minimum delay between dispatches.

    The delay is measured from the previous dispatch made through this
    scheduler, so it also holds between the create and populate passes.
    """

    def __init__(
        self,
        send: Callable[[List[Request]], object],
        settings: Optional[RenderSettings] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._send = send
        self._settings = settings or RenderSettings()
        self._sleep = sleep
        self._clock = clock
        self._last_dispatch: Optional[float] = None

    def dispatch(self, requests: Sequence[Request]) -> int:
        """Chunk and send ``requests``; return the number of chunks sent."""
        if not requests:
            LOGGER.debug("Nothing to dispatch")
            return 0
        chunks = chunk_requests(requests, self._settings.max_images_per_chunk)
        for index, chunk in enumerate(chunks):
            self._wait_for_slot()
            LOGGER.info("Sending %d/%d request batches (%d requests)", index + 1, len(chunks), len(chunk))
            try:
                self._send(chunk)
            except BatchUpdateError as exc:
                exc.chunk_index = index
                LOGGER.error("Batch %d/%d failed: %s", index + 1, len(chunks), exc.message)
                raise
            finally:
                self._last_dispatch = self._clock()
        return len(chunks)

    def _wait_for_slot(self) -> None:
        if self._last_dispatch is None:
            return
        remaining = self._settings.chunk_delay_seconds - (self._clock() - self._last_dispatch)
        if remaining > 0:
            self._sleep(remaining)
