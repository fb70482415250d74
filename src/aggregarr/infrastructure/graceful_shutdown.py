"""In-flight request tracking for readiness and shutdown draining."""

from __future__ import annotations

import asyncio

import structlog

log = structlog.get_logger(__name__)


class GracefulShutdown:
    """Counts active HTTP requests so shutdown can wait for running searches.

    The request middleware calls request_started()/request_finished();
    the lifespan calls mark_ready() after startup and wait_for_drain()
    before closing the shared HTTP client, so no fan-out is cut off mid-way.
    """

    def __init__(self) -> None:
        self._active = 0
        self._ready = False
        self._shutting_down = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def active_requests(self) -> int:
        return self._active

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def is_ready(self) -> bool:
        """True between startup completion and the start of shutdown."""
        return self._ready and not self._shutting_down

    def mark_ready(self) -> None:
        self._ready = True

    def request_started(self) -> None:
        self._active += 1
        self._idle.clear()

    def request_finished(self) -> None:
        self._active = max(self._active - 1, 0)
        if self._active == 0:
            self._idle.set()

    async def wait_for_drain(self, *, timeout: float = 10.0) -> bool:
        """Stop reporting ready and wait up to *timeout* for requests to finish.

        Returns True if all requests finished in time.
        """
        self._shutting_down = True
        if self._active == 0:
            return True

        log.info("shutdown_draining", active_requests=self._active)
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except TimeoutError:
            log.warning(
                "shutdown_drain_timeout",
                remaining_requests=self._active,
                timeout=timeout,
            )
            return False
        log.info("shutdown_drained")
        return True
