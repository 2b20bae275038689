"""Pause, resume and cancel signals for a running match pipeline."""

import asyncio

from ..logging import get_logger

logger = get_logger(__name__)


class PipelineControls:
    """
    Cooperative suspension token passed through the pipeline.

    The pipeline checks it between batches: ``wait_if_paused`` blocks until
    the run is resumed or cancelled, without polling. The controls may be
    created outside a running event loop and are safe to signal from the
    loop's own tasks.
    """

    def __init__(self) -> None:
        self._running = asyncio.Event()
        self._running.set()
        self._cancelled = asyncio.Event()

    @property
    def is_paused(self) -> bool:
        return not self._running.is_set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def pause(self) -> None:
        if not self.is_cancelled:
            logger.info("Pipeline paused")
            self._running.clear()

    def resume(self) -> None:
        if self.is_paused:
            logger.info("Pipeline resumed")
        self._running.set()

    def cancel(self) -> None:
        logger.info("Pipeline cancelled")
        self._cancelled.set()
        # Wake anything blocked on a pause
        self._running.set()

    async def wait_if_paused(self) -> bool:
        """
        Block while paused.

        Returns:
            False if the run has been cancelled, True if it may continue
        """
        if self.is_cancelled:
            return False
        if not self._running.is_set():
            await self._running.wait()
        return not self.is_cancelled
